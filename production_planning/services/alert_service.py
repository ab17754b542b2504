# production_planning/services/alert_service.py
from datetime import datetime
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from production_planning.models import Alert, AlertType, Severity
from production_planning.exceptions import AlertError, InfrastructureError, NotFoundError, ValidationError
from production_planning.logging_setup import get_logger

logger = get_logger(__name__)

ACTIVE = 'active'
RESOLVED = 'resolved'
DISMISSED = 'dismissed'


class AlertService:
    """Service for creating and managing planning alerts."""

    def __init__(self, session: Session):
        """Initialize the alert service.

        Args:
            session: Database session
        """
        self.session = session

    def find_active_alert(self, alert_type: AlertType, reference: Optional[str]) -> Optional[Alert]:
        try:
            return self.session.query(Alert).filter(
                Alert.alert_type == alert_type,
                Alert.reference == reference,
                Alert.status == ACTIVE
            ).first()
        except SQLAlchemyError as e:
            raise InfrastructureError(f"Failed to look up alerts: {str(e)}")

    def create_alert(
        self,
        alert_type: AlertType,
        severity: Severity,
        title: str,
        description: str,
        reference: Optional[str] = None,
        commit: bool = True
    ) -> Alert:
        """Create an alert, or refresh the active one with the same type and reference.

        Args:
            alert_type: Alert type
            severity: Alert severity
            title: Short title
            description: Full description
            reference: Optional reference (part number, schedule id)
            commit: Commit when True, otherwise only flush so the caller
                can include the alert in its own unit of work

        Returns:
            Created or updated alert
        """
        if not title or not title.strip():
            raise ValidationError("Alert title is required")
        if not description or not description.strip():
            raise ValidationError("Alert description is required")

        existing = self.find_active_alert(alert_type, reference)

        try:
            if existing:
                existing.severity = severity
                existing.title = title
                existing.description = description
                existing.updated_at = datetime.now()
                alert = existing
                logger.info(f"Updated active {alert_type} alert for {reference}")
            else:
                alert = Alert(
                    alert_type=alert_type,
                    severity=severity,
                    title=title,
                    description=description,
                    reference=reference,
                    status=ACTIVE,
                )
                self.session.add(alert)
                logger.info(f"Created {severity} {alert_type} alert: {title}")

            if commit:
                self.session.commit()
            else:
                self.session.flush()

            return alert

        except SQLAlchemyError as e:
            if commit:
                self.session.rollback()
            raise InfrastructureError(f"Failed to create alert: {str(e)}")

    def _get_active(self, alert_id: int) -> Alert:
        try:
            alert = self.session.get(Alert, alert_id)
        except SQLAlchemyError as e:
            raise InfrastructureError(f"Failed to load alert {alert_id}: {str(e)}")

        if not alert:
            raise NotFoundError(f"Alert with ID {alert_id} not found")
        if alert.status != ACTIVE:
            raise AlertError(f"Alert {alert_id} is not active (status: {alert.status})")

        return alert

    def resolve_alert(self, alert_id: int, resolution: str, resolved_by: Optional[str] = None) -> Alert:
        alert = self._get_active(alert_id)

        try:
            alert.status = RESOLVED
            alert.resolution = resolution
            alert.resolved_by = resolved_by
            alert.resolved_at = datetime.now()
            self.session.commit()
            return alert
        except SQLAlchemyError as e:
            self.session.rollback()
            raise InfrastructureError(f"Failed to resolve alert {alert_id}: {str(e)}")

    def dismiss_alert(self, alert_id: int, reason: str) -> Alert:
        alert = self._get_active(alert_id)

        try:
            alert.status = DISMISSED
            alert.dismissal_reason = reason
            alert.dismissed_at = datetime.now()
            self.session.commit()
            return alert
        except SQLAlchemyError as e:
            self.session.rollback()
            raise InfrastructureError(f"Failed to dismiss alert {alert_id}: {str(e)}")

    def get_active_alerts(
        self,
        alert_type: Optional[AlertType] = None,
        severity: Optional[Severity] = None
    ) -> List[Alert]:
        """Get active alerts, newest first.

        Args:
            alert_type: Optional alert type filter
            severity: Optional severity filter

        Returns:
            List of alerts
        """
        try:
            query = self.session.query(Alert).filter(Alert.status == ACTIVE)

            if alert_type:
                query = query.filter(Alert.alert_type == alert_type)
            if severity:
                query = query.filter(Alert.severity == severity)

            return query.order_by(Alert.created_at.desc(), Alert.id.desc()).all()
        except SQLAlchemyError as e:
            raise InfrastructureError(f"Failed to load alerts: {str(e)}")
