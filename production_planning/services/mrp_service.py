# production_planning/services/mrp_service.py
from collections import defaultdict
from datetime import date
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from production_planning.core.mrp import (
    ComponentRequirement, ComponentStock, RequirementStatus,
    calculate_component_requirement, summarize_requirements
)
from production_planning.exceptions import (
    InfrastructureError, NoComponentsError, NotFoundError, PlanningError
)
from production_planning.logging_setup import get_logger, logger as log_manager
from production_planning.models import (
    AlertType, BomItem, MaterialRequirement, ProductComponent, ProductionSchedule,
    ScheduleStatus, Severity
)
from production_planning.services.alert_service import AlertService

logger = get_logger(__name__)

OPEN = 'open'


class MRPService:
    """Service for netting committed schedules against component stock."""

    def __init__(self, session: Session):
        """Initialize the MRP service.

        Args:
            session: Database session
        """
        self.session = session
        self.alert_service = AlertService(session)

    def get_schedule(self, schedule_id: str) -> ProductionSchedule:
        try:
            schedule = self.session.query(ProductionSchedule).filter(
                ProductionSchedule.schedule_id == schedule_id
            ).first()
        except SQLAlchemyError as e:
            raise InfrastructureError(f"Failed to load schedule {schedule_id}: {str(e)}")

        if not schedule:
            raise NotFoundError(
                f"Production schedule {schedule_id} not found",
                details={'schedule_id': schedule_id}
            )
        return schedule

    def get_components(self, product_id: int) -> List[Tuple[ProductComponent, BomItem]]:
        """Get the one-level bill of materials of a product.

        Raises:
            NoComponentsError if the product has no components
        """
        try:
            rows = self.session.query(ProductComponent, BomItem).join(
                BomItem, ProductComponent.bom_item_id == BomItem.id
            ).filter(
                ProductComponent.product_id == product_id
            ).order_by(BomItem.part_number).all()
        except SQLAlchemyError as e:
            raise InfrastructureError(f"Failed to load components for product {product_id}: {str(e)}")

        if not rows:
            raise NoComponentsError(
                f"Product {product_id} has no components defined",
                details={'product_id': product_id}
            )
        return rows

    def get_allocated_quantities(
        self,
        part_numbers: Iterable[str],
        exclude_schedule_ids: Iterable[str] = ()
    ) -> Dict[str, float]:
        """Stock allocated to open requirements, by part number.

        Args:
            part_numbers: Parts to look up
            exclude_schedule_ids: Schedules whose own allocations are ignored

        Returns:
            Dictionary of part number to allocated quantity
        """
        part_numbers = list(part_numbers)
        exclude_schedule_ids = list(exclude_schedule_ids)
        if not part_numbers:
            return {}

        try:
            query = self.session.query(
                MaterialRequirement.part_number,
                func.sum(MaterialRequirement.allocated_quantity)
            ).filter(
                MaterialRequirement.part_number.in_(part_numbers),
                MaterialRequirement.status == OPEN
            )
            if exclude_schedule_ids:
                query = query.filter(MaterialRequirement.schedule_id.notin_(exclude_schedule_ids))

            rows = query.group_by(MaterialRequirement.part_number).all()
        except SQLAlchemyError as e:
            raise InfrastructureError(f"Failed to load allocated stock: {str(e)}")

        return {part_number: float(total or 0.0) for part_number, total in rows}

    def calculate_requirements(self, schedule_id: str, today: Optional[date] = None) -> Dict:
        """Calculate material requirements for a committed schedule.

        Read-only: nothing is written, so repeated calls with unchanged
        stock return identical results.

        Args:
            schedule_id: Schedule ID
            today: Reference date for order timing, defaults to date.today()

        Returns:
            Dictionary with 'results' (list of ComponentRequirement) and
            'summary' (RequirementSummary)
        """
        schedule = self.get_schedule(schedule_id)
        components = self.get_components(schedule.product_id)

        allocated = self.get_allocated_quantities(
            [item.part_number for _, item in components],
            exclude_schedule_ids=[schedule_id]
        )

        results = []
        for link, item in components:
            results.append(calculate_component_requirement(
                ComponentStock(
                    part_number=item.part_number,
                    description=item.description,
                    quantity_per_unit=link.quantity_needed,
                    current_stock=item.current_stock or 0.0,
                    lead_time_days=item.lead_time_days or 0,
                    safety_stock=item.safety_stock or 0.0,
                    reorder_point=item.reorder_point or 0.0,
                    unit_cost=item.unit_cost or 0.0,
                ),
                schedule_id=schedule_id,
                schedule_quantity=schedule.planned_quantity,
                need_date=schedule.start_date,
                allocated_stock=allocated.get(item.part_number, 0.0),
                duration_days=schedule.duration_days,
                today=today,
            ))

        summary = summarize_requirements(schedule_id, results)

        logger.info(
            f"MRP for {schedule_id}: {summary.total_components} component(s), "
            f"{summary.shortage_count} shortage(s), {summary.critical_count} critical"
        )

        return {'results': results, 'summary': summary}

    def materialize_requirements(self, schedule_id: str, today: Optional[date] = None) -> Dict:
        """Calculate requirements and store them as the schedule's allocation records.

        Open records for the schedule are replaced. Each new record allocates
        as much of the available stock as the schedule needs. Shortage alerts
        are raised for short components.

        Args:
            schedule_id: Schedule ID
            today: Reference date for order timing

        Returns:
            Same dictionary as calculate_requirements
        """
        calculation = self.calculate_requirements(schedule_id, today)
        results: List[ComponentRequirement] = calculation['results']

        try:
            self.session.query(MaterialRequirement).filter(
                MaterialRequirement.schedule_id == schedule_id,
                MaterialRequirement.status == OPEN
            ).delete(synchronize_session=False)

            for result in results:
                self.session.add(MaterialRequirement(
                    schedule_id=schedule_id,
                    part_number=result.part_number,
                    required_quantity=result.gross_requirement,
                    allocated_quantity=min(result.gross_requirement, max(result.available_stock, 0.0)),
                    net_requirement=result.net_requirement,
                    requirement_status=result.status.value,
                    planned_order_date=result.planned_order_date,
                    status=OPEN,
                ))

            for result in results:
                if result.status != RequirementStatus.SUFFICIENT:
                    self._raise_shortage_alert(result)

            self.session.commit()

        except SQLAlchemyError as e:
            self.session.rollback()
            raise InfrastructureError(f"Failed to store requirements for {schedule_id}: {str(e)}")
        except Exception:
            self.session.rollback()
            raise

        return calculation

    def _raise_shortage_alert(self, result: ComponentRequirement) -> None:
        if result.status == RequirementStatus.CRITICAL:
            severity = Severity.CRITICAL
            title = f"Critical Material Shortage: {result.part_number}"
            description = (
                f"Production schedule {result.schedule_id} requires {result.net_requirement:g} more units "
                f"of {result.description or result.part_number} ({result.available_stock:g} available). "
                f"Order should have been placed on {result.planned_order_date.isoformat()}."
            )
        else:
            severity = Severity.WARNING
            title = f"Material Shortage: {result.part_number}"
            description = (
                f"Production schedule {result.schedule_id} requires {result.net_requirement:g} additional "
                f"units of {result.description or result.part_number}. "
                f"Order by {result.planned_order_date.isoformat()}."
            )

        self.alert_service.create_alert(
            AlertType.SHORTAGE,
            severity,
            title,
            description,
            reference=f"{result.schedule_id}:{result.part_number}",
            commit=False
        )

    def run_for_schedules(self, status: str = ScheduleStatus.PLANNED, today: Optional[date] = None) -> Dict:
        """Materialize requirements for every schedule in a status.

        A failing schedule is recorded and the batch continues.

        Returns:
            Dictionary with 'processed' count and 'errors' list
        """
        log_info = log_manager.batch_start_log('MRP run', {'status': status})

        try:
            schedule_ids = [
                row[0] for row in self.session.query(ProductionSchedule.schedule_id).filter(
                    ProductionSchedule.status == status
                ).order_by(ProductionSchedule.start_date, ProductionSchedule.id).all()
            ]
        except SQLAlchemyError as e:
            log_manager.batch_end_log(log_info, success=False)
            raise InfrastructureError(f"Failed to load schedules with status {status}: {str(e)}")

        processed = 0
        errors = []

        for schedule_id in schedule_ids:
            try:
                self.materialize_requirements(schedule_id, today)
                processed += 1
            except PlanningError as e:
                logger.error(f"MRP failed for schedule {schedule_id}: {str(e)}")
                errors.append({'schedule_id': schedule_id, 'error': str(e)})

        result = {'processed': processed, 'errors': errors}
        log_manager.batch_end_log(log_info, success=not errors, result_info=result)

        return result

    def check_part_availability(self, part_number: str, required_quantity: float) -> Dict:
        """Check on-hand stock of one part against a required quantity."""
        try:
            item = self.session.query(BomItem).filter(BomItem.part_number == part_number).first()
        except SQLAlchemyError as e:
            raise InfrastructureError(f"Failed to load part {part_number}: {str(e)}")

        if not item:
            return {
                'available': False,
                'current_stock': 0.0,
                'shortage': required_quantity,
                'message': f"Part {part_number} not found in inventory"
            }

        current_stock = item.current_stock or 0.0
        shortage = max(0.0, required_quantity - current_stock)

        return {
            'available': shortage == 0,
            'current_stock': current_stock,
            'shortage': shortage,
            'message': (
                'Sufficient inventory' if shortage == 0
                else f"Short {shortage:g} units ({current_stock:g} available)"
            )
        }

    def allocate_across_schedules(
        self,
        schedule_ids: Sequence[str],
        today: Optional[date] = None
    ) -> Dict[str, Dict[str, float]]:
        """Split available stock of each part between competing schedules.

        Schedules with the earliest planned order date are served first. Stock
        already allocated to schedules outside the set is not available.

        Returns:
            Dictionary of part number to {schedule_id: allocated quantity}
        """
        by_part: Dict[str, List[ComponentRequirement]] = defaultdict(list)
        for schedule_id in schedule_ids:
            for result in self.calculate_requirements(schedule_id, today)['results']:
                by_part[result.part_number].append(result)

        outside = self.get_allocated_quantities(by_part.keys(), exclude_schedule_ids=schedule_ids)

        allocation = {}
        for part_number, requirements in by_part.items():
            remaining = max(0.0, requirements[0].current_stock - outside.get(part_number, 0.0))
            part_allocation = {}

            for requirement in sorted(requirements, key=lambda r: r.planned_order_date):
                allocated = min(remaining, requirement.gross_requirement)
                part_allocation[requirement.schedule_id] = allocated
                remaining -= allocated

            allocation[part_number] = part_allocation

        return allocation
