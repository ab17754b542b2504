# production_planning/services/capacity_service.py
from datetime import date
from typing import Dict, Iterable, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from production_planning.config import config
from production_planning.core.capacity import (
    Capability, ThroughputSample, estimate_capability_from_samples
)
from production_planning.exceptions import InfrastructureError
from production_planning.logging_setup import get_logger
from production_planning.models import ThroughputRecord
from production_planning.utils.date_utils import lookback_window

logger = get_logger(__name__)


class CapacityService:
    """Service for estimating production capability from throughput history."""

    def __init__(self, session: Session):
        self.session = session

    def get_samples(
        self,
        product_id: int,
        lookback_days: Optional[int] = None,
        today: Optional[date] = None
    ) -> List[ThroughputSample]:
        """Load throughput samples for a product inside the lookback window.

        Samples are returned newest first, so resource ties resolve to the
        most recently used workstation.
        """
        if lookback_days is None:
            lookback_days = config.capacity_config['lookback_days']
        start_date, end_date = lookback_window(lookback_days, today)

        try:
            records = self.session.query(ThroughputRecord).filter(
                ThroughputRecord.product_id == product_id,
                ThroughputRecord.date >= start_date,
                ThroughputRecord.date <= end_date
            ).order_by(ThroughputRecord.date.desc(), ThroughputRecord.id.desc()).all()
        except SQLAlchemyError as e:
            raise InfrastructureError(
                f"Failed to load throughput history for product {product_id}: {str(e)}",
                details={'product_id': product_id}
            )

        return [
            ThroughputSample(
                units_produced=record.units_produced or 0.0,
                hours_worked=record.hours_worked or 0.0,
                efficiency=record.efficiency or 0.0,
                defect_rate=record.defect_rate or 0.0,
                workstation_id=record.workstation_id,
                record_date=record.date,
            )
            for record in records
        ]

    def estimate_capability(
        self,
        product_id: int,
        lookback_days: Optional[int] = None,
        today: Optional[date] = None
    ) -> Capability:
        """Estimate a product's capability.

        Args:
            product_id: Product ID
            lookback_days: Days of history to use, defaults to configuration
            today: Reference date, defaults to date.today()

        Returns:
            Capability; the default capability when there is no history
        """
        samples = self.get_samples(product_id, lookback_days, today)
        capability = estimate_capability_from_samples(product_id, samples)

        if capability.is_default:
            logger.info(f"No throughput history for product {product_id}; using default capability")

        return capability

    def get_capabilities(
        self,
        product_ids: Iterable[int],
        lookback_days: Optional[int] = None,
        today: Optional[date] = None
    ) -> Dict[int, Capability]:
        return {
            product_id: self.estimate_capability(product_id, lookback_days, today)
            for product_id in product_ids
        }
