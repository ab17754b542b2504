# production_planning/core/capacity.py
from collections import Counter
from dataclasses import dataclass
from datetime import date
from typing import Dict, List, Optional, Sequence

import numpy as np

from ..config import config


@dataclass(frozen=True)
class ThroughputSample:
    """One historical production record."""
    units_produced: float
    hours_worked: float
    efficiency: float
    defect_rate: float
    workstation_id: Optional[str] = None
    record_date: Optional[date] = None


@dataclass(frozen=True)
class Capability:
    """Historical production rate and quality metrics for a product."""
    product_id: int
    avg_units_per_day: float
    avg_efficiency: float
    avg_defect_rate: float
    data_points: int
    recommended_resource: Optional[str] = None

    @property
    def is_default(self) -> bool:
        return self.data_points == 0


def default_capability(product_id: int, settings: Optional[Dict] = None) -> Capability:
    """Conservative estimate used when a product has no throughput history.

    Args:
        product_id: Product identifier
        settings: Optional capacity settings, defaults to configuration

    Returns:
        Capability with zero data points
    """
    settings = settings or config.capacity_config
    return Capability(
        product_id=product_id,
        avg_units_per_day=settings['default_units_per_day'],
        avg_efficiency=settings['default_efficiency'],
        avg_defect_rate=settings['default_defect_rate'],
        data_points=0,
    )


def most_common_resource(samples: Sequence[ThroughputSample]) -> Optional[str]:
    """Return the most frequently used workstation across samples.

    Ties go to the workstation that appears first in ``samples``.
    """
    counts = Counter(s.workstation_id for s in samples if s.workstation_id)
    if not counts:
        return None
    # Counter preserves first-insertion order for equal counts
    return counts.most_common(1)[0][0]


def estimate_capability_from_samples(
    product_id: int,
    samples: List[ThroughputSample],
    settings: Optional[Dict] = None
) -> Capability:
    """Derive a product's production capability from throughput samples.

    Args:
        product_id: Product identifier
        samples: Throughput samples inside the lookback window
        settings: Optional capacity settings, defaults to configuration

    Returns:
        Capability record
    """
    settings = settings or config.capacity_config

    if not samples:
        return default_capability(product_id, settings)

    total_units = float(np.sum([s.units_produced for s in samples]))
    total_hours = float(np.sum([s.hours_worked for s in samples]))

    if total_hours > 0:
        avg_units_per_day = (total_units / total_hours) * settings['hours_per_day']
    else:
        avg_units_per_day = settings['default_units_per_day']

    return Capability(
        product_id=product_id,
        avg_units_per_day=avg_units_per_day,
        avg_efficiency=float(np.mean([s.efficiency for s in samples])),
        avg_defect_rate=float(np.mean([s.defect_rate for s in samples])),
        data_points=len(samples),
        recommended_resource=most_common_resource(samples),
    )
