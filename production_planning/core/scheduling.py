# production_planning/core/scheduling.py
"""Greedy, priority-ordered production schedule generation.

Demands are placed one after another on a timeline. By default every
proposal shares one cursor, so proposals never overlap in time even when
they land on different resources. Passing ``shared_cursor=False`` gives each
resource its own cursor through :class:`ResourceTimeline`.
"""
import math
from dataclasses import dataclass, field, replace
from datetime import date, timedelta
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from ..config import config
from ..exceptions import SchedulingError, ValidationError
from ..logging_setup import get_logger
from ..models import Priority, Severity
from .capacity import Capability
from .demand import Demand, priority_weight

logger = get_logger(__name__)

MIN_SHIFTS_PER_DAY = 1
MAX_SHIFTS_PER_DAY = 3


@dataclass(frozen=True)
class ScheduleOptions:
    """Global options for one schedule generation run."""
    window_start: date
    window_end: Optional[date] = None
    shifts_per_day: int = 1
    resource_override: Optional[str] = None
    priority_filter: Optional[Priority] = None
    include_existing: bool = False

    def validate(self) -> None:
        if isinstance(self.shifts_per_day, bool) or not isinstance(self.shifts_per_day, int) or not (
            MIN_SHIFTS_PER_DAY <= self.shifts_per_day <= MAX_SHIFTS_PER_DAY
        ):
            raise ValidationError(
                f"shifts_per_day must be between {MIN_SHIFTS_PER_DAY} and {MAX_SHIFTS_PER_DAY}, "
                f"got {self.shifts_per_day}",
                details={'shifts_per_day': self.shifts_per_day}
            )
        if self.window_end is not None and self.window_end < self.window_start:
            raise ValidationError(
                "window_end must not be before window_start",
                details={'window_start': self.window_start.isoformat(),
                         'window_end': self.window_end.isoformat()}
            )


@dataclass(frozen=True)
class ScheduleProposal:
    """An unconfirmed candidate production schedule."""
    product_id: int
    daily_rate: int
    total_units: float
    start_date: date
    end_date: date
    resource_id: str
    shift_number: int
    shifts_per_day: int
    days_required: int
    capacity_utilization: float
    priority: Priority
    efficiency: float
    warnings: Tuple[str, ...] = ()
    product_sku: Optional[str] = None
    product_name: Optional[str] = None

    @property
    def label(self) -> str:
        """Human readable product label for messages."""
        return self.product_name or self.product_sku or str(self.product_id)

    @property
    def key(self) -> str:
        """Identifier used when naming affected products in conflicts."""
        return self.product_sku or str(self.product_id)

    def to_dict(self) -> Dict:
        return {
            'product_id': self.product_id,
            'product_sku': self.product_sku,
            'product_name': self.product_name,
            'daily_rate': self.daily_rate,
            'total_units': self.total_units,
            'start_date': self.start_date.isoformat(),
            'end_date': self.end_date.isoformat(),
            'resource_id': self.resource_id,
            'shift_number': self.shift_number,
            'shifts_per_day': self.shifts_per_day,
            'days_required': self.days_required,
            'capacity_utilization': self.capacity_utilization,
            'priority': self.priority.value,
            'warnings': list(self.warnings),
        }


class ResourceTimeline:
    """Booked date intervals per resource id.

    Intervals are inclusive on both ends. Bookings are appended; the timeline
    does not try to fill gaps between existing bookings.
    """

    def __init__(self):
        self._bookings: Dict[str, List[Tuple[date, date]]] = {}

    def book(self, resource_id: str, start: date, end: date) -> None:
        if end < start:
            raise SchedulingError(f"Cannot book {resource_id}: end {end} before start {start}")
        self._bookings.setdefault(resource_id, []).append((start, end))

    def bookings(self, resource_id: str) -> List[Tuple[date, date]]:
        return sorted(self._bookings.get(resource_id, []))

    @property
    def resources(self) -> List[str]:
        return sorted(self._bookings)

    def next_free(self, resource_id: str, not_before: date) -> date:
        """First day on or after ``not_before`` following the last booking on a resource."""
        intervals = self._bookings.get(resource_id)
        if not intervals:
            return not_before
        last_end = max(end for _, end in intervals)
        return max(not_before, last_end + timedelta(days=1))

    def is_free(self, resource_id: str, start: date, end: date) -> bool:
        return not any(
            start <= booked_end and booked_start <= end
            for booked_start, booked_end in self._bookings.get(resource_id, [])
        )

    def load_days(self, resource_id: str) -> int:
        """Total booked days on a resource."""
        return sum((end - start).days + 1 for start, end in self._bookings.get(resource_id, []))


def sort_demands(demands: Iterable[Demand]) -> List[Demand]:
    """Priority weight descending, then earliest due date ascending.

    ``sorted`` is stable, so full ties keep their input order.
    """
    return sorted(demands, key=lambda d: (-priority_weight(d.highest_priority), d.earliest_due_date))


def resolve_resource(
    options: ScheduleOptions,
    capability: Capability,
    default_resource: str
) -> str:
    """Explicit override, else the capability's recommendation, else the default."""
    return options.resource_override or capability.recommended_resource or default_resource


def _build_warnings(
    demand: Demand,
    capability: Capability,
    end_date: date,
    capacity_utilization: float,
    settings: Dict
) -> List[str]:
    warnings = []

    if end_date > demand.latest_due_date:
        warnings.append(
            f"Production end date ({end_date.isoformat()}) exceeds latest due date "
            f"({demand.latest_due_date.isoformat()})"
        )

    if capacity_utilization > settings['high_utilization_threshold']:
        warnings.append(
            f"High capacity utilization ({capacity_utilization * 100:.1f}%). "
            "Consider extending production period or adding shifts."
        )

    if capability.data_points < settings['min_data_points']:
        warnings.append(
            f"Limited historical data ({capability.data_points} days). "
            "Production estimates may be inaccurate."
        )

    if capability.avg_defect_rate > settings['defect_rate_threshold']:
        warnings.append(
            f"Historical defect rate is {capability.avg_defect_rate * 100:.1f}%. "
            "Factor in extra units for quality."
        )

    return warnings


def generate_schedule_proposals(
    demands: Sequence[Demand],
    capabilities: Mapping[int, Capability],
    options: ScheduleOptions,
    timeline: Optional[ResourceTimeline] = None,
    shared_cursor: bool = True,
    settings: Optional[Dict] = None
) -> List[ScheduleProposal]:
    """Generate one proposal per schedulable demand, in priority order.

    A demand whose product has no capability, or a capability with no usable
    production rate, gets no proposal; use find_unscheduled to list them.

    Args:
        demands: Aggregated demands
        capabilities: Capability per product id
        options: Generation options
        timeline: Optional timeline to book into; may hold existing bookings
        shared_cursor: Serialize every proposal on one cursor when True,
            otherwise give each resource its own cursor
        settings: Optional scheduling settings, defaults to configuration

    Returns:
        List of schedule proposals
    """
    options.validate()
    settings = settings or config.scheduling_config
    timeline = timeline if timeline is not None else ResourceTimeline()

    for demand in demands:
        if demand.total_units <= 0:
            raise ValidationError(
                f"Demand for product {demand.product_id} has non-positive total units",
                details={'product_id': demand.product_id, 'total_units': demand.total_units}
            )

    proposals: List[ScheduleProposal] = []
    cursor = options.window_start

    for demand in sort_demands(demands):
        capability = capabilities.get(demand.product_id)
        if capability is None:
            logger.warning(f"No capability for product {demand.product_id}; demand not scheduled")
            continue

        nominal_daily_rate = capability.avg_units_per_day * options.shifts_per_day
        effective_daily_rate = nominal_daily_rate * capability.avg_efficiency
        if effective_daily_rate <= 0:
            logger.warning(
                f"Product {demand.product_id} has no effective production rate; demand not scheduled"
            )
            continue

        days_required = calculate_production_days(
            demand.total_units, nominal_daily_rate, capability.avg_efficiency
        )
        capacity_utilization = check_capacity_constraints(
            demand.total_units / days_required, nominal_daily_rate,
            settings['high_utilization_threshold']
        )['utilization']

        resource_id = resolve_resource(options, capability, settings['default_resource'])

        if shared_cursor:
            start_date = cursor
        else:
            start_date = timeline.next_free(resource_id, options.window_start)
        end_date = start_date + timedelta(days=days_required - 1)

        timeline.book(resource_id, start_date, end_date)
        cursor = end_date + timedelta(days=1)

        warnings = _build_warnings(demand, capability, end_date, capacity_utilization, settings)

        proposals.append(ScheduleProposal(
            product_id=demand.product_id,
            product_sku=demand.product_sku,
            product_name=demand.product_name,
            daily_rate=math.ceil(effective_daily_rate),
            total_units=demand.total_units,
            start_date=start_date,
            end_date=end_date,
            resource_id=resource_id,
            shift_number=1,
            shifts_per_day=options.shifts_per_day,
            days_required=days_required,
            capacity_utilization=capacity_utilization,
            priority=demand.highest_priority,
            efficiency=capability.avg_efficiency,
            warnings=tuple(warnings),
        ))

    return proposals


def calculate_production_days(
    total_units: float,
    units_per_day: float,
    efficiency: float = 0.85
) -> int:
    """Days needed to produce ``total_units`` at a nominal rate and efficiency."""
    effective_units_per_day = units_per_day * efficiency
    if effective_units_per_day <= 0:
        raise ValidationError("Effective production rate must be positive")
    return math.ceil(total_units / effective_units_per_day)


def check_capacity_constraints(
    demand: float,
    capacity: float,
    utilization_threshold: float = 0.9
) -> Dict:
    """Check a demand against a capacity.

    Returns:
        Dictionary with within_capacity, utilization and an optional warning
    """
    if capacity <= 0:
        raise ValidationError("Capacity must be positive")

    utilization = demand / capacity

    if utilization > 1.0:
        return {
            'within_capacity': False,
            'utilization': utilization,
            'warning': 'Demand exceeds available capacity'
        }

    if utilization > utilization_threshold:
        return {
            'within_capacity': True,
            'utilization': utilization,
            'warning': f"High utilization ({utilization * 100:.1f}%). Limited buffer for delays."
        }

    return {'within_capacity': True, 'utilization': utilization}


def balance_resource_allocation(
    proposals: Sequence[ScheduleProposal],
    resource_ids: Sequence[str]
) -> List[ScheduleProposal]:
    """Reassign proposals to the least loaded resource.

    Load is counted in days required. Dates are left as generated. With no
    candidate resources the proposals are returned unchanged.
    """
    if not resource_ids:
        return list(proposals)

    workload = {resource_id: 0 for resource_id in resource_ids}
    balanced = []

    for proposal in proposals:
        # min() keeps the first resource among equally loaded ones
        best = min(workload, key=lambda r: workload[r])
        workload[best] += proposal.days_required
        balanced.append(replace(proposal, resource_id=best))

    return balanced


def find_unscheduled(demands: Sequence[Demand], proposals: Sequence[ScheduleProposal]) -> List[int]:
    """Product ids of demands that did not get a proposal, in priority order."""
    scheduled = {proposal.product_id for proposal in proposals}
    return [demand.product_id for demand in sort_demands(demands) if demand.product_id not in scheduled]


@dataclass
class GenerationSummary:
    total_products: int = 0
    total_units: float = 0.0
    average_capacity_utilization: float = 0.0
    high_priority_count: int = 0
    warning_count: int = 0
    unscheduled_count: int = 0


@dataclass
class GenerationResult:
    proposals: List[ScheduleProposal] = field(default_factory=list)
    conflicts: List = field(default_factory=list)
    summary: GenerationSummary = field(default_factory=GenerationSummary)
    # Products with demand but no capability or no usable production rate
    unscheduled: List[int] = field(default_factory=list)


def summarize_generation(
    proposals: Sequence[ScheduleProposal],
    conflicts: Sequence,
    unscheduled: Sequence[int] = ()
) -> GenerationSummary:
    count = len(proposals)
    return GenerationSummary(
        unscheduled_count=len(unscheduled),
        total_products=count,
        total_units=sum(p.total_units for p in proposals),
        average_capacity_utilization=(
            sum(p.capacity_utilization for p in proposals) / count if count else 0.0
        ),
        high_priority_count=sum(1 for p in proposals if p.priority == Priority.HIGH),
        warning_count=sum(1 for c in conflicts if c.severity == Severity.WARNING),
    )
