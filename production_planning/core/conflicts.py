# production_planning/core/conflicts.py
import enum
from collections import defaultdict
from dataclasses import dataclass
from datetime import date
from itertools import combinations
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from ..config import config
from ..models import Severity
from .scheduling import ScheduleProposal


class ConflictKind(enum.Enum):
    RESOURCE_OVERLAP = 'resource_overlap'
    CAPACITY_EXCEEDED = 'capacity_exceeded'
    DATE_CONFLICT = 'date_conflict'

    def __str__(self):
        return self.value


@dataclass(frozen=True)
class Conflict:
    """A detected problem with one or more proposals."""
    kind: ConflictKind
    severity: Severity
    message: str
    affected: Tuple[str, ...]

    def to_dict(self) -> Dict:
        return {
            'type': self.kind.value,
            'severity': self.severity.value,
            'message': self.message,
            'affected_products': list(self.affected),
        }


@dataclass(frozen=True)
class CommittedSchedule:
    """A persisted schedule still holding its resource."""
    schedule_id: str
    product_key: str
    resource_id: str
    start_date: date
    end_date: date


def dates_overlap(a_start: date, a_end: date, b_start: date, b_end: date) -> bool:
    """Inclusive interval intersection test."""
    return a_start <= b_end and b_start <= a_end


def detect_resource_overlaps(proposals: Sequence[ScheduleProposal]) -> List[Conflict]:
    """Critical conflict for every overlapping pair of proposals on one resource."""
    by_resource: Dict[str, List[ScheduleProposal]] = defaultdict(list)
    for proposal in proposals:
        by_resource[proposal.resource_id].append(proposal)

    conflicts = []
    for resource_id, group in by_resource.items():
        for first, second in combinations(group, 2):
            if not dates_overlap(first.start_date, first.end_date, second.start_date, second.end_date):
                continue
            # Sorted so the result does not depend on input order
            affected = tuple(sorted((first.key, second.key)))
            conflicts.append(Conflict(
                kind=ConflictKind.RESOURCE_OVERLAP,
                severity=Severity.CRITICAL,
                message=f"Resource {resource_id} is double-booked for {affected[0]} and {affected[1]}",
                affected=affected,
            ))

    return conflicts


def detect_capacity_issues(
    proposals: Sequence[ScheduleProposal],
    threshold: Optional[float] = None
) -> List[Conflict]:
    """Capacity warnings plus one date conflict per proposal warning."""
    if threshold is None:
        threshold = config.scheduling_config['capacity_exceeded_threshold']

    conflicts = []
    for proposal in proposals:
        if proposal.capacity_utilization > threshold:
            conflicts.append(Conflict(
                kind=ConflictKind.CAPACITY_EXCEEDED,
                severity=Severity.WARNING,
                message=(
                    f"{proposal.label} requires {proposal.capacity_utilization * 100:.1f}% "
                    "capacity utilization"
                ),
                affected=(proposal.key,),
            ))

        for warning in proposal.warnings:
            conflicts.append(Conflict(
                kind=ConflictKind.DATE_CONFLICT,
                severity=Severity.WARNING,
                message=f"{proposal.label}: {warning}",
                affected=(proposal.key,),
            ))

    return conflicts


def detect_existing_schedule_conflicts(
    proposals: Sequence[ScheduleProposal],
    committed: Iterable[CommittedSchedule]
) -> List[Conflict]:
    """Critical conflict for every proposal overlapping a committed schedule on its resource."""
    by_resource: Dict[str, List[CommittedSchedule]] = defaultdict(list)
    for schedule in committed:
        by_resource[schedule.resource_id].append(schedule)

    conflicts = []
    for proposal in proposals:
        for schedule in by_resource.get(proposal.resource_id, []):
            if not dates_overlap(proposal.start_date, proposal.end_date,
                                 schedule.start_date, schedule.end_date):
                continue
            conflicts.append(Conflict(
                kind=ConflictKind.RESOURCE_OVERLAP,
                severity=Severity.CRITICAL,
                message=(
                    f"{proposal.label} overlaps existing schedule {schedule.schedule_id} "
                    f"on {proposal.resource_id}"
                ),
                affected=tuple(sorted((proposal.key, schedule.product_key))),
            ))

    return conflicts


def detect_conflicts(
    proposals: Sequence[ScheduleProposal],
    committed: Optional[Iterable[CommittedSchedule]] = None,
    capacity_threshold: Optional[float] = None
) -> List[Conflict]:
    """Run every check over a proposal list.

    Args:
        proposals: Proposals to check
        committed: Committed schedules to check against, or None to skip
        capacity_threshold: Optional utilization threshold override

    Returns:
        List of conflicts; ordering is not significant
    """
    conflicts = detect_resource_overlaps(proposals)
    conflicts.extend(detect_capacity_issues(proposals, capacity_threshold))
    if committed is not None:
        conflicts.extend(detect_existing_schedule_conflicts(proposals, committed))
    return conflicts


def group_by_severity(conflicts: Iterable[Conflict]) -> Dict[Severity, List[Conflict]]:
    grouped = {severity: [] for severity in Severity}
    for conflict in conflicts:
        grouped[conflict.severity].append(conflict)
    return grouped
