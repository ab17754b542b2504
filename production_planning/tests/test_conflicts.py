"""
Tests for conflict detection.
"""
import unittest
from datetime import date, timedelta

from production_planning.core.conflicts import (
    CommittedSchedule, ConflictKind, dates_overlap, detect_capacity_issues, detect_conflicts,
    detect_existing_schedule_conflicts, detect_resource_overlaps, group_by_severity
)
from production_planning.core.scheduling import ScheduleProposal
from production_planning.models import Priority, Severity

START = date(2024, 3, 1)


def proposal(sku, start_offset, days, resource='WS-1', utilization=0.5, warnings=()):
    start = START + timedelta(days=start_offset)
    return ScheduleProposal(
        product_id=hash(sku) % 1000,
        product_sku=sku,
        daily_rate=10,
        total_units=10 * days,
        start_date=start,
        end_date=start + timedelta(days=days - 1),
        resource_id=resource,
        shift_number=1,
        shifts_per_day=1,
        days_required=days,
        capacity_utilization=utilization,
        priority=Priority.MEDIUM,
        efficiency=0.9,
        warnings=tuple(warnings),
    )


class TestConflictDetection(unittest.TestCase):
    def test_dates_overlap_is_inclusive(self):
        self.assertTrue(dates_overlap(START, START, START, START))
        self.assertTrue(dates_overlap(START, START + timedelta(days=2),
                                      START + timedelta(days=2), START + timedelta(days=5)))
        self.assertFalse(dates_overlap(START, START + timedelta(days=1),
                                       START + timedelta(days=2), START + timedelta(days=5)))

    def test_overlap_on_same_resource_is_one_critical_conflict(self):
        conflicts = detect_conflicts([proposal('A', 0, 5), proposal('B', 3, 5)])

        self.assertEqual(len(conflicts), 1)
        conflict = conflicts[0]
        self.assertEqual(conflict.kind, ConflictKind.RESOURCE_OVERLAP)
        self.assertEqual(conflict.severity, Severity.CRITICAL)
        self.assertEqual(conflict.affected, ('A', 'B'))
        self.assertIn('A', conflict.message)
        self.assertIn('B', conflict.message)

    def test_overlap_detection_is_symmetric(self):
        a, b = proposal('A', 0, 5), proposal('B', 3, 5)
        self.assertEqual(detect_resource_overlaps([a, b]), detect_resource_overlaps([b, a]))

    def test_different_resources_do_not_conflict(self):
        conflicts = detect_resource_overlaps([proposal('A', 0, 5, 'WS-1'), proposal('B', 0, 5, 'WS-2')])
        self.assertEqual(conflicts, [])

    def test_every_overlapping_pair_is_reported(self):
        conflicts = detect_resource_overlaps([
            proposal('A', 0, 10), proposal('B', 2, 2), proposal('C', 5, 2), proposal('D', 20, 2)
        ])
        self.assertEqual(sorted(c.affected for c in conflicts), [('A', 'B'), ('A', 'C')])

    def test_capacity_and_warning_conflicts(self):
        conflicts = detect_capacity_issues([
            proposal('A', 0, 2, utilization=0.97, warnings=['late', 'limited data']),
            proposal('B', 2, 2, utilization=0.95),
        ], threshold=0.95)

        kinds = [c.kind for c in conflicts]
        self.assertEqual(kinds.count(ConflictKind.CAPACITY_EXCEEDED), 1)
        self.assertEqual(kinds.count(ConflictKind.DATE_CONFLICT), 2)
        self.assertTrue(all(c.severity == Severity.WARNING for c in conflicts))
        self.assertTrue(all(c.affected == ('A',) for c in conflicts))

    def test_existing_schedules_checked_only_when_given(self):
        committed = [
            CommittedSchedule('PS-1', 'X', 'WS-1', START + timedelta(days=4), START + timedelta(days=8)),
            CommittedSchedule('PS-2', 'Y', 'WS-2', START, START + timedelta(days=8)),
        ]
        proposals = [proposal('A', 0, 5, 'WS-1')]

        existing = detect_existing_schedule_conflicts(proposals, committed)
        self.assertEqual(len(existing), 1)
        self.assertEqual(existing[0].severity, Severity.CRITICAL)
        self.assertEqual(existing[0].affected, ('A', 'X'))
        self.assertIn('PS-1', existing[0].message)

        self.assertEqual(detect_conflicts(proposals), [])
        self.assertEqual(len(detect_conflicts(proposals, committed)), 1)

    def test_group_by_severity(self):
        conflicts = detect_conflicts([
            proposal('A', 0, 5, utilization=0.99), proposal('B', 1, 1)
        ], capacity_threshold=0.95)
        grouped = group_by_severity(conflicts)

        self.assertEqual(len(grouped[Severity.CRITICAL]), 1)
        self.assertEqual(len(grouped[Severity.WARNING]), 1)
        self.assertEqual(grouped[Severity.INFO], [])


if __name__ == '__main__':
    unittest.main()
