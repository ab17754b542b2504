"""
Tests for schedule proposal generation.
"""
import math
import unittest
from datetime import date, timedelta

from production_planning.core.capacity import Capability
from production_planning.core.demand import Demand
from production_planning.core.scheduling import (
    ResourceTimeline, ScheduleOptions, balance_resource_allocation,
    calculate_production_days, check_capacity_constraints, generate_schedule_proposals,
    find_unscheduled, summarize_generation
)
from production_planning.exceptions import SchedulingError, ValidationError
from production_planning.models import Priority

SETTINGS = {
    'default_resource': 'WS-001',
    'default_shifts_per_day': 1,
    'high_utilization_threshold': 0.9,
    'capacity_exceeded_threshold': 0.95,
    'min_data_points': 5,
    'defect_rate_threshold': 0.05,
}

START = date(2024, 3, 1)


def demand(product_id, total_units, due, priority=Priority.MEDIUM, earliest=None):
    return Demand(product_id=product_id, total_units=total_units,
                  earliest_due_date=earliest or due, latest_due_date=due,
                  highest_priority=priority, order_count=1, product_sku=f"SKU-{product_id}")


def capability(product_id, units_per_day=20.0, efficiency=0.9, defect_rate=0.01,
               data_points=30, resource=None):
    return Capability(product_id=product_id, avg_units_per_day=units_per_day,
                      avg_efficiency=efficiency, avg_defect_rate=defect_rate,
                      data_points=data_points, recommended_resource=resource)


class TestGenerateScheduleProposals(unittest.TestCase):
    def generate(self, demands, capabilities, **option_kwargs):
        options = ScheduleOptions(window_start=START, **option_kwargs)
        return generate_schedule_proposals(demands, capabilities, options, settings=SETTINGS)

    def test_days_and_utilization_for_single_demand(self):
        proposals = self.generate([demand(1, 100, START + timedelta(days=10))], {1: capability(1)})

        self.assertEqual(len(proposals), 1)
        proposal = proposals[0]
        # 20 units/day at 90% efficiency is 18 effective units/day
        self.assertEqual(proposal.days_required, 6)
        self.assertAlmostEqual(proposal.capacity_utilization, (100 / 6) / 20)
        self.assertEqual(proposal.daily_rate, 18)
        self.assertEqual(proposal.start_date, START)
        self.assertEqual(proposal.end_date, START + timedelta(days=5))
        self.assertEqual(proposal.resource_id, 'WS-001')
        self.assertEqual(proposal.shift_number, 1)
        self.assertEqual(proposal.warnings, ())

    def test_days_required_matches_rate_and_efficiency(self):
        demands = [demand(i, units, START + timedelta(days=30))
                   for i, units in enumerate([1, 17, 18, 19, 250, 999], start=1)]
        caps = {i: capability(i, units_per_day=20 + i, efficiency=0.6 + i * 0.05) for i in range(1, 7)}

        for shifts in (1, 2, 3):
            for proposal in self.generate(demands, caps, shifts_per_day=shifts):
                cap = caps[proposal.product_id]
                expected = math.ceil(
                    proposal.total_units / (cap.avg_units_per_day * shifts * cap.avg_efficiency)
                )
                self.assertEqual(proposal.days_required, expected)
                self.assertGreaterEqual(proposal.end_date, proposal.start_date)
                self.assertEqual((proposal.end_date - proposal.start_date).days + 1, expected)

    def test_utilization_denominator_includes_shifts(self):
        proposal = self.generate([demand(1, 100, START + timedelta(days=10))], {1: capability(1)},
                                 shifts_per_day=2)[0]
        # 36 effective units/day over 3 days
        self.assertEqual(proposal.days_required, 3)
        self.assertAlmostEqual(proposal.capacity_utilization, (100 / 3) / 40)

    def test_priority_then_earliest_due_ordering(self):
        demands = [
            demand(1, 18, START + timedelta(days=9), Priority.LOW),
            demand(2, 18, START + timedelta(days=20), Priority.HIGH),
            demand(3, 18, START + timedelta(days=5), Priority.HIGH),
            demand(4, 18, START + timedelta(days=1), Priority.MEDIUM),
        ]
        proposals = self.generate(demands, {i: capability(i) for i in range(1, 5)})

        self.assertEqual([p.product_id for p in proposals], [3, 2, 4, 1])

    def test_full_ties_keep_input_order(self):
        due = START + timedelta(days=9)
        demands = [demand(i, 18, due, Priority.HIGH) for i in (5, 2, 9)]
        proposals = self.generate(demands, {i: capability(i) for i in (5, 2, 9)})

        self.assertEqual([p.product_id for p in proposals], [5, 2, 9])

    def test_shared_cursor_serializes_across_resources(self):
        demands = [
            demand(1, 36, START + timedelta(days=10), Priority.HIGH),
            demand(2, 18, START + timedelta(days=10)),
        ]
        caps = {1: capability(1, resource='WS-A'), 2: capability(2, resource='WS-B')}
        first, second = self.generate(demands, caps)

        self.assertEqual((first.resource_id, first.start_date, first.end_date),
                         ('WS-A', START, START + timedelta(days=1)))
        self.assertEqual((second.resource_id, second.start_date),
                         ('WS-B', START + timedelta(days=2)))

    def test_per_resource_cursors(self):
        demands = [
            demand(1, 36, START + timedelta(days=10), Priority.HIGH),
            demand(2, 18, START + timedelta(days=10)),
            demand(3, 18, START + timedelta(days=10), Priority.LOW),
        ]
        caps = {1: capability(1, resource='WS-A'), 2: capability(2, resource='WS-B'),
                3: capability(3, resource='WS-A')}
        timeline = ResourceTimeline()
        proposals = generate_schedule_proposals(
            demands, caps, ScheduleOptions(window_start=START), timeline=timeline,
            shared_cursor=False, settings=SETTINGS
        )

        starts = {p.product_id: p.start_date for p in proposals}
        self.assertEqual(starts[1], START)
        self.assertEqual(starts[2], START)
        self.assertEqual(starts[3], START + timedelta(days=2))
        self.assertEqual(timeline.bookings('WS-A'),
                         [(START, START + timedelta(days=1)), (START + timedelta(days=2),) * 2])

    def test_resource_override_beats_recommendation(self):
        proposal = self.generate([demand(1, 18, START + timedelta(days=3))],
                                 {1: capability(1, resource='WS-A')},
                                 resource_override='WS-Z')[0]
        self.assertEqual(proposal.resource_id, 'WS-Z')

    def test_warnings_are_attached_not_raised(self):
        proposal = self.generate(
            [demand(1, 200, START + timedelta(days=2))],
            {1: capability(1, units_per_day=20, efficiency=1.0, defect_rate=0.08, data_points=2)}
        )[0]

        self.assertEqual(len(proposal.warnings), 4)
        self.assertIn('exceeds latest due date', proposal.warnings[0])
        self.assertIn('High capacity utilization', proposal.warnings[1])
        self.assertIn('Limited historical data (2 days)', proposal.warnings[2])
        self.assertIn('defect rate is 8.0%', proposal.warnings[3])

    def test_demand_without_capability_is_skipped(self):
        proposals = self.generate([
            demand(1, 18, START + timedelta(days=3)),
            demand(2, 18, START + timedelta(days=3)),
        ], {2: capability(2)})

        self.assertEqual([p.product_id for p in proposals], [2])

    def test_unscheduled_demands_are_reported(self):
        demands = [
            demand(1, 18, START + timedelta(days=3)),
            demand(2, 18, START + timedelta(days=3), Priority.HIGH),
            demand(3, 18, START + timedelta(days=3)),
        ]
        # Product 3 has history but every record had a null efficiency
        capabilities = {2: capability(2), 3: capability(3, efficiency=0.0)}
        proposals = self.generate(demands, capabilities)

        self.assertEqual([p.product_id for p in proposals], [2])
        unscheduled = find_unscheduled(demands, proposals)
        self.assertEqual(unscheduled, [1, 3])
        self.assertEqual(summarize_generation(proposals, [], unscheduled).unscheduled_count, 2)

    def test_invalid_shift_count_rejected_before_work(self):
        timeline = ResourceTimeline()
        for shifts in (0, 4):
            with self.assertRaises(ValidationError):
                generate_schedule_proposals(
                    [demand(1, 18, START)], {1: capability(1)},
                    ScheduleOptions(window_start=START, shifts_per_day=shifts),
                    timeline=timeline, settings=SETTINGS
                )
        self.assertEqual(timeline.resources, [])

    def test_empty_demand_gives_no_proposals(self):
        self.assertEqual(self.generate([], {}), [])


class TestResourceTimeline(unittest.TestCase):
    def test_next_free_and_is_free(self):
        timeline = ResourceTimeline()
        timeline.book('WS-1', START, START + timedelta(days=4))

        self.assertEqual(timeline.next_free('WS-1', START), START + timedelta(days=5))
        self.assertEqual(timeline.next_free('WS-1', START + timedelta(days=10)), START + timedelta(days=10))
        self.assertEqual(timeline.next_free('WS-2', START), START)
        self.assertFalse(timeline.is_free('WS-1', START + timedelta(days=4), START + timedelta(days=6)))
        self.assertTrue(timeline.is_free('WS-1', START + timedelta(days=5), START + timedelta(days=6)))
        self.assertEqual(timeline.load_days('WS-1'), 5)

    def test_reversed_interval_rejected(self):
        with self.assertRaises(SchedulingError):
            ResourceTimeline().book('WS-1', START, START - timedelta(days=1))


class TestSchedulingHelpers(unittest.TestCase):
    def test_calculate_production_days(self):
        self.assertEqual(calculate_production_days(100, 20), 6)
        self.assertEqual(calculate_production_days(100, 20, efficiency=1.0), 5)

    def test_check_capacity_constraints(self):
        self.assertFalse(check_capacity_constraints(110, 100)['within_capacity'])
        high = check_capacity_constraints(95, 100)
        self.assertTrue(high['within_capacity'])
        self.assertIn('High utilization', high['warning'])
        self.assertNotIn('warning', check_capacity_constraints(50, 100))

    def test_balance_resource_allocation(self):
        options = ScheduleOptions(window_start=START)
        demands = [demand(i, units, START + timedelta(days=30)) for i, units in ((1, 90), (2, 18), (3, 18))]
        proposals = generate_schedule_proposals(
            demands, {i: capability(i) for i in (1, 2, 3)}, options, settings=SETTINGS
        )

        balanced = balance_resource_allocation(proposals, ['WS-A', 'WS-B'])
        self.assertEqual([p.resource_id for p in balanced], ['WS-A', 'WS-B', 'WS-B'])
        self.assertEqual(balance_resource_allocation(proposals, []), proposals)

    def test_summarize_generation(self):
        proposals = generate_schedule_proposals(
            [demand(1, 18, START + timedelta(days=3), Priority.HIGH), demand(2, 36, START + timedelta(days=9))],
            {1: capability(1), 2: capability(2)}, ScheduleOptions(window_start=START), settings=SETTINGS
        )
        summary = summarize_generation(proposals, [])

        self.assertEqual(summary.total_products, 2)
        self.assertEqual(summary.total_units, 54)
        self.assertEqual(summary.high_priority_count, 1)
        self.assertEqual(summary.warning_count, 0)


if __name__ == '__main__':
    unittest.main()
