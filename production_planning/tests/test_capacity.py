"""
Tests for capacity estimation.
"""
import unittest
from datetime import timedelta
from unittest.mock import MagicMock

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from production_planning.core.capacity import (
    ThroughputSample, estimate_capability_from_samples, most_common_resource
)
from production_planning.exceptions import InfrastructureError
from production_planning.models import ThroughputRecord
from production_planning.services.capacity_service import CapacityService
from production_planning.tests.fixtures import TODAY, add_product, make_session

SETTINGS = {
    'lookback_days': 90,
    'hours_per_day': 8.0,
    'default_units_per_day': 100.0,
    'default_efficiency': 0.75,
    'default_defect_rate': 0.05,
}


def sample(units, hours, efficiency=0.9, defect_rate=0.02, workstation=None):
    return ThroughputSample(units_produced=units, hours_worked=hours, efficiency=efficiency,
                            defect_rate=defect_rate, workstation_id=workstation)


class TestCapabilityEstimation(unittest.TestCase):
    def test_no_samples_gives_default_capability(self):
        capability = estimate_capability_from_samples(7, [], SETTINGS)

        self.assertEqual(capability.avg_units_per_day, 100.0)
        self.assertEqual(capability.avg_efficiency, 0.75)
        self.assertEqual(capability.avg_defect_rate, 0.05)
        self.assertEqual(capability.data_points, 0)
        self.assertIsNone(capability.recommended_resource)
        self.assertTrue(capability.is_default)

    def test_rate_is_units_per_hour_times_hours_per_day(self):
        capability = estimate_capability_from_samples(1, [
            sample(100, 10, 0.9, 0.01, 'WS-1'),
            sample(50, 10, 0.7, 0.03, 'WS-2'),
        ], SETTINGS)

        # 150 units / 20 hours * 8 hours
        self.assertAlmostEqual(capability.avg_units_per_day, 60.0)
        self.assertAlmostEqual(capability.avg_efficiency, 0.8)
        self.assertAlmostEqual(capability.avg_defect_rate, 0.02)
        self.assertEqual(capability.data_points, 2)

    def test_zero_hours_falls_back_to_default_rate(self):
        capability = estimate_capability_from_samples(1, [sample(100, 0)], SETTINGS)
        self.assertEqual(capability.avg_units_per_day, 100.0)
        self.assertEqual(capability.data_points, 1)

    def test_most_common_resource_tie_goes_to_first_seen(self):
        self.assertEqual(most_common_resource([
            sample(1, 1, workstation='WS-B'),
            sample(1, 1, workstation='WS-A'),
            sample(1, 1, workstation='WS-A'),
            sample(1, 1, workstation='WS-B'),
        ]), 'WS-B')
        self.assertEqual(most_common_resource([
            sample(1, 1, workstation='WS-B'),
            sample(1, 1, workstation='WS-A'),
            sample(1, 1, workstation='WS-A'),
        ]), 'WS-A')
        self.assertIsNone(most_common_resource([sample(1, 1)]))


class TestCapacityService(unittest.TestCase):
    def setUp(self):
        self.session = make_session()
        self.product = add_product(self.session, 'SKU-1')

    def tearDown(self):
        self.session.close()

    def add_record(self, days_ago, units, hours, efficiency, workstation):
        self.session.add(ThroughputRecord(
            product_id=self.product.id,
            date=TODAY - timedelta(days=days_ago),
            units_produced=units,
            hours_worked=hours,
            efficiency=efficiency,
            defect_rate=0.01,
            workstation_id=workstation,
        ))
        self.session.flush()

    def test_estimate_uses_lookback_window(self):
        self.add_record(1, 80, 8, 0.9, 'WS-2')
        self.add_record(2, 80, 8, 0.8, 'WS-1')
        self.add_record(3, 80, 8, 0.7, 'WS-1')
        self.add_record(200, 10, 8, 0.1, 'WS-9')

        capability = CapacityService(self.session).estimate_capability(
            self.product.id, lookback_days=90, today=TODAY
        )

        self.assertEqual(capability.data_points, 3)
        self.assertAlmostEqual(capability.avg_units_per_day, 80.0)
        self.assertAlmostEqual(capability.avg_efficiency, 0.8)
        self.assertEqual(capability.recommended_resource, 'WS-1')

    def test_resource_tie_goes_to_most_recent(self):
        self.add_record(5, 80, 8, 0.9, 'WS-OLD')
        self.add_record(1, 80, 8, 0.9, 'WS-NEW')

        capability = CapacityService(self.session).estimate_capability(self.product.id, today=TODAY)
        self.assertEqual(capability.recommended_resource, 'WS-NEW')

    def test_no_history_gives_default(self):
        capabilities = CapacityService(self.session).get_capabilities([self.product.id], today=TODAY)
        self.assertEqual(capabilities[self.product.id].data_points, 0)

    def test_storage_failure_is_infrastructure_error(self):
        session_mock = MagicMock(spec=Session)
        session_mock.query.side_effect = OperationalError('SELECT', {}, Exception('database is locked'))

        with self.assertRaises(InfrastructureError):
            CapacityService(session_mock).estimate_capability(1, today=TODAY)


if __name__ == '__main__':
    unittest.main()
