"""
Tests for input validation.
"""
import unittest
from datetime import date, datetime

from production_planning.exceptions import ValidationError
from production_planning.models import Priority
from production_planning.utils.validation import validate_raw_demand, validate_schedule_options


class TestValidateRawDemand(unittest.TestCase):
    def test_loose_row_is_normalized(self):
        demand = validate_raw_demand({
            'order_id': 1001,
            'product_id': '7',
            'forecasted_units': '25.5',
            'time_period': '2024-03-15',
            'priority': 'HIGH',
            'product_sku': 'SKU-7',
        })

        self.assertEqual(demand.order_id, '1001')
        self.assertEqual(demand.product_id, 7)
        self.assertEqual(demand.quantity, 25.5)
        self.assertEqual(demand.due_date, date(2024, 3, 15))
        self.assertEqual(demand.priority, Priority.HIGH)
        self.assertEqual(demand.product_sku, 'SKU-7')

    def test_defaults_and_datetimes(self):
        demand = validate_raw_demand({
            'order_id': 'SO-1', 'product_id': 1, 'quantity': 3,
            'due_date': datetime(2024, 3, 15, 14, 30),
        })
        self.assertEqual(demand.priority, Priority.MEDIUM)
        self.assertEqual(demand.due_date, date(2024, 3, 15))

    def test_every_invalid_field_is_reported(self):
        with self.assertRaises(ValidationError) as ctx:
            validate_raw_demand({'product_id': 'abc', 'quantity': -1, 'due_date': 'soon',
                                 'priority': 'urgent'})

        self.assertEqual(set(ctx.exception.details),
                         {'order_id', 'product_id', 'quantity', 'due_date', 'priority'})

    def test_fractional_product_id_rejected(self):
        for product_id in (1.7, '1.7', True):
            with self.assertRaises(ValidationError) as ctx:
                validate_raw_demand({'order_id': 'SO-1', 'product_id': product_id, 'quantity': 3,
                                     'due_date': '2024-03-15'})
            self.assertEqual(set(ctx.exception.details), {'product_id'})

        demand = validate_raw_demand({'order_id': 'SO-1', 'product_id': 7.0, 'quantity': 3,
                                      'due_date': '2024-03-15'})
        self.assertEqual(demand.product_id, 7)

    def test_zero_quantity_rejected(self):
        with self.assertRaises(ValidationError):
            validate_raw_demand({'order_id': 'SO-1', 'product_id': 1, 'quantity': 0,
                                 'due_date': '2024-03-15'})


class TestValidateScheduleOptions(unittest.TestCase):
    def test_builds_options(self):
        options = validate_schedule_options('2024-03-01', '2', window_end='2024-03-31',
                                            resource_override='WS-9', priority_filter='low')

        self.assertEqual(options.window_start, date(2024, 3, 1))
        self.assertEqual(options.window_end, date(2024, 3, 31))
        self.assertEqual(options.shifts_per_day, 2)
        self.assertEqual(options.resource_override, 'WS-9')
        self.assertEqual(options.priority_filter, Priority.LOW)

    def test_rejects_bad_options(self):
        for kwargs in ({'shifts_per_day': 4}, {'shifts_per_day': 'two'},
                       {'window_end': '2024-02-01'}, {'priority_filter': 'urgent'}):
            with self.assertRaises(ValidationError):
                validate_schedule_options('2024-03-01', **kwargs)


if __name__ == '__main__':
    unittest.main()
