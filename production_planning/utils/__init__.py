from .date_utils import convert_to_date, lookback_window
from .validation import validate_raw_demand, validate_schedule_options

__all__ = [
    'convert_to_date',
    'lookback_window',
    'validate_raw_demand',
    'validate_schedule_options'
]
