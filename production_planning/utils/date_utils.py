# production_planning/utils/date_utils.py
from datetime import date, datetime, timedelta
from typing import Optional, Tuple, Union


def convert_to_date(value: Union[str, date, datetime], format_string: str = "%Y-%m-%d") -> date:
    """Convert a string, datetime or date to a date.

    Args:
        value: Value to convert
        format_string: Format used for strings

    Returns:
        Date object

    Raises:
        ValueError if the value cannot be converted
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        return datetime.strptime(value.strip()[:10], format_string).date()
    raise ValueError(f"Cannot convert {value!r} to a date")


def lookback_window(lookback_days: int, today: Optional[date] = None) -> Tuple[date, date]:
    """Date range covering the last ``lookback_days`` days up to today."""
    today = today or date.today()
    return today - timedelta(days=lookback_days), today
