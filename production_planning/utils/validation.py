from typing import Any, Dict, Mapping, Optional

from production_planning.core.demand import RawDemand
from production_planning.core.scheduling import ScheduleOptions
from production_planning.exceptions import ValidationError
from production_planning.models import Priority
from production_planning.utils.date_utils import convert_to_date


def _positive_number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if number > 0 else None


def validate_raw_demand(row: Mapping[str, Any]) -> RawDemand:
    """Build a RawDemand from a loosely typed row.

    Accepted keys: order_id, product_id, quantity (or forecasted_units),
    due_date (or time_period), priority, product_sku, product_name.

    Args:
        row: Mapping with demand fields

    Returns:
        RawDemand

    Raises:
        ValidationError listing every invalid field
    """
    errors: Dict[str, str] = {}

    order_id = row.get('order_id')
    if order_id is None or str(order_id).strip() == '':
        errors['order_id'] = 'Order ID is required'

    product_id = row.get('product_id')
    if isinstance(product_id, float) and product_id.is_integer():
        product_id = int(product_id)
    elif isinstance(product_id, bool) or not isinstance(product_id, int):
        # Parse the text form so 1.7 and '1.7' are rejected, not truncated
        try:
            product_id = int(str(product_id).strip())
        except ValueError:
            errors['product_id'] = 'Product ID must be an integer'

    quantity = _positive_number(row.get('quantity', row.get('forecasted_units')))
    if quantity is None:
        errors['quantity'] = 'Quantity must be a positive number'

    due_date = None
    raw_due = row.get('due_date', row.get('time_period'))
    if raw_due is None:
        errors['due_date'] = 'Due date is required'
    else:
        try:
            due_date = convert_to_date(raw_due)
        except ValueError:
            errors['due_date'] = f"Invalid due date: {raw_due}"

    priority = Priority.MEDIUM
    raw_priority = row.get('priority')
    if isinstance(raw_priority, Priority):
        priority = raw_priority
    elif raw_priority is not None:
        try:
            priority = Priority.from_string(raw_priority)
        except ValueError as e:
            errors['priority'] = str(e)

    if errors:
        raise ValidationError(
            f"Invalid demand record {order_id}",
            code='INVALID_DEMAND',
            details=errors
        )

    return RawDemand(
        order_id=str(order_id),
        product_id=product_id,
        quantity=quantity,
        due_date=due_date,
        priority=priority,
        product_sku=row.get('product_sku'),
        product_name=row.get('product_name'),
    )


def validate_schedule_options(
    window_start: Any,
    shifts_per_day: Any = 1,
    window_end: Any = None,
    resource_override: Optional[str] = None,
    priority_filter: Any = None,
    include_existing: bool = False
) -> ScheduleOptions:
    """Build ScheduleOptions from loosely typed input, e.g. CLI arguments.

    Raises:
        ValidationError if any option is invalid
    """
    try:
        start = convert_to_date(window_start)
        end = convert_to_date(window_end) if window_end is not None else None
    except ValueError as e:
        raise ValidationError(str(e), code='INVALID_WINDOW')

    try:
        shifts = int(shifts_per_day)
    except (TypeError, ValueError):
        raise ValidationError(f"shifts_per_day must be an integer, got {shifts_per_day}")

    priority = None
    if priority_filter is not None:
        try:
            priority = (priority_filter if isinstance(priority_filter, Priority)
                        else Priority.from_string(priority_filter))
        except ValueError as e:
            raise ValidationError(str(e))

    options = ScheduleOptions(
        window_start=start,
        window_end=end,
        shifts_per_day=shifts,
        resource_override=resource_override or None,
        priority_filter=priority,
        include_existing=include_existing,
    )
    options.validate()
    return options
