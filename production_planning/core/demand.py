# production_planning/core/demand.py
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Iterable, List, Optional

from ..models import Priority

PRIORITY_WEIGHTS = {
    Priority.HIGH: 3,
    Priority.MEDIUM: 2,
    Priority.LOW: 1,
}


def priority_weight(priority: Optional[Priority]) -> int:
    """Numeric weight of a priority; unknown priorities weigh 0."""
    return PRIORITY_WEIGHTS.get(priority, 0)


@dataclass(frozen=True)
class RawDemand:
    """A validated sales order or forecast line."""
    order_id: str
    product_id: int
    quantity: float
    due_date: date
    priority: Priority = Priority.MEDIUM
    product_sku: Optional[str] = None
    product_name: Optional[str] = None


@dataclass
class Demand:
    """Consolidated demand for one product."""
    product_id: int
    total_units: float
    earliest_due_date: date
    latest_due_date: date
    highest_priority: Priority
    order_count: int = 0
    source_orders: List[RawDemand] = field(default_factory=list)
    product_sku: Optional[str] = None
    product_name: Optional[str] = None

    @property
    def priority_weight(self) -> int:
        return priority_weight(self.highest_priority)

    def add(self, order: RawDemand) -> None:
        """Fold one more order into this demand."""
        self.total_units += order.quantity
        self.order_count += 1
        self.source_orders.append(order)

        if order.due_date < self.earliest_due_date:
            self.earliest_due_date = order.due_date
        if order.due_date > self.latest_due_date:
            self.latest_due_date = order.due_date

        # Strictly greater: the first priority seen at a weight is kept
        if priority_weight(order.priority) > priority_weight(self.highest_priority):
            self.highest_priority = order.priority


def aggregate_demand(raw_demands: Iterable[RawDemand]) -> List[Demand]:
    """Collapse demand records into one Demand per product.

    Grouping is done in a dict keyed by product id. Totals, due-date bounds
    and the winning priority do not depend on input order; the order of the
    returned list follows first appearance and carries no meaning.

    Args:
        raw_demands: Validated demand records

    Returns:
        List of aggregated demands, empty when there is nothing to schedule
    """
    by_product: Dict[int, Demand] = {}

    for order in raw_demands:
        demand = by_product.get(order.product_id)
        if demand is None:
            by_product[order.product_id] = Demand(
                product_id=order.product_id,
                total_units=order.quantity,
                earliest_due_date=order.due_date,
                latest_due_date=order.due_date,
                highest_priority=order.priority,
                order_count=1,
                source_orders=[order],
                product_sku=order.product_sku,
                product_name=order.product_name,
            )
        else:
            demand.add(order)

    return list(by_product.values())
