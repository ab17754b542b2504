# production_planning/core/inventory.py
import math
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from ..exceptions import ValidationError


@dataclass(frozen=True)
class ComponentUsage:
    """Quantity of a component needed per finished unit."""
    part_number: str
    quantity_per_unit: float
    description: Optional[str] = None


@dataclass(frozen=True)
class Consumption:
    """Planned stock change for one component."""
    part_number: str
    quantity: float
    previous_stock: float
    new_stock: float


@dataclass(frozen=True)
class ComponentShortage:
    part_number: str
    required: float
    available: float
    shortage: float
    description: Optional[str] = None

    def to_dict(self) -> Dict:
        return {
            'part_number': self.part_number,
            'description': self.description,
            'required': self.required,
            'available': self.available,
            'shortage': self.shortage,
        }


def plan_consumption(
    components: Sequence[ComponentUsage],
    quantity_produced: float,
    stock_levels: Mapping[str, float]
) -> Tuple[List[Consumption], List[ComponentShortage]]:
    """Check every component against stock for a production quantity.

    All components are checked; the shortage list holds every component
    that cannot be covered, not just the first.

    Args:
        components: Components of the produced product
        quantity_produced: Finished units produced
        stock_levels: Current stock by part number

    Returns:
        Tuple of (consumptions, shortages). Consumptions are only meaningful
        when shortages is empty.
    """
    if quantity_produced <= 0:
        raise ValidationError(
            f"Quantity produced must be positive, got {quantity_produced}",
            details={'quantity_produced': quantity_produced}
        )

    consumptions = []
    shortages = []

    for component in components:
        required = component.quantity_per_unit * quantity_produced
        available = stock_levels.get(component.part_number, 0.0)

        if available < required:
            shortages.append(ComponentShortage(
                part_number=component.part_number,
                description=component.description,
                required=required,
                available=available,
                shortage=required - available,
            ))
            continue

        consumptions.append(Consumption(
            part_number=component.part_number,
            quantity=required,
            previous_stock=available,
            new_stock=available - required,
        ))

    return consumptions, shortages


def crossed_reorder_point(previous_stock: float, new_stock: float, reorder_point: float) -> bool:
    """True when a stock level has just dropped to or below its reorder point."""
    return previous_stock > reorder_point >= new_stock


def estimate_daily_usage(reorder_point: float, safety_stock: float, lead_time_days: int) -> float:
    """Daily usage implied by ROP = usage * lead time + safety stock, at least 1."""
    return max(1.0, (reorder_point - safety_stock) / max(1, lead_time_days))


def calculate_reorder_quantity(
    reorder_point: float,
    safety_stock: float,
    lead_time_days: int,
    current_stock: float
) -> int:
    """Recommended order quantity for a component at or below its reorder point.

    Covers lead-time usage plus safety stock, and at least brings stock back
    to the reorder point.
    """
    daily_usage = estimate_daily_usage(reorder_point, safety_stock, lead_time_days)
    recommended = lead_time_days * daily_usage + safety_stock - current_stock
    minimum = reorder_point - current_stock
    return int(math.ceil(max(recommended, minimum, 0)))
