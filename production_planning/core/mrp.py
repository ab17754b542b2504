# production_planning/core/mrp.py
"""Net requirements, order timing, EOQ and safety stock for one-level BOMs."""
import enum
import math
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Dict, List, Optional, Sequence

from scipy import stats

from ..config import config
from ..exceptions import MRPError


class RequirementStatus(enum.Enum):
    SUFFICIENT = 'sufficient'
    SHORTAGE = 'shortage'
    CRITICAL = 'critical'

    def __str__(self):
        return self.value


@dataclass(frozen=True)
class ComponentStock:
    """A component of a product together with its stock master data."""
    part_number: str
    quantity_per_unit: float
    current_stock: float
    description: Optional[str] = None
    lead_time_days: int = 0
    safety_stock: float = 0.0
    reorder_point: float = 0.0
    unit_cost: float = 0.0


@dataclass
class ComponentRequirement:
    part_number: str
    description: Optional[str]
    schedule_id: str
    gross_requirement: float
    current_stock: float
    allocated_stock: float
    available_stock: float
    net_requirement: float
    planned_order_quantity: float
    planned_order_date: date
    expected_delivery_date: date
    status: RequirementStatus
    order_date_in_past: bool
    lead_time_days: int
    safety_stock: float
    reorder_point: float
    unit_cost: float
    total_cost: float
    suggested_safety_stock: int = 0
    recommendations: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict:
        return {
            'part_number': self.part_number,
            'description': self.description,
            'schedule_id': self.schedule_id,
            'gross_requirement': self.gross_requirement,
            'current_stock': self.current_stock,
            'allocated_stock': self.allocated_stock,
            'available_stock': self.available_stock,
            'net_requirement': self.net_requirement,
            'planned_order_quantity': self.planned_order_quantity,
            'planned_order_date': self.planned_order_date.isoformat(),
            'expected_delivery_date': self.expected_delivery_date.isoformat(),
            'status': self.status.value,
            'order_date_in_past': self.order_date_in_past,
            'lead_time_days': self.lead_time_days,
            'safety_stock': self.safety_stock,
            'reorder_point': self.reorder_point,
            'unit_cost': self.unit_cost,
            'total_cost': self.total_cost,
            'suggested_safety_stock': self.suggested_safety_stock,
            'recommendations': list(self.recommendations),
            'warnings': list(self.warnings),
        }


@dataclass
class RequirementSummary:
    schedule_id: str
    total_components: int = 0
    sufficient_count: int = 0
    shortage_count: int = 0
    critical_count: int = 0
    total_cost: float = 0.0
    urgent_actions: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict:
        return {
            'schedule_id': self.schedule_id,
            'total_components': self.total_components,
            'sufficient_count': self.sufficient_count,
            'shortage_count': self.shortage_count,
            'critical_count': self.critical_count,
            'total_cost': self.total_cost,
            'urgent_actions': list(self.urgent_actions),
        }


def calculate_net_requirement(gross: float, on_hand: float, allocated: float) -> float:
    """net = max(0, gross - (on_hand - allocated))"""
    return max(0.0, gross - (on_hand - allocated))


def calculate_eoq(annual_demand: float, ordering_cost: float, holding_cost_per_unit: float) -> float:
    """Wilson economic order quantity, sqrt(2DS/H).

    Args:
        annual_demand: Annual demand in units
        ordering_cost: Cost of placing one order
        holding_cost_per_unit: Annual holding cost per unit

    Returns:
        EOQ (at least 1), or 0 when any input is not positive
    """
    if annual_demand <= 0 or ordering_cost <= 0 or holding_cost_per_unit <= 0:
        return 0.0

    try:
        eoq = math.sqrt((2 * annual_demand * ordering_cost) / holding_cost_per_unit)
    except (OverflowError, ValueError) as e:
        raise MRPError(f"Error calculating EOQ: {str(e)}")

    return max(1.0, eoq)


def calculate_safety_stock(
    avg_daily_demand: float,
    lead_time_days: float,
    service_level: float = 0.95
) -> int:
    """Safety stock for normally distributed daily demand.

    The standard deviation of daily demand is taken as 20% of the average.
    SS = Z * sigma * sqrt(LT), rounded up.

    Args:
        avg_daily_demand: Average daily demand in units
        lead_time_days: Replenishment lead time in days
        service_level: Target service level as a fraction (e.g. 0.95)

    Returns:
        Safety stock in units
    """
    if avg_daily_demand <= 0 or lead_time_days <= 0:
        return 0
    if not 0 < service_level < 1:
        raise MRPError(f"Service level must be between 0 and 1, got {service_level}")

    z_score = stats.norm.ppf(service_level)
    demand_std_dev = avg_daily_demand * 0.2

    return int(math.ceil(z_score * demand_std_dev * math.sqrt(lead_time_days)))


def calculate_component_requirement(
    component: ComponentStock,
    schedule_id: str,
    schedule_quantity: float,
    need_date: date,
    allocated_stock: float = 0.0,
    duration_days: int = 1,
    today: Optional[date] = None,
    settings: Optional[Dict] = None
) -> ComponentRequirement:
    """Net one component of a schedule against stock.

    Planning is lot-for-lot: the planned order quantity equals the net
    requirement. The planned order date is the need date minus the lead time
    (and the configured order buffer).

    Args:
        component: Component with stock master data
        schedule_id: Schedule being netted
        schedule_quantity: Finished units the schedule produces
        need_date: Date the components are needed, normally the schedule start
        allocated_stock: Stock already allocated to other open requirements
        duration_days: Schedule duration, used to annualize demand for EOQ
        today: Reference date, defaults to date.today()
        settings: Optional MRP settings, defaults to configuration

    Returns:
        ComponentRequirement
    """
    settings = settings or config.mrp_config
    today = today or date.today()

    gross = component.quantity_per_unit * schedule_quantity
    available = component.current_stock - allocated_stock
    net = calculate_net_requirement(gross, component.current_stock, allocated_stock)
    planned_quantity = net

    lead_time = component.lead_time_days or 0
    planned_order_date = need_date - timedelta(days=lead_time + settings.get('order_buffer_days', 0))
    expected_delivery_date = planned_order_date + timedelta(days=lead_time)

    order_date_in_past = net > 0 and planned_order_date < today
    if net == 0:
        status = RequirementStatus.SUFFICIENT
    elif order_date_in_past:
        status = RequirementStatus.CRITICAL
    else:
        status = RequirementStatus.SHORTAGE

    unit_cost = component.unit_cost or 0.0
    total_cost = planned_quantity * unit_cost

    recommendations = []
    warnings = []

    if status == RequirementStatus.CRITICAL:
        warnings.append(f"CRITICAL SHORTAGE: {math.ceil(net)} units short")
        warnings.append(f"Order should have been placed on {planned_order_date.isoformat()}")
        recommendations.append(f"Order {math.ceil(planned_quantity)} units now, lead time exceeded")
        recommendations.append("Consider expediting delivery or adjusting production schedule")
    elif status == RequirementStatus.SHORTAGE:
        warnings.append(f"Shortage of {math.ceil(net)} units")
        recommendations.append(
            f"Order {math.ceil(planned_quantity)} units by {planned_order_date.isoformat()}"
        )

    if planned_quantity > 0:
        annual_demand = gross * (settings['working_days_per_year'] / max(1, duration_days))
        eoq = calculate_eoq(annual_demand, settings['ordering_cost'],
                            unit_cost * settings['holding_cost_rate'])
        if eoq > 0 and (planned_quantity < eoq * 0.5 or planned_quantity > eoq * 2):
            recommendations.append(f"Economic order quantity is {math.ceil(eoq)} units")

    safety_stock = component.safety_stock or 0.0
    if available + planned_quantity - gross < safety_stock:
        warnings.append(
            f"Stock below safety threshold ({safety_stock:g}) even after fulfilling this schedule"
        )

    # No master-data safety stock: size one from this schedule's daily usage
    suggested_safety_stock = 0
    if safety_stock <= 0:
        service_level = settings.get('service_level', 0.95)
        suggested_safety_stock = calculate_safety_stock(
            gross / max(1, duration_days), lead_time, service_level
        )
        if suggested_safety_stock > 0:
            recommendations.append(
                f"No safety stock set, hold {suggested_safety_stock} units "
                f"for a {service_level:.0%} service level"
            )

    reorder_point = component.reorder_point or 0.0
    if component.current_stock < reorder_point:
        recommendations.append("Stock below reorder point, consider a standing order")

    return ComponentRequirement(
        part_number=component.part_number,
        description=component.description,
        schedule_id=schedule_id,
        gross_requirement=gross,
        current_stock=component.current_stock,
        allocated_stock=allocated_stock,
        available_stock=available,
        net_requirement=net,
        planned_order_quantity=planned_quantity,
        planned_order_date=planned_order_date,
        expected_delivery_date=expected_delivery_date,
        status=status,
        order_date_in_past=order_date_in_past,
        lead_time_days=lead_time,
        safety_stock=safety_stock,
        reorder_point=reorder_point,
        unit_cost=unit_cost,
        total_cost=total_cost,
        suggested_safety_stock=suggested_safety_stock,
        recommendations=recommendations,
        warnings=warnings,
    )


def summarize_requirements(schedule_id: str, results: Sequence[ComponentRequirement]) -> RequirementSummary:
    """Status counts, total cost and urgent actions for one schedule."""
    summary = RequirementSummary(schedule_id=schedule_id, total_components=len(results))

    for result in results:
        if result.status == RequirementStatus.SUFFICIENT:
            summary.sufficient_count += 1
        elif result.status == RequirementStatus.SHORTAGE:
            summary.shortage_count += 1
        else:
            summary.critical_count += 1
        summary.total_cost += result.total_cost

    if summary.critical_count:
        summary.urgent_actions.append(
            f"{summary.critical_count} critical shortage(s) - order immediately"
        )
    for result in results:
        if result.status == RequirementStatus.CRITICAL:
            summary.urgent_actions.append(
                f"Expedite {math.ceil(result.net_requirement)} units of {result.part_number} "
                f"(order date {result.planned_order_date.isoformat()} has passed)"
            )

    return summary
