# production_planning/services/inventory_service.py
import math
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from production_planning.core.inventory import (
    ComponentUsage, calculate_reorder_quantity, crossed_reorder_point,
    estimate_daily_usage, plan_consumption
)
from production_planning.exceptions import (
    InfrastructureError, InsufficientInventoryError, NoComponentsError,
    NotFoundError, ValidationError
)
from production_planning.logging_setup import get_logger
from production_planning.models import (
    Alert, AlertType, BomItem, InventoryMovement, MaterialRequirement, MovementType,
    Product, ProductComponent, ProductionSchedule, ScheduleStatus, Severity
)
from production_planning.services.alert_service import AlertService

logger = get_logger(__name__)


class InventoryService:
    """Service for component stock movements."""

    def __init__(self, session: Session):
        """Initialize the inventory service.

        Args:
            session: Database session
        """
        self.session = session
        self.alert_service = AlertService(session)

    def decrement_for_production(
        self,
        schedule_id: str,
        product_id: int,
        quantity_produced: float
    ) -> Dict:
        """Consume components for a completed production run.

        Every affected component row is locked, every component is checked,
        and either all decrements are written or none are. Concurrent calls
        touching the same component are serialized by the row locks.

        Args:
            schedule_id: Schedule the production belongs to
            product_id: Product produced
            quantity_produced: Finished units produced

        Returns:
            Dictionary with 'movements', 'alerts' and the completed 'schedule'

        Raises:
            ValidationError: quantity is not positive or the schedule is for
                another product
            NotFoundError: the product or the schedule does not exist
            NoComponentsError: the product has no components
            InsufficientInventoryError: one or more components are short;
                nothing is written
        """
        if isinstance(quantity_produced, bool) or not isinstance(quantity_produced, (int, float)) \
                or quantity_produced <= 0:
            raise ValidationError(
                f"Quantity produced must be a positive number, got {quantity_produced}",
                details={'quantity_produced': quantity_produced}
            )

        try:
            if self.session.query(Product.id).filter(Product.id == product_id).first() is None:
                raise NotFoundError(
                    f"Product {product_id} not found",
                    details={'product_id': product_id}
                )

            schedule = self.session.query(ProductionSchedule).filter(
                ProductionSchedule.schedule_id == schedule_id
            ).first()
            if schedule is None:
                raise NotFoundError(
                    f"Production schedule {schedule_id} not found",
                    details={'schedule_id': schedule_id}
                )
            if schedule.product_id != product_id:
                raise ValidationError(
                    f"Schedule {schedule_id} is for product {schedule.product_id}, not {product_id}",
                    details={'schedule_id': schedule_id, 'product_id': product_id}
                )

            links = self.session.query(ProductComponent).filter(
                ProductComponent.product_id == product_id
            ).all()
            if not links:
                raise NoComponentsError(
                    f"Product {product_id} has no components defined",
                    details={'product_id': product_id}
                )

            quantity_by_item: Dict[int, float] = {}
            for link in links:
                quantity_by_item[link.bom_item_id] = quantity_by_item.get(link.bom_item_id, 0.0) + \
                    link.quantity_needed

            # Lock in primary key order
            items = self.session.query(BomItem).filter(
                BomItem.id.in_(list(quantity_by_item))
            ).order_by(BomItem.id).with_for_update().all()
            items_by_part = {item.part_number: item for item in items}

            usages = [
                ComponentUsage(
                    part_number=item.part_number,
                    quantity_per_unit=quantity_by_item[item.id],
                    description=item.description,
                )
                for item in items
            ]
            consumptions, shortages = plan_consumption(
                usages,
                quantity_produced,
                {item.part_number: item.current_stock or 0.0 for item in items}
            )

            if shortages:
                raise InsufficientInventoryError(shortages)

            movements = []
            alerts = []

            for consumption in consumptions:
                item = items_by_part[consumption.part_number]
                item.current_stock = consumption.new_stock

                movement = InventoryMovement(
                    part_number=consumption.part_number,
                    movement_type=MovementType.CONSUMPTION,
                    quantity=-consumption.quantity,
                    previous_stock=consumption.previous_stock,
                    new_stock=consumption.new_stock,
                    reference=schedule_id,
                    reason=f"Consumed for {quantity_produced:g} units produced on schedule {schedule_id}",
                    timestamp=datetime.now(),
                )
                self.session.add(movement)
                movements.append(movement)

                if crossed_reorder_point(consumption.previous_stock, consumption.new_stock,
                                         item.reorder_point or 0.0):
                    alerts.append(self._create_reorder_alert(item))

            schedule.status = ScheduleStatus.COMPLETED
            schedule.actual_units_produced = quantity_produced
            self.session.query(MaterialRequirement).filter(
                MaterialRequirement.schedule_id == schedule_id,
                MaterialRequirement.status == 'open'
            ).update({MaterialRequirement.status: 'consumed'}, synchronize_session=False)

            self.session.commit()

        except SQLAlchemyError as e:
            self.session.rollback()
            raise InfrastructureError(f"Failed to decrement inventory for {schedule_id}: {str(e)}")
        except Exception:
            self.session.rollback()
            raise

        logger.info(
            f"Consumed components for {quantity_produced:g} units on {schedule_id}: "
            f"{len(movements)} movement(s), {len(alerts)} reorder alert(s)"
        )

        return {'movements': movements, 'alerts': alerts, 'schedule': schedule}

    def _create_reorder_alert(self, item: BomItem) -> Alert:
        current_stock = item.current_stock or 0.0
        safety_stock = item.safety_stock or 0.0
        reorder_point = item.reorder_point or 0.0
        lead_time_days = item.lead_time_days or 0

        recommended = calculate_reorder_quantity(reorder_point, safety_stock, lead_time_days, current_stock)

        return self.alert_service.create_alert(
            AlertType.REORDER,
            Severity.CRITICAL if current_stock <= safety_stock else Severity.WARNING,
            f"Reorder Required: {item.part_number}",
            (
                f"Stock level ({current_stock:g}) at or below reorder point ({reorder_point:g}). "
                f"Recommended order: {recommended} units. "
                f"Lead time: {lead_time_days} days. "
                f"Supplier: {item.supplier or 'unknown'}"
            ),
            reference=item.part_number,
            commit=False
        )

    def _get_item(self, part_number: str, lock: bool = False) -> BomItem:
        query = self.session.query(BomItem).filter(BomItem.part_number == part_number)
        if lock:
            query = query.with_for_update()
        item = query.first()
        if not item:
            raise NotFoundError(f"Part {part_number} not found in inventory")
        return item

    def receive_inventory(self, items: List[Dict]) -> List[InventoryMovement]:
        """Receive stock for several parts in one transaction.

        Args:
            items: List of dictionaries with part_number, quantity and an
                optional reference

        Returns:
            Created movements
        """
        for entry in items:
            quantity = entry.get('quantity')
            if not isinstance(quantity, (int, float)) or isinstance(quantity, bool) or quantity <= 0:
                raise ValidationError(
                    f"Received quantity for {entry.get('part_number')} must be positive",
                    details={'part_number': entry.get('part_number'), 'quantity': quantity}
                )

        movements = []
        try:
            for entry in items:
                item = self._get_item(entry['part_number'], lock=True)
                previous_stock = item.current_stock or 0.0
                item.current_stock = previous_stock + entry['quantity']

                movement = InventoryMovement(
                    part_number=item.part_number,
                    movement_type=MovementType.RECEIPT,
                    quantity=entry['quantity'],
                    previous_stock=previous_stock,
                    new_stock=item.current_stock,
                    reference=entry.get('reference') or 'Receiving',
                    reason=f"Received {entry['quantity']:g} units",
                    timestamp=datetime.now(),
                )
                self.session.add(movement)
                movements.append(movement)

            self.session.commit()

        except SQLAlchemyError as e:
            self.session.rollback()
            raise InfrastructureError(f"Failed to receive inventory: {str(e)}")
        except Exception:
            self.session.rollback()
            raise

        logger.info(f"Received {len(movements)} inventory line(s)")
        return movements

    def adjust_inventory(self, part_number: str, new_quantity: float, reason: str) -> InventoryMovement:
        """Set a part's stock to a counted quantity.

        Args:
            part_number: Part number
            new_quantity: Counted stock, must not be negative
            reason: Reason for the adjustment

        Returns:
            Adjustment movement
        """
        if new_quantity < 0:
            raise ValidationError("Inventory quantity cannot be negative")

        try:
            item = self._get_item(part_number, lock=True)
            previous_stock = item.current_stock or 0.0
            item.current_stock = new_quantity

            movement = InventoryMovement(
                part_number=part_number,
                movement_type=MovementType.ADJUSTMENT,
                quantity=new_quantity - previous_stock,
                previous_stock=previous_stock,
                new_stock=new_quantity,
                reason=f"Manual adjustment: {reason} ({previous_stock:g} -> {new_quantity:g})",
                timestamp=datetime.now(),
            )
            self.session.add(movement)

            if new_quantity <= (item.reorder_point or 0.0):
                self._create_reorder_alert(item)

            self.session.commit()

        except SQLAlchemyError as e:
            self.session.rollback()
            raise InfrastructureError(f"Failed to adjust inventory for {part_number}: {str(e)}")
        except Exception:
            self.session.rollback()
            raise

        logger.info(f"Adjusted {part_number} from {previous_stock:g} to {new_quantity:g}: {reason}")
        return movement

    def get_inventory_history(
        self,
        part_number: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None
    ) -> List[InventoryMovement]:
        """Get movements of a part, newest first."""
        try:
            query = self.session.query(InventoryMovement).filter(
                InventoryMovement.part_number == part_number
            )
            if start is not None:
                query = query.filter(InventoryMovement.timestamp >= start)
            if end is not None:
                query = query.filter(InventoryMovement.timestamp <= end)

            return query.order_by(InventoryMovement.timestamp.desc(), InventoryMovement.id.desc()).all()
        except SQLAlchemyError as e:
            raise InfrastructureError(f"Failed to load history for {part_number}: {str(e)}")

    def get_reorder_recommendations(self) -> List[Dict]:
        """Reorder recommendations for every part at or below its reorder point."""
        try:
            items = self.session.query(BomItem).filter(
                BomItem.current_stock <= BomItem.reorder_point
            ).order_by(BomItem.current_stock, BomItem.part_number).all()
        except SQLAlchemyError as e:
            raise InfrastructureError(f"Failed to load low stock items: {str(e)}")

        recommendations = []
        for item in items:
            current_stock = item.current_stock or 0.0
            reorder_point = item.reorder_point or 0.0
            safety_stock = item.safety_stock or 0.0
            lead_time_days = item.lead_time_days or 0
            daily_usage = estimate_daily_usage(reorder_point, safety_stock, lead_time_days)

            recommendations.append({
                'part_number': item.part_number,
                'current_stock': current_stock,
                'reorder_point': reorder_point,
                'safety_stock': safety_stock,
                'lead_time_days': lead_time_days,
                'recommended_order_quantity': calculate_reorder_quantity(
                    reorder_point, safety_stock, lead_time_days, current_stock
                ),
                'estimated_daily_usage': daily_usage,
                'days_until_stockout': max(0, math.floor(current_stock / daily_usage)),
            })

        return recommendations
