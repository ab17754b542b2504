# production_planning/models.py
from sqlalchemy import Column, Integer, String, Float, Date, DateTime, ForeignKey, Text, Enum, Index
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func
import enum

Base = declarative_base()

class Priority(enum.Enum):
    """Demand priority.

    Values:
        HIGH ('high'): Scheduled first
        MEDIUM ('medium'): Default priority
        LOW ('low'): Scheduled last
    """
    HIGH = 'high'
    MEDIUM = 'medium'
    LOW = 'low'

    def __str__(self):
        """Return the string value of the enum."""
        return self.value

    @classmethod
    def from_string(cls, value: str) -> 'Priority':
        """Create a Priority from a string value.

        Args:
            value: String value ('high', 'medium', 'low'), case insensitive

        Returns:
            Priority enum value

        Raises:
            ValueError if the string value is not valid
        """
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(f"Invalid priority: {value}. Valid values are: high, medium, low")

class Severity(enum.Enum):
    CRITICAL = 'critical'
    WARNING = 'warning'
    INFO = 'info'

    def __str__(self):
        return self.value

class MovementType(enum.Enum):
    RECEIPT = 'receipt'
    CONSUMPTION = 'consumption'
    ADJUSTMENT = 'adjustment'

    def __str__(self):
        return self.value

class AlertType(enum.Enum):
    SHORTAGE = 'shortage'
    REORDER = 'reorder'
    SCHEDULE = 'schedule'
    CAPACITY = 'capacity'
    QUALITY = 'quality'

    def __str__(self):
        return self.value

class ScheduleStatus:
    PLANNED = 'planned'
    APPROVED = 'approved'
    IN_PROGRESS = 'in_progress'
    COMPLETED = 'completed'
    CANCELLED = 'cancelled'

    # Schedules that still hold a resource
    ACTIVE = (PLANNED, APPROVED, IN_PROGRESS)

class Product(Base):
    __tablename__ = 'product'

    id = Column(Integer, primary_key=True)
    sku = Column(String(50), nullable=False, unique=True)
    name = Column(String(255), nullable=False)
    category = Column(String(100))

    components = relationship("ProductComponent", back_populates="product")
    sales_orders = relationship("SalesOrder", back_populates="product")
    throughput = relationship("ThroughputRecord", back_populates="product")
    schedules = relationship("ProductionSchedule", back_populates="product")

class BomItem(Base):
    """Component master record with its on-hand stock."""
    __tablename__ = 'bom_item'

    id = Column(Integer, primary_key=True)
    part_number = Column(String(50), nullable=False, unique=True)
    description = Column(String(255))
    category = Column(String(100))
    current_stock = Column(Float, default=0.0, nullable=False)
    reorder_point = Column(Float, default=0.0)
    safety_stock = Column(Float, default=0.0)
    lead_time_days = Column(Integer, default=7)
    unit_cost = Column(Float, default=0.0)
    supplier = Column(String(100))

    product_links = relationship("ProductComponent", back_populates="bom_item")
    movements = relationship("InventoryMovement", back_populates="bom_item")

class ProductComponent(Base):
    """One level of the bill of materials: a component and its quantity per finished unit."""
    __tablename__ = 'product_component'

    id = Column(Integer, primary_key=True)
    product_id = Column(Integer, ForeignKey('product.id'), nullable=False)
    bom_item_id = Column(Integer, ForeignKey('bom_item.id'), nullable=False)
    quantity_needed = Column(Float, nullable=False)

    product = relationship("Product", back_populates="components")
    bom_item = relationship("BomItem", back_populates="product_links")

class SalesOrder(Base):
    __tablename__ = 'sales_order'

    id = Column(Integer, primary_key=True)
    order_id = Column(String(50), nullable=False, unique=True)
    product_id = Column(Integer, ForeignKey('product.id'), nullable=False)
    forecasted_units = Column(Float, nullable=False)
    time_period = Column(Date, nullable=False)  # due date
    priority = Column(Enum(Priority), default=Priority.MEDIUM)
    status = Column(String(20), default='pending')  # pending, confirmed, fulfilled, cancelled
    customer = Column(String(100))

    product = relationship("Product", back_populates="sales_orders")

class ThroughputRecord(Base):
    __tablename__ = 'throughput_record'

    id = Column(Integer, primary_key=True)
    product_id = Column(Integer, ForeignKey('product.id'), nullable=False)
    date = Column(Date, nullable=False)
    units_produced = Column(Float, default=0.0)
    hours_worked = Column(Float, default=0.0)
    efficiency = Column(Float, default=0.0)
    defect_rate = Column(Float, default=0.0)
    workstation_id = Column(String(50))

    product = relationship("Product", back_populates="throughput")

    __table_args__ = (
        Index('idx_throughput_product_date', 'product_id', 'date'),
    )

class ProductionSchedule(Base):
    """A committed production schedule."""
    __tablename__ = 'production_schedule'

    id = Column(Integer, primary_key=True)
    schedule_id = Column(String(50), nullable=False, unique=True)
    product_id = Column(Integer, ForeignKey('product.id'), nullable=False)
    workstation_id = Column(String(50), nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    units_to_produce_per_day = Column(Float, default=0.0)
    total_units = Column(Float)
    shift_number = Column(Integer, default=1)
    status = Column(String(20), default=ScheduleStatus.PLANNED)
    actual_units_produced = Column(Float)
    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    product = relationship("Product", back_populates="schedules")
    material_requirements = relationship("MaterialRequirement", back_populates="schedule")

    @property
    def duration_days(self) -> int:
        """Inclusive number of days covered by the schedule."""
        return (self.end_date - self.start_date).days + 1

    @property
    def planned_quantity(self) -> float:
        """Total units the schedule is expected to produce."""
        if self.total_units is not None:
            return self.total_units
        return (self.units_to_produce_per_day or 0.0) * self.duration_days

class MaterialRequirement(Base):
    """Materialized MRP result for one (schedule, component) pair."""
    __tablename__ = 'material_requirement'

    id = Column(Integer, primary_key=True)
    schedule_id = Column(String(50), ForeignKey('production_schedule.schedule_id'), nullable=False)
    part_number = Column(String(50), ForeignKey('bom_item.part_number'), nullable=False)
    required_quantity = Column(Float, default=0.0)
    allocated_quantity = Column(Float, default=0.0)
    net_requirement = Column(Float, default=0.0)
    requirement_status = Column(String(20))  # sufficient, shortage, critical
    planned_order_date = Column(Date)
    status = Column(String(20), default='open')  # open, consumed, cancelled
    created_at = Column(DateTime, default=func.now())

    schedule = relationship("ProductionSchedule", back_populates="material_requirements")

    __table_args__ = (
        Index('idx_material_requirement_part_status', 'part_number', 'status'),
    )

class InventoryMovement(Base):
    """Append-only stock movement log."""
    __tablename__ = 'inventory_movement'

    id = Column(Integer, primary_key=True)
    part_number = Column(String(50), ForeignKey('bom_item.part_number'), nullable=False)
    movement_type = Column(Enum(MovementType), nullable=False)
    quantity = Column(Float, nullable=False)  # signed: negative for consumption
    previous_stock = Column(Float, nullable=False)
    new_stock = Column(Float, nullable=False)
    reference = Column(String(100))
    reason = Column(Text)
    timestamp = Column(DateTime, default=func.now(), nullable=False)

    bom_item = relationship("BomItem", back_populates="movements")

    __table_args__ = (
        Index('idx_inventory_movement_part_time', 'part_number', 'timestamp'),
    )

class Alert(Base):
    __tablename__ = 'alert'

    id = Column(Integer, primary_key=True)
    alert_type = Column(Enum(AlertType), nullable=False)
    severity = Column(Enum(Severity), nullable=False)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)
    reference = Column(String(100))
    status = Column(String(20), default='active')  # active, resolved, dismissed
    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())
    resolved_at = Column(DateTime)
    resolution = Column(Text)
    resolved_by = Column(String(50))
    dismissed_at = Column(DateTime)
    dismissal_reason = Column(Text)
