"""Shared builders for service tests backed by an in-memory SQLite database."""
from datetime import date

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from production_planning.models import (
    Base, BomItem, Product, ProductComponent, ProductionSchedule, ScheduleStatus
)


def make_session():
    engine = create_engine(
        'sqlite://',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool
    )
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine)()


def add_product(session, sku, name=None):
    product = Product(sku=sku, name=name or sku)
    session.add(product)
    session.flush()
    return product


def add_component(session, product, part_number, quantity_needed, current_stock,
                  reorder_point=0.0, safety_stock=0.0, lead_time_days=7, unit_cost=1.0):
    item = session.query(BomItem).filter(BomItem.part_number == part_number).first()
    if item is None:
        item = BomItem(
            part_number=part_number,
            description=f"Part {part_number}",
            current_stock=current_stock,
            reorder_point=reorder_point,
            safety_stock=safety_stock,
            lead_time_days=lead_time_days,
            unit_cost=unit_cost,
            supplier='ACME',
        )
        session.add(item)
        session.flush()

    session.add(ProductComponent(product_id=product.id, bom_item_id=item.id,
                                 quantity_needed=quantity_needed))
    session.flush()
    return item


def add_schedule(session, schedule_id, product, start_date, end_date, total_units=None,
                 units_per_day=10.0, workstation_id='WS-001', status=ScheduleStatus.PLANNED):
    schedule = ProductionSchedule(
        schedule_id=schedule_id,
        product_id=product.id,
        workstation_id=workstation_id,
        start_date=start_date,
        end_date=end_date,
        units_to_produce_per_day=units_per_day,
        total_units=total_units,
        status=status,
    )
    session.add(schedule)
    session.flush()
    return schedule


TODAY = date(2024, 3, 1)
