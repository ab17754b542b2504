# production_planning/services/planning_service.py
from datetime import date
from typing import List, Optional, Sequence, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from production_planning.core.conflicts import CommittedSchedule, Conflict, detect_conflicts
from production_planning.core.demand import RawDemand, aggregate_demand
from production_planning.core.scheduling import (
    GenerationResult, ResourceTimeline, ScheduleOptions, ScheduleProposal,
    balance_resource_allocation, find_unscheduled, generate_schedule_proposals, summarize_generation
)
from production_planning.exceptions import InfrastructureError, ValidationError
from production_planning.logging_setup import get_logger
from production_planning.models import Priority, Product, ProductionSchedule, SalesOrder, ScheduleStatus
from production_planning.services.capacity_service import CapacityService
from production_planning.utils.validation import validate_raw_demand

logger = get_logger(__name__)

OPEN_ORDER_STATUSES = ('pending', 'confirmed')


class PlanningService:
    """Service for turning open demand into production schedule proposals."""

    def __init__(self, session: Session):
        """Initialize the planning service.

        Args:
            session: Database session
        """
        self.session = session
        self.capacity_service = CapacityService(session)

    def get_demand(
        self,
        window_start: date,
        window_end: Optional[date] = None,
        priority: Optional[Priority] = None
    ) -> List[RawDemand]:
        """Load open sales orders due inside a window as validated demand records.

        Args:
            window_start: First due date to include
            window_end: Last due date to include, unbounded when None
            priority: Optional priority filter

        Returns:
            List of RawDemand
        """
        try:
            query = self.session.query(SalesOrder, Product).join(
                Product, SalesOrder.product_id == Product.id
            ).filter(
                SalesOrder.time_period >= window_start,
                SalesOrder.status.in_(OPEN_ORDER_STATUSES)
            )

            if window_end is not None:
                query = query.filter(SalesOrder.time_period <= window_end)
            if priority is not None:
                query = query.filter(SalesOrder.priority == priority)

            rows = query.order_by(SalesOrder.time_period, SalesOrder.id).all()
        except SQLAlchemyError as e:
            raise InfrastructureError(f"Failed to load sales orders: {str(e)}")

        return [
            validate_raw_demand({
                'order_id': order.order_id,
                'product_id': order.product_id,
                'quantity': order.forecasted_units,
                'due_date': order.time_period,
                'priority': order.priority or Priority.MEDIUM,
                'product_sku': product.sku,
                'product_name': product.name,
            })
            for order, product in rows
        ]

    def get_committed_schedules(
        self,
        window_start: date,
        window_end: Optional[date] = None
    ) -> List[CommittedSchedule]:
        """Committed schedules still holding a resource whose dates intersect the window."""
        try:
            query = self.session.query(ProductionSchedule, Product).join(
                Product, ProductionSchedule.product_id == Product.id
            ).filter(
                ProductionSchedule.status.in_(ScheduleStatus.ACTIVE),
                ProductionSchedule.end_date >= window_start
            )

            if window_end is not None:
                query = query.filter(ProductionSchedule.start_date <= window_end)

            rows = query.order_by(ProductionSchedule.start_date, ProductionSchedule.id).all()
        except SQLAlchemyError as e:
            raise InfrastructureError(f"Failed to load committed schedules: {str(e)}")

        return [
            CommittedSchedule(
                schedule_id=schedule.schedule_id,
                product_key=product.sku or str(product.id),
                resource_id=schedule.workstation_id,
                start_date=schedule.start_date,
                end_date=schedule.end_date,
            )
            for schedule, product in rows
        ]

    def detect_conflicts(
        self,
        proposals: Sequence[ScheduleProposal],
        consider_existing: bool = False,
        window: Optional[Tuple[date, date]] = None
    ) -> List[Conflict]:
        """Detect conflicts among proposals and, optionally, against committed schedules.

        Args:
            proposals: Proposals to check
            consider_existing: Also check against committed schedules
            window: Date range for committed schedules; defaults to the
                span of the proposals

        Returns:
            List of conflicts
        """
        committed = None
        if consider_existing and proposals:
            if window is None:
                window = (
                    min(p.start_date for p in proposals),
                    max(p.end_date for p in proposals)
                )
            committed = self.get_committed_schedules(*window)

        return detect_conflicts(proposals, committed)

    def generate_production_schedule(
        self,
        options: ScheduleOptions,
        shared_cursor: bool = True,
        today: Optional[date] = None
    ) -> GenerationResult:
        """Generate schedule proposals for open demand in the options' window.

        Args:
            options: Generation options
            shared_cursor: Serialize proposals on one cursor (see
                generate_schedule_proposals)
            today: Reference date for the capability lookback window

        Returns:
            GenerationResult with proposals, conflicts and summary
        """
        options.validate()

        raw_demand = self.get_demand(options.window_start, options.window_end, options.priority_filter)
        demands = aggregate_demand(raw_demand)

        if not demands:
            logger.info(f"No open demand from {options.window_start}; nothing to schedule")
            return GenerationResult()

        capabilities = self.capacity_service.get_capabilities([d.product_id for d in demands], today=today)

        timeline = ResourceTimeline()
        committed = None
        if options.include_existing:
            committed = self.get_committed_schedules(options.window_start, options.window_end)
            for schedule in committed:
                timeline.book(schedule.resource_id, schedule.start_date, schedule.end_date)

        proposals = generate_schedule_proposals(
            demands, capabilities, options, timeline=timeline, shared_cursor=shared_cursor
        )
        conflicts = detect_conflicts(proposals, committed)
        unscheduled = find_unscheduled(demands, proposals)

        logger.info(
            f"Generated {len(proposals)} proposal(s) for {len(demands)} product(s) "
            f"with {len(conflicts)} conflict(s)"
        )
        if unscheduled:
            logger.warning(f"No proposal for product(s) {unscheduled}: no usable production rate")

        return GenerationResult(
            proposals=proposals,
            conflicts=conflicts,
            summary=summarize_generation(proposals, conflicts, unscheduled),
            unscheduled=unscheduled,
        )

    def list_resources(self) -> List[str]:
        """Distinct resource ids used by existing schedules."""
        try:
            rows = self.session.query(ProductionSchedule.workstation_id).distinct().order_by(
                ProductionSchedule.workstation_id
            ).all()
        except SQLAlchemyError as e:
            raise InfrastructureError(f"Failed to load resources: {str(e)}")

        return [row[0] for row in rows if row[0]]

    def optimize_resource_allocation(self, proposals: Sequence[ScheduleProposal]) -> List[ScheduleProposal]:
        return balance_resource_allocation(proposals, self.list_resources())

    def commit_proposals(
        self,
        proposals: Sequence[ScheduleProposal],
        status: str = ScheduleStatus.PLANNED
    ) -> List[ProductionSchedule]:
        """Persist proposals as production schedules.

        Args:
            proposals: Proposals to commit
            status: Initial schedule status

        Returns:
            Created schedules
        """
        if status not in ScheduleStatus.ACTIVE:
            raise ValidationError(f"Cannot commit proposals with status {status}")

        schedules = []
        try:
            for proposal in proposals:
                schedule = ProductionSchedule(
                    schedule_id=self._next_schedule_id(proposal),
                    product_id=proposal.product_id,
                    workstation_id=proposal.resource_id,
                    start_date=proposal.start_date,
                    end_date=proposal.end_date,
                    units_to_produce_per_day=proposal.daily_rate,
                    total_units=proposal.total_units,
                    shift_number=proposal.shift_number,
                    status=status,
                )
                self.session.add(schedule)
                self.session.flush()
                schedules.append(schedule)

            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise InfrastructureError(f"Failed to commit schedule proposals: {str(e)}")

        for schedule in schedules:
            logger.info(
                f"Committed schedule {schedule.schedule_id} on {schedule.workstation_id} "
                f"({schedule.start_date} to {schedule.end_date})"
            )

        return schedules

    def _next_schedule_id(self, proposal: ScheduleProposal) -> str:
        prefix = f"PS-{proposal.start_date.strftime('%Y%m%d')}-{proposal.product_id}"
        count = self.session.query(ProductionSchedule).filter(
            ProductionSchedule.schedule_id.like(f"{prefix}%")
        ).count()
        return f"{prefix}-{count + 1}"
