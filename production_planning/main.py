import argparse
import sys
from datetime import date

from tabulate import tabulate

from production_planning.config import config
from production_planning.db import db, session_scope
from production_planning.exceptions import InsufficientInventoryError, PlanningError
from production_planning.logging_setup import logger, get_logger


def init_application():
    """Initialize application components."""
    db.initialize()

    log = get_logger('production_planning')
    log.info("Production Planning engine initialized")
    log.info(f"Using database: {config.get_db_url()}")

    return True


def setup_database(drop_existing=False):
    """Create the schema, optionally dropping existing tables first."""
    log = get_logger('setup')
    db.initialize()

    if drop_existing:
        log.info("Dropping existing tables")
        db.drop_all_tables()

    db.create_all_tables()
    log.info("Database schema created")


def generate_schedule(args):
    """Generate schedule proposals for open demand and print them.

    Args:
        args: Command-line arguments with generation parameters
    """
    from production_planning.core.conflicts import group_by_severity
    from production_planning.services.planning_service import PlanningService
    from production_planning.utils.validation import validate_schedule_options

    log = get_logger('schedule')

    options = validate_schedule_options(
        window_start=args.start or date.today(),
        window_end=args.end,
        shifts_per_day=args.shifts,
        resource_override=args.resource,
        priority_filter=args.priority,
        include_existing=args.include_existing,
    )
    log.info(f"Generating schedule with options: {options}")

    with session_scope() as session:
        service = PlanningService(session)
        result = service.generate_production_schedule(options, shared_cursor=not args.per_resource)

        if not result.proposals and not result.unscheduled:
            print("No open demand to schedule")
            return True

        table_data = [
            [p.product_sku or p.product_id, p.priority.value, p.total_units, p.daily_rate,
             p.start_date, p.end_date, p.resource_id, f"{p.capacity_utilization * 100:.1f}%",
             len(p.warnings)]
            for p in result.proposals
        ]
        print(tabulate(table_data, headers=['Product', 'Priority', 'Units', 'Per Day', 'Start',
                                            'End', 'Resource', 'Utilization', 'Warnings']))

        grouped = group_by_severity(result.conflicts)
        for severity, conflicts in grouped.items():
            if not conflicts:
                continue
            print(f"\n{severity.value.upper()} ({len(conflicts)})")
            for conflict in conflicts:
                print(f"  [{conflict.kind.value}] {conflict.message}")

        if result.unscheduled:
            print(f"\nNot scheduled (no usable production rate): {result.unscheduled}")

        summary = result.summary
        print(
            f"\n{summary.total_products} product(s), {summary.total_units:g} units, "
            f"average utilization {summary.average_capacity_utilization * 100:.1f}%"
        )

        if args.commit:
            schedules = service.commit_proposals(result.proposals)
            print(f"Committed {len(schedules)} schedule(s)")

    return True


def run_mrp(args):
    """Print material requirements for a schedule, or for all schedules in a status."""
    from production_planning.services.mrp_service import MRPService

    with session_scope() as session:
        service = MRPService(session)

        if args.all:
            result = service.run_for_schedules(args.status)
            print(f"Processed {result['processed']} schedule(s)")
            for error in result['errors']:
                print(f"  {error['schedule_id']}: {error['error']}")
            return not result['errors']

        if args.materialize:
            calculation = service.materialize_requirements(args.schedule_id)
        else:
            calculation = service.calculate_requirements(args.schedule_id)

        table_data = [
            [r.part_number, r.gross_requirement, r.current_stock, r.allocated_stock,
             r.net_requirement, r.planned_order_date, r.status.value, r.total_cost]
            for r in calculation['results']
        ]
        print(tabulate(table_data, headers=['Part', 'Gross', 'On Hand', 'Allocated', 'Net',
                                            'Order By', 'Status', 'Cost']))

        summary = calculation['summary']
        print(
            f"\n{summary.total_components} component(s): {summary.sufficient_count} sufficient, "
            f"{summary.shortage_count} shortage, {summary.critical_count} critical; "
            f"total cost {summary.total_cost:.2f}"
        )
        for action in summary.urgent_actions:
            print(f"  ! {action}")

    return True


def complete_production(args):
    """Consume components for a completed production run."""
    from production_planning.services.inventory_service import InventoryService

    try:
        with session_scope() as session:
            result = InventoryService(session).decrement_for_production(
                args.schedule_id, args.product_id, args.quantity
            )
            table_data = [
                [m.part_number, m.quantity, m.previous_stock, m.new_stock]
                for m in result['movements']
            ]
            print(tabulate(table_data, headers=['Part', 'Quantity', 'Previous', 'New']))
            if result['alerts']:
                print(f"\n{len(result['alerts'])} reorder alert(s) raised")
    except InsufficientInventoryError as e:
        print(str(e))
        table_data = [[s.part_number, s.required, s.available, s.shortage] for s in e.shortages]
        print(tabulate(table_data, headers=['Part', 'Required', 'Available', 'Shortage']))
        return False

    return True


def main():
    """Main application entry point."""
    parser = argparse.ArgumentParser(description='Production Planning and MRP engine')

    parser.add_argument('--setup-db', action='store_true',
                        help='Set up the database schema')
    parser.add_argument('--drop-db', action='store_true',
                        help='Drop existing tables before setup')

    subparsers = parser.add_subparsers(dest='command', help='Commands')

    schedule_parser = subparsers.add_parser('schedule', help='Generate production schedule proposals')
    schedule_parser.add_argument('--start', type=str, help='Window start date (YYYY-MM-DD), default today')
    schedule_parser.add_argument('--end', type=str, help='Window end date (YYYY-MM-DD)')
    schedule_parser.add_argument('--shifts', type=int,
                                 default=config.scheduling_config['default_shifts_per_day'],
                                 help='Shifts per day (1-3)')
    schedule_parser.add_argument('--resource', type=str, help='Place every proposal on this resource')
    schedule_parser.add_argument('--priority', type=str, choices=['high', 'medium', 'low'],
                                 help='Only schedule demand with this priority')
    schedule_parser.add_argument('--include-existing', action='store_true',
                                 help='Check proposals against committed schedules')
    schedule_parser.add_argument('--per-resource', action='store_true',
                                 help='Keep a separate timeline per resource')
    schedule_parser.add_argument('--commit', action='store_true',
                                 help='Save the proposals as planned schedules')

    mrp_parser = subparsers.add_parser('mrp', help='Calculate material requirements')
    mrp_parser.add_argument('schedule_id', nargs='?', help='Schedule ID')
    mrp_parser.add_argument('--materialize', action='store_true',
                            help='Store requirements and raise shortage alerts')
    mrp_parser.add_argument('--all', action='store_true',
                            help='Materialize requirements for every schedule with --status')
    mrp_parser.add_argument('--status', type=str, default='planned',
                            help='Schedule status used with --all')

    complete_parser = subparsers.add_parser('complete', help='Consume components for completed production')
    complete_parser.add_argument('schedule_id', help='Schedule ID')
    complete_parser.add_argument('product_id', type=int, help='Product ID')
    complete_parser.add_argument('quantity', type=float, help='Units produced')

    args = parser.parse_args()

    if args.setup_db:
        setup_database(args.drop_db)
        return 0

    init_application()

    if args.command == 'mrp' and not args.all and not args.schedule_id:
        parser.error('mrp requires a schedule_id or --all')

    commands = {
        'schedule': generate_schedule,
        'mrp': run_mrp,
        'complete': complete_production,
    }

    if args.command not in commands:
        parser.print_help()
        return 0

    try:
        return 0 if commands[args.command](args) else 1
    except PlanningError as e:
        logger.log_exception(args.command, e, f"{args.command} failed")
        print(f"Error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
