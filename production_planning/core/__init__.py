from .capacity import (
    ThroughputSample, Capability, default_capability,
    most_common_resource, estimate_capability_from_samples
)
from .demand import RawDemand, Demand, priority_weight, aggregate_demand
from .scheduling import (
    ScheduleOptions, ScheduleProposal, ResourceTimeline,
    GenerationSummary, GenerationResult, sort_demands,
    generate_schedule_proposals, calculate_production_days,
    check_capacity_constraints, balance_resource_allocation,
    summarize_generation, find_unscheduled
)
from .conflicts import (
    ConflictKind, Conflict, CommittedSchedule, dates_overlap,
    detect_resource_overlaps, detect_capacity_issues,
    detect_existing_schedule_conflicts, detect_conflicts, group_by_severity
)
from .mrp import (
    RequirementStatus, ComponentStock, ComponentRequirement, RequirementSummary,
    calculate_net_requirement, calculate_eoq, calculate_safety_stock,
    calculate_component_requirement, summarize_requirements
)
from .inventory import (
    ComponentUsage, Consumption, ComponentShortage, plan_consumption,
    crossed_reorder_point, estimate_daily_usage, calculate_reorder_quantity
)

__all__ = [
    'ThroughputSample',
    'Capability',
    'default_capability',
    'most_common_resource',
    'estimate_capability_from_samples',
    'RawDemand',
    'Demand',
    'priority_weight',
    'aggregate_demand',
    'ScheduleOptions',
    'ScheduleProposal',
    'ResourceTimeline',
    'GenerationSummary',
    'GenerationResult',
    'sort_demands',
    'generate_schedule_proposals',
    'calculate_production_days',
    'check_capacity_constraints',
    'balance_resource_allocation',
    'summarize_generation',
    'find_unscheduled',
    'ConflictKind',
    'Conflict',
    'CommittedSchedule',
    'dates_overlap',
    'detect_resource_overlaps',
    'detect_capacity_issues',
    'detect_existing_schedule_conflicts',
    'detect_conflicts',
    'group_by_severity',
    'RequirementStatus',
    'ComponentStock',
    'ComponentRequirement',
    'RequirementSummary',
    'calculate_net_requirement',
    'calculate_eoq',
    'calculate_safety_stock',
    'calculate_component_requirement',
    'summarize_requirements',
    'ComponentUsage',
    'Consumption',
    'ComponentShortage',
    'plan_consumption',
    'crossed_reorder_point',
    'estimate_daily_usage',
    'calculate_reorder_quantity'
]
