from .alert_service import AlertService
from .capacity_service import CapacityService
from .planning_service import PlanningService
from .mrp_service import MRPService
from .inventory_service import InventoryService

__all__ = [
    'AlertService',
    'CapacityService',
    'PlanningService',
    'MRPService',
    'InventoryService'
]
