"""Domain models and data access layer."""

from .models import (
    Clash,
    OpsTask,
    PlanSnapshot,
    Priority,
    SchedulerPolicy,
    Slot,
    WorkOrder,
    WorkOrderStatus,
    WorkOrderType,
)
from .mutations import parse_mutation, parse_mutations
from .records import Base
from .repositories import (
    DatabaseManager,
    FleetDataProvider,
    OpsTaskRepository,
    PlanRepository,
    WorkOrderRepository,
)

__all__ = [
    "Clash",
    "OpsTask",
    "PlanSnapshot",
    "Priority",
    "SchedulerPolicy",
    "Slot",
    "WorkOrder",
    "WorkOrderStatus",
    "WorkOrderType",
    "parse_mutation",
    "parse_mutations",
    "Base",
    "DatabaseManager",
    "FleetDataProvider",
    "OpsTaskRepository",
    "PlanRepository",
    "WorkOrderRepository",
]
