"""Planning engine: policy proposals, mutations and plan history."""

from .history import PlanDelta, PlanHistory
from .mutate import MutationResult, apply_mutations_to_plan
from .policy import propose_schedule
from .reports import ReportQuery, build_report

__all__ = [
    "propose_schedule",
    "apply_mutations_to_plan",
    "MutationResult",
    "PlanHistory",
    "PlanDelta",
    "ReportQuery",
    "build_report",
]
