"""Business logic services."""

from .clashes import compute_clashes, summarize_clashes
from .resources import ResourceStore, Technician
from .slots import find_earliest_slot

__all__ = [
    "compute_clashes",
    "summarize_clashes",
    "find_earliest_slot",
    "ResourceStore",
    "Technician",
]
