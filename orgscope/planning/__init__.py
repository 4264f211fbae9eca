"""Planning groups and the section scope-assignment engine."""

from .repository import PLANNING_GROUPS_SUFFIX, PlanningGroupRepository, planning_groups_collection
from .scope import (
    ScopeAssignmentEngine,
    add_section,
    build_section,
    compute_forbidden_set,
    remove_section,
)

__all__ = [
    "PLANNING_GROUPS_SUFFIX",
    "PlanningGroupRepository",
    "ScopeAssignmentEngine",
    "add_section",
    "build_section",
    "compute_forbidden_set",
    "planning_groups_collection",
    "remove_section",
]
