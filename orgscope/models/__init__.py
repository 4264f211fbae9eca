"""Domain models for the organizational hierarchy and planning groups."""

from .actor import Actor, SYSTEM_ACTOR
from .levels import LEVEL_INFO, MAX_LEVEL, SECTION_LEVEL, HierarchyLevel, LevelInfo, coerce_level
from .node import HierarchyNode
from .planning import PlanningGroup, PlanningGroupSection, ScopeDraft

__all__ = [
    "Actor",
    "SYSTEM_ACTOR",
    "HierarchyLevel",
    "HierarchyNode",
    "LEVEL_INFO",
    "LevelInfo",
    "MAX_LEVEL",
    "SECTION_LEVEL",
    "PlanningGroup",
    "PlanningGroupSection",
    "ScopeDraft",
    "coerce_level",
]
