"""Organizational hierarchy store and planning-group scope engine."""

from .models.node import HierarchyNode
from .models.planning import PlanningGroup, PlanningGroupSection, ScopeDraft

__all__ = ["HierarchyNode", "PlanningGroup", "PlanningGroupSection", "ScopeDraft"]
