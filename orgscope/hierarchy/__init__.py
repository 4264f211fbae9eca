"""Hierarchy node addressing, repository and cascading delete."""

from .cascade import CascadingDeleteEngine, DeleteReport
from .paths import HierarchyPath, count_level_segments, parse_collection
from .repository import NodeRepository

__all__ = [
    "CascadingDeleteEngine",
    "DeleteReport",
    "HierarchyPath",
    "NodeRepository",
    "count_level_segments",
    "parse_collection",
]
