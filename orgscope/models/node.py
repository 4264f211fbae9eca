from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

from .actor import Actor
from .levels import MAX_LEVEL, HierarchyLevel

WAREHOUSE_SECTION_PREFIX = "Capital Inventory"

MUTABLE_NODE_FIELDS = frozenset(
    {
        "name",
        "code",
        "description",
        "section_type",
        "asset_type",
        "asset_component_path",
        "asset_attributes",
    }
)
IMMUTABLE_NODE_FIELDS = frozenset({"id", "path", "level"})


@dataclass(slots=True)
class HierarchyNode:
    """One entry in the organizational tree (site, department, section, asset, ...)."""

    id: str
    path: str
    level: HierarchyLevel
    name: str
    code: str
    description: str = ""
    section_type: Optional[str] = None
    asset_type: Optional[str] = None
    asset_component_path: Optional[str] = None
    asset_attributes: Dict[str, Any] = field(default_factory=dict)
    created_by: Optional[Actor] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def parent_path(self) -> str:
        return self.path.rsplit("/", 2)[0]

    @property
    def collection_path(self) -> str:
        return self.path.rsplit("/", 1)[0]

    @property
    def children_collection(self) -> Optional[str]:
        child = self.level.next()
        return f"{self.path}/{child.collection_name}" if child is not None else None

    @property
    def is_leaf_level(self) -> bool:
        return self.level == MAX_LEVEL

    @property
    def is_warehouse(self) -> bool:
        return bool(self.section_type and self.section_type.startswith(WAREHOUSE_SECTION_PREFIX))

    @property
    def is_material(self) -> bool:
        return self.level == HierarchyLevel.ASSEMBLY

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "path": self.path,
            "level": int(self.level),
            "name": self.name,
            "code": self.code,
            "description": self.description,
            "section_type": self.section_type,
            "asset_type": self.asset_type,
            "asset_component_path": self.asset_component_path,
            "asset_attributes": dict(self.asset_attributes),
            "created_by": self.created_by.as_dict() if self.created_by else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


__all__ = [
    "HierarchyNode",
    "IMMUTABLE_NODE_FIELDS",
    "MUTABLE_NODE_FIELDS",
    "WAREHOUSE_SECTION_PREFIX",
]
