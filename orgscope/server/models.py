from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List

from pydantic import BaseModel, Field

from orgscope.audit import ActivityEntry
from orgscope.hierarchy.cascade import DeleteReport
from orgscope.models.levels import LEVEL_INFO
from orgscope.models.node import HierarchyNode
from orgscope.models.planning import PlanningGroup, PlanningGroupSection


class ActorModel(BaseModel):
    uid: str
    email: str | None = None


class LevelModel(BaseModel):
    level: int
    name: str
    description: str
    collection: str


class NodeModel(BaseModel):
    id: str
    path: str
    level: int
    name: str
    code: str
    description: str = ""
    section_type: str | None = None
    asset_type: str | None = None
    asset_component_path: str | None = None
    asset_attributes: Dict[str, Any] = Field(default_factory=dict)
    is_warehouse: bool = False
    is_material: bool = False
    created_by: ActorModel | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_node(cls, node: HierarchyNode) -> "NodeModel":
        return cls(
            **node.to_dict(),
            is_warehouse=node.is_warehouse,
            is_material=node.is_material,
        )


class NodeListResponse(BaseModel):
    items: List[NodeModel]


class NodeCreate(BaseModel):
    """Client payload for adding a child node under ``parent_path``.

    Send either a full ``code`` or a ``code_suffix`` appended to the parent's code.
    """

    parent_path: str = Field(min_length=1)
    level: int
    name: str
    code: str | None = None
    code_suffix: str | None = None
    id: str | None = None
    description: str | None = None
    section_type: str | None = None
    asset_type: str | None = None
    asset_component_path: str | None = None
    asset_attributes: Dict[str, Any] | None = None

    def node_data(self) -> Dict[str, Any]:
        return self.model_dump(exclude={"parent_path", "level"}, exclude_none=True)


class NodeUpdate(BaseModel):
    """Partial update; unknown or immutable keys pass through and are rejected downstream."""

    model_config = {"extra": "allow"}

    name: str | None = None
    code: str | None = None
    description: str | None = None
    section_type: str | None = None
    asset_type: str | None = None
    asset_component_path: str | None = None
    asset_attributes: Dict[str, Any] | None = None

    def changes(self) -> Dict[str, Any]:
        return {**self.model_dump(exclude_unset=True), **(self.model_extra or {})}


class CodeSuggestion(BaseModel):
    parent_path: str
    level: int
    code: str


class DeleteResponse(BaseModel):
    root_path: str
    deleted_count: int
    deleted_paths: List[str]
    released_sections: Dict[str, List[str]] = Field(default_factory=dict)

    @classmethod
    def from_report(cls, report: DeleteReport) -> "DeleteResponse":
        return cls(
            root_path=report.root_path,
            deleted_count=report.deleted_count,
            deleted_paths=list(report.deleted_paths),
            released_sections={key: list(value) for key, value in report.released_sections.items()},
        )


class SectionModel(BaseModel):
    l3_id: str
    l3_name: str
    l4_id: str
    l4_name: str
    l5_id: str
    l5_name: str
    path: str

    @classmethod
    def from_section(cls, section: PlanningGroupSection) -> "SectionModel":
        return cls(
            l3_id=section.l3_id,
            l3_name=section.l3_name,
            l4_id=section.l4_id,
            l4_name=section.l4_name,
            l5_id=section.l5_id,
            l5_name=section.l5_name,
            path=section.path,
        )


class GroupModel(BaseModel):
    id: str
    code: str
    name: str
    description: str = ""
    assigned_sections: List[SectionModel] = Field(default_factory=list)
    section_count: int = 0
    created_by: ActorModel | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_group(cls, group: PlanningGroup) -> "GroupModel":
        return cls(
            id=group.id,
            code=group.code,
            name=group.name,
            description=group.description,
            assigned_sections=[SectionModel.from_section(item) for item in group.assigned_sections],
            section_count=group.section_count,
            created_by=ActorModel(**group.created_by.as_dict()) if group.created_by else None,
            created_at=group.created_at,
            updated_at=group.updated_at,
        )


class GroupListResponse(BaseModel):
    items: List[GroupModel]


class GroupCreate(BaseModel):
    code: str
    name: str
    description: str = ""


class GroupUpdate(BaseModel):
    code: str | None = None
    name: str | None = None
    description: str | None = None

    def changes(self) -> Dict[str, Any]:
        return self.model_dump(exclude_unset=True)


class ScopeUpdate(BaseModel):
    """Full replacement list of section paths for a planning group."""

    section_paths: List[str] = Field(default_factory=list)


class ForbiddenSections(BaseModel):
    group_id: str
    section_ids: List[str]


class ActivityModel(BaseModel):
    id: int
    action: str
    performed_by: ActorModel | None = None
    details: str
    timestamp: datetime

    @classmethod
    def from_entry(cls, entry: ActivityEntry) -> "ActivityModel":
        return cls(
            id=entry.id,
            action=entry.action,
            performed_by=ActorModel(**entry.performed_by.as_dict()) if entry.performed_by else None,
            details=entry.details,
            timestamp=entry.timestamp,
        )


class ActivityListResponse(BaseModel):
    items: List[ActivityModel]


def level_models() -> List[LevelModel]:
    return [
        LevelModel(level=int(level), name=info.name, description=info.description, collection=level.collection_name)
        for level, info in sorted(LEVEL_INFO.items())
    ]


__all__ = [
    "ActivityListResponse",
    "ActivityModel",
    "ActorModel",
    "CodeSuggestion",
    "DeleteResponse",
    "ForbiddenSections",
    "GroupCreate",
    "GroupListResponse",
    "GroupModel",
    "GroupUpdate",
    "LevelModel",
    "NodeCreate",
    "NodeListResponse",
    "NodeModel",
    "NodeUpdate",
    "ScopeUpdate",
    "SectionModel",
    "level_models",
]
