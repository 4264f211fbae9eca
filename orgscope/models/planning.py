from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Set

from .actor import Actor


@dataclass(frozen=True, slots=True)
class PlanningGroupSection:
    """Denormalized reference to a level-5 section plus its site and department names."""

    l3_id: str
    l3_name: str
    l4_id: str
    l4_name: str
    l5_id: str
    l5_name: str
    path: str

    def to_document(self) -> Dict[str, str]:
        return {
            "l3Id": self.l3_id,
            "l3Name": self.l3_name,
            "l4Id": self.l4_id,
            "l4Name": self.l4_name,
            "l5Id": self.l5_id,
            "l5Name": self.l5_name,
            "path": self.path,
        }

    @classmethod
    def from_document(cls, raw: Dict[str, Any]) -> "PlanningGroupSection":
        return cls(
            l3_id=str(raw["l3Id"]),
            l3_name=str(raw.get("l3Name", "")),
            l4_id=str(raw["l4Id"]),
            l4_name=str(raw.get("l4Name", "")),
            l5_id=str(raw["l5Id"]),
            l5_name=str(raw.get("l5Name", "")),
            path=str(raw.get("path", "")),
        )


@dataclass(slots=True)
class PlanningGroup:
    """A named set of sections grouped for maintenance planning."""

    id: str
    code: str
    name: str
    description: str = ""
    assigned_sections: List[PlanningGroupSection] = field(default_factory=list)
    created_by: Optional[Actor] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def section_ids(self) -> Set[str]:
        return {section.l5_id for section in self.assigned_sections}

    @property
    def section_count(self) -> int:
        return len(self.assigned_sections)


@dataclass(slots=True)
class ScopeDraft:
    """Caller-owned, unsaved edit of one group's assigned sections."""

    group_id: str
    assigned_sections: List[PlanningGroupSection] = field(default_factory=list)

    @classmethod
    def from_group(cls, group: PlanningGroup) -> "ScopeDraft":
        return cls(group_id=group.id, assigned_sections=list(group.assigned_sections))

    def section_ids(self) -> Set[str]:
        return {section.l5_id for section in self.assigned_sections}

    def contains(self, l5_id: str) -> bool:
        return any(section.l5_id == l5_id for section in self.assigned_sections)


def sections_to_documents(sections: Iterable[PlanningGroupSection]) -> List[Dict[str, str]]:
    return [section.to_document() for section in sections]


__all__ = [
    "PlanningGroup",
    "PlanningGroupSection",
    "ScopeDraft",
    "sections_to_documents",
]
