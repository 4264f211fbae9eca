from __future__ import annotations

import asyncio
import json
import logging
import sqlite3
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Sequence

from orgscope.audit import ActivityLogger
from orgscope.errors import ConflictError, ErrorCode, NotFoundError, ValidationError
from orgscope.hierarchy.paths import validate_root
from orgscope.models.actor import Actor
from orgscope.models.planning import PlanningGroup, PlanningGroupSection, sections_to_documents
from orgscope.storage.sqlite import SQLiteOrgStore

logger = logging.getLogger(__name__)

PLANNING_GROUPS_SUFFIX = "modules/AM/planningGroups"
_MUTABLE_GROUP_FIELDS = frozenset({"code", "name", "description"})


def planning_groups_collection(root: str) -> str:
    return f"{validate_root(root)}/{PLANNING_GROUPS_SUFFIX}"


def _row_to_group(row: sqlite3.Row) -> PlanningGroup:
    created_by = json.loads(row["created_by"]) if row["created_by"] else None
    return PlanningGroup(
        id=row["id"],
        code=row["code"],
        name=row["name"],
        description=row["description"] or "",
        assigned_sections=[
            PlanningGroupSection.from_document(item) for item in json.loads(row["assigned_sections"] or "[]")
        ],
        created_by=Actor.from_dict(created_by),
        created_at=datetime.fromisoformat(row["created_at"]),
        updated_at=datetime.fromisoformat(row["updated_at"]),
    )


def _normalize_required(value: Any, field_name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError("Name and Code are required.", context={"field": field_name})
    return value.strip().upper()


class PlanningGroupRepository:
    """CRUD over planning groups stored under ``{root}/modules/AM/planningGroups``.

    Code uniqueness is a read-then-insert pre-check, not a constraint: two
    concurrent creates with the same code can both succeed.
    """

    def __init__(
        self,
        store: SQLiteOrgStore,
        *,
        root: str = "org",
        audit: Optional[ActivityLogger] = None,
    ) -> None:
        self.store = store
        self.collection_path = planning_groups_collection(root)
        self.audit = audit

    async def list_groups(self) -> List[PlanningGroup]:
        rows = await asyncio.to_thread(self.store.fetch_groups, self.collection_path)
        return [_row_to_group(row) for row in rows]

    async def get_group(self, group_id: str) -> PlanningGroup:
        row = await asyncio.to_thread(self.store.fetch_group, self.collection_path, group_id)
        if row is None:
            raise NotFoundError(
                f"Planning group {group_id} not found",
                error_code=ErrorCode.GROUP_NOT_FOUND,
                context={"group_id": group_id},
            )
        return _row_to_group(row)

    async def find_by_code(self, code: str) -> Optional[PlanningGroup]:
        rows = await asyncio.to_thread(
            self.store.fetch_groups_by_code,
            self.collection_path,
            (code or "").strip().upper(),
        )
        return _row_to_group(rows[0]) if rows else None

    async def create_group(
        self,
        code: str,
        name: str,
        description: str = "",
        actor: Optional[Actor] = None,
    ) -> PlanningGroup:
        code = _normalize_required(code, "code")
        name = _normalize_required(name, "name")
        await self._ensure_code_free(code)

        now = datetime.now(timezone.utc)
        group = PlanningGroup(
            id=uuid.uuid4().hex,
            code=code,
            name=name,
            description=(description or "").strip(),
            assigned_sections=[],
            created_by=actor,
            created_at=now,
            updated_at=now,
        )
        await asyncio.to_thread(
            self.store.insert_group,
            {
                "id": group.id,
                "collection_path": self.collection_path,
                "code": group.code,
                "name": group.name,
                "description": group.description,
                "assigned_sections": [],
                "created_by": actor.as_dict() if actor else None,
                "created_at": now.isoformat(),
                "updated_at": now.isoformat(),
            },
        )
        logger.info("Created planning group %s (%s)", group.code, group.id)
        self._notify("Planning Group Created", actor, f'Created planning group "{group.name}" ({group.code}).')
        return group

    async def update_group(
        self,
        group_id: str,
        partial_data: Mapping[str, Any],
        actor: Optional[Actor] = None,
    ) -> PlanningGroup:
        unknown = sorted(set(partial_data.keys()) - _MUTABLE_GROUP_FIELDS)
        if unknown:
            raise ValidationError(f"Unknown or immutable group fields: {unknown}", context={"fields": unknown})

        current = await self.get_group(group_id)
        values: Dict[str, Any] = {}
        if "code" in partial_data:
            values["code"] = _normalize_required(partial_data["code"], "code")
            if values["code"] != current.code:
                await self._ensure_code_free(values["code"])
        if "name" in partial_data:
            values["name"] = _normalize_required(partial_data["name"], "name")
        if "description" in partial_data:
            values["description"] = (partial_data["description"] or "").strip()
        if values:
            updated = await asyncio.to_thread(self.store.update_group, self.collection_path, group_id, values)
            if not updated:
                raise NotFoundError(
                    f"Planning group {group_id} not found",
                    error_code=ErrorCode.GROUP_NOT_FOUND,
                    context={"group_id": group_id},
                )
        group = await self.get_group(group_id)
        self._notify("Planning Group Updated", actor, f'Updated planning group "{group.name}" ({group.code}).')
        return group

    async def delete_group(self, group_id: str, actor: Optional[Actor] = None) -> PlanningGroup:
        """Delete a group; its sections become available to other groups."""

        group = await self.get_group(group_id)
        deleted = await asyncio.to_thread(self.store.delete_group, self.collection_path, group_id)
        if not deleted:
            raise NotFoundError(
                f"Planning group {group_id} not found",
                error_code=ErrorCode.GROUP_NOT_FOUND,
                context={"group_id": group_id},
            )
        logger.info("Deleted planning group %s, released %d sections", group.code, group.section_count)
        self._notify("Planning Group Deleted", actor, f'Deleted planning group "{group.name}" ({group.code}).')
        return group

    async def replace_sections(self, group_id: str, sections: Sequence[PlanningGroupSection]) -> None:
        """Unchecked overwrite of a group's sections."""

        updated = await asyncio.to_thread(
            self.store.replace_sections,
            self.collection_path,
            group_id,
            sections_to_documents(sections),
        )
        if not updated:
            raise NotFoundError(
                f"Planning group {group_id} not found",
                error_code=ErrorCode.GROUP_NOT_FOUND,
                context={"group_id": group_id},
            )

    async def replace_sections_checked(self, group_id: str, sections: Sequence[PlanningGroupSection]) -> None:
        """Overwrite a group's sections, refusing any already claimed elsewhere."""

        await asyncio.to_thread(
            self.store.replace_sections_checked,
            self.collection_path,
            group_id,
            sections_to_documents(sections),
        )

    async def _ensure_code_free(self, code: str) -> None:
        existing = await self.find_by_code(code)
        if existing is not None:
            raise ConflictError(
                f"Group with code {code} already exists.",
                error_code=ErrorCode.DUPLICATE_GROUP_CODE,
                context={"code": code, "group_id": existing.id},
            )

    def _notify(self, action: str, actor: Optional[Actor], details: str) -> None:
        if self.audit is not None:
            self.audit.notify(action, actor, details)


__all__ = ["PlanningGroupRepository", "PLANNING_GROUPS_SUFFIX", "planning_groups_collection"]
