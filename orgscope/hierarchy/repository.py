from __future__ import annotations

import asyncio
import json
import logging
import sqlite3
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

from orgscope.audit import ActivityLogger
from orgscope.errors import ErrorCode, NotFoundError, ValidationError
from orgscope.models.actor import Actor
from orgscope.models.levels import HierarchyLevel, coerce_level
from orgscope.models.node import IMMUTABLE_NODE_FIELDS, MUTABLE_NODE_FIELDS, HierarchyNode
from orgscope.storage.sqlite import SQLiteOrgStore

from .codes import compose_code, suggest_code, validate_code_suffix
from .paths import HierarchyPath, validate_node_id

logger = logging.getLogger(__name__)

_REQUIRED_TEXT_FIELDS = ("name", "code")
_OPTIONAL_TEXT_FIELDS = ("section_type", "asset_type", "asset_component_path")
_CREATION_ONLY_FIELDS = frozenset({"id", "code_suffix"})


def _row_to_node(row: sqlite3.Row) -> HierarchyNode:
    created_by = json.loads(row["created_by"]) if row["created_by"] else None
    return HierarchyNode(
        id=row["id"],
        path=row["path"],
        level=HierarchyLevel(int(row["level"])),
        name=row["name"],
        code=row["code"],
        description=row["description"] or "",
        section_type=row["section_type"],
        asset_type=row["asset_type"],
        asset_component_path=row["asset_component_path"],
        asset_attributes=json.loads(row["asset_attributes"]) if row["asset_attributes"] else {},
        created_by=Actor.from_dict(created_by),
        created_at=datetime.fromisoformat(row["created_at"]),
        updated_at=datetime.fromisoformat(row["updated_at"]),
    )


def _clean_fields(data: Mapping[str, Any], *, creating: bool) -> Dict[str, Any]:
    creation_only = _CREATION_ONLY_FIELDS if creating else frozenset()
    immutable = IMMUTABLE_NODE_FIELDS - creation_only
    touched = sorted(immutable & data.keys())
    if touched:
        raise ValidationError(
            f"Fields {touched} cannot be changed once a node exists",
            error_code=ErrorCode.IMMUTABLE_FIELD,
            context={"fields": touched},
        )
    allowed = MUTABLE_NODE_FIELDS | creation_only
    unknown = sorted(set(data.keys()) - allowed)
    if unknown:
        raise ValidationError(f"Unknown node fields: {unknown}", context={"fields": unknown})

    values: Dict[str, Any] = {}
    if creating and data.get("id") is not None:
        values["id"] = validate_node_id(data["id"])
    if creating and "code_suffix" in data:
        if "code" in data:
            raise ValidationError("Pass either 'code' or 'code_suffix', not both.", context={"field": "code"})
        if not isinstance(data["code_suffix"], str):
            raise ValidationError("Field 'code_suffix' must be a string.", context={"field": "code_suffix"})
        values["code_suffix"] = validate_code_suffix(data["code_suffix"])

    for key in _REQUIRED_TEXT_FIELDS:
        if key not in data:
            if creating and not (key == "code" and "code_suffix" in values):
                raise ValidationError(f"Field '{key}' is required.", context={"field": key})
            continue
        value = data[key]
        if not isinstance(value, str) or not value.strip():
            raise ValidationError(f"Field '{key}' must be a non-empty string.", context={"field": key})
        values[key] = value.strip()

    if "description" in data:
        description = data["description"]
        if description is not None and not isinstance(description, str):
            raise ValidationError("Field 'description' must be a string.", context={"field": "description"})
        values["description"] = (description or "").strip()

    for key in _OPTIONAL_TEXT_FIELDS:
        if key in data:
            value = data[key]
            if value is not None and not isinstance(value, str):
                raise ValidationError(f"Field '{key}' must be a string.", context={"field": key})
            values[key] = (value or "").strip() or None

    if "asset_attributes" in data:
        attributes = data["asset_attributes"]
        if attributes is not None and not isinstance(attributes, Mapping):
            raise ValidationError("Field 'asset_attributes' must be a mapping.", context={"field": "asset_attributes"})
        values["asset_attributes"] = dict(attributes or {})
    return values


class NodeRepository:
    """CRUD over hierarchy nodes addressed by ancestry path.

    Children are fetched one collection at a time (``list_children``); the
    repository never loads a whole subtree implicitly.
    """

    def __init__(
        self,
        store: SQLiteOrgStore,
        *,
        root: str = "org",
        audit: Optional[ActivityLogger] = None,
    ) -> None:
        self.store = store
        self.root_path = HierarchyPath.org_root(root)
        self.audit = audit

    @property
    def root(self) -> str:
        return str(self.root_path)

    def parse_path(self, raw: str) -> HierarchyPath:
        return HierarchyPath.parse(raw, self.root)

    # ------------------------------------------------------------------ reads
    async def get_node(self, path: str) -> HierarchyNode:
        parsed = self.parse_path(path)
        if parsed.is_root:
            raise ValidationError(
                "The organization root is not a hierarchy node",
                error_code=ErrorCode.INVALID_PATH,
                context={"path": path},
            )
        row = await asyncio.to_thread(self.store.fetch_node, str(parsed))
        if row is None:
            raise NotFoundError(f"No hierarchy node at {parsed}", context={"path": str(parsed)})
        return _row_to_node(row)

    async def list_children(self, parent_path: str, level: int) -> List[HierarchyNode]:
        """Children of ``parent_path`` in its ``level_{level}`` collection, sorted by name."""

        parent = self.parse_path(parent_path)
        await self._require_exists(parent)
        try:
            target = coerce_level(level)
        except ValidationError:
            logger.debug("No children at level %r under %s", level, parent)
            return []
        if parent.child_level != target:
            return []
        rows = await asyncio.to_thread(self.store.fetch_children, parent.collection(target))
        return [_row_to_node(row) for row in rows]

    async def list_level(self, level: int) -> List[HierarchyNode]:
        """Every node at ``level`` across the organization, sorted by name.

        Walks down from the root one level at a time; the reads for each
        level run concurrently.
        """

        target = coerce_level(level)
        frontier: List[HierarchyNode] = []
        parents = [self.root]
        for depth in range(1, int(target) + 1):
            batches = await asyncio.gather(*(self.list_children(path, depth) for path in parents))
            frontier = [node for batch in batches for node in batch]
            parents = [node.path for node in frontier]
        return sorted(frontier, key=lambda node: (node.name.lower(), node.name, node.id))

    async def suggest_code(self, parent_path: str, level: int) -> str:
        parent, target = self._check_child_level(parent_path, level)
        parent_code: Optional[str] = None
        if not parent.is_root:
            parent_code = (await self.get_node(str(parent))).code
        codes = await asyncio.to_thread(self.store.fetch_child_codes, parent.collection(target))
        return suggest_code(parent_code, codes)

    # ------------------------------------------------------------------ writes
    async def create_node(
        self,
        parent_path: str,
        level: int,
        data: Mapping[str, Any],
        actor: Optional[Actor] = None,
    ) -> HierarchyNode:
        parent, target = self._check_child_level(parent_path, level)
        values = _clean_fields(data, creating=True)
        node_id = values.pop("id", None) or uuid.uuid4().hex
        suffix = values.pop("code_suffix", None)
        if suffix is None:
            await self._require_exists(parent)
        else:
            parent_code = None if parent.is_root else (await self.get_node(str(parent))).code
            values["code"] = compose_code(parent_code, suffix)

        path = parent.child(node_id)
        now = datetime.now(timezone.utc)
        record: Dict[str, Any] = {
            "path": str(path),
            "id": node_id,
            "collection_path": parent.collection(target),
            "parent_path": str(parent),
            "level": int(target),
            "description": "",
            "section_type": None,
            "asset_type": None,
            "asset_component_path": None,
            "asset_attributes": {},
            **values,
            "created_by": actor.as_dict() if actor else None,
            "created_at": now.isoformat(),
            "updated_at": now.isoformat(),
        }
        await asyncio.to_thread(self.store.insert_node, record)
        logger.info("Created level %d node %s", int(target), path)

        node = HierarchyNode(
            id=node_id,
            path=str(path),
            level=target,
            name=record["name"],
            code=record["code"],
            description=record["description"],
            section_type=record["section_type"],
            asset_type=record["asset_type"],
            asset_component_path=record["asset_component_path"],
            asset_attributes=dict(record["asset_attributes"]),
            created_by=actor,
            created_at=now,
            updated_at=now,
        )
        self._notify(
            "Hierarchy Node Created",
            actor,
            f'Created Level {int(target)} node "{node.name}" ({node.code}) at {node.path}.',
        )
        return node

    async def update_node(
        self,
        path: str,
        partial_data: Mapping[str, Any],
        actor: Optional[Actor] = None,
    ) -> HierarchyNode:
        parsed = self.parse_path(path)
        if parsed.is_root:
            raise ValidationError(
                "The organization root is not a hierarchy node",
                error_code=ErrorCode.INVALID_PATH,
                context={"path": path},
            )
        values = _clean_fields(partial_data, creating=False)
        updated = await asyncio.to_thread(self.store.update_node, str(parsed), values)
        if not updated:
            raise NotFoundError(f"No hierarchy node at {parsed}", context={"path": str(parsed)})
        node = await self.get_node(str(parsed))
        logger.info("Updated node %s fields=%s", parsed, sorted(values))
        self._notify(
            "Hierarchy Node Updated",
            actor,
            f'Updated Level {int(node.level)} node "{node.name}" ({node.code}).',
        )
        return node

    # ------------------------------------------------------------------ helpers
    def _check_child_level(self, parent_path: str, level: int) -> tuple[HierarchyPath, HierarchyLevel]:
        parent = self.parse_path(parent_path)
        target = coerce_level(level)
        expected = parent.child_level
        if expected is None or target != expected:
            raise ValidationError(
                f"Level {int(target)} does not follow the parent's level"
                + (f"; expected {int(expected)}" if expected is not None else "; the parent is a leaf"),
                error_code=ErrorCode.INVALID_LEVEL,
                context={"parent_path": str(parent), "level": int(target)},
            )
        return parent, target

    async def _require_exists(self, path: HierarchyPath) -> None:
        if path.is_root:
            return
        row = await asyncio.to_thread(self.store.fetch_node, str(path))
        if row is None:
            raise NotFoundError(f"No hierarchy node at {path}", context={"path": str(path)})

    def _notify(self, action: str, actor: Optional[Actor], details: str) -> None:
        if self.audit is not None:
            self.audit.notify(action, actor, details)


__all__ = ["NodeRepository"]
