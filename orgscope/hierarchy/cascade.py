from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from orgscope.audit import ActivityLogger
from orgscope.errors import ErrorCode, NotFoundError, ValidationError
from orgscope.models.actor import Actor
from orgscope.models.node import HierarchyNode
from orgscope.storage.batch import WriteBatch
from orgscope.storage.sqlite import SQLiteOrgStore

from .paths import HierarchyPath, parse_collection

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class DeleteReport:
    """What a successful ``delete_subtree`` removed."""

    root_path: str
    deleted_paths: List[str] = field(default_factory=list)
    released_sections: Dict[str, List[str]] = field(default_factory=dict)

    @property
    def deleted_count(self) -> int:
        return len(self.deleted_paths)


class CascadingDeleteEngine:
    """Removes a node and everything beneath it in one atomic batch.

    Discovery walks the subtree depth-first, one collection read per node,
    and finishes before anything is written. If a read fails nothing has
    been queued yet; if the commit fails the batch rolls back as a whole.
    """

    def __init__(
        self,
        store: SQLiteOrgStore,
        *,
        root: str = "org",
        groups_collection: Optional[str] = None,
        release_claims: bool = True,
        audit: Optional[ActivityLogger] = None,
    ) -> None:
        self.store = store
        self.root_path = HierarchyPath.org_root(root)
        self.groups_collection = groups_collection
        self.release_claims = release_claims and groups_collection is not None
        self.audit = audit

    async def delete_subtree(
        self,
        node: HierarchyNode,
        parent_collection_path: Optional[str] = None,
        actor: Optional[Actor] = None,
    ) -> DeleteReport:
        path = HierarchyPath.parse(node.path, str(self.root_path))
        if path.is_root:
            raise ValidationError(
                "The organization root cannot be deleted",
                error_code=ErrorCode.INVALID_PATH,
            )
        collection = parent_collection_path or path.parent_collection()
        parent, level = parse_collection(collection, str(self.root_path))
        if parent != path.parent or level != path.level:
            raise ValidationError(
                f"{node.path} does not live in collection {collection}",
                error_code=ErrorCode.INVALID_PATH,
                context={"path": node.path, "collection": collection},
            )

        existing = await asyncio.to_thread(self.store.fetch_node, str(path))
        if existing is None:
            raise NotFoundError(f"No hierarchy node at {path}", context={"path": str(path)})

        descendants = await self._discover(path)

        batch = WriteBatch()
        # Deepest first, then the node itself.
        for descendant in sorted(descendants, key=lambda item: item.depth, reverse=True):
            batch.delete_node(str(descendant))
        batch.delete_node(str(path))

        report = DeleteReport(root_path=str(path), deleted_paths=[str(item) for item in descendants] + [str(path)])
        if self.release_claims:
            batch.release_sections(self.groups_collection, report.deleted_paths)  # type: ignore[arg-type]

        await asyncio.to_thread(self.store.commit_batch, batch)
        report.released_sections = dict(batch.released)
        logger.info("Deleted %s and %d descendants", path, len(descendants))
        if self.audit is not None:
            self.audit.notify(
                "Hierarchy Node Deleted",
                actor,
                f'Deleted node "{node.name}" ({node.code}) and its children.',
            )
        return report

    async def _discover(self, path: HierarchyPath) -> List[HierarchyPath]:
        """Collect every descendant path, level by level down to the deepest level."""

        found: List[HierarchyPath] = []
        level = path.child_level
        if level is None:
            return found
        rows = await asyncio.to_thread(self.store.fetch_children, path.collection(level))
        for row in rows:
            child = path.child(row["id"])
            found.append(child)
            found.extend(await self._discover(child))
        return found


__all__ = ["CascadingDeleteEngine", "DeleteReport"]
