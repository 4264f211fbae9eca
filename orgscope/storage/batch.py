from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, List


class BatchOperationKind(str, Enum):
    DELETE_NODE = "delete_node"
    RELEASE_SECTIONS = "release_sections"


@dataclass(frozen=True, slots=True)
class BatchOperation:
    kind: BatchOperationKind
    key: str
    collection_path: str | None = None
    payload: Any = None


class WriteBatch:
    """Queue of writes applied by ``SQLiteOrgStore.commit_batch`` in one transaction.

    After a commit, ``released`` maps each planning group id to the section
    ids a ``release_sections`` operation removed from it.
    """

    def __init__(self) -> None:
        self._operations: List[BatchOperation] = []
        self.committed = False
        self.released: Dict[str, List[str]] = {}

    def delete_node(self, path: str) -> None:
        self._operations.append(BatchOperation(BatchOperationKind.DELETE_NODE, key=path))

    def release_sections(self, groups_collection: str, section_paths: Iterable[str]) -> None:
        """Drop claims on ``section_paths`` from every group, as stored at commit time."""

        self._operations.append(
            BatchOperation(
                BatchOperationKind.RELEASE_SECTIONS,
                key=groups_collection,
                collection_path=groups_collection,
                payload=sorted(set(section_paths)),
            )
        )

    @property
    def operations(self) -> List[BatchOperation]:
        return list(self._operations)

    def __len__(self) -> int:
        return len(self._operations)


__all__ = ["BatchOperation", "BatchOperationKind", "WriteBatch"]
