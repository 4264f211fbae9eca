"""
Ancestry paths for the organizational hierarchy.

A node's path encodes its full ancestor chain as alternating collection and
id segments below the organization root::

    org/level_1/A/level_2/B/level_3/C

The path doubles as the node's identity and as the prefix of its children's
collection (``{path}/level_{k+1}``). Paths are only ever built through
``HierarchyPath`` so a malformed chain can never be produced.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Optional, Tuple

from orgscope.errors import ErrorCode, ValidationError
from orgscope.models.levels import MAX_LEVEL, HierarchyLevel

_COLLECTION_PATTERN = re.compile(r"^level_(\d+)$")
_NODE_ID_PATTERN = re.compile(r"^[^/\s][^/]{0,127}$")


def validate_node_id(node_id: str) -> str:
    """Return node_id unchanged if usable as a path segment."""

    if not isinstance(node_id, str) or not _NODE_ID_PATTERN.match(node_id) or node_id != node_id.strip():
        raise ValidationError(
            "Node id must be 1-128 characters without '/' or surrounding whitespace",
            error_code=ErrorCode.INVALID_PATH,
            context={"id": node_id},
        )
    if _COLLECTION_PATTERN.match(node_id):
        raise ValidationError(
            f"Node id '{node_id}' collides with a collection name",
            error_code=ErrorCode.INVALID_PATH,
            context={"id": node_id},
        )
    return node_id


def validate_root(root: str) -> str:
    cleaned = (root or "").strip()
    if not cleaned or cleaned.startswith("/") or cleaned.endswith("/") or "//" in cleaned:
        raise ValidationError(
            f"Invalid organization root '{root}'",
            error_code=ErrorCode.INVALID_PATH,
        )
    if any(_COLLECTION_PATTERN.match(part) for part in cleaned.split("/")):
        raise ValidationError(
            f"Organization root '{root}' must not contain level collections",
            error_code=ErrorCode.INVALID_PATH,
        )
    return cleaned


@dataclass(frozen=True, slots=True)
class HierarchyPath:
    """Typed ancestry address: the org root plus one ``(level, id)`` pair per ancestor."""

    root: str
    segments: Tuple[Tuple[HierarchyLevel, str], ...] = ()

    @classmethod
    def org_root(cls, root: str) -> "HierarchyPath":
        return cls(root=validate_root(root))

    @classmethod
    def parse(cls, raw: str, root: str) -> "HierarchyPath":
        """Parse a path string, checking that levels run 1..k without gaps."""

        root = validate_root(root)
        text = (raw or "").strip().rstrip("/")
        if text == root:
            return cls(root=root)
        prefix = f"{root}/"
        if not text.startswith(prefix):
            raise ValidationError(
                f"Path '{raw}' is not under the organization root '{root}'",
                error_code=ErrorCode.INVALID_PATH,
                context={"path": raw},
            )

        parts = text[len(prefix):].split("/")
        if len(parts) % 2 != 0:
            raise ValidationError(
                f"Path '{raw}' does not address a node",
                error_code=ErrorCode.INVALID_PATH,
                context={"path": raw},
            )

        segments: List[Tuple[HierarchyLevel, str]] = []
        for index in range(0, len(parts), 2):
            expected = index // 2 + 1
            match = _COLLECTION_PATTERN.match(parts[index])
            if match is None or int(match.group(1)) != expected or expected > int(MAX_LEVEL):
                raise ValidationError(
                    f"Path '{raw}' has an unexpected segment '{parts[index]}' at depth {expected}",
                    error_code=ErrorCode.INVALID_PATH,
                    context={"path": raw},
                )
            segments.append((HierarchyLevel(expected), validate_node_id(parts[index + 1])))
        return cls(root=root, segments=tuple(segments))

    # ------------------------------------------------------------------ properties
    @property
    def is_root(self) -> bool:
        return not self.segments

    @property
    def level(self) -> Optional[HierarchyLevel]:
        return self.segments[-1][0] if self.segments else None

    @property
    def depth(self) -> int:
        return len(self.segments)

    @property
    def node_id(self) -> Optional[str]:
        return self.segments[-1][1] if self.segments else None

    @property
    def parent(self) -> Optional["HierarchyPath"]:
        if not self.segments:
            return None
        return HierarchyPath(root=self.root, segments=self.segments[:-1])

    @property
    def child_level(self) -> Optional[HierarchyLevel]:
        if not self.segments:
            return HierarchyLevel.COUNTRY_REGION
        return self.segments[-1][0].next()

    # ------------------------------------------------------------------ builders
    def child(self, node_id: str) -> "HierarchyPath":
        level = self.child_level
        if level is None:
            raise ValidationError(
                f"Nodes at level {int(MAX_LEVEL)} cannot have children",
                error_code=ErrorCode.INVALID_LEVEL,
                context={"path": str(self)},
            )
        return HierarchyPath(root=self.root, segments=self.segments + ((level, validate_node_id(node_id)),))

    def collection(self, level: HierarchyLevel) -> str:
        """Address of the collection holding this path's children at ``level``."""

        return f"{self}/{level.collection_name}"

    def children_collection(self) -> Optional[str]:
        level = self.child_level
        return self.collection(level) if level is not None else None

    def parent_collection(self) -> Optional[str]:
        if not self.segments:
            return None
        return self.parent.collection(self.segments[-1][0])  # type: ignore[union-attr]

    def ancestors(self) -> List["HierarchyPath"]:
        """Node paths from level 1 down to the immediate parent."""

        return [
            HierarchyPath(root=self.root, segments=self.segments[:size])
            for size in range(1, len(self.segments))
        ]

    def is_ancestor_of(self, other: "HierarchyPath") -> bool:
        if self.root != other.root or len(self.segments) >= len(other.segments):
            return False
        return other.segments[: len(self.segments)] == self.segments

    def __str__(self) -> str:
        parts = [self.root]
        for level, node_id in self.segments:
            parts.append(level.collection_name)
            parts.append(node_id)
        return "/".join(parts)


def parse_collection(raw: str, root: str) -> Tuple[HierarchyPath, HierarchyLevel]:
    """Split ``{parent}/level_k`` into the parent path and level k."""

    text = (raw or "").strip().rstrip("/")
    head, _, tail = text.rpartition("/")
    match = _COLLECTION_PATTERN.match(tail)
    if not head or match is None:
        raise ValidationError(
            f"'{raw}' is not a hierarchy collection address",
            error_code=ErrorCode.INVALID_PATH,
            context={"collection": raw},
        )
    parent = HierarchyPath.parse(head, root)
    if parent.child_level is None or int(match.group(1)) != int(parent.child_level):
        raise ValidationError(
            f"Collection '{raw}' does not match its parent's level",
            error_code=ErrorCode.INVALID_LEVEL,
            context={"collection": raw},
        )
    return parent, parent.child_level


def count_level_segments(path: str) -> int:
    """Number of ``level_k`` collection segments in a raw path string."""

    return sum(1 for part in path.split("/") if _COLLECTION_PATTERN.match(part))


__all__ = [
    "HierarchyPath",
    "count_level_segments",
    "parse_collection",
    "validate_node_id",
    "validate_root",
]
