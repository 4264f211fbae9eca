from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Set

from orgscope.errors import ValidationError
from orgscope.hierarchy.cascade import CascadingDeleteEngine, DeleteReport
from orgscope.hierarchy.repository import NodeRepository
from orgscope.models.actor import Actor
from orgscope.models.levels import MAX_LEVEL, HierarchyLevel, coerce_level
from orgscope.models.node import HierarchyNode

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class TreeState:
    """Expansion state owned by one view; the repositories keep none."""

    roots: List[HierarchyNode] = field(default_factory=list)
    expanded: Set[str] = field(default_factory=set)
    children: Dict[str, List[HierarchyNode]] = field(default_factory=dict)
    pending_delete: Optional[str] = None
    loaded: bool = False


@dataclass(frozen=True, slots=True)
class TreeAction:
    kind: str
    label: str
    target_path: str
    level: Optional[int] = None


@dataclass(slots=True)
class TreeItem:
    node: HierarchyNode
    expandable: bool
    expanded: bool
    actions: List[TreeAction] = field(default_factory=list)
    children: List["TreeItem"] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "node": self.node.to_dict(),
            "expandable": self.expandable,
            "expanded": self.expanded,
            "actions": [
                {"kind": action.kind, "label": action.label, "target_path": action.target_path, "level": action.level}
                for action in self.actions
            ],
            "children": [child.to_dict() for child in self.children],
        }


class HierarchyTreeAdapter:
    """Lazy, level-by-level tree built from ``NodeRepository.list_children`` calls."""

    def __init__(
        self,
        nodes: NodeRepository,
        cascade: CascadingDeleteEngine,
        *,
        max_level: int = MAX_LEVEL,
        read_only: bool = False,
    ) -> None:
        self.nodes = nodes
        self.cascade = cascade
        self.max_level = coerce_level(max_level)
        self.read_only = read_only

    async def load_roots(self, state: TreeState) -> List[HierarchyNode]:
        state.roots = await self.nodes.list_children(self.nodes.root, HierarchyLevel.COUNTRY_REGION)
        state.loaded = True
        return state.roots

    async def expand(self, state: TreeState, path: str) -> List[HierarchyNode]:
        parsed = self.nodes.parse_path(path)
        child_level = parsed.child_level
        if child_level is None or child_level > self.max_level:
            return []
        children = await self.nodes.list_children(str(parsed), child_level)
        state.children[str(parsed)] = children
        state.expanded.add(str(parsed))
        return children

    def collapse(self, state: TreeState, path: str) -> None:
        state.expanded.discard(path)

    async def toggle(self, state: TreeState, path: str) -> bool:
        """Flip a node's expansion; returns True when it ends up expanded."""

        if path in state.expanded:
            self.collapse(state, path)
            return False
        await self.expand(state, path)
        return path in state.expanded

    async def refresh(self, state: TreeState, path: Optional[str] = None) -> None:
        if path is None or path == self.nodes.root:
            await self.load_roots(state)
            return
        if path in state.expanded:
            await self.expand(state, path)

    # ------------------------------------------------------------------ mutations
    async def add_child(
        self,
        state: TreeState,
        parent_path: str,
        data: Mapping[str, Any],
        actor: Optional[Actor] = None,
    ) -> HierarchyNode:
        self._ensure_writable()
        parsed = self.nodes.parse_path(parent_path)
        level = parsed.child_level
        if level is None or level > self.max_level:
            raise ValidationError(f"Nodes below {parent_path} are not shown in this view")
        node = await self.nodes.create_node(str(parsed), level, data, actor)
        await self.refresh(state, str(parsed) if not parsed.is_root else None)
        return node

    async def edit(
        self,
        state: TreeState,
        path: str,
        data: Mapping[str, Any],
        actor: Optional[Actor] = None,
    ) -> HierarchyNode:
        self._ensure_writable()
        node = await self.nodes.update_node(path, data, actor)
        parent = self.nodes.parse_path(node.path).parent
        await self.refresh(state, str(parent) if parent is not None and not parent.is_root else None)
        return node

    def request_delete(self, state: TreeState, path: str) -> None:
        self._ensure_writable()
        state.pending_delete = path

    def cancel_delete(self, state: TreeState) -> None:
        state.pending_delete = None

    async def confirm_delete(self, state: TreeState, path: str, actor: Optional[Actor] = None) -> DeleteReport:
        """Run the cascading delete for a node the user has confirmed."""

        self._ensure_writable()
        if state.pending_delete != path:
            raise ValidationError("Deletion must be requested and confirmed for the same node", context={"path": path})
        try:
            node = await self.nodes.get_node(path)
            report = await self.cascade.delete_subtree(node, node.collection_path, actor)
        finally:
            state.pending_delete = None

        prefix = f"{path}/"
        state.expanded = {item for item in state.expanded if item != path and not item.startswith(prefix)}
        state.children = {
            key: value for key, value in state.children.items() if key != path and not key.startswith(prefix)
        }
        parent = self.nodes.parse_path(path).parent
        await self.refresh(state, str(parent) if parent is not None and not parent.is_root else None)
        return report

    # ------------------------------------------------------------------ rendering
    def render(self, state: TreeState) -> List[TreeItem]:
        return [self._render_node(state, node) for node in state.roots]

    def actions_for(self, node: HierarchyNode) -> List[TreeAction]:
        if self.read_only:
            return []
        actions: List[TreeAction] = []
        if node.is_warehouse:
            actions.append(TreeAction("configure_warehouse", "Configure Warehouse", node.path))
        if node.is_material:
            actions.append(TreeAction("manage_material", "Manage Material", node.path))
        child_level = node.level.next()
        if child_level is not None and child_level <= self.max_level:
            actions.append(
                TreeAction("add_child", f"Add {child_level.info.name}", node.path, level=int(child_level))
            )
        actions.append(TreeAction("edit", "Edit", node.path, level=int(node.level)))
        actions.append(TreeAction("delete", "Delete", node.path, level=int(node.level)))
        return actions

    def _render_node(self, state: TreeState, node: HierarchyNode) -> TreeItem:
        expandable = node.level < self.max_level
        expanded = expandable and node.path in state.expanded
        children = state.children.get(node.path, []) if expanded else []
        return TreeItem(
            node=node,
            expandable=expandable,
            expanded=expanded,
            actions=self.actions_for(node),
            children=[self._render_node(state, child) for child in children],
        )

    def _ensure_writable(self) -> None:
        if self.read_only:
            raise ValidationError("This is a read-only view of the hierarchy.")


__all__ = ["HierarchyTreeAdapter", "TreeAction", "TreeItem", "TreeState"]
