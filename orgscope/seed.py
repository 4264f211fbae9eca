from __future__ import annotations

import json
import logging
import tomllib
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import BaseModel, Field

from orgscope.hierarchy.repository import NodeRepository
from orgscope.models.actor import Actor
from orgscope.models.levels import MAX_LEVEL, HierarchyLevel
from orgscope.models.node import HierarchyNode
from orgscope.planning.repository import PlanningGroupRepository

logger = logging.getLogger(__name__)


class NodeSeed(BaseModel):
    name: str = Field(min_length=1)
    code: str = Field(min_length=1)
    id: str | None = None
    description: str = ""
    section_type: str | None = None
    asset_type: str | None = None
    asset_component_path: str | None = None
    asset_attributes: Dict[str, Any] = Field(default_factory=dict)
    children: List["NodeSeed"] = Field(default_factory=list)

    def payload(self) -> Dict[str, Any]:
        return self.model_dump(exclude={"children"}, exclude_none=True)

    def depth(self) -> int:
        return 1 + max((child.depth() for child in self.children), default=0)


class GroupSeed(BaseModel):
    code: str = Field(min_length=1)
    name: str = Field(min_length=1)
    description: str = ""


class HierarchySeed(BaseModel):
    nodes: List[NodeSeed] = Field(default_factory=list)
    planning_groups: List[GroupSeed] = Field(default_factory=list)


def _load_structured_file(path: Path) -> Dict[str, Any]:
    if not path.exists():
        raise FileNotFoundError(f"Seed file not found: {path}")

    ext = path.suffix.lower()
    text = path.read_text(encoding="utf-8")

    if ext in {".yaml", ".yml"}:
        data = yaml.safe_load(text)
    elif ext == ".toml":
        data = tomllib.loads(text)
    elif ext == ".json":
        data = json.loads(text)
    else:
        raise ValueError(f"Unsupported seed format '{ext}' for {path}")

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValueError(f"Seed file {path} must contain a mapping at the top level")
    return data


def load_seed_file(path: Path) -> HierarchySeed:
    seed = HierarchySeed.model_validate(_load_structured_file(path))
    too_deep = [node.name for node in seed.nodes if node.depth() > int(MAX_LEVEL)]
    if too_deep:
        raise ValueError(f"Seed nodes {too_deep} nest deeper than {int(MAX_LEVEL)} levels")
    return seed


async def seed_hierarchy(
    repository: NodeRepository,
    seed: HierarchySeed,
    *,
    groups: Optional[PlanningGroupRepository] = None,
    actor: Optional[Actor] = None,
) -> List[HierarchyNode]:
    """Create every seeded node depth-first; returns the created nodes in creation order."""

    created: List[HierarchyNode] = []

    async def _create(parent_path: str, level: HierarchyLevel, items: List[NodeSeed]) -> None:
        for item in items:
            node = await repository.create_node(parent_path, level, item.payload(), actor)
            created.append(node)
            child_level = level.next()
            if item.children and child_level is not None:
                await _create(node.path, child_level, item.children)

    await _create(repository.root, HierarchyLevel.COUNTRY_REGION, seed.nodes)
    if groups is not None:
        for group in seed.planning_groups:
            await groups.create_group(group.code, group.name, group.description, actor)
    logger.info("Seeded %d nodes and %d planning groups", len(created), len(seed.planning_groups) if groups else 0)
    return created


__all__ = ["GroupSeed", "HierarchySeed", "NodeSeed", "load_seed_file", "seed_hierarchy"]
