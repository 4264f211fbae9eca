from __future__ import annotations

from typing import Dict

import pytest
import pytest_asyncio

from orgscope.hierarchy.cascade import CascadingDeleteEngine
from orgscope.hierarchy.repository import NodeRepository
from orgscope.models.node import HierarchyNode
from orgscope.planning.repository import PlanningGroupRepository
from orgscope.planning.scope import ScopeAssignmentEngine
from orgscope.storage.sqlite import SQLiteOrgConfig, SQLiteOrgStore


@pytest.fixture
def store(tmp_path):
    store = SQLiteOrgStore(SQLiteOrgConfig(db_path=tmp_path / "org.db"))
    store.initialize()
    return store


@pytest.fixture
def nodes(store):
    return NodeRepository(store)


@pytest.fixture
def groups(store):
    return PlanningGroupRepository(store)


@pytest.fixture
def cascade(store, groups):
    return CascadingDeleteEngine(store, groups_collection=groups.collection_path)


@pytest.fixture
def scope(nodes, groups):
    return ScopeAssignmentEngine(nodes, groups)


async def build_sample_tree(nodes: NodeRepository) -> Dict[str, HierarchyNode]:
    """Two departments under one site, with an asset and assembly below Line B."""

    layout = [
        ("org", 1, "us", "United States", "US", {}),
        ("us", 2, "acme", "Acme Manufacturing", "USACM", {}),
        ("acme", 3, "plant1", "Plant 1", "USACMP01", {}),
        ("plant1", 4, "maint", "Maintenance", "USACMP01MNT", {}),
        ("maint", 5, "sec-a", "Line A", "USACMP01MNTA", {}),
        ("maint", 5, "sec-b", "Line B", "USACMP01MNTB", {}),
        ("sec-b", 6, "press", "Press 200T", "USACMP01MNTBPR", {"asset_type": "Press"}),
        ("press", 7, "motor", "Main Motor", "USACMP01MNTBPRM", {}),
        ("plant1", 4, "ops", "Operations", "USACMP01OPS", {}),
        ("ops", 5, "sec-c", "Central Stores", "USACMP01OPSS", {"section_type": "Capital Inventory Stores"}),
    ]
    created: Dict[str, HierarchyNode] = {}
    for parent_id, level, node_id, name, code, extra in layout:
        parent_path = nodes.root if parent_id == "org" else created[parent_id].path
        created[node_id] = await nodes.create_node(
            parent_path,
            level,
            {"id": node_id, "name": name, "code": code, **extra},
        )
    return created


@pytest_asyncio.fixture
async def tree(nodes):
    return await build_sample_tree(nodes)
