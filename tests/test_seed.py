import json
from pathlib import Path

import pytest
from pydantic import ValidationError as SeedError

from orgscope.models.levels import HierarchyLevel
from orgscope.seed import HierarchySeed, load_seed_file, seed_hierarchy

SAMPLE_SEED = Path(__file__).resolve().parents[1] / "data" / "sample_hierarchy.yaml"


def _chain(depth: int) -> dict:
    node = {"name": f"L{depth}", "code": f"C{depth}"}
    for level in range(depth - 1, 0, -1):
        node = {"name": f"L{level}", "code": f"C{level}", "children": [node]}
    return node


def test_load_yaml_seed():
    seed = load_seed_file(SAMPLE_SEED)

    assert [node.name for node in seed.nodes] == ["United States"]
    assert seed.nodes[0].depth() == 5
    assert seed.planning_groups[0].code == "pg1"


def test_load_json_and_toml_seeds(tmp_path):
    json_path = tmp_path / "seed.json"
    json_path.write_text(json.dumps({"nodes": [_chain(3)]}), encoding="utf-8")
    toml_path = tmp_path / "seed.toml"
    toml_path.write_text('[[nodes]]\nname = "Region"\ncode = "R"\n', encoding="utf-8")

    assert load_seed_file(json_path).nodes[0].depth() == 3
    assert load_seed_file(toml_path).nodes[0].name == "Region"


def test_rejects_bad_seed_files(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_seed_file(tmp_path / "missing.yaml")

    odd = tmp_path / "seed.ini"
    odd.write_text("[nodes]", encoding="utf-8")
    with pytest.raises(ValueError):
        load_seed_file(odd)

    listing = tmp_path / "seed.yaml"
    listing.write_text("- name: A\n  code: A\n", encoding="utf-8")
    with pytest.raises(ValueError):
        load_seed_file(listing)

    too_deep = tmp_path / "deep.json"
    too_deep.write_text(json.dumps({"nodes": [_chain(8)]}), encoding="utf-8")
    with pytest.raises(ValueError):
        load_seed_file(too_deep)

    nameless = tmp_path / "nameless.json"
    nameless.write_text(json.dumps({"nodes": [{"code": "A"}]}), encoding="utf-8")
    with pytest.raises(SeedError):
        load_seed_file(nameless)


@pytest.mark.asyncio
async def test_seed_hierarchy_creates_nodes_depth_first(nodes, groups):
    seed = load_seed_file(SAMPLE_SEED)

    created = await seed_hierarchy(nodes, seed, groups=groups)

    assert [node.id for node in created[:5]] == ["us", "acme", "plant1", "maint", "sec-a"]
    sections = await nodes.list_level(HierarchyLevel.SECTION)
    assert [node.name for node in sections] == ["Assembly Line A", "Central Stores", "Receiving Bay"]
    assert sections[1].is_warehouse
    assert [group.code for group in await groups.list_groups()] == ["PG1"]


@pytest.mark.asyncio
async def test_seed_without_groups_repository(nodes):
    seed = HierarchySeed.model_validate({"nodes": [_chain(7)], "planning_groups": [{"code": "X", "name": "X"}]})

    created = await seed_hierarchy(nodes, seed)

    assert [int(node.level) for node in created] == list(range(1, 8))
    assert created[-1].is_material
