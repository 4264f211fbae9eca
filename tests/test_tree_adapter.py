import pytest

from orgscope.errors import ValidationError
from orgscope.tree import HierarchyTreeAdapter, TreeState


async def _expand_to(adapter, state, tree, *ids):
    for node_id in ids:
        await adapter.expand(state, tree[node_id].path)


@pytest.mark.asyncio
async def test_roots_then_lazy_expansion(nodes, cascade, tree):
    adapter = HierarchyTreeAdapter(nodes, cascade)
    state = TreeState()

    roots = await adapter.load_roots(state)
    assert [node.id for node in roots] == ["us"]
    items = adapter.render(state)
    assert items[0].expandable and not items[0].expanded
    assert items[0].children == []

    await _expand_to(adapter, state, tree, "us", "acme", "plant1")
    rendered = adapter.render(state)[0].to_dict()

    site = rendered["children"][0]["children"][0]
    assert site["node"]["id"] == "plant1"
    assert [child["node"]["name"] for child in site["children"]] == ["Maintenance", "Operations"]
    assert site["children"][0]["children"] == []


@pytest.mark.asyncio
async def test_toggle_collapses_without_dropping_loaded_children(nodes, cascade, tree):
    adapter = HierarchyTreeAdapter(nodes, cascade)
    state = TreeState()
    await adapter.load_roots(state)

    assert await adapter.toggle(state, tree["us"].path) is True
    assert await adapter.toggle(state, tree["us"].path) is False
    assert adapter.render(state)[0].children == []
    assert tree["us"].path in state.children


@pytest.mark.asyncio
async def test_actions_follow_node_kind(nodes, cascade, tree):
    adapter = HierarchyTreeAdapter(nodes, cascade)

    site_actions = [(action.kind, action.label) for action in adapter.actions_for(tree["plant1"])]
    assert site_actions == [("add_child", "Add Department"), ("edit", "Edit"), ("delete", "Delete")]

    stores = [action.kind for action in adapter.actions_for(tree["sec-c"])]
    assert stores[0] == "configure_warehouse"

    motor = [action.kind for action in adapter.actions_for(tree["motor"])]
    assert motor == ["manage_material", "edit", "delete"]


@pytest.mark.asyncio
async def test_max_level_caps_expansion(nodes, cascade, tree):
    adapter = HierarchyTreeAdapter(nodes, cascade, max_level=5)
    state = TreeState()
    await adapter.load_roots(state)
    await _expand_to(adapter, state, tree, "us", "acme", "plant1", "maint")

    assert await adapter.expand(state, tree["sec-b"].path) == []
    assert tree["sec-b"].path not in state.expanded
    assert "add_child" not in [action.kind for action in adapter.actions_for(tree["sec-b"])]
    with pytest.raises(ValidationError):
        await adapter.add_child(state, tree["sec-b"].path, {"name": "Press", "code": "P"})


@pytest.mark.asyncio
async def test_read_only_view_has_no_actions(nodes, cascade, tree):
    adapter = HierarchyTreeAdapter(nodes, cascade, read_only=True)
    state = TreeState()
    await adapter.load_roots(state)

    assert adapter.render(state)[0].actions == []
    with pytest.raises(ValidationError):
        await adapter.add_child(state, tree["us"].path, {"name": "X", "code": "X"})
    with pytest.raises(ValidationError):
        adapter.request_delete(state, tree["us"].path)


@pytest.mark.asyncio
async def test_add_child_and_edit_refresh_expanded_parent(nodes, cascade, tree):
    adapter = HierarchyTreeAdapter(nodes, cascade)
    state = TreeState()
    await adapter.load_roots(state)
    await _expand_to(adapter, state, tree, "us", "acme", "plant1")

    created = await adapter.add_child(state, tree["plant1"].path, {"name": "Quality", "code": "Q"})
    assert [node.name for node in state.children[tree["plant1"].path]] == ["Maintenance", "Operations", "Quality"]

    await adapter.edit(state, created.path, {"name": "Assurance"})
    assert [node.name for node in state.children[tree["plant1"].path]] == ["Assurance", "Maintenance", "Operations"]

    await adapter.add_child(state, nodes.root, {"name": "Canada", "code": "CA"})
    assert [node.name for node in state.roots] == ["Canada", "United States"]


@pytest.mark.asyncio
async def test_delete_requires_confirmation_of_same_node(nodes, cascade, store, tree):
    adapter = HierarchyTreeAdapter(nodes, cascade)
    state = TreeState()
    await adapter.load_roots(state)
    await _expand_to(adapter, state, tree, "us", "acme", "plant1", "maint", "sec-b")
    before = store.count_nodes()

    with pytest.raises(ValidationError):
        await adapter.confirm_delete(state, tree["maint"].path)

    adapter.request_delete(state, tree["ops"].path)
    adapter.cancel_delete(state)
    with pytest.raises(ValidationError):
        await adapter.confirm_delete(state, tree["ops"].path)
    assert store.count_nodes() == before

    adapter.request_delete(state, tree["maint"].path)
    report = await adapter.confirm_delete(state, tree["maint"].path)

    assert report.deleted_count == 5
    assert state.pending_delete is None
    assert tree["maint"].path not in state.expanded
    assert tree["sec-b"].path not in state.children
    assert [node.id for node in state.children[tree["plant1"].path]] == ["ops"]
