import pytest

from orgscope.errors import NotFoundError, SectionUnavailableError, ValidationError
from orgscope.models.planning import ScopeDraft


async def _site_with_section(nodes):
    region = await nodes.create_node(nodes.root, 1, {"name": "Region", "code": "R"})
    entity = await nodes.create_node(region.path, 2, {"name": "Entity", "code": "RE"})
    site = await nodes.create_node(entity.path, 3, {"name": "Site", "code": "RES"})
    department = await nodes.create_node(site.path, 4, {"name": "Mechanical", "code": "RESM"})
    section = await nodes.create_node(department.path, 5, {"name": "S1", "code": "RESM1"})
    return site, department, section


@pytest.mark.asyncio
async def test_create_two_levels_and_list(nodes):
    plant = await nodes.create_node(nodes.root, 1, {"name": "Plant A", "code": "PA"})
    await nodes.create_node(plant.path, 2, {"name": "Line 1", "code": "PA001"})

    assert [node.name for node in await nodes.list_children(nodes.root, 1)] == ["Plant A"]
    assert [node.name for node in await nodes.list_children(plant.path, 2)] == ["Line 1"]


@pytest.mark.asyncio
async def test_delete_three_level_chain(nodes, cascade):
    a = await nodes.create_node(nodes.root, 1, {"name": "A", "code": "A"})
    b = await nodes.create_node(a.path, 2, {"name": "B", "code": "AB"})
    c = await nodes.create_node(b.path, 3, {"name": "C", "code": "ABC"})

    await cascade.delete_subtree(a, "org/level_1")

    assert await nodes.list_children(nodes.root, 1) == []
    for path, level in ((b.path, 3), (c.path, 4)):
        with pytest.raises(NotFoundError):
            await nodes.list_children(path, level)


@pytest.mark.asyncio
async def test_claim_block_release_and_reassign(nodes, groups, scope):
    site, department, section = await _site_with_section(nodes)
    mech = await groups.create_group("MECH", "Mechanical")
    elec = await groups.create_group("ELEC", "Electrical")

    mech_draft = await scope.open_draft(mech.id)
    await scope.add(mech_draft, site, department, section)
    await scope.commit(mech.id, mech_draft)

    elec_draft = await scope.open_draft(elec.id)
    forbidden = await scope.forbidden_for(elec_draft)
    assert section.id in forbidden
    assert await scope.section_options(department.path, forbidden) == []
    with pytest.raises(SectionUnavailableError):
        await scope.add(elec_draft, site, department, section)

    mech_draft = await scope.open_draft(mech.id)
    scope.remove(mech_draft, section.id)
    await scope.commit(mech.id, mech_draft)

    elec_draft = ScopeDraft.from_group(await groups.get_group(elec.id))
    assert section.id not in await scope.forbidden_for(elec_draft)
    await scope.add(elec_draft, site, department, section)
    saved = await scope.commit(elec.id, elec_draft)
    assert saved.section_ids() == {section.id}
    assert (await groups.get_group(mech.id)).assigned_sections == []


@pytest.mark.asyncio
async def test_create_with_skipped_level_fails(nodes):
    plant = await nodes.create_node(nodes.root, 1, {"name": "Plant A", "code": "PA"})

    with pytest.raises(ValidationError):
        await nodes.create_node(plant.path, 3, {"name": "Too deep", "code": "PA9"})
    assert await nodes.list_children(plant.path, 2) == []
