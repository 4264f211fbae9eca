import pytest

from orgscope.audit import ActivityLogger
from orgscope.errors import ConflictError, ErrorCode, NotFoundError, ValidationError
from orgscope.models.actor import Actor
from orgscope.planning.repository import PlanningGroupRepository, planning_groups_collection


def test_groups_live_under_module_collection():
    assert planning_groups_collection("org") == "org/modules/AM/planningGroups"


@pytest.mark.asyncio
async def test_create_group_uppercases_and_starts_empty(groups):
    actor = Actor(uid="u-1")
    group = await groups.create_group(" pg1 ", "line maintenance", "  weekly ", actor)

    assert group.code == "PG1"
    assert group.name == "LINE MAINTENANCE"
    assert group.description == "weekly"
    assert group.assigned_sections == []

    stored = await groups.get_group(group.id)
    assert stored.code == "PG1"
    assert stored.created_by == actor
    assert (await groups.find_by_code("pg1")).id == group.id
    assert await groups.find_by_code("PG2") is None


@pytest.mark.asyncio
async def test_duplicate_code_is_rejected(groups):
    # Scenario: second group with an existing code
    await groups.create_group("PG1", "First")

    with pytest.raises(ConflictError) as excinfo:
        await groups.create_group("pg1", "Second")

    assert excinfo.value.message == "Group with code PG1 already exists."
    assert excinfo.value.error_code is ErrorCode.DUPLICATE_GROUP_CODE
    assert len(await groups.list_groups()) == 1


@pytest.mark.asyncio
async def test_blank_code_or_name_is_rejected(groups):
    for code, name in (("", "Name"), ("PG1", "  "), (None, "Name")):
        with pytest.raises(ValidationError):
            await groups.create_group(code, name)
    assert await groups.list_groups() == []


@pytest.mark.asyncio
async def test_groups_are_listed_by_code(groups):
    for code in ("PG3", "PG1", "PG2"):
        await groups.create_group(code, f"Group {code}")

    assert [group.code for group in await groups.list_groups()] == ["PG1", "PG2", "PG3"]


@pytest.mark.asyncio
async def test_update_group_prechecks_new_code(groups):
    first = await groups.create_group("PG1", "First")
    await groups.create_group("PG2", "Second")

    renamed = await groups.update_group(first.id, {"name": "renamed", "code": "pg1"})
    assert renamed.name == "RENAMED"
    assert renamed.code == "PG1"

    with pytest.raises(ConflictError):
        await groups.update_group(first.id, {"code": "PG2"})
    with pytest.raises(ValidationError):
        await groups.update_group(first.id, {"assigned_sections": []})
    with pytest.raises(NotFoundError):
        await groups.update_group("missing", {"name": "X"})


@pytest.mark.asyncio
async def test_delete_group(groups):
    group = await groups.create_group("PG1", "First")

    deleted = await groups.delete_group(group.id)

    assert deleted.id == group.id
    with pytest.raises(NotFoundError) as excinfo:
        await groups.get_group(group.id)
    assert excinfo.value.error_code is ErrorCode.GROUP_NOT_FOUND
    with pytest.raises(NotFoundError):
        await groups.delete_group(group.id)


@pytest.mark.asyncio
async def test_group_mutations_are_audited(store):
    audit = ActivityLogger(store)
    repository = PlanningGroupRepository(store, audit=audit)

    group = await repository.create_group("PG1", "First")
    await audit.drain()
    await repository.delete_group(group.id)
    await audit.drain()

    actions = [entry.action for entry in await audit.recent()]
    assert actions == ["Planning Group Deleted", "Planning Group Created"]
