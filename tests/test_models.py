from orgscope.errors import ConflictError, NotFoundError, SectionUnavailableError, StorageError, ValidationError
from orgscope.models.actor import Actor
from orgscope.models.levels import HierarchyLevel
from orgscope.models.node import HierarchyNode
from orgscope.models.planning import PlanningGroup, PlanningGroupSection, ScopeDraft


def _node(path: str, level: HierarchyLevel, **extra) -> HierarchyNode:
    return HierarchyNode(id=path.rsplit("/", 1)[-1], path=path, level=level, name="Node", code="N", **extra)


def test_node_derived_addresses():
    node = _node("org/level_1/us/level_2/acme/level_3/plant1", HierarchyLevel.SITE)

    assert node.parent_path == "org/level_1/us/level_2/acme"
    assert node.collection_path == "org/level_1/us/level_2/acme/level_3"
    assert node.children_collection == "org/level_1/us/level_2/acme/level_3/plant1/level_4"
    assert not node.is_leaf_level
    assert node.to_dict()["level"] == 3


def test_node_flags():
    stores = _node("org/level_1/a/level_2/b/level_3/c/level_4/d/level_5/e", HierarchyLevel.SECTION,
                   section_type="Capital Inventory Stores")
    line = _node("org/level_1/a/level_2/b/level_3/c/level_4/d/level_5/f", HierarchyLevel.SECTION,
                 section_type="Production")
    assembly = _node("org/level_1/a/level_2/b/level_3/c/level_4/d/level_5/e/level_6/g/level_7/h",
                     HierarchyLevel.ASSEMBLY)

    assert stores.is_warehouse and not line.is_warehouse
    assert assembly.is_material and assembly.is_leaf_level
    assert assembly.children_collection is None


def test_section_documents_use_camel_case():
    section = PlanningGroupSection("s", "Site", "d", "Dept", "x", "Sec", "org/level_1/a")
    document = section.to_document()

    assert set(document) == {"l3Id", "l3Name", "l4Id", "l4Name", "l5Id", "l5Name", "path"}
    assert PlanningGroupSection.from_document(document) == section


def test_draft_copies_group_sections():
    section = PlanningGroupSection("s", "Site", "d", "Dept", "x", "Sec", "p")
    group = PlanningGroup(id="g1", code="PG1", name="ONE", assigned_sections=[section])

    draft = ScopeDraft.from_group(group)
    draft.assigned_sections.clear()

    assert group.section_count == 1
    assert group.section_ids() == {"x"}
    assert not draft.contains("x")


def test_actor_serialization():
    actor = Actor(uid="u-1", email="a@example.com")

    assert Actor.from_dict(actor.as_dict()) == actor
    assert Actor.from_dict({"uid": None}) is None
    assert Actor.from_dict(None) is None


def test_error_payloads():
    missing = NotFoundError("No hierarchy node at org/level_1/x", context={"path": "org/level_1/x"})
    assert missing.to_dict() == {
        "error": "NODE_NOT_FOUND",
        "message": "No hierarchy node at org/level_1/x",
        "category": "NOT_FOUND",
        "http_status": 404,
        "context": {"path": "org/level_1/x"},
    }

    unavailable = SectionUnavailableError({"b", "a"})
    assert isinstance(unavailable, ConflictError)
    assert unavailable.to_dict()["context"] == {"section_ids": ["a", "b"]}
    assert unavailable.http_status == 409

    assert ValidationError("bad").http_status == 422
    wrapped = StorageError("down", original_error=OSError("disk"))
    assert wrapped.to_dict()["original_error"] == "disk"
    assert wrapped.http_status == 503
