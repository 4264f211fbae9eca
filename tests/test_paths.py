import pytest

from orgscope.errors import ErrorCode, ValidationError
from orgscope.hierarchy.codes import compose_code, suggest_code, validate_code_suffix
from orgscope.hierarchy.paths import (
    HierarchyPath,
    count_level_segments,
    parse_collection,
    validate_node_id,
)
from orgscope.models.levels import HierarchyLevel, coerce_level, is_valid_level


def _deep_path(depth: int) -> HierarchyPath:
    path = HierarchyPath.org_root("org")
    for index in range(depth):
        path = path.child(f"n{index + 1}")
    return path


def test_parse_round_trips_and_exposes_ancestry():
    raw = "org/level_1/us/level_2/acme/level_3/plant1"
    path = HierarchyPath.parse(raw, "org")

    assert str(path) == raw
    assert path.level is HierarchyLevel.SITE
    assert path.node_id == "plant1"
    assert path.depth == 3
    assert str(path.parent) == "org/level_1/us/level_2/acme"
    assert path.child_level is HierarchyLevel.DEPARTMENT
    assert path.children_collection() == f"{raw}/level_4"
    assert path.parent_collection() == "org/level_1/us/level_2/acme/level_3"
    assert [str(item) for item in path.ancestors()] == ["org/level_1/us", "org/level_1/us/level_2/acme"]
    assert count_level_segments(raw) == int(path.level)


def test_root_path_has_level_one_children():
    root = HierarchyPath.parse("org", "org")

    assert root.is_root
    assert root.level is None
    assert root.parent is None
    assert root.child_level is HierarchyLevel.COUNTRY_REGION
    assert str(root.child("us")) == "org/level_1/us"


@pytest.mark.parametrize(
    "raw",
    [
        "org/level_2/us",
        "org/level_1/us/level_3/acme",
        "org/level_1",
        "other/level_1/us",
        "org/level_1/us/level_2/",
        "org/level_1/us//level_2/acme",
    ],
)
def test_parse_rejects_malformed_paths(raw):
    with pytest.raises(ValidationError) as excinfo:
        HierarchyPath.parse(raw, "org")
    assert excinfo.value.error_code is ErrorCode.INVALID_PATH


def test_child_below_deepest_level_is_rejected():
    leaf = _deep_path(7)

    assert leaf.level is HierarchyLevel.ASSEMBLY
    assert leaf.child_level is None
    assert leaf.children_collection() is None
    with pytest.raises(ValidationError) as excinfo:
        leaf.child("too-deep")
    assert excinfo.value.error_code is ErrorCode.INVALID_LEVEL


@pytest.mark.parametrize("node_id", ["a/b", "", " padded", "level_3", "x" * 129])
def test_validate_node_id_rejects_unusable_segments(node_id):
    with pytest.raises(ValidationError):
        validate_node_id(node_id)


def test_parse_collection_checks_level_against_parent():
    parent, level = parse_collection("org/level_1/us/level_2", "org")
    assert str(parent) == "org/level_1/us"
    assert level is HierarchyLevel.LEGAL_ENTITY

    with pytest.raises(ValidationError):
        parse_collection("org/level_1/us/level_3", "org")
    with pytest.raises(ValidationError):
        parse_collection("org/level_1/us", "org")


def test_is_ancestor_of_follows_segments_not_string_prefixes():
    site = HierarchyPath.parse("org/level_1/us/level_2/acme/level_3/p1", "org")
    section = site.child("d1").child("s1")
    sibling = HierarchyPath.parse("org/level_1/us/level_2/acme/level_3/p10", "org")

    assert site.is_ancestor_of(section)
    assert not section.is_ancestor_of(site)
    assert not site.is_ancestor_of(sibling)
    assert not site.is_ancestor_of(site)


def test_coerce_level_bounds():
    assert coerce_level(3) is HierarchyLevel.SITE
    assert coerce_level("5") is HierarchyLevel.SECTION
    for bad in (0, 8, True, "x", None):
        assert not is_valid_level(bad)
        with pytest.raises(ValidationError):
            coerce_level(bad)


def test_level_metadata():
    assert HierarchyLevel.SITE.info.name == "Site"
    assert HierarchyLevel.SECTION.collection_name == "level_5"
    assert HierarchyLevel.ASSET.next() is HierarchyLevel.ASSEMBLY
    assert HierarchyLevel.ASSEMBLY.next() is None


def test_code_suggestion_and_suffix_rules():
    assert suggest_code("US", ["US001", "US007", "USX", "CA009"]) == "US008"
    assert suggest_code(None, []) == "001"
    assert suggest_code("US", ["US1000"]) == "US001"
    assert compose_code("US", "A1") == "USA1"

    for bad in ("", "ABCD", "ab", "A-1"):
        with pytest.raises(ValidationError):
            validate_code_suffix(bad)
