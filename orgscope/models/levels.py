from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Dict

from orgscope.errors import ErrorCode, ValidationError


class HierarchyLevel(IntEnum):
    """Depth of a node in the organizational tree, 1 (coarsest) to 7 (finest)."""

    COUNTRY_REGION = 1
    LEGAL_ENTITY = 2
    SITE = 3
    DEPARTMENT = 4
    SECTION = 5
    ASSET = 6
    ASSEMBLY = 7

    @property
    def info(self) -> "LevelInfo":
        return LEVEL_INFO[self]

    @property
    def collection_name(self) -> str:
        return f"level_{int(self)}"

    def next(self) -> "HierarchyLevel | None":
        if self is MAX_LEVEL:
            return None
        return HierarchyLevel(int(self) + 1)


@dataclass(frozen=True, slots=True)
class LevelInfo:
    name: str
    description: str


LEVEL_INFO: Dict[HierarchyLevel, LevelInfo] = {
    HierarchyLevel.COUNTRY_REGION: LevelInfo(
        "Country/Region",
        "A major geographical area of operation, like a country or a sales region.",
    ),
    HierarchyLevel.LEGAL_ENTITY: LevelInfo(
        "Legal Entity",
        "A distinct company or legal entity registered within a Country/Region.",
    ),
    HierarchyLevel.SITE: LevelInfo(
        "Site",
        "A specific physical location, such as a factory, warehouse, or main office.",
    ),
    HierarchyLevel.DEPARTMENT: LevelInfo(
        "Department",
        "A major functional division within a Site, like Production, QA, or Maintenance.",
    ),
    HierarchyLevel.SECTION: LevelInfo(
        "Section",
        'A sub-unit within a Department, for example, "Assembly Line A" or "Receiving Bay".',
    ),
    HierarchyLevel.ASSET: LevelInfo(
        "Asset",
        "A significant piece of machinery or a distinct asset within a Section.",
    ),
    HierarchyLevel.ASSEMBLY: LevelInfo(
        "Assembly",
        "A sub-assembly or major component of a piece of an Asset.",
    ),
}

MIN_LEVEL = HierarchyLevel.COUNTRY_REGION
MAX_LEVEL = HierarchyLevel.ASSEMBLY
SECTION_LEVEL = HierarchyLevel.SECTION


def is_valid_level(value: object) -> bool:
    try:
        coerce_level(value)
    except ValidationError:
        return False
    return True


def coerce_level(value: object) -> HierarchyLevel:
    """Convert an int-like value to a HierarchyLevel or raise ValidationError."""

    if isinstance(value, HierarchyLevel):
        return value
    if isinstance(value, bool):
        raise ValidationError(
            f"Level must be an integer between {int(MIN_LEVEL)} and {int(MAX_LEVEL)}",
            error_code=ErrorCode.INVALID_LEVEL,
            context={"level": value},
        )
    try:
        return HierarchyLevel(int(value))  # type: ignore[arg-type]
    except (TypeError, ValueError) as exc:
        raise ValidationError(
            f"Level must be an integer between {int(MIN_LEVEL)} and {int(MAX_LEVEL)}",
            error_code=ErrorCode.INVALID_LEVEL,
            context={"level": value},
        ) from exc


__all__ = [
    "HierarchyLevel",
    "LevelInfo",
    "LEVEL_INFO",
    "MIN_LEVEL",
    "MAX_LEVEL",
    "SECTION_LEVEL",
    "coerce_level",
    "is_valid_level",
]
