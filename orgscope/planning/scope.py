"""
Scope assignment: which level-5 sections each planning group claims.

A section id may appear in at most one group's ``assigned_sections``. The
editor works on a caller-owned ``ScopeDraft``: it computes the forbidden set,
adds and removes sections locally, then commits the whole list.

Commits are *checked* by default: the store re-reads every other group's
claims inside the write transaction and refuses overlapping sections with
``SectionUnavailableError``. An unchecked commit writes the draft as-is, so
two editors who loaded the forbidden set before either saved can both claim
the same section.
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Sequence, Set

from orgscope.audit import ActivityLogger
from orgscope.errors import ErrorCode, SectionUnavailableError, ValidationError
from orgscope.hierarchy.repository import NodeRepository
from orgscope.models.actor import Actor
from orgscope.models.levels import HierarchyLevel
from orgscope.models.node import HierarchyNode
from orgscope.models.planning import PlanningGroup, PlanningGroupSection, ScopeDraft

from .repository import PlanningGroupRepository

logger = logging.getLogger(__name__)


def compute_forbidden_set(
    all_groups: Iterable[PlanningGroup],
    draft_assigned_sections: Iterable[PlanningGroupSection],
    self_group_id: str,
) -> Set[str]:
    """Section ids claimed by any other group, plus those already in the draft."""

    forbidden: Set[str] = set()
    for group in all_groups:
        if group.id != self_group_id:
            forbidden.update(section.l5_id for section in group.assigned_sections)
    forbidden.update(section.l5_id for section in draft_assigned_sections)
    return forbidden


def build_section(l3: HierarchyNode, l4: HierarchyNode, l5: HierarchyNode) -> PlanningGroupSection:
    """Denormalize a site/department/section chain into a section record."""

    for node, expected in ((l3, HierarchyLevel.SITE), (l4, HierarchyLevel.DEPARTMENT), (l5, HierarchyLevel.SECTION)):
        if node.level != expected:
            raise ValidationError(
                f'"{node.name}" is a level {int(node.level)} node; expected level {int(expected)}',
                error_code=ErrorCode.INVALID_LEVEL,
                context={"path": node.path},
            )
    if l4.parent_path != l3.path or l5.parent_path != l4.path:
        raise ValidationError(
            "Site, department and section must form one ancestry chain",
            error_code=ErrorCode.INVALID_PATH,
            context={"l3": l3.path, "l4": l4.path, "l5": l5.path},
        )
    return PlanningGroupSection(
        l3_id=l3.id,
        l3_name=l3.name,
        l4_id=l4.id,
        l4_name=l4.name,
        l5_id=l5.id,
        l5_name=l5.name,
        path=l5.path,
    )


def add_section(
    draft: ScopeDraft,
    l3: HierarchyNode,
    l4: HierarchyNode,
    l5: HierarchyNode,
    forbidden: Set[str],
) -> PlanningGroupSection:
    """Append a section to the draft unless it is forbidden. Local only."""

    section = build_section(l3, l4, l5)
    if section.l5_id in forbidden or draft.contains(section.l5_id):
        raise SectionUnavailableError({section.l5_id}, context={"group_id": draft.group_id})
    draft.assigned_sections.append(section)
    return section


def remove_section(draft: ScopeDraft, l5_id: str) -> bool:
    """Drop the entry for ``l5_id``; returns False when it was not in the draft."""

    before = len(draft.assigned_sections)
    draft.assigned_sections = [section for section in draft.assigned_sections if section.l5_id != l5_id]
    return len(draft.assigned_sections) != before


def _check_draft(group_id: str, draft: ScopeDraft) -> None:
    if draft.group_id != group_id:
        raise ValidationError(
            f"Draft belongs to group {draft.group_id}, not {group_id}",
            context={"group_id": group_id, "draft_group_id": draft.group_id},
        )
    seen: Set[str] = set()
    for section in draft.assigned_sections:
        if section.l5_id in seen:
            raise ValidationError(
                f"Section {section.l5_id} appears twice in the draft",
                context={"section_id": section.l5_id},
            )
        seen.add(section.l5_id)


class ScopeAssignmentEngine:
    """Loads drafts and picker options, and is the only writer of group scope."""

    def __init__(
        self,
        nodes: NodeRepository,
        groups: PlanningGroupRepository,
        *,
        checked_commits: bool = True,
        audit: Optional[ActivityLogger] = None,
    ) -> None:
        self.nodes = nodes
        self.groups = groups
        self.checked_commits = checked_commits
        self.audit = audit

    async def open_draft(self, group_id: str) -> ScopeDraft:
        return ScopeDraft.from_group(await self.groups.get_group(group_id))

    async def forbidden_for(self, draft: ScopeDraft) -> Set[str]:
        all_groups = await self.groups.list_groups()
        return compute_forbidden_set(all_groups, draft.assigned_sections, draft.group_id)

    # ------------------------------------------------------------------ picker options
    async def site_options(self) -> List[HierarchyNode]:
        return await self.nodes.list_level(HierarchyLevel.SITE)

    async def department_options(self, site_path: str) -> List[HierarchyNode]:
        return await self.nodes.list_children(site_path, HierarchyLevel.DEPARTMENT)

    async def section_options(self, department_path: str, forbidden: Set[str]) -> List[HierarchyNode]:
        """Sections under a department that may still be offered to the draft's group."""

        sections = await self.nodes.list_children(department_path, HierarchyLevel.SECTION)
        return [node for node in sections if node.id not in forbidden]

    # ------------------------------------------------------------------ draft edits
    async def add(
        self,
        draft: ScopeDraft,
        l3: HierarchyNode,
        l4: HierarchyNode,
        l5: HierarchyNode,
    ) -> PlanningGroupSection:
        """``add_section`` against a freshly loaded forbidden set."""

        return add_section(draft, l3, l4, l5, await self.forbidden_for(draft))

    def remove(self, draft: ScopeDraft, l5_id: str) -> bool:
        return remove_section(draft, l5_id)

    # ------------------------------------------------------------------ persistence
    async def commit(
        self,
        group_id: str,
        draft: ScopeDraft,
        *,
        checked: Optional[bool] = None,
        actor: Optional[Actor] = None,
    ) -> PlanningGroup:
        """Persist ``draft.assigned_sections`` as the group's scope."""

        _check_draft(group_id, draft)
        sections: Sequence[PlanningGroupSection] = list(draft.assigned_sections)
        use_check = self.checked_commits if checked is None else checked
        if use_check:
            await self.groups.replace_sections_checked(group_id, sections)
        else:
            await self.groups.replace_sections(group_id, sections)

        group = await self.groups.get_group(group_id)
        logger.info(
            "Committed %d sections to planning group %s (checked=%s)",
            len(sections),
            group.code,
            use_check,
        )
        if self.audit is not None:
            self.audit.notify(
                "Planning Group Scope Updated",
                actor,
                f'Planning group "{group.name}" ({group.code}) now covers {len(sections)} sections.',
            )
        return group


__all__ = [
    "ScopeAssignmentEngine",
    "add_section",
    "build_section",
    "compute_forbidden_set",
    "remove_section",
]
