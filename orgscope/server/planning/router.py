from __future__ import annotations

import asyncio

from fastapi import APIRouter, Depends, Query

from orgscope.errors import ErrorCode, ValidationError
from orgscope.models.actor import Actor
from orgscope.models.levels import HierarchyLevel
from orgscope.models.planning import PlanningGroupSection, ScopeDraft
from orgscope.planning.scope import build_section
from orgscope.server.models import (
    ForbiddenSections,
    GroupCreate,
    GroupListResponse,
    GroupModel,
    GroupUpdate,
    NodeListResponse,
    NodeModel,
    ScopeUpdate,
)
from orgscope.server.services import OrgServices, get_actor, get_services


router = APIRouter(prefix="/api/planning-groups", tags=["planning-groups"])


async def _section_from_path(services: OrgServices, path: str) -> PlanningGroupSection:
    section = await services.nodes.get_node(path)
    if section.level != HierarchyLevel.SECTION:
        raise ValidationError(
            f"{path} is a level {int(section.level)} node; only sections can be assigned",
            error_code=ErrorCode.INVALID_LEVEL,
            context={"path": path},
        )
    department = await services.nodes.get_node(section.parent_path)
    site = await services.nodes.get_node(department.parent_path)
    return build_section(site, department, section)


@router.get("", response_model=GroupListResponse)
async def list_groups(services: OrgServices = Depends(get_services)) -> GroupListResponse:
    groups = await services.groups.list_groups()
    return GroupListResponse(items=[GroupModel.from_group(group) for group in groups])


@router.post("", response_model=GroupModel, status_code=201)
async def create_group(
    payload: GroupCreate,
    services: OrgServices = Depends(get_services),
    actor: Actor | None = Depends(get_actor),
) -> GroupModel:
    group = await services.groups.create_group(payload.code, payload.name, payload.description, actor)
    return GroupModel.from_group(group)


@router.get("/{group_id}", response_model=GroupModel)
async def get_group(group_id: str, services: OrgServices = Depends(get_services)) -> GroupModel:
    return GroupModel.from_group(await services.groups.get_group(group_id))


@router.patch("/{group_id}", response_model=GroupModel)
async def update_group(
    group_id: str,
    payload: GroupUpdate,
    services: OrgServices = Depends(get_services),
    actor: Actor | None = Depends(get_actor),
) -> GroupModel:
    group = await services.groups.update_group(group_id, payload.changes(), actor)
    return GroupModel.from_group(group)


@router.delete("/{group_id}", response_model=GroupModel)
async def delete_group(
    group_id: str,
    services: OrgServices = Depends(get_services),
    actor: Actor | None = Depends(get_actor),
) -> GroupModel:
    return GroupModel.from_group(await services.groups.delete_group(group_id, actor))


@router.get("/{group_id}/scope/forbidden", response_model=ForbiddenSections)
async def forbidden_sections(group_id: str, services: OrgServices = Depends(get_services)) -> ForbiddenSections:
    draft = await services.scope.open_draft(group_id)
    forbidden = await services.scope.forbidden_for(draft)
    return ForbiddenSections(group_id=group_id, section_ids=sorted(forbidden))


@router.get("/{group_id}/scope/options", response_model=NodeListResponse)
async def scope_options(
    group_id: str,
    site_path: str | None = Query(default=None, description="List departments of this site"),
    department_path: str | None = Query(default=None, description="List assignable sections of this department"),
    services: OrgServices = Depends(get_services),
) -> NodeListResponse:
    """Picker options: sites, then departments of a site, then still-available sections."""

    draft = await services.scope.open_draft(group_id)
    if department_path:
        forbidden = await services.scope.forbidden_for(draft)
        nodes = await services.scope.section_options(department_path, forbidden)
    elif site_path:
        nodes = await services.scope.department_options(site_path)
    else:
        nodes = await services.scope.site_options()
    return NodeListResponse(items=[NodeModel.from_node(node) for node in nodes])


@router.put("/{group_id}/scope", response_model=GroupModel)
async def commit_scope(
    group_id: str,
    payload: ScopeUpdate,
    services: OrgServices = Depends(get_services),
    actor: Actor | None = Depends(get_actor),
) -> GroupModel:
    await services.groups.get_group(group_id)
    sections = await asyncio.gather(*(_section_from_path(services, path) for path in payload.section_paths))
    draft = ScopeDraft(group_id=group_id, assigned_sections=list(sections))
    group = await services.scope.commit(group_id, draft, actor=actor)
    return GroupModel.from_group(group)


__all__ = ["router"]
