from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query

from orgscope.models.actor import Actor
from orgscope.server.models import (
    CodeSuggestion,
    DeleteResponse,
    LevelModel,
    NodeCreate,
    NodeListResponse,
    NodeModel,
    NodeUpdate,
    level_models,
)
from orgscope.server.services import OrgServices, get_actor, get_services


router = APIRouter(prefix="/api/hierarchy", tags=["hierarchy"])


@router.get("/levels", response_model=List[LevelModel])
def list_levels() -> List[LevelModel]:
    return level_models()


@router.get("/children", response_model=NodeListResponse)
async def list_children(
    parent_path: str = Query(..., description="Path of the parent node, or the organization root"),
    level: int = Query(..., description="Level of the children to list"),
    services: OrgServices = Depends(get_services),
) -> NodeListResponse:
    nodes = await services.nodes.list_children(parent_path, level)
    return NodeListResponse(items=[NodeModel.from_node(node) for node in nodes])


@router.get("/node", response_model=NodeModel)
async def get_node(
    path: str = Query(...),
    services: OrgServices = Depends(get_services),
) -> NodeModel:
    return NodeModel.from_node(await services.nodes.get_node(path))


@router.post("/nodes", response_model=NodeModel, status_code=201)
async def create_node(
    payload: NodeCreate,
    services: OrgServices = Depends(get_services),
    actor: Actor | None = Depends(get_actor),
) -> NodeModel:
    node = await services.nodes.create_node(payload.parent_path, payload.level, payload.node_data(), actor)
    return NodeModel.from_node(node)


@router.patch("/node", response_model=NodeModel)
async def update_node(
    payload: NodeUpdate,
    path: str = Query(...),
    services: OrgServices = Depends(get_services),
    actor: Actor | None = Depends(get_actor),
) -> NodeModel:
    node = await services.nodes.update_node(path, payload.changes(), actor)
    return NodeModel.from_node(node)


@router.delete("/node", response_model=DeleteResponse)
async def delete_node(
    path: str = Query(...),
    confirm: bool = Query(default=False, description="Must be true; deletes every descendant as well"),
    services: OrgServices = Depends(get_services),
    actor: Actor | None = Depends(get_actor),
) -> DeleteResponse:
    if not confirm:
        raise HTTPException(
            status_code=400,
            detail="Deleting a node removes all of its children. Pass confirm=true to proceed.",
        )
    node = await services.nodes.get_node(path)
    report = await services.cascade.delete_subtree(node, node.collection_path, actor)
    return DeleteResponse.from_report(report)


@router.get("/code-suggestion", response_model=CodeSuggestion)
async def suggest_code(
    parent_path: str = Query(...),
    level: int = Query(...),
    services: OrgServices = Depends(get_services),
) -> CodeSuggestion:
    code = await services.nodes.suggest_code(parent_path, level)
    return CodeSuggestion(parent_path=parent_path, level=level, code=code)


__all__ = ["router"]
