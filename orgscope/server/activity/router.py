from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from orgscope.server.models import ActivityListResponse, ActivityModel
from orgscope.server.services import OrgServices, get_services


router = APIRouter(prefix="/api/activity", tags=["activity"])


@router.get("", response_model=ActivityListResponse)
async def recent_activity(
    limit: int = Query(default=50, ge=1, le=500),
    services: OrgServices = Depends(get_services),
) -> ActivityListResponse:
    entries = await services.audit.recent(limit)
    return ActivityListResponse(items=[ActivityModel.from_entry(entry) for entry in entries])


__all__ = ["router"]
