from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from orgscope.errors import OrgScopeError
from orgscope.logging_utils import configure_logging

from .activity import router as activity_router
from .hierarchy import router as hierarchy_router
from .planning import router as planning_router
from .settings import get_settings

logger = logging.getLogger(__name__)

settings = get_settings()
configure_logging(settings.log_level)

app = FastAPI(title="OrgScope API", version="0.1.0")
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(hierarchy_router)
app.include_router(planning_router)
app.include_router(activity_router)


@app.exception_handler(OrgScopeError)
async def handle_org_error(request: Request, exc: OrgScopeError) -> JSONResponse:
    if exc.http_status >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message, exc_info=exc)
    else:
        logger.debug("%s %s rejected: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.http_status, content=exc.to_dict())


@app.get("/api/healthz")
async def healthz() -> dict[str, str]:
    return {"status": "ok"}


__all__ = ["app"]
