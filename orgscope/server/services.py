from __future__ import annotations

import logging
from dataclasses import dataclass

from fastapi import Depends, Header

from orgscope.audit import ActivityLogger
from orgscope.hierarchy.cascade import CascadingDeleteEngine
from orgscope.hierarchy.repository import NodeRepository
from orgscope.models.actor import Actor
from orgscope.planning.repository import PlanningGroupRepository
from orgscope.planning.scope import ScopeAssignmentEngine
from orgscope.storage.sqlite import SQLiteOrgConfig, SQLiteOrgStore

from .settings import Settings, get_settings

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class OrgServices:
    """Repositories and engines wired to one SQLite store."""

    store: SQLiteOrgStore
    audit: ActivityLogger
    nodes: NodeRepository
    cascade: CascadingDeleteEngine
    groups: PlanningGroupRepository
    scope: ScopeAssignmentEngine

    @classmethod
    def from_settings(cls, settings: Settings) -> "OrgServices":
        store = SQLiteOrgStore(
            SQLiteOrgConfig(db_path=settings.db_path, timeout_seconds=settings.sqlite_timeout_seconds)
        )
        store.initialize()
        audit = ActivityLogger(store, enabled=settings.audit_enabled)
        nodes = NodeRepository(store, root=settings.org_root, audit=audit)
        groups = PlanningGroupRepository(store, root=settings.org_root, audit=audit)
        cascade = CascadingDeleteEngine(
            store,
            root=settings.org_root,
            groups_collection=groups.collection_path,
            release_claims=settings.release_claims_on_delete,
            audit=audit,
        )
        scope = ScopeAssignmentEngine(nodes, groups, checked_commits=settings.checked_commits, audit=audit)
        logger.info(
            "Opened hierarchy store at %s (root=%s, commits=%s)",
            settings.db_path,
            settings.org_root,
            settings.scope_commit_mode,
        )
        return cls(store=store, audit=audit, nodes=nodes, cascade=cascade, groups=groups, scope=scope)


def _resolve_services(settings: Settings) -> OrgServices:
    global _SERVICES
    if _SERVICES is None:
        _SERVICES = OrgServices.from_settings(settings)
    return _SERVICES


def get_services(settings: Settings = Depends(get_settings)) -> OrgServices:
    return _resolve_services(settings)


def reset_services() -> None:
    global _SERVICES
    _SERVICES = None


def get_actor(
    x_user_id: str | None = Header(default=None),
    x_user_email: str | None = Header(default=None),
) -> Actor | None:
    if not x_user_id:
        return None
    return Actor(uid=x_user_id, email=x_user_email)


_SERVICES: OrgServices | None = None


__all__ = ["OrgServices", "get_actor", "get_services", "reset_services"]
