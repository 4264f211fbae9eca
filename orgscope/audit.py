from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Set

from orgscope.models.actor import Actor
from orgscope.storage.sqlite import SQLiteOrgStore

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ActivityEntry:
    id: int
    action: str
    performed_by: Optional[Actor]
    details: str
    timestamp: datetime


class ActivityLogger:
    """Fire-and-forget activity log.

    ``notify`` schedules the write and returns immediately. A failed write is
    logged and dropped; it never reaches the caller whose mutation triggered it.
    """

    def __init__(self, store: SQLiteOrgStore, *, enabled: bool = True) -> None:
        self.store = store
        self.enabled = enabled
        self._pending: Set[asyncio.Task[None]] = set()

    def notify(self, action: str, actor: Optional[Actor], details: str) -> None:
        if not self.enabled:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._write_sync(action, actor, details)
            return
        task = loop.create_task(self._write(action, actor, details))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def drain(self) -> None:
        """Wait for every scheduled write to finish."""

        while self._pending:
            await asyncio.gather(*list(self._pending))

    async def recent(self, limit: int = 50) -> List[ActivityEntry]:
        rows = await asyncio.to_thread(self.store.fetch_activity, limit=limit)
        return [
            ActivityEntry(
                id=int(row["id"]),
                action=row["action"],
                performed_by=Actor.from_dict(json.loads(row["performed_by"])) if row["performed_by"] else None,
                details=row["details"],
                timestamp=datetime.fromisoformat(row["timestamp"]),
            )
            for row in rows
        ]

    async def _write(self, action: str, actor: Optional[Actor], details: str) -> None:
        try:
            await asyncio.to_thread(self.store.insert_activity, action, actor.as_dict() if actor else None, details)
        except Exception:
            logger.warning("Activity log write failed for %r", action, exc_info=True)

    def _write_sync(self, action: str, actor: Optional[Actor], details: str) -> None:
        try:
            self.store.insert_activity(action, actor.as_dict() if actor else None, details)
        except Exception:
            logger.warning("Activity log write failed for %r", action, exc_info=True)


__all__ = ["ActivityEntry", "ActivityLogger"]
