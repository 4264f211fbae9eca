import logging

import pytest

from orgscope.audit import ActivityLogger
from orgscope.logging_utils import configure_logging
from orgscope.models.actor import Actor


@pytest.mark.asyncio
async def test_notify_writes_in_background(store):
    audit = ActivityLogger(store)
    actor = Actor(uid="u-1", email="a@example.com")

    audit.notify("Planning Group Created", actor, 'Created planning group "LINES" (PG1).')
    await audit.drain()

    entries = await audit.recent()
    assert len(entries) == 1
    assert entries[0].performed_by == actor
    assert entries[0].details.endswith("(PG1).")
    assert entries[0].timestamp.tzinfo is not None


def test_notify_without_running_loop_writes_immediately(store):
    audit = ActivityLogger(store)

    audit.notify("Hierarchy Node Created", None, "Created from a script.")

    rows = store.fetch_activity()
    assert [row["action"] for row in rows] == ["Hierarchy Node Created"]
    assert rows[0]["performed_by"] is None


@pytest.mark.asyncio
async def test_disabled_logger_writes_nothing(store):
    audit = ActivityLogger(store, enabled=False)

    audit.notify("Hierarchy Node Created", None, "ignored")
    await audit.drain()

    assert await audit.recent() == []


@pytest.mark.asyncio
async def test_write_failures_are_logged_not_raised(monkeypatch, caplog, store):
    audit = ActivityLogger(store)

    def broken_insert(action, performed_by, details):
        raise RuntimeError("activity table is read-only")

    monkeypatch.setattr(store, "insert_activity", broken_insert)

    with caplog.at_level(logging.WARNING, logger="orgscope.audit"):
        audit.notify("Hierarchy Node Deleted", None, "Deleted node.")
        await audit.drain()

    assert "Activity log write failed" in caplog.text


def test_configure_logging_adjusts_root_level():
    root = logging.getLogger()
    previous = root.level
    try:
        configure_logging("warning")
        assert root.level == logging.WARNING
        configure_logging("not-a-level")
        assert root.level == logging.INFO
    finally:
        root.setLevel(previous)
