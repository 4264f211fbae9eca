from __future__ import annotations

import json
import logging
import sqlite3
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Sequence

from orgscope.errors import ConflictError, ErrorCode, NotFoundError, SectionUnavailableError, StorageError

from .batch import BatchOperation, BatchOperationKind, WriteBatch

logger = logging.getLogger(__name__)


def _ts() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(slots=True)
class SQLiteOrgConfig:
    """Configuration for the SQLite-backed organization store."""

    db_path: Path
    enable_wal: bool = True
    timeout_seconds: float = 5.0


class SQLiteOrgStore:
    """Persists hierarchy nodes, planning groups and activity logs in SQLite.

    Every call opens its own connection so the async repositories can run
    store methods in worker threads concurrently. Writes run inside
    ``BEGIN IMMEDIATE`` transactions; ``sqlite3.Error`` surfaces as
    ``StorageError``.
    """

    def __init__(self, config: SQLiteOrgConfig) -> None:
        self.config = config

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(
            self.config.db_path,
            timeout=self.config.timeout_seconds,
            isolation_level=None,
        )
        conn.row_factory = sqlite3.Row
        return conn

    @contextmanager
    def _reading(self) -> Iterator[sqlite3.Connection]:
        try:
            conn = self._connect()
        except sqlite3.Error as exc:
            raise StorageError(f"Could not open {self.config.db_path}", original_error=exc) from exc
        try:
            yield conn
        except sqlite3.Error as exc:
            raise StorageError("Read from organization store failed", original_error=exc) from exc
        finally:
            conn.close()

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Yield a connection inside an immediate (write-locked) transaction."""

        try:
            conn = self._connect()
        except sqlite3.Error as exc:
            raise StorageError(f"Could not open {self.config.db_path}", original_error=exc) from exc
        try:
            conn.execute("BEGIN IMMEDIATE")
        except sqlite3.Error as exc:
            conn.close()
            raise StorageError("Could not start a write transaction", original_error=exc) from exc
        try:
            yield conn
            conn.execute("COMMIT")
        except sqlite3.Error as exc:
            self._rollback(conn)
            raise StorageError("Write to organization store failed", original_error=exc) from exc
        except BaseException:
            self._rollback(conn)
            raise
        finally:
            conn.close()

    @staticmethod
    def _rollback(conn: sqlite3.Connection) -> None:
        if conn.in_transaction:
            conn.execute("ROLLBACK")

    def initialize(self) -> None:
        """Create tables and indices if they do not exist."""

        self.config.db_path.parent.mkdir(parents=True, exist_ok=True)
        with self._reading() as conn:
            if self.config.enable_wal:
                conn.execute("PRAGMA journal_mode=WAL;")
            conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS nodes (
                    path TEXT PRIMARY KEY,
                    id TEXT NOT NULL,
                    collection_path TEXT NOT NULL,
                    parent_path TEXT NOT NULL,
                    level INTEGER NOT NULL CHECK (level BETWEEN 1 AND 7),
                    name TEXT NOT NULL,
                    code TEXT NOT NULL,
                    description TEXT NOT NULL DEFAULT '',
                    section_type TEXT,
                    asset_type TEXT,
                    asset_component_path TEXT,
                    asset_attributes TEXT,
                    created_by TEXT,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                );

                CREATE INDEX IF NOT EXISTS idx_nodes_collection
                    ON nodes (collection_path, name);

                CREATE TABLE IF NOT EXISTS planning_groups (
                    id TEXT PRIMARY KEY,
                    collection_path TEXT NOT NULL,
                    code TEXT NOT NULL,
                    name TEXT NOT NULL,
                    description TEXT NOT NULL DEFAULT '',
                    assigned_sections TEXT NOT NULL DEFAULT '[]',
                    created_by TEXT,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                );

                CREATE INDEX IF NOT EXISTS idx_planning_groups_code
                    ON planning_groups (collection_path, code);

                CREATE TABLE IF NOT EXISTS activity_logs (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    action TEXT NOT NULL,
                    performed_by TEXT,
                    details TEXT NOT NULL,
                    timestamp TEXT NOT NULL
                );
                """
            )

    # ------------------------------------------------------------------ nodes
    def fetch_node(self, path: str) -> Optional[sqlite3.Row]:
        with self._reading() as conn:
            return conn.execute("SELECT * FROM nodes WHERE path = ?;", (path,)).fetchone()

    def fetch_children(self, collection_path: str) -> List[sqlite3.Row]:
        with self._reading() as conn:
            return conn.execute(
                """
                SELECT *
                FROM nodes
                WHERE collection_path = ?
                ORDER BY name, id;
                """,
                (collection_path,),
            ).fetchall()

    def fetch_child_codes(self, collection_path: str) -> List[str]:
        with self._reading() as conn:
            rows = conn.execute(
                "SELECT code FROM nodes WHERE collection_path = ?;",
                (collection_path,),
            ).fetchall()
        return [row["code"] for row in rows]

    def insert_node(self, values: Dict[str, Any]) -> None:
        payload = dict(values)
        payload["asset_attributes"] = json.dumps(payload.get("asset_attributes") or {})
        payload["created_by"] = json.dumps(payload["created_by"]) if payload.get("created_by") else None
        with self.transaction() as conn:
            try:
                conn.execute(
                    """
                    INSERT INTO nodes(
                        path, id, collection_path, parent_path, level, name, code, description,
                        section_type, asset_type, asset_component_path, asset_attributes,
                        created_by, created_at, updated_at
                    )
                    VALUES (
                        :path, :id, :collection_path, :parent_path, :level, :name, :code, :description,
                        :section_type, :asset_type, :asset_component_path, :asset_attributes,
                        :created_by, :created_at, :updated_at
                    );
                    """,
                    payload,
                )
            except sqlite3.IntegrityError as exc:
                if "UNIQUE" not in str(exc):
                    raise
                raise ConflictError(
                    f"A node already exists at {payload['path']}",
                    error_code=ErrorCode.DUPLICATE_NODE_ID,
                    context={"path": payload["path"]},
                    original_error=exc,
                ) from exc

    def update_node(self, path: str, values: Dict[str, Any]) -> bool:
        if not values:
            return self.fetch_node(path) is not None
        payload = dict(values)
        if "asset_attributes" in payload:
            payload["asset_attributes"] = json.dumps(payload["asset_attributes"] or {})
        payload["updated_at"] = _ts()
        assignments = ", ".join(f"{column} = :{column}" for column in payload)
        payload["path"] = path
        with self.transaction() as conn:
            cursor = conn.execute(f"UPDATE nodes SET {assignments} WHERE path = :path;", payload)
            return cursor.rowcount > 0

    # ------------------------------------------------------------------ planning groups
    def fetch_groups(self, collection_path: str) -> List[sqlite3.Row]:
        with self._reading() as conn:
            return conn.execute(
                "SELECT * FROM planning_groups WHERE collection_path = ? ORDER BY code, id;",
                (collection_path,),
            ).fetchall()

    def fetch_group(self, collection_path: str, group_id: str) -> Optional[sqlite3.Row]:
        with self._reading() as conn:
            return conn.execute(
                "SELECT * FROM planning_groups WHERE collection_path = ? AND id = ?;",
                (collection_path, group_id),
            ).fetchone()

    def fetch_groups_by_code(self, collection_path: str, code: str) -> List[sqlite3.Row]:
        with self._reading() as conn:
            return conn.execute(
                "SELECT * FROM planning_groups WHERE collection_path = ? AND code = ?;",
                (collection_path, code),
            ).fetchall()

    def insert_group(self, values: Dict[str, Any]) -> None:
        payload = dict(values)
        payload["assigned_sections"] = json.dumps(payload.get("assigned_sections") or [])
        payload["created_by"] = json.dumps(payload["created_by"]) if payload.get("created_by") else None
        with self.transaction() as conn:
            conn.execute(
                """
                INSERT INTO planning_groups(
                    id, collection_path, code, name, description, assigned_sections,
                    created_by, created_at, updated_at
                )
                VALUES (
                    :id, :collection_path, :code, :name, :description, :assigned_sections,
                    :created_by, :created_at, :updated_at
                );
                """,
                payload,
            )

    def update_group(self, collection_path: str, group_id: str, values: Dict[str, Any]) -> bool:
        payload = dict(values)
        payload["updated_at"] = _ts()
        assignments = ", ".join(f"{column} = :{column}" for column in payload)
        payload["collection_path"] = collection_path
        payload["group_id"] = group_id
        with self.transaction() as conn:
            cursor = conn.execute(
                f"UPDATE planning_groups SET {assignments} WHERE collection_path = :collection_path AND id = :group_id;",
                payload,
            )
            return cursor.rowcount > 0

    def delete_group(self, collection_path: str, group_id: str) -> bool:
        with self.transaction() as conn:
            cursor = conn.execute(
                "DELETE FROM planning_groups WHERE collection_path = ? AND id = ?;",
                (collection_path, group_id),
            )
            return cursor.rowcount > 0

    def replace_sections(
        self,
        collection_path: str,
        group_id: str,
        sections: Sequence[Dict[str, str]],
    ) -> bool:
        """Overwrite a group's sections without looking at other groups."""

        with self.transaction() as conn:
            self._require_sections(conn, sections)
            return self._write_sections(conn, collection_path, group_id, sections)

    def replace_sections_checked(
        self,
        collection_path: str,
        group_id: str,
        sections: Sequence[Dict[str, str]],
    ) -> None:
        """Overwrite a group's sections only if no other group claims any of them.

        The read of every other group's claims, the check that each section
        still exists and the write share one immediate transaction, so
        concurrent checked commits and subtree deletes serialize.
        """

        wanted = {section["l5Id"] for section in sections}
        with self.transaction() as conn:
            exists = conn.execute(
                "SELECT 1 FROM planning_groups WHERE collection_path = ? AND id = ?;",
                (collection_path, group_id),
            ).fetchone()
            if exists is None:
                raise NotFoundError(
                    f"Planning group {group_id} not found",
                    error_code=ErrorCode.GROUP_NOT_FOUND,
                    context={"group_id": group_id},
                )
            rows = conn.execute(
                "SELECT id, assigned_sections FROM planning_groups WHERE collection_path = ? AND id != ?;",
                (collection_path, group_id),
            ).fetchall()
            claimed_by: Dict[str, str] = {}
            for row in rows:
                for section in json.loads(row["assigned_sections"] or "[]"):
                    claimed_by[section["l5Id"]] = row["id"]
            conflicts = wanted & claimed_by.keys()
            if conflicts:
                raise SectionUnavailableError(
                    conflicts,
                    context={
                        "group_id": group_id,
                        "claimed_by": {section_id: claimed_by[section_id] for section_id in sorted(conflicts)},
                    },
                )
            self._require_sections(conn, sections)
            self._write_sections(conn, collection_path, group_id, sections)

    @staticmethod
    def _require_sections(conn: sqlite3.Connection, sections: Sequence[Dict[str, str]]) -> None:
        missing = [
            section["path"]
            for section in sections
            if conn.execute("SELECT 1 FROM nodes WHERE path = ?;", (section["path"],)).fetchone() is None
        ]
        if missing:
            raise NotFoundError(
                "Some sections no longer exist. Refresh the available sections and try again.",
                error_code=ErrorCode.SECTION_NOT_FOUND,
                context={"paths": missing},
            )

    @staticmethod
    def _write_sections(
        conn: sqlite3.Connection,
        collection_path: str,
        group_id: str,
        sections: Sequence[Dict[str, str]],
    ) -> bool:
        cursor = conn.execute(
            """
            UPDATE planning_groups
            SET assigned_sections = ?, updated_at = ?
            WHERE collection_path = ? AND id = ?;
            """,
            (json.dumps(list(sections)), _ts(), collection_path, group_id),
        )
        return cursor.rowcount > 0

    # ------------------------------------------------------------------ batches
    def commit_batch(self, batch: WriteBatch) -> None:
        """Apply every queued operation atomically: all of them or none."""

        if batch.committed:
            raise StorageError("Write batch has already been committed")
        released: Dict[str, List[str]] = {}
        with self.transaction() as conn:
            for operation in batch.operations:
                for group_id, section_ids in (self._apply_operation(conn, operation) or {}).items():
                    released.setdefault(group_id, []).extend(section_ids)
        batch.released = released
        batch.committed = True
        logger.debug("Committed write batch with %d operations", len(batch))

    def _apply_operation(
        self, conn: sqlite3.Connection, operation: BatchOperation
    ) -> Optional[Dict[str, List[str]]]:
        if operation.kind is BatchOperationKind.DELETE_NODE:
            conn.execute("DELETE FROM nodes WHERE path = ?;", (operation.key,))
            return None
        elif operation.kind is BatchOperationKind.RELEASE_SECTIONS:
            return self._release_sections(conn, operation.collection_path or "", set(operation.payload))
        else:  # pragma: no cover
            raise StorageError(f"Unsupported batch operation {operation.kind}")

    def _release_sections(
        self, conn: sqlite3.Connection, collection_path: str, paths: set[str]
    ) -> Dict[str, List[str]]:
        """Strip claims on ``paths`` from the groups as they are stored right now."""

        released: Dict[str, List[str]] = {}
        rows = conn.execute(
            "SELECT id, assigned_sections FROM planning_groups WHERE collection_path = ? ORDER BY code, id;",
            (collection_path,),
        ).fetchall()
        for row in rows:
            sections = json.loads(row["assigned_sections"] or "[]")
            kept = [section for section in sections if section.get("path") not in paths]
            if len(kept) != len(sections):
                released[row["id"]] = [section["l5Id"] for section in sections if section.get("path") in paths]
                self._write_sections(conn, collection_path, row["id"], kept)
        return released

    # ------------------------------------------------------------------ activity logs
    def insert_activity(self, action: str, performed_by: Optional[Dict[str, Any]], details: str) -> None:
        with self.transaction() as conn:
            conn.execute(
                "INSERT INTO activity_logs(action, performed_by, details, timestamp) VALUES (?, ?, ?, ?);",
                (action, json.dumps(performed_by) if performed_by else None, details, _ts()),
            )

    def fetch_activity(self, *, limit: int = 50) -> List[sqlite3.Row]:
        with self._reading() as conn:
            return conn.execute(
                "SELECT * FROM activity_logs ORDER BY id DESC LIMIT ?;",
                (limit,),
            ).fetchall()

    # ------------------------------------------------------------------ maintenance
    def clear_all(self) -> None:
        with self.transaction() as conn:
            conn.execute("DELETE FROM nodes;")
            conn.execute("DELETE FROM planning_groups;")
            conn.execute("DELETE FROM activity_logs;")

    def count_nodes(self, *, path_prefix: Optional[str] = None) -> int:
        with self._reading() as conn:
            if path_prefix is None:
                row = conn.execute("SELECT COUNT(*) AS total FROM nodes;").fetchone()
            else:
                row = conn.execute(
                    "SELECT COUNT(*) AS total FROM nodes WHERE path = ? OR substr(path, 1, ?) = ?;",
                    (path_prefix, len(path_prefix) + 1, f"{path_prefix}/"),
                ).fetchone()
        return int(row["total"])


__all__ = ["SQLiteOrgStore", "SQLiteOrgConfig"]
