"""SQLite persistence for hierarchy nodes, planning groups and activity logs."""

from .batch import BatchOperation, BatchOperationKind, WriteBatch
from .sqlite import SQLiteOrgConfig, SQLiteOrgStore

__all__ = [
    "BatchOperation",
    "BatchOperationKind",
    "SQLiteOrgConfig",
    "SQLiteOrgStore",
    "WriteBatch",
]
