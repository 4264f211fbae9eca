from __future__ import annotations

import argparse
import sqlite3
from pathlib import Path


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Remove hierarchy, planning-group and activity rows from the org store.")
    parser.add_argument(
        "sqlite",
        type=Path,
        nargs="?",
        default=Path("artifacts/orgscope.db"),
        help="Path to the SQLite database to clean (default: artifacts/orgscope.db)",
    )
    parser.add_argument(
        "--drop-tables",
        action="store_true",
        help="Drop the tables entirely instead of deleting rows.",
    )
    parser.add_argument(
        "--keep-activity",
        action="store_true",
        help="Leave the activity log untouched.",
    )
    return parser.parse_args()


def clean_db(path: Path, drop_tables: bool = False, keep_activity: bool = False) -> None:
    if not path.exists():
        print(f"[info] SQLite database not found at {path}; nothing to clean.")
        return

    tables = ["nodes", "planning_groups"]
    if not keep_activity:
        tables.append("activity_logs")

    conn = sqlite3.connect(path)
    try:
        cursor = conn.cursor()
        if drop_tables:
            cursor.executescript("".join(f"DROP TABLE IF EXISTS {table};\n" for table in tables))
            print(f"[info] Dropped {', '.join(tables)} in {path}.")
        else:
            existing = {
                row[0] for row in cursor.execute("SELECT name FROM sqlite_master WHERE type = 'table'")
            }
            for table in tables:
                if table in existing:
                    cursor.execute(f"DELETE FROM {table}")
            print(f"[info] Cleared {', '.join(tables)} rows in {path}.")
        conn.commit()
    finally:
        conn.close()


def main() -> None:
    args = parse_args()
    clean_db(args.sqlite, drop_tables=args.drop_tables, keep_activity=args.keep_activity)


if __name__ == "__main__":
    main()
