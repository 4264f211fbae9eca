from __future__ import annotations

import argparse
import asyncio
import os
from pathlib import Path

from dotenv import load_dotenv

from orgscope.audit import ActivityLogger
from orgscope.hierarchy.repository import NodeRepository
from orgscope.logging_utils import configure_logging
from orgscope.models.actor import SYSTEM_ACTOR
from orgscope.planning.repository import PlanningGroupRepository
from orgscope.seed import load_seed_file, seed_hierarchy
from orgscope.storage.sqlite import SQLiteOrgConfig, SQLiteOrgStore


def parse_args() -> argparse.Namespace:
    if Path(".env").exists():
        load_dotenv(".env", override=False)
    parser = argparse.ArgumentParser(description="Load an organizational hierarchy from a YAML/TOML/JSON seed file.")
    parser.add_argument("seed", type=Path, help="Seed file describing nodes and planning groups")
    parser.add_argument(
        "--sqlite-db",
        type=Path,
        default=Path(os.getenv("ORG_DB_PATH", "artifacts/orgscope.db")),
        help="SQLite database to populate (default: $ORG_DB_PATH or artifacts/orgscope.db)",
    )
    parser.add_argument(
        "--root",
        default=os.getenv("ORG_ROOT", "org"),
        help="Organization root segment (default: $ORG_ROOT or org)",
    )
    parser.add_argument(
        "--reset",
        action="store_true",
        help="Delete existing nodes, planning groups and activity before seeding.",
    )
    parser.add_argument(
        "--no-audit",
        action="store_true",
        help="Do not write activity log entries for seeded records.",
    )
    return parser.parse_args()


async def run(args: argparse.Namespace) -> None:
    seed = load_seed_file(args.seed)
    store = SQLiteOrgStore(SQLiteOrgConfig(db_path=args.sqlite_db))
    store.initialize()
    if args.reset:
        store.clear_all()

    audit = ActivityLogger(store, enabled=not args.no_audit)
    nodes = NodeRepository(store, root=args.root, audit=audit)
    groups = PlanningGroupRepository(store, root=args.root, audit=audit)
    created = await seed_hierarchy(nodes, seed, groups=groups, actor=SYSTEM_ACTOR)
    await audit.drain()
    print(f"[info] Created {len(created)} nodes and {len(seed.planning_groups)} planning groups in {args.sqlite_db}.")


def main() -> None:
    configure_logging(os.getenv("LOG_LEVEL", "INFO"))
    asyncio.run(run(parse_args()))


if __name__ == "__main__":
    main()
