#!/usr/bin/env python3
"""
Channel Order Check

Verifies that every channel's connection positions are exactly 0..n-1 and
prints one line per channel that is not.

Reads the database URL from (in order):
- --database-url
- GARDEN_DATABASE_URL
- GARDEN_DATABASE_PATH (SQLite file, default garden.db)

Usage:
  python scripts/check_channel_order.py [--database-url URL] [--migrate]

Exit code is 0 when every channel is contiguous, 1 when any is broken and
2 when the store cannot be opened or lacks the schema.
"""
from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional, Tuple

from garden.db.database import Database
from garden.errors import StorageError
from garden.utils.settings import get_settings

logger = logging.getLogger("garden.scripts.check_channel_order")

PAGE_SIZE = 100


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Check that channel positions are gap-free")
    parser.add_argument(
        "--database-url",
        default=None,
        help="SQLAlchemy URL of the store (default: from GARDEN_DATABASE_URL / GARDEN_DATABASE_PATH)",
    )
    parser.add_argument(
        "--migrate",
        action="store_true",
        help="Apply pending migrations before checking",
    )
    return parser.parse_args(argv)


def find_broken_channels(db: Database) -> List[Tuple[str, str, List[int]]]:
    """Return ``(channel_id, title, positions)`` for every non-contiguous channel."""
    broken = []
    offset = 0
    with db.unit_of_work(write=False) as uow:
        while True:
            page = uow.channels.list(PAGE_SIZE, offset)
            for channel in page.items:
                positions = [c.position for c in uow.connections.list_by_channel(channel.id)]
                if sorted(positions) != list(range(len(positions))):
                    broken.append((channel.id, channel.title, positions))
            if not page.has_next:
                break
            offset += PAGE_SIZE
    return broken


def check(database_url: Optional[str], migrate: bool) -> int:
    try:
        db = Database(database_url)
    except StorageError as e:
        print(f"Cannot open store: {e.message}", file=sys.stderr)
        return 2
    try:
        if migrate:
            db.migrate()
        else:
            db.verify_schema()
        broken = find_broken_channels(db)
    except StorageError as e:
        print(f"Store check failed: {e.message}", file=sys.stderr)
        logger.error("Channel order check aborted: %s", e.message)
        return 2
    finally:
        db.close()

    for channel_id, title, positions in broken:
        print(f"BROKEN {channel_id} ({title}): positions {positions}")
    if broken:
        logger.warning("Channel order check found %d broken channels", len(broken))
        return 1
    print("All channels are contiguous.")
    return 0


def main(argv: list[str] | None = None) -> int:
    if not logging.getLogger().handlers:
        logging.basicConfig(level=getattr(logging, get_settings().log_level, logging.INFO), format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    args = parse_args(argv)
    return check(args.database_url, args.migrate)


if __name__ == "__main__":  # pragma: no cover - manual execution path
    sys.exit(main())
