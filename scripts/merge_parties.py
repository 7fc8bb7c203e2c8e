"""Merge duplicate parties and recompute every party aggregate.

Usage:
    python scripts/merge_parties.py [--dry-run]
"""

import argparse
import asyncio
import json

from tenancy_watch.core.database import async_session_maker, close_database
from tenancy_watch.services.entity.merger import PartyMerger
from tenancy_watch.utils.logging import get_logger

logger = get_logger(__name__)


async def main(dry_run: bool) -> None:
    try:
        async with async_session_maker() as session:
            report = await PartyMerger(session).run(dry_run=dry_run)
    finally:
        await close_database()

    for group in report.groups:
        logger.info(f"{group.canonical_name!r} <- {group.duplicate_names}")
    print(json.dumps(report.to_dict(), indent=2))


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument("--dry-run", action="store_true", help="Report merge groups without writing")
    args = parser.parse_args()
    asyncio.run(main(args.dry_run))
