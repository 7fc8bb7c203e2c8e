"""Re-run extraction on stored awards at or above a floor.

Cases whose stored compensation is at least ``--floor`` (default
AI_REVERIFY_FLOOR) are re-extracted with the current verifier and their AI
fields overwritten; aggregates of the affected parties are recomputed.

Usage:
    python scripts/reverify_high_awards.py [--floor 25000] [--source disputes] [--limit 500]
"""

import argparse
import asyncio
import json

from tenancy_watch.core.database import close_database
from tenancy_watch.models.enums import SourceType
from tenancy_watch.services.enrichment.batch import EnrichmentBatchService


async def main(source_type: str, floor: float, limit: int) -> None:
    try:
        result = await EnrichmentBatchService().reverify_high_awards(source_type, floor=floor, limit=limit)
    finally:
        await close_database()
    print(json.dumps(result.to_dict(), indent=2))


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument("--floor", type=float, default=None, help="Minimum stored award to re-verify")
    parser.add_argument(
        "--source",
        choices=[s.value for s in SourceType],
        default=SourceType.DISPUTES.value,
    )
    parser.add_argument("--limit", type=int, default=500)
    args = parser.parse_args()
    asyncio.run(main(args.source, args.floor, args.limit))
