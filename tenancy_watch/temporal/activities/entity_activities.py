"""Party maintenance activities."""

from typing import Dict

from temporalio import activity


@activity.defn
async def merge_duplicate_parties(dry_run: bool = False) -> Dict:
    """Merge parties sharing a merge key and recompute every aggregate."""
    from tenancy_watch.core.database import async_session_maker
    from tenancy_watch.services.entity.merger import PartyMerger

    try:
        async with async_session_maker() as session:
            report = await PartyMerger(session).run(dry_run=dry_run)
    except Exception as e:
        activity.logger.error(f"Party merge failed: {e}")
        raise

    activity.logger.info(
        f"Party merge {'(dry run) ' if dry_run else ''}found {len(report.groups)} groups"
    )
    return report.to_dict()
