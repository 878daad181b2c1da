"""
backend/app/workers/sync_worker.py

Purpose:
    Scheduled entry point that refreshes match data when it has gone stale.
    Registered on the APScheduler instance only while automation is enabled.

Dependencies:
    - app.services.sync_trigger_service
"""

import logging

from app.services.sync_trigger_service import sync_trigger

logger = logging.getLogger("tawaqo.sync_worker")


async def refresh_match_data() -> None:
    """Run the sync chain if stale. Errors are logged; the scheduler keeps the job."""
    try:
        result = await sync_trigger.ensure_fresh()
    except Exception as e:
        logger.error("Scheduled match sync failed: %s", e, exc_info=True)
        return
    if not result.get("triggered"):
        logger.debug("Match data fresh; scheduled sync skipped")
    elif result.get("success"):
        logger.info(
            "Scheduled match sync: %d teams, %d matches",
            result["teams"]["count"], result["matches"]["count"],
        )
    else:
        logger.warning("Scheduled match sync incomplete: %s", result)
