"""
backend/app/services/sync_trigger_service.py

Purpose:
    Decide when match data is stale and run the teams -> matches -> players
    chain. The last successful chain run is recorded in `worker_state`, so
    every client and API process shares one staleness clock.

Dependencies:
    - app.services.sync_service
    - app.workers._state
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any

import app.database as _db
from app.config import settings
from app.services.sync_service import SyncService, sync_service
from app.utils import ensure_utc, utcnow
from app.workers._state import recently_synced, set_attempted, set_synced

logger = logging.getLogger("tawaqo.sync_trigger")

MATCH_SYNC_STATE_ID = "match_sync"


class SyncTrigger:
    def __init__(self, service: SyncService | None = None) -> None:
        self._service = service

    @property
    def service(self) -> SyncService:
        return self._service or sync_service

    async def should_sync(self, now: datetime | None = None) -> bool:
        """True when the store is nearly empty, never synced, or older than the staleness window."""
        now = ensure_utc(now) if now else utcnow()
        count = await _db.db.matches.count_documents({})
        if count < int(settings.SYNC_MIN_MATCH_COUNT):
            logger.info("Match store has %d rows (< %d); sync needed", count, settings.SYNC_MIN_MATCH_COUNT)
            return True
        window = timedelta(hours=int(settings.SYNC_STALENESS_HOURS))
        return not await recently_synced(MATCH_SYNC_STATE_ID, window, now)

    async def run_chain(self) -> dict[str, Any]:
        """teams -> matches -> players. Players are best-effort."""
        service = self.service
        teams = await service.sync_teams()
        if not teams["success"]:
            await set_attempted(MATCH_SYNC_STATE_ID, teams["error"])
            return {"success": False, "teams": teams, "matches": None, "players": None}

        matches = await service.sync_matches()
        if not matches["success"]:
            await set_attempted(MATCH_SYNC_STATE_ID, matches["error"])
            return {"success": False, "teams": teams, "matches": matches, "players": None}

        players = await service.sync_players()
        if not players["success"]:
            logger.warning("Player sync failed during chain: %s", players.get("error"))

        await set_synced(
            MATCH_SYNC_STATE_ID,
            teams=teams["count"],
            matches=matches["count"],
            players=players.get("count", 0),
            last_error=None,
        )
        return {"success": True, "teams": teams, "matches": matches, "players": players}

    async def ensure_fresh(self, now: datetime | None = None) -> dict[str, Any]:
        if not await self.should_sync(now):
            return {"triggered": False}
        logger.info("Match data stale; running sync chain")
        result = await self.run_chain()
        return {"triggered": True, **result}


sync_trigger = SyncTrigger()
