"""
backend/app/services/match_service.py

Purpose:
    Read access to matches, squads and leagues with the related team and
    league rows loaded in batches.

Dependencies:
    - app.database
"""

import logging
from typing import Any, Iterable, Optional

from bson import ObjectId

import app.database as _db
from app.config import settings
from app.utils import parse_object_id

logger = logging.getLogger("tawaqo.match_service")


async def _load_by_ids(collection, ids: Iterable[Any]) -> dict[Any, dict]:
    wanted = [i for i in set(ids) if i is not None]
    if not wanted:
        return {}
    docs = await collection.find({"_id": {"$in": wanted}}).to_list(length=None)
    return {doc["_id"]: doc for doc in docs}


async def load_relations(matches: list[dict]) -> tuple[dict[Any, dict], dict[Any, dict]]:
    """Teams and leagues referenced by the given matches, keyed by _id."""
    team_ids = [m.get("home_team_id") for m in matches] + [m.get("away_team_id") for m in matches]
    teams = await _load_by_ids(_db.db.teams, team_ids)
    leagues = await _load_by_ids(_db.db.leagues, [m.get("league_id") for m in matches])
    return teams, leagues


async def get_matches(status: Optional[str] = None, limit: int = 200) -> list[dict]:
    """Matches ordered by kickoff ascending. status=None or "all" returns every state."""
    query: dict = {}
    if status and status != "all":
        query["status"] = status
    cursor = _db.db.matches.find(query).sort("kickoff_time", 1).limit(limit)
    return await cursor.to_list(length=limit)


async def get_match_by_id(match_id: str) -> Optional[dict]:
    """Get a single match by its MongoDB _id. Raises InvalidId on malformed ids."""
    return await _db.db.matches.find_one({"_id": parse_object_id(match_id)})


async def get_team_players(team_id: str) -> dict[str, list[dict]]:
    """Squad split into starters (at most STARTERS_PER_SQUAD) and substitutes, by jersey number."""
    oid = parse_object_id(team_id)
    docs = await _db.db.players.find({"team_id": oid}).sort("jersey_number", 1).to_list(length=None)
    docs.sort(key=lambda d: d.get("jersey_number") or 0)

    starters = [d for d in docs if not d.get("is_substitute")]
    bench = [d for d in docs if d.get("is_substitute")]
    limit = int(settings.STARTERS_PER_SQUAD)
    # Overflow starters (e.g. from an older sync) are shown on the bench.
    return {"lineup": starters[:limit], "substitutes": starters[limit:] + bench}


async def get_team(team_id: ObjectId) -> Optional[dict]:
    return await _db.db.teams.find_one({"_id": team_id})
