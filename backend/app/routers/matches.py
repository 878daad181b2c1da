"""
backend/app/routers/matches.py

Purpose:
    Match, squad, league and standings read API. Listing matches refreshes
    stale data from the provider first.

Dependencies:
    - app.services.match_service
    - app.services.sync_trigger_service
    - app.services.sync_service
"""

import logging
from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import JSONResponse

from app.models.match import (
    MatchDetailResponse,
    MatchResponse,
    SquadResponse,
    db_to_response,
    player_to_response,
)
from app.services.auth_service import get_admin_user, get_current_user
from app.services.league_service import league_to_response, list_leagues
from app.services.match_service import (
    get_match_by_id,
    get_matches,
    get_team,
    get_team_players,
    load_relations,
)
from app.services.sync_service import sync_service
from app.services.sync_trigger_service import sync_trigger
from app.utils import parse_object_id

logger = logging.getLogger("tawaqo.matches")

router = APIRouter(prefix="/api", tags=["matches"])

StatusFilter = Literal["upcoming", "live", "finished", "postponed", "all"]
_FAILURE_STATUS = {"config": 503, "provider": 502, "store": 500}


def failure_status_code(result: dict) -> int:
    return _FAILURE_STATUS.get(result.get("error_type"), 500)


@router.get("/matches", response_model=list[MatchResponse])
async def list_matches(
    status_filter: Optional[StatusFilter] = Query(None, alias="status"),
    limit: int = Query(200, ge=1, le=500),
):
    """Matches by kickoff. Runs the sync chain first when data is stale."""
    refresh = await sync_trigger.ensure_fresh()
    if refresh.get("triggered") and not refresh.get("success"):
        logger.warning("Stale-data refresh failed; serving stored matches")

    matches = await get_matches(status=status_filter, limit=limit)
    teams, leagues = await load_relations(matches)
    return [db_to_response(m, teams, leagues) for m in matches]


@router.post("/matches/sync")
async def force_sync(admin=Depends(get_admin_user)):
    """Run teams -> matches -> players now, ignoring the staleness window."""
    result = await sync_trigger.run_chain()
    if not result["success"]:
        failed = result["matches"] or result["teams"]
        return JSONResponse(status_code=failure_status_code(failed), content=result)
    return result


@router.get("/matches/{match_id}", response_model=MatchDetailResponse)
async def match_detail(match_id: str):
    match = await get_match_by_id(match_id)
    if not match:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Match not found.")
    teams, leagues = await load_relations([match])
    return db_to_response(match, teams, leagues, detailed=True)


@router.get("/teams/{team_id}/players", response_model=SquadResponse)
async def team_players(team_id: str):
    team = await get_team(parse_object_id(team_id))
    if not team:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Team not found.")
    squad = await get_team_players(team_id)
    return SquadResponse(
        lineup=[player_to_response(p) for p in squad["lineup"]],
        substitutes=[player_to_response(p) for p in squad["substitutes"]],
    )


@router.get("/leagues")
async def active_leagues():
    return [league_to_response(doc) for doc in await list_leagues(active_only=True)]


@router.get("/standings")
async def standings(
    league_id: Optional[str] = Query(None, alias="leagueId"),
    season: Optional[int] = Query(None, ge=1900, le=2100),
    user=Depends(get_current_user),
):
    """League table straight from the provider. Nothing is stored."""
    result = await sync_service.get_standings(league_id, season)
    if not result["success"]:
        return JSONResponse(status_code=failure_status_code(result), content=result)
    return result
