"""
backend/app/routers/football_api.py

Purpose:
    Single ingestion trigger endpoint. Dispatches an `action` to the sync
    service and maps structured failures onto HTTP status codes.

Dependencies:
    - app.services.sync_service
    - app.services.auth_service
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse

import app.database as _db
from app.models.leagues import FootballApiRequest
from app.routers.matches import failure_status_code
from app.services.auth_service import get_current_user
from app.services.sync_service import sync_service
from app.utils import parse_object_id

logger = logging.getLogger("tawaqo.football_api")

router = APIRouter(prefix="/api", tags=["sync"])

ADMIN_ACTIONS = {"syncTeams", "syncMatches", "syncPlayers", "syncMatchDetails"}
READ_ACTIONS = {"getStandings", "testConnection"}


async def _fixture_external_id(body: FootballApiRequest) -> str | None:
    if body.fixtureId:
        return str(body.fixtureId)
    if body.matchId:
        match = await _db.db.matches.find_one({"_id": parse_object_id(body.matchId)}, {"external_id": 1})
        if match:
            return match.get("external_id")
    return None


async def run_action(body: FootballApiRequest) -> dict:
    if body.action == "syncTeams":
        return await sync_service.sync_teams(body.leagueId, body.season)
    if body.action == "syncMatches":
        return await sync_service.sync_matches(body.leagueId, body.season)
    if body.action == "syncPlayers":
        return await sync_service.sync_players(body.teamIds)
    if body.action == "syncMatchDetails":
        fixture_id = await _fixture_external_id(body)
        if not fixture_id:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="fixtureId or matchId required.")
        return await sync_service.sync_match_details(fixture_id)
    if body.action == "getStandings":
        return await sync_service.get_standings(body.leagueId, body.season)
    return await sync_service.test_connection()


@router.post("/football-api")
async def football_api(body: FootballApiRequest, user=Depends(get_current_user)):
    if body.action not in ADMIN_ACTIONS | READ_ACTIONS:
        return JSONResponse(status_code=400, content={"success": False, "error": "Invalid action"})
    if body.action in ADMIN_ACTIONS and "admin" not in user.get("roles", []):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admins only.")

    result = await run_action(body)
    if not result["success"]:
        logger.warning("football-api %s failed: %s (%s)", body.action, result["error"], result["error_type"])
        return JSONResponse(status_code=failure_status_code(result), content=result)
    logger.info("football-api %s by %s: count=%s", body.action, user["_id"], result.get("count"))
    return result
