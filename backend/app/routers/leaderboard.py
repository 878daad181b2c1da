from typing import Any

from fastapi import APIRouter, Query

from app.services.leaderboard_service import get_leaderboard

router = APIRouter(prefix="/api/leaderboard", tags=["leaderboard"])


@router.get("")
async def leaderboard(limit: int = Query(50, ge=1, le=200)) -> list[dict[str, Any]]:
    """Global leaderboard, sorted by points then prediction count.

    Public endpoint: returns display name and avatar only, never email.
    """
    return await get_leaderboard(limit=limit)
