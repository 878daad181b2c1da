from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel

from app.utils import as_utc


class MatchStatus(str, Enum):
    upcoming = "upcoming"
    live = "live"
    finished = "finished"
    postponed = "postponed"


class TeamSummary(BaseModel):
    id: str
    name: str
    name_ar: Optional[str] = None
    logo_url: Optional[str] = None


class LeagueSummary(BaseModel):
    id: str
    name: str
    name_ar: Optional[str] = None
    prediction_price: float = 0.0


class MatchResponse(BaseModel):
    """Match data returned to the client."""
    id: str
    external_id: Optional[str] = None
    kickoff_time: datetime
    status: MatchStatus
    home_score: Optional[int] = None
    away_score: Optional[int] = None
    stadium: Optional[str] = None
    referee: Optional[str] = None
    home_team: Optional[TeamSummary] = None
    away_team: Optional[TeamSummary] = None
    league: Optional[LeagueSummary] = None


class MatchDetailResponse(MatchResponse):
    """Single match with the semi-structured detail fields."""
    weather: Optional[Any] = None
    home_coach: Optional[str] = None
    away_coach: Optional[str] = None
    home_formation: Optional[str] = None
    away_formation: Optional[str] = None
    home_lineup: Optional[List[Dict[str, Any]]] = None
    away_lineup: Optional[List[Dict[str, Any]]] = None
    home_substitutes: Optional[List[Dict[str, Any]]] = None
    away_substitutes: Optional[List[Dict[str, Any]]] = None
    match_stats: Optional[Dict[str, Any]] = None
    match_details: Optional[Dict[str, Any]] = None


class PlayerResponse(BaseModel):
    id: str
    name: str
    name_ar: Optional[str] = None
    position: str = "MF"
    jersey_number: int = 0
    is_substitute: bool = False
    photo_url: Optional[str] = None


class SquadResponse(BaseModel):
    lineup: List[PlayerResponse]
    substitutes: List[PlayerResponse]


def team_summary(doc: Optional[dict]) -> Optional[TeamSummary]:
    if not doc:
        return None
    return TeamSummary(
        id=str(doc["_id"]),
        name=doc.get("name", ""),
        name_ar=doc.get("name_ar"),
        logo_url=doc.get("logo_url"),
    )


def league_summary(doc: Optional[dict]) -> Optional[LeagueSummary]:
    if not doc:
        return None
    return LeagueSummary(
        id=str(doc["_id"]),
        name=doc.get("name", ""),
        name_ar=doc.get("name_ar"),
        prediction_price=float(doc.get("prediction_price") or 0.0),
    )


def db_to_response(
    doc: dict,
    teams: Dict[Any, dict],
    leagues: Dict[Any, dict],
    *,
    detailed: bool = False,
) -> MatchResponse:
    """Convert a MongoDB match document (plus preloaded teams/leagues) to an API response."""
    base = dict(
        id=str(doc["_id"]),
        external_id=doc.get("external_id"),
        kickoff_time=as_utc(doc["kickoff_time"]),
        status=doc.get("status", "upcoming"),
        home_score=doc.get("home_score"),
        away_score=doc.get("away_score"),
        stadium=doc.get("stadium"),
        referee=doc.get("referee"),
        home_team=team_summary(teams.get(doc.get("home_team_id"))),
        away_team=team_summary(teams.get(doc.get("away_team_id"))),
        league=league_summary(leagues.get(doc.get("league_id"))),
    )
    if not detailed:
        return MatchResponse(**base)
    detail_keys = MatchDetailResponse.model_fields.keys() - MatchResponse.model_fields.keys()
    return MatchDetailResponse(**base, **{key: doc.get(key) for key in detail_keys})


def player_to_response(doc: dict) -> PlayerResponse:
    return PlayerResponse(
        id=str(doc["_id"]),
        name=doc.get("name", ""),
        name_ar=doc.get("name_ar") or doc.get("name"),
        position=doc.get("position") or "MF",
        jersey_number=doc.get("jersey_number") or 0,
        is_substitute=bool(doc.get("is_substitute")),
        photo_url=doc.get("photo_url"),
    )
