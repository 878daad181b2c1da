"""
backend/app/services/sync_types.py

Purpose:
    Shared type contracts for the sync pipeline. Every provider adapter maps
    its upstream JSON into these normalized shapes, and every SyncService
    operation answers with one of the result shapes below.

Dependencies:
    - typing
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal, NotRequired, TypedDict


MatchStatus = Literal["upcoming", "live", "finished", "postponed"]
PositionCode = Literal["GK", "DF", "MF", "FW"]
SyncErrorType = Literal["config", "provider", "store"]


class LeagueData(TypedDict):
    external_id: str
    name: str
    country: str | None
    logo_url: str | None


class TeamRef(TypedDict):
    external_id: str
    name: str


class TeamData(TypedDict):
    external_id: str
    name: str
    logo_url: str | None
    venue: NotRequired[str | None]


class FixtureData(TypedDict):
    external_id: str
    league_external_id: str
    kickoff_time: datetime
    status_raw: str
    home_team: TeamRef
    away_team: TeamRef
    home_score: int | None
    away_score: int | None
    stadium: str | None
    referee: str | None
    details: NotRequired[dict[str, Any]]


class PlayerData(TypedDict):
    external_id: str
    name: str
    number: int | None
    position_raw: str | None
    photo_url: str | None


class StandingTeam(TypedDict):
    external_id: str
    name: str
    logo_url: str | None
    name_ar: NotRequired[str]


class StandingRow(TypedDict):
    rank: int
    team: StandingTeam
    points: int
    goals_diff: int
    played: int
    won: int
    drawn: int
    lost: int
    goals_for: int
    goals_against: int
    form: str


class SyncFailure(TypedDict):
    success: Literal[False]
    action: str
    error: str
    error_type: SyncErrorType
    provider_error: Any


class TeamsSyncResult(TypedDict):
    success: Literal[True]
    action: str
    league_id: str
    count: int
    teams: list[str]


class MatchesSyncResult(TypedDict):
    success: Literal[True]
    action: str
    league_id: str
    count: int
    skipped: int
    matches: list[str]


class PlayersSyncResult(TypedDict):
    success: Literal[True]
    action: str
    count: int
    teams_processed: int
    failed_teams: list[dict[str, str]]


class MatchDetailsSyncResult(TypedDict):
    success: Literal[True]
    action: str
    fixture_id: str
    count: int
    match_id: str | None


class StandingsResult(TypedDict):
    success: Literal[True]
    action: str
    league_id: str
    season: int
    standings: list[StandingRow]
