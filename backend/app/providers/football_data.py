"""
backend/app/providers/football_data.py

Purpose:
    Adapter for football-data.org v4 competitions. Maps teams, season
    matches, squads and the TOTAL standings table into the normalized sync
    shapes.

Dependencies:
    - httpx
    - app.providers.http_client
    - app.services.provider_rate_limiter
"""

import logging
from typing import Any

import httpx

from app.config import settings
from app.providers.base import ProviderConfigError, ProviderError, SportsDataProvider
from app.providers.http_client import ResilientClient, safe_url
from app.services.provider_rate_limiter import provider_rate_limiter
from app.services.sync_types import FixtureData, LeagueData, PlayerData, StandingRow, TeamData
from app.utils import parse_utc

logger = logging.getLogger("tawaqo.football_data")

PROVIDER_NAME = "football_data"


def _to_int(value: Any) -> int | None:
    try:
        if value is None or value == "":
            return None
        return int(value)
    except (TypeError, ValueError):
        return None


def _main_referee(match: dict[str, Any]) -> str | None:
    for referee in match.get("referees") or []:
        if str((referee or {}).get("type") or "").upper() == "REFEREE":
            return (referee or {}).get("name")
    refs = match.get("referees") or []
    return (refs[0] or {}).get("name") if refs else None


class FootballDataProvider(SportsDataProvider):
    """football-data.org provider; league ids are competition codes (PL, BL1, ...) or numeric ids."""

    name = PROVIDER_NAME

    def __init__(self):
        self._client = ResilientClient(
            PROVIDER_NAME,
            timeout=settings.PROVIDER_TIMEOUT_SECONDS,
            max_retries=settings.PROVIDER_MAX_RETRIES,
            base_delay=settings.PROVIDER_RETRY_BASE_DELAY,
        )

    def ensure_configured(self) -> None:
        if not str(settings.FOOTBALL_DATA_ORG_API_KEY or "").strip():
            raise ProviderConfigError("FOOTBALL_DATA_ORG_API_KEY not configured")

    async def _get(self, path: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        self.ensure_configured()
        url = f"{str(settings.FOOTBALL_DATA_ORG_BASE_URL).rstrip('/')}/{path.lstrip('/')}"

        await provider_rate_limiter.acquire(PROVIDER_NAME, settings.FOOTBALL_DATA_RATE_LIMIT_RPM)
        try:
            resp = await self._client.get(
                url,
                params=params or {},
                headers={"X-Auth-Token": str(settings.FOOTBALL_DATA_ORG_API_KEY).strip()},
            )
        except httpx.HTTPError as exc:
            raise ProviderError(f"football_data request failed: {exc}") from exc

        try:
            body = resp.json()
        except ValueError:
            raise ProviderError(
                f"football_data returned non-JSON body (HTTP {resp.status_code})",
                payload=resp.text[:500],
                status_code=resp.status_code,
            )

        if resp.status_code >= 400 or (isinstance(body, dict) and body.get("errorCode")):
            raise ProviderError(
                f"football_data HTTP {resp.status_code} on {safe_url(url)}",
                payload=body,
                status_code=resp.status_code,
            )
        return body if isinstance(body, dict) else {}

    async def get_league(self, league_external_id: str, season: int) -> LeagueData | None:
        data = await self._get(f"/competitions/{league_external_id}")
        if not data.get("id"):
            return None
        return {
            "external_id": str(league_external_id),
            "name": str(data.get("name") or f"League {league_external_id}"),
            "country": (data.get("area") or {}).get("name"),
            "logo_url": data.get("emblem"),
        }

    async def get_teams(self, league_external_id: str, season: int) -> list[TeamData]:
        data = await self._get(f"/competitions/{league_external_id}/teams", {"season": int(season)})
        teams: list[TeamData] = []
        for team in data.get("teams") or []:
            if team.get("id") is None or not team.get("name"):
                continue
            teams.append(
                {
                    "external_id": str(team["id"]),
                    "name": str(team["name"]),
                    "logo_url": team.get("crest"),
                    "venue": team.get("venue"),
                }
            )
        logger.info("football-data.org: %d teams for %s/%s", len(teams), league_external_id, season)
        return teams

    def _parse_match(self, match: dict[str, Any], league_external_id: str) -> FixtureData | None:
        home = match.get("homeTeam") or {}
        away = match.get("awayTeam") or {}
        if match.get("id") is None or home.get("id") is None or away.get("id") is None:
            return None
        if not match.get("utcDate"):
            return None
        try:
            kickoff = parse_utc(str(match["utcDate"]))
        except ValueError:
            logger.warning(
                "football-data.org: match %s has unparseable utcDate %r, skipped", match["id"], match["utcDate"],
            )
            return None
        full_time = (match.get("score") or {}).get("fullTime") or {}
        return {
            "external_id": str(match["id"]),
            "league_external_id": str(league_external_id),
            "kickoff_time": kickoff,
            "status_raw": str(match.get("status") or ""),
            "home_team": {"external_id": str(home["id"]), "name": str(home.get("name") or "")},
            "away_team": {"external_id": str(away["id"]), "name": str(away.get("name") or "")},
            "home_score": _to_int(full_time.get("home")),
            "away_score": _to_int(full_time.get("away")),
            "stadium": match.get("venue"),
            "referee": _main_referee(match),
        }

    async def get_fixtures(self, league_external_id: str, season: int) -> list[FixtureData]:
        # One season call covers past and future matches on this provider.
        data = await self._get(f"/competitions/{league_external_id}/matches", {"season": int(season)})
        by_id: dict[str, FixtureData] = {}
        for match in data.get("matches") or []:
            parsed = self._parse_match(match, league_external_id)
            if parsed is not None:
                by_id[parsed["external_id"]] = parsed
        return sorted(by_id.values(), key=lambda item: item["kickoff_time"])

    async def get_fixture_details(self, fixture_external_id: str) -> FixtureData | None:
        data = await self._get(f"/matches/{fixture_external_id}")
        match = data.get("match") if isinstance(data.get("match"), dict) else data
        competition = match.get("competition") or {}
        parsed = self._parse_match(match, str(competition.get("code") or competition.get("id") or ""))
        if parsed is None:
            return None
        details: dict[str, Any] = {}
        for side, key in (("home", "homeTeam"), ("away", "awayTeam")):
            team = match.get(key) or {}
            if team.get("coach"):
                details[f"{side}_coach"] = (team.get("coach") or {}).get("name")
            if team.get("formation"):
                details[f"{side}_formation"] = team.get("formation")
            if team.get("lineup"):
                details[f"{side}_lineup"] = [
                    {
                        "external_id": str(p.get("id")) if p.get("id") is not None else None,
                        "name": p.get("name"),
                        "number": _to_int(p.get("shirtNumber")),
                        "position": p.get("position"),
                    }
                    for p in team.get("lineup") or []
                ]
            if team.get("bench"):
                details[f"{side}_substitutes"] = [
                    {
                        "external_id": str(p.get("id")) if p.get("id") is not None else None,
                        "name": p.get("name"),
                        "number": _to_int(p.get("shirtNumber")),
                        "position": p.get("position"),
                    }
                    for p in team.get("bench") or []
                ]
        if match.get("goals"):
            details["events"] = [
                {
                    "minute": _to_int(goal.get("minute")),
                    "extra": _to_int(goal.get("injuryTime")),
                    "team_external_id": str((goal.get("team") or {}).get("id") or ""),
                    "player": (goal.get("scorer") or {}).get("name"),
                    "assist": (goal.get("assist") or {}).get("name"),
                    "type": "Goal",
                    "detail": goal.get("type"),
                }
                for goal in match.get("goals") or []
            ]
        parsed["details"] = details
        return parsed

    async def get_squad(self, team_external_id: str) -> list[PlayerData]:
        data = await self._get(f"/teams/{team_external_id}")
        players: list[PlayerData] = []
        for player in data.get("squad") or []:
            if player.get("id") is None or not player.get("name"):
                continue
            players.append(
                {
                    "external_id": str(player["id"]),
                    "name": str(player["name"]),
                    "number": _to_int(player.get("shirtNumber")),
                    "position_raw": player.get("position"),
                    "photo_url": None,
                }
            )
        return players

    async def get_standings(self, league_external_id: str, season: int) -> list[StandingRow]:
        data = await self._get(f"/competitions/{league_external_id}/standings", {"season": int(season)})
        tables = data.get("standings") or []
        total = next((t for t in tables if str(t.get("type") or "").upper() == "TOTAL"), tables[0] if tables else {})
        rows: list[StandingRow] = []
        for entry in total.get("table") or []:
            team = entry.get("team") or {}
            rows.append(
                {
                    "rank": _to_int(entry.get("position")) or 0,
                    "team": {
                        "external_id": str(team.get("id") or ""),
                        "name": str(team.get("name") or ""),
                        "logo_url": team.get("crest"),
                    },
                    "points": _to_int(entry.get("points")) or 0,
                    "goals_diff": _to_int(entry.get("goalDifference")) or 0,
                    "played": _to_int(entry.get("playedGames")) or 0,
                    "won": _to_int(entry.get("won")) or 0,
                    "drawn": _to_int(entry.get("draw")) or 0,
                    "lost": _to_int(entry.get("lost")) or 0,
                    "goals_for": _to_int(entry.get("goalsFor")) or 0,
                    "goals_against": _to_int(entry.get("goalsAgainst")) or 0,
                    # football-data sends "W,D,L,W,W"; normalize to "WDLWW".
                    "form": str(entry.get("form") or "").replace(",", ""),
                }
            )
        return rows

    async def test_connection(self) -> dict[str, Any]:
        data = await self._get("/competitions")
        return {
            "provider": PROVIDER_NAME,
            "ok": True,
            "competitions": _to_int(data.get("count")) or len(data.get("competitions") or []),
        }

    async def aclose(self) -> None:
        await self._client.aclose()


# Singleton
football_data_provider = FootballDataProvider()
