"""
backend/app/providers/api_football.py

Purpose:
    Adapter for API-Football v3 (RapidAPI) mapping teams, fixtures, fixture
    details, squads and standings into the normalized sync shapes.

Dependencies:
    - httpx
    - app.providers.http_client
    - app.services.provider_rate_limiter
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

import httpx

from app.config import settings
from app.providers.base import ProviderConfigError, ProviderError, SportsDataProvider
from app.providers.http_client import ResilientClient, safe_url
from app.services.provider_rate_limiter import provider_rate_limiter
from app.services.sync_types import FixtureData, LeagueData, PlayerData, StandingRow, TeamData
from app.utils import parse_utc

logger = logging.getLogger("tawaqo.api_football")

PROVIDER_NAME = "api_football"


def _to_int(value: Any) -> int | None:
    try:
        if value is None or value == "":
            return None
        return int(value)
    except (TypeError, ValueError):
        return None


def _text(value: Any) -> str | None:
    text = str(value or "").strip()
    return text or None


def _has_errors(errors: Any) -> bool:
    # API-Football returns "errors": [] on success and a dict/list of messages otherwise.
    if isinstance(errors, dict):
        return bool(errors)
    if isinstance(errors, list):
        return any(errors)
    return bool(errors)


def _kickoff(fixture: dict[str, Any]) -> datetime | None:
    raw = fixture.get("date")
    if raw:
        try:
            return parse_utc(str(raw))
        except ValueError:
            pass
    ts = _to_int(fixture.get("timestamp"))
    if ts is not None:
        return datetime.fromtimestamp(ts, tz=timezone.utc)
    return None


def _lineup_player(entry: dict[str, Any]) -> dict[str, Any]:
    player = (entry or {}).get("player") or {}
    return {
        "external_id": str(player.get("id")) if player.get("id") is not None else None,
        "name": _text(player.get("name")),
        "number": _to_int(player.get("number")),
        "position": _text(player.get("pos")),
        "grid": _text(player.get("grid")),
    }


class ApiFootballProvider(SportsDataProvider):
    """API-Football v3 provider behind RapidAPI."""

    name = PROVIDER_NAME

    def __init__(self) -> None:
        self._client = ResilientClient(
            PROVIDER_NAME,
            timeout=settings.PROVIDER_TIMEOUT_SECONDS,
            max_retries=settings.PROVIDER_MAX_RETRIES,
            base_delay=settings.PROVIDER_RETRY_BASE_DELAY,
        )

    def ensure_configured(self) -> None:
        if not str(settings.API_FOOTBALL_KEY or "").strip():
            raise ProviderConfigError("API_FOOTBALL_KEY not configured")
        if not str(settings.API_FOOTBALL_BASE_URL or "").strip():
            raise ProviderConfigError("API_FOOTBALL_BASE_URL not configured")

    def _headers(self) -> dict[str, str]:
        return {
            "X-RapidAPI-Key": str(settings.API_FOOTBALL_KEY).strip(),
            "X-RapidAPI-Host": str(settings.API_FOOTBALL_HOST).strip(),
        }

    async def _get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        """GET one endpoint and return the `response` member of the envelope."""
        self.ensure_configured()
        url = f"{str(settings.API_FOOTBALL_BASE_URL).rstrip('/')}/{path.lstrip('/')}"

        await provider_rate_limiter.acquire(PROVIDER_NAME, settings.API_FOOTBALL_RATE_LIMIT_RPM)
        try:
            resp = await self._client.get(url, params=params or {}, headers=self._headers())
        except httpx.HTTPError as exc:
            raise ProviderError(f"api_football request failed: {exc}") from exc

        try:
            body = resp.json()
        except ValueError:
            raise ProviderError(
                f"api_football returned non-JSON body (HTTP {resp.status_code})",
                payload=resp.text[:500],
                status_code=resp.status_code,
            )

        if resp.status_code >= 400:
            raise ProviderError(
                f"api_football HTTP {resp.status_code} on {safe_url(url)}",
                payload=body,
                status_code=resp.status_code,
            )

        errors = body.get("errors") if isinstance(body, dict) else None
        if _has_errors(errors):
            logger.warning("api_football error block on %s: %s", safe_url(url), errors)
            raise ProviderError("api_football returned errors", payload=errors, status_code=resp.status_code)

        payload = body.get("response") if isinstance(body, dict) else None
        if payload is None:
            return []
        return payload

    # ---- Leagues / teams ----

    async def get_league(self, league_external_id: str, season: int) -> LeagueData | None:
        rows = await self._get("/leagues", {"id": league_external_id, "season": season})
        for row in rows or []:
            league = (row or {}).get("league") or {}
            if league.get("id") is None:
                continue
            return {
                "external_id": str(league["id"]),
                "name": _text(league.get("name")) or f"League {league_external_id}",
                "country": _text(((row or {}).get("country") or {}).get("name")),
                "logo_url": _text(league.get("logo")),
            }
        return None

    async def get_teams(self, league_external_id: str, season: int) -> list[TeamData]:
        rows = await self._get("/teams", {"league": league_external_id, "season": season})
        teams: list[TeamData] = []
        for row in rows or []:
            team = (row or {}).get("team") or {}
            name = _text(team.get("name"))
            if team.get("id") is None or not name:
                continue
            teams.append(
                {
                    "external_id": str(team["id"]),
                    "name": name,
                    "logo_url": _text(team.get("logo")),
                    "venue": _text(((row or {}).get("venue") or {}).get("name")),
                }
            )
        logger.info("api_football: %d teams for league=%s season=%s", len(teams), league_external_id, season)
        return teams

    # ---- Fixtures ----

    def _parse_fixture(self, row: dict[str, Any]) -> FixtureData | None:
        fixture = (row or {}).get("fixture") or {}
        teams = (row or {}).get("teams") or {}
        home = teams.get("home") or {}
        away = teams.get("away") or {}
        if fixture.get("id") is None or home.get("id") is None or away.get("id") is None:
            return None
        kickoff = _kickoff(fixture)
        if kickoff is None:
            return None
        goals = (row or {}).get("goals") or {}
        return {
            "external_id": str(fixture["id"]),
            "league_external_id": str(((row or {}).get("league") or {}).get("id") or ""),
            "kickoff_time": kickoff,
            "status_raw": str(((fixture.get("status") or {}).get("short")) or ""),
            "home_team": {"external_id": str(home["id"]), "name": str(home.get("name") or "")},
            "away_team": {"external_id": str(away["id"]), "name": str(away.get("name") or "")},
            "home_score": _to_int(goals.get("home")),
            "away_score": _to_int(goals.get("away")),
            "stadium": _text((fixture.get("venue") or {}).get("name")),
            "referee": _text(fixture.get("referee")),
        }

    async def get_fixtures(self, league_external_id: str, season: int) -> list[FixtureData]:
        """Season schedule plus the last/next windows, de-duplicated by fixture id.

        The season listing alone lags on live and recently finished games for
        some competitions; the last/next windows are fetched after it so their
        fresher rows win.
        """
        window = int(settings.API_FOOTBALL_RECENT_FIXTURES)
        base = {"league": league_external_id, "season": season}
        calls = [dict(base), {**base, "last": window}, {**base, "next": window}]

        by_id: dict[str, FixtureData] = {}
        for params in calls:
            rows = await self._get("/fixtures", params)
            for row in rows or []:
                parsed = self._parse_fixture(row)
                if parsed is not None:
                    by_id[parsed["external_id"]] = parsed

        fixtures = sorted(by_id.values(), key=lambda item: item["kickoff_time"])
        logger.info(
            "api_football: %d unique fixtures for league=%s season=%s",
            len(fixtures), league_external_id, season,
        )
        return fixtures

    async def get_fixture_details(self, fixture_external_id: str) -> FixtureData | None:
        rows = await self._get("/fixtures", {"id": fixture_external_id})
        if not rows:
            return None
        row = rows[0]
        parsed = self._parse_fixture(row)
        if parsed is None:
            return None

        home_id = parsed["home_team"]["external_id"]
        details: dict[str, Any] = {}
        for lineup in (row or {}).get("lineups") or []:
            team_id = str(((lineup or {}).get("team") or {}).get("id") or "")
            side = "home" if team_id == home_id else "away"
            details[f"{side}_coach"] = _text(((lineup or {}).get("coach") or {}).get("name"))
            details[f"{side}_formation"] = _text((lineup or {}).get("formation"))
            details[f"{side}_lineup"] = [_lineup_player(p) for p in (lineup or {}).get("startXI") or []]
            details[f"{side}_substitutes"] = [_lineup_player(p) for p in (lineup or {}).get("substitutes") or []]

        stats: dict[str, dict[str, Any]] = {}
        for block in (row or {}).get("statistics") or []:
            team_id = str(((block or {}).get("team") or {}).get("id") or "")
            side = "home" if team_id == home_id else "away"
            stats[side] = {
                str(item.get("type")): item.get("value")
                for item in (block or {}).get("statistics") or []
                if item and item.get("type")
            }
        if stats:
            details["match_stats"] = stats

        events = []
        for event in (row or {}).get("events") or []:
            clock = (event or {}).get("time") or {}
            events.append(
                {
                    "minute": _to_int(clock.get("elapsed")),
                    "extra": _to_int(clock.get("extra")),
                    "team_external_id": str(((event or {}).get("team") or {}).get("id") or ""),
                    "player": _text(((event or {}).get("player") or {}).get("name")),
                    "assist": _text(((event or {}).get("assist") or {}).get("name")),
                    "type": _text((event or {}).get("type")),
                    "detail": _text((event or {}).get("detail")),
                }
            )
        if events:
            details["events"] = events

        parsed["details"] = details
        return parsed

    # ---- Squads / standings ----

    async def get_squad(self, team_external_id: str) -> list[PlayerData]:
        rows = await self._get("/players/squads", {"team": team_external_id})
        players: list[PlayerData] = []
        for row in rows or []:
            for player in (row or {}).get("players") or []:
                name = _text((player or {}).get("name"))
                if (player or {}).get("id") is None or not name:
                    continue
                players.append(
                    {
                        "external_id": str(player["id"]),
                        "name": name,
                        "number": _to_int(player.get("number")),
                        "position_raw": _text(player.get("position")),
                        "photo_url": _text(player.get("photo")),
                    }
                )
        return players

    async def get_standings(self, league_external_id: str, season: int) -> list[StandingRow]:
        rows = await self._get("/standings", {"league": league_external_id, "season": season})
        if not rows:
            return []
        groups = (((rows[0] or {}).get("league") or {}).get("standings")) or []
        table = groups[0] if groups else []
        standings: list[StandingRow] = []
        for entry in table or []:
            team = (entry or {}).get("team") or {}
            totals = (entry or {}).get("all") or {}
            goals = totals.get("goals") or {}
            standings.append(
                {
                    "rank": _to_int(entry.get("rank")) or 0,
                    "team": {
                        "external_id": str(team.get("id") or ""),
                        "name": str(team.get("name") or ""),
                        "logo_url": _text(team.get("logo")),
                    },
                    "points": _to_int(entry.get("points")) or 0,
                    "goals_diff": _to_int(entry.get("goalsDiff")) or 0,
                    "played": _to_int(totals.get("played")) or 0,
                    "won": _to_int(totals.get("win")) or 0,
                    "drawn": _to_int(totals.get("draw")) or 0,
                    "lost": _to_int(totals.get("lose")) or 0,
                    "goals_for": _to_int(goals.get("for")) or 0,
                    "goals_against": _to_int(goals.get("against")) or 0,
                    "form": str(entry.get("form") or ""),
                }
            )
        return standings

    async def test_connection(self) -> dict[str, Any]:
        status = await self._get("/status")
        if isinstance(status, list):
            status = status[0] if status else {}
        requests = (status or {}).get("requests") or {}
        return {
            "provider": PROVIDER_NAME,
            "ok": True,
            "account": ((status or {}).get("account") or {}).get("email"),
            "plan": ((status or {}).get("subscription") or {}).get("plan"),
            "requests_today": requests.get("current"),
            "requests_limit": requests.get("limit_day"),
        }

    async def aclose(self) -> None:
        await self._client.aclose()


# Singleton
api_football_provider = ApiFootballProvider()
