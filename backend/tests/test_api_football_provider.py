"""
backend/tests/test_api_football_provider.py

Purpose:
    API-Football adapter: envelope error handling, fixture merge across the
    season/last/next calls, detail parsing, squads and standings.
"""

from __future__ import annotations

import sys
from datetime import datetime, timezone

import httpx
import pytest

sys.path.insert(0, "backend")

from app.config import settings
from app.providers import api_football as api_module
from app.providers.api_football import ApiFootballProvider
from app.providers.base import ProviderConfigError, ProviderError


class _FakeResponse:
    def __init__(self, status_code: int = 200, body=None, text: str | None = None):
        self.status_code = status_code
        self._body = body
        self.text = text if text is not None else str(body)

    def json(self):
        if self._body is None:
            raise ValueError("no json")
        return self._body


class _FakeClient:
    def __init__(self, routes):
        self.routes = routes
        self.calls: list[tuple[str, dict]] = []

    async def get(self, url, params=None, headers=None):
        self.calls.append((url, dict(params or {})))
        route = self.routes(url, params or {}) if callable(self.routes) else self.routes
        if isinstance(route, Exception):
            raise route
        return route


def _fixture(fid, home, away, date="2024-09-01T18:00:00+00:00", status="NS", goals=(None, None)):
    return {
        "fixture": {
            "id": fid,
            "date": date,
            "status": {"short": status},
            "venue": {"name": "Cairo Stadium"},
            "referee": "M. Adel",
        },
        "league": {"id": 233},
        "teams": {"home": {"id": home, "name": f"T{home}"}, "away": {"id": away, "name": f"T{away}"}},
        "goals": {"home": goals[0], "away": goals[1]},
    }


@pytest.fixture
def provider(monkeypatch):
    async def _no_wait(name, rpm):
        return None

    monkeypatch.setattr(settings, "API_FOOTBALL_KEY", "test-key")
    monkeypatch.setattr(api_module.provider_rate_limiter, "acquire", _no_wait)
    return ApiFootballProvider()


@pytest.mark.asyncio
async def test_missing_key_raises_config_error(monkeypatch):
    monkeypatch.setattr(settings, "API_FOOTBALL_KEY", "  ")
    with pytest.raises(ProviderConfigError):
        await ApiFootballProvider().get_teams("233", 2024)


@pytest.mark.asyncio
async def test_error_block_raises_with_payload(provider):
    provider._client = _FakeClient(
        _FakeResponse(200, {"errors": {"token": "Invalid API key"}, "response": []})
    )
    with pytest.raises(ProviderError) as excinfo:
        await provider.get_teams("233", 2024)
    assert excinfo.value.payload == {"token": "Invalid API key"}


@pytest.mark.asyncio
async def test_empty_error_list_is_success(provider):
    provider._client = _FakeClient(
        _FakeResponse(200, {"errors": [], "response": [
            {"team": {"id": 1, "name": "Al Ahly", "logo": "l.png"}, "venue": {"name": "Cairo Stadium"}},
            {"team": {"id": None, "name": "Broken"}},
        ]})
    )
    teams = await provider.get_teams("233", 2024)
    assert teams == [{"external_id": "1", "name": "Al Ahly", "logo_url": "l.png", "venue": "Cairo Stadium"}]


@pytest.mark.asyncio
async def test_http_error_status_and_non_json(provider):
    provider._client = _FakeClient(_FakeResponse(429, {"message": "Too many requests"}))
    with pytest.raises(ProviderError) as excinfo:
        await provider.get_squad("1")
    assert excinfo.value.status_code == 429

    provider._client = _FakeClient(_FakeResponse(502, None, text="<html>bad gateway</html>"))
    with pytest.raises(ProviderError):
        await provider.get_squad("1")


@pytest.mark.asyncio
async def test_transport_error_becomes_provider_error(provider):
    provider._client = _FakeClient(httpx.ConnectError("refused"))
    with pytest.raises(ProviderError):
        await provider.test_connection()


@pytest.mark.asyncio
async def test_get_fixtures_merges_windows_and_later_rows_win(provider):
    def routes(url, params):
        if "last" in params:
            return _FakeResponse(200, {"errors": [], "response": [
                _fixture(10, 1, 2, status="FT", goals=(2, 1)),
            ]})
        if "next" in params:
            return _FakeResponse(200, {"errors": [], "response": [
                _fixture(11, 2, 1, date="2024-09-08T18:00:00+00:00"),
            ]})
        return _FakeResponse(200, {"errors": [], "response": [
            _fixture(11, 2, 1, date="2024-09-08T18:00:00+00:00"),
            _fixture(10, 1, 2, status="NS"),
        ]})

    provider._client = _FakeClient(routes)
    fixtures = await provider.get_fixtures("233", 2024)

    assert [f["external_id"] for f in fixtures] == ["10", "11"]
    assert fixtures[0]["status_raw"] == "FT"
    assert fixtures[0]["home_score"] == 2
    assert fixtures[0]["kickoff_time"] == datetime(2024, 9, 1, 18, 0, tzinfo=timezone.utc)
    assert len(provider._client.calls) == 3


@pytest.mark.asyncio
async def test_get_fixture_details_splits_home_and_away(provider):
    row = _fixture(10, 1, 2, status="FT", goals=(1, 0))
    row["lineups"] = [
        {
            "team": {"id": 2},
            "coach": {"name": "Away Coach"},
            "formation": "4-4-2",
            "startXI": [{"player": {"id": 20, "name": "A", "number": 9, "pos": "F"}}],
            "substitutes": [],
        },
        {
            "team": {"id": 1},
            "coach": {"name": "Home Coach"},
            "formation": "4-3-3",
            "startXI": [{"player": {"id": 10, "name": "H", "number": 1, "pos": "G"}}],
            "substitutes": [{"player": {"id": 11, "name": "S", "number": 12, "pos": "D"}}],
        },
    ]
    row["statistics"] = [
        {"team": {"id": 1}, "statistics": [{"type": "Ball Possession", "value": "55%"}]},
        {"team": {"id": 2}, "statistics": [{"type": "Ball Possession", "value": "45%"}]},
    ]
    row["events"] = [
        {"time": {"elapsed": 33, "extra": None}, "team": {"id": 1}, "player": {"name": "H"},
         "assist": {"name": None}, "type": "Goal", "detail": "Normal Goal"},
    ]
    provider._client = _FakeClient(_FakeResponse(200, {"errors": [], "response": [row]}))

    parsed = await provider.get_fixture_details("10")
    details = parsed["details"]

    assert details["home_coach"] == "Home Coach"
    assert details["away_formation"] == "4-4-2"
    assert details["home_lineup"][0]["name"] == "H"
    assert details["home_substitutes"][0]["number"] == 12
    assert details["match_stats"]["home"]["Ball Possession"] == "55%"
    assert details["events"][0]["minute"] == 33


@pytest.mark.asyncio
async def test_get_fixture_details_unknown_fixture(provider):
    provider._client = _FakeClient(_FakeResponse(200, {"errors": [], "response": []}))
    assert await provider.get_fixture_details("999") is None


@pytest.mark.asyncio
async def test_get_squad_and_standings(provider):
    def routes(url, params):
        if url.endswith("/players/squads"):
            return _FakeResponse(200, {"errors": [], "response": [{"players": [
                {"id": 5, "name": "Keeper", "number": 1, "position": "Goalkeeper", "photo": None},
                {"id": None, "name": "Ghost"},
            ]}]})
        return _FakeResponse(200, {"errors": [], "response": [{"league": {"standings": [[
            {
                "rank": 1,
                "team": {"id": 1, "name": "Al Ahly", "logo": None},
                "points": 30,
                "goalsDiff": 18,
                "form": "WWDWW",
                "all": {"played": 12, "win": 9, "draw": 3, "lose": 0, "goals": {"for": 25, "against": 7}},
            },
        ]]}}]})

    provider._client = _FakeClient(routes)
    squad = await provider.get_squad("1")
    assert squad == [{
        "external_id": "5", "name": "Keeper", "number": 1, "position_raw": "Goalkeeper", "photo_url": None,
    }]

    table = await provider.get_standings("233", 2024)
    assert table[0]["rank"] == 1
    assert table[0]["drawn"] == 3
    assert table[0]["goals_against"] == 7
