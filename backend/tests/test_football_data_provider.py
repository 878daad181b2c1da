"""
backend/tests/test_football_data_provider.py

Purpose:
    football-data.org adapter: errorCode handling, match parsing and the
    TOTAL standings table.
"""

from __future__ import annotations

import sys

import pytest

sys.path.insert(0, "backend")

from app.config import settings
from app.providers import football_data as fd_module
from app.providers.base import ProviderConfigError, ProviderError
from app.providers.football_data import FootballDataProvider


class _FakeResponse:
    def __init__(self, status_code: int, body):
        self.status_code = status_code
        self._body = body
        self.text = str(body)

    def json(self):
        return self._body


class _FakeClient:
    def __init__(self, response: _FakeResponse):
        self.response = response
        self.headers: dict | None = None

    async def get(self, url, params=None, headers=None):
        self.headers = headers
        return self.response


@pytest.fixture
def provider(monkeypatch):
    async def _no_wait(name, rpm):
        return None

    monkeypatch.setattr(settings, "FOOTBALL_DATA_ORG_API_KEY", "fd-key")
    monkeypatch.setattr(fd_module.provider_rate_limiter, "acquire", _no_wait)
    return FootballDataProvider()


@pytest.mark.asyncio
async def test_missing_key_is_config_error(monkeypatch):
    monkeypatch.setattr(settings, "FOOTBALL_DATA_ORG_API_KEY", "")
    with pytest.raises(ProviderConfigError):
        await FootballDataProvider().get_fixtures("PL", 2024)


@pytest.mark.asyncio
async def test_error_code_body_raises(provider):
    provider._client = _FakeClient(_FakeResponse(403, {"errorCode": 403, "message": "Restricted resource"}))
    with pytest.raises(ProviderError) as excinfo:
        await provider.get_teams("PL", 2024)
    assert excinfo.value.payload["message"] == "Restricted resource"


@pytest.mark.asyncio
async def test_get_fixtures_parses_matches(provider):
    provider._client = _FakeClient(_FakeResponse(200, {"matches": [
        {
            "id": 2,
            "utcDate": "2024-08-24T14:00:00Z",
            "status": "TIMED",
            "homeTeam": {"id": 57, "name": "Arsenal FC"},
            "awayTeam": {"id": 61, "name": "Chelsea FC"},
            "score": {"fullTime": {"home": None, "away": None}},
            "referees": [{"type": "ASSISTANT", "name": "A"}, {"type": "REFEREE", "name": "M. Oliver"}],
        },
        {
            "id": 1,
            "utcDate": "2024-08-17T14:00:00Z",
            "status": "FINISHED",
            "homeTeam": {"id": 61, "name": "Chelsea FC"},
            "awayTeam": {"id": 57, "name": "Arsenal FC"},
            "score": {"fullTime": {"home": 1, "away": 2}},
        },
        {"id": 3, "utcDate": "2024-08-30T14:00:00Z", "homeTeam": {"id": None}, "awayTeam": {"id": 57}},
    ]}))

    fixtures = await provider.get_fixtures("PL", 2024)

    assert [f["external_id"] for f in fixtures] == ["1", "2"]
    assert fixtures[0]["away_score"] == 2
    assert fixtures[1]["referee"] == "M. Oliver"
    assert provider._client.headers == {"X-Auth-Token": "fd-key"}


@pytest.mark.asyncio
async def test_standings_use_total_table(provider):
    provider._client = _FakeClient(_FakeResponse(200, {"standings": [
        {"type": "HOME", "table": [{"position": 9, "team": {"id": 1, "name": "Wrong"}}]},
        {"type": "TOTAL", "table": [{
            "position": 1, "team": {"id": 57, "name": "Arsenal FC", "crest": None},
            "points": 10, "goalDifference": 6, "playedGames": 4, "won": 3, "draw": 1, "lost": 0,
            "goalsFor": 9, "goalsAgainst": 3, "form": "W,W,D,W",
        }]},
    ]}))

    rows = await provider.get_standings("PL", 2024)

    assert rows[0]["team"]["name"] == "Arsenal FC"
    assert rows[0]["drawn"] == 1
    assert rows[0]["form"] == "WWDW"


@pytest.mark.asyncio
async def test_malformed_match_date_is_skipped(provider):
    provider._client = _FakeClient(_FakeResponse(200, {"matches": [
        {"id": 9, "utcDate": "not-a-date", "status": "TIMED",
         "homeTeam": {"id": 57, "name": "Arsenal FC"}, "awayTeam": {"id": 61, "name": "Chelsea FC"}},
        {"id": 10, "utcDate": "2024-08-24T14:00:00Z", "status": "TIMED",
         "homeTeam": {"id": 61, "name": "Chelsea FC"}, "awayTeam": {"id": 57, "name": "Arsenal FC"}},
    ]}))

    fixtures = await provider.get_fixtures("PL", 2024)

    assert [f["external_id"] for f in fixtures] == ["10"]


@pytest.mark.asyncio
async def test_sync_matches_survives_malformed_match_date(provider, monkeypatch):
    from fake_mongo import FakeCollection, FakeDB

    from app.services import sync_service as sync_module
    from app.services.sync_service import SyncService

    db = FakeDB(
        leagues=FakeCollection(unique=[("external_id",)]),
        teams=FakeCollection(unique=[("external_id",)]),
        matches=FakeCollection(unique=[("external_id",)]),
    )
    monkeypatch.setattr(sync_module._db, "db", db, raising=False)
    responses = {
        "/competitions/PL": {"name": "Premier League", "area": {"name": "England"}},
        "/competitions/PL/teams": {"teams": [{"id": 57, "name": "Arsenal FC"}, {"id": 61, "name": "Chelsea FC"}]},
        "/competitions/PL/matches": {"matches": [
            {"id": 9, "utcDate": "not-a-date", "status": "TIMED",
             "homeTeam": {"id": 57}, "awayTeam": {"id": 61}},
        ]},
    }

    async def fake_get(path, params=None):
        return responses[path]

    monkeypatch.setattr(provider, "_get", fake_get)

    result = await SyncService(provider).sync_matches("PL", 2024)

    assert result["success"] is True
    assert result["count"] == 0
    assert db.matches.docs == []
