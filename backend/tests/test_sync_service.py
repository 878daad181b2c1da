"""
backend/tests/test_sync_service.py

Purpose:
    SyncService against an in-memory store:
    - idempotent team/match upserts keyed by external id
    - locally edited fields survive re-sync
    - orphan fixtures are skipped, not failed
    - per-team failures during player sync do not abort the run
    - config/provider/store failures are reported with their error_type
"""

from __future__ import annotations

import sys
from datetime import datetime, timedelta, timezone

import pytest
from bson import ObjectId

sys.path.insert(0, "backend")

from fake_mongo import FakeCollection, FakeDB, failing

from app.config import settings
from app.providers.base import ProviderConfigError, ProviderError, SportsDataProvider
from app.services import sync_service as sync_module
from app.services.sync_service import SyncService, get_provider

KICKOFF = datetime(2024, 9, 1, 18, 0, tzinfo=timezone.utc)


def _fixture(ext, home, away, status="NS", offset_days=0, goals=(None, None)):
    return {
        "external_id": ext,
        "league_external_id": "233",
        "kickoff_time": KICKOFF + timedelta(days=offset_days),
        "status_raw": status,
        "home_team": {"external_id": home, "name": f"T{home}"},
        "away_team": {"external_id": away, "name": f"T{away}"},
        "home_score": goals[0],
        "away_score": goals[1],
        "stadium": None,
        "referee": None,
    }


class _FakeProvider(SportsDataProvider):
    name = "fake"

    def __init__(self):
        self.configured = True
        self.league = {"external_id": "233", "name": "Egyptian Premier League", "country": "Egypt", "logo_url": None}
        self.teams = [
            {"external_id": "1", "name": "Al Ahly", "logo_url": None, "venue": "Cairo Stadium"},
            {"external_id": "2", "name": "Zamalek", "logo_url": None},
        ]
        self.fixtures = [_fixture("100", "1", "2")]
        self.squads: dict[str, list | Exception] = {}
        self.details = None
        self.error: Exception | None = None

    def ensure_configured(self):
        if not self.configured:
            raise ProviderConfigError("API key not configured")

    async def get_league(self, league_external_id, season):
        return self.league

    async def get_teams(self, league_external_id, season):
        if self.error:
            raise self.error
        return list(self.teams)

    async def get_fixtures(self, league_external_id, season):
        if self.error:
            raise self.error
        return list(self.fixtures)

    async def get_fixture_details(self, fixture_external_id):
        return self.details

    async def get_squad(self, team_external_id):
        squad = self.squads.get(team_external_id, [])
        if isinstance(squad, Exception):
            raise squad
        return squad

    async def get_standings(self, league_external_id, season):
        return [{"rank": 1, "team": {"external_id": "1", "name": "Al Ahly", "logo_url": None}, "points": 3,
                 "goals_diff": 1, "played": 1, "won": 1, "drawn": 0, "lost": 0, "goals_for": 1,
                 "goals_against": 0, "form": "W"}]

    async def test_connection(self):
        return {"provider": "fake", "ok": True}


@pytest.fixture
def fake_db(monkeypatch):
    db = FakeDB(
        leagues=FakeCollection(unique=[("external_id",)]),
        teams=FakeCollection(unique=[("external_id",)]),
        matches=FakeCollection(unique=[("external_id",)]),
        players=FakeCollection(unique=[("external_id",)]),
    )
    monkeypatch.setattr(sync_module._db, "db", db, raising=False)
    monkeypatch.setattr(settings, "PLAYER_SYNC_DELAY_SECONDS", 0.0)
    return db


@pytest.fixture
def provider():
    return _FakeProvider()


@pytest.mark.asyncio
async def test_sync_teams_is_idempotent_and_keeps_local_fields(fake_db, provider):
    service = SyncService(provider)

    first = await service.sync_teams("233", 2024)
    assert first["success"] is True
    assert first["count"] == 2
    assert len(fake_db.teams.docs) == 2

    league = fake_db.leagues.docs[0]
    assert league["is_active"] is True
    assert league["prediction_price"] == 0.0
    assert league["name"] == "Egyptian Premier League"

    # Admin edits that sync must not overwrite.
    league["prediction_price"] = 25.0
    ahly = next(doc for doc in fake_db.teams.docs if doc["external_id"] == "1")
    assert ahly["name_ar"] == "الأهلي"
    ahly["name_ar"] = "النادي الأهلي"

    provider.teams[0] = {**provider.teams[0], "logo_url": "new.png"}
    second = await service.sync_teams("233", 2024)

    assert second["count"] == 2
    assert len(fake_db.teams.docs) == 2
    assert len(fake_db.leagues.docs) == 1
    assert fake_db.leagues.docs[0]["prediction_price"] == 25.0
    ahly = next(doc for doc in fake_db.teams.docs if doc["external_id"] == "1")
    assert ahly["name_ar"] == "النادي الأهلي"
    assert ahly["logo_url"] == "new.png"


@pytest.mark.asyncio
async def test_sync_teams_with_empty_provider_response_succeeds(fake_db, provider):
    provider.teams = []
    result = await SyncService(provider).sync_teams("233", 2024)
    assert result["success"] is True
    assert result["count"] == 0
    assert result["teams"] == []


@pytest.mark.asyncio
async def test_sync_matches_seeds_teams_when_league_missing(fake_db, provider):
    result = await SyncService(provider).sync_matches("233", 2024)

    assert result["success"] is True
    assert result["count"] == 1
    assert result["matches"] == ["Al Ahly vs Zamalek"]
    assert len(fake_db.teams.docs) == 2
    match = fake_db.matches.docs[0]
    assert match["status"] == "upcoming"
    assert match["home_team_id"] != match["away_team_id"]
    assert match["league_id"] == fake_db.leagues.docs[0]["_id"]


@pytest.mark.asyncio
async def test_sync_matches_skips_orphan_fixtures(fake_db, provider):
    provider.fixtures = [_fixture("100", "1", "2"), _fixture("101", "1", "99", offset_days=7)]
    result = await SyncService(provider).sync_matches("233", 2024)

    assert result["success"] is True
    assert result["count"] == 1
    assert result["skipped"] == 1
    assert [doc["external_id"] for doc in fake_db.matches.docs] == ["100"]


@pytest.mark.asyncio
async def test_sync_matches_updates_status_without_duplicates(fake_db, provider):
    service = SyncService(provider)
    await service.sync_matches("233", 2024)
    first_id = fake_db.matches.docs[0]["_id"]
    fake_db.matches.docs[0]["stadium"] = "Cairo Stadium"

    provider.fixtures = [_fixture("100", "1", "2", status="FT", goals=(2, 0))]
    result = await service.sync_matches("233", 2024)

    assert result["count"] == 1
    assert len(fake_db.matches.docs) == 1
    match = fake_db.matches.docs[0]
    assert match["_id"] == first_id
    assert match["status"] == "finished"
    assert (match["home_score"], match["away_score"]) == (2, 0)
    # Listing without venue keeps the stored one.
    assert match["stadium"] == "Cairo Stadium"


@pytest.mark.asyncio
async def test_config_error_is_reported(fake_db, provider):
    provider.configured = False
    result = await SyncService(provider).sync_teams("233", 2024)

    assert result["success"] is False
    assert result["error_type"] == "config"
    assert fake_db.teams.docs == []


@pytest.mark.asyncio
async def test_provider_error_carries_payload(fake_db, provider):
    provider.error = ProviderError("api_football returned errors", payload={"rateLimit": "Too many requests"})
    result = await SyncService(provider).sync_teams("233", 2024)

    assert result["success"] is False
    assert result["error_type"] == "provider"
    assert result["provider_error"] == {"rateLimit": "Too many requests"}


@pytest.mark.asyncio
async def test_store_error_is_reported(fake_db, provider):
    fake_db.teams.fail_writes = failing()
    result = await SyncService(provider).sync_teams("233", 2024)

    assert result["success"] is False
    assert result["error_type"] == "store"


def test_get_provider_unknown_name_is_config_error():
    with pytest.raises(ProviderConfigError):
        get_provider("nope")


@pytest.mark.asyncio
async def test_sync_players_tolerates_one_failing_team(fake_db, provider):
    service = SyncService(provider)
    await service.sync_teams("233", 2024)
    provider.squads = {
        "1": [
            {"external_id": str(100 + i), "name": f"Player {i}", "number": i + 1,
             "position_raw": "Goalkeeper" if i == 0 else "Attacker", "photo_url": None}
            for i in range(13)
        ],
        "2": ProviderError("api_football HTTP 500"),
    }

    result = await service.sync_players()

    assert result["success"] is True
    assert result["count"] == 13
    assert result["teams_processed"] == 2
    assert len(result["failed_teams"]) == 1
    assert result["failed_teams"][0]["external_id"] == "2"

    by_ext = {doc["external_id"]: doc for doc in fake_db.players.docs}
    assert by_ext["100"]["position"] == "GK"
    assert by_ext["101"]["position"] == "FW"
    assert by_ext["110"]["is_substitute"] is False
    assert by_ext["111"]["is_substitute"] is True


@pytest.mark.asyncio
async def test_sync_players_reports_invalid_team_ids(fake_db, provider):
    result = await SyncService(provider).sync_players(["not-an-id"])

    assert result["success"] is True
    assert result["count"] == 0
    assert result["failed_teams"][0]["team_id"] == "not-an-id"


@pytest.mark.asyncio
async def test_sync_players_respects_team_cap(fake_db, provider, monkeypatch):
    monkeypatch.setattr(settings, "PLAYER_SYNC_MAX_TEAMS", 1)
    service = SyncService(provider)
    await service.sync_teams("233", 2024)
    team_ids = [str(doc["_id"]) for doc in fake_db.teams.docs]

    result = await service.sync_players(team_ids)
    assert result["teams_processed"] == 1


@pytest.mark.asyncio
async def test_sync_match_details_updates_existing_match_only(fake_db, provider):
    service = SyncService(provider)
    provider.details = {
        **_fixture("555", "1", "2", status="FT", goals=(1, 1)),
        "details": {
            "home_coach": "Coach H",
            "match_stats": {"home": {"Shots": 5}, "away": {"Shots": 3}},
            "events": [{"minute": 10, "type": "Goal"}],
        },
    }
    missing = await service.sync_match_details("555")
    assert missing["success"] is True
    assert missing["count"] == 0
    assert fake_db.matches.docs == []

    fake_db.matches.docs.append({"_id": ObjectId(), "external_id": "555", "status": "live"})
    result = await service.sync_match_details("555")

    assert result["count"] == 1
    match = fake_db.matches.docs[0]
    assert match["home_coach"] == "Coach H"
    assert match["status"] == "finished"
    assert match["match_stats"]["away"]["Shots"] == 3
    assert match["match_details"]["events"][0]["minute"] == 10


@pytest.mark.asyncio
async def test_get_standings_adds_arabic_names(fake_db, provider):
    result = await SyncService(provider).get_standings("233", 2024)
    assert result["success"] is True
    assert result["standings"][0]["team"]["name_ar"] == "الأهلي"


def _squad(prefix: int, size: int) -> list[dict]:
    return [
        {"external_id": str(prefix + i), "name": f"Player {prefix + i}", "number": i + 1,
         "position_raw": "Defensive Midfield", "photo_url": None}
        for i in range(size)
    ]


@pytest.mark.asyncio
async def test_sync_players_continues_after_failing_middle_team(fake_db, provider):
    provider.teams.append({"external_id": "3", "name": "Ismaily", "logo_url": None})
    service = SyncService(provider)
    await service.sync_teams("233", 2024)
    by_ext = {doc["external_id"]: doc for doc in fake_db.teams.docs}
    provider.squads = {
        "1": _squad(100, 3),
        "2": ProviderError("api_football HTTP 500"),
        "3": _squad(300, 2),
    }

    result = await service.sync_players([str(by_ext[ext]["_id"]) for ext in ("1", "2", "3")])

    assert result["success"] is True
    assert result["teams_processed"] == 3
    assert result["count"] == 5
    assert [team["external_id"] for team in result["failed_teams"]] == ["2"]
    stored = {doc["external_id"]: doc for doc in fake_db.players.docs}
    assert set(stored) == {"100", "101", "102", "300", "301"}
    assert stored["300"]["team_id"] == by_ext["3"]["_id"]
    assert stored["101"]["position"] == "MF"


@pytest.mark.asyncio
async def test_sync_players_twice_keeps_rows_and_ids(fake_db, provider):
    service = SyncService(provider)
    await service.sync_teams("233", 2024)
    provider.squads = {"1": _squad(100, 4), "2": _squad(200, 3)}

    await service.sync_players()
    first_ids = {doc["external_id"]: doc["_id"] for doc in fake_db.players.docs}
    fake_db.players.docs[0]["name_ar"] = "لاعب"

    provider.squads["1"][0] = {**provider.squads["1"][0], "number": 99}
    second = await service.sync_players()

    assert second["count"] == 7
    assert len(fake_db.players.docs) == 7
    assert {doc["external_id"]: doc["_id"] for doc in fake_db.players.docs} == first_ids
    assert fake_db.players.docs[0]["name_ar"] == "لاعب"
    stored = {doc["external_id"]: doc for doc in fake_db.players.docs}
    assert stored["100"]["jersey_number"] == 99
