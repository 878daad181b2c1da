"""
backend/app/services/sync_service.py

Purpose:
    Provider-to-store synchronization for leagues, teams, matches and players,
    plus read-through standings. Every operation answers with a structured
    result instead of raising, so callers can tell "zero rows" apart from
    "provider failed" and "store write failed".

Dependencies:
    - app.database
    - app.providers.api_football / app.providers.football_data
    - app.services.match_status
    - app.services.player_position
    - app.services.team_name_normalizer
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import UpdateOne
from pymongo.errors import PyMongoError

import app.database as _db
from app.config import settings
from app.providers.api_football import api_football_provider
from app.providers.base import ProviderConfigError, ProviderError, SportsDataProvider
from app.providers.football_data import football_data_provider
from app.services.match_status import classify_match_status
from app.services.player_position import assign_substitutes, classify_position
from app.services.sync_types import (
    FixtureData,
    MatchDetailsSyncResult,
    MatchesSyncResult,
    PlayersSyncResult,
    StandingsResult,
    SyncErrorType,
    SyncFailure,
    TeamsSyncResult,
)
from app.services.team_name_normalizer import arabic_team_name
from app.utils import parse_object_id, utcnow

logger = logging.getLogger("tawaqo.sync")

PROVIDERS: dict[str, SportsDataProvider] = {
    "api_football": api_football_provider,
    "football_data": football_data_provider,
}

_DETAIL_FIELDS = (
    "home_coach",
    "away_coach",
    "home_formation",
    "away_formation",
    "home_lineup",
    "away_lineup",
    "home_substitutes",
    "away_substitutes",
)


def get_provider(name: str | None = None) -> SportsDataProvider:
    key = str(name or settings.SYNC_PROVIDER or "").strip().lower()
    provider = PROVIDERS.get(key)
    if provider is None:
        raise ProviderConfigError(f"Unknown SYNC_PROVIDER '{key}'")
    return provider


def _failure(action: str, exc: Exception) -> SyncFailure:
    error_type: SyncErrorType
    provider_error: Any = None
    if isinstance(exc, ProviderConfigError):
        error_type = "config"
    elif isinstance(exc, ProviderError):
        error_type = "provider"
        provider_error = exc.payload
    else:
        error_type = "store"
    message = exc.message if isinstance(exc, ProviderError) else str(exc)
    return {
        "success": False,
        "action": action,
        "error": message,
        "error_type": error_type,
        "provider_error": provider_error,
    }


def _resolve_league_args(league_external_id: str | None, season: int | None) -> tuple[str, int]:
    league_ext = str(league_external_id or settings.DEFAULT_LEAGUE_ID).strip()
    return league_ext, int(season or settings.DEFAULT_SEASON)


class SyncService:
    """Ingestion operations against the active provider."""

    def __init__(self, provider: SportsDataProvider | None = None) -> None:
        self._provider = provider

    @property
    def provider(self) -> SportsDataProvider:
        return self._provider or get_provider()

    # ---- Leagues ----

    async def _ensure_league(self, provider: SportsDataProvider, league_ext: str, season: int) -> ObjectId:
        """Upsert the league row and return its _id.

        Provider metadata is optional here: a failed league lookup falls back
        to placeholder values instead of failing the team sync.
        """
        meta = None
        try:
            meta = await provider.get_league(league_ext, season)
        except ProviderError as exc:
            logger.warning("League metadata unavailable for %s: %s", league_ext, exc.message)

        now = utcnow()
        fallback_name = f"League {league_ext}"
        name = (meta or {}).get("name") or fallback_name
        update: dict[str, Any] = {
            "$set": {"season": season, "updated_at": now},
            "$setOnInsert": {
                "name_ar": arabic_team_name(name),
                "is_active": True,
                "prediction_price": 0.0,
                "created_at": now,
            },
        }
        if meta:
            update["$set"].update(
                {"name": name, "country": meta.get("country"), "logo_url": meta.get("logo_url")}
            )
        else:
            update["$setOnInsert"].update({"name": fallback_name, "country": None, "logo_url": None})

        await _db.db.leagues.update_one({"external_id": league_ext}, update, upsert=True)
        doc = await _db.db.leagues.find_one({"external_id": league_ext}, {"_id": 1})
        if not doc:
            raise PyMongoError(f"League {league_ext} could not be created")
        return doc["_id"]

    # ---- Teams ----

    async def sync_teams(
        self, league_external_id: str | None = None, season: int | None = None,
    ) -> TeamsSyncResult | SyncFailure:
        action = "syncTeams"
        league_ext, season = _resolve_league_args(league_external_id, season)
        try:
            provider = self.provider
            provider.ensure_configured()
            teams = await provider.get_teams(league_ext, season)
        except ProviderError as exc:
            logger.error("Team sync failed for league %s: %s", league_ext, exc.message)
            return _failure(action, exc)

        unique = {team["external_id"]: team for team in teams}
        try:
            league_id = await self._ensure_league(provider, league_ext, season)
            now = utcnow()
            ops = [
                UpdateOne(
                    {"external_id": ext_id},
                    {
                        "$set": {
                            "name": team["name"],
                            "logo_url": team.get("logo_url"),
                            "venue": team.get("venue"),
                            "league_id": league_id,
                            "updated_at": now,
                        },
                        "$setOnInsert": {
                            "name_ar": arabic_team_name(team["name"]),
                            "created_at": now,
                        },
                    },
                    upsert=True,
                )
                for ext_id, team in unique.items()
            ]
            if ops:
                await _db.db.teams.bulk_write(ops, ordered=False)
        except PyMongoError as exc:
            logger.error("Team upsert failed for league %s: %s", league_ext, exc)
            return _failure(action, exc)

        logger.info("Synced %d teams for league %s/%s", len(unique), league_ext, season)
        return {
            "success": True,
            "action": action,
            "league_id": league_ext,
            "count": len(unique),
            "teams": [team["name"] for team in unique.values()],
        }

    # ---- Matches ----

    def _match_set_fields(self, fixture: FixtureData, now) -> dict[str, Any]:
        fields: dict[str, Any] = {
            "kickoff_time": fixture["kickoff_time"],
            "status": classify_match_status(fixture.get("status_raw")),
            "status_raw": fixture.get("status_raw") or None,
            "home_score": fixture.get("home_score"),
            "away_score": fixture.get("away_score"),
            "updated_at": now,
        }
        # Keep detail-synced venue data when the listing omits it.
        if fixture.get("stadium"):
            fields["stadium"] = fixture["stadium"]
        if fixture.get("referee"):
            fields["referee"] = fixture["referee"]
        return fields

    async def sync_matches(
        self, league_external_id: str | None = None, season: int | None = None,
    ) -> MatchesSyncResult | SyncFailure:
        action = "syncMatches"
        league_ext, season = _resolve_league_args(league_external_id, season)

        try:
            provider = self.provider
            provider.ensure_configured()
            league = await _db.db.leagues.find_one({"external_id": league_ext})
        except (ProviderError, PyMongoError) as exc:
            return _failure(action, exc)

        if league is None:
            logger.info("League %s missing; syncing teams first", league_ext)
            seeded = await self.sync_teams(league_ext, season)
            if not seeded["success"]:
                return {**seeded, "action": action}
            try:
                league = await _db.db.leagues.find_one({"external_id": league_ext})
            except PyMongoError as exc:
                return _failure(action, exc)
            if league is None:
                return _failure(action, PyMongoError(f"League {league_ext} could not be created"))

        try:
            fixtures = await provider.get_fixtures(league_ext, season)
        except ProviderError as exc:
            logger.error("Fixture fetch failed for league %s: %s", league_ext, exc.message)
            return _failure(action, exc)

        try:
            team_docs = await _db.db.teams.find(
                {"league_id": league["_id"]}, {"external_id": 1, "name": 1},
            ).to_list(length=None)
            lookup = {str(doc["external_id"]): doc for doc in team_docs if doc.get("external_id")}

            now = utcnow()
            ops: list[UpdateOne] = []
            labels: list[str] = []
            skipped = 0
            for fixture in fixtures:
                home = lookup.get(fixture["home_team"]["external_id"])
                away = lookup.get(fixture["away_team"]["external_id"])
                if home is None or away is None:
                    skipped += 1
                    continue
                fields = self._match_set_fields(fixture, now)
                fields.update(
                    {"league_id": league["_id"], "home_team_id": home["_id"], "away_team_id": away["_id"]}
                )
                ops.append(
                    UpdateOne(
                        {"external_id": fixture["external_id"]},
                        {"$set": fields, "$setOnInsert": {"created_at": now}},
                        upsert=True,
                    )
                )
                labels.append(f"{home.get('name')} vs {away.get('name')}")
            if ops:
                await _db.db.matches.bulk_write(ops, ordered=False)
        except PyMongoError as exc:
            logger.error("Match upsert failed for league %s: %s", league_ext, exc)
            return _failure(action, exc)

        if skipped:
            logger.warning("Skipped %d fixtures with unknown teams for league %s", skipped, league_ext)
        logger.info("Synced %d matches for league %s/%s", len(ops), league_ext, season)
        return {
            "success": True,
            "action": action,
            "league_id": league_ext,
            "count": len(ops),
            "skipped": skipped,
            "matches": labels,
        }

    async def sync_match_details(self, fixture_external_id: str) -> MatchDetailsSyncResult | SyncFailure:
        """Refresh lineups, coaches, statistics and events of an already-synced match."""
        action = "syncMatchDetails"
        fixture_ext = str(fixture_external_id or "").strip()
        try:
            provider = self.provider
            provider.ensure_configured()
            fixture = await provider.get_fixture_details(fixture_ext)
        except ProviderError as exc:
            return _failure(action, exc)

        if fixture is None:
            return {"success": True, "action": action, "fixture_id": fixture_ext, "count": 0, "match_id": None}

        details = fixture.get("details") or {}
        now = utcnow()
        fields = self._match_set_fields(fixture, now)
        for key in _DETAIL_FIELDS:
            if key in details:
                fields[key] = details[key]
        if "match_stats" in details:
            fields["match_stats"] = details["match_stats"]
        if "events" in details:
            fields["match_details"] = {"events": details["events"]}
        fields["details_synced_at"] = now

        try:
            result = await _db.db.matches.update_one({"external_id": fixture_ext}, {"$set": fields})
            if not result.matched_count:
                return {"success": True, "action": action, "fixture_id": fixture_ext, "count": 0, "match_id": None}
            doc = await _db.db.matches.find_one({"external_id": fixture_ext}, {"_id": 1})
        except PyMongoError as exc:
            return _failure(action, exc)

        return {
            "success": True,
            "action": action,
            "fixture_id": fixture_ext,
            "count": 1,
            "match_id": str(doc["_id"]) if doc else None,
        }

    # ---- Players ----

    async def _teams_for_player_sync(self, team_ids: list[str] | None) -> tuple[list[dict], list[dict[str, str]]]:
        invalid: list[dict[str, str]] = []
        if team_ids:
            oids: list[ObjectId] = []
            for raw in team_ids:
                try:
                    oids.append(parse_object_id(raw))
                except InvalidId:
                    invalid.append({"team_id": str(raw), "external_id": "", "error": "Invalid team id"})
            if not oids:
                return [], invalid
            teams = await _db.db.teams.find({"_id": {"$in": oids}}).to_list(length=None)
            order = {oid: index for index, oid in enumerate(oids)}
            teams.sort(key=lambda doc: order.get(doc["_id"], 0))
            return teams, invalid

        league = await _db.db.leagues.find_one({"external_id": str(settings.DEFAULT_LEAGUE_ID)})
        if not league:
            return [], invalid
        teams = await _db.db.teams.find({"league_id": league["_id"]}).sort("name", 1).to_list(length=None)
        return teams, invalid

    async def sync_players(self, team_ids: list[str] | None = None) -> PlayersSyncResult | SyncFailure:
        action = "syncPlayers"
        try:
            provider = self.provider
            provider.ensure_configured()
        except ProviderError as exc:
            return _failure(action, exc)

        try:
            teams, failed_teams = await self._teams_for_player_sync(team_ids)
        except PyMongoError as exc:
            return _failure(action, exc)

        limit = max(0, int(settings.PLAYER_SYNC_MAX_TEAMS))
        selected = teams[:limit] if limit else teams
        if len(teams) > len(selected):
            logger.info("Player sync capped to %d of %d teams", len(selected), len(teams))

        count = 0
        for index, team in enumerate(selected):
            if index and settings.PLAYER_SYNC_DELAY_SECONDS > 0:
                await asyncio.sleep(float(settings.PLAYER_SYNC_DELAY_SECONDS))
            ext_id = str(team.get("external_id") or "")
            try:
                squad = await provider.get_squad(ext_id)
                rows = assign_substitutes(squad, settings.STARTERS_PER_SQUAD)
                now = utcnow()
                ops = [
                    UpdateOne(
                        {"external_id": row["external_id"]},
                        {
                            "$set": {
                                "team_id": team["_id"],
                                "name": row["name"],
                                "position": classify_position(row.get("position_raw")),
                                "jersey_number": row.get("number"),
                                "is_substitute": row["is_substitute"],
                                "photo_url": row.get("photo_url"),
                                "updated_at": now,
                            },
                            "$setOnInsert": {"name_ar": row["name"], "created_at": now},
                        },
                        upsert=True,
                    )
                    for row in rows
                ]
                if ops:
                    await _db.db.players.bulk_write(ops, ordered=False)
                count += len(ops)
            except Exception as exc:
                logger.warning("Player sync failed for team %s (%s): %s", ext_id, team.get("name"), exc)
                failed_teams.append({"team_id": str(team["_id"]), "external_id": ext_id, "error": str(exc)})

        logger.info(
            "Synced %d players across %d teams (%d failed)",
            count, len(selected), len(failed_teams),
        )
        return {
            "success": True,
            "action": action,
            "count": count,
            "teams_processed": len(selected),
            "failed_teams": failed_teams,
        }

    # ---- Read-through ----

    async def get_standings(
        self, league_external_id: str | None = None, season: int | None = None,
    ) -> StandingsResult | SyncFailure:
        action = "getStandings"
        league_ext, season = _resolve_league_args(league_external_id, season)
        try:
            provider = self.provider
            provider.ensure_configured()
            rows = await provider.get_standings(league_ext, season)
        except ProviderError as exc:
            return _failure(action, exc)
        for row in rows:
            row["team"]["name_ar"] = arabic_team_name(row["team"]["name"])
        return {"success": True, "action": action, "league_id": league_ext, "season": season, "standings": rows}

    async def test_connection(self) -> dict[str, Any]:
        action = "testConnection"
        try:
            provider = self.provider
            provider.ensure_configured()
            info = await provider.test_connection()
        except ProviderError as exc:
            return dict(_failure(action, exc))
        return {"success": True, "action": action, **info}


sync_service = SyncService()
