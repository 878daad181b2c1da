"""
backend/app/database.py

Purpose:
    MongoDB connection bootstrap and index management. The unique indexes on
    provider external ids are the conflict keys sync upserts rely on, and the
    (user_id, match_id) index enforces one prediction per user and match.

Dependencies:
    - motor.motor_asyncio
    - pymongo
    - app.config
"""

import logging

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING

from app.config import settings

client: AsyncIOMotorClient = None
db: AsyncIOMotorDatabase = None

logger = logging.getLogger("tawaqo.database")


async def connect_db() -> None:
    global client, db
    client = AsyncIOMotorClient(
        settings.MONGO_URI,
        maxPoolSize=25,
        minPoolSize=5,
        tz_aware=True,
    )
    db = client[settings.MONGO_DB]
    await _ensure_indexes()


async def close_db() -> None:
    global client
    if client:
        client.close()


async def get_db() -> AsyncIOMotorDatabase:
    return db


async def _ensure_indexes() -> None:
    """Create indexes on startup. Idempotent."""

    # ---- Provider-synced entities (external id = upsert key) ----
    await db.leagues.create_index("external_id", unique=True, sparse=True)
    await db.leagues.create_index("is_active")

    await db.teams.create_index("external_id", unique=True, sparse=True)
    await db.teams.create_index("league_id")

    await db.matches.create_index("external_id", unique=True, sparse=True)
    await db.matches.create_index([("league_id", ASCENDING), ("kickoff_time", ASCENDING)])
    await db.matches.create_index([("status", ASCENDING), ("kickoff_time", ASCENDING)])
    await db.matches.create_index("home_team_id")
    await db.matches.create_index("away_team_id")

    await db.players.create_index("external_id", unique=True, sparse=True)
    await db.players.create_index([("team_id", ASCENDING), ("jersey_number", ASCENDING)])

    # ---- Predictions ----
    await db.predictions.create_index(
        [("user_id", ASCENDING), ("match_id", ASCENDING)],
        unique=True,
        name="predictions_user_match_unique",
    )
    await db.predictions.create_index("match_id")
    await db.predictions.create_index([("user_id", ASCENDING), ("created_at", DESCENDING)])
    await db.predictions.create_index("created_at")

    # ---- Notifications ----
    await db.notifications.create_index([("user_id", ASCENDING), ("created_at", DESCENDING)])
    await db.notifications.create_index([("user_id", ASCENDING), ("is_read", ASCENDING)])

    # ---- Users / roles ----
    await db.users.create_index("email", unique=True)
    await db.profiles.create_index("created_at")
    await db.user_roles.create_index([("user_id", ASCENDING), ("role", ASCENDING)], unique=True)
    await db.access_blocklist.create_index("jti", unique=True)
    await db.access_blocklist.create_index("expires_at", expireAfterSeconds=0)

    # ---- Admin ledgers ----
    await db.contest_settings.create_index("setting_key", unique=True)
    await db.expenses.create_index([("expense_date", DESCENDING)])
    await db.expenses.create_index("category")

    logger.info("MongoDB indexes ensured")
