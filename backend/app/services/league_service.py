"""
backend/app/services/league_service.py

Purpose:
    League reads and the admin-owned league fields (prediction price, active
    flag, Arabic name). Sync creates leagues; only admins edit these fields.

Dependencies:
    - app.database
    - app.utils
"""

from __future__ import annotations

import logging

from fastapi import HTTPException, status

import app.database as _db
from app.models.leagues import LeagueUpdate
from app.utils import as_utc, parse_object_id, utcnow

logger = logging.getLogger("tawaqo.leagues")


def league_to_response(doc: dict) -> dict:
    return {
        "id": str(doc["_id"]),
        "external_id": doc.get("external_id"),
        "name": doc.get("name", ""),
        "name_ar": doc.get("name_ar"),
        "country": doc.get("country"),
        "logo_url": doc.get("logo_url"),
        "season": doc.get("season"),
        "is_active": bool(doc.get("is_active", True)),
        "prediction_price": float(doc.get("prediction_price") or 0.0),
        "updated_at": as_utc(doc.get("updated_at")),
    }


async def list_leagues(active_only: bool = False) -> list[dict]:
    query = {"is_active": True} if active_only else {}
    return await _db.db.leagues.find(query).sort("name", 1).to_list(length=None)


async def update_league(league_id: str, body: LeagueUpdate) -> dict:
    changes = body.model_dump(exclude_none=True)
    if not changes:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Nothing to update.")
    oid = parse_object_id(league_id)
    changes["updated_at"] = utcnow()
    result = await _db.db.leagues.update_one({"_id": oid}, {"$set": changes})
    if not result.matched_count:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="League not found.")
    logger.info("League %s updated: %s", league_id, sorted(k for k in changes if k != "updated_at"))
    return await _db.db.leagues.find_one({"_id": oid})
