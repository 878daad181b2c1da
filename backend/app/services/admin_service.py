"""
backend/app/services/admin_service.py

Purpose:
    Admin dashboard aggregates and user role management.

Dependencies:
    - app.database
"""

from __future__ import annotations

import logging

from bson import ObjectId
from fastapi import HTTPException, status

import app.database as _db
from app.utils import as_utc, parse_object_id, utcnow

logger = logging.getLogger("tawaqo.admin_service")

# Higher wins when a user holds several roles.
_ROLE_PRIORITY = {"admin": 3, "moderator": 2, "user": 1}


def primary_role(roles: list[str]) -> str:
    if not roles:
        return "user"
    return max(roles, key=lambda r: _ROLE_PRIORITY.get(r, 0))


async def dashboard_stats() -> dict:
    now = utcnow()
    day_start = now.replace(hour=0, minute=0, second=0, microsecond=0)

    total_users = await _db.db.profiles.count_documents({})
    total_predictions = await _db.db.predictions.count_documents({})
    today_predictions = await _db.db.predictions.count_documents({"created_at": {"$gte": day_start}})

    revenue_rows = await _db.db.predictions.aggregate([
        {"$match": {"is_paid": True}},
        {"$group": {"_id": None, "total": {"$sum": {"$ifNull": ["$amount_paid", 0]}}}},
    ]).to_list(length=1)
    total_revenue = float(revenue_rows[0]["total"]) if revenue_rows else 0.0

    return {
        "total_users": total_users,
        "total_predictions": total_predictions,
        "today_predictions": today_predictions,
        "total_revenue": round(total_revenue, 2),
    }


async def list_users(limit: int = 100) -> list[dict]:
    """Profiles newest first with their primary role and prediction count."""
    profiles = await _db.db.profiles.find({}).sort("created_at", -1).limit(limit).to_list(length=limit)
    ids = [p["_id"] for p in profiles]

    roles: dict[ObjectId, list[str]] = {}
    for doc in await _db.db.user_roles.find({"user_id": {"$in": ids}}).to_list(length=None):
        roles.setdefault(doc["user_id"], []).append(doc["role"])

    counts: dict[ObjectId, int] = {}
    rows = await _db.db.predictions.aggregate([
        {"$match": {"user_id": {"$in": ids}}},
        {"$group": {"_id": "$user_id", "count": {"$sum": 1}}},
    ]).to_list(length=None)
    for row in rows:
        counts[row["_id"]] = int(row["count"])

    return [
        {
            "id": str(p["_id"]),
            "display_name": p.get("display_name", ""),
            "avatar_url": p.get("avatar_url"),
            "role": primary_role(roles.get(p["_id"], [])),
            "predictions_count": counts.get(p["_id"], 0),
            "created_at": as_utc(p.get("created_at")),
        }
        for p in profiles
    ]


async def set_user_role(user_id: str, role: str) -> dict:
    """Replace the user's roles with exactly one role."""
    oid = parse_object_id(user_id)
    user = await _db.db.users.find_one({"_id": oid}, {"_id": 1})
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found.")

    await _db.db.user_roles.delete_many({"user_id": oid})
    await _db.db.user_roles.insert_one({"user_id": oid, "role": role, "created_at": utcnow()})
    logger.info("Role of user %s set to %s", user_id, role)
    return {"id": user_id, "role": role}
