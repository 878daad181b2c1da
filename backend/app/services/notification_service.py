"""
backend/app/services/notification_service.py

Purpose:
    User notifications: owner-scoped reads and mutations, admin creation and
    the realtime push to the owner's open sockets.

Dependencies:
    - app.database
    - app.services.websocket_manager
"""

import logging
from typing import Optional

from bson import ObjectId
from fastapi import HTTPException, status

import app.database as _db
from app.services.websocket_manager import websocket_manager
from app.utils import as_utc, parse_object_id, utcnow

logger = logging.getLogger("tawaqo.notifications")

NOTIFICATION_CREATED = "notification.created"


def notification_to_response(doc: dict) -> dict:
    return {
        "id": str(doc["_id"]),
        "type": doc.get("type", "info"),
        "title": doc.get("title", ""),
        "message": doc.get("message", ""),
        "is_read": bool(doc.get("is_read")),
        "match_id": str(doc["match_id"]) if doc.get("match_id") else None,
        "created_at": as_utc(doc["created_at"]),
    }


async def list_notifications(user_id: ObjectId, limit: int = 50, unread_only: bool = False) -> list[dict]:
    query: dict = {"user_id": user_id}
    if unread_only:
        query["is_read"] = False
    cursor = _db.db.notifications.find(query).sort("created_at", -1).limit(limit)
    return await cursor.to_list(length=limit)


async def mark_read(user_id: ObjectId, notification_id: str) -> None:
    result = await _db.db.notifications.update_one(
        {"_id": parse_object_id(notification_id), "user_id": user_id},
        {"$set": {"is_read": True}},
    )
    if not result.matched_count:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Notification not found.")


async def mark_all_read(user_id: ObjectId) -> int:
    result = await _db.db.notifications.update_many(
        {"user_id": user_id, "is_read": False},
        {"$set": {"is_read": True}},
    )
    return result.modified_count


async def delete_notification(user_id: ObjectId, notification_id: str) -> None:
    result = await _db.db.notifications.delete_one(
        {"_id": parse_object_id(notification_id), "user_id": user_id},
    )
    if not result.deleted_count:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Notification not found.")


async def create_notification(
    user_id: ObjectId,
    *,
    title: str,
    message: str,
    type: str = "info",
    match_id: Optional[ObjectId] = None,
) -> dict:
    """Insert one notification and push it to the owner's live sockets."""
    doc = {
        "user_id": user_id,
        "type": type,
        "title": title,
        "message": message,
        "match_id": match_id,
        "is_read": False,
        "created_at": utcnow(),
    }
    result = await _db.db.notifications.insert_one(doc)
    doc["_id"] = result.inserted_id

    payload = notification_to_response(doc)
    payload["created_at"] = payload["created_at"].isoformat()
    delivered = await websocket_manager.notify_user(str(user_id), event_type=NOTIFICATION_CREATED, data=payload)
    logger.debug("Notification %s for user %s pushed to %d sockets", doc["_id"], user_id, delivered)
    return doc


async def broadcast_notification(
    *,
    title: str,
    message: str,
    type: str = "info",
    match_id: Optional[ObjectId] = None,
) -> int:
    """One notification per active user."""
    users = await _db.db.users.find({"is_deleted": False}, {"_id": 1}).to_list(length=None)
    for user in users:
        await create_notification(user["_id"], title=title, message=message, type=type, match_id=match_id)
    logger.info("Broadcast notification '%s' to %d users", title, len(users))
    return len(users)
