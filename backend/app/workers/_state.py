"""Persistent worker state: last successful sync per job, shared by all clients.

Stored in the lightweight `worker_state` collection so that restarts and
concurrent API processes see the same timestamp.
"""

from datetime import datetime, timedelta
from typing import Any

import app.database as _db
from app.utils import ensure_utc, utcnow


async def get_state(worker_id: str) -> dict[str, Any] | None:
    return await _db.db.worker_state.find_one({"_id": worker_id})


async def get_synced_at(worker_id: str) -> datetime | None:
    """Get the last synced_at timestamp for a worker (UTC)."""
    doc = await get_state(worker_id)
    if not doc or not doc.get("synced_at"):
        return None
    return ensure_utc(doc["synced_at"])


async def set_synced(worker_id: str, at: datetime | None = None, **extra: Any) -> None:
    """Record a successful sync, optionally with a small summary."""
    await _db.db.worker_state.update_one(
        {"_id": worker_id},
        {"$set": {"synced_at": ensure_utc(at) if at else utcnow(), **extra}},
        upsert=True,
    )


async def set_attempted(worker_id: str, error: str | None = None) -> None:
    """Record an attempt without moving synced_at."""
    await _db.db.worker_state.update_one(
        {"_id": worker_id},
        {"$set": {"attempted_at": utcnow(), "last_error": error}},
        upsert=True,
    )


async def recently_synced(worker_id: str, max_age: timedelta, now: datetime | None = None) -> bool:
    """Check if a worker synced within the given time window."""
    last = await get_synced_at(worker_id)
    if not last:
        return False
    return ((ensure_utc(now) if now else utcnow()) - last) < max_age
