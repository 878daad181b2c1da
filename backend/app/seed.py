import logging
from typing import Any

from argon2 import PasswordHasher

import app.database as _db
from app.config import settings
from app.utils import utcnow

logger = logging.getLogger("tawaqo.seed")
ph = PasswordHasher()

ADMIN_EXISTS = "exists"
ADMIN_ROLE_REPAIRED = "role_repaired"
ADMIN_CREATED = "created"

_MESSAGES = {
    ADMIN_EXISTS: "Admin already exists",
    ADMIN_ROLE_REPAIRED: "Admin role updated for existing user",
    ADMIN_CREATED: "Admin user created successfully",
}


async def ensure_admin_account(
    email: str | None = None,
    password: str | None = None,
    display_name: str | None = None,
) -> dict[str, Any]:
    """Make sure the provisioning account exists and holds the admin role.

    Three outcomes, reported in ``status``:
    - exists: the user already has the admin role, nothing changes
    - role_repaired: the user existed without it; other roles are replaced by admin
    - created: a new user, profile and admin role were inserted
    """
    email = str(email or settings.ADMIN_EMAIL or "").strip().lower()
    password = password or settings.ADMIN_PASSWORD
    if not email or not password:
        raise ValueError("ADMIN_EMAIL and ADMIN_PASSWORD must be configured")

    now = utcnow()
    existing = await _db.db.users.find_one({"email": email})
    if existing:
        user_id = existing["_id"]
        has_admin = await _db.db.user_roles.find_one({"user_id": user_id, "role": "admin"})
        if has_admin:
            status = ADMIN_EXISTS
        else:
            await _db.db.user_roles.delete_many({"user_id": user_id})
            await _db.db.user_roles.insert_one({"user_id": user_id, "role": "admin", "created_at": now})
            status = ADMIN_ROLE_REPAIRED
            logger.info("Admin role repaired for user %s", user_id)
    else:
        result = await _db.db.users.insert_one({
            "email": email,
            "hashed_password": ph.hash(password),
            "is_deleted": False,
            "created_at": now,
            "updated_at": now,
        })
        user_id = result.inserted_id
        await _db.db.profiles.update_one(
            {"_id": user_id},
            {"$setOnInsert": {
                "display_name": display_name or settings.ADMIN_DISPLAY_NAME,
                "avatar_url": None,
                "created_at": now,
                "updated_at": now,
            }},
            upsert=True,
        )
        await _db.db.user_roles.delete_many({"user_id": user_id})
        await _db.db.user_roles.insert_one({"user_id": user_id, "role": "admin", "created_at": now})
        status = ADMIN_CREATED
        logger.info("Admin user created: %s", user_id)

    return {"success": True, "status": status, "message": _MESSAGES[status], "email": email}


async def ensure_startup_admin() -> None:
    """Run admin provisioning at startup when credentials are configured."""
    if not settings.ADMIN_EMAIL or not settings.ADMIN_PASSWORD:
        logger.debug("ADMIN_EMAIL/ADMIN_PASSWORD not set, startup admin bootstrap skipped")
        return
    result = await ensure_admin_account()
    logger.info("Startup admin bootstrap: %s (%s)", result["status"], result["email"])
