"""
backend/app/routers/admin.py

Purpose:
    Admin HTTP router: account provisioning, leagues, contest settings,
    expenses, dashboard stats, user roles, notifications and the sync
    automation toggle.

Dependencies:
    - app.services.auth_service
    - app.services.admin_service
    - app.services.contest_settings_service
    - app.services.expense_service
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

import app.database as _db
from app.config import settings
from app.models.expense import ExpenseCreate
from app.models.leagues import AutomationToggleRequest, ContestSettingUpdate, LeagueUpdate
from app.models.notification import NotificationCreate
from app.models.user import AdminUserRow, RoleUpdate
from app.seed import ensure_admin_account
from app.services.admin_service import dashboard_stats, list_users, set_user_role
from app.services.auth_service import get_admin_user
from app.services.contest_settings_service import list_contest_settings, update_contest_setting
from app.services.expense_service import create_expense, delete_expense, expense_to_response, list_expenses
from app.services.league_service import league_to_response, list_leagues, update_league
from app.services.notification_service import broadcast_notification, create_notification
from app.utils import parse_object_id

logger = logging.getLogger("tawaqo.admin")
router = APIRouter(prefix="/api/admin", tags=["admin"])


# --- Provisioning ---

@router.post("/create-admin")
async def create_admin():
    """Ensure the configured provisioning account exists with the admin role.

    Open on purpose: it only ever acts on ADMIN_EMAIL and is a no-op once the
    role is in place.
    """
    if not settings.ADMIN_EMAIL or not settings.ADMIN_PASSWORD:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Admin provisioning is not configured.",
        )
    return await ensure_admin_account()


# --- Dashboard ---

@router.get("/stats")
async def admin_stats(admin=Depends(get_admin_user)):
    """Admin dashboard stats."""
    return await dashboard_stats()


# --- Users ---

@router.get("/users", response_model=list[AdminUserRow])
async def admin_users(limit: int = Query(100, ge=1, le=500), admin=Depends(get_admin_user)):
    return await list_users(limit=limit)


@router.put("/users/{user_id}/role")
async def admin_set_role(user_id: str, body: RoleUpdate, admin=Depends(get_admin_user)):
    if user_id == str(admin["_id"]) and body.role != "admin":
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="You cannot remove your own admin role.")
    return await set_user_role(user_id, body.role)


# --- Leagues ---

@router.get("/leagues")
async def admin_leagues(admin=Depends(get_admin_user)):
    return [league_to_response(doc) for doc in await list_leagues()]


@router.patch("/leagues/{league_id}")
async def admin_update_league(league_id: str, body: LeagueUpdate, admin=Depends(get_admin_user)):
    return league_to_response(await update_league(league_id, body))


# --- Contest settings ---

@router.get("/contest-settings")
async def admin_contest_settings(admin=Depends(get_admin_user)):
    return await list_contest_settings()


@router.put("/contest-settings/{key}")
async def admin_update_contest_setting(key: str, body: ContestSettingUpdate, admin=Depends(get_admin_user)):
    return await update_contest_setting(key, body.value, currency=body.currency, description=body.description)


# --- Expenses ---

@router.get("/expenses")
async def admin_expenses(admin=Depends(get_admin_user)):
    return await list_expenses()


@router.post("/expenses", status_code=status.HTTP_201_CREATED)
async def admin_create_expense(body: ExpenseCreate, admin=Depends(get_admin_user)):
    return expense_to_response(await create_expense(body, admin["_id"]))


@router.delete("/expenses/{expense_id}", status_code=status.HTTP_204_NO_CONTENT)
async def admin_delete_expense(expense_id: str, admin=Depends(get_admin_user)):
    await delete_expense(expense_id)


# --- Notifications ---

@router.post("/notifications", status_code=status.HTTP_201_CREATED)
async def admin_create_notification(body: NotificationCreate, admin=Depends(get_admin_user)):
    match_id: Optional[object] = parse_object_id(body.match_id) if body.match_id else None
    if body.user_id:
        user_id = parse_object_id(body.user_id)
        if not await _db.db.users.find_one({"_id": user_id}, {"_id": 1}):
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found.")
        await create_notification(user_id, title=body.title, message=body.message, type=body.type, match_id=match_id)
        return {"created": 1}
    created = await broadcast_notification(title=body.title, message=body.message, type=body.type, match_id=match_id)
    return {"created": created}


# --- Automation ---

@router.get("/automation")
async def get_automation_state(admin=Depends(get_admin_user)):
    """Return the periodic sync scheduler state."""
    from app.main import automation_enabled, automated_job_count, scheduler

    return {
        "enabled": automation_enabled(),
        "scheduled_jobs": automated_job_count(),
        "scheduler_running": bool(scheduler.running),
    }


@router.post("/automation")
async def set_automation_state(body: AutomationToggleRequest, admin=Depends(get_admin_user)):
    """Enable/disable the periodic sync job at runtime."""
    from app.main import set_automation_enabled

    result = await set_automation_enabled(
        body.enabled,
        run_initial_sync=body.run_initial_sync and body.enabled,
        persist=True,
    )
    logger.info("Admin %s set sync automation to %s", admin["_id"], result["enabled"])
    return result
