"""
backend/app/main.py

Purpose:
    FastAPI application bootstrap, middleware/router wiring, scheduler lifecycle,
    and startup initialization for seed data and the admin account.

Dependencies:
    - app.database
    - app.seed
    - app.services.contest_settings_service
    - app.workers.sync_worker
"""

import asyncio
import logging
from contextlib import asynccontextmanager

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from bson.errors import InvalidId
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pymongo.errors import (
    ConnectionFailure,
    DuplicateKeyError,
    OperationFailure,
    PyMongoError,
)

from app.config import settings
import app.database as _db
from app.database import connect_db, close_db
from app.middleware.logging import StructuredLoggingMiddleware, setup_logging
from app.utils import utcnow

logger = logging.getLogger("tawaqo")
scheduler = AsyncIOScheduler()
_AUTOMATION_META_ID = "automation_settings"
_AUTOMATED_JOB_IDS = {"match_sync"}
_automation_enabled = False

def _build_automated_job_specs() -> list[dict]:
    from app.workers.sync_worker import refresh_match_data

    return [
        {
            "id": "match_sync",
            "func": refresh_match_data,
            "trigger": "interval",
            "trigger_kwargs": {"hours": max(1, settings.SYNC_STALENESS_HOURS)},
        },
    ]

def _register_automated_jobs() -> int:
    added = 0
    for spec in _build_automated_job_specs():
        if scheduler.get_job(spec["id"]):
            continue
        scheduler.add_job(
            spec["func"],
            spec["trigger"],
            id=spec["id"],
            replace_existing=True,
            max_instances=1,
            coalesce=True,
            **spec["trigger_kwargs"],
        )
        added += 1
    return added

def _remove_automated_jobs() -> int:
    removed = 0
    for job_id in _AUTOMATED_JOB_IDS:
        if scheduler.get_job(job_id):
            scheduler.remove_job(job_id)
            removed += 1
    return removed

async def _initial_sync_after_enable() -> None:
    from app.workers.sync_worker import refresh_match_data

    await asyncio.sleep(5)
    await refresh_match_data()

async def set_automation_enabled(
    enabled: bool,
    *,
    run_initial_sync: bool = False,
    persist: bool = True,
) -> dict:
    global _automation_enabled

    changed = enabled != _automation_enabled
    added = 0
    removed = 0

    if enabled:
        added = _register_automated_jobs()
        _automation_enabled = True
        if run_initial_sync:
            asyncio.create_task(_initial_sync_after_enable())
    else:
        removed = _remove_automated_jobs()
        _automation_enabled = False

    if persist:
        await _db.db.meta.update_one(
            {"_id": _AUTOMATION_META_ID},
            {"$set": {"enabled": _automation_enabled, "updated_at": utcnow()}},
            upsert=True,
        )

    return {
        "enabled": _automation_enabled,
        "changed": changed,
        "added_jobs": added,
        "removed_jobs": removed,
        "scheduled_jobs": automated_job_count(),
    }

def automation_enabled() -> bool:
    return _automation_enabled

def automated_job_count() -> int:
    return sum(1 for job in scheduler.get_jobs() if job.id in _AUTOMATED_JOB_IDS)

async def _startup_automation_state() -> bool:
    """Persisted admin choice wins over the env default."""
    doc = await _db.db.meta.find_one({"_id": _AUTOMATION_META_ID})
    if doc is not None and "enabled" in doc:
        return bool(doc["enabled"])
    return settings.SYNC_AUTOMATION_ENABLED

@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    await connect_db()
    from app.seed import ensure_startup_admin
    from app.services.contest_settings_service import seed_contest_settings
    from app.services.sync_service import PROVIDERS
    from app.services.websocket_manager import websocket_manager

    seeded = await seed_contest_settings()
    logger.info("Contest settings seeded on startup: %s", seeded)
    await ensure_startup_admin()

    scheduler.start()
    enabled = await _startup_automation_state()
    await set_automation_enabled(enabled, run_initial_sync=False, persist=False)
    logger.info("Sync automation %s on startup", "enabled" if enabled else "disabled")
    await websocket_manager.start()
    logger.info("Background scheduler started")

    yield

    await websocket_manager.stop()
    if scheduler.running:
        scheduler.shutdown(wait=False)
    for provider in PROVIDERS.values():
        await provider.aclose()
    await close_db()

app = FastAPI(
    title="Tawaqo",
    description="Football score prediction contest",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.BACKEND_CORS_ORIGINS.split(","),
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type"],
)

# Structured logging
app.add_middleware(StructuredLoggingMiddleware)

# Routers
from app.routers.auth import router as auth_router
from app.routers.matches import router as matches_router
from app.routers.predictions import router as predictions_router
from app.routers.leaderboard import router as leaderboard_router
from app.routers.notifications import router as notifications_router
from app.routers.ws import router as ws_router
from app.routers.admin import router as admin_router
from app.routers.football_api import router as football_api_router

app.include_router(auth_router)
app.include_router(matches_router)
app.include_router(predictions_router)
app.include_router(leaderboard_router)
app.include_router(notifications_router)
app.include_router(ws_router)
app.include_router(admin_router)
app.include_router(football_api_router)

@app.exception_handler(InvalidId)
async def invalid_object_id_handler(request: Request, exc: InvalidId):
    return JSONResponse(status_code=400, content={"detail": "Invalid ID."})

@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Flatten pydantic errors to field/message pairs."""
    errors = []
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
        errors.append({
            "field": ".".join(loc) or "request",
            "message": err.get("msg", "Invalid value."),
        })
    return JSONResponse(status_code=422, content={"detail": "Validation error.", "errors": errors})

@app.exception_handler(DuplicateKeyError)
async def duplicate_key_handler(request: Request, exc: DuplicateKeyError):
    return JSONResponse(status_code=409, content={"detail": "Duplicate entry."})

@app.exception_handler(ConnectionFailure)
async def db_unavailable_handler(request: Request, exc: ConnectionFailure):
    # ServerSelectionTimeoutError lands here too.
    logger.error("Database unavailable on %s %s: %s", request.method, request.url.path, type(exc).__name__)
    return JSONResponse(status_code=503, content={"detail": "Service temporarily unavailable."})

@app.exception_handler(OperationFailure)
async def db_operation_handler(request: Request, exc: OperationFailure):
    logger.error("Database operation error on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=500, content={"detail": "An internal error occurred."})

@app.exception_handler(ValueError)
async def value_error_handler(request: Request, exc: ValueError):
    logger.warning("ValueError on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=400, content={"detail": "Invalid input."})

@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"detail": "An internal error occurred."})

@app.get("/health")
async def health():
    """Health check: DB connection and which sync provider is active."""
    from app.providers.base import ProviderConfigError
    from app.services.sync_service import get_provider
    from app.services.websocket_manager import websocket_manager

    try:
        result = await _db.db.command("ping")
        db_ok = result.get("ok") == 1.0
    except PyMongoError:
        db_ok = False

    try:
        provider = get_provider()
        provider.ensure_configured()
        provider_configured = True
    except ProviderConfigError:
        provider_configured = False

    return {
        "status": "healthy" if db_ok else "degraded",
        "db": "connected" if db_ok else "disconnected",
        "sync_provider": {
            "name": settings.SYNC_PROVIDER,
            "configured": provider_configured,
            "automation_enabled": _automation_enabled,
        },
        "realtime": {
            key: value
            for key, value in websocket_manager.stats().items()
            if key in ("running", "active_connections", "connected_users")
        },
    }
