"""
backend/tests/test_admin_ledgers.py

Purpose:
    Admin-managed data: contest settings seeding and updates, expense
    validation and summaries, league edits, role changes and leaderboard
    ranking.
"""

from __future__ import annotations

import sys
from datetime import datetime, timezone

import pytest
from bson import ObjectId
from fastapi import HTTPException
from pydantic import ValidationError

sys.path.insert(0, "backend")

from fake_mongo import FakeCollection, FakeDB

import app.database as _db
from app.models.expense import ExpenseCreate
from app.models.leagues import ContestSettingUpdate, LeagueUpdate
from app.services.admin_service import primary_role, set_user_role
from app.services.contest_settings_service import (
    CONTEST_SETTING_KEYS,
    list_contest_settings,
    seed_contest_settings,
    update_contest_setting,
)
from app.services.expense_service import create_expense, delete_expense, summarize_expenses
from app.services.leaderboard_service import rank_rows
from app.services.league_service import update_league


@pytest.fixture
def fake_db(monkeypatch):
    db = FakeDB(contest_settings=FakeCollection(unique=[("setting_key",)]))
    monkeypatch.setattr(_db, "db", db, raising=False)
    return db


# ---- Contest settings ----

@pytest.mark.asyncio
async def test_seed_contest_settings_is_insert_only(fake_db):
    assert await seed_contest_settings() == len(CONTEST_SETTING_KEYS)

    await update_contest_setting("points_exact_score", 5)
    assert await seed_contest_settings() == 0

    rows = await list_contest_settings()
    assert [row["setting_key"] for row in rows] == list(CONTEST_SETTING_KEYS)
    assert rows[0]["setting_value"] == {"value": 5}
    prize = next(row for row in rows if row["setting_key"] == "prize_first_place")
    assert prize["setting_value"]["currency"] == "EGP"


@pytest.mark.asyncio
async def test_update_contest_setting_currency(fake_db):
    await seed_contest_settings()
    row = await update_contest_setting("prize_first_place", 1000, currency="usd", description="Grand prize")
    assert row["setting_value"] == {"value": 1000, "currency": "USD"}
    assert row["description"] == "Grand prize"


@pytest.mark.asyncio
async def test_unknown_contest_setting_is_not_found(fake_db):
    with pytest.raises(HTTPException) as excinfo:
        await update_contest_setting("points_for_vibes", 1)
    assert excinfo.value.status_code == 404


def test_contest_setting_rejects_negative_value():
    with pytest.raises(ValidationError):
        ContestSettingUpdate(value=-1)


# ---- Expenses ----

def test_expense_validation():
    with pytest.raises(ValidationError):
        ExpenseCreate(title="Ads", amount=0)
    with pytest.raises(ValidationError):
        ExpenseCreate(title="   ", amount=10)
    with pytest.raises(ValidationError):
        ExpenseCreate(title="Ads", amount=10, category="snacks")
    assert ExpenseCreate(title=" Ads ", amount=10).category == "other"


def test_summarize_expenses_month_and_categories():
    now = datetime(2024, 9, 15, tzinfo=timezone.utc)
    docs = [
        {"amount": 100.0, "category": "marketing", "expense_date": datetime(2024, 9, 1)},
        {"amount": 50.5, "category": "prizes", "expense_date": datetime(2024, 8, 31, 23, 59, tzinfo=timezone.utc)},
        {"amount": 20.0, "category": None, "expense_date": datetime(2024, 9, 14, tzinfo=timezone.utc)},
    ]
    summary = summarize_expenses(docs, now=now)

    assert summary["total"] == 170.5
    assert summary["this_month_total"] == 120.0
    assert summary["by_category"]["marketing"] == 100.0
    assert summary["by_category"]["other"] == 20.0
    assert summary["by_category"]["salaries"] == 0.0


@pytest.mark.asyncio
async def test_create_and_delete_expense(fake_db):
    admin_id = ObjectId()
    doc = await create_expense(ExpenseCreate(title="Hosting", amount=300, category="technical"), admin_id)
    assert doc["created_by"] == admin_id
    assert doc["expense_date"] is not None

    await delete_expense(str(doc["_id"]))
    assert fake_db.expenses.docs == []
    with pytest.raises(HTTPException) as excinfo:
        await delete_expense(str(doc["_id"]))
    assert excinfo.value.status_code == 404


# ---- Leagues / roles ----

@pytest.mark.asyncio
async def test_update_league_fields(fake_db):
    league_id = ObjectId()
    fake_db.leagues.docs.append({"_id": league_id, "name": "Egyptian Premier League", "prediction_price": 0.0})

    updated = await update_league(str(league_id), LeagueUpdate(prediction_price=15, is_active=False))
    assert updated["prediction_price"] == 15
    assert updated["is_active"] is False

    with pytest.raises(HTTPException) as excinfo:
        await update_league(str(league_id), LeagueUpdate())
    assert excinfo.value.status_code == 400
    with pytest.raises(HTTPException) as excinfo:
        await update_league(str(ObjectId()), LeagueUpdate(is_active=True))
    assert excinfo.value.status_code == 404


@pytest.mark.asyncio
async def test_set_user_role_replaces_roles(fake_db):
    user_id = ObjectId()
    fake_db.users.docs.append({"_id": user_id})
    fake_db.user_roles.docs.extend([
        {"_id": ObjectId(), "user_id": user_id, "role": "user"},
        {"_id": ObjectId(), "user_id": user_id, "role": "moderator"},
    ])

    result = await set_user_role(str(user_id), "admin")

    assert result == {"id": str(user_id), "role": "admin"}
    assert [doc["role"] for doc in fake_db.user_roles.docs] == ["admin"]
    with pytest.raises(HTTPException):
        await set_user_role(str(ObjectId()), "user")


def test_primary_role_priority():
    assert primary_role(["user", "admin"]) == "admin"
    assert primary_role(["moderator", "user"]) == "moderator"
    assert primary_role([]) == "user"


def test_rank_rows_numbers_from_one():
    rows = [
        {"_id": ObjectId(), "total_points": 12, "total_predictions": 4, "profile": {"display_name": "A"}},
        {"_id": ObjectId(), "total_points": None, "total_predictions": 1},
    ]
    ranked = rank_rows(rows)
    assert [row["rank"] for row in ranked] == [1, 2]
    assert ranked[0]["display_name"] == "A"
    assert ranked[1]["total_points"] == 0.0
    assert "email" not in ranked[0]
