import logging
from datetime import datetime

from bson import ObjectId
from fastapi import HTTPException, status

import app.database as _db
from app.models.expense import EXPENSE_CATEGORIES, ExpenseCreate
from app.utils import as_utc, ensure_utc, parse_object_id, utcnow

logger = logging.getLogger("tawaqo.expenses")


def expense_to_response(doc: dict) -> dict:
    return {
        "id": str(doc["_id"]),
        "title": doc.get("title", ""),
        "amount": float(doc.get("amount") or 0),
        "category": doc.get("category") or "other",
        "description": doc.get("description"),
        "expense_date": as_utc(doc.get("expense_date")),
        "created_by": str(doc["created_by"]) if doc.get("created_by") else None,
        "created_at": as_utc(doc.get("created_at")),
    }


def summarize_expenses(docs: list[dict], now: datetime | None = None) -> dict:
    """Totals overall, for the current calendar month (UTC) and per category."""
    now = ensure_utc(now) if now else utcnow()
    month_start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    by_category = {category: 0.0 for category in EXPENSE_CATEGORIES}
    total = 0.0
    this_month = 0.0
    for doc in docs:
        amount = float(doc.get("amount") or 0)
        total += amount
        category = doc.get("category") or "other"
        by_category[category] = by_category.get(category, 0.0) + amount
        spent_at = doc.get("expense_date")
        if spent_at and ensure_utc(spent_at) >= month_start:
            this_month += amount
    return {
        "total": round(total, 2),
        "this_month_total": round(this_month, 2),
        "by_category": {k: round(v, 2) for k, v in by_category.items()},
    }


async def list_expenses(limit: int = 500) -> dict:
    docs = await _db.db.expenses.find({}).sort("expense_date", -1).limit(limit).to_list(length=limit)
    return {"expenses": [expense_to_response(d) for d in docs], **summarize_expenses(docs)}


async def create_expense(body: ExpenseCreate, admin_id: ObjectId) -> dict:
    now = utcnow()
    doc = {
        "title": body.title,
        "amount": body.amount,
        "category": body.category,
        "description": body.description,
        "expense_date": ensure_utc(body.expense_date) if body.expense_date else now,
        "created_by": admin_id,
        "created_at": now,
    }
    result = await _db.db.expenses.insert_one(doc)
    doc["_id"] = result.inserted_id
    logger.info("Expense recorded: %s %.2f (%s)", body.title, body.amount, body.category)
    return doc


async def delete_expense(expense_id: str) -> None:
    result = await _db.db.expenses.delete_one({"_id": parse_object_id(expense_id)})
    if not result.deleted_count:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Expense not found.")
