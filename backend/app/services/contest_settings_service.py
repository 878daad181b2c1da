"""
backend/app/services/contest_settings_service.py

Purpose:
    Scoring and prize rules editable by admins. Keys are a fixed set; values
    are stored as {"value": number, "currency"?: str}.

Dependencies:
    - app.database
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import HTTPException, status
from pymongo import UpdateOne

import app.database as _db
from app.utils import utcnow

logger = logging.getLogger("tawaqo.contest_settings")

DEFAULT_CURRENCY = "EGP"

# key -> (default value, currency or None, description)
CONTEST_SETTING_DEFAULTS: dict[str, tuple[float, str | None, str]] = {
    "points_exact_score": (3, None, "Points for predicting the exact final score"),
    "points_correct_result": (1, None, "Points for predicting the winner or a draw"),
    "points_first_scorer": (2, None, "Points for predicting the first goal scorer"),
    "points_total_corners": (1, None, "Points for predicting the total corners"),
    "points_total_cards": (1, None, "Points for predicting the total cards"),
    "prize_first_place": (0, DEFAULT_CURRENCY, "Prize for first place"),
    "prize_second_place": (0, DEFAULT_CURRENCY, "Prize for second place"),
    "prize_third_place": (0, DEFAULT_CURRENCY, "Prize for third place"),
}
CONTEST_SETTING_KEYS = tuple(CONTEST_SETTING_DEFAULTS)


def _serialize(doc: dict[str, Any]) -> dict[str, Any]:
    return {
        "setting_key": doc["setting_key"],
        "setting_value": doc.get("setting_value") or {"value": 0},
        "description": doc.get("description"),
        "updated_at": doc.get("updated_at"),
    }


async def seed_contest_settings() -> int:
    """Insert missing keys with defaults. Existing values are never touched."""
    now = utcnow()
    ops = []
    for key, (value, currency, description) in CONTEST_SETTING_DEFAULTS.items():
        setting_value: dict[str, Any] = {"value": value}
        if currency:
            setting_value["currency"] = currency
        ops.append(
            UpdateOne(
                {"setting_key": key},
                {"$setOnInsert": {
                    "setting_key": key,
                    "setting_value": setting_value,
                    "description": description,
                    "created_at": now,
                    "updated_at": now,
                }},
                upsert=True,
            )
        )
    result = await _db.db.contest_settings.bulk_write(ops, ordered=False)
    inserted = result.upserted_count
    if inserted:
        logger.info("Seeded %d contest settings", inserted)
    return inserted


async def list_contest_settings() -> list[dict[str, Any]]:
    docs = await _db.db.contest_settings.find(
        {"setting_key": {"$in": list(CONTEST_SETTING_KEYS)}}
    ).to_list(length=None)
    order = {key: index for index, key in enumerate(CONTEST_SETTING_KEYS)}
    docs.sort(key=lambda d: order.get(d["setting_key"], len(order)))
    return [_serialize(doc) for doc in docs]


async def update_contest_setting(
    key: str,
    value: float,
    *,
    currency: str | None = None,
    description: str | None = None,
) -> dict[str, Any]:
    if key not in CONTEST_SETTING_DEFAULTS:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Unknown contest setting.")

    default_value, default_currency, default_description = CONTEST_SETTING_DEFAULTS[key]
    existing = await _db.db.contest_settings.find_one({"setting_key": key}) or {}
    setting_value = dict(existing.get("setting_value") or {"value": default_value})
    setting_value["value"] = value
    if currency:
        setting_value["currency"] = currency.strip().upper()
    elif default_currency and "currency" not in setting_value:
        setting_value["currency"] = default_currency

    now = utcnow()
    fields: dict[str, Any] = {"setting_value": setting_value, "updated_at": now}
    if description is not None:
        fields["description"] = description
    await _db.db.contest_settings.update_one(
        {"setting_key": key},
        {
            "$set": fields,
            "$setOnInsert": {
                "setting_key": key,
                "created_at": now,
                **({} if description is not None else {"description": default_description}),
            },
        },
        upsert=True,
    )
    doc = await _db.db.contest_settings.find_one({"setting_key": key})
    logger.info("Contest setting %s set to %s", key, value)
    return _serialize(doc or {"setting_key": key, "setting_value": setting_value})
