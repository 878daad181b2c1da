import logging

import app.database as _db

logger = logging.getLogger("tawaqo.leaderboard")


async def get_leaderboard(limit: int = 100) -> list[dict]:
    """Users ranked by earned points, then by number of predictions.

    Unscored predictions (points_earned is null) count as zero points.
    """
    pipeline = [
        {
            "$group": {
                "_id": "$user_id",
                "total_points": {"$sum": {"$ifNull": ["$points_earned", 0]}},
                "total_predictions": {"$sum": 1},
            }
        },
        {"$sort": {"total_points": -1, "total_predictions": -1, "_id": 1}},
        {"$limit": limit},
        {
            "$lookup": {
                "from": "profiles",
                "localField": "_id",
                "foreignField": "_id",
                "as": "profile",
            }
        },
        {"$unwind": {"path": "$profile", "preserveNullAndEmptyArrays": True}},
    ]
    rows = await _db.db.predictions.aggregate(pipeline).to_list(length=limit)
    return rank_rows(rows)


def rank_rows(rows: list[dict]) -> list[dict]:
    """Shape aggregation rows for the API, ranked from 1 in the given order."""
    out = []
    for index, row in enumerate(rows, start=1):
        profile = row.get("profile") or {}
        out.append({
            "rank": index,
            "id": str(row["_id"]),
            "display_name": profile.get("display_name") or "",
            "avatar_url": profile.get("avatar_url"),
            "total_points": float(row.get("total_points") or 0),
            "total_predictions": int(row.get("total_predictions") or 0),
        })
    return out
