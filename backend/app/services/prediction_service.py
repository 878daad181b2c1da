import logging

from bson import ObjectId
from bson.errors import InvalidId
from fastapi import HTTPException, status
from pymongo.errors import DuplicateKeyError

import app.database as _db
from app.models.prediction import PredictionCreate
from app.utils import as_utc, ensure_utc, parse_object_id, utcnow

logger = logging.getLogger("tawaqo.prediction_service")

DUPLICATE_PREDICTION_MESSAGE = "You have already predicted this match."
PREDICTIONS_CLOSED_MESSAGE = "Predictions are closed for this match."


async def create_prediction(user_id: ObjectId, body: PredictionCreate) -> dict:
    """Create a prediction with server-side validation.

    Validates:
    - Match exists, is upcoming and has not kicked off
    - First scorer (if given) plays for one of the two teams
    - No duplicate prediction for this user+match (unique index)
    """
    match_id = parse_object_id(body.match_id)
    match = await _db.db.matches.find_one({"_id": match_id})
    if not match:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Match not found.",
        )

    now = utcnow()
    kickoff = ensure_utc(match["kickoff_time"])
    if match.get("status") != "upcoming" or kickoff <= now:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=PREDICTIONS_CLOSED_MESSAGE,
        )

    scorer_id = None
    if body.predicted_first_scorer_id:
        try:
            scorer_id = parse_object_id(body.predicted_first_scorer_id)
        except InvalidId:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Invalid first scorer.",
            )
        scorer = await _db.db.players.find_one({"_id": scorer_id}, {"team_id": 1})
        if not scorer or scorer.get("team_id") not in (match.get("home_team_id"), match.get("away_team_id")):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="First scorer must play for one of the two teams.",
            )

    league = await _db.db.leagues.find_one({"_id": match.get("league_id")}, {"prediction_price": 1})
    price = float((league or {}).get("prediction_price") or 0.0)

    prediction_doc = {
        "user_id": user_id,
        "match_id": match_id,
        "predicted_home_score": body.predicted_home_score,
        "predicted_away_score": body.predicted_away_score,
        "predicted_first_scorer_id": scorer_id,
        "predicted_total_corners": body.predicted_total_corners,
        "predicted_total_cards": body.predicted_total_cards,
        "price": price,
        "is_paid": False,
        "amount_paid": 0.0,
        "points_earned": None,
        "created_at": now,
    }

    try:
        result = await _db.db.predictions.insert_one(prediction_doc)
    except DuplicateKeyError:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=DUPLICATE_PREDICTION_MESSAGE,
        )

    prediction_doc["_id"] = result.inserted_id
    logger.info(
        "Prediction created: user=%s match=%s score=%d-%d",
        user_id, match_id, body.predicted_home_score, body.predicted_away_score,
    )
    return prediction_doc


async def get_user_predictions(user_id: ObjectId, limit: int = 50) -> list[dict]:
    """Newest-first prediction history with both team names attached."""
    pipeline = [
        {"$match": {"user_id": user_id}},
        {"$sort": {"created_at": -1}},
        {"$limit": limit},
        {
            "$lookup": {
                "from": "matches",
                "localField": "match_id",
                "foreignField": "_id",
                "as": "match_info",
            }
        },
        {"$unwind": {"path": "$match_info", "preserveNullAndEmptyArrays": True}},
        {"$lookup": {"from": "teams", "localField": "match_info.home_team_id", "foreignField": "_id", "as": "home"}},
        {"$lookup": {"from": "teams", "localField": "match_info.away_team_id", "foreignField": "_id", "as": "away"}},
    ]
    return await _db.db.predictions.aggregate(pipeline).to_list(length=limit)


def prediction_to_response(doc: dict) -> dict:
    match_info = doc.get("match_info")
    match = None
    if match_info:
        home = (doc.get("home") or [{}])[0]
        away = (doc.get("away") or [{}])[0]
        match = {
            "kickoff_time": as_utc(match_info.get("kickoff_time")),
            "status": match_info.get("status"),
            "home_score": match_info.get("home_score"),
            "away_score": match_info.get("away_score"),
            "home_team": {"name": home.get("name"), "name_ar": home.get("name_ar"), "logo_url": home.get("logo_url")},
            "away_team": {"name": away.get("name"), "name_ar": away.get("name_ar"), "logo_url": away.get("logo_url")},
        }
    scorer = doc.get("predicted_first_scorer_id")
    return {
        "id": str(doc["_id"]),
        "match_id": str(doc["match_id"]),
        "predicted_home_score": doc["predicted_home_score"],
        "predicted_away_score": doc["predicted_away_score"],
        "predicted_first_scorer_id": str(scorer) if scorer else None,
        "predicted_total_corners": doc.get("predicted_total_corners"),
        "predicted_total_cards": doc.get("predicted_total_cards"),
        "price": doc.get("price", 0.0),
        "is_paid": doc.get("is_paid", False),
        "amount_paid": doc.get("amount_paid", 0.0),
        "points_earned": doc.get("points_earned"),
        "created_at": as_utc(doc["created_at"]),
        "match": match,
    }
