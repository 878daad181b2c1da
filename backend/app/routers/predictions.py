from fastapi import APIRouter, Depends, Query, status

from app.models.prediction import PredictionCreate, PredictionResponse
from app.services.auth_service import get_current_user
from app.services.prediction_service import (
    create_prediction,
    get_user_predictions,
    prediction_to_response,
)

router = APIRouter(prefix="/api/predictions", tags=["predictions"])


@router.post("", status_code=status.HTTP_201_CREATED, response_model=PredictionResponse)
async def submit_prediction(
    body: PredictionCreate,
    user=Depends(get_current_user),
):
    """Submit a prediction for an upcoming match. One per user and match."""
    prediction = await create_prediction(user["_id"], body)
    return PredictionResponse(**prediction_to_response(prediction))


@router.get("/mine", response_model=list[PredictionResponse])
async def my_predictions(
    limit: int = Query(50, ge=1, le=200),
    user=Depends(get_current_user),
):
    """Prediction history of the current user, newest first."""
    rows = await get_user_predictions(user["_id"], limit=limit)
    return [PredictionResponse(**prediction_to_response(row)) for row in rows]
