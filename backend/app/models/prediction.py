from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

MAX_SCORE = 20
MAX_MATCH_TOTAL = 50


class PredictionCreate(BaseModel):
    """Request body for submitting a prediction."""
    match_id: str
    predicted_home_score: int = Field(..., ge=0, le=MAX_SCORE)
    predicted_away_score: int = Field(..., ge=0, le=MAX_SCORE)
    predicted_first_scorer_id: Optional[str] = None
    predicted_total_corners: Optional[int] = Field(None, ge=0, le=MAX_MATCH_TOTAL)
    predicted_total_cards: Optional[int] = Field(None, ge=0, le=MAX_MATCH_TOTAL)


class PredictionResponse(BaseModel):
    id: str
    match_id: str
    predicted_home_score: int
    predicted_away_score: int
    predicted_first_scorer_id: Optional[str] = None
    predicted_total_corners: Optional[int] = None
    predicted_total_cards: Optional[int] = None
    price: float = 0.0
    is_paid: bool = False
    amount_paid: float = 0.0
    points_earned: Optional[float] = None
    created_at: datetime
    # Match context (populated on history reads)
    match: Optional[Dict[str, Any]] = None
