from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class NotificationCreate(BaseModel):
    """Admin request body. user_id omitted means every user."""
    user_id: Optional[str] = None
    type: str = Field("info", min_length=1, max_length=40)
    title: str = Field(..., min_length=1, max_length=200)
    message: str = Field(..., min_length=1, max_length=2000)
    match_id: Optional[str] = None


class NotificationResponse(BaseModel):
    id: str
    type: str
    title: str
    message: str
    is_read: bool = False
    match_id: Optional[str] = None
    created_at: datetime
