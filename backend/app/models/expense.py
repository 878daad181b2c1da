from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator

ExpenseCategory = Literal["marketing", "operations", "prizes", "salaries", "technical", "other"]
EXPENSE_CATEGORIES: tuple[str, ...] = ("marketing", "operations", "prizes", "salaries", "technical", "other")


class ExpenseCreate(BaseModel):
    """Request body for recording an operating expense."""
    title: str = Field(..., min_length=1, max_length=200)
    amount: float = Field(..., gt=0)
    category: ExpenseCategory = "other"
    description: Optional[str] = Field(None, max_length=2000)
    expense_date: Optional[datetime] = None  # defaults to now

    @field_validator("title")
    @classmethod
    def strip_title(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Title must not be blank.")
        return v
