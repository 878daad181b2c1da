from typing import Optional

from pydantic import BaseModel, Field


class LeagueUpdate(BaseModel):
    """Admin-editable league fields. Sync never overwrites these."""
    prediction_price: Optional[float] = Field(None, ge=0)
    is_active: Optional[bool] = None
    name_ar: Optional[str] = Field(None, min_length=1, max_length=120)


class ContestSettingUpdate(BaseModel):
    value: float = Field(..., ge=0)
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    description: Optional[str] = Field(None, max_length=500)


class AutomationToggleRequest(BaseModel):
    enabled: bool
    run_initial_sync: bool = False


class FootballApiRequest(BaseModel):
    """Body of the ingestion trigger endpoint (camelCase as sent by the web client)."""
    action: str
    leagueId: Optional[str] = None
    season: Optional[int] = None
    matchId: Optional[str] = None
    fixtureId: Optional[str] = None
    teamIds: Optional[list[str]] = None
