"""
backend/app/services/match_status.py

Purpose:
    Map raw provider status codes (API-Football short codes and
    football-data.org status names) onto the four match states.

Dependencies:
    - app.services.sync_types
"""

from __future__ import annotations

from app.services.sync_types import MatchStatus

LIVE_CODES = frozenset({"1H", "HT", "2H", "ET", "BT", "P", "SUSP", "INT", "LIVE", "IN_PLAY", "PAUSED"})
FINISHED_CODES = frozenset({"FT", "AET", "PEN", "FINISHED", "AWARDED"})
POSTPONED_CODES = frozenset({"PST", "CANC", "ABD", "AWD", "WO", "POSTPONED", "CANCELLED", "SUSPENDED"})

MATCH_STATUSES: tuple[MatchStatus, ...] = ("upcoming", "live", "finished", "postponed")


def classify_match_status(raw: str | None) -> MatchStatus:
    """Classify a provider status code. Unknown or empty codes are upcoming."""
    code = str(raw or "").strip().upper()
    if code in LIVE_CODES:
        return "live"
    if code in FINISHED_CODES:
        return "finished"
    if code in POSTPONED_CODES:
        return "postponed"
    return "upcoming"
