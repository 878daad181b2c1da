"""
backend/app/services/player_position.py

Purpose:
    Coarse position classification for squad players and positional
    starter/substitute assignment.

Dependencies:
    - re
"""

from __future__ import annotations

import re
from typing import Any, Iterable

from app.services.sync_types import PositionCode

_TOKEN_RE = re.compile(r"[a-z]+")

# Checked in order; first hit wins.
_SUBSTRING_RULES: tuple[tuple[PositionCode, tuple[str, ...]], ...] = (
    ("GK", ("goal", "keeper")),
    # Before DF: "Defensive Midfield" is a midfielder.
    ("MF", ("midfield",)),
    ("DF", ("defen", "back")),
    ("FW", ("attack", "forward", "striker", "wing", "offence")),
)
_TOKEN_RULES: dict[str, PositionCode] = {
    "gk": "GK",
    "g": "GK",
    "df": "DF",
    "d": "DF",
    "cb": "DF",
    "lb": "DF",
    "rb": "DF",
    "lwb": "DF",
    "rwb": "DF",
    "mf": "MF",
    "m": "MF",
    "cm": "MF",
    "cdm": "MF",
    "cam": "MF",
    "dm": "MF",
    "am": "MF",
    "lm": "MF",
    "rm": "MF",
    "fw": "FW",
    "f": "FW",
    "st": "FW",
    "cf": "FW",
    "lw": "FW",
    "rw": "FW",
}

DEFAULT_POSITION: PositionCode = "MF"


def classify_position(raw: str | None) -> PositionCode:
    """Classify a free-text provider position into GK/DF/MF/FW (fallback MF)."""
    text = str(raw or "").strip().lower()
    if not text:
        return DEFAULT_POSITION
    for code, needles in _SUBSTRING_RULES:
        if any(needle in text for needle in needles):
            return code
    for token in _TOKEN_RE.findall(text):
        code = _TOKEN_RULES.get(token)
        if code:
            return code
    return DEFAULT_POSITION


def assign_substitutes(players: Iterable[dict[str, Any]], starters: int = 11) -> list[dict[str, Any]]:
    """Copy players in order, marking the first `starters` as starters and the rest as substitutes."""
    out: list[dict[str, Any]] = []
    for index, player in enumerate(players):
        out.append({**player, "is_substitute": index >= max(0, int(starters))})
    return out
