"""
backend/app/services/team_name_normalizer.py

Purpose:
    Normalize provider team names into lookup keys and resolve the Arabic
    display name for known Egyptian Premier League clubs.

Dependencies:
    - re
    - unicodedata
"""

from __future__ import annotations

import re
import unicodedata

_PUNCT_RE = re.compile(r"[^a-z0-9\s]")
_SPACE_RE = re.compile(r"\s+")
_NOISE_TOKENS = {"fc", "sc", "club", "cf"}

# Keys are normalize_team_name() output.
_ARABIC_NAMES: dict[str, str] = {
    "al ahly": "الأهلي",
    "ahly": "الأهلي",
    "zamalek": "الزمالك",
    "pyramids": "بيراميدز",
    "ismaily": "الإسماعيلي",
    "ceramica cleopatra": "سيراميكا كليوباترا",
    "future": "فيوتشر",
    "modern future": "فيوتشر",
    "al masry": "المصري",
    "enppi": "إنبي",
    "smouha": "سموحة",
    "pharco": "فاركو",
    "eastern company": "الشركة الشرقية",
    "national bank": "البنك الأهلي",
    "national bank of egypt": "البنك الأهلي",
    "al ittihad": "الاتحاد السكندري",
    "ittihad alexandria": "الاتحاد السكندري",
    "el gouna": "الجونة",
    "ghazl el mehalla": "غزل المحلة",
    "zed": "زد",
    "el mokawloon": "المقاولون العرب",
    "arab contractors": "المقاولون العرب",
    "talaea el gaish": "طلائع الجيش",
    "petrojet": "بتروجت",
    "haras el hodood": "حرس الحدود",
    "el dakhleya": "الداخلية",
    "baladiyat el mahalla": "بلدية المحلة",
}


def normalize_team_name(raw: str) -> str:
    """
    Normalize a team name into an ASCII-safe key.

    Steps:
        1. lowercase + trim
        2. NFKD accent removal
        3. dotted abbreviations collapsed, punctuation cleanup
        4. drop club suffix tokens (FC, SC, Club, CF)
        5. whitespace collapse
    """
    text = str(raw or "").strip().lower()
    if not text:
        return ""

    text = unicodedata.normalize("NFKD", text)
    text = text.encode("ascii", "ignore").decode("ascii")
    # "F.C." and "S.C." collapse to a single token before punctuation cleanup.
    text = text.replace(".", "")
    text = _PUNCT_RE.sub(" ", text)
    tokens = [token for token in _SPACE_RE.split(text) if token and token not in _NOISE_TOKENS]
    return " ".join(tokens)


def arabic_team_name(name: str) -> str:
    """Arabic display name for a team; falls back to the given name when unknown."""
    english = str(name or "").strip()
    return _ARABIC_NAMES.get(normalize_team_name(english), english)
