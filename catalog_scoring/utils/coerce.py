# =============================================
# File: catalog_scoring/utils/coerce.py
# Purpose: Tolerant coercion of loosely-typed JSON values (numbers, text, objects)
# =============================================
from __future__ import annotations
import json
import math
import re
from typing import Any, Dict, Optional

_NUMBER_RE = re.compile(r"-?\d+(?:\.\d+)?")
_WHITESPACE_RE = re.compile(r"\s+")


def clamp(value: float, lo: float, hi: float) -> float:
    return min(hi, max(lo, value))


def round_one(value: float) -> float:
    """Round half-up to one decimal (Python's round() is half-even)."""
    return math.floor(value * 10 + 0.5) / 10


def is_finite_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def to_finite_number(value: Any) -> Optional[float]:
    """
    Pull the first number out of a value.
    Accepts real numbers and strings like "5,000 mAh" or "120Hz"; returns None otherwise.
    """
    if value is None or value == "" or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else None
    if isinstance(value, (dict, list)):
        return None
    m = _NUMBER_RE.search(str(value).replace(",", ""))
    if not m:
        return None
    parsed = float(m.group(0))
    return parsed if math.isfinite(parsed) else None


def normalize_text(value: Any) -> str:
    if value is None:
        return ""
    return _WHITESPACE_RE.sub(" ", str(value).lower()).strip()


def to_object(value: Any) -> Dict[str, Any]:
    """
    Coerce a JSON block into a dict.
    Stringified JSON is parsed; anything that is not an object ends up as {}.
    """
    if not value:
        return {}
    if isinstance(value, dict):
        return value
    if isinstance(value, (str, bytes)):
        raw = value.strip()
        if not raw:
            return {}
        try:
            parsed = json.loads(raw)
        except (ValueError, TypeError):
            return {}
        return parsed if isinstance(parsed, dict) else {}
    return {}
