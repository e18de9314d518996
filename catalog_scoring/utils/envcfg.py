# =============================================
# File: catalog_scoring/utils/envcfg.py
# Purpose: Call-time readers for optional environment configuration
# =============================================
from __future__ import annotations
import json
import math
import os
from typing import Any, Dict, Optional

from loguru import logger

INT32_MAX = 2147483647


def _as_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        return None
    return parsed if math.isfinite(parsed) else None


def to_positive_int(value: Any, fallback: int) -> int:
    parsed = _as_float(value)
    if parsed is None or parsed <= 0:
        return fallback
    return int(math.floor(parsed))


def to_non_negative_float(value: Any, fallback: float) -> float:
    parsed = _as_float(value)
    if parsed is None or parsed < 0:
        return fallback
    return parsed


def pick(explicit: Any, env_name: str) -> Any:
    """Explicit option first, then the environment (read now, so tests can monkeypatch)."""
    if explicit is not None:
        return explicit
    return os.getenv(env_name)


def env_json_mapping(env_name: str) -> Optional[Dict[str, Any]]:
    """Parse a JSON object from the environment; anything else is ignored with a warning."""
    raw = (os.getenv(env_name) or "").strip()
    if not raw:
        return None
    try:
        parsed = json.loads(raw)
    except ValueError:
        logger.warning(f"[config] {env_name} is not valid JSON; using defaults")
        return None
    if not isinstance(parsed, dict):
        logger.warning(f"[config] {env_name} must be a JSON object; using defaults")
        return None
    return parsed


def lock_key(env_name: str, default_base: int, offset: int = 0, max_base: int = INT32_MAX) -> int:
    """
    Advisory lock key = base + offset, kept inside the signed 32-bit range.
    A base beyond `max_base` falls back to the default; an overflowing sum falls back to the base.
    """
    parsed = _as_float(os.getenv(env_name))
    base = int(parsed) if parsed is not None and abs(parsed) <= max_base else default_base
    key = base + offset
    if abs(key) > INT32_MAX:
        return base
    return key
