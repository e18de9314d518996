# =============================================
# File: catalog_scoring/utils/spec_features.py
# Purpose: Heuristic feature extraction and scoring over loosely-structured device spec JSON
# =============================================
from __future__ import annotations
import math
import re
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from .coerce import clamp, normalize_text, to_finite_number, to_object

# Neutral scores used when a field is missing entirely
NO_PROCESSOR_SCORE = 45
UNKNOWN_CHIPSET_SCORE = 60
NO_REFRESH_RATE_SCORE = 28
NO_PANEL_SCORE = 20
NO_MEGAPIXEL_SCORE = 24
NO_BATTERY_SCORE = 35


def first_number(source: Mapping[str, Any], keys: Iterable[str]) -> Optional[float]:
    for key in keys:
        value = to_finite_number(source.get(key))
        if value is not None:
            return value
    return None


# ---------- Processor / chipset ----------

_SNAPDRAGON_GEN_RE = re.compile(r"snapdragon\s*([0-9])\s*gen\s*([0-9]+)", re.IGNORECASE)
_DIMENSITY_RE = re.compile(r"dimensity\s*([0-9]{4})", re.IGNORECASE)
_APPLE_RE = re.compile(r"apple\s*a([0-9]{2})|a([0-9]{2})\s*(pro|bionic)?", re.IGNORECASE)

# (minimum model number, score), highest first
_DIMENSITY_TIERS = ((9400, 97), (9300, 92), (8300, 78), (8200, 74), (7300, 66))


def extract_processor_text(device: Mapping[str, Any]) -> str:
    performance = to_object(device.get("performance"))
    cpu = to_object(device.get("cpu"))
    candidates = (
        performance.get("processor"),
        performance.get("chipset"),
        performance.get("soc"),
        performance.get("cpu"),
        cpu.get("processor"),
        cpu.get("chipset"),
        cpu.get("model"),
        cpu.get("name"),
        device.get("processor"),
    )
    for candidate in candidates:
        if candidate is None or isinstance(candidate, (dict, list)):
            continue
        text = str(candidate).strip()
        if text:
            return text
    return ""


def _chipset_from_patterns(text: str) -> Optional[float]:
    m = _SNAPDRAGON_GEN_RE.search(text)
    if m:
        series, gen = int(m.group(1)), int(m.group(2))
        return clamp(50 + series * 8 + gen * 2, 52, 96)

    m = _DIMENSITY_RE.search(text)
    if m:
        model = int(m.group(1))
        for minimum, score in _DIMENSITY_TIERS:
            if model >= minimum:
                return score
        return 58

    m = _APPLE_RE.search(text)
    if m:
        chip = int(m.group(1) or m.group(2))
        return clamp(74 + (chip - 14) * 4, 70, 99)

    if "tensor" in text:
        return 74
    if "exynos" in text:
        return 68
    return None


def score_chipset(processor_text: str, chipset_rules: Sequence[Mapping[str, Any]]) -> float:
    """
    Keyword table first (ordered, most specific first, first hit wins), then
    numeric patterns for Snapdragon Gen / Dimensity / Apple A-series names.
    """
    text = normalize_text(processor_text)
    if not text:
        return NO_PROCESSOR_SCORE

    for rule in chipset_rules:
        keyword = rule.get("keyword")
        if keyword and keyword in text:
            return clamp(to_finite_number(rule.get("score")) or 0, 0, 100)

    pattern_score = _chipset_from_patterns(text)
    if pattern_score is not None:
        return pattern_score
    return UNKNOWN_CHIPSET_SCORE


# ---------- Display ----------

_REFRESH_KEYS = ("refresh_rate", "refreshRate", "max_refresh_rate", "screen_refresh_rate", "frame_rate", "refresh")

# (substring, points), checked in order
_PANEL_POINTS = (
    ("ltpo", 40),
    ("amoled", 34),
    ("oled", 32),
    ("mini led", 33),
    ("mini-led", 33),
    ("ips", 24),
    ("lcd", 24),
    ("tft", 16),
)


def extract_refresh_rate(display: Any) -> Optional[float]:
    return first_number(to_object(display), _REFRESH_KEYS)


def score_refresh_rate(refresh_rate: Optional[float]) -> float:
    """60 Hz -> 20 points, 165 Hz and above -> 60 points, linear in between."""
    if refresh_rate is None:
        return NO_REFRESH_RATE_SCORE
    hz = clamp(refresh_rate, 60, 165)
    return math.floor(20 + ((hz - 60) / (165 - 60)) * 40 + 0.5)


def detect_panel_score(display: Any) -> float:
    source = to_object(display)
    raw = source.get("panel_type") or source.get("panel") or source.get("type") or source.get("technology")
    text = normalize_text(raw if not isinstance(raw, (dict, list)) else "")
    if not text:
        return NO_PANEL_SCORE
    for needle, points in _PANEL_POINTS:
        if needle in text:
            return points
    return 22


def score_display(display: Any) -> float:
    return clamp(score_refresh_rate(extract_refresh_rate(display)) + detect_panel_score(display), 0, 100)


# ---------- Camera ----------

_MP_RE = re.compile(r"(\d+(?:\.\d+)?)\s*mp", re.IGNORECASE)
_CAMERA_FALLBACK_KEYS = ("main", "ultra_wide", "telephoto", "periscope", "macro", "depth")


def collect_megapixels(value: Any, bucket: List[float]) -> None:
    """Walk nested camera blocks collecting megapixel figures."""
    if value is None or isinstance(value, bool):
        return
    if isinstance(value, (int, float)):
        n = to_finite_number(value)
        if n is not None:
            bucket.append(n)
        return
    if isinstance(value, str):
        hits = _MP_RE.findall(value)
        if hits:
            bucket.extend(float(h) for h in hits)
            return
        n = to_finite_number(value)
        # bare numbers above this are not megapixels (years, resolutions, ...)
        if n is not None and n <= 250:
            bucket.append(n)
        return
    if isinstance(value, list):
        for item in value:
            collect_megapixels(item, bucket)
        return
    if isinstance(value, dict):
        for nested in value.values():
            collect_megapixels(nested, bucket)


def extract_main_megapixel(camera: Any) -> Optional[float]:
    source = to_object(camera)
    values: List[float] = []
    for key in ("main_camera_megapixels", "main", "rear_camera", "primary"):
        collect_megapixels(source.get(key), values)
    return max(values) if values else None


def _present(value: Any) -> bool:
    return value is not None and value != ""


def count_camera_sensors(camera: Any) -> int:
    source = to_object(camera)
    rear = source.get("rear_camera")
    if isinstance(rear, dict) and rear:
        return sum(1 for v in rear.values() if _present(v))
    if isinstance(rear, list):
        return sum(1 for v in rear if v)
    found = sum(1 for key in _CAMERA_FALLBACK_KEYS if _present(source.get(key)))
    return found if found > 0 else 1


def score_camera(camera: Any) -> float:
    main_mp = extract_main_megapixel(camera)
    mp_score = NO_MEGAPIXEL_SCORE if main_mp is None else clamp((main_mp / 108) * 65, 18, 65)
    sensor_score = clamp(count_camera_sensors(camera) * 8.75, 10, 35)
    return clamp(mp_score + sensor_score, 0, 100)


# ---------- Battery ----------

_BATTERY_KEYS = ("battery_capacity_mah", "capacity_mah", "capacity", "mAh", "value")

# (upper bound in mAh, score)
_BATTERY_STEPS = ((3000, 25), (4000, 45), (4500, 60), (5000, 75), (5500, 86), (6000, 94))


def extract_battery_capacity(battery: Any) -> Optional[float]:
    return first_number(to_object(battery), _BATTERY_KEYS)


def score_battery_capacity(capacity: Optional[float]) -> float:
    if capacity is None:
        return NO_BATTERY_SCORE
    for ceiling, score in _BATTERY_STEPS:
        if capacity <= ceiling:
            return score
    return 100


def score_battery(battery: Any) -> float:
    return score_battery_capacity(extract_battery_capacity(battery))


def feature_scores(device: Mapping[str, Any], chipset_rules: Sequence[Mapping[str, Any]]) -> Dict[str, float]:
    """All hardware sub-scores for one device; each falls back independently."""
    return {
        "performance": score_chipset(extract_processor_text(device), chipset_rules),
        "display": score_display(device.get("display")),
        "camera": score_camera(device.get("camera")),
        "battery": score_battery(device.get("battery")),
    }
