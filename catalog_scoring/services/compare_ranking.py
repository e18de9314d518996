# =============================================
# File: catalog_scoring/services/compare_ranking.py
# Purpose: Compare ranking engine: feature scores + set-relative price value -> ranked devices
# =============================================

from __future__ import annotations
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence

from ..utils.coerce import clamp, is_finite_number, normalize_text, round_one, to_finite_number
from ..utils.spec_features import feature_scores
from ..utils.weights import frozen, normalize_weights

WEIGHT_KEYS = ("performance", "display", "camera", "battery", "priceValue")

DEFAULT_COMPARE_WEIGHTS = frozen({
    "performance": 0.36,
    "display": 0.2,
    "camera": 0.2,
    "battery": 0.14,
    "priceValue": 0.1,
})

# Ordered: the first keyword found in the processor text wins, so specific names go first.
DEFAULT_CHIPSET_RULES = (
    ("snapdragon 8 elite", 100),
    ("snapdragon 8 gen 4", 98),
    ("dimensity 9400", 97),
    ("a18 pro", 98),
    ("apple a18", 98),
    ("snapdragon 8 gen 3", 95),
    ("dimensity 9300", 92),
    ("a17 pro", 98),
    ("snapdragon 8 gen 2", 89),
    ("dimensity 9200", 89),
    ("apple a16", 89),
    ("snapdragon 7 gen 3", 75),
    ("dimensity 8300", 75),
    ("snapdragon 7", 72),
    ("dimensity 8", 72),
    ("tensor g3", 74),
    ("tensor g2", 72),
    ("snapdragon 6", 62),
    ("dimensity 7", 62),
    ("exynos 13", 62),
    ("snapdragon 4", 50),
    ("helio", 50),
    ("unisoc", 50),
    ("exynos 8", 50),
)

MAX_CHIPSET_RULES = 200
MAX_KEYWORD_LENGTH = 120
DEFAULT_RULE_SCORE = 60

# Weights applied to the hardware scores before dividing by price
BASE_SPEC_WEIGHTS = {"performance": 0.4, "display": 0.2, "camera": 0.25, "battery": 0.15}

NO_PRICE_VALUE_SCORE = 45
EQUAL_PRICE_VALUE_SCORE = 70
VALUE_SCORE_FLOOR = 35
VALUE_SCORE_SPAN = 65


def default_chipset_rules() -> List[Dict[str, Any]]:
    return [{"keyword": k, "score": s} for k, s in DEFAULT_CHIPSET_RULES]


@dataclass
class CompareScoreConfig:
    weights: Dict[str, float] = field(default_factory=lambda: dict(DEFAULT_COMPARE_WEIGHTS))
    chipset_rules: List[Dict[str, Any]] = field(default_factory=default_chipset_rules)


def normalize_compare_weights(raw: Any) -> Dict[str, float]:
    """
    Compare weights as fractions summing to 1.
    Fractions and percentages are both accepted; dividing by the total makes them equivalent.
    """
    ws = normalize_weights(
        raw if isinstance(raw, Mapping) else None,
        DEFAULT_COMPARE_WEIGHTS,
        aliases={"priceValue": "price_value"},
    )
    weights = {k: clamp(v, 0.0, 1.0) for k, v in ws.fractions().items()}
    drift = 1.0 - sum(weights.values())
    if drift:
        first = WEIGHT_KEYS[0]
        weights[first] = clamp(weights[first] + drift, 0.0, 1.0)
    return weights


def _rule_score(value: Any) -> int:
    parsed = to_finite_number(value)
    if parsed is None:
        return DEFAULT_RULE_SCORE
    return int(clamp(math.floor(parsed + 0.5), 0, 100))


def normalize_chipset_rules(raw: Any) -> List[Dict[str, Any]]:
    """Clean a caller-supplied keyword table; nothing usable means the built-in table."""
    rows = raw if isinstance(raw, (list, tuple)) else []
    seen = set()
    rules: List[Dict[str, Any]] = []
    for row in rows:
        if not isinstance(row, Mapping):
            continue
        keyword_raw = next(
            (row[k] for k in ("keyword", "match", "pattern") if row.get(k) is not None),
            "",
        )
        keyword = normalize_text(keyword_raw)[:MAX_KEYWORD_LENGTH]
        if not keyword or keyword in seen:
            continue
        seen.add(keyword)
        rules.append({"keyword": keyword, "score": _rule_score(row.get("score"))})

    if not rules:
        return default_chipset_rules()
    return rules[:MAX_CHIPSET_RULES]


def _first_not_none(source: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        value = source.get(key)
        if value is not None:
            return value
    return None


def normalize_compare_score_config(raw: Any) -> CompareScoreConfig:
    """Accepts {weights, chipset_rules} or a flat weights mapping; see normalize_* for the rules."""
    source = raw if isinstance(raw, Mapping) else {}
    weights_source = source.get("weights")
    if not isinstance(weights_source, Mapping):
        weights_source = source
    return CompareScoreConfig(
        weights=normalize_compare_weights(weights_source),
        chipset_rules=normalize_chipset_rules(
            _first_not_none(source, "chipset_rules", "chipsetRules", "chipsets") or []
        ),
    )


def weights_to_percent(weights: Mapping[str, float]) -> Dict[str, float]:
    return {k: round_one((weights.get(k) or 0.0) * 100) for k in WEIGHT_KEYS}


# ---------- Pricing ----------

def _as_int(value: Any) -> Optional[int]:
    """Integers only: 3, 3.0 and "3" qualify; 3.5, "", True and None do not."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            return None
    if not is_finite_number(value) or float(value) != math.floor(value):
        return None
    return int(value)


def pick_variant(variants: Sequence[Any], selection: Optional[Mapping[str, Any]]) -> Optional[Mapping[str, Any]]:
    """
    Selected variant by id, else by index (out of range -> first), else the first one.
    """
    rows = [v for v in variants if isinstance(v, Mapping)] if isinstance(variants, (list, tuple)) else []
    if not rows:
        return None
    selection = selection if isinstance(selection, Mapping) else {}

    variant_id = _as_int(_first_not_none(selection, "variant_id", "variantId"))
    if variant_id is not None and variant_id > 0:
        for row in rows:
            if _as_int(row.get("id")) == variant_id:
                return row

    variant_index = _as_int(_first_not_none(selection, "variant_index", "variantIndex"))
    if variant_index is not None and variant_index >= 0:
        return rows[variant_index] if variant_index < len(rows) else rows[0]
    return rows[0]


def _positive_price(source: Optional[Mapping[str, Any]], *keys: str) -> Optional[float]:
    if not source:
        return None
    price = to_finite_number(_first_not_none(source, *keys))
    return price if price is not None and price > 0 else None


def product_key(device: Mapping[str, Any]) -> str:
    raw = _first_not_none(device, "product_id", "id")
    if raw is None:
        return ""
    if isinstance(raw, float) and raw.is_integer():
        raw = int(raw)
    return str(raw)


def extract_price(device: Mapping[str, Any], variant_selection: Optional[Mapping[str, Any]] = None) -> Optional[float]:
    """
    Price used for the value score: selected variant, else cheapest priced variant,
    else the device-level min_price / price. Only positive prices count.
    """
    selection = variant_selection.get(product_key(device)) if isinstance(variant_selection, Mapping) else None
    variants = device.get("variants")
    variants = variants if isinstance(variants, list) else []

    selected = _positive_price(pick_variant(variants, selection), "base_price", "price")
    if selected is not None:
        return selected

    prices = [p for p in (_positive_price(v, "base_price", "price") for v in variants if isinstance(v, Mapping)) if p is not None]
    if prices:
        return min(prices)

    return _positive_price(device, "min_price", "price")


# ---------- Ranking ----------

def _value_score(value_raw: Optional[float], lo: Optional[float], hi: Optional[float]) -> float:
    if value_raw is None or lo is None or hi is None:
        return NO_PRICE_VALUE_SCORE
    if hi == lo:
        return EQUAL_PRICE_VALUE_SCORE
    return VALUE_SCORE_FLOOR + ((value_raw - lo) / (hi - lo)) * VALUE_SCORE_SPAN


def _sort_key(row: Dict[str, Any]):
    price = row["price"] if row["price"] is not None else math.inf
    return (-row["overallScore"], price, row["deviceName"])


def build_compare_ranking(
    devices: Optional[Sequence[Mapping[str, Any]]],
    variant_selection: Optional[Mapping[str, Any]] = None,
    config: Any = None,
) -> List[Dict[str, Any]]:
    """
    Score and rank a small set of devices.

    Each row: productId, deviceName, price, breakdown{performance, display, camera, battery},
    valueScore, overallScore, rank (1-based). The value score is relative to this set only,
    so the same device can get a different value score in a different comparison.
    Order: overallScore desc, then price asc (unpriced last), then deviceName asc.
    """
    cfg = config if isinstance(config, CompareScoreConfig) else normalize_compare_score_config(config)
    weights = cfg.weights

    scored: List[Dict[str, Any]] = []
    for device in devices or []:
        if not isinstance(device, Mapping):
            device = {}
        features = feature_scores(device, cfg.chipset_rules)
        base_spec = sum(features[k] * w for k, w in BASE_SPEC_WEIGHTS.items())
        price = extract_price(device, variant_selection)
        scored.append({
            "productId": product_key(device),
            "deviceName": str(device.get("name") or device.get("model") or "Device"),
            "price": price,
            "valueRaw": base_spec / price if price else None,
            "breakdown": {k: round_one(v) for k, v in features.items()},
        })

    values = [r["valueRaw"] for r in scored if r["valueRaw"] is not None]
    lo = min(values) if values else None
    hi = max(values) if values else None

    for row in scored:
        value_score = round_one(clamp(_value_score(row.pop("valueRaw"), lo, hi), 0, 100))
        total = sum(row["breakdown"][k] * weights[k] for k in BASE_SPEC_WEIGHTS)
        total += value_score * weights["priceValue"]
        row["valueScore"] = value_score
        row["overallScore"] = round_one(total)

    ranked = sorted(scored, key=_sort_key)
    for index, row in enumerate(ranked, start=1):
        row["rank"] = index
    return ranked
