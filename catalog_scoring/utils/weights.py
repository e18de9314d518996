# =============================================
# File: catalog_scoring/utils/weights.py
# Purpose: Weighted composer: weight-set normalization and weighted-average composition
# =============================================
from __future__ import annotations
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Mapping, Optional

from .coerce import clamp, is_finite_number, to_finite_number


def frozen(mapping: Mapping[str, float]) -> Mapping[str, float]:
    """Read-only view used for the module-level default weight sets."""
    return MappingProxyType(dict(mapping))


DEFAULT_BUYER_INTENT_WEIGHTS = frozen({"views": 0.55, "compares": 0.3, "wishlist": 0.15})
DEFAULT_TREND_VELOCITY_WEIGHTS = frozen({"views": 0.7, "compares": 0.3})
DEFAULT_HOOK_SCORE_WEIGHTS = frozen({"buyer_intent": 0.5, "trend_velocity": 0.3, "freshness": 0.2})
DEFAULT_TRENDING_WEIGHTS = frozen({"views": 0.4, "compares": 0.4, "velocity": 0.2})


@dataclass(frozen=True)
class WeightSet:
    """A normalized weight set: non-negative values per key and their positive total."""
    values: Mapping[str, float]
    total: float

    def __getitem__(self, key: str) -> float:
        return self.values[key]

    def fractions(self) -> dict[str, float]:
        return {k: v / self.total for k, v in self.values.items()}


def _safe_weight(value: Any, fallback: float) -> float:
    if isinstance(value, str):
        value = to_finite_number(value)
    if not is_finite_number(value) or value < 0:
        return fallback
    return float(value)


def normalize_weights(
    weights: Optional[Mapping[str, Any]],
    defaults: Mapping[str, float],
    aliases: Optional[Mapping[str, str]] = None,
) -> WeightSet:
    """
    Merge caller weights over defaults, key by key.

    - negative, non-numeric or non-finite values take the default for that key
    - unknown keys are ignored
    - a set whose total is <= 0 is replaced by the full default set
    Weights need not sum to 1; the composer divides by the total.
    """
    source = weights if isinstance(weights, Mapping) else {}
    values: dict[str, float] = {}
    for key, default in defaults.items():
        raw = source.get(key)
        if raw is None and aliases and aliases.get(key):
            raw = source.get(aliases[key])
        values[key] = default if raw is None else _safe_weight(raw, default)

    total = sum(values.values())
    if total <= 0:
        fallback_total = sum(defaults.values())
        return WeightSet(values=frozen(defaults), total=fallback_total or 1.0)
    return WeightSet(values=frozen(values), total=total)


def compose(scores: Mapping[str, float], weights: WeightSet) -> float:
    """Weighted average of named sub-scores, clamped to [0, 100]. Missing scores count as 0."""
    acc = 0.0
    for key, w in weights.values.items():
        acc += float(scores.get(key, 0.0)) * w
    return clamp(acc / weights.total, 0.0, 100.0)
