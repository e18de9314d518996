# =============================================
# File: catalog_scoring/services/hook_score.py
# Purpose: Hook score family: buyer intent + trend velocity + freshness, per product type
# =============================================

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Sequence

from loguru import logger
from sqlalchemy.engine import Engine
from sqlmodel import Session

from ..db.models import ProductDynamicScore, as_utc, utcnow
from ..utils.envcfg import INT32_MAX, env_json_mapping, lock_key, pick, to_non_negative_float, to_positive_int
from ..utils.normalize import freshness, normalize_cohorts, velocity_raw
from ..utils.weights import (
    DEFAULT_BUYER_INTENT_WEIGHTS,
    DEFAULT_HOOK_SCORE_WEIGHTS,
    DEFAULT_TREND_VELOCITY_WEIGHTS,
    WeightSet,
    compose,
    normalize_weights,
)
from .candidates import (
    SUPPORTED_HOOK_TYPES,
    Candidate,
    product_type_config,
    typed_candidate_ids,
    typed_candidates,
)
from .orchestrator import AggregateRecomputeResult, RecomputeResult, require_engine, run_locked
from .signals import SignalCounts, Windows, aggregate_signals, counts_for

DEFAULT_DAYS = 7
DEFAULT_SMOOTHING = 5.0
DEFAULT_FRESHNESS_HALF_LIFE_DAYS = 365
DEFAULT_LOCK_KEY = 84616031
# headroom for the per-type offsets
MAX_LOCK_BASE = INT32_MAX - 47

_NORMALIZED_METRICS = (
    "views_recent",
    "compares_recent",
    "wishlist_recent",
    "views_velocity",
    "compares_velocity",
)


@dataclass(frozen=True)
class HookScoreSettings:
    days: int
    smoothing: float
    freshness_half_life_days: int
    buyer_intent_weights: WeightSet
    trend_velocity_weights: WeightSet
    hook_score_weights: WeightSet

    @classmethod
    def resolve(
        cls,
        days: Any = None,
        smoothing: Any = None,
        freshness_half_life_days: Any = None,
        buyer_intent_weights: Optional[Mapping[str, Any]] = None,
        trend_velocity_weights: Optional[Mapping[str, Any]] = None,
        hook_score_weights: Optional[Mapping[str, Any]] = None,
    ) -> "HookScoreSettings":
        """Explicit options, then HOOK_SCORE_* environment values, then built-in defaults."""
        return cls(
            days=to_positive_int(pick(days, "HOOK_SCORE_DAYS"), DEFAULT_DAYS),
            smoothing=to_non_negative_float(pick(smoothing, "HOOK_SCORE_SMOOTHING"), DEFAULT_SMOOTHING),
            freshness_half_life_days=to_positive_int(
                pick(freshness_half_life_days, "HOOK_SCORE_FRESHNESS_HALF_LIFE_DAYS"),
                DEFAULT_FRESHNESS_HALF_LIFE_DAYS,
            ),
            buyer_intent_weights=normalize_weights(
                buyer_intent_weights if buyer_intent_weights is not None
                else env_json_mapping("HOOK_SCORE_BUYER_INTENT_WEIGHTS"),
                DEFAULT_BUYER_INTENT_WEIGHTS,
            ),
            trend_velocity_weights=normalize_weights(
                trend_velocity_weights if trend_velocity_weights is not None
                else env_json_mapping("HOOK_SCORE_TREND_VELOCITY_WEIGHTS"),
                DEFAULT_TREND_VELOCITY_WEIGHTS,
            ),
            hook_score_weights=normalize_weights(
                hook_score_weights if hook_score_weights is not None
                else env_json_mapping("HOOK_SCORE_WEIGHTS"),
                DEFAULT_HOOK_SCORE_WEIGHTS,
            ),
        )


def hook_lock_key(product_type: str) -> int:
    offset = product_type_config(product_type).lock_offset
    return lock_key("HOOK_SCORE_LOCK_KEY", DEFAULT_LOCK_KEY, offset, max_base=MAX_LOCK_BASE)


def age_days(launch_at: Optional[datetime], now: datetime) -> float:
    if launch_at is None:
        return 0.0
    return max(0.0, (as_utc(now) - as_utc(launch_at)).total_seconds() / 86400.0)


def compute_hook_scores(
    candidates: Sequence[Candidate],
    signals: Dict[int, SignalCounts],
    settings: HookScoreSettings,
    now: datetime,
) -> List[Dict[str, Any]]:
    """
    Pure scoring pass over one batch. Counts and velocities are scaled against the
    maximum inside each product-type cohort; freshness is absolute (launch age only).
    """
    rows: List[Dict[str, Any]] = []
    for cand in candidates:
        c = counts_for(signals, cand.product_id)
        rows.append({
            "product_id": cand.product_id,
            "product_type": cand.product_type,
            "age_days": age_days(cand.launch_at, now),
            "views_recent": c.views_recent,
            "compares_recent": c.compares_recent,
            "wishlist_recent": c.wishlist_recent,
            "views_velocity": velocity_raw(c.views_recent, c.views_previous, settings.smoothing),
            "compares_velocity": velocity_raw(c.compares_recent, c.compares_previous, settings.smoothing),
        })
    normalize_cohorts(rows, "product_type", _NORMALIZED_METRICS)

    scored: List[Dict[str, Any]] = []
    for r in rows:
        buyer_intent = compose(
            {
                "views": r["norm_views_recent"],
                "compares": r["norm_compares_recent"],
                "wishlist": r["norm_wishlist_recent"],
            },
            settings.buyer_intent_weights,
        )
        trend_velocity = compose(
            {"views": r["norm_views_velocity"], "compares": r["norm_compares_velocity"]},
            settings.trend_velocity_weights,
        )
        fresh = freshness(r["age_days"], settings.freshness_half_life_days)
        hook = compose(
            {"buyer_intent": buyer_intent, "trend_velocity": trend_velocity, "freshness": fresh},
            settings.hook_score_weights,
        )
        scored.append({
            "product_id": r["product_id"],
            "buyer_intent": buyer_intent,
            "trend_velocity": trend_velocity,
            "freshness": fresh,
            "hook_score": hook,
        })
    return scored


def recompute_hook_scores_by_type(
    engine: Engine,
    product_type: str,
    *,
    days: Any = None,
    smoothing: Any = None,
    freshness_half_life_days: Any = None,
    buyer_intent_weights: Optional[Mapping[str, Any]] = None,
    trend_velocity_weights: Optional[Mapping[str, Any]] = None,
    hook_score_weights: Optional[Mapping[str, Any]] = None,
    now: Optional[datetime] = None,
) -> RecomputeResult:
    """Recompute and upsert product_dynamic_score for every published product of one type."""
    require_engine(engine, "recompute_hook_scores_by_type")
    config = product_type_config(product_type)
    settings = HookScoreSettings.resolve(
        days=days,
        smoothing=smoothing,
        freshness_half_life_days=freshness_half_life_days,
        buyer_intent_weights=buyer_intent_weights,
        trend_velocity_weights=trend_velocity_weights,
        hook_score_weights=hook_score_weights,
    )
    windows = Windows(now=now or utcnow(), days=settings.days)

    def _compute(session: Session) -> List[Dict[str, Any]]:
        candidates = typed_candidates(session, config)
        signals = aggregate_signals(session, windows, scope=typed_candidate_ids(config))
        logger.debug(f"[hook-score:{product_type}] candidates={len(candidates)} with_signals={len(signals)}")
        return compute_hook_scores(candidates, signals, settings, windows.now)

    return run_locked(
        engine,
        family=f"hook-score:{product_type}",
        lock_key=hook_lock_key(product_type),
        compute=_compute,
        model=ProductDynamicScore,
        product_type=product_type,
        days=settings.days,
    )


def recompute_hook_scores_smartphones(engine: Engine, **opts: Any) -> RecomputeResult:
    return recompute_hook_scores_by_type(engine, "smartphone", **opts)


def recompute_hook_scores_laptops(engine: Engine, **opts: Any) -> RecomputeResult:
    return recompute_hook_scores_by_type(engine, "laptop", **opts)


def recompute_hook_scores_tvs(engine: Engine, **opts: Any) -> RecomputeResult:
    return recompute_hook_scores_by_type(engine, "tv", **opts)


_TYPE_OPTION_KEYS = {"smartphone": ("smartphone",), "laptop": ("laptop",), "tv": ("tv", "tvs")}
_RUN_OPTIONS = (
    "days",
    "smoothing",
    "freshness_half_life_days",
    "buyer_intent_weights",
    "trend_velocity_weights",
    "hook_score_weights",
    "now",
)


def _options_for(product_type: str, opts: Mapping[str, Any]) -> Dict[str, Any]:
    source = opts
    for key in _TYPE_OPTION_KEYS[product_type]:
        block = opts.get(key)
        if isinstance(block, Mapping):
            source = block
            break
    return {k: source[k] for k in _RUN_OPTIONS if source.get(k) is not None}


def recompute_hook_scores(engine: Engine, opts: Optional[Mapping[str, Any]] = None) -> AggregateRecomputeResult:
    """
    Every supported type in sequence. Per-type option blocks live under
    'smartphone' / 'laptop' / 'tv' (or 'tvs'); other keys apply to all types.
    """
    opts = opts or {}
    total = AggregateRecomputeResult()
    for product_type in SUPPORTED_HOOK_TYPES:
        result = recompute_hook_scores_by_type(engine, product_type, **_options_for(product_type, opts))
        total.results[product_type] = result
        total.updated += result.updated
    return total
