# =============================================
# File: catalog_scoring/services/trending_score.py
# Purpose: Trending score family: view/compare volume + view velocity, all published products
# =============================================

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Sequence

from loguru import logger
from sqlalchemy.engine import Engine
from sqlmodel import Session

from ..db.models import ProductTrendingScore, utcnow
from ..utils.envcfg import env_json_mapping, lock_key, pick, to_non_negative_float, to_positive_int
from ..utils.normalize import normalize_cohorts, velocity_raw
from ..utils.weights import DEFAULT_TRENDING_WEIGHTS, WeightSet, compose, normalize_weights
from .candidates import Candidate, published_candidates
from .orchestrator import RecomputeResult, require_engine, run_locked
from .signals import SignalCounts, Windows, aggregate_signals, counts_for

DEFAULT_DAYS = 7
DEFAULT_SMOOTHING = 5.0
DEFAULT_LOCK_KEY = 84626044


@dataclass(frozen=True)
class TrendingSettings:
    days: int
    smoothing: float
    weights: WeightSet

    @classmethod
    def resolve(
        cls,
        days: Any = None,
        smoothing: Any = None,
        weights: Optional[Mapping[str, Any]] = None,
    ) -> "TrendingSettings":
        return cls(
            days=to_positive_int(pick(days, "TRENDING_SCORE_DAYS"), DEFAULT_DAYS),
            smoothing=to_non_negative_float(pick(smoothing, "TRENDING_SCORE_SMOOTHING"), DEFAULT_SMOOTHING),
            weights=normalize_weights(
                weights if weights is not None else env_json_mapping("TRENDING_SCORE_WEIGHTS"),
                DEFAULT_TRENDING_WEIGHTS,
            ),
        )


def trending_lock_key() -> int:
    return lock_key("TRENDING_SCORE_LOCK_KEY", DEFAULT_LOCK_KEY)


def compute_trending_scores(
    candidates: Sequence[Candidate],
    signals: Dict[int, SignalCounts],
    settings: TrendingSettings,
) -> List[Dict[str, Any]]:
    """
    Recent views, recent compares and view velocity, each scaled within the
    product-type cohort. The stored velocity stays raw so it can be read back as a ratio.
    """
    rows: List[Dict[str, Any]] = []
    for cand in candidates:
        c = counts_for(signals, cand.product_id)
        rows.append({
            "product_id": cand.product_id,
            "product_type": cand.product_type,
            "views_recent": c.views_recent,
            "views_previous": c.views_previous,
            "compares_recent": c.compares_recent,
            "velocity": velocity_raw(c.views_recent, c.views_previous, settings.smoothing),
        })
    normalize_cohorts(rows, "product_type", ("views_recent", "compares_recent", "velocity"))

    return [
        {
            "product_id": r["product_id"],
            "views_7d": r["views_recent"],
            "compares_7d": r["compares_recent"],
            "views_prev_7d": r["views_previous"],
            "velocity": r["velocity"],
            "trending_score": compose(
                {
                    "views": r["norm_views_recent"],
                    "compares": r["norm_compares_recent"],
                    "velocity": r["norm_velocity"],
                },
                settings.weights,
            ),
        }
        for r in rows
    ]


def recompute_trending_scores(
    engine: Engine,
    *,
    days: Any = None,
    smoothing: Any = None,
    weights: Optional[Mapping[str, Any]] = None,
    now: Optional[datetime] = None,
) -> RecomputeResult:
    """Recompute and upsert product_trending_score for every published product."""
    require_engine(engine, "recompute_trending_scores")
    settings = TrendingSettings.resolve(days=days, smoothing=smoothing, weights=weights)
    windows = Windows(now=now or utcnow(), days=settings.days)

    def _compute(session: Session) -> List[Dict[str, Any]]:
        candidates = published_candidates(session)
        signals = aggregate_signals(session, windows, include_wishlist=False)
        logger.debug(f"[trending-score] candidates={len(candidates)} with_signals={len(signals)}")
        return compute_trending_scores(candidates, signals, settings)

    return run_locked(
        engine,
        family="trending-score",
        lock_key=trending_lock_key(),
        compute=_compute,
        model=ProductTrendingScore,
        days=settings.days,
    )
