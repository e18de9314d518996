# =============================================
# File: catalog_scoring/routers/scores.py
# Purpose: On-demand recompute triggers and read-back of persisted hook/trending scores
# =============================================
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.engine import Engine
from sqlmodel import Session

from catalog_scoring.db.models import Product, ProductDynamicScore, ProductTrendingScore
from catalog_scoring.db.repo import get_engine
from catalog_scoring.services.candidates import product_type_config
from catalog_scoring.services.errors import ScoringConfigError
from catalog_scoring.services.hook_score import recompute_hook_scores, recompute_hook_scores_by_type
from catalog_scoring.services.trending_score import recompute_trending_scores

router = APIRouter(prefix="/scores", tags=["scores"])

SCORE_FAMILIES = ("hook", "trending")


# --------- Schemas ---------

class HookScoreRow(BaseModel):
    product_id: int
    product_type: str
    buyer_intent: float
    trend_velocity: float
    freshness: float
    hook_score: float
    calculated_at: datetime


class TrendingScoreRow(BaseModel):
    product_id: int
    product_type: str
    views_7d: int
    compares_7d: int
    views_prev_7d: int
    velocity: float
    trending_score: float
    calculated_at: datetime


# --------- Routes ---------

@router.post("/recompute/{family}")
def post_recompute(
    family: str,
    request: Request,
    product_type: Optional[str] = Query(None, max_length=32),
    days: Optional[int] = Query(None, ge=1, le=365),
    engine: Engine = Depends(get_engine),
) -> Dict[str, Any]:
    """
    Run one recompute now. `hook` takes an optional product_type (all types when omitted);
    `trending` always covers every published product. A run that finds its lock
    taken returns skipped=true with HTTP 200.
    """
    request.state.log_context = {"family": family, "product_type": product_type}
    try:
        if family == "hook":
            if product_type:
                return recompute_hook_scores_by_type(engine, product_type, days=days).to_dict()
            return recompute_hook_scores(engine, {"days": days}).to_dict()
        if family == "trending":
            return recompute_trending_scores(engine, days=days).to_dict()
        raise ScoringConfigError(f'unknown score family "{family}" (expected one of: {", ".join(SCORE_FAMILIES)})')
    except ScoringConfigError as e:
        raise HTTPException(status_code=400, detail=str(e))


def _check_type(product_type: Optional[str]) -> None:
    if product_type is None:
        return
    try:
        product_type_config(product_type)
    except ScoringConfigError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/hook", response_model=List[HookScoreRow])
def get_hook_scores(
    product_type: Optional[str] = Query(None, max_length=32),
    limit: int = Query(20, ge=1, le=200),
    engine: Engine = Depends(get_engine),
):
    """Persisted hook scores, best first."""
    _check_type(product_type)
    stmt = (
        select(ProductDynamicScore, Product.product_type)
        .join(Product, Product.id == ProductDynamicScore.product_id)
    )
    if product_type:
        stmt = stmt.where(Product.product_type == product_type)
    stmt = stmt.order_by(ProductDynamicScore.hook_score.desc(), ProductDynamicScore.product_id).limit(limit)
    with Session(engine) as session:
        return [
            HookScoreRow(product_type=ptype, **score.model_dump())
            for score, ptype in session.execute(stmt).all()
        ]


@router.get("/trending", response_model=List[TrendingScoreRow])
def get_trending_scores(
    product_type: Optional[str] = Query(None, max_length=32),
    limit: int = Query(20, ge=1, le=200),
    engine: Engine = Depends(get_engine),
):
    """Persisted trending scores, best first. Any product type is accepted here."""
    stmt = (
        select(ProductTrendingScore, Product.product_type)
        .join(Product, Product.id == ProductTrendingScore.product_id)
    )
    if product_type:
        stmt = stmt.where(Product.product_type == product_type)
    stmt = stmt.order_by(ProductTrendingScore.trending_score.desc(), ProductTrendingScore.product_id).limit(limit)
    with Session(engine) as session:
        return [
            TrendingScoreRow(product_type=ptype, **score.model_dump())
            for score, ptype in session.execute(stmt).all()
        ]
