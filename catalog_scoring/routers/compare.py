# =============================================
# File: catalog_scoring/routers/compare.py
# Purpose: POST /compare/rank: rank 2-4 devices (by product id or inline spec records)
# =============================================
from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.engine import Engine
from sqlmodel import Session

from catalog_scoring.db.repo import get_engine
from catalog_scoring.services.compare_profiles import resolve_compare_config
from catalog_scoring.services.compare_ranking import build_compare_ranking, weights_to_percent
from catalog_scoring.services.devices import load_devices
from catalog_scoring.utils.metrics import record_compare, record_rate_limit_hit
from catalog_scoring.utils.ratelimit import RateLimitExceeded, check_rate_limit

router = APIRouter(tags=["compare"])

MIN_COMPARE_IDS = 2
MAX_COMPARE_DEVICES = 4


# --------- Schemas ---------

class CompareRequest(BaseModel):
    """
    Either `product_ids` (devices are loaded from the catalog) or `devices`
    (inline spec records), never both.
    - variant_selection: product id -> {variant_id | variant_index}
    - config: custom {weights, chipset_rules}; wins over `profile`
    - profile: name of a configured scoring profile
    """
    product_ids: Optional[List[int]] = None
    devices: Optional[List[Dict[str, Any]]] = None
    variant_selection: Dict[str, Any] = Field(default_factory=dict)
    config: Optional[Dict[str, Any]] = None
    profile: Optional[str] = Field(None, max_length=64)


class Breakdown(BaseModel):
    performance: float
    display: float
    camera: float
    battery: float


class RankedDevice(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    product_id: str = Field(alias="productId")
    device_name: str = Field(alias="deviceName")
    price: Optional[float] = None
    breakdown: Breakdown
    value_score: float = Field(alias="valueScore")
    overall_score: float = Field(alias="overallScore")
    rank: int


class CompareResponse(BaseModel):
    ranking: List[RankedDevice]
    weights: Dict[str, float]


# --------- Helpers ---------

def _validate_ids(ids: List[int]) -> List[int]:
    unique = list(dict.fromkeys(ids))
    if len(unique) != len(ids):
        raise HTTPException(status_code=422, detail="product_ids must be unique")
    if any(i <= 0 for i in unique):
        raise HTTPException(status_code=422, detail="product_ids must be positive integers")
    if not MIN_COMPARE_IDS <= len(unique) <= MAX_COMPARE_DEVICES:
        raise HTTPException(
            status_code=422,
            detail=f"product_ids must hold {MIN_COMPARE_IDS}-{MAX_COMPARE_DEVICES} ids",
        )
    return unique


def _resolve_devices(req: CompareRequest, engine: Engine) -> List[Dict[str, Any]]:
    if (req.product_ids is None) == (req.devices is None):
        raise HTTPException(status_code=422, detail="Provide exactly one of product_ids or devices")
    if req.devices is not None:
        if len(req.devices) > MAX_COMPARE_DEVICES:
            raise HTTPException(status_code=422, detail=f"At most {MAX_COMPARE_DEVICES} devices")
        return req.devices
    ids = _validate_ids(req.product_ids)
    with Session(engine) as session:
        return load_devices(session, ids)


# --------- Route ---------

@router.post("/compare/rank", response_model=CompareResponse, response_model_by_alias=True)
def post_compare_rank(req: CompareRequest, request: Request, engine: Engine = Depends(get_engine)) -> CompareResponse:
    """
    Heuristic spec scores + set-relative price value, ranked.
    Incomplete specs never fail the request; they score on neutral defaults.
    Per-IP rate limited (HTTP 429 on overflow).
    """
    client_ip = request.client.host if request.client else "anon"
    try:
        check_rate_limit(f"compare:{client_ip}")
    except RateLimitExceeded as e:
        record_rate_limit_hit()
        request.state.log_context = {"rate_limited": True}
        raise HTTPException(
            status_code=429, detail="Too Many Requests", headers={"Retry-After": str(e.retry_after)}
        )

    devices = _resolve_devices(req, engine)
    config = resolve_compare_config(req.profile, req.config)
    ranking = build_compare_ranking(devices, req.variant_selection, config)
    record_compare(len(ranking))

    request.state.log_context = {
        "device_count": len(ranking),
        "profile": req.profile,
        "custom_config": bool(req.config),
    }
    return CompareResponse(
        ranking=[RankedDevice.model_validate(row) for row in ranking],
        weights=weights_to_percent(config.weights),
    )
