# =============================================
# File: catalog_scoring/routers/metrics.py
# Purpose: Expose in-process counters as JSON
# =============================================
from __future__ import annotations
from typing import Optional

from fastapi import APIRouter, Query

from catalog_scoring.utils.metrics import snapshot

router = APIRouter(tags=["metrics"])


@router.get("/metrics")
def get_metrics(family: Optional[str] = Query(None, max_length=64)):
    """Counters, recompute runs per family, endpoint latency. `family` narrows the recompute section."""
    snap = snapshot()
    if family:
        snap["recompute"] = {k: v for k, v in snap["recompute"].items() if k.startswith(family)}
    return snap
