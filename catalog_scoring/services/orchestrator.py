# =============================================
# File: catalog_scoring/services/orchestrator.py
# Purpose: Shared recompute run: advisory lock, one transaction, idempotent upsert, result/metrics
# =============================================

from __future__ import annotations
from dataclasses import asdict, dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional, Type

from loguru import logger
from sqlalchemy import select
from sqlalchemy.engine import Engine
from sqlmodel import Session, SQLModel

from ..db.locks import try_advisory_lock
from ..db.models import utcnow
from ..utils import slog
from ..utils.metrics import record_recompute
from ..utils.timing import timer
from .errors import ScoringConfigError


@dataclass
class RecomputeResult:
    ok: bool = True
    skipped: bool = False
    updated: int = 0
    product_type: Optional[str] = None
    days: Optional[int] = None
    reason: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {k: v for k, v in asdict(self).items() if v is not None}


@dataclass
class AggregateRecomputeResult:
    ok: bool = True
    updated: int = 0
    results: Dict[str, RecomputeResult] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ok": self.ok,
            "updated": self.updated,
            "results": {k: v.to_dict() for k, v in self.results.items()},
        }


def require_engine(engine: Any, caller: str) -> Engine:
    if engine is None or not callable(getattr(engine, "connect", None)):
        raise ScoringConfigError(f"{caller}: a database engine with connect() is required")
    return engine


def upsert_scores(session: Session, model: Type[SQLModel], rows: Iterable[Dict[str, Any]]) -> int:
    """
    Insert-or-overwrite score rows keyed on product_id, stamping calculated_at.
    Existing rows are loaded once so merge() resolves them from the identity map.
    """
    rows = list(rows)
    if not rows:
        return 0
    stamp = utcnow()
    ids = [r["product_id"] for r in rows]
    session.execute(select(model).where(model.product_id.in_(ids))).scalars().all()
    for r in rows:
        session.merge(model(**r, calculated_at=stamp))
    session.flush()
    return len(rows)


def run_locked(
    engine: Engine,
    *,
    family: str,
    lock_key: int,
    compute: Callable[[Session], List[Dict[str, Any]]],
    model: Type[SQLModel],
    product_type: Optional[str] = None,
    days: Optional[int] = None,
) -> RecomputeResult:
    """
    One recompute pass for one family(+type):
      1) take the advisory lock without waiting; contention -> skipped result
      2) read signals + compute + upsert inside a single transaction on the locked connection
      3) release the lock and return the connection on every exit path
    Errors from steps 2-3 propagate after cleanup.
    """
    logger.info(f"[{family}] start lock={lock_key}")
    with timer() as elapsed, engine.connect() as conn:
        with try_advisory_lock(conn, lock_key) as locked:
            if not locked:
                logger.info(f"[{family}] skipped: lock {lock_key} unavailable")
                slog.log_recompute("skipped", family, elapsed(), product_type=product_type, lock_key=lock_key)
                record_recompute(family, skipped=True, duration_ms=elapsed())
                return RecomputeResult(
                    skipped=True,
                    reason="lock_unavailable",
                    updated=0,
                    product_type=product_type,
                )

            try:
                with Session(bind=conn) as session:
                    rows = compute(session)
                    updated = upsert_scores(session, model, rows)
                    session.commit()
            except Exception as e:
                logger.error(f"[{family}] failed after {elapsed()} ms: {e}")
                slog.log_recompute("failed", family, elapsed(), product_type=product_type, error=str(e))
                record_recompute(family, failed=True, duration_ms=elapsed())
                raise

    logger.info(f"[{family}] updated={updated} days={days} ms={elapsed()}")
    slog.log_recompute("completed", family, elapsed(), product_type=product_type, updated=updated, days=days)
    record_recompute(family, updated=updated, duration_ms=elapsed())
    return RecomputeResult(skipped=False, updated=updated, product_type=product_type, days=days)
