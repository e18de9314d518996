# =============================================
# File: catalog_scoring/services/signals.py
# Purpose: Signal aggregator: windowed view / comparison / wishlist counts per product
# =============================================

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, Optional

from sqlalchemy import String, and_, case, cast, distinct, func, select, union_all
from sqlalchemy.orm import Session
from sqlalchemy.sql import Select

from ..db.models import ProductComparison, ProductView, Wishlist, as_utc


@dataclass(frozen=True)
class Windows:
    """
    The recent window is [now - days, now]; the previous window is the
    equally long span immediately before it.
    """
    now: datetime
    days: int

    def __post_init__(self) -> None:
        object.__setattr__(self, "now", as_utc(self.now))

    @property
    def recent_start(self) -> datetime:
        return self.now - timedelta(days=self.days)

    @property
    def previous_start(self) -> datetime:
        return self.now - timedelta(days=self.days * 2)


@dataclass
class SignalCounts:
    views_recent: int = 0
    views_previous: int = 0
    compares_recent: int = 0
    compares_previous: int = 0
    wishlist_recent: int = 0


def _count_where(cond):
    # COUNT ignores the NULLs produced when the condition is false
    return func.count(case((cond, 1)))


def view_counts(session: Session, windows: Windows, scope: Optional[Select] = None) -> Dict[int, tuple[int, int]]:
    """
    product_id -> (recent, previous) distinct views.
    A view is identified by its visitor_key when present, else by its own row id,
    so anonymous views all count while a known visitor counts once per window.
    """
    identity = func.coalesce(ProductView.visitor_key, cast(ProductView.id, String))
    in_recent = ProductView.viewed_at >= windows.recent_start
    in_previous = and_(
        ProductView.viewed_at >= windows.previous_start,
        ProductView.viewed_at < windows.recent_start,
    )
    stmt = (
        select(
            ProductView.product_id,
            func.count(distinct(case((in_recent, identity)))),
            func.count(distinct(case((in_previous, identity)))),
        )
        .where(ProductView.viewed_at >= windows.previous_start)
        .group_by(ProductView.product_id)
    )
    if scope is not None:
        stmt = stmt.where(ProductView.product_id.in_(scope))
    return {pid: (int(recent or 0), int(prev or 0)) for pid, recent, prev in session.execute(stmt).all()}


def compare_counts(session: Session, windows: Windows, scope: Optional[Select] = None) -> Dict[int, tuple[int, int]]:
    """product_id -> (recent, previous) comparisons; A-vs-B counts for both A and B."""
    both_sides = union_all(
        select(ProductComparison.product_id.label("product_id"), ProductComparison.compared_at.label("compared_at"))
        .where(ProductComparison.compared_at >= windows.previous_start),
        select(ProductComparison.compared_with.label("product_id"), ProductComparison.compared_at.label("compared_at"))
        .where(ProductComparison.compared_at >= windows.previous_start),
    ).subquery("compares_raw")

    in_recent = both_sides.c.compared_at >= windows.recent_start
    in_previous = both_sides.c.compared_at < windows.recent_start
    stmt = (
        select(both_sides.c.product_id, _count_where(in_recent), _count_where(in_previous))
        .group_by(both_sides.c.product_id)
    )
    if scope is not None:
        stmt = stmt.where(both_sides.c.product_id.in_(scope))
    return {pid: (int(recent or 0), int(prev or 0)) for pid, recent, prev in session.execute(stmt).all()}


def wishlist_counts(session: Session, windows: Windows, scope: Optional[Select] = None) -> Dict[int, int]:
    """product_id -> wishlist adds in the recent window (no previous window is kept)."""
    stmt = (
        select(Wishlist.product_id, func.count(Wishlist.id))
        .where(Wishlist.created_at >= windows.recent_start)
        .group_by(Wishlist.product_id)
    )
    if scope is not None:
        stmt = stmt.where(Wishlist.product_id.in_(scope))
    return {pid: int(n or 0) for pid, n in session.execute(stmt).all()}


def aggregate_signals(
    session: Session,
    windows: Windows,
    scope: Optional[Select] = None,
    include_wishlist: bool = True,
) -> Dict[int, SignalCounts]:
    """
    Windowed counts for every product with at least one event in range.
    Products absent from the result have no events; use counts_for() to read them as zeros.
    """
    out: Dict[int, SignalCounts] = {}
    for pid, (recent, prev) in view_counts(session, windows, scope).items():
        c = out.setdefault(pid, SignalCounts())
        c.views_recent, c.views_previous = recent, prev
    for pid, (recent, prev) in compare_counts(session, windows, scope).items():
        c = out.setdefault(pid, SignalCounts())
        c.compares_recent, c.compares_previous = recent, prev
    if include_wishlist:
        for pid, n in wishlist_counts(session, windows, scope).items():
            out.setdefault(pid, SignalCounts()).wishlist_recent = n
    return out


def counts_for(signals: Dict[int, SignalCounts], product_id: int) -> SignalCounts:
    return signals.get(product_id) or SignalCounts()
