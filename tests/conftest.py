# =============================================
# File: tests/conftest.py
# Purpose: Shared fixtures: file-backed SQLite catalog and an event/product seeder
# =============================================
import sys, os
sys.path.append(os.path.dirname(os.path.dirname(__file__)))

from datetime import datetime, timedelta, timezone

import pytest
from sqlmodel import Session, select

from catalog_scoring.db.models import (
    TV,
    Laptop,
    Product,
    ProductComparison,
    ProductDynamicScore,
    ProductPublish,
    ProductTrendingScore,
    ProductVariant,
    ProductView,
    Smartphone,
    Wishlist,
)
from catalog_scoring.db.repo import init_db, make_engine

# Midnight, so a launch_date of the same day has age 0
NOW = datetime(2025, 6, 1, tzinfo=timezone.utc)

_DETAIL = {"smartphone": Smartphone, "laptop": Laptop, "tv": TV}

_SCORE_ENV = (
    "HOOK_SCORE_DAYS", "HOOK_SCORE_SMOOTHING", "HOOK_SCORE_FRESHNESS_HALF_LIFE_DAYS",
    "HOOK_SCORE_LOCK_KEY", "HOOK_SCORE_BUYER_INTENT_WEIGHTS", "HOOK_SCORE_TREND_VELOCITY_WEIGHTS",
    "HOOK_SCORE_WEIGHTS", "TRENDING_SCORE_DAYS", "TRENDING_SCORE_SMOOTHING",
    "TRENDING_SCORE_LOCK_KEY", "TRENDING_SCORE_WEIGHTS", "COMPARE_PROFILES_PATH",
)


class Seeder:
    def __init__(self, engine):
        self.engine = engine

    def product(self, name, product_type="smartphone", published=True, detail=None, prices=()):
        """detail=None adds an empty detail row; detail=False adds none."""
        with Session(self.engine) as s:
            p = Product(name=name, product_type=product_type, created_at=NOW - timedelta(days=30))
            s.add(p)
            s.flush()
            s.add(ProductPublish(product_id=p.id, is_published=published))
            model = _DETAIL.get(product_type)
            if model is not None and detail is not False:
                s.add(model(product_id=p.id, **(detail or {})))
            for price in prices:
                s.add(ProductVariant(product_id=p.id, base_price=price))
            s.commit()
            return p.id

    def views(self, product_id, count, at, visitor_key=None):
        with Session(self.engine) as s:
            s.add_all([ProductView(product_id=product_id, viewed_at=at, visitor_key=visitor_key) for _ in range(count)])
            s.commit()

    def compares(self, product_id, compared_with, count, at):
        with Session(self.engine) as s:
            s.add_all([
                ProductComparison(product_id=product_id, compared_with=compared_with, compared_at=at)
                for _ in range(count)
            ])
            s.commit()

    def wishlist(self, product_id, count, at):
        with Session(self.engine) as s:
            s.add_all([Wishlist(product_id=product_id, customer_id=i, created_at=at) for i in range(count)])
            s.commit()

    def hook_rows(self):
        with Session(self.engine) as s:
            return {r.product_id: r for r in s.exec(select(ProductDynamicScore)).all()}

    def trending_rows(self):
        with Session(self.engine) as s:
            return {r.product_id: r for r in s.exec(select(ProductTrendingScore)).all()}


@pytest.fixture(autouse=True)
def _clean_score_env(monkeypatch):
    for name in _SCORE_ENV:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def engine(tmp_path):
    eng = make_engine(f"sqlite:///{tmp_path / 'catalog.db'}")
    init_db(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def seed(engine):
    return Seeder(engine)
