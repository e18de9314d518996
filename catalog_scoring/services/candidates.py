# =============================================
# File: catalog_scoring/services/candidates.py
# Purpose: Published candidate products per product type, with launch-timestamp resolution
# =============================================

from __future__ import annotations
import re
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Type

from sqlalchemy import and_, select
from sqlalchemy.orm import Session
from sqlmodel import SQLModel

from ..db.models import TV, Laptop, Product, ProductPublish, Smartphone, as_utc
from ..utils.coerce import to_object
from .errors import ScoringConfigError

_ISO_DATE_RE = re.compile(r"^[0-9]{4}-[0-9]{2}-[0-9]{2}")
_YEAR_RE = re.compile(r"^[0-9]{4}$")

LaunchStrategy = Callable[[Any, Product], Optional[datetime]]


def as_datetime(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        return as_utc(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    return None


def parse_iso_date(value: Any) -> Optional[datetime]:
    """'YYYY-MM-DD...' strings only; anything else is not a launch date."""
    if not isinstance(value, str):
        return None
    raw = value.strip()
    if not raw or not _ISO_DATE_RE.match(raw):
        return None
    try:
        return as_utc(datetime.fromisoformat(raw.replace("Z", "+00:00")))
    except ValueError:
        pass
    try:
        return as_utc(datetime.fromisoformat(raw[:10]))
    except ValueError:
        return None


def parse_launch_year(value: Any) -> Optional[datetime]:
    if value is None or isinstance(value, bool):
        return None
    raw = str(value).strip()
    if not _YEAR_RE.match(raw):
        return None
    year = int(raw)
    if year < 1:
        return None
    return datetime(year, 1, 1, tzinfo=timezone.utc)


def _nested(block: Any, *path: str) -> Any:
    cur: Any = block
    for key in path:
        cur = to_object(cur).get(key)
        if cur is None:
            return None
    return cur


def _product_created(_detail: Any, product: Product) -> Optional[datetime]:
    return as_datetime(product.created_at)


def _detail_created(detail: Any, _product: Product) -> Optional[datetime]:
    return as_datetime(getattr(detail, "created_at", None))


@dataclass(frozen=True)
class ProductTypeConfig:
    name: str
    detail_model: Type[SQLModel]
    lock_offset: int
    launch_chain: Sequence[LaunchStrategy]

    def resolve_launch_at(self, detail: Any, product: Product) -> Optional[datetime]:
        for strategy in self.launch_chain:
            value = strategy(detail, product)
            if value is not None:
                return value
        return None


PRODUCT_TYPE_CONFIG: Dict[str, ProductTypeConfig] = {
    "smartphone": ProductTypeConfig(
        name="smartphone",
        detail_model=Smartphone,
        lock_offset=1,
        launch_chain=(
            lambda s, _p: as_datetime(s.launch_date),
            _detail_created,
            _product_created,
        ),
    ),
    "laptop": ProductTypeConfig(
        name="laptop",
        detail_model=Laptop,
        lock_offset=2,
        launch_chain=(
            lambda lap, _p: parse_iso_date(_nested(lap.meta, "launch_date")),
            lambda lap, _p: parse_iso_date(_nested(lap.spec_sections, "basic_info_json", "launch_date")),
            _detail_created,
            _product_created,
        ),
    ),
    "tv": ProductTypeConfig(
        name="tv",
        detail_model=TV,
        lock_offset=3,
        launch_chain=(
            lambda t, _p: parse_launch_year(_nested(t.product_details_json, "launch_year")),
            lambda t, _p: parse_launch_year(_nested(t.basic_info_json, "launch_year")),
            _detail_created,
            _product_created,
        ),
    ),
}

SUPPORTED_HOOK_TYPES: Tuple[str, ...] = tuple(PRODUCT_TYPE_CONFIG)


def product_type_config(product_type: str) -> ProductTypeConfig:
    config = PRODUCT_TYPE_CONFIG.get(product_type)
    if config is None:
        raise ScoringConfigError(
            f'unsupported product type "{product_type}" (expected one of: {", ".join(SUPPORTED_HOOK_TYPES)})'
        )
    return config


@dataclass
class Candidate:
    product_id: int
    product_type: str
    launch_at: Optional[datetime] = None


def _published_join():
    return and_(ProductPublish.product_id == Product.id, ProductPublish.is_published.is_(True))


def typed_candidates(session: Session, config: ProductTypeConfig) -> List[Candidate]:
    """Published products of one type that have a detail row, with their launch timestamp."""
    detail = config.detail_model
    stmt = (
        select(Product, detail)
        .join(ProductPublish, _published_join())
        .join(detail, detail.product_id == Product.id)
        .where(Product.product_type == config.name)
        .order_by(Product.id, detail.id)
    )
    out: Dict[int, Candidate] = {}
    for product, row in session.execute(stmt).all():
        if product.id in out:
            continue
        out[product.id] = Candidate(
            product_id=product.id,
            product_type=config.name,
            launch_at=config.resolve_launch_at(row, product),
        )
    return list(out.values())


def published_candidates(session: Session) -> List[Candidate]:
    """Every published product, any type; cohort is the product type."""
    stmt = (
        select(Product.id, Product.product_type)
        .join(ProductPublish, _published_join())
        .order_by(Product.id)
    )
    return [Candidate(product_id=pid, product_type=ptype) for pid, ptype in session.execute(stmt).all()]


def typed_candidate_ids(config: ProductTypeConfig):
    """Same filter as typed_candidates, as a product-id subquery for the signal queries."""
    detail = config.detail_model
    return (
        select(Product.id)
        .join(ProductPublish, _published_join())
        .join(detail, detail.product_id == Product.id)
        .where(Product.product_type == config.name)
    )
