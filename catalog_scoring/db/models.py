# =============================================
# File: catalog_scoring/db/models.py
# Purpose: SQLModel table definitions. Catalog/event tables are read-only inputs written
#          by the CRUD layer; the two score tables are written only by the recompute jobs.
# =============================================

from datetime import date, datetime, timezone
from typing import Any, Dict, Optional

from sqlalchemy import JSON, Column, DateTime
from sqlmodel import Field, SQLModel


def utcnow() -> datetime:
    """Timezone-aware UTC timestamp, the convention for every datetime column here."""
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Aware UTC. Naive values are taken as UTC (SQLite hands them back without tzinfo)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _timestamp_field(index: bool = False, nullable: bool = False) -> Any:
    return Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), index=index, nullable=nullable),
    )


def _json_field() -> Any:
    return Field(default=None, sa_column=Column(JSON, nullable=True))


# ---------- Catalog (collaborator-owned) ----------

class Product(SQLModel, table=True):
    __tablename__ = "products"
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    product_type: str = Field(index=True)
    created_at: datetime = _timestamp_field()


class ProductPublish(SQLModel, table=True):
    __tablename__ = "product_publish"
    product_id: int = Field(foreign_key="products.id", primary_key=True)
    is_published: bool = False


class Smartphone(SQLModel, table=True):
    __tablename__ = "smartphones"
    id: Optional[int] = Field(default=None, primary_key=True)
    product_id: int = Field(foreign_key="products.id", index=True)
    model: Optional[str] = None
    processor: Optional[str] = None
    launch_date: Optional[date] = None
    created_at: Optional[datetime] = _timestamp_field(nullable=True)
    performance: Optional[Dict[str, Any]] = _json_field()
    display: Optional[Dict[str, Any]] = _json_field()
    camera: Optional[Dict[str, Any]] = _json_field()
    battery: Optional[Dict[str, Any]] = _json_field()


class Laptop(SQLModel, table=True):
    __tablename__ = "laptop"
    id: Optional[int] = Field(default=None, primary_key=True)
    product_id: int = Field(foreign_key="products.id", index=True)
    created_at: Optional[datetime] = _timestamp_field(nullable=True)
    meta: Optional[Dict[str, Any]] = _json_field()
    spec_sections: Optional[Dict[str, Any]] = _json_field()
    cpu: Optional[Dict[str, Any]] = _json_field()
    display: Optional[Dict[str, Any]] = _json_field()
    battery: Optional[Dict[str, Any]] = _json_field()


class TV(SQLModel, table=True):
    __tablename__ = "tvs"
    id: Optional[int] = Field(default=None, primary_key=True)
    product_id: int = Field(foreign_key="products.id", index=True)
    created_at: Optional[datetime] = _timestamp_field(nullable=True)
    product_details_json: Optional[Dict[str, Any]] = _json_field()
    basic_info_json: Optional[Dict[str, Any]] = _json_field()
    display: Optional[Dict[str, Any]] = _json_field()


class ProductVariant(SQLModel, table=True):
    __tablename__ = "product_variants"
    id: Optional[int] = Field(default=None, primary_key=True)
    product_id: int = Field(foreign_key="products.id", index=True)
    base_price: Optional[float] = None
    attributes: Optional[Dict[str, Any]] = _json_field()


# ---------- Event logs (collaborator-owned) ----------

class ProductView(SQLModel, table=True):
    __tablename__ = "product_views"
    id: Optional[int] = Field(default=None, primary_key=True)
    product_id: int = Field(foreign_key="products.id", index=True)
    viewed_at: datetime = _timestamp_field(index=True)
    visitor_key: Optional[str] = None


class ProductComparison(SQLModel, table=True):
    __tablename__ = "product_comparisons"
    id: Optional[int] = Field(default=None, primary_key=True)
    product_id: int = Field(foreign_key="products.id", index=True)
    compared_with: int = Field(foreign_key="products.id", index=True)
    compared_at: datetime = _timestamp_field(index=True)


class Wishlist(SQLModel, table=True):
    __tablename__ = "wishlist"
    id: Optional[int] = Field(default=None, primary_key=True)
    product_id: int = Field(foreign_key="products.id", index=True)
    customer_id: Optional[int] = None
    created_at: datetime = _timestamp_field(index=True)


# ---------- Computed scores (owned by the recompute jobs) ----------

class ProductDynamicScore(SQLModel, table=True):
    __tablename__ = "product_dynamic_score"
    product_id: int = Field(foreign_key="products.id", primary_key=True)
    buyer_intent: float = 0.0
    trend_velocity: float = 0.0
    freshness: float = 0.0
    hook_score: float = Field(default=0.0, index=True)
    calculated_at: datetime = _timestamp_field()


class ProductTrendingScore(SQLModel, table=True):
    __tablename__ = "product_trending_score"
    product_id: int = Field(foreign_key="products.id", primary_key=True)
    views_7d: int = 0
    compares_7d: int = 0
    views_prev_7d: int = 0
    velocity: float = 0.0
    trending_score: float = Field(default=0.0, index=True)
    calculated_at: datetime = _timestamp_field()
