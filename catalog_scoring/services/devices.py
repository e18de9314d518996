# =============================================
# File: catalog_scoring/services/devices.py
# Purpose: Device fetch for compare requests: product + type-specific spec blocks + variants
# =============================================

from __future__ import annotations
from typing import Any, Dict, List, Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..db.models import TV, Laptop, Product, ProductVariant, Smartphone

# Spec columns copied onto the device record, per detail table
_SPEC_COLUMNS = {
    Smartphone: ("model", "processor", "performance", "display", "camera", "battery"),
    Laptop: ("cpu", "display", "battery"),
    TV: ("display",),
}
_DETAIL_BY_TYPE = {"smartphone": Smartphone, "laptop": Laptop, "tv": TV}


def _variant_record(v: ProductVariant) -> Dict[str, Any]:
    rec: Dict[str, Any] = dict(v.attributes) if isinstance(v.attributes, dict) else {}
    rec.update({"id": v.id, "base_price": v.base_price})
    return rec


def load_devices(session: Session, product_ids: Sequence[int]) -> List[Dict[str, Any]]:
    """
    Device records for the compare ranking engine, in the order of `product_ids`.
    Unknown ids are skipped. Products without a detail row still come back with
    name and variants, so they rank on neutral defaults.
    """
    ids = list(dict.fromkeys(int(i) for i in product_ids))
    if not ids:
        return []

    products = {p.id: p for p in session.execute(select(Product).where(Product.id.in_(ids))).scalars()}
    devices: Dict[int, Dict[str, Any]] = {
        pid: {"product_id": pid, "name": p.name, "product_type": p.product_type, "variants": []}
        for pid, p in products.items()
    }

    by_type: Dict[Any, List[int]] = {}
    for pid, p in products.items():
        model = _DETAIL_BY_TYPE.get(p.product_type)
        if model is not None:
            by_type.setdefault(model, []).append(pid)

    with_detail = set()
    for model, pids in by_type.items():
        stmt = select(model).where(model.product_id.in_(pids)).order_by(model.id)
        for row in session.execute(stmt).scalars():
            if row.product_id in with_detail:
                continue
            with_detail.add(row.product_id)
            dev = devices[row.product_id]
            for col in _SPEC_COLUMNS[model]:
                value = getattr(row, col, None)
                if value is not None:
                    dev[col] = value

    variants = select(ProductVariant).where(ProductVariant.product_id.in_(list(devices))).order_by(ProductVariant.id)
    for v in session.execute(variants).scalars():
        devices[v.product_id]["variants"].append(_variant_record(v))

    return [devices[pid] for pid in ids if pid in devices]
