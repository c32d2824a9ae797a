# product database repository

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import func, select, delete as sa_delete
from sqlalchemy.orm import Session

from aisummary.db.model.product import Product
from aisummary.repository.base_repo import require_shop, dialect_insert, storage_guard
from aisummary.utils.clock import now_utc


logger = logging.getLogger(__name__)


'''
  Columns written by an upsert. The whole document is replaced (last writer wins),
  so a field missing from the input is reset to its default rather than kept.
'''
PRODUCT_FIELDS: Dict[str, Any] = {
    "title": "",
    "description": "",
    "description_html": None,
    "handle": None,
    "status": None,
    "vendor": None,
    "product_type": None,
    "online_store_url": None,
    "tags": list,
    "options": list,
    "variants": list,
    "images": list,
    "featured_image": None,
    "seo": None,
    "price_range": None,
    "total_inventory": None,
    "shopify_created_at": None,
    "shopify_updated_at": None,
    "shopify_published_at": None,
    "synced_at": None,
}

_CONFLICT_KEYS = ["shop", "shopify_product_id"]


def _build_row(shop: str, product: Dict[str, Any]) -> Dict[str, Any]:
    product_id = str(product.get("shopify_product_id") or "").strip()
    if not product_id:
        raise ValueError("product is missing shopify_product_id")

    row: Dict[str, Any] = {"shop": shop, "shopify_product_id": product_id}
    for field, default in PRODUCT_FIELDS.items():
        value = product.get(field)
        if value is None:
            value = default() if callable(default) else default
        row[field] = value

    # an explicit synced_at keeps repeated upserts of the same input byte-identical
    if row["synced_at"] is None:
        row["synced_at"] = now_utc()
    if row["title"] is None:
        row["title"] = ""
    if row["description"] is None:
        row["description"] = ""
    return row


def _scoped(shop: str):
    # populate_existing: upserts are Core statements, never serve a stale identity-map copy
    return (
        select(Product)
        .where(Product.shop == require_shop(shop))
        .execution_options(populate_existing=True)
    )


# ---------- Mutations ----------
def upsert(db: Session, shop: str, product: Dict[str, Any]) -> None:
    """Insert or fully replace the product keyed by (shop, shopify_product_id)."""
    row = _build_row(require_shop(shop), product)

    stmt = dialect_insert(db, Product).values(row)
    stmt = stmt.on_conflict_do_update(
        index_elements=_CONFLICT_KEYS,
        set_={col: getattr(stmt.excluded, col) for col in PRODUCT_FIELDS},
    )
    with storage_guard(db, "product.upsert"):
        db.execute(stmt)
        db.commit()


def delete(db: Session, shop: str, shopify_product_id: str) -> bool:
    """Idempotent; returns False when nothing matched."""
    stmt = sa_delete(Product).where(
        Product.shop == require_shop(shop),
        Product.shopify_product_id == shopify_product_id,
    )
    with storage_guard(db, "product.delete"):
        res = db.execute(stmt)
        db.commit()
    return bool(res.rowcount)


def delete_all(db: Session, shop: str) -> int:
    stmt = sa_delete(Product).where(Product.shop == require_shop(shop))
    with storage_guard(db, "product.delete_all"):
        res = db.execute(stmt)
        db.commit()
    return int(res.rowcount or 0)


# ---------- Query ----------
def get_all(db: Session, shop: str) -> List[Product]:
    stmt = _scoped(shop).order_by(Product.id.asc())
    with storage_guard(db, "product.get_all"):
        return list(db.scalars(stmt))


def get_by_id(db: Session, shop: str, shopify_product_id: str) -> Optional[Product]:
    stmt = _scoped(shop).where(Product.shopify_product_id == shopify_product_id)
    with storage_guard(db, "product.get_by_id"):
        return db.scalars(stmt).first()


def count(db: Session, shop: str) -> int:
    stmt = select(func.count()).select_from(Product).where(Product.shop == require_shop(shop))
    with storage_guard(db, "product.count"):
        return int(db.scalar(stmt) or 0)
