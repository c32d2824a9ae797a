# ai summary database repository

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional

from sqlalchemy import select, delete as sa_delete
from sqlalchemy.orm import Session

from aisummary.db.model.product import AISummary
from aisummary.repository.base_repo import require_shop, dialect_insert, storage_guard
from aisummary.utils.clock import now_utc


logger = logging.getLogger(__name__)


@dataclass(slots=True)
class SummaryUpsertDTO:
    original_title: str
    original_description: str
    enhanced_title: str
    enhanced_description: str
    product_title: Optional[str] = None


def _scoped(shop: str):
    return (
        select(AISummary)
        .where(AISummary.shop == require_shop(shop))
        .execution_options(populate_existing=True)
    )


# ---------- Query ----------
def get(db: Session, shop: str, shopify_product_id: str) -> Optional[AISummary]:
    stmt = _scoped(shop).where(AISummary.shopify_product_id == shopify_product_id)
    with storage_guard(db, "summary.get"):
        return db.scalars(stmt).first()


def get_all(db: Session, shop: str) -> List[AISummary]:
    stmt = _scoped(shop).order_by(AISummary.id.asc())
    with storage_guard(db, "summary.get_all"):
        return list(db.scalars(stmt))


# ---------- Mutations ----------
def upsert(db: Session, shop: str, shopify_product_id: str, dto: SummaryUpsertDTO) -> None:
    """
    Insert or replace the summary of one product.
    created_at is written on first insert only; updated_at on every write.
    """
    shop = require_shop(shop)
    if not shopify_product_id:
        raise ValueError("shopify_product_id is required")

    now = now_utc()
    values = {
        "product_title": dto.product_title,
        "original_title": dto.original_title or "",
        "original_description": dto.original_description or "",
        "enhanced_title": dto.enhanced_title,
        "enhanced_description": dto.enhanced_description,
        "updated_at": now,
    }

    stmt = dialect_insert(db, AISummary).values(
        shop=shop, shopify_product_id=shopify_product_id, created_at=now, **values
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=["shop", "shopify_product_id"],
        set_={col: getattr(stmt.excluded, col) for col in values},   # created_at untouched
    )
    with storage_guard(db, "summary.upsert"):
        db.execute(stmt)
        db.commit()


def delete(db: Session, shop: str, shopify_product_id: str) -> bool:
    stmt = sa_delete(AISummary).where(
        AISummary.shop == require_shop(shop),
        AISummary.shopify_product_id == shopify_product_id,
    )
    with storage_guard(db, "summary.delete"):
        res = db.execute(stmt)
        db.commit()
    return bool(res.rowcount)


def delete_all(db: Session, shop: str) -> int:
    stmt = sa_delete(AISummary).where(AISummary.shop == require_shop(shop))
    with storage_guard(db, "summary.delete_all"):
        res = db.execute(stmt)
        db.commit()
    n = int(res.rowcount or 0)
    logger.info("summary.delete_all shop=%s deleted=%s", shop, n)
    return n
