"""
Read side for the storefront widget and the dashboard, plus the maintenance
"regenerate everything" operation.
"""

from __future__ import annotations

import logging, time
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy.orm import Session

from aisummary.core.config import settings
from aisummary.core.errors import GenerationError
from aisummary.integrations.shopify.payload_utils import PRODUCT_GID, to_gid
from aisummary.repository import product_repo, summary_repo
from aisummary.repository.summary_repo import SummaryUpsertDTO
from aisummary.services.summary_generator import SummaryGenerator
from aisummary.utils.serialization import to_jsonable


logger = logging.getLogger(__name__)


def get_product_summary(db: Session, shop: str, product_id: str) -> Optional[Dict[str, Any]]:
    """
    product_id: numeric storefront id or a Product gid.
    """
    gid = to_gid(PRODUCT_GID, (product_id or "").strip())
    if not gid:
        raise ValueError("product id is required")

    summary = summary_repo.get(db, shop, gid)
    if summary is None:
        return None
    return {
        "productSummary": summary.enhanced_description,
        "enhancedTitle": summary.enhanced_title,
        "originalTitle": summary.original_title,
        "productId": summary.shopify_product_id,
    }


def list_products_with_summaries(db: Session, shop: str) -> List[Dict[str, Any]]:
    summaries = {s.shopify_product_id: s for s in summary_repo.get_all(db, shop)}
    out: List[Dict[str, Any]] = []
    for p in product_repo.get_all(db, shop):
        s = summaries.get(p.shopify_product_id)
        out.append(to_jsonable({
            "productId": p.shopify_product_id,
            "title": p.title,
            "handle": p.handle,
            "status": p.status,
            "vendor": p.vendor,
            "featuredImage": p.featured_image,
            "onlineStoreUrl": p.online_store_url,
            "syncedAt": p.synced_at,
            "aiSummary": None if s is None else {
                "enhancedTitle": s.enhanced_title,
                "enhancedDescription": s.enhanced_description,
                "updatedAt": s.updated_at,
            },
        }))
    return out


'''
  Maintenance: drop every summary of the shop and generate them again, one call at a
  time with GENERATION_DELAY_MS between calls. Per-product failures are reported, not raised.
'''
def regenerate_all_summaries(
    db: Session,
    shop: str,
    generator: Optional[SummaryGenerator] = None,
    *,
    sleep: Callable[[float], None] = time.sleep,
) -> Dict[str, Any]:
    generator = generator or SummaryGenerator()
    delay_s = settings.GENERATION_DELAY_MS / 1000.0

    deleted = summary_repo.delete_all(db, shop)
    products = product_repo.get_all(db, shop)
    generated = 0
    errors: List[Dict[str, Any]] = []

    for i, p in enumerate(products, start=1):
        try:
            result = generator.generate(p.title, p.description)
            summary_repo.upsert(db, shop, p.shopify_product_id, SummaryUpsertDTO(
                product_title=p.title,
                original_title=result.original_title,
                original_description=result.original_description,
                enhanced_title=result.enhanced_title,
                enhanced_description=result.enhanced_description,
            ))
            generated += 1
        except GenerationError as e:
            errors.append({"product_id": p.shopify_product_id, "product_title": p.title, "error": str(e)})
            logger.warning("regenerate.failed shop=%s product_id=%s err=%s", shop, p.shopify_product_id, e)
        if delay_s and i < len(products):
            sleep(delay_s)

    logger.info("regenerate.done shop=%s products=%s generated=%s failed=%s deleted=%s",
                shop, len(products), generated, len(errors), deleted)
    return {"deleted": deleted, "products": len(products), "generated": generated, "errors": errors}
