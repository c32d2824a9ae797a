# product routes -> storefront summary widget and dashboard product list

from __future__ import annotations
import logging
from typing import Optional
from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from aisummary.core.config import settings
from aisummary.core.errors import StorageError
from aisummary.db.session import get_db
from aisummary.services import product_summary_service
from aisummary.api.v1.deps import normalize_shop_param


logger = logging.getLogger(__name__)

router = APIRouter(tags=["products"])


def _storefront_json(body: dict, status_code: int = 200) -> JSONResponse:
    # widget runs on the merchant's storefront domain
    headers = {"Access-Control-Allow-Origin": "*"} if settings.STOREFRONT_CORS_ALLOW_ALL else {}
    return JSONResponse(body, status_code=status_code, headers=headers)


''' storefront widget: AI summary of one product '''
@router.get("/product-summary")
def product_summary(
    shop: Optional[str] = Query(None),
    id: Optional[str] = Query(None),
    db: Session = Depends(get_db),
):
    shop = normalize_shop_param(shop or "")
    if not id:
        return _storefront_json({"error": "Product ID is required"}, 400)
    if not shop:
        return _storefront_json({"error": "shop is required"}, 400)

    try:
        summary = product_summary_service.get_product_summary(db, shop, id)
    except StorageError:
        logger.exception("product_summary.failed shop=%s id=%s", shop, id)
        return _storefront_json({"error": "Failed to fetch AI summary"}, 500)

    if summary is None:
        return _storefront_json({
            "productSummary": None,
            "enhancedTitle": None,
            "message": "No AI summary found for this product",
        })
    return _storefront_json(summary)


''' dashboard: mirrored products with their summaries '''
@router.get("/products")
def list_products(shop: str = Query(...), db: Session = Depends(get_db)):
    shop = normalize_shop_param(shop)
    items = product_summary_service.list_products_with_summaries(db, shop) if shop else []
    return {"shop": shop, "count": len(items), "items": items}
