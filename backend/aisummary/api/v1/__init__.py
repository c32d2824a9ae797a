from fastapi import APIRouter

from .routes_health import router as health_router
from .webhooks_shopify import router as webhooks_router
from .installation import router as installation_router
from .product import router as product_router


api_v1 = APIRouter()
api_v1.include_router(health_router)          # /health
api_v1.include_router(webhooks_router)        # /webhooks/shopify (HMAC verified)
api_v1.include_router(installation_router)    # /installation-status, /sync-products, /sync-logs
api_v1.include_router(product_router)         # /product-summary, /products
