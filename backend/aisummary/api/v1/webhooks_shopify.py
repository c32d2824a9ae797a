# aisummary/api/v1/webhooks_shopify.py

from __future__ import annotations
import json, logging
from fastapi import APIRouter, Depends, Request, Header, HTTPException
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from aisummary.core.config import settings
from aisummary.core.errors import StorageError, ValidationError
from aisummary.db.session import get_db
from aisummary.ingress.events import parse_event, verify_webhook_hmac
from aisummary.ingress.handlers import GeneratorFactory, dispatch
from aisummary.services.installation_service import Enqueue
from aisummary.api.v1.deps import get_enqueue, get_generator_factory


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks/shopify", tags=["webhooks.shopify"])


def _secret() -> str | None:
    s = settings.SHOPIFY_API_SECRET
    return s.get_secret_value() if s is not None else None


'''
Webhook: every consumed topic posts here
   headers: X-Shopify-Topic / X-Shopify-Hmac-Sha256 / X-Shopify-Shop-Domain
   1) HMAC over the raw body first, then topic, so no topic bypasses verification
   2) parse -> typed event -> dispatch (DB / generation work runs in the threadpool)
   3) 401 bad HMAC, 400 bad topic/payload, 500 storage failure (Shopify retries),
      generation failures never fail the response
'''
@router.post("")
async def shopify_webhook(
    request: Request,
    x_shopify_hmac_sha256: str = Header(default=""),
    x_shopify_topic: str = Header(default=""),
    x_shopify_shop_domain: str = Header(default=""),
    db: Session = Depends(get_db),
    generator_factory: GeneratorFactory = Depends(get_generator_factory),
    enqueue: Enqueue = Depends(get_enqueue),
):
    raw = await request.body()
    try:
        verify_webhook_hmac(raw, x_shopify_hmac_sha256, _secret())

        try:
            payload = json.loads(raw.decode("utf-8")) if raw else {}
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise ValidationError("Invalid JSON payload") from e

        event = parse_event(x_shopify_shop_domain, x_shopify_topic, payload)
    except ValidationError as e:
        logger.warning("webhook.rejected topic=%s shop=%s status=%s reason=%s",
                       x_shopify_topic, x_shopify_shop_domain, e.status_code, e)
        raise HTTPException(status_code=e.status_code, detail=str(e))

    logger.info("webhook.received topic=%s shop=%s", x_shopify_topic, event.shop)
    try:
        result = await run_in_threadpool(
            dispatch, db, event, generator_factory=generator_factory, enqueue=enqueue
        )
    except StorageError as e:
        logger.error("webhook.storage_error topic=%s shop=%s err=%s", x_shopify_topic, event.shop, e)
        raise HTTPException(status_code=500, detail="Storage error")

    return {"ok": True, "topic": x_shopify_topic.strip().lower(), **result}
