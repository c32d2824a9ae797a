"""
Webhook ingress: authenticate, then turn (shop, topic, payload) into one typed event.
Nothing here touches storage; handlers.dispatch() does.
"""

from __future__ import annotations

import base64, hashlib, hmac, re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from aisummary.core.errors import ValidationError
from aisummary.integrations.shopify.payload_utils import (
    PRODUCT_GID,
    normalize_webhook_product,
    to_gid,
)


_SHOP_RE = re.compile(r"^[a-z0-9][a-z0-9\-]*\.myshopify\.com$")


# =============== HMAC (X-Shopify-Hmac-Sha256) ===============
def _compute_hmac_base64(secret: str, raw_body: bytes) -> str:
    digest = hmac.new(secret.encode("utf-8"), raw_body, hashlib.sha256).digest()
    return base64.b64encode(digest).decode()


def verify_webhook_hmac(raw_body: bytes, provided_hmac_b64: Optional[str], secret: Optional[str]) -> None:
    """Raises ValidationError(401) unless the header is the base64 HMAC-SHA256 of the raw body."""
    if not secret:
        raise ValidationError("Webhook secret is not configured", status_code=401)
    if not provided_hmac_b64:
        raise ValidationError("Missing HMAC", status_code=401)

    expected = _compute_hmac_base64(secret, raw_body)
    if not hmac.compare_digest(provided_hmac_b64.strip(), expected):
        raise ValidationError("Invalid HMAC", status_code=401)


# =============== events ===============
@dataclass(frozen=True)
class AppInstalled:
    shop: str
    access_token: Optional[str] = None


@dataclass(frozen=True)
class AppUninstalled:
    shop: str


@dataclass(frozen=True)
class ScopesUpdated:
    shop: str
    previous: List[str] = field(default_factory=list)
    current: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class ProductUpserted:
    shop: str
    topic: str                   # products/create | products/update
    product: Dict[str, Any]      # normalized product document


@dataclass(frozen=True)
class ProductDeleted:
    shop: str
    shopify_product_id: str


@dataclass(frozen=True)
class ComplianceEvent:
    shop: str
    topic: str                   # customers/data_request | customers/redact | shop/redact
    payload: Dict[str, Any]


WebhookEvent = Union[AppInstalled, AppUninstalled, ScopesUpdated, ProductUpserted, ProductDeleted, ComplianceEvent]

COMPLIANCE_TOPICS = frozenset({"customers/data_request", "customers/redact", "shop/redact"})
SUPPORTED_TOPICS = frozenset({
    "app/installed",
    "app/uninstalled",
    "app/scopes_update",
    "products/create",
    "products/update",
    "products/delete",
}) | COMPLIANCE_TOPICS


def _scopes(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [s.strip() for s in value.split(",") if s.strip()]
    if isinstance(value, list):
        return [str(s).strip() for s in value if str(s).strip()]
    raise ValidationError("scopes must be a list or a comma separated string")


def parse_event(shop: str, topic: str, payload: Any) -> WebhookEvent:
    """
    Map a verified webhook to its event type.
    Unknown topic, bad shop domain or a payload that does not fit the topic -> ValidationError(400).
    """
    shop = (shop or "").strip().lower()
    topic = (topic or "").strip().lower()

    if not _SHOP_RE.match(shop):
        raise ValidationError(f"Invalid shop domain: {shop!r}")
    if topic not in SUPPORTED_TOPICS:
        raise ValidationError(f"Unsupported topic: {topic!r}")
    if not isinstance(payload, dict):
        raise ValidationError("Payload must be a JSON object")

    if topic == "app/installed":
        return AppInstalled(shop=shop, access_token=payload.get("access_token"))

    if topic == "app/uninstalled":
        return AppUninstalled(shop=shop)

    if topic == "app/scopes_update":
        return ScopesUpdated(
            shop=shop,
            previous=_scopes(payload.get("previous")),
            current=_scopes(payload.get("current")),
        )

    if topic in ("products/create", "products/update"):
        try:
            product = normalize_webhook_product(payload, shop)
        except (ValueError, TypeError, AttributeError) as e:
            raise ValidationError(f"Malformed product payload: {e}") from e
        return ProductUpserted(shop=shop, topic=topic, product=product)

    if topic == "products/delete":
        product_id = to_gid(PRODUCT_GID, payload.get("id"))
        if not product_id:
            raise ValidationError("products/delete payload without id")
        return ProductDeleted(shop=shop, shopify_product_id=product_id)

    return ComplianceEvent(shop=shop, topic=topic, payload=payload)
