from __future__ import annotations

from typing import Any, Dict, List, Optional

from aisummary.utils.serialization import strip_html, split_tags


PRODUCT_GID = "gid://shopify/Product/"
VARIANT_GID = "gid://shopify/ProductVariant/"
IMAGE_GID = "gid://shopify/ProductImage/"


def to_gid(prefix: str, value: Any) -> Optional[str]:
    """
    Numeric REST id -> GraphQL gid. Values that already are gids pass through.
    """
    if value is None or value == "":
        return None
    s = str(value)
    if s.startswith("gid://"):
        return s
    return f"{prefix}{s}"


def _edges(connection: Any) -> List[Dict[str, Any]]:
    if not isinstance(connection, dict):
        return []
    return [e.get("node") or {} for e in (connection.get("edges") or []) if isinstance(e, dict)]


def _image(node: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if not node:
        return None
    return {
        "id": node.get("id"),
        "url": node.get("url"),
        "alt_text": node.get("altText"),
        "width": node.get("width"),
        "height": node.get("height"),
    }


# ---------- Admin GraphQL product node -> stored document ----------
def normalize_graphql_product(node: Dict[str, Any]) -> Dict[str, Any]:
    """
    Map one `products.edges[].node` to the column layout of the products table.
    Raises ValueError when the node has no id (a malformed page).
    """
    if not isinstance(node, dict) or not node.get("id"):
        raise ValueError("product node without id")

    variants = [
        {
            "id": v.get("id"),
            "title": v.get("title"),
            "price": v.get("price"),
            "compare_at_price": v.get("compareAtPrice"),
            "sku": v.get("sku"),
            "barcode": v.get("barcode"),
            "inventory_quantity": v.get("inventoryQuantity"),
            "image": _image(v.get("image")),
        }
        for v in _edges(node.get("variants"))
    ]
    images = [_image(i) for i in _edges(node.get("images"))]

    return {
        "shopify_product_id": node["id"],
        "title": node.get("title") or "",
        "description": node.get("description") or "",
        "description_html": node.get("descriptionHtml"),
        "handle": node.get("handle"),
        "status": node.get("status"),
        "vendor": node.get("vendor"),
        "product_type": node.get("productType"),
        "tags": split_tags(node.get("tags")),
        "shopify_created_at": node.get("createdAt"),
        "shopify_updated_at": node.get("updatedAt"),
        "shopify_published_at": node.get("publishedAt"),
        "online_store_url": node.get("onlineStoreUrl"),
        "options": node.get("options") or [],
        "variants": variants,
        "images": images,
        "featured_image": _image(node.get("featuredImage")),
        "seo": node.get("seo"),
        "price_range": node.get("priceRangeV2"),
        "total_inventory": node.get("totalInventory"),
    }


# ---------- products/create|update webhook (REST shape) -> stored document ----------
def normalize_webhook_product(payload: Dict[str, Any], shop: str) -> Dict[str, Any]:
    """
    REST payload: numeric ids, body_html only, tags as "a, b", lowercase status.
    seo / price_range / total_inventory are not part of the payload and are left empty
    until the next full sync.
    """
    if not isinstance(payload, dict) or payload.get("id") in (None, ""):
        raise ValueError("product payload without id")

    body_html = payload.get("body_html")
    handle = payload.get("handle")
    status = payload.get("status")

    variants = []
    for v in payload.get("variants") or []:
        image_id = v.get("image_id")
        variants.append({
            "id": to_gid(VARIANT_GID, v.get("id")),
            "title": v.get("title"),
            "price": v.get("price"),
            "compare_at_price": v.get("compare_at_price"),
            "sku": v.get("sku"),
            "barcode": v.get("barcode"),
            "inventory_quantity": v.get("inventory_quantity"),
            "image": {"id": to_gid(IMAGE_GID, image_id)} if image_id else None,
        })

    def _rest_image(img: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
        if not img:
            return None
        return {
            "id": to_gid(IMAGE_GID, img.get("id")),
            "url": img.get("src"),
            "alt_text": img.get("alt"),
            "width": img.get("width"),
            "height": img.get("height"),
        }

    return {
        "shopify_product_id": to_gid(PRODUCT_GID, payload["id"]),
        "title": payload.get("title") or "",
        "description": strip_html(body_html),
        "description_html": body_html,
        "handle": handle,
        "status": status.upper() if isinstance(status, str) else None,
        "vendor": payload.get("vendor"),
        "product_type": payload.get("product_type"),
        "tags": split_tags(payload.get("tags")),
        "shopify_created_at": payload.get("created_at"),
        "shopify_updated_at": payload.get("updated_at"),
        "shopify_published_at": payload.get("published_at"),
        "online_store_url": f"https://{shop}/products/{handle}" if handle else None,
        "options": payload.get("options") or [],
        "variants": variants,
        "images": [_rest_image(i) for i in payload.get("images") or []],
        "featured_image": _rest_image(payload.get("image")),
    }
