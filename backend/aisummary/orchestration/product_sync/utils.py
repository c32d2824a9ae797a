from __future__ import annotations

from typing import Any, Dict, Optional

from aisummary.db.model.product import AISummary


def needs_regeneration(product: Dict[str, Any], summary: Optional[AISummary]) -> bool:
    """
    A summary is a cache keyed by the (title, description) fingerprint it was generated from:
    regenerate when there is none, or when either half of the fingerprint changed.
    """
    if summary is None:
        return True
    title = product.get("title") or ""
    description = product.get("description") or ""
    return (summary.original_title or "") != title or (summary.original_description or "") != description


def product_error(product: Dict[str, Any], error: Exception | str) -> Dict[str, Any]:
    """Per-product entry stored in InstallationJob.errors."""
    return {
        "product_id": product.get("shopify_product_id"),
        "product_title": product.get("title"),
        "error": str(error),
    }
