from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Iterable, List, Optional
import math
import re
import uuid

from bs4 import BeautifulSoup


_WS_RE = re.compile(r"\s+")


def strip_html(value: Optional[str]) -> str:
    """
    Plain-text rendition of a Shopify body_html (webhook payloads carry HTML only).
    """
    if not value:
        return ""
    # html.parser decodes named and numeric entities the way Shopify does for GraphQL descriptions
    text = BeautifulSoup(value, "html.parser").get_text(" ", strip=True)
    return _WS_RE.sub(" ", text).strip()


def split_tags(value: Any) -> List[str]:
    """
    REST payloads send tags as "a, b, c"; GraphQL sends a list. Both become a list.
    """
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return [str(v).strip() for v in value if v is not None and str(v).strip()]
    return [t.strip() for t in str(value).split(",") if t.strip()]


def to_jsonable(value: Any):
    """
    Recursively convert arbitrary Python values into JSON-serializable primitives.
    """
    if isinstance(value, Decimal):
        f = float(value)
        if math.isnan(f) or math.isinf(f):
            return None
        return f
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, (list, tuple, set)):
        return [to_jsonable(v) for v in value]
    if isinstance(value, dict):
        return {str(k): to_jsonable(v) for k, v in value.items()}
    if isinstance(value, float):
        if math.isnan(value) or math.isinf(value):
            return None
    return value


def row_to_dict(row: Any, columns: Iterable[str]) -> dict:
    """ORM row -> JSON-ready dict limited to the given columns."""
    return {c: to_jsonable(getattr(row, c, None)) for c in columns}
