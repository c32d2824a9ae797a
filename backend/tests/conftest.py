"""Shared fixtures: in-memory SQLite schema, fake Shopify GraphQL client, fake generator."""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from aisummary.core.config import settings
from aisummary.core.errors import GenerationError
from aisummary.db.base import Base
import aisummary.db.model  # noqa: F401  registers every table on Base.metadata
from aisummary.services.summary_generator import GeneratedSummary


SHOP = "demo-store.myshopify.com"
OTHER_SHOP = "other-store.myshopify.com"


# ---------- database ----------
@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,   # one shared in-memory database for all sessions / threads
        future=True,
    )
    Base.metadata.create_all(eng)
    try:
        yield eng
    finally:
        eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False, class_=Session, future=True)


@pytest.fixture
def db(session_factory) -> Session:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(autouse=True)
def _no_generation_delay(monkeypatch):
    monkeypatch.setattr(settings, "GENERATION_DELAY_MS", 0)
    monkeypatch.setattr(settings, "SYNC_TASKS_INLINE", False)


# ---------- Shopify ----------
def make_node(n: int, title: Optional[str] = None, description: Optional[str] = None) -> Dict[str, Any]:
    """Admin GraphQL product node as returned inside products.edges[]."""
    return {
        "id": f"gid://shopify/Product/{n}",
        "title": title if title is not None else f"Product {n}",
        "description": description if description is not None else f"Plain description of product {n}",
        "descriptionHtml": f"<p>Plain description of product {n}</p>",
        "handle": f"product-{n}",
        "status": "ACTIVE",
        "vendor": "Acme",
        "productType": "Widget",
        "tags": ["new", "sale"],
        "createdAt": "2025-01-01T00:00:00Z",
        "updatedAt": "2025-01-02T00:00:00Z",
        "publishedAt": "2025-01-01T00:00:00Z",
        "onlineStoreUrl": f"https://{SHOP}/products/product-{n}",
        "options": [{"name": "Size", "values": ["S", "M"]}],
        "variants": {"edges": [{"node": {"id": f"gid://shopify/ProductVariant/{n}0", "title": "S", "price": "9.90"}}]},
        "images": {"edges": []},
        "featuredImage": None,
        "seo": {"title": None, "description": None},
        "priceRangeV2": None,
        "totalInventory": 5,
    }


class FakeGraphQLClient:
    """
    Answers productsCount and products.page from an in-memory catalog.
    Cursors are "c<page index>"; fail_on_page makes that page return a GraphQL errors array.
    """

    def __init__(self, nodes: Iterable[Dict[str, Any]], *, page_size: int = 250,
                 fail_on_page: Optional[int] = None, shop: str = SHOP) -> None:
        self.shop = shop
        self.nodes = list(nodes)
        self.page_size = page_size
        self.fail_on_page = fail_on_page
        self.calls: List[Dict[str, Any]] = []

    def graphql(self, query: str, variables: Optional[dict] = None, *, timeout=None, op_name: str = "") -> dict:
        self.calls.append({"op": op_name, "variables": dict(variables or {})})
        if op_name == "productsCount":
            return {"data": {"productsCount": {"count": len(self.nodes), "precision": "EXACT"}}}

        after = (variables or {}).get("after")
        page = int(after[1:]) + 1 if after else 0
        if self.fail_on_page is not None and page == self.fail_on_page:
            return {"errors": [{"message": "Throttled"}]}

        chunk = self.nodes[page * self.page_size:(page + 1) * self.page_size]
        has_next = (page + 1) * self.page_size < len(self.nodes)
        return {"data": {"products": {
            "edges": [{"cursor": f"n{node['id']}", "node": node} for node in chunk],
            "pageInfo": {"hasNextPage": has_next, "endCursor": f"c{page}"},
        }}}


class FakeGenerator:
    """Deterministic stand-in for SummaryGenerator; titles in fail_titles raise GenerationError."""

    def __init__(self, fail_titles: Iterable[str] = ()) -> None:
        self.fail_titles = set(fail_titles)
        self.calls: List[tuple] = []

    def generate(self, title: str, description: Optional[str]) -> GeneratedSummary:
        self.calls.append((title, description or ""))
        if title in self.fail_titles:
            raise GenerationError(f"generation failed for {title}")
        return GeneratedSummary(
            enhanced_title=f"Enhanced {title}",
            enhanced_description=f"{title} is well made. It suits everyday use.",
            original_title=title,
            original_description=description or "",
        )


@pytest.fixture
def fake_graphql():
    return FakeGraphQLClient


@pytest.fixture
def fake_generator():
    return FakeGenerator


@pytest.fixture
def product_node():
    return make_node
