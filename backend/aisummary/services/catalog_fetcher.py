"""
Catalog fetch: page through a shop's products over Admin GraphQL.
  - iter_pages(): one normalized page at a time (cursor pagination)
  - fetch_all(): buffered list; any page failure aborts and nothing is returned
  - count_products(): productsCount, used to fix a pass total up front
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterator, List, Optional, Protocol

from aisummary.core.config import settings
from aisummary.core.errors import UpstreamError
from aisummary.integrations.shopify.graphql_queries import (
    PRODUCTS_COUNT,
    build_products_page_query,
)
from aisummary.integrations.shopify.payload_utils import normalize_graphql_product


logger = logging.getLogger(__name__)


class GraphQLClient(Protocol):
    shop: str

    def graphql(self, query: str, variables: Optional[dict] = None, *,
                timeout: Optional[int] = None, op_name: str = "") -> dict: ...


class CatalogFetcher:

    def __init__(self, client: GraphQLClient, *, page_size: Optional[int] = None) -> None:
        self.client = client
        self.page_size = page_size or settings.CATALOG_PAGE_SIZE
        self._query = build_products_page_query(
            variants_first=settings.CATALOG_VARIANTS_FIRST,
            images_first=settings.CATALOG_IMAGES_FIRST,
        )

    @property
    def shop(self) -> str:
        return self.client.shop


    def count_products(self) -> int:
        data = self.client.graphql(PRODUCTS_COUNT, op_name="productsCount")
        if data.get("errors"):
            raise UpstreamError(f"productsCount failed: {data['errors']}")
        try:
            return int(data["data"]["productsCount"]["count"])
        except (KeyError, TypeError, ValueError) as e:
            raise UpstreamError("malformed productsCount response") from e


    '''
      Yields lists of normalized product dicts, in Shopify order.
      Stops when pageInfo.hasNextPage is false. A GraphQL errors array or a
      page missing edges/pageInfo raises UpstreamError.
    '''
    def iter_pages(self) -> Iterator[List[Dict[str, Any]]]:
        cursor: Optional[str] = None
        page_no = 0
        fetched = 0

        while True:
            page_no += 1
            data = self.client.graphql(
                self._query,
                {"first": self.page_size, "after": cursor},
                op_name="products.page",
            )
            if data.get("errors"):
                raise UpstreamError(f"products page {page_no} returned errors: {data['errors']}")

            conn = (data.get("data") or {}).get("products")
            if not isinstance(conn, dict) or not isinstance(conn.get("edges"), list) \
                    or not isinstance(conn.get("pageInfo"), dict):
                raise UpstreamError(f"malformed products page {page_no}")

            try:
                products = [normalize_graphql_product(e.get("node")) for e in conn["edges"]]
            except (ValueError, AttributeError) as e:
                raise UpstreamError(f"malformed product node on page {page_no}: {e}") from e

            fetched += len(products)
            logger.info("catalog.page shop=%s page=%s size=%s fetched=%s",
                        self.shop, page_no, len(products), fetched)
            yield products

            info = conn["pageInfo"]
            if not info.get("hasNextPage"):
                break
            cursor = info.get("endCursor")
            if not cursor:
                raise UpstreamError(f"page {page_no} has hasNextPage but no endCursor")


    def fetch_all(self) -> List[Dict[str, Any]]:
        products: List[Dict[str, Any]] = []
        for page in self.iter_pages():
            products.extend(page)
        logger.info("catalog.fetched shop=%s total=%s", self.shop, len(products))
        return products
