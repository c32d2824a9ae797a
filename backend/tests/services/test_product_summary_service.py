"""Storefront lookup, dashboard listing and full regeneration."""

from __future__ import annotations

from aisummary.integrations.shopify.payload_utils import normalize_graphql_product
from aisummary.orchestration.product_sync.sync_orchestrator import SyncOrchestrator
from aisummary.repository import summary_repo
from aisummary.services import product_summary_service


SHOP = "demo-store.myshopify.com"


def _seed(db, generator, nodes):
    orchestrator = SyncOrchestrator(db, generator, delay_ms=0)
    for node in nodes:
        orchestrator.sync_product(SHOP, normalize_graphql_product(node))


def test_lookup_by_numeric_id_or_gid(db, fake_generator, product_node):
    _seed(db, fake_generator(), [product_node(11)])

    by_number = product_summary_service.get_product_summary(db, SHOP, "11")
    by_gid = product_summary_service.get_product_summary(db, SHOP, "gid://shopify/Product/11")

    assert by_number == by_gid
    assert by_number["enhancedTitle"] == "Enhanced Product 11"
    assert by_number["originalTitle"] == "Product 11"
    assert product_summary_service.get_product_summary(db, SHOP, "12") is None


def test_listing_marks_products_without_summary(db, fake_generator, product_node):
    _seed(db, fake_generator(fail_titles={"Product 2"}), [product_node(1), product_node(2)])

    items = product_summary_service.list_products_with_summaries(db, SHOP)

    assert [i["productId"] for i in items] == ["gid://shopify/Product/1", "gid://shopify/Product/2"]
    assert items[0]["aiSummary"]["enhancedTitle"] == "Enhanced Product 1"
    assert items[1]["aiSummary"] is None
    assert isinstance(items[0]["syncedAt"], str)


def test_regenerate_all(db, fake_generator, product_node):
    _seed(db, fake_generator(), [product_node(n) for n in (1, 2, 3)])
    regen = fake_generator(fail_titles={"Product 3"})
    sleeps = []

    result = product_summary_service.regenerate_all_summaries(db, SHOP, regen, sleep=sleeps.append)

    assert (result["deleted"], result["products"], result["generated"]) == (3, 3, 2)
    assert result["errors"][0]["product_id"] == "gid://shopify/Product/3"
    assert len(regen.calls) == 3
    assert len(summary_repo.get_all(db, SHOP)) == 2
    assert sleeps == []      # GENERATION_DELAY_MS is 0 in tests
