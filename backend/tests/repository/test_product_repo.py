"""Product repository: idempotent full-document upsert, shop isolation, deletes."""

from __future__ import annotations

from datetime import datetime

import pytest
from sqlalchemy.exc import OperationalError

from aisummary.core.errors import StorageError
from aisummary.integrations.shopify.payload_utils import normalize_graphql_product
from aisummary.repository import product_repo


SHOP = "demo-store.myshopify.com"
OTHER_SHOP = "other-store.myshopify.com"
SYNCED_AT = datetime(2025, 3, 1, 12, 0, 0)


def _snapshot(p) -> dict:
    return {c: getattr(p, c) for c in ("shop", "shopify_product_id", *product_repo.PRODUCT_FIELDS)}


def test_upsert_twice_with_same_input_is_idempotent(db, product_node):
    doc = {**normalize_graphql_product(product_node(1)), "synced_at": SYNCED_AT}

    product_repo.upsert(db, SHOP, doc)
    first = _snapshot(product_repo.get_by_id(db, SHOP, doc["shopify_product_id"]))
    product_repo.upsert(db, SHOP, doc)
    second = _snapshot(product_repo.get_by_id(db, SHOP, doc["shopify_product_id"]))

    assert first == second
    assert product_repo.count(db, SHOP) == 1
    assert second["tags"] == ["new", "sale"]
    assert second["variants"][0]["price"] == "9.90"


def test_upsert_replaces_whole_document(db, product_node):
    doc = normalize_graphql_product(product_node(1))
    product_repo.upsert(db, SHOP, doc)

    # later write without vendor / tags: last writer wins, missing fields reset
    product_repo.upsert(db, SHOP, {"shopify_product_id": doc["shopify_product_id"], "title": "Renamed"})

    p = product_repo.get_by_id(db, SHOP, doc["shopify_product_id"])
    assert p.title == "Renamed"
    assert p.vendor is None
    assert p.tags == []
    assert p.description == ""


def test_same_product_id_in_two_shops_is_isolated(db, product_node):
    doc = normalize_graphql_product(product_node(7))
    product_repo.upsert(db, SHOP, doc)
    product_repo.upsert(db, OTHER_SHOP, {**doc, "title": "Other shop title"})

    assert product_repo.get_by_id(db, SHOP, doc["shopify_product_id"]).title == "Product 7"
    assert product_repo.get_by_id(db, OTHER_SHOP, doc["shopify_product_id"]).title == "Other shop title"

    assert product_repo.delete(db, SHOP, doc["shopify_product_id"]) is True
    assert product_repo.get_by_id(db, SHOP, doc["shopify_product_id"]) is None
    assert product_repo.get_by_id(db, OTHER_SHOP, doc["shopify_product_id"]) is not None


def test_shop_key_is_normalized(db, product_node):
    doc = normalize_graphql_product(product_node(2))
    product_repo.upsert(db, "  Demo-Store.myshopify.com ", doc)
    assert [p.shopify_product_id for p in product_repo.get_all(db, SHOP)] == [doc["shopify_product_id"]]


def test_delete_is_idempotent(db):
    assert product_repo.delete(db, SHOP, "gid://shopify/Product/404") is False


def test_delete_all_only_touches_one_shop(db, product_node):
    for n in (1, 2, 3):
        product_repo.upsert(db, SHOP, normalize_graphql_product(product_node(n)))
    product_repo.upsert(db, OTHER_SHOP, normalize_graphql_product(product_node(1)))

    assert product_repo.delete_all(db, SHOP) == 3
    assert product_repo.get_all(db, SHOP) == []
    assert product_repo.count(db, OTHER_SHOP) == 1


def test_empty_shop_and_missing_id_are_rejected(db):
    with pytest.raises(ValueError):
        product_repo.get_all(db, "  ")
    with pytest.raises(ValueError):
        product_repo.upsert(db, SHOP, {"title": "no id"})


def test_driver_failure_surfaces_as_storage_error(db, monkeypatch, product_node):
    def _boom(*_a, **_kw):
        raise OperationalError("INSERT", {}, Exception("connection lost"))

    monkeypatch.setattr(db, "execute", _boom)
    with pytest.raises(StorageError):
        product_repo.upsert(db, SHOP, normalize_graphql_product(product_node(1)))


def test_count_is_scoped_to_the_shop(db, product_node):
    assert product_repo.count(db, SHOP) == 0
    for n in (1, 2, 3):
        product_repo.upsert(db, SHOP, normalize_graphql_product(product_node(n)))
    product_repo.upsert(db, OTHER_SHOP, normalize_graphql_product(product_node(1)))

    assert product_repo.count(db, SHOP) == 3
    assert product_repo.count(db, " Demo-Store.myshopify.com") == 3
    assert product_repo.count(db, OTHER_SHOP) == 1


def test_count_failure_surfaces_as_storage_error(db, monkeypatch):
    def _boom(*_a, **_kw):
        raise OperationalError("SELECT count(*)", {}, Exception("connection lost"))

    monkeypatch.setattr(db, "scalar", _boom)
    with pytest.raises(StorageError):
        product_repo.count(db, SHOP)
