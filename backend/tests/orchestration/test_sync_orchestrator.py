"""Full pass, single-product and delete paths of the sync orchestrator."""

from __future__ import annotations

import pytest

from aisummary.core.errors import StorageError
from aisummary.db.model.installation_job import JOB_COMPLETED, JOB_FAILED
from aisummary.ingress.events import parse_event
from aisummary.integrations.shopify.payload_utils import normalize_graphql_product
from aisummary.orchestration.product_sync.sync_orchestrator import CANCELLED_MESSAGE, SyncOrchestrator
from aisummary.repository import product_repo, summary_repo, sync_log_repo
from aisummary.services.catalog_fetcher import CatalogFetcher
from aisummary.services.job_tracker import JobTracker


SHOP = "demo-store.myshopify.com"


def _gid(n: int) -> str:
    return f"gid://shopify/Product/{n}"


@pytest.fixture
def tracker(db) -> JobTracker:
    return JobTracker(db)


def _start_job(tracker: JobTracker, job_id: str = "job-1") -> str:
    tracker.create(job_id, SHOP)
    return job_id


# ---------- full pass ----------
def test_fresh_install_with_three_products(db, tracker, fake_graphql, fake_generator, product_node):
    generator = fake_generator()
    fetcher = CatalogFetcher(fake_graphql([product_node(n) for n in (1, 2, 3)]))
    job_id = _start_job(tracker)

    result = SyncOrchestrator(db, generator).run_full_sync(SHOP, job_id, fetcher)

    assert result.status == JOB_COMPLETED
    assert (result.total_products, result.products_processed, result.summaries_generated) == (3, 3, 3)

    job = tracker.get(job_id)
    assert job.status == JOB_COMPLETED
    assert (job.total_products, job.products_processed, job.summaries_generated) == (3, 3, 3)
    assert job.progress_percentage == 100
    assert job.errors is None

    assert product_repo.count(db, SHOP) == 3
    assert len(summary_repo.get_all(db, SHOP)) == 3
    assert summary_repo.get(db, SHOP, _gid(2)).enhanced_title == "Enhanced Product 2"

    logs = sync_log_repo.list_sync_logs(db, SHOP)
    assert [(l.status, l.products_count, l.job_id) for l in logs] == [("success", 3, job_id)]


def test_one_failing_generation_does_not_stop_the_pass(db, tracker, fake_graphql, fake_generator, product_node):
    generator = fake_generator(fail_titles={"Product 3"})
    fetcher = CatalogFetcher(fake_graphql([product_node(n) for n in range(1, 6)]))
    job_id = _start_job(tracker)

    SyncOrchestrator(db, generator).run_full_sync(SHOP, job_id, fetcher)

    job = tracker.get(job_id)
    assert job.status == JOB_COMPLETED
    assert (job.products_processed, job.summaries_generated) == (5, 4)
    assert job.errors == [{"product_id": _gid(3), "product_title": "Product 3", "error": "generation failed for Product 3"}]

    # the product itself is still mirrored
    assert product_repo.get_by_id(db, SHOP, _gid(3)) is not None
    assert summary_repo.get(db, SHOP, _gid(3)) is None
    assert [t for t, _ in generator.calls] == [f"Product {n}" for n in range(1, 6)]


def test_fetch_failure_fails_the_job(db, tracker, fake_graphql, fake_generator, product_node):
    generator = fake_generator()
    client = fake_graphql([product_node(n) for n in range(1, 6)], page_size=2, fail_on_page=1)
    job_id = _start_job(tracker)

    result = SyncOrchestrator(db, generator).run_full_sync(SHOP, job_id, CatalogFetcher(client, page_size=2))

    assert result.status == JOB_FAILED
    job = tracker.get(job_id)
    assert job.status == JOB_FAILED
    assert "Throttled" in job.error_message
    assert job.completed_at is not None
    # buffered fetch: nothing is processed when any page fails
    assert product_repo.count(db, SHOP) == 0
    assert generator.calls == []

    logs = sync_log_repo.list_sync_logs(db, SHOP)
    assert [(l.status, l.products_count) for l in logs] == [("failed", 0)]
    assert "Throttled" in logs[0].error_message


def test_fetch_failure_on_first_page_processes_nothing(db, tracker, fake_graphql, fake_generator, product_node):
    generator = fake_generator()
    client = fake_graphql([product_node(n) for n in (1, 2, 3)], fail_on_page=0)
    job_id = _start_job(tracker)

    result = SyncOrchestrator(db, generator).run_full_sync(SHOP, job_id, CatalogFetcher(client))

    assert (result.status, result.products_processed, result.summaries_generated) == (JOB_FAILED, 0, 0)
    job = tracker.get(job_id)
    assert (job.status, job.products_processed) == (JOB_FAILED, 0)
    assert "Throttled" in job.error_message
    assert product_repo.count(db, SHOP) == 0
    assert generator.calls == []

    logs = sync_log_repo.list_sync_logs(db, SHOP)
    assert [(l.status, l.products_count, l.job_id) for l in logs] == [("failed", 0, job_id)]


def test_streamed_pass_keeps_work_done_before_a_page_failure(db, tracker, fake_graphql, fake_generator, product_node):
    client = fake_graphql([product_node(n) for n in range(1, 6)], page_size=2, fail_on_page=1)
    job_id = _start_job(tracker)

    result = SyncOrchestrator(db, fake_generator(), buffer_limit=2).run_full_sync(
        SHOP, job_id, CatalogFetcher(client, page_size=2)
    )

    assert result.status == JOB_FAILED
    assert result.total_products == 5
    job = tracker.get(job_id)
    assert (job.status, job.products_processed, job.total_products) == (JOB_FAILED, 2, 5)
    assert product_repo.count(db, SHOP) == 2


def test_progress_is_monotonic_and_bounded(db, tracker, fake_graphql, fake_generator, product_node):
    fetcher = CatalogFetcher(fake_graphql([product_node(n) for n in range(1, 8)]))
    job_id = _start_job(tracker)
    seen = []

    def _snapshot(processed: int, total: int) -> None:
        job = tracker.get(job_id)
        seen.append((job.products_processed, job.total_products, job.progress_percentage))

    SyncOrchestrator(db, fake_generator()).run_full_sync(SHOP, job_id, fetcher, on_progress=_snapshot)

    assert [s[0] for s in seen] == list(range(1, 8))
    assert all(processed <= total for processed, total, _ in seen)
    pcts = [s[2] for s in seen]
    assert pcts == sorted(pcts)
    assert pcts[-1] == 100


def test_unchanged_products_are_not_regenerated(db, tracker, fake_graphql, fake_generator, product_node):
    generator = fake_generator()
    orchestrator = SyncOrchestrator(db, generator)
    nodes = [product_node(n) for n in (1, 2, 3)]

    orchestrator.run_full_sync(SHOP, _start_job(tracker, "job-1"), CatalogFetcher(fake_graphql(nodes)))
    assert len(generator.calls) == 3

    # same catalog again: summaries are cache hits
    second = orchestrator.run_full_sync(SHOP, _start_job(tracker, "job-2"), CatalogFetcher(fake_graphql(nodes)))
    assert len(generator.calls) == 3
    assert second.summaries_generated == 0
    assert tracker.get("job-2").products_processed == 3

    # only the product whose description changed is regenerated
    nodes[1] = product_node(2, description="Now in walnut")
    orchestrator.run_full_sync(SHOP, _start_job(tracker, "job-3"), CatalogFetcher(fake_graphql(nodes)))
    assert generator.calls[3:] == [("Product 2", "Now in walnut")]
    assert summary_repo.get(db, SHOP, _gid(2)).original_description == "Now in walnut"


def test_uninstall_mid_pass_cancels(db, tracker, fake_graphql, fake_generator, product_node):
    fetcher = CatalogFetcher(fake_graphql([product_node(n) for n in range(1, 6)]))
    job_id = _start_job(tracker)

    def _uninstall_after_first(processed: int, total: int) -> None:
        if processed == 1:
            tracker.terminate_active_for_shop(SHOP)

    result = SyncOrchestrator(db, fake_generator()).run_full_sync(
        SHOP, job_id, fetcher, on_progress=_uninstall_after_first
    )

    assert result.status == JOB_FAILED
    assert result.error_message == CANCELLED_MESSAGE
    assert result.products_processed == 1
    job = tracker.get(job_id)
    assert (job.status, job.error_message) == (JOB_FAILED, "App uninstalled")
    assert product_repo.count(db, SHOP) == 1
    assert [l.status for l in sync_log_repo.list_sync_logs(db, SHOP)] == ["failed"]


def test_unexpected_error_fails_job_and_propagates(db, tracker, fake_graphql, product_node):
    class Exploding:
        def generate(self, title, description):
            raise RuntimeError("bug")

    job_id = _start_job(tracker)
    with pytest.raises(RuntimeError):
        SyncOrchestrator(db, Exploding()).run_full_sync(SHOP, job_id, CatalogFetcher(fake_graphql([product_node(1)])))

    assert tracker.get(job_id).status == JOB_FAILED
    assert [l.status for l in sync_log_repo.list_sync_logs(db, SHOP)] == ["failed"]


def test_storage_failure_is_fatal(db, tracker, fake_graphql, fake_generator, product_node, monkeypatch):
    from aisummary.orchestration.product_sync import sync_orchestrator as mod

    def _broken_upsert(*_a, **_kw):
        raise StorageError("product.upsert failed: disk full")

    job_id = _start_job(tracker)
    monkeypatch.setattr(mod.product_repo, "upsert", _broken_upsert)
    result = SyncOrchestrator(db, fake_generator()).run_full_sync(
        SHOP, job_id, CatalogFetcher(fake_graphql([product_node(1), product_node(2)]))
    )

    assert result.status == JOB_FAILED
    assert "disk full" in tracker.get(job_id).error_message


def test_pause_after_every_generation_attempt(db, tracker, fake_graphql, fake_generator, product_node):
    sleeps = []
    generator = fake_generator(fail_titles={"Product 2"})
    orchestrator = SyncOrchestrator(db, generator, delay_ms=250, sleep=sleeps.append)

    orchestrator.run_full_sync(SHOP, _start_job(tracker), CatalogFetcher(fake_graphql([product_node(n) for n in (1, 2, 3)])))

    assert sleeps == [0.25, 0.25, 0.25]


# ---------- webhook paths ----------
def test_webhook_update_without_content_change_skips_generation(db, fake_generator, product_node):
    generator = fake_generator()
    orchestrator = SyncOrchestrator(db, generator, delay_ms=0)
    doc = normalize_graphql_product(product_node(1))

    assert orchestrator.sync_product(SHOP, doc) == "generated"
    before = summary_repo.get(db, SHOP, _gid(1)).updated_at

    assert orchestrator.sync_product(SHOP, {**doc, "vendor": "New Vendor"}) == "unchanged"
    assert len(generator.calls) == 1
    assert product_repo.get_by_id(db, SHOP, _gid(1)).vendor == "New Vendor"
    assert summary_repo.get(db, SHOP, _gid(1)).updated_at == before


def test_rest_webhook_after_full_sync_matches_graphql_fingerprint(db, tracker, fake_graphql, fake_generator, product_node):
    generator = fake_generator()
    orchestrator = SyncOrchestrator(db, generator, delay_ms=0)
    # GraphQL hands back the description with entities already decoded
    node = product_node(1, title="Shoe", description="Men\u2019s leather caf\u00e9 shoe & lace")
    orchestrator.run_full_sync(SHOP, _start_job(tracker), CatalogFetcher(fake_graphql([node])))
    assert len(generator.calls) == 1

    event = parse_event(SHOP, "products/update", {
        "id": 1,
        "title": "Shoe",
        "vendor": "Acme",
        "body_html": "<p>Men&rsquo;s leather caf&eacute; <strong>shoe</strong> &amp; lace</p>",
    })
    assert orchestrator.sync_product(event.shop, event.product) == "unchanged"
    assert len(generator.calls) == 1
    assert product_repo.get_by_id(db, SHOP, _gid(1)).description == "Men\u2019s leather caf\u00e9 shoe & lace"

    edited = parse_event(SHOP, "products/update", {
        "id": 1,
        "title": "Shoe",
        "body_html": "<p>Men&#8217;s suede shoe</p>",
    })
    assert orchestrator.sync_product(edited.shop, edited.product) == "generated"
    assert generator.calls[-1] == ("Shoe", "Men\u2019s suede shoe")


def test_webhook_generation_failure_is_swallowed(db, fake_generator, product_node):
    orchestrator = SyncOrchestrator(db, fake_generator(fail_titles={"Product 1"}), delay_ms=0)
    doc = normalize_graphql_product(product_node(1))

    assert orchestrator.sync_product(SHOP, doc) == "generation_failed"
    assert product_repo.get_by_id(db, SHOP, _gid(1)) is not None
    assert summary_repo.get(db, SHOP, _gid(1)) is None


def test_delete_removes_product_and_summary(db, fake_generator, product_node):
    orchestrator = SyncOrchestrator(db, fake_generator(), delay_ms=0)
    orchestrator.sync_product(SHOP, normalize_graphql_product(product_node(1)))

    assert orchestrator.delete_product(SHOP, _gid(1)) is True
    assert product_repo.get_by_id(db, SHOP, _gid(1)) is None
    assert summary_repo.get(db, SHOP, _gid(1)) is None
    assert orchestrator.delete_product(SHOP, _gid(1)) is False
