from __future__ import annotations

import logging, time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional

from sqlalchemy.orm import Session

from aisummary.core.config import settings
from aisummary.core.errors import GenerationError, JobStateError, StorageError, SummarySyncError
from aisummary.db.model.installation_job import JOB_COMPLETED, JOB_FAILED
from aisummary.repository import product_repo, summary_repo, sync_log_repo
from aisummary.repository.summary_repo import SummaryUpsertDTO
from aisummary.services.catalog_fetcher import CatalogFetcher
from aisummary.services.job_tracker import JobTracker
from aisummary.services.summary_generator import SummaryGenerator
from aisummary.orchestration.product_sync.utils import needs_regeneration, product_error


logger = logging.getLogger(__name__)

CANCELLED_MESSAGE = "Sync cancelled: job was terminated"

# generation outcome of one product
GENERATED = "generated"
UNCHANGED = "unchanged"


@dataclass
class SyncResult:
    job_id: str
    shop: str
    status: str = JOB_FAILED
    total_products: int = 0
    products_processed: int = 0
    summaries_generated: int = 0
    errors: List[Dict[str, Any]] = field(default_factory=list)
    error_message: Optional[str] = None
    duration_ms: int = 0


class _PassCancelled(Exception):
    pass


'''
  Product sync orchestrator
     - full pass (install / manual trigger): fetch -> per product upsert + enrich -> job progress
     - single product (products/create|update webhook): upsert + enrich, generation errors swallowed
     - delete (products/delete webhook): product, then its summary
  One orchestrator per DB session; the generator is shared and serializes its own calls.
'''
class SyncOrchestrator:

    def __init__(
        self,
        db: Session,
        generator: SummaryGenerator,
        *,
        tracker: Optional[JobTracker] = None,
        delay_ms: Optional[int] = None,
        buffer_limit: Optional[int] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.db = db
        self.generator = generator
        self.tracker = tracker or JobTracker(db)
        self.delay_ms = settings.GENERATION_DELAY_MS if delay_ms is None else delay_ms
        self.buffer_limit = buffer_limit or settings.CATALOG_BUFFER_LIMIT
        self._sleep = sleep


    # ========================== full pass ==========================
    """
      1) job -> processing
      2) fetch the catalog (buffered up to buffer_limit, streamed above it)
      3) fix total_products
      4) per product, in catalog order: upsert, regeneration rule, generate + upsert summary,
         progress after every product; generation failures are collected, not fatal
      5) job -> completed with counters and errors
    Any fatal error (fetch, storage, job I/O) fails the job. Exactly one SyncLog is
    written per pass, on every exit path.
    """
    def run_full_sync(
        self,
        shop: str,
        job_id: str,
        fetcher: CatalogFetcher,
        *,
        cancel_check: Optional[Callable[[], bool]] = None,
        on_progress: Optional[Callable[[int, int], None]] = None,
    ) -> SyncResult:

        result = SyncResult(job_id=job_id, shop=shop)
        start = time.perf_counter()
        is_cancelled = cancel_check or (lambda: self.tracker.is_terminal(job_id))

        logger.info("sync.full.start shop=%s job_id=%s", shop, job_id)
        try:
            self.tracker.mark_started(job_id)

            pages = self._load_catalog(fetcher, result)
            self.tracker.set_total(job_id, result.total_products)
            logger.info("sync.full.total shop=%s job_id=%s total=%s", shop, job_id, result.total_products)

            for page in pages:
                for product in page:
                    if is_cancelled():
                        raise _PassCancelled()
                    self._process_in_pass(shop, product, result)
                    try:
                        self.tracker.update_progress(
                            job_id, result.products_processed, result.summaries_generated, result.total_products
                        )
                    except JobStateError as e:
                        raise _PassCancelled() from e
                    if on_progress is not None:
                        on_progress(result.products_processed, result.total_products)

            self.tracker.mark_completed(
                job_id, result.products_processed, result.summaries_generated, result.errors
            )
            result.status = JOB_COMPLETED

        except _PassCancelled:
            result.error_message = CANCELLED_MESSAGE
            logger.warning("sync.full.cancelled shop=%s job_id=%s processed=%s",
                           shop, job_id, result.products_processed)

        except Exception as e:
            result.error_message = str(e) or type(e).__name__
            logger.exception("sync.full.failed shop=%s job_id=%s processed=%s err=%s",
                             shop, job_id, result.products_processed, result.error_message)
            self._fail_job(job_id, result.error_message)
            if not isinstance(e, SummarySyncError):
                raise

        finally:
            result.duration_ms = int((time.perf_counter() - start) * 1000)
            self._write_sync_log(result)

        logger.info("sync.full.done shop=%s job_id=%s status=%s processed=%s summaries=%s errors=%s duration_ms=%s",
                    shop, job_id, result.status, result.products_processed,
                    result.summaries_generated, len(result.errors), result.duration_ms)
        return result


    def _load_catalog(self, fetcher: CatalogFetcher, result: SyncResult) -> Iterable[List[Dict[str, Any]]]:
        expected = fetcher.count_products()
        if expected <= self.buffer_limit:
            products = fetcher.fetch_all()
            result.total_products = len(products)
            return [products]

        # large catalog: stream, total fixed from productsCount for the whole pass
        logger.info("sync.full.streaming shop=%s expected=%s buffer_limit=%s",
                    fetcher.shop, expected, self.buffer_limit)
        result.total_products = expected
        return fetcher.iter_pages()


    def _process_in_pass(self, shop: str, product: Dict[str, Any], result: SyncResult) -> None:
        product_repo.upsert(self.db, shop, product)
        try:
            if self._enrich(shop, product) == GENERATED:
                result.summaries_generated += 1
        except GenerationError as e:
            result.errors.append(product_error(product, e))
            logger.warning("sync.product.generation_failed shop=%s product_id=%s err=%s",
                           shop, product.get("shopify_product_id"), e)
        result.products_processed += 1


    def _fail_job(self, job_id: str, message: str) -> None:
        try:
            self.tracker.mark_failed(job_id, message)
        except (JobStateError, StorageError) as e:
            logger.error("sync.full.mark_failed_error job_id=%s err=%s", job_id, e)


    def _write_sync_log(self, result: SyncResult) -> None:
        status = sync_log_repo.SYNC_SUCCESS if result.status == JOB_COMPLETED else sync_log_repo.SYNC_FAILED
        try:
            sync_log_repo.log_sync(
                self.db,
                result.shop,
                status,
                result.products_processed,
                result.duration_ms,
                error_message=result.error_message,
                job_id=result.job_id,
            )
        except (StorageError, ValueError) as e:
            logger.error("sync.full.sync_log_error shop=%s job_id=%s err=%s", result.shop, result.job_id, e)


    # ========================== shared step ==========================
    def _enrich(self, shop: str, product: Dict[str, Any]) -> str:
        product_id = product["shopify_product_id"]
        existing = summary_repo.get(self.db, shop, product_id)
        if not needs_regeneration(product, existing):
            return UNCHANGED

        try:
            generated = self.generator.generate(product.get("title") or "", product.get("description") or "")
        finally:
            # courtesy pause after every generation call, success or not
            if self.delay_ms:
                self._sleep(self.delay_ms / 1000.0)

        summary_repo.upsert(
            self.db,
            shop,
            product_id,
            SummaryUpsertDTO(
                product_title=product.get("title"),
                original_title=generated.original_title,
                original_description=generated.original_description,
                enhanced_title=generated.enhanced_title,
                enhanced_description=generated.enhanced_description,
            ),
        )
        return GENERATED


    # ========================== webhook paths ==========================
    """
      products/create, products/update: no job tracking. Generation failures are
      logged and swallowed; storage failures propagate.
    """
    def sync_product(self, shop: str, product: Dict[str, Any]) -> str:
        product_repo.upsert(self.db, shop, product)
        try:
            outcome = self._enrich(shop, product)
        except GenerationError as e:
            logger.warning("sync.single.generation_failed shop=%s product_id=%s err=%s",
                           shop, product.get("shopify_product_id"), e)
            return "generation_failed"
        logger.info("sync.single.done shop=%s product_id=%s outcome=%s",
                    shop, product.get("shopify_product_id"), outcome)
        return outcome


    """
      products/delete: product first, then its summary (two statements, not atomic).
    """
    def delete_product(self, shop: str, shopify_product_id: str) -> bool:
        deleted = product_repo.delete(self.db, shop, shopify_product_id)
        summary_deleted = summary_repo.delete(self.db, shop, shopify_product_id)
        logger.info("sync.delete shop=%s product_id=%s product=%s summary=%s",
                    shop, shopify_product_id, deleted, summary_deleted)
        return deleted
