from __future__ import annotations
import logging, time
from dataclasses import asdict
from typing import Any, Callable, Dict, Optional

from celery import shared_task
from kombu.exceptions import OperationalError as KombuOperationalError

from aisummary.core.config import settings
from aisummary.core.celery_app import celery_app  # noqa: F401  makes it the current app for shared_task in the web process
from aisummary.db.session import SessionLocal
from aisummary.utils.backoff import calc_next_delay
from aisummary.integrations.shopify.shopify_client import ShopifyClient
from aisummary.services.catalog_fetcher import CatalogFetcher, GraphQLClient
from aisummary.services.summary_generator import SummaryGenerator
from aisummary.orchestration.product_sync.sync_orchestrator import SyncOrchestrator


logger = logging.getLogger(__name__)

TASK_NAME = "aisummary.orchestration.product_sync.product_sync_task.run_installation_sync"


"""
  Debug switch: True runs the full pass in the calling process instead of the worker.
"""
def _inline_tasks_enabled() -> bool:
    return bool(settings.SYNC_TASKS_INLINE)



"""
    Celery entry: one full pass for one installation job.
    task_id == job_id, so a duplicate enqueue of the same job is recognisable in the result backend.
"""
@shared_task(name=TASK_NAME, bind=True, acks_late=True)
def run_installation_sync(self, job_id: str, shop: str, access_token: Optional[str] = None) -> Dict[str, Any]:

    def _report(processed: int, total: int) -> None:
        self.update_state(state="PROGRESS", meta={"job_id": job_id, "processed": processed, "total": total})

    return _run_installation_sync_logic(job_id, shop, access_token, on_progress=_report)


"""
    Debug / test entry: same pass, synchronously, with injectable collaborators.
"""
def run_installation_sync_inline(
    job_id: str,
    shop: str,
    access_token: Optional[str] = None,
    **deps: Any,
) -> Dict[str, Any]:
    return _run_installation_sync_logic(job_id, shop, access_token, **deps)



# ========================== pass runner ==========================
def _run_installation_sync_logic(
    job_id: str,
    shop: str,
    access_token: Optional[str],
    *,
    client: Optional[GraphQLClient] = None,
    generator: Optional[SummaryGenerator] = None,
    on_progress: Optional[Callable[[int, int], None]] = None,
    sleep: Callable[[float], None] = time.sleep,
    session_factory: Callable[[], Any] = SessionLocal,
) -> Dict[str, Any]:

    logger.info("installation_sync start job_id=%s shop=%s", job_id, shop)
    db = session_factory()
    try:
        fetcher = CatalogFetcher(client or ShopifyClient(shop, access_token))
        orchestrator = SyncOrchestrator(db, generator or SummaryGenerator(), sleep=sleep)
        result = orchestrator.run_full_sync(shop, job_id, fetcher, on_progress=on_progress)
        return asdict(result)
    finally:
        db.close()
        logger.info("installation_sync end job_id=%s", job_id)



# ========================== enqueue ==========================
"""
    Submit the pass to the sync queue (or run it inline).
    Broker publish failures are retried with exponential backoff:
    SYNC_ENQUEUE_RETRIES retries, first wait SYNC_ENQUEUE_BACKOFF_SEC, doubling.
    Returns the task id (the job id).
"""
def enqueue_installation_sync(
    job_id: str,
    shop: str,
    access_token: Optional[str] = None,
    *,
    sleep: Callable[[float], None] = time.sleep,
) -> str:

    if _inline_tasks_enabled():
        logger.info("installation_sync inline job_id=%s shop=%s", job_id, shop)
        run_installation_sync_inline(job_id, shop, access_token)
        return job_id

    max_retries = max(0, int(settings.SYNC_ENQUEUE_RETRIES))
    for attempt in range(max_retries + 1):
        try:
            async_result = run_installation_sync.apply_async(
                args=[job_id, shop, access_token],
                task_id=job_id,
                queue=settings.SYNC_QUEUE,
                retry=False,   # publish retry handled here
            )
        except KombuOperationalError as e:
            if attempt == max_retries:
                logger.error("installation_sync enqueue_failed job_id=%s attempts=%s err=%s",
                             job_id, attempt + 1, e)
                raise
            delay = calc_next_delay(attempt + 1, base_seconds=settings.SYNC_ENQUEUE_BACKOFF_SEC)
            logger.warning("installation_sync enqueue_retry job_id=%s attempt=%s/%s sleep=%.1fs err=%s",
                           job_id, attempt + 1, max_retries, delay, e)
            sleep(delay)
            continue

        logger.info("installation_sync enqueued job_id=%s task_id=%s queue=%s",
                    job_id, async_result.id, settings.SYNC_QUEUE)
        return async_result.id

    # not reached
    raise RuntimeError("enqueue_installation_sync failed after retries")
