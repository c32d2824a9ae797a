"""
Installation / full-sync entry points used by the ingress handlers and the API routes.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Tuple

from kombu.exceptions import OperationalError as KombuOperationalError
from sqlalchemy.orm import Session

from aisummary.db.model.installation_job import InstallationJob, ACTIVE_STATUSES
from aisummary.orchestration.product_sync.product_sync_task import enqueue_installation_sync
from aisummary.repository import installation_job_repo
from aisummary.repository.base_repo import require_shop
from aisummary.services.job_tracker import JobTracker, generate_job_id
from aisummary.utils.serialization import to_jsonable


logger = logging.getLogger(__name__)

Enqueue = Callable[[str, str, Optional[str]], str]


@dataclass(frozen=True, slots=True)
class JobHandle:
    job_id: str
    task_id: str


def get_latest_installation_job(db: Session, shop: str) -> Optional[InstallationJob]:
    return installation_job_repo.get_latest_for_shop(db, shop)


def serialize_job(job: InstallationJob) -> Dict[str, Any]:
    """Dashboard polling payload (camelCase keys)."""
    return to_jsonable({
        "status": job.status,
        "jobId": job.job_id,
        "shop": job.shop_url,
        "totalProducts": job.total_products,
        "productsProcessed": job.products_processed,
        "summariesGenerated": job.summaries_generated,
        "progressPercentage": job.progress_percentage,
        "createdAt": job.created_at,
        "startedAt": job.started_at,
        "completedAt": job.completed_at,
        "errorMessage": job.error_message,
        "errors": job.errors or [],
    })


def get_installation_status(db: Session, job_id: str) -> Optional[Dict[str, Any]]:
    job = installation_job_repo.get(db, job_id)
    return serialize_job(job) if job is not None else None


'''
  Create a job and submit its full pass.
  An active (pending / processing) job of the shop is reused unless force=True,
  so repeated install events or double clicks do not start parallel passes.
  If the broker stays unreachable after the publish retries, the job is failed
  and the error propagates.
'''
def trigger_full_sync(
    db: Session,
    shop: str,
    access_token: Optional[str] = None,
    *,
    force: bool = False,
    enqueue: Enqueue = enqueue_installation_sync,
) -> JobHandle:
    shop = require_shop(shop)
    tracker = JobTracker(db)

    if not force:
        latest = installation_job_repo.get_latest_for_shop(db, shop)
        if latest is not None and latest.status in ACTIVE_STATUSES:
            logger.info("installation.reuse_active shop=%s job_id=%s status=%s", shop, latest.job_id, latest.status)
            return JobHandle(job_id=latest.job_id, task_id=latest.job_id)

    job_id = generate_job_id(shop)
    tracker.create(job_id, shop)

    try:
        task_id = enqueue(job_id, shop, access_token)
    except KombuOperationalError as e:
        tracker.mark_failed(job_id, f"Could not enqueue sync: {e}")
        raise

    logger.info("installation.triggered shop=%s job_id=%s task_id=%s", shop, job_id, task_id)
    return JobHandle(job_id=job_id, task_id=task_id)


"""
  Dashboard first visit: start the initial sync only when the shop has never had a job.
  Returns (latest job, created?).
"""
def ensure_installation_job(
    db: Session,
    shop: str,
    access_token: Optional[str] = None,
    *,
    enqueue: Enqueue = enqueue_installation_sync,
) -> Tuple[Optional[InstallationJob], bool]:
    existing = installation_job_repo.get_latest_for_shop(db, shop)
    if existing is not None:
        return existing, False

    handle = trigger_full_sync(db, shop, access_token, enqueue=enqueue)
    return installation_job_repo.get(db, handle.job_id), True
