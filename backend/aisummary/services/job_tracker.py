"""
Installation job tracker.

    pending -> processing -> completed | failed

Terminal states are final: every mutation is a conditional UPDATE guarded by the
allowed source states, and a refused transition raises JobStateError.
"""

from __future__ import annotations

import logging
import secrets
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from aisummary.core.errors import JobStateError
from aisummary.db.model.installation_job import (
    InstallationJob,
    JOB_PENDING,
    JOB_PROCESSING,
    JOB_COMPLETED,
    JOB_FAILED,
    ACTIVE_STATUSES,
)
from aisummary.repository import installation_job_repo
from aisummary.utils.clock import now_utc, epoch_ms


logger = logging.getLogger(__name__)

UNINSTALLED_MESSAGE = "App uninstalled"


def generate_job_id(shop: str) -> str:
    # install-{shop}-{epoch ms}-{8 hex}
    return f"install-{shop}-{epoch_ms()}-{secrets.token_hex(4)}"


def progress_percentage(processed: int, total: int) -> int:
    if not total or total <= 0:
        return 0
    # halves round up: 1 of 8 is 13%
    pct = (processed * 200 + total) // (total * 2)
    return max(0, min(100, pct))


class JobTracker:

    def __init__(self, db: Session) -> None:
        self.db = db

    # ---------- reads ----------
    def get(self, job_id: str) -> Optional[InstallationJob]:
        return installation_job_repo.get(self.db, job_id)

    def is_processing(self, job_id: str) -> bool:
        job = self.get(job_id)
        return job is not None and job.status == JOB_PROCESSING

    def is_terminal(self, job_id: str) -> bool:
        job = self.get(job_id)
        return job is None or job.is_terminal

    # ---------- transitions ----------
    def create(self, job_id: str, shop: str, status: str = JOB_PENDING) -> InstallationJob:
        if status not in ACTIVE_STATUSES:
            raise JobStateError(f"a job cannot be created as {status!r}")
        job = installation_job_repo.create(self.db, job_id, shop, status)
        logger.info("job.created job_id=%s shop=%s status=%s", job_id, shop, status)
        return job

    def mark_started(self, job_id: str) -> None:
        self._transition(
            job_id, "mark_started", [JOB_PENDING, JOB_PROCESSING],
            status=JOB_PROCESSING, started_at=now_utc(),
        )

    def set_total(self, job_id: str, total: int) -> None:
        self._transition(
            job_id, "set_total", [JOB_PROCESSING],
            total_products=max(0, int(total)), progress_percentage=0,
        )

    def update_progress(self, job_id: str, processed: int, summaries: int, total: int) -> None:
        self._transition(
            job_id, "update_progress", [JOB_PROCESSING],
            products_processed=processed,
            summaries_generated=summaries,
            total_products=total,
            progress_percentage=progress_percentage(processed, total),
        )

    def mark_completed(
        self,
        job_id: str,
        processed: int,
        summaries: int,
        errors: Optional[List[Dict[str, Any]]] = None,
    ) -> None:
        fields: Dict[str, Any] = {
            "status": JOB_COMPLETED,
            "products_processed": processed,
            "summaries_generated": summaries,
            "progress_percentage": 100,
            "completed_at": now_utc(),
        }
        if errors:
            fields["errors"] = list(errors)
        self._transition(job_id, "mark_completed", [JOB_PROCESSING], **fields)
        logger.info("job.completed job_id=%s processed=%s summaries=%s errors=%s",
                    job_id, processed, summaries, len(errors or []))

    def mark_failed(self, job_id: str, message: str) -> None:
        self._transition(
            job_id, "mark_failed", [JOB_PENDING, JOB_PROCESSING],
            status=JOB_FAILED, error_message=message, completed_at=now_utc(),
        )
        logger.warning("job.failed job_id=%s error=%s", job_id, message)

    def terminate_active_for_shop(self, shop: str, message: str = UNINSTALLED_MESSAGE) -> List[str]:
        """
        Fail every pending / processing job of the shop. A running pass notices
        through its cancel check before the next product.
        """
        terminated: List[str] = []
        for job in installation_job_repo.list_active_for_shop(self.db, shop):
            try:
                self.mark_failed(job.job_id, message)
                terminated.append(job.job_id)
            except JobStateError:
                # finished on its own in the meantime
                continue
        return terminated

    # ---------- internals ----------
    def _transition(self, job_id: str, op: str, allowed_from: List[str], **fields: Any) -> None:
        changed = installation_job_repo.update_fields(self.db, job_id, allowed_from, **fields)
        if changed:
            return
        job = self.get(job_id)
        if job is None:
            raise JobStateError(f"{op}: unknown job {job_id}")
        raise JobStateError(f"{op}: job {job_id} is {job.status}, expected one of {allowed_from}")
