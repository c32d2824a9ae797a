# installation job database repository

from __future__ import annotations

import logging
from typing import Any, Iterable, List, Optional

from sqlalchemy import select, update, delete as sa_delete
from sqlalchemy.orm import Session

from aisummary.core.errors import JobStateError
from aisummary.db.model.installation_job import (
    InstallationJob,
    ACTIVE_STATUSES,
    TERMINAL_STATUSES,
)
from aisummary.repository.base_repo import require_shop, dialect_insert, storage_guard
from aisummary.utils.clock import now_utc


logger = logging.getLogger(__name__)


# ---------- Query ----------
def get(db: Session, job_id: str) -> Optional[InstallationJob]:
    stmt = (
        select(InstallationJob)
        .where(InstallationJob.job_id == job_id)
        .execution_options(populate_existing=True)
    )
    with storage_guard(db, "job.get"):
        return db.scalars(stmt).first()


def get_latest_for_shop(db: Session, shop: str) -> Optional[InstallationJob]:
    """Most recently created job wins; id breaks created_at ties (insertion order)."""
    stmt = (
        select(InstallationJob)
        .where(InstallationJob.shop_url == require_shop(shop))
        .order_by(InstallationJob.created_at.desc(), InstallationJob.id.desc())
        .limit(1)
        .execution_options(populate_existing=True)
    )
    with storage_guard(db, "job.get_latest"):
        return db.scalars(stmt).first()


def list_active_for_shop(db: Session, shop: str) -> List[InstallationJob]:
    stmt = (
        select(InstallationJob)
        .where(
            InstallationJob.shop_url == require_shop(shop),
            InstallationJob.status.in_(ACTIVE_STATUSES),
        )
        .order_by(InstallationJob.created_at.asc(), InstallationJob.id.asc())
        .execution_options(populate_existing=True)
    )
    with storage_guard(db, "job.list_active"):
        return list(db.scalars(stmt))


# ---------- Mutations ----------
'''
  Create, or reset a job that is not yet terminal. Counters are zeroed,
  created_at is kept from the first insert. Re-creating a terminal job is a
  state violation: a finished job's history is never rewritten.
'''
def create(db: Session, job_id: str, shop: str, status: str) -> InstallationJob:
    shop = require_shop(shop)
    if not job_id:
        raise ValueError("job_id is required")

    existing = get(db, job_id)
    if existing is not None and existing.status in TERMINAL_STATUSES:
        raise JobStateError(f"job {job_id} is already {existing.status}")

    now = now_utc()
    reset = {
        "shop_url": shop,
        "status": status,
        "total_products": 0,
        "products_processed": 0,
        "summaries_generated": 0,
        "progress_percentage": 0,
        "error_message": None,
        "errors": None,
        "started_at": None,
        "completed_at": None,
        "updated_at": now,
    }
    stmt = dialect_insert(db, InstallationJob).values(job_id=job_id, created_at=now, **reset)
    stmt = stmt.on_conflict_do_update(
        index_elements=["job_id"],
        set_={col: getattr(stmt.excluded, col) for col in reset},
    )
    with storage_guard(db, "job.create"):
        db.execute(stmt)
        db.commit()

    return get(db, job_id)


def update_fields(
    db: Session,
    job_id: str,
    allowed_from: Iterable[str],
    **fields: Any,
) -> int:
    """
    Conditional UPDATE: only applies while the job's current status is in allowed_from.
    Returns the number of rows changed (0 = unknown job or disallowed transition).
    """
    fields["updated_at"] = now_utc()
    stmt = (
        update(InstallationJob)
        .where(
            InstallationJob.job_id == job_id,
            InstallationJob.status.in_(list(allowed_from)),
        )
        .values(**fields)
        .execution_options(synchronize_session=False)
    )
    with storage_guard(db, "job.update"):
        res = db.execute(stmt)
        db.commit()
    return int(res.rowcount or 0)


def delete_for_shop(db: Session, shop: str) -> int:
    stmt = sa_delete(InstallationJob).where(InstallationJob.shop_url == require_shop(shop))
    with storage_guard(db, "job.delete_for_shop"):
        res = db.execute(stmt)
        db.commit()
    return int(res.rowcount or 0)
