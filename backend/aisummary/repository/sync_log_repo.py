# sync log (audit trail) repository, append-only

from __future__ import annotations

from typing import List, Optional

from sqlalchemy import select, delete as sa_delete
from sqlalchemy.orm import Session

from aisummary.db.model.product import SyncLog
from aisummary.repository.base_repo import require_shop, storage_guard
from aisummary.utils.clock import now_utc


SYNC_SUCCESS = "success"
SYNC_FAILED = "failed"


def log_sync(
    db: Session,
    shop: str,
    status: str,
    products_count: int,
    duration_ms: int,
    error_message: Optional[str] = None,
    job_id: Optional[str] = None,
) -> SyncLog:
    if status not in (SYNC_SUCCESS, SYNC_FAILED):
        raise ValueError(f"invalid sync status: {status!r}")

    row = SyncLog(
        shop=require_shop(shop),
        status=status,
        products_count=max(0, int(products_count or 0)),
        duration_ms=max(0, int(duration_ms or 0)),
        error_message=error_message,
        job_id=job_id,
        timestamp=now_utc(),
    )
    with storage_guard(db, "sync_log.insert"):
        db.add(row)
        db.commit()
    return row


def list_sync_logs(db: Session, shop: str, limit: int = 20) -> List[SyncLog]:
    stmt = (
        select(SyncLog)
        .where(SyncLog.shop == require_shop(shop))
        .order_by(SyncLog.timestamp.desc(), SyncLog.id.desc())
        .limit(max(1, int(limit)))
    )
    with storage_guard(db, "sync_log.list"):
        return list(db.scalars(stmt))


def delete_all(db: Session, shop: str) -> int:
    stmt = sa_delete(SyncLog).where(SyncLog.shop == require_shop(shop))
    with storage_guard(db, "sync_log.delete_all"):
        res = db.execute(stmt)
        db.commit()
    return int(res.rowcount or 0)
