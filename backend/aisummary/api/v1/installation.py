# installation / sync status routes -> dashboard polling and manual trigger

from __future__ import annotations
import logging
from fastapi import APIRouter, Depends, HTTPException, Query
from kombu.exceptions import OperationalError as KombuOperationalError
from sqlalchemy.orm import Session

from aisummary.db.session import get_db
from aisummary.repository import sync_log_repo
from aisummary.services import installation_service
from aisummary.services.installation_service import Enqueue
from aisummary.utils.serialization import row_to_dict
from aisummary.api.v1.deps import get_enqueue, normalize_shop_param


logger = logging.getLogger(__name__)

router = APIRouter(tags=["installation"])

SYNC_LOG_COLUMNS = ("status", "products_count", "duration_ms", "error_message", "job_id", "timestamp")


def _require_shop(shop: str) -> str:
    shop = normalize_shop_param(shop)
    if not shop:
        raise HTTPException(status_code=400, detail="shop is required")
    return shop


''' latest job of a shop; ensure=true starts the first sync when the shop has none '''
@router.get("/installation-status")
def latest_installation_status(
    shop: str = Query(...),
    ensure: bool = Query(False),
    db: Session = Depends(get_db),
    enqueue: Enqueue = Depends(get_enqueue),
):
    shop = _require_shop(shop)
    created = False
    if ensure:
        try:
            job, created = installation_service.ensure_installation_job(db, shop, enqueue=enqueue)
        except KombuOperationalError:
            raise HTTPException(status_code=503, detail="Sync queue unavailable")
    else:
        job = installation_service.get_latest_installation_job(db, shop)

    if job is None:
        return {"status": "none", "shop": shop}
    return {**installation_service.serialize_job(job), "created": created}


@router.get("/installation-status/{job_id}")
def installation_status(job_id: str, db: Session = Depends(get_db)):
    status = installation_service.get_installation_status(db, job_id)
    if status is None:
        raise HTTPException(status_code=404, detail="job not found")
    return status


''' manual "sync products" button '''
@router.post("/sync-products", status_code=202)
def sync_products(
    shop: str = Query(...),
    force: bool = Query(False),
    db: Session = Depends(get_db),
    enqueue: Enqueue = Depends(get_enqueue),
):
    shop = _require_shop(shop)
    try:
        handle = installation_service.trigger_full_sync(db, shop, force=force, enqueue=enqueue)
    except KombuOperationalError:
        raise HTTPException(status_code=503, detail="Sync queue unavailable")
    return {"success": True, "jobId": handle.job_id, "taskId": handle.task_id}


@router.get("/sync-logs")
def sync_logs(shop: str = Query(...), limit: int = Query(20, ge=1, le=200), db: Session = Depends(get_db)):
    shop = _require_shop(shop)
    rows = sync_log_repo.list_sync_logs(db, shop, limit=limit)
    return {"shop": shop, "items": [row_to_dict(r, SYNC_LOG_COLUMNS) for r in rows]}
