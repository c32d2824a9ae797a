"""
Event handlers: one plain function per event type, routed by dispatch().
Each returns a small JSON-ready dict that the webhook route echoes back.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Optional

from sqlalchemy.orm import Session

from aisummary.core.config import settings
from aisummary.ingress.events import (
    AppInstalled,
    AppUninstalled,
    ComplianceEvent,
    ProductDeleted,
    ProductUpserted,
    ScopesUpdated,
    WebhookEvent,
)
from aisummary.orchestration.product_sync.product_sync_task import enqueue_installation_sync
from aisummary.orchestration.product_sync.sync_orchestrator import SyncOrchestrator
from aisummary.repository import installation_job_repo, product_repo, summary_repo, sync_log_repo
from aisummary.services.installation_service import Enqueue, trigger_full_sync
from aisummary.services.job_tracker import JobTracker
from aisummary.services.summary_generator import SummaryGenerator


logger = logging.getLogger(__name__)

GeneratorFactory = Callable[[], SummaryGenerator]


def purge_shop_data(db: Session, shop: str) -> Dict[str, int]:
    """Remove everything stored for a shop (uninstall with purge, shop/redact)."""
    counts = {
        "products": product_repo.delete_all(db, shop),
        "summaries": summary_repo.delete_all(db, shop),
        "syncLogs": sync_log_repo.delete_all(db, shop),
        "jobs": installation_job_repo.delete_for_shop(db, shop),
    }
    logger.info("ingress.purge shop=%s counts=%s", shop, counts)
    return counts


# ---------- app lifecycle ----------
def handle_app_installed(db: Session, event: AppInstalled, *, enqueue: Enqueue) -> Dict[str, Any]:
    handle = trigger_full_sync(db, event.shop, event.access_token, enqueue=enqueue)
    return {"action": "sync_triggered", "jobId": handle.job_id, "taskId": handle.task_id}


def handle_app_uninstalled(db: Session, event: AppUninstalled) -> Dict[str, Any]:
    terminated = JobTracker(db).terminate_active_for_shop(event.shop)
    result: Dict[str, Any] = {"action": "uninstalled", "terminatedJobs": terminated}
    if settings.PURGE_ON_UNINSTALL:
        result["purged"] = purge_shop_data(db, event.shop)
    logger.info("ingress.uninstalled shop=%s terminated=%s purge=%s",
                event.shop, len(terminated), settings.PURGE_ON_UNINSTALL)
    return result


def handle_scopes_updated(db: Session, event: ScopesUpdated) -> Dict[str, Any]:
    added = sorted(set(event.current) - set(event.previous))
    removed = sorted(set(event.previous) - set(event.current))
    logger.info("ingress.scopes_update shop=%s added=%s removed=%s", event.shop, added, removed)
    return {"action": "scopes_logged", "added": added, "removed": removed}


# ---------- products ----------
def handle_product_upserted(db: Session, event: ProductUpserted, *, generator_factory: GeneratorFactory) -> Dict[str, Any]:
    orchestrator = SyncOrchestrator(db, generator_factory(), delay_ms=0)
    outcome = orchestrator.sync_product(event.shop, event.product)
    return {"action": "product_synced", "productId": event.product["shopify_product_id"], "summary": outcome}


def handle_product_deleted(db: Session, event: ProductDeleted, *, generator_factory: GeneratorFactory) -> Dict[str, Any]:
    orchestrator = SyncOrchestrator(db, generator_factory(), delay_ms=0)
    deleted = orchestrator.delete_product(event.shop, event.shopify_product_id)
    return {"action": "product_deleted", "productId": event.shopify_product_id, "deleted": deleted}


# ---------- compliance (GDPR) ----------
def handle_compliance(db: Session, event: ComplianceEvent) -> Dict[str, Any]:
    # no customer data is stored: data_request / customers/redact are acknowledged only
    if event.topic == "shop/redact":
        return {"action": "shop_redacted", "purged": purge_shop_data(db, event.shop)}
    logger.info("ingress.compliance shop=%s topic=%s acknowledged", event.shop, event.topic)
    return {"action": "acknowledged", "topic": event.topic}


def dispatch(
    db: Session,
    event: WebhookEvent,
    *,
    generator_factory: Optional[GeneratorFactory] = None,
    enqueue: Enqueue = enqueue_installation_sync,
) -> Dict[str, Any]:
    generator_factory = generator_factory or SummaryGenerator

    if isinstance(event, AppInstalled):
        return handle_app_installed(db, event, enqueue=enqueue)
    if isinstance(event, AppUninstalled):
        return handle_app_uninstalled(db, event)
    if isinstance(event, ScopesUpdated):
        return handle_scopes_updated(db, event)
    if isinstance(event, ProductUpserted):
        return handle_product_upserted(db, event, generator_factory=generator_factory)
    if isinstance(event, ProductDeleted):
        return handle_product_deleted(db, event, generator_factory=generator_factory)
    if isinstance(event, ComplianceEvent):
        return handle_compliance(db, event)
    raise TypeError(f"unhandled event type: {type(event).__name__}")
