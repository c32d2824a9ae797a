# shared route dependencies (overridable in tests through app.dependency_overrides)

from __future__ import annotations

from aisummary.orchestration.product_sync.product_sync_task import enqueue_installation_sync
from aisummary.services.installation_service import Enqueue
from aisummary.services.summary_generator import SummaryGenerator
from aisummary.ingress.handlers import GeneratorFactory


def get_generator_factory() -> GeneratorFactory:
    return SummaryGenerator


def get_enqueue() -> Enqueue:
    return enqueue_installation_sync


def normalize_shop_param(shop: str) -> str:
    return (shop or "").strip().lower()
