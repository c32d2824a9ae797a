# Aggregate every model so Alembic / create_all can discover them

from .product import (
    Product,
    AISummary,
    SyncLog,
)

from .installation_job import InstallationJob

__all__ = [
    "Product", "AISummary", "SyncLog",
    "InstallationJob",
]
