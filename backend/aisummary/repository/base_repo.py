# shared repository helpers: shop scoping, dialect-aware upsert, storage error mapping

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from aisummary.core.errors import StorageError


logger = logging.getLogger(__name__)


def require_shop(shop: str) -> str:
    """
    Normalize the tenant key. Every scoped query goes through this first,
    so an empty shop never reaches SQL (it would match nothing or, worse, everything).
    """
    value = (shop or "").strip().lower()
    if not value:
        raise ValueError("shop is required for scoped storage access")
    return value


def dialect_insert(db: Session, model):
    """
    INSERT construct that supports ON CONFLICT DO UPDATE for the bound dialect.
    PostgreSQL in production, SQLite in tests.
    """
    name = db.get_bind().dialect.name
    if name == "postgresql":
        return postgresql.insert(model)
    if name == "sqlite":
        return sqlite.insert(model)
    raise StorageError(f"upsert not supported on dialect {name!r}")


@contextmanager
def storage_guard(db: Session, op: str) -> Iterator[None]:
    """
    Roll back and translate any SQLAlchemy failure into StorageError.
    No retry here; retry policy belongs to the caller.
    """
    try:
        yield
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("storage.error op=%s err=%s", op, type(e).__name__)
        raise StorageError(f"{op} failed: {e}") from e
