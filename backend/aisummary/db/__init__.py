# Export surface, used by scripts / ad-hoc table creation

from .session import engine, SessionLocal, get_db, session_scope, dispose_engine
from aisummary.db.model import *  # register every model on Base.metadata
from .base import Base


# Development only; production uses Alembic migrations
"""
    Create tables on an empty database:
        python -c "from aisummary.db import create_all; create_all()"
    Use `alembic upgrade head` in production.
"""
def create_all() -> None:
    Base.metadata.create_all(bind=engine)
