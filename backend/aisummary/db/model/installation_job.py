
from __future__ import annotations
from typing import Optional, List, Dict, Any
from datetime import datetime

from sqlalchemy import DateTime, String, Integer, Index, Text, text
from sqlalchemy.orm import Mapped, mapped_column
from aisummary.db.base import Base, JSONDocument


JOB_PENDING = "pending"
JOB_PROCESSING = "processing"
JOB_COMPLETED = "completed"
JOB_FAILED = "failed"

TERMINAL_STATUSES = frozenset({JOB_COMPLETED, JOB_FAILED})
ACTIVE_STATUSES = frozenset({JOB_PENDING, JOB_PROCESSING})


"""
  Install / full-sync job, lifecycle: pending -> processing -> completed | failed
  Job history is append-only per shop; the most recently created job is the authoritative one.
"""
class InstallationJob(Base):

    __tablename__ = "installation_jobs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    job_id:   Mapped[str] = mapped_column(String(255), unique=True, nullable=False)  # install-{shop}-{ms}-{hex}
    shop_url: Mapped[str] = mapped_column(String(255), nullable=False)
    status:   Mapped[str] = mapped_column(String(16), nullable=False, server_default=text("'pending'"))

    # counters
    total_products:      Mapped[int] = mapped_column(Integer, nullable=False, server_default=text("0"))
    products_processed:  Mapped[int] = mapped_column(Integer, nullable=False, server_default=text("0"))
    summaries_generated: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text("0"))
    progress_percentage: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text("0"))   # 0..100

    error_message: Mapped[Optional[str]]                  = mapped_column(Text)
    errors:        Mapped[Optional[List[Dict[str, Any]]]] = mapped_column(JSONDocument)   # [{product_id, product_title, error}]

    # timeline
    created_at:   Mapped[datetime]           = mapped_column(DateTime(timezone=True), nullable=False)   # set on insert only
    updated_at:   Mapped[datetime]           = mapped_column(DateTime(timezone=True), nullable=False)
    started_at:   Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    __table_args__ = (Index("idx_installation_jobs_shop_created", "shop_url", "created_at"),)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES
