from __future__ import annotations
from datetime import datetime, timezone


def now_utc() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)  # naive UTC, matches what the DB stores


def epoch_ms() -> int:
    return int(datetime.now(timezone.utc).timestamp() * 1000)
