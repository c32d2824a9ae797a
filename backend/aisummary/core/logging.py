import logging
import sys
from typing import Optional

from aisummary.core.config import settings

# event-style messages ("sync.full.done shop=... job_id=..."), one line each
LOG_FORMAT = "%(asctime)s | %(levelname)s | %(processName)s | %(name)s | %(message)s"

# chatty at INFO: HTTP connection pools, Celery's per-task trace lines
QUIET_LOGGERS = ("urllib3", "httpx", "celery.app.trace")


def configure_logging(level: Optional[str] = None) -> logging.Logger:
    """
    Root logger setup shared by the API process, the Celery worker and the scripts.
    Uvicorn installs its handlers before importing the app; then only the level is applied.
    """
    resolved_level = (level or settings.LOG_LEVEL or "INFO").upper()
    root_logger = logging.getLogger()

    if not root_logger.handlers:
        logging.basicConfig(
            level=resolved_level,
            format=LOG_FORMAT,
            handlers=[logging.StreamHandler(sys.stdout)],
        )
    else:
        root_logger.setLevel(resolved_level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(logging.WARNING, root_logger.level))

    logging.captureWarnings(True)
    return logging.getLogger("aisummary")
