# Celery application: one full-sync worker queue

from celery import Celery
from kombu import Exchange, Queue
from aisummary.core.config import settings
from aisummary.core.logging import configure_logging

configure_logging()


'''
Celery app
   - Worker: `celery -A aisummary.core.celery_app worker -Q sync --concurrency=1`
   - one full pass at a time per worker: bounds load on Shopify and on the generation service
'''
celery_app = Celery(
    "ai_product_summary",
    broker=settings.CELERY_BROKER_URL,          # queue (Redis)
    backend=settings.CELERY_RESULT_BACKEND,     # results / PROGRESS state (Redis)
    include=[
        # register task modules at worker start
        "aisummary.orchestration.product_sync.product_sync_task",    # installation / manual full sync
    ],
)


'''
  Common Celery config
'''
celery_app.conf.update(
    timezone=settings.CELERY_TIMEZONE,
    enable_utc=True,
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    task_track_started=True,                     # STARTED state, then PROGRESS from the task
    broker_connection_retry_on_startup=True,
    # === fault tolerance ===
    worker_concurrency=1,            # one job per worker process
    worker_prefetch_multiplier=1,    # never reserve a second job
    task_acks_late=True,             # ack after the pass, a crashed worker re-delivers
    task_reject_on_worker_lost=True,
    broker_heartbeat=30,
    broker_pool_limit=10,
    result_expires=60 * 60 * 24,     # status polling reads the job table, results are only a debug aid
)


celery_app.conf.task_default_queue = settings.SYNC_QUEUE
celery_app.conf.task_queues = (
    Queue(settings.SYNC_QUEUE, Exchange(settings.SYNC_QUEUE), routing_key=settings.SYNC_QUEUE),
)


'''
routing: full-sync tasks -> sync queue
'''
celery_app.conf.task_routes = {
    "aisummary.orchestration.product_sync.product_sync_task.run_installation_sync": {"queue": settings.SYNC_QUEUE},
}
