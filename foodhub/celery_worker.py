"""
Celery Worker Configuration
Sets up Celery with Redis as message broker and result backend.

Run with:
    celery -A foodhub.celery_worker.celery_app worker --loglevel=info
"""

from celery import Celery

from foodhub.core.config import get_settings

settings = get_settings()

celery_app = Celery(
    'foodhub_worker',
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=['foodhub.tasks']
)

celery_app.conf.update(
    task_serializer='json',
    accept_content=['json'],
    result_serializer='json',
    timezone='UTC',
    enable_utc=True,

    # Ledger writes are serialized by a file lock anyway
    worker_prefetch_multiplier=1,
    worker_concurrency=4,

    result_expires=3600,

    task_acks_late=True,
    task_reject_on_worker_lost=True,

    broker_connection_retry_on_startup=True,
)


if __name__ == '__main__':
    celery_app.start()
