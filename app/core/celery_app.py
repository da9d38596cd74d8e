"""
Celery application for the Elite Glam worker.

Redis is both broker and result backend. The worker only retries delivery of
reset code emails; the codes themselves live in the API process.

Run with:
    celery -A app.core.celery_app worker -Q email --loglevel=info
"""

from celery import Celery
from celery.signals import setup_logging as celery_setup_logging
from app.core.config import settings
from app.core.logging_config import setup_logging

celery_app = Celery(
    "elite_glam_worker",
    broker=settings.REDIS_URL,
    backend=settings.REDIS_URL,
    include=["app.tasks.email_tasks"]
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,

    # Reset code emails are short; give up long before the code expires
    task_time_limit=60,
    task_soft_time_limit=45,
    result_expires=600,

    task_routes={
        "app.tasks.email_tasks.*": {"queue": "email"},
    },
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    broker_connection_retry_on_startup=True,
)


@celery_setup_logging.connect
def configure_worker_logging(**kwargs):
    """Use the API's log format in the worker instead of Celery's default"""
    setup_logging(
        log_level=settings.LOG_LEVEL,
        json_logs=settings.JSON_LOGS,
        service="elite-glam-worker"
    )
