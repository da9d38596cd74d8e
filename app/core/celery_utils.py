"""
Helpers for handing work to the Celery worker from request handlers.

A request must never fail because the broker is down, so publishing is
bounded in time and reports failure instead of raising.
"""

import logging
from celery import Task
from kombu import Connection
from kombu.exceptions import KombuError
from app.core.config import settings

logger = logging.getLogger(__name__)

BROKER_CONNECT_TIMEOUT = 2
BROKER_MAX_RETRIES = 2


def _publish(task: Task, args: tuple, kwargs: dict) -> str:
    """
    Publish a task on a short-lived broker connection and return its id.

    Raises:
        KombuError / OSError: The broker could not be reached
    """
    with Connection(settings.REDIS_URL, connect_timeout=BROKER_CONNECT_TIMEOUT) as conn:
        conn.ensure_connection(max_retries=BROKER_MAX_RETRIES, interval_start=0, interval_step=0.2)
        result = task.apply_async(
            args=args,
            kwargs=kwargs,
            connection=conn,
            retry=True,
            retry_policy={
                'max_retries': BROKER_MAX_RETRIES,
                'interval_start': 0,
                'interval_step': 0.2,
                'interval_max': 0.5,
            }
        )
        return result.id


def queue_task_safely(task: Task, *args, **kwargs) -> bool:
    """
    Queue a Celery task without letting broker errors escape.

    Args:
        task: The Celery task to queue
        *args: Positional arguments for the task
        **kwargs: Keyword arguments for the task

    Returns:
        bool: True if the task reached the broker, False otherwise

    Example:
        queued = queue_task_safely(
            send_password_reset_code_task,
            to_email='user@example.com',
            reset_code='483920'
        )
    """
    try:
        task_id = _publish(task, args, kwargs)
    except (KombuError, OSError) as e:
        logger.error(f"Failed to queue task {task.name}: {e}")
        return False

    logger.info(f"Task {task.name} queued: {task_id}")
    return True
