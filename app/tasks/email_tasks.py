"""
Celery tasks for email operations.

Retries delivery of password reset codes whose first, synchronous delivery
attempt failed. The code stays valid in the API process while this runs.
"""

import logging
from app.core.celery_app import celery_app
from app.services.email_service import email_service

logger = logging.getLogger(__name__)


class EmailDeliveryError(Exception):
    pass


@celery_app.task(
    bind=True,
    name="app.tasks.email_tasks.send_password_reset_code_task",
    max_retries=3,
    default_retry_delay=30,
    autoretry_for=(EmailDeliveryError,),
    retry_backoff=True,
    retry_backoff_max=240,  # Stay well inside the code's 10 minute lifetime
    retry_jitter=True
)
def send_password_reset_code_task(self, to_email: str, reset_code: str):
    """
    Celery task to deliver a password reset code.

    Features:
    - Automatic retry on failure (up to 3 attempts)
    - Exponential backoff with jitter

    The worker cannot see the API process's code store. If the user requests
    a new code before a retry runs, the retry still emails the old code, which
    no longer validates. The newer code is delivered by its own request.

    Args:
        to_email: Recipient email address
        reset_code: Code already issued for the recipient

    Raises:
        EmailDeliveryError: If sending fails (triggers a retry)
    """
    logger.info(f"Retrying password reset code delivery to {to_email} (attempt {self.request.retries + 1})")

    success = email_service.send_password_reset_code(to_email=to_email, reset_code=reset_code)

    if not success:
        if self.request.retries >= self.max_retries:
            logger.error(f"All retry attempts exhausted for {to_email}")
        raise EmailDeliveryError(f"Failed to send password reset code to {to_email}")

    logger.info(f"Password reset code delivered to {to_email}")
    return {"status": "success", "email": to_email}
