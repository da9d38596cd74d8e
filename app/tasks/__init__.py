"""
Celery tasks package.

Tasks are organized by domain:
- email_tasks: Background retries of password reset code delivery
"""

from app.tasks import email_tasks

__all__ = ["email_tasks"]
