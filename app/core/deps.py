"""
FastAPI dependencies and construction of the password reset collaborators.
"""

import logging
from datetime import timedelta
from fastapi import Request

from app.core.config import settings
from app.core.verification import VerificationCodeManager
from app.services.email_service import email_service
from app.services.identity_service import IdentityDelegate, LocalIdentityDelegate

logger = logging.getLogger(__name__)


def build_identity_delegate() -> IdentityDelegate:
    """Create the identity delegate selected by IDENTITY_BACKEND"""
    if settings.IDENTITY_BACKEND == "local":
        from app.core.database import SessionLocal, init_db

        init_db()
        logger.info("Using local account database for credentials")
        return LocalIdentityDelegate(SessionLocal)

    from app.services.firebase_identity import FirebaseIdentityDelegate, get_firebase_app

    logger.info("Using Firebase Authentication for credentials")
    return FirebaseIdentityDelegate(get_firebase_app())


def build_verification_manager() -> VerificationCodeManager:
    return VerificationCodeManager(
        identity=build_identity_delegate(),
        sender=email_service,
        ttl=timedelta(minutes=settings.RESET_CODE_TTL_MINUTES),
        sweep_interval_seconds=settings.RESET_CODE_SWEEP_INTERVAL_SECONDS,
    )


def get_verification_manager(request: Request) -> VerificationCodeManager:
    """
    The process-wide code manager created during application startup.

    Used in endpoints with Depends(get_verification_manager).
    """
    return request.app.state.verification_manager
