"""
Password reset endpoints.

Implements the code-based reset flow used by the mobile app:
- POST /forgot-password: Issue a 6-digit code and email it
- POST /verify-reset-code: Check a code before showing the new password form
- POST /reset-password: Apply a new password and consume the code

forgot-password and verify-reset-code answer identically whether or not the
email belongs to an account, so they cannot be used to enumerate users.
"""

import logging
from fastapi import APIRouter, HTTPException, Depends, status

from app.core.celery_utils import queue_task_safely
from app.core.deps import get_verification_manager
from app.core.exceptions import (
    DeliveryFailed,
    VerificationStatus,
)
from app.core.rate_limiter import (
    check_forgot_password_limit,
    check_reset_code_attempt_limit,
    clear_reset_code_attempts,
)
from app.core.verification import VerificationCodeManager
from app.schemas.password_reset import (
    ForgotPasswordRequest,
    ForgotPasswordResponse,
    VerifyResetCodeRequest,
    VerifyResetCodeResponse,
    ResetPasswordRequest,
    ResetPasswordResponse,
)
from app.tasks.email_tasks import send_password_reset_code_task

router = APIRouter(prefix="/auth", tags=["Password Reset"])
logger = logging.getLogger(__name__)


@router.post("/forgot-password", response_model=ForgotPasswordResponse)
def forgot_password(
    request: ForgotPasswordRequest,
    manager: VerificationCodeManager = Depends(get_verification_manager)
):
    """
    Send a password reset code.

    Issues a new code (invalidating any earlier one) and emails it. If the
    email cannot be sent right away, delivery is retried in the background
    with the same code.

    Rate limit: 3 requests per 10 minutes per email.

    Raises:
        DeliveryFailed: 502 when the email could neither be sent nor queued
            for retry. The issued code stays valid.
    """
    check_forgot_password_limit(request.email)

    try:
        manager.issue_and_deliver(request.email)
    except DeliveryFailed as e:
        queued = queue_task_safely(
            send_password_reset_code_task,
            to_email=e.recipient,
            reset_code=e.code
        )
        if not queued:
            # Nothing will reach the user; rendered as 502 by password_reset_error_handler
            logger.error(f"Reset code for {e.recipient} could not be delivered or queued for retry")
            raise

    return ForgotPasswordResponse(
        success=True,
        message="If an account with that email exists, a password reset code has been sent.",
        expires_in_minutes=int(manager.ttl.total_seconds() // 60)
    )


@router.post("/verify-reset-code", response_model=VerifyResetCodeResponse)
def verify_reset_code(
    request: VerifyResetCodeRequest,
    manager: VerificationCodeManager = Depends(get_verification_manager)
):
    """
    Check a reset code without consuming it.

    Rate limit: 10 attempts per 10 minutes per email (shared with reset-password).
    """
    check_reset_code_attempt_limit(request.email)

    outcome = manager.check(request.email, request.code)
    if outcome is not VerificationStatus.VALID:
        logger.info(f"Reset code check failed for {request.email}: {outcome.value}")

    return VerifyResetCodeResponse(valid=outcome is VerificationStatus.VALID)


@router.post("/reset-password", response_model=ResetPasswordResponse)
def reset_password(
    request: ResetPasswordRequest,
    manager: VerificationCodeManager = Depends(get_verification_manager)
):
    """
    Reset password using a reset code.

    The code is consumed only when the new password has been applied. If the
    password is rejected the same code can be used again until it expires.

    Raises:
        HTTPException 400: Invalid or expired code
        HTTPException 429: Rate limit exceeded
        PasswordResetError: No account (404), password rejected by policy (400),
            identity platform throttling (429), unreachable (503) or failure (502)
    """
    check_reset_code_attempt_limit(request.email)

    # PasswordResetError subclasses are rendered by password_reset_error_handler
    outcome = manager.reset_credential(request.email, request.code, request.new_password)

    if outcome is VerificationStatus.CODE_EXPIRED:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Reset code has expired. Please request a new code."
        )
    if outcome is not VerificationStatus.VALID:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid or expired reset code"
        )

    clear_reset_code_attempts(request.email)

    return ResetPasswordResponse(
        success=True,
        message="Password has been reset successfully. You can now login with your new password."
    )
