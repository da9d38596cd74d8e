"""
Password reset error taxonomy.

Validation outcomes (not found, expired, mismatch) are reported through
VerificationStatus and never raised. The exceptions below cover the failures
of the collaborators around the code store: bad input to issue(), the identity
platform, and outbound delivery.
"""

import enum
import logging
from typing import Optional
from fastapi import Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class VerificationStatus(str, enum.Enum):
    """Outcome of checking a supplied code against the stored one"""
    VALID = "valid"
    CODE_NOT_FOUND = "code_not_found"
    CODE_EXPIRED = "code_expired"
    CODE_MISMATCH = "code_mismatch"


class PasswordResetError(Exception):
    """Base class for failures in the password reset workflow"""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_code: str = "PASSWORD_RESET_ERROR"

    def __init__(self, message: str, recipient: Optional[str] = None):
        self.message = message
        self.recipient = recipient
        super().__init__(message)


class InvalidRecipient(PasswordResetError):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    error_code = "INVALID_RECIPIENT"

    def __init__(self, message: str = "Recipient identifier must be a non-empty string"):
        super().__init__(message)


class AccountNotFound(PasswordResetError):
    status_code = status.HTTP_404_NOT_FOUND
    error_code = "ACCOUNT_NOT_FOUND"

    def __init__(self, recipient: str, message: str = "No account found for this email"):
        super().__init__(message, recipient=recipient)


class DeliveryFailed(PasswordResetError):
    """
    The code was issued but could not be delivered.

    The code stays valid, so callers may retry delivery or issue a new one.
    """
    status_code = status.HTTP_502_BAD_GATEWAY
    error_code = "DELIVERY_FAILED"

    def __init__(self, recipient: str, code: str, message: str = "Failed to deliver verification code"):
        super().__init__(message, recipient=recipient)
        self.code = code


class IdentityUnavailable(PasswordResetError):
    """The identity platform could not be reached to look up the account"""
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    error_code = "IDENTITY_UNAVAILABLE"


class CredentialUpdateFailed(PasswordResetError):
    """The identity platform refused to apply the new credential"""
    status_code = status.HTTP_502_BAD_GATEWAY
    error_code = "CREDENTIAL_UPDATE_FAILED"


class WeakCredential(CredentialUpdateFailed):
    status_code = status.HTTP_400_BAD_REQUEST
    error_code = "WEAK_CREDENTIAL"


class ProviderRateLimited(CredentialUpdateFailed):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    error_code = "PROVIDER_RATE_LIMITED"


async def password_reset_error_handler(request: Request, exc: PasswordResetError) -> JSONResponse:
    """Render a PasswordResetError with its status and machine readable code"""
    logger.warning(f"{exc.error_code} on {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "error_code": exc.error_code}
    )
