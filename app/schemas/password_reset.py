"""
Pydantic schemas for the password reset endpoints.
"""

from pydantic import BaseModel, EmailStr, Field, field_validator
import re


def _validate_code_format(v: str) -> str:
    if not re.match(r'^\d{6}$', v):
        raise ValueError('Code must be exactly 6 digits')
    return v


class ForgotPasswordRequest(BaseModel):
    """Request a password reset code"""
    email: EmailStr


class VerifyResetCodeRequest(BaseModel):
    """Check a reset code before asking for the new password"""
    email: EmailStr
    code: str = Field(..., min_length=6, max_length=6, description="6-digit reset code")

    @field_validator('code')
    @classmethod
    def validate_code_format(cls, v: str) -> str:
        """Ensure code is exactly 6 digits"""
        return _validate_code_format(v)


class ResetPasswordRequest(BaseModel):
    """Apply a new password using a reset code"""
    email: EmailStr
    code: str = Field(..., min_length=6, max_length=6, description="6-digit reset code")
    new_password: str = Field(..., min_length=1, max_length=128)

    @field_validator('code')
    @classmethod
    def validate_code_format(cls, v: str) -> str:
        return _validate_code_format(v)


class ForgotPasswordResponse(BaseModel):
    """Same response whether or not the email belongs to an account"""
    success: bool = True
    message: str
    expires_in_minutes: int = 10


class VerifyResetCodeResponse(BaseModel):
    valid: bool


class ResetPasswordResponse(BaseModel):
    success: bool
    message: str
