"""
Password hashing and password policy for locally stored accounts.

Passwords are hashed using bcrypt.
"""

import re
from typing import Optional
from passlib.context import CryptContext

# Password hashing context (bcrypt)
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

PASSWORD_MIN_LENGTH = 8
PASSWORD_MAX_LENGTH = 72  # bcrypt limit
SPECIAL_CHARACTERS = r'[!@#$%^&*(),.?":{}|<>]'


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a plain password against a hashed password."""
    # Bcrypt has a 72-byte limit - truncate if necessary
    password_bytes = plain_password.encode('utf-8')[:72]
    return pwd_context.verify(password_bytes, hashed_password)


def get_password_hash(password: str) -> str:
    """
    Hash a password using bcrypt.

    Note: Bcrypt has a 72-byte limit. Passwords longer than 72 bytes
    are automatically truncated to comply with this limitation.
    """
    password_bytes = password.encode('utf-8')[:72]
    return pwd_context.hash(password_bytes)


def password_policy_violation(password: str) -> Optional[str]:
    """
    Check a password against the account password policy.

    Returns:
        Optional[str]: Description of the first violated rule, or None if the password is acceptable
    """
    if len(password) < PASSWORD_MIN_LENGTH:
        return f'Password must be at least {PASSWORD_MIN_LENGTH} characters long'
    if len(password) > PASSWORD_MAX_LENGTH:
        return f'Password cannot exceed {PASSWORD_MAX_LENGTH} characters (bcrypt limitation)'
    if not re.search(r'[a-z]', password):
        return 'Password must contain at least one lowercase letter'
    if not re.search(r'[A-Z]', password):
        return 'Password must contain at least one uppercase letter'
    if not re.search(r'\d', password):
        return 'Password must contain at least one number'
    if not re.search(SPECIAL_CHARACTERS, password):
        return 'Password must contain at least one special character (!@#$%^&*(),.?":{}|<>)'
    return None
