"""
Identity delegates: the platforms that own account credentials.

A password reset never writes a credential itself; it asks the configured
delegate to look up the account and overwrite its password.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional

from sqlalchemy.orm import Session

from app.core.exceptions import AccountNotFound, WeakCredential
from app.core.security import get_password_hash, password_policy_violation, verify_password
from app.models.account import Account

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AccountHandle:
    """Reference to an account on the identity platform"""
    uid: str
    email: str


class IdentityDelegate(ABC):
    """Platform that owns account credentials"""

    @abstractmethod
    def get_account(self, recipient: str) -> Optional[AccountHandle]:
        """
        Return the account for a recipient identifier, or None if there is none.

        Raises:
            IdentityUnavailable: The platform could not be queried
        """

    @abstractmethod
    def update_credential(self, account: AccountHandle, new_credential: str) -> None:
        """
        Overwrite the account's password.

        Raises:
            AccountNotFound: The account disappeared since it was looked up
            WeakCredential: The platform's password policy rejected the credential
            ProviderRateLimited: The platform is throttling credential updates
            CredentialUpdateFailed: Any other refusal from the platform
        """


class LocalIdentityDelegate(IdentityDelegate):
    """
    Accounts stored in our own database.

    Each call opens its own session so the delegate can be shared between
    request threads.
    """

    def __init__(self, session_factory: Callable[[], Session]):
        self.session_factory = session_factory

    def get_account(self, recipient: str) -> Optional[AccountHandle]:
        db = self.session_factory()
        try:
            account = db.query(Account).filter(
                Account.email == recipient,
                Account.is_active == True
            ).first()
            if account is None:
                return None
            return AccountHandle(uid=str(account.id), email=account.email)
        finally:
            db.close()

    def update_credential(self, account: AccountHandle, new_credential: str) -> None:
        violation = password_policy_violation(new_credential)
        if violation:
            raise WeakCredential(violation, recipient=account.email)

        db = self.session_factory()
        try:
            record = db.query(Account).filter(Account.email == account.email).first()
            if record is None:
                raise AccountNotFound(account.email)

            record.hashed_password = get_password_hash(new_credential)
            record.password_changed_at = datetime.now(timezone.utc)
            db.commit()
            logger.info(f"Password updated for local account {account.email}")
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def verify_credential(self, email: str, password: str) -> bool:
        """Check a login attempt against the stored hash"""
        db = self.session_factory()
        try:
            account = db.query(Account).filter(
                Account.email == email,
                Account.is_active == True
            ).first()
            if account is None:
                return False
            return verify_password(password, account.hashed_password)
        finally:
            db.close()
