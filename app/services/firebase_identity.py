"""
Firebase Authentication identity delegate.

Accounts are owned by Firebase; password resets are applied with the Admin SDK.
"""

import logging
from typing import Optional

import firebase_admin
from firebase_admin import auth, credentials
from firebase_admin.exceptions import FirebaseError, InvalidArgumentError, ResourceExhaustedError

from app.core.config import settings
from app.core.exceptions import (
    AccountNotFound,
    CredentialUpdateFailed,
    IdentityUnavailable,
    ProviderRateLimited,
    WeakCredential,
)
from app.services.identity_service import AccountHandle, IdentityDelegate

logger = logging.getLogger(__name__)


def get_firebase_app() -> firebase_admin.App:
    """
    Get or initialize the Firebase Admin app.

    Uses the service account fields from settings when they are all present,
    otherwise falls back to application default credentials.
    """
    try:
        return firebase_admin.get_app()
    except ValueError:
        pass

    options = {}
    if settings.FIREBASE_STORAGE_BUCKET:
        options['storageBucket'] = settings.FIREBASE_STORAGE_BUCKET

    if settings.FIREBASE_PROJECT_ID and settings.FIREBASE_CLIENT_EMAIL and settings.FIREBASE_PRIVATE_KEY:
        cred = credentials.Certificate({
            "type": "service_account",
            "project_id": settings.FIREBASE_PROJECT_ID,
            "client_email": settings.FIREBASE_CLIENT_EMAIL,
            # Keys pasted into .env files usually carry escaped newlines
            "private_key": settings.FIREBASE_PRIVATE_KEY.replace("\\n", "\n"),
            "token_uri": "https://oauth2.googleapis.com/token",
        })
        logger.info(f"Initializing Firebase app for project {settings.FIREBASE_PROJECT_ID}")
        return firebase_admin.initialize_app(credential=cred, options=options or None)

    logger.warning("Firebase service account not configured, using application default credentials")
    return firebase_admin.initialize_app(options=options or None)


class FirebaseIdentityDelegate(IdentityDelegate):
    """Accounts managed by Firebase Authentication"""

    def __init__(self, app: Optional[firebase_admin.App] = None):
        self.app = app

    def get_account(self, recipient: str) -> Optional[AccountHandle]:
        try:
            user = auth.get_user_by_email(recipient, app=self.app)
        except auth.UserNotFoundError:
            return None
        except ValueError:
            # Malformed email; Firebase cannot hold an account for it
            return None
        except FirebaseError as e:
            logger.error(f"Firebase account lookup failed for {recipient}: {e.code} - {e}")
            raise IdentityUnavailable("Account service is temporarily unavailable. Please try again", recipient=recipient)
        return AccountHandle(uid=user.uid, email=user.email or recipient)

    def update_credential(self, account: AccountHandle, new_credential: str) -> None:
        try:
            auth.update_user(account.uid, password=new_credential, app=self.app)
        except auth.UserNotFoundError:
            raise AccountNotFound(account.email)
        except ValueError as e:
            # The SDK rejects passwords shorter than 6 characters before calling the API
            raise WeakCredential(str(e), recipient=account.email)
        except InvalidArgumentError as e:
            raise WeakCredential(str(e), recipient=account.email)
        except ResourceExhaustedError as e:
            logger.warning(f"Firebase throttled password update for {account.email}: {e}")
            raise ProviderRateLimited("Too many password updates. Please try again later", recipient=account.email)
        except FirebaseError as e:
            logger.error(f"Firebase rejected password update for {account.email}: {e.code} - {e}")
            raise CredentialUpdateFailed("Failed to update password", recipient=account.email)

        logger.info(f"Password updated in Firebase for {account.email} (uid {account.uid})")
