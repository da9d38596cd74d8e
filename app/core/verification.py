"""
Core password reset code logic.

Handles generation, validation, and single-use consumption of 6-digit reset codes.

Codes live in process memory only: a restart drops every outstanding code, and
each API worker process has its own store.
"""

import hmac
import heapq
import itertools
import logging
import secrets
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Iterator, List, Optional, Tuple

from app.core.exceptions import (
    AccountNotFound,
    DeliveryFailed,
    InvalidRecipient,
    VerificationStatus,
)
from app.services.email_service import NotificationSender
from app.services.identity_service import IdentityDelegate

logger = logging.getLogger(__name__)


CODE_EXPIRATION_MINUTES = 10
CODE_MIN = 100000
CODE_MAX = 999999
SWEEP_INTERVAL_SECONDS = 60


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def generate_reset_code() -> str:
    """
    Generate a 6-digit reset code.

    Uses the secrets module so codes cannot be predicted from earlier ones.
    The range is 100000-999999, so the first digit is never zero.

    Returns:
        str: 6-digit numeric code (e.g., "483920")
    """
    return str(CODE_MIN + secrets.randbelow(CODE_MAX - CODE_MIN + 1))


@dataclass(frozen=True)
class VerificationEntry:
    """A live reset code for one recipient"""
    recipient: str
    code: str
    issued_at: datetime
    expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at


class VerificationCodeManager:
    """
    Issues, checks and consumes password reset codes.

    - At most one live code per recipient; issuing again replaces the old code
    - Codes expire after the TTL (checked on lookup and by a periodic sweep)
    - validate() never consumes; reset_credential() consumes on success only
    - The check/consume path is serialized per recipient, so two concurrent
      resets with the same code cannot both succeed

    The identity delegate and the notification sender are only called by
    reset_credential() and issue_and_deliver() respectively. issue() and
    validate() never look up accounts, so they answer the same way for
    unknown recipients.
    """

    def __init__(
        self,
        identity: IdentityDelegate,
        sender: NotificationSender,
        ttl: timedelta = timedelta(minutes=CODE_EXPIRATION_MINUTES),
        sweep_interval_seconds: float = SWEEP_INTERVAL_SECONDS,
        clock: Callable[[], datetime] = utc_now,
        code_factory: Callable[[], str] = generate_reset_code,
    ):
        self.identity = identity
        self.sender = sender
        self.ttl = ttl
        self.sweep_interval_seconds = sweep_interval_seconds
        self._clock = clock
        self._code_factory = code_factory

        self._lock = threading.Lock()
        self._entries: Dict[str, VerificationEntry] = {}
        # (expires_at, sequence, entry); sequence breaks ties between equal expiries
        self._expiry_heap: List[Tuple[datetime, int, VerificationEntry]] = []
        self._sequence = itertools.count()
        # recipient -> [lock, number of threads holding or waiting for it]
        self._recipient_locks: Dict[str, list] = {}

        self._stop_event = threading.Event()
        self._sweeper: Optional[threading.Thread] = None

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def issue(self, recipient: str) -> str:
        """
        Issue a new code for a recipient.

        Replaces any code previously issued for the same recipient, even if it
        has not expired yet.

        Args:
            recipient: Identifier the code is bound to (usually an email)

        Returns:
            str: The new 6-digit code

        Raises:
            InvalidRecipient: If recipient is empty or not a string
        """
        if not isinstance(recipient, str) or not recipient.strip():
            raise InvalidRecipient()

        now = self._clock()
        entry = VerificationEntry(
            recipient=recipient,
            code=self._code_factory(),
            issued_at=now,
            expires_at=now + self.ttl,
        )

        with self._lock:
            superseded = recipient in self._entries
            self._entries[recipient] = entry
            heapq.heappush(self._expiry_heap, (entry.expires_at, next(self._sequence), entry))

        logger.info(
            f"Reset code issued for {recipient} "
            f"(expires at {entry.expires_at.isoformat()}, replaced previous: {superseded})"
        )
        return entry.code

    def issue_and_deliver(self, recipient: str) -> str:
        """
        Issue a code and send it to the recipient.

        Returns:
            str: The issued code

        Raises:
            InvalidRecipient: If recipient is empty
            DeliveryFailed: If the sender could not deliver; the code stays valid
        """
        code = self.issue(recipient)

        try:
            delivered = self.sender.deliver(recipient, code)
        except Exception as e:
            logger.error(f"Notification sender raised while delivering to {recipient}: {e}")
            raise DeliveryFailed(recipient, code) from e

        if not delivered:
            logger.warning(f"Reset code for {recipient} issued but not delivered")
            raise DeliveryFailed(recipient, code)

        return code

    def check(self, recipient: str, supplied_code: str) -> VerificationStatus:
        """
        Check a supplied code without consuming it.

        An expired entry is removed as a side effect.
        """
        with self._recipient_lock(recipient):
            status, _ = self._lookup(recipient, supplied_code)
        return status

    def validate(self, recipient: str, supplied_code: str) -> bool:
        """Return True if supplied_code is the live code for recipient. Never consumes."""
        return self.check(recipient, supplied_code) is VerificationStatus.VALID

    def reset_credential(self, recipient: str, supplied_code: str, new_credential: str) -> VerificationStatus:
        """
        Apply a new credential if the supplied code is valid, then consume the code.

        Validation failures are returned, not raised. The code is consumed only
        after the identity platform accepted the new credential; if the
        platform rejects it the code stays live and the caller may retry.

        Args:
            recipient: Identifier the code was issued for
            supplied_code: Code entered by the user
            new_credential: New password to apply

        Returns:
            VerificationStatus: VALID on success, otherwise the validation failure

        Raises:
            AccountNotFound: Code was valid but no account exists for recipient
            IdentityUnavailable: The identity platform could not be queried
            CredentialUpdateFailed: Identity platform rejected the credential
        """
        with self._recipient_lock(recipient):
            status, entry = self._lookup(recipient, supplied_code)
            if status is not VerificationStatus.VALID:
                logger.info(f"Password reset rejected for {recipient}: {status.value}")
                return status

            account = self.identity.get_account(recipient)
            if account is None:
                logger.info(f"Password reset for {recipient}: no account found")
                raise AccountNotFound(recipient)

            self.identity.update_credential(account, new_credential)
            self._discard(entry)

        logger.info(f"Password reset completed for {recipient}")
        return VerificationStatus.VALID

    # ------------------------------------------------------------------
    # Expiry sweep and lifecycle
    # ------------------------------------------------------------------

    def sweep_expired(self) -> int:
        """
        Remove every expired entry.

        Returns:
            int: Number of entries removed
        """
        now = self._clock()
        removed = 0
        with self._lock:
            while self._expiry_heap and self._expiry_heap[0][0] <= now:
                _, _, entry = heapq.heappop(self._expiry_heap)
                # Superseded or consumed entries leave stale heap items behind
                if self._entries.get(entry.recipient) is entry:
                    del self._entries[entry.recipient]
                    removed += 1
        if removed:
            logger.debug(f"Swept {removed} expired reset codes")
        return removed

    def outstanding(self) -> int:
        """Number of stored codes, including expired ones not yet swept"""
        with self._lock:
            return len(self._entries)

    def start(self) -> None:
        """Start the background sweep thread (no-op if already running)"""
        with self._lock:
            if self._sweeper is not None and self._sweeper.is_alive():
                return
            self._stop_event.clear()
            self._sweeper = threading.Thread(
                target=self._run_sweeper,
                name="reset-code-sweeper",
                daemon=True,
            )
            self._sweeper.start()
        logger.info(f"Reset code sweeper started (every {self.sweep_interval_seconds}s)")

    def stop(self, timeout: float = 5.0) -> None:
        """Stop the background sweep thread and wait for it to exit"""
        self._stop_event.set()
        with self._lock:
            sweeper, self._sweeper = self._sweeper, None
        if sweeper is not None:
            sweeper.join(timeout)
            logger.info("Reset code sweeper stopped")

    def clear(self) -> None:
        """Drop every stored code"""
        with self._lock:
            self._entries.clear()
            self._expiry_heap.clear()

    @property
    def running(self) -> bool:
        sweeper = self._sweeper
        return sweeper is not None and sweeper.is_alive()

    def _run_sweeper(self) -> None:
        while not self._stop_event.wait(self.sweep_interval_seconds):
            self.sweep_expired()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _lookup(self, recipient: str, supplied_code: str) -> Tuple[VerificationStatus, Optional[VerificationEntry]]:
        now = self._clock()
        with self._lock:
            entry = self._entries.get(recipient)
            if entry is None:
                return VerificationStatus.CODE_NOT_FOUND, None

            if entry.is_expired(now):
                del self._entries[recipient]
                logger.info(f"Reset code for {recipient} expired at {entry.expires_at.isoformat()}")
                return VerificationStatus.CODE_EXPIRED, None

        # Issued "in the future" only happens if the clock moved backwards
        if now < entry.issued_at:
            return VerificationStatus.CODE_NOT_FOUND, None

        if not isinstance(supplied_code, str) or not hmac.compare_digest(
            entry.code.encode("utf-8"), supplied_code.encode("utf-8")
        ):
            return VerificationStatus.CODE_MISMATCH, entry

        return VerificationStatus.VALID, entry

    def _discard(self, entry: VerificationEntry) -> None:
        with self._lock:
            # A newer code issued while the credential was being updated survives
            if self._entries.get(entry.recipient) is entry:
                del self._entries[entry.recipient]

    @contextmanager
    def _recipient_lock(self, recipient: str) -> Iterator[None]:
        with self._lock:
            slot = self._recipient_locks.get(recipient)
            if slot is None:
                slot = self._recipient_locks[recipient] = [threading.Lock(), 0]
            slot[1] += 1
        try:
            with slot[0]:
                yield
        finally:
            with self._lock:
                slot[1] -= 1
                if slot[1] == 0:
                    del self._recipient_locks[recipient]
