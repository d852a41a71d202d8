"""Short-lived storage for email verification codes.

Stores are created by the application lifespan and kept on ``app.state``.
The in-memory store is enough for a single process; when Redis is
configured, codes are kept there so every instance sees them.
"""

from datetime import datetime, timedelta, timezone
from typing import Dict, Optional

from pydantic import BaseModel

from campusknot.utils.cache import RedisClient, evict, load_model, store_model
from campusknot.utils.logging import get_logger
from campusknot.utils.security import generate_verification_code

logger = get_logger(__name__)

VERIFICATION_CACHE_KEY = "verification:{email}"


def _now() -> datetime:
    return datetime.now(timezone.utc)


class PendingVerification(BaseModel):
    """A code sent to an email address, and whether it has been confirmed."""

    code: str
    expires_at: datetime
    verified: bool = False

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        return (now or _now()) > self.expires_at


class VerificationCodeStore:
    """In-process verification code store."""

    def __init__(self, ttl_seconds: int) -> None:
        self.ttl_seconds = ttl_seconds
        self._records: Dict[str, PendingVerification] = {}

    def issue(self, email: str) -> PendingVerification:
        """Create a fresh unconfirmed code for an email, replacing any previous one."""
        record = PendingVerification(
            code=generate_verification_code(),
            expires_at=_now() + timedelta(seconds=self.ttl_seconds),
        )
        self.save(email, record)
        return record

    def get(self, email: str) -> Optional[PendingVerification]:
        return self._records.get(email)

    def save(self, email: str, record: PendingVerification) -> None:
        self._records[email] = record

    def discard(self, email: str) -> None:
        self._records.pop(email, None)

    def purge_expired(self, now: Optional[datetime] = None) -> int:
        """Drop expired codes and return how many were removed."""
        now = now or _now()
        expired = [email for email, record in self._records.items() if record.is_expired(now)]
        for email in expired:
            del self._records[email]
        if expired:
            logger.debug("Purged expired verification codes", count=len(expired))
        return len(expired)


class RedisVerificationCodeStore(VerificationCodeStore):
    """Verification code store shared across instances through Redis."""

    def get(self, email: str) -> Optional[PendingVerification]:
        return load_model(VERIFICATION_CACHE_KEY.format(email=email), PendingVerification)

    def save(self, email: str, record: PendingVerification) -> None:
        # Keep the key around a little past expiry so "expired" is reported instead of "not found"
        remaining = int((record.expires_at - _now()).total_seconds()) + 60
        store_model(VERIFICATION_CACHE_KEY.format(email=email), record, remaining)

    def discard(self, email: str) -> None:
        evict(VERIFICATION_CACHE_KEY.format(email=email))

    def purge_expired(self, now: Optional[datetime] = None) -> int:
        # Redis expires keys on its own
        return 0


def create_code_store(ttl_seconds: int) -> VerificationCodeStore:
    """Build the code store for this process, preferring Redis when available."""
    if RedisClient.get_client() is not None:
        logger.info("Using Redis verification code store")
        return RedisVerificationCodeStore(ttl_seconds)
    logger.info("Using in-process verification code store")
    return VerificationCodeStore(ttl_seconds)
