"""
OTP engine - short-lived numeric codes scoped to a subject key.

Record lifecycle
================

    generate   -> record stored (overwrites any previous record for the key),
                  attempt_count = 0
    validate   -> NOT_FOUND   no record
                  EXPIRED     now > expires_at          (record evicted)
                  EXHAUSTED   attempts >= max_attempts  (record evicted)
                  MISMATCH    attempt counted; the attempt reaching
                              max_attempts reports EXHAUSTED and evicts
                  VALID       attempt counted, record kept
    invalidate -> record removed

A successful validation does not consume the code. Callers invalidate it
once the state transition it unlocked is stored, so it cannot be replayed
and a failed write leaves it usable.

All three operations on one key run under the same lock, so concurrent
generate/validate/invalidate calls form a linear history per key. A
newer code always supersedes the older one.
"""

import logging
import secrets
import threading
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from enum import Enum
from zlib import crc32

from .models import OtpRecord, normalize_contact
from .ports import OtpPurpose, OtpStore
from .results import Failure

logger = logging.getLogger(__name__)

_LOCK_STRIPES = 64


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def subject_key(identifier: str, purpose: OtpPurpose) -> str:
    """Compose the key scoping a code to one contact and one verification context."""
    return f"{normalize_contact(identifier)}:{purpose.value}"


class OtpCheck(Enum):
    """Result of validating a candidate code."""

    VALID = "valid"
    NOT_FOUND = "not_found"
    EXPIRED = "expired"
    EXHAUSTED = "exhausted"
    MISMATCH = "mismatch"

    @property
    def failure(self) -> Failure | None:
        return _CHECK_FAILURES[self]


_CHECK_FAILURES = {
    OtpCheck.VALID: None,
    OtpCheck.NOT_FOUND: Failure.NOT_FOUND,
    OtpCheck.EXPIRED: Failure.EXPIRED,
    OtpCheck.EXHAUSTED: Failure.ATTEMPTS_EXHAUSTED,
    OtpCheck.MISMATCH: Failure.INVALID_CODE,
}


class OtpEngine:
    """
    Generates, validates and invalidates one-time passcodes.

    The store is injected and owned by whoever builds the engine, so tests
    and application instances never share codes.
    """

    def __init__(
        self,
        store: OtpStore,
        ttl_seconds: int = 600,
        max_attempts: int = 5,
        code_length: int = 6,
        clock: Callable[[], datetime] = utcnow,
        fixed_code: str | None = None,
    ) -> None:
        if fixed_code is not None and (len(fixed_code) != code_length or not fixed_code.isdigit()):
            raise ValueError(f"fixed_code must be {code_length} digits")
        self._store = store
        self._ttl = timedelta(seconds=ttl_seconds)
        self._max_attempts = max_attempts
        self._code_length = code_length
        self._clock = clock
        self._fixed_code = fixed_code
        self._locks = [threading.Lock() for _ in range(_LOCK_STRIPES)]

    @property
    def ttl_seconds(self) -> int:
        return int(self._ttl.total_seconds())

    def generate(self, key: str) -> str:
        """
        Issue a fresh code for the key, replacing any live one.

        Returns:
            Zero-padded numeric string of the configured length
        """
        code = self._fixed_code or self._random_code()
        now = self._clock()
        record = OtpRecord(
            code=code,
            subject_key=key,
            created_at=now,
            expires_at=now + self._ttl,
            attempt_count=0,
        )
        with self._lock_for(key):
            self._store.put(record)

        logger.info("OTP generated for %s", key)
        return code

    def validate(self, key: str, candidate: str) -> OtpCheck:
        """
        Check a candidate code against the live record for the key.

        Expired and exhausted records are evicted so they cannot be retried.
        """
        with self._lock_for(key):
            record = self._store.get(key)
            if record is None:
                logger.warning("OTP not found for %s", key)
                return OtpCheck.NOT_FOUND

            if self._clock() > record.expires_at:
                self._store.delete(key)
                logger.warning("OTP expired for %s", key)
                return OtpCheck.EXPIRED

            if record.attempt_count >= self._max_attempts:
                self._store.delete(key)
                logger.warning("Max OTP attempts exceeded for %s", key)
                return OtpCheck.EXHAUSTED

            record.attempt_count += 1
            self._store.put(record)

            if not secrets.compare_digest(record.code.encode(), candidate.encode()):
                logger.warning(
                    "Invalid OTP attempt for %s, attempt: %d", key, record.attempt_count
                )
                if record.attempt_count >= self._max_attempts:
                    self._store.delete(key)
                    return OtpCheck.EXHAUSTED
                return OtpCheck.MISMATCH

        logger.info("OTP validated for %s", key)
        return OtpCheck.VALID

    def invalidate(self, key: str) -> None:
        with self._lock_for(key):
            self._store.delete(key)
        logger.info("OTP invalidated for %s", key)

    def _lock_for(self, key: str) -> threading.Lock:
        return self._locks[crc32(key.encode()) % _LOCK_STRIPES]

    def _random_code(self) -> str:
        # Uniform over [0, 10**n)
        return str(secrets.randbelow(10**self._code_length)).zfill(self._code_length)
