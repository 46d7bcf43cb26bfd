"""
In-memory OTP store adapter - Implements OtpStore protocol.

Holds at most one record per subject key. The store lives as long as the
object that owns it (the application lifespan, or a single test).
"""

import threading
from dataclasses import replace

from workshop_onboarding.domain.models import OtpRecord


class InMemoryOtpStore:
    """
    Implements OtpStore protocol with a plain dict.

    Uses structural subtyping - no explicit inheritance from Protocol.
    Records are copied in and out so callers never share mutable state
    with the store.
    """

    def __init__(self) -> None:
        self._records: dict[str, OtpRecord] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> OtpRecord | None:
        with self._lock:
            record = self._records.get(key)
            return replace(record) if record is not None else None

    def put(self, record: OtpRecord) -> None:
        with self._lock:
            self._records[record.subject_key] = replace(record)

    def delete(self, key: str) -> None:
        with self._lock:
            self._records.pop(key, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)
