"""
Operation outcomes - typed success/failure values.

Every state machine operation returns an Outcome. Failures are business
answers the HTTP layer maps to user-facing messages; they are never raised.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar

T = TypeVar("T")


class Failure(Enum):
    """
    Why an operation was refused.

    Retry guidance for callers:
    - INVALID_CODE: same code request, try again
    - EXPIRED / ATTEMPTS_EXHAUSTED: request a new code
    - INVALID_STATE: workflow already progressed, refresh
    - ALREADY_PROCESSED: duplicate submission, nothing to do
    """

    NOT_FOUND = "not_found"
    INVALID_STATE = "invalid_state"
    INVALID_CODE = "invalid_code"
    EXPIRED = "expired"
    ATTEMPTS_EXHAUSTED = "attempts_exhausted"
    UNAUTHORIZED = "unauthorized"
    ALREADY_PROCESSED = "already_processed"
    DEPENDENCY_FAILURE = "dependency_failure"


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """Either a value or a Failure, with a message for the caller."""

    value: T | None = None
    failure: Failure | None = None
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.failure is None

    @classmethod
    def success(cls, value: T, message: str = "") -> "Outcome[T]":
        return cls(value=value, message=message)

    @classmethod
    def fail(cls, failure: Failure, message: str) -> "Outcome[T]":
        return cls(failure=failure, message=message)
