"""OTP store adapters."""

from .memory import InMemoryOtpStore

__all__ = ["InMemoryOtpStore"]
