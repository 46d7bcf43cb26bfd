"""
Domain exceptions - Semantic error types for onboarding.

Business rule outcomes (wrong status, bad code, unauthorized approver) are
returned as Outcome values. The exceptions here cover the cases a caller
cannot treat as an ordinary answer.
"""


class OnboardingError(Exception):
    """Base class for onboarding domain errors."""

    pass


class DependencyFailure(OnboardingError):
    """The actor store failed; the transition may or may not have happened."""

    pass


class InvalidTransition(OnboardingError):
    """A status change outside the state graph was attempted."""

    def __init__(self, current: str, target: str) -> None:
        super().__init__(f"{current} -> {target}")
        self.current = current
        self.target = target
