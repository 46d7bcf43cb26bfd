"""
Failure to HTTP mapping.

Every refused operation carries its Failure value in the response body so
clients can decide between retrying, requesting a new code and refreshing.
"""

from typing import NoReturn

from fastapi import HTTPException, status

from workshop_onboarding.domain.results import Failure, Outcome

from .models import ErrorResponse

FAILURE_STATUS = {
    Failure.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    Failure.INVALID_STATE: status.HTTP_409_CONFLICT,
    Failure.ALREADY_PROCESSED: status.HTTP_409_CONFLICT,
    Failure.INVALID_CODE: status.HTTP_400_BAD_REQUEST,
    Failure.EXPIRED: status.HTTP_400_BAD_REQUEST,
    Failure.ATTEMPTS_EXHAUSTED: status.HTTP_400_BAD_REQUEST,
    Failure.UNAUTHORIZED: status.HTTP_403_FORBIDDEN,
    Failure.DEPENDENCY_FAILURE: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def raise_for_failure(outcome: Outcome) -> NoReturn:
    raise HTTPException(
        status_code=FAILURE_STATUS[outcome.failure],
        detail={"message": outcome.message, "error": outcome.failure.value},
    )


def error_responses(*failures: Failure) -> dict:
    """OpenAPI `responses` entries for the failures an endpoint can return."""
    return {
        FAILURE_STATUS[f]: {"model": ErrorResponse, "description": f.value}
        for f in failures
    }
