"""
Passwordless login for activated owners and approved staff.
"""

from fastapi import APIRouter, Depends

from workshop_onboarding.api.dependencies import get_access_service
from workshop_onboarding.api.errors import error_responses, raise_for_failure
from workshop_onboarding.api.models import (
    CodeSentResponse,
    LoginCodeRequest,
    LoginRequest,
    LoginResponse,
)
from workshop_onboarding.domain.access import AccessService
from workshop_onboarding.domain.results import Failure

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post(
    "/request-code",
    response_model=CodeSentResponse,
    responses=error_responses(Failure.NOT_FOUND, Failure.INVALID_STATE),
    summary="Send a login code to the account's phone",
)
async def request_login_code(
    request_data: LoginCodeRequest,
    service: AccessService = Depends(get_access_service),
) -> CodeSentResponse:
    outcome = service.request_login_code(request_data.identifier)
    if not outcome.ok:
        raise_for_failure(outcome)
    return CodeSentResponse(
        message=outcome.message,
        expires_in_seconds=outcome.value.expires_in_seconds,
        delivered=outcome.value.delivered,
    )


@router.post(
    "/login",
    response_model=LoginResponse,
    responses=error_responses(Failure.NOT_FOUND, Failure.INVALID_STATE, Failure.INVALID_CODE),
    summary="Exchange a login code for an access token",
)
async def login(
    request_data: LoginRequest,
    service: AccessService = Depends(get_access_service),
) -> LoginResponse:
    outcome = service.login(request_data.identifier, request_data.code)
    if not outcome.ok:
        raise_for_failure(outcome)
    credential = outcome.value
    return LoginResponse(
        message=outcome.message,
        access_token=credential.token,
        expires_at=credential.expires_at,
        role=credential.role,
        subject_id=credential.subject_id,
    )
