"""
Workshop owner onboarding routes.

Public (owner app):
- POST /v1/owners                      - Submit registration, sends first code
- POST /v1/owners/resend-code          - Re-send the first-step code
- POST /v1/owners/verify-contact       - Verify email/phone with the code

Administrative (verifier team / back office, X-Admin-Key):
- GET  /v1/owners?status=...           - List owners by status
- GET  /v1/owners/{id}
- POST /v1/owners/{id}/verification/initiate
- POST /v1/owners/{id}/verification/complete
- POST /v1/owners/{id}/documents
- POST /v1/owners/{id}/complete
- POST /v1/owners/{id}/reject
- POST /v1/owners/{id}/suspend
"""

from fastapi import APIRouter, Depends, Query, status

from workshop_onboarding.api.dependencies import get_onboarding_service, require_admin
from workshop_onboarding.api.errors import error_responses, raise_for_failure
from workshop_onboarding.api.models import (
    ActivationResponse,
    CodeSentResponse,
    CompleteOnboardingRequest,
    CompleteVerifierRequest,
    DocumentUploadRequest,
    OwnerRegisteredResponse,
    OwnerRegisterRequest,
    OwnerResponse,
    RejectRequest,
    ResendCodeRequest,
    VerifierRequest,
    VerifyContactRequest,
)
from workshop_onboarding.domain.models import OwnerRegistration, VerifierDetails
from workshop_onboarding.domain.onboarding import OwnerOnboardingService
from workshop_onboarding.domain.ports import OwnerStatus
from workshop_onboarding.domain.results import Failure

router = APIRouter(prefix="/owners", tags=["owners"])

_CODE_FAILURES = (
    Failure.NOT_FOUND,
    Failure.INVALID_STATE,
    Failure.INVALID_CODE,
)


@router.post(
    "",
    response_model=OwnerRegisteredResponse,
    status_code=status.HTTP_201_CREATED,
    responses=error_responses(Failure.ALREADY_PROCESSED),
    summary="Register a workshop owner",
)
async def register_owner(
    request_data: OwnerRegisterRequest,
    service: OwnerOnboardingService = Depends(get_onboarding_service),
) -> OwnerRegisteredResponse:
    """
    Submit owner and workshop details.

    A verification code is sent to the owner's contact (email or phone,
    depending on deployment).
    """
    outcome = service.submit_registration(OwnerRegistration(**request_data.model_dump()))
    if not outcome.ok:
        raise_for_failure(outcome)
    return OwnerRegisteredResponse(
        message=outcome.message,
        owner=OwnerResponse.model_validate(outcome.value),
        expires_in_seconds=service.otp.ttl_seconds,
    )


@router.post(
    "/resend-code",
    response_model=CodeSentResponse,
    responses=error_responses(*_CODE_FAILURES, Failure.ALREADY_PROCESSED),
    summary="Re-send the contact verification code",
)
async def resend_owner_code(
    request_data: ResendCodeRequest,
    service: OwnerOnboardingService = Depends(get_onboarding_service),
) -> CodeSentResponse:
    outcome = service.resend_contact_code(request_data.identifier)
    if not outcome.ok:
        raise_for_failure(outcome)
    return CodeSentResponse(
        message=outcome.message,
        expires_in_seconds=outcome.value.expires_in_seconds,
        delivered=outcome.value.delivered,
    )


@router.post(
    "/verify-contact",
    response_model=OwnerResponse,
    responses=error_responses(*_CODE_FAILURES, Failure.ALREADY_PROCESSED),
    summary="Verify the owner's contact",
)
async def verify_owner_contact(
    request_data: VerifyContactRequest,
    service: OwnerOnboardingService = Depends(get_onboarding_service),
) -> OwnerResponse:
    outcome = service.verify_contact(request_data.identifier, request_data.code)
    if not outcome.ok:
        raise_for_failure(outcome)
    return OwnerResponse.model_validate(outcome.value)


@router.get(
    "",
    response_model=list[OwnerResponse],
    dependencies=[Depends(require_admin)],
    summary="List workshop owners by status",
)
async def list_owners(
    owner_status: OwnerStatus = Query(OwnerStatus.PENDING_THIRD_PARTY_VERIFICATION, alias="status"),
    service: OwnerOnboardingService = Depends(get_onboarding_service),
) -> list[OwnerResponse]:
    return [OwnerResponse.model_validate(o) for o in service.list_by_status(owner_status)]


@router.get(
    "/{owner_id}",
    response_model=OwnerResponse,
    dependencies=[Depends(require_admin)],
    responses=error_responses(Failure.NOT_FOUND),
)
async def get_owner(
    owner_id: int,
    service: OwnerOnboardingService = Depends(get_onboarding_service),
) -> OwnerResponse:
    outcome = service.get_owner(owner_id)
    if not outcome.ok:
        raise_for_failure(outcome)
    return OwnerResponse.model_validate(outcome.value)


@router.post(
    "/{owner_id}/verification/initiate",
    response_model=CodeSentResponse,
    dependencies=[Depends(require_admin)],
    responses=error_responses(Failure.NOT_FOUND, Failure.INVALID_STATE),
    summary="Start the in-person verifier check",
    description="Sends a fresh code to the workshop owner. The verifier confirms "
    "with the verifier confirmation code shared with the verifier team.",
)
async def initiate_verification(
    owner_id: int,
    request_data: VerifierRequest,
    service: OwnerOnboardingService = Depends(get_onboarding_service),
) -> CodeSentResponse:
    verifier = VerifierDetails(
        name=request_data.verifier_name, phone_number=request_data.verifier_phone
    )
    outcome = service.initiate_third_party_verification(owner_id, verifier)
    if not outcome.ok:
        raise_for_failure(outcome)
    return CodeSentResponse(
        message=outcome.message,
        expires_in_seconds=outcome.value.expires_in_seconds,
        delivered=outcome.value.delivered,
    )


@router.post(
    "/{owner_id}/verification/complete",
    response_model=OwnerResponse,
    dependencies=[Depends(require_admin)],
    responses=error_responses(*_CODE_FAILURES, Failure.ALREADY_PROCESSED),
    summary="Complete the in-person verifier check",
)
async def complete_verification(
    owner_id: int,
    request_data: CompleteVerifierRequest,
    service: OwnerOnboardingService = Depends(get_onboarding_service),
) -> OwnerResponse:
    verifier = VerifierDetails(
        name=request_data.verifier_name, phone_number=request_data.verifier_phone
    )
    outcome = service.complete_third_party_verification(
        owner_id, verifier, request_data.verifier_code, request_data.owner_code
    )
    if not outcome.ok:
        raise_for_failure(outcome)
    return OwnerResponse.model_validate(outcome.value)


@router.post(
    "/{owner_id}/documents",
    response_model=OwnerResponse,
    dependencies=[Depends(require_admin)],
    responses=error_responses(Failure.NOT_FOUND, Failure.INVALID_STATE),
    summary="Attach an onboarding document",
)
async def upload_document(
    owner_id: int,
    request_data: DocumentUploadRequest,
    service: OwnerOnboardingService = Depends(get_onboarding_service),
) -> OwnerResponse:
    outcome = service.upload_document(owner_id, request_data.kind, request_data.file_url)
    if not outcome.ok:
        raise_for_failure(outcome)
    return OwnerResponse.model_validate(outcome.value)


@router.post(
    "/{owner_id}/complete",
    response_model=ActivationResponse,
    dependencies=[Depends(require_admin)],
    responses=error_responses(Failure.NOT_FOUND, Failure.INVALID_STATE),
    summary="Activate the workshop owner",
)
async def complete_onboarding(
    owner_id: int,
    request_data: CompleteOnboardingRequest,
    service: OwnerOnboardingService = Depends(get_onboarding_service),
) -> ActivationResponse:
    outcome = service.complete_onboarding(owner_id, send_credentials=request_data.send_credentials)
    if not outcome.ok:
        raise_for_failure(outcome)
    return ActivationResponse(
        message=outcome.message,
        owner=OwnerResponse.model_validate(outcome.value.owner),
        credentials_sent=outcome.value.credentials_sent,
    )


@router.post(
    "/{owner_id}/reject",
    response_model=OwnerResponse,
    dependencies=[Depends(require_admin)],
    responses=error_responses(Failure.NOT_FOUND, Failure.INVALID_STATE),
)
async def reject_owner(
    owner_id: int,
    request_data: RejectRequest,
    service: OwnerOnboardingService = Depends(get_onboarding_service),
) -> OwnerResponse:
    outcome = service.reject(owner_id, request_data.reason)
    if not outcome.ok:
        raise_for_failure(outcome)
    return OwnerResponse.model_validate(outcome.value)


@router.post(
    "/{owner_id}/suspend",
    response_model=OwnerResponse,
    dependencies=[Depends(require_admin)],
    responses=error_responses(Failure.NOT_FOUND, Failure.INVALID_STATE),
)
async def suspend_owner(
    owner_id: int,
    service: OwnerOnboardingService = Depends(get_onboarding_service),
) -> OwnerResponse:
    outcome = service.suspend(owner_id)
    if not outcome.ok:
        raise_for_failure(outcome)
    return OwnerResponse.model_validate(outcome.value)
