"""
Workshop staff routes.

Staff find an active workshop, register under it and verify their phone; the
workshop owner, authenticated with a bearer token from /v1/auth/login,
then approves or rejects the request.
"""

from fastapi import APIRouter, Depends, Query, status

from workshop_onboarding.api.dependencies import get_current_owner_id, get_staff_service
from workshop_onboarding.api.errors import error_responses, raise_for_failure
from workshop_onboarding.api.models import (
    CodeSentResponse,
    ResendCodeRequest,
    StaffDecisionRequest,
    StaffRegisteredResponse,
    StaffRegisterRequest,
    StaffResponse,
    StaffStatusResponse,
    VerifyContactRequest,
    WorkshopSummaryResponse,
)
from workshop_onboarding.domain.models import StaffRegistration
from workshop_onboarding.domain.results import Failure, Outcome
from workshop_onboarding.domain.staff import StaffApprovalService

router = APIRouter(prefix="/staff", tags=["staff"])


@router.post(
    "",
    response_model=StaffRegisteredResponse,
    status_code=status.HTTP_201_CREATED,
    responses=error_responses(Failure.NOT_FOUND, Failure.INVALID_STATE, Failure.ALREADY_PROCESSED),
    summary="Register as staff of a workshop",
)
async def register_staff(
    request_data: StaffRegisterRequest,
    service: StaffApprovalService = Depends(get_staff_service),
) -> StaffRegisteredResponse:
    details = StaffRegistration(
        name=request_data.name,
        email=request_data.email,
        phone_number=request_data.phone_number,
        city=request_data.city,
    )
    outcome = service.submit_registration(details, request_data.workshop_owner_id)
    if not outcome.ok:
        raise_for_failure(outcome)
    return StaffRegisteredResponse(
        message=outcome.message,
        staff=StaffResponse.model_validate(outcome.value),
        expires_in_seconds=service.otp.ttl_seconds,
    )


@router.post(
    "/resend-code",
    response_model=CodeSentResponse,
    responses=error_responses(Failure.NOT_FOUND, Failure.INVALID_STATE, Failure.ALREADY_PROCESSED),
)
async def resend_staff_code(
    request_data: ResendCodeRequest,
    service: StaffApprovalService = Depends(get_staff_service),
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
    response_model=StaffResponse,
    responses=error_responses(
        Failure.NOT_FOUND,
        Failure.INVALID_STATE,
        Failure.INVALID_CODE,
        Failure.ALREADY_PROCESSED,
    ),
    summary="Verify the staff member's phone",
    description="On success the request is forwarded to the workshop owner for approval.",
)
async def verify_staff_contact(
    request_data: VerifyContactRequest,
    service: StaffApprovalService = Depends(get_staff_service),
) -> StaffResponse:
    outcome = service.verify_contact(request_data.identifier, request_data.code)
    if not outcome.ok:
        raise_for_failure(outcome)
    return StaffResponse.model_validate(outcome.value)


@router.get(
    "/workshops",
    response_model=list[WorkshopSummaryResponse],
    summary="Active workshops open to staff requests",
)
async def list_workshops(
    city: str | None = Query(None, max_length=100, description="Only workshops in this city"),
    service: StaffApprovalService = Depends(get_staff_service),
) -> list[WorkshopSummaryResponse]:
    """Find the workshop id to register under."""
    return [WorkshopSummaryResponse.model_validate(w) for w in service.list_workshops(city)]


@router.get(
    "/status/{identifier}",
    response_model=StaffStatusResponse,
    responses=error_responses(Failure.NOT_FOUND),
    summary="Check a staff request by email or phone",
)
async def check_staff_status(
    identifier: str,
    service: StaffApprovalService = Depends(get_staff_service),
) -> StaffStatusResponse:
    outcome = service.check_status(identifier)
    if not outcome.ok:
        raise_for_failure(outcome)
    member = outcome.value.staff
    return StaffStatusResponse(
        id=member.id,
        name=member.name,
        workshop_owner_id=member.workshop_owner_id,
        workshop_name=outcome.value.workshop_name,
        status=member.status,
        phone_verified=member.phone_verified,
        is_active=member.is_active,
        approved_at=member.approved_at,
        rejection_reason=member.rejection_reason,
        created_at=member.created_at,
    )


@router.get(
    "/requests",
    response_model=list[StaffResponse],
    summary="Pending staff requests for the authenticated owner",
)
async def list_pending_requests(
    owner_id: int = Depends(get_current_owner_id),
    service: StaffApprovalService = Depends(get_staff_service),
) -> list[StaffResponse]:
    return [StaffResponse.model_validate(s) for s in service.list_pending_requests(owner_id)]


@router.get("", response_model=list[StaffResponse], summary="All staff of the authenticated owner")
async def list_staff(
    owner_id: int = Depends(get_current_owner_id),
    service: StaffApprovalService = Depends(get_staff_service),
) -> list[StaffResponse]:
    return [StaffResponse.model_validate(s) for s in service.list_staff(owner_id)]


@router.get(
    "/{staff_id}",
    response_model=StaffResponse,
    responses=error_responses(Failure.NOT_FOUND, Failure.UNAUTHORIZED),
)
async def get_staff(
    staff_id: int,
    owner_id: int = Depends(get_current_owner_id),
    service: StaffApprovalService = Depends(get_staff_service),
) -> StaffResponse:
    outcome = service.get_staff(staff_id)
    if not outcome.ok:
        raise_for_failure(outcome)
    # Other workshops' staff are invisible
    if outcome.value.workshop_owner_id != owner_id:
        raise_for_failure(Outcome.fail(Failure.NOT_FOUND, "Staff not found"))
    return StaffResponse.model_validate(outcome.value)


@router.post(
    "/{staff_id}/decision",
    response_model=StaffResponse,
    responses=error_responses(
        Failure.NOT_FOUND,
        Failure.UNAUTHORIZED,
        Failure.ALREADY_PROCESSED,
        Failure.INVALID_STATE,
    ),
    summary="Approve or reject a staff request",
)
async def decide_staff_request(
    staff_id: int,
    request_data: StaffDecisionRequest,
    owner_id: int = Depends(get_current_owner_id),
    service: StaffApprovalService = Depends(get_staff_service),
) -> StaffResponse:
    """
    Record the owner's decision.

    - **approve**: true to approve, false to reject
    - **reason**: optional rejection reason sent to the staff member
    """
    outcome = service.decide(staff_id, request_data.approve, owner_id, request_data.reason)
    if not outcome.ok:
        raise_for_failure(outcome)
    return StaffResponse.model_validate(outcome.value)


@router.post(
    "/{staff_id}/suspend",
    response_model=StaffResponse,
    responses=error_responses(
        Failure.NOT_FOUND,
        Failure.UNAUTHORIZED,
        Failure.ALREADY_PROCESSED,
        Failure.INVALID_STATE,
    ),
)
async def suspend_staff(
    staff_id: int,
    owner_id: int = Depends(get_current_owner_id),
    service: StaffApprovalService = Depends(get_staff_service),
) -> StaffResponse:
    outcome = service.suspend(staff_id, owner_id)
    if not outcome.ok:
        raise_for_failure(outcome)
    return StaffResponse.model_validate(outcome.value)
