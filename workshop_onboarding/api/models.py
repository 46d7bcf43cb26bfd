"""
API request and response models.

Pydantic models for FastAPI endpoint validation and OpenAPI schema generation.
"""

from datetime import datetime
from pathlib import PurePosixPath
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, EmailStr, Field, model_validator

from workshop_onboarding.domain.ports import DocumentKind, OwnerStatus, Role, StaffStatus

PHONE_PATTERN = r"^\+?[0-9][0-9 \-]{6,18}$"
IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".gif", ".webp"}
LICENSE_EXTENSIONS = IMAGE_EXTENSIONS | {".pdf"}


def code_field():
    return Field(..., min_length=4, max_length=10, pattern=r"^\d+$", description="Numeric code")


class ErrorDetail(BaseModel):
    message: str
    error: str


class ErrorResponse(BaseModel):
    """Standard error response model."""

    detail: ErrorDetail


class CodeSentResponse(BaseModel):
    message: str
    expires_in_seconds: int
    delivered: bool


# Workshop owners


class OwnerRegisterRequest(BaseModel):
    """Request model for workshop owner registration."""

    owner_name: str = Field(..., min_length=1, max_length=200)
    email: EmailStr
    phone_number: str = Field(..., pattern=PHONE_PATTERN)
    workshop_name: str = Field(..., min_length=1, max_length=200)
    address: str = Field(..., min_length=1)
    city: str = Field(..., min_length=1, max_length=100)
    trade_license_number: str = ""


class OwnerResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    owner_name: str
    email: str
    phone_number: str
    workshop_name: str
    address: str
    city: str
    status: OwnerStatus
    contact_verified: bool
    third_party_verified: bool
    verifier_name: str | None
    owner_photo_url: str | None
    workshop_photo_url: str | None
    trade_license_url: str | None
    is_active: bool
    rejection_reason: str | None
    created_at: datetime
    activated_at: datetime | None


class OwnerRegisteredResponse(BaseModel):
    message: str
    owner: OwnerResponse
    expires_in_seconds: int


class VerifyContactRequest(BaseModel):
    """Email address or phone number plus the code sent to it."""

    identifier: str = Field(..., min_length=3)
    code: str = code_field()


class ResendCodeRequest(BaseModel):
    identifier: str = Field(..., min_length=3)


class VerifierRequest(BaseModel):
    verifier_name: str = Field(..., min_length=1)
    verifier_phone: str = Field(..., pattern=PHONE_PATTERN)


class CompleteVerifierRequest(VerifierRequest):
    verifier_code: str = code_field()
    owner_code: str = code_field()


class DocumentUploadRequest(BaseModel):
    """Reference to an already stored document file."""

    kind: DocumentKind
    file_url: str = Field(..., min_length=1, max_length=2000)

    @model_validator(mode="after")
    def check_extension(self) -> "DocumentUploadRequest":
        image_only = self.kind is not DocumentKind.TRADE_LICENSE
        allowed = IMAGE_EXTENSIONS if image_only else LICENSE_EXTENSIONS
        suffix = PurePosixPath(urlparse(self.file_url).path).suffix.lower()
        if suffix not in allowed:
            raise ValueError(f"Invalid file type for {self.kind.value}. Allowed: {sorted(allowed)}")
        return self


class CompleteOnboardingRequest(BaseModel):
    send_credentials: bool = False


class ActivationResponse(BaseModel):
    message: str
    owner: OwnerResponse
    credentials_sent: bool


class RejectRequest(BaseModel):
    reason: str = Field(..., min_length=1, max_length=1000)


# Staff


class StaffRegisterRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    email: EmailStr
    phone_number: str = Field(..., pattern=PHONE_PATTERN)
    city: str = Field(..., min_length=1, max_length=100)
    workshop_owner_id: int = Field(..., gt=0)


class StaffResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: str
    phone_number: str
    city: str
    workshop_owner_id: int
    status: StaffStatus
    phone_verified: bool
    is_active: bool
    approved_by_owner_id: int | None
    approved_at: datetime | None
    rejection_reason: str | None
    created_at: datetime


class StaffStatusResponse(BaseModel):
    """Public view of a staff request; contact details are left out."""

    id: int
    name: str
    workshop_owner_id: int
    workshop_name: str | None
    status: StaffStatus
    phone_verified: bool
    is_active: bool
    approved_at: datetime | None
    rejection_reason: str | None
    created_at: datetime


class WorkshopSummaryResponse(BaseModel):
    """Active workshop a staff member can apply to."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    workshop_name: str
    owner_name: str
    address: str
    city: str


class StaffRegisteredResponse(BaseModel):
    message: str
    staff: StaffResponse
    expires_in_seconds: int


class StaffDecisionRequest(BaseModel):
    approve: bool
    reason: str | None = Field(default=None, max_length=1000)


# Access


class LoginCodeRequest(BaseModel):
    identifier: str = Field(..., min_length=3)


class LoginRequest(BaseModel):
    identifier: str = Field(..., min_length=3)
    code: str = code_field()


class LoginResponse(BaseModel):
    message: str
    access_token: str
    token_type: str = "bearer"
    expires_at: datetime
    role: Role
    subject_id: int
