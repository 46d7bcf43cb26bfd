"""
Domain entities - owner and staff accounts, OTP records, credentials.

Accounts are plain dataclasses; status changes go through the state
machine services, which check the transition graph in `ports`.
"""

from dataclasses import dataclass
from datetime import datetime

from .exceptions import InvalidTransition
from .ports import DocumentKind, OwnerStatus, Role, StaffStatus


def normalize_contact(identifier: str) -> str:
    """
    Normalize an email address or phone number for storage and lookup.

    Emails: strip + lowercase. Phones: strip spaces, dashes and parentheses.
    """
    value = identifier.strip()
    if "@" in value:
        return value.lower()
    return "".join(ch for ch in value if ch not in " -()")


@dataclass
class OtpRecord:
    """One live code for one subject key."""

    code: str
    subject_key: str
    created_at: datetime
    expires_at: datetime
    attempt_count: int = 0


@dataclass
class OwnerRegistration:
    """Details submitted by a workshop owner."""

    owner_name: str
    email: str
    phone_number: str
    workshop_name: str
    address: str
    city: str
    trade_license_number: str = ""


@dataclass
class StaffRegistration:
    """Details submitted by a staff member."""

    name: str
    email: str
    phone_number: str
    city: str


@dataclass
class VerifierDetails:
    """Member of the verifier team performing the in-person check."""

    name: str
    phone_number: str


@dataclass
class OwnerAccount:
    owner_name: str
    email: str
    phone_number: str
    workshop_name: str
    address: str
    city: str
    created_at: datetime
    trade_license_number: str = ""
    id: int | None = None
    status: OwnerStatus = OwnerStatus.PENDING_VERIFICATION
    contact_verified: bool = False
    third_party_verified: bool = False
    verifier_name: str | None = None
    verifier_phone: str | None = None
    third_party_verified_at: datetime | None = None
    trade_license_url: str | None = None
    owner_photo_url: str | None = None
    workshop_photo_url: str | None = None
    password_hash: str | None = None
    is_active: bool = False
    rejection_reason: str | None = None
    updated_at: datetime | None = None
    activated_at: datetime | None = None
    version: int = 0

    def transition(self, target: OwnerStatus, at: datetime) -> None:
        if not self.status.can_transition_to(target):
            raise InvalidTransition(self.status.value, target.value)
        self.status = target
        self.updated_at = at

    def document(self, kind: DocumentKind) -> str | None:
        return getattr(self, _DOCUMENT_FIELDS[kind])

    def attach_document(self, kind: DocumentKind, file_ref: str) -> None:
        setattr(self, _DOCUMENT_FIELDS[kind], file_ref)


_DOCUMENT_FIELDS = {
    DocumentKind.OWNER_PHOTO: "owner_photo_url",
    DocumentKind.WORKSHOP_PHOTO: "workshop_photo_url",
    DocumentKind.TRADE_LICENSE: "trade_license_url",
}


@dataclass
class StaffAccount:
    name: str
    email: str
    phone_number: str
    city: str
    workshop_owner_id: int
    created_at: datetime
    id: int | None = None
    status: StaffStatus = StaffStatus.PENDING_VERIFICATION
    phone_verified: bool = False
    is_active: bool = False
    approved_by_owner_id: int | None = None
    approved_at: datetime | None = None
    rejection_reason: str | None = None
    updated_at: datetime | None = None
    version: int = 0

    def transition(self, target: StaffStatus, at: datetime) -> None:
        if not self.status.can_transition_to(target):
            raise InvalidTransition(self.status.value, target.value)
        self.status = target
        self.updated_at = at


@dataclass(frozen=True)
class AccessCredential:
    """Signed token handed to an activated actor. Never persisted."""

    token: str
    expires_at: datetime
    subject_id: int
    role: Role


@dataclass(frozen=True)
class OtpDispatch:
    """Result of issuing a code: how long it lives and whether delivery succeeded."""

    expires_in_seconds: int
    delivered: bool


@dataclass(frozen=True)
class StaffStatusReport:
    """Where a staff request stands, with the name of the workshop it was made to."""

    staff: StaffAccount
    workshop_name: str | None = None


@dataclass(frozen=True)
class ActivationReceipt:
    """Result of completing owner onboarding."""

    owner: OwnerAccount
    credentials_sent: bool = False
