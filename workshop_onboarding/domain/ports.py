"""
Port interfaces - Protocol definitions for infrastructure abstraction.

This module defines the status types shared by both state machines and the
interfaces (ports) that the domain requires from infrastructure. Adapters
implement these protocols.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from .models import AccessCredential, OtpRecord, OwnerAccount, StaffAccount


class _CanonicalStatus(str, Enum):
    """
    Status persisted and compared through a single serialization.

    `.value` is the only stored form; `parse()` is the only way back.
    """

    @classmethod
    def parse(cls, raw: str) -> _CanonicalStatus:
        """Parse a stored status, tolerating case and surrounding whitespace."""
        try:
            return cls(raw.strip().upper())
        except ValueError:
            raise ValueError(f"Unknown {cls.__name__}: {raw!r}") from None

    def can_transition_to(self, target: _CanonicalStatus) -> bool:
        # Members of different status types compare equal as strings
        if type(target) is not type(self):
            return False
        return target in _TRANSITIONS[type(self)][self]


class OwnerStatus(_CanonicalStatus):
    """
    Workshop owner onboarding states.

    Forward path:
        PENDING_VERIFICATION -> PENDING_THIRD_PARTY_VERIFICATION
            -> PENDING_DOCUMENT_UPLOAD -> ACTIVE

    Administrative escapes:
        REJECTED from any pending state
        SUSPENDED from any pending state and from ACTIVE
    """

    PENDING_VERIFICATION = "PENDING_VERIFICATION"
    PENDING_THIRD_PARTY_VERIFICATION = "PENDING_THIRD_PARTY_VERIFICATION"
    PENDING_DOCUMENT_UPLOAD = "PENDING_DOCUMENT_UPLOAD"
    ACTIVE = "ACTIVE"
    REJECTED = "REJECTED"
    SUSPENDED = "SUSPENDED"

    @property
    def is_terminal(self) -> bool:
        # ACTIVE only leaves through administrative suspension
        return self in (OwnerStatus.ACTIVE, OwnerStatus.REJECTED, OwnerStatus.SUSPENDED)

    @property
    def releases_contact(self) -> bool:
        """Whether an account in this state frees its contact for a new registration."""
        return self is OwnerStatus.REJECTED


class StaffStatus(_CanonicalStatus):
    """
    Staff approval states.

    Forward path:
        PENDING_VERIFICATION -> PENDING_OWNER_APPROVAL -> APPROVED

    Escapes:
        REJECTED from PENDING_OWNER_APPROVAL
        SUSPENDED from APPROVED
    """

    PENDING_VERIFICATION = "PENDING_VERIFICATION"
    PENDING_OWNER_APPROVAL = "PENDING_OWNER_APPROVAL"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    SUSPENDED = "SUSPENDED"

    @property
    def is_terminal(self) -> bool:
        return self in (StaffStatus.APPROVED, StaffStatus.REJECTED, StaffStatus.SUSPENDED)

    @property
    def releases_contact(self) -> bool:
        return self is StaffStatus.REJECTED


_TRANSITIONS: dict[type, dict[_CanonicalStatus, frozenset[_CanonicalStatus]]] = {
    OwnerStatus: {
        OwnerStatus.PENDING_VERIFICATION: frozenset(
            {
                OwnerStatus.PENDING_THIRD_PARTY_VERIFICATION,
                OwnerStatus.REJECTED,
                OwnerStatus.SUSPENDED,
            }
        ),
        OwnerStatus.PENDING_THIRD_PARTY_VERIFICATION: frozenset(
            {OwnerStatus.PENDING_DOCUMENT_UPLOAD, OwnerStatus.REJECTED, OwnerStatus.SUSPENDED}
        ),
        OwnerStatus.PENDING_DOCUMENT_UPLOAD: frozenset(
            {OwnerStatus.ACTIVE, OwnerStatus.REJECTED, OwnerStatus.SUSPENDED}
        ),
        OwnerStatus.ACTIVE: frozenset({OwnerStatus.SUSPENDED}),
        OwnerStatus.REJECTED: frozenset(),
        OwnerStatus.SUSPENDED: frozenset(),
    },
    StaffStatus: {
        StaffStatus.PENDING_VERIFICATION: frozenset({StaffStatus.PENDING_OWNER_APPROVAL}),
        StaffStatus.PENDING_OWNER_APPROVAL: frozenset(
            {StaffStatus.APPROVED, StaffStatus.REJECTED}
        ),
        StaffStatus.APPROVED: frozenset({StaffStatus.SUSPENDED}),
        StaffStatus.REJECTED: frozenset(),
        StaffStatus.SUSPENDED: frozenset(),
    },
}


class Channel(str, Enum):
    """Delivery channel for notifications."""

    EMAIL = "email"
    SMS = "sms"


class OtpPurpose(str, Enum):
    """Verification context an OTP is scoped to."""

    OWNER_CONTACT = "owner_contact"
    THIRD_PARTY = "third_party"
    STAFF_CONTACT = "staff_contact"
    LOGIN = "login"


class DocumentKind(str, Enum):
    """Documents collected during the owner's final onboarding step."""

    OWNER_PHOTO = "owner_photo"
    WORKSHOP_PHOTO = "workshop_photo"
    TRADE_LICENSE = "trade_license"


MANDATORY_DOCUMENTS = (DocumentKind.OWNER_PHOTO, DocumentKind.WORKSHOP_PHOTO)


class Role(str, Enum):
    """Role claimed by an issued access credential."""

    OWNER = "owner"
    STAFF = "staff"


class OtpStore(Protocol):
    """Port interface for transient OTP records."""

    def get(self, key: str) -> OtpRecord | None: ...

    def put(self, record: OtpRecord) -> None:
        """Store a record, replacing any record under the same subject key."""
        ...

    def delete(self, key: str) -> None: ...


class NotificationGateway(Protocol):
    """Port interface for email/SMS delivery."""

    def send(self, channel: Channel, target: str, payload: str) -> bool:
        """
        Deliver a message.

        Returns:
            True if the provider accepted the message. Callers treat
            False or any raised exception as an advisory failure.
        """
        ...


class OwnerRepository(Protocol):
    """Port interface for owner account persistence."""

    def add(self, owner: OwnerAccount) -> OwnerAccount | None:
        """
        Persist a new account and return it with its id assigned.

        Returns:
            None if the email or phone is already held by a live account
        """
        ...

    def get(self, owner_id: int) -> OwnerAccount | None: ...

    def find_by_contact(self, identifier: str) -> OwnerAccount | None:
        """Find the live account holding a normalized email or phone number."""
        ...

    def save(self, owner: OwnerAccount) -> bool:
        """
        Write the account back if nobody changed it since it was loaded.

        The stored version must equal `owner.version`; on success the
        version is incremented on both the row and the passed object.

        Returns:
            False if the version check failed (concurrent modification)
        """
        ...

    def list_by_status(self, status: OwnerStatus) -> list[OwnerAccount]: ...

    def list_active_workshops(self, city: str | None = None) -> list[OwnerAccount]:
        """
        List ACTIVE workshops, optionally only those in one city.

        City matching ignores case and surrounding whitespace.
        """
        ...


class StaffRepository(Protocol):
    """Port interface for staff account persistence."""

    def add(self, staff: StaffAccount) -> StaffAccount | None: ...

    def get(self, staff_id: int) -> StaffAccount | None: ...

    def find_by_contact(self, identifier: str) -> StaffAccount | None: ...

    def save(self, staff: StaffAccount) -> bool:
        """Optimistic write-back, same contract as OwnerRepository.save."""
        ...

    def list_by_owner(
        self, workshop_owner_id: int, status: StaffStatus | None = None
    ) -> list[StaffAccount]: ...


class CredentialIssuer(Protocol):
    """Port interface for access token signing."""

    def issue(self, actor: OwnerAccount | StaffAccount, role: Role) -> AccessCredential: ...
