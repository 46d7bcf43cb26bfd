"""
Shared test fixtures and configuration.

This module provides pytest fixtures for:
- A controllable clock
- In-memory repositories and OTP store
- A recording notification gateway that exposes the codes it delivered
- Fully wired domain services
"""

import re
from datetime import datetime, timedelta, timezone

import pytest

from workshop_onboarding.adapters.otp.memory import InMemoryOtpStore
from workshop_onboarding.adapters.repository.memory import (
    InMemoryOwnerRepository,
    InMemoryStaffRepository,
)
from workshop_onboarding.adapters.tokens.jwt import JwtCredentialIssuer
from workshop_onboarding.domain.access import AccessService
from workshop_onboarding.domain.models import OwnerRegistration, StaffRegistration, VerifierDetails
from workshop_onboarding.domain.onboarding import OwnerOnboardingService
from workshop_onboarding.domain.otp import OtpEngine
from workshop_onboarding.domain.ports import Channel, DocumentKind
from workshop_onboarding.domain.staff import StaffApprovalService

VERIFIER_CODE = "111111"
SECRET_KEY = "test-secret-key-with-enough-length"

_CODE = re.compile(r"code is (\d+)")


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self) -> None:
        # Near real time: token libraries check expiry against the wall clock
        self.now = datetime.now(timezone.utc).replace(microsecond=0)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: int) -> None:
        self.now += timedelta(seconds=seconds)


class RecordingGateway:
    """NotificationGateway that keeps every message it is asked to send."""

    def __init__(self, accept: bool = True) -> None:
        self.accept = accept
        self.sent: list[tuple[Channel, str, str]] = []

    def send(self, channel: Channel, target: str, payload: str) -> bool:
        self.sent.append((channel, target, payload))
        return self.accept

    def messages_to(self, target: str) -> list[str]:
        return [payload for _, to, payload in self.sent if to == target]

    def last_code(self, target: str) -> str:
        for payload in reversed(self.messages_to(target)):
            match = _CODE.search(payload)
            if match:
                return match.group(1)
        raise AssertionError(f"No code was sent to {target}")


def _owner_details(**overrides) -> OwnerRegistration:
    values = {
        "owner_name": "Ravi Kumar",
        "email": "ravi@example.com",
        "phone_number": "+919800000001",
        "workshop_name": "Ravi Motors",
        "address": "12 Ring Road",
        "city": "Pune",
    }
    values.update(overrides)
    return OwnerRegistration(**values)


def _staff_details(**overrides) -> StaffRegistration:
    values = {
        "name": "Anil Mechanic",
        "email": "anil@example.com",
        "phone_number": "+919800000101",
        "city": "Pune",
    }
    values.update(overrides)
    return StaffRegistration(**values)


@pytest.fixture
def owner_details():
    """Factory for owner registration details; keyword overrides replace defaults."""
    return _owner_details


@pytest.fixture
def staff_details():
    """Factory for staff registration details."""
    return _staff_details


@pytest.fixture
def verifier() -> VerifierDetails:
    return VerifierDetails(name="Field Agent", phone_number="+919800000999")


@pytest.fixture
def verifier_code() -> str:
    return VERIFIER_CODE


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def notifier() -> RecordingGateway:
    return RecordingGateway()


@pytest.fixture
def otp_store() -> InMemoryOtpStore:
    return InMemoryOtpStore()


@pytest.fixture
def otp(otp_store: InMemoryOtpStore, clock: FakeClock) -> OtpEngine:
    return OtpEngine(otp_store, ttl_seconds=600, max_attempts=5, code_length=6, clock=clock)


@pytest.fixture
def owners() -> InMemoryOwnerRepository:
    return InMemoryOwnerRepository()


@pytest.fixture
def staff_repo() -> InMemoryStaffRepository:
    return InMemoryStaffRepository()


@pytest.fixture
def onboarding(
    owners: InMemoryOwnerRepository,
    otp: OtpEngine,
    notifier: RecordingGateway,
    clock: FakeClock,
) -> OwnerOnboardingService:
    return OwnerOnboardingService(
        owners=owners,
        otp=otp,
        notifier=notifier,
        verifier_code=VERIFIER_CODE,
        contact_channel=Channel.EMAIL,
        clock=clock,
        bcrypt_cost=4,
    )


@pytest.fixture
def staff_service(
    staff_repo: InMemoryStaffRepository,
    owners: InMemoryOwnerRepository,
    otp: OtpEngine,
    notifier: RecordingGateway,
    clock: FakeClock,
) -> StaffApprovalService:
    return StaffApprovalService(
        staff=staff_repo,
        owners=owners,
        otp=otp,
        notifier=notifier,
        contact_channel=Channel.SMS,
        clock=clock,
    )


@pytest.fixture
def issuer(clock: FakeClock) -> JwtCredentialIssuer:
    return JwtCredentialIssuer(SECRET_KEY, clock=clock)


@pytest.fixture
def access(
    owners: InMemoryOwnerRepository,
    staff_repo: InMemoryStaffRepository,
    otp: OtpEngine,
    notifier: RecordingGateway,
    issuer: JwtCredentialIssuer,
) -> AccessService:
    return AccessService(
        owners=owners, staff=staff_repo, otp=otp, notifier=notifier, issuer=issuer
    )


@pytest.fixture
def activate_owner(
    onboarding: OwnerOnboardingService,
    notifier: RecordingGateway,
    verifier: VerifierDetails,
):
    """Drive a new owner through every onboarding step. Returns the owner id."""

    def activate(**overrides) -> int:
        owner = onboarding.submit_registration(_owner_details(**overrides)).value
        email = owner.email
        assert onboarding.verify_contact(email, notifier.last_code(email)).ok

        assert onboarding.initiate_third_party_verification(owner.id, verifier).ok
        assert onboarding.complete_third_party_verification(
            owner.id, verifier, VERIFIER_CODE, notifier.last_code(email)
        ).ok

        onboarding.upload_document(owner.id, DocumentKind.OWNER_PHOTO, "https://files/o.jpg")
        onboarding.upload_document(owner.id, DocumentKind.WORKSHOP_PHOTO, "https://files/w.jpg")
        assert onboarding.complete_onboarding(owner.id).ok
        return owner.id

    return activate


@pytest.fixture
def active_owner_id(activate_owner) -> int:
    return activate_owner()
