"""
Unit tests for AccessService and JwtCredentialIssuer.

Verifies that only actors in an activated state obtain credentials and
that issued tokens carry the claims the API relies on.
"""

import pytest

from workshop_onboarding.adapters.tokens.jwt import InvalidToken, JwtCredentialIssuer
from workshop_onboarding.domain.access import AccessService, is_eligible, role_of
from workshop_onboarding.domain.ports import Role
from workshop_onboarding.domain.results import Failure

OWNER_PHONE = "+919800000001"
STAFF_PHONE = "+919800000101"


@pytest.fixture
def approved_staff_id(staff_service, staff_details, active_owner_id, notifier) -> int:
    member = staff_service.submit_registration(staff_details(), active_owner_id).value
    staff_service.verify_contact(STAFF_PHONE, notifier.last_code(STAFF_PHONE))
    staff_service.decide(member.id, True, active_owner_id)
    return member.id


class TestLogin:
    """Tests for request_login_code and login."""

    def test_active_owner_logs_in(
        self, access: AccessService, active_owner_id, notifier, issuer
    ) -> None:
        assert access.request_login_code("ravi@example.com").ok

        outcome = access.login("ravi@example.com", notifier.last_code(OWNER_PHONE))

        assert outcome.ok
        credential = outcome.value
        assert credential.role is Role.OWNER
        assert credential.subject_id == active_owner_id
        assert issuer.decode(credential.token)["sub"] == str(active_owner_id)

    def test_login_code_goes_to_phone(self, access, active_owner_id, notifier) -> None:
        outcome = access.request_login_code(OWNER_PHONE)

        assert outcome.value.delivered is True
        assert notifier.sent[-1][1] == OWNER_PHONE

    def test_approved_staff_logs_in(self, access, approved_staff_id, notifier) -> None:
        access.request_login_code(STAFF_PHONE)

        outcome = access.login(STAFF_PHONE, notifier.last_code(STAFF_PHONE))

        assert outcome.value.role is Role.STAFF
        assert outcome.value.subject_id == approved_staff_id

    def test_rejected_owner_application_does_not_hide_approved_staff(
        self,
        access,
        onboarding,
        owner_details,
        staff_service,
        staff_details,
        active_owner_id,
        notifier,
    ) -> None:
        """A contact shared with a rejected owner account resolves to the approved staff."""
        phone = "+919811111111"
        rejected = onboarding.submit_registration(
            owner_details(email="p@example.com", phone_number=phone)
        ).value
        onboarding.reject(rejected.id, "Workshop already listed")
        member = staff_service.submit_registration(
            staff_details(email="p@example.com", phone_number=phone), active_owner_id
        ).value
        staff_service.verify_contact(phone, notifier.last_code(phone))
        staff_service.decide(member.id, True, active_owner_id)

        assert access.request_login_code(phone).ok
        outcome = access.login("p@example.com", notifier.last_code(phone))

        assert outcome.ok
        assert outcome.value.role is Role.STAFF
        assert outcome.value.subject_id == member.id

    def test_active_owner_preferred_over_pending_staff(
        self, access, staff_service, staff_details, active_owner_id, notifier
    ) -> None:
        staff_service.submit_registration(
            staff_details(email="other@example.com", phone_number=OWNER_PHONE), active_owner_id
        )

        assert access.request_login_code(OWNER_PHONE).ok
        outcome = access.login(OWNER_PHONE, notifier.last_code(OWNER_PHONE))

        assert outcome.value.role is Role.OWNER
        assert outcome.value.subject_id == active_owner_id

    def test_pending_owner_cannot_request_code(
        self, access, onboarding, owner_details
    ) -> None:
        onboarding.submit_registration(owner_details())

        outcome = access.request_login_code("ravi@example.com")

        assert outcome.failure is Failure.INVALID_STATE

    def test_unknown_contact(self, access) -> None:
        assert access.request_login_code("ghost@example.com").failure is Failure.NOT_FOUND

    def test_login_code_is_single_use(self, access, active_owner_id, notifier) -> None:
        access.request_login_code(OWNER_PHONE)
        code = notifier.last_code(OWNER_PHONE)
        assert access.login(OWNER_PHONE, code).ok

        assert access.login(OWNER_PHONE, code).failure is Failure.NOT_FOUND

    def test_suspended_after_code_request_is_refused(
        self, access, onboarding, active_owner_id, notifier
    ) -> None:
        """Eligibility is checked again when the code is exchanged."""
        access.request_login_code(OWNER_PHONE)
        onboarding.suspend(active_owner_id)

        outcome = access.login(OWNER_PHONE, notifier.last_code(OWNER_PHONE))

        assert outcome.failure is Failure.INVALID_STATE

    def test_contact_code_does_not_log_in(
        self, access, onboarding, active_owner_id, notifier
    ) -> None:
        """Codes from the onboarding steps are scoped to their own purpose."""
        onboarding_code = notifier.last_code("ravi@example.com")

        outcome = access.login(OWNER_PHONE, onboarding_code)

        assert outcome.failure is Failure.NOT_FOUND


class TestIssueCredential:
    """Tests for issue_credential and eligibility."""

    def test_rejected_staff_not_eligible(
        self, access, staff_service, staff_details, staff_repo, active_owner_id, notifier
    ) -> None:
        member = staff_service.submit_registration(staff_details(), active_owner_id).value
        staff_service.verify_contact(STAFF_PHONE, notifier.last_code(STAFF_PHONE))
        staff_service.decide(member.id, False, active_owner_id)
        rejected = staff_repo.get(member.id)

        assert is_eligible(rejected) is False
        assert role_of(rejected) is Role.STAFF
        assert access.issue_credential(rejected).failure is Failure.INVALID_STATE

    def test_active_owner_eligible(self, owners, active_owner_id) -> None:
        owner = owners.get(active_owner_id)

        assert is_eligible(owner) is True
        assert role_of(owner) is Role.OWNER


class TestJwtCredentialIssuer:
    """Tests for token signing and verification."""

    def test_owner_claims(self, issuer, owners, active_owner_id, clock) -> None:
        credential = issuer.issue(owners.get(active_owner_id), Role.OWNER)
        claims = issuer.decode(credential.token)

        assert claims["role"] == "owner"
        assert claims["status"] == "ACTIVE"
        assert claims["workshop_name"] == "Ravi Motors"
        assert claims["iss"] == "workshop-onboarding"
        assert credential.expires_at > clock()

    def test_staff_claims_carry_workshop(self, issuer, staff_repo, approved_staff_id) -> None:
        member = staff_repo.get(approved_staff_id)
        claims = issuer.decode(issuer.issue(member, Role.STAFF).token)

        assert claims["workshop_owner_id"] == member.workshop_owner_id
        assert claims["name"] == member.name

    def test_foreign_signature_rejected(self, issuer, owners, active_owner_id) -> None:
        forger = JwtCredentialIssuer("another-secret-key-of-some-length")
        token = forger.issue(owners.get(active_owner_id), Role.OWNER).token

        with pytest.raises(InvalidToken):
            issuer.decode(token)

    def test_wrong_audience_rejected(self, issuer, owners, active_owner_id, clock) -> None:
        other = JwtCredentialIssuer(
            "test-secret-key-with-enough-length", audience="someone-else", clock=clock
        )
        token = other.issue(owners.get(active_owner_id), Role.OWNER).token

        with pytest.raises(InvalidToken):
            issuer.decode(token)

    def test_expired_token_rejected(self, owners, active_owner_id, clock) -> None:
        short = JwtCredentialIssuer(
            "test-secret-key-with-enough-length", expiry_minutes=-1, clock=clock
        )
        token = short.issue(owners.get(active_owner_id), Role.OWNER).token

        with pytest.raises(InvalidToken):
            short.decode(token)

    def test_garbage_rejected(self, issuer) -> None:
        with pytest.raises(InvalidToken):
            issuer.decode("not-a-token")
