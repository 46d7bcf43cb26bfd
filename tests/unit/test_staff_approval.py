"""
Unit tests for StaffApprovalService.

Covers the staff state machine over in-memory adapters:
- Registration only under an active workshop
- Phone verification and owner notification
- Owner decisions: authorization, finality, notifications
- Suspension and listings
"""

from unittest.mock import patch

import pytest

from workshop_onboarding.domain.models import StaffAccount
from workshop_onboarding.domain.ports import Channel, StaffStatus
from workshop_onboarding.domain.results import Failure
from workshop_onboarding.domain.staff import StaffApprovalService

PHONE = "+919800000101"


@pytest.fixture
def registered(staff_service, staff_details, active_owner_id) -> StaffAccount:
    return staff_service.submit_registration(staff_details(), active_owner_id).value


@pytest.fixture
def pending_approval(staff_service, registered, notifier) -> StaffAccount:
    return staff_service.verify_contact(PHONE, notifier.last_code(PHONE)).value


class TestSubmitRegistration:
    """Tests for submit_registration."""

    def test_registers_under_active_workshop(
        self, staff_service, staff_details, active_owner_id, notifier
    ) -> None:
        outcome = staff_service.submit_registration(staff_details(), active_owner_id)

        assert outcome.ok
        assert outcome.value.status is StaffStatus.PENDING_VERIFICATION
        assert outcome.value.workshop_owner_id == active_owner_id
        channel, target, _ = notifier.sent[-1]
        assert (channel, target) == (Channel.SMS, PHONE)

    def test_unknown_workshop_is_not_found(self, staff_service, staff_details) -> None:
        outcome = staff_service.submit_registration(staff_details(), 42)

        assert outcome.failure is Failure.NOT_FOUND

    def test_workshop_not_active_is_invalid_state(
        self, staff_service, staff_details, onboarding, owner_details, staff_repo
    ) -> None:
        """Staff cannot join a workshop that has not finished onboarding."""
        owner = onboarding.submit_registration(owner_details()).value

        outcome = staff_service.submit_registration(staff_details(), owner.id)

        assert outcome.failure is Failure.INVALID_STATE
        assert staff_repo.list_by_owner(owner.id) == []

    def test_duplicate_phone_is_already_processed(
        self, staff_service, staff_details, registered, active_owner_id
    ) -> None:
        outcome = staff_service.submit_registration(
            staff_details(email="second@example.com"), active_owner_id
        )
        assert outcome.failure is Failure.ALREADY_PROCESSED

    def test_rejected_staff_may_apply_again(
        self, staff_service, staff_details, pending_approval, active_owner_id
    ) -> None:
        staff_service.decide(pending_approval.id, False, active_owner_id)

        outcome = staff_service.submit_registration(staff_details(), active_owner_id)

        assert outcome.ok
        assert outcome.value.id != pending_approval.id


class TestVerifyContact:
    """Tests for verify_contact and resend_contact_code."""

    def test_valid_code_moves_to_owner_approval(self, pending_approval) -> None:
        assert pending_approval.status is StaffStatus.PENDING_OWNER_APPROVAL
        assert pending_approval.phone_verified is True

    def test_owner_is_notified(self, pending_approval, notifier) -> None:
        """The workshop owner learns about the request by email."""
        message = notifier.messages_to("ravi@example.com")[-1]
        assert pending_approval.name in message
        assert PHONE in message

    def test_wrong_code_is_invalid_code(self, staff_service, registered, notifier) -> None:
        code = notifier.last_code(PHONE)
        wrong = "1" * 6 if code != "1" * 6 else "2" * 6

        outcome = staff_service.verify_contact(PHONE, wrong)

        assert outcome.failure is Failure.INVALID_CODE

    def test_verify_twice_is_already_processed(self, staff_service, pending_approval) -> None:
        assert staff_service.verify_contact(PHONE, "123456").failure is (
            Failure.ALREADY_PROCESSED
        )

    def test_lost_write_keeps_code_usable(
        self, staff_service, staff_repo, registered, notifier
    ) -> None:
        """A code is spent only after the new status is stored."""
        code = notifier.last_code(PHONE)

        with patch.object(staff_repo, "save", return_value=False):
            assert staff_service.verify_contact(PHONE, code).failure is Failure.INVALID_STATE
        assert staff_repo.get(registered.id).status is StaffStatus.PENDING_VERIFICATION

        assert staff_service.verify_contact(PHONE, code).ok

    def test_resend(self, staff_service, registered, notifier) -> None:
        outcome = staff_service.resend_contact_code("+91 98000-00101")

        assert outcome.ok
        assert len(notifier.messages_to(PHONE)) == 2

    def test_unknown_staff(self, staff_service) -> None:
        assert staff_service.resend_contact_code("+10000000000").failure is Failure.NOT_FOUND


class TestDecide:
    """Tests for the owner's decision."""

    def test_approve(self, staff_service, pending_approval, active_owner_id, notifier) -> None:
        outcome = staff_service.decide(pending_approval.id, True, active_owner_id)

        staff = outcome.value
        assert staff.status is StaffStatus.APPROVED
        assert staff.is_active is True
        assert staff.approved_by_owner_id == active_owner_id
        assert staff.approved_at is not None
        assert "approved" in notifier.messages_to(PHONE)[-1]
        assert "approved" in notifier.messages_to("anil@example.com")[-1]

    def test_reject_with_reason_then_decide_again(
        self, staff_service, staff_repo, pending_approval, active_owner_id, notifier
    ) -> None:
        """A decision is final: the second one is ALREADY_PROCESSED."""
        outcome = staff_service.decide(
            pending_approval.id, False, active_owner_id, reason="incomplete docs"
        )

        assert outcome.value.status is StaffStatus.REJECTED
        assert outcome.value.rejection_reason == "incomplete docs"
        assert "incomplete docs" in notifier.messages_to("anil@example.com")[-1]

        again = staff_service.decide(pending_approval.id, True, active_owner_id)
        assert again.failure is Failure.ALREADY_PROCESSED
        assert staff_repo.get(pending_approval.id).status is StaffStatus.REJECTED

    def test_other_owner_is_unauthorized(
        self, staff_service, staff_repo, pending_approval, activate_owner
    ) -> None:
        other_owner_id = activate_owner(email="other@example.com", phone_number="+919800000002")

        outcome = staff_service.decide(pending_approval.id, True, other_owner_id)

        assert outcome.failure is Failure.UNAUTHORIZED
        assert staff_repo.get(pending_approval.id).status is StaffStatus.PENDING_OWNER_APPROVAL

    def test_other_owner_is_unauthorized_even_after_decision(
        self, staff_service, pending_approval, active_owner_id
    ) -> None:
        staff_service.decide(pending_approval.id, True, active_owner_id)

        outcome = staff_service.decide(pending_approval.id, False, active_owner_id + 100)

        assert outcome.failure is Failure.UNAUTHORIZED

    def test_decide_before_verification_is_invalid_state(
        self, staff_service, registered, active_owner_id
    ) -> None:
        outcome = staff_service.decide(registered.id, True, active_owner_id)
        assert outcome.failure is Failure.INVALID_STATE

    def test_unknown_staff_is_not_found(self, staff_service, active_owner_id) -> None:
        assert staff_service.decide(999, True, active_owner_id).failure is Failure.NOT_FOUND

    def test_suspended_owner_cannot_approve(
        self, staff_service, onboarding, pending_approval, active_owner_id
    ) -> None:
        onboarding.suspend(active_owner_id)

        outcome = staff_service.decide(pending_approval.id, True, active_owner_id)

        assert outcome.failure is Failure.INVALID_STATE

    def test_delivery_failure_keeps_decision(
        self, staff_service, staff_repo, pending_approval, active_owner_id, notifier
    ) -> None:
        notifier.accept = False

        outcome = staff_service.decide(pending_approval.id, True, active_owner_id)

        assert outcome.ok
        assert staff_repo.get(pending_approval.id).status is StaffStatus.APPROVED


class TestSuspend:
    """Tests for suspend."""

    def test_suspend_approved_staff(self, staff_service, pending_approval, active_owner_id) -> None:
        staff_service.decide(pending_approval.id, True, active_owner_id)

        outcome = staff_service.suspend(pending_approval.id, active_owner_id)

        assert outcome.value.status is StaffStatus.SUSPENDED
        assert outcome.value.is_active is False

    def test_suspend_pending_staff_refused(
        self, staff_service, pending_approval, active_owner_id
    ) -> None:
        outcome = staff_service.suspend(pending_approval.id, active_owner_id)
        assert outcome.failure is Failure.INVALID_STATE

    def test_suspend_by_other_owner(self, staff_service, pending_approval, active_owner_id) -> None:
        staff_service.decide(pending_approval.id, True, active_owner_id)

        outcome = staff_service.suspend(pending_approval.id, active_owner_id + 1)

        assert outcome.failure is Failure.UNAUTHORIZED

    def test_suspend_twice(self, staff_service, pending_approval, active_owner_id) -> None:
        staff_service.decide(pending_approval.id, True, active_owner_id)
        staff_service.suspend(pending_approval.id, active_owner_id)

        outcome = staff_service.suspend(pending_approval.id, active_owner_id)

        assert outcome.failure is Failure.ALREADY_PROCESSED


class TestListings:
    """Tests for list_pending_requests and list_staff."""

    def test_pending_requests_only_lists_awaiting_approval(
        self,
        staff_service: StaffApprovalService,
        staff_details,
        pending_approval,
        active_owner_id,
    ) -> None:
        staff_service.submit_registration(
            staff_details(email="b@example.com", phone_number="+919800000102"), active_owner_id
        )

        pending = staff_service.list_pending_requests(active_owner_id)
        everyone = staff_service.list_staff(active_owner_id)

        assert [s.id for s in pending] == [pending_approval.id]
        assert len(everyone) == 2

    def test_other_workshops_are_not_listed(
        self, staff_service, pending_approval, active_owner_id
    ) -> None:
        assert staff_service.list_staff(active_owner_id + 1) == []


class TestWorkshopDiscovery:
    """Tests for list_workshops."""

    def test_only_active_workshops_are_listed(
        self, staff_service, onboarding, owner_details, active_owner_id, activate_owner
    ) -> None:
        onboarding.submit_registration(
            owner_details(email="new@example.com", phone_number="+919800000002")
        )
        suspended = activate_owner(email="gone@example.com", phone_number="+919800000004")
        onboarding.suspend(suspended)

        assert [o.id for o in staff_service.list_workshops()] == [active_owner_id]

    def test_city_filter_ignores_case_and_spaces(
        self, staff_service, active_owner_id, activate_owner
    ) -> None:
        mumbai = activate_owner(
            email="m@example.com", phone_number="+919800000003", city="Mumbai"
        )

        assert [o.id for o in staff_service.list_workshops("  pune ")] == [active_owner_id]
        assert [o.id for o in staff_service.list_workshops("MUMBAI")] == [mumbai]
        assert staff_service.list_workshops("Delhi") == []

    def test_blank_city_lists_all(self, staff_service, active_owner_id, activate_owner) -> None:
        activate_owner(email="m@example.com", phone_number="+919800000003", city="Mumbai")

        assert len(staff_service.list_workshops("   ")) == 2


class TestCheckStatus:
    """Tests for check_status."""

    def test_pending_request_names_workshop(self, staff_service, pending_approval) -> None:
        outcome = staff_service.check_status(PHONE)

        assert outcome.ok
        assert outcome.value.staff.id == pending_approval.id
        assert outcome.value.staff.status is StaffStatus.PENDING_OWNER_APPROVAL
        assert outcome.value.workshop_name == "Ravi Motors"

    def test_identifier_is_normalized(self, staff_service, registered) -> None:
        outcome = staff_service.check_status("+91 98000-00101")

        assert outcome.value.staff.id == registered.id

    def test_rejection_reason_is_visible(
        self, staff_service, pending_approval, active_owner_id
    ) -> None:
        staff_service.decide(pending_approval.id, False, active_owner_id, "incomplete docs")

        report = staff_service.check_status(PHONE).value

        assert report.staff.status is StaffStatus.REJECTED
        assert report.staff.rejection_reason == "incomplete docs"

    def test_unknown_contact_is_not_found(self, staff_service) -> None:
        assert staff_service.check_status("ghost@example.com").failure is Failure.NOT_FOUND
