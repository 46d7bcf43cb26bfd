"""
Staff approval - phone verification followed by the workshop owner's decision.

Staff Approval
==============

    PENDING_VERIFICATION
        | verify_contact (staff OTP)
        v
    PENDING_OWNER_APPROVAL --decide(approve=False)--> REJECTED
        | decide(approve=True)
        v
    APPROVED --suspend--> SUSPENDED

Only the owner of the workshop a staff member applied to may decide on or
suspend that staff member. Decisions are final: a second decision on the
same request is refused as ALREADY_PROCESSED.

Prospective staff find the workshop to apply to with `list_workshops`, and
follow their request with `check_status`.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime

from .delivery import contact_for, deliver
from .models import (
    OtpDispatch,
    OwnerAccount,
    StaffAccount,
    StaffRegistration,
    StaffStatusReport,
    normalize_contact,
)
from .onboarding import CODE_MESSAGES
from .otp import OtpCheck, OtpEngine, subject_key, utcnow
from .ports import (
    Channel,
    NotificationGateway,
    OtpPurpose,
    OwnerRepository,
    OwnerStatus,
    StaffRepository,
    StaffStatus,
)
from .results import Failure, Outcome

logger = logging.getLogger(__name__)

_DECIDED = (StaffStatus.APPROVED, StaffStatus.REJECTED, StaffStatus.SUSPENDED)


@dataclass
class StaffApprovalService:
    """Domain service for staff registration and owner approval."""

    staff: StaffRepository
    owners: OwnerRepository
    otp: OtpEngine
    notifier: NotificationGateway
    contact_channel: Channel = Channel.SMS
    clock: Callable[[], datetime] = field(default=utcnow)

    def submit_registration(
        self, details: StaffRegistration, workshop_owner_id: int
    ) -> Outcome[StaffAccount]:
        """
        Register a staff member under an active workshop and send the first code.

        Raises nothing for business failures: a missing workshop is NOT_FOUND,
        a workshop that has not finished onboarding is INVALID_STATE.
        """
        owner = self.owners.get(workshop_owner_id)
        if owner is None:
            return Outcome.fail(Failure.NOT_FOUND, "Workshop not found")
        if owner.status is not OwnerStatus.ACTIVE:
            return Outcome.fail(Failure.INVALID_STATE, "Workshop is not active")

        email = normalize_contact(details.email)
        phone = normalize_contact(details.phone_number)
        for contact in (email, phone):
            existing = self.staff.find_by_contact(contact)
            if existing is not None and not existing.status.releases_contact:
                return Outcome.fail(Failure.ALREADY_PROCESSED, "Contact already registered")

        member = StaffAccount(
            name=details.name.strip(),
            email=email,
            phone_number=phone,
            city=details.city.strip(),
            workshop_owner_id=workshop_owner_id,
            created_at=self.clock(),
        )
        created = self.staff.add(member)
        if created is None:
            return Outcome.fail(Failure.ALREADY_PROCESSED, "Contact already registered")

        dispatch = self._send_code(created)
        logger.info(
            "Staff registered: %s, workshop owner %s, id %s",
            created.phone_number,
            workshop_owner_id,
            created.id,
        )
        message = "Registration submitted. Verify your phone with the code sent."
        if not dispatch.delivered:
            message = "Registration submitted. Code delivery failed, request a new code."
        return Outcome.success(created, message)

    def resend_contact_code(self, identifier: str) -> Outcome[OtpDispatch]:
        member = self.staff.find_by_contact(normalize_contact(identifier))
        if member is None:
            return Outcome.fail(Failure.NOT_FOUND, "Staff not found")
        if member.phone_verified:
            return Outcome.fail(Failure.ALREADY_PROCESSED, "Already verified")
        if member.status is not StaffStatus.PENDING_VERIFICATION:
            return self._wrong_status(member)
        return Outcome.success(self._send_code(member), "Code sent")

    def verify_contact(self, identifier: str, code: str) -> Outcome[StaffAccount]:
        """Validate the phone code, move to PENDING_OWNER_APPROVAL, tell the owner."""
        member = self.staff.find_by_contact(normalize_contact(identifier))
        if member is None:
            return Outcome.fail(Failure.NOT_FOUND, "Staff not found")
        if member.phone_verified:
            return Outcome.fail(Failure.ALREADY_PROCESSED, "Already verified")
        if member.status is not StaffStatus.PENDING_VERIFICATION:
            return self._wrong_status(member)

        key = self._key(member)
        check = self.otp.validate(key, code)
        if check is not OtpCheck.VALID:
            return Outcome.fail(check.failure, CODE_MESSAGES[check])

        member.phone_verified = True
        member.transition(StaffStatus.PENDING_OWNER_APPROVAL, self.clock())
        if not self.staff.save(member):
            return self._conflict(member)
        self.otp.invalidate(key)

        logger.info("Staff phone verified: %s", member.phone_number)

        owner = self.owners.get(member.workshop_owner_id)
        if owner is not None:
            self._notify_owner(owner, member)

        return Outcome.success(member, "Phone verified. Waiting for workshop owner approval.")

    def decide(
        self,
        staff_id: int,
        approve: bool,
        approver_owner_id: int,
        reason: str | None = None,
    ) -> Outcome[StaffAccount]:
        """
        Record the workshop owner's decision on a pending request.

        The approver must own the workshop the request was made to; any
        other owner gets UNAUTHORIZED and the request is left as it was.
        """
        member = self.staff.get(staff_id)
        if member is None:
            return Outcome.fail(Failure.NOT_FOUND, "Staff not found")
        if member.workshop_owner_id != approver_owner_id:
            logger.warning(
                "Owner %s tried to decide on staff %s of owner %s",
                approver_owner_id,
                staff_id,
                member.workshop_owner_id,
            )
            return Outcome.fail(
                Failure.UNAUTHORIZED, "You are not authorized to decide on this request"
            )
        if member.status in _DECIDED:
            return Outcome.fail(Failure.ALREADY_PROCESSED, "Request already decided")
        if member.status is not StaffStatus.PENDING_OWNER_APPROVAL:
            return self._wrong_status(member)

        owner = self.owners.get(approver_owner_id)
        if approve and (owner is None or owner.status is not OwnerStatus.ACTIVE):
            return Outcome.fail(Failure.INVALID_STATE, "Workshop is not active")

        now = self.clock()
        member.approved_by_owner_id = approver_owner_id
        if approve:
            member.transition(StaffStatus.APPROVED, now)
            member.is_active = True
            member.approved_at = now
        else:
            member.transition(StaffStatus.REJECTED, now)
            member.rejection_reason = reason.strip() if reason else None
        if not self.staff.save(member):
            return self._conflict(member)

        logger.info(
            "Staff %s: %s by owner %s",
            "approved" if approve else "rejected",
            member.id,
            approver_owner_id,
        )
        self._notify_decision(member, owner, approve)
        return Outcome.success(member, "Staff approved" if approve else "Staff rejected")

    def suspend(self, staff_id: int, owner_id: int) -> Outcome[StaffAccount]:
        member = self.staff.get(staff_id)
        if member is None:
            return Outcome.fail(Failure.NOT_FOUND, "Staff not found")
        if member.workshop_owner_id != owner_id:
            return Outcome.fail(
                Failure.UNAUTHORIZED, "You are not authorized to suspend this staff"
            )
        if member.status is StaffStatus.SUSPENDED:
            return Outcome.fail(Failure.ALREADY_PROCESSED, "Staff already suspended")
        if not member.status.can_transition_to(StaffStatus.SUSPENDED):
            return self._wrong_status(member)

        member.is_active = False
        member.transition(StaffStatus.SUSPENDED, self.clock())
        if not self.staff.save(member):
            return self._conflict(member)

        logger.info("Staff %s suspended by owner %s", member.id, owner_id)
        deliver(
            self.notifier,
            Channel.SMS,
            member.phone_number,
            "Your workshop access has been suspended by the workshop owner.",
        )
        return Outcome.success(member, "Staff suspended")

    def get_staff(self, staff_id: int) -> Outcome[StaffAccount]:
        member = self.staff.get(staff_id)
        if member is None:
            return Outcome.fail(Failure.NOT_FOUND, "Staff not found")
        return Outcome.success(member)

    def check_status(self, identifier: str) -> Outcome[StaffStatusReport]:
        """Let a staff member see where their request stands, by email or phone."""
        member = self.staff.find_by_contact(normalize_contact(identifier))
        if member is None:
            return Outcome.fail(Failure.NOT_FOUND, "Staff not found")

        owner = self.owners.get(member.workshop_owner_id)
        return Outcome.success(
            StaffStatusReport(
                staff=member, workshop_name=owner.workshop_name if owner is not None else None
            )
        )

    def list_workshops(self, city: str | None = None) -> list[OwnerAccount]:
        """Active workshops a staff member can apply to, optionally in one city."""
        if city is not None and not city.strip():
            city = None
        return self.owners.list_active_workshops(city)

    def list_pending_requests(self, workshop_owner_id: int) -> list[StaffAccount]:
        return self.staff.list_by_owner(workshop_owner_id, StaffStatus.PENDING_OWNER_APPROVAL)

    def list_staff(self, workshop_owner_id: int) -> list[StaffAccount]:
        return self.staff.list_by_owner(workshop_owner_id)

    def _key(self, member: StaffAccount) -> str:
        return subject_key(
            contact_for(self.contact_channel, member.email, member.phone_number),
            OtpPurpose.STAFF_CONTACT,
        )

    def _send_code(self, member: StaffAccount) -> OtpDispatch:
        code = self.otp.generate(self._key(member))
        delivered = deliver(
            self.notifier,
            self.contact_channel,
            contact_for(self.contact_channel, member.email, member.phone_number),
            f"Your staff verification code is {code}. "
            f"It expires in {self.otp.ttl_seconds // 60} minutes.",
        )
        return OtpDispatch(expires_in_seconds=self.otp.ttl_seconds, delivered=delivered)

    def _notify_owner(self, owner: OwnerAccount, member: StaffAccount) -> None:
        channel = Channel.EMAIL if owner.email else Channel.SMS
        deliver(
            self.notifier,
            channel,
            contact_for(channel, owner.email, owner.phone_number),
            f"{member.name} has requested to join {owner.workshop_name}. "
            f"Email: {member.email} Phone: {member.phone_number}. "
            "Log in to approve or reject the request.",
        )

    def _notify_decision(
        self, member: StaffAccount, owner: OwnerAccount | None, approved: bool
    ) -> None:
        workshop = owner.workshop_name if owner is not None else "the workshop"
        if approved:
            email_body = f"Your request to join {workshop} has been approved. You can now log in."
            sms_body = f"Your registration to {workshop} has been approved!"
        else:
            email_body = f"Your request to join {workshop} has been declined."
            if member.rejection_reason:
                email_body += f" Reason: {member.rejection_reason}"
            sms_body = "Your registration request has been declined."

        deliver(self.notifier, Channel.EMAIL, member.email, email_body)
        deliver(self.notifier, Channel.SMS, member.phone_number, sms_body)

    def _wrong_status(self, member: StaffAccount) -> Outcome:
        return Outcome.fail(
            Failure.INVALID_STATE, f"Invalid status for this step: {member.status.value}"
        )

    def _conflict(self, member: StaffAccount) -> Outcome:
        logger.warning("Staff %s was modified concurrently", member.id)
        return Outcome.fail(Failure.INVALID_STATE, "Account changed meanwhile, refresh and retry")
