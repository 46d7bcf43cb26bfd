"""
Workshop owner onboarding - multi-step verification state machine.

Owner Onboarding (Forward-Only Transitions)
===========================================

    PENDING_VERIFICATION
        | verify_contact (owner OTP)
        v
    PENDING_THIRD_PARTY_VERIFICATION
        | complete_third_party_verification (verifier code + owner OTP)
        v
    PENDING_DOCUMENT_UPLOAD
        | upload_document (any order, no transition)
        | complete_onboarding (owner photo + workshop photo present)
        v
    ACTIVE

    REJECTED   <- reject(reason) from any pending state
    SUSPENDED  <- suspend() from any pending state or ACTIVE

The third-party step is two-factor: the owner proves identity with a code
delivered electronically, the verifier team member proves physical presence
with a fixed code shared out of band.

Every operation reads the account, checks its status, and writes it back
through an optimistic save. A precondition failure leaves the stored account
untouched; a lost race is reported as INVALID_STATE.
"""

import logging
import secrets
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime

import bcrypt

from .delivery import contact_for, deliver
from .models import (
    ActivationReceipt,
    OtpDispatch,
    OwnerAccount,
    OwnerRegistration,
    VerifierDetails,
    normalize_contact,
)
from .otp import OtpCheck, OtpEngine, subject_key, utcnow
from .ports import (
    MANDATORY_DOCUMENTS,
    Channel,
    DocumentKind,
    NotificationGateway,
    OtpPurpose,
    OwnerRepository,
    OwnerStatus,
)
from .results import Failure, Outcome

logger = logging.getLogger(__name__)

_PASSWORD_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnpqrstuvwxyz23456789!@#$"

CODE_MESSAGES = {
    OtpCheck.NOT_FOUND: "No active code, request a new one",
    OtpCheck.EXPIRED: "Code expired, request a new one",
    OtpCheck.EXHAUSTED: "Too many attempts, request a new code",
    OtpCheck.MISMATCH: "Invalid code",
}


@dataclass
class OwnerOnboardingService:
    """
    Domain service driving a workshop owner from registration to activation.

    `contact_channel` selects the deployment variant: owners verify either
    their email address or their phone number in the first step, and all
    owner codes go to that contact.
    """

    owners: OwnerRepository
    otp: OtpEngine
    notifier: NotificationGateway
    verifier_code: str
    contact_channel: Channel = Channel.EMAIL
    clock: Callable[[], datetime] = field(default=utcnow)
    password_length: int = 10
    bcrypt_cost: int = 10

    def submit_registration(self, details: OwnerRegistration) -> Outcome[OwnerAccount]:
        """
        Create the account in PENDING_VERIFICATION and send the first code.

        A contact held by any account not yet rejected cannot register again.
        """
        email = normalize_contact(details.email)
        phone = normalize_contact(details.phone_number)

        for contact in (email, phone):
            existing = self.owners.find_by_contact(contact)
            if existing is not None and not existing.status.releases_contact:
                return Outcome.fail(Failure.ALREADY_PROCESSED, "Contact already registered")

        owner = OwnerAccount(
            owner_name=details.owner_name.strip(),
            email=email,
            phone_number=phone,
            workshop_name=details.workshop_name.strip(),
            address=details.address.strip(),
            city=details.city.strip(),
            trade_license_number=details.trade_license_number.strip(),
            created_at=self.clock(),
        )
        created = self.owners.add(owner)
        if created is None:
            return Outcome.fail(Failure.ALREADY_PROCESSED, "Contact already registered")

        dispatch = self._send_code(created, OtpPurpose.OWNER_CONTACT, "verification")
        logger.info("Workshop owner registered: %s (id %s)", created.email, created.id)
        message = "Registration submitted. Verify your contact with the code sent."
        if not dispatch.delivered:
            message = "Registration submitted. Code delivery failed, request a new code."
        return Outcome.success(created, message)

    def resend_contact_code(self, identifier: str) -> Outcome[OtpDispatch]:
        owner = self.owners.find_by_contact(normalize_contact(identifier))
        if owner is None:
            return Outcome.fail(Failure.NOT_FOUND, "Workshop owner not found")
        if owner.contact_verified:
            return Outcome.fail(Failure.ALREADY_PROCESSED, "Contact already verified")
        if owner.status is not OwnerStatus.PENDING_VERIFICATION:
            return self._wrong_status(owner)

        return Outcome.success(
            self._send_code(owner, OtpPurpose.OWNER_CONTACT, "verification"), "Code sent"
        )

    def verify_contact(self, identifier: str, code: str) -> Outcome[OwnerAccount]:
        """Validate the first-step code and advance to PENDING_THIRD_PARTY_VERIFICATION."""
        owner = self.owners.find_by_contact(normalize_contact(identifier))
        if owner is None:
            return Outcome.fail(Failure.NOT_FOUND, "Workshop owner not found")
        if owner.contact_verified:
            return Outcome.fail(Failure.ALREADY_PROCESSED, "Contact already verified")
        if owner.status is not OwnerStatus.PENDING_VERIFICATION:
            return self._wrong_status(owner)

        key = self._key(owner, OtpPurpose.OWNER_CONTACT)
        check = self.otp.validate(key, code)
        if check is not OtpCheck.VALID:
            return Outcome.fail(check.failure, CODE_MESSAGES[check])

        owner.contact_verified = True
        owner.transition(OwnerStatus.PENDING_THIRD_PARTY_VERIFICATION, self.clock())
        if not self.owners.save(owner):
            return self._conflict(owner)
        self.otp.invalidate(key)

        logger.info("Contact verified for workshop owner %s", owner.id)
        return Outcome.success(owner, "Contact verified. Awaiting verifier team visit.")

    def initiate_third_party_verification(
        self, owner_id: int, verifier: VerifierDetails
    ) -> Outcome[OtpDispatch]:
        """
        Start the in-person check: send a fresh code to the owner's contact.

        The verifier confirms with the fixed confirmation code instead.
        """
        owner = self.owners.get(owner_id)
        if owner is None:
            return Outcome.fail(Failure.NOT_FOUND, "Workshop owner not found")
        if owner.third_party_verified:
            return Outcome.fail(Failure.ALREADY_PROCESSED, "Verifier check already completed")
        if owner.status is not OwnerStatus.PENDING_THIRD_PARTY_VERIFICATION:
            return self._wrong_status(owner)

        dispatch = self._send_code(owner, OtpPurpose.THIRD_PARTY, "in-person verification")
        logger.info(
            "Verifier check initiated for workshop owner %s by %s", owner.id, verifier.name
        )
        return Outcome.success(dispatch, "Code sent to the workshop owner")

    def complete_third_party_verification(
        self,
        owner_id: int,
        verifier: VerifierDetails,
        verifier_code: str,
        owner_code: str,
    ) -> Outcome[OwnerAccount]:
        """Check both factors and advance to PENDING_DOCUMENT_UPLOAD."""
        owner = self.owners.get(owner_id)
        if owner is None:
            return Outcome.fail(Failure.NOT_FOUND, "Workshop owner not found")
        if owner.third_party_verified:
            return Outcome.fail(Failure.ALREADY_PROCESSED, "Verifier check already completed")
        if owner.status is not OwnerStatus.PENDING_THIRD_PARTY_VERIFICATION:
            return self._wrong_status(owner)

        if not secrets.compare_digest(self.verifier_code.encode(), verifier_code.encode()):
            logger.warning("Invalid verifier code for workshop owner %s", owner.id)
            return Outcome.fail(Failure.INVALID_CODE, "Invalid verifier code")

        key = self._key(owner, OtpPurpose.THIRD_PARTY)
        check = self.otp.validate(key, owner_code)
        if check is not OtpCheck.VALID:
            return Outcome.fail(check.failure, CODE_MESSAGES[check])

        now = self.clock()
        owner.verifier_name = verifier.name.strip()
        owner.verifier_phone = normalize_contact(verifier.phone_number)
        owner.third_party_verified = True
        owner.third_party_verified_at = now
        owner.transition(OwnerStatus.PENDING_DOCUMENT_UPLOAD, now)
        if not self.owners.save(owner):
            return self._conflict(owner)
        self.otp.invalidate(key)

        logger.info("Verifier check completed for workshop owner %s", owner.id)
        return Outcome.success(owner, "Verification complete. Upload owner and workshop photos.")

    def upload_document(
        self, owner_id: int, kind: DocumentKind, file_ref: str
    ) -> Outcome[OwnerAccount]:
        """Attach a document reference. Documents may arrive in any order."""
        if not file_ref.strip():
            raise ValueError("file_ref must not be empty")

        owner = self.owners.get(owner_id)
        if owner is None:
            return Outcome.fail(Failure.NOT_FOUND, "Workshop owner not found")
        if owner.status is not OwnerStatus.PENDING_DOCUMENT_UPLOAD:
            return self._wrong_status(owner)

        owner.attach_document(kind, file_ref.strip())
        owner.updated_at = self.clock()
        if not self.owners.save(owner):
            return self._conflict(owner)

        logger.info("Document %s uploaded for workshop owner %s", kind.value, owner.id)
        return Outcome.success(owner, f"{kind.value} uploaded")

    def complete_onboarding(
        self, owner_id: int, send_credentials: bool = False
    ) -> Outcome[ActivationReceipt]:
        """
        Activate the account once both mandatory photos are present.

        With `send_credentials`, an initial password is generated, stored
        hashed, and delivered best-effort. A failed delivery does not undo
        the activation.
        """
        owner = self.owners.get(owner_id)
        if owner is None:
            return Outcome.fail(Failure.NOT_FOUND, "Workshop owner not found")
        if owner.status is not OwnerStatus.PENDING_DOCUMENT_UPLOAD:
            return self._wrong_status(owner)

        for kind in MANDATORY_DOCUMENTS:
            if not owner.document(kind):
                return Outcome.fail(Failure.INVALID_STATE, f"{kind.value} is required")

        password = None
        if send_credentials:
            password = self._generate_password()
            owner.password_hash = self._hash_password(password)

        now = self.clock()
        owner.transition(OwnerStatus.ACTIVE, now)
        owner.is_active = True
        owner.activated_at = now
        if not self.owners.save(owner):
            return self._conflict(owner)

        logger.info("Workshop owner %s activated", owner.id)

        credentials_sent = False
        if password is not None:
            target = contact_for(self.contact_channel, owner.email, owner.phone_number)
            credentials_sent = deliver(
                self.notifier,
                self.contact_channel,
                target,
                f"Welcome {owner.owner_name}! {owner.workshop_name} is now active. "
                f"Login: {target} Password: {password} "
                "Please change your password after first login.",
            )

        return Outcome.success(
            ActivationReceipt(owner=owner, credentials_sent=credentials_sent),
            "Onboarding complete. The account is now active.",
        )

    def reject(self, owner_id: int, reason: str) -> Outcome[OwnerAccount]:
        owner = self.owners.get(owner_id)
        if owner is None:
            return Outcome.fail(Failure.NOT_FOUND, "Workshop owner not found")
        if owner.status is OwnerStatus.REJECTED:
            return Outcome.fail(Failure.ALREADY_PROCESSED, "Registration already rejected")
        if not owner.status.can_transition_to(OwnerStatus.REJECTED):
            return self._wrong_status(owner)

        owner.rejection_reason = reason.strip()
        owner.is_active = False
        owner.transition(OwnerStatus.REJECTED, self.clock())
        if not self.owners.save(owner):
            return self._conflict(owner)

        logger.info("Workshop owner %s rejected: %s", owner.id, owner.rejection_reason)
        deliver(
            self.notifier,
            self.contact_channel,
            contact_for(self.contact_channel, owner.email, owner.phone_number),
            f"Your registration for {owner.workshop_name} was rejected. "
            f"Reason: {owner.rejection_reason}",
        )
        return Outcome.success(owner, "Registration rejected")

    def suspend(self, owner_id: int) -> Outcome[OwnerAccount]:
        owner = self.owners.get(owner_id)
        if owner is None:
            return Outcome.fail(Failure.NOT_FOUND, "Workshop owner not found")
        if owner.status is OwnerStatus.SUSPENDED:
            return Outcome.fail(Failure.ALREADY_PROCESSED, "Account already suspended")
        if not owner.status.can_transition_to(OwnerStatus.SUSPENDED):
            return self._wrong_status(owner)

        owner.is_active = False
        owner.transition(OwnerStatus.SUSPENDED, self.clock())
        if not self.owners.save(owner):
            return self._conflict(owner)

        logger.info("Workshop owner %s suspended", owner.id)
        return Outcome.success(owner, "Account suspended")

    def get_owner(self, owner_id: int) -> Outcome[OwnerAccount]:
        owner = self.owners.get(owner_id)
        if owner is None:
            return Outcome.fail(Failure.NOT_FOUND, "Workshop owner not found")
        return Outcome.success(owner)

    def list_by_status(self, status: OwnerStatus) -> list[OwnerAccount]:
        return self.owners.list_by_status(status)

    def _key(self, owner: OwnerAccount, purpose: OtpPurpose) -> str:
        return subject_key(
            contact_for(self.contact_channel, owner.email, owner.phone_number), purpose
        )

    def _send_code(self, owner: OwnerAccount, purpose: OtpPurpose, label: str) -> OtpDispatch:
        code = self.otp.generate(self._key(owner, purpose))
        delivered = deliver(
            self.notifier,
            self.contact_channel,
            contact_for(self.contact_channel, owner.email, owner.phone_number),
            f"Your {label} code is {code}. "
            f"It expires in {self.otp.ttl_seconds // 60} minutes.",
        )
        return OtpDispatch(expires_in_seconds=self.otp.ttl_seconds, delivered=delivered)

    def _wrong_status(self, owner: OwnerAccount) -> Outcome:
        return Outcome.fail(
            Failure.INVALID_STATE, f"Invalid status for this step: {owner.status.value}"
        )

    def _conflict(self, owner: OwnerAccount) -> Outcome:
        logger.warning("Workshop owner %s was modified concurrently", owner.id)
        return Outcome.fail(Failure.INVALID_STATE, "Account changed meanwhile, refresh and retry")

    def _generate_password(self) -> str:
        return "".join(secrets.choice(_PASSWORD_ALPHABET) for _ in range(self.password_length))

    def _hash_password(self, password: str) -> str:
        return bcrypt.hashpw(password.encode(), bcrypt.gensalt(rounds=self.bcrypt_cost)).decode()
