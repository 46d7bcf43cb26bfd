"""
Access - credential issuance for actors that finished their workflow.

Only an ACTIVE workshop owner or an APPROVED staff member can obtain an
access credential. Login is passwordless: a LOGIN-purpose code is sent to
the actor's phone and exchanged for a signed token.
"""

import logging
from dataclasses import dataclass

from .delivery import deliver
from .models import AccessCredential, OtpDispatch, OwnerAccount, StaffAccount, normalize_contact
from .onboarding import CODE_MESSAGES
from .otp import OtpCheck, OtpEngine, subject_key
from .ports import (
    Channel,
    CredentialIssuer,
    NotificationGateway,
    OtpPurpose,
    OwnerRepository,
    OwnerStatus,
    Role,
    StaffRepository,
    StaffStatus,
)
from .results import Failure, Outcome

logger = logging.getLogger(__name__)


def role_of(actor: OwnerAccount | StaffAccount) -> Role:
    return Role.OWNER if isinstance(actor, OwnerAccount) else Role.STAFF


def is_eligible(actor: OwnerAccount | StaffAccount) -> bool:
    """Whether the actor reached the state that unlocks access."""
    if isinstance(actor, OwnerAccount):
        return actor.status is OwnerStatus.ACTIVE
    return actor.status is StaffStatus.APPROVED and actor.is_active


@dataclass
class AccessService:
    owners: OwnerRepository
    staff: StaffRepository
    otp: OtpEngine
    notifier: NotificationGateway
    issuer: CredentialIssuer

    def request_login_code(self, identifier: str) -> Outcome[OtpDispatch]:
        actor = self._find(identifier)
        if actor is None:
            return Outcome.fail(Failure.NOT_FOUND, "Contact not registered")
        if not is_eligible(actor):
            return self._not_active(actor)

        code = self.otp.generate(self._key(actor))
        delivered = deliver(
            self.notifier,
            Channel.SMS,
            actor.phone_number,
            f"Your login code is {code}. It expires in {self.otp.ttl_seconds // 60} minutes.",
        )
        return Outcome.success(
            OtpDispatch(expires_in_seconds=self.otp.ttl_seconds, delivered=delivered),
            "Login code sent",
        )

    def login(self, identifier: str, code: str) -> Outcome[AccessCredential]:
        """Exchange a login code for an access credential."""
        actor = self._find(identifier)
        if actor is None:
            return Outcome.fail(Failure.NOT_FOUND, "Contact not registered")

        key = self._key(actor)
        check = self.otp.validate(key, code)
        if check is not OtpCheck.VALID:
            return Outcome.fail(check.failure, CODE_MESSAGES[check])
        self.otp.invalidate(key)

        return self.issue_credential(actor)

    def issue_credential(self, actor: OwnerAccount | StaffAccount) -> Outcome[AccessCredential]:
        if not is_eligible(actor):
            return self._not_active(actor)

        credential = self.issuer.issue(actor, role_of(actor))
        logger.info("Credential issued to %s %s", credential.role.value, credential.subject_id)
        return Outcome.success(credential, "Login successful")

    def _find(self, identifier: str) -> OwnerAccount | StaffAccount | None:
        contact = normalize_contact(identifier)
        candidates = [
            actor
            for actor in (
                self.owners.find_by_contact(contact),
                self.staff.find_by_contact(contact),
            )
            if actor is not None
        ]
        # An actor able to log in wins over a rejected or pending one on the same contact
        for actor in candidates:
            if is_eligible(actor):
                return actor
        return candidates[0] if candidates else None

    def _key(self, actor: OwnerAccount | StaffAccount) -> str:
        # Role in the key keeps an owner and a staff member sharing a phone apart
        return subject_key(f"{role_of(actor).value}:{actor.phone_number}", OtpPurpose.LOGIN)

    def _not_active(self, actor: OwnerAccount | StaffAccount) -> Outcome:
        logger.warning(
            "Access refused for %s %s in status %s",
            role_of(actor).value,
            actor.id,
            actor.status.value,
        )
        return Outcome.fail(Failure.INVALID_STATE, "Account is not active")
