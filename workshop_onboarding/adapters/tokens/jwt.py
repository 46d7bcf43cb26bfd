"""
JWT credential issuer - Implements CredentialIssuer protocol.

Signs HMAC access tokens with python-jose. Claims identify the actor, its
role and, for staff, the workshop it belongs to.
"""

import logging
from collections.abc import Callable
from datetime import datetime, timedelta
from typing import Any

from jose import JWTError, jwt

from workshop_onboarding.domain.models import AccessCredential, OwnerAccount, StaffAccount
from workshop_onboarding.domain.otp import utcnow
from workshop_onboarding.domain.ports import Role

logger = logging.getLogger(__name__)


class InvalidToken(Exception):
    """Token failed signature, expiry, issuer or audience checks."""


class JwtCredentialIssuer:
    """
    Implements CredentialIssuer protocol via python-jose.

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    def __init__(
        self,
        secret_key: str,
        algorithm: str = "HS256",
        issuer: str = "workshop-onboarding",
        audience: str = "workshop-clients",
        expiry_minutes: int = 43200,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._secret_key = secret_key
        self._algorithm = algorithm
        self._issuer = issuer
        self._audience = audience
        self._expiry = timedelta(minutes=expiry_minutes)
        self._clock = clock

    def issue(self, actor: OwnerAccount | StaffAccount, role: Role) -> AccessCredential:
        issued_at = self._clock()
        expires_at = issued_at + self._expiry

        claims: dict[str, Any] = {
            "sub": str(actor.id),
            "role": role.value,
            "email": actor.email,
            "phone": actor.phone_number,
            "status": actor.status.value,
            "iss": self._issuer,
            "aud": self._audience,
            "iat": int(issued_at.timestamp()),
            "exp": int(expires_at.timestamp()),
        }
        if isinstance(actor, OwnerAccount):
            claims["name"] = actor.owner_name
            claims["workshop_name"] = actor.workshop_name
            claims["city"] = actor.city
        else:
            claims["name"] = actor.name
            claims["workshop_owner_id"] = actor.workshop_owner_id
            claims["city"] = actor.city

        token = jwt.encode(claims, self._secret_key, algorithm=self._algorithm)
        logger.info(
            "Access token issued for %s %s, expires %s",
            role.value,
            actor.id,
            expires_at.isoformat(),
        )
        return AccessCredential(
            token=token, expires_at=expires_at, subject_id=actor.id, role=role
        )

    def decode(self, token: str) -> dict[str, Any]:
        """
        Verify a token and return its claims.

        Raises:
            InvalidToken: If the token is malformed, forged or expired
        """
        try:
            return jwt.decode(
                token,
                self._secret_key,
                algorithms=[self._algorithm],
                audience=self._audience,
                issuer=self._issuer,
            )
        except JWTError as e:
            raise InvalidToken(str(e)) from e
