"""
FastAPI dependencies - Dependency injection factories.

This module provides Depends() factories for injecting
domain services and infrastructure adapters into routes.

Stateful collaborators (repositories, OTP engine, credential issuer) are
created during app lifespan startup and stored in app.state.
"""

import secrets

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import APIKeyHeader, HTTPAuthorizationCredentials, HTTPBearer

from workshop_onboarding.adapters.notifications.console import ConsoleNotificationGateway
from workshop_onboarding.adapters.tokens.jwt import InvalidToken, JwtCredentialIssuer
from workshop_onboarding.config.settings import get_settings
from workshop_onboarding.domain.access import AccessService
from workshop_onboarding.domain.onboarding import OwnerOnboardingService
from workshop_onboarding.domain.otp import OtpEngine
from workshop_onboarding.domain.ports import Channel, OwnerRepository, Role, StaffRepository
from workshop_onboarding.domain.staff import StaffApprovalService

# Module-level singleton - ConsoleNotificationGateway is stateless
_notifier = ConsoleNotificationGateway()


def get_owner_repository(request: Request) -> OwnerRepository:
    return request.app.state.owners


def get_staff_repository(request: Request) -> StaffRepository:
    return request.app.state.staff


def get_otp_engine(request: Request) -> OtpEngine:
    """Get the OTP engine owned by this application instance."""
    return request.app.state.otp_engine


def get_credential_issuer(request: Request) -> JwtCredentialIssuer:
    return request.app.state.issuer


def get_notifier() -> ConsoleNotificationGateway:
    """Get console notification gateway (singleton)."""
    return _notifier


def get_onboarding_service(request: Request) -> OwnerOnboardingService:
    """
    Create owner onboarding service with injected dependencies.

    Wires together the owner repository, OTP engine and notification gateway.
    """
    settings = get_settings()
    return OwnerOnboardingService(
        owners=get_owner_repository(request),
        otp=get_otp_engine(request),
        notifier=get_notifier(),
        verifier_code=settings.verifier_confirmation_code,
        contact_channel=Channel(settings.owner_contact_channel),
        password_length=settings.generated_password_length,
        bcrypt_cost=settings.bcrypt_cost,
    )


def get_staff_service(request: Request) -> StaffApprovalService:
    settings = get_settings()
    return StaffApprovalService(
        staff=get_staff_repository(request),
        owners=get_owner_repository(request),
        otp=get_otp_engine(request),
        notifier=get_notifier(),
        contact_channel=Channel(settings.staff_contact_channel),
    )


def get_access_service(request: Request) -> AccessService:
    return AccessService(
        owners=get_owner_repository(request),
        staff=get_staff_repository(request),
        otp=get_otp_engine(request),
        notifier=get_notifier(),
        issuer=get_credential_issuer(request),
    )


# Administrative endpoints (verifier team, back office)
admin_key_header = APIKeyHeader(name="X-Admin-Key", auto_error=False)


def require_admin(api_key: str | None = Depends(admin_key_header)) -> None:
    """Reject requests without the configured admin key."""
    expected = get_settings().admin_api_key
    if api_key is None or not secrets.compare_digest(api_key.encode(), expected.encode()):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"message": "Admin key required", "error": "unauthorized"},
        )


# Bearer tokens issued by /v1/auth/login
http_bearer = HTTPBearer()


def get_current_owner_id(
    request: Request,
    credentials: HTTPAuthorizationCredentials = Depends(http_bearer),
) -> int:
    """
    Authenticate a workshop owner from the bearer token.

    Returns:
        The owner id carried in the token subject
    """
    issuer = get_credential_issuer(request)
    try:
        claims = issuer.decode(credentials.credentials)
    except InvalidToken:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"message": "Invalid or expired token", "error": "unauthorized"},
            headers={"WWW-Authenticate": "Bearer"},
        ) from None

    if claims.get("role") != Role.OWNER.value:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={"message": "Workshop owner access required", "error": "unauthorized"},
        )
    return int(claims["sub"])
