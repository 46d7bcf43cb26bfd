"""
Domain layer - Pure business logic with zero framework imports.

This package contains the OTP engine and the two registration state
machines (workshop owner onboarding, staff approval), plus the access
glue that issues credentials once a machine reaches its active state.
It defines its own port interfaces for infrastructure abstraction.
"""

from .access import AccessService
from .exceptions import DependencyFailure, InvalidTransition, OnboardingError
from .models import (
    AccessCredential,
    ActivationReceipt,
    OtpDispatch,
    OtpRecord,
    OwnerAccount,
    OwnerRegistration,
    StaffAccount,
    StaffRegistration,
    StaffStatusReport,
    VerifierDetails,
)
from .onboarding import OwnerOnboardingService
from .otp import OtpCheck, OtpEngine, subject_key
from .ports import (
    Channel,
    CredentialIssuer,
    DocumentKind,
    NotificationGateway,
    OtpPurpose,
    OtpStore,
    OwnerRepository,
    OwnerStatus,
    Role,
    StaffRepository,
    StaffStatus,
)
from .results import Failure, Outcome
from .staff import StaffApprovalService

__all__ = [
    "AccessCredential",
    "AccessService",
    "ActivationReceipt",
    "Channel",
    "CredentialIssuer",
    "DependencyFailure",
    "DocumentKind",
    "Failure",
    "InvalidTransition",
    "NotificationGateway",
    "OnboardingError",
    "OtpCheck",
    "OtpDispatch",
    "OtpEngine",
    "OtpPurpose",
    "OtpRecord",
    "OtpStore",
    "Outcome",
    "OwnerAccount",
    "OwnerOnboardingService",
    "OwnerRegistration",
    "OwnerRepository",
    "OwnerStatus",
    "Role",
    "StaffAccount",
    "StaffApprovalService",
    "StaffRegistration",
    "StaffRepository",
    "StaffStatus",
    "StaffStatusReport",
    "VerifierDetails",
    "subject_key",
]
