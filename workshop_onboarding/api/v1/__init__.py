"""
API v1 package.

Contains versioned routes for workshop owner onboarding, staff approval
and login.
"""

from fastapi import APIRouter

from workshop_onboarding.api.v1 import auth, owners, staff

router = APIRouter()
router.include_router(owners.router)
router.include_router(staff.router)
router.include_router(auth.router)

__all__ = ["router"]
