"""User router - FastAPI endpoints for profiles and account self-service"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...auth import get_current_user, require_roles
from ...database import get_db
from ...models import User
from ...rate_limiter import login_rate_limit, otp_rate_limit, register_rate_limit
from ...shared.schemas import AuthResponse, MessageResponse, UserResponse
from ..auth.schemas import EmailRequest, LoginRequest, RegisterRequest, ResetPasswordRequest
from ..auth.service import AuthService
from ..billing.schemas import SubscriptionDetailsResponse
from ..billing.subscription_service import SubscriptionService
from .schemas import (
    AdminMessageResponse,
    ChangePasswordRequest,
    ContactAdminRequest,
    ProfileResponse,
    ProfileUpdateRequest,
    ProfileUpdateResponse,
)
from .service import UserService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/users", tags=["Users"])

require_customer = require_roles("customer")
require_provider = require_roles("provider")


def get_user_service(db: Session = Depends(get_db)) -> UserService:
    """Dependency injection for UserService"""
    return UserService(db)


# ============================================================================
# SIGN-UP / SIGN-IN ALIASES
# ============================================================================


@router.post(
    "/register",
    response_model=AuthResponse,
    status_code=201,
    dependencies=[Depends(register_rate_limit)],
)
async def register(data: RegisterRequest, db: Session = Depends(get_db)):
    """Create an account and return a session token"""
    return AuthService(db).register(data)


@router.post("/login", response_model=AuthResponse, dependencies=[Depends(login_rate_limit)])
async def login(data: LoginRequest, db: Session = Depends(get_db)):
    """Sign in with email and password"""
    return AuthService(db).login(data.email, data.password)


@router.post("/forgot-password", response_model=MessageResponse, dependencies=[Depends(otp_rate_limit)])
async def forgot_password(data: EmailRequest, db: Session = Depends(get_db)):
    """Email a password reset code"""
    return await AuthService(db).request_password_reset(data.email)


@router.post("/reset-password", response_model=MessageResponse, dependencies=[Depends(otp_rate_limit)])
async def reset_password(data: ResetPasswordRequest, db: Session = Depends(get_db)):
    """Set a new password using the emailed code"""
    return AuthService(db).reset_password(data.email, data.otp, data.newPassword)


# ============================================================================
# PROFILE
# ============================================================================


@router.get("/profile", response_model=ProfileResponse)
async def get_profile(
    user: User = Depends(get_current_user), service: UserService = Depends(get_user_service)
):
    """Get the signed-in user's profile"""
    return await service.get_profile(user)


@router.put("/profile", response_model=ProfileUpdateResponse)
async def update_profile(
    data: ProfileUpdateRequest,
    user: User = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    """Update the signed-in user's profile"""
    updated = await service.update_profile(user, data)
    return {"message": "Profile updated successfully", "user": UserResponse.from_user(updated)}


@router.put("/change-password", response_model=MessageResponse)
async def change_password(
    data: ChangePasswordRequest,
    user: User = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    """Change password after confirming the current one"""
    return service.change_password(user, data)


@router.delete("/delete", response_model=MessageResponse)
async def delete_account(
    user: User = Depends(require_roles("customer", "provider")),
    service: UserService = Depends(get_user_service),
):
    """Delete the signed-in account"""
    return await service.delete_account(user)


# ============================================================================
# CUSTOMER -> ADMIN MESSAGES
# ============================================================================


@router.post("/contact-admin", response_model=AdminMessageResponse, status_code=201)
async def contact_admin(
    data: ContactAdminRequest,
    user: User = Depends(require_customer),
    service: UserService = Depends(get_user_service),
):
    """Report a provider to the admins"""
    return AdminMessageResponse.from_message(await service.contact_admin(user, data))


@router.get("/messages", response_model=list[AdminMessageResponse])
async def get_messages(
    user: User = Depends(require_customer), service: UserService = Depends(get_user_service)
):
    """The customer's messages to admins, newest first"""
    return [AdminMessageResponse.from_message(m) for m in service.get_messages(user)]


# ============================================================================
# PROVIDER SELF-SERVICE
# ============================================================================


@router.put("/profile/{user_id}/toggle-status", response_model=UserResponse)
async def toggle_status(
    user_id: int,
    user: User = Depends(require_provider),
    service: UserService = Depends(get_user_service),
):
    """Switch the provider between active and inactive"""
    return UserResponse.from_user(await service.toggle_status(user, user_id))


@router.put("/profile/{user_id}/toggle-availability", response_model=UserResponse)
async def toggle_availability(
    user_id: int,
    user: User = Depends(require_provider),
    service: UserService = Depends(get_user_service),
):
    """Switch the provider between Available and Unavailable"""
    return UserResponse.from_user(await service.toggle_availability(user, user_id))


@router.get("/subscription-details", response_model=SubscriptionDetailsResponse)
async def subscription_details(user: User = Depends(require_provider), db: Session = Depends(get_db)):
    """Tier, usage and status for the provider's subscription"""
    return SubscriptionService(db).get_subscription_details(user)


@router.post("/cancel-subscription")
async def cancel_subscription(user: User = Depends(require_provider), db: Session = Depends(get_db)):
    """Cancel the provider's paid tier"""
    provider = await SubscriptionService(db).cancel_provider_subscription(user)
    return {"message": "Subscription cancelled successfully", "user": UserResponse.from_user(provider)}


__all__ = ["router"]
