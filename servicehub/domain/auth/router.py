"""Auth router - FastAPI endpoints for sign-up, sign-in and password recovery"""

import logging
from typing import Union

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...database import get_db
from ...rate_limiter import login_rate_limit, otp_rate_limit, register_rate_limit
from ...shared.schemas import AuthResponse, MessageResponse
from .schemas import (
    AdminSignupRequest,
    EmailRequest,
    LoginRequest,
    OTPChallengeResponse,
    RegisterRequest,
    ResetPasswordRequest,
    VerifyOTPRequest,
)
from .service import AuthService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Auth"])


def get_auth_service(db: Session = Depends(get_db)) -> AuthService:
    """Dependency injection for AuthService"""
    return AuthService(db)


# ============================================================================
# CUSTOMER / PROVIDER ACCOUNTS
# ============================================================================


@router.post(
    "/register",
    response_model=AuthResponse,
    status_code=201,
    dependencies=[Depends(register_rate_limit)],
)
async def register(data: RegisterRequest, service: AuthService = Depends(get_auth_service)):
    """Create an account and return a session token"""
    return service.register(data)


@router.post("/login", response_model=AuthResponse, dependencies=[Depends(login_rate_limit)])
async def login(data: LoginRequest, service: AuthService = Depends(get_auth_service)):
    """Sign in with email and password"""
    return service.login(data.email, data.password)


# ============================================================================
# ADMIN ACCOUNTS
# ============================================================================


@router.post(
    "/admin-login",
    response_model=Union[AuthResponse, OTPChallengeResponse],
    dependencies=[Depends(login_rate_limit)],
)
async def admin_login(data: LoginRequest, service: AuthService = Depends(get_auth_service)):
    """Admin sign-in; answers with an OTP challenge when second factor is on"""
    return await service.admin_login(data.email, data.password)


@router.post("/admin-verify-otp", response_model=AuthResponse, dependencies=[Depends(otp_rate_limit)])
async def admin_verify_otp(data: VerifyOTPRequest, service: AuthService = Depends(get_auth_service)):
    """Complete admin sign-in with the emailed code"""
    return service.verify_admin_otp(data.email, data.otp)


@router.post("/admin-resend-otp", response_model=MessageResponse, dependencies=[Depends(otp_rate_limit)])
async def admin_resend_otp(data: EmailRequest, service: AuthService = Depends(get_auth_service)):
    """Send a new admin sign-in code"""
    return await service.resend_admin_otp(data.email)


@router.post(
    "/admin-signup",
    response_model=AuthResponse,
    status_code=201,
    dependencies=[Depends(register_rate_limit)],
)
async def admin_signup(data: AdminSignupRequest, service: AuthService = Depends(get_auth_service)):
    """Create an admin account"""
    return service.admin_signup(data)


@router.post(
    "/admin/forgot-password", response_model=MessageResponse, dependencies=[Depends(otp_rate_limit)]
)
async def admin_forgot_password(data: EmailRequest, service: AuthService = Depends(get_auth_service)):
    """Email an admin password reset code"""
    return await service.request_password_reset(data.email, admin_only=True)


@router.post(
    "/admin/reset-password", response_model=MessageResponse, dependencies=[Depends(otp_rate_limit)]
)
async def admin_reset_password(
    data: ResetPasswordRequest, service: AuthService = Depends(get_auth_service)
):
    """Set a new admin password using the emailed code"""
    return service.reset_password(data.email, data.otp, data.newPassword, admin_only=True)


__all__ = ["router"]
