"""Auth service - Registration, sign-in, admin OTP and password reset"""

import logging
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...auth import create_access_token, hash_password, verify_password
from ...config import ADMIN_OTP_ENABLED
from ...email_service import send_admin_login_otp, send_password_reset_otp
from ...models import USER_ROLES, User
from ...services.otp import (
    ADMIN_LOGIN,
    NO_PENDING_CODE,
    PASSWORD_RESET,
    clear_otp,
    has_pending_otp,
    issue_otp,
    verify_otp,
)
from ...shared.schemas import AuthResponse, UserSummary
from ..users.repository import UserRepository
from .schemas import AdminSignupRequest, OTPChallengeResponse, RegisterRequest

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6
RESET_REQUESTED_MESSAGE = "If an account exists for this email, a reset code has been sent."


def build_auth_response(user: User) -> AuthResponse:
    return AuthResponse(token=create_access_token(user), user=UserSummary.from_user(user))


class AuthService:
    """Service layer for authentication"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = UserRepository()

    def _create_account(self, name: str, email: str, password: str, role: str, phone: Optional[str] = None) -> User:
        if not name.strip() or not password:
            raise HTTPException(status_code=400, detail="Please provide all required fields")
        if len(password) < MIN_PASSWORD_LENGTH:
            raise HTTPException(
                status_code=400, detail=f"Password must be at least {MIN_PASSWORD_LENGTH} characters long"
            )
        if self.repo.get_by_email(self.db, email):
            raise HTTPException(status_code=400, detail="User already exists")

        try:
            user = self.repo.create_user(
                self.db,
                name=name.strip(),
                email=email,
                phone=phone,
                password_hash=hash_password(password),
                role=role,
            )
        except IntegrityError as e:
            # Lost a race with a concurrent registration for the same email
            self.db.rollback()
            raise HTTPException(status_code=400, detail="User already exists") from e

        logger.info(f"✅ {role.capitalize()} account created: {user.email}")
        return user

    def register(self, data: RegisterRequest) -> AuthResponse:
        if data.role not in USER_ROLES:
            raise HTTPException(status_code=400, detail="Invalid role")
        user = self._create_account(data.name, data.email, data.password, data.role, data.phone)
        return build_auth_response(user)

    def admin_signup(self, data: AdminSignupRequest) -> AuthResponse:
        user = self._create_account(data.name, data.email, data.password, "admin")
        return build_auth_response(user)

    def login(self, email: str, password: str) -> AuthResponse:
        user = self.repo.get_by_email(self.db, email)
        if not user or not verify_password(password, user.password_hash):
            logger.warning(f"⚠️ Failed login for {email}")
            raise HTTPException(status_code=401, detail="Invalid email or password")
        if user.status == "inactive":
            raise HTTPException(status_code=403, detail="Account is inactive. Please contact support.")
        logger.info(f"✅ Login: {user.email} ({user.role})")
        return build_auth_response(user)

    # ========================================================================
    # ADMIN SIGN-IN WITH OPTIONAL OTP
    # ========================================================================

    def _get_admin(self, email: str) -> Optional[User]:
        user = self.repo.get_by_email(self.db, email)
        return user if user and user.role == "admin" else None

    async def _send_code(self, user: User, sender, purpose: str) -> None:
        """Issue an OTP and email it; the OTP is withdrawn when the email fails"""
        otp = issue_otp(self.db, user, purpose)
        try:
            await sender(user.email, user.name, otp)
        except Exception as e:
            clear_otp(self.db, user)
            logger.error(f"❌ Failed to send verification code to {user.email}: {e}")
            raise HTTPException(
                status_code=500, detail="Failed to send verification code. Please try again later."
            ) from e

    async def admin_login(self, email: str, password: str):
        admin = self._get_admin(email)
        if not admin or not verify_password(password, admin.password_hash):
            logger.warning(f"⚠️ Failed admin login for {email}")
            raise HTTPException(status_code=401, detail="Invalid admin credentials")

        if not ADMIN_OTP_ENABLED:
            return build_auth_response(admin)

        await self._send_code(admin, send_admin_login_otp, ADMIN_LOGIN)
        return OTPChallengeResponse(
            email=admin.email, message="A verification code has been sent to your email."
        )

    def verify_admin_otp(self, email: str, otp: str) -> AuthResponse:
        if not ADMIN_OTP_ENABLED:
            raise HTTPException(status_code=400, detail="Admin verification codes are not enabled")
        admin = self._get_admin(email)
        if not admin:
            raise HTTPException(status_code=401, detail="Invalid admin credentials")
        verify_otp(self.db, admin, otp, ADMIN_LOGIN)
        return build_auth_response(admin)

    async def resend_admin_otp(self, email: str) -> dict:
        """Replace the code of a sign-in that already passed the password check"""
        if not ADMIN_OTP_ENABLED:
            raise HTTPException(status_code=400, detail="Admin verification codes are not enabled")
        admin = self._get_admin(email)
        if not admin:
            raise HTTPException(status_code=401, detail="Invalid admin credentials")
        if not has_pending_otp(admin, ADMIN_LOGIN):
            raise HTTPException(status_code=400, detail=NO_PENDING_CODE)
        await self._send_code(admin, send_admin_login_otp, ADMIN_LOGIN)
        return {"message": "A new verification code has been sent to your email."}

    # ========================================================================
    # PASSWORD RESET
    # ========================================================================

    async def request_password_reset(self, email: str, admin_only: bool = False) -> dict:
        """Email a reset code. Unknown addresses get the same answer."""
        user = self._get_admin(email) if admin_only else self.repo.get_by_email(self.db, email)
        if not user:
            logger.info(f"ℹ️ Password reset requested for unknown account {email}")
            return {"message": RESET_REQUESTED_MESSAGE}

        await self._send_code(user, send_password_reset_otp, PASSWORD_RESET)
        return {"message": RESET_REQUESTED_MESSAGE}

    def reset_password(self, email: str, otp: str, new_password: str, admin_only: bool = False) -> dict:
        if not new_password or len(new_password) < MIN_PASSWORD_LENGTH:
            raise HTTPException(
                status_code=400,
                detail=f"New password must be at least {MIN_PASSWORD_LENGTH} characters long",
            )

        user = self._get_admin(email) if admin_only else self.repo.get_by_email(self.db, email)
        if not user:
            raise HTTPException(status_code=400, detail="Invalid verification code")

        verify_otp(self.db, user, otp, PASSWORD_RESET)
        self.repo.update_user(self.db, user, password_hash=hash_password(new_password))
        logger.info(f"🔑 Password reset for {user.email}")
        return {"message": "Password reset successfully"}
