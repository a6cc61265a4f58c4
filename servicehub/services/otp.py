"""
One-time passwords for admin sign-in and password reset.

Only a bcrypt hash of the code is stored on the user row, together with
its expiry, a failed-attempt counter and the purpose it was issued for.
A code is single use and only verifies for its own purpose.
"""

import logging
import secrets
import string
from datetime import datetime, timedelta

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ..auth import hash_password, verify_password
from ..config import OTP_EXPIRY_MINUTES, OTP_MAX_ATTEMPTS
from ..models import User

logger = logging.getLogger(__name__)

ADMIN_LOGIN = "admin_login"
PASSWORD_RESET = "password_reset"

NO_PENDING_CODE = "No verification code pending. Please request a new one."


def generate_otp(length: int = 6) -> str:
    """Generate a cryptographically secure random numeric OTP code"""
    return "".join(secrets.choice(string.digits) for _ in range(length))


def issue_otp(db: Session, user: User, purpose: str) -> str:
    """Create a fresh code for the user, replacing any previous one. Commits."""
    otp = generate_otp()
    user.otp_hash = hash_password(otp)
    user.otp_expires_at = datetime.utcnow() + timedelta(minutes=OTP_EXPIRY_MINUTES)
    user.otp_attempts = 0
    user.otp_purpose = purpose
    db.commit()
    logger.info(f"🔢 OTP issued for {user.email} ({purpose}, expires in {OTP_EXPIRY_MINUTES} min)")
    return otp


def clear_otp(db: Session, user: User) -> None:
    user.otp_hash = None
    user.otp_expires_at = None
    user.otp_attempts = 0
    user.otp_purpose = None
    db.commit()


def has_pending_otp(user: User, purpose: str) -> bool:
    """True while an unexpired code for `purpose` is waiting to be used"""
    return bool(
        user.otp_hash
        and user.otp_purpose == purpose
        and user.otp_expires_at
        and datetime.utcnow() <= user.otp_expires_at
    )


def verify_otp(db: Session, user: User, otp: str, purpose: str) -> None:
    """
    Check a submitted code and consume it on success.

    Raises:
        HTTPException(400): no code pending for this purpose, expired, too many
            attempts or wrong code
    """
    if not user.otp_hash or not user.otp_expires_at or user.otp_purpose != purpose:
        raise HTTPException(status_code=400, detail=NO_PENDING_CODE)

    if datetime.utcnow() > user.otp_expires_at:
        clear_otp(db, user)
        logger.warning(f"⚠️ Expired OTP submitted for {user.email}")
        raise HTTPException(status_code=400, detail="Verification code has expired. Please request a new one.")

    if user.otp_attempts >= OTP_MAX_ATTEMPTS:
        clear_otp(db, user)
        logger.warning(f"🚫 Too many OTP attempts for {user.email}")
        raise HTTPException(status_code=400, detail="Too many attempts. Please request a new code.")

    if not verify_password((otp or "").strip(), user.otp_hash):
        user.otp_attempts += 1
        db.commit()
        logger.warning(f"⚠️ Invalid OTP for {user.email} (attempt {user.otp_attempts}/{OTP_MAX_ATTEMPTS})")
        raise HTTPException(status_code=400, detail="Invalid verification code")

    clear_otp(db, user)
    logger.info(f"✅ OTP verified for {user.email} ({purpose})")
