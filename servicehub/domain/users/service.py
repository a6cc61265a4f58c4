"""User service - Business logic for profiles, account status and admin contact"""

import logging

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...auth import hash_password, verify_password
from ...models import AdminMessage, User
from ...plan_limits import get_booking_limit, subscription_status_message
from ...realtime import emit_to_admins, emit_to_user
from ...shared.schemas import UserResponse
from ...shared.validators import parse_skills
from ...utils.sanitization import validate_and_sanitize_input
from ..auth.service import MIN_PASSWORD_LENGTH
from .repository import UserRepository
from .schemas import ChangePasswordRequest, ContactAdminRequest, ProfileResponse, ProfileUpdateRequest

logger = logging.getLogger(__name__)


def user_event_payload(user: User) -> dict:
    """Socket payload for userUpdated"""
    return UserResponse.from_user(user).model_dump(mode="json", by_alias=True)


class UserService:
    """Service layer for user operations"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = UserRepository()

    def get_user(self, user_id: int) -> User:
        user = self.repo.get_by_id(self.db, user_id)
        if not user:
            raise HTTPException(status_code=404, detail="User not found")
        return user

    async def get_profile(self, user: User) -> ProfileResponse:
        booking_limit = None
        if user.role == "provider":
            booking_limit = get_booking_limit(self.db, user)
            message = subscription_status_message(user)
            if message and message.startswith("Subscription expires"):
                await emit_to_user(user.id, "subscriptionWarning", {"message": message})
        return ProfileResponse.from_profile(user, booking_limit)

    async def update_profile(self, user: User, data: ProfileUpdateRequest) -> User:
        updates = {"name": data.name}
        fields = data.model_dump(exclude_unset=True)

        if "phone" in fields:
            updates["phone"] = data.phone
        if "availability" in fields and data.availability is not None:
            updates["availability"] = data.availability
        if "skills" in fields:
            updates["skills"] = parse_skills(data.skills)
        if "image" in fields and data.image:
            updates["image"] = data.image
        if "location" in fields and data.location is not None:
            if isinstance(data.location, str):
                updates["location_full_address"] = data.location.strip() or None
            else:
                updates["location_full_address"] = (data.location.fullAddress or "").strip() or None
                updates["location_details"] = dict(data.location.details)
                updates["latitude"] = data.location.lat
                updates["longitude"] = data.location.lng

        user = self.repo.update_user(self.db, user, **updates)
        logger.info(f"✅ Profile updated for {user.email}")

        payload = user_event_payload(user)
        await emit_to_user(user.id, "userUpdated", payload)
        await emit_to_admins("userUpdated", payload)
        return user

    def change_password(self, user: User, data: ChangePasswordRequest) -> dict:
        if not verify_password(data.currentPassword, user.password_hash):
            raise HTTPException(status_code=400, detail="Current password is incorrect")
        if len(data.newPassword) < MIN_PASSWORD_LENGTH:
            raise HTTPException(
                status_code=400,
                detail=f"New password must be at least {MIN_PASSWORD_LENGTH} characters long",
            )
        self.repo.update_user(self.db, user, password_hash=hash_password(data.newPassword))
        logger.info(f"🔑 Password changed for {user.email}")
        return {"message": "Password updated successfully"}

    async def delete_account(self, user: User) -> dict:
        user_id = user.id
        email = user.email
        self.repo.delete_user(self.db, user)
        logger.info(f"🗑️ Account deleted: {email}")
        await emit_to_admins("userDeleted", {"userId": user_id})
        return {"message": "Account deleted successfully"}

    # ------------------------------------------------------------------
    # Customer -> admin messages
    # ------------------------------------------------------------------

    async def contact_admin(self, customer: User, data: ContactAdminRequest) -> AdminMessage:
        provider = self.repo.get_by_id(self.db, data.providerId)
        if not provider or provider.role != "provider":
            raise HTTPException(status_code=404, detail="Provider not found")
        try:
            text = validate_and_sanitize_input(data.message, max_length=2000, min_length=1)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e)) from e

        message = self.repo.create_admin_message(
            self.db,
            customer_id=customer.id,
            provider_id=provider.id,
            provider_name=data.providerName or provider.name,
            message=text,
            status="new",
        )
        logger.info(f"📨 Admin message {message.id} from {customer.email} about provider {provider.id}")
        await emit_to_admins(
            "newAdminMessage",
            {
                "messageId": message.id,
                "customerName": customer.name,
                "providerName": message.provider_name,
            },
        )
        return message

    def get_messages(self, customer: User) -> list[AdminMessage]:
        return self.repo.get_customer_messages(self.db, customer.id)

    # ------------------------------------------------------------------
    # Provider self-service toggles
    # ------------------------------------------------------------------

    def _require_self(self, user: User, target_id: int) -> None:
        if user.id != target_id:
            raise HTTPException(status_code=403, detail="You can only update your own profile")

    async def toggle_status(self, user: User, target_id: int) -> User:
        self._require_self(user, target_id)
        new_status = "inactive" if user.status == "active" else "active"
        user = self.repo.update_user(self.db, user, status=new_status)
        logger.info(f"🔁 {user.email} status -> {new_status}")
        payload = user_event_payload(user)
        await emit_to_user(user.id, "userUpdated", payload)
        await emit_to_admins("userUpdated", payload)
        return user

    async def toggle_availability(self, user: User, target_id: int) -> User:
        self._require_self(user, target_id)
        new_availability = "Unavailable" if user.availability == "Available" else "Available"
        user = self.repo.update_user(self.db, user, availability=new_availability)
        logger.info(f"🔁 {user.email} availability -> {new_availability}")
        payload = user_event_payload(user)
        await emit_to_user(user.id, "userUpdated", payload)
        await emit_to_admins("userUpdated", payload)
        return user
