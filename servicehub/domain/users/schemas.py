"""User domain schemas - profile, password and admin contact payloads"""

from datetime import datetime
from typing import Any, Optional, Union

from pydantic import BaseModel, Field, field_validator

from ...models import AdminMessage, User
from ...plan_limits import subscription_status_message
from ...shared.schemas import ApiModel, UserRef, UserResponse
from ...shared.validators import validate_availability, validate_phone


class LocationIn(BaseModel):
    fullAddress: Optional[str] = None
    details: dict[str, Any] = {}
    lat: Optional[float] = None
    lng: Optional[float] = None


class ProfileUpdateRequest(BaseModel):
    name: str
    phone: Optional[str] = None
    availability: Optional[str] = None
    skills: Optional[Union[str, list[str]]] = None
    location: Optional[Union[str, LocationIn]] = None
    image: Optional[str] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        if not v or not v.strip():
            raise ValueError("Name is required")
        return v.strip()

    @field_validator("phone")
    @classmethod
    def validate_phone_format(cls, v):
        return validate_phone(v)

    @field_validator("availability")
    @classmethod
    def validate_availability_format(cls, v):
        return validate_availability(v)


class ChangePasswordRequest(BaseModel):
    currentPassword: str
    newPassword: str


class ContactAdminRequest(BaseModel):
    providerId: int
    providerName: Optional[str] = None
    message: str = Field(min_length=1, max_length=2000)


class ProfileResponse(UserResponse):
    bookingLimit: Optional[int] = None
    subscriptionStatusMessage: Optional[str] = None

    @classmethod
    def from_profile(cls, user: User, booking_limit: Optional[int]) -> "ProfileResponse":
        base = UserResponse.from_user(user)
        return cls(
            **base.model_dump(),
            bookingLimit=booking_limit,
            subscriptionStatusMessage=subscription_status_message(user) if user.role == "provider" else None,
        )


class AdminMessageResponse(ApiModel):
    id: int = Field(alias="_id")
    customer: Optional[UserRef] = None
    provider: Optional[UserRef] = None
    providerName: Optional[str] = None
    message: str
    status: str
    adminReply: Optional[str] = None
    repliedAt: Optional[datetime] = None
    createdAt: Optional[datetime] = None

    @classmethod
    def from_message(cls, msg: AdminMessage) -> "AdminMessageResponse":
        return cls(
            id=msg.id,
            customer=UserRef.from_user(msg.customer),
            provider=UserRef.from_user(msg.provider),
            providerName=msg.provider_name,
            message=msg.message,
            status=msg.status,
            adminReply=msg.admin_reply,
            repliedAt=msg.replied_at,
            createdAt=msg.created_at,
        )


class ProfileUpdateResponse(BaseModel):
    message: str
    user: UserResponse
