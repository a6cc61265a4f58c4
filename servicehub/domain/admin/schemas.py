"""Admin domain schemas"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator

from ...models import APPOINTMENT_STATUSES, ActivityLog
from ...shared.schemas import ApiModel
from ...shared.validators import (
    validate_availability,
    validate_email,
    validate_phone,
    validate_role,
    validate_slot_date,
    validate_slot_time,
)


class RoleUpdate(BaseModel):
    role: str

    @field_validator("role")
    @classmethod
    def validate_role_value(cls, v):
        return validate_role(v)


class LocationUpdate(BaseModel):
    fullAddress: Optional[str] = None
    details: dict[str, Any] = {}


class ProfileFields(BaseModel):
    skills: Optional[list[str]] = None
    availability: Optional[str] = None
    image: Optional[str] = None
    location: Optional[LocationUpdate] = None

    @field_validator("availability")
    @classmethod
    def validate_availability_format(cls, v):
        return validate_availability(v)


class AdminUserUpdate(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    profile: Optional[ProfileFields] = None

    @field_validator("email")
    @classmethod
    def validate_email_format(cls, v):
        return validate_email(v)

    @field_validator("phone")
    @classmethod
    def validate_phone_format(cls, v):
        return validate_phone(v)


class SettingsUpdate(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None

    @field_validator("email")
    @classmethod
    def validate_email_format(cls, v):
        return validate_email(v)


class LogResponse(ApiModel):
    id: int = Field(alias="_id")
    userId: Optional[int] = None
    userName: Optional[str] = None
    action: str
    details: Optional[str] = None
    timestamp: Optional[datetime] = None

    @classmethod
    def from_log(cls, log: ActivityLog) -> "LogResponse":
        return cls(
            id=log.id,
            userId=log.user_id,
            userName=log.user_name,
            action=log.action,
            details=log.details,
            timestamp=log.timestamp,
        )


class BulkLogDelete(BaseModel):
    logIds: list[int] = []


class BulkDeleteResponse(BaseModel):
    message: str
    deletedCount: int


class BulkMessageIds(BaseModel):
    messageIds: list[int] = []


class ReplyRequest(BaseModel):
    replyMessage: Optional[str] = None


class SlotUpdate(BaseModel):
    serviceId: int
    date: str
    times: list[str]

    @field_validator("date")
    @classmethod
    def validate_date(cls, v):
        return validate_slot_date(v)

    @field_validator("times")
    @classmethod
    def validate_times(cls, v):
        return [validate_slot_time(t) for t in v]


class AppointmentUpdate(BaseModel):
    status: Optional[str] = None
    scheduledTime: Optional[datetime] = None

    @field_validator("status")
    @classmethod
    def validate_status(cls, v):
        if v is not None and v not in APPOINTMENT_STATUSES:
            raise ValueError(f"Status must be one of: {', '.join(APPOINTMENT_STATUSES)}")
        return v


class ProviderSubscriptionRow(ApiModel):
    id: int = Field(alias="_id")
    name: str
    email: str
    subscriptionTier: str
    subscriptionStatus: str
    currentBookingCount: int
    bookingLimit: int
    subscriptionStartDate: Optional[datetime] = None
    subscriptionStatusMessage: Optional[str] = None


class ToggleStatusResponse(BaseModel):
    status: str


class ToggleAvailabilityResponse(BaseModel):
    availability: str
