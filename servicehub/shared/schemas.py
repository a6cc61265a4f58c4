"""Response models shared by several domains"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field

from ..models import Appointment, User


class ApiModel(BaseModel):
    """Base for responses that expose integer ids as `_id`"""

    class Config:
        populate_by_name = True


class MessageResponse(BaseModel):
    message: str


class CountResponse(BaseModel):
    count: int


class UserSummary(ApiModel):
    """Minimal user payload returned with a session token"""

    id: int = Field(alias="_id")
    name: str
    email: str
    role: str

    @classmethod
    def from_user(cls, user: User) -> "UserSummary":
        return cls(id=user.id, name=user.name, email=user.email, role=user.role)


class AuthResponse(BaseModel):
    token: str
    user: UserSummary


class LocationOut(BaseModel):
    fullAddress: Optional[str] = None
    details: dict[str, Any] = {}
    lat: Optional[float] = None
    lng: Optional[float] = None


class UserResponse(ApiModel):
    """Full profile as shown on profile pages and admin tables"""

    id: int = Field(alias="_id")
    name: str
    email: str
    phone: Optional[str] = None
    role: str
    status: str
    image: Optional[str] = None
    skills: list[str] = []
    availability: Optional[str] = None
    location: LocationOut
    subscriptionTier: str
    subscriptionStatus: str
    currentBookingCount: int
    subscriptionStartDate: Optional[datetime] = None
    createdAt: Optional[datetime] = None

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        return cls(
            id=user.id,
            name=user.name,
            email=user.email,
            phone=user.phone,
            role=user.role,
            status=user.status,
            image=user.image,
            skills=user.skills or [],
            availability=user.availability,
            location=LocationOut(
                fullAddress=user.location_full_address,
                details=user.location_details or {},
                lat=user.latitude,
                lng=user.longitude,
            ),
            subscriptionTier=user.subscription_tier,
            subscriptionStatus=user.subscription_status,
            currentBookingCount=user.current_booking_count or 0,
            subscriptionStartDate=user.subscription_start_date,
            createdAt=user.created_at,
        )


class UserRef(ApiModel):
    """Populated reference to another user inside a record"""

    id: int = Field(alias="_id")
    name: str
    email: str
    phone: Optional[str] = None

    @classmethod
    def from_user(cls, user: Optional[User]) -> Optional["UserRef"]:
        if user is None:
            return None
        return cls(id=user.id, name=user.name, email=user.email, phone=user.phone)


class AppointmentResponse(ApiModel):
    id: int = Field(alias="_id")
    provider: Optional[UserRef] = None
    customer: Optional[UserRef] = None
    serviceId: Optional[int] = None
    serviceName: Optional[str] = None
    scheduledTime: datetime
    status: str
    createdAt: Optional[datetime] = None

    @classmethod
    def from_appointment(cls, appointment: Appointment) -> "AppointmentResponse":
        return cls(
            id=appointment.id,
            provider=UserRef.from_user(appointment.provider),
            customer=UserRef.from_user(appointment.customer),
            serviceId=appointment.service_id,
            serviceName=appointment.service.name if appointment.service else None,
            scheduledTime=appointment.scheduled_time,
            status=appointment.status,
            createdAt=appointment.created_at,
        )
