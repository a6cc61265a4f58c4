"""Booking domain schemas"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator

from ...models import Booking, Feedback, Service
from ...shared.schemas import ApiModel, UserRef

BOOKING_STATUSES = ("pending", "assigned", "in-progress", "completed", "cancelled", "rejected")
UPDATABLE_STATUSES = ("in-progress", "completed", "cancelled", "rejected")


class BookingCreate(BaseModel):
    serviceId: int
    scheduledTime: datetime
    location: str
    paymentMethod: Literal["COD", "Stripe"]
    isImmediate: bool = False
    lat: Optional[float] = None
    lng: Optional[float] = None

    @field_validator("location")
    @classmethod
    def validate_location(cls, v):
        if not v or not v.strip():
            raise ValueError("Location is required")
        return v.strip()


class BookingUpdate(BaseModel):
    serviceId: Optional[int] = None
    scheduledTime: Optional[datetime] = None
    location: Optional[str] = None


class StatusUpdateRequest(BaseModel):
    status: str


class AssignProviderRequest(BaseModel):
    providerId: Optional[int] = None


class ServiceRef(ApiModel):
    id: int = Field(alias="_id")
    name: str
    price: float
    category: str
    image: Optional[str] = None

    @classmethod
    def from_service(cls, service: Optional[Service]) -> Optional["ServiceRef"]:
        if service is None:
            return None
        return cls(
            id=service.id,
            name=service.name,
            price=service.price,
            category=service.category,
            image=service.image,
        )


class FeedbackRef(ApiModel):
    id: int = Field(alias="_id")
    rating: int
    comment: str
    approved: bool

    @classmethod
    def from_feedback(cls, feedback: Optional[Feedback]) -> Optional["FeedbackRef"]:
        if feedback is None:
            return None
        return cls(id=feedback.id, rating=feedback.rating, comment=feedback.comment, approved=feedback.approved)


class CustomerDetails(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None


class BookingResponse(ApiModel):
    id: int = Field(alias="_id")
    trackingId: str
    customer: Optional[UserRef] = None
    provider: Optional[UserRef] = None
    service: Optional[ServiceRef] = None
    customerDetails: CustomerDetails
    scheduledTime: datetime
    location: str
    lat: Optional[float] = None
    lng: Optional[float] = None
    status: str
    totalPrice: float
    paymentMethod: str
    paymentStatus: str
    feedback: Optional[FeedbackRef] = None
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None

    @classmethod
    def from_booking(cls, booking: Booking) -> "BookingResponse":
        return cls(
            id=booking.id,
            trackingId=booking.tracking_id,
            customer=UserRef.from_user(booking.customer),
            provider=UserRef.from_user(booking.provider),
            service=ServiceRef.from_service(booking.service),
            customerDetails=CustomerDetails(
                name=booking.customer_name,
                email=booking.customer_email,
                phone=booking.customer_phone,
            ),
            scheduledTime=booking.scheduled_time,
            location=booking.location,
            lat=booking.latitude,
            lng=booking.longitude,
            status=booking.status,
            totalPrice=booking.total_price,
            paymentMethod=booking.payment_method,
            paymentStatus=booking.payment_status,
            feedback=FeedbackRef.from_feedback(booking.feedback),
            createdAt=booking.created_at,
            updatedAt=booking.updated_at,
        )


class BookingActionResponse(BaseModel):
    message: str
    booking: BookingResponse


class TrackResponse(BaseModel):
    status: str
    feedback: Optional[FeedbackRef] = None
