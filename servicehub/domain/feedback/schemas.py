"""Feedback domain schemas"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from ...models import Feedback
from ...shared.schemas import ApiModel

DEFAULT_USER_IMAGE = "/images/default-user.png"


class FeedbackCreate(BaseModel):
    bookingId: int
    comment: str = Field(min_length=1, max_length=2000)
    rating: int = Field(ge=1, le=5)


class FeedbackUpdate(BaseModel):
    comment: Optional[str] = Field(default=None, min_length=1, max_length=2000)
    rating: Optional[int] = Field(default=None, ge=1, le=5)
    approved: Optional[bool] = None


class FeedbackResponse(ApiModel):
    id: int = Field(alias="_id")
    bookingId: Optional[int] = None
    userId: Optional[int] = None
    providerId: Optional[int] = None
    customerName: str
    imagePath: str
    serviceName: Optional[str] = None
    comment: str
    rating: int
    approved: bool
    createdAt: Optional[datetime] = None

    @classmethod
    def from_feedback(cls, feedback: Feedback) -> "FeedbackResponse":
        booking = feedback.booking
        customer = booking.customer if booking and booking.customer else feedback.user
        return cls(
            id=feedback.id,
            bookingId=feedback.booking_id,
            userId=feedback.user_id,
            providerId=feedback.provider_id,
            customerName=customer.name if customer else "Unknown",
            imagePath=(customer.image if customer and customer.image else DEFAULT_USER_IMAGE),
            serviceName=booking.service.name if booking and booking.service else None,
            comment=feedback.comment,
            rating=feedback.rating,
            approved=feedback.approved,
            createdAt=feedback.created_at,
        )
