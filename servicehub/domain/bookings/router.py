"""Booking router - FastAPI endpoints for the booking lifecycle"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...auth import get_current_user, require_admin, require_roles
from ...database import get_db
from ...models import User
from ...shared.schemas import MessageResponse, UserResponse
from ..catalog.schemas import ServiceResponse
from .schemas import (
    AssignProviderRequest,
    BookingActionResponse,
    BookingCreate,
    BookingResponse,
    BookingUpdate,
    FeedbackRef,
    StatusUpdateRequest,
    TrackResponse,
)
from .service import BookingService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/bookings", tags=["Bookings"])


def get_booking_service(db: Session = Depends(get_db)) -> BookingService:
    """Dependency injection for BookingService"""
    return BookingService(db)


def _many(bookings) -> list[BookingResponse]:
    return [BookingResponse.from_booking(b) for b in bookings]


# ============================================================================
# CREATE AND LIST
# ============================================================================


@router.post("", response_model=BookingResponse, status_code=201)
async def create_booking(
    data: BookingCreate,
    user: User = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    """Book a service slot"""
    return BookingResponse.from_booking(await service.create_booking(user, data))


@router.get("/services", response_model=list[ServiceResponse])
async def bookable_services(service: BookingService = Depends(get_booking_service)):
    """All services that can be booked"""
    return [ServiceResponse.from_service(s) for s in service.list_services()]


@router.get("/my-bookings", response_model=list[BookingResponse])
async def my_bookings(
    user: User = Depends(get_current_user), service: BookingService = Depends(get_booking_service)
):
    """Bookings where the caller is the customer or the provider"""
    return _many(service.my_bookings(user))


@router.get("/previous-services", response_model=list[BookingResponse])
async def previous_services(
    user: User = Depends(require_roles("customer")),
    service: BookingService = Depends(get_booking_service),
):
    """The customer's completed bookings"""
    return _many(service.previous_services(user))


@router.get("/previous-works", response_model=list[BookingResponse])
async def previous_works(
    user: User = Depends(require_roles("provider")),
    service: BookingService = Depends(get_booking_service),
):
    """The provider's completed bookings"""
    return _many(service.previous_works(user))


@router.get("/all-bookings", response_model=list[BookingResponse])
@router.get("/all", response_model=list[BookingResponse])
async def all_bookings(
    _: User = Depends(require_admin), service: BookingService = Depends(get_booking_service)
):
    """Every booking, newest first"""
    return _many(service.all_bookings())


@router.get("/track/{tracking_id}", response_model=TrackResponse)
async def track_booking(
    tracking_id: str,
    user: User = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    """Status and feedback for a booking by its tracking id"""
    booking = service.track(tracking_id, user)
    return TrackResponse(status=booking.status, feedback=FeedbackRef.from_feedback(booking.feedback))


# ============================================================================
# ASSIGNMENT (ADMIN)
# ============================================================================


@router.put("/{booking_id}/assign-provider", response_model=BookingActionResponse)
async def assign_provider(
    booking_id: int,
    data: AssignProviderRequest,
    user: User = Depends(require_admin),
    service: BookingService = Depends(get_booking_service),
):
    """Assign a provider to a pending booking"""
    booking = await service.assign_provider(booking_id, data.providerId, user)
    return {"message": "Provider assigned successfully", "booking": BookingResponse.from_booking(booking)}


@router.get("/{booking_id}/find-providers", response_model=list[UserResponse])
async def find_providers(
    booking_id: int,
    _: User = Depends(require_admin),
    service: BookingService = Depends(get_booking_service),
):
    """Providers who could take this booking"""
    return [UserResponse.from_user(p) for p in service.find_providers(booking_id)]


# ============================================================================
# SINGLE BOOKING
# ============================================================================


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking(
    booking_id: int,
    user: User = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    """A booking visible to its customer, its provider or an admin"""
    return BookingResponse.from_booking(service.get_booking(booking_id, user))


@router.put("/{booking_id}", response_model=BookingResponse)
async def update_booking(
    booking_id: int,
    data: BookingUpdate,
    user: User = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    """Change the service, time or location of a booking"""
    return BookingResponse.from_booking(await service.update_booking(booking_id, user, data))


@router.delete("/{booking_id}", response_model=MessageResponse)
async def delete_booking(
    booking_id: int,
    user: User = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    """Delete a booking"""
    return await service.delete_booking(booking_id, user)


@router.put("/{booking_id}/status", response_model=BookingResponse)
async def update_booking_status(
    booking_id: int,
    data: StatusUpdateRequest,
    user: User = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    """Move a booking to in-progress, completed, cancelled or rejected"""
    return BookingResponse.from_booking(await service.update_status(booking_id, user, data.status))


@router.put("/{booking_id}/accept", response_model=BookingActionResponse)
async def accept_booking(
    booking_id: int,
    user: User = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    """Assigned provider accepts the booking"""
    booking = await service.accept(booking_id, user)
    return {"message": "Booking accepted", "booking": BookingResponse.from_booking(booking)}


@router.put("/{booking_id}/reject", response_model=BookingActionResponse)
async def reject_booking(
    booking_id: int,
    user: User = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    """Assigned provider rejects the booking"""
    booking = await service.reject(booking_id, user)
    return {"message": "Booking rejected", "booking": BookingResponse.from_booking(booking)}


@router.delete("/{booking_id}/cancel", response_model=BookingActionResponse)
async def cancel_booking(
    booking_id: int,
    user: User = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    """Customer cancels a pending or assigned booking"""
    booking = await service.cancel(booking_id, user)
    return {"message": "Booking cancelled", "booking": BookingResponse.from_booking(booking)}


__all__ = ["router"]
