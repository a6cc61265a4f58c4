"""Booking service - Booking lifecycle, slot consumption and provider assignment"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...cache import invalidate_knowledge_base_cache
from ...models import Booking, Service, User
from ...plan_limits import can_accept_booking, decrement_booking_count, increment_booking_count
from ...realtime import broadcast, emit_to_admins, emit_to_user
from ...services.notification_service import create_notification
from ...services.ratings import recompute_service_rating
from ..users.repository import UserRepository
from .matching import (
    AvailabilityError,
    check_availability,
    find_available_providers,
    has_day_conflict,
    is_immediate,
    location_matches,
    slot_key,
    to_naive_utc,
)
from .repository import BookingRepository
from .schemas import UPDATABLE_STATUSES, BookingCreate, BookingResponse, BookingUpdate

logger = logging.getLogger(__name__)

SLOT_UNAVAILABLE = "Selected time is not available for this service"


def short_ref(booking: Booking) -> str:
    return f"#{booking.tracking_id[-6:]}"


class BookingService:
    """Service layer for booking operations"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = BookingRepository()
        self.users = UserRepository()

    # ------------------------------------------------------------------
    # Lookups and permission checks
    # ------------------------------------------------------------------

    def get_or_404(self, booking_id: int) -> Booking:
        booking = self.repo.get_by_id(self.db, booking_id)
        if not booking:
            raise HTTPException(status_code=404, detail="Booking not found")
        return booking

    def _get_service(self, service_id: int) -> Service:
        service = self.db.query(Service).filter(Service.id == service_id).first()
        if not service:
            raise HTTPException(status_code=404, detail="Service not found")
        return service

    @staticmethod
    def _is_party(booking: Booking, user: User) -> bool:
        return user.id in (booking.customer_id, booking.provider_id)

    def _require_owner_or_admin(self, booking: Booking, user: User, action: str) -> None:
        if booking.customer_id != user.id and user.role != "admin":
            raise HTTPException(status_code=403, detail=f"Not authorized to {action} this booking")

    async def _emit_revenue(self) -> None:
        await broadcast("revenueUpdated", {"total": self.repo.completed_revenue(self.db)})

    # ------------------------------------------------------------------
    # Slots
    # ------------------------------------------------------------------

    @staticmethod
    def _slot_is_free(service: Service, scheduled_time: datetime) -> bool:
        date, time = slot_key(scheduled_time)
        return time in (service.available_slots or {}).get(date, [])

    def _consume_slot(self, service: Service, scheduled_time: datetime) -> None:
        """Remove the booked time; a date left with no times is dropped"""
        date, time = slot_key(scheduled_time)
        slots = dict(service.available_slots or {})
        remaining = [t for t in slots.get(date, []) if t != time]
        if remaining:
            slots[date] = remaining
        else:
            slots.pop(date, None)
        # Reassign so the JSON column is marked dirty
        service.available_slots = slots

    # ------------------------------------------------------------------
    # Create and read
    # ------------------------------------------------------------------

    async def create_booking(self, customer: User, data: BookingCreate) -> Booking:
        service = self._get_service(data.serviceId)

        if not customer.name or not customer.email or not customer.phone:
            raise HTTPException(
                status_code=400,
                detail="Please complete your profile (name, email, and phone number) before booking",
            )

        scheduled_time = to_naive_utc(data.scheduledTime)
        if not data.isImmediate:
            if not self._slot_is_free(service, scheduled_time):
                raise HTTPException(status_code=400, detail=SLOT_UNAVAILABLE)
            self._consume_slot(service, scheduled_time)

        booking = self.repo.create(
            self.db,
            customer_id=customer.id,
            service_id=service.id,
            customer_name=customer.name,
            customer_email=customer.email,
            customer_phone=customer.phone,
            scheduled_time=scheduled_time,
            location=data.location,
            latitude=data.lat,
            longitude=data.lng,
            status="pending",
            total_price=service.price,
            payment_method=data.paymentMethod,
            payment_status="pending",
        )
        logger.info(f"✅ Booking {booking.id} created by {customer.email} for service {service.id}")

        await emit_to_user(
            customer.id,
            "bookingStatusUpdate",
            {
                "bookingId": booking.id,
                "message": f"Your booking for {service.name} is confirmed and is pending provider assignment",
                "newStatus": "pending",
            },
        )
        await emit_to_admins(
            "newPendingBooking",
            {
                "message": f"New booking {short_ref(booking)} needs a provider",
                "bookingDetails": BookingResponse.from_booking(booking).model_dump(mode="json", by_alias=True),
            },
        )
        create_notification(
            self.db,
            "status_pending",
            "New booking pending",
            f"Booking {short_ref(booking)} for {service.name} needs a provider",
        )
        return booking

    def list_services(self) -> list[Service]:
        return self.db.query(Service).order_by(Service.created_at.desc(), Service.id.desc()).all()

    def my_bookings(self, user: User) -> list[Booking]:
        return self.repo.list_for_user(self.db, user.id)

    def previous_services(self, customer: User) -> list[Booking]:
        return self.repo.list_completed(self.db, customer_id=customer.id)

    def previous_works(self, provider: User) -> list[Booking]:
        return self.repo.list_completed(self.db, provider_id=provider.id)

    def all_bookings(self) -> list[Booking]:
        return self.repo.list_all(self.db)

    def get_booking(self, booking_id: int, user: User) -> Booking:
        booking = self.get_or_404(booking_id)
        if not self._is_party(booking, user) and user.role != "admin":
            raise HTTPException(status_code=403, detail="Not authorized to view this booking")
        return booking

    def track(self, tracking_id: str, user: User) -> Booking:
        booking = self.repo.get_by_tracking_id(self.db, tracking_id)
        if not booking:
            raise HTTPException(status_code=404, detail="Booking not found")
        if not self._is_party(booking, user) and user.role != "admin":
            raise HTTPException(status_code=403, detail="Not authorized to track this booking")
        return booking

    # ------------------------------------------------------------------
    # Update and delete
    # ------------------------------------------------------------------

    async def update_booking(self, booking_id: int, user: User, data: BookingUpdate) -> Booking:
        booking = self.get_or_404(booking_id)
        self._require_owner_or_admin(booking, user, "update")

        previous_service_id = booking.service_id
        if data.serviceId is not None:
            service = self._get_service(data.serviceId)
            if data.scheduledTime is not None and not self._slot_is_free(
                service, to_naive_utc(data.scheduledTime)
            ):
                raise HTTPException(status_code=400, detail=SLOT_UNAVAILABLE)
            booking.service_id = service.id
        if data.scheduledTime is not None:
            booking.scheduled_time = to_naive_utc(data.scheduledTime)
        if data.location is not None and data.location.strip():
            booking.location = data.location.strip()

        if booking.service_id != previous_service_id and booking.feedback is not None:
            # Its review moves with it
            recompute_service_rating(self.db, previous_service_id)
            recompute_service_rating(self.db, booking.service_id)
            invalidate_knowledge_base_cache()

        booking = self.repo.save(self.db, booking)
        logger.info(f"✏️ Booking {booking.id} updated by {user.email}")

        payload = {"bookingId": booking.id, "newStatus": booking.status}
        await emit_to_user(booking.provider_id, "bookingUpdate", payload)
        await emit_to_user(booking.customer_id, "bookingUpdate", payload)
        await self._emit_revenue()
        return booking

    async def delete_booking(self, booking_id: int, user: User) -> dict:
        booking = self.get_or_404(booking_id)
        self._require_owner_or_admin(booking, user, "delete")

        payload = {"bookingId": booking.id, "newStatus": "cancelled"}
        provider_id, customer_id, service_id = booking.provider_id, booking.customer_id, booking.service_id
        if booking.feedback is not None:
            self.db.delete(booking.feedback)
        self.db.delete(booking)
        self.db.flush()
        recompute_service_rating(self.db, service_id)
        self.db.commit()
        logger.info(f"🗑️ Booking {booking_id} deleted by {user.email}")

        await emit_to_user(provider_id, "bookingUpdate", payload)
        await emit_to_user(customer_id, "bookingUpdate", payload)
        await self._emit_revenue()
        return {"message": "Booking deleted"}

    # ------------------------------------------------------------------
    # Status transitions
    # ------------------------------------------------------------------

    def _release_provider_slot(self, booking: Booking, previous_status: str) -> None:
        """An assigned booking that ends early gives the provider its booking back"""
        if previous_status == "assigned" and booking.provider is not None:
            decrement_booking_count(booking.provider, self.db)

    async def update_status(self, booking_id: int, user: User, status: str) -> Booking:
        booking = self.get_or_404(booking_id)
        if booking.provider_id != user.id and user.role != "admin":
            raise HTTPException(status_code=403, detail="Not authorized to update this booking")
        if status not in UPDATABLE_STATUSES:
            raise HTTPException(status_code=400, detail="Invalid status")

        previous = booking.status
        booking.status = status
        if status == "completed" and booking.payment_method == "COD":
            booking.payment_status = "completed"
        booking = self.repo.save(self.db, booking)
        if status in ("cancelled", "rejected"):
            self._release_provider_slot(booking, previous)
        logger.info(f"🔄 Booking {booking.id}: {previous} -> {status} by {user.email}")

        service_name = booking.service.name if booking.service else "your service"
        await emit_to_user(
            booking.customer_id,
            "bookingStatusUpdate",
            {
                "bookingId": booking.id,
                "newStatus": status,
                "message": f"Your booking for {service_name} has been updated to: {status}",
            },
        )
        await emit_to_user(booking.provider_id, "bookingUpdate", {"bookingId": booking.id, "newStatus": status})
        if status == "completed":
            await emit_to_user(
                booking.customer_id,
                "serviceCompleted",
                {"bookingId": booking.id, "serviceName": service_name},
            )
        if booking.customer_id:
            create_notification(
                self.db,
                "status_updated",
                "Booking status updated",
                f"Your booking for {service_name} is now {status}",
                user_id=booking.customer_id,
            )
        await self._emit_revenue()
        return booking

    async def _provider_decision(self, booking_id: int, user: User, new_status: str, verb: str) -> Booking:
        booking = self.get_or_404(booking_id)
        if booking.provider_id != user.id:
            raise HTTPException(status_code=403, detail=f"Not authorized to {verb} this booking")
        if booking.status != "assigned":
            raise HTTPException(
                status_code=400, detail=f'Booking must be in "assigned" state to be {verb}ed'
            )

        booking.status = new_status
        booking = self.repo.save(self.db, booking)
        if new_status == "rejected":
            self._release_provider_slot(booking, "assigned")
        logger.info(f"🔄 Booking {booking.id} {verb}ed by provider {user.id}")

        payload = {"bookingId": booking.id, "newStatus": new_status}
        await emit_to_user(booking.customer_id, "bookingUpdate", payload)
        await emit_to_admins("bookingUpdate", payload)
        return booking

    async def accept(self, booking_id: int, user: User) -> Booking:
        return await self._provider_decision(booking_id, user, "in-progress", "accept")

    async def reject(self, booking_id: int, user: User) -> Booking:
        return await self._provider_decision(booking_id, user, "rejected", "reject")

    async def cancel(self, booking_id: int, user: User) -> Booking:
        booking = self.get_or_404(booking_id)
        if booking.customer_id != user.id:
            raise HTTPException(status_code=403, detail="Not authorized to cancel this booking")
        if booking.status not in ("pending", "assigned"):
            raise HTTPException(
                status_code=400, detail="Booking can only be cancelled if it is pending or assigned"
            )

        previous = booking.status
        booking.status = "cancelled"
        booking = self.repo.save(self.db, booking)
        self._release_provider_slot(booking, previous)
        logger.info(f"🚫 Booking {booking.id} cancelled by customer {user.id}")

        await emit_to_user(booking.provider_id, "bookingUpdate", {"bookingId": booking.id, "newStatus": "cancelled"})
        await emit_to_admins("bookingUpdate", {"bookingId": booking.id, "newStatus": "cancelled"})
        await self._emit_revenue()
        return booking

    # ------------------------------------------------------------------
    # Provider assignment
    # ------------------------------------------------------------------

    async def assign_provider(self, booking_id: int, provider_id: Optional[int], actor: User) -> Booking:
        if not provider_id:
            raise HTTPException(status_code=400, detail="Provider ID is required")

        booking = self.get_or_404(booking_id)
        if booking.status != "pending":
            raise HTTPException(
                status_code=400,
                detail="This booking is not pending and cannot be assigned a provider",
            )

        provider = self.users.get_by_id(self.db, provider_id)
        if not provider or provider.role != "provider":
            raise HTTPException(status_code=404, detail="Provider not found or user is not a provider")

        if not is_immediate(booking.scheduled_time):
            try:
                check_availability(provider.availability, booking.scheduled_time)
            except AvailabilityError as e:
                raise HTTPException(status_code=400, detail=str(e)) from e

        if has_day_conflict(self.db, provider.id, booking.scheduled_time, exclude_booking_id=booking.id):
            raise HTTPException(status_code=400, detail="Provider has a conflicting booking")

        if not location_matches(booking.location, provider.location_full_address):
            raise HTTPException(status_code=400, detail="Provider location does not match booking location")

        allowed, message = can_accept_booking(provider, self.db)
        if not allowed:
            raise HTTPException(status_code=400, detail=message)

        booking.provider_id = provider.id
        booking.status = "assigned"
        booking = self.repo.save(self.db, booking)
        increment_booking_count(provider, self.db)
        logger.info(f"👷 Booking {booking.id} assigned to provider {provider.id} by {actor.email}")

        service_name = booking.service.name if booking.service else "your service"
        await emit_to_user(
            provider.id,
            "newBookingAssigned",
            {"message": f"You have been assigned a new booking for {service_name}", "bookingId": booking.id},
        )
        await emit_to_user(
            booking.customer_id,
            "bookingStatusUpdate",
            {
                "bookingId": booking.id,
                "message": f"A provider has been assigned to your booking for {service_name}",
                "newStatus": "assigned",
                "providerName": provider.name,
            },
        )
        await emit_to_admins(
            "bookingStatusUpdate",
            {
                "message": f"Booking {short_ref(booking)} assigned to {provider.name}",
                "booking": BookingResponse.from_booking(booking).model_dump(mode="json", by_alias=True),
            },
        )
        if booking.customer_id:
            create_notification(
                self.db,
                "status_assigned",
                "Provider assigned",
                f"{provider.name} has been assigned to your booking for {service_name}",
                user_id=booking.customer_id,
            )
        return booking

    def find_providers(self, booking_id: int) -> list[User]:
        booking = self.get_or_404(booking_id)
        if not booking.service or not booking.service.category:
            raise HTTPException(status_code=400, detail="Service missing category")
        return find_available_providers(self.db, booking)
