"""Admin service - user management, audit logs, customer messages and scheduling"""

import logging
from datetime import datetime

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...auth import hash_password
from ...cache import invalidate_knowledge_base_cache
from ...email_service import send_admin_reply_email
from ...models import AdminMessage, Appointment, Service, User
from ...plan_limits import get_usage_stats
from ...realtime import broadcast, emit_to_admins, emit_to_user
from ...services.activity_log import record_activity
from ...shared.schemas import AppointmentResponse
from ..auth.service import MIN_PASSWORD_LENGTH
from ..bookings.matching import to_naive_utc
from ..catalog.service import service_payload
from ..users.repository import UserRepository
from ..users.schemas import AdminMessageResponse
from ..users.service import user_event_payload
from .repository import AdminRepository
from .schemas import AdminUserUpdate, AppointmentUpdate, SettingsUpdate, SlotUpdate

logger = logging.getLogger(__name__)


class AdminService:
    """Service layer for the admin console"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = AdminRepository()
        self.users = UserRepository()

    def _get_user(self, user_id: int) -> User:
        user = self.users.get_by_id(self.db, user_id)
        if not user:
            raise HTTPException(status_code=404, detail="User not found")
        return user

    async def _user_changed(self, user: User) -> None:
        payload = user_event_payload(user)
        await broadcast("userUpdated", payload)

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    def list_users(self) -> list[User]:
        return self.users.list_users(self.db)

    async def update_role(self, admin: User, user_id: int, role: str) -> User:
        user = self._get_user(user_id)
        user = self.users.update_user(self.db, user, role=role)
        record_activity(self.db, user, "updated role", f"Role changed to {role} by {admin.name}")
        await self._user_changed(user)
        return user

    async def update_user(self, admin: User, user_id: int, data: AdminUserUpdate) -> User:
        user = self._get_user(user_id)
        updates = {}
        if data.name is not None and data.name.strip():
            updates["name"] = data.name.strip()
        if data.email is not None and data.email != user.email:
            existing = self.users.get_by_email(self.db, data.email)
            if existing and existing.id != user.id:
                raise HTTPException(status_code=400, detail="Email already in use")
            updates["email"] = data.email
        if data.phone is not None:
            updates["phone"] = data.phone

        profile = data.profile
        if profile is not None:
            if profile.skills is not None:
                updates["skills"] = [s.strip() for s in profile.skills if s and s.strip()]
            if profile.availability is not None:
                updates["availability"] = profile.availability
            if profile.image:
                updates["image"] = profile.image
            if profile.location is not None:
                updates["location_full_address"] = (profile.location.fullAddress or "").strip() or None
                updates["location_details"] = dict(profile.location.details)

        user = self.users.update_user(self.db, user, **updates)
        record_activity(self.db, user, "updated profile", f"Profile updated by {admin.name}")
        await self._user_changed(user)
        return user

    async def delete_user(self, admin: User, user_id: int) -> dict:
        user = self._get_user(user_id)
        if user.id == admin.id:
            raise HTTPException(status_code=400, detail="You cannot delete your own account")
        name = user.name
        self.users.delete_user(self.db, user)
        record_activity(self.db, admin, "deleted", f"Deleted user {name} (id {user_id})")
        await broadcast("userDeleted", {"_id": user_id})
        return {"message": "User removed"}

    async def toggle_status(self, admin: User, user_id: int) -> User:
        user = self._get_user(user_id)
        new_status = "inactive" if user.status == "active" else "active"
        user = self.users.update_user(self.db, user, status=new_status)
        record_activity(self.db, user, "toggled status", f"Status changed to {new_status}")
        await self._user_changed(user)
        return user

    async def toggle_availability(self, admin: User, user_id: int) -> User:
        user = self._get_user(user_id)
        new_availability = "Unavailable" if user.availability == "Available" else "Available"
        user = self.users.update_user(self.db, user, availability=new_availability)
        record_activity(self.db, user, "toggled availability", f"Availability changed to {new_availability}")
        await self._user_changed(user)
        return user

    async def update_settings(self, admin: User, data: SettingsUpdate) -> User:
        updates = {}
        if data.name and data.name.strip():
            updates["name"] = data.name.strip()
        if data.email and data.email != admin.email:
            existing = self.users.get_by_email(self.db, data.email)
            if existing and existing.id != admin.id:
                raise HTTPException(status_code=400, detail="Email already in use")
            updates["email"] = data.email
        if data.password:
            if len(data.password) < MIN_PASSWORD_LENGTH:
                raise HTTPException(
                    status_code=400,
                    detail=f"Password must be at least {MIN_PASSWORD_LENGTH} characters long",
                )
            updates["password_hash"] = hash_password(data.password)

        admin = self.users.update_user(self.db, admin, **updates)
        record_activity(
            self.db,
            admin,
            "updated settings",
            f"Updated name: {data.name}, email: {data.email}, "
            f"password: {'changed' if data.password else 'unchanged'}",
        )
        await self._user_changed(admin)
        return admin

    # ------------------------------------------------------------------
    # Activity logs
    # ------------------------------------------------------------------

    def list_logs(self):
        return self.repo.list_logs(self.db)

    async def delete_log(self, admin: User, log_id: int) -> dict:
        log = self.repo.get_log(self.db, log_id)
        if not log:
            raise HTTPException(status_code=404, detail="Log not found")
        self.repo.delete_all(self.db, [log])
        record_activity(self.db, admin, "deleted log", f"Deleted log entry {log_id}")
        await emit_to_admins("logDeleted", {"_id": log_id})
        return {"message": "Log deleted"}

    async def bulk_delete_logs(self, admin: User, log_ids: list[int]) -> dict:
        if not log_ids:
            raise HTTPException(status_code=400, detail="No log IDs provided for deletion")
        logs = self.repo.find_logs(self.db, log_ids)
        if not logs:
            raise HTTPException(status_code=404, detail="No logs found to delete")

        deleted_ids = [log.id for log in logs]
        deleted = self.repo.delete_all(self.db, logs)
        record_activity(self.db, admin, "deleted logs bulk", f"Deleted {deleted} log entries")
        for log_id in deleted_ids:
            await emit_to_admins("logDeleted", {"_id": log_id})
        return {"message": f"{deleted} log(s) deleted successfully", "deletedCount": deleted}

    # ------------------------------------------------------------------
    # Providers
    # ------------------------------------------------------------------

    def active_providers(self, location: str, services: str = None) -> list[User]:
        if not location or not location.strip():
            raise HTTPException(status_code=400, detail="Location is required")
        wanted = [s.strip() for s in (services or "").split(",") if s.strip()]
        return self.repo.active_providers(self.db, location.strip(), wanted)

    def provider_subscriptions(self) -> list[dict]:
        rows = []
        for provider in self.repo.providers(self.db):
            stats = get_usage_stats(provider, self.db)
            rows.append(
                {
                    "id": provider.id,
                    "name": provider.name,
                    "email": provider.email,
                    "subscriptionTier": stats["subscriptionTier"],
                    "subscriptionStatus": stats["subscriptionStatus"],
                    "currentBookingCount": stats["currentBookingCount"],
                    "bookingLimit": stats["bookingLimit"],
                    "subscriptionStartDate": stats["subscriptionStartDate"],
                    "subscriptionStatusMessage": stats["subscriptionStatusMessage"],
                }
            )
        return rows

    def get_provider(self, provider_id: int) -> User:
        provider = self.users.get_by_id(self.db, provider_id)
        if not provider or provider.role != "provider":
            raise HTTPException(status_code=404, detail="Provider not found")
        return provider

    # ------------------------------------------------------------------
    # Customer messages
    # ------------------------------------------------------------------

    def list_messages(self) -> list[AdminMessage]:
        return self.repo.list_messages(self.db)

    def _get_message(self, message_id: int) -> AdminMessage:
        message = self.repo.get_message(self.db, message_id)
        if not message:
            raise HTTPException(status_code=404, detail="Message not found")
        return message

    def mark_read(self, message_id: int) -> AdminMessage:
        message = self._get_message(message_id)
        message.status = "read"
        self.db.commit()
        self.db.refresh(message)
        return message

    def delete_message(self, message_id: int) -> dict:
        message = self._get_message(message_id)
        self.db.delete(message)
        self.db.commit()
        return {"message": "Message removed"}

    async def reply(self, admin: User, message_id: int, reply_text: str) -> dict:
        message = self._get_message(message_id)
        if not reply_text or not reply_text.strip():
            raise HTTPException(status_code=400, detail="Reply message is required.")

        message.status = "replied"
        message.admin_reply = reply_text.strip()
        message.replied_at = datetime.utcnow()
        self.db.commit()
        self.db.refresh(message)
        logger.info(f"📨 {admin.email} replied to admin message {message.id}")

        customer = message.customer
        if customer:
            await emit_to_user(
                customer.id,
                "newAdminReply",
                AdminMessageResponse.from_message(message).model_dump(mode="json", by_alias=True),
            )
            try:
                await send_admin_reply_email(
                    customer.email,
                    customer.name,
                    message.provider_name or "the provider",
                    message.message,
                    message.admin_reply,
                )
            except Exception as e:
                logger.error(f"❌ Failed to email admin reply to {customer.email}: {e}")

        recipient = customer.email if customer else "customer"
        return {"message": f"Reply sent to {recipient} and saved."}

    def _require_ids(self, message_ids: list[int]) -> None:
        if not message_ids:
            raise HTTPException(status_code=400, detail="An array of messageIds is required.")

    def bulk_mark_read(self, message_ids: list[int]) -> dict:
        self._require_ids(message_ids)
        self.repo.mark_messages_read(self.db, message_ids)
        return {"message": "Messages marked as read."}

    def bulk_delete_messages(self, message_ids: list[int]) -> dict:
        self._require_ids(message_ids)
        self.repo.delete_messages(self.db, message_ids)
        return {"message": "Messages deleted."}

    # ------------------------------------------------------------------
    # Service slots
    # ------------------------------------------------------------------

    async def update_service_slots(self, admin: User, data: SlotUpdate) -> Service:
        service = self.db.query(Service).filter(Service.id == data.serviceId).first()
        if not service:
            raise HTTPException(status_code=404, detail="Service not found")

        slots = dict(service.available_slots or {})
        times = sorted(set(data.times))
        if times:
            slots[data.date] = times
        else:
            slots.pop(data.date, None)
        service.available_slots = slots
        self.db.commit()
        self.db.refresh(service)
        logger.info(f"🗓️ {admin.email} set {len(times)} slot(s) on {data.date} for service {service.id}")
        invalidate_knowledge_base_cache()

        await broadcast("serviceUpdated", service_payload(service))
        return service

    # ------------------------------------------------------------------
    # Appointments
    # ------------------------------------------------------------------

    def list_appointments(self) -> list[Appointment]:
        return self.repo.list_appointments(self.db)

    def _get_appointment(self, appointment_id: int) -> Appointment:
        appointment = self.repo.get_appointment(self.db, appointment_id)
        if not appointment:
            raise HTTPException(status_code=404, detail="Appointment not found")
        return appointment

    async def update_appointment(self, admin: User, appointment_id: int, data: AppointmentUpdate) -> Appointment:
        appointment = self._get_appointment(appointment_id)
        if data.status is not None:
            appointment.status = data.status
        if data.scheduledTime is not None:
            appointment.scheduled_time = to_naive_utc(data.scheduledTime)
        self.db.commit()
        self.db.refresh(appointment)
        record_activity(
            self.db,
            admin,
            "updated appointment",
            f"Appointment {appointment.id} set to {appointment.status}",
        )
        await broadcast(
            "appointmentUpdated",
            AppointmentResponse.from_appointment(appointment).model_dump(mode="json", by_alias=True),
        )
        return appointment

    async def delete_appointment(self, admin: User, appointment_id: int) -> dict:
        appointment = self._get_appointment(appointment_id)
        self.db.delete(appointment)
        self.db.commit()
        record_activity(self.db, admin, "deleted appointment", f"Deleted appointment {appointment_id}")
        await broadcast("appointmentDeleted", {"_id": appointment_id})
        return {"message": "Appointment removed"}
