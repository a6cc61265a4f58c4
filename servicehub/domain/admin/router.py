"""Admin router - FastAPI endpoints for the admin console"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import require_admin, require_roles
from ...database import get_db
from ...models import User
from ...shared.schemas import AppointmentResponse, MessageResponse, UserResponse
from ..billing.subscription_service import SubscriptionService
from ..bookings.schemas import AssignProviderRequest, BookingActionResponse, BookingResponse
from ..bookings.service import BookingService
from ..catalog.schemas import ServiceResponse
from ..users.schemas import AdminMessageResponse
from .schemas import (
    AdminUserUpdate,
    AppointmentUpdate,
    BulkDeleteResponse,
    BulkLogDelete,
    BulkMessageIds,
    LogResponse,
    ProviderSubscriptionRow,
    ReplyRequest,
    RoleUpdate,
    SettingsUpdate,
    SlotUpdate,
    ToggleAvailabilityResponse,
    ToggleStatusResponse,
)
from .service import AdminService

router = APIRouter(prefix="/api/admin", tags=["Admin"])


def get_admin_service(db: Session = Depends(get_db)) -> AdminService:
    """Dependency injection for AdminService"""
    return AdminService(db)


# ============================================================================
# USERS
# ============================================================================


@router.get("/users", response_model=list[UserResponse])
async def list_users(_: User = Depends(require_admin), service: AdminService = Depends(get_admin_service)):
    """All users, newest first"""
    return [UserResponse.from_user(u) for u in service.list_users()]


@router.put("/users/{user_id}/role", response_model=UserResponse)
async def update_role(
    user_id: int,
    data: RoleUpdate,
    admin: User = Depends(require_admin),
    service: AdminService = Depends(get_admin_service),
):
    """Change a user's role"""
    return UserResponse.from_user(await service.update_role(admin, user_id, data.role))


@router.put("/users/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: int,
    data: AdminUserUpdate,
    admin: User = Depends(require_admin),
    service: AdminService = Depends(get_admin_service),
):
    """Edit a user's details and profile"""
    return UserResponse.from_user(await service.update_user(admin, user_id, data))


@router.delete("/users/{user_id}", response_model=MessageResponse)
async def delete_user(
    user_id: int,
    admin: User = Depends(require_admin),
    service: AdminService = Depends(get_admin_service),
):
    """Delete a user"""
    return await service.delete_user(admin, user_id)


@router.put("/users/{user_id}/toggle-status", response_model=ToggleStatusResponse)
async def toggle_status(
    user_id: int,
    admin: User = Depends(require_admin),
    service: AdminService = Depends(get_admin_service),
):
    """Flip a user between active and inactive"""
    user = await service.toggle_status(admin, user_id)
    return {"status": user.status}


@router.put("/users/{user_id}/toggle-availability", response_model=ToggleAvailabilityResponse)
async def toggle_availability(
    user_id: int,
    admin: User = Depends(require_admin),
    service: AdminService = Depends(get_admin_service),
):
    """Flip a provider between Available and Unavailable"""
    user = await service.toggle_availability(admin, user_id)
    return {"availability": user.availability}


@router.put("/settings", response_model=UserResponse)
async def update_settings(
    data: SettingsUpdate,
    admin: User = Depends(require_admin),
    service: AdminService = Depends(get_admin_service),
):
    """Update the calling admin's own name, email or password"""
    return UserResponse.from_user(await service.update_settings(admin, data))


# ============================================================================
# ACTIVITY LOGS
# ============================================================================


@router.get("/logs", response_model=list[LogResponse])
async def list_logs(_: User = Depends(require_admin), service: AdminService = Depends(get_admin_service)):
    """Activity log, newest first"""
    return [LogResponse.from_log(log) for log in service.list_logs()]


@router.delete("/logs/{log_id}", response_model=MessageResponse)
async def delete_log(
    log_id: int,
    admin: User = Depends(require_admin),
    service: AdminService = Depends(get_admin_service),
):
    """Delete one log entry"""
    return await service.delete_log(admin, log_id)


@router.post("/logs/bulk-delete", response_model=BulkDeleteResponse)
async def bulk_delete_logs(
    data: BulkLogDelete,
    admin: User = Depends(require_admin),
    service: AdminService = Depends(get_admin_service),
):
    """Delete several log entries"""
    return await service.bulk_delete_logs(admin, data.logIds)


# ============================================================================
# PROVIDERS
# ============================================================================


@router.get("/providers/active", response_model=list[UserResponse])
async def active_providers(
    location: Optional[str] = Query(None),
    services: Optional[str] = Query(None, description="Comma separated skill list"),
    _: User = Depends(require_roles("admin", "customer")),
    service: AdminService = Depends(get_admin_service),
):
    """Active providers serving a location, optionally filtered by skill"""
    return [UserResponse.from_user(p) for p in service.active_providers(location, services)]


@router.get("/providers/subscriptions", response_model=list[ProviderSubscriptionRow])
async def provider_subscriptions(
    _: User = Depends(require_admin), service: AdminService = Depends(get_admin_service)
):
    """Subscription overview for every provider"""
    return [ProviderSubscriptionRow(**row) for row in service.provider_subscriptions()]


@router.post("/providers/{provider_id}/cancel-subscription")
async def cancel_provider_subscription(
    provider_id: int,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Cancel a provider's paid tier on their behalf"""
    provider = AdminService(db).get_provider(provider_id)
    provider = await SubscriptionService(db).cancel_provider_subscription(provider, actor=admin)
    return {"message": "Subscription cancelled successfully", "user": UserResponse.from_user(provider)}


# ============================================================================
# CUSTOMER MESSAGES
# ============================================================================


@router.get("/messages", response_model=list[AdminMessageResponse])
async def list_messages(_: User = Depends(require_admin), service: AdminService = Depends(get_admin_service)):
    """Messages customers sent about providers"""
    return [AdminMessageResponse.from_message(m) for m in service.list_messages()]


@router.post("/messages/bulk-read", response_model=MessageResponse)
async def bulk_mark_read(
    data: BulkMessageIds,
    _: User = Depends(require_admin),
    service: AdminService = Depends(get_admin_service),
):
    """Mark several messages as read"""
    return service.bulk_mark_read(data.messageIds)


@router.post("/messages/bulk-delete", response_model=MessageResponse)
async def bulk_delete_messages(
    data: BulkMessageIds,
    _: User = Depends(require_admin),
    service: AdminService = Depends(get_admin_service),
):
    """Delete several messages"""
    return service.bulk_delete_messages(data.messageIds)


@router.put("/messages/{message_id}/read", response_model=AdminMessageResponse)
async def mark_read(
    message_id: int,
    _: User = Depends(require_admin),
    service: AdminService = Depends(get_admin_service),
):
    return AdminMessageResponse.from_message(service.mark_read(message_id))


@router.delete("/messages/{message_id}", response_model=MessageResponse)
async def delete_message(
    message_id: int,
    _: User = Depends(require_admin),
    service: AdminService = Depends(get_admin_service),
):
    return service.delete_message(message_id)


@router.post("/messages/{message_id}/reply", response_model=MessageResponse)
async def reply_to_message(
    message_id: int,
    data: ReplyRequest,
    admin: User = Depends(require_admin),
    service: AdminService = Depends(get_admin_service),
):
    """Reply to a customer by socket and email"""
    return await service.reply(admin, message_id, data.replyMessage)


# ============================================================================
# SCHEDULING
# ============================================================================


@router.put("/services/slots", response_model=ServiceResponse)
async def update_service_slots(
    data: SlotUpdate,
    admin: User = Depends(require_admin),
    service: AdminService = Depends(get_admin_service),
):
    """Replace the bookable times of one service on one date"""
    return ServiceResponse.from_service(await service.update_service_slots(admin, data))


@router.get("/appointments", response_model=list[AppointmentResponse])
async def list_appointments(
    _: User = Depends(require_admin), service: AdminService = Depends(get_admin_service)
):
    return [AppointmentResponse.from_appointment(a) for a in service.list_appointments()]


@router.put("/appointments/{appointment_id}", response_model=AppointmentResponse)
async def update_appointment(
    appointment_id: int,
    data: AppointmentUpdate,
    admin: User = Depends(require_admin),
    service: AdminService = Depends(get_admin_service),
):
    """Reschedule an appointment or change its status"""
    appointment = await service.update_appointment(admin, appointment_id, data)
    return AppointmentResponse.from_appointment(appointment)


@router.delete("/appointments/{appointment_id}", response_model=MessageResponse)
async def delete_appointment(
    appointment_id: int,
    admin: User = Depends(require_admin),
    service: AdminService = Depends(get_admin_service),
):
    return await service.delete_appointment(admin, appointment_id)


@router.put("/bookings/{booking_id}/assign-provider", response_model=BookingActionResponse)
async def assign_provider(
    booking_id: int,
    data: AssignProviderRequest,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Assign a provider to a pending booking"""
    booking = await BookingService(db).assign_provider(booking_id, data.providerId, admin)
    return {"message": "Provider assigned successfully", "booking": BookingResponse.from_booking(booking)}


__all__ = ["router"]
