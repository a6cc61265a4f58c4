"""
Appointments API Routes

Direct customer-to-provider appointments, separate from the booking flow.
"""

import logging
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, field_validator
from sqlalchemy.orm import Session, joinedload

from ..auth import require_roles
from ..database import get_db
from ..domain.bookings.matching import to_naive_utc
from ..models import APPOINTMENT_STATUSES, Appointment, Service, User
from ..realtime import emit_to_user
from ..shared.schemas import AppointmentResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/appointments", tags=["Appointments"])

require_customer = require_roles("customer")
require_provider = require_roles("provider")
require_party = require_roles("provider", "customer")


class AppointmentCreate(BaseModel):
    providerId: int
    serviceId: int
    scheduledTime: datetime


class AppointmentStatusUpdate(BaseModel):
    appointmentId: int
    status: str

    @field_validator("status")
    @classmethod
    def validate_status(cls, v):
        if v not in APPOINTMENT_STATUSES:
            raise ValueError(f"Status must be one of: {', '.join(APPOINTMENT_STATUSES)}")
        return v


def _load(db: Session, appointment_id: int):
    return (
        db.query(Appointment)
        .options(
            joinedload(Appointment.provider),
            joinedload(Appointment.customer),
            joinedload(Appointment.service),
        )
        .filter(Appointment.id == appointment_id)
        .first()
    )


def _get_for_party(db: Session, appointment_id: int, user: User) -> Appointment:
    appointment = _load(db, appointment_id)
    if not appointment:
        raise HTTPException(status_code=404, detail="Appointment not found")
    if user.id not in (appointment.provider_id, appointment.customer_id):
        raise HTTPException(status_code=403, detail="Not authorized to access this appointment")
    return appointment


@router.post("", response_model=AppointmentResponse, status_code=201)
async def create_appointment(
    data: AppointmentCreate, user: User = Depends(require_customer), db: Session = Depends(get_db)
):
    """Book an appointment with a specific provider"""
    provider = db.query(User).filter(User.id == data.providerId, User.role == "provider").first()
    if not provider:
        raise HTTPException(status_code=404, detail="Provider not found")
    if not db.query(Service).filter(Service.id == data.serviceId).first():
        raise HTTPException(status_code=404, detail="Service not found")

    appointment = Appointment(
        provider_id=provider.id,
        customer_id=user.id,
        service_id=data.serviceId,
        scheduled_time=to_naive_utc(data.scheduledTime),
        status="pending",
    )
    db.add(appointment)
    db.commit()
    appointment = _load(db, appointment.id)
    logger.info(f"📅 Appointment {appointment.id} requested by {user.email} with provider {provider.id}")

    response = AppointmentResponse.from_appointment(appointment)
    await emit_to_user(provider.id, "newAppointment", response.model_dump(mode="json", by_alias=True))
    return response


@router.get("", response_model=list[AppointmentResponse])
async def list_appointments(user: User = Depends(require_provider), db: Session = Depends(get_db)):
    """The provider's own appointments, soonest first"""
    appointments = (
        db.query(Appointment)
        .options(joinedload(Appointment.customer), joinedload(Appointment.service))
        .filter(Appointment.provider_id == user.id)
        .order_by(Appointment.scheduled_time.asc(), Appointment.id.asc())
        .all()
    )
    return [AppointmentResponse.from_appointment(a) for a in appointments]


@router.put("/status", response_model=AppointmentResponse)
async def update_status(
    data: AppointmentStatusUpdate, user: User = Depends(require_provider), db: Session = Depends(get_db)
):
    appointment = _get_for_party(db, data.appointmentId, user)
    if appointment.provider_id != user.id:
        raise HTTPException(status_code=403, detail="Not authorized to access this appointment")

    appointment.status = data.status
    db.commit()
    db.refresh(appointment)

    response = AppointmentResponse.from_appointment(appointment)
    await emit_to_user(appointment.customer_id, "appointmentUpdated", response.model_dump(mode="json", by_alias=True))
    return response


@router.get("/{appointment_id}", response_model=AppointmentResponse)
async def get_appointment(
    appointment_id: int, user: User = Depends(require_party), db: Session = Depends(get_db)
):
    return AppointmentResponse.from_appointment(_get_for_party(db, appointment_id, user))


@router.delete("/{appointment_id}")
async def delete_appointment(
    appointment_id: int, user: User = Depends(require_party), db: Session = Depends(get_db)
):
    appointment = _get_for_party(db, appointment_id, user)
    other_party = appointment.customer_id if user.id == appointment.provider_id else appointment.provider_id
    db.delete(appointment)
    db.commit()
    logger.info(f"🗑️ Appointment {appointment_id} deleted by {user.email}")

    await emit_to_user(other_party, "appointmentDeleted", {"_id": appointment_id})
    return {"message": "Appointment removed"}
