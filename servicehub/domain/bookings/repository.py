"""Booking repository - Database operations for bookings"""

from typing import Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session, joinedload

from ...models import Booking


def _with_relations(query):
    return query.options(
        joinedload(Booking.customer),
        joinedload(Booking.provider),
        joinedload(Booking.service),
        joinedload(Booking.feedback),
    )


class BookingRepository:
    """Repository for booking database operations"""

    @staticmethod
    def get_by_id(db: Session, booking_id: int) -> Optional[Booking]:
        return _with_relations(db.query(Booking)).filter(Booking.id == booking_id).first()

    @staticmethod
    def get_by_tracking_id(db: Session, tracking_id: str) -> Optional[Booking]:
        return _with_relations(db.query(Booking)).filter(Booking.tracking_id == tracking_id).first()

    @staticmethod
    def list_all(db: Session) -> list[Booking]:
        return (
            _with_relations(db.query(Booking))
            .order_by(Booking.created_at.desc(), Booking.id.desc())
            .all()
        )

    @staticmethod
    def list_for_user(db: Session, user_id: int) -> list[Booking]:
        return (
            _with_relations(db.query(Booking))
            .filter(or_(Booking.customer_id == user_id, Booking.provider_id == user_id))
            .order_by(Booking.created_at.desc(), Booking.id.desc())
            .all()
        )

    @staticmethod
    def list_completed(db: Session, customer_id: int = None, provider_id: int = None) -> list[Booking]:
        query = _with_relations(db.query(Booking)).filter(Booking.status == "completed")
        if customer_id is not None:
            query = query.filter(Booking.customer_id == customer_id)
        if provider_id is not None:
            query = query.filter(Booking.provider_id == provider_id)
        return query.order_by(Booking.scheduled_time.desc(), Booking.id.desc()).all()

    @staticmethod
    def create(db: Session, **booking_data) -> Booking:
        booking = Booking(**booking_data)
        db.add(booking)
        db.commit()
        db.refresh(booking)
        return booking

    @staticmethod
    def save(db: Session, booking: Booking) -> Booking:
        db.commit()
        db.refresh(booking)
        return booking

    @staticmethod
    def delete(db: Session, booking: Booking) -> None:
        db.delete(booking)
        db.commit()

    @staticmethod
    def completed_revenue(db: Session) -> float:
        total = (
            db.query(func.coalesce(func.sum(Booking.total_price), 0.0))
            .filter(Booking.status == "completed")
            .scalar()
        )
        return float(total or 0)
