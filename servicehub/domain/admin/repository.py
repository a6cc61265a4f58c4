"""Admin repository - Database operations behind the admin console"""

from typing import Optional

from sqlalchemy.orm import Session, joinedload

from ...models import ActivityLog, AdminMessage, Appointment, User


def escape_like(value: str) -> str:
    """Match the location literally inside a LIKE pattern"""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class AdminRepository:
    """Repository for admin-only queries"""

    # Activity logs

    @staticmethod
    def list_logs(db: Session) -> list[ActivityLog]:
        return db.query(ActivityLog).order_by(ActivityLog.timestamp.desc(), ActivityLog.id.desc()).all()

    @staticmethod
    def get_log(db: Session, log_id: int) -> Optional[ActivityLog]:
        return db.query(ActivityLog).filter(ActivityLog.id == log_id).first()

    @staticmethod
    def find_logs(db: Session, log_ids: list[int]) -> list[ActivityLog]:
        return db.query(ActivityLog).filter(ActivityLog.id.in_(log_ids)).all()

    @staticmethod
    def delete_all(db: Session, rows: list) -> int:
        for row in rows:
            db.delete(row)
        db.commit()
        return len(rows)

    # Customer -> admin messages

    @staticmethod
    def list_messages(db: Session) -> list[AdminMessage]:
        return (
            db.query(AdminMessage)
            .options(joinedload(AdminMessage.customer), joinedload(AdminMessage.provider))
            .order_by(AdminMessage.created_at.desc(), AdminMessage.id.desc())
            .all()
        )

    @staticmethod
    def get_message(db: Session, message_id: int) -> Optional[AdminMessage]:
        return db.query(AdminMessage).filter(AdminMessage.id == message_id).first()

    @staticmethod
    def mark_messages_read(db: Session, message_ids: list[int]) -> int:
        updated = (
            db.query(AdminMessage)
            .filter(AdminMessage.id.in_(message_ids))
            .update({AdminMessage.status: "read"}, synchronize_session=False)
        )
        db.commit()
        return updated

    @staticmethod
    def delete_messages(db: Session, message_ids: list[int]) -> int:
        deleted = (
            db.query(AdminMessage)
            .filter(AdminMessage.id.in_(message_ids))
            .delete(synchronize_session=False)
        )
        db.commit()
        return deleted

    # Appointments

    @staticmethod
    def list_appointments(db: Session) -> list[Appointment]:
        return (
            db.query(Appointment)
            .options(
                joinedload(Appointment.provider),
                joinedload(Appointment.customer),
                joinedload(Appointment.service),
            )
            .order_by(Appointment.scheduled_time.desc(), Appointment.id.desc())
            .all()
        )

    @staticmethod
    def get_appointment(db: Session, appointment_id: int) -> Optional[Appointment]:
        return db.query(Appointment).filter(Appointment.id == appointment_id).first()

    # Providers

    @staticmethod
    def active_providers(db: Session, location: str, services: list[str]) -> list[User]:
        providers = (
            db.query(User)
            .filter(
                User.role == "provider",
                User.status == "active",
                User.location_full_address.ilike(f"%{escape_like(location)}%", escape="\\"),
            )
            .order_by(User.id.asc())
            .all()
        )
        if services:
            wanted = set(services)
            providers = [p for p in providers if wanted.intersection(p.skills or [])]
        return providers

    @staticmethod
    def providers(db: Session) -> list[User]:
        return db.query(User).filter(User.role == "provider").order_by(User.name.asc(), User.id.asc()).all()
