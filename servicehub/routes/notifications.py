from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import Field
from sqlalchemy import or_
from sqlalchemy.orm import Session

from ..auth import get_current_user
from ..database import get_db
from ..models import Notification, User
from ..realtime import emit_to_admins, emit_to_user
from ..shared.schemas import ApiModel, CountResponse

router = APIRouter(prefix="/api/notifications", tags=["Notifications"])

NOTIFICATION_LIMIT = 50


class NotificationResponse(ApiModel):
    id: int = Field(alias="_id")
    userId: Optional[int] = None
    type: str
    title: str
    message: str
    read: bool
    createdAt: Optional[datetime] = None

    @classmethod
    def from_notification(cls, notification: Notification) -> "NotificationResponse":
        return cls(
            id=notification.id,
            userId=notification.user_id,
            type=notification.type,
            title=notification.title,
            message=notification.message,
            read=notification.read,
            createdAt=notification.created_at,
        )


def visible_to(query, user: User):
    """Admins read the global inbox; everyone else also gets their own"""
    if user.role == "admin":
        return query.filter(Notification.user_id.is_(None))
    return query.filter(or_(Notification.user_id == user.id, Notification.user_id.is_(None)))


def unread_count(db: Session, user: User) -> int:
    return visible_to(db.query(Notification), user).filter(Notification.read.is_(False)).count()


@router.get("", response_model=list[NotificationResponse])
async def list_notifications(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Latest notifications for the caller"""
    notifications = (
        visible_to(db.query(Notification), user)
        .order_by(Notification.created_at.desc(), Notification.id.desc())
        .limit(NOTIFICATION_LIMIT)
        .all()
    )
    return [NotificationResponse.from_notification(n) for n in notifications]


@router.get("/unread-count", response_model=CountResponse)
async def get_unread_count(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return {"count": unread_count(db, user)}


@router.put("/{notification_id}/read", response_model=NotificationResponse)
async def mark_read(
    notification_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)
):
    """Mark one notification as read"""
    notification = (
        visible_to(db.query(Notification), user).filter(Notification.id == notification_id).first()
    )
    if not notification:
        raise HTTPException(status_code=404, detail="Notification not found")

    notification.read = True
    db.commit()
    db.refresh(notification)

    payload = {"count": unread_count(db, user)}
    if user.role == "admin":
        await emit_to_admins("unreadCountUpdated", payload)
    else:
        await emit_to_user(user.id, "unreadCountUpdated", payload)
    return NotificationResponse.from_notification(notification)
