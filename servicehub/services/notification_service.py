"""
Notification Service - persisted in-app notifications for booking status changes.

Notifications with no user belong to the admin inbox.
"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from ..models import Notification

logger = logging.getLogger(__name__)

NOTIFICATION_TYPES = ("status_pending", "status_assigned", "status_updated")


def create_notification(
    db: Session,
    type: str,
    title: str,
    message: str,
    user_id: Optional[int] = None,
) -> Optional[Notification]:
    """
    Store a notification. A failure is logged and swallowed so the booking
    flow that triggered it still succeeds.
    """
    if type not in NOTIFICATION_TYPES:
        raise ValueError(f"Unknown notification type: {type}")

    try:
        notification = Notification(user_id=user_id, type=type, title=title, message=message)
        db.add(notification)
        db.commit()
        db.refresh(notification)
        logger.info(f"🔔 Notification created ({type}) for {'admin' if user_id is None else user_id}")
        return notification
    except Exception as e:
        db.rollback()
        logger.error(f"❌ Failed to create notification ({type}): {e}")
        return None
