"""Audit trail of admin actions, shown on the activity logs page"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from ..models import ActivityLog, User

logger = logging.getLogger(__name__)


def record_activity(db: Session, user: Optional[User], action: str, details: str = "") -> ActivityLog:
    """Persist one activity entry. Commits."""
    entry = ActivityLog(
        user_id=user.id if user else None,
        user_name=user.name if user else "System",
        action=action,
        details=details,
    )
    db.add(entry)
    db.commit()
    db.refresh(entry)
    logger.info(f"📝 Activity: {entry.user_name} {action} - {details}")
    return entry
