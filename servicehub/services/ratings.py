"""Service rating aggregates kept in step with feedback"""

import logging
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..models import Booking, Feedback, Service

logger = logging.getLogger(__name__)


def recompute_service_rating(db: Session, service_id: Optional[int]) -> Optional[Service]:
    """Set average_rating and feedback_count from the feedback on the service's bookings. Caller commits."""
    if service_id is None:
        return None
    db.flush()
    service = db.query(Service).filter(Service.id == service_id).first()
    if not service:
        return None

    average, count = (
        db.query(func.avg(Feedback.rating), func.count(Feedback.id))
        .join(Booking, Feedback.booking_id == Booking.id)
        .filter(Booking.service_id == service_id)
        .one()
    )
    service.average_rating = float(average) if average is not None else 0.0
    service.feedback_count = count or 0
    logger.debug(f"⭐ Service {service_id} rating {service.average_rating} over {service.feedback_count}")
    return service
