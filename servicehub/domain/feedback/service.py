"""Feedback service - reviews on completed bookings and service ratings"""

import logging

from fastapi import HTTPException
from sqlalchemy.orm import Session, joinedload

from ...cache import invalidate_knowledge_base_cache
from ...models import Booking, Feedback, User
from ...realtime import broadcast, emit_to_user
from ...services.ratings import recompute_service_rating
from ...utils.sanitization import validate_and_sanitize_input
from .schemas import FeedbackCreate, FeedbackResponse, FeedbackUpdate

logger = logging.getLogger(__name__)


def feedback_payload(feedback: Feedback) -> dict:
    return FeedbackResponse.from_feedback(feedback).model_dump(mode="json", by_alias=True)


class FeedbackService:
    """Service layer for feedback operations"""

    def __init__(self, db: Session):
        self.db = db

    def _query(self):
        return self.db.query(Feedback).options(
            joinedload(Feedback.user),
            joinedload(Feedback.booking).joinedload(Booking.customer),
            joinedload(Feedback.booking).joinedload(Booking.service),
        )

    def get_or_404(self, feedback_id: int) -> Feedback:
        feedback = self._query().filter(Feedback.id == feedback_id).first()
        if not feedback:
            raise HTTPException(status_code=404, detail="Feedback not found")
        return feedback

    @staticmethod
    def _clean_comment(comment: str) -> str:
        try:
            return validate_and_sanitize_input(comment, max_length=2000, min_length=1)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e)) from e

    @staticmethod
    def _require_author_or_admin(feedback: Feedback, user: User, action: str) -> None:
        if feedback.user_id != user.id and user.role != "admin":
            raise HTTPException(status_code=403, detail=f"Not authorized to {action} this feedback")

    async def _announce(self, feedback: Feedback, provider_event: str) -> None:
        invalidate_knowledge_base_cache()
        await broadcast("feedbacksUpdated", {"count": self.db.query(Feedback).count()})
        if feedback.provider_id:
            await emit_to_user(feedback.provider_id, provider_event, {"feedback": feedback_payload(feedback)})

    async def create_feedback(self, user: User, data: FeedbackCreate) -> Feedback:
        booking = self.db.query(Booking).filter(Booking.id == data.bookingId).first()
        if not booking:
            raise HTTPException(status_code=404, detail="Booking not found")
        if not booking.customer_id:
            raise HTTPException(status_code=400, detail="Booking has no valid customer")
        if booking.customer_id != user.id and user.role != "admin":
            raise HTTPException(status_code=403, detail="Not authorized to provide feedback for this booking")
        if booking.status != "completed":
            raise HTTPException(status_code=400, detail="Feedback can only be provided for completed bookings")
        if booking.feedback is not None:
            raise HTTPException(status_code=400, detail="Feedback already submitted for this booking")

        feedback = Feedback(
            user_id=user.id,
            booking_id=booking.id,
            provider_id=booking.provider_id,
            comment=self._clean_comment(data.comment),
            rating=data.rating,
        )
        self.db.add(feedback)
        recompute_service_rating(self.db, booking.service_id)
        self.db.commit()
        feedback = self.get_or_404(feedback.id)
        logger.info(f"⭐ Feedback {feedback.id} ({feedback.rating}/5) on booking {booking.id} by {user.email}")

        await self._announce(feedback, "feedbackSubmitted")
        return feedback

    def list_feedback(self, user: User) -> list[Feedback]:
        query = self._query()
        if user.role == "provider":
            query = query.filter(Feedback.provider_id == user.id)
        return query.order_by(Feedback.created_at.desc(), Feedback.id.desc()).all()

    async def update_feedback(self, feedback_id: int, user: User, data: FeedbackUpdate) -> Feedback:
        feedback = self.get_or_404(feedback_id)
        self._require_author_or_admin(feedback, user, "update")

        if data.comment is not None:
            feedback.comment = self._clean_comment(data.comment)
        if data.rating is not None:
            feedback.rating = data.rating
        if data.approved is not None:
            feedback.approved = data.approved

        service_id = feedback.booking.service_id if feedback.booking else None
        recompute_service_rating(self.db, service_id)
        self.db.commit()
        feedback = self.get_or_404(feedback_id)
        logger.info(f"✏️ Feedback {feedback.id} updated by {user.email}")

        await self._announce(feedback, "feedbackUpdated")
        return feedback

    async def delete_feedback(self, feedback_id: int, user: User) -> dict:
        feedback = self.get_or_404(feedback_id)
        self._require_author_or_admin(feedback, user, "delete")

        service_id = feedback.booking.service_id if feedback.booking else None
        provider_id = feedback.provider_id
        self.db.delete(feedback)
        self.db.flush()
        recompute_service_rating(self.db, service_id)
        self.db.commit()
        logger.info(f"🗑️ Feedback {feedback_id} deleted by {user.email}")

        invalidate_knowledge_base_cache()
        await broadcast("feedbacksUpdated", {"count": self.db.query(Feedback).count()})
        await emit_to_user(provider_id, "feedbackDeleted", {"feedbackId": feedback_id})
        return {"message": "Feedback deleted successfully"}
