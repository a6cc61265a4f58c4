"""Feedback router - FastAPI endpoints for booking reviews"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...auth import get_current_user, require_roles
from ...database import get_db
from ...models import User
from ...shared.schemas import MessageResponse
from .schemas import FeedbackCreate, FeedbackResponse, FeedbackUpdate
from .service import FeedbackService

router = APIRouter(prefix="/api/feedback", tags=["Feedback"])


def get_feedback_service(db: Session = Depends(get_db)) -> FeedbackService:
    """Dependency injection for FeedbackService"""
    return FeedbackService(db)


@router.post("", response_model=FeedbackResponse, status_code=201)
async def create_feedback(
    data: FeedbackCreate,
    user: User = Depends(get_current_user),
    service: FeedbackService = Depends(get_feedback_service),
):
    """Review a completed booking"""
    return FeedbackResponse.from_feedback(await service.create_feedback(user, data))


@router.get("", response_model=list[FeedbackResponse])
async def list_feedback(
    user: User = Depends(require_roles("admin", "customer", "provider")),
    service: FeedbackService = Depends(get_feedback_service),
):
    """All feedback; providers only see their own"""
    return [FeedbackResponse.from_feedback(f) for f in service.list_feedback(user)]


@router.put("/{feedback_id}", response_model=FeedbackResponse)
async def update_feedback(
    feedback_id: int,
    data: FeedbackUpdate,
    user: User = Depends(get_current_user),
    service: FeedbackService = Depends(get_feedback_service),
):
    """Edit or approve feedback"""
    return FeedbackResponse.from_feedback(await service.update_feedback(feedback_id, user, data))


@router.delete("/{feedback_id}", response_model=MessageResponse)
async def delete_feedback(
    feedback_id: int,
    user: User = Depends(get_current_user),
    service: FeedbackService = Depends(get_feedback_service),
):
    """Delete feedback"""
    return await service.delete_feedback(feedback_id, user)


__all__ = ["router"]
