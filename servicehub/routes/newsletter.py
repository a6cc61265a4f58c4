import logging

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..database import get_db
from ..models import NewsletterSubscriber
from ..rate_limiter import create_rate_limiter
from ..realtime import emit_to_admins
from ..shared.validators import validate_email

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/newsletter", tags=["Newsletter"])

rate_limit_newsletter = create_rate_limiter(limit=5, window_seconds=600, key_prefix="newsletter")

ALREADY_SUBSCRIBED = "This email is already subscribed."


class SubscribeRequest(BaseModel):
    email: str

    @field_validator("email")
    @classmethod
    def validate_email_format(cls, v):
        if not v or not v.strip():
            raise ValueError("Email is required")
        return validate_email(v)


@router.post("", status_code=201, dependencies=[Depends(rate_limit_newsletter)])
@router.post("/subscribe", status_code=201, dependencies=[Depends(rate_limit_newsletter)])
async def subscribe(data: SubscribeRequest, db: Session = Depends(get_db)):
    """Subscribe an email address to the newsletter"""
    if db.query(NewsletterSubscriber).filter(NewsletterSubscriber.email == data.email).first():
        raise HTTPException(status_code=400, detail=ALREADY_SUBSCRIBED)

    subscriber = NewsletterSubscriber(email=data.email)
    db.add(subscriber)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=400, detail=ALREADY_SUBSCRIBED)
    db.refresh(subscriber)
    logger.info(f"📰 Newsletter subscription: {subscriber.email}")

    await emit_to_admins(
        "newNewsletterSubscription",
        {
            "_id": subscriber.id,
            "email": subscriber.email,
            "subscribedAt": subscriber.subscribed_at.isoformat() if subscriber.subscribed_at else None,
        },
    )
    return {"message": "Subscribed successfully"}
