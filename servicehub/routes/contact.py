"""
Contact API Routes

Public contact form plus the admin inbox for it.
"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.orm import Session

from ..auth import require_admin
from ..database import get_db
from ..models import ContactMessage, User
from ..rate_limiter import create_rate_limiter
from ..realtime import emit_to_admins
from ..shared.schemas import ApiModel
from ..shared.validators import validate_email
from ..utils.sanitization import validate_and_sanitize_input

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/contact", tags=["Contact"])

rate_limit_contact = create_rate_limiter(limit=5, window_seconds=600, key_prefix="contact")


class ContactCreate(BaseModel):
    name: str = Field(..., min_length=2, max_length=100)
    email: str
    message: str = Field(..., min_length=10, max_length=1000)

    @field_validator("email")
    @classmethod
    def validate_email_format(cls, v):
        return validate_email(v)


class ContactResponse(ApiModel):
    id: int = Field(alias="_id")
    name: str
    email: str
    message: str
    responded: bool
    createdAt: Optional[datetime] = None

    @classmethod
    def from_message(cls, message: ContactMessage) -> "ContactResponse":
        return cls(
            id=message.id,
            name=message.name,
            email=message.email,
            message=message.message,
            responded=message.responded,
            createdAt=message.created_at,
        )


def _get_message(db: Session, message_id: int) -> ContactMessage:
    message = db.query(ContactMessage).filter(ContactMessage.id == message_id).first()
    if not message:
        raise HTTPException(status_code=404, detail="Message not found")
    return message


@router.post("", status_code=201, dependencies=[Depends(rate_limit_contact)])
async def submit_inquiry(data: ContactCreate, db: Session = Depends(get_db)):
    """Submit the public contact form"""
    try:
        name = validate_and_sanitize_input(data.name, max_length=100, min_length=2)
        message_text = validate_and_sanitize_input(data.message, max_length=1000, min_length=10)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    message = ContactMessage(name=name, email=data.email, message=message_text)
    db.add(message)
    db.commit()
    db.refresh(message)
    logger.info(f"📬 Contact inquiry {message.id} from {message.email}")

    payload = ContactResponse.from_message(message).model_dump(mode="json", by_alias=True)
    await emit_to_admins("newContactMessage", payload)
    return {"message": "Inquiry submitted successfully", "data": payload}


@router.get("", response_model=list[ContactResponse])
async def list_inquiries(_: User = Depends(require_admin), db: Session = Depends(get_db)):
    """All contact inquiries, newest first"""
    messages = (
        db.query(ContactMessage)
        .order_by(ContactMessage.created_at.desc(), ContactMessage.id.desc())
        .all()
    )
    return [ContactResponse.from_message(m) for m in messages]


@router.put("/{message_id}/responded", response_model=ContactResponse)
async def mark_responded(message_id: int, _: User = Depends(require_admin), db: Session = Depends(get_db)):
    """Mark an inquiry as responded"""
    message = _get_message(db, message_id)
    message.responded = True
    db.commit()
    db.refresh(message)
    return ContactResponse.from_message(message)


@router.delete("/{message_id}")
async def delete_inquiry(message_id: int, _: User = Depends(require_admin), db: Session = Depends(get_db)):
    message = _get_message(db, message_id)
    db.delete(message)
    db.commit()
    logger.info(f"🗑️ Contact inquiry {message_id} deleted")
    return {"message": "Message deleted"}
