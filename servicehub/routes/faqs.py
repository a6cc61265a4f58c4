import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field
from sqlalchemy import or_
from sqlalchemy.orm import Session

from ..auth import require_admin
from ..cache import invalidate_knowledge_base_cache
from ..database import get_db
from ..models import FAQ, Service, User
from ..shared.schemas import ApiModel

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/faqs", tags=["FAQs"])


class FAQCreate(BaseModel):
    question: str = Field(..., min_length=1)
    answer: str = Field(..., min_length=1)
    serviceId: Optional[int] = None


class FAQUpdate(BaseModel):
    question: Optional[str] = None
    answer: Optional[str] = None
    serviceId: Optional[int] = None


class FAQResponse(ApiModel):
    id: int = Field(alias="_id")
    question: str
    answer: str
    serviceId: Optional[int] = None
    createdAt: Optional[datetime] = None

    @classmethod
    def from_faq(cls, faq: FAQ) -> "FAQResponse":
        return cls(
            id=faq.id,
            question=faq.question,
            answer=faq.answer,
            serviceId=faq.service_id,
            createdAt=faq.created_at,
        )


def _check_service(db: Session, service_id: Optional[int]) -> None:
    if service_id is not None and not db.query(Service).filter(Service.id == service_id).first():
        raise HTTPException(status_code=404, detail="Service not found")


def _get_faq(db: Session, faq_id: int) -> FAQ:
    faq = db.query(FAQ).filter(FAQ.id == faq_id).first()
    if not faq:
        raise HTTPException(status_code=404, detail="FAQ not found")
    return faq


@router.get("", response_model=list[FAQResponse])
async def list_faqs(
    serviceId: Optional[int] = Query(None),
    search: Optional[str] = Query(None),
    db: Session = Depends(get_db),
):
    """Public FAQ list, optionally scoped to a service or filtered by text"""
    query = db.query(FAQ)
    if serviceId is not None:
        query = query.filter(FAQ.service_id == serviceId)
    if search and search.strip():
        pattern = f"%{search.strip()}%"
        query = query.filter(or_(FAQ.question.ilike(pattern), FAQ.answer.ilike(pattern)))
    return [FAQResponse.from_faq(f) for f in query.order_by(FAQ.created_at.desc(), FAQ.id.desc()).all()]


@router.post("", response_model=FAQResponse, status_code=201)
async def create_faq(data: FAQCreate, admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    _check_service(db, data.serviceId)
    faq = FAQ(question=data.question.strip(), answer=data.answer.strip(), service_id=data.serviceId)
    db.add(faq)
    db.commit()
    db.refresh(faq)
    invalidate_knowledge_base_cache()
    logger.info(f"❓ FAQ {faq.id} created by {admin.email}")
    return FAQResponse.from_faq(faq)


@router.put("/{faq_id}", response_model=FAQResponse)
async def update_faq(
    faq_id: int, data: FAQUpdate, _: User = Depends(require_admin), db: Session = Depends(get_db)
):
    faq = _get_faq(db, faq_id)
    if data.question is not None and data.question.strip():
        faq.question = data.question.strip()
    if data.answer is not None and data.answer.strip():
        faq.answer = data.answer.strip()
    if "serviceId" in data.model_fields_set:
        _check_service(db, data.serviceId)
        faq.service_id = data.serviceId
    db.commit()
    db.refresh(faq)
    invalidate_knowledge_base_cache()
    return FAQResponse.from_faq(faq)


@router.delete("/{faq_id}")
async def delete_faq(faq_id: int, _: User = Depends(require_admin), db: Session = Depends(get_db)):
    faq = _get_faq(db, faq_id)
    db.delete(faq)
    db.commit()
    invalidate_knowledge_base_cache()
    logger.info(f"🗑️ FAQ {faq_id} deleted")
    return {"message": "FAQ deleted"}
