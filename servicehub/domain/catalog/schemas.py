"""Catalog domain schemas - services offered on the marketplace"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ...models import Service
from ...shared.schemas import ApiModel
from ...shared.validators import clean_slots, validate_category

SORT_OPTIONS = ("price_asc", "price_desc", "createdAt_asc", "createdAt_desc")


class ServiceCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    description: str = Field(min_length=1)
    price: float = Field(ge=0)
    category: str
    offer: Optional[str] = ""
    deal: Optional[str] = ""
    image: Optional[str] = None
    additionalImages: list[str] = []

    @field_validator("category")
    @classmethod
    def validate_category_value(cls, v):
        return validate_category(v)


class ServiceUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    price: Optional[float] = Field(default=None, ge=0)
    category: Optional[str] = None
    offer: Optional[str] = None
    deal: Optional[str] = None
    image: Optional[str] = None
    additionalImages: Optional[list[str]] = None
    retainedImageUrls: Optional[list[str]] = None
    availableSlots: Optional[dict[str, list]] = None
    isAvailable: Optional[bool] = None

    @field_validator("category")
    @classmethod
    def validate_category_value(cls, v):
        return validate_category(v) if v is not None else v

    @field_validator("availableSlots")
    @classmethod
    def validate_slots(cls, v):
        return clean_slots(v) if v is not None else v


class BulkServiceIds(BaseModel):
    serviceIds: list[int] = []


class CreatorRef(ApiModel):
    id: int = Field(alias="_id")
    name: str


class ServiceResponse(ApiModel):
    id: int = Field(alias="_id")
    name: str
    description: str
    price: float
    category: str
    createdBy: Optional[CreatorRef] = None
    image: Optional[str] = None
    additionalImages: list[str] = []
    offer: Optional[str] = ""
    deal: Optional[str] = ""
    isAvailable: bool = True
    availableSlots: dict[str, list[str]] = {}
    averageRating: float = 0.0
    feedbackCount: int = 0
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None

    @classmethod
    def from_service(cls, service: Service) -> "ServiceResponse":
        creator = service.creator
        return cls(
            id=service.id,
            name=service.name,
            description=service.description,
            price=service.price,
            category=service.category,
            createdBy=CreatorRef(id=creator.id, name=creator.name) if creator else None,
            image=service.image,
            additionalImages=service.additional_images or [],
            offer=service.offer or "",
            deal=service.deal or "",
            isAvailable=service.is_available,
            availableSlots=service.available_slots or {},
            averageRating=round(service.average_rating or 0.0, 2),
            feedbackCount=service.feedback_count or 0,
            createdAt=service.created_at,
            updatedAt=service.updated_at,
        )


class AvailabilityResponse(BaseModel):
    serviceId: int
    availableSlots: dict[str, list[str]]
