"""Catalog service - Business logic for marketplace services"""

import logging
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...cache import invalidate_knowledge_base_cache
from ...models import Service, User
from ...realtime import broadcast
from .repository import ServiceRepository
from .schemas import ServiceCreate, ServiceResponse, ServiceUpdate

logger = logging.getLogger(__name__)


def service_payload(service: Service) -> dict:
    return ServiceResponse.from_service(service).model_dump(mode="json", by_alias=True)


class CatalogService:
    """Service layer for catalog operations"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = ServiceRepository()

    def get_or_404(self, service_id: int) -> Service:
        service = self.repo.get_by_id(self.db, service_id)
        if not service:
            raise HTTPException(status_code=404, detail="Service not found")
        return service

    def search(self, **filters) -> list[Service]:
        return self.repo.search(self.db, **filters)

    def featured(self) -> list[Service]:
        return self.repo.featured(self.db)

    def availability(self, service_id: int, date: Optional[str] = None) -> dict:
        service = self.get_or_404(service_id)
        slots = service.available_slots or {}
        if date:
            slots = {date: slots[date]} if date in slots else {}
        return {"serviceId": service.id, "availableSlots": slots}

    async def _after_change(self) -> int:
        """Refresh everything derived from the catalog"""
        invalidate_knowledge_base_cache()
        count = self.repo.count(self.db)
        await broadcast("servicesUpdated", {"count": count})
        return count

    @staticmethod
    def _require_creator_or_admin(service: Service, user: User, action: str) -> None:
        if service.created_by != user.id and user.role != "admin":
            raise HTTPException(status_code=403, detail=f"Not authorized to {action} this service")

    async def create_service(self, user: User, data: ServiceCreate) -> Service:
        service = self.repo.create(
            self.db,
            name=data.name.strip(),
            description=data.description.strip(),
            price=data.price,
            category=data.category,
            created_by=user.id,
            image=data.image or "",
            additional_images=list(dict.fromkeys(data.additionalImages)),
            offer=data.offer or "",
            deal=data.deal or "",
            available_slots={},
        )
        logger.info(f"✅ Service created: {service.name} ({service.category}) by {user.email}")

        await self._after_change()
        await broadcast("serviceAdded", service_payload(service))
        return service

    async def update_service(self, service_id: int, user: User, data: ServiceUpdate) -> Service:
        service = self.get_or_404(service_id)
        self._require_creator_or_admin(service, user, "update")
        fields = data.model_dump(exclude_unset=True)

        for field, column in (
            ("name", "name"),
            ("description", "description"),
            ("price", "price"),
            ("category", "category"),
            ("isAvailable", "is_available"),
        ):
            if fields.get(field) not in (None, ""):
                setattr(service, column, fields[field])
        for field in ("offer", "deal"):
            if field in fields:
                setattr(service, field, fields[field] or "")
        if "image" in fields:
            service.image = fields["image"] or ""

        if "retainedImageUrls" in fields or "additionalImages" in fields:
            current = service.additional_images or []
            retained = current
            if data.retainedImageUrls is not None:
                dropped = [url for url in data.retainedImageUrls if url not in current]
                if dropped:
                    logger.warning(f"⚠️ Ignoring unknown retained image URLs: {dropped}")
                retained = [url for url in data.retainedImageUrls if url in current]
            added = data.additionalImages or []
            service.additional_images = list(dict.fromkeys(retained + added))

        if data.availableSlots is not None:
            service.available_slots = dict(data.availableSlots)

        service = self.repo.save(self.db, service)
        logger.info(f"✏️ Service {service.id} updated by {user.email}")

        await self._after_change()
        await broadcast("serviceUpdated", service_payload(service))
        await broadcast("bookingUpdated")
        return service

    async def delete_service(self, service_id: int, user: User) -> dict:
        service = self.get_or_404(service_id)
        self._require_creator_or_admin(service, user, "delete")
        self.repo.delete_many(self.db, [service])
        logger.info(f"🗑️ Service {service_id} deleted by {user.email}")

        await self._after_change()
        await broadcast("serviceDeleted", {"_id": service_id})
        return {"message": "Service deleted"}

    async def bulk_delete(self, service_ids: list[int], user: User) -> dict:
        if not service_ids:
            raise HTTPException(status_code=400, detail="Service IDs array is required")
        unique_ids = list(dict.fromkeys(service_ids))
        services = self.repo.get_many(self.db, unique_ids)
        if len(services) != len(unique_ids):
            raise HTTPException(status_code=404, detail="One or more services not found")
        for service in services:
            if service.created_by != user.id and user.role != "admin":
                raise HTTPException(status_code=403, detail="Not authorized to delete one or more services")

        self.repo.delete_many(self.db, services)
        logger.info(f"🗑️ {len(services)} services deleted by {user.email}")

        await self._after_change()
        await broadcast("servicesBulkDeleted", {"serviceIds": unique_ids})
        return {"message": "Services deleted successfully"}
