"""Catalog router - FastAPI endpoints for marketplace services"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import require_admin
from ...database import get_db
from ...models import User
from ...shared.schemas import MessageResponse
from .schemas import AvailabilityResponse, BulkServiceIds, ServiceCreate, ServiceResponse, ServiceUpdate
from .service import CatalogService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/services", tags=["Services"])


def get_catalog_service(db: Session = Depends(get_db)) -> CatalogService:
    """Dependency injection for CatalogService"""
    return CatalogService(db)


# ============================================================================
# PUBLIC CATALOG
# ============================================================================


@router.get("", response_model=list[ServiceResponse])
async def list_services(
    name: Optional[str] = None,
    category: Optional[str] = None,
    price_gte: Optional[float] = None,
    price_lte: Optional[float] = None,
    offer: Optional[str] = Query(default=None, pattern="^(yes|no)$"),
    deal: Optional[str] = Query(default=None, pattern="^(yes|no)$"),
    sort: Optional[str] = Query(default=None, pattern="^(price_asc|price_desc|createdAt_asc|createdAt_desc)$"),
    service: CatalogService = Depends(get_catalog_service),
):
    """Search services by name, category, price, offer and deal"""
    results = service.search(
        name=name,
        category=category,
        price_gte=price_gte,
        price_lte=price_lte,
        offer=offer,
        deal=deal,
        sort=sort,
    )
    return [ServiceResponse.from_service(s) for s in results]


@router.get("/featured", response_model=list[ServiceResponse])
async def featured_services(service: CatalogService = Depends(get_catalog_service)):
    """The three newest services"""
    return [ServiceResponse.from_service(s) for s in service.featured()]


@router.get("/{service_id}/availability", response_model=AvailabilityResponse)
async def service_availability(
    service_id: int,
    date: Optional[str] = None,
    service: CatalogService = Depends(get_catalog_service),
):
    """Open slots for a service, optionally for one date"""
    return service.availability(service_id, date)


# ============================================================================
# ADMIN MANAGEMENT
# ============================================================================


@router.post("", response_model=ServiceResponse, status_code=201)
async def create_service(
    data: ServiceCreate,
    user: User = Depends(require_admin),
    service: CatalogService = Depends(get_catalog_service),
):
    """Add a service to the catalog"""
    return ServiceResponse.from_service(await service.create_service(user, data))


@router.post("/bulk-delete", response_model=MessageResponse)
@router.post("/bulk", response_model=MessageResponse)
async def bulk_delete_services(
    data: BulkServiceIds,
    user: User = Depends(require_admin),
    service: CatalogService = Depends(get_catalog_service),
):
    """Delete several services at once"""
    return await service.bulk_delete(data.serviceIds, user)


@router.put("/{service_id}", response_model=ServiceResponse)
async def update_service(
    service_id: int,
    data: ServiceUpdate,
    user: User = Depends(require_admin),
    service: CatalogService = Depends(get_catalog_service),
):
    """Partially update a service"""
    return ServiceResponse.from_service(await service.update_service(service_id, user, data))


@router.delete("/{service_id}", response_model=MessageResponse)
async def delete_service(
    service_id: int,
    user: User = Depends(require_admin),
    service: CatalogService = Depends(get_catalog_service),
):
    """Remove a service from the catalog"""
    return await service.delete_service(service_id, user)


__all__ = ["router"]
