"""Catalog repository - Database operations for services"""

from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session, joinedload

from ...models import Service

SORT_COLUMNS = {
    "price_asc": (Service.price.asc(), Service.id.asc()),
    "price_desc": (Service.price.desc(), Service.id.desc()),
    "createdAt_asc": (Service.created_at.asc(), Service.id.asc()),
    "createdAt_desc": (Service.created_at.desc(), Service.id.desc()),
}


class ServiceRepository:
    """Repository for service database operations"""

    @staticmethod
    def get_by_id(db: Session, service_id: int) -> Optional[Service]:
        return db.query(Service).options(joinedload(Service.creator)).filter(Service.id == service_id).first()

    @staticmethod
    def get_many(db: Session, service_ids: list[int]) -> list[Service]:
        return db.query(Service).filter(Service.id.in_(service_ids)).all()

    @staticmethod
    def search(
        db: Session,
        name: Optional[str] = None,
        category: Optional[str] = None,
        price_gte: Optional[float] = None,
        price_lte: Optional[float] = None,
        offer: Optional[str] = None,
        deal: Optional[str] = None,
        sort: Optional[str] = None,
    ) -> list[Service]:
        query = db.query(Service).options(joinedload(Service.creator))

        if name:
            query = query.filter(Service.name.ilike(f"%{name}%"))
        if category:
            query = query.filter(Service.category == category)
        if price_gte is not None and price_lte is not None:
            query = query.filter(Service.price >= price_gte, Service.price <= price_lte)
        for column, flag in ((Service.offer, offer), (Service.deal, deal)):
            if flag == "yes":
                query = query.filter(column.isnot(None), column != "")
            elif flag == "no":
                query = query.filter(or_(column.is_(None), column == ""))

        order = SORT_COLUMNS.get(sort, (Service.id.asc(),))
        return query.order_by(*order).all()

    @staticmethod
    def featured(db: Session, limit: int = 3) -> list[Service]:
        return (
            db.query(Service)
            .options(joinedload(Service.creator))
            .order_by(Service.created_at.desc(), Service.id.desc())
            .limit(limit)
            .all()
        )

    @staticmethod
    def count(db: Session) -> int:
        return db.query(Service).count()

    @staticmethod
    def create(db: Session, **service_data) -> Service:
        service = Service(**service_data)
        db.add(service)
        db.commit()
        db.refresh(service)
        return service

    @staticmethod
    def save(db: Session, service: Service) -> Service:
        db.commit()
        db.refresh(service)
        return service

    @staticmethod
    def delete_many(db: Session, services: list[Service]) -> None:
        for service in services:
            db.delete(service)
        db.commit()
