"""Plan service - admin management of the paid provider tiers"""

import logging

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import Plan
from .repository import PlanRepository
from .schemas import PLAN_NAMES, PlanCreate

logger = logging.getLogger(__name__)


class PlanService:
    """Service layer for plan business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = PlanRepository()

    def list_plans(self) -> list[Plan]:
        return self.repo.list_plans(self.db)

    def get_plan(self, plan_id: int) -> Plan:
        plan = self.repo.get_by_id(self.db, plan_id)
        if not plan:
            raise HTTPException(status_code=404, detail="Plan not found")
        return plan

    def _validate_name(self, name: str, plan_id: int = None) -> str:
        name = name.strip().capitalize()
        if name not in PLAN_NAMES:
            raise HTTPException(status_code=400, detail="Plan name must be either Pro or Elite")
        existing = self.repo.get_by_name(self.db, name)
        if existing and existing.id != plan_id:
            raise HTTPException(status_code=400, detail="Plan with this name already exists")
        return name

    def create_plan(self, data: PlanCreate) -> Plan:
        name = self._validate_name(data.name)
        plan = self.repo.create_plan(
            self.db,
            name=name,
            price=data.price,
            currency=data.currency,
            features=data.features,
            booking_limit=data.bookingLimit,
            product_id=data.productId,
        )
        logger.info(f"✅ Plan created: {plan.name} ({plan.booking_limit} bookings)")
        return plan

    def update_plan(self, plan_id: int, data: PlanCreate) -> Plan:
        plan = self.get_plan(plan_id)
        name = self._validate_name(data.name, plan_id=plan.id)
        return self.repo.update_plan(
            self.db,
            plan,
            name=name,
            price=data.price,
            currency=data.currency,
            features=data.features,
            booking_limit=data.bookingLimit,
            product_id=data.productId,
        )

    def delete_plan(self, plan_id: int) -> dict:
        plan = self.get_plan(plan_id)
        subscribed = self.repo.count_subscribed_providers(self.db, plan.name)
        if subscribed > 0:
            raise HTTPException(
                status_code=400,
                detail=f"Cannot delete plan. {subscribed} provider(s) are currently subscribed.",
            )
        self.repo.delete_plan(self.db, plan)
        logger.info(f"🗑️ Plan deleted: {plan.name}")
        return {"message": "Plan deleted successfully"}
