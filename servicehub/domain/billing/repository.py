"""Billing repository - Database operations for plans and subscriptions"""

from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from ...models import Booking, Plan, Subscription, User


class PlanRepository:
    """Repository for plan database operations"""

    @staticmethod
    def list_plans(db: Session) -> list[Plan]:
        return db.query(Plan).order_by(Plan.price.asc(), Plan.id.asc()).all()

    @staticmethod
    def get_by_id(db: Session, plan_id: int) -> Optional[Plan]:
        return db.query(Plan).filter(Plan.id == plan_id).first()

    @staticmethod
    def get_by_name(db: Session, name: str) -> Optional[Plan]:
        return db.query(Plan).filter(Plan.name == name).first()

    @staticmethod
    def get_by_product_id(db: Session, product_id: str) -> Optional[Plan]:
        return db.query(Plan).filter(Plan.product_id == product_id).first()

    @staticmethod
    def create_plan(db: Session, **plan_data) -> Plan:
        plan = Plan(**plan_data)
        db.add(plan)
        db.commit()
        db.refresh(plan)
        return plan

    @staticmethod
    def update_plan(db: Session, plan: Plan, **updates) -> Plan:
        for key, value in updates.items():
            setattr(plan, key, value)
        db.commit()
        db.refresh(plan)
        return plan

    @staticmethod
    def delete_plan(db: Session, plan: Plan) -> None:
        db.delete(plan)
        db.commit()

    @staticmethod
    def count_subscribed_providers(db: Session, tier: str) -> int:
        """Providers on this tier with a live payment subscription"""
        return (
            db.query(User)
            .filter(
                User.subscription_tier == tier.lower(),
                User.dodo_subscription_id.isnot(None),
            )
            .count()
        )


class SubscriptionRepository:
    """Repository for revenue-share subscription records"""

    @staticmethod
    def list_all(db: Session) -> list[Subscription]:
        return db.query(Subscription).order_by(Subscription.created_at.desc(), Subscription.id.desc()).all()

    @staticmethod
    def get_by_id(db: Session, subscription_id: int) -> Optional[Subscription]:
        return db.query(Subscription).filter(Subscription.id == subscription_id).first()

    @staticmethod
    def get_latest_for_provider(db: Session, provider_id: int) -> Optional[Subscription]:
        return (
            db.query(Subscription)
            .filter(Subscription.provider_id == provider_id)
            .order_by(Subscription.start_date.desc(), Subscription.id.desc())
            .first()
        )

    @staticmethod
    def create(db: Session, **data) -> Subscription:
        subscription = Subscription(**data)
        db.add(subscription)
        db.commit()
        db.refresh(subscription)
        return subscription

    @staticmethod
    def update(db: Session, subscription: Subscription, **updates) -> Subscription:
        for key, value in updates.items():
            setattr(subscription, key, value)
        db.commit()
        db.refresh(subscription)
        return subscription

    @staticmethod
    def delete(db: Session, subscription: Subscription) -> None:
        db.delete(subscription)
        db.commit()

    @staticmethod
    def completed_booking_revenue(db: Session, provider_id: int) -> float:
        total = (
            db.query(func.coalesce(func.sum(Booking.total_price), 0.0))
            .filter(Booking.provider_id == provider_id, Booking.status == "completed")
            .scalar()
        )
        return float(total or 0)
