"""
Subscription service - revenue-share records, Dodo checkout and the
subscription lifecycle driven by payment webhooks.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...config import FRONTEND_URL
from ...models import Plan, Subscription, User
from ...plan_limits import BILLING_CYCLE_DAYS, get_usage_stats, reset_subscription
from ...realtime import emit_to_admins, emit_to_user
from ..users.repository import UserRepository
from .dodo_service import PaymentServiceUnavailable, dodo_service, read_field
from .repository import PlanRepository, SubscriptionRepository
from .schemas import SubscriptionCreate, SubscriptionUpdate, VerifySessionRequest

logger = logging.getLogger(__name__)

DEFAULT_REVENUE_PERCENTAGE = 0.1

ACTIVATION_EVENTS = (
    "subscription.active",
    "subscription.renewed",
    "subscription.plan_changed",
)
PAST_DUE_EVENTS = ("subscription.on_hold", "subscription.failed", "payment.failed")
CANCELLATION_EVENTS = ("subscription.cancelled", "subscription.expired")


def subscription_payload(user: User) -> dict:
    """Socket payload describing a provider's current tier"""
    return {
        "userId": user.id,
        "subscriptionTier": user.subscription_tier,
        "subscriptionStatus": user.subscription_status,
        "currentBookingCount": user.current_booking_count or 0,
        "subscriptionStartDate": (
            user.subscription_start_date.isoformat() if user.subscription_start_date else None
        ),
    }


class SubscriptionService:
    """Service layer for provider subscriptions"""

    def __init__(self, db: Session, payments=None):
        self.db = db
        self.repo = SubscriptionRepository()
        self.plans = PlanRepository()
        self.users = UserRepository()
        self.payments = payments or dodo_service

    # ------------------------------------------------------------------
    # Revenue-share records
    # ------------------------------------------------------------------

    async def create_subscription(self, provider: User, data: SubscriptionCreate) -> Subscription:
        start = datetime.utcnow()
        revenue_percentage = (
            data.revenuePercentage if data.revenuePercentage is not None else DEFAULT_REVENUE_PERCENTAGE
        )
        subscription = self.repo.create(
            self.db,
            provider_id=provider.id,
            plan_type=data.planType,
            revenue_percentage=revenue_percentage,
            start_date=start,
            end_date=start + timedelta(days=BILLING_CYCLE_DAYS),
            subscription_fee=data.subscriptionFee,
            payment_status="pending",
            payment_details={},
        )
        logger.info(f"✅ Subscription {subscription.id} created for provider {provider.id} ({data.planType})")

        payload = {"subscriptionId": subscription.id, "providerId": provider.id, "planType": data.planType}
        await emit_to_user(provider.id, "subscriptionCreated", payload)
        await emit_to_admins("subscriptionCreated", payload)
        return subscription

    def get_my_subscription(self, provider: User) -> Subscription:
        subscription = self.repo.get_latest_for_provider(self.db, provider.id)
        if not subscription:
            raise HTTPException(status_code=404, detail="No subscription found")
        return subscription

    def list_subscriptions(self) -> list[Subscription]:
        return self.repo.list_all(self.db)

    def _get_subscription(self, subscription_id: int) -> Subscription:
        subscription = self.repo.get_by_id(self.db, subscription_id)
        if not subscription:
            raise HTTPException(status_code=404, detail="Subscription not found")
        return subscription

    async def update_subscription(self, subscription_id: int, data: SubscriptionUpdate) -> Subscription:
        subscription = self._get_subscription(subscription_id)
        field_map = {
            "planType": "plan_type",
            "revenuePercentage": "revenue_percentage",
            "subscriptionFee": "subscription_fee",
            "paymentStatus": "payment_status",
            "endDate": "end_date",
            "paymentDetails": "payment_details",
        }
        updates = {
            field_map[key]: value for key, value in data.model_dump(exclude_unset=True).items() if value is not None
        }
        subscription = self.repo.update(self.db, subscription, **updates)
        await emit_to_user(
            subscription.provider_id,
            "subscriptionUpdated",
            {"subscriptionId": subscription.id, "paymentStatus": subscription.payment_status},
        )
        return subscription

    def delete_subscription(self, subscription_id: int) -> dict:
        subscription = self._get_subscription(subscription_id)
        self.repo.delete(self.db, subscription)
        logger.info(f"🗑️ Subscription {subscription_id} deleted")
        return {"message": "Subscription deleted successfully"}

    def get_provider_revenue(self, provider_id: int, current_user: User) -> dict:
        if current_user.role != "admin" and current_user.id != provider_id:
            raise HTTPException(status_code=403, detail="Not authorized to view this revenue")

        total = self.repo.completed_booking_revenue(self.db, provider_id)
        subscription = self.repo.get_latest_for_provider(self.db, provider_id)
        percentage = subscription.revenue_percentage if subscription else DEFAULT_REVENUE_PERCENTAGE
        if subscription and subscription.total_revenue != total:
            self.repo.update(self.db, subscription, total_revenue=total)

        return {
            "providerId": provider_id,
            "totalRevenue": total,
            "revenuePercentage": percentage,
            "platformShare": round(total * percentage, 2),
        }

    # ------------------------------------------------------------------
    # Tier details and cancellation
    # ------------------------------------------------------------------

    def get_subscription_details(self, provider: User) -> dict:
        stats = get_usage_stats(provider, self.db)
        return {key: stats[key] for key in (
            "subscriptionTier",
            "subscriptionStatus",
            "currentBookingCount",
            "bookingLimit",
            "subscriptionStartDate",
            "subscriptionStatusMessage",
        )}

    async def cancel_provider_subscription(self, provider: User, actor: Optional[User] = None) -> User:
        """Cancel a provider's paid tier; shared by the provider and admin endpoints"""
        if (provider.subscription_tier or "free") == "free" and not provider.dodo_subscription_id:
            raise HTTPException(status_code=400, detail="No active subscription to cancel")

        if provider.dodo_subscription_id and self.payments.is_available():
            try:
                await self.payments.cancel_subscription(provider.dodo_subscription_id)
            except Exception as e:
                logger.error(f"❌ Failed to cancel Dodo subscription {provider.dodo_subscription_id}: {e}")
                raise HTTPException(
                    status_code=502, detail="Failed to cancel subscription with the payment provider"
                ) from e

        reset_subscription(provider, "free", "canceled")
        self.db.commit()
        self.db.refresh(provider)

        who = actor.email if actor else provider.email
        logger.info(f"🛑 Subscription cancelled for provider {provider.id} by {who}")
        await emit_to_user(provider.id, "subscriptionUpdated", subscription_payload(provider))
        await emit_to_admins("subscriptionUpdated", subscription_payload(provider))
        return provider

    # ------------------------------------------------------------------
    # Dodo Payments checkout
    # ------------------------------------------------------------------

    def _require_payments(self):
        if not self.payments.is_available():
            raise HTTPException(status_code=503, detail="Payment service is not configured")

    def _get_plan(self, plan_id: int) -> Plan:
        plan = self.plans.get_by_id(self.db, plan_id)
        if not plan:
            raise HTTPException(status_code=404, detail="Plan not found")
        return plan

    async def create_checkout_session(self, provider: User, plan_id: int) -> dict:
        self._require_payments()
        plan = self._get_plan(plan_id)
        if not plan.product_id:
            raise HTTPException(status_code=400, detail="Plan is not linked to a payment product")

        return_url = f"{FRONTEND_URL}/provider/subscription/success?planId={plan.id}"
        metadata = {"user_id": str(provider.id), "plan_id": str(plan.id), "plan_name": plan.name}
        try:
            session = await self.payments.create_checkout_session(
                product_id=plan.product_id,
                customer_email=provider.email,
                customer_name=provider.name,
                return_url=return_url,
                metadata=metadata,
            )
        except PaymentServiceUnavailable as e:
            raise HTTPException(status_code=503, detail="Payment service is not configured") from e
        except Exception as e:
            logger.error(f"❌ Checkout session failed for provider {provider.id}: {e}")
            raise HTTPException(status_code=502, detail="Failed to create checkout session") from e

        logger.info(f"💳 Checkout session created for provider {provider.id} on plan {plan.name}")
        return session

    async def create_portal_session(self, provider: User) -> dict:
        self._require_payments()
        if not provider.dodo_customer_id:
            raise HTTPException(status_code=400, detail="No billing account found for this provider")
        try:
            url = await self.payments.create_customer_portal(provider.dodo_customer_id)
        except Exception as e:
            logger.error(f"❌ Portal session failed for provider {provider.id}: {e}")
            raise HTTPException(status_code=502, detail="Failed to create billing portal session") from e
        return {"url": url}

    async def verify_session(self, provider: User, data: VerifySessionRequest) -> User:
        """Activate the tier once the checkout's subscription is live"""
        self._require_payments()
        subscription_id = data.subscriptionId or data.sessionId
        try:
            remote = await self.payments.get_subscription(subscription_id)
        except Exception as e:
            logger.error(f"❌ Could not retrieve subscription {subscription_id}: {e}")
            raise HTTPException(status_code=400, detail="Unable to verify checkout session") from e

        status = read_field(remote, "status")
        if status != "active":
            raise HTTPException(status_code=400, detail=f"Subscription is not active (status: {status})")

        owner_id = read_field(read_field(remote, "metadata") or {}, "user_id")
        if str(owner_id) != str(provider.id):
            logger.warning(
                f"🚫 Provider {provider.id} tried to claim subscription {subscription_id} owned by {owner_id}"
            )
            raise HTTPException(status_code=403, detail="This subscription does not belong to you")

        plan = self.plans.get_by_product_id(self.db, read_field(remote, "product_id") or "")
        if not plan and data.planId:
            plan = self.plans.get_by_id(self.db, data.planId)
        if not plan:
            raise HTTPException(status_code=404, detail="Plan not found")

        self._activate(provider, plan, read_field(remote, "subscription_id") or subscription_id, remote)
        self.db.commit()
        self.db.refresh(provider)
        logger.info(f"✅ Provider {provider.id} upgraded to {plan.name} via verified checkout")
        await emit_to_user(provider.id, "subscriptionUpdated", subscription_payload(provider))
        return provider

    def _activate(self, user: User, plan: Plan, subscription_id: Optional[str], data) -> None:
        tier = plan.name.lower()
        if user.subscription_tier != tier or user.subscription_status != "active" or not user.subscription_start_date:
            reset_subscription(user, tier, "active")
        else:
            user.subscription_status = "active"
        if subscription_id:
            user.dodo_subscription_id = subscription_id
        customer = read_field(data, "customer")
        customer_id = read_field(customer, "customer_id") if customer is not None else None
        customer_id = customer_id or read_field(data, "customer_id")
        if customer_id:
            user.dodo_customer_id = customer_id

    # ------------------------------------------------------------------
    # Webhook lifecycle
    # ------------------------------------------------------------------

    def _find_webhook_user(self, data: dict) -> Optional[User]:
        meta = data.get("metadata") or {}
        user_id = meta.get("user_id")
        if user_id and str(user_id).isdigit():
            user = self.users.get_by_id(self.db, int(user_id))
            if user:
                return user

        subscription_id = data.get("subscription_id")
        if subscription_id:
            user = self.db.query(User).filter(User.dodo_subscription_id == subscription_id).first()
            if user:
                return user

        email = (data.get("customer") or {}).get("email") or data.get("email")
        if email:
            return self.users.get_by_email(self.db, email.lower())
        return None

    def _webhook_plan(self, data: dict) -> Optional[Plan]:
        product_id = data.get("product_id")
        if product_id:
            plan = self.plans.get_by_product_id(self.db, product_id)
            if plan:
                return plan
        plan_id = (data.get("metadata") or {}).get("plan_id")
        if plan_id and str(plan_id).isdigit():
            return self.plans.get_by_id(self.db, int(plan_id))
        return None

    async def process_webhook_event(self, event: dict) -> dict:
        event_type = event.get("type")
        data = event.get("data") or {}
        logger.info(f"🔔 Processing subscription webhook type={event_type}")

        if event_type not in ACTIVATION_EVENTS + PAST_DUE_EVENTS + CANCELLATION_EVENTS:
            logger.info(f"ℹ️ Ignoring webhook event type {event_type}")
            return {"status": "ignored", "type": event_type}

        user = self._find_webhook_user(data)
        if not user:
            logger.warning(f"❌ No provider found for webhook event {event_type}; skipping")
            return {"status": "user_not_found", "type": event_type}

        if event_type in ACTIVATION_EVENTS:
            plan = self._webhook_plan(data)
            if not plan:
                logger.warning(f"⚠️ No plan matches product {data.get('product_id')}; skipping")
                return {"status": "plan_not_found", "type": event_type}
            self._activate(user, plan, data.get("subscription_id"), data)
        elif event_type in PAST_DUE_EVENTS:
            user.subscription_status = "past_due"
        else:
            reset_subscription(user, "free", "canceled")

        self.db.commit()
        self.db.refresh(user)
        logger.info(
            f"✅ Provider {user.id} now {user.subscription_tier}/{user.subscription_status} after {event_type}"
        )
        await emit_to_user(user.id, "subscriptionUpdated", subscription_payload(user))
        await emit_to_admins("subscriptionUpdated", subscription_payload(user))
        return {"status": "processed", "type": event_type}
