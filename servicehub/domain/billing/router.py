"""Billing router - plans, revenue-share subscriptions and Dodo checkout"""

import json
import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from ...auth import require_admin, require_roles
from ...cache import is_webhook_processed, mark_webhook_processed
from ...config import DODO_PAYMENTS_WEBHOOK_SECRET
from ...database import get_db
from ...models import User
from ...shared.schemas import MessageResponse, UserResponse
from ...webhook_security import verify_dodo_webhook
from .plan_service import PlanService
from .schemas import (
    CheckoutRequest,
    CheckoutResponse,
    PlanCreate,
    PlanResponse,
    PortalResponse,
    RevenueResponse,
    SubscriptionCreate,
    SubscriptionResponse,
    SubscriptionUpdate,
    VerifySessionRequest,
)
from .subscription_service import SubscriptionService

logger = logging.getLogger(__name__)

plans_router = APIRouter(prefix="/api/plans", tags=["Plans"])
subscriptions_router = APIRouter(prefix="/api/subscriptions", tags=["Subscriptions"])

require_provider = require_roles("provider")


def get_plan_service(db: Session = Depends(get_db)) -> PlanService:
    """Dependency injection for PlanService"""
    return PlanService(db)


def get_subscription_service(db: Session = Depends(get_db)) -> SubscriptionService:
    """Dependency injection for SubscriptionService"""
    return SubscriptionService(db)


# ============================================================================
# PLANS
# ============================================================================


@plans_router.get("", response_model=list[PlanResponse])
async def list_plans(
    _: User = Depends(require_roles("admin", "provider")),
    service: PlanService = Depends(get_plan_service),
):
    """List the paid plans"""
    return [PlanResponse.from_plan(p) for p in service.list_plans()]


@plans_router.post("", response_model=PlanResponse, status_code=201)
async def create_plan(
    data: PlanCreate,
    _: User = Depends(require_admin),
    service: PlanService = Depends(get_plan_service),
):
    """Create a plan"""
    return PlanResponse.from_plan(service.create_plan(data))


@plans_router.put("/{plan_id}", response_model=PlanResponse)
async def update_plan(
    plan_id: int,
    data: PlanCreate,
    _: User = Depends(require_admin),
    service: PlanService = Depends(get_plan_service),
):
    """Update a plan"""
    return PlanResponse.from_plan(service.update_plan(plan_id, data))


@plans_router.delete("/{plan_id}", response_model=MessageResponse)
async def delete_plan(
    plan_id: int,
    _: User = Depends(require_admin),
    service: PlanService = Depends(get_plan_service),
):
    """Delete a plan nobody is subscribed to"""
    return service.delete_plan(plan_id)


# ============================================================================
# CHECKOUT (DODO PAYMENTS)
# ============================================================================


@subscriptions_router.post("/create-checkout-session", response_model=CheckoutResponse)
async def create_checkout_session(
    data: CheckoutRequest,
    user: User = Depends(require_provider),
    service: SubscriptionService = Depends(get_subscription_service),
):
    """Start a hosted checkout for a plan"""
    return await service.create_checkout_session(user, data.planId)


@subscriptions_router.post("/create-portal-session", response_model=PortalResponse)
async def create_portal_session(
    user: User = Depends(require_provider),
    service: SubscriptionService = Depends(get_subscription_service),
):
    """Open the billing portal for the provider's customer record"""
    return await service.create_portal_session(user)


@subscriptions_router.post("/verify-session")
async def verify_session(
    data: VerifySessionRequest,
    user: User = Depends(require_provider),
    service: SubscriptionService = Depends(get_subscription_service),
):
    """Activate the purchased tier after checkout returns"""
    provider = await service.verify_session(user, data)
    return {"message": "Subscription activated successfully", "user": UserResponse.from_user(provider)}


@subscriptions_router.post("/webhook")
async def handle_dodo_webhook(request: Request, db: Session = Depends(get_db)):
    """
    Verify signature and process subscription lifecycle events.

    Headers:
      - 'webhook-signature': 'v1,{base64(hmac_sha256(webhook-id.webhook-timestamp.payload))}'
      - 'webhook-id': Unique webhook ID for idempotency
      - 'webhook-timestamp': Unix timestamp (seconds)
    """
    if not DODO_PAYMENTS_WEBHOOK_SECRET:
        logger.error("❌ DODO_PAYMENTS_WEBHOOK_SECRET not configured")
        raise HTTPException(status_code=500, detail="Webhook not configured")

    webhook_id, raw_body = await verify_dodo_webhook(request, DODO_PAYMENTS_WEBHOOK_SECRET)

    if is_webhook_processed(webhook_id):
        logger.info(f"🔄 Webhook {webhook_id} already processed, skipping (idempotency)")
        return {"status": "already_processed", "webhookId": webhook_id}

    try:
        event = json.loads(raw_body.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        logger.error(f"Failed to parse webhook JSON: {e}")
        raise HTTPException(status_code=400, detail="Invalid JSON payload") from e

    result = await SubscriptionService(db).process_webhook_event(event)
    mark_webhook_processed(webhook_id)
    return {**result, "webhookId": webhook_id}


# ============================================================================
# REVENUE-SHARE SUBSCRIPTIONS
# ============================================================================


@subscriptions_router.post("", response_model=SubscriptionResponse, status_code=201)
async def create_subscription(
    data: SubscriptionCreate,
    user: User = Depends(require_provider),
    service: SubscriptionService = Depends(get_subscription_service),
):
    """Open a revenue-share subscription for the calling provider"""
    return SubscriptionResponse.from_subscription(await service.create_subscription(user, data))


@subscriptions_router.get("/my-subscription", response_model=SubscriptionResponse)
async def my_subscription(
    user: User = Depends(require_provider),
    service: SubscriptionService = Depends(get_subscription_service),
):
    """The provider's latest subscription"""
    return SubscriptionResponse.from_subscription(service.get_my_subscription(user))


@subscriptions_router.get("", response_model=list[SubscriptionResponse])
async def list_subscriptions(
    _: User = Depends(require_admin),
    service: SubscriptionService = Depends(get_subscription_service),
):
    """All subscriptions, newest first"""
    return [SubscriptionResponse.from_subscription(s) for s in service.list_subscriptions()]


@subscriptions_router.get("/revenue/{provider_id}", response_model=RevenueResponse)
async def provider_revenue(
    provider_id: int,
    user: User = Depends(require_roles("admin", "provider")),
    service: SubscriptionService = Depends(get_subscription_service),
):
    """Completed-booking revenue and the platform's share"""
    return service.get_provider_revenue(provider_id, user)


@subscriptions_router.put("/{subscription_id}", response_model=SubscriptionResponse)
async def update_subscription(
    subscription_id: int,
    data: SubscriptionUpdate,
    _: User = Depends(require_admin),
    service: SubscriptionService = Depends(get_subscription_service),
):
    """Update a subscription record"""
    return SubscriptionResponse.from_subscription(await service.update_subscription(subscription_id, data))


@subscriptions_router.delete("/{subscription_id}", response_model=MessageResponse)
async def delete_subscription(
    subscription_id: int,
    _: User = Depends(require_admin),
    service: SubscriptionService = Depends(get_subscription_service),
):
    """Delete a subscription record"""
    return service.delete_subscription(subscription_id)


__all__ = ["plans_router", "subscriptions_router"]
