import json
import time
from datetime import datetime, timedelta

import pytest

from conftest import auth_headers, event_names, make_booking, make_service, make_user
from servicehub import cache as cache_module
from servicehub import webhook_security
from servicehub.domain.billing import router as billing_router
from servicehub.domain.billing import subscription_service
from servicehub.models import Plan, Subscription
from servicehub.plan_limits import (
    can_accept_booking,
    check_and_reset_booking_counter,
    get_booking_limit,
    subscription_status_message,
)

WEBHOOK_SECRET = "whsec_dGVzdC13ZWJob29rLXNlY3JldA=="


class FakePayments:
    """Stands in for the Dodo Payments client"""

    def __init__(self, subscription=None, available=True):
        self.subscription = subscription or {}
        self.available = available
        self.cancelled = []

    def is_available(self):
        return self.available

    async def create_checkout_session(self, product_id, customer_email, customer_name, return_url, metadata):
        return {"url": f"https://checkout.test/{product_id}", "sessionId": "cs_123"}

    async def get_subscription(self, subscription_id):
        return self.subscription

    async def cancel_subscription(self, subscription_id):
        self.cancelled.append(subscription_id)

    async def create_customer_portal(self, customer_id):
        return f"https://portal.test/{customer_id}"


@pytest.fixture
def pro_plan(db):
    plan = Plan(name="Pro", price=499.0, currency="inr", features=["20 bookings"], booking_limit=20, product_id="prod_pro")
    db.add(plan)
    db.commit()
    db.refresh(plan)
    return plan


@pytest.fixture
def payments(monkeypatch):
    fake = FakePayments()
    monkeypatch.setattr(subscription_service, "dodo_service", fake)
    return fake


def plan_body(**overrides) -> dict:
    body = {"name": "elite", "price": 999, "features": ["50 bookings", " "], "bookingLimit": 50}
    body.update(overrides)
    return body


class TestPlans:
    def test_admin_creates_plan(self, client, admin):
        response = client.post("/api/plans", headers=auth_headers(admin), json=plan_body())
        assert response.status_code == 201
        body = response.json()
        assert body["name"] == "Elite"
        assert body["features"] == ["50 bookings"]
        assert body["currency"] == "inr"

    def test_only_pro_or_elite(self, client, admin):
        response = client.post("/api/plans", headers=auth_headers(admin), json=plan_body(name="Gold"))
        assert response.status_code == 400
        assert response.json()["detail"] == "Plan name must be either Pro or Elite"

    def test_duplicate_name(self, client, admin, pro_plan):
        response = client.post("/api/plans", headers=auth_headers(admin), json=plan_body(name="pro"))
        assert response.status_code == 400

    def test_features_required(self, client, admin):
        response = client.post("/api/plans", headers=auth_headers(admin), json=plan_body(features=[]))
        assert response.status_code == 422

    def test_providers_can_list(self, client, provider, pro_plan):
        response = client.get("/api/plans", headers=auth_headers(provider))
        assert [p["name"] for p in response.json()] == ["Pro"]

    def test_customers_cannot_list(self, client, customer):
        assert client.get("/api/plans", headers=auth_headers(customer)).status_code == 403

    def test_update_plan(self, client, admin, pro_plan):
        response = client.put(
            f"/api/plans/{pro_plan.id}",
            headers=auth_headers(admin),
            json=plan_body(name="Pro", bookingLimit=25),
        )
        assert response.status_code == 200
        assert response.json()["bookingLimit"] == 25

    def test_cannot_delete_plan_in_use(self, client, db, admin, pro_plan):
        make_user(db, "provider", subscription_tier="pro", subscription_status="active", dodo_subscription_id="sub_1")
        response = client.delete(f"/api/plans/{pro_plan.id}", headers=auth_headers(admin))
        assert response.status_code == 400
        assert response.json()["detail"] == "Cannot delete plan. 1 provider(s) are currently subscribed."

    def test_delete_plan(self, client, db, admin, pro_plan):
        response = client.delete(f"/api/plans/{pro_plan.id}", headers=auth_headers(admin))
        assert response.json() == {"message": "Plan deleted successfully"}
        assert db.query(Plan).count() == 0


class TestPlanLimits:
    def test_free_tier_limit(self, db, provider):
        assert get_booking_limit(db, provider) == 5

    def test_paid_tier_uses_plan(self, db, provider, pro_plan):
        provider.subscription_tier = "pro"
        assert get_booking_limit(db, provider) == 20

    def test_missing_plan_falls_back_to_free(self, db, provider):
        provider.subscription_tier = "elite"
        assert get_booking_limit(db, provider) == 5

    def test_counter_resets_after_cycle(self, db, provider):
        provider.current_booking_count = 5
        provider.subscription_start_date = datetime.utcnow() - timedelta(days=31)
        provider.booking_reset_date = datetime.utcnow() - timedelta(days=1)
        db.commit()

        check_and_reset_booking_counter(provider, db)

        assert provider.current_booking_count == 0
        assert provider.booking_reset_date > datetime.utcnow()

    def test_can_accept_booking(self, db, provider):
        provider.booking_reset_date = datetime.utcnow() + timedelta(days=5)
        provider.current_booking_count = 4
        assert can_accept_booking(provider, db) == (True, None)
        provider.current_booking_count = 5
        allowed, message = can_accept_booking(provider, db)
        assert not allowed
        assert "limit of 5" in message

    def test_expiry_warning(self, provider):
        now = datetime(2030, 1, 29, 12, 0)
        provider.subscription_tier = "pro"
        provider.subscription_start_date = datetime(2030, 1, 1, 12, 0)
        assert subscription_status_message(provider, now) == "Subscription expires in 2 days."

    def test_past_due_message(self, provider):
        provider.subscription_status = "past_due"
        assert subscription_status_message(provider) == "Payment required to restore active status."


class TestRevenueShare:
    def test_provider_opens_subscription(self, client, provider, emitted):
        response = client.post(
            "/api/subscriptions", headers=auth_headers(provider), json={"planType": "premium", "subscriptionFee": 20}
        )
        assert response.status_code == 201
        body = response.json()
        assert body["planType"] == "premium"
        assert body["revenuePercentage"] == 0.1
        assert body["paymentStatus"] == "pending"
        assert "subscriptionCreated" in event_names(emitted)

        mine = client.get("/api/subscriptions/my-subscription", headers=auth_headers(provider))
        assert mine.json()["_id"] == body["_id"]

    def test_no_subscription_yet(self, client, provider):
        response = client.get("/api/subscriptions/my-subscription", headers=auth_headers(provider))
        assert response.status_code == 404

    def test_revenue_share(self, client, db, customer, provider, admin):
        service = make_service(db, admin, price=200.0)
        make_booking(db, customer, service, provider_id=provider.id, status="completed")
        make_booking(db, customer, service, provider_id=provider.id, status="pending")

        response = client.get(f"/api/subscriptions/revenue/{provider.id}", headers=auth_headers(provider))

        assert response.json() == {
            "providerId": provider.id,
            "totalRevenue": 200.0,
            "revenuePercentage": 0.1,
            "platformShare": 20.0,
        }

    def test_other_provider_revenue_forbidden(self, client, db, provider):
        other = make_user(db, "provider")
        response = client.get(f"/api/subscriptions/revenue/{other.id}", headers=auth_headers(provider))
        assert response.status_code == 403

    def test_admin_updates_and_deletes(self, client, db, admin, provider):
        created = client.post("/api/subscriptions", headers=auth_headers(provider), json={}).json()

        updated = client.put(
            f"/api/subscriptions/{created['_id']}",
            headers=auth_headers(admin),
            json={"paymentStatus": "completed"},
        )
        assert updated.json()["paymentStatus"] == "completed"

        deleted = client.delete(f"/api/subscriptions/{created['_id']}", headers=auth_headers(admin))
        assert deleted.status_code == 200
        assert db.query(Subscription).count() == 0


class TestCheckout:
    def test_checkout_session(self, client, provider, pro_plan, payments):
        response = client.post(
            "/api/subscriptions/create-checkout-session",
            headers=auth_headers(provider),
            json={"planId": pro_plan.id},
        )
        assert response.status_code == 200
        assert response.json()["url"] == "https://checkout.test/prod_pro"

    def test_checkout_unconfigured(self, client, provider, pro_plan, payments):
        payments.available = False
        response = client.post(
            "/api/subscriptions/create-checkout-session",
            headers=auth_headers(provider),
            json={"planId": pro_plan.id},
        )
        assert response.status_code == 503

    def test_verify_session_activates_tier(self, client, db, provider, pro_plan, payments):
        payments.subscription = {
            "status": "active",
            "product_id": "prod_pro",
            "subscription_id": "sub_1",
            "customer": {"customer_id": "cus_1"},
            "metadata": {"user_id": str(provider.id)},
        }

        response = client.post(
            "/api/subscriptions/verify-session",
            headers=auth_headers(provider),
            json={"sessionId": "sub_1"},
        )

        assert response.status_code == 200
        assert response.json()["user"]["subscriptionTier"] == "pro"
        db.refresh(provider)
        assert provider.dodo_subscription_id == "sub_1"
        assert provider.dodo_customer_id == "cus_1"
        assert provider.current_booking_count == 0

    def test_verify_session_of_another_customer(self, client, db, provider, pro_plan, payments):
        other = make_user(db, "provider", email="other@example.com")
        payments.subscription = {
            "status": "active",
            "product_id": "prod_pro",
            "subscription_id": "sub_other",
            "metadata": {"user_id": str(other.id)},
            "customer": {"customer_id": "cus_other"},
        }

        response = client.post(
            "/api/subscriptions/verify-session", headers=auth_headers(provider), json={"sessionId": "sub_other"}
        )

        assert response.status_code == 403
        db.refresh(provider)
        assert provider.subscription_tier == "free"
        assert provider.dodo_customer_id is None
        assert provider.dodo_subscription_id is None

    def test_verify_inactive_session(self, client, provider, pro_plan, payments):
        payments.subscription = {"status": "pending", "product_id": "prod_pro"}
        response = client.post(
            "/api/subscriptions/verify-session", headers=auth_headers(provider), json={"sessionId": "sub_1"}
        )
        assert response.status_code == 400

    def test_portal_needs_customer_record(self, client, db, provider, payments):
        assert client.post("/api/subscriptions/create-portal-session", headers=auth_headers(provider)).status_code == 400

        provider.dodo_customer_id = "cus_9"
        db.commit()
        response = client.post("/api/subscriptions/create-portal-session", headers=auth_headers(provider))
        assert response.json() == {"url": "https://portal.test/cus_9"}


class TestCancellation:
    def test_provider_cancels_paid_tier(self, client, db, provider, pro_plan, payments, emitted):
        provider.subscription_tier = "pro"
        provider.subscription_status = "active"
        provider.dodo_subscription_id = "sub_42"
        provider.current_booking_count = 7
        db.commit()

        response = client.post("/api/users/cancel-subscription", headers=auth_headers(provider))

        assert response.status_code == 200
        assert response.json()["user"]["subscriptionTier"] == "free"
        assert response.json()["user"]["subscriptionStatus"] == "canceled"
        assert payments.cancelled == ["sub_42"]
        db.refresh(provider)
        assert provider.current_booking_count == 0
        assert provider.dodo_subscription_id is None
        assert "subscriptionUpdated" in event_names(emitted)

    def test_nothing_to_cancel(self, client, provider, payments):
        response = client.post("/api/users/cancel-subscription", headers=auth_headers(provider))
        assert response.status_code == 400
        assert response.json()["detail"] == "No active subscription to cancel"

    def test_admin_cancels_for_provider(self, client, db, admin, provider, payments):
        provider.subscription_tier = "pro"
        db.commit()
        response = client.post(
            f"/api/admin/providers/{provider.id}/cancel-subscription", headers=auth_headers(admin)
        )
        assert response.status_code == 200
        assert response.json()["message"] == "Subscription cancelled successfully"

    def test_subscription_details(self, client, provider):
        response = client.get("/api/users/subscription-details", headers=auth_headers(provider))
        assert response.json()["bookingLimit"] == 5
        assert response.json()["subscriptionTier"] == "free"


class TestWebhook:
    @pytest.fixture(autouse=True)
    def configured(self, monkeypatch):
        monkeypatch.setattr(billing_router, "DODO_PAYMENTS_WEBHOOK_SECRET", WEBHOOK_SECRET)
        monkeypatch.setattr(billing_router, "is_webhook_processed", lambda webhook_id: False)

    def post_event(self, client, event, webhook_id="wh_1", secret=WEBHOOK_SECRET, timestamp=None):
        body = json.dumps(event).encode("utf-8")
        timestamp = timestamp or str(int(time.time()))
        signature = webhook_security.sign_payload(secret, webhook_id, timestamp, body)
        return client.post(
            "/api/subscriptions/webhook",
            content=body,
            headers={
                "webhook-id": webhook_id,
                "webhook-timestamp": timestamp,
                "webhook-signature": f"v1,{signature}",
                "content-type": "application/json",
            },
        )

    def test_activation(self, client, db, provider, pro_plan, emitted):
        event = {
            "type": "subscription.active",
            "data": {
                "subscription_id": "sub_7",
                "product_id": "prod_pro",
                "metadata": {"user_id": str(provider.id)},
            },
        }

        response = self.post_event(client, event)

        assert response.json() == {"status": "processed", "type": "subscription.active", "webhookId": "wh_1"}
        db.refresh(provider)
        assert provider.subscription_tier == "pro"
        assert provider.subscription_status == "active"
        assert provider.dodo_subscription_id == "sub_7"
        assert "subscriptionUpdated" in event_names(emitted)

    def test_payment_failure_marks_past_due(self, client, db, provider):
        provider.dodo_subscription_id = "sub_8"
        db.commit()
        response = self.post_event(client, {"type": "subscription.on_hold", "data": {"subscription_id": "sub_8"}})
        assert response.json()["status"] == "processed"
        db.refresh(provider)
        assert provider.subscription_status == "past_due"

    def test_cancellation_by_email(self, client, db, provider):
        provider.subscription_tier = "pro"
        db.commit()
        event = {"type": "subscription.cancelled", "data": {"customer": {"email": provider.email.upper()}}}
        assert self.post_event(client, event).json()["status"] == "processed"
        db.refresh(provider)
        assert provider.subscription_tier == "free"

    def test_unknown_event_ignored(self, client):
        assert self.post_event(client, {"type": "refund.succeeded", "data": {}}).json()["status"] == "ignored"

    def test_unknown_user(self, client):
        event = {"type": "subscription.active", "data": {"metadata": {"user_id": "9999"}}}
        assert self.post_event(client, event).json()["status"] == "user_not_found"

    def test_unknown_plan(self, client, provider):
        event = {"type": "subscription.active", "data": {"product_id": "prod_x", "metadata": {"user_id": str(provider.id)}}}
        assert self.post_event(client, event).json()["status"] == "plan_not_found"

    def test_bad_signature(self, client):
        response = self.post_event(client, {"type": "subscription.active"}, secret="whsec_b3RoZXItc2VjcmV0")
        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid webhook signature"

    def test_stale_timestamp(self, client):
        stale = str(int(time.time()) - 3600)
        response = self.post_event(client, {"type": "subscription.active"}, timestamp=stale)
        assert response.status_code == 401

    def test_missing_headers(self, client):
        response = client.post("/api/subscriptions/webhook", content=b"{}")
        assert response.status_code == 401

    def test_replay_is_skipped(self, client, monkeypatch):
        monkeypatch.setattr(billing_router, "is_webhook_processed", lambda webhook_id: True)
        response = self.post_event(client, {"type": "subscription.active"})
        assert response.json() == {"status": "already_processed", "webhookId": "wh_1"}

    def test_redelivery_is_processed_once(self, client, provider, pro_plan, monkeypatch, redis_store, emitted):
        monkeypatch.setattr(billing_router, "is_webhook_processed", cache_module.is_webhook_processed)
        event = {
            "type": "subscription.active",
            "data": {"subscription_id": "sub_7", "product_id": "prod_pro", "metadata": {"user_id": str(provider.id)}},
        }

        first = self.post_event(client, event, webhook_id="wh_twice")
        assert first.json()["status"] == "processed"
        assert "servicehub:webhook_processed:wh_twice" in redis_store
        delivered = event_names(emitted).count("subscriptionUpdated")
        assert delivered > 0

        second = self.post_event(client, event, webhook_id="wh_twice")
        assert second.json() == {"status": "already_processed", "webhookId": "wh_twice"}
        assert event_names(emitted).count("subscriptionUpdated") == delivered

    def test_unconfigured_secret(self, client, monkeypatch):
        monkeypatch.setattr(billing_router, "DODO_PAYMENTS_WEBHOOK_SECRET", None)
        assert self.post_event(client, {"type": "x"}).status_code == 500
