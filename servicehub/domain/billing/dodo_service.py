"""Dodo Payments service - provider plan checkout, portal and cancellation"""

import logging
from typing import Any, Optional

from dodopayments import AsyncDodoPayments  # type: ignore

from ...config import DODO_PAYMENTS_API_KEY, DODO_PAYMENTS_ENVIRONMENT

logger = logging.getLogger(__name__)


def normalize_dodo_environment(env: Optional[str]) -> str:
    """Normalize Dodo environment value to expected format"""
    value = (env or "test_mode").strip().lower()
    if value in {"live", "production", "prod", "live_mode"}:
        return "live_mode"
    if value not in {"test", "sandbox", "test_mode"}:
        logger.warning(f"Unknown DODO environment '{env}', defaulting to test_mode")
    return "test_mode"


def read_field(obj: Any, name: str) -> Any:
    """SDK responses are models; webhook payloads are dicts"""
    if isinstance(obj, dict):
        return obj.get(name)
    return getattr(obj, name, None)


class PaymentServiceUnavailable(Exception):
    """Raised when the Dodo client is not configured"""


class DodoPaymentsService:
    """Service for Dodo Payments API operations"""

    def __init__(self):
        self.environment = normalize_dodo_environment(DODO_PAYMENTS_ENVIRONMENT)
        self.client = None

        if not DODO_PAYMENTS_API_KEY:
            logger.warning("DODO_PAYMENTS_API_KEY not set; subscription checkout is disabled")
            return
        try:
            self.client = AsyncDodoPayments(bearer_token=DODO_PAYMENTS_API_KEY, environment=self.environment)
            logger.info(f"Dodo Payments client initialized (env={self.environment})")
        except Exception as e:
            logger.error(f"Failed to initialize Dodo client (env={self.environment}): {e}")

    def is_available(self) -> bool:
        return self.client is not None

    def _require_client(self):
        if not self.client:
            raise PaymentServiceUnavailable("Dodo Payments client not initialized")
        return self.client

    async def create_checkout_session(
        self, product_id: str, customer_email: str, customer_name: str, return_url: str, metadata: dict
    ) -> dict:
        """Create a hosted checkout; returns {"url", "sessionId"}"""
        client = self._require_client()
        session = await client.checkout_sessions.create(
            product_cart=[{"product_id": product_id, "quantity": 1}],
            customer={"email": customer_email, "name": customer_name},
            return_url=return_url,
            metadata=metadata,
        )
        return {"url": read_field(session, "checkout_url"), "sessionId": read_field(session, "session_id")}

    async def get_subscription(self, subscription_id: str):
        client = self._require_client()
        return await client.subscriptions.retrieve(subscription_id)

    async def cancel_subscription(self, subscription_id: str):
        client = self._require_client()
        logger.info(f"🛑 Cancelling Dodo subscription {subscription_id}")
        return await client.subscriptions.update(subscription_id, status="cancelled")

    async def create_customer_portal(self, customer_id: str) -> str:
        client = self._require_client()
        portal = await client.customers.customer_portal.create(customer_id)
        return read_field(portal, "link")


# Singleton instance
dodo_service = DodoPaymentsService()
