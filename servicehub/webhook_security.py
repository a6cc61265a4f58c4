"""
Webhook signature verification for Dodo Payments (Standard Webhooks scheme).

The signed message is "webhook-id.webhook-timestamp.raw-body", HMAC-SHA256
with the base64-decoded part of the "whsec_" secret, sent as one or more
space separated "v1,<base64 signature>" entries.
"""

import base64
import hashlib
import hmac
import logging
import time
from typing import Optional

from fastapi import HTTPException, Request

logger = logging.getLogger(__name__)

# Maximum age of webhook in seconds (5 minutes)
MAX_WEBHOOK_AGE_SECONDS = 300


def constant_time_compare(a: str, b: str) -> bool:
    if not a or not b:
        return False
    return hmac.compare_digest(a, b)


def extract_signing_key(secret: str) -> bytes:
    """Key bytes for a "whsec_BASE64" secret; plain secrets are used as UTF-8"""
    raw = secret[6:] if secret.startswith("whsec_") else secret
    try:
        return base64.b64decode(raw, validate=True)
    except ValueError:
        return secret.encode("utf-8")


def sign_payload(secret: str, webhook_id: str, timestamp: str, body: bytes) -> str:
    """Compute the v1 signature for a webhook delivery"""
    message = b".".join([webhook_id.encode("utf-8"), timestamp.encode("utf-8"), body])
    digest = hmac.new(extract_signing_key(secret), message, hashlib.sha256).digest()
    return base64.b64encode(digest).decode("utf-8")


def verify_timestamp(timestamp: Optional[str], max_age: int = MAX_WEBHOOK_AGE_SECONDS) -> bool:
    """Reject deliveries older (or further in the future) than max_age seconds"""
    try:
        age = abs(int(time.time()) - int(timestamp))
    except (TypeError, ValueError):
        logger.warning(f"🚫 Invalid webhook timestamp format: {timestamp}")
        return False
    if age > max_age:
        logger.warning(f"🚫 Webhook timestamp too old: {age}s (max: {max_age}s)")
        return False
    return True


async def verify_dodo_webhook(request: Request, secret: str) -> tuple[str, bytes]:
    """
    Verify a Dodo Payments webhook.

    Returns:
        Tuple of (webhook_id, raw_body)

    Raises:
        HTTPException(401): on any missing header, stale timestamp or bad signature
    """
    raw_body = await request.body()
    signature_header = request.headers.get("webhook-signature", "")
    timestamp = request.headers.get("webhook-timestamp", "")
    webhook_id = request.headers.get("webhook-id", "")

    logger.info(f"📥 Dodo webhook received: id={webhook_id or 'unknown'}")

    if not signature_header or not timestamp or not webhook_id:
        logger.error("❌ Missing webhook-signature/timestamp/id header")
        raise HTTPException(status_code=401, detail="Missing webhook signature headers")

    if not verify_timestamp(timestamp):
        raise HTTPException(status_code=401, detail="Webhook timestamp expired")

    expected = sign_payload(secret, webhook_id, timestamp, raw_body)
    received = [
        part.split(",", 1)[1]
        for part in signature_header.split()
        if part.startswith("v1,") and "," in part
    ]
    if not received:
        logger.error(f"❌ Invalid signature format: {signature_header[:20]}...")
        raise HTTPException(status_code=401, detail="Invalid signature format")

    if not any(constant_time_compare(expected, sig) for sig in received):
        logger.error(f"❌ Dodo webhook signature mismatch for {webhook_id}")
        raise HTTPException(status_code=401, detail="Invalid webhook signature")

    logger.info(f"✅ Dodo webhook signature verified: {webhook_id}")
    return webhook_id, raw_body
