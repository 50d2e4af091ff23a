from __future__ import annotations

import hmac
import logging


logger = logging.getLogger(__name__)


def verify_subscription(mode: str | None, token: str | None, challenge: str | None, expected_token: str) -> str | None:
    """Return the challenge to echo back, or None if the subscription request must be refused."""
    if mode != "subscribe" or not token or not expected_token:
        return None
    if hmac.compare_digest(token.encode("utf-8"), expected_token.encode("utf-8")):
        return challenge or ""
    return None


def verify_post_signature(body: bytes, signature_header: str | None, app_secret: str | None) -> bool:
    """Check X-Hub-Signature-256. Deliveries are accepted unsigned when no app secret is configured."""
    if not app_secret:
        return True

    if not signature_header:
        logger.warning("Missing signature header on webhook delivery")
        return False

    try:
        algo, signature = signature_header.split("=", 1)
    except ValueError:
        return False

    if algo.lower() != "sha256":
        return False

    expected = hmac.new(app_secret.encode("utf-8"), body, "sha256").hexdigest()
    return hmac.compare_digest(expected.encode("ascii"), signature.encode("utf-8"))
