import logging
import time
from typing import Any

import stripe

logger = logging.getLogger(__name__)


class WebhookVerificationError(Exception):
    pass


def verify(
    raw_body: bytes, header: str | None, secret: str, tolerance: int = 300
) -> dict[str, Any]:
    """
    Check the Stripe-Signature header against the exact bytes received and
    return the decoded event. Raise WebhookVerificationError if either fails.
    """
    if not header:
        raise WebhookVerificationError("Missing Stripe signature")

    if raw_body.lstrip()[:1] != b"{":
        raise WebhookVerificationError("Payload is not a JSON object")

    try:
        event = stripe.Webhook.construct_event(raw_body, header, secret, tolerance)
    except stripe.SignatureVerificationError as e:
        logger.warning(f"Stripe signature verification failed: {e}")
        raise WebhookVerificationError("Invalid Stripe signature") from e
    except ValueError as e:
        # Undecodable bytes or a signed body that is not valid JSON
        raise WebhookVerificationError("Payload is not valid JSON") from e
    return event.to_dict()


def make_signature_header(
    raw_body: bytes, secret: str, timestamp: int | None = None
) -> str:
    """Build a Stripe-Signature header for a body, as Stripe would send it."""
    if timestamp is None:
        timestamp = int(time.time())
    signature = stripe.WebhookSignature._compute_signature(
        f"{timestamp}.{raw_body.decode('utf-8')}", secret
    )
    return f"t={timestamp},v1={signature}"
