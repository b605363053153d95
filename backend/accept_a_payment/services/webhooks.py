"""Stripe webhook receiver.

Authenticates an inbound event, then dispatches it on its type to a
fulfillment collaborator. With no signing secret configured the parsed
request body is trusted as-is.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol

from accept_a_payment.services import stripe_verify

logger = logging.getLogger(__name__)


class EventType(str, Enum):
    """Event types this server acts on. Everything else is acknowledged and ignored."""

    PAYMENT_INTENT_SUCCEEDED = "payment_intent.succeeded"
    PAYMENT_INTENT_PAYMENT_FAILED = "payment_intent.payment_failed"

    @classmethod
    def from_tag(cls, tag: Any) -> "EventType | None":
        try:
            return cls(tag)
        except ValueError:
            return None


class Fulfillment(Protocol):
    def payment_succeeded(self, data: Any) -> None: ...

    def payment_failed(self, data: Any) -> None: ...


class LoggingFulfillment:
    """Default fulfillment: log only. Order capture and receipts would go here."""

    def payment_succeeded(self, data: Any) -> None:
        logger.info("Payment captured! (payment_intent=%s)", _object_id(data))

    def payment_failed(self, data: Any) -> None:
        logger.warning("Payment failed. (payment_intent=%s)", _object_id(data))


def _object_id(data: Any) -> str | None:
    if isinstance(data, dict) and isinstance(data.get("object"), dict):
        return data["object"].get("id")
    return None


@dataclass(frozen=True)
class WebhookResult:
    event_type: str | None
    handled: bool
    verified: bool


class WebhookReceiver:
    def __init__(
        self,
        secret: str | None = None,
        fulfillment: Fulfillment | None = None,
        tolerance: int = 300,
    ):
        self.secret = secret
        self.fulfillment = fulfillment or LoggingFulfillment()
        self.tolerance = tolerance

    @property
    def verifies_signatures(self) -> bool:
        return bool(self.secret)

    def receive(
        self,
        raw_body: bytes,
        signature: str | None,
        parsed_body: dict[str, Any] | None = None,
    ) -> WebhookResult:
        """Authenticate and dispatch one delivery.

        Raises stripe_verify.WebhookVerificationError when a secret is
        configured and the signature does not match ``raw_body``; in that case
        nothing is dispatched. Exceptions from the fulfillment collaborator
        propagate so the caller can answer with a non-2xx status and Stripe
        redelivers.
        """
        if self.verifies_signatures:
            event = stripe_verify.verify(
                raw_body=raw_body,
                header=signature,
                secret=self.secret,
                tolerance=self.tolerance,
            )
        else:
            event = parsed_body or {}

        event_type = event.get("type")
        handled = self.dispatch(event_type, event.get("data"))
        return WebhookResult(
            event_type=event_type, handled=handled, verified=self.verifies_signatures
        )

    def dispatch(self, event_type: Any, data: Any) -> bool:
        kind = EventType.from_tag(event_type)
        if kind is EventType.PAYMENT_INTENT_SUCCEEDED:
            # Funds have been captured
            self.fulfillment.payment_succeeded(data)
        elif kind is EventType.PAYMENT_INTENT_PAYMENT_FAILED:
            self.fulfillment.payment_failed(data)
        else:
            logger.debug("Ignoring unhandled event type %r", event_type)
            return False
        return True
