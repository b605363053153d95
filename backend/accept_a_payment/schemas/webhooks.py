from typing import Any

from pydantic import BaseModel, Field


class WebhookEnvelope(BaseModel):
    """Unsigned event body: only ``type`` and ``data`` are read."""

    type: str | None = Field(None, description="Event type, e.g. payment_intent.succeeded")
    data: Any = None


class WebhookAck(BaseModel):
    status: str = "received"
