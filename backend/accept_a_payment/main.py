import logging
import re
from typing import Any
from urllib.parse import urlencode

import uvicorn
from fastapi import Depends, FastAPI, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse
from pydantic import ValidationError

from accept_a_payment.core.config import Settings, get_settings
from accept_a_payment.middleware.body_size import BodySizeLimitMiddleware
from accept_a_payment.schemas.payments import (
    ConfigResponse,
    CreatePaymentIntentRequest,
    CreatePaymentIntentResponse,
    ErrorResponse,
)
from accept_a_payment.schemas.webhooks import WebhookAck, WebhookEnvelope
from accept_a_payment.services import stripe_verify
from accept_a_payment.services.payments import (
    PaymentService,
    PaymentServiceError,
    make_stripe_client,
    set_app_info,
    to_plain,
)
from accept_a_payment.services.webhooks import WebhookReceiver

app = FastAPI(
    title="Accept a Payment",
    description="Demo server for Stripe payment intents and webhooks",
    version="0.0.2",
)

settings = get_settings()

# Add body size middleware
app.add_middleware(BodySizeLimitMiddleware, max_size=settings.max_body_size)

# Add CORS middleware using settings.allowed_origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins.split(","),
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
)

logger = logging.getLogger(__name__)


@app.on_event("startup")
async def startup():
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    set_app_info(settings)
    if not settings.webhook_signing_enabled:
        logger.warning(
            "STRIPE_WEBHOOK_SECRET is not set; webhook events will be accepted "
            "without signature verification"
        )


# ---------- dependencies ----------
def get_payment_service(settings: Settings = Depends(get_settings)) -> PaymentService:
    return PaymentService(make_stripe_client(settings), settings)


def get_webhook_receiver(settings: Settings = Depends(get_settings)) -> WebhookReceiver:
    return WebhookReceiver(
        secret=settings.stripe_webhook_secret,
        tolerance=settings.webhook_tolerance,
    )


def _error_response(exc: PaymentServiceError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": {"message": exc.message}},
    )


FORM_KEY = re.compile(r"^([^\[\]]+)((?:\[[^\[\]]+\])*)$")


def nest_form_fields(items) -> dict[str, Any]:
    """Expand bracketed form keys, so `a[b][c]=1` becomes `{"a": {"b": {"c": "1"}}}`."""
    nested: dict[str, Any] = {}
    for key, value in items:
        match = FORM_KEY.match(key)
        if not match:
            raise HTTPException(status_code=422, detail=f"Malformed form field: {key}")
        path = [match.group(1)] + re.findall(r"\[([^\[\]]+)\]", match.group(2))
        node = nested
        for part in path[:-1]:
            node = node.setdefault(part, {})
            if not isinstance(node, dict):
                raise HTTPException(
                    status_code=422, detail=f"Conflicting form field: {key}"
                )
        if isinstance(node.get(path[-1]), dict):
            raise HTTPException(status_code=422, detail=f"Conflicting form field: {key}")
        node[path[-1]] = value
    return nested


async def _read_body(request: Request) -> dict[str, Any]:
    content_type = request.headers.get("content-type", "")
    if content_type.startswith("application/x-www-form-urlencoded"):
        form = await request.form()
        return nest_form_fields(form.multi_items())
    try:
        body = await request.json()
    except ValueError:
        # Also covers bodies that are not valid UTF-8
        raise HTTPException(status_code=400, detail="Invalid JSON payload")
    if not isinstance(body, dict):
        raise HTTPException(status_code=400, detail="Invalid JSON payload")
    return body


@app.get("/health", include_in_schema=False)
async def health(settings: Settings = Depends(get_settings)):
    return {"status": "ok", "webhook_signing": settings.webhook_signing_enabled}


# ---------- config ----------
@app.get("/config", response_model=ConfigResponse)
def config(settings: Settings = Depends(get_settings)):
    return {"publishableKey": settings.stripe_publishable_key}


# ---------- webhook ----------
@app.post(
    "/webhook",
    response_model=WebhookAck,
    responses={400: {"description": "Signature verification failed"}},
)
async def stripe_webhook(
    request: Request,
    receiver: WebhookReceiver = Depends(get_webhook_receiver),
):
    # Signature is computed over the exact bytes received, so keep them as-is
    raw = await request.body()

    parsed = None
    if not receiver.verifies_signatures:
        try:
            parsed = WebhookEnvelope.model_validate_json(raw).model_dump()
        except ValidationError:
            raise HTTPException(status_code=400, detail="Invalid JSON payload")

    try:
        result = receiver.receive(
            raw_body=raw,
            signature=request.headers.get("Stripe-Signature"),
            parsed_body=parsed,
        )
    except stripe_verify.WebhookVerificationError as e:
        logger.warning(f"Webhook signature verification failed: {e}")
        raise HTTPException(status_code=400, detail=str(e))

    logger.info(
        f"Webhook {result.event_type} received "
        f"(verified={result.verified}, handled={result.handled})"
    )
    return WebhookAck()


# ---------- payment intents ----------
@app.post(
    "/create-payment-intent",
    response_model=CreatePaymentIntentResponse,
    responses={400: {"model": ErrorResponse}},
)
async def create_payment_intent(
    request: Request,
    payments: PaymentService = Depends(get_payment_service),
):
    body = await _read_body(request)
    try:
        data = CreatePaymentIntentRequest.model_validate(body)
    except ValidationError as ve:
        raise HTTPException(status_code=422, detail=ve.errors(include_url=False))

    try:
        intent = payments.create_payment_intent(data)
    except PaymentServiceError as e:
        return _error_response(e)

    # Send PaymentIntent details to client
    return {
        "clientSecret": intent.client_secret,
        "nextAction": to_plain(intent.next_action),
    }


@app.get("/payment/next", responses={400: {"model": ErrorResponse}})
def payment_next(
    payment_intent: str,
    payments: PaymentService = Depends(get_payment_service),
):
    try:
        intent = payments.retrieve_payment_intent(payment_intent)
    except PaymentServiceError as e:
        return _error_response(e)

    query = urlencode({"payment_intent_client_secret": intent.client_secret})
    return RedirectResponse(f"/success?{query}", status_code=status.HTTP_302_FOUND)


@app.get("/success")
def success():
    return "SUCCESS!"


def run() -> None:
    uvicorn.run("accept_a_payment.main:app", host="0.0.0.0", port=4242)
