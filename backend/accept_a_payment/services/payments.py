"""Payment intent creation and retrieval against the Stripe API."""

import logging
from typing import Any

import stripe

from accept_a_payment.core.config import Settings
from accept_a_payment.schemas.payments import CreatePaymentIntentRequest

logger = logging.getLogger(__name__)

APP_NAME = "accept-a-payment"
APP_VERSION = "0.0.2"

# Fixed demo shipping address used for tax calculations
TAX_SHIPPING_ADDRESS = {
    "line1": "10709 Cleary Blvd",
    "city": "Plantation",
    "state": "FL",
    "postal_code": "33322",
    "country": "US",
}


class PaymentServiceError(Exception):
    """Raised when a Stripe call made on behalf of a client fails."""

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code


def build_payment_intent_params(
    payment_method_type: str,
    currency: str,
    *,
    amount: int,
    payment_method_options: dict[str, Any] | None = None,
    tax_calculation_id: str | None = None,
) -> dict[str, Any]:
    """Assemble PaymentIntent create params for one payment method type.

    ``link`` is offered together with ``card``. ``acss_debit`` and ``konbini``
    get default payment_method_options, which caller-supplied options replace.
    ``customer_balance`` intents are confirmed on creation; the caller still
    has to attach a customer.
    """
    params: dict[str, Any] = {
        "payment_method_types": (
            ["link", "card"] if payment_method_type == "link" else [payment_method_type]
        ),
        "amount": amount,
        "currency": currency,
    }
    if tax_calculation_id:
        params["metadata"] = {"tax_calculation": tax_calculation_id}

    if payment_method_type == "acss_debit":
        # Needed to create the mandate
        params["payment_method_options"] = {
            "acss_debit": {
                "mandate_options": {
                    "payment_schedule": "sporadic",
                    "transaction_type": "personal",
                },
            },
        }
    elif payment_method_type == "konbini":
        params["payment_method_options"] = {
            "konbini": {
                "product_description": "Tシャツ",
                "expires_after_days": 3,
            },
        }
    elif payment_method_type == "customer_balance":
        params["payment_method_data"] = {"type": "customer_balance"}
        params["confirm"] = True

    if payment_method_options:
        params["payment_method_options"] = payment_method_options

    return params


def set_app_info(settings: Settings) -> None:
    # Process-wide in the stripe library; call once at startup
    stripe.set_app_info(
        APP_NAME,
        version=APP_VERSION,
        url=f"{settings.domain}/plugins/stripe/webhook",
    )


def make_stripe_client(settings: Settings) -> stripe.StripeClient:
    return stripe.StripeClient(
        settings.stripe_secret_key, stripe_version=settings.stripe_api_version
    )


def to_plain(value: Any) -> Any:
    """Turn a StripeObject into plain dicts for JSON responses."""
    to_dict = getattr(value, "to_dict", None)
    return to_dict() if callable(to_dict) else value


class PaymentService:
    def __init__(self, client: stripe.StripeClient, settings: Settings) -> None:
        self._client = client
        self._settings = settings

    def calculate_tax(self, amount: int, currency: str) -> Any:
        try:
            return self._client.tax.calculations.create(
                params={
                    "currency": currency,
                    "customer_details": {
                        "address": TAX_SHIPPING_ADDRESS,
                        "address_source": "shipping",
                    },
                    "line_items": [
                        {
                            "amount": amount,
                            "reference": "ProductRef",
                            "tax_behavior": "exclusive",
                            "tax_code": "txcd_30011000",
                        }
                    ],
                }
            )
        except stripe.StripeError as e:
            raise _service_error("Tax calculation failed", e) from e

    def create_customer(self) -> str:
        try:
            customer = self._client.customers.create()
        except stripe.StripeError as e:
            raise _service_error("Customer creation failed", e) from e
        logger.info(f"Created customer {customer.id}")
        return customer.id

    def create_payment_intent(self, request: CreatePaymentIntentRequest) -> Any:
        amount = self._settings.order_amount
        tax_calculation_id = None
        if self._settings.calculate_tax:
            calculation = self.calculate_tax(amount, request.currency)
            amount = calculation.amount_total
            tax_calculation_id = calculation.id

        params = build_payment_intent_params(
            request.payment_method_type,
            request.currency,
            amount=amount,
            payment_method_options=request.payment_method_options,
            tax_calculation_id=tax_calculation_id,
        )
        if request.payment_method_type == "customer_balance":
            params["customer"] = request.customer_id or self.create_customer()

        try:
            intent = self._client.payment_intents.create(params=params)
        except stripe.StripeError as e:
            raise _service_error("Payment intent creation failed", e) from e
        logger.info(
            f"Created payment intent {intent.id} "
            f"({request.payment_method_type}, {amount} {request.currency})"
        )
        return intent

    def retrieve_payment_intent(self, payment_intent_id: str) -> Any:
        try:
            return self._client.payment_intents.retrieve(
                payment_intent_id, params={"expand": ["payment_method"]}
            )
        except stripe.StripeError as e:
            raise _service_error("Payment intent retrieval failed", e) from e


def _service_error(action: str, exc: stripe.StripeError) -> PaymentServiceError:
    code = getattr(exc, "code", None)
    logger.error(f"{action}: {exc} (code: {code})")
    return PaymentServiceError(exc.user_message or str(exc), code=code)
