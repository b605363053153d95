import os
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

# Set test environment variables
os.environ.update(
    {
        "STRIPE_SECRET_KEY": "sk_test_123",
        "STRIPE_PUBLISHABLE_KEY": "pk_test_123",
    }
)
os.environ.pop("STRIPE_WEBHOOK_SECRET", None)

# Import app modules after setting environment variables
from accept_a_payment.core.config import Settings, get_settings
from accept_a_payment.main import app, get_payment_service, get_webhook_receiver
from accept_a_payment.services.payments import PaymentService
from accept_a_payment.services.webhooks import WebhookReceiver

WEBHOOK_SECRET = "whsec_test"


class RecordingFulfillment:
    def __init__(self):
        self.succeeded = []
        self.failed = []

    def payment_succeeded(self, data):
        self.succeeded.append(data)

    def payment_failed(self, data):
        self.failed.append(data)


@pytest.fixture
def webhook_secret():
    return WEBHOOK_SECRET


@pytest.fixture
def settings(webhook_secret):
    return Settings(
        stripe_secret_key="sk_test_123",
        stripe_publishable_key="pk_test_123",
        stripe_webhook_secret=webhook_secret,
    )


@pytest.fixture
def fulfillment():
    return RecordingFulfillment()


@pytest.fixture
def payment_service():
    return MagicMock(spec=PaymentService)


@pytest.fixture
def client(settings, fulfillment, payment_service):
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_webhook_receiver] = lambda: WebhookReceiver(
        secret=settings.stripe_webhook_secret,
        fulfillment=fulfillment,
        tolerance=settings.webhook_tolerance,
    )
    app.dependency_overrides[get_payment_service] = lambda: payment_service

    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
