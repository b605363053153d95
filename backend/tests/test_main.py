import stripe
from fastapi.testclient import TestClient


def test_health_check(client: TestClient):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "webhook_signing": True}


def test_health_does_not_expose_secrets(client: TestClient):
    body = client.get("/health").text
    assert "whsec_test" not in body
    assert "sk_test_123" not in body


def test_config_exposes_publishable_key(client: TestClient):
    response = client.get("/config")
    assert response.status_code == 200
    assert response.json() == {"publishableKey": "pk_test_123"}


def test_success_page(client: TestClient):
    response = client.get("/success")
    assert response.status_code == 200
    assert response.json() == "SUCCESS!"


def test_startup_sets_stripe_app_info(client: TestClient):
    assert stripe.app_info["name"] == "accept-a-payment"
    assert stripe.app_info["version"] == "0.0.2"
