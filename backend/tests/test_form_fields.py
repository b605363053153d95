import pytest
from fastapi import HTTPException

from accept_a_payment.main import nest_form_fields


def test_flat_fields_are_kept():
    assert nest_form_fields([("currency", "usd"), ("customerId", "cus_1")]) == {
        "currency": "usd",
        "customerId": "cus_1",
    }


def test_bracketed_fields_are_nested():
    fields = [
        ("paymentMethodOptions[acss_debit][mandate_options][payment_schedule]", "interval"),
        ("paymentMethodOptions[acss_debit][mandate_options][transaction_type]", "business"),
        ("paymentMethodOptions[acss_debit][verification_method]", "instant"),
    ]

    assert nest_form_fields(fields) == {
        "paymentMethodOptions": {
            "acss_debit": {
                "mandate_options": {
                    "payment_schedule": "interval",
                    "transaction_type": "business",
                },
                "verification_method": "instant",
            }
        }
    }


@pytest.mark.parametrize(
    "fields",
    [
        [("a", "1"), ("a[b]", "2")],
        [("a[b]", "2"), ("a", "1")],
        [("a[b]", "1"), ("a[b][c]", "2")],
    ],
)
def test_conflicting_fields_are_rejected(fields):
    with pytest.raises(HTTPException) as exc_info:
        nest_form_fields(fields)
    assert exc_info.value.status_code == 422


@pytest.mark.parametrize("key", ["a[", "a[]", "[b]", "a[b]c"])
def test_malformed_keys_are_rejected(key):
    with pytest.raises(HTTPException) as exc_info:
        nest_form_fields([(key, "1")])
    assert exc_info.value.status_code == 422
