from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class CreatePaymentIntentRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    payment_method_type: str = Field(..., alias="paymentMethodType")
    currency: str
    payment_method_options: dict[str, Any] | None = Field(
        None, alias="paymentMethodOptions"
    )
    customer_id: str | None = Field(None, alias="customerId")


class CreatePaymentIntentResponse(BaseModel):
    clientSecret: str | None
    nextAction: dict[str, Any] | None = None


class ConfigResponse(BaseModel):
    publishableKey: str | None


class ErrorDetail(BaseModel):
    message: str


class ErrorResponse(BaseModel):
    error: ErrorDetail
