"""PayPal payment Pydantic schemas."""

from typing import Any

from pydantic import BaseModel, Field


class PayPalOrderCreate(BaseModel):
    """Request body for POST /paypal/create-order."""

    order_id: str = Field(description="Local order id to pay for")


class PayPalOrderResponse(BaseModel):
    """PayPal order created for a local order."""

    id: str = Field(description="PayPal order id")
    status: str | None = Field(default=None, description="PayPal order status")
    links: list[dict[str, Any]] = Field(default_factory=list, description="PayPal HATEOAS links")


class PayPalCaptureRequest(BaseModel):
    """Request body for POST /paypal/capture-order."""

    paypal_order_id: str = Field(description="Approved PayPal order id")


class PayPalCaptureResponse(BaseModel):
    """Result of a successful capture."""

    message: str = Field(default="Payment captured")
    order_id: str = Field(description="Local order id")
    status: str = Field(description="PayPal capture status")
