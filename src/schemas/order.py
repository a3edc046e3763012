"""Order Pydantic schemas for API request/response models."""

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

# Fulfillment statuses an admin can set. "fulfilled" is accepted as a
# synonym for "delivered".
OrderStatusInput = Literal["pending", "processing", "shipped", "delivered", "cancelled", "fulfilled"]


class OrderItemCreate(BaseModel):
    """One cart line in an order creation request."""

    model_config = ConfigDict(from_attributes=True)

    product_id: str = Field(description="Product id")
    quantity: int = Field(description="Quantity requested (must be at least 1)")
    size: str | None = Field(default=None, description="Size variant name, for sized products")


class ShippingAddressSchema(BaseModel):
    """Shipping address in an order creation request."""

    model_config = ConfigDict(from_attributes=True)

    street: str | None = Field(default=None, description="Street address")
    city: str | None = Field(default=None, description="City")
    country: str | None = Field(default=None, description="ISO 3166-1 alpha-2 country code")


class CustomerInfoSchema(BaseModel):
    """Customer contact details in an order creation request."""

    model_config = ConfigDict(from_attributes=True)

    first_name: str | None = Field(default=None, description="First name")
    last_name: str | None = Field(default=None, description="Last name")
    email: str | None = Field(default=None, description="Contact email")
    mobile: str | None = Field(default=None, description="Mobile number, e.g. +962791234567")
    secondary_mobile: str | None = Field(default=None, description="Optional second mobile number")


class OrderCreate(BaseModel):
    """Schema for placing an order via POST /orders.

    Business rules (required fields, supported countries and currencies,
    phone format, positive quantities) are enforced by the order service so
    that every rejection carries the same error shape.
    """

    model_config = ConfigDict(from_attributes=True)

    items: list[OrderItemCreate] = Field(default_factory=list, description="Cart lines, processed in order")
    shipping_address: ShippingAddressSchema = Field(default_factory=ShippingAddressSchema)
    customer_info: CustomerInfoSchema = Field(default_factory=CustomerInfoSchema)
    payment_method: str | None = Field(default=None, description="Payment method: card or cod")
    currency: str | None = Field(default=None, description="Order currency; defaults to the store currency")


class OrderSummary(BaseModel):
    """Summary of a newly created order."""

    model_config = ConfigDict(from_attributes=True)

    id: str = Field(description="Order id")
    order_number: str = Field(description="Human-facing order number")
    total_amount: float = Field(description="Total in the order currency")
    currency: str = Field(description="Currency code")
    status: str = Field(description="Fulfillment status")


class OrderCreatedResponse(BaseModel):
    """Response for POST /orders."""

    message: str = Field(default="Order created successfully")
    order: OrderSummary


class OrderItemResponse(BaseModel):
    """A stored order line item."""

    model_config = ConfigDict(from_attributes=True)

    product: str = Field(description="Product id")
    quantity: int = Field(ge=1, description="Quantity ordered")
    price: float = Field(ge=0, description="Unit price in the order currency")
    name: str | None = Field(default=None, description="Product name at purchase time")
    image: str | None = Field(default=None, description="Product image at purchase time")
    size: str | None = Field(default=None, description="Size variant, if any")


class OrderResponse(BaseModel):
    """Schema for order API responses."""

    model_config = ConfigDict(from_attributes=True, extra="ignore")

    id: str = Field(description="Order id")
    order_number: str = Field(description="Human-facing order number")
    user: str | None = Field(default=None, description="Owning user id; None for guest orders")
    items: list[OrderItemResponse] = Field(description="Order line items")
    total_amount: float = Field(description="Total in the order currency")
    currency: str = Field(description="Currency code")
    exchange_rate: float = Field(description="USD exchange rate at order time")
    shipping_address: dict[str, Any] = Field(description="Shipping address")
    customer_info: dict[str, Any] = Field(description="Customer contact details")
    payment_method: str = Field(description="Payment method")
    payment_status: str = Field(description="Payment status")
    status: str = Field(description="Fulfillment status")
    delivery_company: str | None = Field(default=None, description="Assigned delivery company id")
    delivery_status: str | None = Field(default=None, description="Delivery sub-status")
    created_at: datetime | None = Field(default=None, description="Creation timestamp")
    updated_at: datetime | None = Field(default=None, description="Last update timestamp")


class OrderListResponse(BaseModel):
    """Schema for order list API responses."""

    items: list[OrderResponse] = Field(description="List of orders")


class OrderStatusUpdate(BaseModel):
    """Schema for PUT /orders/{order_id}/status."""

    status: OrderStatusInput = Field(description="Target fulfillment status")


class OrderStatusResponse(BaseModel):
    """Response for a status change."""

    message: str = Field(default="Order status updated successfully")
    order: OrderResponse
