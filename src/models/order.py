"""Order document type definitions for database operations."""

from datetime import datetime
from typing import Any, Literal, TypedDict

from bson import ObjectId


# Fulfillment status values, in lifecycle order
OrderStatus = Literal["pending", "processing", "shipped", "delivered", "cancelled"]

PaymentStatus = Literal["pending", "completed", "failed"]

PaymentMethod = Literal["card", "cod"]

DeliveryStatus = Literal[
    "assigned",
    "picked_up",
    "in_transit",
    "out_for_delivery",
    "delivered",
    "delivery_failed",
    "returned",
    "cancelled",
]


class OrderItem(TypedDict, total=False):
    """Denormalized snapshot of one purchased line item.

    Stored as part of the order's items array. Price is the unit price in
    the order currency at the time of purchase.
    """

    product: ObjectId
    quantity: int
    price: float
    name: str
    image: str | None
    size: str | None
    color: str | None


class ShippingAddress(TypedDict):
    """Destination address for an order."""

    street: str
    city: str
    country: str


class CustomerInfo(TypedDict, total=False):
    """Customer contact details captured at checkout."""

    first_name: str
    last_name: str
    email: str
    mobile: str
    secondary_mobile: str | None


class Order(TypedDict, total=False):
    """Orders collection document.

    Orders are never deleted; status fields change through the status
    engine and the payment capture flow only.
    """

    _id: ObjectId
    order_number: str
    user: str | None
    items: list[OrderItem]
    total_amount: float
    currency: str
    exchange_rate: float
    shipping_address: ShippingAddress
    customer_info: CustomerInfo
    payment_method: PaymentMethod
    payment_status: PaymentStatus
    status: OrderStatus
    payment_reference: str | None
    payment_details: dict[str, Any] | None
    delivery_company: ObjectId | None
    delivery_status: DeliveryStatus | None
    delivery_tracking_number: str | None
    created_at: datetime
    updated_at: datetime
