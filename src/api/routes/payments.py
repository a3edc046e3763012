"""PayPal payment routes."""

from fastapi import APIRouter

from src.schemas.payment import (
    PayPalCaptureRequest,
    PayPalCaptureResponse,
    PayPalOrderCreate,
    PayPalOrderResponse,
)
from src.services.payment_service import PaymentService

router = APIRouter(prefix="/paypal", tags=["payments"])


@router.post(
    "/create-order",
    response_model=PayPalOrderResponse,
    summary="Create PayPal order",
    description="Creates a PayPal order for an unpaid local order and returns its approval links.",
)
async def create_paypal_order(data: PayPalOrderCreate) -> PayPalOrderResponse:
    """Create a PayPal order for a local order.

    Args:
        data: Local order id.

    Returns:
        PayPalOrderResponse: PayPal order id, status and links.
    """
    service = PaymentService()
    result = await service.create_paypal_order(data.order_id)
    return PayPalOrderResponse(**result)


@router.post(
    "/capture-order",
    response_model=PayPalCaptureResponse,
    summary="Capture PayPal order",
    description="Captures an approved PayPal order and marks the local order paid.",
)
async def capture_paypal_order(data: PayPalCaptureRequest) -> PayPalCaptureResponse:
    """Capture an approved PayPal order.

    Args:
        data: PayPal order id.

    Returns:
        PayPalCaptureResponse: Local order id and capture status.
    """
    service = PaymentService()
    result = await service.capture_paypal_order(data.paypal_order_id)
    return PayPalCaptureResponse(**result)
