"""Order API routes."""

from fastapi import APIRouter, status

from src.api.deps import AdminUser, CurrentUser, RequestActor
from src.core.database import serialize_document
from src.schemas.order import (
    OrderCreate,
    OrderCreatedResponse,
    OrderListResponse,
    OrderResponse,
    OrderStatusResponse,
    OrderStatusUpdate,
    OrderSummary,
)
from src.services.order_service import OrderService
from src.services.order_status_service import OrderStatusService

router = APIRouter(prefix="/orders", tags=["orders"])


def _to_response(order: dict) -> OrderResponse:
    return OrderResponse.model_validate(serialize_document(order))


@router.post(
    "",
    response_model=OrderCreatedResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Place an order",
    description="Reserves stock for every line item and records the order. Works for guests and signed-in users.",
)
async def create_order(data: OrderCreate, actor: RequestActor) -> OrderCreatedResponse:
    """Place an order.

    A bearer token is optional: an invalid or missing token places the
    order as a guest.

    Args:
        data: Cart, shipping address, contact details, payment method and currency.
        actor: Resolved request actor.

    Returns:
        OrderCreatedResponse: Summary of the new order.
    """
    service = OrderService()
    summary = await service.create_order(data, actor)
    return OrderCreatedResponse(order=OrderSummary(**summary))


@router.get(
    "/my-orders",
    response_model=OrderListResponse,
    summary="List my orders",
    description="Returns the authenticated user's orders, newest first.",
)
async def list_my_orders(user: CurrentUser) -> OrderListResponse:
    """List the current user's orders.

    Args:
        user: The authenticated user context.

    Returns:
        OrderListResponse: The user's orders.
    """
    service = OrderService()
    orders = await service.list_orders_for_user(user.user_id)
    return OrderListResponse(items=[_to_response(order) for order in orders])


@router.get(
    "/all",
    response_model=OrderListResponse,
    summary="List all orders",
    description="Admin only. Returns every order, newest first.",
)
async def list_all_orders(user: AdminUser) -> OrderListResponse:
    """List every order.

    Args:
        user: The authenticated admin.

    Returns:
        OrderListResponse: All orders.
    """
    service = OrderService()
    orders = await service.list_all_orders()
    return OrderListResponse(items=[_to_response(order) for order in orders])


@router.put(
    "/{order_id}/status",
    response_model=OrderStatusResponse,
    summary="Update order status",
    description="Admin only. Moves an order through its fulfillment lifecycle.",
)
async def update_order_status(order_id: str, data: OrderStatusUpdate, user: AdminUser) -> OrderStatusResponse:
    """Set an order's fulfillment status.

    Args:
        order_id: Order id.
        data: Target status.
        user: The authenticated admin.

    Returns:
        OrderStatusResponse: The updated order.
    """
    service = OrderStatusService()
    order = await service.set_order_status(order_id, data.status, actor_id=user.user_id)
    return OrderStatusResponse(order=_to_response(order))
