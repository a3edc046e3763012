"""Order fulfillment status transitions."""

import logging
from datetime import datetime, timezone
from typing import Any

from pymongo.errors import PyMongoError

from src.api.middleware.error_handler import (
    APIError,
    ConflictError,
    InfrastructureError,
    NotFoundError,
    ValidationError,
)
from src.core.database import get_database, get_mongo_client, to_object_id
from src.core.realtime import get_notifier
from src.core.unit_of_work import unit_of_work
from src.models.order import Order
from src.services.stock_service import StockFulfillment

logger = logging.getLogger(__name__)

STATUS_SEQUENCE = ("pending", "processing", "shipped", "delivered")
TERMINAL_STATUSES = frozenset({"delivered", "cancelled"})
STATUS_ALIASES = {"fulfilled": "delivered"}


def normalize_status(status: str) -> str:
    """Map accepted aliases onto their canonical status."""
    return STATUS_ALIASES.get(status, status)


def can_transition(current: str, target: str) -> bool:
    """Check whether an order may move from current to target.

    Orders only move forward through STATUS_SEQUENCE (skipping steps is
    allowed), can be cancelled until they reach a terminal status, and may
    be set to the status they already have.
    """
    if current == target:
        return True
    if current in TERMINAL_STATUSES:
        return False
    if target == "cancelled":
        return True
    if current not in STATUS_SEQUENCE or target not in STATUS_SEQUENCE:
        return False
    return STATUS_SEQUENCE.index(target) > STATUS_SEQUENCE.index(current)


class OrderStatusService:
    """Service for moving orders through their fulfillment lifecycle."""

    def __init__(self) -> None:
        """Initialize status service with storage and collaborators."""
        self.client = get_mongo_client()
        self.db = get_database()
        self.orders = self.db.orders
        self.fulfillment = StockFulfillment()
        self.notifier = get_notifier()

    async def set_order_status(self, order_id: str, status: str, actor_id: str | None = None) -> Order:
        """Set an order's fulfillment status.

        The first arrival at "delivered" consumes the inventory ledger for
        every line item. The status change and the ledger decrements commit
        together; without transactions a failed consumption puts the previous
        status back so the delivery can be retried.

        Args:
            order_id: Order id.
            status: Target status; "fulfilled" is treated as "delivered".
            actor_id: Id of the admin making the change.

        Returns:
            Order: The updated order.

        Raises:
            NotFoundError: If the order does not exist.
            ValidationError: If the transition is not allowed.
            ConflictError: If another request changed the status first.
            InfrastructureError: If the change cannot be persisted.
        """
        target = normalize_status(status)
        object_id = to_object_id(order_id)

        try:
            order = await self.orders.find_one({"_id": object_id}) if object_id else None
        except PyMongoError as e:
            logger.error("Failed to load order %s: %s", order_id, e, exc_info=True)
            raise InfrastructureError("Failed to update order status") from e

        if not order:
            raise NotFoundError("Order not found")

        previous = order.get("status", "pending")
        if not can_transition(previous, target):
            raise ValidationError(
                f"Cannot change order status from {previous} to {target}",
                details=[
                    {
                        "loc": ["body", "status"],
                        "msg": "Invalid status transition",
                        "type": "invalid_transition",
                        "ctx": {"from": previous, "to": target},
                    }
                ],
            )

        now = datetime.now(timezone.utc)
        consumes_inventory = target == "delivered" and previous != "delivered"
        try:
            async with unit_of_work(self.client) as uow:
                # Only the request that still sees the previous status may apply the change
                result = await self.orders.update_one(
                    {"_id": order["_id"], "status": previous},
                    {"$set": {"status": target, "updated_at": now}},
                    session=uow.session,
                )
                if result.matched_count == 0:
                    raise ConflictError(
                        "Order status was changed by another request",
                        details=[
                            {
                                "loc": ["body", "status"],
                                "msg": "Order status changed concurrently",
                                "type": "status_conflict",
                                "ctx": {"expected": previous, "to": target},
                            }
                        ],
                    )

                if consumes_inventory:
                    try:
                        updated = await self.fulfillment.consume(order, actor_id, session=uow.session)
                    except PyMongoError:
                        if not uow.is_transactional:
                            await self._restore_status(order["_id"], previous, target)
                        raise
                    logger.info("Order %s delivered, %d inventory record(s) updated", order_id, updated)

                await uow.commit()
        except APIError:
            raise
        except PyMongoError as e:
            logger.error("Failed to update status of order %s: %s", order_id, e, exc_info=True)
            raise InfrastructureError("Failed to update order status") from e

        order["status"] = target
        order["updated_at"] = now
        logger.info("Order %s status changed: %s -> %s", order_id, previous, target)

        try:
            self.notifier.emit_order_update(order)
        except Exception as e:
            logger.error("Failed to emit order update event for %s: %s", order_id, e)

        return order

    async def _restore_status(self, object_id: Any, previous: str, target: str) -> None:
        """Put back the previous status after a failed delivery without a transaction.

        Ledger records already decremented before the failure stay decremented.
        """
        try:
            await self.orders.update_one({"_id": object_id, "status": target}, {"$set": {"status": previous}})
            logger.warning("Order %s reverted to %s after failed inventory consumption", object_id, previous)
        except PyMongoError as e:
            logger.error("Failed to revert status of order %s: %s", object_id, e)
