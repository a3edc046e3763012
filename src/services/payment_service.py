"""PayPal payment business logic service."""

import logging
from datetime import datetime, timezone
from typing import Any

import httpx
from pymongo.errors import PyMongoError

from src.api.middleware.error_handler import APIError, InfrastructureError, NotFoundError, ValidationError
from src.core.database import get_database, to_object_id
from src.core.paypal import PayPalError, PayPalNotConfiguredError, get_paypal_client
from src.core.realtime import get_notifier
from src.models.order import Order

logger = logging.getLogger(__name__)

CAPTURE_COMPLETED = "COMPLETED"


class PaymentError(APIError):
    """The payment gateway explicitly rejected the payment."""

    def __init__(self, message: str = "Payment not completed", details: list[dict[str, Any]] | None = None) -> None:
        super().__init__(message=message, status_code=400, error_type="payment_error", details=details)


class PaymentService:
    """Service for paying orders through PayPal."""

    def __init__(self) -> None:
        """Initialize payment service with storage and notifier."""
        self.db = get_database()
        self.orders = self.db.orders
        self.notifier = get_notifier()

    def _get_client(self):
        try:
            return get_paypal_client()
        except PayPalNotConfiguredError as e:
            logger.error("PayPal client unavailable: %s", e.message)
            raise InfrastructureError("Payment gateway not configured") from e

    async def _load_order(self, order_id: Any) -> Order | None:
        object_id = to_object_id(order_id)
        if object_id is None:
            return None
        return await self.orders.find_one({"_id": object_id})

    async def create_paypal_order(self, order_id: str) -> dict[str, Any]:
        """Create a PayPal order for an unpaid local order.

        Args:
            order_id: Local order id.

        Returns:
            dict: PayPal order id, status and approval links.

        Raises:
            NotFoundError: If the order does not exist.
            ValidationError: If the total is invalid or the order is already paid.
            InfrastructureError: If PayPal is unavailable or rejects the request.
        """
        order = await self._load_order(order_id)
        if not order:
            raise NotFoundError("Order not found")

        total = order.get("total_amount")
        if not isinstance(total, (int, float)) or total <= 0:
            raise ValidationError("Order total is invalid")

        if order.get("payment_status") == "completed":
            raise ValidationError("Order is already paid")

        client = self._get_client()
        try:
            result = await client.create_order(
                reference_id=str(order["_id"]),
                description=f"Order {order.get('order_number')}",
                currency_code=order.get("currency") or "USD",
                value=f"{float(total):.2f}",
            )
        except (PayPalError, httpx.HTTPError) as e:
            logger.error(
                "PayPal create order failed for %s: %s (status=%s, payload=%s)",
                order_id,
                e,
                getattr(e, "status_code", None),
                getattr(e, "payload", None),
                exc_info=True,
            )
            raise InfrastructureError("Failed to create PayPal order") from e

        try:
            await self.orders.update_one(
                {"_id": order["_id"]},
                {"$set": {"payment_reference": result.get("id"), "updated_at": datetime.now(timezone.utc)}},
            )
        except PyMongoError as e:
            # The PayPal order exists either way; capture matches on reference_id
            logger.error("Failed saving PayPal reference for order %s: %s", order_id, e)

        logger.info("PayPal order %s created for order %s", result.get("id"), order_id)
        return {"id": result.get("id"), "status": result.get("status"), "links": result.get("links", [])}

    async def capture_paypal_order(self, paypal_order_id: str) -> dict[str, Any]:
        """Capture an approved PayPal order and record the outcome.

        Args:
            paypal_order_id: PayPal order id approved by the buyer.

        Returns:
            dict: Local order id and the PayPal capture status.

        Raises:
            ValidationError: If the capture carries no local reference.
            NotFoundError: If the referenced local order does not exist.
            PaymentError: If PayPal did not complete the payment.
            InfrastructureError: If PayPal or storage fails.
        """
        client = self._get_client()
        try:
            capture = await client.capture_order(paypal_order_id)
        except (PayPalError, httpx.HTTPError) as e:
            logger.error(
                "PayPal capture failed for %s: %s (status=%s, payload=%s)",
                paypal_order_id,
                e,
                getattr(e, "status_code", None),
                getattr(e, "payload", None),
                exc_info=True,
            )
            raise InfrastructureError("Failed to capture PayPal order") from e

        purchase_units = capture.get("purchase_units") or [{}]
        reference_id = purchase_units[0].get("reference_id")
        capture_status = capture.get("status")

        if not reference_id:
            raise ValidationError("Missing reference id from PayPal capture")

        order = await self._load_order(reference_id)
        if not order:
            raise NotFoundError("Local order not found")

        updates: dict[str, Any] = {
            "payment_details": capture,
            "updated_at": datetime.now(timezone.utc),
        }
        completed = capture_status == CAPTURE_COMPLETED
        if completed:
            updates["payment_status"] = "completed"
            if order.get("status") == "pending":
                updates["status"] = "processing"
        elif order.get("payment_status") != "completed":
            updates["payment_status"] = "failed"

        try:
            await self.orders.update_one({"_id": order["_id"]}, {"$set": updates})
        except PyMongoError as e:
            logger.error("Failed saving capture result for order %s: %s", reference_id, e, exc_info=True)
            raise InfrastructureError("Failed to capture PayPal order") from e
        order.update(updates)

        try:
            self.notifier.emit_order_update(order)
        except Exception as e:
            logger.error("Failed to emit order update event for %s: %s", reference_id, e)

        if not completed:
            logger.warning("PayPal capture %s for order %s returned %s", paypal_order_id, reference_id, capture_status)
            raise PaymentError(
                "Payment not completed",
                details=[{"loc": ["paypal_order_id"], "msg": "Capture not completed", "type": "payment_error",
                          "ctx": {"status": capture_status}}],
            )

        logger.info("Payment captured for order %s", reference_id)
        return {"order_id": str(order["_id"]), "status": capture_status}
