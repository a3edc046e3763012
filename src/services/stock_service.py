"""Stock coordination: reservation at checkout, consumption at fulfillment.

Two ledgers are kept:

- Product.stock (and per-size stock) is reserved when an order is placed.
- The inventory ledger is consumed when an order is first delivered.

They are not reconciled with each other. Callers go through StockReservation
and StockFulfillment only, so the ledgers can later be merged without
touching the order or status services.
"""

import logging
from typing import Any

from src.api.middleware.error_handler import AvailabilityError, NotFoundError, ValidationError
from src.models.order import Order, OrderItem
from src.schemas.order import OrderItemCreate
from src.services.inventory_service import InventoryLedger
from src.services.product_service import ProductStore

logger = logging.getLogger(__name__)


class StockReservation:
    """Validate and decrement catalog stock for one line item at a time."""

    def __init__(self) -> None:
        """Initialize with the product store."""
        self.products = ProductStore()

    async def reserve(
        self,
        item: OrderItemCreate,
        exchange_rate: float,
        session: Any = None,
        position: int = 0,
    ) -> OrderItem:
        """Reserve stock for a line item and return its order snapshot.

        The product is re-read on every call, so a product appearing on
        several lines sees the earlier lines' decrements. The decrement is
        persisted immediately through the given session.

        Args:
            item: Requested product, quantity and optional size.
            exchange_rate: Rate converting catalog prices to the order currency.
            session: Driver session of the surrounding unit of work, or None.
            position: Index of the line in the cart, for error locations.

        Returns:
            OrderItem: Denormalized line item with the unit price in order currency.

        Raises:
            NotFoundError: If the product does not exist.
            AvailabilityError: If the size is unknown or stock is insufficient.
            ValidationError: If a sized product is requested without a size.
        """
        product = await self.products.find_product_by_id(item.product_id, session=session)
        if not product:
            raise NotFoundError(
                f"Product not found: {item.product_id}",
                details=[
                    {
                        "loc": ["items", position, "product_id"],
                        "msg": "Product not found",
                        "type": "product_not_found",
                        "ctx": {"product_id": item.product_id},
                    }
                ],
            )

        name = product.get("name") or str(product["_id"])
        sizes = product.get("sizes") or []

        if item.size:
            variant = next((size for size in sizes if size.get("name") == item.size), None)
            if variant is None:
                raise AvailabilityError(
                    f"Size '{item.size}' not found for product {name}",
                    details=[
                        {
                            "loc": ["items", position, "size"],
                            "msg": "Size not found",
                            "type": "size_not_found",
                            "ctx": {"product_id": item.product_id, "size": item.size},
                        }
                    ],
                )
            available = int(variant.get("stock", 0))
            if available < item.quantity:
                raise _insufficient_stock(
                    f"Insufficient stock for {name} (size: {item.size}). "
                    f"Available: {available}, Requested: {item.quantity}",
                    item,
                    position,
                    available,
                )
            variant["stock"] = available - item.quantity
        else:
            if sizes:
                raise ValidationError(
                    f"Size is required for product {name}",
                    details=[
                        {
                            "loc": ["items", position, "size"],
                            "msg": "Size is required",
                            "type": "missing",
                            "ctx": {"product_id": item.product_id},
                        }
                    ],
                )
            available = int(product.get("stock", 0))
            if available < item.quantity:
                raise _insufficient_stock(
                    f"Insufficient stock for {name}. Available: {available}, Requested: {item.quantity}",
                    item,
                    position,
                    available,
                )
            product["stock"] = available - item.quantity

        unit_price = round(float(product.get("price", 0)) * exchange_rate, 2)
        images = product.get("images") or []

        line: OrderItem = {
            "product": product["_id"],
            "quantity": item.quantity,
            "price": unit_price,
            "name": name,
            "image": images[0] if images else None,
        }
        if item.size:
            line["size"] = item.size

        await self.products.save_product(product, session=session)
        logger.debug("Reserved %d x %s (size=%s)", item.quantity, product["_id"], item.size)

        return line


def _insufficient_stock(message: str, item: OrderItemCreate, position: int, available: int) -> AvailabilityError:
    return AvailabilityError(
        message,
        details=[
            {
                "loc": ["items", position, "quantity"],
                "msg": "Insufficient stock",
                "type": "insufficient_stock",
                "ctx": {
                    "product_id": item.product_id,
                    "size": item.size,
                    "available": available,
                    "requested": item.quantity,
                },
            }
        ],
    )


class StockFulfillment:
    """Consume the inventory ledger for delivered orders."""

    def __init__(self) -> None:
        """Initialize with the inventory ledger."""
        self.inventory = InventoryLedger()

    async def consume(self, order: Order, actor_id: str | None = None, session: Any = None) -> int:
        """Decrement inventory records for every line item of an order.

        Quantities are floored at zero. Line items without a matching
        (product, size, color) record are skipped.

        Args:
            order: The delivered order.
            actor_id: Id of the user driving the change, if known.
            session: Driver session of the surrounding unit of work, or None.

        Returns:
            int: Number of inventory records updated.
        """
        updated = 0
        for item in order.get("items", []):
            record = await self.inventory.find_inventory(
                item.get("product"), item.get("size"), item.get("color"), session=session
            )
            if record is None:
                logger.debug(
                    "No inventory record for product %s (size=%s), skipping",
                    item.get("product"),
                    item.get("size"),
                )
                continue

            new_quantity = max(0, int(record.get("quantity", 0)) - int(item.get("quantity", 0)))
            await self.inventory.update_inventory_quantity(record["_id"], new_quantity, actor_id, session=session)
            updated += 1

        return updated
