"""Inventory ledger storage operations."""

import logging
from datetime import datetime, timezone
from typing import Any

from src.core.database import get_database, to_object_id
from src.models.inventory import InventoryRecord

logger = logging.getLogger(__name__)


class InventoryLedger:
    """Per (product, size, color) quantity ledger.

    Updates are plain read-modify-write operations without locking.
    """

    def __init__(self) -> None:
        """Initialize the ledger with the inventories collection."""
        self.db = get_database()
        self.collection = self.db.inventories

    async def find_inventory(
        self,
        product_id: Any,
        size: str | None = None,
        color: str | None = None,
        session: Any = None,
    ) -> InventoryRecord | None:
        """Find the inventory record for a product variant.

        A missing size or color matches records stored with an empty string.

        Returns:
            InventoryRecord | None: The record, or None if none exists.
        """
        product = to_object_id(product_id)
        if product is None:
            return None
        return await self.collection.find_one(
            {"product": product, "size": size or "", "color": color or ""},
            session=session,
        )

    async def update_inventory_quantity(
        self,
        inventory_id: Any,
        new_quantity: int,
        actor_id: str | None = None,
        session: Any = None,
    ) -> None:
        """Set the quantity of an inventory record.

        Args:
            inventory_id: Inventory record id.
            new_quantity: Quantity to store; negative values are stored as zero.
            actor_id: Id of the user making the change, if known.
            session: Optional driver session.
        """
        quantity = max(0, int(new_quantity))
        await self.collection.update_one(
            {"_id": to_object_id(inventory_id)},
            {
                "$set": {
                    "quantity": quantity,
                    "updated_by": actor_id,
                    "updated_at": datetime.now(timezone.utc),
                }
            },
            session=session,
        )
        logger.info("Inventory %s set to %d", inventory_id, quantity)
