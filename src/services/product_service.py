"""Product catalog storage operations used by the order flow."""

import logging
from datetime import datetime, timezone
from typing import Any

from src.core.database import get_database, to_object_id
from src.models.product import Product

logger = logging.getLogger(__name__)


def recompute_stock(product: Product) -> Product:
    """Set the aggregate stock of a sized product to the sum of its sizes.

    Products without size variants keep their flat stock value.
    """
    sizes = product.get("sizes") or []
    if sizes:
        product["stock"] = sum(int(size.get("stock", 0)) for size in sizes)
    return product


class ProductStore:
    """Read and persist catalog products."""

    def __init__(self) -> None:
        """Initialize the store with the products collection."""
        self.db = get_database()
        self.collection = self.db.products

    async def find_product_by_id(self, product_id: Any, session: Any = None) -> Product | None:
        """Get a product by id.

        Args:
            product_id: Product id (string or ObjectId).
            session: Optional driver session; reads inside a transaction see
                the transaction's own writes.

        Returns:
            Product | None: The product, or None if not found or the id is malformed.
        """
        object_id = to_object_id(product_id)
        if object_id is None:
            return None
        return await self.collection.find_one({"_id": object_id}, session=session)

    async def save_product(self, product: Product, session: Any = None) -> Product:
        """Persist a product, recomputing its aggregate stock first.

        Args:
            product: Product document including its _id.
            session: Optional driver session.

        Returns:
            Product: The saved product.
        """
        recompute_stock(product)
        product["updated_at"] = datetime.now(timezone.utc)
        await self.collection.replace_one({"_id": product["_id"]}, product, session=session)
        return product
