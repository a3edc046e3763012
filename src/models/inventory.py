"""Inventory ledger document type definitions."""

from datetime import datetime
from typing import TypedDict

from bson import ObjectId


class InventoryRecord(TypedDict, total=False):
    """Inventories collection document.

    One quantity per (product, size, color). Empty strings stand for "no
    size" and "no color". Separate from Product.stock: this ledger is
    decremented when an order is delivered.
    """

    _id: ObjectId
    product: ObjectId
    size: str
    color: str
    quantity: int
    updated_by: str | None
    updated_at: datetime
