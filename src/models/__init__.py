"""Database model type definitions."""

from src.models.inventory import InventoryRecord
from src.models.order import Order, OrderItem
from src.models.product import Product, SizeVariant
from src.models.recipient import Recipient, RecipientKey

__all__ = [
    "InventoryRecord",
    "Order",
    "OrderItem",
    "Product",
    "SizeVariant",
    "Recipient",
    "RecipientKey",
]
