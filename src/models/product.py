"""Product document type definitions for database operations."""

from datetime import datetime
from typing import TypedDict

from bson import ObjectId


class SizeVariant(TypedDict):
    """A named size with its own stock count."""

    name: str
    stock: int


class Product(TypedDict, total=False):
    """Products collection document.

    When sizes is non-empty, stock is the sum of the size stocks and is
    recomputed whenever the product is saved.
    """

    _id: ObjectId
    name: str
    description: str
    price: float
    images: list[str]
    stock: int
    sizes: list[SizeVariant]
    created_at: datetime
    updated_at: datetime
