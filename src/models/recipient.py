"""Recipient document type definitions."""

from datetime import datetime
from typing import TypedDict

from bson import ObjectId

from src.models.order import ShippingAddress


class RecipientKey(TypedDict):
    """Identity of a recipient: one document per (email, mobile)."""

    email: str
    mobile: str


class Recipient(TypedDict, total=False):
    """Recipients collection document (last write wins)."""

    _id: ObjectId
    first_name: str
    last_name: str
    email: str
    mobile: str
    secondary_mobile: str | None
    address: ShippingAddress
    created_at: datetime
    updated_at: datetime
