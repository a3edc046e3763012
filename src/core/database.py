"""MongoDB client singleton and helpers for document storage."""

import logging
from datetime import datetime
from functools import lru_cache
from typing import Any

from bson import ObjectId
from bson.errors import InvalidId
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING

from src.core.config import get_settings

logger = logging.getLogger(__name__)

# Cached result of the topology probe (None until first checked)
_transactions_supported: bool | None = None


@lru_cache
def get_mongo_client() -> AsyncIOMotorClient:
    """Get cached MongoDB client singleton.

    The driver connects lazily, so creating the client never blocks
    application startup.

    Returns:
        AsyncIOMotorClient: Motor client instance.
    """
    settings = get_settings()
    return AsyncIOMotorClient(settings.mongodb_url, tz_aware=True)


def get_database() -> AsyncIOMotorDatabase:
    """Get the application database handle.

    Returns:
        AsyncIOMotorDatabase: Database named by MONGODB_DATABASE.
    """
    settings = get_settings()
    return get_mongo_client()[settings.mongodb_database]


async def supports_transactions(client: AsyncIOMotorClient) -> bool:
    """Check whether the deployment can run multi-document transactions.

    Transactions require a replica set member or a mongos router. The
    MONGODB_TRANSACTIONS setting overrides the probe when set. The probe
    result is cached for the life of the process.

    Args:
        client: Motor client to probe.

    Returns:
        bool: True if transactions can be opened.
    """
    global _transactions_supported

    settings = get_settings()
    if settings.mongodb_transactions is not None:
        return settings.mongodb_transactions

    if _transactions_supported is None:
        hello = await client.admin.command("hello")
        _transactions_supported = bool(hello.get("setName")) or hello.get("msg") == "isdbgrid"
        logger.info(
            "MongoDB topology probed: transactions %s",
            "supported" if _transactions_supported else "unavailable",
        )

    return _transactions_supported


def reset_transaction_probe() -> None:
    """Forget the cached topology probe result."""
    global _transactions_supported
    _transactions_supported = None


async def ensure_indexes(db: AsyncIOMotorDatabase | None = None) -> None:
    """Create the indexes the order flow depends on.

    The unique order_number index is what turns an order number collision
    into a DuplicateKeyError.

    Args:
        db: Database to index. Defaults to the application database.
    """
    db = db if db is not None else get_database()

    await db.orders.create_index([("order_number", ASCENDING)], unique=True, name="order_number_unique")
    await db.orders.create_index([("user", ASCENDING)], name="user")
    await db.orders.create_index([("status", ASCENDING), ("created_at", DESCENDING)], name="status_created_at")
    await db.orders.create_index([("delivery_company", ASCENDING)], name="delivery_company")
    await db.recipients.create_index(
        [("email", ASCENDING), ("mobile", ASCENDING)], unique=True, name="email_mobile_unique"
    )
    await db.inventories.create_index(
        [("product", ASCENDING), ("size", ASCENDING), ("color", ASCENDING)], name="product_size_color"
    )


async def check_database_connection() -> dict[str, Any]:
    """Check if database connection is healthy.

    Returns:
        dict: Connection status with 'healthy' boolean and optional 'error' message.
    """
    try:
        await get_mongo_client().admin.command("ping")
        return {"healthy": True}
    except Exception as e:
        return {"healthy": False, "error": str(e)}


def to_object_id(value: Any) -> ObjectId | None:
    """Convert a string or ObjectId to an ObjectId.

    Returns:
        ObjectId | None: The ObjectId, or None if the value is not a valid id.
    """
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(str(value))
    except (InvalidId, TypeError):
        return None


def serialize_document(value: Any) -> Any:
    """Convert a stored document into JSON-friendly data.

    `_id` becomes `id`, ObjectIds become strings and datetimes become
    ISO-8601 strings, recursively.
    """
    if isinstance(value, dict):
        result = {}
        for key, item in value.items():
            if key == "_id":
                result["id"] = serialize_document(item)
            else:
                result[key] = serialize_document(item)
        return result
    if isinstance(value, list):
        return [serialize_document(item) for item in value]
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    return value
