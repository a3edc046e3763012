"""Store settings lookups needed by checkout."""

import logging

from pymongo.errors import PyMongoError

from src.core.database import get_database

logger = logging.getLogger(__name__)


class SettingsStore:
    """Read-only access to the store settings document."""

    def __init__(self) -> None:
        """Initialize the store with the settings collection."""
        self.db = get_database()
        self.collection = self.db["settings"]

    async def get_default_currency(self) -> str | None:
        """Get the store's configured default currency.

        Returns:
            str | None: Currency code, or None if unset or unreadable.
        """
        try:
            document = await self.collection.find_one({}, projection={"currency": 1})
        except PyMongoError as e:
            logger.warning("Could not read store currency setting: %s", e)
            return None

        if not document:
            return None
        return document.get("currency") or None
