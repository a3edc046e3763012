"""Recipient profile storage."""

from datetime import datetime, timezone
from typing import Any

from pymongo import ReturnDocument

from src.core.database import get_database
from src.models.recipient import Recipient, RecipientKey


class RecipientStore:
    """Denormalized customer profiles keyed by (email, mobile)."""

    def __init__(self) -> None:
        """Initialize the store with the recipients collection."""
        self.db = get_database()
        self.collection = self.db.recipients

    async def upsert_recipient(
        self,
        key: RecipientKey,
        profile: dict[str, Any],
        session: Any = None,
    ) -> Recipient:
        """Create or overwrite the recipient identified by key.

        Last write wins: every field in profile replaces the stored value.

        Args:
            key: Email and mobile identifying the recipient.
            profile: Contact and address fields to store.
            session: Optional driver session.

        Returns:
            Recipient: The stored recipient document.
        """
        now = datetime.now(timezone.utc)
        return await self.collection.find_one_and_update(
            {"email": key["email"], "mobile": key["mobile"]},
            {
                "$set": {**profile, "email": key["email"], "mobile": key["mobile"], "updated_at": now},
                "$setOnInsert": {"created_at": now},
            },
            upsert=True,
            return_document=ReturnDocument.AFTER,
            session=session,
        )
