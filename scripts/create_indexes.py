#!/usr/bin/env python
"""Script to create the MongoDB indexes the order flow relies on.

This script:
1. Connects to the database named by MONGODB_DATABASE
2. Creates the unique order number and recipient indexes
3. Creates the lookup indexes for orders and inventory records

Usage:
    python scripts/create_indexes.py

Requirements:
    - MONGODB_URL and JWT_SECRET environment variables must be set

Note:
    - Safe to run repeatedly; existing indexes are left as they are
    - The application also runs this on startup
"""

import asyncio
import logging
import sys
from pathlib import Path

# Add the project root to the path
sys.path.insert(0, str(Path(__file__).parent.parent))

from pymongo.errors import PyMongoError

from src.core.config import get_settings
from src.core.database import ensure_indexes, get_database, get_mongo_client, supports_transactions

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


async def main() -> None:
    """Main entry point for the index script."""
    settings = get_settings()
    logger.info("Creating indexes on database %s...", settings.mongodb_database)

    try:
        db = get_database()
        await ensure_indexes(db)

        for collection in ("orders", "recipients", "inventories"):
            names = sorted((await db[collection].index_information()).keys())
            logger.info("%s: %s", collection, ", ".join(names))

        transactional = await supports_transactions(get_mongo_client())
        logger.info("=" * 60)
        logger.info("Index creation complete!")
        logger.info("Multi-document transactions: %s", "available" if transactional else "unavailable (degraded mode)")
        logger.info("=" * 60)

    except PyMongoError as e:
        logger.error("Index creation failed: %s", e, exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    asyncio.run(main())
