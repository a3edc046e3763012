"""Pytest configuration and fixtures."""

import os
import time
from collections.abc import Callable, Generator
from contextlib import ExitStack
from typing import Any
from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient
from jose import jwt

# Set test environment variables before importing application modules
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("MONGODB_URL", "mongodb://localhost:27017")
os.environ.setdefault("MONGODB_DATABASE", "storefront_test")
os.environ.setdefault("JWT_SECRET", "test-jwt-secret")
os.environ.setdefault("DEFAULT_CURRENCY", "USD")
os.environ.setdefault("PAYPAL_CLIENT_ID", "test-paypal-client-id")
os.environ.setdefault("PAYPAL_CLIENT_SECRET", "test-paypal-client-secret")

from tests.fakes import FakeDatabase, FakeMongoClient  # noqa: E402

TEST_JWT_SECRET = os.environ["JWT_SECRET"]

# Modules that bind get_database / get_mongo_client at import time
DATABASE_PATCH_TARGETS = (
    "src.services.product_service.get_database",
    "src.services.inventory_service.get_database",
    "src.services.recipient_service.get_database",
    "src.services.settings_service.get_database",
    "src.services.order_service.get_database",
    "src.services.order_status_service.get_database",
    "src.services.payment_service.get_database",
)
CLIENT_PATCH_TARGETS = (
    "src.services.order_service.get_mongo_client",
    "src.services.order_status_service.get_mongo_client",
    "src.core.database.get_mongo_client",
    "src.main.get_mongo_client",
)


@pytest.fixture(scope="session")
def test_settings() -> Generator[Any, None, None]:
    """Provide test settings with cleared cache.

    Yields:
        Settings: Test configuration settings.
    """
    from src.core.config import get_settings

    # Clear the cache to ensure fresh settings
    get_settings.cache_clear()

    settings = get_settings()
    yield settings

    # Clean up cache after tests
    get_settings.cache_clear()


@pytest.fixture(autouse=True)
def notifier() -> Generator[Any, None, None]:
    """Give every test its own real-time notifier.

    Yields:
        RealTimeNotifier: The notifier returned by get_notifier().
    """
    from src.core import realtime

    fresh = realtime.RealTimeNotifier(queue_size=10)
    with patch.object(realtime, "_notifier", fresh):
        yield fresh


@pytest.fixture
def fake_mongo() -> Generator[FakeMongoClient, None, None]:
    """Provide an in-memory MongoDB with a replica set topology.

    The order number and recipient unique indexes are registered up front,
    as ensure_indexes would do on startup.

    Yields:
        FakeMongoClient: Client wired into every service.
    """
    from src.core.config import get_settings
    from src.core.database import reset_transaction_probe

    client = FakeMongoClient(replica_set=True)
    db = client[get_settings().mongodb_database]
    db.orders.register_index([("order_number", 1)], unique=True, name="order_number_unique")
    db.recipients.register_index([("email", 1), ("mobile", 1)], unique=True, name="email_mobile_unique")

    reset_transaction_probe()
    with ExitStack() as stack:
        for target in DATABASE_PATCH_TARGETS:
            stack.enter_context(patch(target, return_value=db))
        for target in CLIENT_PATCH_TARGETS:
            stack.enter_context(patch(target, return_value=client))
        yield client
    reset_transaction_probe()


@pytest.fixture
def fake_db(fake_mongo: FakeMongoClient) -> FakeDatabase:
    """Provide the application database of the fake client."""
    from src.core.config import get_settings

    return fake_mongo[get_settings().mongodb_database]


@pytest.fixture
def standalone_mongo(fake_mongo: FakeMongoClient) -> FakeMongoClient:
    """Provide the fake client reporting a standalone server (no transactions)."""
    fake_mongo.replica_set = False
    return fake_mongo


@pytest.fixture
def make_token() -> Callable[..., str]:
    """Provide a factory for signed access tokens.

    Returns:
        Callable: make_token(sub="user-1", role="user", expires_in=3600, **claims)
    """

    def _make_token(
        sub: str = "user-1",
        role: str = "user",
        email: str | None = "user@example.com",
        expires_in: int = 3600,
        secret: str = TEST_JWT_SECRET,
        **claims: Any,
    ) -> str:
        now = int(time.time())
        payload = {"sub": sub, "role": role, "email": email, "iat": now, "exp": now + expires_in, **claims}
        return jwt.encode(payload, secret, algorithm="HS256")

    return _make_token


@pytest.fixture
def client(fake_mongo: FakeMongoClient) -> Generator[TestClient, None, None]:
    """Provide a test client for the FastAPI application.

    Args:
        fake_mongo: In-memory MongoDB fixture.

    Yields:
        TestClient: FastAPI test client.
    """
    from src.main import app

    with patch("src.main.ensure_indexes", new_callable=AsyncMock):
        with TestClient(app) as test_client:
            yield test_client
