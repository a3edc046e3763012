"""Unit tests for the unit of work abstraction."""

from unittest.mock import patch

import pytest
from pymongo.errors import OperationFailure, PyMongoError

from src.core.database import reset_transaction_probe, supports_transactions
from src.core.unit_of_work import (
    SequentialUnitOfWork,
    TransactionalUnitOfWork,
    begin_unit_of_work,
    unit_of_work,
)
from tests.fakes import FakeMongoClient


@pytest.fixture(autouse=True)
def clear_probe():
    reset_transaction_probe()
    yield
    reset_transaction_probe()


class TestSupportsTransactions:
    """Tests for the topology probe."""

    @pytest.mark.asyncio
    async def test_replica_set_supports_transactions(self) -> None:
        assert await supports_transactions(FakeMongoClient(replica_set=True)) is True

    @pytest.mark.asyncio
    async def test_standalone_does_not(self) -> None:
        assert await supports_transactions(FakeMongoClient(replica_set=False)) is False

    @pytest.mark.asyncio
    async def test_probe_result_is_cached(self) -> None:
        client = FakeMongoClient(replica_set=True)
        assert await supports_transactions(client) is True

        client.replica_set = False
        assert await supports_transactions(client) is True

    @pytest.mark.asyncio
    @patch("src.core.database.get_settings")
    async def test_setting_overrides_probe(self, mock_settings: any) -> None:
        mock_settings.return_value.mongodb_transactions = False

        assert await supports_transactions(FakeMongoClient(replica_set=True)) is False


class TestBeginUnitOfWork:
    """Tests for choosing the unit of work backend."""

    @pytest.mark.asyncio
    async def test_replica_set_opens_transaction(self) -> None:
        client = FakeMongoClient(replica_set=True)

        uow = await begin_unit_of_work(client)

        assert isinstance(uow, TransactionalUnitOfWork)
        assert uow.is_transactional is True
        assert uow.session.in_transaction is True

    @pytest.mark.asyncio
    async def test_standalone_degrades_to_sequential(self) -> None:
        client = FakeMongoClient(replica_set=False)

        uow = await begin_unit_of_work(client)

        assert isinstance(uow, SequentialUnitOfWork)
        assert uow.session is None

    @pytest.mark.asyncio
    async def test_session_failure_degrades_to_sequential(self) -> None:
        client = FakeMongoClient(replica_set=True)
        client.start_session_error = PyMongoError("no session")

        uow = await begin_unit_of_work(client)

        assert isinstance(uow, SequentialUnitOfWork)

    @pytest.mark.asyncio
    async def test_start_transaction_failure_degrades_to_sequential(self) -> None:
        client = FakeMongoClient(replica_set=True)
        client.start_transaction_error = OperationFailure("Transaction numbers are only allowed on a replica set")

        uow = await begin_unit_of_work(client)

        assert isinstance(uow, SequentialUnitOfWork)


class TestUnitOfWorkContext:
    """Tests for the unit_of_work context manager."""

    @pytest.mark.asyncio
    async def test_commit_keeps_writes_and_ends_session(self) -> None:
        client = FakeMongoClient(replica_set=True)
        items = client["shop"].items

        async with unit_of_work(client) as uow:
            await items.insert_one({"name": "a"}, session=uow.session)
            await uow.commit()

        assert len(items.documents) == 1
        assert client.sessions[0].has_ended is True

    @pytest.mark.asyncio
    async def test_exception_rolls_back_transaction(self) -> None:
        client = FakeMongoClient(replica_set=True)
        items = client["shop"].items
        items.seed({"name": "existing"})

        with pytest.raises(RuntimeError):
            async with unit_of_work(client) as uow:
                await items.insert_one({"name": "b"}, session=uow.session)
                raise RuntimeError("boom")

        assert [doc["name"] for doc in items.documents] == ["existing"]
        assert client.sessions[0].has_ended is True

    @pytest.mark.asyncio
    async def test_exit_without_commit_rolls_back(self) -> None:
        client = FakeMongoClient(replica_set=True)
        items = client["shop"].items

        async with unit_of_work(client) as uow:
            await items.insert_one({"name": "c"}, session=uow.session)

        assert items.documents == []

    @pytest.mark.asyncio
    async def test_sequential_mode_keeps_partial_writes(self) -> None:
        client = FakeMongoClient(replica_set=False)
        items = client["shop"].items

        with pytest.raises(RuntimeError):
            async with unit_of_work(client) as uow:
                await items.insert_one({"name": "d"}, session=uow.session)
                raise RuntimeError("boom")

        assert [doc["name"] for doc in items.documents] == ["d"]
        assert client.sessions[0].has_ended is True

    @pytest.mark.asyncio
    async def test_commit_failure_propagates_and_rolls_back(self) -> None:
        client = FakeMongoClient(replica_set=True)
        items = client["shop"].items

        with pytest.raises(OperationFailure):
            async with unit_of_work(client) as uow:
                await items.insert_one({"name": "e"}, session=uow.session)
                uow.session.commit_error = OperationFailure("commit failed")
                await uow.commit()

        assert items.documents == []
        assert client.sessions[0].has_ended is True
