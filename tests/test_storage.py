import asyncio
from datetime import datetime
from unittest.mock import MagicMock

import pytest
from pymongo.errors import ServerSelectionTimeoutError

from conftest import make_ticket
from railkiosk.errors import StoreError
from railkiosk.storage import (
    CollectionName,
    MongoStore,
    PickleStore,
    create_store,
    ticket_from_document,
    ticket_to_document,
)

TICKETS = CollectionName.TICKETS


def test_pickle_store_find_missing_collection_is_empty(tmp_path):
    assert asyncio.run(PickleStore(tmp_path / "data").find(TICKETS)) == []


def test_pickle_store_insert_appends_and_drop_removes(tmp_path):
    store = PickleStore(tmp_path / "data")
    first = ticket_to_document(make_ticket(datetime(2026, 1, 5, 10), cost=1000))
    second = ticket_to_document(make_ticket(datetime(2026, 1, 6, 10), cost=2000))

    async def scenario():
        await store.insert(TICKETS, [first])
        await store.insert(TICKETS, [second])
        found = await store.find(TICKETS)
        await store.drop(TICKETS)
        await store.drop(TICKETS)
        return found, await store.find(TICKETS)

    found, after_drop = asyncio.run(scenario())
    assert [ticket_from_document(d).cost for d in found] == [1000, 2000]
    assert after_drop == []
    assert not (tmp_path / "data" / "tickets.pkl").exists()


def test_pickle_store_wraps_corrupt_file(tmp_path):
    (tmp_path / "tickets.pkl").write_bytes(b"not a pickle")
    with pytest.raises(StoreError):
        asyncio.run(PickleStore(tmp_path).find(TICKETS))


def test_mongo_store_uses_named_collections():
    client = MagicMock()
    collection = client["railkiosk"]["tickets"]
    collection.find.return_value = [{"cost": 1}]
    store = MongoStore("mongodb://unused", "railkiosk", client=client)
    documents = [{"cost": 1}]

    async def scenario():
        await store.drop(TICKETS)
        await store.insert(TICKETS, documents)
        return await store.find(TICKETS)

    assert asyncio.run(scenario()) == [{"cost": 1}]
    collection.drop.assert_called_once_with()
    collection.insert_many.assert_called_once()
    assert "_id" not in documents[0]


def test_mongo_store_wraps_driver_errors():
    client = MagicMock()
    client["railkiosk"]["tickets"].drop.side_effect = ServerSelectionTimeoutError("no servers")
    store = MongoStore("mongodb://unused", "railkiosk", client=client)

    with pytest.raises(StoreError) as excinfo:
        asyncio.run(store.drop(TICKETS))
    assert isinstance(excinfo.value.__cause__, ServerSelectionTimeoutError)


def test_create_store_picks_backend(settings):
    assert isinstance(create_store(settings), PickleStore)
    settings.store_backend = "redis"
    with pytest.raises(ValueError):
        create_store(settings)
