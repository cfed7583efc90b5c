"""Ticket and round-trip persistence.

Two backends share the same three async primitives (find / insert / drop):

* ``PickleStore`` keeps one pickle file per collection in a data directory (default, no server needed).
* ``MongoStore`` keeps collections in MongoDB; blocking pymongo calls run in a worker thread.

Neither backend is transactional across drop + insert; callers order the two calls themselves.
"""

import asyncio
import logging
import os
import pickle
from dataclasses import asdict
from enum import Enum
from pathlib import Path
from typing import Any, Protocol

import dacite
from pymongo import MongoClient
from pymongo.errors import PyMongoError

from .config import Settings
from .errors import StoreError
from .models import Roundtrip, Ticket

Document = dict[str, Any]


class CollectionName(str, Enum):
    TICKETS = "tickets"
    ROUNDTRIPS = "roundtrips"


class Store(Protocol):
    async def find(self, collection: CollectionName) -> list[Document]: ...

    async def insert(self, collection: CollectionName, documents: list[Document]) -> None: ...

    async def drop(self, collection: CollectionName) -> None: ...


# ---------------- document conversion -----------------
def ticket_to_document(ticket: Ticket) -> Document:
    return asdict(ticket)


def ticket_from_document(document: Document) -> Ticket:
    return dacite.from_dict(data_class=Ticket, data=document)


def roundtrip_to_document(roundtrip: Roundtrip) -> Document:
    return asdict(roundtrip)


def roundtrip_from_document(document: Document) -> Roundtrip:
    return dacite.from_dict(data_class=Roundtrip, data=document)


# ---------------- pickle backend -----------------
class PickleStore:
    def __init__(self, directory: Path):
        self.directory = Path(directory)

    def _path(self, collection: CollectionName) -> Path:
        return self.directory / f"{collection.value}.pkl"

    def _load(self, collection: CollectionName) -> list[Document]:
        path = self._path(collection)
        if not path.exists():
            return []
        with open(path, "rb") as f:
            return pickle.load(f)

    def _dump(self, collection: CollectionName, documents: list[Document]) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self._path(collection)
        tmp_path = path.with_suffix(".pkl.tmp")
        with open(tmp_path, "wb") as f:
            pickle.dump(documents, f, pickle.HIGHEST_PROTOCOL)
        os.replace(tmp_path, path)

    def _insert(self, collection: CollectionName, documents: list[Document]) -> None:
        self._dump(collection, self._load(collection) + list(documents))

    def _drop(self, collection: CollectionName) -> None:
        self._path(collection).unlink(missing_ok=True)

    async def find(self, collection: CollectionName) -> list[Document]:
        try:
            return await asyncio.to_thread(self._load, collection)
        except (OSError, pickle.UnpicklingError, EOFError) as exc:
            raise StoreError(f"Cannot read {self._path(collection)}") from exc

    async def insert(self, collection: CollectionName, documents: list[Document]) -> None:
        try:
            await asyncio.to_thread(self._insert, collection, documents)
        except (OSError, pickle.PickleError, EOFError) as exc:
            raise StoreError(f"Cannot write {self._path(collection)}") from exc
        logging.debug("Inserted %d documents into %s", len(documents), collection.value)

    async def drop(self, collection: CollectionName) -> None:
        try:
            await asyncio.to_thread(self._drop, collection)
        except OSError as exc:
            raise StoreError(f"Cannot drop {self._path(collection)}") from exc
        logging.debug("Dropped collection %s", collection.value)


# ---------------- mongo backend -----------------
class MongoStore:
    def __init__(self, uri: str, db_name: str, client: MongoClient | None = None):
        self.client = client or MongoClient(uri, appname="railkiosk", serverSelectionTimeoutMS=8000)
        self.db = self.client[db_name]

    def _find(self, collection: CollectionName) -> list[Document]:
        return list(self.db[collection.value].find({}, {"_id": False}))

    def _insert(self, collection: CollectionName, documents: list[Document]) -> None:
        if documents:
            # insert_many adds _id to the passed dicts; keep the caller's documents clean
            self.db[collection.value].insert_many([dict(d) for d in documents], ordered=True)

    def _drop(self, collection: CollectionName) -> None:
        self.db[collection.value].drop()

    async def find(self, collection: CollectionName) -> list[Document]:
        try:
            return await asyncio.to_thread(self._find, collection)
        except PyMongoError as exc:
            raise StoreError(f"Cannot read collection {collection.value}") from exc

    async def insert(self, collection: CollectionName, documents: list[Document]) -> None:
        try:
            await asyncio.to_thread(self._insert, collection, documents)
        except PyMongoError as exc:
            raise StoreError(f"Cannot insert into collection {collection.value}") from exc

    async def drop(self, collection: CollectionName) -> None:
        try:
            await asyncio.to_thread(self._drop, collection)
        except PyMongoError as exc:
            raise StoreError(f"Cannot drop collection {collection.value}") from exc


def create_store(settings: Settings) -> Store:
    backend = settings.store_backend.lower()
    if backend == "mongo":
        logging.info(f"Using MongoDB store ({settings.mongodb_db})")
        return MongoStore(settings.mongodb_uri, settings.mongodb_db)
    if backend == "pickle":
        logging.info(f"Using pickle store in {settings.data_dir}")
        return PickleStore(settings.data_dir)
    raise ValueError(f"Unknown store backend '{settings.store_backend}' (expected 'pickle' or 'mongo')")
