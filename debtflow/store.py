"""Document store seam.

The application talks to a document database through `DocumentStore`:
collections of JSON-like documents keyed by id, equality queries, a
transactional counter, batched multi-document writes and transactions
that hold the store across a read-check-write sequence. `InMemoryStore`
backs the service and the tests and can be seeded from a JSON export
shaped ``{collection: {doc_id: document}}``.
"""

from __future__ import annotations

import copy
import json
import logging
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from decimal import Decimal
from pathlib import Path
from typing import Any, ContextManager, Iterator, Literal

from pydantic import BaseModel, Field

from .errors import RecordNotFoundError


logger = logging.getLogger(__name__)

CUSTOMERS = "customers"
RECORDS = "financialRecords"
USERS = "users"
COUNTERS = "counters"


class Write(BaseModel):
    op: Literal["set", "update"]
    collection: str
    doc_id: str
    data: dict[str, Any] = Field(default_factory=dict)


class DocumentStore(ABC):
    @abstractmethod
    def get(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        pass

    @abstractmethod
    def list(self, collection: str) -> list[dict[str, Any]]:
        pass

    @abstractmethod
    def query(self, collection: str, field: str, value: Any) -> list[dict[str, Any]]:
        pass

    @abstractmethod
    def set(self, collection: str, doc_id: str, data: dict[str, Any]) -> None:
        pass

    @abstractmethod
    def update(self, collection: str, doc_id: str, fields: dict[str, Any]) -> None:
        pass

    @abstractmethod
    def increment_counter(self, name: str) -> int:
        """Atomically bump counter `name` and return the new value (first call returns 1)."""

    @abstractmethod
    def commit(self, writes: list[Write]) -> None:
        """Apply every write or none of them."""

    @abstractmethod
    def transaction(self) -> ContextManager[None]:
        """
        Hold the store for the duration of the block.

        Reads and writes made by the calling thread inside the block see no
        interleaved writes from other callers, so existence checks stay true
        until the matching write lands.
        """


class InMemoryStore(DocumentStore):
    def __init__(self, data: dict[str, dict[str, dict[str, Any]]] | None = None):
        self._data: dict[str, dict[str, dict[str, Any]]] = copy.deepcopy(data) if data else {}
        # re-entrant so single operations nest inside transaction()
        self._lock = threading.RLock()

    @classmethod
    def from_file(cls, path: str | Path) -> InMemoryStore:
        payload = json.loads(Path(path).read_text(encoding="utf-8"), parse_float=Decimal)
        if not isinstance(payload, dict):
            raise ValueError(f"Seed file {path} must hold an object of collections")
        logger.info("Seeding store from %s (%s collections)", path, len(payload))
        return cls(payload)

    def _collection(self, collection: str) -> dict[str, dict[str, Any]]:
        return self._data.setdefault(collection, {})

    def get(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        with self._lock:
            doc = self._collection(collection).get(doc_id)
            return copy.deepcopy(doc) if doc is not None else None

    def list(self, collection: str) -> list[dict[str, Any]]:
        with self._lock:
            return [copy.deepcopy(doc) for doc in self._collection(collection).values()]

    def query(self, collection: str, field: str, value: Any) -> list[dict[str, Any]]:
        with self._lock:
            return [copy.deepcopy(doc) for doc in self._collection(collection).values() if doc.get(field) == value]

    def set(self, collection: str, doc_id: str, data: dict[str, Any]) -> None:
        with self._lock:
            self._collection(collection)[doc_id] = copy.deepcopy(data)

    def update(self, collection: str, doc_id: str, fields: dict[str, Any]) -> None:
        with self._lock:
            self._apply_update(collection, doc_id, fields)

    def _apply_update(self, collection: str, doc_id: str, fields: dict[str, Any]) -> None:
        doc = self._collection(collection).get(doc_id)
        if doc is None:
            raise RecordNotFoundError(f"{collection}/{doc_id} not found")
        doc.update(copy.deepcopy(fields))

    def increment_counter(self, name: str) -> int:
        with self._lock:
            counter = self._collection(COUNTERS).setdefault(name, {"lastId": 0})
            counter["lastId"] += 1
            return counter["lastId"]

    def commit(self, writes: list[Write]) -> None:
        with self._lock:
            pending = {(w.collection, w.doc_id) for w in writes if w.op == "set"}
            for write in writes:
                if write.op == "update" and (write.collection, write.doc_id) not in pending and write.doc_id not in self._collection(write.collection):
                    raise RecordNotFoundError(f"{write.collection}/{write.doc_id} not found")

            for write in writes:
                if write.op == "set":
                    self._collection(write.collection)[write.doc_id] = copy.deepcopy(write.data)
                else:
                    self._apply_update(write.collection, write.doc_id, write.data)

    @contextmanager
    def transaction(self) -> Iterator[None]:
        with self._lock:
            yield
