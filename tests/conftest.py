from __future__ import annotations

import threading
import time
from pathlib import Path
from typing import Callable

import pytest

from debtflow.errors import DebtFlowError
from debtflow.store import InMemoryStore

FIXTURES = Path(__file__).parent / "fixtures"


class SlowReadStore(InMemoryStore):
    """Reads pause before returning, so callers that race on check-then-write overlap."""

    def get(self, collection, doc_id):
        time.sleep(0.05)
        return super().get(collection, doc_id)

    def list(self, collection):
        time.sleep(0.05)
        return super().list(collection)


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore.from_file(FIXTURES / "store_export.json")


@pytest.fixture
def slow_store() -> InMemoryStore:
    return SlowReadStore.from_file(FIXTURES / "store_export.json")


@pytest.fixture
def run_concurrently() -> Callable[..., list[DebtFlowError]]:
    def run(*calls: Callable[[], object]) -> list[DebtFlowError]:
        errors: list[DebtFlowError] = []
        start = threading.Barrier(len(calls))

        def worker(call: Callable[[], object]) -> None:
            start.wait()
            try:
                call()
            except DebtFlowError as exc:
                errors.append(exc)

        threads = [threading.Thread(target=worker, args=(call,)) for call in calls]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=10)
        return errors

    return run
