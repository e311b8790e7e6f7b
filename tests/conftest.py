"""Pytest configuration and fixtures."""

from __future__ import annotations

import copy
import uuid
from collections import defaultdict
from pathlib import Path
from typing import Callable, Iterator

import pytest

from tracker.db import connect
from tracker.errors import PersistenceError
from tracker.models import BATCHES, FIXED, PER_UNIT, Batch, CostComponent, Sale
from tracker.stores.base import Store, check_kind
from tracker.stores.local import LocalStore

# 1x1 transparent PNG
PNG_BYTES = bytes.fromhex(
    "89504e470d0a1a0a0000000d4948445200000001000000010806000000"
    "1f15c4890000000d49444154789c6360000002000001e221bc330000000049454e44ae426082"
)


class FakeCloudStore(Store):
    """In-memory document store with string ids that refuses raw bytes, like Firestore."""

    name = "cloud"
    supports_binary = False

    def __init__(self, fail_on_create: int | None = None):
        self.docs: dict[str, dict[str, dict]] = defaultdict(dict)
        self.creates = 0
        self.fail_on_create = fail_on_create
        self._watchers: dict[str, list[Callable]] = defaultdict(list)

    def list(self, kind: str) -> list[dict]:
        check_kind(kind)
        return [{**copy.deepcopy(d), "id": i} for i, d in self.docs[kind].items()]

    def create(self, kind: str, doc: dict) -> str:
        check_kind(kind)
        self.creates += 1
        if self.fail_on_create is not None and self.creates == self.fail_on_create:
            raise PersistenceError("quota exceeded")
        for k, v in doc.items():
            if isinstance(v, (bytes, bytearray)):
                raise PersistenceError(f"binary field {k}")
        new_id = uuid.uuid4().hex[:20]
        self.docs[kind][new_id] = {k: v for k, v in copy.deepcopy(doc).items() if k != "id"}
        self._notify(kind)
        return new_id

    def update(self, kind: str, doc_id, partial: dict) -> None:
        check_kind(kind)
        if str(doc_id) not in self.docs[kind]:
            raise PersistenceError("not found")
        self.docs[kind][str(doc_id)].update(copy.deepcopy(partial))
        self._notify(kind)

    def delete(self, kind: str, doc_id) -> None:
        check_kind(kind)
        self.docs[kind].pop(str(doc_id), None)
        self._notify(kind)

    def watch(self, kind: str, callback: Callable) -> Callable[[], None]:
        self._watchers[kind].append(callback)
        callback(self.list(kind))
        return lambda: self._watchers[kind].remove(callback)

    def _notify(self, kind: str) -> None:
        for cb in list(self._watchers[kind]):
            cb(self.list(kind))


@pytest.fixture
def temp_db_path(tmp_path: Path) -> Path:
    return tmp_path / "test.db"


@pytest.fixture
def local_store(temp_db_path: Path) -> Iterator[LocalStore]:
    conn = connect(temp_db_path)
    yield LocalStore(conn)
    conn.close()


@pytest.fixture
def cloud_store() -> FakeCloudStore:
    return FakeCloudStore()


@pytest.fixture
def png_bytes() -> bytes:
    return PNG_BYTES


@pytest.fixture
def fabric() -> CostComponent:
    return CostComponent(id="mat", name="Fabric", rate=50.0, qty=100.0, unit="m", type=FIXED)


@pytest.fixture
def buttons() -> CostComponent:
    return CostComponent(id="btn", name="Buttons", rate=10.0, qty=5.0, unit="pc", type=PER_UNIT)


def seed_local_batch(store: LocalStore, batch_id: int, doc: dict) -> int:
    """Put a batch row at a fixed local id, then fill it in through the store."""
    store.conn.execute("INSERT INTO batches (id, name) VALUES (?, ?)", (batch_id, doc.get("name", "")))
    store.conn.commit()
    store.update(BATCHES, batch_id, doc)
    return batch_id


def make_batch(batch_id, target_qty: int = 100, unit_cost: float = 50.0, name: str = "Batch") -> Batch:
    return Batch(id=batch_id, name=name, target_qty=target_qty, unit_cost=unit_cost)


def make_sale(sale_id, batch_id, qty: int, status: str = "New", price: float = 0.0, profit: float = 0.0,
              date: str = "2025-01-01") -> Sale:
    return Sale(id=sale_id, batch_id=batch_id, date=date, cust_name="Test", qty=qty, status=status,
                price=price, profit=profit)
