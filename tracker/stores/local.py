"""Embedded sqlite store: integer ids, binary attachments, local transactions."""

from __future__ import annotations

import json
import sqlite3
from collections import defaultdict
from typing import Any, Callable, Iterable

from tracker.db import ensure_schema, q, transaction
from tracker.errors import PersistenceError
from tracker.logging import get_logger
from tracker.models import BATCHES, EXPENSES, SALES, Identifier
from tracker.stores.base import Snapshot, Store, Unsubscribe, check_kind

logger = get_logger(__name__)

# document field -> column
_COLUMNS: dict[str, dict[str, str]] = {
    BATCHES: {
        "name": "name",
        "targetQty": "target_qty",
        "grandTotal": "grand_total",
        "unitCost": "unit_cost",
        "marginPerUnit": "margin_per_unit",
        "sellingPrice": "selling_price",
        "publicName": "public_name",
        "description": "description",
        "category": "category",
        "isPublic": "is_public",
    },
    SALES: {
        "batchId": "batch_id",
        "date": "date",
        "custName": "cust_name",
        "custPhone": "cust_phone",
        "custAddress": "cust_address",
        "shipOrderId": "ship_order_id",
        "status": "status",
        "qty": "qty",
        "price": "price",
        "discount": "discount",
        "profit": "profit",
        "courier": "courier",
        "trackingNumber": "tracking_number",
        "paymentScreenshot": "payment_screenshot",
        "notes": "notes",
    },
    EXPENSES: {
        "date": "date",
        "description": "description",
        "amount": "amount",
        "category": "category",
        "type": "type",
    },
}

# NOT NULL columns that need a value when a document leaves them out
_DEFAULTS: dict[str, dict[str, Any]] = {
    BATCHES: {"name": "", "target_qty": 1},
    SALES: {"date": "", "cust_name": "", "qty": 0},
    EXPENSES: {"date": "", "description": "", "amount": 0.0, "type": ""},
}


def _column_values(kind: str, doc: dict) -> dict[str, Any]:
    values: dict[str, Any] = {}
    for key, col in _COLUMNS[kind].items():
        if key not in doc:
            continue
        v = doc[key]
        if key == "isPublic":
            v = 1 if v else 0
        values[col] = v
    if kind == BATCHES and "inputs" in doc:
        values["legacy_inputs"] = json.dumps(doc["inputs"]) if doc["inputs"] else None
    return values


def _row_to_doc(kind: str, row: sqlite3.Row) -> dict:
    doc: dict[str, Any] = {"id": int(row["id"])}
    for key, col in _COLUMNS[kind].items():
        doc[key] = row[col]
    if kind == BATCHES:
        doc["isPublic"] = bool(doc["isPublic"])
        if row["legacy_inputs"]:
            try:
                doc["inputs"] = json.loads(row["legacy_inputs"])
            except ValueError:
                logger.warning("legacy_inputs_unreadable", batch_id=doc["id"])
    return doc


def _cost_row_to_doc(row: sqlite3.Row) -> dict:
    return {
        "id": row["component_id"],
        "name": row["name"],
        "rate": row["rate"],
        "qty": row["qty"],
        "unit": row["unit"] or "",
        "type": row["type"],
    }


class LocalStore(Store):
    name = "local"
    supports_binary = True

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn
        ensure_schema(conn)
        self._watchers: dict[str, list[Callable[[Snapshot], None]]] = defaultdict(list)

    # -------------------------
    # reads
    # -------------------------

    def list(self, kind: str) -> Snapshot:
        check_kind(kind)
        try:
            rows = q(self.conn, f"SELECT * FROM {kind} ORDER BY id")
            docs = [_row_to_doc(kind, r) for r in rows]
            if kind == BATCHES:
                costs = defaultdict(list)
                for r in q(self.conn, "SELECT * FROM batch_costs ORDER BY batch_id, position, id"):
                    costs[int(r["batch_id"])].append(_cost_row_to_doc(r))
                for d in docs:
                    d["costs"] = costs.get(d["id"], [])
            return docs
        except sqlite3.Error as e:
            raise PersistenceError(f"Could not read {kind}: {e}") from e

    # -------------------------
    # writes
    # -------------------------

    def _insert(self, kind: str, doc: dict) -> int:
        values = dict(_DEFAULTS[kind])
        values.update({k: v for k, v in _column_values(kind, doc).items() if v is not None})
        cols = ", ".join(values)
        marks = ", ".join("?" for _ in values)
        cur = self.conn.execute(f"INSERT INTO {kind} ({cols}) VALUES ({marks})", tuple(values.values()))
        new_id = int(cur.lastrowid)
        if kind == BATCHES:
            self._write_costs(new_id, doc.get("costs") or [])
        return new_id

    def _write_costs(self, batch_id: int, costs: Iterable[dict]) -> None:
        self.conn.execute("DELETE FROM batch_costs WHERE batch_id=?", (int(batch_id),))
        for pos, c in enumerate(costs):
            self.conn.execute(
                """
                INSERT INTO batch_costs (batch_id, position, component_id, name, rate, qty, unit, type)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    int(batch_id),
                    pos,
                    str(c.get("id") or pos),
                    str(c.get("name") or ""),
                    float(c.get("rate") or 0),
                    float(c.get("qty") or 0),
                    c.get("unit") or "",
                    str(c.get("type") or "FIXED"),
                ),
            )

    def create(self, kind: str, doc: dict) -> int:
        check_kind(kind)
        try:
            with transaction(self.conn):
                new_id = self._insert(kind, doc)
        except sqlite3.Error as e:
            raise PersistenceError(f"Could not create {kind[:-1]}: {e}") from e
        logger.info("record_created", store=self.name, kind=kind, id=new_id)
        self._notify(kind)
        return new_id

    def update(self, kind: str, doc_id: Identifier, partial: dict) -> None:
        check_kind(kind)
        values = _column_values(kind, partial)
        try:
            with transaction(self.conn):
                exists = self.conn.execute(f"SELECT 1 FROM {kind} WHERE id=?", (_as_int(doc_id),)).fetchone()
                if not exists:
                    raise PersistenceError(f"{kind[:-1].capitalize()} {doc_id} not found.")
                if values:
                    assignments = ", ".join(f"{c}=?" for c in values)
                    self.conn.execute(
                        f"UPDATE {kind} SET {assignments} WHERE id=?",
                        (*values.values(), _as_int(doc_id)),
                    )
                if kind == BATCHES and "costs" in partial:
                    self._write_costs(_as_int(doc_id), partial["costs"] or [])
        except sqlite3.Error as e:
            raise PersistenceError(f"Could not update {kind[:-1]} {doc_id}: {e}") from e
        logger.info("record_updated", store=self.name, kind=kind, id=doc_id)
        self._notify(kind)

    def delete(self, kind: str, doc_id: Identifier) -> None:
        check_kind(kind)
        try:
            with transaction(self.conn):
                cur = self.conn.execute(f"DELETE FROM {kind} WHERE id=?", (_as_int(doc_id),))
                if cur.rowcount == 0:
                    raise PersistenceError(f"{kind[:-1].capitalize()} {doc_id} not found.")
        except sqlite3.Error as e:
            raise PersistenceError(f"Could not delete {kind[:-1]} {doc_id}: {e}") from e
        logger.info("record_deleted", store=self.name, kind=kind, id=doc_id)
        self._notify(kind)

    def replace_all(self, *, batches: list[dict], sales: list[dict], expenses: list[dict]) -> dict[str, int]:
        """
        Wipe every table and load the given documents in one transaction.

        Batches get fresh ids; each sale's batchId is rewritten through the
        old -> new map so references survive (unmatched ids are kept as-is
        and will show as unknown batches). Returns the batch id map.
        """
        id_map: dict[str, int] = {}
        try:
            with transaction(self.conn):
                for t in ("batch_costs", SALES, BATCHES, EXPENSES):
                    self.conn.execute(f"DELETE FROM {t};")
                for doc in batches:
                    new_id = self._insert(BATCHES, doc)
                    if doc.get("id") is not None:
                        id_map[str(doc["id"])] = new_id
                for doc in sales:
                    doc = dict(doc)
                    old = doc.get("batchId")
                    if old is not None and str(old) in id_map:
                        doc["batchId"] = id_map[str(old)]
                    self._insert(SALES, doc)
                for doc in expenses:
                    self._insert(EXPENSES, doc)
        except sqlite3.Error as e:
            raise PersistenceError(f"Import failed, nothing was changed: {e}") from e

        logger.info(
            "store_replaced",
            store=self.name,
            batches=len(batches),
            sales=len(sales),
            expenses=len(expenses),
        )
        for kind in (BATCHES, SALES, EXPENSES):
            self._notify(kind)
        return id_map

    def clear(self) -> None:
        self.replace_all(batches=[], sales=[], expenses=[])

    # -------------------------
    # change notification
    # -------------------------

    def watch(self, kind: str, callback: Callable[[Snapshot], None]) -> Unsubscribe:
        check_kind(kind)
        self._watchers[kind].append(callback)
        callback(self.list(kind))

        def unsubscribe() -> None:
            if callback in self._watchers[kind]:
                self._watchers[kind].remove(callback)

        return unsubscribe

    def _notify(self, kind: str) -> None:
        if not self._watchers.get(kind):
            return
        snapshot = self.list(kind)
        for cb in list(self._watchers[kind]):
            cb(snapshot)


def _as_int(doc_id: Identifier) -> int:
    try:
        return int(doc_id)
    except (TypeError, ValueError) as e:
        raise PersistenceError(f"Local ids are numeric, got '{doc_id}'.") from e
