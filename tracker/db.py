from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterable, Iterator

import streamlit as st

from tracker.schema import SCHEMA_SQL


def connect(db_path: Path) -> sqlite3.Connection:
    conn = sqlite3.connect(str(db_path), check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON;")
    return conn


@st.cache_resource
def get_conn(db_path: Path) -> sqlite3.Connection:
    return connect(db_path)


def _column_exists(conn: sqlite3.Connection, table: str, column: str) -> bool:
    rows = conn.execute(f"PRAGMA table_info({table});").fetchall()
    cols = [r["name"] for r in rows]
    return column in cols


# Columns introduced after the first local release (v2 fields).
_ADDED_COLUMNS = [
    ("batches", "margin_per_unit", "REAL NOT NULL DEFAULT 0"),
    ("batches", "selling_price", "REAL NOT NULL DEFAULT 0"),
    ("batches", "public_name", "TEXT"),
    ("batches", "description", "TEXT"),
    ("batches", "category", "TEXT"),
    ("batches", "is_public", "INTEGER NOT NULL DEFAULT 0"),
    ("sales", "discount", "REAL NOT NULL DEFAULT 0"),
    ("sales", "courier", "TEXT"),
    ("sales", "tracking_number", "TEXT"),
    ("sales", "cust_address", "TEXT"),
    ("sales", "notes", "TEXT"),
]


def ensure_schema(conn: sqlite3.Connection) -> None:
    # Create base schema (for new installs)
    conn.executescript(SCHEMA_SQL)

    # ---- migrations for existing installs ----
    for table, column, ddl in _ADDED_COLUMNS:
        if not _column_exists(conn, table, column):
            conn.execute(f"ALTER TABLE {table} ADD COLUMN {column} {ddl};")

    conn.commit()


@contextmanager
def transaction(conn: sqlite3.Connection) -> Iterator[sqlite3.Connection]:
    """All-or-nothing unit for multi-statement writes. Commit once, at the end."""
    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise


def q(conn: sqlite3.Connection, sql: str, params: Iterable[Any] = ()) -> list[sqlite3.Row]:
    cur = conn.execute(sql, tuple(params))
    rows = cur.fetchall()
    cur.close()
    return rows

