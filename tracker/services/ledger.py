from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional

import pandas as pd

from tracker.errors import PersistenceError, ValidationError
from tracker.logging import get_logger
from tracker.models import CREDIT, DEBIT, EXPENSES, Identifier, LedgerEntry, normalize_ledger_type
from tracker.stores.base import Store
from tracker.utils import clean_text, iso_today, num

logger = get_logger(__name__)


@dataclass(frozen=True)
class LedgerTotals:
    total_credits: float
    total_debits: float
    balance: float


def aggregate(entries: Iterable[LedgerEntry]) -> LedgerTotals:
    credits = 0.0
    debits = 0.0
    for e in entries:
        if e.type == CREDIT:
            credits += num(e.amount)
        elif e.type == DEBIT:
            debits += num(e.amount)
    return LedgerTotals(total_credits=credits, total_debits=debits, balance=credits - debits)


def sort_entries(entries: Iterable[LedgerEntry]) -> list[LedgerEntry]:
    # ISO dates sort correctly as text; newest first.
    return sorted(entries, key=lambda e: e.date or "", reverse=True)


def load_entries(store: Store) -> list[LedgerEntry]:
    return [LedgerEntry.from_doc(d) for d in store.list(EXPENSES)]


def build_entry(
    *,
    description: str,
    amount,
    type: str = DEBIT,
    category: Optional[str] = "General",
    date: Optional[str] = None,
) -> LedgerEntry:
    description = clean_text(description)
    if not description:
        raise ValidationError("Please fill in description and amount.")
    if num(amount) <= 0:
        raise ValidationError("Amount must be greater than 0.")
    try:
        entry_type = normalize_ledger_type(type)
    except ValueError as e:
        raise ValidationError(str(e)) from e

    return LedgerEntry(
        date=clean_text(date) or iso_today(),
        description=description,
        amount=num(amount),
        type=entry_type,
        category=clean_text(category) or "General",
    )


def save_entry(store: Store, entry: LedgerEntry) -> Identifier:
    try:
        if entry.id is not None:
            store.update(EXPENSES, entry.id, entry.to_doc())
            logger.info("ledger_entry_saved", id=entry.id, type=entry.type, amount=entry.amount, mode="update")
            return entry.id
        new_id = store.create(EXPENSES, entry.to_doc())
    except PersistenceError:
        logger.exception("ledger_entry_save_failed", description=entry.description)
        raise
    logger.info("ledger_entry_saved", id=new_id, type=entry.type, amount=entry.amount, mode="create")
    return new_id


def delete_entry(store: Store, entry_id: Identifier) -> None:
    store.delete(EXPENSES, entry_id)
    logger.info("ledger_entry_deleted", id=entry_id)


def ledger_frame(entries: Iterable[LedgerEntry]) -> pd.DataFrame:
    rows = [
        {
            "entry_id": e.id,
            "date": e.date,
            "description": e.description,
            "category": e.category,
            "type": "Deposit" if e.type == CREDIT else "Expense",
            "amount": round(e.amount if e.type == CREDIT else -e.amount, 2),
        }
        for e in sort_entries(entries)
    ]
    return pd.DataFrame(rows, columns=["entry_id", "date", "description", "category", "type", "amount"])
