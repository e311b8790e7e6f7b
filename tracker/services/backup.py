from __future__ import annotations

import json
from datetime import date
from typing import Optional

from tracker.errors import ValidationError
from tracker.logging import get_logger
from tracker.models import BATCHES, EXPENSES, SALES
from tracker.services.migration import encode_attachment
from tracker.services.upgrades import CURRENT_VERSION, upgrade_backup
from tracker.stores.base import Store
from tracker.stores.local import LocalStore
from tracker.utils import data_url_to_bytes, iso_now

logger = get_logger(__name__)


def backup_filename(today: Optional[date] = None) -> str:
    today = today or date.today()
    return f"tracker-backup-{today.isoformat()}.json"


def export_backup(store: Store) -> dict:
    """
    Snapshot of the active store in the current backup format.
    Binary screenshots are written as data URLs; unreadable ones are left out.
    """
    sales = []
    for s in store.list(SALES):
        s = dict(s)
        try:
            s["paymentScreenshot"] = encode_attachment(s.get("paymentScreenshot"))
        except ValueError as e:
            logger.warning("attachment_dropped", sale_id=s.get("id"), error=str(e))
            s["paymentScreenshot"] = None
        sales.append(s)

    return {
        "batches": store.list(BATCHES),
        "sales": sales,
        "expenses": store.list(EXPENSES),
        "version": CURRENT_VERSION,
        "timestamp": iso_now(),
    }


def dumps_backup(payload: dict) -> str:
    return json.dumps(payload, indent=2, ensure_ascii=False)


def load_backup(text: str) -> dict:
    """Parse a backup file and upgrade it to the current version."""
    try:
        raw = json.loads(text)
    except ValueError as e:
        raise ValidationError(f"Not a valid backup file: {e}") from e
    return upgrade_backup(raw)


def _restore_attachment(sale: dict) -> dict:
    shot = sale.get("paymentScreenshot")
    if not shot or not isinstance(shot, str):
        return sale
    out = dict(sale)
    try:
        out["paymentScreenshot"] = data_url_to_bytes(shot)
    except ValueError as e:
        logger.warning("attachment_restore_failed", sale_id=sale.get("id"), error=str(e))
        out["paymentScreenshot"] = None
    return out


def import_backup(store: Store, payload: dict) -> dict[str, int]:
    """
    Overwrite the local store with an (already upgraded) backup.

    Screenshots are decoded before the write so the replace itself is one
    all-or-nothing transaction. Returns the batch id map used to relink sales.
    """
    if not isinstance(store, LocalStore):
        raise ValidationError("Backups can only be restored into the local store.")

    payload = upgrade_backup(payload)
    sales = [_restore_attachment(s) for s in payload["sales"]]
    id_map = store.replace_all(batches=payload["batches"], sales=sales, expenses=payload["expenses"])
    logger.info(
        "backup_imported",
        batches=len(payload["batches"]),
        sales=len(sales),
        expenses=len(payload["expenses"]),
    )
    return id_map
