"""
One-shot copy of the local store into the cloud store.

Local ids are small integers; the cloud store assigns its own string ids.
Batches go first and fill a translation table (old id -> new id) that every
sale's batchId is rewritten through. The run is not atomic: if it stops
partway, records already written stay in the cloud store.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from tracker.errors import MigrationError
from tracker.logging import get_logger
from tracker.models import BATCHES, EXPENSES, SALES, UNKNOWN_LEGACY_BATCH, Identifier
from tracker.services.upgrades import upgrade_batch_doc, upgrade_sale_doc
from tracker.stores.base import Store
from tracker.utils import bytes_to_data_url, data_url_to_bytes

logger = get_logger(__name__)

LEGACY_ID_FIELD = "legacyId"
MIGRATED_FIELD = "migrated"


@dataclass
class MigrationReport:
    batches_created: int = 0
    sales_created: int = 0
    expenses_created: int = 0
    batches_skipped: int = 0
    sales_skipped: int = 0
    expenses_skipped: int = 0
    attachments_dropped: int = 0
    # old local id (as text) -> new cloud id
    id_map: dict[str, Identifier] = field(default_factory=dict)
    # local ids of sales whose batch could not be resolved
    unresolved_sales: list[Identifier] = field(default_factory=list)

    @property
    def total_created(self) -> int:
        return self.batches_created + self.sales_created + self.expenses_created


def encode_attachment(value) -> Optional[str]:
    """
    Binary attachment -> data URL. Text is validated and passed through.
    Raises ValueError when the payload cannot be read.
    """
    if value is None or value == b"" or value == "":
        return None
    if isinstance(value, memoryview):
        value = value.tobytes()
    if isinstance(value, (bytes, bytearray)):
        return bytes_to_data_url(bytes(value))
    if isinstance(value, str):
        if value.startswith(("http://", "https://")):
            return value
        raw = data_url_to_bytes(value)
        return value if value.startswith("data:") else bytes_to_data_url(raw)
    raise ValueError(f"Unsupported attachment type: {type(value).__name__}")


def _strip_id(doc: dict) -> tuple[Optional[Identifier], dict]:
    out = dict(doc)
    old_id = out.pop("id", None)
    return old_id, out


def _already_migrated(cloud: Store, kind: str) -> dict[str, Identifier]:
    found: dict[str, Identifier] = {}
    for d in cloud.list(kind):
        if d.get(MIGRATED_FIELD) and d.get(LEGACY_ID_FIELD) is not None:
            found[str(d[LEGACY_ID_FIELD])] = d["id"]
    return found


def migrate_local_to_cloud(local: Store, cloud: Store, *, skip_migrated: bool = False) -> MigrationReport:
    """
    Copy batches, then sales, then ledger entries from `local` to `cloud`.

    Every created record is tagged with `legacyId` and `migrated`. With
    skip_migrated=False (the historical behaviour) nothing checks those tags,
    so a second run duplicates everything. With skip_migrated=True, records
    whose legacyId is already in the cloud are skipped and their existing
    cloud id is reused for the batch translation table.

    A sale whose batch was never migrated gets batchId UNKNOWN_LEGACY_BATCH.
    An unreadable attachment is dropped and logged. Any other failure stops
    the run with a MigrationError carrying the partial report.
    """
    report = MigrationReport()
    log = logger.bind(skip_migrated=skip_migrated)
    log.info("migration_started")

    try:
        done_batches = _already_migrated(cloud, BATCHES) if skip_migrated else {}
        done_sales = _already_migrated(cloud, SALES) if skip_migrated else {}
        done_expenses = _already_migrated(cloud, EXPENSES) if skip_migrated else {}

        # 1) batches -> translation table
        for doc in local.list(BATCHES):
            old_id, body = _strip_id(doc)
            key = str(old_id)
            if key in done_batches:
                report.id_map[key] = done_batches[key]
                report.batches_skipped += 1
                continue

            body = upgrade_batch_doc(body)
            body.pop("inputs", None)
            body[LEGACY_ID_FIELD] = old_id
            body[MIGRATED_FIELD] = True
            report.id_map[key] = cloud.create(BATCHES, body)
            report.batches_created += 1

        # 2) sales, batchId resolved through the table
        for doc in local.list(SALES):
            old_id, body = _strip_id(doc)
            if str(old_id) in done_sales:
                report.sales_skipped += 1
                continue

            body = upgrade_sale_doc(body)
            new_batch_id = report.id_map.get(str(body.get("batchId")))
            if new_batch_id is None:
                report.unresolved_sales.append(old_id)
                log.warning("sale_batch_unresolved", sale_id=old_id, batch_id=body.get("batchId"))
                new_batch_id = UNKNOWN_LEGACY_BATCH
            body["batchId"] = new_batch_id

            try:
                body["paymentScreenshot"] = encode_attachment(body.get("paymentScreenshot"))
            except ValueError as e:
                log.warning("attachment_dropped", sale_id=old_id, error=str(e))
                body["paymentScreenshot"] = None
                report.attachments_dropped += 1

            body[LEGACY_ID_FIELD] = old_id
            body[MIGRATED_FIELD] = True
            cloud.create(SALES, body)
            report.sales_created += 1

        # 3) ledger entries carry no references
        for doc in local.list(EXPENSES):
            old_id, body = _strip_id(doc)
            if str(old_id) in done_expenses:
                report.expenses_skipped += 1
                continue
            body[LEGACY_ID_FIELD] = old_id
            body[MIGRATED_FIELD] = True
            cloud.create(EXPENSES, body)
            report.expenses_created += 1

    except Exception as e:
        log.exception("migration_failed", created=report.total_created)
        raise MigrationError(
            f"Migration stopped after {report.total_created} record(s) were copied: {e}",
            report=report,
        ) from e

    log.info(
        "migration_finished",
        batches=report.batches_created,
        sales=report.sales_created,
        expenses=report.expenses_created,
        skipped=report.batches_skipped + report.sales_skipped + report.expenses_skipped,
        unresolved=len(report.unresolved_sales),
    )
    return report
