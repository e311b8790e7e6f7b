"""Tests for copying the local store into the cloud store."""

from __future__ import annotations

import pytest
from conftest import FakeCloudStore, seed_local_batch

from tracker.errors import MigrationError
from tracker.models import BATCHES, EXPENSES, SALES, UNKNOWN_LEGACY_BATCH
from tracker.services.batches import build_batch, save_batch
from tracker.services.ledger import build_entry, save_entry
from tracker.services.migration import encode_attachment, migrate_local_to_cloud
from tracker.services.sales import build_sale, save_sale


def _batch_with_id(local_store, batch_id, fabric, name="Kurti"):
    return seed_local_batch(local_store, batch_id, build_batch(name=name, target_qty=10, costs=[fabric]).to_doc())


def _sale(local_store, batch_id, **kwargs):
    sale = build_sale([], batch_id=batch_id, cust_name="Asha", qty=1, base_amount=100, **kwargs)
    return save_sale(local_store, sale)


def test_sale_follows_its_batch_to_the_new_id(local_store, cloud_store, fabric):
    _batch_with_id(local_store, 7, fabric)
    _sale(local_store, 7)

    report = migrate_local_to_cloud(local_store, cloud_store)

    new_id = report.id_map["7"]
    assert isinstance(new_id, str)
    (sale,) = cloud_store.list(SALES)
    assert sale["batchId"] == new_id
    (batch,) = cloud_store.list(BATCHES)
    assert batch["id"] == new_id
    assert batch["legacyId"] == 7
    assert batch["migrated"] is True
    assert batch["costs"][0]["name"] == "Fabric"


def test_missing_batch_gets_sentinel(local_store, cloud_store):
    sale_id = _sale(local_store, 99)

    report = migrate_local_to_cloud(local_store, cloud_store)

    assert cloud_store.list(SALES)[0]["batchId"] == UNKNOWN_LEGACY_BATCH
    assert report.unresolved_sales == [sale_id]


def test_counts_and_ledger(local_store, cloud_store, fabric):
    save_batch(local_store, build_batch(name="A", target_qty=5, costs=[fabric]))
    save_entry(local_store, build_entry(description="Capital", amount=1000, type="CREDIT"))

    report = migrate_local_to_cloud(local_store, cloud_store)

    assert (report.batches_created, report.sales_created, report.expenses_created) == (1, 0, 1)
    assert report.total_created == 2
    assert cloud_store.list(EXPENSES)[0]["description"] == "Capital"


def test_calculator_era_batch_is_upgraded_on_the_way(local_store, cloud_store):
    seed_local_batch(
        local_store,
        3,
        {"name": "Old run", "inputs": {"p_mat": 100, "q_mat": 10, "q_stitch": 5}, "grandTotal": 0, "unitCost": 0},
    )
    _sale(local_store, 3)

    report = migrate_local_to_cloud(local_store, cloud_store)

    (batch,) = cloud_store.list(BATCHES)
    assert "inputs" not in batch
    assert [(c["name"], c["rate"], c["qty"], c["type"]) for c in batch["costs"]] == [
        ("Material Fabric", 100.0, 10.0, "FIXED"),
        ("Stitching", 0.0, 5.0, "FIXED"),
    ]
    assert batch["targetQty"] == 5
    assert batch["grandTotal"] == 1000.0
    assert batch["unitCost"] == 200.0
    assert batch["marginPerUnit"] == 0.0
    assert batch["isPublic"] is False
    assert cloud_store.list(SALES)[0]["batchId"] == report.id_map["3"]


def test_stale_totals_are_not_carried_over(local_store, cloud_store, fabric):
    doc = build_batch(name="Kurti", target_qty=10, costs=[fabric]).to_doc()
    doc.update(grandTotal=1.0, unitCost=999.0, sellingPrice=999.0)
    seed_local_batch(local_store, 1, doc)

    migrate_local_to_cloud(local_store, cloud_store)

    (batch,) = cloud_store.list(BATCHES)
    assert (batch["grandTotal"], batch["unitCost"], batch["sellingPrice"]) == (5000.0, 500.0, 500.0)


def test_second_run_duplicates_by_default(local_store, cloud_store, fabric):
    _batch_with_id(local_store, 1, fabric)
    _sale(local_store, 1)

    migrate_local_to_cloud(local_store, cloud_store)
    migrate_local_to_cloud(local_store, cloud_store)

    assert len(cloud_store.list(BATCHES)) == 2
    assert len(cloud_store.list(SALES)) == 2


def test_skip_migrated_makes_rerun_a_no_op(local_store, cloud_store, fabric):
    _batch_with_id(local_store, 1, fabric)
    _sale(local_store, 1)

    first = migrate_local_to_cloud(local_store, cloud_store, skip_migrated=True)
    second = migrate_local_to_cloud(local_store, cloud_store, skip_migrated=True)

    assert second.total_created == 0
    assert (second.batches_skipped, second.sales_skipped) == (1, 1)
    assert second.id_map == first.id_map
    assert len(cloud_store.list(BATCHES)) == 1


def test_skip_migrated_relinks_new_sales_to_existing_batch(local_store, cloud_store, fabric):
    _batch_with_id(local_store, 1, fabric)
    first = migrate_local_to_cloud(local_store, cloud_store, skip_migrated=True)

    _sale(local_store, 1)
    migrate_local_to_cloud(local_store, cloud_store, skip_migrated=True)

    assert cloud_store.list(SALES)[0]["batchId"] == first.id_map["1"]


def test_screenshot_is_encoded(local_store, cloud_store, png_bytes):
    _sale(local_store, 1, payment_screenshot=png_bytes)

    migrate_local_to_cloud(local_store, cloud_store)

    assert cloud_store.list(SALES)[0]["paymentScreenshot"].startswith("data:image/png;base64,")


def test_unreadable_screenshot_is_dropped(local_store, cloud_store):
    _sale(local_store, 1, payment_screenshot="%%% not base64 %%%")

    report = migrate_local_to_cloud(local_store, cloud_store)

    assert report.attachments_dropped == 1
    assert report.sales_created == 1
    assert cloud_store.list(SALES)[0]["paymentScreenshot"] is None


def test_failure_keeps_partial_report(local_store, fabric):
    cloud = FakeCloudStore(fail_on_create=2)
    _batch_with_id(local_store, 1, fabric, name="A")
    _batch_with_id(local_store, 2, fabric, name="B")

    with pytest.raises(MigrationError) as exc_info:
        migrate_local_to_cloud(local_store, cloud)

    report = exc_info.value.report
    assert report.batches_created == 1
    assert list(report.id_map) == ["1"]
    # already-written records are not rolled back
    assert len(cloud.list(BATCHES)) == 1


class TestEncodeAttachment:
    def test_bytes(self, png_bytes):
        assert encode_attachment(png_bytes).startswith("data:image/png;base64,")

    def test_memoryview(self, png_bytes):
        assert encode_attachment(memoryview(png_bytes)) == encode_attachment(png_bytes)

    def test_data_url_passes_through(self, png_bytes):
        url = encode_attachment(png_bytes)
        assert encode_attachment(url) == url

    def test_remote_url_passes_through(self):
        assert encode_attachment("https://example.com/p.png") == "https://example.com/p.png"

    def test_empty(self):
        assert encode_attachment(None) is None
        assert encode_attachment(b"") is None

    def test_garbage_raises(self):
        with pytest.raises(ValueError):
            encode_attachment("%%%")
