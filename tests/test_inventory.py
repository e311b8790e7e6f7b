"""Tests for stock reconciliation."""

from __future__ import annotations

from conftest import make_batch, make_sale

from tracker.services.inventory import batch_stock, inventory_summary, is_overselling, unsold_value


def test_sold_and_remaining():
    batch = make_batch(1, target_qty=100)
    sales = [make_sale(1, 1, 30), make_sale(2, 1, 20)]

    stock = batch_stock(batch, sales)

    assert stock.sold == 50
    assert stock.remaining == 50
    assert stock.progress == 50.0


def test_cancelled_sale_does_not_consume_stock():
    batch = make_batch(1, target_qty=100)
    sales = [make_sale(1, 1, 30), make_sale(2, 1, 20)]
    before = batch_stock(batch, sales)

    after = batch_stock(batch, sales + [make_sale(3, 1, 40, status="Cancelled")])

    assert (after.sold, after.remaining) == (before.sold, before.remaining)


def test_oversold_remaining_is_negative_and_progress_clamped():
    batch = make_batch(1, target_qty=10)
    sales = [make_sale(1, 1, 10), make_sale(2, 1, 5)]

    stock = batch_stock(batch, sales)

    assert stock.remaining == -5
    assert stock.progress == 100.0


def test_other_batches_ignored():
    batch = make_batch("abc", target_qty=10)
    sales = [make_sale(1, "abc", 2), make_sale(2, "xyz", 7), make_sale(3, None, 1)]
    assert batch_stock(batch, sales).sold == 2


def test_ids_compare_across_int_and_text():
    batch = make_batch(7, target_qty=10)
    assert batch_stock(batch, [make_sale(1, "7", 3)]).sold == 3


def test_excluding_the_sale_being_edited():
    batch = make_batch(1, target_qty=10)
    sales = [make_sale(1, 1, 4), make_sale(2, 1, 5)]

    stock = batch_stock(batch, sales, exclude_sale_id=2)

    assert stock.sold == 4
    assert stock.remaining == 6
    # raising sale 2 from 5 to 6 still fits, 7 does not
    assert not is_overselling(batch, sales, 6, exclude_sale_id=2)
    assert is_overselling(batch, sales, 7, exclude_sale_id=2)


def test_unsaved_batch_has_full_stock():
    batch = make_batch(None, target_qty=20)
    stock = batch_stock(batch, [make_sale(1, None, 5)])
    assert (stock.sold, stock.remaining, stock.progress) == (0, 20, 0.0)


def test_unsold_value_skips_oversold_batches():
    b1 = make_batch(1, target_qty=10, unit_cost=100.0)
    b2 = make_batch(2, target_qty=5, unit_cost=40.0)
    sales = [make_sale(1, 1, 4), make_sale(2, 2, 9), make_sale(3, 1, 6, status="Cancelled")]

    assert unsold_value([b1, b2], sales) == 600.0


def test_inventory_summary_frame():
    batches = [make_batch(1, target_qty=10, name="Kurti"), make_batch(2, target_qty=4, name="Dupatta")]
    sales = [make_sale(1, 1, 3), make_sale(2, 2, 6)]

    df = inventory_summary(batches, sales)

    assert list(df["batch"]) == ["Kurti", "Dupatta"]
    assert list(df["remaining"]) == [7, -2]
    assert list(df["oversold"]) == [False, True]


def test_inventory_summary_empty():
    df = inventory_summary([], [])
    assert df.empty
    assert "remaining" in df.columns


def test_low_stock_under_a_fifth_of_target():
    batch = make_batch(1, target_qty=100)

    assert not batch_stock(batch, [make_sale(1, 1, 80)]).low_stock
    assert batch_stock(batch, [make_sale(1, 1, 81)]).low_stock
    # oversold is also low
    assert batch_stock(batch, [make_sale(1, 1, 120)]).low_stock


def test_low_stock_ignores_cancelled_sales():
    batch = make_batch(1, target_qty=10)
    assert not batch_stock(batch, [make_sale(1, 1, 9, status="Cancelled")]).low_stock


def test_inventory_summary_flags_low_stock():
    batches = [make_batch(1, target_qty=10, name="Kurti"), make_batch(2, target_qty=10, name="Dupatta")]
    sales = [make_sale(1, 1, 9), make_sale(2, 2, 2)]

    df = inventory_summary(batches, sales)

    assert list(df["low_stock"]) == [True, False]
