from __future__ import annotations

from tracker.models import BATCHES, ENTITY_KINDS, EXPENSES, SALES
from tracker.services.demo_data import DEMO_BATCHES, load_demo_data, wipe_all
from tracker.services.batches import load_batches
from tracker.services.ledger import aggregate, load_entries


def test_demo_data_local(local_store):
    load_demo_data(local_store)

    batches = load_batches(local_store)
    assert len(batches) == len(DEMO_BATCHES)
    assert all(b.unit_cost > 0 and b.selling_price > b.unit_cost for b in batches)
    assert all(any(c.type == "PER_UNIT" for c in b.costs) for b in batches)
    assert local_store.list(SALES)
    assert aggregate(load_entries(local_store)).balance == 50000 - 1200 - 300


def test_demo_data_is_repeatable(local_store, cloud_store):
    load_demo_data(local_store, seed=3)
    load_demo_data(cloud_store, seed=3)

    local_prices = [b.selling_price for b in load_batches(local_store)]
    cloud_prices = [b.selling_price for b in load_batches(cloud_store)]
    assert local_prices == cloud_prices
    assert len(local_store.list(SALES)) == len(cloud_store.list(SALES))


def test_wipe_all(local_store, cloud_store):
    for store in (local_store, cloud_store):
        load_demo_data(store)
        wipe_all(store)
        assert all(store.list(kind) == [] for kind in ENTITY_KINDS)


def test_wipe_empty_store(cloud_store):
    wipe_all(cloud_store)
    assert cloud_store.list(BATCHES) == [] and cloud_store.list(EXPENSES) == []
