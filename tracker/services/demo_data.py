from __future__ import annotations

import random
from datetime import date, timedelta

from tracker.logging import get_logger
from tracker.models import BATCHES, CREDIT, DEBIT, ENTITY_KINDS, PER_UNIT, SALE_STATUSES, CostComponent
from tracker.services.batches import build_batch, load_batches, save_batch
from tracker.services.costing import default_components
from tracker.services.ledger import build_entry, save_entry
from tracker.services.sales import build_sale, save_sale, suggested_base_amount
from tracker.stores.base import Store
from tracker.stores.local import LocalStore

logger = get_logger(__name__)

DEMO_BATCHES = [
    ("Summer Kurti Collection", 40),
    ("Festive Anarkali Set", 25),
    ("Cotton Dupatta Run", 60),
]
DEMO_CUSTOMERS = ["Asha", "Meera", "Ritu", "Kavya", "Pooja", "Sneha", "Divya"]
DEMO_COURIERS = ["DTDC", "SpeedPost", "Delhivery"]


def wipe_all(store: Store) -> None:
    if isinstance(store, LocalStore):
        store.clear()
        return
    # Cloud: no bulk delete, remove document by document.
    for kind in ENTITY_KINDS:
        for doc in store.list(kind):
            store.delete(kind, doc["id"])
    logger.info("store_wiped", store=store.name)


def load_demo_data(store: Store, *, seed: int = 7) -> None:
    random.seed(seed)
    today = date.today()

    for name, target in DEMO_BATCHES:
        costs = default_components()
        # a per-garment trim so both cost types show up
        costs.append(CostComponent(id="btn", name="Buttons", rate=4.0, qty=6.0, unit="pc", type=PER_UNIT))
        batch = build_batch(
            name=name,
            target_qty=target,
            costs=costs,
            margin_per_unit=random.choice([250.0, 300.0, 400.0]),
            category="Apparel",
        )
        save_batch(store, batch)

    batches = load_batches(store)
    for b in batches:
        for _ in range(random.randint(3, 6)):
            qty = random.randint(1, 5)
            discount = random.choice([0.0, 0.0, 50.0, 100.0])
            sale = build_sale(
                batches,
                batch_id=b.id,
                cust_name=random.choice(DEMO_CUSTOMERS),
                qty=qty,
                base_amount=suggested_base_amount(b, qty),
                discount=discount,
                date=(today - timedelta(days=random.randint(0, 6))).isoformat(),
                status=random.choice(SALE_STATUSES),
                courier=random.choice(DEMO_COURIERS),
            )
            save_sale(store, sale)

    save_entry(store, build_entry(description="Owner capital", amount=50000, type=CREDIT, category="Capital",
                                  date=(today - timedelta(days=10)).isoformat()))
    save_entry(store, build_entry(description="Sewing machine service", amount=1200, type=DEBIT,
                                  category="Equipment", date=(today - timedelta(days=5)).isoformat()))
    save_entry(store, build_entry(description="Instagram ads", amount=300, type=DEBIT, category="Marketing",
                                  date=(today - timedelta(days=2)).isoformat()))

    logger.info("demo_data_loaded", store=store.name, batches=len(store.list(BATCHES)))
