from __future__ import annotations

import uuid
from typing import Iterable, Optional

from tracker.errors import PersistenceError, ValidationError
from tracker.logging import get_logger
from tracker.models import BATCHES, Batch, CostComponent, Identifier, normalize_cost_type
from tracker.services.costing import compute_costing, prune_empty_components
from tracker.services.upgrades import upgrade_batch_doc
from tracker.stores.base import Store
from tracker.utils import clean_text, num

logger = get_logger(__name__)


def new_component_id() -> str:
    return uuid.uuid4().hex[:8]


def load_batches(store: Store) -> list[Batch]:
    return [Batch.from_doc(upgrade_batch_doc(d)) for d in store.list(BATCHES)]


def find_batch(batches: Iterable[Batch], batch_id: Optional[Identifier]) -> Optional[Batch]:
    """
    Weak lookup: local ids are ints, cloud ids are strings, and form widgets
    hand back text, so ids are compared as strings. A miss returns None.
    """
    if batch_id is None or batch_id == "":
        return None
    key = str(batch_id)
    for b in batches:
        if b.id is not None and str(b.id) == key:
            return b
    return None


def components_from_rows(rows: Iterable[dict]) -> list[CostComponent]:
    """Editor rows ({name, rate, qty, unit, type}) -> components with stable ids."""
    out: list[CostComponent] = []
    for r in rows:
        name = clean_text(r.get("name"))
        if not name and num(r.get("rate")) == 0 and num(r.get("qty")) == 0:
            continue
        out.append(
            CostComponent(
                id=clean_text(r.get("id")) or new_component_id(),
                name=name or "Unnamed cost",
                rate=num(r.get("rate")),
                qty=num(r.get("qty")),
                unit=clean_text(r.get("unit")),
                type=normalize_cost_type(r.get("type")),
            )
        )
    return out


def build_batch(
    *,
    name: str,
    target_qty,
    costs: list[CostComponent],
    margin_per_unit=0.0,
    is_public: bool = False,
    public_name: Optional[str] = None,
    description: Optional[str] = None,
    category: Optional[str] = None,
    batch_id: Optional[Identifier] = None,
) -> Batch:
    """
    Validate the editor state and rebuild every derived figure from the
    components. Nothing derived is taken from the caller.
    """
    name = clean_text(name)
    if not name:
        raise ValidationError("Please enter a batch name.")

    kept = prune_empty_components(costs)
    costing = compute_costing(kept, target_qty, margin_per_unit)
    if costing.grand_total <= 0:
        raise ValidationError("Batch has no cost. Enter at least one cost component with a rate and quantity.")

    return Batch(
        id=batch_id,
        name=name,
        target_qty=costing.target_qty,
        costs=kept,
        grand_total=costing.grand_total,
        unit_cost=costing.unit_cost,
        margin_per_unit=num(margin_per_unit),
        selling_price=costing.selling_price,
        is_public=bool(is_public),
        public_name=clean_text(public_name) or None,
        description=clean_text(description) or None,
        category=clean_text(category) or None,
    )


def save_batch(store: Store, batch: Batch) -> Identifier:
    """Create, or fully replace the cost breakdown of, a batch."""
    doc = batch.to_doc()
    try:
        if batch.id is not None:
            store.update(BATCHES, batch.id, doc)
            logger.info("batch_saved", id=batch.id, unit_cost=round(batch.unit_cost, 2), mode="update")
            return batch.id
        new_id = store.create(BATCHES, doc)
    except PersistenceError:
        logger.exception("batch_save_failed", name=batch.name)
        raise
    logger.info("batch_saved", id=new_id, unit_cost=round(batch.unit_cost, 2), mode="create")
    return new_id


def delete_batch(store: Store, batch_id: Identifier) -> None:
    # Sales keep their batchId and will show as "Unknown Batch".
    store.delete(BATCHES, batch_id)
    logger.info("batch_deleted", id=batch_id)


def search_batches(batches: Iterable[Batch], term: Optional[str]) -> list[Batch]:
    t = clean_text(term).lower()
    if not t:
        return list(batches)
    return [b for b in batches if t in b.name.lower()]
