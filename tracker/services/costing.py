from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Optional

from tracker.models import FIXED, PER_UNIT, CostComponent
from tracker.utils import num

# Starter rows for a new batch. The first release had exactly these items as a
# fixed calculator form (inputs p_<id> / q_<id>), all billed per batch.
DEFAULT_COST_TEMPLATE = [
    {"id": "mat", "name": "Material Fabric", "rate": 179.0, "qty": 45.0, "unit": "m", "type": FIXED},
    {"id": "lin", "name": "Lining", "rate": 70.0, "qty": 40.0, "unit": "m", "type": FIXED},
    {"id": "mship", "name": "Material Shipping", "rate": 350.0, "qty": 1.0, "unit": "trip", "type": FIXED},
    {"id": "vship", "name": "Vendor Shipping", "rate": 100.0, "qty": 10.0, "unit": "pc", "type": FIXED},
    {"id": "stitch", "name": "Stitching", "rate": 550.0, "qty": 10.0, "unit": "pc", "type": FIXED},
    {"id": "pack", "name": "Packaging", "rate": 10.0, "qty": 10.0, "unit": "pc", "type": FIXED},
    {"id": "cship", "name": "Customer Shipment", "rate": 200.0, "qty": 10.0, "unit": "pc", "type": FIXED},
]

# In the first release the stitching quantity doubled as the production target.
LEGACY_TARGET_KEY = "q_stitch"


@dataclass(frozen=True)
class Costing:
    target_qty: int
    grand_total: float
    unit_cost: float
    selling_price: float


def effective_target_qty(target_qty: Any) -> int:
    """Zero, negative, missing or junk targets count as 1 (never divide by zero)."""
    t = int(num(target_qty))
    return t if t >= 1 else 1


def line_total(component: CostComponent, target_qty: Any) -> float:
    """
    FIXED    -> rate x qty              (bulk buy, e.g. 100 m of fabric)
    PER_UNIT -> rate x qty x target_qty (e.g. 5 buttons on every garment)
    """
    base = num(component.rate) * num(component.qty)
    if component.type == PER_UNIT:
        return base * effective_target_qty(target_qty)
    return base


def compute_costing(
    costs: Iterable[CostComponent],
    target_qty: Any,
    margin_per_unit: Optional[Any] = 0.0,
) -> Costing:
    target = effective_target_qty(target_qty)
    grand_total = sum(line_total(c, target) for c in costs)
    unit_cost = grand_total / target
    return Costing(
        target_qty=target,
        grand_total=float(grand_total),
        unit_cost=float(unit_cost),
        selling_price=float(unit_cost + num(margin_per_unit)),
    )


def is_empty_component(component: CostComponent) -> bool:
    return num(component.rate) == 0 and num(component.qty) == 0


def prune_empty_components(costs: Iterable[CostComponent]) -> list[CostComponent]:
    return [c for c in costs if not is_empty_component(c)]


def default_components() -> list[CostComponent]:
    return [CostComponent.from_doc(d) for d in DEFAULT_COST_TEMPLATE]


def legacy_inputs_to_costs(inputs: Optional[dict]) -> list[CostComponent]:
    """
    Convert a first-release calculator map ({"p_mat": 179, "q_mat": 45, ...})
    into FIXED cost components. Unknown item ids keep their id as the name.
    """
    if not inputs:
        return []
    labels = {d["id"]: (d["name"], d["unit"]) for d in DEFAULT_COST_TEMPLATE}

    item_ids: list[str] = []
    for key in inputs:
        if len(key) > 2 and key[:2] in ("p_", "q_") and key[2:] not in item_ids:
            item_ids.append(key[2:])

    # catalogue order first, then anything extra in the order it appeared
    ordered = [i for i in labels if i in item_ids] + [i for i in item_ids if i not in labels]

    out: list[CostComponent] = []
    for item_id in ordered:
        name, unit = labels.get(item_id, (item_id, ""))
        out.append(
            CostComponent(
                id=item_id,
                name=name,
                rate=num(inputs.get(f"p_{item_id}")),
                qty=num(inputs.get(f"q_{item_id}")),
                unit=unit,
                type=FIXED,
            )
        )
    return out


def legacy_target_qty(inputs: Optional[dict]) -> int:
    return effective_target_qty((inputs or {}).get(LEGACY_TARGET_KEY))
