"""
Record and backup upgrades, run once when data is loaded.

Schema history:
  v1  local store only. Batches carry calculator `inputs` instead of `costs`,
      no margin/selling price, sales have no discount/courier/address,
      no ledger.
  v2  costs list, margin + selling price, storefront fields, extra sale
      fields, `expenses` collection.
"""

from __future__ import annotations

from typing import Callable

from tracker.errors import ValidationError
from tracker.models import CostComponent, normalize_status
from tracker.services.costing import (
    LEGACY_TARGET_KEY,
    compute_costing,
    legacy_inputs_to_costs,
    legacy_target_qty,
)

CURRENT_VERSION = 2


def upgrade_batch_doc(doc: dict) -> dict:
    out = dict(doc)
    if not out.get("costs") and out.get("inputs"):
        out["costs"] = [c.to_doc() for c in legacy_inputs_to_costs(out["inputs"])]
        # the calculator had no target field; its stitching quantity was the target
        if out["inputs"].get(LEGACY_TARGET_KEY) or not out.get("targetQty"):
            out["targetQty"] = legacy_target_qty(out["inputs"])
    out.setdefault("costs", [])
    for key in ("marginPerUnit", "sellingPrice"):
        if out.get(key) is None:
            out[key] = 0.0
    out.setdefault("isPublic", False)

    # Stored totals are a cache; the components are the truth.
    if out["costs"]:
        costing = compute_costing(
            [CostComponent.from_doc(c) for c in out["costs"]],
            out.get("targetQty"),
            out.get("marginPerUnit"),
        )
        out["grandTotal"] = costing.grand_total
        out["unitCost"] = costing.unit_cost
        out["sellingPrice"] = costing.selling_price
    return out


def upgrade_sale_doc(doc: dict) -> dict:
    out = dict(doc)
    if out.get("discount") is None:
        out["discount"] = 0.0
    if not out.get("custAddress") and out.get("custDetail"):
        out["custAddress"] = out["custDetail"]
    out.pop("custDetail", None)
    out["status"] = normalize_status(out.get("status"))
    return out


def _v1_to_v2(payload: dict) -> dict:
    out = dict(payload)
    out["batches"] = [upgrade_batch_doc(b) for b in payload.get("batches") or []]
    out["sales"] = [upgrade_sale_doc(s) for s in payload.get("sales") or []]
    out["expenses"] = list(payload.get("expenses") or [])
    out["version"] = 2
    return out


_UPGRADES: dict[int, Callable[[dict], dict]] = {
    1: _v1_to_v2,
}


def upgrade_backup(payload: dict) -> dict:
    if not isinstance(payload, dict):
        raise ValidationError("Backup file must contain a JSON object.")
    try:
        version = int(payload.get("version") or 1)
    except (TypeError, ValueError):
        raise ValidationError(f"Unreadable backup version: {payload.get('version')!r}")
    if version > CURRENT_VERSION:
        raise ValidationError(f"Backup version {version} is newer than this app supports ({CURRENT_VERSION}).")

    while version < CURRENT_VERSION:
        payload = _UPGRADES[version](payload)
        version = int(payload["version"])

    # Same-version files still get field defaults filled in.
    payload = dict(payload)
    payload["batches"] = [upgrade_batch_doc(b) for b in payload.get("batches") or []]
    payload["sales"] = [upgrade_sale_doc(s) for s in payload.get("sales") or []]
    payload["expenses"] = list(payload.get("expenses") or [])
    return payload
