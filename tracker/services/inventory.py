from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional

import pandas as pd

from tracker.models import Batch, Identifier, Sale
from tracker.utils import num, safe_div


# Below this share of the target still on hand a batch is flagged as running low.
LOW_STOCK_FRACTION = 0.2


@dataclass(frozen=True)
class StockLevel:
    sold: int
    remaining: int
    progress: float
    low_stock: bool = False


def _same_id(a: Optional[Identifier], b: Optional[Identifier]) -> bool:
    return a is not None and b is not None and str(a) == str(b)


def active_sales_for_batch(
    batch_id: Optional[Identifier],
    sales: Iterable[Sale],
    *,
    exclude_sale_id: Optional[Identifier] = None,
) -> list[Sale]:
    return [
        s
        for s in sales
        if _same_id(s.batch_id, batch_id)
        and not s.is_cancelled
        and not (exclude_sale_id is not None and _same_id(s.id, exclude_sale_id))
    ]


def batch_stock(
    batch: Batch,
    sales: Iterable[Sale],
    *,
    exclude_sale_id: Optional[Identifier] = None,
) -> StockLevel:
    """
    Stock for one batch from the full list of sales.

    Cancelled sales do not consume stock. `exclude_sale_id` leaves out the
    sale being edited so its old quantity is not counted against the new one.
    `remaining` goes negative when oversold; only `progress` is clamped.
    `low_stock` is set once less than a fifth of the target is left
    (oversold batches included).
    """
    target = int(num(batch.target_qty))
    if batch.id is None:
        return StockLevel(sold=0, remaining=target, progress=0.0)

    sold = sum(int(num(s.qty)) for s in active_sales_for_batch(batch.id, sales, exclude_sale_id=exclude_sale_id))
    progress = min(safe_div(sold, target) * 100.0, 100.0)
    remaining = target - sold
    return StockLevel(
        sold=sold,
        remaining=remaining,
        progress=max(progress, 0.0),
        low_stock=remaining < target * LOW_STOCK_FRACTION,
    )


def is_overselling(
    batch: Batch,
    sales: Iterable[Sale],
    qty: int,
    *,
    exclude_sale_id: Optional[Identifier] = None,
) -> bool:
    stock = batch_stock(batch, sales, exclude_sale_id=exclude_sale_id)
    return stock.remaining < int(num(qty))


def unsold_value(batches: Iterable[Batch], sales: Iterable[Sale]) -> float:
    """Value of stock still on hand at unit cost (oversold batches count as zero)."""
    sales = list(sales)
    total = 0.0
    for b in batches:
        stock = batch_stock(b, sales)
        if stock.remaining > 0:
            total += stock.remaining * num(b.unit_cost)
    return total


def inventory_summary(batches: Iterable[Batch], sales: Iterable[Sale]) -> pd.DataFrame:
    sales = list(sales)
    rows = []
    for b in batches:
        stock = batch_stock(b, sales)
        rows.append(
            {
                "batch_id": b.id,
                "batch": b.name,
                "target_qty": int(b.target_qty),
                "sold": stock.sold,
                "remaining": stock.remaining,
                "progress_pct": round(stock.progress, 1),
                "unit_cost": round(num(b.unit_cost), 2),
                "selling_price": round(num(b.selling_price), 2),
                "grand_total": round(num(b.grand_total), 2),
                "low_stock": stock.low_stock,
                "oversold": stock.remaining < 0,
            }
        )
    columns = [
        "batch_id",
        "batch",
        "target_qty",
        "sold",
        "remaining",
        "progress_pct",
        "unit_cost",
        "selling_price",
        "grand_total",
        "low_stock",
        "oversold",
    ]
    return pd.DataFrame(rows, columns=columns)
