from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Iterable, Optional

import pandas as pd

from tracker.models import Batch, Sale
from tracker.services.inventory import active_sales_for_batch, unsold_value
from tracker.utils import signed_num


@dataclass(frozen=True)
class DashboardStats:
    total_revenue: float
    total_profit: float
    sale_count: int
    unsold_value: float


def dashboard_stats(batches: Iterable[Batch], sales: Iterable[Sale]) -> DashboardStats:
    """
    Headline figures. Revenue/profit come from the frozen per-sale values
    and leave out cancelled orders.
    """
    sales = list(sales)
    live = [s for s in sales if not s.is_cancelled]
    return DashboardStats(
        total_revenue=sum(signed_num(s.price) for s in live),
        total_profit=sum(signed_num(s.profit) for s in live),
        sale_count=len(live),
        unsold_value=unsold_value(batches, sales),
    )


def sales_trend(sales: Iterable[Sale], today: Optional[date] = None, days: int = 7) -> pd.DataFrame:
    """Daily revenue and profit for the last `days` days, oldest first, zero-filled."""
    today = today or date.today()
    index = [today - timedelta(days=days - 1 - i) for i in range(days)]
    frame = pd.DataFrame({"date": index, "revenue": 0.0, "profit": 0.0}).set_index("date")

    rows = [
        {"date": pd.to_datetime(s.date, errors="coerce"), "revenue": signed_num(s.price), "profit": signed_num(s.profit)}
        for s in sales
        if not s.is_cancelled
    ]
    if rows:
        df = pd.DataFrame(rows).dropna(subset=["date"])
        df["date"] = df["date"].dt.date
        daily = df.groupby("date")[["revenue", "profit"]].sum()
        frame.update(daily)

    frame = frame.reset_index()
    frame["label"] = [d.strftime("%b %d") for d in frame["date"]]
    return frame


def profit_by_batch(batches: Iterable[Batch], sales: Iterable[Sale], limit: int = 5) -> pd.DataFrame:
    sales = list(sales)
    rows = []
    for b in batches:
        profit = sum(signed_num(s.profit) for s in active_sales_for_batch(b.id, sales))
        if profit > 0:
            rows.append({"batch": b.name, "profit": round(profit, 2)})
    df = pd.DataFrame(rows, columns=["batch", "profit"])
    return df.sort_values("profit", ascending=False).head(limit).reset_index(drop=True)
