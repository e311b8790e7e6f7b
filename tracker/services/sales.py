from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional, Union

import pandas as pd

from tracker.errors import PersistenceError, ValidationError
from tracker.logging import get_logger
from tracker.models import (
    SALE_STATUSES,
    SALES,
    UNKNOWN_BATCH_NAME,
    Batch,
    Identifier,
    Sale,
)
from tracker.services.batches import find_batch
from tracker.services.upgrades import upgrade_sale_doc
from tracker.stores.base import Store
from tracker.utils import bytes_to_data_url, clean_text, iso_today, num, signed_num

logger = get_logger(__name__)

# Suggested price when a batch has no selling price of its own.
DEFAULT_MARKUP = 1.5


@dataclass(frozen=True)
class SaleEconomics:
    net_price: float
    profit: float


def sale_economics(base_amount, discount, qty, unit_cost) -> SaleEconomics:
    """
    net   = billed amount - discount
    profit = net - unit_cost x qty   (may be negative)
    """
    net_price = num(base_amount) - num(discount)
    profit = net_price - num(unit_cost) * num(qty)
    return SaleEconomics(net_price=float(net_price), profit=float(profit))


def suggested_base_amount(batch: Optional[Batch], qty) -> float:
    # UI suggestion only; whatever the user saves wins.
    if batch is None:
        return 0.0
    unit_price = num(batch.selling_price) or num(batch.unit_cost) * DEFAULT_MARKUP
    return round(unit_price * num(qty), 2)


def restore_base_amount(sale: Sale) -> float:
    """Billed amount before discount, for re-opening a saved sale."""
    return signed_num(sale.price) + num(sale.discount)


def batch_name(batches: Iterable[Batch], batch_id: Optional[Identifier]) -> str:
    b = find_batch(batches, batch_id)
    return b.name if b is not None else UNKNOWN_BATCH_NAME


def batch_unit_cost(batches: Iterable[Batch], batch_id: Optional[Identifier]) -> float:
    b = find_batch(batches, batch_id)
    return num(b.unit_cost) if b is not None else 0.0


def load_sales(store: Store) -> list[Sale]:
    return [Sale.from_doc(upgrade_sale_doc(d)) for d in store.list(SALES)]


def build_sale(
    batches: Iterable[Batch],
    *,
    batch_id: Optional[Identifier],
    cust_name: str,
    qty,
    base_amount,
    discount=0.0,
    date: Optional[str] = None,
    status: str = "New",
    cust_phone: Optional[str] = None,
    cust_address: Optional[str] = None,
    courier: Optional[str] = None,
    tracking_number: Optional[str] = None,
    notes: Optional[str] = None,
    payment_screenshot: Optional[Union[bytes, str]] = None,
    ship_order_id: Optional[str] = None,
    sale_id: Optional[Identifier] = None,
) -> Sale:
    """
    Validate the form and freeze price/profit using the batch's unit cost
    right now. Later edits to the batch never touch this sale.
    """
    if batch_id is None or clean_text(str(batch_id)) == "":
        raise ValidationError("Please select a batch.")
    if not clean_text(cust_name):
        raise ValidationError("Please enter the customer name.")
    if num(base_amount) <= 0:
        raise ValidationError("Please enter the billed amount.")
    if int(num(qty)) < 1:
        raise ValidationError("Quantity must be at least 1.")
    if status not in SALE_STATUSES:
        raise ValidationError(f"Invalid status '{status}'. Use one of: {', '.join(SALE_STATUSES)}.")

    # A dangling batch id is allowed (zero cost), it is only a lookup.
    unit_cost = batch_unit_cost(batches, batch_id)
    econ = sale_economics(base_amount, discount, int(num(qty)), unit_cost)

    return Sale(
        id=sale_id,
        batch_id=batch_id,
        date=clean_text(date) or iso_today(),
        cust_name=clean_text(cust_name),
        cust_phone=clean_text(cust_phone) or None,
        cust_address=clean_text(cust_address) or None,
        ship_order_id=clean_text(ship_order_id) or None,
        status=status,
        qty=int(num(qty)),
        price=econ.net_price,
        discount=num(discount),
        profit=econ.profit,
        courier=clean_text(courier) or None,
        tracking_number=clean_text(tracking_number) or None,
        payment_screenshot=payment_screenshot or None,
        notes=clean_text(notes) or None,
    )


def _doc_for_store(store: Store, sale: Sale) -> dict:
    doc = sale.to_doc()
    shot = doc.get("paymentScreenshot")
    if isinstance(shot, (bytes, bytearray)) and not store.supports_binary:
        doc["paymentScreenshot"] = bytes_to_data_url(bytes(shot))
    return doc


def save_sale(store: Store, sale: Sale) -> Identifier:
    doc = _doc_for_store(store, sale)
    try:
        if sale.id is not None:
            store.update(SALES, sale.id, doc)
            logger.info("sale_saved", id=sale.id, batch_id=sale.batch_id, qty=sale.qty, mode="update")
            return sale.id
        new_id = store.create(SALES, doc)
    except PersistenceError:
        logger.exception("sale_save_failed", batch_id=sale.batch_id)
        raise
    logger.info("sale_saved", id=new_id, batch_id=sale.batch_id, qty=sale.qty, mode="create")
    return new_id


def delete_sale(store: Store, sale_id: Identifier) -> None:
    store.delete(SALES, sale_id)
    logger.info("sale_deleted", id=sale_id)


def update_status(store: Store, sale_id: Identifier, status: str) -> None:
    if status not in SALE_STATUSES:
        raise ValidationError(f"Invalid status '{status}'.")
    store.update(SALES, sale_id, {"status": status})


def search_sales(sales: Iterable[Sale], term: Optional[str]) -> list[Sale]:
    """Case-insensitive match on customer name or status."""
    t = clean_text(term).lower()
    if not t:
        return list(sales)
    return [s for s in sales if t in s.cust_name.lower() or t in s.status.lower()]


def sales_frame(sales: Iterable[Sale], batches: Iterable[Batch]) -> pd.DataFrame:
    batches = list(batches)
    rows = [
        {
            "sale_id": s.id,
            "date": s.date,
            "batch": batch_name(batches, s.batch_id),
            "customer": s.cust_name,
            "phone": s.cust_phone,
            "qty": s.qty,
            "price": round(s.price, 2),
            "discount": round(s.discount, 2),
            "profit": round(s.profit, 2),
            "status": s.status,
            "courier": s.courier,
            "tracking": s.tracking_number,
            "has_payment_proof": bool(s.payment_screenshot),
        }
        for s in sales
    ]
    columns = [
        "sale_id",
        "date",
        "batch",
        "customer",
        "phone",
        "qty",
        "price",
        "discount",
        "profit",
        "status",
        "courier",
        "tracking",
        "has_payment_proof",
    ]
    df = pd.DataFrame(rows, columns=columns)
    if not df.empty:
        df = df.sort_values("date", ascending=False, kind="stable").reset_index(drop=True)
    return df
