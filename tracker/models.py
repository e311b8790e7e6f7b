from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional, Union

from tracker.utils import clean_text, num, signed_num

# Entity kinds (collection / table names)
BATCHES = "batches"
SALES = "sales"
EXPENSES = "expenses"
ENTITY_KINDS = (BATCHES, SALES, EXPENSES)

FIXED = "FIXED"
PER_UNIT = "PER_UNIT"
COST_TYPES = (FIXED, PER_UNIT)

SALE_STATUSES = ("New", "Pending", "Shipped", "Delivered", "Cancelled")
CANCELLED = "Cancelled"

CREDIT = "CREDIT"
DEBIT = "DEBIT"
LEDGER_TYPES = (CREDIT, DEBIT)

UNKNOWN_BATCH_NAME = "Unknown Batch"
# Written into a migrated sale whose batch never made it to the cloud store.
UNKNOWN_LEGACY_BATCH = "UNKNOWN_LEGACY_BATCH"

Identifier = Union[int, str]


def normalize_cost_type(v: Optional[str]) -> str:
    t = str(v or "").strip().upper()
    return t if t in COST_TYPES else FIXED


def normalize_status(v: Optional[str]) -> str:
    s = str(v or "").strip()
    for status in SALE_STATUSES:
        if s.lower() == status.lower():
            return status
    return "New"


def normalize_ledger_type(v: Optional[str]) -> str:
    t = str(v or "").strip().upper()
    if t not in LEDGER_TYPES:
        raise ValueError("Invalid ledger type. Use 'CREDIT' or 'DEBIT'.")
    return t


def _opt(v: Any) -> Optional[str]:
    s = clean_text(v)
    return s or None


def _int_or_zero(v: Any) -> int:
    return int(num(v))


@dataclass
class CostComponent:
    id: str
    name: str
    rate: float = 0.0
    qty: float = 0.0
    unit: str = ""
    type: str = FIXED

    @classmethod
    def from_doc(cls, doc: dict) -> "CostComponent":
        return cls(
            id=str(doc.get("id") or ""),
            name=clean_text(doc.get("name")),
            rate=num(doc.get("rate")),
            qty=num(doc.get("qty")),
            unit=clean_text(doc.get("unit")),
            type=normalize_cost_type(doc.get("type")),
        )

    def to_doc(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "rate": float(self.rate),
            "qty": float(self.qty),
            "unit": self.unit,
            "type": self.type,
        }


@dataclass
class Batch:
    name: str
    target_qty: int = 1
    costs: list[CostComponent] = field(default_factory=list)
    grand_total: float = 0.0
    unit_cost: float = 0.0
    margin_per_unit: float = 0.0
    selling_price: float = 0.0
    is_public: bool = False
    public_name: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    id: Optional[Identifier] = None

    @classmethod
    def from_doc(cls, doc: dict) -> "Batch":
        return cls(
            id=doc.get("id"),
            name=clean_text(doc.get("name")),
            target_qty=_int_or_zero(doc.get("targetQty")),
            costs=[CostComponent.from_doc(c) for c in (doc.get("costs") or [])],
            grand_total=num(doc.get("grandTotal")),
            unit_cost=num(doc.get("unitCost")),
            margin_per_unit=num(doc.get("marginPerUnit")),
            selling_price=num(doc.get("sellingPrice")),
            is_public=bool(doc.get("isPublic") or False),
            public_name=_opt(doc.get("publicName")),
            description=_opt(doc.get("description")),
            category=_opt(doc.get("category")),
        )

    def to_doc(self) -> dict:
        return {
            "name": self.name,
            "targetQty": int(self.target_qty),
            "costs": [c.to_doc() for c in self.costs],
            "grandTotal": float(self.grand_total),
            "unitCost": float(self.unit_cost),
            "marginPerUnit": float(self.margin_per_unit),
            "sellingPrice": float(self.selling_price),
            "isPublic": bool(self.is_public),
            "publicName": self.public_name,
            "description": self.description,
            "category": self.category,
        }


@dataclass
class Sale:
    batch_id: Optional[Identifier]
    date: str
    cust_name: str
    qty: int
    price: float = 0.0
    discount: float = 0.0
    profit: float = 0.0
    status: str = "New"
    cust_phone: Optional[str] = None
    cust_address: Optional[str] = None
    ship_order_id: Optional[str] = None
    courier: Optional[str] = None
    tracking_number: Optional[str] = None
    # bytes in the local store, a data URL everywhere else
    payment_screenshot: Optional[Union[bytes, str]] = None
    notes: Optional[str] = None
    id: Optional[Identifier] = None

    @property
    def is_cancelled(self) -> bool:
        return self.status == CANCELLED

    @classmethod
    def from_doc(cls, doc: dict) -> "Sale":
        shot = doc.get("paymentScreenshot")
        return cls(
            id=doc.get("id"),
            batch_id=doc.get("batchId"),
            date=clean_text(doc.get("date")),
            cust_name=clean_text(doc.get("custName")),
            qty=_int_or_zero(doc.get("qty")),
            price=signed_num(doc.get("price")),
            discount=num(doc.get("discount")),
            profit=signed_num(doc.get("profit")),
            status=normalize_status(doc.get("status")),
            cust_phone=_opt(doc.get("custPhone")),
            # custDetail was the first release's combined address/notes field
            cust_address=_opt(doc.get("custAddress") or doc.get("custDetail")),
            ship_order_id=_opt(doc.get("shipOrderId")),
            courier=_opt(doc.get("courier")),
            tracking_number=_opt(doc.get("trackingNumber")),
            payment_screenshot=shot or None,
            notes=_opt(doc.get("notes")),
        )

    def to_doc(self) -> dict:
        return {
            "batchId": self.batch_id,
            "date": self.date,
            "custName": self.cust_name,
            "custPhone": self.cust_phone,
            "custAddress": self.cust_address,
            "shipOrderId": self.ship_order_id,
            "status": self.status,
            "qty": int(self.qty),
            "price": float(self.price),
            "discount": float(self.discount),
            "profit": float(self.profit),
            "courier": self.courier,
            "trackingNumber": self.tracking_number,
            "paymentScreenshot": self.payment_screenshot,
            "notes": self.notes,
        }


@dataclass
class LedgerEntry:
    date: str
    description: str
    amount: float
    type: str
    category: str = "General"
    id: Optional[Identifier] = None

    @classmethod
    def from_doc(cls, doc: dict) -> "LedgerEntry":
        t = str(doc.get("type") or "").strip().upper()
        return cls(
            id=doc.get("id"),
            date=clean_text(doc.get("date")),
            description=clean_text(doc.get("description")),
            amount=num(doc.get("amount")),
            # Unknown types are kept as-is so they stay out of both totals.
            type=t,
            category=clean_text(doc.get("category")) or "General",
        )

    def to_doc(self) -> dict:
        return {
            "date": self.date,
            "description": self.description,
            "amount": float(self.amount),
            "category": self.category,
            "type": self.type,
        }
