"""
billstation/billing/cart.py
----------------------------
The draft bill: the one editable cart an operator is working on.

Serialised form (stored in the Flask session by the billing routes):
{
    "bill_id":          str,
    "store_name":       str,
    "customer_phone":   str,
    "discount_percent": str,          ← money/percent kept as strings
    "items": [
        {
            "id":               str,
            "name":             str,
            "unit_price":       str,
            "quantity":         int,
            "discount_percent": str
        },
        ...
    ]
}

All money values are kept as strings when serialised and converted to
Decimal on load, so no float ever touches a total.
"""
from __future__ import annotations
import random
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from billstation.billing.money import compute_totals, BillTotals


DEFAULT_BILL_PREFIX = 'TSL'


def new_item_id() -> str:
    return uuid.uuid4().hex[:9]


def new_bill_id(prefix: str = DEFAULT_BILL_PREFIX, now: Optional[datetime] = None) -> str:
    """Human-readable bill reference, e.g. TSL-2026-4821."""
    year = (now or datetime.now()).year
    return f'{prefix}-{year}-{random.randint(1000, 9999)}'


@dataclass
class LineItem:
    """One product line in the active cart."""
    name:             str
    unit_price:       Decimal
    quantity:         int = 1
    discount_percent: Decimal = Decimal('0')
    id:               str = field(default_factory=new_item_id)

    def to_dict(self) -> dict:
        return {
            'id':               self.id,
            'name':             self.name,
            'unit_price':       str(self.unit_price),
            'quantity':         self.quantity,
            'discount_percent': str(self.discount_percent),
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'LineItem':
        return cls(
            id=data.get('id') or new_item_id(),
            name=data['name'],
            unit_price=Decimal(str(data['unit_price'])),
            quantity=int(data.get('quantity', 1)),
            discount_percent=Decimal(str(data.get('discount_percent', '0'))),
        )


@dataclass
class DraftBill:
    """The in-progress bill and its metadata."""
    bill_id:          str
    store_name:       str
    customer_phone:   str = ''
    items:            List[LineItem] = field(default_factory=list)
    discount_percent: Decimal = Decimal('0')

    @property
    def totals(self) -> BillTotals:
        return compute_totals(self.items, self.discount_percent)

    @property
    def is_empty(self) -> bool:
        return not self.items

    def to_dict(self) -> dict:
        return {
            'bill_id':          self.bill_id,
            'store_name':       self.store_name,
            'customer_phone':   self.customer_phone,
            'discount_percent': str(self.discount_percent),
            'items':            [it.to_dict() for it in self.items],
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'DraftBill':
        return cls(
            bill_id=data['bill_id'],
            store_name=data.get('store_name', ''),
            customer_phone=data.get('customer_phone', ''),
            items=[LineItem.from_dict(it) for it in data.get('items', [])],
            discount_percent=Decimal(str(data.get('discount_percent', '0'))),
        )


# ── Lifecycle ─────────────────────────────────────────────────────

def new_draft(store_name: str, prefix: str = DEFAULT_BILL_PREFIX) -> DraftBill:
    """A fresh, empty draft with a newly generated bill id."""
    return DraftBill(bill_id=new_bill_id(prefix), store_name=store_name)


def reset_draft(draft: DraftBill, prefix: str = DEFAULT_BILL_PREFIX) -> DraftBill:
    """
    Draft that follows a finalized one: same store, everything else
    cleared (items, customer, global discount) and a new bill id.
    """
    return new_draft(draft.store_name, prefix)


# ── Editing ───────────────────────────────────────────────────────

def add_item(draft: DraftBill, name: str, unit_price: Decimal,
             quantity: int = 1, discount_percent: Decimal = Decimal('0')) -> LineItem:
    """Append a new line to the cart and return it."""
    item = LineItem(
        name=name,
        unit_price=unit_price,
        quantity=quantity,
        discount_percent=discount_percent,
    )
    draft.items.append(item)
    return item


def remove_item(draft: DraftBill, item_id: str) -> bool:
    """Remove one line by id. Returns False if no such line exists."""
    before = len(draft.items)
    draft.items = [it for it in draft.items if it.id != item_id]
    return len(draft.items) != before


def set_item_discount(draft: DraftBill, item_id: str, percent: Decimal) -> bool:
    """Replace one line's discount percent. Returns False if not found."""
    for idx, it in enumerate(draft.items):
        if it.id == item_id:
            draft.items[idx] = replace(it, discount_percent=percent)
            return True
    return False


def set_global_discount(draft: DraftBill, percent: Decimal) -> None:
    draft.discount_percent = percent


def set_details(draft: DraftBill, store_name: Optional[str] = None,
                customer_phone: Optional[str] = None) -> None:
    """Update bill metadata; None leaves a field unchanged."""
    if store_name is not None:
        draft.store_name = store_name
    if customer_phone is not None:
        draft.customer_phone = customer_phone


def items_summary(draft: DraftBill) -> str:
    """Short text for the ledger, e.g. 'Tea(x2), Cake(x1)'."""
    return ', '.join(f'{it.name}(x{it.quantity})' for it in draft.items)
