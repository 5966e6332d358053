"""
billstation/billing/ledger.py
------------------------------
The daily ledger: an append-only, newest-first record of finalized bills.

The summary is a fold over the current entries, recomputed on every call,
so it can never drift from the entry set. The whole ledger is persisted
as one JSON document (see `dump` / `load`) after every append or clear.

Export format (tab-separated, paste-ready for a spreadsheet):

    Bill ID  Time  Customer  Items  Subtotal  Discount  Total
    TSL-2026-4821  10:42  Walk-in Customer  "Tea(x2)"  100.00  10.00  90.00
    TOTALS                                  100.00  10.00  90.00
"""
from __future__ import annotations
import json
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from billstation.billing.cart import DraftBill, items_summary
from billstation.billing.money import fmt, ZERO


EXPORT_COLUMNS = ('Bill ID', 'Time', 'Customer', 'Items', 'Subtotal', 'Discount', 'Total')
WALK_IN_LABEL  = 'Walk-in Customer'


@dataclass(frozen=True)
class LedgerEntry:
    """One finalized bill. Immutable once created."""
    bill_id:       str
    time:          str
    customer:      str
    items_summary: str
    subtotal:      Decimal
    discount:      Decimal
    total:         Decimal

    def to_dict(self) -> dict:
        return {
            'id':       self.bill_id,
            'time':     self.time,
            'customer': self.customer,
            'items':    self.items_summary,
            'subtotal': str(self.subtotal),
            'discount': str(self.discount),
            'total':    str(self.total),
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'LedgerEntry':
        return cls(
            bill_id=data['id'],
            time=data.get('time', ''),
            customer=data.get('customer', ''),
            items_summary=data.get('items', ''),
            subtotal=Decimal(str(data.get('subtotal', '0'))),
            discount=Decimal(str(data.get('discount', '0'))),
            total=Decimal(str(data.get('total', '0'))),
        )


@dataclass(frozen=True)
class LedgerSummary:
    subtotal: Decimal = ZERO
    discount: Decimal = ZERO
    total:    Decimal = ZERO
    count:    int = 0

    def as_dict(self) -> dict:
        return {
            'subtotal': fmt(self.subtotal),
            'discount': fmt(self.discount),
            'total':    fmt(self.total),
            'count':    self.count,
        }


def entry_from_draft(draft: DraftBill, now: Optional[datetime] = None,
                     walk_in_label: str = WALK_IN_LABEL) -> LedgerEntry:
    """Snapshot a draft's computed totals into a ledger entry."""
    totals = draft.totals
    return LedgerEntry(
        bill_id=draft.bill_id,
        time=(now or datetime.now()).strftime('%H:%M'),
        customer=draft.customer_phone or walk_in_label,
        items_summary=items_summary(draft),
        subtotal=totals.gross_subtotal,
        discount=totals.total_discount,
        total=totals.net_total,
    )


class Ledger:
    """Session-scoped list of LedgerEntry, newest first."""

    def __init__(self, entries: Optional[List[LedgerEntry]] = None):
        self._entries: List[LedgerEntry] = list(entries or [])

    def __len__(self):
        return len(self._entries)

    def __iter__(self):
        return iter(self._entries)

    @property
    def entries(self) -> List[LedgerEntry]:
        return list(self._entries)

    # ── Mutation ──────────────────────────────────────────────────

    def append(self, entry: LedgerEntry) -> None:
        """Insert at the head of the ledger."""
        self._entries.insert(0, entry)

    def clear(self) -> None:
        """Drop every entry. Irreversible; callers confirm first."""
        self._entries = []

    # ── Aggregation ───────────────────────────────────────────────

    def summary(self) -> LedgerSummary:
        subtotal = discount = total = ZERO
        for e in self._entries:
            subtotal += e.subtotal
            discount += e.discount
            total    += e.total
        return LedgerSummary(subtotal=subtotal, discount=discount,
                             total=total, count=len(self._entries))

    def export(self) -> str:
        """Tab-delimited dump of all entries plus a TOTALS row."""
        lines = ['\t'.join(EXPORT_COLUMNS)]
        for e in self._entries:
            lines.append('\t'.join([
                e.bill_id,
                e.time,
                e.customer,
                f'"{e.items_summary}"',
                fmt(e.subtotal),
                fmt(e.discount),
                fmt(e.total),
            ]))
        s = self.summary()
        lines.append('\t'.join(['TOTALS', '', '', '', fmt(s.subtotal), fmt(s.discount), fmt(s.total)]))
        return '\n'.join(lines)

    # ── Persistence format ────────────────────────────────────────

    def dump(self) -> str:
        return json.dumps([e.to_dict() for e in self._entries])

    @classmethod
    def load(cls, raw: Optional[str]) -> 'Ledger':
        """Rebuild from `dump()` output; None or '' gives an empty ledger."""
        if not raw:
            return cls()
        return cls([LedgerEntry.from_dict(d) for d in json.loads(raw)])
