"""
billstation/billing/money.py
-----------------------------
Pure discount arithmetic for a draft bill.

Discounts are applied in two stages:

    gross subtotal
      − per-item discounts        (item.discount_percent of each line)
      = subtotal after item discounts
      − global discount           (bill discount_percent of the above)
      = net total                 (never below zero)

All arithmetic uses Decimal and nothing is rounded between stages.
Quantizing to 2 places happens only in `money()` / `fmt()`, which are
meant for presentation (receipts, exports, JSON responses).

The calculator trusts its inputs: percentages are clamped by
billing.validators before they ever reach an item or a draft.
"""
from __future__ import annotations
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP, localcontext
from typing import Iterable


Q       = Decimal('0.01')   # quantize target
ZERO    = Decimal('0')
HUNDRED = Decimal('100')


@dataclass(frozen=True)
class BillTotals:
    """Every calculator output for one cart + global discount."""
    gross_subtotal:                Decimal = ZERO
    items_discount_total:          Decimal = ZERO
    subtotal_after_item_discounts: Decimal = ZERO
    global_discount_amount:        Decimal = ZERO
    net_total:                     Decimal = ZERO

    @property
    def total_discount(self) -> Decimal:
        """Item discounts + global discount (the customer's total savings)."""
        return self.items_discount_total + self.global_discount_amount

    def as_dict(self) -> dict:
        """Presentation view, each value fixed to 2 decimals."""
        return {
            'gross_subtotal':                fmt(self.gross_subtotal),
            'items_discount_total':          fmt(self.items_discount_total),
            'subtotal_after_item_discounts': fmt(self.subtotal_after_item_discounts),
            'global_discount_amount':        fmt(self.global_discount_amount),
            'total_discount':                fmt(self.total_discount),
            'net_total':                     fmt(self.net_total),
        }


# ── Per-line helpers ──────────────────────────────────────────────

def line_amount(item) -> Decimal:
    """unit_price × quantity, before any discount."""
    return item.unit_price * Decimal(item.quantity)


def item_discount_amount(item) -> Decimal:
    """Amount taken off one line by its own discount percent."""
    return line_amount(item) * (item.discount_percent / HUNDRED)


def line_net(item) -> Decimal:
    """Line amount after its item discount (global discount not applied)."""
    return line_amount(item) - item_discount_amount(item)


# ── Aggregates ────────────────────────────────────────────────────

def gross_subtotal(items: Iterable) -> Decimal:
    return sum((line_amount(it) for it in items), start=ZERO)


def items_discount_total(items: Iterable) -> Decimal:
    return sum((item_discount_amount(it) for it in items), start=ZERO)


def compute_totals(items: Iterable, discount_percent: Decimal = ZERO) -> BillTotals:
    """
    Run every stage of the calculator over `items`.

    Args:
        items:            LineItem-like objects (unit_price, quantity,
                          discount_percent)
        discount_percent: global discount, already clamped to [0, 100]

    Returns:
        BillTotals, all zeros for an empty cart.
    """
    items = list(items)
    gross      = gross_subtotal(items)
    item_disc  = items_discount_total(items)
    after_item = gross - item_disc
    global_amt = after_item * (Decimal(discount_percent) / HUNDRED)
    net        = max(ZERO, after_item - global_amt)

    return BillTotals(
        gross_subtotal=gross,
        items_discount_total=item_disc,
        subtotal_after_item_discounts=after_item,
        global_discount_amount=global_amt,
        net_total=net,
    )


# ── Presentation ──────────────────────────────────────────────────

def money(value) -> Decimal:
    """Round a money value to 2 places (half-up) for display."""
    value = Decimal(value)
    with localcontext() as ctx:
        # quantize needs room for every integer digit plus the two decimals
        ctx.prec = max(ctx.prec, value.adjusted() + 3)
        return value.quantize(Q, rounding=ROUND_HALF_UP)


def fmt(value) -> str:
    """Money as a fixed 2-decimal string, e.g. Decimal('9.5') → '9.50'."""
    return f'{money(value):.2f}'


def fmt_percent(value) -> str:
    """Percent without trailing zeros: Decimal('12.50') → '12.5'."""
    return format(Decimal(value).normalize(), 'f')
