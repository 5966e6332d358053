"""
billstation/billing/receipt.py
-------------------------------
Render-ready receipt data and the WhatsApp hand-off.

`build_receipt()` is what the preview (and a shared bill) shows; the
same structure is handed to the ImageShare capability to be captured
as a picture. `whatsapp_url()` builds a wa.me deep link with either the
full itemised bill or just a short message carrying the share link.
"""
import re
from datetime import date
from typing import Optional
from urllib.parse import quote

from billstation.billing.cart import DraftBill
from billstation.billing.money import fmt, fmt_percent, line_amount, line_net


WHATSAPP_BASE = 'https://wa.me/'


def build_receipt(draft: DraftBill, today: Optional[date] = None,
                  currency: str = '₹') -> dict:
    """Everything the receipt layout needs, money already formatted."""
    totals = draft.totals
    today = today or date.today()
    return {
        'store_name':       draft.store_name,
        'bill_id':          draft.bill_id,
        'date':             today.strftime('%d/%m/%Y'),
        'customer_phone':   draft.customer_phone,
        'currency':         currency,
        'discount_percent': fmt_percent(draft.discount_percent),
        'lines': [
            {
                'id':               it.id,
                'name':             it.name,
                'quantity':         it.quantity,
                'unit_price':       fmt(it.unit_price),
                'discount_percent': fmt_percent(it.discount_percent),
                'amount':           fmt(line_amount(it)),
                'net':              fmt(line_net(it)),
            }
            for it in draft.items
        ],
        'totals': totals.as_dict(),
    }


def clean_phone(phone: str) -> str:
    """Digits only: '+91 98765-43210' → '919876543210'."""
    return re.sub(r'[^0-9]', '', phone or '')


def format_bill_message(draft: DraftBill, link: str, today: Optional[date] = None,
                        currency: str = '₹') -> str:
    """Human-readable itemised bill for a chat message."""
    totals = draft.totals
    today = today or date.today()

    lines = [
        f'*{draft.store_name.upper()}*',
        f'Bill: {draft.bill_id}',
        f'Date: {today.strftime("%d/%m/%Y")}',
        '',
    ]
    for it in draft.items:
        row = f'{it.name} x{it.quantity} @ {currency}{fmt(it.unit_price)}'
        if it.discount_percent > 0:
            row += f' (-{fmt_percent(it.discount_percent)}%)'
        lines.append(f'{row} = {currency}{fmt(line_net(it))}')

    lines += [
        '',
        f'Gross: {currency}{fmt(totals.gross_subtotal)}',
    ]
    if draft.discount_percent > 0:
        lines.append(f'Bill discount ({fmt_percent(draft.discount_percent)}%): '
                     f'-{currency}{fmt(totals.global_discount_amount)}')
    if totals.total_discount > 0:
        lines.append(f'Total savings: -{currency}{fmt(totals.total_discount)}')
    lines += [
        f'*Payable: {currency}{fmt(totals.net_total)}*',
        '',
        f'View Bill: {link}',
    ]
    return '\n'.join(lines)


def short_link_message(draft: DraftBill, link: str) -> str:
    return f'Digital Invoice from *{draft.store_name.upper()}*.\n\nView Bill: {link}'


def whatsapp_url(phone: str, message: str) -> str:
    """wa.me link for `phone` (non-digits dropped) with a URL-encoded text."""
    return f'{WHATSAPP_BASE}{clean_phone(phone)}?text={quote(message, safe="")}'
