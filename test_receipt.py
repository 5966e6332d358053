"""
test_receipt.py: Tests for receipt data and the WhatsApp hand-off.
Run: pytest test_receipt.py -v
"""
from datetime import date
from decimal import Decimal
from urllib.parse import urlsplit, parse_qs

from billstation.billing.cart import DraftBill, LineItem
from billstation.billing.receipt import (
    build_receipt, clean_phone, format_bill_message, short_link_message, whatsapp_url
)


def draft():
    return DraftBill(
        bill_id='TSL-2026-2001', store_name='Silver Lining', customer_phone='+91 98765-43210',
        items=[
            LineItem(name='Tea', unit_price=Decimal('50'), quantity=2),
            LineItem(name='Cake', unit_price=Decimal('200'), quantity=1, discount_percent=Decimal('25')),
        ],
        discount_percent=Decimal('10'),
    )


def test_clean_phone_keeps_digits_only():
    assert clean_phone('+91 98765-43210') == '919876543210'
    assert clean_phone('') == ''
    assert clean_phone(None) == ''


def test_build_receipt():
    r = build_receipt(draft(), today=date(2026, 10, 19))
    assert r['date'] == '19/10/2026'
    assert r['discount_percent'] == '10'
    assert r['lines'][1]['amount'] == '200.00'
    assert r['lines'][1]['net'] == '150.00'
    assert r['lines'][1]['discount_percent'] == '25'
    assert r['totals']['gross_subtotal'] == '300.00'
    assert r['totals']['net_total'] == '225.00'


def test_bill_message_lists_items_discounts_and_totals():
    msg = format_bill_message(draft(), 'https://x.test/billing/?b=abc', today=date(2026, 10, 19))
    assert msg.startswith('*SILVER LINING*')
    assert 'Bill: TSL-2026-2001' in msg
    assert 'Date: 19/10/2026' in msg
    assert 'Tea x2 @ ₹50.00 = ₹100.00' in msg
    assert 'Cake x1 @ ₹200.00 (-25%) = ₹150.00' in msg
    assert 'Gross: ₹300.00' in msg
    assert 'Bill discount (10%): -₹25.00' in msg
    assert 'Total savings: -₹75.00' in msg
    assert '*Payable: ₹225.00*' in msg
    assert msg.endswith('View Bill: https://x.test/billing/?b=abc')


def test_bill_message_without_discounts_has_no_savings_line():
    d = DraftBill(bill_id='B', store_name='S', items=[LineItem(name='X', unit_price=Decimal('10'))])
    msg = format_bill_message(d, 'link', currency='$')
    assert 'savings' not in msg
    assert '*Payable: $10.00*' in msg


def test_short_message():
    assert short_link_message(draft(), 'L') == 'Digital Invoice from *SILVER LINING*.\n\nView Bill: L'


def test_whatsapp_url_encodes_message():
    url = whatsapp_url('+91 98765-43210', 'Hi & bye\nView Bill: https://x.test/?b=a-b_c')
    parts = urlsplit(url)
    assert parts.scheme == 'https'
    assert parts.netloc == 'wa.me'
    assert parts.path == '/919876543210'
    assert parse_qs(parts.query)['text'] == ['Hi & bye\nView Bill: https://x.test/?b=a-b_c']
