"""
test_ledger.py: Tests for the daily ledger aggregator.
Run: pytest test_ledger.py -v
"""
from datetime import datetime
from decimal import Decimal

from billstation.billing.cart import DraftBill, LineItem
from billstation.billing.ledger import Ledger, LedgerEntry, entry_from_draft


def make_entry(bill_id, subtotal, discount, total, customer='Walk-in Customer'):
    return LedgerEntry(
        bill_id=bill_id, time='10:30', customer=customer, items_summary='Tea(x2)',
        subtotal=Decimal(subtotal), discount=Decimal(discount), total=Decimal(total),
    )


def test_append_puts_newest_first():
    ledger = Ledger()
    ledger.append(make_entry('B-1', '100', '10', '90'))
    ledger.append(make_entry('B-2', '50', '0', '50'))
    assert [e.bill_id for e in ledger] == ['B-2', 'B-1']


def test_summary_matches_fold_after_every_append():
    ledger = Ledger()
    rows = [('B-1', '100', '10', '90'), ('B-2', '50.25', '0', '50.25'), ('B-3', '10', '2.5', '7.5')]
    for i, row in enumerate(rows, start=1):
        ledger.append(make_entry(*row))
        s = ledger.summary()
        assert s.count == i
        assert s.subtotal == sum(e.subtotal for e in ledger.entries)
        assert s.discount == sum(e.discount for e in ledger.entries)
        assert s.total == sum(e.total for e in ledger.entries)
    assert ledger.summary().total == Decimal('147.75')


def test_empty_summary():
    s = Ledger().summary()
    assert s.count == 0
    assert s.as_dict() == {'subtotal': '0.00', 'discount': '0.00', 'total': '0.00', 'count': 0}


def test_clear_empties_ledger():
    ledger = Ledger([make_entry('B-1', '1', '0', '1')])
    ledger.clear()
    assert len(ledger) == 0
    assert ledger.summary().total == 0


def test_export_layout():
    ledger = Ledger()
    ledger.append(make_entry('B-1', '100', '10', '90'))
    ledger.append(make_entry('B-2', '50', '0', '50', customer='919876543210'))

    lines = ledger.export().split('\n')
    assert lines[0] == 'Bill ID\tTime\tCustomer\tItems\tSubtotal\tDiscount\tTotal'
    assert lines[1] == 'B-2\t10:30\t919876543210\t"Tea(x2)"\t50.00\t0.00\t50.00'
    assert lines[2] == 'B-1\t10:30\tWalk-in Customer\t"Tea(x2)"\t100.00\t10.00\t90.00'
    assert lines[3] == 'TOTALS\t\t\t\t150.00\t10.00\t140.00'
    assert len(lines) == 4


def test_export_of_empty_ledger_has_header_and_totals():
    lines = Ledger().export().split('\n')
    assert len(lines) == 2
    assert lines[1] == 'TOTALS\t\t\t\t0.00\t0.00\t0.00'


def test_dump_and_load_restore_entries():
    ledger = Ledger()
    ledger.append(make_entry('B-1', '100', '10', '90'))
    ledger.append(make_entry('B-2', '0.1', '0', '0.1'))

    restored = Ledger.load(ledger.dump())
    assert restored.entries == ledger.entries


def test_load_of_nothing_is_empty():
    assert len(Ledger.load(None)) == 0
    assert len(Ledger.load('')) == 0


def test_entry_from_draft_snapshots_totals():
    draft = DraftBill(
        bill_id='TSL-2026-1000', store_name='Shop',
        items=[
            LineItem(name='Tea', unit_price=Decimal('50'), quantity=2),
            LineItem(name='Cake', unit_price=Decimal('200'), quantity=1, discount_percent=Decimal('25')),
        ],
        discount_percent=Decimal('10'),
    )
    entry = entry_from_draft(draft, now=datetime(2026, 10, 19, 9, 5))

    assert entry.bill_id == 'TSL-2026-1000'
    assert entry.time == '09:05'
    assert entry.customer == 'Walk-in Customer'
    assert entry.items_summary == 'Tea(x2), Cake(x1)'
    assert entry.subtotal == Decimal('300')
    # 50 item discount + 10% of 250
    assert entry.discount == Decimal('75')
    assert entry.total == Decimal('225')


def test_entry_uses_customer_phone_when_present():
    draft = DraftBill(bill_id='B', store_name='S', customer_phone='98765',
                      items=[LineItem(name='X', unit_price=Decimal('1'))])
    assert entry_from_draft(draft).customer == '98765'
