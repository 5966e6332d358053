"""
test_session.py: Tests for the bill session state machine.
Run: pytest test_session.py -v
"""
from datetime import datetime
from decimal import Decimal

import pytest

from billstation.billing.cart import DraftBill, LineItem
from billstation.billing.codec import share_url
from billstation.billing.ledger import Ledger
from billstation.billing.session import BillSession, SessionMode, InvalidTransition


BASE = 'http://localhost/billing/'


def editing_session():
    return BillSession.start(BASE, store_name='Corner Store')


def shared_session():
    draft = DraftBill(bill_id='TSL-2026-1111', store_name='Acme', customer_phone='555',
                      items=[LineItem(name='X', unit_price=Decimal('10'))],
                      discount_percent=Decimal('5'))
    return BillSession.start(share_url(BASE, draft), store_name='Corner Store')


# ── Start ─────────────────────────────────────────────────────────

def test_start_without_token_is_editing_with_empty_draft():
    bs = editing_session()
    assert bs.mode is SessionMode.EDITING
    assert bs.draft.is_empty
    assert bs.draft.store_name == 'Corner Store'
    assert bs.draft.bill_id.startswith('TSL-')
    assert not bs.preview_open


def test_start_with_valid_token_is_shared_with_preview():
    bs = shared_session()
    assert bs.mode is SessionMode.VIEWING_SHARED
    assert bs.preview_open
    assert bs.draft.store_name == 'Acme'
    assert bs.draft.totals.net_total == Decimal('9.5')


def test_start_with_broken_token_falls_back_to_editing():
    bs = BillSession.start(BASE + '?b=%%%garbage', store_name='Corner Store')
    assert bs.mode is SessionMode.EDITING
    assert bs.draft.is_empty


# ── Finalize ──────────────────────────────────────────────────────

def test_finalize_with_no_items_is_a_no_op():
    bs = editing_session()
    bs.set_details(customer_phone='98765')
    bs.set_global_discount(Decimal('15'))
    before = bs.draft.to_dict()
    ledger = Ledger()

    assert bs.finalize(ledger) is None
    assert len(ledger) == 0
    assert bs.draft.to_dict() == before


def test_finalize_logs_entry_and_resets_draft():
    bs = editing_session()
    bs.set_details(customer_phone='98765')
    bs.add_item('Tea', Decimal('50'), 2)
    bs.set_global_discount(Decimal('10'))
    bs.open_preview()
    old_id = bs.draft.bill_id
    ledger = Ledger()

    entry = bs.finalize(ledger, now=datetime(2026, 10, 19, 18, 45))

    assert entry is not None
    assert ledger.entries == [entry]
    assert entry.bill_id == old_id
    assert entry.total == Decimal('90')
    assert entry.customer == '98765'
    assert entry.time == '18:45'

    assert bs.mode is SessionMode.EDITING
    assert bs.draft.is_empty
    assert bs.draft.customer_phone == ''
    assert bs.draft.discount_percent == 0
    assert bs.draft.store_name == 'Corner Store'
    assert not bs.preview_open


def test_ledger_net_income_tracks_finalized_bills():
    bs = editing_session()
    ledger = Ledger()
    for price in ('100', '40.5', '0.25'):
        bs.add_item('Item', Decimal(price))
        bs.finalize(ledger)
    assert ledger.summary().total == Decimal('140.75')
    assert ledger.summary().count == 3


# ── Shared mode ───────────────────────────────────────────────────

@pytest.mark.parametrize('action', [
    lambda bs: bs.add_item('Y', Decimal('1')),
    lambda bs: bs.remove_item(bs.draft.items[0].id),
    lambda bs: bs.set_item_discount(bs.draft.items[0].id, Decimal('5')),
    lambda bs: bs.set_global_discount(Decimal('50')),
    lambda bs: bs.set_details(store_name='Mine'),
    lambda bs: bs.finalize(Ledger()),
    lambda bs: bs.close_preview(),
])
def test_shared_bill_is_read_only(action):
    bs = shared_session()
    before = bs.draft.to_dict()
    with pytest.raises(InvalidTransition):
        action(bs)
    assert bs.draft.to_dict() == before


def test_start_new_leaves_shared_bill():
    bs = shared_session()
    bs.start_new('Corner Store')
    assert bs.mode is SessionMode.EDITING
    assert bs.draft.is_empty
    assert bs.draft.store_name == 'Corner Store'
    assert bs.draft.bill_id != 'TSL-2026-1111'
    assert not bs.preview_open


def test_start_new_only_from_shared():
    with pytest.raises(InvalidTransition):
        editing_session().start_new('Corner Store')


# ── Preview ───────────────────────────────────────────────────────

def test_preview_toggle_leaves_draft_alone():
    bs = editing_session()
    bs.add_item('Tea', Decimal('50'))
    before = bs.draft.to_dict()

    bs.open_preview()
    assert bs.preview_open
    bs.close_preview()
    assert not bs.preview_open
    assert bs.draft.to_dict() == before


# ── Serialisation ─────────────────────────────────────────────────

def test_session_survives_to_dict_from_dict():
    bs = editing_session()
    bs.add_item('Cake', Decimal('200'), 1, Decimal('25'))
    bs.open_preview()

    restored = BillSession.from_dict(bs.to_dict())
    assert restored.mode is SessionMode.EDITING
    assert restored.preview_open
    assert restored.draft.items[0].id == bs.draft.items[0].id
    assert restored.draft.totals.net_total == Decimal('150')
