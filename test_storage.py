"""
test_storage.py: Tests for key-value persistence and the ledger CLI.
Run: pytest test_storage.py -v
"""
import logging
from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError

from billstation import create_app, db
from billstation.billing.ledger import Ledger, LedgerEntry
from billstation.storage.models import (
    SqlKeyValueStore, load_ledger, save_ledger, load_store_name, save_store_name, LEDGER_KEY
)


@pytest.fixture(scope='function')
def app():
    app = create_app('testing')
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


def sample_ledger():
    ledger = Ledger()
    ledger.append(LedgerEntry(bill_id='TSL-2026-1001', time='11:15', customer='Walk-in Customer',
                              items_summary='Tea(x2)', subtotal=Decimal('100'),
                              discount=Decimal('10'), total=Decimal('90')))
    return ledger


def test_get_set_overwrite(app):
    store = SqlKeyValueStore()
    assert store.get('k') is None
    assert store.set('k', 'one') is True
    assert store.set('k', 'two') is True
    assert store.get('k') == 'two'


def test_store_name_slot(app):
    store = SqlKeyValueStore()
    assert load_store_name(store, 'DEFAULT') == 'DEFAULT'
    save_store_name(store, 'Corner Cafe')
    assert load_store_name(store, 'DEFAULT') == 'Corner Cafe'


def test_ledger_slot_round_trip(app):
    store = SqlKeyValueStore()
    save_ledger(store, sample_ledger())
    assert load_ledger(store).entries == sample_ledger().entries


def test_unreadable_ledger_starts_empty(app):
    store = SqlKeyValueStore()
    store.set(LEDGER_KEY, '{not json')
    assert len(load_ledger(store)) == 0


class BrokenSession:
    """Session whose writes fail like a locked database."""
    def __init__(self):
        self.rolled_back = False

    def get(self, model, key):
        return None

    def add(self, obj):
        pass

    def commit(self):
        raise OperationalError('UPDATE key_values', {}, Exception('database is locked'))

    def rollback(self):
        self.rolled_back = True


def test_failed_write_is_logged_not_raised(caplog):
    session = BrokenSession()
    store = SqlKeyValueStore(session=session)
    ledger = sample_ledger()

    with caplog.at_level(logging.WARNING, logger='billstation.storage.models'):
        assert save_ledger(store, ledger) is False

    assert session.rolled_back
    assert 'Persistence write failed' in caplog.text
    # in-memory state is untouched
    assert len(ledger) == 1


# ── CLI ───────────────────────────────────────────────────────────

def test_cli_show_and_export_ledger(app):
    save_ledger(SqlKeyValueStore(), sample_ledger())
    runner = app.test_cli_runner()

    result = runner.invoke(args=['show-ledger'])
    assert result.exit_code == 0
    assert 'TSL-2026-1001' in result.output
    assert 'net 90.00' in result.output

    result = runner.invoke(args=['export-ledger'])
    assert result.exit_code == 0
    assert 'TOTALS\t\t\t\t100.00\t10.00\t90.00' in result.output


def test_cli_clear_ledger_needs_confirmation(app):
    save_ledger(SqlKeyValueStore(), sample_ledger())
    runner = app.test_cli_runner()

    result = runner.invoke(args=['clear-ledger'], input='n\n')
    assert result.exit_code != 0
    db.session.expire_all()
    assert len(load_ledger(SqlKeyValueStore())) == 1

    result = runner.invoke(args=['clear-ledger', '--yes'])
    assert result.exit_code == 0
    assert 'Cleared 1 ledger entries' in result.output
    db.session.expire_all()
    assert len(load_ledger(SqlKeyValueStore())) == 0
