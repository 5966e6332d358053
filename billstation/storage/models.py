"""
billstation/storage/models.py
------------------------------
Key-value persistence for the billing screen.

Two independent slots are used:

    billing_store_name    → store display name (plain text)
    billing_daily_ledger  → the whole ledger as JSON, overwritten on change

Writes are best-effort: a failed write is logged and rolled back at the
database level, but never raised to the operator and never undoes the
in-memory change that triggered it.
"""
import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from billstation import db
from billstation.billing.ledger import Ledger


logger = logging.getLogger(__name__)

STORE_NAME_KEY = 'billing_store_name'
LEDGER_KEY     = 'billing_daily_ledger'


class KeyValue(db.Model):
    """One persisted slot."""
    __tablename__ = 'key_values'

    key        = db.Column(db.String(100), primary_key=True)
    value      = db.Column(db.Text, nullable=False)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow,
                           onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<KeyValue {self.key!r} ({len(self.value)} chars)>"


class SqlKeyValueStore:
    """get/set over the key_values table."""

    def __init__(self, session=None):
        self.session = session or db.session

    def get(self, key: str) -> Optional[str]:
        row = self.session.get(KeyValue, key)
        return row.value if row is not None else None

    def set(self, key: str, value: str) -> bool:
        """Upsert `key`. Returns False (after logging) if the write failed."""
        try:
            row = self.session.get(KeyValue, key)
            if row is None:
                self.session.add(KeyValue(key=key, value=value))
            else:
                row.value = value
            self.session.commit()
            return True
        except SQLAlchemyError as exc:
            self.session.rollback()
            logger.warning(f"Persistence write failed for {key!r}: {exc}")
            return False


# ── Slot helpers ──────────────────────────────────────────────────

def load_store_name(store, default: str) -> str:
    return store.get(STORE_NAME_KEY) or default


def save_store_name(store, name: str) -> bool:
    return store.set(STORE_NAME_KEY, name)


def load_ledger(store) -> Ledger:
    """Restore the saved ledger; an unreadable document gives an empty one."""
    raw = store.get(LEDGER_KEY)
    try:
        return Ledger.load(raw)
    except (ValueError, KeyError, TypeError) as exc:
        logger.error(f"Saved ledger is unreadable, starting empty: {exc}")
        return Ledger()


def save_ledger(store, ledger: Ledger) -> bool:
    return store.set(LEDGER_KEY, ledger.dump())
