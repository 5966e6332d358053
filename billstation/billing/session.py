"""
billstation/billing/session.py
-------------------------------
Bill session state machine.

    start ──(no share token)──────────▶ EDITING ◀──┐
      │                                  │   ▲     │ finalize
      │                                  │   │     │ (appends to ledger,
      │                      open_preview│   │close│  resets the draft)
      │                                  ▼   │     │
      │                             [preview open]─┘
      │
      └──(valid share token)──▶ VIEWING_SHARED ──start_new──▶ EDITING

The mode is decided once, in `BillSession.start()`. A shared bill is
read-only: there is no way back from VIEWING_SHARED into editing the
same data, only `start_new()` into an unrelated fresh draft.

The ledger is not owned here. `finalize()` receives it and appends to it;
persisting it is the caller's job.
"""
from __future__ import annotations
import enum
from datetime import datetime
from decimal import Decimal
from typing import Optional

from billstation.billing import cart as cart_ops
from billstation.billing.cart import DraftBill, LineItem, DEFAULT_BILL_PREFIX
from billstation.billing.codec import decode, SHARE_QUERY_KEY
from billstation.billing.ledger import Ledger, LedgerEntry, entry_from_draft, WALK_IN_LABEL


class SessionMode(enum.Enum):
    EDITING        = 'editing'
    VIEWING_SHARED = 'viewing_shared'


class InvalidTransition(Exception):
    """The requested action is not allowed in the current mode."""


class BillSession:
    """One operator's (or guest's) view of the billing screen."""

    def __init__(self, mode: SessionMode, draft: DraftBill,
                 preview_open: bool = False, bill_prefix: str = DEFAULT_BILL_PREFIX):
        self.mode = mode
        self.draft = draft
        self.preview_open = preview_open
        self.bill_prefix = bill_prefix

    # ── Start ─────────────────────────────────────────────────────

    @classmethod
    def start(cls, url: str, store_name: str,
              bill_prefix: str = DEFAULT_BILL_PREFIX,
              share_key: str = SHARE_QUERY_KEY) -> 'BillSession':
        """
        Open a session for the entry URL.

        A decodable share token puts the session in VIEWING_SHARED with
        the preview showing; anything else (no token, broken token) gives
        a fresh EDITING draft for `store_name`.
        """
        payload = decode(url, share_key)
        if payload is not None:
            return cls(SessionMode.VIEWING_SHARED, payload.to_draft(),
                       preview_open=True, bill_prefix=bill_prefix)
        return cls.fresh(store_name, bill_prefix)

    @classmethod
    def fresh(cls, store_name: str, bill_prefix: str = DEFAULT_BILL_PREFIX) -> 'BillSession':
        return cls(SessionMode.EDITING, cart_ops.new_draft(store_name, bill_prefix),
                   bill_prefix=bill_prefix)

    @property
    def is_editing(self) -> bool:
        return self.mode is SessionMode.EDITING

    @property
    def is_shared(self) -> bool:
        return self.mode is SessionMode.VIEWING_SHARED

    def _require_editing(self, action: str) -> None:
        if not self.is_editing:
            raise InvalidTransition(f'Cannot {action} a shared bill.')

    # ── Draft editing ─────────────────────────────────────────────

    def add_item(self, name: str, unit_price: Decimal, quantity: int = 1,
                 discount_percent: Decimal = Decimal('0')) -> LineItem:
        self._require_editing('add items to')
        return cart_ops.add_item(self.draft, name, unit_price, quantity, discount_percent)

    def remove_item(self, item_id: str) -> bool:
        self._require_editing('remove items from')
        return cart_ops.remove_item(self.draft, item_id)

    def set_item_discount(self, item_id: str, percent: Decimal) -> bool:
        self._require_editing('discount items on')
        return cart_ops.set_item_discount(self.draft, item_id, percent)

    def set_global_discount(self, percent: Decimal) -> None:
        self._require_editing('discount')
        cart_ops.set_global_discount(self.draft, percent)

    def set_details(self, store_name: Optional[str] = None,
                    customer_phone: Optional[str] = None) -> None:
        self._require_editing('edit')
        cart_ops.set_details(self.draft, store_name, customer_phone)

    # ── Transitions ───────────────────────────────────────────────

    def finalize(self, ledger: Ledger, now: Optional[datetime] = None,
                 walk_in_label: str = WALK_IN_LABEL) -> Optional[LedgerEntry]:
        """
        Log the draft to `ledger` and start a new one.

        Returns the new LedgerEntry, or None when the cart is empty
        (nothing is logged and the draft is left exactly as it was).
        """
        self._require_editing('finalize')
        if self.draft.is_empty:
            return None

        entry = entry_from_draft(self.draft, now=now, walk_in_label=walk_in_label)
        ledger.append(entry)
        self.draft = cart_ops.reset_draft(self.draft, self.bill_prefix)
        self.preview_open = False
        return entry

    def start_new(self, store_name: str) -> None:
        """Leave a shared bill behind and begin a fresh draft."""
        if not self.is_shared:
            raise InvalidTransition('Only a shared bill can be left for a new one.')
        self.mode = SessionMode.EDITING
        self.draft = cart_ops.new_draft(store_name, self.bill_prefix)
        self.preview_open = False

    def open_preview(self) -> None:
        self._require_editing('preview')
        self.preview_open = True

    def close_preview(self) -> None:
        self._require_editing('close the preview of')
        self.preview_open = False

    # ── Serialisation (Flask session storage) ─────────────────────

    def to_dict(self) -> dict:
        return {
            'mode':         self.mode.value,
            'preview_open': self.preview_open,
            'bill_prefix':  self.bill_prefix,
            'draft':        self.draft.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'BillSession':
        return cls(
            mode=SessionMode(data['mode']),
            draft=DraftBill.from_dict(data['draft']),
            preview_open=bool(data.get('preview_open', False)),
            bill_prefix=data.get('bill_prefix', DEFAULT_BILL_PREFIX),
        )
