"""
billstation/billing/codec.py
-----------------------------
Share-link codec: packs a draft bill into a URL-safe token and back.

Token layout
────────────
    token = urlsafe_base64( compact_json(payload) ), padding stripped

    payload = {
        "s":  store name,
        "i":  [{"name", "price", "quantity", "discount"}, ...],
        "d":  global discount percent,
        "id": bill id,
        "p":  customer phone
    }

Item ids are not part of the payload; they are regenerated on decode.
Prices and percents are written as decimal strings so the receiving side
rebuilds exactly the same Decimals and therefore exactly the same totals.
Plain JSON numbers and the standard base64 alphabet are also accepted on
decode, so links produced by older clients keep working.

The token travels as the single query parameter SHARE_QUERY_KEY.
"""
from __future__ import annotations
import base64
import binascii
import json
import logging
import time
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import List, Optional
from urllib.parse import urlsplit, urlunsplit, parse_qsl, urlencode

from billstation.billing.cart import DraftBill, LineItem
from billstation.billing.validators import MAX_QUANTITY, clamp_percent, price_in_range


logger = logging.getLogger(__name__)

SHARE_QUERY_KEY    = 'b'
DEFAULT_STORE_NAME = 'THE SILVER LINING'


class ShareTokenError(ValueError):
    """The share token could not be decoded into a bill."""


@dataclass
class SharedItem:
    name:     str
    price:    Decimal
    quantity: int = 1
    discount: Decimal = Decimal('0')


@dataclass
class SharePayload:
    """Minimal, id-free projection of a DraftBill."""
    store_name:       str
    bill_id:          str
    items:            List[SharedItem] = field(default_factory=list)
    discount_percent: Decimal = Decimal('0')
    customer_phone:   str = ''

    @classmethod
    def from_draft(cls, draft: DraftBill) -> 'SharePayload':
        return cls(
            store_name=draft.store_name,
            bill_id=draft.bill_id,
            items=[
                SharedItem(name=it.name, price=it.unit_price,
                           quantity=it.quantity, discount=it.discount_percent)
                for it in draft.items
            ],
            discount_percent=draft.discount_percent,
            customer_phone=draft.customer_phone,
        )

    def to_draft(self) -> DraftBill:
        """Rebuild a DraftBill; every line gets a fresh id."""
        return DraftBill(
            bill_id=self.bill_id,
            store_name=self.store_name,
            customer_phone=self.customer_phone,
            items=[
                LineItem(name=si.name, unit_price=si.price,
                         quantity=si.quantity, discount_percent=si.discount)
                for si in self.items
            ],
            discount_percent=self.discount_percent,
        )


# ── Token transform ───────────────────────────────────────────────

def _num(value: Decimal) -> str:
    """Shortest exact text for a Decimal ('10', '9.5', '0.125')."""
    return format(value.normalize(), 'f')


def encode(draft: DraftBill) -> str:
    """Serialise a draft into a URL-safe share token."""
    payload = SharePayload.from_draft(draft)
    data = {
        's':  payload.store_name,
        'i':  [
            {
                'name':     si.name,
                'price':    _num(si.price),
                'quantity': si.quantity,
                'discount': _num(si.discount),
            }
            for si in payload.items
        ],
        'd':  _num(payload.discount_percent),
        'id': payload.bill_id,
        'p':  payload.customer_phone,
    }
    raw = json.dumps(data, separators=(',', ':'), ensure_ascii=False).encode('utf-8')
    return base64.urlsafe_b64encode(raw).decode('ascii').rstrip('=')


def _b64decode(token: str) -> bytes:
    token = token.strip()
    padded = token + '=' * (-len(token) % 4)
    # Accept both alphabets: '-_' (ours) and '+/' (older links).
    # A '+' that survived query parsing arrives as a space.
    padded = padded.replace(' ', '+').replace('-', '+').replace('_', '/')
    return base64.b64decode(padded, validate=True)


def _decimal(value, default: str = '0') -> Decimal:
    if value is None or value == '':
        return Decimal(default)
    if isinstance(value, bool):
        raise ShareTokenError(f'Expected a number, got {value!r}')
    try:
        result = Decimal(str(value))
    except InvalidOperation as exc:
        raise ShareTokenError(f'Expected a number, got {value!r}') from exc
    if not result.is_finite():
        raise ShareTokenError(f'Expected a finite number, got {value!r}')
    return result


def _price(value) -> Decimal:
    price = _decimal(value)
    if not price_in_range(price):
        raise ShareTokenError(f'Price out of range: {value!r}')
    return price


def _quantity(value) -> int:
    if value is None or value == '':
        return 1
    if isinstance(value, bool):
        raise ShareTokenError(f'Bad quantity {value!r}')
    if isinstance(value, Decimal) and value.is_finite() and value > MAX_QUANTITY:
        return MAX_QUANTITY
    try:
        quantity = int(value)
    except (TypeError, ValueError, ArithmeticError) as exc:
        raise ShareTokenError(f'Bad quantity {value!r}') from exc
    return min(MAX_QUANTITY, max(1, quantity))


def _text(value, default: str, label: str) -> str:
    """String field of the payload; null and '' mean "missing"."""
    if value is None or value == '':
        return default
    if not isinstance(value, str):
        raise ShareTokenError(f'{label} must be text, got {value!r}')
    return value


def _reject_constant(name):
    raise ShareTokenError(f'Unsupported JSON constant {name}')


def _generated_bill_id() -> str:
    return f'BILL-{int(time.time() * 1000)}'


def decode_token(token: str) -> SharePayload:
    """
    Parse a share token. Missing fields fall back to defaults, prices and
    percents are brought into range the same way operator input is, and
    anything structurally wrong raises ShareTokenError.
    """
    try:
        raw = _b64decode(token)
        data = json.loads(raw.decode('utf-8'), parse_float=Decimal,
                          parse_constant=_reject_constant)
    except ShareTokenError:
        raise
    except (binascii.Error, UnicodeDecodeError, ValueError, RecursionError) as exc:
        raise ShareTokenError(f'Malformed share token: {exc}') from exc

    if not isinstance(data, dict):
        raise ShareTokenError('Share token does not hold an object.')

    raw_items = data.get('i') or []
    if not isinstance(raw_items, list):
        raise ShareTokenError('Share token items must be a list.')

    items = []
    for it in raw_items:
        if not isinstance(it, dict):
            raise ShareTokenError('Share token item must be an object.')
        items.append(SharedItem(
            name=_text(it.get('name'), '', 'Item name'),
            price=_price(it.get('price')),
            quantity=_quantity(it.get('quantity')),
            discount=clamp_percent(_decimal(it.get('discount'))),
        ))

    return SharePayload(
        store_name=_text(data.get('s'), DEFAULT_STORE_NAME, 'Store name'),
        bill_id=_text(data.get('id'), '', 'Bill id') or _generated_bill_id(),
        items=items,
        discount_percent=clamp_percent(_decimal(data.get('d'))),
        customer_phone=_text(data.get('p'), '', 'Customer phone'),
    )


# ── URL handling ──────────────────────────────────────────────────

def share_token_from_url(url: str, key: str = SHARE_QUERY_KEY) -> Optional[str]:
    """Value of the share query key, or None when absent."""
    for k, v in parse_qsl(urlsplit(url).query, keep_blank_values=True):
        if k == key:
            return v
    return None


def _with_query(url: str, pairs: list) -> str:
    parts = urlsplit(url)
    return urlunsplit((parts.scheme, parts.netloc, parts.path,
                       urlencode(pairs), parts.fragment))


def share_url(base_url: str, draft: DraftBill, key: str = SHARE_QUERY_KEY) -> str:
    """`base_url` with the share key set to the draft's token (replacing any)."""
    pairs = [(k, v) for k, v in parse_qsl(urlsplit(base_url).query, keep_blank_values=True)
             if k != key]
    pairs.append((key, encode(draft)))
    return _with_query(base_url, pairs)


def strip_share_param(url: str, key: str = SHARE_QUERY_KEY) -> str:
    """`url` without the share key; other query parameters are kept."""
    pairs = [(k, v) for k, v in parse_qsl(urlsplit(url).query, keep_blank_values=True)
             if k != key]
    return _with_query(url, pairs)


def decode(url: str, key: str = SHARE_QUERY_KEY) -> Optional[SharePayload]:
    """
    Payload carried by `url`, or None.

    None means either "no share key" or "share key present but broken";
    a broken token is logged and never raised. Callers that need to scrub
    the bad key use `share_token_from_url` + `strip_share_param`.
    """
    token = share_token_from_url(url, key)
    if token is None:
        return None
    try:
        return decode_token(token)
    except ShareTokenError as exc:
        logger.warning(f"Share link parsing failed: {exc}")
        return None
