"""
billstation/billing/routes.py
------------------------------
JSON endpoints for the billing screen.

The BillSession (mode + draft + preview flag) lives in the Flask session
under 'bill_session'; the ledger and the store name live in the
key-value store. Every endpoint answers with the same state document
(see `_state`) so a thin front end can re-render from any response.
"""
from datetime import date

from flask import (
    Blueprint, current_app, jsonify, redirect, request, session, url_for, Response
)

from billstation.billing.capabilities import ExtractionError, ShareError
from billstation.billing.codec import share_token_from_url, share_url, strip_share_param
from billstation.billing.receipt import (
    build_receipt, format_bill_message, short_link_message, whatsapp_url
)
from billstation.billing.session import BillSession, InvalidTransition
from billstation.billing.validators import (
    clamp_percent, validate_item_form, parse_item_form, DISCOUNT_PRESETS
)
from billstation.storage.models import (
    SqlKeyValueStore, load_ledger, save_ledger, load_store_name, save_store_name
)


billing = Blueprint('billing', __name__)

SESSION_KEY = 'bill_session'


# ── Helpers ───────────────────────────────────────────────────────

def _store():
    return SqlKeyValueStore()


def _store_name():
    return load_store_name(_store(), current_app.config['DEFAULT_STORE_NAME'])


def _fresh_session() -> BillSession:
    return BillSession.fresh(_store_name(), current_app.config['BILL_ID_PREFIX'])


def _load_session() -> BillSession:
    """Current BillSession, starting a fresh editing one if none is stored."""
    data = session.get(SESSION_KEY)
    if data:
        return BillSession.from_dict(data)
    return _fresh_session()


def _save_session(bs: BillSession) -> None:
    session[SESSION_KEY] = bs.to_dict()
    session.modified = True


def _state(bs: BillSession, **extra):
    """The document every billing endpoint returns."""
    doc = {
        'mode':             bs.mode.value,
        'preview_open':     bs.preview_open,
        'can_finalize':     bs.is_editing and not bs.draft.is_empty,
        'discount_presets': list(DISCOUNT_PRESETS),
        'bill':             build_receipt(bs.draft, currency=current_app.config['CURRENCY_SYMBOL']),
    }
    if bs.is_editing:
        doc['ledger'] = load_ledger(_store()).summary().as_dict()
    doc.update(extra)
    return jsonify(doc)


@billing.errorhandler(InvalidTransition)
def invalid_transition(exc):
    return jsonify({'error': str(exc)}), 409


# ── BILLING SCREEN ────────────────────────────────────────────────

@billing.route('/')
def index():
    """
    Entry point. A share token in the URL opens that bill read-only;
    a broken token is dropped from the URL and the stored session kept.
    """
    share_key = current_app.config['SHARE_QUERY_KEY']

    if share_token_from_url(request.url, share_key) is not None:
        bs = BillSession.start(
            request.url,
            store_name=_store_name(),
            bill_prefix=current_app.config['BILL_ID_PREFIX'],
            share_key=share_key,
        )
        if not bs.is_shared:
            current_app.logger.warning("Discarding unreadable share link")
            return redirect(strip_share_param(request.url, share_key))
        current_app.logger.info(f"Opened shared bill {bs.draft.bill_id}")
        _save_session(bs)
        return _state(bs)

    bs = _load_session()
    _save_session(bs)
    return _state(bs)


# ── CART ──────────────────────────────────────────────────────────

@billing.route('/items', methods=['POST'])
def add_item():
    """Add a line item. Invalid input is ignored, not reported."""
    bs = _load_session()
    errors = validate_item_form(request.form)
    if not errors:
        bs.add_item(**parse_item_form(request.form))
        _save_session(bs)
    return _state(bs)


@billing.route('/items/<item_id>/remove', methods=['POST'])
def remove_item(item_id):
    bs = _load_session()
    if not bs.remove_item(item_id):
        return jsonify({'error': f'No item {item_id!r} in the cart.'}), 404
    _save_session(bs)
    return _state(bs)


@billing.route('/items/<item_id>/discount', methods=['POST'])
def item_discount(item_id):
    bs = _load_session()
    if not bs.set_item_discount(item_id, clamp_percent(request.form.get('discount'))):
        return jsonify({'error': f'No item {item_id!r} in the cart.'}), 404
    _save_session(bs)
    return _state(bs)


@billing.route('/discount', methods=['POST'])
def global_discount():
    bs = _load_session()
    bs.set_global_discount(clamp_percent(request.form.get('discount')))
    _save_session(bs)
    return _state(bs)


@billing.route('/details', methods=['POST'])
def details():
    """Store display name (persisted) and customer phone."""
    bs = _load_session()
    store_name = request.form.get('store_name')
    bs.set_details(
        store_name=store_name,
        customer_phone=request.form.get('customer_phone'),
    )
    if store_name is not None:
        save_store_name(_store(), store_name)
    _save_session(bs)
    return _state(bs)


# ── FINALIZE ──────────────────────────────────────────────────────

@billing.route('/finalize', methods=['POST'])
def finalize():
    """Log the bill to the ledger and start a new draft."""
    bs = _load_session()
    store = _store()
    ledger = load_ledger(store)

    entry = bs.finalize(ledger, walk_in_label=current_app.config['WALK_IN_LABEL'])
    if entry is None:
        return _state(bs, entry=None)

    save_ledger(store, ledger)
    _save_session(bs)
    current_app.logger.info(f"Bill finalized: {entry.bill_id} | Total: {entry.total}")
    return _state(bs, entry=entry.to_dict())


# ── PREVIEW ───────────────────────────────────────────────────────

@billing.route('/preview', methods=['POST'])
def open_preview():
    bs = _load_session()
    bs.open_preview()
    _save_session(bs)
    return _state(bs)


@billing.route('/preview/close', methods=['POST'])
def close_preview():
    bs = _load_session()
    bs.close_preview()
    _save_session(bs)
    return _state(bs)


# ── SHARING ───────────────────────────────────────────────────────

@billing.route('/share/link')
def share_link():
    """
    Share URL for the current draft plus the WhatsApp hand-off.
    ?variant=short sends only the link instead of the itemised bill.
    """
    bs = _load_session()
    if not bs.is_editing:
        raise InvalidTransition('A shared bill cannot be re-shared.')

    link = share_url(url_for('billing.index', _external=True), bs.draft,
                     current_app.config['SHARE_QUERY_KEY'])
    if request.args.get('variant') == 'short':
        message = short_link_message(bs.draft, link)
    else:
        message = format_bill_message(bs.draft, link, today=date.today(),
                                      currency=current_app.config['CURRENCY_SYMBOL'])
    return jsonify({
        'share_url':    link,
        'message':      message,
        'whatsapp_url': whatsapp_url(bs.draft.customer_phone, message),
    })


@billing.route('/share/image', methods=['POST'])
def share_image():
    """Hand the receipt to ImageShare. A guest may save a received bill too."""
    image_share = current_app.extensions.get('image_share')
    if image_share is None:
        return jsonify({'error': 'Image sharing is not available.'}), 503

    bs = _load_session()
    receipt = build_receipt(bs.draft, currency=current_app.config['CURRENCY_SYMBOL'])
    try:
        image_share.share(receipt, f'Bill-{bs.draft.bill_id}.png')
    except ShareError as exc:
        current_app.logger.warning(f"Image share failed for {bs.draft.bill_id}: {exc}")
        return jsonify({'error': 'Sharing failed.'}), 502
    return _state(bs, shared=True)


# ── AI EXTRACTION ─────────────────────────────────────────────────

@billing.route('/extract', methods=['POST'])
def extract():
    """Turn free text into line items; the cart is untouched on failure."""
    text_to_items = current_app.extensions.get('text_to_items')
    if text_to_items is None:
        return jsonify({'error': 'Item extraction is not configured.'}), 503

    bs = _load_session()
    if not bs.is_editing:
        raise InvalidTransition('Cannot add items to a shared bill.')

    try:
        items = text_to_items.extract(request.form.get('text', ''))
    except ExtractionError as exc:
        current_app.logger.warning(f"Item extraction failed: {exc}")
        return jsonify({'error': str(exc)}), 502

    for it in items:
        bs.add_item(name=it.name, unit_price=it.price, quantity=it.quantity)
    _save_session(bs)
    return _state(bs, extracted=len(items))


# ── LEAVE SHARED BILL ─────────────────────────────────────────────

@billing.route('/new', methods=['POST'])
def start_new():
    bs = _load_session()
    bs.start_new(_store_name())
    _save_session(bs)
    return _state(bs)


# ── LEDGER ────────────────────────────────────────────────────────

@billing.route('/ledger')
def ledger():
    led = load_ledger(_store())
    return jsonify({
        'entries': [e.to_dict() for e in led],
        'summary': led.summary().as_dict(),
    })


@billing.route('/ledger/export.tsv')
def export_ledger():
    """Tab-separated ledger, paste-ready for a spreadsheet."""
    led = load_ledger(_store())
    filename = f'ledger_{date.today().isoformat()}.tsv'
    return Response(
        led.export(),
        mimetype='text/tab-separated-values',
        headers={'Content-Disposition': f'attachment; filename={filename}'},
    )


@billing.route('/ledger/clear', methods=['POST'])
def clear_ledger():
    """Permanently empty the ledger; requires confirm=yes."""
    if request.form.get('confirm') != 'yes':
        return jsonify({'error': 'Clearing the ledger must be confirmed.'}), 400

    store = _store()
    led = load_ledger(store)
    count = len(led)
    led.clear()
    save_ledger(store, led)
    current_app.logger.info(f"Ledger cleared ({count} entries)")
    return jsonify({'entries': [], 'summary': led.summary().as_dict()})
