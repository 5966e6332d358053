"""
billstation/billing/validators.py
----------------------------------
Pure-Python validation for operator input.

Line-item forms return a dict of field -> error_message; an empty dict
means the item can be added. Percent and quantity inputs are never
rejected, only clamped into range, mirroring how the billing screen
behaves.
"""
from decimal import Decimal, InvalidOperation


MIN_PERCENT = Decimal('0')
MAX_PERCENT = Decimal('100')

DISCOUNT_PRESETS = (0, 5, 10, 15, 20)

# Largest accepted price is below 10**12; quantity tops out at MAX_QUANTITY.
# Together they keep every total well inside Decimal's 28-digit context.
MAX_PRICE_EXPONENT = 11
MAX_QUANTITY       = 99999


def _to_decimal(raw):
    """Decimal from a form value, or None when it is not a finite number."""
    if raw is None:
        return None
    try:
        value = Decimal(str(raw).strip())
    except InvalidOperation:
        return None
    if not value.is_finite():
        return None
    return value


def clamp_percent(raw) -> Decimal:
    """
    Coerce a percent input into [0, 100].
    Blank or non-numeric input counts as 0.
    """
    value = _to_decimal(raw)
    if value is None:
        return MIN_PERCENT
    return min(MAX_PERCENT, max(MIN_PERCENT, value))


def clamp_quantity(raw) -> int:
    """Quantity is a whole number in [1, MAX_QUANTITY]; junk becomes 1."""
    try:
        qty = int(str(raw).strip())
    except (TypeError, ValueError):
        return 1
    return min(MAX_QUANTITY, max(1, qty))


def price_in_range(value: Decimal) -> bool:
    """True for a non-negative price small enough to bill."""
    return value >= 0 and (value == 0 or value.adjusted() <= MAX_PRICE_EXPONENT)


def validate_item_form(form_data: dict) -> dict:
    """
    Validate raw form data for a new line item.

    Returns:
        dict of {field_name: error_message}, empty if all valid.
    """
    errors = {}

    # ── name ─────────────────────────────────────────────────────
    name = (form_data.get('name') or '').strip()
    if not name:
        errors['name'] = 'Item name is required.'
    elif len(name) > 200:
        errors['name'] = 'Item name must be 200 characters or fewer.'

    # ── price ─────────────────────────────────────────────────────
    price_raw = form_data.get('price')
    if price_raw is None or not str(price_raw).strip():
        errors['price'] = 'Price is required.'
    else:
        price = _to_decimal(price_raw)
        if price is None:
            errors['price'] = 'Price must be a valid number.'
        elif price < 0:
            errors['price'] = 'Price cannot be negative.'
        elif not price_in_range(price):
            errors['price'] = 'Price is too large.'

    return errors


def parse_item_form(form_data: dict) -> dict:
    """
    Convert validated raw form values to the types LineItem expects.
    Call only after validate_item_form returns no errors.
    """
    return {
        'name':             form_data.get('name', '').strip(),
        'unit_price':       _to_decimal(form_data.get('price')),
        'quantity':         clamp_quantity(form_data.get('quantity', 1)),
        'discount_percent': clamp_percent(form_data.get('discount', 0)),
    }
