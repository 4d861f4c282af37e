"""Tiered-offer pricing.

An offer table maps a minimum purchase quantity to a discount percentage,
e.g. ``{1: 0, 6: 10, 12: 20}``. The richest tier whose threshold the
quantity reaches applies.

Tables arrive as JSON objects with string keys. ``parse_offer_table`` reads
them leniently (bad entries are dropped, unreadable tables become empty) so
pricing never fails a checkout; ``validate_offer_table`` is the strict form
used when an administrator edits offers.
"""

import json
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

import structlog

from storefront.errors import InvalidInput

logger = structlog.get_logger(__name__)

CENT = Decimal("0.01")


def _to_decimal(value) -> Decimal:
    return Decimal(str(value))


def _load(raw):
    if raw is None or raw == "":
        return {}
    if isinstance(raw, str):
        return json.loads(raw)
    return raw


def parse_offer_table(raw) -> dict[int, Decimal]:
    """Return a threshold-ordered ``{threshold: discount}`` mapping.

    Never raises: anything that cannot be read as a mapping of positive
    integer thresholds to 0-100 discounts is left out.
    """
    try:
        data = _load(raw)
    except (json.JSONDecodeError, TypeError):
        logger.warning("Unreadable offer table, pricing at MRP", offers=str(raw)[:100])
        return {}

    if not isinstance(data, dict):
        logger.warning("Offer table is not a mapping, pricing at MRP", offers=str(raw)[:100])
        return {}

    table = {}
    for key, value in data.items():
        try:
            threshold = int(str(key))
            discount = _to_decimal(value)
        except (ValueError, InvalidOperation):
            continue
        if isinstance(value, bool) or not discount.is_finite():
            continue
        if threshold < 1 or not Decimal(0) <= discount <= Decimal(100):
            continue
        table[threshold] = discount

    return dict(sorted(table.items()))


def validate_offer_table(raw) -> dict[int, Decimal]:
    """Strictly validate an offer table supplied by an administrator."""
    try:
        data = _load(raw)
    except (json.JSONDecodeError, TypeError):
        raise InvalidInput("Offers must be a JSON object") from None

    if not isinstance(data, dict):
        raise InvalidInput("Offers must be a mapping of quantity to discount")

    table = {}
    for key, value in data.items():
        try:
            threshold = int(str(key))
        except ValueError:
            raise InvalidInput(f"Quantity must be a whole number, got '{key}'", quantity=str(key)) from None
        if threshold < 1:
            raise InvalidInput("Quantity must be at least 1", quantity=threshold)
        if threshold in table:
            raise InvalidInput("Duplicate quantities are not allowed", quantity=threshold)
        if isinstance(value, bool) or not isinstance(value, int | float | str):
            raise InvalidInput(f"Discount for quantity {threshold} must be a number", quantity=threshold)
        try:
            discount = _to_decimal(value)
        except InvalidOperation:
            raise InvalidInput(f"Discount for quantity {threshold} must be a number", quantity=threshold) from None
        if not discount.is_finite() or not Decimal(0) <= discount <= Decimal(100):
            raise InvalidInput("Discount must be between 0 and 100", quantity=threshold, discount=str(value))
        table[threshold] = discount

    ordered = dict(sorted(table.items()))
    previous = None
    for threshold, discount in ordered.items():
        if previous is not None and discount < previous:
            raise InvalidInput(
                "Higher quantities should have equal or higher discounts",
                quantity=threshold,
            )
        previous = discount

    return ordered


def dump_offer_table(table: dict[int, Decimal]) -> str:
    """Serialize a typed table back to its JSON storage form."""
    return json.dumps({str(k): float(v) for k, v in sorted(table.items())})


def select_discount(table: dict[int, Decimal], quantity: int) -> Decimal:
    """Discount percentage of the largest threshold not exceeding ``quantity``."""
    applicable = [threshold for threshold in table if threshold <= quantity]
    if applicable:
        return table[max(applicable)]
    return table.get(1, Decimal(0))


def resolve_unit_price(mrp, offers, quantity: int) -> float:
    """Unit price for ``quantity`` units given the product's MRP and offer table.

    ``offers`` may be a typed table, a raw mapping or its JSON string.
    """
    if quantity < 1:
        raise InvalidInput("Quantity must be at least 1", quantity=quantity)

    table = offers if _is_typed(offers) else parse_offer_table(offers)
    discount = select_discount(table, quantity)
    price = _to_decimal(mrp) * (Decimal(1) - discount / Decimal(100))
    return float(price.quantize(CENT, rounding=ROUND_HALF_UP))


def _is_typed(offers) -> bool:
    return isinstance(offers, dict) and all(
        isinstance(k, int) and isinstance(v, Decimal) for k, v in offers.items()
    )


def line_amount(price, quantity: int) -> Decimal:
    return _to_decimal(price) * quantity


def total_of(lines) -> float:
    """Sum of ``price * quantity`` over ``(price, quantity)`` pairs, rounded to cents."""
    total = sum((line_amount(price, quantity) for price, quantity in lines), Decimal(0))
    return float(total.quantize(CENT, rounding=ROUND_HALF_UP))
