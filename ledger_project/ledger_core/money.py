from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from . import conf

TWOPLACES = Decimal("0.01")
ZERO = Decimal("0.00")


def money(value) -> Decimal:
    """Coerce to a 2-place Decimal (None/"" → 0.00)."""
    if value is None or value == "":
        return ZERO

    if isinstance(value, Decimal):
        amt = value
    else:
        try:
            amt = Decimal(str(value))
        except (InvalidOperation, ValueError, TypeError) as exc:
            raise ValueError(f"Invalid money value: {value!r}") from exc

    return amt.quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def is_zero(value) -> bool:
    """Anything smaller than LEDGER_EPSILON in magnitude counts as zero."""
    return abs(value) < conf.epsilon()


def percentage(part, whole) -> Decimal:
    if is_zero(whole):
        return ZERO
    return money(part / whole * 100)
