"""
Money helpers.
Amounts are stored as integer cents and handled as Decimal everywhere else.
"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from usanumbers.errors import ValidationError

CENT = Decimal("0.01")
# Upper bound for any single client-supplied amount
MAX_AMOUNT = Decimal("1000000000.00")


def to_decimal(value, field="amount"):
    """Parse a JSON number or numeric string into a Decimal quantized to cents."""
    if value is None or isinstance(value, bool):
        raise ValidationError(f"Invalid {field}")
    try:
        amount = Decimal(str(value).strip())
        if not amount.is_finite() or abs(amount) > MAX_AMOUNT:
            raise ValidationError(f"Invalid {field}")
        return amount.quantize(CENT, rounding=ROUND_HALF_UP)
    except (InvalidOperation, ValueError):
        raise ValidationError(f"Invalid {field}")


def to_cents(value, field="amount"):
    return int(to_decimal(value, field) * 100)


def from_cents(cents):
    return (Decimal(cents or 0) / 100).quantize(CENT)


def as_float(cents):
    return float(from_cents(cents))


def format_amount(cents):
    return str(from_cents(cents))


def split_amount(total_cents, parts):
    """
    Split total_cents into equal shares, rounding down.
    The remainder goes to the last share so the shares always sum to the total.
    """
    if parts <= 0:
        raise ValueError("parts must be positive")
    share = total_cents // parts
    shares = [share] * parts
    shares[-1] += total_cents - share * parts
    return shares
