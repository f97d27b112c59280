from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from app.utils.exceptions import ValidationError

CENTS = Decimal("0.01")
# Numeric(10, 2) columns
MAX_AMOUNT = Decimal("99999999.99")


def to_money(value, field="amount"):
    """Parse a request value into a 2-place Decimal or raise ValidationError."""
    if value is None or isinstance(value, bool):
        raise ValidationError(f"{field} is required", {"field": field})
    try:
        amount = Decimal(str(value))
        if not amount.is_finite():
            raise ValidationError(f"{field} must be a number", {"field": field})
        amount = amount.quantize(CENTS, rounding=ROUND_HALF_UP)
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field} must be a number", {"field": field})
    if abs(amount) > MAX_AMOUNT:
        raise ValidationError(f"{field} is too large", {"field": field, "maximum": str(MAX_AMOUNT)})
    return amount


def quantize(amount):
    return Decimal(amount).quantize(CENTS, rounding=ROUND_HALF_UP)
