"""Money helpers: 2-place Decimal, round-half-up, no negatives, no NaN/inf."""

import math
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from fincontrols.exceptions import ValidationError

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def round_money(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def to_money(value, field_name: str = "amount") -> Decimal:
    """Coerce an input amount to a non-negative 2-place Decimal or raise ValidationError."""
    if value is None or isinstance(value, bool):
        raise ValidationError(f"{field_name} is required", details={"field": field_name})
    if isinstance(value, float):
        if not math.isfinite(value):
            raise ValidationError(
                f"{field_name} must be a finite number", details={"field": field_name}
            )
        # str() keeps the shortest repr, so 0.1 stays 0.1 rather than its binary expansion
        value = str(value)
    try:
        amount = Decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError(
            f"{field_name} is not a valid amount", details={"field": field_name}
        )
    if not amount.is_finite():
        raise ValidationError(
            f"{field_name} must be a finite number", details={"field": field_name}
        )
    if amount < 0:
        raise ValidationError(
            f"{field_name} cannot be negative", details={"field": field_name}
        )
    return round_money(amount)
