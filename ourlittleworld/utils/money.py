"""
Money helpers for the whole project.

All currency math runs on Decimal; floats only appear at the wire boundary.

Usage:
    from ourlittleworld.utils.money import to_decimal, to_float

    to_decimal("12.50")      -> Decimal("12.50")
    to_float(Decimal("12.50")) -> 12.5
"""
from decimal import Decimal, InvalidOperation

from ourlittleworld.application.errors import ValidationError


def to_decimal(value, field: str = "amount") -> Decimal:
    """
    Coerce int / float / str / Decimal to a finite Decimal.

    Floats go through str() so 0.1 becomes Decimal("0.1"), not its binary expansion.

    Raises:
        ValidationError: not a number, NaN or infinite
    """
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number")
    if isinstance(value, float):
        value = str(value)
    try:
        result = value if isinstance(value, Decimal) else Decimal(str(value).strip().replace(",", "."))
    except (InvalidOperation, ValueError, TypeError):
        raise ValidationError(f"{field} must be a number")
    if not result.is_finite():
        raise ValidationError(f"{field} must be a finite number")
    return result


def to_float(value: Decimal | None) -> float | None:
    """Presentation boundary: Decimal -> float for JSON"""
    if value is None:
        return None
    return float(value)
