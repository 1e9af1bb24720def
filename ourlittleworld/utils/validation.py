"""
Validation utilities
"""
import re
from decimal import Decimal, InvalidOperation

MONTH_KEY_RE = re.compile(r"^(\d{4})-(0[1-9]|1[0-2])$")


def normalize_decimal_input(value: str) -> str:
    """
    Normalize an amount typed by a user: comma becomes a dot

    Example:
        >>> normalize_decimal_input("100,50")
        "100.50"
    """
    return value.strip().replace(",", ".")


def validate_decimal_amount(value: str, max_decimal_places: int = 2) -> tuple[bool, str | None]:
    """
    Validate a money amount

    Args:
        value: amount as string
        max_decimal_places: at most this many digits after the point

    Returns:
        (is_valid, error_message)

    Example:
        >>> validate_decimal_amount("100.50")
        (True, None)
        >>> validate_decimal_amount("100.505")
        (False, "At most 2 decimal places")
    """
    normalized = normalize_decimal_input(value)

    try:
        Decimal(normalized)
    except (InvalidOperation, ValueError):
        return False, "Invalid amount"

    pattern = rf"^-?\d+(\.\d{{1,{max_decimal_places}}})?$"
    if not re.match(pattern, normalized):
        return False, f"At most {max_decimal_places} decimal places"

    return True, None


def validate_and_normalize_amount(value, max_decimal_places: int = 2) -> str:
    """
    Validate and normalize an amount (raises on failure)

    Accepts numbers as well as strings: JSON clients send both.

    Raises:
        ValueError: validation failed
    """
    if isinstance(value, bool):
        raise ValueError("Invalid amount")
    if isinstance(value, (int, float, Decimal)):
        value = str(value)
    if not isinstance(value, str):
        raise ValueError("Invalid amount")

    is_valid, error = validate_decimal_amount(value, max_decimal_places)
    if not is_valid:
        raise ValueError(error)

    return normalize_decimal_input(value)
