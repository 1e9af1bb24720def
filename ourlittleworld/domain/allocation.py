"""
Allocation validator: his + hers + shared must equal the monthly total exactly.
"""
from dataclasses import dataclass
from decimal import Decimal, ROUND_FLOOR
from typing import Tuple

from ourlittleworld.application.errors import InvalidBudget
from ourlittleworld.utils.money import to_decimal


@dataclass(frozen=True)
class AllocationCheck:
    ok: bool
    difference: Decimal  # total - (his + hers + shared); > 0 under-allocated, < 0 over-allocated


def _coerce(monthly_total, his, hers, shared) -> Tuple[Decimal, Decimal, Decimal, Decimal]:
    total = to_decimal(monthly_total, "monthly_total")
    if total <= 0:
        raise InvalidBudget("Monthly budget must be greater than 0")
    return (
        total,
        to_decimal(his, "his_budget"),
        to_decimal(hers, "hers_budget"),
        to_decimal(shared, "shared_budget"),
    )


def validate_allocation(monthly_total, his, hers, shared) -> AllocationCheck:
    """
    Exact Decimal comparison, never float equality.

    Raises:
        InvalidBudget: monthly_total <= 0
        ValidationError: an input is not a finite number
    """
    total, his, hers, shared = _coerce(monthly_total, his, hers, shared)
    difference = total - (his + hers + shared)
    return AllocationCheck(ok=difference == 0, difference=difference)


def auto_balance(monthly_total, his, hers, shared) -> Tuple[Decimal, Decimal, Decimal]:
    """
    Spread the difference over the three buckets so they add up to the total.

    Each bucket gets floor(difference / 3) whole units; the remainder
    (difference - 3 * floor(difference / 3), always in [0, 3)) goes to shared,
    fractions included. Nothing is rounded, so the result is exact for any
    input precision. Order-dependent: shared absorbs the remainder.

    Returns:
        (his, hers, shared) summing exactly to monthly_total
    """
    total, his, hers, shared = _coerce(monthly_total, his, hers, shared)
    difference = total - (his + hers + shared)
    if difference == 0:
        return his, hers, shared

    per_bucket = (difference / 3).to_integral_value(rounding=ROUND_FLOOR)
    remainder = difference - 3 * per_bucket
    return his + per_bucket, hers + per_bucket, shared + per_bucket + remainder


def require_balanced(monthly_total, his, hers, shared) -> Tuple[Decimal, Decimal, Decimal, Decimal]:
    """
    Gate for persistence: returns the coerced values or raises InvalidBudget with the difference.
    """
    check = validate_allocation(monthly_total, his, hers, shared)
    if not check.ok:
        action = "Add" if check.difference > 0 else "Remove"
        raise InvalidBudget(
            f"Budget allocation doesn't match total. {action} {abs(check.difference)}",
            difference=check.difference,
        )
    return _coerce(monthly_total, his, hers, shared)
