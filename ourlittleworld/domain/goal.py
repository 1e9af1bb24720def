"""
Savings goal rules
"""
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict

from ourlittleworld.application.errors import ValidationError

PRIORITY_HIGH = "high"
PRIORITY_MEDIUM = "medium"
PRIORITY_LOW = "low"
PRIORITIES = (PRIORITY_HIGH, PRIORITY_MEDIUM, PRIORITY_LOW)

DEFAULT_ICON = "Target"
DEFAULT_COLOR = "purple"


class GoalValidationError(ValidationError):
    """Invalid savings goal input"""
    pass


def normalize_priority(value: str | None) -> str:
    if value is None or value == "":
        return PRIORITY_MEDIUM
    priority = str(value).strip().lower()
    if priority not in PRIORITIES:
        raise GoalValidationError(f"Invalid priority: {value}. Use high, medium or low")
    return priority


def require_non_negative(value: Decimal, field: str) -> Decimal:
    if value < 0:
        raise GoalValidationError(f"{field} cannot be negative")
    return value


def progress(current_amount: Decimal, target_amount: Decimal) -> Decimal:
    """
    Raw progress in percent, not capped (a goal can be over-funded).
    A zero target counts as 0% so nothing divides by zero.
    """
    if target_amount <= 0:
        return Decimal("0")
    return (current_amount / target_amount * 100).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def display_progress(current_amount: Decimal, target_amount: Decimal) -> Decimal:
    """Progress clamped to 100 for progress bars"""
    return min(progress(current_amount, target_amount), Decimal("100"))


def completion_changes(is_completed: bool, now: datetime | None = None) -> Dict[str, Any]:
    """
    Column changes for toggling completion.

    Completing always stamps completed_at with the current time, even when the
    goal was already complete; un-completing clears it.
    """
    if is_completed:
        return {"is_completed": True, "completed_at": now or datetime.now(timezone.utc)}
    return {"is_completed": False, "completed_at": None}
