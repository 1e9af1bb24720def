"""
Budget aggregation - pure functions over already-fetched rows.

compute_summary() turns one month's allocation (or None) plus that month's
transactions into the BudgetSummary served by GET /api/v1/budget/summary.
No I/O and no filtering happen here: callers pass rows already restricted to
the couple and to month_window(month_key).
"""
import calendar
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Iterable, Optional, Tuple
from zoneinfo import ZoneInfo

from ourlittleworld.application.errors import ValidationError
from ourlittleworld.domain.transaction import (
    PAYER_HIS, PAYER_HERS, PAYER_SHARED, PAYERS, TYPE_INCOME, TYPE_EXPENSE,
)
from ourlittleworld.utils.money import to_decimal, to_float
from ourlittleworld.utils.validation import MONTH_KEY_RE

STATUS_HEALTHY = "healthy"
STATUS_WARNING = "warning"
STATUS_OVER_BUDGET = "over_budget"

# balance.total thresholds, as a share of monthly_total (inclusive on the >= side)
HEALTHY_SHARE = Decimal("0.5")
WARNING_SHARE = Decimal("0.2")

ZERO = Decimal("0")


# ---------------------------------------------------------------------------
# Month keys
# ---------------------------------------------------------------------------

def parse_month_key(month_key: str) -> Tuple[int, int]:
    """'2026-02' -> (2026, 2). Raises ValidationError for anything else."""
    match = MONTH_KEY_RE.match(month_key or "")
    if not match:
        raise ValidationError(f"Invalid month: {month_key!r}. Use YYYY-MM")
    return int(match.group(1)), int(match.group(2))


def month_window(month_key: str) -> Tuple[date, date]:
    """Inclusive [first day, last day] of the month"""
    year, month = parse_month_key(month_key)
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


def today_in(tz_name: str) -> date:
    return datetime.now(ZoneInfo(tz_name)).date()


def current_month_key(tz_name: str) -> str:
    today = today_in(tz_name)
    return f"{today.year:04d}-{today.month:02d}"


# ---------------------------------------------------------------------------
# Value types
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class BudgetAllocation:
    monthly_total: Decimal
    his_budget: Decimal
    hers_budget: Decimal
    shared_budget: Decimal

    @classmethod
    def from_row(cls, row: Any) -> "BudgetAllocation":
        """Build from a BudgetModel (or anything with the same attributes)"""
        return cls(
            monthly_total=to_decimal(row.monthly_total, "monthly_total"),
            his_budget=to_decimal(row.his_budget, "his_budget"),
            hers_budget=to_decimal(row.hers_budget, "hers_budget"),
            shared_budget=to_decimal(row.shared_budget, "shared_budget"),
        )

    def for_payer(self, payer: str) -> Decimal:
        return {
            PAYER_HIS: self.his_budget,
            PAYER_HERS: self.hers_budget,
            PAYER_SHARED: self.shared_budget,
        }[payer]

    def to_wire(self) -> Dict[str, float]:
        return {
            "monthly_total": to_float(self.monthly_total),
            "his_budget": to_float(self.his_budget),
            "hers_budget": to_float(self.hers_budget),
            "shared_budget": to_float(self.shared_budget),
        }


@dataclass
class BucketTotals:
    his: Decimal = ZERO
    hers: Decimal = ZERO
    shared: Decimal = ZERO
    total: Decimal = ZERO

    def get(self, payer: str) -> Decimal:
        return getattr(self, payer.lower())

    def add(self, payer: str, amount: Decimal) -> None:
        attr = payer.lower()
        setattr(self, attr, getattr(self, attr) + amount)
        self.total += amount

    def to_wire(self) -> Dict[str, float]:
        return {
            "his": to_float(self.his),
            "hers": to_float(self.hers),
            "shared": to_float(self.shared),
            "total": to_float(self.total),
        }


@dataclass
class BudgetSummary:
    month: str
    income: BucketTotals
    expenses: BucketTotals
    balance: BucketTotals
    budget_goals: Optional[BudgetAllocation]
    percentage: int
    status: str
    transactions_count: int
    category_breakdown: Dict[str, Decimal] = field(default_factory=dict)

    def to_wire(self) -> Dict[str, Any]:
        """JSON shape of GET /api/v1/budget/summary"""
        return {
            "month": self.month,
            "income": self.income.to_wire(),
            "expenses": self.expenses.to_wire(),
            "balance": self.balance.to_wire(),
            "budget_goals": self.budget_goals.to_wire() if self.budget_goals else None,
            "percentage": self.percentage,
            "status": self.status,
            "transactions_count": self.transactions_count,
            "category_breakdown": {k: to_float(v) for k, v in self.category_breakdown.items()},
        }


# ---------------------------------------------------------------------------
# Formulas
# ---------------------------------------------------------------------------

def spend_percentage(expenses_total: Decimal, monthly_total: Decimal) -> int:
    """round_half_up(expenses / total * 100); 0 when there is no total to divide by"""
    if monthly_total <= 0:
        return 0
    ratio = expenses_total / monthly_total * 100
    return int(ratio.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def budget_status(balance_total: Decimal, monthly_total: Decimal) -> str:
    if balance_total >= monthly_total * HEALTHY_SHARE:
        return STATUS_HEALTHY
    if balance_total >= monthly_total * WARNING_SHARE:
        return STATUS_WARNING
    return STATUS_OVER_BUDGET


def compute_summary(
    budget: Any,
    transactions: Iterable[Any],
    month_key: str,
) -> BudgetSummary:
    """
    Aggregate one month of transactions against its allocation.

    Args:
        budget: BudgetAllocation, a BudgetModel row, or None (no budget configured)
        transactions: rows with amount / category / payer / type, already
            filtered to month_window(month_key) and to the couple
        month_key: "YYYY-MM", echoed back in the summary

    Returns:
        BudgetSummary, always fully populated (zeros where there is no data)

    Raises:
        ValidationError: malformed input (bad payer/type, non-finite amount,
            negative monthly_total)
    """
    income = BucketTotals()
    expenses = BucketTotals()
    breakdown: Dict[str, Decimal] = {}
    count = 0

    for tx in transactions:
        amount = to_decimal(tx.amount)
        payer = tx.payer
        if payer not in PAYERS:
            raise ValidationError(f"Invalid payer: {payer!r}")
        tx_type = getattr(tx, "type", None) or TYPE_EXPENSE
        if tx_type == TYPE_INCOME:
            income.add(payer, amount)
        elif tx_type == TYPE_EXPENSE:
            expenses.add(payer, amount)
        else:
            raise ValidationError(f"Invalid transaction type: {tx_type!r}")

        # Income and expense rows share one breakdown on purpose
        breakdown[tx.category] = breakdown.get(tx.category, ZERO) + amount
        count += 1

    allocation = None
    if budget is not None:
        allocation = budget if isinstance(budget, BudgetAllocation) else BudgetAllocation.from_row(budget)
        if allocation.monthly_total < 0:
            raise ValidationError("monthly_total cannot be negative")

    balance = BucketTotals()
    percentage = 0
    status = STATUS_HEALTHY

    if allocation is not None:
        for payer in PAYERS:
            bucket = allocation.for_payer(payer) + income.get(payer) - expenses.get(payer)
            balance.add(payer, bucket)
        percentage = spend_percentage(expenses.total, allocation.monthly_total)
        status = budget_status(balance.total, allocation.monthly_total)

    return BudgetSummary(
        month=month_key,
        income=income,
        expenses=expenses,
        balance=balance,
        budget_goals=allocation,
        percentage=percentage,
        status=status,
        transactions_count=count,
        category_breakdown=breakdown,
    )
