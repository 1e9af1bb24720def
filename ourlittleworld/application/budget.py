"""
Budget use cases and the monthly summary query.

The allocation write path always goes through require_balanced(); the
summary path fetches rows and hands them to the pure aggregator.
"""
import logging
from typing import Any, Optional

from sqlalchemy.orm import Session

from ourlittleworld.application.access import require_membership
from ourlittleworld.application.errors import ValidationError
from ourlittleworld.config import get_settings
from ourlittleworld.domain.allocation import require_balanced
from ourlittleworld.domain.budget import (
    BudgetAllocation, BudgetSummary, compute_summary, current_month_key, month_window, parse_month_key,
)
from ourlittleworld.infrastructure.db.models import BudgetModel, User
from ourlittleworld.infrastructure.eventlog.repository import EventLogRepository
from ourlittleworld.infrastructure.ledger.repository import LedgerRepository

logger = logging.getLogger(__name__)


def budget_to_dict(budget: BudgetModel) -> dict:
    return {
        "month": budget.month,
        "monthly_total": float(budget.monthly_total),
        "his_budget": float(budget.his_budget),
        "hers_budget": float(budget.hers_budget),
        "shared_budget": float(budget.shared_budget),
    }


class UpdateBudgetAllocationUseCase:
    """
    Use case: set the monthly total and its his/hers/shared split

    Refuses (InvalidBudget with the difference) unless the three buckets add up
    to the total exactly. Never rebalances on the caller's behalf.
    """

    def __init__(self, db: Session):
        self.db = db
        self.ledger = LedgerRepository(db)
        self.event_repo = EventLogRepository(db)

    def execute(
        self,
        user: Optional[User],
        couple_id: Optional[str],
        monthly_total: Any,
        his_budget: Any,
        hers_budget: Any,
        shared_budget: Any,
        month: Optional[str] = None,
    ) -> BudgetModel:
        require_membership(user, couple_id)

        if any(v is None for v in (monthly_total, his_budget, hers_budget, shared_budget)):
            raise ValidationError("monthlyTotal, hisBudget, hersBudget and sharedBudget are required")

        month = month or current_month_key(get_settings().TIMEZONE)
        parse_month_key(month)

        total, his, hers, shared = require_balanced(monthly_total, his_budget, hers_budget, shared_budget)
        budget = self.ledger.upsert_budget(
            couple_id,
            month,
            BudgetAllocation(monthly_total=total, his_budget=his, hers_budget=hers, shared_budget=shared),
        )

        self.event_repo.append_event(
            couple_id=couple_id,
            event_type="budget_updated",
            payload=budget_to_dict(budget),
            entity_id=budget.id,
            actor_user_id=user.id,
        )

        self.db.commit()
        logger.info("Budget %s for couple %s set to %s", month, couple_id, total)
        return budget


def get_budget_summary(
    db: Session,
    user: Optional[User],
    couple_id: Optional[str],
    month: Optional[str] = None,
) -> BudgetSummary:
    """
    Month summary for the couple (current month in the configured timezone by default)
    """
    require_membership(user, couple_id)

    month_key = month or current_month_key(get_settings().TIMEZONE)
    window = month_window(month_key)

    ledger = LedgerRepository(db)
    budget = ledger.find_budget(couple_id, month_key)
    transactions = ledger.find_transactions(couple_id, date_range=window)

    return compute_summary(budget, transactions, month_key)
