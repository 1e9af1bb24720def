"""
Ledger Repository - budgets, transactions and savings goals

Plain CRUD over SQLAlchemy. Membership checks happen in the application layer
before any of these methods is called.
"""
from datetime import date
from decimal import Decimal
from typing import Optional, List, Tuple

from sqlalchemy import case
from sqlalchemy.orm import Session

from ourlittleworld.domain.budget import BudgetAllocation
from ourlittleworld.infrastructure.db.models import BudgetModel, TransactionModel, SavingsGoalModel


class LedgerRepository:

    def __init__(self, db: Session):
        self.db = db

    # ------------------------------------------------------------------
    # Budgets
    # ------------------------------------------------------------------

    def find_budget(self, couple_id: str, month: str) -> Optional[BudgetModel]:
        """None means "no budget configured" for that month, not a zero budget"""
        return self.db.query(BudgetModel).filter(
            BudgetModel.couple_id == couple_id,
            BudgetModel.month == month
        ).first()

    def upsert_budget(self, couple_id: str, month: str, allocation: BudgetAllocation) -> BudgetModel:
        """
        Create or overwrite the (couple, month) row. The caller must have validated
        the allocation; this method stores what it is given.
        """
        budget = self.find_budget(couple_id, month)
        if budget is None:
            budget = BudgetModel(couple_id=couple_id, month=month)
            self.db.add(budget)

        budget.monthly_total = allocation.monthly_total
        budget.his_budget = allocation.his_budget
        budget.hers_budget = allocation.hers_budget
        budget.shared_budget = allocation.shared_budget
        self.db.flush()
        return budget

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    def find_transactions(
        self,
        couple_id: str,
        date_range: Optional[Tuple[date, date]] = None,
        category: Optional[str] = None,
        payer: Optional[str] = None,
    ) -> List[TransactionModel]:
        """
        Newest first. date_range is inclusive on both ends.
        """
        query = self.db.query(TransactionModel).filter(TransactionModel.couple_id == couple_id)

        if date_range is not None:
            start, end = date_range
            query = query.filter(
                TransactionModel.transaction_date >= start,
                TransactionModel.transaction_date <= end,
            )
        if category:
            query = query.filter(TransactionModel.category == category)
        if payer:
            query = query.filter(TransactionModel.payer == payer)

        return query.order_by(
            TransactionModel.transaction_date.desc(),
            TransactionModel.created_at.desc(),
        ).all()

    def get_transaction(self, transaction_id: str) -> Optional[TransactionModel]:
        return self.db.query(TransactionModel).filter(TransactionModel.id == transaction_id).first()

    def create_transaction(
        self,
        couple_id: str,
        amount: Decimal,
        category: str,
        note: Optional[str],
        payer: str,
        tx_type: str,
        created_by: str,
        transaction_date: date,
    ) -> TransactionModel:
        tx = TransactionModel(
            couple_id=couple_id,
            amount=amount,
            category=category,
            note=note,
            payer=payer,
            type=tx_type,
            created_by=created_by,
            transaction_date=transaction_date,
        )
        self.db.add(tx)
        self.db.flush()
        return tx

    def delete_transaction(self, tx: TransactionModel) -> None:
        self.db.delete(tx)
        self.db.flush()

    # ------------------------------------------------------------------
    # Savings goals
    # ------------------------------------------------------------------

    def find_goals(self, couple_id: str) -> List[SavingsGoalModel]:
        """Incomplete first, then nearest deadline (none last), then newest"""
        return self.db.query(SavingsGoalModel).filter(
            SavingsGoalModel.couple_id == couple_id
        ).order_by(
            SavingsGoalModel.is_completed.asc(),
            case((SavingsGoalModel.deadline.is_(None), 1), else_=0),
            SavingsGoalModel.deadline.asc(),
            SavingsGoalModel.created_at.desc(),
        ).all()

    def get_goal(self, goal_id: str) -> Optional[SavingsGoalModel]:
        return self.db.query(SavingsGoalModel).filter(SavingsGoalModel.id == goal_id).first()

    def upsert_goal(self, goal: SavingsGoalModel) -> SavingsGoalModel:
        """Insert a new goal or persist changes made to a loaded one"""
        if goal.id is None or self.db.get(SavingsGoalModel, goal.id) is None:
            self.db.add(goal)
        self.db.flush()
        return goal

    def delete_goal(self, goal: SavingsGoalModel) -> None:
        self.db.delete(goal)
        self.db.flush()
