"""
Transaction use cases - business logic for ledger entries
"""
import logging
from datetime import date
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from ourlittleworld.application.access import require_membership, require_owned, require_user
from ourlittleworld.config import get_settings
from ourlittleworld.domain.budget import month_window, today_in
from ourlittleworld.domain.transaction import (
    TransactionValidationError, normalize_payer, normalize_type, require_category, require_positive_amount,
)
from ourlittleworld.infrastructure.db.models import TransactionModel, User
from ourlittleworld.infrastructure.eventlog.repository import EventLogRepository
from ourlittleworld.infrastructure.ledger.repository import LedgerRepository
from ourlittleworld.utils.money import to_decimal

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ("amount", "category", "note", "payer", "transaction_date")


def transaction_to_dict(tx: TransactionModel) -> Dict[str, Any]:
    """Wire/event snapshot of a transaction (amount as Decimal string)"""
    return {
        "id": tx.id,
        "couple_id": tx.couple_id,
        "amount": str(tx.amount),
        "category": tx.category,
        "note": tx.note,
        "payer": tx.payer,
        "type": tx.type,
        "created_by": tx.created_by,
        "transaction_date": tx.transaction_date.isoformat(),
        "created_at": tx.created_at.isoformat() if tx.created_at else None,
        "updated_at": tx.updated_at.isoformat() if tx.updated_at else None,
    }


class CreateTransactionUseCase:
    """
    Use case: record an income or expense for the couple

    1. Check identity and membership
    2. Validate amount / category / payer / type
    3. Insert the row and append transaction_created to the change log
    """

    def __init__(self, db: Session):
        self.db = db
        self.ledger = LedgerRepository(db)
        self.event_repo = EventLogRepository(db)

    def execute(
        self,
        user: Optional[User],
        couple_id: Optional[str],
        amount: Any,
        category: Optional[str],
        payer: Optional[str],
        tx_type: Optional[str] = None,
        note: Optional[str] = None,
        transaction_date: Optional[date] = None,
    ) -> TransactionModel:
        """
        Args:
            user: authenticated caller
            couple_id: target couple (must be the caller's)
            amount: > 0, Decimal-compatible
            category: free-text label
            payer: HIS / HERS / SHARED, case-insensitive
            tx_type: INCOME / EXPENSE, default EXPENSE
            note: optional
            transaction_date: default today in the configured timezone

        Returns:
            the persisted TransactionModel
        """
        require_membership(user, couple_id)

        if amount is None or amount == "":
            raise TransactionValidationError("Missing required fields")
        amount = require_positive_amount(to_decimal(amount))
        category = require_category(category)
        payer = normalize_payer(payer)
        tx_type = normalize_type(tx_type)

        tx = self.ledger.create_transaction(
            couple_id=couple_id,
            amount=amount,
            category=category,
            note=note or None,
            payer=payer,
            tx_type=tx_type,
            created_by=user.id,
            transaction_date=transaction_date or today_in(get_settings().TIMEZONE),
        )

        self.event_repo.append_event(
            couple_id=couple_id,
            event_type="transaction_created",
            payload=transaction_to_dict(tx),
            entity_id=tx.id,
            actor_user_id=user.id,
        )

        self.db.commit()
        return tx


class UpdateTransactionUseCase:
    """Use case: edit amount / category / note / payer / date (type is fixed)"""

    def __init__(self, db: Session):
        self.db = db
        self.ledger = LedgerRepository(db)
        self.event_repo = EventLogRepository(db)

    def execute(self, user: Optional[User], transaction_id: str, **changes: Any) -> TransactionModel:
        require_user(user)
        tx = require_owned(self.ledger.get_transaction(transaction_id), user, "Transaction")

        unknown = set(changes) - set(EDITABLE_FIELDS)
        if unknown:
            raise TransactionValidationError(f"Cannot edit: {', '.join(sorted(unknown))}")

        if "amount" in changes:
            tx.amount = require_positive_amount(to_decimal(changes["amount"]))
        if "category" in changes:
            tx.category = require_category(changes["category"])
        if "note" in changes:
            tx.note = changes["note"] or None
        if "payer" in changes:
            tx.payer = normalize_payer(changes["payer"])
        if "transaction_date" in changes:
            if changes["transaction_date"] is None:
                raise TransactionValidationError("transaction_date cannot be empty")
            tx.transaction_date = changes["transaction_date"]

        self.db.flush()
        self.event_repo.append_event(
            couple_id=tx.couple_id,
            event_type="transaction_updated",
            payload=transaction_to_dict(tx),
            entity_id=tx.id,
            actor_user_id=user.id,
        )

        self.db.commit()
        return tx


class DeleteTransactionUseCase:
    """Use case: delete a transaction. Nothing else cascades."""

    def __init__(self, db: Session):
        self.db = db
        self.ledger = LedgerRepository(db)
        self.event_repo = EventLogRepository(db)

    def execute(self, user: Optional[User], transaction_id: str) -> None:
        require_user(user)
        tx = require_owned(self.ledger.get_transaction(transaction_id), user, "Transaction")
        couple_id = tx.couple_id

        self.ledger.delete_transaction(tx)
        self.event_repo.append_event(
            couple_id=couple_id,
            event_type="transaction_deleted",
            payload={"id": transaction_id},
            entity_id=transaction_id,
            actor_user_id=user.id,
        )

        self.db.commit()
        logger.info("Transaction %s deleted by user %s", transaction_id, user.id)


def list_transactions(
    db: Session,
    user: Optional[User],
    couple_id: Optional[str],
    month: Optional[str] = None,
    category: Optional[str] = None,
    payer: Optional[str] = None,
) -> List[TransactionModel]:
    """Couple's transactions, newest first, optionally filtered by month/category/payer"""
    require_membership(user, couple_id)

    date_range = month_window(month) if month else None
    return LedgerRepository(db).find_transactions(
        couple_id,
        date_range=date_range,
        category=category or None,
        payer=normalize_payer(payer) if payer else None,
    )
