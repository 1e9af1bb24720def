"""
Transaction API endpoints
"""
from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ourlittleworld.api.deps import Amount, CamelModel, get_current_user, get_db
from ourlittleworld.application.transactions import (
    CreateTransactionUseCase,
    DeleteTransactionUseCase,
    UpdateTransactionUseCase,
    list_transactions,
    transaction_to_dict,
)
from ourlittleworld.infrastructure.db.models import User


router = APIRouter(prefix="/api/v1/transactions", tags=["transactions"])


# === Request models ===

class CreateTransactionRequest(CamelModel):
    couple_id: str | None = None
    amount: Amount | None = None  # Decimal as string
    category: str | None = None
    payer: str | None = None
    type: str | None = None
    note: str | None = None
    transaction_date: date | None = None


class UpdateTransactionRequest(CamelModel):
    amount: Amount | None = None
    category: str | None = None
    note: str | None = None
    payer: str | None = None
    transaction_date: date | None = None


# === Endpoints ===

@router.get("")
def get_transactions(
    couple_id: str | None = Query(None, alias="coupleId"),
    month: str | None = None,
    category: str | None = None,
    payer: str | None = None,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Couple's transactions, newest first"""
    rows = list_transactions(db, user, couple_id, month=month, category=category, payer=payer)
    return [transaction_to_dict(tx) for tx in rows]


@router.post("", status_code=201)
def create_transaction(
    req: CreateTransactionRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    tx = CreateTransactionUseCase(db).execute(
        user,
        couple_id=req.couple_id,
        amount=req.amount,
        category=req.category,
        payer=req.payer,
        tx_type=req.type,
        note=req.note,
        transaction_date=req.transaction_date,
    )
    return transaction_to_dict(tx)


@router.put("/{transaction_id}")
def update_transaction(
    transaction_id: str,
    req: UpdateTransactionRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Partial update: only the fields present in the body change"""
    changes = req.model_dump(exclude_unset=True)
    tx = UpdateTransactionUseCase(db).execute(user, transaction_id, **changes)
    return transaction_to_dict(tx)


@router.delete("/{transaction_id}")
def delete_transaction(
    transaction_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    DeleteTransactionUseCase(db).execute(user, transaction_id)
    return {"success": True, "id": transaction_id}
