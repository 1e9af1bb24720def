"""
Budget API: monthly summary and the his/hers/shared allocation
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ourlittleworld.api.deps import Amount, CamelModel, get_current_user, get_db
from ourlittleworld.application.budget import UpdateBudgetAllocationUseCase, budget_to_dict, get_budget_summary
from ourlittleworld.infrastructure.db.models import User


router = APIRouter(prefix="/api/v1/budget", tags=["budget"])


class UpdateBudgetRequest(CamelModel):
    couple_id: str | None = None
    monthly_total: Amount | None = None
    his_budget: Amount | None = None
    hers_budget: Amount | None = None
    shared_budget: Amount | None = None
    month: str | None = None  # YYYY-MM, current month when omitted


@router.get("/summary")
def budget_summary(
    couple_id: str | None = Query(None, alias="coupleId"),
    month: str | None = None,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return get_budget_summary(db, user, couple_id, month).to_wire()


@router.put("/goals")
def update_budget_goals(
    req: UpdateBudgetRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Set the month's total and split.

    400 with {"detail", "difference"} when his + hers + shared != total.
    """
    budget = UpdateBudgetAllocationUseCase(db).execute(
        user,
        couple_id=req.couple_id,
        monthly_total=req.monthly_total,
        his_budget=req.his_budget,
        hers_budget=req.hers_budget,
        shared_budget=req.shared_budget,
        month=req.month,
    )
    data = budget_to_dict(budget)
    data.pop("month")
    return data
