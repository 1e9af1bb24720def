"""
Savings goal API endpoints
"""
from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ourlittleworld.api.deps import Amount, CamelModel, get_current_user, get_db
from ourlittleworld.application.goals import (
    CreateGoalUseCase, DeleteGoalUseCase, UpdateGoalUseCase, goal_to_dict, list_goals,
)
from ourlittleworld.infrastructure.db.models import User


router = APIRouter(prefix="/api/v1/savings-goals", tags=["savings-goals"])


class CreateGoalRequest(CamelModel):
    couple_id: str | None = None
    title: str | None = None
    description: str | None = None
    target_amount: Amount | None = None
    current_amount: Amount | None = None
    icon: str | None = None
    color: str | None = None
    deadline: date | None = None
    priority: str | None = None


class UpdateGoalRequest(CamelModel):
    title: str | None = None
    description: str | None = None
    target_amount: Amount | None = None
    current_amount: Amount | None = None
    icon: str | None = None
    color: str | None = None
    deadline: date | None = None
    priority: str | None = None
    is_completed: bool | None = None


@router.get("")
def get_goals(
    couple_id: str | None = Query(None, alias="coupleId"),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Incomplete first, then by deadline (none last), then newest"""
    return [goal_to_dict(g) for g in list_goals(db, user, couple_id)]


@router.post("", status_code=201)
def create_goal(
    req: CreateGoalRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    goal = CreateGoalUseCase(db).execute(
        user,
        couple_id=req.couple_id,
        title=req.title,
        target_amount=req.target_amount,
        current_amount=req.current_amount,
        description=req.description,
        icon=req.icon,
        color=req.color,
        deadline=req.deadline,
        priority=req.priority,
    )
    return goal_to_dict(goal)


@router.put("/{goal_id}")
def update_goal(
    goal_id: str,
    req: UpdateGoalRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    goal = UpdateGoalUseCase(db).execute(user, goal_id, **req.model_dump(exclude_unset=True))
    return goal_to_dict(goal)


@router.delete("/{goal_id}")
def delete_goal(
    goal_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    DeleteGoalUseCase(db).execute(user, goal_id)
    return {"success": True, "id": goal_id}
