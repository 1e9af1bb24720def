"""
Savings goal use cases
"""
from datetime import date
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from ourlittleworld.application.access import require_membership, require_owned, require_user
from ourlittleworld.domain.goal import (
    DEFAULT_COLOR, DEFAULT_ICON, GoalValidationError,
    completion_changes, display_progress, normalize_priority, progress, require_non_negative,
)
from ourlittleworld.infrastructure.db.models import SavingsGoalModel, User
from ourlittleworld.infrastructure.eventlog.repository import EventLogRepository
from ourlittleworld.infrastructure.ledger.repository import LedgerRepository
from ourlittleworld.utils.money import to_decimal

# sentinel: "field not provided" (None is a legal value for description/deadline)
UNSET: Any = ...


def goal_to_dict(goal: SavingsGoalModel) -> Dict[str, Any]:
    return {
        "id": goal.id,
        "couple_id": goal.couple_id,
        "title": goal.title,
        "description": goal.description,
        "target_amount": str(goal.target_amount),
        "current_amount": str(goal.current_amount),
        "icon": goal.icon,
        "color": goal.color,
        "deadline": goal.deadline.isoformat() if goal.deadline else None,
        "priority": goal.priority,
        "is_completed": goal.is_completed,
        "completed_at": goal.completed_at.isoformat() if goal.completed_at else None,
        "progress": str(progress(goal.current_amount, goal.target_amount)),
        "display_progress": str(display_progress(goal.current_amount, goal.target_amount)),
        "created_at": goal.created_at.isoformat() if goal.created_at else None,
        "updated_at": goal.updated_at.isoformat() if goal.updated_at else None,
    }


class CreateGoalUseCase:
    """Use case: create a shared savings goal"""

    def __init__(self, db: Session):
        self.db = db
        self.ledger = LedgerRepository(db)
        self.event_repo = EventLogRepository(db)

    def execute(
        self,
        user: Optional[User],
        couple_id: Optional[str],
        title: Optional[str],
        target_amount: Any,
        current_amount: Any = None,
        description: Optional[str] = None,
        icon: Optional[str] = None,
        color: Optional[str] = None,
        deadline: Optional[date] = None,
        priority: Optional[str] = None,
    ) -> SavingsGoalModel:
        require_membership(user, couple_id)

        title = (title or "").strip()
        if not title or target_amount is None or target_amount == "":
            raise GoalValidationError("Missing required fields")

        target = require_non_negative(to_decimal(target_amount, "target_amount"), "target_amount")
        current = require_non_negative(
            to_decimal(current_amount, "current_amount") if current_amount not in (None, "") else to_decimal(0),
            "current_amount",
        )

        goal = SavingsGoalModel(
            couple_id=couple_id,
            title=title,
            description=description or None,
            target_amount=target,
            current_amount=current,
            icon=icon or DEFAULT_ICON,
            color=color or DEFAULT_COLOR,
            deadline=deadline,
            priority=normalize_priority(priority),
            is_completed=False,
        )
        self.ledger.upsert_goal(goal)

        self.event_repo.append_event(
            couple_id=couple_id,
            event_type="goal_created",
            payload=goal_to_dict(goal),
            entity_id=goal.id,
            actor_user_id=user.id,
        )

        self.db.commit()
        return goal


class UpdateGoalUseCase:
    """Use case: partial update, including completing / reopening a goal"""

    def __init__(self, db: Session):
        self.db = db
        self.ledger = LedgerRepository(db)
        self.event_repo = EventLogRepository(db)

    def execute(
        self,
        user: Optional[User],
        goal_id: str,
        title: Any = UNSET,
        description: Any = UNSET,
        target_amount: Any = UNSET,
        current_amount: Any = UNSET,
        icon: Any = UNSET,
        color: Any = UNSET,
        deadline: Any = UNSET,
        priority: Any = UNSET,
        is_completed: Any = UNSET,
    ) -> SavingsGoalModel:
        require_user(user)
        goal = require_owned(self.ledger.get_goal(goal_id), user, "Goal")

        if title is not UNSET:
            title = (title or "").strip()
            if not title:
                raise GoalValidationError("Goal title cannot be empty")
            goal.title = title
        if description is not UNSET:
            goal.description = description or None
        if target_amount is not UNSET:
            goal.target_amount = require_non_negative(to_decimal(target_amount, "target_amount"), "target_amount")
        if current_amount is not UNSET:
            goal.current_amount = require_non_negative(to_decimal(current_amount, "current_amount"), "current_amount")
        if icon is not UNSET:
            goal.icon = icon or DEFAULT_ICON
        if color is not UNSET:
            goal.color = color or DEFAULT_COLOR
        if deadline is not UNSET:
            goal.deadline = deadline
        if priority is not UNSET:
            goal.priority = normalize_priority(priority)
        if is_completed is not UNSET and is_completed is not None:
            for key, value in completion_changes(bool(is_completed)).items():
                setattr(goal, key, value)

        self.ledger.upsert_goal(goal)
        self.event_repo.append_event(
            couple_id=goal.couple_id,
            event_type="goal_updated",
            payload=goal_to_dict(goal),
            entity_id=goal.id,
            actor_user_id=user.id,
        )

        self.db.commit()
        return goal


class DeleteGoalUseCase:

    def __init__(self, db: Session):
        self.db = db
        self.ledger = LedgerRepository(db)
        self.event_repo = EventLogRepository(db)

    def execute(self, user: Optional[User], goal_id: str) -> None:
        require_user(user)
        goal = require_owned(self.ledger.get_goal(goal_id), user, "Goal")
        couple_id = goal.couple_id

        self.ledger.delete_goal(goal)
        self.event_repo.append_event(
            couple_id=couple_id,
            event_type="goal_deleted",
            payload={"id": goal_id},
            entity_id=goal_id,
            actor_user_id=user.id,
        )
        self.db.commit()


def list_goals(db: Session, user: Optional[User], couple_id: Optional[str]) -> List[SavingsGoalModel]:
    require_membership(user, couple_id)
    return LedgerRepository(db).find_goals(couple_id)
