"""
Tests for savings goal use cases
"""
from datetime import date
from decimal import Decimal

import pytest

from ourlittleworld.application.errors import NotFound, ValidationError
from ourlittleworld.application.goals import (
    CreateGoalUseCase, DeleteGoalUseCase, UpdateGoalUseCase, goal_to_dict, list_goals,
)
from ourlittleworld.infrastructure.db.models import EventLog, SavingsGoalModel


def test_create_goal_with_defaults(db_session, couple, partner_a):
    goal = CreateGoalUseCase(db_session).execute(partner_a, couple.id, "Trip to Lisbon", "1500")

    assert goal.current_amount == Decimal("0")
    assert goal.priority == "medium"
    assert goal.is_completed is False
    assert goal.completed_at is None
    assert db_session.query(EventLog).filter(EventLog.event_type == "goal_created").count() == 1


@pytest.mark.parametrize(
    "title,target,current",
    [
        ("", "100", None),
        ("Car", None, None),
        ("Car", "-1", None),
        ("Car", "100", "-5"),
        ("Car", "lots", None),
    ],
)
def test_create_goal_rejects_bad_input(db_session, couple, partner_a, title, target, current):
    with pytest.raises(ValidationError):
        CreateGoalUseCase(db_session).execute(partner_a, couple.id, title, target, current)


def test_overfunded_goal_reports_uncapped_progress(db_session, couple, partner_a):
    goal = CreateGoalUseCase(db_session).execute(partner_a, couple.id, "Sofa", "1000", "1500")

    data = goal_to_dict(goal)
    assert data["progress"] == "150.00"
    assert data["display_progress"] == "100"


def test_complete_and_reopen_goal(db_session, couple, partner_a, partner_b):
    goal = CreateGoalUseCase(db_session).execute(partner_a, couple.id, "Ring", "3000")

    done = UpdateGoalUseCase(db_session).execute(partner_b, goal.id, is_completed=True)
    assert done.is_completed is True
    assert done.completed_at is not None

    reopened = UpdateGoalUseCase(db_session).execute(partner_a, goal.id, is_completed=False)
    assert reopened.is_completed is False
    assert reopened.completed_at is None


def test_update_leaves_unset_fields_alone(db_session, couple, partner_a):
    goal = CreateGoalUseCase(db_session).execute(
        partner_a, couple.id, "Camera", "800", description="Mirrorless", priority="high"
    )

    updated = UpdateGoalUseCase(db_session).execute(partner_a, goal.id, current_amount="200")

    assert updated.current_amount == Decimal("200")
    assert updated.description == "Mirrorless"
    assert updated.priority == "high"


def test_goals_list_order(db_session, couple, partner_a):
    create = CreateGoalUseCase(db_session)
    no_deadline = create.execute(partner_a, couple.id, "Someday", "10")
    late = create.execute(partner_a, couple.id, "Late", "10", deadline=date(2027, 6, 1))
    soon = create.execute(partner_a, couple.id, "Soon", "10", deadline=date(2026, 12, 1))
    finished = create.execute(partner_a, couple.id, "Done", "10", deadline=date(2026, 1, 1))
    UpdateGoalUseCase(db_session).execute(partner_a, finished.id, is_completed=True)

    ordered = [g.id for g in list_goals(db_session, partner_a, couple.id)]

    assert ordered == [soon.id, late.id, no_deadline.id, finished.id]


def test_other_couples_goal_is_not_found(db_session, couple, partner_a, outsider):
    goal = CreateGoalUseCase(db_session).execute(partner_a, couple.id, "Dog", "500")

    with pytest.raises(NotFound):
        UpdateGoalUseCase(db_session).execute(outsider, goal.id, title="Cat")
    with pytest.raises(NotFound):
        DeleteGoalUseCase(db_session).execute(outsider, goal.id)


def test_delete_goal(db_session, couple, partner_a):
    goal = CreateGoalUseCase(db_session).execute(partner_a, couple.id, "Bike", "400")
    goal_id = goal.id

    DeleteGoalUseCase(db_session).execute(partner_a, goal_id)

    assert db_session.get(SavingsGoalModel, goal_id) is None
    assert db_session.query(EventLog).filter(EventLog.event_type == "goal_deleted").count() == 1
