from datetime import datetime, timedelta

import pytest
from pydantic import ValidationError

from database import SavingsGoal
from errors import BadRequestError, NotFoundError
from savings import (
    add_contribution,
    goal_progress,
    goal_view,
    list_contributions,
    list_goals,
    remaining_amount,
    savings_stats,
    update_goal,
)
from schemas import ContributionCreate, SavingsGoalUpdate

NOW = datetime(2024, 3, 15, 12, 0)


def _contribute(db, user, goal, amount, now=NOW):
    return add_contribution(db, user.id, goal.id, ContributionCreate(amount=amount), now=now)


def test_crossing_one_milestone_sends_one_notification(db, user, make_goal, sent):
    goal = make_goal(user, "Laptop", target_amount=1000, current_amount=400)

    _contribute(db, user, goal, 200)

    assert len(sent) == 1
    user_id, payload = sent[0]
    assert user_id == user.id
    assert payload.type == "savings_milestone"
    assert payload.data == {"goal_title": "Laptop", "percentage": "50"}


def test_crossing_several_milestones_sends_the_lowest(db, user, make_goal, sent):
    goal = make_goal(user, target_amount=1000)

    _contribute(db, user, goal, 800)

    (_, payload), = sent
    assert payload.data["percentage"] == "25"


def test_no_milestone_inside_a_band(db, user, make_goal, sent):
    goal = make_goal(user, target_amount=1000, current_amount=300)

    _contribute(db, user, goal, 100)

    assert sent == []


def test_reaching_the_target_completes_the_goal(db, user, make_goal, sent):
    goal = make_goal(user, target_amount=1000, current_amount=900)

    goal = _contribute(db, user, goal, 100)

    assert goal.is_completed
    assert goal.completed_at == NOW
    (_, payload), = sent
    assert payload.type == "savings_completed"
    assert payload.title == "Goal Completed!"


def test_withdrawal_uncompletes_the_goal(db, user, make_goal):
    goal = make_goal(user, target_amount=1000)
    goal = _contribute(db, user, goal, 1000)
    assert goal.is_completed

    goal = _contribute(db, user, goal, -100)

    assert goal.current_amount == 900
    assert not goal.is_completed
    assert goal.completed_at is None


def test_completion_tracks_every_contribution(db, user, make_goal):
    goal = make_goal(user, target_amount=300)

    for amount in (100, 250, -60, 20, -400 + 330):
        goal = _contribute(db, user, goal, amount)
        assert goal.is_completed == (goal.current_amount >= goal.target_amount)


def test_withdrawing_more_than_saved_is_rejected(db, user, make_goal):
    goal = make_goal(user, target_amount=1000, current_amount=50)

    with pytest.raises(BadRequestError):
        _contribute(db, user, goal, -80)

    db.refresh(goal)
    assert goal.current_amount == 50
    assert goal.contributions == []


def test_zero_contribution_is_invalid():
    with pytest.raises(ValidationError):
        ContributionCreate(amount=0)


def test_progress_is_capped_and_remaining_floors_at_zero():
    goal = SavingsGoal(target_amount=200, current_amount=250)

    assert goal_progress(goal) == 100.0
    assert remaining_amount(goal) == 0


def test_goal_view_reports_progress(db, user, make_goal):
    goal = make_goal(user, target_amount=3, current_amount=1)

    view = goal_view(goal)

    assert view["progress"] == 33.33
    assert view["remaining_amount"] == 2


def test_completed_goal_cannot_be_modified(db, user, make_goal):
    goal = make_goal(user, target_amount=100, current_amount=100, is_completed=True)

    with pytest.raises(BadRequestError):
        update_goal(db, user.id, goal.id, SavingsGoalUpdate(title="New title"))


def test_lowering_the_target_can_complete_a_goal(db, user, make_goal):
    goal = make_goal(user, target_amount=1000, current_amount=600)

    goal = update_goal(db, user.id, goal.id, SavingsGoalUpdate(target_amount=500))

    assert goal.is_completed


def test_other_users_goal_is_not_found(db, user, other_user, make_goal):
    theirs = make_goal(other_user)

    with pytest.raises(NotFoundError):
        _contribute(db, user, theirs, 10)


def test_contribution_history_newest_first(db, user, make_goal):
    goal = make_goal(user)
    _contribute(db, user, goal, 10, now=NOW - timedelta(days=2))
    _contribute(db, user, goal, 20, now=NOW)
    _contribute(db, user, goal, 30, now=NOW - timedelta(days=1))

    history = list_contributions(db, user.id, goal.id)

    assert [c.amount for c in history] == [20, 30, 10]


def test_goals_sorted_by_priority(db, user, make_goal):
    make_goal(user, "Low", priority="low")
    make_goal(user, "High", priority="high")
    make_goal(user, "Medium", priority="medium")
    make_goal(user, "Done", priority="high", current_amount=1000, is_completed=True)

    assert [g.title for g in list_goals(db, user.id)] == ["Done", "High", "Medium", "Low"]
    assert [g.title for g in list_goals(db, user.id, include_completed=False)] == ["High", "Medium", "Low"]


def test_savings_stats(db, user, make_goal):
    make_goal(user, "A", target_amount=1000, current_amount=250)
    make_goal(user, "B", target_amount=500, current_amount=600, is_completed=True)

    stats = savings_stats(db, user.id)

    assert stats == {
        "total_goals": 2,
        "completed_goals": 1,
        "active_goals": 1,
        "total_target_amount": 1500,
        "total_current_amount": 850,
        "total_remaining_amount": 750,
        "overall_progress": 56.67,
    }
