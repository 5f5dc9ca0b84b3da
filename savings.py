# savings.py
"""Savings goals and their contribution history."""
import logging
from datetime import datetime

from sqlalchemy import case
from sqlalchemy.orm import Session

import notifications
from calculations import crossed_milestone, percent_of, round2
from database import SavingsContribution, SavingsGoal
from errors import BadRequestError, NotFoundError
from schemas import ContributionCreate, SavingsGoalCreate, SavingsGoalUpdate

logger = logging.getLogger(__name__)

PRIORITY_RANK = case(
    {"high": 0, "medium": 1, "low": 2},
    value=SavingsGoal.priority,
    else_=3,
)


def goal_progress(goal: SavingsGoal) -> float:
    """Percent of the target reached, capped at 100."""
    if not goal.target_amount:
        return 0.0
    return min(round2(percent_of(goal.current_amount, goal.target_amount)), 100.0)


def remaining_amount(goal: SavingsGoal) -> float:
    return max(goal.target_amount - goal.current_amount, 0)


def recompute_completion(goal: SavingsGoal, now: datetime = None):
    reached = goal.current_amount >= goal.target_amount
    if reached and not goal.is_completed:
        goal.is_completed = True
        goal.completed_at = now or datetime.now()
    elif not reached and goal.is_completed:
        goal.is_completed = False
        goal.completed_at = None


def goal_view(goal: SavingsGoal) -> dict:
    return {
        "id": goal.id,
        "title": goal.title,
        "description": goal.description,
        "target_amount": goal.target_amount,
        "current_amount": goal.current_amount,
        "target_date": goal.target_date,
        "icon": goal.icon,
        "color": goal.color,
        "priority": goal.priority,
        "is_completed": goal.is_completed,
        "completed_at": goal.completed_at,
        "progress": goal_progress(goal),
        "remaining_amount": remaining_amount(goal),
        "contributions": goal.contributions,
        "created_at": goal.created_at,
    }


def create_goal(db: Session, user_id: int, data: SavingsGoalCreate) -> SavingsGoal:
    goal = SavingsGoal(user_id=user_id, current_amount=0, **data.model_dump())
    db.add(goal)
    db.commit()
    db.refresh(goal)
    return goal


def list_goals(db: Session, user_id: int, include_completed: bool = True):
    query = db.query(SavingsGoal).filter(SavingsGoal.user_id == user_id)
    if not include_completed:
        query = query.filter(SavingsGoal.is_completed.is_(False))
    return query.order_by(PRIORITY_RANK, SavingsGoal.created_at.desc(), SavingsGoal.id.desc()).all()


def get_goal(db: Session, user_id: int, goal_id: int) -> SavingsGoal:
    goal = (
        db.query(SavingsGoal)
        .filter(SavingsGoal.id == goal_id, SavingsGoal.user_id == user_id)
        .first()
    )
    if not goal:
        raise NotFoundError("Savings goal not found")
    return goal


def update_goal(db: Session, user_id: int, goal_id: int, data: SavingsGoalUpdate) -> SavingsGoal:
    goal = get_goal(db, user_id, goal_id)
    if goal.is_completed:
        raise BadRequestError("Cannot modify completed goal")

    for field, value in data.model_dump(exclude_unset=True).items():
        if value is None and field not in ("description", "target_date"):
            continue
        setattr(goal, field, value)

    # a lowered target can complete the goal without a contribution
    recompute_completion(goal)
    db.commit()
    db.refresh(goal)
    return goal


def delete_goal(db: Session, user_id: int, goal_id: int):
    goal = get_goal(db, user_id, goal_id)
    db.delete(goal)
    db.commit()


def add_contribution(
    db: Session, user_id: int, goal_id: int, data: ContributionCreate, now: datetime = None
) -> SavingsGoal:
    """Record a contribution (negative amounts withdraw) and fire at most one milestone."""
    now = now or datetime.now()
    goal = get_goal(db, user_id, goal_id)

    new_amount = goal.current_amount + data.amount
    if new_amount < 0:
        raise BadRequestError("Withdrawal exceeds the saved amount")

    old_progress = percent_of(goal.current_amount, goal.target_amount)

    goal.contributions.append(SavingsContribution(amount=data.amount, date=now, note=data.note))
    goal.current_amount = new_amount
    recompute_completion(goal, now)
    db.commit()
    db.refresh(goal)

    new_progress = percent_of(goal.current_amount, goal.target_amount)
    milestone = crossed_milestone(old_progress, new_progress)
    if milestone is not None:
        logger.info("Goal %s crossed the %d%% milestone", goal.id, milestone)
        notifications.send_savings_milestone(user_id, goal.title, milestone)
    return goal


def list_contributions(db: Session, user_id: int, goal_id: int):
    goal = get_goal(db, user_id, goal_id)
    return sorted(goal.contributions, key=lambda c: (c.date, c.id), reverse=True)


def savings_stats(db: Session, user_id: int) -> dict:
    goals = db.query(SavingsGoal).filter(SavingsGoal.user_id == user_id).all()

    total_target = sum(g.target_amount for g in goals)
    total_current = sum(g.current_amount for g in goals)
    return {
        "total_goals": len(goals),
        "completed_goals": sum(1 for g in goals if g.is_completed),
        "active_goals": sum(1 for g in goals if not g.is_completed),
        "total_target_amount": total_target,
        "total_current_amount": total_current,
        "total_remaining_amount": sum(remaining_amount(g) for g in goals),
        "overall_progress": round2(percent_of(total_current, total_target)),
    }
