"""Savings goals: validation, status transitions and progress."""
import math
from dataclasses import dataclass
from datetime import date

from flask import current_app

from models import ACTIVE, COMPLETED, GOAL_STATUSES, Goal
from finance.errors import ValidationError
from finance.fields import MISSING, Maybe, Patch, pick, present
from finance.gateway import OwnedGateway, parse_id
from finance.validation import (
    is_blank,
    parse_choice,
    parse_future_date,
    parse_non_negative,
    parse_optional_text,
    parse_positive,
    parse_text,
)

REQUIRED_MESSAGE = 'Name, target amount and deadline are required'
NAME_MESSAGE = 'Name cannot be empty'
TARGET_MESSAGE = 'Target amount must be a positive number'
CURRENT_MESSAGE = 'Current amount must be a non-negative number'
DEADLINE_MESSAGE = 'Invalid deadline'
PAST_DEADLINE_MESSAGE = 'Deadline cannot be in the past'
STATUS_MESSAGE = 'Status must be "active", "completed" or "cancelled"'
PROGRESS_MESSAGE = 'Amount must be a number greater than zero'

goals = OwnedGateway(Goal, 'Goal')


def compute_progress(current, target) -> int:
    """Percentage of target reached, rounded half-up and clamped to 0..100."""
    if not target or target <= 0:
        return 0
    percent = math.floor(current / target * 100 + 0.5)
    return max(0, min(percent, 100))


def resolve_status(previous, current, target):
    if current >= target:
        return COMPLETED
    if previous == COMPLETED:
        return ACTIVE
    return previous


@dataclass
class GoalPatch(Patch):
    name: Maybe[str] = MISSING
    target_amount: Maybe[float] = MISSING
    current_amount: Maybe[float] = MISSING
    deadline: Maybe[date] = MISSING
    category: Maybe[str | None] = MISSING
    description: Maybe[str | None] = MISSING
    status: Maybe[str] = MISSING

    @classmethod
    def from_payload(cls, payload):
        patch = cls()
        name = pick(payload, 'name')
        if present(name):
            patch.name = parse_text(name, NAME_MESSAGE)
        target = pick(payload, 'targetAmount')
        if present(target):
            patch.target_amount = parse_positive(target, TARGET_MESSAGE)
        current = pick(payload, 'currentAmount')
        if present(current):
            patch.current_amount = parse_non_negative(current, CURRENT_MESSAGE)
        deadline = pick(payload, 'deadline')
        if present(deadline):
            patch.deadline = parse_future_date(deadline, DEADLINE_MESSAGE, PAST_DEADLINE_MESSAGE)
        for key in ('category', 'description'):
            value = pick(payload, key)
            if present(value):
                setattr(patch, key, parse_optional_text(value))
        # a null or empty status means "let the amounts decide"
        status = pick(payload, 'status')
        if present(status) and not is_blank(status):
            patch.status = parse_choice(status, GOAL_STATUSES, STATUS_MESSAGE)
        return patch


def create_goal(owner_id, payload):
    if any(is_blank(payload.get(key)) for key in ('name', 'targetAmount', 'deadline')):
        raise ValidationError(REQUIRED_MESSAGE)

    name = parse_text(payload['name'], NAME_MESSAGE)
    target = parse_positive(payload['targetAmount'], TARGET_MESSAGE)
    current = payload.get('currentAmount')
    current = 0.0 if is_blank(current) else parse_non_negative(current, CURRENT_MESSAGE)
    deadline = parse_future_date(payload['deadline'], DEADLINE_MESSAGE, PAST_DEADLINE_MESSAGE)

    goal = Goal(
        user_id=owner_id,
        name=name,
        target_amount=target,
        current_amount=current,
        deadline=deadline,
        category=parse_optional_text(payload.get('category')),
        description=parse_optional_text(payload.get('description')),
        status=resolve_status(ACTIVE, current, target),
    )
    return goals.add(goal)


def get_goal(owner_id, raw_id):
    return goals.get(owner_id, raw_id)


def update_goal(owner_id, raw_id, payload):
    goal = goals.get(owner_id, raw_id)
    patch = GoalPatch.from_payload(payload)

    if not patch.has('status'):
        target = patch.target_amount if patch.has('target_amount') else goal.target_amount
        current = patch.current_amount if patch.has('current_amount') else goal.current_amount
        patch.status = resolve_status(goal.status, current, target)

    goals.apply(goal, patch)
    return goals.save(goal)


def update_progress(owner_id, raw_id, amount):
    """Set the saved amount of a goal.

    Returns ``(goal, completed)`` where ``completed`` is true only when this
    call moved the goal to completed. Reaching the target always marks it
    completed; falling below it leaves the status alone, so completion is
    never undone through this path. A zero amount is refused like a missing
    one.
    """
    goal_id = parse_id(raw_id)
    if is_blank(amount):
        raise ValidationError(PROGRESS_MESSAGE)
    value = parse_non_negative(amount, PROGRESS_MESSAGE)
    if value == 0:
        raise ValidationError(PROGRESS_MESSAGE)

    goal = goals.get(owner_id, goal_id)
    completed = value >= goal.target_amount and goal.status != COMPLETED
    goal.current_amount = value
    if value >= goal.target_amount:
        goal.status = COMPLETED
    if completed:
        current_app.logger.info('Goal %s of user %s completed', goal.id, owner_id)
    return goals.save(goal), completed


def delete_goal(owner_id, raw_id):
    return goals.delete(owner_id, raw_id)


def list_goals(owner_id, status=None):
    query = goals.query(owner_id)
    if status in GOAL_STATUSES:
        query = query.filter_by(status=status)
    return query.order_by(Goal.deadline.asc(), Goal.id.asc()).all()


def recent_goals(owner_id, limit=2):
    return (
        goals.query(owner_id)
        .order_by(Goal.created_at.desc(), Goal.id.desc())
        .limit(limit)
        .all()
    )
