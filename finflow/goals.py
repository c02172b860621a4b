"""Savings goals: progress, savings plan and goal-reserve bookkeeping.

A goal never stores its own progress. Its reserve account (flagged
``is_goal_account``) holds the money, so progress is that account's
derived balance.
"""
import math
from dataclasses import dataclass, replace
from datetime import date, datetime, timedelta
from typing import Callable, Optional

from finflow.balances import account_balances
from finflow.domain import (
    Account, AppState, Goal, CADENCES, DEFAULT_CADENCE, GOAL_ACCOUNT_COLOR, GOAL_CATEGORY,
)
from finflow.functional import (
    Either, Maybe, Nothing, Right, Some, failure, require_positive, require_text, safe_goal,
)
from finflow.transforms import delete_account, rename_account
from finflow.transfers import create_transfer, new_id

DAYS_PER_PERIOD = {"daily": 1, "monthly": 30, "yearly": 365}

MOVE_IN = "in"
MOVE_OUT = "out"


@dataclass(frozen=True)
class GoalPlan:
    amount: float          # suggested contribution per period
    cadence: str
    remaining: float
    days_remaining: int


@dataclass(frozen=True)
class GoalStatus:
    goal: Goal
    balance: float
    progress: float
    plan: Maybe[GoalPlan]


def reserve_account_name(goal_name: str) -> str:
    return f"Meta: {goal_name}"


def parse_deadline(deadline: Optional[str]) -> Maybe[date]:
    if not deadline:
        return Nothing()
    try:
        return Some(date.fromisoformat(deadline[:10]))
    except ValueError:
        return Nothing()


def days_until(deadline: date, today: date) -> int:
    # past or same-day deadlines still leave one day to save in
    return max(math.ceil((deadline - today) / timedelta(days=1)), 1)


def goal_plan(goal: Goal, balance: float, cadence: Optional[str] = None, today: Optional[date] = None) -> Maybe[GoalPlan]:
    """Suggested contribution per ``cadence`` period to reach the target by the deadline.

    Returns Nothing when the goal has no deadline or is already reached.
    """
    cadence = cadence or goal.effective_cadence
    if cadence not in DAYS_PER_PERIOD:
        raise ValueError(f"Unknown cadence {cadence!r}")
    deadline = parse_deadline(goal.deadline)
    if deadline.is_none() or balance >= goal.target:
        return Nothing()

    remaining = goal.target - balance
    days = days_until(deadline.get_or_else(None), today or date.today())
    periods = max(days / DAYS_PER_PERIOD[cadence], 1)
    return Some(GoalPlan(
        amount=remaining / periods,
        cadence=cadence,
        remaining=remaining,
        days_remaining=days,
    ))


def goal_progress(goal: Goal, balance: float) -> float:
    if goal.target <= 0:
        return 100.0
    return min(balance / goal.target * 100, 100.0)


def goal_statuses(state: AppState, today: Optional[date] = None) -> tuple[GoalStatus, ...]:
    balances = account_balances(state.transactions, state.accounts)
    statuses = []
    for goal in state.goals:
        balance = balances.get(goal.linked_account_id, 0)
        statuses.append(GoalStatus(
            goal=goal,
            balance=balance,
            progress=goal_progress(goal, balance),
            plan=goal_plan(goal, balance, today=today),
        ))
    return tuple(statuses)


def _check_goal_fields(name: str, target: float, deadline: Optional[str]) -> Either[dict, None]:
    for checked in (require_text(name, "goal name"), require_positive(target, "target")):
        if checked.is_left():
            return checked
    if deadline and parse_deadline(deadline).is_none():
        return failure("invalid_deadline", f"Deadline {deadline!r} is not a calendar date", deadline=deadline)
    return Right(None)


def create_goal(
    state: AppState,
    name: str,
    target: float,
    deadline: Optional[str] = None,
    category: Optional[str] = None,
    cadence: str = DEFAULT_CADENCE,
    id_factory: Callable[[], str] = new_id,
) -> Either[dict, AppState]:
    """Add a goal together with its private reserve account."""
    checked = _check_goal_fields(name, target, deadline)
    if checked.is_left():
        return checked
    if cadence not in CADENCES:
        return failure("invalid_cadence", f"Unknown cadence {cadence!r}", cadence=cadence)

    reserve = Account(
        id=id_factory(),
        name=reserve_account_name(name.strip()),
        color=GOAL_ACCOUNT_COLOR,
        is_goal_account=True,
    )
    goal = Goal(
        id=id_factory(),
        name=name.strip(),
        target=target,
        linked_account_id=reserve.id,
        deadline=deadline or None,
        category=category,
        cadence=cadence,
    )
    return Right(replace(
        state,
        accounts=state.accounts + (reserve,),
        goals=state.goals + (goal,),
    ))


def edit_goal(
    state: AppState,
    goal_id: str,
    name: str,
    target: float,
    deadline: Optional[str] = None,
    category: Optional[str] = None,
) -> Either[dict, AppState]:
    """Update a goal; its reserve account is renamed along with it."""
    found = safe_goal(state.goals, goal_id)
    if found.is_none():
        return failure("goal_not_found", f"Goal {goal_id} does not exist", goal_id=goal_id)
    checked = _check_goal_fields(name, target, deadline)
    if checked.is_left():
        return checked

    old = found.get_or_else(None)
    updated = replace(
        old,
        name=name.strip(),
        target=target,
        deadline=deadline or None,
        category=category if category is not None else old.category,
    )
    state = replace(state, goals=tuple(updated if g.id == goal_id else g for g in state.goals))
    renamed = rename_account(state, old.linked_account_id, reserve_account_name(updated.name))
    # a reserve removed outside the goal flow leaves nothing to rename
    return renamed if renamed.is_right() else Right(state)


def delete_goal(state: AppState, goal_id: str) -> Either[dict, AppState]:
    """Remove a goal and its reserve account. Its records stay in the history."""
    found = safe_goal(state.goals, goal_id)
    if found.is_none():
        return failure("goal_not_found", f"Goal {goal_id} does not exist", goal_id=goal_id)
    goal = found.get_or_else(None)
    without_goal = replace(state, goals=tuple(g for g in state.goals if g.id != goal_id))
    removed = delete_account(without_goal, goal.linked_account_id)
    return removed if removed.is_right() else Right(without_goal)


def set_goal_cadence(state: AppState, goal_id: str, cadence: str) -> Either[dict, AppState]:
    if cadence not in CADENCES:
        return failure("invalid_cadence", f"Unknown cadence {cadence!r}", cadence=cadence)
    if safe_goal(state.goals, goal_id).is_none():
        return failure("goal_not_found", f"Goal {goal_id} does not exist", goal_id=goal_id)
    return Right(replace(
        state,
        goals=tuple(replace(g, cadence=cadence) if g.id == goal_id else g for g in state.goals),
    ))


def check_goal_reserves(
    goals: tuple[Goal, ...], accs: tuple[Account, ...]
) -> Either[dict, tuple[Goal, ...]]:
    """Every goal owns exactly one existing account flagged as a goal reserve."""
    by_id = {a.id: a for a in accs}
    owners: dict[str, str] = {}
    for g in goals:
        reserve = by_id.get(g.linked_account_id)
        if reserve is None:
            return failure(
                "broken_goal_reserve",
                f"Goal {g.id} points at missing account {g.linked_account_id}",
                goal_id=g.id,
                account_id=g.linked_account_id,
            )
        if not reserve.is_goal_account:
            return failure(
                "broken_goal_reserve",
                f"Account {reserve.id} is not a goal reserve",
                goal_id=g.id,
                account_id=reserve.id,
            )
        if reserve.id in owners:
            return failure(
                "broken_goal_reserve",
                f"Goals {owners[reserve.id]} and {g.id} share reserve {reserve.id}",
                goal_id=g.id,
                account_id=reserve.id,
            )
        owners[reserve.id] = g.id
    return Right(goals)


def default_counter_account(accs: tuple[Account, ...]) -> Optional[str]:
    return next((a.id for a in accs if not a.is_goal_account), None)


def move_goal_value(
    state: AppState,
    goal_id: str,
    direction: str,
    amount: float,
    now: datetime,
    counter_account_id: Optional[str] = None,
    id_factory: Callable[[], str] = new_id,
) -> Either[dict, AppState]:
    """Move money into (``in``) or out of (``out``) a goal reserve as a paired transfer."""
    found = safe_goal(state.goals, goal_id)
    if found.is_none():
        return failure("goal_not_found", f"Goal {goal_id} does not exist", goal_id=goal_id)
    if direction not in (MOVE_IN, MOVE_OUT):
        return failure("invalid_direction", f"Unknown direction {direction!r}", direction=direction)

    goal = found.get_or_else(None)
    counter = counter_account_id or default_counter_account(state.accounts)
    if direction == MOVE_IN:
        source_id, dest_id = counter, goal.linked_account_id
        description = f"Aporte Meta: {goal.name}"
    else:
        source_id, dest_id = goal.linked_account_id, counter
        description = f"Resgate Meta: {goal.name}"

    return create_transfer(
        state,
        source_id,
        dest_id,
        amount,
        now,
        description_out=description,
        description_in=description,
        category=GOAL_CATEGORY,
        id_factory=id_factory,
    )
