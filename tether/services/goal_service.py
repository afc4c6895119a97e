"""
tether.services.goal_service — Daily Goal Records & Crediting
==============================================================

CRUD for :class:`~tether.database.models.DailyGoal` plus
:func:`credit_goal`, the only function that moves ``achieved_seconds``.

Crediting is driven by ``accounted_at``: every credit covers the interval
from the last accounted instant (or the session start) up to *now*, then
advances the marker by exactly the whole seconds it credited.  The periodic
sampler and the leave handler can both call it for the same session without
counting any second twice.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta

from sqlalchemy import Engine, delete, select, update
from sqlalchemy.orm import Session

from tether.database.engine import get_session
from tether.database.models import DailyGoal
from tether.engine.accounting import (
    Active,
    GoalSnapshot,
    session_elapsed,
)

logger = logging.getLogger(__name__)


def _snapshot(goal: DailyGoal) -> GoalSnapshot:
    return GoalSnapshot(
        guild_id=goal.guild_id,
        user_id=goal.user_id,
        goal_hours=goal.goal_hours,
        achieved_seconds=goal.achieved_seconds,
    )


# ---------------------------------------------------------------------------
# CRUD
# ---------------------------------------------------------------------------
def set_daily_goal(
    engine: Engine,
    guild_id: int,
    user_id: int,
    goal_hours: float,
    *,
    session_start: datetime | None = None,
) -> GoalSnapshot:
    """Create or replace today's goal, resetting achieved hours to 0."""
    if goal_hours <= 0:
        raise ValueError(f"goal_hours must be positive, got {goal_hours}")

    with get_session(engine) as session:
        goal = session.get(DailyGoal, (guild_id, user_id))
        if goal is None:
            goal = DailyGoal(guild_id=guild_id, user_id=user_id)
            session.add(goal)
        goal.goal_hours = goal_hours
        goal.achieved_seconds = 0
        goal.session_start = session_start
        goal.accounted_at = None
        session.flush()
        logger.info(
            "Daily goal set: guild=%d user=%d hours=%.2f", guild_id, user_id, goal_hours
        )
        return _snapshot(goal)


def get_daily_goal(engine: Engine, guild_id: int, user_id: int) -> GoalSnapshot | None:
    with get_session(engine) as session:
        goal = session.get(DailyGoal, (guild_id, user_id))
        return _snapshot(goal) if goal else None


def list_daily_goals(engine: Engine) -> list[GoalSnapshot]:
    """Every daily goal across all guilds."""
    with get_session(engine) as session:
        goals = session.scalars(
            select(DailyGoal).order_by(DailyGoal.guild_id, DailyGoal.user_id)
        ).all()
        return [_snapshot(g) for g in goals]


def clear_daily_goals(engine: Engine) -> int:
    """Delete every daily goal.  Returns the number of rows removed."""
    with get_session(engine) as session:
        result = session.execute(
            delete(DailyGoal).execution_options(synchronize_session=False)
        )
        return result.rowcount or 0


# ---------------------------------------------------------------------------
# Session-level helpers (called inside a caller's transaction)
# ---------------------------------------------------------------------------
def open_goal_session(session: Session, guild_id: int, user_id: int, now: datetime) -> bool:
    """Start the goal's session clock at *now*.  False if there is no goal."""
    result = session.execute(
        update(DailyGoal)
        .where(DailyGoal.guild_id == guild_id, DailyGoal.user_id == user_id)
        .values(session_start=now, accounted_at=None)
        .execution_options(synchronize_session=False)
    )
    return bool(result.rowcount)


def credit_goal(
    session: Session,
    goal: DailyGoal,
    now: datetime,
    *,
    close: bool = False,
) -> int:
    """Credit *goal* with its unaccounted presence up to *now*.

    With ``close=True`` the goal's session ends as well (member left voice).
    Returns the whole seconds credited.
    """
    state = goal.unaccounted
    elapsed = session_elapsed(state, now)

    values: dict = {"achieved_seconds": DailyGoal.achieved_seconds + elapsed}
    if close:
        values["session_start"] = None
        values["accounted_at"] = None
    elif isinstance(state, Active):
        values["accounted_at"] = state.started_at + timedelta(seconds=elapsed)

    session.execute(
        update(DailyGoal)
        .where(DailyGoal.guild_id == goal.guild_id, DailyGoal.user_id == goal.user_id)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    if elapsed:
        logger.debug(
            "Credited %ds to goal guild=%d user=%d (close=%s)",
            elapsed, goal.guild_id, goal.user_id, close,
        )
    return elapsed


def credit_open_goals(session: Session, now: datetime) -> int:
    """Credit every goal with an open session without closing it.

    Returns the number of goals credited.
    """
    goals = session.scalars(
        select(DailyGoal).where(DailyGoal.session_start.is_not(None))
    ).all()
    for goal in goals:
        credit_goal(session, goal, now)
    return len(goals)
