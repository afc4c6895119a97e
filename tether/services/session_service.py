"""
tether.services.session_service — Join / Leave / Sampler Accounting
====================================================================

Store-side half of voice tracking.  The voice cog turns gateway events
into calls to:

- :func:`begin_session`  — member joined voice; start the clocks.
- :func:`end_session`    — member left voice; fold elapsed time into the
  target, credit the daily goal, close both sessions, and hand back the
  re-read target so the cog can decide between "congratulate" and "kick".
- :func:`sample_open_sessions` — periodic tick; credit open daily goals and
  retire every target whose *projected* total has reached its goal,
  without touching ``accumulated_seconds`` or ``session_start``.
- :func:`get_progress` — read-only live view for ``/progress``.

Each function is one transaction.  Between two calls anything can happen
(another voice event, a sampler tick, a ``/settarget``); the arithmetic is
additive and completion is a conditional delete, so the worst outcome of
an interleaving is a stale read, never a lost or double-announced target.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import Engine, select, update

from tether.database.engine import get_session
from tether.database.models import DailyGoal, Target
from tether.engine.accounting import (
    Active,
    GoalSnapshot,
    TargetSnapshot,
    is_reached,
    session_elapsed,
    session_state,
    utcnow,
)
from tether.services.goal_service import credit_goal, credit_open_goals, open_goal_session
from tether.services.target_service import delete_target

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class JoinOutcome:
    tracking_target: bool
    tracking_goal: bool


@dataclass(frozen=True, slots=True)
class LeaveOutcome:
    """What a leave did to the member's records.

    ``target`` is the Target as re-read after the fold, or None when the
    member had no target.
    """
    target: TargetSnapshot | None
    elapsed_seconds: int
    goal_seconds_credited: int


# ---------------------------------------------------------------------------
# NoSession → InSession
# ---------------------------------------------------------------------------
def begin_session(
    engine: Engine,
    guild_id: int,
    user_id: int,
    now: datetime | None = None,
) -> JoinOutcome:
    """Stamp ``session_start = now`` on the member's target and daily goal."""
    now = now or utcnow()
    with get_session(engine) as session:
        result = session.execute(
            update(Target)
            .where(Target.guild_id == guild_id, Target.user_id == user_id)
            .values(session_start=now)
            .execution_options(synchronize_session=False)
        )
        tracking_target = bool(result.rowcount)
        tracking_goal = open_goal_session(session, guild_id, user_id, now)

    if tracking_target or tracking_goal:
        logger.info(
            "Session started: guild=%d user=%d target=%s goal=%s",
            guild_id, user_id, tracking_target, tracking_goal,
        )
    return JoinOutcome(tracking_target=tracking_target, tracking_goal=tracking_goal)


# ---------------------------------------------------------------------------
# InSession → NoSession
# ---------------------------------------------------------------------------
def end_session(
    engine: Engine,
    guild_id: int,
    user_id: int,
    now: datetime | None = None,
) -> LeaveOutcome:
    """Close the member's session and bank its time.

    1. elapsed = now - target.session_start (0 if the target was idle)
    2. accumulated_seconds += elapsed; session_start = NULL
    3. daily goal credited with its unaccounted presence, session closed
    4. target re-read and returned for the completion / enforcement decision
    """
    now = now or utcnow()
    with get_session(engine) as session:
        pk = (Target.guild_id == guild_id, Target.user_id == user_id)

        elapsed = 0
        row = session.execute(select(Target.session_start).where(*pk)).first()
        if row is not None:
            elapsed = session_elapsed(session_state(row.session_start), now)
            session.execute(
                update(Target)
                .where(*pk)
                .values(
                    accumulated_seconds=Target.accumulated_seconds + elapsed,
                    session_start=None,
                )
                .execution_options(synchronize_session=False)
            )

        credited = 0
        goal = session.get(DailyGoal, (guild_id, user_id))
        if goal is not None:
            credited = credit_goal(session, goal, now, close=True)

        snapshot = None
        refreshed = session.execute(
            select(Target.target_seconds, Target.accumulated_seconds).where(*pk)
        ).first()
        if refreshed is not None:
            snapshot = TargetSnapshot(
                guild_id=guild_id,
                user_id=user_id,
                target_seconds=refreshed.target_seconds,
                accumulated_seconds=refreshed.accumulated_seconds,
            )

    if snapshot is not None:
        logger.info(
            "Session ended: guild=%d user=%d elapsed=%ds progress=%s",
            guild_id, user_id, elapsed, snapshot.progress_label,
        )
    return LeaveOutcome(target=snapshot, elapsed_seconds=elapsed, goal_seconds_credited=credited)


# ---------------------------------------------------------------------------
# Read-only progress (for /progress)
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class ProgressView:
    """Live progress including the open session, without mutating anything."""
    target: TargetSnapshot | None
    goal: GoalSnapshot | None
    in_session: bool


def get_progress(
    engine: Engine,
    guild_id: int,
    user_id: int,
    now: datetime | None = None,
) -> ProgressView:
    now = now or utcnow()
    with get_session(engine) as session:
        target = session.get(Target, (guild_id, user_id))
        goal = session.get(DailyGoal, (guild_id, user_id))

        target_view = None
        if target is not None:
            target_view = TargetSnapshot(
                guild_id=guild_id,
                user_id=user_id,
                target_seconds=target.target_seconds,
                accumulated_seconds=(
                    target.accumulated_seconds + session_elapsed(target.session, now)
                ),
            )

        goal_view = None
        if goal is not None:
            goal_view = GoalSnapshot(
                guild_id=guild_id,
                user_id=user_id,
                goal_hours=goal.goal_hours,
                achieved_seconds=(
                    goal.achieved_seconds + session_elapsed(goal.unaccounted, now)
                ),
            )

        in_session = (target is not None and isinstance(target.session, Active)) or (
            goal is not None and isinstance(goal.session, Active)
        )
    return ProgressView(target=target_view, goal=goal_view, in_session=in_session)


# ---------------------------------------------------------------------------
# Periodic sampler
# ---------------------------------------------------------------------------
def sample_open_sessions(engine: Engine, now: datetime | None = None) -> list[TargetSnapshot]:
    """One sampler tick across every guild.

    Returns the targets retired this tick, with ``accumulated_seconds`` set
    to the projected total that reached the goal.  The caller congratulates
    each one; a target already retired by a concurrent leave is simply not
    in the list.
    """
    now = now or utcnow()
    completed: list[TargetSnapshot] = []
    with get_session(engine) as session:
        credit_open_goals(session, now)

        targets = session.scalars(
            select(Target).where(Target.session_start.is_not(None))
        ).all()
        for target in targets:
            projected = target.accumulated_seconds + session_elapsed(target.session, now)
            if not is_reached(projected, target.target_seconds):
                continue
            if delete_target(session, target.guild_id, target.user_id):
                completed.append(TargetSnapshot(
                    guild_id=target.guild_id,
                    user_id=target.user_id,
                    target_seconds=target.target_seconds,
                    accumulated_seconds=projected,
                ))

    for snap in completed:
        logger.info(
            "Sampler: target reached in voice guild=%d user=%d (%s)",
            snap.guild_id, snap.user_id, snap.progress_label,
        )
    return completed
