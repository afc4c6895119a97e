"""
tether.services.rollover_service — Daily Reset Bookkeeping
===========================================================

Store-side steps of the daily rollover, in the order the rollover loop
runs them:

1. :func:`claim_rollover` — insert the local date into ``rollover_runs``.
   A duplicate insert (restart, reconnect, a second trigger the same day)
   fails the primary key and the whole run is skipped, so nobody is kicked
   twice and nothing is reset twice.  If the reset itself fails the claim is
   dropped again with :func:`release_rollover`.
2. :func:`collect_daily_goals` — credit open sessions up to *now*, then
   return every goal.  The caller kicks members whose goal is unmet.
3. :func:`reset_day` — delete all daily goals and all to-do items,
   regardless of how enforcement went.
"""

from __future__ import annotations

import logging
from datetime import date, datetime

from sqlalchemy import Engine, delete
from sqlalchemy.exc import IntegrityError

from tether.database.engine import get_session
from tether.database.models import RolloverRun
from tether.engine.accounting import GoalSnapshot, utcnow
from tether.services.goal_service import clear_daily_goals, credit_open_goals, list_daily_goals
from tether.services.todo_service import clear_all_todos

logger = logging.getLogger(__name__)


def claim_rollover(engine: Engine, run_date: date) -> bool:
    """Record that *run_date* is being rolled over.  False if it already was."""
    try:
        with get_session(engine) as session:
            session.add(RolloverRun(run_date=run_date.isoformat()))
    except IntegrityError:
        logger.info("Rollover for %s already ran — skipping", run_date.isoformat())
        return False
    return True


def release_rollover(engine: Engine, run_date: date) -> None:
    """Forget the claim on *run_date* so a later trigger can run it again."""
    with get_session(engine) as session:
        session.execute(delete(RolloverRun).where(RolloverRun.run_date == run_date.isoformat()))
    logger.warning("Rollover claim for %s released", run_date.isoformat())


def collect_daily_goals(engine: Engine, now: datetime | None = None) -> list[GoalSnapshot]:
    """Bring open sessions up to date, then return every daily goal."""
    now = now or utcnow()
    with get_session(engine) as session:
        credit_open_goals(session, now)
    return list_daily_goals(engine)


def shortfalls(goals: list[GoalSnapshot]) -> list[GoalSnapshot]:
    """The goals that were not met."""
    return [g for g in goals if not g.met]


def reset_day(engine: Engine) -> dict[str, int]:
    """Wipe daily goals and to-do items.

    Returns ``{"goals_deleted": N, "todos_deleted": M}``.
    """
    goals_deleted = clear_daily_goals(engine)
    todos_deleted = clear_all_todos(engine)
    logger.info(
        "Daily reset complete — %d goals, %d to-do items removed",
        goals_deleted, todos_deleted,
    )
    return {"goals_deleted": goals_deleted, "todos_deleted": todos_deleted}
