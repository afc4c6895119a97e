"""
tether.bot.cogs.tasks — Daily Rollover
=======================================

A ``discord.ext.tasks`` loop pinned to a wall-clock time
(``rollover_time`` in ``rollover_timezone``, default midnight in
Asia/Kathmandu).  Each run:

1. Claims today's date in ``rollover_runs`` — a second run for the same
   local date does nothing.  The claim is released if the reset fails, and
   the loop fires again at a few retry slots after the rollover time.
2. Credits open voice sessions, then kicks (and DMs) every member whose
   daily goal is unmet.  Both side effects are best effort.
3. Deletes every daily goal and every to-do item, whatever step 2 did.

DB work goes through ``run_db()`` so the event loop is never blocked.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta
from typing import TYPE_CHECKING

from discord.ext import commands, tasks

from tether.database.engine import run_db
from tether.engine.accounting import GoalSnapshot, utcnow
from tether.services.enforcement_service import RemovalOutcome, enforce_missed_goal
from tether.services.rollover_service import (
    claim_rollover,
    collect_daily_goals,
    release_rollover,
    reset_day,
    shortfalls,
)

if TYPE_CHECKING:
    from tether.bot.core import TetherBot

logger = logging.getLogger(__name__)

# Extra triggers after the rollover time; a claimed day makes them no-ops.
ROLLOVER_RETRY_MINUTES = (5, 15, 30)


def rollover_schedule(rollover_at: time) -> list[time]:
    """The rollover time followed by its retry slots."""
    anchor = datetime.combine(date(2000, 1, 1), rollover_at)
    return [rollover_at] + [
        (anchor + timedelta(minutes=m)).timetz() for m in ROLLOVER_RETRY_MINUTES
    ]


def rollover_day(now: datetime, rollover_at: time) -> date:
    """Local date of the most recent rollover at or before *now*.

    Retry slots that fall after midnight still belong to the previous day.
    """
    local = now.astimezone(rollover_at.tzinfo)
    offset = timedelta(hours=rollover_at.hour, minutes=rollover_at.minute)
    return (local - offset).date()


class PeriodicTasks(commands.Cog):
    """Cog for the scheduled daily rollover."""

    def __init__(self, bot: TetherBot) -> None:
        self.bot = bot

    async def cog_load(self) -> None:
        """Pin the rollover loop to the configured time and start it."""
        self.rollover_loop.change_interval(time=rollover_schedule(self.bot.cfg.rollover_at))
        self.rollover_loop.start()

    async def cog_unload(self) -> None:
        self.rollover_loop.cancel()

    # -------------------------------------------------------------------
    # Daily rollover
    # -------------------------------------------------------------------
    @tasks.loop(hours=24)
    async def rollover_loop(self):
        """Enforce unmet daily goals, then reset goals and to-dos."""
        try:
            result = await self.run_rollover()
            if result is not None:
                logger.info(
                    "Rollover task complete: %d kicked of %d short, "
                    "%d goals and %d to-dos cleared",
                    result["kicked"], result["short"],
                    result["goals_deleted"], result["todos_deleted"],
                )
        except Exception:
            logger.exception("Rollover task failed", extra={"task": "rollover"})

    @rollover_loop.before_loop
    async def _wait_rollover(self):
        await self.bot.wait_until_ready()

    async def run_rollover(self, now: datetime | None = None) -> dict[str, int] | None:
        """One rollover pass.  Returns a summary, or None if today already ran.

        A failure while collecting goals skips enforcement but still resets
        the day.  A failed reset releases the day's claim and re-raises so a
        retry slot for the same date can run it again.
        """
        now = now or utcnow()
        local_date = rollover_day(now, self.bot.cfg.rollover_at)

        if not await run_db(claim_rollover, self.bot.engine, local_date):
            return None

        try:
            goals = await run_db(collect_daily_goals, self.bot.engine, now)
        except Exception:
            logger.exception("Could not collect daily goals for %s; resetting anyway", local_date)
            goals = []
        short = shortfalls(goals)
        kicked = await self._enforce(short)

        try:
            counts = await run_db(reset_day, self.bot.engine)
        except Exception:
            await run_db(release_rollover, self.bot.engine, local_date)
            raise
        return {"short": len(short), "kicked": kicked, **counts}

    async def _enforce(self, short: list[GoalSnapshot]) -> int:
        kicked = 0
        for goal in short:
            try:
                outcome = await enforce_missed_goal(self.bot, goal)
            except Exception:
                logger.exception(
                    "Daily goal enforcement failed for user %s in guild %s",
                    goal.user_id, goal.guild_id,
                )
                continue
            if outcome is RemovalOutcome.REMOVED:
                kicked += 1
        return kicked


async def setup(bot: TetherBot) -> None:
    await bot.add_cog(PeriodicTasks(bot))
