"""
tether.engine.accounting — Session Accounting Engine
=====================================================

The single place where presence time is turned into numbers.  Both the
presence transition handler (which *ends* a session) and the periodic
sampler (which only *peeks* at it) go through these functions, so they
cannot drift apart in rounding or update semantics.

A session is either :class:`Idle` or :class:`Active` — the nullable
``session_start`` column on the models is only ever read through
:func:`session_state`.

Everything here is pure (no I/O, no DB), which makes it trivially testable.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import UTC, datetime

from tether.constants import SECONDS_PER_HOUR, format_progress

__all__ = [
    "Idle",
    "Active",
    "SessionState",
    "IDLE",
    "utcnow",
    "as_utc",
    "session_state",
    "elapsed_seconds",
    "session_elapsed",
    "seconds_to_hours",
    "hours_to_seconds",
    "is_reached",
    "TargetSnapshot",
    "GoalSnapshot",
]


# ---------------------------------------------------------------------------
# Session state — Idle | Active(started_at)
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class Idle:
    """No open session."""


@dataclass(frozen=True, slots=True)
class Active:
    """An open session that began at ``started_at`` (UTC)."""

    started_at: datetime


SessionState = Idle | Active

IDLE = Idle()


# ---------------------------------------------------------------------------
# Time helpers
# ---------------------------------------------------------------------------
def utcnow() -> datetime:
    return datetime.now(UTC)


def as_utc(ts: datetime) -> datetime:
    """Attach UTC to naive timestamps (SQLite drops tzinfo on round-trip)."""
    if ts.tzinfo is None:
        return ts.replace(tzinfo=UTC)
    return ts.astimezone(UTC)


def session_state(started_at: datetime | None) -> SessionState:
    """Lift a nullable ``session_start`` column into a :data:`SessionState`."""
    if started_at is None:
        return IDLE
    return Active(as_utc(started_at))


def elapsed_seconds(started_at: datetime, now: datetime) -> int:
    """Whole seconds between *started_at* and *now*, never negative.

    A start in the future (clock skew between hosts) counts as zero.
    """
    delta = (as_utc(now) - as_utc(started_at)).total_seconds()
    return max(0, math.floor(delta))


def session_elapsed(state: SessionState, now: datetime) -> int:
    """Elapsed seconds of *state* at *now*; an idle session has none."""
    if isinstance(state, Active):
        return elapsed_seconds(state.started_at, now)
    return 0


def seconds_to_hours(seconds: int) -> float:
    return seconds / SECONDS_PER_HOUR


def hours_to_seconds(hours: float) -> int:
    """Nearest whole second, so ``0.1`` hours is 360 s and not 361."""
    return round(hours * SECONDS_PER_HOUR)


def is_reached(accumulated_seconds: int, target_seconds: int) -> bool:
    return accumulated_seconds >= target_seconds


# ---------------------------------------------------------------------------
# Detached snapshots handed from the store to the Discord layer
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class TargetSnapshot:
    """A Target's numbers at one point in time, detached from any Session."""

    guild_id: int
    user_id: int
    target_seconds: int
    accumulated_seconds: int

    @property
    def reached(self) -> bool:
        return is_reached(self.accumulated_seconds, self.target_seconds)

    @property
    def target_hours(self) -> float:
        return seconds_to_hours(self.target_seconds)

    @property
    def progress_label(self) -> str:
        """``"0.50 / 1.00"`` — accumulated over target, in hours."""
        return format_progress(
            seconds_to_hours(self.accumulated_seconds), self.target_hours
        )


@dataclass(frozen=True, slots=True)
class GoalSnapshot:
    """A DailyGoal's numbers at one point in time."""

    guild_id: int
    user_id: int
    goal_hours: float
    achieved_seconds: int

    @property
    def goal_seconds(self) -> int:
        return hours_to_seconds(self.goal_hours)

    @property
    def achieved_hours(self) -> float:
        return seconds_to_hours(self.achieved_seconds)

    @property
    def met(self) -> bool:
        # Whole seconds on both sides.
        return self.achieved_seconds >= self.goal_seconds

    @property
    def progress_label(self) -> str:
        return format_progress(self.achieved_hours, self.goal_hours)
