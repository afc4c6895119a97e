"""
tether.database.models — SQLAlchemy 2.0 Data Models
====================================================

Tables:
- targets         — One-shot study target per (guild, member)
- daily_goals     — Per-day hour goal per (guild, member), wiped at rollover
- todo_items      — Personal to-do list entries, wiped at rollover
- rollover_runs   — One row per local date a rollover has executed
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    BigInteger,
    Boolean,
    DateTime,
    Float,
    Index,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from tether.engine.accounting import SessionState, session_state


# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------
class Base(DeclarativeBase):
    """Shared base for all Tether ORM models."""


# ---------------------------------------------------------------------------
# Targets — "stay in voice for N minutes"
# ---------------------------------------------------------------------------
class Target(Base):
    """A member's active study target.

    ``accumulated_seconds`` only ever grows; ``session_start`` is cleared
    whenever its elapsed time is folded into ``accumulated_seconds``.
    The row is deleted once the target is reached or cleared.
    """
    __tablename__ = "targets"

    guild_id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    user_id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    target_seconds: Mapped[int] = mapped_column(BigInteger, nullable=False)
    accumulated_seconds: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    session_start: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), default=None
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    __table_args__ = (
        Index("ix_targets_session_start", "session_start"),
    )

    @property
    def session(self) -> SessionState:
        return session_state(self.session_start)

    def __repr__(self) -> str:
        return (
            f"<Target guild={self.guild_id} user={self.user_id} "
            f"{self.accumulated_seconds}/{self.target_seconds}s>"
        )


# ---------------------------------------------------------------------------
# Daily goals — "study N hours today"
# ---------------------------------------------------------------------------
class DailyGoal(Base):
    """A member's goal for the current day.

    ``session_start`` mirrors the member's voice session; ``accounted_at``
    marks how far that session has already been credited to
    ``achieved_seconds`` so the sampler and the leave handler never credit
    the same interval twice.
    """
    __tablename__ = "daily_goals"

    guild_id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    user_id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    goal_hours: Mapped[float] = mapped_column(Float, nullable=False)
    achieved_seconds: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    session_start: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), default=None
    )
    accounted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), default=None
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    @property
    def session(self) -> SessionState:
        return session_state(self.session_start)

    @property
    def unaccounted(self) -> SessionState:
        """The part of the open session not yet credited."""
        if self.session_start is None:
            return session_state(None)
        return session_state(self.accounted_at or self.session_start)

    def __repr__(self) -> str:
        return (
            f"<DailyGoal guild={self.guild_id} user={self.user_id} "
            f"{self.achieved_seconds}s/{self.goal_hours}h>"
        )


# ---------------------------------------------------------------------------
# To-do items
# ---------------------------------------------------------------------------
class TodoItem(Base):
    __tablename__ = "todo_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    guild_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    user_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    text: Mapped[str] = mapped_column(Text, nullable=False)
    completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    __table_args__ = (
        Index("ix_todo_items_owner", "guild_id", "user_id"),
    )

    def __repr__(self) -> str:
        mark = "x" if self.completed else " "
        return f"<TodoItem id={self.id} [{mark}] {self.text[:20]!r}>"


# ---------------------------------------------------------------------------
# Rollover runs — idempotency guard for the daily reset
# ---------------------------------------------------------------------------
class RolloverRun(Base):
    """One row per local calendar date (``YYYY-MM-DD``) already rolled over."""
    __tablename__ = "rollover_runs"

    run_date: Mapped[str] = mapped_column(String(10), primary_key=True)
    ran_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    def __repr__(self) -> str:
        return f"<RolloverRun {self.run_date}>"
