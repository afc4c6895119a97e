"""
tether.services.target_service — Target Records
================================================

CRUD for :class:`~tether.database.models.Target`.  All functions are
synchronous and take an ``Engine``; call them from async code through
:func:`~tether.database.engine.run_db`.

Completion is a **conditional delete**: :func:`complete_target` reports
whether it actually removed a row, and callers only congratulate the member
when it did.  A second call after the row is gone is a silent no-op, which
is what keeps the sampler and the leave handler from both announcing the
same target.
"""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import Engine, delete
from sqlalchemy.orm import Session

from tether.database.engine import get_session
from tether.database.models import Target
from tether.engine.accounting import TargetSnapshot

logger = logging.getLogger(__name__)

# Largest value a BIGINT column holds
MAX_TARGET_SECONDS = 2**63 - 1


def _snapshot(target: Target) -> TargetSnapshot:
    return TargetSnapshot(
        guild_id=target.guild_id,
        user_id=target.user_id,
        target_seconds=target.target_seconds,
        accumulated_seconds=target.accumulated_seconds,
    )


def set_target(
    engine: Engine,
    guild_id: int,
    user_id: int,
    target_seconds: int,
    *,
    session_start: datetime | None = None,
) -> TargetSnapshot:
    """Create or replace a member's target.

    Replacing discards prior progress: ``accumulated_seconds`` goes back to
    0 and any open session is dropped.  Pass *session_start* when the member
    is already sitting in a voice channel so tracking begins immediately.
    """
    if target_seconds <= 0:
        raise ValueError(f"target_seconds must be positive, got {target_seconds}")
    if target_seconds > MAX_TARGET_SECONDS:
        raise ValueError(
            f"target_seconds must be at most {MAX_TARGET_SECONDS}, got {target_seconds}"
        )

    with get_session(engine) as session:
        target = session.get(Target, (guild_id, user_id))
        if target is None:
            target = Target(guild_id=guild_id, user_id=user_id)
            session.add(target)
        target.target_seconds = target_seconds
        target.accumulated_seconds = 0
        target.session_start = session_start
        session.flush()
        logger.info(
            "Target set: guild=%d user=%d seconds=%d tracking=%s",
            guild_id, user_id, target_seconds, session_start is not None,
        )
        return _snapshot(target)


def get_target(engine: Engine, guild_id: int, user_id: int) -> TargetSnapshot | None:
    with get_session(engine) as session:
        target = session.get(Target, (guild_id, user_id))
        return _snapshot(target) if target else None


def clear_target(engine: Engine, guild_id: int, user_id: int) -> bool:
    """Delete a member's target.  Returns True if a row was removed."""
    with get_session(engine) as session:
        return delete_target(session, guild_id, user_id)


def complete_target(engine: Engine, guild_id: int, user_id: int) -> bool:
    """Retire a reached target.  Returns True only for the call that removed it."""
    with get_session(engine) as session:
        removed = delete_target(session, guild_id, user_id)
    if removed:
        logger.info("Target completed: guild=%d user=%d", guild_id, user_id)
    return removed


def delete_target(session: Session, guild_id: int, user_id: int) -> bool:
    """Session-level delete shared by the clear/complete paths and the sampler."""
    result = session.execute(
        delete(Target)
        .where(Target.guild_id == guild_id, Target.user_id == user_id)
        .execution_options(synchronize_session=False)
    )
    return bool(result.rowcount)
