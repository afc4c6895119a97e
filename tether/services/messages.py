"""
tether.services.messages — DM, Notice & Kick-Reason Text
=========================================================

Pure string builders.  Kick reasons and the matching DMs are built from
the same progress label so the audit log and the member see identical
numbers.
"""

from __future__ import annotations

from tether.constants import (
    EMOJI_PARTY,
    EMOJI_WARNING,
    format_hours,
)
from tether.engine.accounting import GoalSnapshot, TargetSnapshot


def target_reached_dm(snapshot: TargetSnapshot | None = None) -> str:
    if snapshot is None:
        return f"{EMOJI_PARTY} Congrats! You reached your study target!"
    return (
        f"{EMOJI_PARTY} Congrats! You reached your study target of "
        f"{format_hours(snapshot.target_hours)} hours!"
    )


def early_leave_reason(snapshot: TargetSnapshot) -> str:
    return f"Left VC before reaching study target ({snapshot.progress_label} hours)"


def early_leave_dm(snapshot: TargetSnapshot) -> str:
    return f"You were kicked for leaving VC early ({snapshot.progress_label} hours)"


def hierarchy_blocked_dm() -> str:
    return f"{EMOJI_WARNING} You left VC early, but I couldn't kick you due to role hierarchy."


def missing_permission_notice(user_id: int) -> str:
    return f"<@{user_id}> left VC early but I don't have permission to kick."


def missed_goal_reason(goal: GoalSnapshot) -> str:
    return f"Did not complete daily goal ({goal.progress_label} hours)"


def missed_goal_dm(goal: GoalSnapshot, guild_name: str) -> str:
    return (
        f"You were kicked from {guild_name} for not completing your daily goal "
        f"({goal.progress_label} hours)."
    )
