"""
tether.constants — Shared Constants & Helpers
==============================================

Single source of truth for presentation constants and the hour formatting
used in DMs, kick reasons and command replies.
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Presentation emoji (used by command replies and DMs)
# ---------------------------------------------------------------------------
EMOJI_PARTY = "\U0001f389"       # 🎉
EMOJI_CHECK = "✅"           # ✅
EMOJI_CROSS = "❌"           # ❌
EMOJI_WARNING = "⚠️"   # ⚠️
EMOJI_TRASH = "\U0001f5d1"       # 🗑
EMOJI_CLOCK = "⏱️"     # ⏱️

SECONDS_PER_HOUR = 3600


# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------
def format_hours(hours: float) -> str:
    """Render an hour count with two decimals (``1.5`` → ``"1.50"``)."""
    return f"{hours:.2f}"


def format_seconds_as_hours(seconds: int) -> str:
    """Render a second count as hours with two decimals (``1800`` → ``"0.50"``)."""
    return format_hours(seconds / SECONDS_PER_HOUR)


def format_progress(done: float, goal: float) -> str:
    """``"done / goal"`` with both sides as two-decimal hours."""
    return f"{format_hours(done)} / {format_hours(goal)}"
