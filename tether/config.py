"""
tether.config — YAML Configuration Loader
=========================================

**Why this file exists:**
This module reads ``config.yaml`` for the soft settings of a Tether
deployment: identity, command prefix, sampler cadence and the daily
rollover schedule.  Secrets (``DISCORD_TOKEN``, ``DATABASE_URL``) live in
``.env`` and are never read here.

Usage::

    from tether.config import load_config

    cfg = load_config()             # reads ./config.yaml by default
    print(cfg.community_name)       # "Study Hall"
    print(cfg.rollover_at)          # 00:00:00+05:45
"""

from __future__ import annotations

import datetime
from dataclasses import dataclass
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml

DEFAULT_CHECK_INTERVAL_SECONDS = 10
DEFAULT_ROLLOVER_TIME = "00:00"
DEFAULT_ROLLOVER_TIMEZONE = "Asia/Kathmandu"


# ---------------------------------------------------------------------------
# Typed settings object
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class TetherConfig:
    """Immutable configuration loaded from ``config.yaml``."""

    # Identity
    community_name: str

    # Discord
    bot_prefix: str

    # Periodic sampler cadence
    check_interval_seconds: int = DEFAULT_CHECK_INTERVAL_SECONDS

    # Daily rollover schedule (local wall-clock time in rollover_timezone)
    rollover_time: str = DEFAULT_ROLLOVER_TIME
    rollover_timezone: str = DEFAULT_ROLLOVER_TIMEZONE

    # Optional override for "left early but can't kick" notices
    announce_channel_id: int | None = None

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.rollover_timezone)

    @property
    def rollover_at(self) -> datetime.time:
        """The rollover trigger as a timezone-aware :class:`datetime.time`."""
        hour, minute = _parse_hhmm(self.rollover_time)
        return datetime.time(hour=hour, minute=minute, tzinfo=self.tz)


def _parse_hhmm(value: str) -> tuple[int, int]:
    try:
        hour_s, minute_s = value.split(":")
        hour, minute = int(hour_s), int(minute_s)
    except ValueError:
        raise ValueError(
            f"rollover_time must be HH:MM, got {value!r} (quote it in YAML: \"12:30\")"
        ) from None
    if not (0 <= hour < 24 and 0 <= minute < 60):
        raise ValueError(f"rollover_time out of range: {value!r}")
    return hour, minute


def _rollover_time(value: object) -> str:
    """Normalise ``rollover_time`` to ``HH:MM``.

    YAML 1.1 reads an unquoted ``4:30`` as the base-60 integer 270, so an
    int is taken as minutes since midnight.
    """
    if isinstance(value, int) and not isinstance(value, bool):
        if not 0 <= value < 24 * 60:
            raise ValueError(f"rollover_time out of range: {value!r} minutes")
        return f"{value // 60:02d}:{value % 60:02d}"
    return str(value)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def load_config(path: str | Path = "config.yaml") -> TetherConfig:
    """Read *path* and return a :class:`TetherConfig` instance.

    Parameters
    ----------
    path:
        Filesystem path to the YAML configuration file.
        Defaults to ``config.yaml`` in the current working directory.

    Raises
    ------
    FileNotFoundError
        If the YAML file doesn't exist.
    KeyError
        If a required key is missing from the YAML file.
    ValueError
        If the interval, rollover time or timezone is invalid.
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(
            f"Configuration file not found: {config_path.resolve()}\n"
            "Hint: copy config.yaml.example → config.yaml and edit it."
        )

    with open(config_path, encoding="utf-8") as fh:
        raw: dict = yaml.safe_load(fh) or {}

    interval = int(raw.get("check_interval_seconds", DEFAULT_CHECK_INTERVAL_SECONDS))
    if interval <= 0:
        raise ValueError(f"check_interval_seconds must be positive, got {interval}")

    cfg = TetherConfig(
        community_name=raw["community_name"],
        bot_prefix=raw["bot_prefix"],
        check_interval_seconds=interval,
        rollover_time=_rollover_time(raw.get("rollover_time", DEFAULT_ROLLOVER_TIME)),
        rollover_timezone=str(raw.get("rollover_timezone", DEFAULT_ROLLOVER_TIMEZONE)),
        announce_channel_id=(
            int(raw["announce_channel_id"]) if raw.get("announce_channel_id") else None
        ),
    )

    # Fail at startup rather than when the rollover loop is scheduled.
    try:
        cfg.rollover_at
    except ZoneInfoNotFoundError:
        raise ValueError(f"Unknown rollover_timezone: {cfg.rollover_timezone!r}") from None
    return cfg
