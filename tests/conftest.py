"""
tests/conftest.py — Shared Test Fixtures
=========================================
"""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime, time
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy import Engine, create_engine
from sqlalchemy.pool import StaticPool

from tether.database.models import Base

GUILD_ID = 111222333
USER_ID = 444555666

# Fixed "now" for deterministic accounting
T0 = datetime(2026, 1, 15, 12, 0, 0, tzinfo=UTC)


def run_async(coro):
    """Run an async coroutine to completion without pytest-asyncio."""
    return asyncio.run(coro)


@pytest.fixture
def db_engine() -> Engine:
    """Create an in-memory SQLite engine with all Tether tables.

    Uses StaticPool so all threads share the same in-memory database
    (required by ``asyncio.to_thread`` used in ``run_db``).
    """
    engine = create_engine(
        "sqlite://",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    return engine


# ---------------------------------------------------------------------------
# Discord doubles
# ---------------------------------------------------------------------------
def make_guild(
    *,
    guild_id: int = GUILD_ID,
    name: str = "Study Hall",
    can_kick: bool = True,
    bot_role_position: int = 10,
    owner_id: int = 1,
    system_channel=None,
    text_channels: list | None = None,
) -> MagicMock:
    guild = MagicMock()
    guild.id = guild_id
    guild.name = name
    guild.owner_id = owner_id
    guild.me = SimpleNamespace(
        guild_permissions=SimpleNamespace(kick_members=can_kick),
        top_role=SimpleNamespace(position=bot_role_position),
    )
    guild.system_channel = system_channel
    guild.text_channels = text_channels or []
    guild.get_member = MagicMock(return_value=None)
    guild.get_channel = MagicMock(return_value=None)
    guild.fetch_member = AsyncMock()
    return guild


def make_member(
    guild: MagicMock,
    *,
    user_id: int = USER_ID,
    role_position: int = 1,
    bot: bool = False,
) -> MagicMock:
    member = MagicMock()
    member.id = user_id
    member.bot = bot
    member.guild = guild
    member.display_name = f"user{user_id}"
    member.top_role = SimpleNamespace(position=role_position)
    member.send = AsyncMock()
    member.kick = AsyncMock()
    return member


def make_bot(engine: Engine, guilds: list | None = None, *, announce_channel_id=None) -> MagicMock:
    """A lightweight stand-in for TetherBot."""
    by_id = {g.id: g for g in guilds or []}
    bot = MagicMock()
    bot.engine = engine
    bot.cfg = SimpleNamespace(
        announce_channel_id=announce_channel_id,
        community_name="Study Hall",
        rollover_time="00:00",
        rollover_timezone="Asia/Kathmandu",
        rollover_at=time(0, 0, tzinfo=UTC),
    )
    bot.get_guild = MagicMock(side_effect=lambda gid: by_id.get(gid))
    bot.is_ready = MagicMock(return_value=True)
    return bot


def http_error(cls=None, status: int = 403, message: str = "Cannot send messages to this user"):
    """Build a discord HTTPException subclass instance without a live response."""
    import discord

    cls = cls or discord.Forbidden
    response = SimpleNamespace(status=status, reason="Forbidden")
    return cls(response, message)
