"""
tether.bot.cogs.voice — Voice Presence Tracking & Periodic Sampler
===================================================================

Turns ``on_voice_state_update`` into session accounting:

- **join**  (no channel → channel): start the target / daily-goal clocks.
- **leave** (channel → no channel): bank the session, then either
  congratulate (target reached) or enforce the early-leave kick.
- **move / mute / deafen**: session keeps running, nothing to do.

A ``discord.ext.tasks`` loop samples every open session at
``check_interval_seconds`` (default 10 s) so a member who never leaves
voice still gets their target retired and their daily goal credited.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import discord
from discord.ext import commands, tasks

from tether.config import DEFAULT_CHECK_INTERVAL_SECONDS
from tether.database.engine import run_db
from tether.services import messages
from tether.services.enforcement_service import (
    congratulate,
    enforce_early_leave,
    notify_member,
)
from tether.services.session_service import (
    LeaveOutcome,
    begin_session,
    end_session,
    sample_open_sessions,
)
from tether.services.target_service import complete_target

if TYPE_CHECKING:
    from tether.bot.core import TetherBot

logger = logging.getLogger(__name__)


class Voice(commands.Cog, name="Voice"):
    """Tracks voice presence against study targets and daily goals."""

    def __init__(self, bot: TetherBot) -> None:
        self.bot = bot

    async def cog_load(self) -> None:
        """Start the sampler at the configured cadence."""
        self.sample_loop.change_interval(seconds=self.bot.cfg.check_interval_seconds)
        self.sample_loop.start()

    async def cog_unload(self) -> None:
        self.sample_loop.cancel()

    # -------------------------------------------------------------------
    # Presence transitions
    # -------------------------------------------------------------------
    @commands.Cog.listener()
    async def on_voice_state_update(
        self,
        member: discord.Member,
        before: discord.VoiceState,
        after: discord.VoiceState,
    ) -> None:
        """Track voice join/leave events."""
        try:
            await self._handle_voice_update(member, before, after)
        except Exception:
            logger.exception("Error processing voice state update for user %s", member.id)

    async def _handle_voice_update(
        self,
        member: discord.Member,
        before: discord.VoiceState,
        after: discord.VoiceState,
    ) -> None:
        if member.bot:
            return

        guild_id = member.guild.id

        # --- Voice JOIN (was not in channel, now is) ---
        if before.channel is None and after.channel is not None:
            await run_db(begin_session, self.bot.engine, guild_id, member.id)
            logger.debug("%s joined voice channel %s", member, after.channel)

        # --- Voice LEAVE (was in channel, now is not) ---
        elif before.channel is not None and after.channel is None:
            outcome = await run_db(end_session, self.bot.engine, guild_id, member.id)
            logger.debug("%s left voice channel %s", member, before.channel)
            await self._after_leave(member, outcome)

    async def _after_leave(self, member: discord.Member, outcome: LeaveOutcome) -> None:
        snapshot = outcome.target
        if snapshot is None:
            return

        if snapshot.reached:
            # Completion never leads to enforcement, even if the sampler
            # beat us to the delete.
            if await run_db(complete_target, self.bot.engine, snapshot.guild_id, snapshot.user_id):
                _ = await notify_member(member, messages.target_reached_dm())
            return

        outcome_kind = await enforce_early_leave(self.bot, member, snapshot)
        logger.info(
            "Early leave by %s (%s): %s", member.id, snapshot.progress_label, outcome_kind,
        )

    # -------------------------------------------------------------------
    # Periodic sampler
    # -------------------------------------------------------------------
    @tasks.loop(seconds=DEFAULT_CHECK_INTERVAL_SECONDS)
    async def sample_loop(self) -> None:
        """Retire targets reached mid-session and credit open daily goals."""
        if not self.bot.is_ready():
            return

        try:
            completed = await run_db(sample_open_sessions, self.bot.engine)
        except Exception:
            logger.exception("Sampler tick failed", extra={"task": "sampler"})
            return

        for snapshot in completed:
            _ = await congratulate(self.bot, snapshot)

    @sample_loop.before_loop
    async def before_sample(self) -> None:
        await self.bot.wait_until_ready()


async def setup(bot: TetherBot) -> None:
    await bot.add_cog(Voice(bot))
