"""
tether.bot.cogs.goals — Study Target & Daily Goal Commands
===========================================================

Hybrid commands for member self-service:
- /settarget — Set (or replace) a one-shot study target in minutes
- /cleartarget — Drop the current target
- /setgoal — Set (or replace) today's goal in hours
- /progress — Live view of target and daily-goal progress

Setting a target or goal while already sitting in voice starts the clock
immediately; otherwise tracking begins on the next voice join.
"""

from __future__ import annotations

import math
from datetime import datetime
from typing import TYPE_CHECKING

import discord
from discord import app_commands
from discord.ext import commands

from tether.constants import (
    EMOJI_CHECK,
    EMOJI_CLOCK,
    EMOJI_CROSS,
)
from tether.database.engine import run_db
from tether.engine.accounting import utcnow
from tether.services.goal_service import set_daily_goal
from tether.services.session_service import get_progress
from tether.services.target_service import clear_target, set_target

if TYPE_CHECKING:
    from tether.bot.core import TetherBot

GUILD_ONLY_REPLY = "This bot works only in servers."


def _in_voice_since(author: discord.abc.User) -> datetime | None:
    """``now`` if *author* is currently in a voice channel, else None."""
    voice = getattr(author, "voice", None)
    if voice is not None and voice.channel is not None:
        return utcnow()
    return None


class Goals(commands.Cog, name="Goals"):
    """Study targets, daily goals and progress."""

    def __init__(self, bot: TetherBot) -> None:
        self.bot = bot

    # -------------------------------------------------------------------
    # /settarget
    # -------------------------------------------------------------------
    @commands.hybrid_command(  # type: ignore[arg-type]
        name="settarget",
        description="Set your study target in minutes.",
    )
    @app_commands.describe(minutes="Minutes to stay in voice")
    async def settarget(self, ctx: commands.Context, minutes: float) -> None:
        if ctx.guild is None:
            await ctx.send(GUILD_ONLY_REPLY, ephemeral=True)
            return
        seconds = math.floor(minutes * 60) if math.isfinite(minutes) else 0
        if seconds <= 0:
            await ctx.send("Provide a positive number of minutes.", ephemeral=True)
            return

        since = _in_voice_since(ctx.author)
        try:
            await run_db(
                set_target, self.bot.engine, ctx.guild.id, ctx.author.id, seconds,
                session_start=since,
            )
        except ValueError:
            await ctx.send("That target is too long.", ephemeral=True)
            return
        follow_up = (
            "You're already in voice, tracking started."
            if since else "Join a VC to start tracking."
        )
        await ctx.send(f"Target set: {minutes:g} minutes. {follow_up}")

    # -------------------------------------------------------------------
    # /cleartarget
    # -------------------------------------------------------------------
    @commands.hybrid_command(  # type: ignore[arg-type]
        name="cleartarget",
        description="Clear your study target.",
    )
    async def cleartarget(self, ctx: commands.Context) -> None:
        if ctx.guild is None:
            await ctx.send(GUILD_ONLY_REPLY, ephemeral=True)
            return
        removed = await run_db(clear_target, self.bot.engine, ctx.guild.id, ctx.author.id)
        if removed:
            await ctx.send("Your target has been cleared.", ephemeral=True)
        else:
            await ctx.send("You don't have an active target.", ephemeral=True)

    # -------------------------------------------------------------------
    # /setgoal
    # -------------------------------------------------------------------
    @commands.hybrid_command(  # type: ignore[arg-type]
        name="setgoal",
        description="Set your daily goal in hours.",
    )
    @app_commands.describe(hours="Goal in hours")
    async def setgoal(self, ctx: commands.Context, hours: float) -> None:
        if ctx.guild is None:
            await ctx.send(GUILD_ONLY_REPLY, ephemeral=True)
            return
        if not math.isfinite(hours) or hours <= 0:
            await ctx.send("Provide a positive number of hours.", ephemeral=True)
            return

        await run_db(
            set_daily_goal, self.bot.engine, ctx.guild.id, ctx.author.id, hours,
            session_start=_in_voice_since(ctx.author),
        )
        await ctx.send(f"{EMOJI_CHECK} Daily goal set: {hours:g} hour(s)", ephemeral=True)

    # -------------------------------------------------------------------
    # /progress
    # -------------------------------------------------------------------
    @commands.hybrid_command(  # type: ignore[arg-type]
        name="progress",
        description="Show your study target and daily goal progress.",
    )
    async def progress(self, ctx: commands.Context) -> None:
        if ctx.guild is None:
            await ctx.send(GUILD_ONLY_REPLY, ephemeral=True)
            return

        view = await run_db(get_progress, self.bot.engine, ctx.guild.id, ctx.author.id)
        if view.target is None and view.goal is None:
            await ctx.send(
                "You have no target or daily goal. Try `/settarget` or `/setgoal`.",
                ephemeral=True,
            )
            return

        embed = discord.Embed(
            title=f"{EMOJI_CLOCK} {ctx.author.display_name}'s Progress",
            color=discord.Color.blurple(),
        )
        if view.target is not None:
            embed.add_field(
                name="Study Target",
                value=f"{view.target.progress_label} hours",
                inline=True,
            )
        if view.goal is not None:
            mark = EMOJI_CHECK if view.goal.met else EMOJI_CROSS
            embed.add_field(
                name="Daily Goal",
                value=f"{mark} {view.goal.progress_label} hours",
                inline=True,
            )
        embed.set_footer(
            text=(
                f"In voice now · {self.bot.cfg.community_name}"
                if view.in_session
                else f"Not in voice · resets daily at {self.bot.cfg.rollover_time} "
                f"({self.bot.cfg.rollover_timezone})"
            )
        )
        await ctx.send(embed=embed, ephemeral=True)


async def setup(bot: TetherBot) -> None:
    await bot.add_cog(Goals(bot))
