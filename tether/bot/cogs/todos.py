"""
tether.bot.cogs.todos — Personal To-Do Commands
================================================

- /addtodo — Add a task
- /listtodos — List your tasks
- /donetodo — Mark a task done
- /deltodo — Delete a task

Lists are per member and per guild, and are wiped at the daily rollover.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import discord
from discord import app_commands
from discord.ext import commands

from tether.constants import EMOJI_CHECK, EMOJI_CROSS, EMOJI_TRASH
from tether.database.engine import run_db
from tether.services.todo_service import (
    add_todo,
    complete_todo,
    delete_todo,
    list_todos,
)

if TYPE_CHECKING:
    from tether.bot.core import TetherBot

GUILD_ONLY_REPLY = "This bot works only in servers."


class Todos(commands.Cog, name="Todos"):
    """A small personal to-do list that resets every day."""

    def __init__(self, bot: TetherBot) -> None:
        self.bot = bot

    @commands.hybrid_command(  # type: ignore[arg-type]
        name="addtodo",
        description="Add a new task.",
    )
    @app_commands.describe(task="Task text")
    async def addtodo(self, ctx: commands.Context, *, task: str) -> None:
        if ctx.guild is None:
            await ctx.send(GUILD_ONLY_REPLY, ephemeral=True)
            return
        try:
            item = await run_db(add_todo, self.bot.engine, ctx.guild.id, ctx.author.id, task)
        except ValueError as exc:
            await ctx.send(f"{EMOJI_CROSS} {exc}", ephemeral=True)
            return
        await ctx.send(f"{EMOJI_CHECK} Task added (#{item.id}): {item.text}", ephemeral=True)

    @commands.hybrid_command(  # type: ignore[arg-type]
        name="listtodos",
        description="List your tasks.",
    )
    async def listtodos(self, ctx: commands.Context) -> None:
        if ctx.guild is None:
            await ctx.send(GUILD_ONLY_REPLY, ephemeral=True)
            return
        items = await run_db(list_todos, self.bot.engine, ctx.guild.id, ctx.author.id)
        if not items:
            await ctx.send("No tasks found!", ephemeral=True)
            return

        lines = [
            f"{i.id}. [{EMOJI_CHECK if i.completed else EMOJI_CROSS}] {i.text}"
            for i in items
        ]
        done = sum(1 for i in items if i.completed)
        embed = discord.Embed(
            title=f"\U0001f4dd {ctx.author.display_name}'s Tasks",
            description="\n".join(lines),
            color=discord.Color.teal(),
        )
        embed.set_footer(text=f"{done}/{len(items)} done · cleared at daily reset")
        await ctx.send(embed=embed, ephemeral=True)

    @commands.hybrid_command(  # type: ignore[arg-type]
        name="donetodo",
        description="Mark a task as done.",
    )
    @app_commands.describe(id="Task ID")
    async def donetodo(self, ctx: commands.Context, id: int) -> None:
        if ctx.guild is None:
            await ctx.send(GUILD_ONLY_REPLY, ephemeral=True)
            return
        if await run_db(complete_todo, self.bot.engine, ctx.guild.id, ctx.author.id, id):
            await ctx.send(f"{EMOJI_CHECK} Task {id} marked done.", ephemeral=True)
        else:
            await ctx.send(f"{EMOJI_CROSS} No task {id} on your list.", ephemeral=True)

    @commands.hybrid_command(  # type: ignore[arg-type]
        name="deltodo",
        description="Delete a task.",
    )
    @app_commands.describe(id="Task ID")
    async def deltodo(self, ctx: commands.Context, id: int) -> None:
        if ctx.guild is None:
            await ctx.send(GUILD_ONLY_REPLY, ephemeral=True)
            return
        if await run_db(delete_todo, self.bot.engine, ctx.guild.id, ctx.author.id, id):
            await ctx.send(f"{EMOJI_TRASH} Task {id} deleted.", ephemeral=True)
        else:
            await ctx.send(f"{EMOJI_CROSS} No task {id} on your list.", ephemeral=True)


async def setup(bot: TetherBot) -> None:
    await bot.add_cog(Todos(bot))
