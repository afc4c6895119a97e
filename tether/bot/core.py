"""
tether.bot.core — Bot Instance & Cog Loader
============================================

Defines :class:`TetherBot`, a ``commands.Bot`` subclass that:

1. Stores the shared config (``bot.cfg``) and DB engine (``bot.engine``)
   so every Cog can reach them via ``self.bot.cfg`` / ``self.bot.engine``.
2. Loads every Cog listed in :data:`EXTENSIONS`.
3. Syncs the slash-command tree on startup (guild-scoped for dev, global
   for production — controlled by the ``DEV_GUILD_ID`` env var).
4. Logs whether it can actually enforce anything in each guild (Kick
   Members permission), since a missing permission silently downgrades
   every early-leave kick to a channel notice.
"""

from __future__ import annotations

import logging
import os

import discord
from discord.ext import commands
from sqlalchemy import Engine

from tether.config import TetherConfig

logger = logging.getLogger(__name__)

# Cog modules to load on startup.
EXTENSIONS: list[str] = [
    "tether.bot.cogs.voice",
    "tether.bot.cogs.goals",
    "tether.bot.cogs.todos",
    "tether.bot.cogs.tasks",
]


class TetherBot(commands.Bot):
    """Custom Bot subclass that carries project-wide state.

    Parameters
    ----------
    cfg:
        The parsed :class:`TetherConfig` from ``config.yaml``.
    engine:
        A SQLAlchemy :class:`Engine`.
    """

    def __init__(self, cfg: TetherConfig, engine: Engine) -> None:
        # default() already includes GUILDS and GUILD_VOICE_STATES.
        # GUILD_MEMBERS is privileged (enable in the Developer Portal) and is
        # needed to resolve members for DMs and kicks from the sampler and
        # the rollover, where no gateway event hands us a Member.
        intents = discord.Intents.default()
        intents.members = True
        intents.voice_states = True
        intents.presences = False

        super().__init__(
            command_prefix=cfg.bot_prefix,
            intents=intents,
            description=f"{cfg.community_name} — study voice-channel tracker",
        )

        self.cfg = cfg
        self.engine = engine

    # -----------------------------------------------------------------------
    # Lifecycle hooks
    # -----------------------------------------------------------------------
    async def setup_hook(self) -> None:
        """Load all Cog extensions before connecting.

        A Cog that fails to load is logged and skipped.
        """
        for ext in EXTENSIONS:
            try:
                await self.load_extension(ext)
                logger.info("Loaded extension: %s", ext)
            except Exception as exc:
                logger.error("Failed to load extension %s: %s", ext, exc)

    async def on_ready(self) -> None:
        """Fired when the bot has connected and the cache is populated."""
        assert self.user is not None  # guaranteed after on_ready
        logger.info("Logged in as %s (ID: %s)", self.user.name, self.user.id)

        # --- Slash-command sync ---------------------------------------------
        dev_guild_id = os.getenv("DEV_GUILD_ID")
        if dev_guild_id:
            guild = discord.Object(id=int(dev_guild_id))
            self.tree.copy_global_to(guild=guild)
            synced = await self.tree.sync(guild=guild)
            logger.info("Synced %d commands to dev guild %s", len(synced), dev_guild_id)
        else:
            synced = await self.tree.sync()
            logger.info("Synced %d commands globally", len(synced))

        self._audit_kick_permission()

    def _audit_kick_permission(self) -> None:
        for guild in self.guilds:
            me = guild.me
            if me is None:
                continue
            if me.guild_permissions.kick_members:
                logger.info("Guild %s (%d): Kick Members granted", guild.name, guild.id)
            else:
                logger.warning(
                    "Guild %s (%d): Kick Members missing — early leaves will only "
                    "be announced, not enforced",
                    guild.name, guild.id,
                )
