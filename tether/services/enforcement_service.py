"""
tether.services.enforcement_service — Kicks, DMs & Fallback Notices
====================================================================

Discord-side half of goal enforcement.  Every side effect here is
**fallible by design** and reports what happened instead of raising:

- :func:`notify_member` returns ``bool`` — a closed DM is not an error.
- :func:`kick_member` returns a :class:`RemovalOutcome`.
- :func:`check_removal_authority` turns "missing Kick Members" and
  "role hierarchy" into outcomes with their own fallback paths.

Callers that intend to ignore a result bind it to ``_`` so the discard is
visible at the call site.
"""

from __future__ import annotations

import enum
import logging
from typing import TYPE_CHECKING

import discord

from tether.database.engine import run_db
from tether.engine.accounting import GoalSnapshot, TargetSnapshot
from tether.services import messages
from tether.services.target_service import clear_target

if TYPE_CHECKING:
    from tether.bot.core import TetherBot

logger = logging.getLogger(__name__)


class RemovalOutcome(enum.StrEnum):
    """How an attempt to remove a member from the guild ended."""
    REMOVED = "removed"
    MISSING_PERMISSION = "missing_permission"
    HIERARCHY_BLOCKED = "hierarchy_blocked"
    FAILED = "failed"
    MEMBER_GONE = "member_gone"


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------
async def resolve_member(guild: discord.Guild, user_id: int) -> discord.Member | None:
    """Cached member, else a REST fetch; None if they're no longer here."""
    member = guild.get_member(user_id)
    if member is not None:
        return member
    try:
        return await guild.fetch_member(user_id)
    except discord.HTTPException:
        return None


def resolve_notice_channel(
    guild: discord.Guild,
    override_channel_id: int | None = None,
) -> discord.abc.Messageable | None:
    """Where to post a public enforcement notice.

    Priority: configured channel → guild system channel → first text channel
    the bot can send messages in.
    """
    if override_channel_id:
        ch = guild.get_channel(override_channel_id)
        if isinstance(ch, discord.abc.Messageable):
            return ch

    if guild.system_channel is not None:
        return guild.system_channel

    me = guild.me
    for ch in guild.text_channels:
        if ch.permissions_for(me).send_messages:
            return ch
    return None


# ---------------------------------------------------------------------------
# Best-effort side effects
# ---------------------------------------------------------------------------
async def notify_member(member: discord.abc.User, content: str) -> bool:
    """DM *member*.  Returns False (never raises) if the DM can't be delivered."""
    try:
        await member.send(content)
    except discord.HTTPException as exc:
        logger.debug("DM to %s not delivered: %s", member.id, exc)
        return False
    return True


async def post_notice(channel: discord.abc.Messageable | None, content: str) -> bool:
    if channel is None:
        return False
    try:
        await channel.send(content)
    except discord.HTTPException as exc:
        logger.debug("Notice to channel %s not delivered: %s", getattr(channel, "id", "?"), exc)
        return False
    return True


def check_removal_authority(guild: discord.Guild, member: discord.Member) -> RemovalOutcome | None:
    """None if the bot may kick *member*, otherwise the blocking outcome.

    The member's highest role must sit strictly below the bot's highest role,
    and the guild owner can never be kicked.
    """
    me = guild.me
    if not me.guild_permissions.kick_members:
        return RemovalOutcome.MISSING_PERMISSION
    if member.id == guild.owner_id:
        return RemovalOutcome.HIERARCHY_BLOCKED
    if member.top_role.position >= me.top_role.position:
        return RemovalOutcome.HIERARCHY_BLOCKED
    return None


async def kick_member(member: discord.Member, reason: str) -> RemovalOutcome:
    try:
        await member.kick(reason=reason)
    except discord.HTTPException:
        logger.exception("Failed to kick user %s from guild %s", member.id, member.guild.id)
        return RemovalOutcome.FAILED
    logger.info("Kicked user %s from guild %s: %s", member.id, member.guild.id, reason)
    return RemovalOutcome.REMOVED


# ---------------------------------------------------------------------------
# Enforcement flows
# ---------------------------------------------------------------------------
async def enforce_early_leave(
    bot: TetherBot,
    member: discord.Member,
    snapshot: TargetSnapshot,
) -> RemovalOutcome:
    """Kick a member who left voice before reaching their target.

    - No Kick Members permission → public notice, target kept.
    - Role hierarchy in the way → DM, target kept.
    - Kick failed → logged, target kept for the next check.
    - Kicked → DM with the reason, target deleted.
    """
    guild = member.guild
    blocked = check_removal_authority(guild, member)

    if blocked is RemovalOutcome.MISSING_PERMISSION:
        channel = resolve_notice_channel(guild, bot.cfg.announce_channel_id)
        _ = await post_notice(channel, messages.missing_permission_notice(member.id))
        logger.warning(
            "User %s left VC early in guild %s but bot lacks Kick Members",
            member.id, guild.id,
        )
        return blocked

    if blocked is RemovalOutcome.HIERARCHY_BLOCKED:
        _ = await notify_member(member, messages.hierarchy_blocked_dm())
        logger.info("User %s left VC early; role hierarchy blocks kick", member.id)
        return blocked

    outcome = await kick_member(member, messages.early_leave_reason(snapshot))
    if outcome is RemovalOutcome.REMOVED:
        _ = await notify_member(member, messages.early_leave_dm(snapshot))
        await run_db(clear_target, bot.engine, snapshot.guild_id, snapshot.user_id)
    return outcome


async def enforce_missed_goal(bot: TetherBot, goal: GoalSnapshot) -> RemovalOutcome:
    """Kick and DM a member whose daily goal went unmet.

    Both steps are best effort; the DM goes out even if the kick raises.
    """
    guild = bot.get_guild(goal.guild_id)
    if guild is None:
        return RemovalOutcome.MEMBER_GONE
    member = await resolve_member(guild, goal.user_id)
    if member is None:
        return RemovalOutcome.MEMBER_GONE

    try:
        outcome = await kick_member(member, messages.missed_goal_reason(goal))
    finally:
        _ = await notify_member(member, messages.missed_goal_dm(goal, guild.name))
    return outcome


async def congratulate(bot: TetherBot, snapshot: TargetSnapshot, *, with_hours: bool = True) -> bool:
    """DM a member whose target was just retired."""
    guild = bot.get_guild(snapshot.guild_id)
    if guild is None:
        return False
    member = await resolve_member(guild, snapshot.user_id)
    if member is None:
        return False
    return await notify_member(
        member, messages.target_reached_dm(snapshot if with_hours else None)
    )
