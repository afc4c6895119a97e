"""
tests/test_cogs.py — Voice, Rollover & Command Cogs
====================================================
Cogs are built around a MagicMock bot carrying the real in-memory
engine, so each test drives the Discord entry point and checks the
resulting database state.
"""

from __future__ import annotations

from datetime import UTC, date, datetime, time, timedelta
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock
from zoneinfo import ZoneInfo

import pytest
from sqlalchemy.orm import Session

from conftest import GUILD_ID, T0, USER_ID, make_bot, make_guild, make_member, run_async
from tether.bot.cogs.goals import Goals
from tether.bot.cogs.tasks import PeriodicTasks, rollover_day, rollover_schedule
from tether.bot.cogs.todos import Todos
from tether.bot.cogs.voice import Voice
from tether.database.models import Target
from tether.engine.accounting import utcnow
from tether.services.goal_service import get_daily_goal, list_daily_goals, set_daily_goal
from tether.services.session_service import begin_session
from tether.services.target_service import get_target, set_target
from tether.services.todo_service import add_todo, list_todos

IN_VOICE = SimpleNamespace(channel=SimpleNamespace(name="Focus Room"))
OUT_OF_VOICE = SimpleNamespace(channel=None)


def _ctx(guild, author) -> MagicMock:
    ctx = MagicMock()
    ctx.guild = guild
    ctx.author = author
    ctx.send = AsyncMock()
    return ctx


class TestVoiceTransitions:
    """Join/leave handling through the listener."""

    def test_bots_are_ignored(self, db_engine):
        set_target(db_engine, GUILD_ID, USER_ID, 600)
        guild = make_guild()
        cog = Voice(make_bot(db_engine, [guild]))
        member = make_member(guild, bot=True)

        run_async(cog.on_voice_state_update(member, OUT_OF_VOICE, IN_VOICE))

        with Session(db_engine) as s:
            assert s.get(Target, (GUILD_ID, USER_ID)).session_start is None

    def test_join_starts_session(self, db_engine):
        set_target(db_engine, GUILD_ID, USER_ID, 600)
        guild = make_guild()
        cog = Voice(make_bot(db_engine, [guild]))

        run_async(cog.on_voice_state_update(make_member(guild), OUT_OF_VOICE, IN_VOICE))
        # Leaving right away banks ~0 s and triggers enforcement
        member = make_member(guild)
        run_async(cog.on_voice_state_update(member, IN_VOICE, OUT_OF_VOICE))

        member.kick.assert_awaited_once()
        assert get_target(db_engine, GUILD_ID, USER_ID) is None

    def test_reached_target_on_leave_congratulates_without_kick(self, db_engine):
        set_target(
            db_engine, GUILD_ID, USER_ID, 60,
            session_start=utcnow() - timedelta(minutes=2),
        )
        guild = make_guild()
        member = make_member(guild)
        cog = Voice(make_bot(db_engine, [guild]))

        run_async(cog.on_voice_state_update(member, IN_VOICE, OUT_OF_VOICE))

        member.kick.assert_not_awaited()
        assert "Congrats" in member.send.await_args.args[0]
        assert get_target(db_engine, GUILD_ID, USER_ID) is None

    def test_leave_without_target_does_nothing(self, db_engine):
        guild = make_guild()
        member = make_member(guild)
        cog = Voice(make_bot(db_engine, [guild]))

        run_async(cog.on_voice_state_update(member, IN_VOICE, OUT_OF_VOICE))

        member.kick.assert_not_awaited()
        member.send.assert_not_awaited()

    def test_channel_move_keeps_session_open(self, db_engine):
        set_target(db_engine, GUILD_ID, USER_ID, 600, session_start=T0)
        guild = make_guild()
        member = make_member(guild)
        cog = Voice(make_bot(db_engine, [guild]))
        other_room = SimpleNamespace(channel=SimpleNamespace(name="Quiet Room"))

        run_async(cog.on_voice_state_update(member, IN_VOICE, other_room))

        target = get_target(db_engine, GUILD_ID, USER_ID)
        assert target.accumulated_seconds == 0
        member.kick.assert_not_awaited()


class TestSamplerLoop:

    def test_tick_retires_reached_target(self, db_engine):
        set_target(
            db_engine, GUILD_ID, USER_ID, 60,
            session_start=utcnow() - timedelta(minutes=5),
        )
        guild = make_guild()
        member = make_member(guild)
        guild.get_member.return_value = member
        cog = Voice(make_bot(db_engine, [guild]))

        run_async(cog.sample_loop())

        assert get_target(db_engine, GUILD_ID, USER_ID) is None
        assert "0.02 hours" in member.send.await_args.args[0]
        member.kick.assert_not_awaited()

    def test_tick_skipped_before_ready(self, db_engine):
        set_target(
            db_engine, GUILD_ID, USER_ID, 60,
            session_start=utcnow() - timedelta(minutes=5),
        )
        bot = make_bot(db_engine, [make_guild()])
        bot.is_ready.return_value = False

        run_async(Voice(bot).sample_loop())

        assert get_target(db_engine, GUILD_ID, USER_ID) is not None


class TestRollover:

    def _setup(self, db_engine):
        set_daily_goal(db_engine, GUILD_ID, 1, 5)
        set_daily_goal(db_engine, GUILD_ID, 2, 1)
        begin_session(db_engine, GUILD_ID, 2, T0 - timedelta(hours=2))
        add_todo(db_engine, GUILD_ID, 1, "read chapter 4")

        guild = make_guild()
        members = {uid: make_member(guild, user_id=uid) for uid in (1, 2)}
        guild.get_member = MagicMock(side_effect=lambda uid: members.get(uid))
        return make_bot(db_engine, [guild]), members

    def test_kicks_only_unmet_goals_then_resets(self, db_engine):
        bot, members = self._setup(db_engine)

        result = run_async(PeriodicTasks(bot).run_rollover(now=T0))

        assert result == {"short": 1, "kicked": 1, "goals_deleted": 2, "todos_deleted": 1}
        members[1].kick.assert_awaited_once()
        assert "0.00 / 5.00" in members[1].send.await_args.args[0]
        members[2].kick.assert_not_awaited()
        assert list_daily_goals(db_engine) == []
        assert list_todos(db_engine, GUILD_ID, 1) == []

    def test_runs_once_per_local_day(self, db_engine):
        bot, _ = self._setup(db_engine)
        cog = PeriodicTasks(bot)

        assert run_async(cog.run_rollover(now=T0)) is not None
        assert run_async(cog.run_rollover(now=T0 + timedelta(minutes=1))) is None
        assert run_async(cog.run_rollover(now=T0 + timedelta(days=1))) is not None

    def test_reset_happens_even_if_kick_fails(self, db_engine):
        bot, members = self._setup(db_engine)
        members[1].kick = AsyncMock(side_effect=RuntimeError("gateway hiccup"))

        result = run_async(PeriodicTasks(bot).run_rollover(now=T0))

        assert result["kicked"] == 0
        assert result["goals_deleted"] == 2


    def test_failed_reset_releases_the_day(self, db_engine, monkeypatch):
        bot, _ = self._setup(db_engine)
        cog = PeriodicTasks(bot)

        def broken_reset(engine):
            raise RuntimeError("database went away")

        monkeypatch.setattr("tether.bot.cogs.tasks.reset_day", broken_reset)
        with pytest.raises(RuntimeError):
            run_async(cog.run_rollover(now=T0))
        assert len(list_daily_goals(db_engine)) == 2

        monkeypatch.undo()
        result = run_async(cog.run_rollover(now=T0 + timedelta(minutes=5)))
        assert result is not None
        assert result["goals_deleted"] == 2

    def test_collect_failure_still_resets(self, db_engine, monkeypatch):
        bot, members = self._setup(db_engine)

        def broken_collect(engine, now=None):
            raise RuntimeError("database went away")

        monkeypatch.setattr("tether.bot.cogs.tasks.collect_daily_goals", broken_collect)
        result = run_async(PeriodicTasks(bot).run_rollover(now=T0))

        assert result == {"short": 0, "kicked": 0, "goals_deleted": 2, "todos_deleted": 1}
        members[1].kick.assert_not_awaited()


class TestRolloverSchedule:

    def test_retry_slots_follow_rollover_time(self):
        at = time(0, 0, tzinfo=ZoneInfo("Asia/Kathmandu"))
        slots = rollover_schedule(at)
        assert [(t.hour, t.minute) for t in slots] == [(0, 0), (0, 5), (0, 15), (0, 30)]
        assert all(t.tzinfo is at.tzinfo for t in slots)

    def test_retry_after_midnight_belongs_to_previous_day(self):
        at = time(23, 50, tzinfo=UTC)
        assert rollover_day(datetime(2026, 1, 15, 23, 50, tzinfo=UTC), at) == date(2026, 1, 15)
        assert rollover_day(datetime(2026, 1, 16, 0, 20, tzinfo=UTC), at) == date(2026, 1, 15)
        assert rollover_day(datetime(2026, 1, 16, 23, 50, tzinfo=UTC), at) == date(2026, 1, 16)

    def test_local_date_uses_rollover_timezone(self):
        at = time(0, 0, tzinfo=ZoneInfo("Asia/Kathmandu"))
        # 18:30 UTC is 00:15 the next day in Kathmandu (+05:45)
        assert rollover_day(datetime(2026, 1, 15, 18, 30, tzinfo=UTC), at) == date(2026, 1, 16)


class TestCommands:
    """Hybrid command callbacks invoked directly."""

    def test_settarget_outside_voice(self, db_engine):
        guild = make_guild()
        author = make_member(guild)
        author.voice = None
        ctx = _ctx(guild, author)
        cog = Goals(make_bot(db_engine, [guild]))

        run_async(cog.settarget.callback(cog, ctx, 30.5))

        target = get_target(db_engine, GUILD_ID, USER_ID)
        assert target.target_seconds == 1830
        assert "Join a VC" in ctx.send.await_args.args[0]

    def test_settarget_in_voice_starts_clock(self, db_engine):
        guild = make_guild()
        author = make_member(guild)
        author.voice = IN_VOICE
        ctx = _ctx(guild, author)
        cog = Goals(make_bot(db_engine, [guild]))

        run_async(cog.settarget.callback(cog, ctx, 10))

        assert "already in voice" in ctx.send.await_args.args[0]

    def test_settarget_rejects_non_positive(self, db_engine):
        guild = make_guild()
        ctx = _ctx(guild, make_member(guild))
        cog = Goals(make_bot(db_engine, [guild]))

        run_async(cog.settarget.callback(cog, ctx, 0))

        assert get_target(db_engine, GUILD_ID, USER_ID) is None
        assert "positive" in ctx.send.await_args.args[0]

    def test_settarget_rejects_unstorable_length(self, db_engine):
        guild = make_guild()
        author = make_member(guild)
        author.voice = None
        ctx = _ctx(guild, author)
        cog = Goals(make_bot(db_engine, [guild]))

        run_async(cog.settarget.callback(cog, ctx, 1e300))

        assert get_target(db_engine, GUILD_ID, USER_ID) is None
        assert "too long" in ctx.send.await_args.args[0]

    def test_setgoal(self, db_engine):
        guild = make_guild()
        author = make_member(guild)
        author.voice = None
        ctx = _ctx(guild, author)
        cog = Goals(make_bot(db_engine, [guild]))

        run_async(cog.setgoal.callback(cog, ctx, 2.5))

        assert get_daily_goal(db_engine, GUILD_ID, USER_ID).goal_hours == 2.5

    def test_commands_need_a_guild(self, db_engine):
        author = make_member(make_guild())
        ctx = _ctx(None, author)
        cog = Goals(make_bot(db_engine))

        run_async(cog.setgoal.callback(cog, ctx, 2))

        assert "only in servers" in ctx.send.await_args.args[0]
        assert list_daily_goals(db_engine) == []

    def test_addtodo_reports_id(self, db_engine):
        guild = make_guild()
        ctx = _ctx(guild, make_member(guild))
        cog = Todos(make_bot(db_engine, [guild]))

        run_async(cog.addtodo.callback(cog, ctx, task="flashcards"))

        item = list_todos(db_engine, GUILD_ID, USER_ID)[0]
        assert f"#{item.id}" in ctx.send.await_args.args[0]

    def test_donetodo_unknown_id(self, db_engine):
        guild = make_guild()
        ctx = _ctx(guild, make_member(guild))
        cog = Todos(make_bot(db_engine, [guild]))

        run_async(cog.donetodo.callback(cog, ctx, 999))

        assert "No task 999" in ctx.send.await_args.args[0]
