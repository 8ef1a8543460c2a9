"""Tests for chat command routing and operator permissions."""

import asyncio

import pytest

from facilitator.bot.transport import InboundMessage

from conftest import settle


def _msg(channel, content, author_id="teacher", author_name="Ms. T", is_bot=False):
    return InboundMessage(
        channel=channel, author_id=author_id, author_name=author_name,
        content=content, is_bot=is_bot,
    )


class TestPublicCommands:
    """Commands anyone may use."""

    @pytest.mark.asyncio
    async def test_help(self, router, channel):
        """Anyone can ask for the command list."""
        await router.dispatch(_msg(channel, "!help", author_id="p1"))
        assert channel.embed_titles() == ["📚 Math Helper Commands 📚"]

    @pytest.mark.asyncio
    async def test_leaderboard_empty_and_ranked(self, router, channel, engine):
        """The leaderboard shows a notice when empty, then ranks by XP."""
        await router.dispatch(_msg(channel, "!leaderboard", author_id="p1"))
        assert "No XP earned yet!" in channel.embeds[-1].description

        await engine.ledger.award("p1", "Ana", 10, "x")
        await engine.ledger.award("p2", "Ben", 12, "x")
        await router.dispatch(_msg(channel, "!leaderboard", author_id="p1"))
        assert channel.embeds[-1].description == "1. **Ben**: 12 XP\n2. **Ana**: 10 XP"

    @pytest.mark.asyncio
    async def test_bot_messages_are_ignored(self, router, channel):
        """Messages from bots never trigger anything."""
        await router.dispatch(_msg(channel, "!help", is_bot=True))
        assert channel.sent == []


class TestOperatorCommands:
    """Commands restricted to the configured teacher."""

    @pytest.mark.asyncio
    async def test_non_operator_cannot_start(self, router, channel, engine):
        """Only the teacher may start a discussion."""
        await router.dispatch(_msg(channel, "!start-discussion Red", author_id="p1"))
        assert engine.registry.get(channel.id) is None

    @pytest.mark.asyncio
    async def test_start_with_defaults(self, router, channel, engine):
        """Team and lesson default to Default/default."""
        await router.dispatch(_msg(channel, "!start-discussion"))
        session = engine.registry.get(channel.id)
        assert session.team_label == "Default"
        assert session.lesson_id == "default"

    @pytest.mark.asyncio
    async def test_start_twice_reports_running_discussion(self, router, channel):
        """A second start in the same channel is refused with a reply."""
        await router.dispatch(_msg(channel, "!start-discussion Red two-stage"))
        await router.dispatch(_msg(channel, "!start-discussion Blue"))
        assert channel.texts[-1] == "A discussion is already running in this channel."

    @pytest.mark.asyncio
    async def test_list_lessons(self, router, channel):
        """The lesson list shows every id and title."""
        await router.dispatch(_msg(channel, "!list-lessons"))
        card = channel.embeds[-1]
        assert card.title == "Available Lessons"
        assert "**two-stage**: Two Stage Lesson" in card.description

    @pytest.mark.asyncio
    async def test_next_question_without_discussion(self, router, channel):
        """Advancing with no discussion gets an explanation."""
        await router.dispatch(_msg(channel, "!next-question"))
        assert channel.texts == ["There is no active discussion in this channel."]

    @pytest.mark.asyncio
    async def test_operator_commands_win_inside_active_channel(self, router, channel, engine, clock, oracle):
        """Teacher commands are not scored as student messages."""
        await router.dispatch(_msg(channel, "!start-discussion Red two-stage"))
        await clock.advance(5)

        await router.dispatch(_msg(channel, "!next-question"))

        session = engine.registry.get(channel.id)
        assert "teacher" not in session.participation
        assert oracle.calls == []
        assert "⏩ Moving to the next question..." in channel.texts
        assert "📝 Discussion Summary" in channel.embed_titles()

    @pytest.mark.asyncio
    async def test_student_messages_reach_the_discussion(self, router, channel, engine, clock):
        """Ordinary messages in an active channel are contributions."""
        await router.dispatch(_msg(channel, "!start-discussion Red"))
        await clock.advance(5)

        await router.dispatch(_msg(channel, "I think it moves", author_id="p1", author_name="Ana"))

        assert engine.ledger.points("p1") == 2
        assert engine.registry.get(channel.id).participation["p1"].message_count == 1


class TestResetXp:
    """Two-step ledger reset."""

    @pytest.mark.asyncio
    async def test_timeout_leaves_ledger_unchanged(self, router, channel, engine):
        """Without a confirmation nothing is reset."""
        await engine.ledger.award("p1", "Ana", 10, "x")

        await router.dispatch(_msg(channel, "!reset-xp"))

        assert channel.texts[-1] == "XP reset cancelled."
        assert engine.ledger.points("p1") == 10

    @pytest.mark.asyncio
    async def test_confirm_resets_ledger(self, router, channel, engine):
        """Replying confirm in time wipes the ledger."""
        await engine.ledger.award("p1", "Ana", 10, "x")

        pending = asyncio.create_task(router.dispatch(_msg(channel, "!reset-xp")))
        await settle()
        await router.dispatch(_msg(channel, "confirm"))
        await pending

        assert channel.texts[-1] == "All student XP has been reset."
        assert len(engine.ledger) == 0

    @pytest.mark.asyncio
    async def test_confirm_from_someone_else_is_not_accepted(self, router, channel, engine):
        """Only the teacher who asked can confirm."""
        await engine.ledger.award("p1", "Ana", 10, "x")

        pending = asyncio.create_task(router.dispatch(_msg(channel, "!reset-xp")))
        await settle()
        await router.dispatch(_msg(channel, "confirm", author_id="p1"))
        await pending

        assert channel.texts[-1] == "XP reset cancelled."
        assert engine.ledger.points("p1") == 10
