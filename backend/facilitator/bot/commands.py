"""Routes inbound chat messages to commands or to the running discussion."""

import asyncio
import logging

from facilitator.bot import embeds
from facilitator.bot.transport import InboundMessage
from facilitator.config import Settings
from facilitator.engine.registry import SessionExistsError
from facilitator.engine.session_engine import SessionEngine

logger = logging.getLogger(__name__)

CONFIRM_TOKEN = "confirm"


class CommandRouter:
    def __init__(self, settings: Settings, engine: SessionEngine):
        self.settings = settings
        self.engine = engine
        # (channel id, author id) -> future resolved by the author's "confirm"
        self._confirmations: dict[tuple[str, str], asyncio.Future] = {}

    @property
    def ledger(self):
        return self.engine.ledger

    def is_operator(self, message: InboundMessage) -> bool:
        return message.author_id == self.settings.TEACHER_ID

    async def dispatch(self, message: InboundMessage) -> None:
        if message.is_bot:
            return
        content = message.content.strip()

        if self._consume_confirmation(message, content):
            return

        if content == "!help":
            await message.reply(embed=embeds.help_card())
            return
        if content == "!leaderboard":
            await message.reply(embed=embeds.leaderboard_card(
                self.ledger.top(self.settings.LEADERBOARD_SIZE)
            ))
            return

        if self.is_operator(message) and await self._operator_command(message, content):
            return

        if message.channel.id in self.engine.registry:
            await self.engine.handle_message(
                message.channel, message.author_id, message.author_name, message.content,
            )

    # ── Operator commands ────────────────────────────────────────────────────

    async def _operator_command(self, message: InboundMessage, content: str) -> bool:
        command, _, rest = content.partition(" ")
        if command == "!start-discussion":
            args = rest.split()
            team = args[0] if args else "Default"
            lesson_id = args[1] if len(args) > 1 else "default"
            await self._start(message, team, lesson_id)
        elif content == "!list-lessons":
            lessons = await self.engine.lessons.list_lessons()
            await message.reply(embed=embeds.lessons_card(lessons))
        elif content == "!next-question":
            if message.channel.id not in self.engine.registry:
                await message.reply("There is no active discussion in this channel.")
            else:
                await message.reply("⏩ Moving to the next question...")
                await self.engine.manual_advance(message.channel)
        elif content == "!reset-xp":
            await self._reset_xp(message)
        else:
            return False
        return True

    async def _start(self, message: InboundMessage, team: str, lesson_id: str) -> None:
        try:
            await self.engine.start(message.channel, team, lesson_id)
        except SessionExistsError:
            await message.reply("A discussion is already running in this channel.")

    async def _reset_xp(self, message: InboundMessage) -> None:
        timeout = self.settings.RESET_CONFIRM_SECONDS
        await message.reply(
            "Are you sure you want to reset all student XP? "
            f"Reply with `{CONFIRM_TOKEN}` within {timeout:g} seconds to proceed."
        )
        key = (message.channel.id, message.author_id)
        waiter = asyncio.get_running_loop().create_future()
        self._confirmations[key] = waiter
        try:
            await asyncio.wait_for(waiter, timeout)
        except asyncio.TimeoutError:
            logger.info("XP reset by %s not confirmed", message.author_id)
            await message.reply("XP reset cancelled.")
            return
        finally:
            if self._confirmations.get(key) is waiter:
                del self._confirmations[key]

        await self.ledger.reset()
        await message.reply("All student XP has been reset.")

    def _consume_confirmation(self, message: InboundMessage, content: str) -> bool:
        if content.lower() != CONFIRM_TOKEN:
            return False
        waiter = self._confirmations.get((message.channel.id, message.author_id))
        if waiter is None or waiter.done():
            return False
        waiter.set_result(True)
        return True
