"""Discord connection — adapts discord.py events to the command router."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional

import discord

from facilitator.bot.commands import CommandRouter
from facilitator.bot.embeds import Embed
from facilitator.bot.transport import InboundMessage

logger = logging.getLogger(__name__)


def render_embed(embed: Embed) -> discord.Embed:
    rendered = discord.Embed(
        title=embed.title,
        description=embed.description or None,
        color=embed.color,
        timestamp=datetime.now(timezone.utc) if embed.timestamp else None,
    )
    for field in embed.fields:
        rendered.add_field(name=field.name, value=field.value, inline=field.inline)
    if embed.footer:
        rendered.set_footer(text=embed.footer)
    return rendered


class DiscordChannel:
    """Wraps any discord.py messageable (text channel, DM) as a ``Channel``."""

    def __init__(self, target: discord.abc.Messageable, channel_id: str):
        self._target = target
        self.id = channel_id

    async def send(self, content: Optional[str] = None, *, embed: Optional[Embed] = None) -> None:
        await self._target.send(
            content=content,
            embed=render_embed(embed) if embed is not None else None,
        )


class FacilitatorClient(discord.Client):
    def __init__(self, router: Optional[CommandRouter] = None, intents: Optional[discord.Intents] = None):
        if intents is None:
            intents = discord.Intents.default()
            intents.guilds = True
            intents.guild_messages = True
            intents.message_content = True
            intents.members = True
        super().__init__(intents=intents)
        self.router = router
        self._channels: dict[int, DiscordChannel] = {}

    def channel_for(self, channel: discord.abc.Messageable) -> DiscordChannel:
        # Reuse one wrapper per channel so engine timers keep a stable handle.
        wrapped = self._channels.get(channel.id)
        if wrapped is None:
            wrapped = DiscordChannel(channel, str(channel.id))
            self._channels[channel.id] = wrapped
        return wrapped

    async def open_direct(self, user_id: str) -> Optional[DiscordChannel]:
        try:
            user = await self.fetch_user(int(user_id))
        except (ValueError, discord.HTTPException) as e:
            logger.warning("Could not resolve user %s: %s", user_id, e)
            return None
        return DiscordChannel(user, f"dm:{user_id}")

    async def on_ready(self) -> None:
        logger.info("Math Facilitator Bot is online as %s", self.user)

    async def on_message(self, message: discord.Message) -> None:
        if self.router is None:
            return
        await self.router.dispatch(InboundMessage(
            channel=self.channel_for(message.channel),
            author_id=str(message.author.id),
            author_name=message.author.name,
            content=message.content,
            is_bot=message.author.bot,
        ))
