"""Platform-neutral view of the chat platform.

The engine and the command router only talk to these protocols; the Discord
client adapts discord.py objects to them.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol

from facilitator.bot.embeds import Embed


class Channel(Protocol):
    id: str

    async def send(self, content: Optional[str] = None, *, embed: Optional[Embed] = None) -> None:
        ...


class DirectMessenger(Protocol):
    async def open_direct(self, user_id: str) -> Optional[Channel]:
        """Channel for a private message to ``user_id``, or None if unreachable."""
        ...


@dataclass
class InboundMessage:
    channel: Channel
    author_id: str
    author_name: str
    content: str
    is_bot: bool = False

    async def reply(self, content: Optional[str] = None, *, embed: Optional[Embed] = None) -> None:
        await self.channel.send(content, embed=embed)
