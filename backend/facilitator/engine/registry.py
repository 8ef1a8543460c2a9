"""In-memory registry of running discussions, one per channel."""

import logging
from typing import Optional

from facilitator.engine.state import Session
from facilitator.schemas.lesson import Lesson

logger = logging.getLogger(__name__)


class SessionExistsError(Exception):
    """Raised when a discussion is started in a channel that already has one."""

    def __init__(self, channel_id: str):
        super().__init__(f"A discussion is already running in channel {channel_id}")
        self.channel_id = channel_id


class SessionRegistry:
    def __init__(self):
        self._sessions: dict[str, Session] = {}

    def create(self, channel_id: str, team_label: str, lesson: Lesson) -> Session:
        if channel_id in self._sessions:
            raise SessionExistsError(channel_id)
        session = Session(channel_id=channel_id, team_label=team_label, lesson=lesson)
        self._sessions[channel_id] = session
        logger.info(
            "Session created in channel %s (team=%s, lesson=%s)",
            channel_id, team_label, lesson.id,
        )
        return session

    def get(self, channel_id: str) -> Optional[Session]:
        return self._sessions.get(channel_id)

    def is_current(self, session: Session) -> bool:
        """True while ``session`` is still the one registered for its channel."""
        return self._sessions.get(session.channel_id) is session

    def remove(self, channel_id: str) -> Optional[Session]:
        session = self._sessions.pop(channel_id, None)
        if session is not None:
            logger.info("Session removed from channel %s", channel_id)
        return session

    def active(self) -> list[Session]:
        return list(self._sessions.values())

    def __contains__(self, channel_id: str) -> bool:
        return channel_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)
