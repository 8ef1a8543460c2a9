"""Shared fixtures: a virtual clock, fake chat channels and a wired engine."""

import asyncio
import heapq
import json
import os
import sys
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from facilitator.agents.facilitator import DiscussionFacilitator
from facilitator.bot.commands import CommandRouter
from facilitator.config import Settings
from facilitator.engine.registry import SessionRegistry
from facilitator.engine.scheduler import StageScheduler
from facilitator.engine.session_engine import SessionEngine
from facilitator.services.ledger import ExperienceLedger
from facilitator.services.lesson_store import LessonStore


async def settle(rounds: int = 50) -> None:
    """Let every ready task run until the loop goes quiet."""
    for _ in range(rounds):
        await asyncio.sleep(0)


class VirtualClock:
    """Drop-in for asyncio.sleep that only moves when the test advances it."""

    def __init__(self):
        self.now = 0.0
        self._seq = 0
        self._waiters: list = []

    async def sleep(self, delay: float) -> None:
        future = asyncio.get_running_loop().create_future()
        self._seq += 1
        heapq.heappush(self._waiters, (self.now + delay, self._seq, future))
        await future

    async def advance(self, seconds: float) -> None:
        target = self.now + seconds
        await settle()
        while self._waiters and self._waiters[0][0] <= target:
            deadline, _, future = heapq.heappop(self._waiters)
            self.now = deadline
            if not future.done():
                future.set_result(None)
            await settle()
        self.now = target


class FakeChannel:
    def __init__(self, channel_id: str = "chan-1"):
        self.id = channel_id
        self.sent = []

    async def send(self, content=None, *, embed=None):
        self.sent.append((content, embed))

    @property
    def texts(self) -> list[str]:
        return [content for content, _ in self.sent if content is not None]

    @property
    def embeds(self):
        return [embed for _, embed in self.sent if embed is not None]

    def embed_titles(self) -> list[str]:
        return [embed.title for embed in self.embeds]


class FakeMessenger:
    def __init__(self, reachable: bool = True):
        self.inbox = FakeChannel("dm:teacher")
        self.reachable = reachable
        self.requested = []

    async def open_direct(self, user_id: str):
        self.requested.append(user_id)
        return self.inbox if self.reachable else None


class ScriptedOracle:
    """Returns preset insight indices keyed by message text."""

    def __init__(self, verdicts: dict | None = None):
        self.verdicts = verdicts or {}
        self.calls = []

    async def detect(self, message: str, insights: list[str]) -> list[int]:
        self.calls.append((message, list(insights)))
        return list(self.verdicts.get(message, []))


LESSONS = {
    "lessons": [
        {
            "id": "default",
            "title": "Default Lesson",
            "learningObjectives": ["Understand place value"],
            "discussionFlow": [
                {
                    "question": "What do you notice?",
                    "expectedInsights": ["A", "B"],
                    "followupQuestions": ["Why?"],
                }
            ],
            "keyTakeaways": ["Patterns matter"],
        },
        {
            "id": "two-stage",
            "title": "Two Stage Lesson",
            "learningObjectives": ["Compare fractions"],
            "discussionFlow": [
                {
                    "question": "First question?",
                    "expectedInsights": ["The decimal point moves to the left when multiplying by 0.1"],
                    "followupQuestions": [],
                },
                {
                    "question": "Second question?",
                    "expectedInsights": ["X", "Y"],
                    "followupQuestions": [],
                },
            ],
            "keyTakeaways": ["Fractions compare"],
        },
    ]
}


@pytest.fixture
def settings(tmp_path):
    lesson_file = tmp_path / "lessons.json"
    lesson_file.write_text(json.dumps(LESSONS), encoding="utf-8")
    return Settings(
        _env_file=None,
        TEACHER_ID="teacher",
        LESSON_FILE_PATH=str(lesson_file),
        XP_SAVE_PATH=str(tmp_path / "student_xp.json"),
        RESET_CONFIRM_SECONDS=0.05,
    )


@pytest.fixture
def clock():
    return VirtualClock()


@pytest.fixture
def channel():
    return FakeChannel()


@pytest.fixture
def messenger():
    return FakeMessenger()


@pytest.fixture
def oracle():
    return ScriptedOracle()


@pytest.fixture
def generation():
    return AsyncMock(return_value="Great thinking, keep going!")


@pytest_asyncio.fixture
async def engine(settings, clock, oracle, generation, messenger):
    ledger = ExperienceLedger(settings.XP_SAVE_PATH)
    scheduler = StageScheduler(sleep=clock.sleep)
    engine = SessionEngine(
        settings=settings,
        registry=SessionRegistry(),
        scheduler=scheduler,
        ledger=ledger,
        lessons=LessonStore(settings.LESSON_FILE_PATH, settings.DEFAULT_LESSON_ID),
        oracle=oracle,
        facilitator=DiscussionFacilitator(chat_fn=generation),
        messenger=messenger,
    )
    yield engine
    await scheduler.shutdown()
    await ledger.flush()


@pytest.fixture
def router(settings, engine):
    return CommandRouter(settings, engine)
