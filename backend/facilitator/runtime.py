"""Wires the registry, scheduler, ledger and engine together for one process."""

import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Request

from facilitator.agents.facilitator import DiscussionFacilitator
from facilitator.bot.commands import CommandRouter
from facilitator.bot.discord_client import FacilitatorClient
from facilitator.config import Settings
from facilitator.engine.registry import SessionRegistry
from facilitator.engine.scheduler import StageScheduler
from facilitator.engine.session_engine import SessionEngine
from facilitator.services.insight_oracle import InsightOracle
from facilitator.services.ledger import ExperienceLedger
from facilitator.services.lesson_store import LessonStore

logger = logging.getLogger(__name__)


@dataclass
class Runtime:
    settings: Settings
    registry: SessionRegistry
    scheduler: StageScheduler
    ledger: ExperienceLedger
    lessons: LessonStore
    engine: SessionEngine
    router: CommandRouter
    client: Optional[FacilitatorClient] = None

    async def shutdown(self) -> None:
        await self.scheduler.shutdown()
        await self.ledger.flush()
        if self.client is not None and not self.client.is_closed():
            await self.client.close()


def build_runtime(settings: Settings, with_discord: bool = True) -> Runtime:
    registry = SessionRegistry()
    scheduler = StageScheduler()
    ledger = ExperienceLedger(settings.XP_SAVE_PATH)
    lessons = LessonStore(settings.LESSON_FILE_PATH, settings.DEFAULT_LESSON_ID)
    client = FacilitatorClient() if with_discord else None

    engine = SessionEngine(
        settings=settings,
        registry=registry,
        scheduler=scheduler,
        ledger=ledger,
        lessons=lessons,
        oracle=InsightOracle(),
        facilitator=DiscussionFacilitator(),
        messenger=client,
    )
    router = CommandRouter(settings, engine)
    if client is not None:
        client.router = router

    return Runtime(
        settings=settings,
        registry=registry,
        scheduler=scheduler,
        ledger=ledger,
        lessons=lessons,
        engine=engine,
        router=router,
        client=client,
    )


def get_runtime(request: Request) -> Runtime:
    return request.app.state.runtime
