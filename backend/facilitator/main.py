"""Math Facilitator — FastAPI host for the Discord discussion bot."""

import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from facilitator.config import settings
from facilitator.routers import discussions
from facilitator.runtime import build_runtime
from facilitator.services.ai_client import ai_health_check, ai_provider_name

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    runtime = build_runtime(settings, with_discord=bool(settings.DISCORD_TOKEN))
    await runtime.ledger.load()
    app.state.runtime = runtime

    provider = ai_provider_name()
    if provider == "none":
        logger.warning("AI not configured: set DEEPSEEK_API_KEY in backend/.env and restart")
    else:
        logger.info("AI provider: %s", provider)

    bot_task = None
    if runtime.client is not None:
        bot_task = asyncio.create_task(runtime.client.start(settings.DISCORD_TOKEN))
    else:
        logger.warning("DISCORD_TOKEN not set, running the HTTP API only")

    try:
        yield
    finally:
        await runtime.shutdown()
        if bot_task is not None:
            bot_task.cancel()
            await asyncio.gather(bot_task, return_exceptions=True)


app = FastAPI(
    title="Math Facilitator",
    description="Guided small-group math discussions on Discord.",
    version="1.0.0",
    lifespan=lifespan,
)

app.include_router(discussions.router)


@app.get("/")
def root():
    return {
        "name": "Math Facilitator",
        "version": "1.0.0",
        "docs": "/docs",
        "ai_provider": ai_provider_name(),
    }


@app.get("/health")
def health():
    return {"status": "ok", "ai_provider": ai_provider_name()}


@app.get("/api/health/ai")
async def health_ai():
    """Live connectivity test for the configured AI provider."""
    return await ai_health_check()
