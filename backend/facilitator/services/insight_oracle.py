"""Insight oracle — asks the model which expected insights a message demonstrates.

The model is asked for a bare JSON array of indices but answers vary: fenced
blocks, objects, prose with numbers in it. ``parse_insight_indices`` turns any
of these into a clean list of valid indices so the engine never sees the raw
response.
"""

import json
import logging
import re
from typing import Any, Awaitable, Callable

from pydantic import BaseModel, ValidationError, field_validator

from facilitator.agents.prompts import INSIGHT_DETECTOR_SYSTEM
from facilitator.services.ai_client import chat

logger = logging.getLogger(__name__)

ChatFn = Callable[..., Awaitable[str]]

_FENCE_RE = re.compile(r"```(?:json)?", re.IGNORECASE)
_INT_RE = re.compile(r"\d+")


class InsightVerdict(BaseModel):
    indices: list[int]

    @field_validator("indices", mode="before")
    @classmethod
    def _accept_numeric_strings(cls, value: Any) -> Any:
        if isinstance(value, list):
            return [int(v) if isinstance(v, str) and v.strip().isdigit() else v for v in value]
        return value


def _strip_fences(raw: str) -> str:
    return _FENCE_RE.sub("", raw).strip()


def _structured(text: str) -> list[int] | None:
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        return None
    if isinstance(data, dict):
        data = data.get("indices", data.get("insights"))
    try:
        return InsightVerdict(indices=data).indices
    except ValidationError:
        return None


def _clean(indices: list[int], count: int) -> list[int]:
    seen: list[int] = []
    for i in indices:
        if 0 <= i < count and i not in seen:
            seen.append(i)
    return seen


def parse_insight_indices(raw: str | None, count: int) -> list[int]:
    """Recover valid insight indices (``0 <= i < count``) from a model reply."""
    if not raw or count <= 0:
        return []
    text = _strip_fences(raw)
    parsed = _structured(text)
    if parsed is None:
        logger.debug("Insight reply is not structured, scanning for numbers: %r", raw[:200])
        parsed = [int(m) for m in _INT_RE.findall(text)]
    return _clean(parsed, count)


class InsightOracle:
    def __init__(self, chat_fn: ChatFn = chat):
        self._chat = chat_fn

    async def detect(self, message: str, insights: list[str]) -> list[int]:
        if not insights:
            return []
        try:
            raw = await self._chat(
                system=INSIGHT_DETECTOR_SYSTEM.format(insights=json.dumps(insights)),
                messages=[{"role": "user", "content": message}],
                max_tokens=50,
                temperature=0.0,
            )
        except Exception as e:
            logger.warning("Insight detection failed, treating as no insights: %s", e)
            return []
        return parse_insight_indices(raw, len(insights))
