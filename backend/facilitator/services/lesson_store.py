"""Lesson provider — reads lesson definitions from lessons.json."""

import json
import logging
from pathlib import Path

import aiofiles
from pydantic import ValidationError

from facilitator.schemas.lesson import Lesson, LessonCatalog

logger = logging.getLogger(__name__)


DEFAULT_CATALOG = LessonCatalog(
    lessons=[
        Lesson(
            id="default",
            title="Default Lesson",
            description="This is a placeholder lesson.",
            learning_objectives=["Understand place value", "Practice decimal operations"],
            stages=[
                {
                    "question": "What patterns do you notice in these decimal multiplication problems?",
                    "expectedInsights": [
                        "The decimal point moves",
                        "Multiplying by 0.1 makes the number smaller",
                    ],
                    "followupQuestions": [
                        "Why does that happen?",
                        "Can you explain why multiplying by 0.1 is the same as dividing by 10?",
                    ],
                }
            ],
            key_takeaways=[
                "Multiplying by 0.1 is equivalent to dividing by 10",
                "Decimal placement follows patterns",
            ],
        )
    ]
)


class LessonStore:
    """Loads the catalog from disk on every lookup so edits apply without a restart."""

    def __init__(self, path: str | Path, default_lesson_id: str = "default"):
        self.path = Path(path)
        self.default_lesson_id = default_lesson_id

    async def load(self) -> LessonCatalog:
        try:
            async with aiofiles.open(self.path, encoding="utf-8") as f:
                catalog = LessonCatalog.model_validate(json.loads(await f.read()))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError, ValidationError) as e:
            logger.error("Error loading lesson file %s: %s", self.path, e)
            return DEFAULT_CATALOG
        if not catalog.lessons:
            logger.warning("Lesson file %s has no lessons, using the default catalog", self.path)
            return DEFAULT_CATALOG
        return catalog

    async def list_lessons(self) -> list[Lesson]:
        return (await self.load()).lessons

    async def resolve(self, lesson_id: str) -> Lesson:
        """Lesson with ``lesson_id``, falling back to the designated default lesson."""
        lessons = await self.list_lessons()
        for lesson in lessons:
            if lesson.id == lesson_id:
                return lesson
        logger.warning("Unknown lesson %r, falling back to %r", lesson_id, self.default_lesson_id)
        for lesson in lessons:
            if lesson.id == self.default_lesson_id:
                return lesson
        return lessons[0]
