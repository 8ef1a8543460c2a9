"""Pydantic models for lessons and API responses."""

from facilitator.schemas.lesson import Lesson, LessonCatalog, Stage
from facilitator.schemas.api import (
    ActiveSessionResponse,
    LeaderboardEntry,
    LessonSummary,
    ParticipantSummary,
)

__all__ = [
    "Lesson",
    "LessonCatalog",
    "Stage",
    "ActiveSessionResponse",
    "LeaderboardEntry",
    "LessonSummary",
    "ParticipantSummary",
]
