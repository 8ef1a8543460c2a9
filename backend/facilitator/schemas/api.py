"""Response schemas for the read-only HTTP surface."""

from typing import Optional
from pydantic import BaseModel


class LeaderboardEntry(BaseModel):
    rank: int
    id: str
    name: str
    points: int


class LessonSummary(BaseModel):
    id: str
    title: str
    stage_count: int
    learning_objectives: list[str] = []


class ParticipantSummary(BaseModel):
    id: str
    name: str
    messages: int
    insights: int


class ActiveSessionResponse(BaseModel):
    channel_id: str
    team: str
    lesson_id: str
    lesson_title: str
    state: str
    stage_number: int
    stage_count: int
    stage_coverage: list[int]
    participants: list[ParticipantSummary]
    started_at: str
    current_question: Optional[str] = None
