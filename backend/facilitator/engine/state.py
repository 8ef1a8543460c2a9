"""Live state of one discussion running in one channel."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from facilitator.schemas.lesson import Lesson, Stage


class SessionState(str, Enum):
    IDLE = "idle"                      # introduction sent, first question pending
    STAGE_PROMPTED = "stage_prompted"  # question sent, collecting contributions
    STAGE_COMPLETE = "stage_complete"  # covered or timed out, summary pending
    CONCLUDED = "concluded"


class SpeakerRole(str, Enum):
    STUDENT = "student"
    FACILITATOR = "facilitator"


# (stage index, insight index within that stage)
InsightKey = tuple[int, int]


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class TranscriptEntry:
    speaker_role: SpeakerRole
    content: str
    speaker_name: Optional[str] = None
    timestamp: datetime = field(default_factory=_now)

    @property
    def speaker(self) -> str:
        if self.speaker_role is SpeakerRole.STUDENT:
            return self.speaker_name or "Student"
        return "Facilitator"


@dataclass
class ParticipantRecord:
    display_name: str
    message_count: int = 0
    insights_covered: set[InsightKey] = field(default_factory=set)


@dataclass(eq=False)
class Session:
    channel_id: str
    team_label: str
    lesson: Lesson
    started_at: datetime = field(default_factory=_now)
    stage_index: int = 0
    state: SessionState = SessionState.IDLE
    participation: dict[str, ParticipantRecord] = field(default_factory=dict)
    stage_coverage: set[int] = field(default_factory=set)
    coverage_by_stage: dict[int, set[int]] = field(default_factory=dict)
    transcript: list[TranscriptEntry] = field(default_factory=list)
    # Set once the current stage's summary has been posted.
    stage_summarized: bool = False
    lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False)

    @property
    def lesson_id(self) -> str:
        return self.lesson.id

    @property
    def stage_count(self) -> int:
        return len(self.lesson.stages)

    @property
    def answered_stage(self) -> int:
        """Index of the stage currently being discussed, -1 before the first prompt."""
        return self.stage_index - 1

    @property
    def current_stage(self) -> Optional[Stage]:
        idx = self.answered_stage
        if 0 <= idx < self.stage_count:
            return self.lesson.stages[idx]
        return None

    def participant(self, participant_id: str, display_name: str) -> ParticipantRecord:
        record = self.participation.get(participant_id)
        if record is None:
            record = ParticipantRecord(display_name=display_name)
            self.participation[participant_id] = record
        else:
            record.display_name = display_name
        return record

    def record_turn(
        self,
        role: SpeakerRole,
        content: str,
        speaker_name: Optional[str] = None,
    ) -> TranscriptEntry:
        entry = TranscriptEntry(speaker_role=role, content=content, speaker_name=speaker_name)
        self.transcript.append(entry)
        return entry

    def cover(self, indices: list[int]) -> None:
        """Union newly demonstrated insights into the current stage's coverage."""
        stage = self.current_stage
        if stage is None:
            return
        valid = {i for i in indices if 0 <= i < len(stage.expected_insights)}
        self.stage_coverage |= valid
        self.coverage_by_stage.setdefault(self.answered_stage, set()).update(valid)

    def enter_next_stage(self) -> None:
        self.stage_index += 1
        self.stage_coverage = set()
        self.stage_summarized = False
        self.state = SessionState.STAGE_PROMPTED

    @property
    def stage_fully_covered(self) -> bool:
        stage = self.current_stage
        if stage is None:
            return False
        return self.stage_coverage >= set(range(len(stage.expected_insights)))

    def missed_insights(self) -> list[str]:
        stage = self.current_stage
        if stage is None:
            return []
        return [
            text for i, text in enumerate(stage.expected_insights)
            if i not in self.stage_coverage
        ]

    def covered_insights(self) -> list[str]:
        stage = self.current_stage
        if stage is None:
            return []
        return [
            text for i, text in enumerate(stage.expected_insights)
            if i in self.stage_coverage
        ]

    @property
    def total_messages(self) -> int:
        return sum(p.message_count for p in self.participation.values())

    @property
    def insights_discovered(self) -> int:
        return sum(len(covered) for covered in self.coverage_by_stage.values())
