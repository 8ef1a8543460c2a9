"""Participation statistics and transcript for a concluded discussion."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from facilitator.engine.state import Session, TranscriptEntry
from facilitator.services.ledger import ExperienceLedger


@dataclass
class StudentReport:
    id: str
    name: str
    messages: int
    insights: int
    xp: int

    def to_dict(self) -> dict:
        return {"name": self.name, "messages": self.messages, "insights": self.insights, "xp": self.xp}


@dataclass
class ParticipationReport:
    team: str
    lesson_id: str
    lesson_title: str
    duration_minutes: int
    participant_count: int
    message_count: int
    insights_covered: int
    insights_expected: int
    coverage_percent: int
    students: list[StudentReport] = field(default_factory=list)
    top_contributors: list[StudentReport] = field(default_factory=list)
    transcript: str = ""


def format_transcript(entries: list[TranscriptEntry]) -> str:
    return "\n\n".join(
        f"[{entry.timestamp.astimezone().strftime('%H:%M:%S')}] {entry.speaker}: {entry.content}"
        for entry in entries
    )


def chunk_transcript(text: str, size: int = 1900) -> list[str]:
    """Split ``text`` into contiguous ``size``-character chunks (last may be shorter)."""
    if size <= 0:
        raise ValueError("chunk size must be positive")
    return [text[i:i + size] for i in range(0, len(text), size)]


def rank_contributors(students: list[StudentReport], limit: int = 3) -> list[StudentReport]:
    """Most insights first, then most messages; ties keep first-seen order."""
    return sorted(students, key=lambda s: (-s.insights, -s.messages))[:limit]


def build_report(
    session: Session,
    ledger: ExperienceLedger,
    now: Optional[datetime] = None,
) -> ParticipationReport:
    now = now or datetime.now(timezone.utc)
    students = [
        StudentReport(
            id=pid,
            name=record.display_name,
            messages=record.message_count,
            insights=len(record.insights_covered),
            xp=ledger.points(pid),
        )
        for pid, record in session.participation.items()
    ]
    expected = session.lesson.total_expected_insights
    covered = session.insights_discovered
    percent = round(covered / expected * 100) if expected else 0

    return ParticipationReport(
        team=session.team_label,
        lesson_id=session.lesson_id,
        lesson_title=session.lesson.title,
        duration_minutes=round((now - session.started_at).total_seconds() / 60),
        participant_count=len(students),
        message_count=session.total_messages,
        insights_covered=covered,
        insights_expected=expected,
        coverage_percent=percent,
        students=students,
        top_contributors=rank_contributors(students),
        transcript=format_transcript(session.transcript),
    )
