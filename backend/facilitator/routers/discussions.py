"""Discussions router — read-only views of the leaderboard, lessons and live sessions."""

from fastapi import APIRouter, Depends, Query

from facilitator.runtime import Runtime, get_runtime
from facilitator.schemas.api import (
    ActiveSessionResponse,
    LeaderboardEntry,
    LessonSummary,
    ParticipantSummary,
)

router = APIRouter(prefix="/api", tags=["discussions"])


@router.get("/leaderboard", response_model=list[LeaderboardEntry])
def leaderboard(
    limit: int = Query(10, ge=1, le=100),
    runtime: Runtime = Depends(get_runtime),
):
    return [
        LeaderboardEntry(rank=i + 1, id=entry.id, name=entry.name, points=entry.points)
        for i, entry in enumerate(runtime.ledger.top(limit))
    ]


@router.get("/lessons", response_model=list[LessonSummary])
async def list_lessons(runtime: Runtime = Depends(get_runtime)):
    lessons = await runtime.lessons.list_lessons()
    return [
        LessonSummary(
            id=lesson.id,
            title=lesson.title,
            stage_count=len(lesson.stages),
            learning_objectives=lesson.learning_objectives,
        )
        for lesson in lessons
    ]


@router.get("/sessions", response_model=list[ActiveSessionResponse])
def active_sessions(runtime: Runtime = Depends(get_runtime)):
    """Discussions currently running, one per channel."""
    results = []
    for session in runtime.registry.active():
        stage = session.current_stage
        results.append(ActiveSessionResponse(
            channel_id=session.channel_id,
            team=session.team_label,
            lesson_id=session.lesson_id,
            lesson_title=session.lesson.title,
            state=session.state.value,
            stage_number=session.stage_index,
            stage_count=session.stage_count,
            stage_coverage=sorted(session.stage_coverage),
            participants=[
                ParticipantSummary(
                    id=pid,
                    name=record.display_name,
                    messages=record.message_count,
                    insights=len(record.insights_covered),
                )
                for pid, record in session.participation.items()
            ],
            started_at=session.started_at.isoformat(),
            current_question=stage.prompt if stage else None,
        ))
    return results
