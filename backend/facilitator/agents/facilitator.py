"""Facilitator voice — replies, stage summaries, conclusions and teacher reports.

Every method returns display text. A failed generation call is logged and
replaced with ``APOLOGY`` so the discussion keeps going.
"""

import json
import logging
from typing import Awaitable, Callable

from facilitator.agents.prompts import (
    APOLOGY,
    CONCLUSION_SYSTEM,
    FACILITATOR_REPLY_SYSTEM,
    STAGE_SUMMARY_SYSTEM,
    TEACHER_REPORT_SYSTEM,
)
from facilitator.engine.report import ParticipationReport
from facilitator.engine.state import Session, SpeakerRole
from facilitator.schemas.lesson import Stage
from facilitator.services.ai_client import chat

logger = logging.getLogger(__name__)

ChatFn = Callable[..., Awaitable[str]]


def _participation_overview(session: Session) -> str:
    if not session.participation:
        return "Nobody has spoken yet."
    return "\n".join(
        f"- {p.display_name}: {p.message_count} messages, {len(p.insights_covered)} insights"
        for p in session.participation.values()
    )


def _student_lines(session: Session) -> str:
    return "\n".join(
        f"{e.speaker}: {e.content}"
        for e in session.transcript
        if e.speaker_role is SpeakerRole.STUDENT
    )


def _all_lines(session: Session) -> str:
    return "\n".join(f"{e.speaker}: {e.content}" for e in session.transcript)


class DiscussionFacilitator:
    def __init__(self, chat_fn: ChatFn = chat):
        self._chat = chat_fn

    async def _generate(self, what: str, system: str, max_tokens: int, temperature: float = 0.7) -> str:
        try:
            text = await self._chat(
                system=system,
                messages=[],
                max_tokens=max_tokens,
                temperature=temperature,
            )
        except Exception as e:
            logger.error("Generating %s failed: %s", what, e)
            return APOLOGY
        return text.strip() or APOLOGY

    async def reply_to_student(self, session: Session, stage: Stage, student: str, message: str) -> str:
        system = FACILITATOR_REPLY_SYSTEM.format(
            team=session.team_label,
            lesson_title=session.lesson.title,
            question=stage.prompt,
            insights=json.dumps(stage.expected_insights),
            followups=json.dumps(stage.followups),
            participation=_participation_overview(session),
            student=student,
            message=message,
        )
        return await self._generate("facilitator reply", system, max_tokens=300)

    async def summarize_stage(self, session: Session, stage: Stage) -> str:
        system = STAGE_SUMMARY_SYSTEM.format(
            team=session.team_label,
            question=stage.prompt,
            insights=json.dumps(stage.expected_insights),
            discussion=_student_lines(session) or "(no contributions)",
        )
        return await self._generate("stage summary", system, max_tokens=300)

    async def write_conclusion(self, session: Session) -> str:
        lesson = session.lesson
        system = CONCLUSION_SYSTEM.format(
            team=session.team_label,
            lesson_title=lesson.title,
            objectives=json.dumps(lesson.learning_objectives),
            takeaways=json.dumps(lesson.key_takeaways),
            discussion=_all_lines(session) or "(no contributions)",
        )
        return await self._generate("conclusion", system, max_tokens=500)

    async def write_teacher_report(self, report: ParticipationReport) -> str:
        system = TEACHER_REPORT_SYSTEM.format(
            lesson_title=report.lesson_title,
            team=report.team,
            duration=report.duration_minutes,
            participants=report.participant_count,
            messages=report.message_count,
            covered=report.insights_covered,
            expected=report.insights_expected,
            percent=report.coverage_percent,
            students=json.dumps([s.to_dict() for s in report.students], indent=2),
        )
        return await self._generate("teacher report", system, max_tokens=800, temperature=0.3)
