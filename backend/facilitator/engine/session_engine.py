"""
Session engine — drives one discussion per channel through its stages.

    IDLE ──intro delay──▶ STAGE_PROMPTED ──full coverage / deadline──▶ STAGE_COMPLETE
                               ▲                                            │
                               └────────────── summary, next stage ◀────────┘
                                                    (no stages left) ──▶ CONCLUDED

Every entry point takes the session lock, so messages and timer callbacks for
one channel are handled strictly one at a time. Timer callbacks carry the
stage they were scheduled for and bail out if the session has moved on.
"""

import logging
from typing import Optional

from facilitator.agents.facilitator import DiscussionFacilitator
from facilitator.bot import embeds
from facilitator.bot.transport import Channel, DirectMessenger
from facilitator.config import Settings
from facilitator.engine.registry import SessionExistsError, SessionRegistry
from facilitator.engine.report import ParticipationReport, build_report, chunk_transcript
from facilitator.engine.scheduler import StageScheduler
from facilitator.engine.state import Session, SessionState, SpeakerRole
from facilitator.services.insight_oracle import InsightOracle
from facilitator.services.lesson_store import LessonStore
from facilitator.services.ledger import ExperienceLedger

logger = logging.getLogger(__name__)


class SessionEngine:
    def __init__(
        self,
        settings: Settings,
        registry: SessionRegistry,
        scheduler: StageScheduler,
        ledger: ExperienceLedger,
        lessons: LessonStore,
        oracle: InsightOracle,
        facilitator: DiscussionFacilitator,
        messenger: Optional[DirectMessenger] = None,
    ):
        self.settings = settings
        self.registry = registry
        self.scheduler = scheduler
        self.ledger = ledger
        self.lessons = lessons
        self.oracle = oracle
        self.facilitator = facilitator
        self.messenger = messenger

    # ─────────────────────────────────────────────────────────────────────────
    # Commands
    # ─────────────────────────────────────────────────────────────────────────

    async def start(self, channel: Channel, team_label: str, lesson_id: str) -> Session:
        """Open a discussion; raises SessionExistsError if the channel has one."""
        if channel.id in self.registry:
            raise SessionExistsError(channel.id)
        lesson = await self.lessons.resolve(lesson_id)
        session = self.registry.create(channel.id, team_label, lesson)

        async with session.lock:
            await channel.send(embed=embeds.intro_card(
                team_label, lesson,
                self.settings.INSIGHT_POINTS, self.settings.PARTICIPATION_POINTS,
            ))
            self.scheduler.defer(
                channel.id,
                self.settings.INTRO_DELAY_SECONDS,
                lambda: self._resume(channel, session, -1, self._advance_locked),
            )
        return session

    async def advance(self, channel: Channel) -> None:
        session = self.registry.get(channel.id)
        if session is None:
            return
        async with session.lock:
            if self.registry.is_current(session):
                await self._advance_locked(channel, session)

    async def manual_advance(self, channel: Channel) -> bool:
        """Operator override: finish the current stage now. False if no session.

        If the stage summary is already out, skip straight to the next question.
        """
        session = self.registry.get(channel.id)
        if session is None:
            return False
        async with session.lock:
            if not self.registry.is_current(session):
                return False
            self.scheduler.cancel_all(channel.id)
            logger.info("Manual advance in channel %s at stage %d", channel.id, session.stage_index)
            if session.state is SessionState.IDLE or session.stage_summarized:
                await self._advance_locked(channel, session)
            else:
                session.state = SessionState.STAGE_COMPLETE
                await self._complete_stage_locked(channel, session)
        return True

    # ─────────────────────────────────────────────────────────────────────────
    # Participant messages
    # ─────────────────────────────────────────────────────────────────────────

    async def handle_message(
        self,
        channel: Channel,
        participant_id: str,
        display_name: str,
        content: str,
    ) -> None:
        session = self.registry.get(channel.id)
        if session is None or session.state is not SessionState.STAGE_PROMPTED:
            return

        async with session.lock:
            # The stage may have closed while this message waited for the lock.
            if not self.registry.is_current(session) or session.state is not SessionState.STAGE_PROMPTED:
                return
            stage = session.current_stage
            stage_no = session.answered_stage

            record = session.participant(participant_id, display_name)
            record.message_count += 1
            session.record_turn(SpeakerRole.STUDENT, content, display_name)

            detected = await self.oracle.detect(content, stage.expected_insights)
            new_insights = [i for i in detected if (stage_no, i) not in record.insights_covered]

            if new_insights:
                points = self.settings.INSIGHT_POINTS * len(new_insights)
                descriptions = [stage.expected_insights[i] for i in new_insights]
                total = await self.ledger.award(
                    participant_id, display_name, points,
                    f"Shared insight(s): {', '.join(descriptions)} during \"{session.lesson.title}\"",
                )
                record.insights_covered.update((stage_no, i) for i in new_insights)
                session.cover(new_insights)
                logger.info(
                    "%s covered insight(s) %s in channel %s (stage %d)",
                    display_name, new_insights, channel.id, stage_no,
                )
                await channel.send(embed=embeds.xp_reward_card(display_name, points, descriptions, total))
            else:
                await self.ledger.award(
                    participant_id, display_name,
                    self.settings.PARTICIPATION_POINTS, "Active participation",
                )

            reply = await self.facilitator.reply_to_student(session, stage, display_name, content)
            await channel.send(reply)
            session.record_turn(SpeakerRole.FACILITATOR, reply)

            if session.stage_fully_covered:
                self.scheduler.cancel(channel.id)
                session.state = SessionState.STAGE_COMPLETE
                logger.info("Stage %d fully covered in channel %s", stage_no, channel.id)
                self.scheduler.defer(
                    channel.id,
                    self.settings.COVERAGE_ADVANCE_DELAY_SECONDS,
                    lambda: self._resume(channel, session, stage_no, self._complete_stage_locked),
                )
            elif not self.scheduler.is_armed(channel.id):
                self._arm_deadline(channel, session)

    # ─────────────────────────────────────────────────────────────────────────
    # Transitions (caller holds session.lock)
    # ─────────────────────────────────────────────────────────────────────────

    async def _advance_locked(self, channel: Channel, session: Session) -> None:
        self.scheduler.cancel(channel.id)
        if session.stage_index >= session.stage_count:
            await self._conclude_locked(channel, session)
            return

        stage = session.lesson.stages[session.stage_index]
        await channel.send(f"**Question {session.stage_index + 1}:** {stage.prompt}")
        session.enter_next_stage()
        self._arm_deadline(channel, session)
        logger.info(
            "Channel %s entered stage %d/%d", channel.id, session.stage_index, session.stage_count,
        )

    def _arm_deadline(self, channel: Channel, session: Session) -> None:
        stage_no = session.answered_stage
        self.scheduler.arm(
            channel.id,
            self.settings.STAGE_DEADLINE_SECONDS,
            lambda: self._resume(channel, session, stage_no, self._deadline_locked),
        )

    async def _deadline_locked(self, channel: Channel, session: Session) -> None:
        if session.state is not SessionState.STAGE_PROMPTED:
            return
        missed = session.missed_insights()
        logger.info(
            "Stage %d deadline in channel %s, %d insight(s) missed",
            session.answered_stage, channel.id, len(missed),
        )
        session.state = SessionState.STAGE_COMPLETE
        await channel.send(embed=embeds.hint_card(missed))
        stage_no = session.answered_stage
        self.scheduler.defer(
            channel.id,
            self.settings.HINT_ADVANCE_DELAY_SECONDS,
            lambda: self._resume(channel, session, stage_no, self._complete_stage_locked),
        )

    async def _complete_stage_locked(self, channel: Channel, session: Session) -> None:
        stage = session.current_stage
        if stage is not None:
            summary = await self.facilitator.summarize_stage(session, stage)
            await channel.send(embed=embeds.stage_summary_card(summary, session.covered_insights()))
        session.stage_summarized = True
        stage_no = session.answered_stage
        self.scheduler.defer(
            channel.id,
            self.settings.STAGE_TRANSITION_DELAY_SECONDS,
            lambda: self._resume(channel, session, stage_no, self._advance_locked),
        )

    async def _resume(self, channel: Channel, session: Session, stage_no: int, step) -> None:
        """Run a timer-driven step if the session is still where it was scheduled."""
        if not self.registry.is_current(session):
            return
        async with session.lock:
            if not self.registry.is_current(session) or session.answered_stage != stage_no:
                logger.debug("Dropping stale timer for channel %s stage %d", channel.id, stage_no)
                return
            await step(channel, session)

    # ─────────────────────────────────────────────────────────────────────────
    # Conclusion
    # ─────────────────────────────────────────────────────────────────────────

    async def _conclude_locked(self, channel: Channel, session: Session) -> None:
        session.state = SessionState.CONCLUDED
        self.registry.remove(channel.id)
        self.scheduler.cancel_all(channel.id)
        logger.info("Concluding discussion in channel %s", channel.id)

        report = build_report(session, self.ledger)
        conclusion = await self.facilitator.write_conclusion(session)
        await channel.send(embed=embeds.conclusion_card(
            session.lesson,
            conclusion,
            insights_discovered=report.insights_covered,
            participants=report.participant_count,
            messages=report.message_count,
            top=report.top_contributors,
        ))
        await self.deliver_report(report)

    async def deliver_report(self, report: ParticipationReport) -> bool:
        if self.messenger is None:
            logger.warning("No messenger configured, teacher report for %s not sent", report.team)
            return False
        recipient = await self.messenger.open_direct(self.settings.TEACHER_ID)
        if recipient is None:
            logger.warning("Report recipient %s unreachable, skipping delivery", self.settings.TEACHER_ID)
            return False

        prose = await self.facilitator.write_teacher_report(report)
        await recipient.send(embed=embeds.teacher_report_card(report, prose))

        if len(report.transcript) > self.settings.TRANSCRIPT_INLINE_LIMIT:
            chunks = chunk_transcript(report.transcript, self.settings.TRANSCRIPT_CHUNK_SIZE)
            for i, chunk in enumerate(chunks, start=1):
                await recipient.send(f"**Transcript ({i}/{len(chunks)}):**\n{chunk}")
        else:
            await recipient.send(f"**Full Transcript:**\n{report.transcript}")
        logger.info("Teacher report for team %s delivered", report.team)
        return True
