"""Tests for the participation report and transcript helpers."""

import os
import sys
from datetime import datetime, timedelta, timezone

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from facilitator.engine.report import (
    StudentReport,
    build_report,
    chunk_transcript,
    format_transcript,
    rank_contributors,
)
from facilitator.engine.state import Session, SpeakerRole
from facilitator.schemas.lesson import Lesson
from facilitator.services.ledger import ExperienceLedger


def _lesson(*stage_insights):
    return Lesson.model_validate({
        "id": "decimals",
        "title": "Decimals",
        "learningObjectives": ["Place value"],
        "discussionFlow": [
            {"question": f"Q{i}", "expectedInsights": list(insights)}
            for i, insights in enumerate(stage_insights)
        ],
        "keyTakeaways": [],
    })


class TestRankContributors:
    """Top contributors: insights first, then messages."""

    def test_order_and_limit(self):
        """Insights first, then messages, top three only."""
        students = [
            StudentReport(id="a", name="A", messages=5, insights=1, xp=0),
            StudentReport(id="b", name="B", messages=1, insights=2, xp=0),
            StudentReport(id="c", name="C", messages=9, insights=1, xp=0),
            StudentReport(id="d", name="D", messages=0, insights=0, xp=0),
        ]
        assert [s.id for s in rank_contributors(students)] == ["b", "c", "a"]

    def test_full_ties_keep_first_seen_order(self):
        """Exact ties keep their original order."""
        students = [
            StudentReport(id="x", name="X", messages=2, insights=1, xp=0),
            StudentReport(id="y", name="Y", messages=2, insights=1, xp=0),
        ]
        assert [s.id for s in rank_contributors(students)] == ["x", "y"]


class TestChunkTranscript:
    """Contiguous fixed-size slices."""

    def test_concatenation_restores_text(self):
        """Chunks are contiguous and full-sized except the last."""
        text = "abcdefghij" * 450
        chunks = chunk_transcript(text, 1900)
        assert "".join(chunks) == text
        assert [len(c) for c in chunks] == [1900, 1900, 700]

    def test_short_text_is_one_chunk(self):
        """Short text stays whole."""
        assert chunk_transcript("hello", 1900) == ["hello"]

    def test_empty_text(self):
        """Empty text gives no chunks."""
        assert chunk_transcript("", 1900) == []

    def test_size_must_be_positive(self):
        """A zero chunk size is rejected."""
        with pytest.raises(ValueError):
            chunk_transcript("abc", 0)


class TestBuildReport:
    """Statistics gathered from a finished session."""

    @pytest.mark.asyncio
    async def test_statistics(self, tmp_path):
        """Counts, coverage and per-student rows add up across stages."""
        ledger = ExperienceLedger(tmp_path / "xp.json")
        started = datetime(2024, 5, 1, 9, 0, tzinfo=timezone.utc)
        session = Session(
            channel_id="c1", team_label="Blue",
            lesson=_lesson(["A", "B"], ["C", "D"]), started_at=started,
        )
        session.enter_next_stage()
        session.participant("p1", "Ana").message_count = 3
        session.participant("p1", "Ana").insights_covered.update({(0, 0), (0, 1)})
        session.cover([0, 1])
        session.enter_next_stage()
        session.participant("p2", "Ben").message_count = 1
        session.participant("p2", "Ben").insights_covered.add((1, 0))
        session.cover([0])
        await ledger.award("p1", "Ana", 20, "x")
        await ledger.flush()

        report = build_report(session, ledger, now=started + timedelta(minutes=12))

        assert report.team == "Blue"
        assert report.duration_minutes == 12
        assert report.participant_count == 2
        assert report.message_count == 4
        assert report.insights_covered == 3
        assert report.insights_expected == 4
        assert report.coverage_percent == 75
        assert [s.to_dict() for s in report.students] == [
            {"name": "Ana", "messages": 3, "insights": 2, "xp": 20},
            {"name": "Ben", "messages": 1, "insights": 1, "xp": 0},
        ]
        assert [s.name for s in report.top_contributors] == ["Ana", "Ben"]

    def test_no_expected_insights_gives_zero_percent(self, tmp_path):
        """Nothing expected means 0% rather than a division error."""
        session = Session(channel_id="c1", team_label="Blue", lesson=_lesson([]))
        report = build_report(session, ExperienceLedger(tmp_path / "xp.json"))
        assert report.insights_expected == 0
        assert report.coverage_percent == 0
        assert report.students == []
        assert report.transcript == ""


class TestFormatTranscript:
    """Timestamped transcript lines."""

    def test_lines_name_the_speaker(self):
        """Each line is timestamped and names its speaker."""
        session = Session(channel_id="c1", team_label="Blue", lesson=_lesson(["A"]))
        session.record_turn(SpeakerRole.STUDENT, "it moves", "Ana")
        session.record_turn(SpeakerRole.FACILITATOR, "Nice, Ana!")

        text = format_transcript(session.transcript)
        first, second = text.split("\n\n")
        assert first.endswith("] Ana: it moves")
        assert second.endswith("] Facilitator: Nice, Ana!")
        assert first.startswith("[") and first[9] == "]"
