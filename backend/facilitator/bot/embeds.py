"""Card-style messages (Discord embeds) the facilitator sends."""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from pydantic import BaseModel

if TYPE_CHECKING:
    from facilitator.engine.report import ParticipationReport, StudentReport
    from facilitator.schemas.lesson import Lesson
    from facilitator.services.ledger import LedgerEntry

BLUE = 0x3498DB
GREEN = 0x00FF00
ORANGE = 0xFFA500
EMERALD = 0x2ECC71
PURPLE = 0x9B59B6
GOLD = 0xF1C40F
RED = 0xE74C3C

MEDALS = ["🥇", "🥈", "🥉"]

# Discord rejects empty field values and caps them at 1024 characters.
FIELD_LIMIT = 1024
DESCRIPTION_LIMIT = 4096


class EmbedField(BaseModel):
    name: str
    value: str
    inline: bool = False


class Embed(BaseModel):
    title: str
    description: str = ""
    color: int = BLUE
    fields: list[EmbedField] = []
    footer: Optional[str] = None
    timestamp: bool = False

    def add_field(self, name: str, value: str, inline: bool = False) -> "Embed":
        value = value.strip() or "—"
        if len(value) > FIELD_LIMIT:
            value = value[: FIELD_LIMIT - 1] + "…"
        self.fields.append(EmbedField(name=name, value=value, inline=inline))
        return self


def _clamp(text: str, limit: int = DESCRIPTION_LIMIT) -> str:
    return text if len(text) <= limit else text[: limit - 1] + "…"


def _plural(n: int, word: str) -> str:
    return f"{n} {word}{'' if n == 1 else 's'}"


def hint_preview(insight: str, words: int = 5) -> str:
    """First few words of an insight, never the whole statement."""
    return " ".join(insight.split()[:words]) + "..."


def intro_card(team: str, lesson: "Lesson", insight_points: int, participation_points: int) -> Embed:
    embed = Embed(
        title=f"🔢 Team {team} - {lesson.title} 🧮",
        description=(
            f"**Welcome to our discussion on {lesson.title}!** Today we'll be exploring some "
            "interesting math concepts together. Share your ideas, ask questions, and build on "
            "each other's thinking!"
        ),
        color=BLUE,
        footer="I will be guiding our discussion today! Let's have fun with math!",
    )
    embed.add_field("🎯 Learning Goals", "\n".join(f"📐 {obj}" for obj in lesson.learning_objectives))
    embed.add_field(
        "🏆 XP System",
        f"✨ **+{insight_points} XP** for each mathematical insight you share\n"
        f"📝 **+{participation_points} XP** for active participation\n"
        "🔍 Look for patterns and make connections to earn more XP!",
    )
    return embed


def xp_reward_card(student: str, points: int, insights: list[str], total: int) -> Embed:
    return Embed(
        title=f"🎉 {student} earned XP! 🎉",
        description=(
            f"✨ **+{points} XP** for sharing insight: *\"{insights[0]}\"*\n\n"
            f"📊 Total XP: **{total}**"
        ),
        color=GREEN,
        footer="🔔 Keep sharing your mathematical thinking!",
    )


def hint_card(missed: list[str]) -> Embed:
    count = len(missed)
    if count:
        lead = f"There were {count} more key point{'s' if count > 1 else ''} we could have explored:"
    else:
        lead = "We covered all the key points!"
    embed = Embed(
        title="⏰ Time to move forward!",
        description=f"We've had a great discussion on this question! {lead}",
        color=ORANGE,
        footer="Moving to the next part of our discussion soon...",
    )
    if missed:
        embed.add_field(
            "Some hints to consider:",
            "\n".join(f"🔍 *\"{hint_preview(insight)}\"*" for insight in missed),
        )
    return embed


def stage_summary_card(summary: str, covered: list[str]) -> Embed:
    embed = Embed(
        title="📝 Discussion Summary",
        description=_clamp(summary),
        color=EMERALD,
        footer="🔄 Moving to the next question...",
    )
    embed.add_field(
        "🧠 Key Concepts Explored",
        "\n".join(f"✓ {insight}" for insight in covered) or "No key concepts were identified this round.",
    )
    return embed


def conclusion_card(
    lesson: "Lesson",
    conclusion: str,
    insights_discovered: int,
    participants: int,
    messages: int,
    top: list["StudentReport"],
) -> Embed:
    embed = Embed(
        title=f"🏁 Conclusion - {lesson.title}",
        description=_clamp(conclusion),
        color=PURPLE,
        footer="🎉 Great job today, team! 🎉",
    )
    embed.add_field("🔑 Key Takeaways", "\n".join(f"📌 {tk}" for tk in lesson.key_takeaways))
    embed.add_field(
        "📊 Team Performance",
        f"✨ **Total Insights Discovered:** {insights_discovered}\n"
        f"👥 **Active Participants:** {participants}\n"
        f"💬 **Total Messages:** {messages}",
    )
    if top:
        embed.add_field(
            "🏆 Top Contributors",
            "\n".join(
                f"{MEDALS[i]} **{s.name}**: {_plural(s.insights, 'insight')}, {_plural(s.messages, 'message')}"
                for i, s in enumerate(top)
            ),
        )
    return embed


def teacher_report_card(report: "ParticipationReport", prose: str) -> Embed:
    embed = Embed(
        title=f"Team {report.team} - {report.lesson_title} - Report",
        description=_clamp(prose),
        color=RED,
        timestamp=True,
    )
    embed.add_field(
        "Participation Stats",
        f"Students: {report.participant_count}\n"
        f"Messages: {report.message_count}\n"
        f"Insights: {report.insights_covered}/{report.insights_expected} ({report.coverage_percent}%)",
    )
    embed.add_field(
        "Student Performance",
        "\n".join(
            f"{s.name}: {s.messages} msgs, {s.insights} insights, {s.xp} XP" for s in report.students
        ) or "No students participated.",
    )
    return embed


def help_card() -> Embed:
    embed = Embed(
        title="📚 Math Helper Commands 📚",
        description="Here are the commands you can use:",
        color=BLUE,
        footer="Math is more fun when we explore it together!",
    )
    embed.add_field(
        "👨‍👩‍👧‍👦 For Everyone",
        "`!leaderboard` - See the top 10 students by XP\n`!help` - Show this help message",
    )
    embed.add_field(
        "👩‍🏫 Teacher Only",
        "`!start-discussion [TeamName] [LessonId]` - Start a new discussion\n"
        "`!next-question` - Manually advance to the next question\n"
        "`!list-lessons` - Show available lessons\n"
        "`!reset-xp` - Reset all student XP data",
    )
    return embed


def leaderboard_card(entries: list["LedgerEntry"]) -> Embed:
    if entries:
        body = "\n".join(f"{i + 1}. **{e.name}**: {e.points} XP" for i, e in enumerate(entries))
    else:
        body = "No XP earned yet! Participate in discussions to earn points."
    return Embed(
        title="🏆 Student XP Leaderboard 🏆",
        description=body,
        color=GOLD,
        footer="Based on participation and insights shared",
    )


def lessons_card(lessons: list["Lesson"]) -> Embed:
    return Embed(
        title="Available Lessons",
        description=_clamp("\n".join(f"**{l.id}**: {l.title}" for l in lessons)),
        color=BLUE,
    )
