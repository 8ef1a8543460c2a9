"""Lesson definitions as stored in lessons.json."""

from pydantic import BaseModel, ConfigDict, Field


class Stage(BaseModel):
    """One question of a discussion, with the insights it is looking for."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    prompt: str = Field(alias="question")
    expected_insights: list[str] = Field(default_factory=list, alias="expectedInsights")
    followups: list[str] = Field(default_factory=list, alias="followupQuestions")


class Lesson(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str
    title: str
    description: str = ""
    learning_objectives: list[str] = Field(default_factory=list, alias="learningObjectives")
    stages: list[Stage] = Field(default_factory=list, alias="discussionFlow")
    key_takeaways: list[str] = Field(default_factory=list, alias="keyTakeaways")

    @property
    def total_expected_insights(self) -> int:
        return sum(len(stage.expected_insights) for stage in self.stages)


class LessonCatalog(BaseModel):
    lessons: list[Lesson] = Field(default_factory=list)
