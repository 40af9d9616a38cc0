"""Lesson request and output models.

Field names follow the camelCase JSON the frontend and the model prompt use.
"""

from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field


CefrLevel = Literal["A1", "A2", "B1", "B2", "C1", "C2"]

SectionType = Literal[
    "warmup",
    "reading",
    "vocabulary",
    "comprehension",
    "sentenceFrames",
    "discussion",
    "quiz",
]

REQUIRED_SECTION_TYPES: tuple[str, ...] = ("warmup", "reading", "vocabulary", "comprehension")


class LessonParameters(BaseModel):
    model_config = ConfigDict(frozen=True)

    cefrLevel: CefrLevel
    topic: str = Field(min_length=1, max_length=200)
    focus: str = "general"
    lessonLength: int = Field(default=60, ge=15, le=180)
    additionalNotes: str | None = None
    studentId: int | str | None = None


class VocabularyEntry(BaseModel):
    model_config = ConfigDict(extra="allow")

    term: str
    partOfSpeech: str
    definition: str
    example: str
    pronunciation: str | None = None
    collocations: list[str] = Field(default_factory=list)
    usageNotes: str | None = None


class QuestionEntry(BaseModel):
    model_config = ConfigDict(extra="allow")

    question: str
    options: list[str]
    correctAnswer: str


class SentenceFrame(BaseModel):
    model_config = ConfigDict(extra="allow")

    pattern: str
    examples: list[str] = Field(default_factory=list)


class _SectionBase(BaseModel):
    model_config = ConfigDict(extra="allow")

    title: str
    introduction: str | None = None
    content: str | None = None
    timeAllocation: str | None = None
    teacherNotes: str | None = None
    imageDescription: str | None = None


class WarmupSection(_SectionBase):
    type: Literal["warmup"] = "warmup"
    questions: list[str]
    targetVocabulary: list[str]


class ReadingSection(_SectionBase):
    type: Literal["reading"] = "reading"
    paragraphs: list[str]


class VocabularySection(_SectionBase):
    type: Literal["vocabulary"] = "vocabulary"
    words: list[VocabularyEntry]


class ComprehensionSection(_SectionBase):
    type: Literal["comprehension"] = "comprehension"
    questions: list[QuestionEntry]


class QuizSection(_SectionBase):
    type: Literal["quiz"] = "quiz"
    questions: list[QuestionEntry]


class DiscussionSection(_SectionBase):
    type: Literal["discussion"] = "discussion"
    questions: list[str]


class SentenceFramesSection(_SectionBase):
    type: Literal["sentenceFrames"] = "sentenceFrames"
    frames: list[SentenceFrame]


Section = Annotated[
    Union[
        WarmupSection,
        ReadingSection,
        VocabularySection,
        ComprehensionSection,
        QuizSection,
        DiscussionSection,
        SentenceFramesSection,
    ],
    Field(discriminator="type"),
]


class Lesson(BaseModel):
    title: str
    level: str
    focus: str
    estimatedTime: int
    sections: list[Section]
    warnings: list[str] = Field(default_factory=list)

    def first_section(self, section_type: str) -> Section | None:
        for section in self.sections:
            if section.type == section_type:
                return section
        return None


class LessonGenerationResult(BaseModel):
    lesson: Lesson
    qualityPassed: bool
    qualityIssues: list[str] = Field(default_factory=list)
    attempts: int
    warnings: list[str] = Field(default_factory=list)


class ImageBatchRequest(BaseModel):
    prompts: list[str] = Field(min_length=1, max_length=12)
    negativePrompt: str | None = None
