from esl_planner.schemas.lesson import Lesson, ReadingSection
from esl_planner.services.lessons.reading import (
    DEFAULT_MIN_SENTENCES,
    DEFAULT_TARGET_PARAGRAPHS,
    count_sentences,
)


def lesson_quality_issues(
    lesson: Lesson,
    *,
    target_paragraphs: int = DEFAULT_TARGET_PARAGRAPHS,
    min_sentences: int = DEFAULT_MIN_SENTENCES,
) -> list[str]:
    reading = lesson.first_section("reading")
    if not isinstance(reading, ReadingSection):
        return ["reading_section_missing"]

    issues: list[str] = []
    if len(reading.paragraphs) < target_paragraphs:
        issues.append(f"reading_paragraph_count_low:{len(reading.paragraphs)}")

    for idx, paragraph in enumerate(reading.paragraphs, start=1):
        sentences = count_sentences(paragraph)
        if sentences < min_sentences:
            issues.append(f"reading_paragraph_sentences_low:{idx}:{sentences}")
    return issues


def passes_quality_gate(
    lesson: Lesson,
    *,
    target_paragraphs: int = DEFAULT_TARGET_PARAGRAPHS,
    min_sentences: int = DEFAULT_MIN_SENTENCES,
) -> bool:
    return not lesson_quality_issues(
        lesson,
        target_paragraphs=target_paragraphs,
        min_sentences=min_sentences,
    )
