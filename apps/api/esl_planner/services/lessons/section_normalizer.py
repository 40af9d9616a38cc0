"""Per-type repair of preprocessed lesson sections.

Nothing here raises for malformed model output. A field that cannot be
recovered is filled with visible ``Error: ...`` text so the instructor sees the
gap instead of plausible but invented teaching material.
"""

from __future__ import annotations

import logging
from typing import Any, Callable

from esl_planner.schemas.lesson import (
    ComprehensionSection,
    DiscussionSection,
    Lesson,
    QuestionEntry,
    QuizSection,
    ReadingSection,
    Section,
    SentenceFrame,
    SentenceFramesSection,
    VocabularyEntry,
    VocabularySection,
    WarmupSection,
)
from esl_planner.services.lessons.coercion import (
    as_non_empty_str,
    coerce_list,
    error_marker,
    first_text_value,
    is_error_marker,
    optional_str,
    string_items,
)
from esl_planner.services.lessons.preprocessor import DEFAULT_SECTION_TITLES
from esl_planner.services.lessons.reading import (
    DEFAULT_MIN_SENTENCES,
    DEFAULT_TARGET_PARAGRAPHS,
    reflow_reading,
)


logger = logging.getLogger(__name__)

MISSING_OPTIONS = error_marker("Answer options were missing from the generated content.")
UNMATCHED_ANSWER = error_marker("The correct answer was missing or did not match any option.")
MISSING_QUESTION_TEXT = error_marker("The question text was missing from the generated content.")
UNREADABLE_DISCUSSION_QUESTION = error_marker("This discussion question could not be read from the generated content.")

_SHARED_TEXT_FIELDS = ("introduction", "content", "timeAllocation", "teacherNotes", "imageDescription")

SectionResult = tuple[Section, list[str]]


def _base_fields(section: dict[str, Any], section_type: str, *, drop: tuple[str, ...] = ()) -> dict[str, Any]:
    data = {key: value for key, value in section.items() if key not in drop}
    data["type"] = section_type
    data["title"] = as_non_empty_str(section.get("title"), DEFAULT_SECTION_TITLES[section_type])
    for key in _SHARED_TEXT_FIELDS:
        data[key] = optional_str(section.get(key))
    return data


def _question_strings(raw: Any) -> tuple[list[str], int]:
    """Plain question strings plus the number of items that had to be replaced."""
    questions: list[str] = []
    replaced = 0
    for item in coerce_list(raw):
        if isinstance(item, str):
            if item.strip():
                questions.append(item.strip())
            continue
        text = first_text_value(item, "question", "text") if isinstance(item, dict) else ""
        if text:
            questions.append(text)
        else:
            questions.append(UNREADABLE_DISCUSSION_QUESTION)
            replaced += 1
    return questions, replaced


# warmup


def normalize_warmup(section: dict[str, Any], **_: Any) -> SectionResult:
    warnings: list[str] = []
    questions, replaced = _question_strings(section.get("questions"))
    if replaced:
        warnings.append(f"warmup: {replaced} unreadable question(s) replaced")
    if not questions:
        questions = [error_marker("Warm-up questions were missing from the generated lesson.")]
        warnings.append("warmup: questions missing")

    target_vocabulary: list[str] = []
    for item in coerce_list(section.get("targetVocabulary")):
        term = first_text_value(item, "term", "word") if isinstance(item, dict) else as_non_empty_str(item, "")
        if term:
            target_vocabulary.append(term)

    data = _base_fields(section, "warmup")
    data["questions"] = questions
    data["targetVocabulary"] = target_vocabulary
    return WarmupSection(**data), warnings


# reading


def normalize_reading(
    section: dict[str, Any],
    *,
    target_paragraphs: int = DEFAULT_TARGET_PARAGRAPHS,
    min_sentences: int = DEFAULT_MIN_SENTENCES,
    **_: Any,
) -> SectionResult:
    paragraphs, warnings = reflow_reading(
        section,
        target_paragraphs=target_paragraphs,
        min_sentences=min_sentences,
    )
    data = _base_fields(section, "reading", drop=("text",))
    data["paragraphs"] = paragraphs
    return ReadingSection(**data), [f"reading: {warning}" for warning in warnings]


# vocabulary


def vocabulary_error_entry(message: str) -> VocabularyEntry:
    return VocabularyEntry(
        term=error_marker("vocabulary entry missing"),
        partOfSpeech=error_marker("part of speech unavailable"),
        definition=error_marker(message),
        example=error_marker("example sentence unavailable"),
    )


def normalize_vocabulary_entry(item: Any) -> tuple[VocabularyEntry, bool]:
    """Return the entry and whether any of its fields had to be filled in."""
    if isinstance(item, str):
        term = item.strip()
        if not term:
            return vocabulary_error_entry("An empty vocabulary entry was returned."), True
        return (
            VocabularyEntry(
                term=term,
                partOfSpeech=error_marker("part of speech was not provided"),
                definition=error_marker(f'No definition was provided for "{term}".'),
                example=error_marker(f'No example sentence was provided for "{term}".'),
            ),
            True,
        )

    if not isinstance(item, dict):
        return vocabulary_error_entry("A vocabulary entry could not be read from the generated content."), True

    term = first_text_value({k: item.get(k) for k in ("term", "word")}, "term", "word")
    if not term:
        return vocabulary_error_entry("A vocabulary entry had no term."), True

    repaired = False

    def required(key: str, message: str) -> str:
        nonlocal repaired
        text = as_non_empty_str(item.get(key), "")
        if text:
            return text
        repaired = True
        return error_marker(message)

    data = {key: value for key, value in item.items() if key != "word"}
    data["term"] = term
    data["partOfSpeech"] = required("partOfSpeech", "part of speech was not provided")
    data["definition"] = required("definition", f'No definition was provided for "{term}".')
    data["example"] = required("example", f'No example sentence was provided for "{term}".')
    data["pronunciation"] = optional_str(item.get("pronunciation"))
    data["collocations"] = string_items(item.get("collocations"))
    data["usageNotes"] = optional_str(item.get("usageNotes"))
    return VocabularyEntry(**data), repaired


def normalize_vocabulary(section: dict[str, Any], **_: Any) -> SectionResult:
    warnings: list[str] = []
    raw = section.get("words")

    if isinstance(raw, (int, float)) and not isinstance(raw, bool):
        logger.warning("Vocabulary words received as a count (%s) instead of a list", raw)
        words = [vocabulary_error_entry(f"The model returned a word count ({raw}) instead of vocabulary entries.")]
        warnings.append("vocabulary: word count returned instead of entries")
    else:
        words = []
        repaired = 0
        for item in coerce_list(raw):
            entry, was_repaired = normalize_vocabulary_entry(item)
            words.append(entry)
            repaired += int(was_repaired)
        if repaired:
            warnings.append(f"vocabulary: {repaired} incomplete entr{'y' if repaired == 1 else 'ies'} marked")
        if not words:
            words = [vocabulary_error_entry("Vocabulary entries were missing from the generated lesson.")]
            warnings.append("vocabulary: entries missing")

    data = _base_fields(section, "vocabulary")
    data["words"] = words
    return VocabularySection(**data), warnings


# comprehension / quiz


def resolve_correct_answer(raw: Any, options: list[str]) -> str | None:
    """Map the model's answer (text, index or letter) onto one of ``options``."""
    if isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return options[raw] if 0 <= raw < len(options) else None
    if not isinstance(raw, str):
        return None

    text = raw.strip()
    if not text:
        return None
    if text in options:
        return text

    lowered = text.lower()
    for option in options:
        if option.strip().lower() == lowered:
            return option

    if len(text) == 1 and text.isalpha():
        idx = ord(lowered) - ord("a")
        return options[idx] if 0 <= idx < len(options) else None
    if text.isdigit():
        return resolve_correct_answer(int(text), options)
    return None


def _option_strings(raw: Any) -> list[str]:
    """Option texts, reading object options such as ``{"label": "A", "text": "Paris"}`` by their text."""
    options: list[str] = []
    for item in coerce_list(raw):
        if isinstance(item, dict):
            text = first_text_value(item, "text", "option", "value", "label")
        else:
            text = as_non_empty_str(item, "")
        if text:
            options.append(text)
    return options


def question_error_entry(question: str) -> QuestionEntry:
    return QuestionEntry(question=question, options=[MISSING_OPTIONS], correctAnswer=MISSING_OPTIONS)


def normalize_question_entry(item: Any) -> tuple[QuestionEntry, bool]:
    if isinstance(item, str):
        text = item.strip() or MISSING_QUESTION_TEXT
        return question_error_entry(text), True

    if not isinstance(item, dict):
        return question_error_entry(MISSING_QUESTION_TEXT), True

    repaired = False
    question = as_non_empty_str(item.get("question"), "") or as_non_empty_str(item.get("text"), "")
    if not question:
        question = MISSING_QUESTION_TEXT
        repaired = True

    options = _option_strings(item.get("options"))
    if not options:
        options = [MISSING_OPTIONS]
        repaired = True

    raw_answer = item.get("correctAnswer", item.get("correct_answer", item.get("answer")))
    correct = resolve_correct_answer(raw_answer, options)
    if correct is None:
        if options == [MISSING_OPTIONS]:
            correct = MISSING_OPTIONS
        else:
            options.append(UNMATCHED_ANSWER)
            correct = UNMATCHED_ANSWER
        repaired = True

    data = {key: value for key, value in item.items() if key not in {"correct_answer", "answer", "text"}}
    data["question"] = question
    data["options"] = options
    data["correctAnswer"] = correct
    return QuestionEntry(**data), repaired


def _normalize_question_section(
    section: dict[str, Any],
    section_type: str,
    model: type[ComprehensionSection] | type[QuizSection],
) -> SectionResult:
    warnings: list[str] = []
    questions: list[QuestionEntry] = []
    repaired = 0
    for item in coerce_list(section.get("questions")):
        entry, was_repaired = normalize_question_entry(item)
        questions.append(entry)
        repaired += int(was_repaired)
    if repaired:
        warnings.append(f"{section_type}: {repaired} incomplete question(s) marked")
    if not questions:
        questions = [question_error_entry(error_marker(f"{section_type} questions were missing from the generated lesson."))]
        warnings.append(f"{section_type}: questions missing")

    data = _base_fields(section, section_type)
    data["questions"] = questions
    return model(**data), warnings


def normalize_comprehension(section: dict[str, Any], **_: Any) -> SectionResult:
    return _normalize_question_section(section, "comprehension", ComprehensionSection)


def normalize_quiz(section: dict[str, Any], **_: Any) -> SectionResult:
    return _normalize_question_section(section, "quiz", QuizSection)


# discussion


def normalize_discussion(section: dict[str, Any], **_: Any) -> SectionResult:
    warnings: list[str] = []
    questions, replaced = _question_strings(section.get("questions"))
    if replaced:
        warnings.append(f"discussion: {replaced} unreadable question(s) replaced")
    if not questions:
        questions = [error_marker("Discussion questions were missing from the generated lesson.")]
        warnings.append("discussion: questions missing")

    data = _base_fields(section, "discussion")
    data["questions"] = questions
    return DiscussionSection(**data), warnings


# sentence frames


def normalize_frame(item: Any) -> SentenceFrame | None:
    if isinstance(item, str):
        return SentenceFrame(pattern=item.strip()) if item.strip() else None
    if not isinstance(item, dict):
        return None
    pattern = first_text_value(
        {k: item.get(k) for k in ("pattern", "frame", "template", "text")},
        "pattern",
        "frame",
        "template",
        "text",
    )
    if not pattern:
        return None
    data = {key: value for key, value in item.items() if key not in {"frame", "template"}}
    data["pattern"] = pattern
    data["examples"] = string_items(item.get("examples"))
    return SentenceFrame(**data)


def normalize_sentence_frames(section: dict[str, Any], **_: Any) -> SectionResult:
    warnings: list[str] = []
    frames: list[SentenceFrame] = []
    for item in coerce_list(section.get("frames")):
        frame = normalize_frame(item)
        if frame is not None:
            frames.append(frame)
    if not frames:
        frames = [SentenceFrame(pattern=error_marker("Sentence frames were missing from the generated lesson."))]
        warnings.append("sentenceFrames: frames missing")

    data = _base_fields(section, "sentenceFrames")
    data["frames"] = frames
    return SentenceFramesSection(**data), warnings


SECTION_NORMALIZERS: dict[str, Callable[..., SectionResult]] = {
    "warmup": normalize_warmup,
    "reading": normalize_reading,
    "vocabulary": normalize_vocabulary,
    "comprehension": normalize_comprehension,
    "quiz": normalize_quiz,
    "discussion": normalize_discussion,
    "sentenceFrames": normalize_sentence_frames,
}


def normalize_section(
    section: dict[str, Any],
    *,
    target_paragraphs: int = DEFAULT_TARGET_PARAGRAPHS,
    min_sentences: int = DEFAULT_MIN_SENTENCES,
) -> SectionResult:
    section_type = section.get("type")
    normalizer = SECTION_NORMALIZERS.get(section_type)
    if normalizer is None:
        raise ValueError(f"unsupported_section_type:{section_type}")
    return normalizer(section, target_paragraphs=target_paragraphs, min_sentences=min_sentences)


def _link_warmup_vocabulary(sections: list[Section]) -> bool:
    """Fill an empty warm-up word list from the vocabulary section terms."""
    warmup = next((s for s in sections if isinstance(s, WarmupSection)), None)
    vocabulary = next((s for s in sections if isinstance(s, VocabularySection)), None)
    if warmup is None or vocabulary is None or warmup.targetVocabulary:
        return False
    terms = [word.term for word in vocabulary.words if not is_error_marker(word.term)]
    if not terms:
        return False
    warmup.targetVocabulary = terms
    return True


def normalize_lesson(
    payload: dict[str, Any],
    *,
    target_paragraphs: int = DEFAULT_TARGET_PARAGRAPHS,
    min_sentences: int = DEFAULT_MIN_SENTENCES,
) -> Lesson:
    """Build a ``Lesson`` from a preprocessed payload."""
    warnings = list(payload.get("warnings") or [])
    sections: list[Section] = []
    for section in payload["sections"]:
        normalized, section_warnings = normalize_section(
            section,
            target_paragraphs=target_paragraphs,
            min_sentences=min_sentences,
        )
        sections.append(normalized)
        warnings.extend(section_warnings)

    if _link_warmup_vocabulary(sections):
        warnings.append("warmup: target vocabulary copied from the vocabulary section")

    if warnings:
        logger.warning("Lesson normalized with %d repair(s): %s", len(warnings), "; ".join(warnings[:8]))

    return Lesson(
        title=payload["title"],
        level=payload["level"],
        focus=payload["focus"],
        estimatedTime=payload["estimatedTime"],
        sections=sections,
        warnings=warnings,
    )
