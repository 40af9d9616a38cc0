import logging
import re
from typing import Any

from esl_planner.schemas.lesson import REQUIRED_SECTION_TYPES
from esl_planner.services.lessons.coercion import as_non_empty_str, error_marker


logger = logging.getLogger(__name__)

DEFAULT_LESSON_TITLE = "ESL Lesson"
DEFAULT_LEVEL = "B1"
DEFAULT_FOCUS = "general"
DEFAULT_ESTIMATED_TIME = 60

DEFAULT_SECTION_TITLES = {
    "warmup": "Warm-up Activity",
    "reading": "Reading Text",
    "vocabulary": "Key Vocabulary",
    "comprehension": "Reading Comprehension",
    "sentenceFrames": "Sentence Practice",
    "discussion": "Discussion Questions",
    "quiz": "Knowledge Check",
}

# Keys are spellings with case, spaces, dashes and underscores removed.
_SECTION_TYPE_ALIASES = {
    "warmup": "warmup",
    "warmupactivity": "warmup",
    "reading": "reading",
    "readingtext": "reading",
    "readingpassage": "reading",
    "vocabulary": "vocabulary",
    "keyvocabulary": "vocabulary",
    "comprehension": "comprehension",
    "readingcomprehension": "comprehension",
    "sentenceframes": "sentenceFrames",
    "sentenceframe": "sentenceFrames",
    "discussion": "discussion",
    "discussionquestions": "discussion",
    "quiz": "quiz",
    "knowledgecheck": "quiz",
}


def normalize_section_type(value: Any) -> str | None:
    if not isinstance(value, str):
        return None
    key = re.sub(r"[\s_\-]+", "", value).lower()
    return _SECTION_TYPE_ALIASES.get(key)


def _coerce_estimated_time(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)) and value > 0:
        return int(value)
    if isinstance(value, str) and value.strip().isdigit():
        parsed = int(value.strip())
        return parsed if parsed > 0 else None
    return None


def missing_section_placeholder(section_type: str) -> dict[str, Any]:
    return {
        "type": section_type,
        "title": DEFAULT_SECTION_TITLES[section_type],
        "content": error_marker(
            f"The generated lesson did not include a {section_type} section. Please regenerate the lesson."
        ),
    }


def preprocess_lesson_payload(raw: Any) -> dict[str, Any]:
    """Guarantee the top-level lesson shape before per-section normalization.

    The defaults only keep later stages from crashing; they are not meant to
    pass for real values. Every substitution is listed under ``warnings``.
    """
    payload = dict(raw) if isinstance(raw, dict) else {}
    warnings: list[str] = []

    title = as_non_empty_str(payload.get("title"), "")
    if not title:
        warnings.append("lesson title missing")
    payload["title"] = title or DEFAULT_LESSON_TITLE

    level = as_non_empty_str(payload.get("level"), "")
    payload["level"] = level.upper() if level else DEFAULT_LEVEL
    payload["focus"] = as_non_empty_str(payload.get("focus"), DEFAULT_FOCUS)

    estimated_time = _coerce_estimated_time(payload.get("estimatedTime"))
    payload["estimatedTime"] = estimated_time if estimated_time is not None else DEFAULT_ESTIMATED_TIME

    raw_sections = payload.get("sections")
    if not isinstance(raw_sections, list):
        if raw_sections is not None:
            warnings.append("lesson sections were not a list")
        raw_sections = []

    sections: list[dict[str, Any]] = []
    for idx, section in enumerate(raw_sections):
        if not isinstance(section, dict):
            logger.warning("Dropping non-object section at index %d", idx)
            warnings.append(f"dropped malformed section at position {idx + 1}")
            continue
        section_type = normalize_section_type(section.get("type"))
        if section_type is None:
            logger.warning("Dropping section with unrecognized type %r", section.get("type"))
            warnings.append(f"dropped section with unrecognized type {section.get('type')!r}")
            continue
        sections.append({**section, "type": section_type})

    present = {section["type"] for section in sections}
    for section_type in REQUIRED_SECTION_TYPES:
        if section_type not in present:
            logger.warning("Required %s section missing; inserting error placeholder", section_type)
            warnings.append(f"{section_type} section missing")
            sections.append(missing_section_placeholder(section_type))

    payload["sections"] = sections
    payload["warnings"] = warnings
    return payload
