"""Sentence splitting and paragraph re-flow for reading passages."""

from __future__ import annotations

import logging
import math
import re
from typing import Any

from esl_planner.services.lessons.coercion import error_marker, first_text_value


logger = logging.getLogger(__name__)

DEFAULT_TARGET_PARAGRAPHS = 5
DEFAULT_MIN_SENTENCES = 3

# A run of terminators counts as a boundary only when whitespace or the end follows it.
_SENTENCE_BOUNDARY = re.compile(r"([.!?]+)(?=\s|$)")

MISSING_READING_TEXT = error_marker(
    "The reading passage was missing from the generated lesson. Please regenerate the lesson."
)


def split_sentences(text: str) -> list[str]:
    parts = _SENTENCE_BOUNDARY.split(str(text or "").strip())
    sentences: list[str] = []
    # re.split with one group alternates body, terminator, body, ..., tail.
    for idx in range(0, len(parts), 2):
        body = parts[idx].strip()
        if not body:
            continue
        terminator = parts[idx + 1] if idx + 1 < len(parts) else "."
        sentences.append(f"{body}{terminator}")
    return sentences


def count_sentences(text: str) -> int:
    return len(split_sentences(text))


def segment_paragraphs(
    sentences: list[str],
    *,
    target_paragraphs: int = DEFAULT_TARGET_PARAGRAPHS,
    min_sentences: int = DEFAULT_MIN_SENTENCES,
) -> list[str]:
    total = len(sentences)
    if total == 0:
        return []

    per_paragraph = max(min_sentences, math.ceil(total / target_paragraphs))
    buckets: list[list[str]] = []
    for idx in range(target_paragraphs):
        start = idx * per_paragraph
        end = total if idx == target_paragraphs - 1 else start + per_paragraph
        chunk = sentences[start:end]
        if chunk:
            buckets.append(chunk)

    # Once the passage is long enough, every paragraph must reach min_sentences.
    if total >= target_paragraphs * min_sentences and (
        len(buckets) < target_paragraphs or any(len(chunk) < min_sentences for chunk in buckets)
    ):
        buckets = _balanced_buckets(sentences, target_paragraphs)

    return [" ".join(chunk) for chunk in buckets]


def _balanced_buckets(sentences: list[str], count: int) -> list[list[str]]:
    base, extra = divmod(len(sentences), count)
    buckets: list[list[str]] = []
    start = 0
    for idx in range(count):
        size = base + (1 if idx < extra else 0)
        buckets.append(sentences[start:start + size])
        start += size
    return buckets


def _paragraph_chunks(raw: Any) -> list[str]:
    if isinstance(raw, str):
        return [raw]
    if isinstance(raw, dict):
        raw = list(raw.values())
    if not isinstance(raw, list):
        return []

    chunks: list[str] = []
    for item in raw:
        if isinstance(item, str):
            chunks.append(item)
        elif isinstance(item, dict):
            text = first_text_value(item, "text", "content", "paragraph")
            if text:
                chunks.append(text)
    return chunks


def collect_reading_sentences(section: dict[str, Any]) -> list[str] | None:
    """Sentences of the passage, or ``None`` when the section carries no passage at all."""
    text = section.get("text")
    if isinstance(text, str) and text.strip():
        return split_sentences(text)

    sentences: list[str] = []
    for chunk in _paragraph_chunks(section.get("paragraphs")):
        sentences.extend(split_sentences(chunk))
    return sentences or None


def reflow_reading(
    section: dict[str, Any],
    *,
    target_paragraphs: int = DEFAULT_TARGET_PARAGRAPHS,
    min_sentences: int = DEFAULT_MIN_SENTENCES,
) -> tuple[list[str], list[str]]:
    """Return the re-flowed paragraphs and any warnings about the passage."""
    sentences = collect_reading_sentences(section)
    if sentences is None:
        logger.warning("Reading section has neither text nor paragraphs")
        return [MISSING_READING_TEXT], ["reading passage missing"]

    warnings: list[str] = []
    minimum_total = target_paragraphs * min_sentences
    if len(sentences) < minimum_total:
        logger.warning(
            "Reading passage has %d sentences, below the %d needed for %d paragraphs",
            len(sentences),
            minimum_total,
            target_paragraphs,
        )
        warnings.append(f"reading passage has only {len(sentences)} sentences (expected at least {minimum_total})")

    paragraphs = segment_paragraphs(
        sentences,
        target_paragraphs=target_paragraphs,
        min_sentences=min_sentences,
    )
    return paragraphs, warnings
