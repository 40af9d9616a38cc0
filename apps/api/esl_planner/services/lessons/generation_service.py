from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from functools import lru_cache
from threading import Event
from typing import Any

from fastapi import HTTPException

from esl_planner.core.config import Settings, get_settings
from esl_planner.domain.ai import build_ai_service
from esl_planner.domain.ai.providers import ModelOutputParseError
from esl_planner.schemas.lesson import Lesson, LessonGenerationResult, LessonParameters
from esl_planner.services.lessons.error_policy import build_structured_error_detail
from esl_planner.services.lessons.pipeline_runtime import (
    AttemptState,
    GenerationCancelled,
    GenerationFailed,
    ai_error_detail,
    classify_ai_failure,
    format_pipeline_error_detail,
    transition,
)
from esl_planner.services.lessons.preprocessor import preprocess_lesson_payload
from esl_planner.services.lessons.prompt_builder import build_lesson_prompts
from esl_planner.services.lessons.quality_gate import lesson_quality_issues
from esl_planner.services.lessons.reading import DEFAULT_MIN_SENTENCES, DEFAULT_TARGET_PARAGRAPHS
from esl_planner.services.lessons.section_normalizer import normalize_lesson


logger = logging.getLogger(__name__)

PIPELINE = "lesson_generate"

# Hard ceiling on model calls per request, whatever the failure type.
MAX_ATTEMPTS = 3

_EXHAUSTED_MESSAGES = {
    AttemptState.PARSE_FAILED: "unparseable JSON after {attempts} attempts",
    AttemptState.QUALITY_REJECTED: "failed to meet quality bar after {attempts} attempts",
    AttemptState.TRANSPORT_FAILED: "provider request failed after {attempts} attempts",
}


def _is_parse_failure(exc: BaseException | None) -> bool:
    """True when ``exc`` or anything in its ``__cause__`` chain is a model output parse error."""
    while exc is not None:
        if isinstance(exc, ModelOutputParseError):
            return True
        exc = exc.__cause__
    return False


@dataclass
class AttemptResult:
    state: AttemptState
    kind: str = ""
    reason: str = ""
    status_code: int = 502
    retryable: bool = True
    lesson: Lesson | None = None
    issues: list[str] = field(default_factory=list)


class LessonGenerator:
    """Runs prompt -> model -> repair -> quality gate with a bounded retry loop.

    One instance can serve many requests: every call to ``generate_lesson``
    keeps its state in locals only.
    """

    def __init__(
        self,
        *,
        ai_service: Any,
        max_attempts: int = MAX_ATTEMPTS,
        accept_substandard: bool = True,
        target_paragraphs: int = DEFAULT_TARGET_PARAGRAPHS,
        min_sentences: int = DEFAULT_MIN_SENTENCES,
    ) -> None:
        self.ai_service = ai_service
        self.max_attempts = min(MAX_ATTEMPTS, max(1, int(max_attempts)))
        self.accept_substandard = accept_substandard
        self.target_paragraphs = target_paragraphs
        self.min_sentences = min_sentences

    @classmethod
    def from_settings(cls, settings: Settings, *, ai_service: Any | None = None) -> "LessonGenerator":
        return cls(
            ai_service=ai_service if ai_service is not None else build_ai_service(settings),
            max_attempts=settings.lesson_max_attempts,
            accept_substandard=settings.lesson_accept_substandard,
            target_paragraphs=settings.reading_target_paragraphs,
            min_sentences=settings.reading_min_sentences,
        )

    def generate_lesson(
        self,
        params: LessonParameters,
        *,
        cancel_event: Event | None = None,
    ) -> LessonGenerationResult:
        system_prompt, user_prompt = build_lesson_prompts(params)

        state = AttemptState.ATTEMPTING
        attempt = 0
        last_failure: AttemptResult | None = None
        last_lesson: AttemptResult | None = None

        while state is AttemptState.ATTEMPTING:
            if cancel_event is not None and cancel_event.is_set():
                logger.info("Lesson generation cancelled before attempt %d", attempt + 1)
                raise GenerationCancelled(pipeline=PIPELINE, attempt_count=attempt)

            attempt += 1
            result = self._run_attempt(system_prompt, user_prompt)
            state = transition(state, attempt=attempt, max_attempts=self.max_attempts, outcome=result.state)
            logger.info("Lesson attempt %d/%d: %s", attempt, self.max_attempts, result.state.value)

            if state is AttemptState.ACCEPTED:
                return self._result(result.lesson, quality_passed=True, issues=[], attempts=attempt)

            last_failure = result
            if result.lesson is not None:
                last_lesson = result
            logger.warning("Lesson attempt %d failed (%s): %s", attempt, result.kind, result.reason)
            state = transition(state, attempt=attempt, max_attempts=self.max_attempts)

        if last_lesson is not None and self.accept_substandard:
            logger.warning(
                "Returning substandard lesson after %d attempts: %s",
                attempt,
                "|".join(last_lesson.issues),
            )
            return self._result(last_lesson.lesson, quality_passed=False, issues=last_lesson.issues, attempts=attempt)

        # Every lesson that parsed was rejected; report that rather than a later transport blip.
        cause = last_lesson if last_lesson is not None else last_failure
        message = _EXHAUSTED_MESSAGES[cause.state].format(attempts=attempt)
        raise GenerationFailed(
            pipeline=PIPELINE,
            kind=cause.kind,
            status_code=cause.status_code,
            retryable=cause.retryable,
            reason=f"{message}: {cause.reason}",
            attempt_count=attempt,
        )

    def _run_attempt(self, system_prompt: str, user_prompt: str) -> AttemptResult:
        try:
            raw = self.ai_service.generate_json(system_prompt=system_prompt, user_prompt=user_prompt)
        except Exception as exc:
            reason = ai_error_detail(exc)
            if _is_parse_failure(exc):
                return AttemptResult(state=AttemptState.PARSE_FAILED, kind="schema_mismatch", reason=reason, status_code=422)

            kind, status_code, retryable = classify_ai_failure(reason)
            if kind == "schema_mismatch":
                # An error body that mentions JSON still means the request failed.
                kind, status_code, retryable = "provider_error", 502, True
            return AttemptResult(
                state=AttemptState.TRANSPORT_FAILED,
                kind=kind,
                reason=reason,
                status_code=status_code,
                retryable=retryable,
            )

        payload = preprocess_lesson_payload(raw)
        lesson = normalize_lesson(
            payload,
            target_paragraphs=self.target_paragraphs,
            min_sentences=self.min_sentences,
        )
        issues = lesson_quality_issues(
            lesson,
            target_paragraphs=self.target_paragraphs,
            min_sentences=self.min_sentences,
        )
        if issues:
            return AttemptResult(
                state=AttemptState.QUALITY_REJECTED,
                kind="quality_failed",
                reason=f"quality_validation_failed:{'|'.join(issues[:8])}",
                status_code=422,
                lesson=lesson,
                issues=issues,
            )
        return AttemptResult(state=AttemptState.ACCEPTED, lesson=lesson)

    @staticmethod
    def _result(lesson: Lesson, *, quality_passed: bool, issues: list[str], attempts: int) -> LessonGenerationResult:
        return LessonGenerationResult(
            lesson=lesson,
            qualityPassed=quality_passed,
            qualityIssues=issues,
            attempts=attempts,
            warnings=list(lesson.warnings),
        )


@lru_cache(maxsize=1)
def _get_lesson_generator() -> LessonGenerator:
    return LessonGenerator.from_settings(get_settings())


def _require_lesson_generator() -> LessonGenerator:
    try:
        return _get_lesson_generator()
    except Exception as exc:
        reason = ai_error_detail(exc)
        raise HTTPException(
            status_code=503,
            detail=build_structured_error_detail(
                error_code="config_error",
                message=reason,
                retryable=False,
                detail=f"ai_service_init_failed:config_error:{reason}",
            ),
        ) from exc


def _raise_generation_http_exception(failure: GenerationFailed) -> None:
    raise HTTPException(
        status_code=failure.status_code,
        detail=build_structured_error_detail(
            error_code=failure.kind,
            message=failure.reason,
            retryable=failure.retryable,
            detail=format_pipeline_error_detail(failure.pipeline, failure.kind, failure.reason),
        ),
    ) from failure


def generate_lesson_response(payload: LessonParameters) -> dict[str, Any]:
    generator = _require_lesson_generator()
    started = time.monotonic()
    try:
        result = generator.generate_lesson(payload)
    except GenerationFailed as failure:
        _raise_generation_http_exception(failure)

    elapsed = time.monotonic() - started
    logger.info("Lesson generation completed in %.1f seconds", elapsed)
    return {
        "title": result.lesson.title,
        "topic": payload.topic,
        "cefrLevel": payload.cefrLevel,
        "studentId": payload.studentId,
        "content": result.lesson.model_dump(mode="json"),
        "qualityPassed": result.qualityPassed,
        "qualityIssues": result.qualityIssues,
        "warnings": result.warnings,
        "attempts": result.attempts,
        "generationTimeSeconds": round(elapsed, 1),
    }
