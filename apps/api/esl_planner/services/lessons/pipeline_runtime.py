from __future__ import annotations

from enum import Enum


class AttemptState(str, Enum):
    ATTEMPTING = "attempting"
    PARSE_FAILED = "parse_failed"
    TRANSPORT_FAILED = "transport_failed"
    QUALITY_REJECTED = "quality_rejected"
    ACCEPTED = "accepted"
    EXHAUSTED = "exhausted"


FAILED_STATES = {
    AttemptState.PARSE_FAILED,
    AttemptState.TRANSPORT_FAILED,
    AttemptState.QUALITY_REJECTED,
}
TERMINAL_STATES = {AttemptState.ACCEPTED, AttemptState.EXHAUSTED}


def transition(
    state: AttemptState,
    *,
    attempt: int,
    max_attempts: int,
    outcome: AttemptState | None = None,
) -> AttemptState:
    """Next state of the lesson retry loop.

    ``ATTEMPTING`` moves to the attempt's ``outcome``; a failed state moves
    back to ``ATTEMPTING`` while ``attempt`` is below ``max_attempts`` and to
    ``EXHAUSTED`` once the budget is spent. Terminal states stay put.
    """
    if state in TERMINAL_STATES:
        return state

    if state is AttemptState.ATTEMPTING:
        if outcome is None or outcome not in FAILED_STATES | {AttemptState.ACCEPTED}:
            raise ValueError(f"invalid_attempt_outcome:{outcome}")
        return outcome

    return AttemptState.ATTEMPTING if attempt < max(1, int(max_attempts)) else AttemptState.EXHAUSTED


class GenerationFailed(RuntimeError):
    def __init__(
        self,
        *,
        pipeline: str,
        kind: str,
        status_code: int,
        retryable: bool,
        reason: str,
        attempt_count: int,
    ) -> None:
        self.pipeline = pipeline
        self.kind = kind
        self.status_code = status_code
        self.retryable = retryable
        self.reason = reason
        self.attempt_count = attempt_count
        super().__init__(f"{pipeline}:{kind}:{reason}")


class GenerationCancelled(GenerationFailed):
    def __init__(self, *, pipeline: str, attempt_count: int) -> None:
        super().__init__(
            pipeline=pipeline,
            kind="cancelled",
            status_code=499,
            retryable=False,
            reason=f"generation cancelled after {attempt_count} attempts",
            attempt_count=attempt_count,
        )


def ai_error_detail(exc: Exception) -> str:
    message = str(exc).strip()
    if not message:
        return "ai_provider_failed"
    return message[:300]


def normalize_error_reason(value: str) -> str:
    return " ".join(str(value or "").split())[:260] or "ai_provider_failed"


def format_pipeline_error_detail(pipeline: str, kind: str, reason: str) -> str:
    return f"{pipeline}_failed:{kind}:{normalize_error_reason(reason)}"


# First matching rule wins: (kind, status_code, retryable, lower-case tokens).
_FAILURE_RULES: tuple[tuple[str, int, bool, tuple[str, ...]], ...] = (
    (
        "rate_limited",
        429,
        True,
        ("429", "too many requests", "rate limit", "rate_limit", "resource exhausted", "quota", "ai_backpressure_busy"),
    ),
    ("timeout", 504, True, ("timed out", "timeout")),
    ("quality_failed", 422, True, ("quality_validation_failed",)),
    ("schema_mismatch", 422, True, ("json", "expecting value", "ai_response_not_object")),
    (
        "config_error",
        503,
        False,
        ("api_key_missing", "base_url_missing", "unsupported_ai_provider", "ai_service_init_failed", "config_error"),
    ),
)


def classify_ai_failure(detail: str) -> tuple[str, int, bool]:
    """Map a provider error message to ``(kind, status_code, retryable)``.

    Anything unrecognized is a retryable ``provider_error`` (502).
    """
    text = str(detail or "").lower()
    for kind, status_code, retryable, tokens in _FAILURE_RULES:
        if any(token in text for token in tokens):
            return kind, status_code, retryable
    return "provider_error", 502, True
