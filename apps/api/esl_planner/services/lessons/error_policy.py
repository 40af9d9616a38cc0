"""Structured error bodies for the HTTP layer.

Every error response carries ``{error_code, message, retryable, trace_id, detail}``.
``HTTPException.detail`` may already be structured (raised by the lesson
pipeline) or a plain string (raised by FastAPI itself or by older call sites);
both are folded into the same shape here.
"""

import re
from dataclasses import asdict, dataclass
from typing import Any

from fastapi import HTTPException


# code -> (default message, retryable by default)
ERROR_CODES: dict[str, tuple[str, bool]] = {
    "schema_mismatch": ("The AI response could not be read as a lesson", True),
    "rate_limited": ("AI provider rate limited the request", True),
    "timeout": ("AI request timed out", True),
    "quality_failed": ("Generated lesson did not pass quality checks", True),
    "provider_error": ("AI provider request failed", True),
    "config_error": ("AI service configuration error", False),
    "cancelled": ("Lesson generation was cancelled", False),
    "unknown": ("Request failed", False),
}

KNOWN_ERROR_CODES = set(ERROR_CODES)
RETRYABLE_ERROR_CODES = {code for code, (_, retryable) in ERROR_CODES.items() if retryable}

MAX_MESSAGE_LENGTH = 260

# "<pipeline>_failed:<code>:<reason>", as produced by format_pipeline_error_detail.
_PIPELINE_FAILURE_PATTERN = re.compile(r"^[a-z0-9_]+_failed:([a-z_]+):(.*)$")


def _squash(value: Any) -> str:
    return " ".join(str(value or "").split())


def normalize_error_code(value: Any) -> str:
    code = str(value or "").strip().lower()
    return code if code in ERROR_CODES else "unknown"


def default_message(code: str, reason: Any = "") -> str:
    text = _squash(reason)
    if text:
        return text[:MAX_MESSAGE_LENGTH]
    return ERROR_CODES.get(code, ERROR_CODES["unknown"])[0]


@dataclass(frozen=True)
class ErrorDetail:
    error_code: str
    message: str
    retryable: bool
    detail: str

    def to_payload(self, trace_id: str) -> dict[str, Any]:
        return {**asdict(self), "trace_id": trace_id}


def build_structured_error_detail(
    *,
    error_code: str,
    message: str | None = None,
    retryable: bool | None = None,
    detail: Any = None,
) -> dict[str, Any]:
    code = normalize_error_code(error_code)
    message_text = _squash(message) or default_message(code, detail)
    return asdict(
        ErrorDetail(
            error_code=code,
            message=message_text[:MAX_MESSAGE_LENGTH],
            retryable=code in RETRYABLE_ERROR_CODES if retryable is None else bool(retryable),
            detail=_squash(detail) or message_text,
        )
    )


def parse_error_detail(detail: Any) -> tuple[str, str, str]:
    """Recover ``(code, message, detail)`` from a plain-string HTTP detail."""
    text = _squash(detail)
    if not text:
        return "unknown", default_message("unknown"), ""

    head, _, rest = text.partition(":")

    if head == "ai_service_init_failed":
        return "config_error", default_message("config_error", rest), text

    match = _PIPELINE_FAILURE_PATTERN.match(text)
    if match:
        code = normalize_error_code(match.group(1))
        if code == "unknown":
            code = "provider_error"
        return code, default_message(code, match.group(2)), text

    code = normalize_error_code(head)
    if code != "unknown":
        return code, default_message(code, rest), text
    return "unknown", default_message("unknown", text), text


def _from_structured(detail: dict[str, Any]) -> ErrorDetail:
    code = normalize_error_code(detail.get("error_code"))
    inferred = ""
    if code == "unknown":
        code, _, inferred = parse_error_detail(detail.get("detail"))

    message = _squash(detail.get("message")) or default_message(code, detail.get("detail"))
    if "retryable" in detail:
        retryable = bool(detail["retryable"])
    else:
        retryable = code in RETRYABLE_ERROR_CODES
    return ErrorDetail(
        error_code=code,
        message=message[:MAX_MESSAGE_LENGTH],
        retryable=retryable,
        detail=str(detail.get("detail") or "").strip() or inferred or message,
    )


def _from_text(detail: Any) -> ErrorDetail:
    code, message, text = parse_error_detail(detail)
    return ErrorDetail(error_code=code, message=message, retryable=code in RETRYABLE_ERROR_CODES, detail=text)


def build_http_error_payload(exc: HTTPException, trace_id: str) -> dict[str, Any]:
    detail = exc.detail
    parsed = _from_structured(detail) if isinstance(detail, dict) else _from_text(detail)
    return parsed.to_payload(trace_id)


def build_unexpected_error_payload(trace_id: str) -> dict[str, Any]:
    return ErrorDetail(
        error_code="unknown",
        message="Unexpected server error",
        retryable=False,
        detail="unexpected_server_error",
    ).to_payload(trace_id)
