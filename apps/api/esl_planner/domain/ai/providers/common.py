import json
import re


_LEADING_CHATTER_PATTERN = re.compile(
    r"^(?:here's the|here is the|the following is the)[\w\s]*:?\s*",
    re.IGNORECASE,
)
_TRAILING_COMMA_PATTERN = re.compile(r",\s*([}\]])")


class ModelOutputParseError(ValueError):
    """Raised when the model text cannot be read as a JSON object."""


def strip_code_fence(text: str) -> str:
    raw = text.strip()
    if raw.startswith("```"):
        lines = raw.splitlines()
        if len(lines) >= 2 and lines[-1].strip().startswith("```"):
            return "\n".join(lines[1:-1]).strip()
    return raw


def clean_model_text(text: str) -> str:
    cleaned = strip_code_fence(text)
    cleaned = _LEADING_CHATTER_PATTERN.sub("", cleaned).strip()
    if re.match(r"^json\s", cleaned, re.IGNORECASE):
        cleaned = cleaned[4:].strip()
    return cleaned


def parse_json_text(text: str) -> dict:
    cleaned = clean_model_text(text)
    try:
        parsed = json.loads(cleaned)
    except json.JSONDecodeError:
        # Models often leave a trailing comma before a closing bracket.
        repaired = _TRAILING_COMMA_PATTERN.sub(r"\1", cleaned)
        try:
            parsed = json.loads(repaired)
        except json.JSONDecodeError as exc:
            raise ModelOutputParseError(f"ai_response_not_json:{exc.msg}") from exc
    if not isinstance(parsed, dict):
        raise ModelOutputParseError("ai_response_not_object")
    return parsed
