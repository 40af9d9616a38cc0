import json
from typing import Any


ERROR_PREFIX = "Error:"


def error_marker(message: str) -> str:
    return f"{ERROR_PREFIX} {message}"


def is_error_marker(value: Any) -> bool:
    return isinstance(value, str) and value.startswith(ERROR_PREFIX)


def coerce_list(value: Any) -> list[Any]:
    """Repair a value that should have been a JSON array.

    Strings are tried as JSON first, then split on commas, then on newlines,
    and finally wrapped as a single item. Mappings yield their values.
    """
    if isinstance(value, list):
        return value

    if isinstance(value, str):
        try:
            parsed = json.loads(value)
        except ValueError:
            if "," in value:
                return [item.strip() for item in value.split(",")]
            if "\n" in value:
                return [line for line in value.split("\n") if line.strip()]
            return [value]
        if isinstance(parsed, list):
            return parsed
        return [parsed]

    if isinstance(value, dict):
        return list(value.values())

    return []


def as_non_empty_str(value: Any, fallback: str) -> str:
    if isinstance(value, str):
        stripped = value.strip()
        if stripped:
            return stripped
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return fallback


def optional_str(value: Any) -> str | None:
    text = as_non_empty_str(value, "")
    return text or None


def string_items(value: Any) -> list[str]:
    """Coerce to a list and keep only the items that read as non-empty text."""
    items: list[str] = []
    for item in coerce_list(value):
        text = as_non_empty_str(item, "")
        if text:
            items.append(text)
    return items


def first_text_value(item: dict[str, Any], *keys: str) -> str:
    for key in keys:
        text = as_non_empty_str(item.get(key), "")
        if text:
            return text
    for candidate in item.values():
        text = as_non_empty_str(candidate, "")
        if text:
            return text
    return ""
