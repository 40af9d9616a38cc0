import json
from typing import Any
from urllib import error, request


def post_json(
    endpoint: str,
    payload: dict[str, Any],
    *,
    source: str,
    timeout_sec: float,
    headers: dict[str, str] | None = None,
) -> dict[str, Any]:
    """POST ``payload`` and return the decoded JSON envelope.

    Failures are raised as ``RuntimeError`` prefixed with ``source`` so the
    retry loop can classify them; HTTP errors keep their status code.
    """
    req = request.Request(
        endpoint,
        data=json.dumps(payload).encode("utf-8"),
        headers={"Content-Type": "application/json", **(headers or {})},
        method="POST",
    )
    try:
        with request.urlopen(req, timeout=timeout_sec) as response:  # pragma: no cover - network boundary
            body = response.read().decode("utf-8")
    except error.HTTPError as exc:  # pragma: no cover - network boundary
        reason = exc.read().decode("utf-8", errors="replace")[:200]
        raise RuntimeError(f"{source}_http_{exc.code}:{reason}") from exc
    except Exception as exc:  # pragma: no cover - network boundary
        raise RuntimeError(f"{source}_request_failed:{exc}") from exc

    try:
        decoded = json.loads(body)
    except ValueError as exc:
        raise RuntimeError(f"{source}_envelope_unreadable") from exc
    if not isinstance(decoded, dict):
        raise RuntimeError(f"{source}_envelope_unreadable")
    return decoded
