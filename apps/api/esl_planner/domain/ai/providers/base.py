from typing import Any, Protocol


class StructuredAIProvider(Protocol):
    """Chat model contract: one system + user prompt in, one JSON lesson object out.

    Implementations raise ``ModelOutputParseError`` when the reply is not a
    JSON object and ``RuntimeError`` for transport or envelope failures.
    """

    provider_name: str

    def generate_json(self, *, system_prompt: str, user_prompt: str) -> dict[str, Any]:
        ...
