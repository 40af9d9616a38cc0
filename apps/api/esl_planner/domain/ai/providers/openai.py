import logging
from typing import Any

from esl_planner.core.http import post_json
from esl_planner.domain.ai.providers.common import parse_json_text


logger = logging.getLogger(__name__)


class OpenAIProvider:
    """Chat-completions client; also serves Qwen, OpenRouter and Fireworks through their compatible endpoints."""

    def __init__(
        self,
        *,
        api_key: str,
        model: str,
        base_url: str,
        timeout_sec: int = 60,
        temperature: float = 0.5,
        max_tokens: int = 4000,
        provider_name: str = "openai",
        extra_headers: dict[str, str] | None = None,
    ) -> None:
        if not api_key:
            raise ValueError(f"{provider_name}_api_key_missing")
        if not base_url:
            raise ValueError(f"{provider_name}_base_url_missing")

        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.timeout_sec = timeout_sec
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.provider_name = provider_name
        self.extra_headers = dict(extra_headers or {})

    def build_payload(self, *, system_prompt: str, user_prompt: str) -> dict[str, Any]:
        return {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
            "response_format": {"type": "json_object"},
        }

    def generate_json(
        self,
        *,
        system_prompt: str,
        user_prompt: str,
    ) -> dict[str, Any]:
        logger.info("Requesting lesson JSON from %s model=%s", self.provider_name, self.model)
        envelope = post_json(
            f"{self.base_url}/chat/completions",
            self.build_payload(system_prompt=system_prompt, user_prompt=user_prompt),
            source=self.provider_name,
            timeout_sec=self.timeout_sec,
            headers={"Authorization": f"Bearer {self.api_key}", **self.extra_headers},
        )
        return parse_json_text(self._extract_text(envelope))

    def _extract_text(self, response_json: dict[str, Any]) -> str:
        choices = response_json.get("choices")
        if not isinstance(choices, list) or not choices:
            raise RuntimeError(f"{self.provider_name}_choices_missing")

        first = choices[0] if isinstance(choices[0], dict) else {}
        if first.get("finish_reason") == "length":
            logger.warning("%s output hit max_tokens=%d; JSON is likely truncated", self.provider_name, self.max_tokens)

        content = (first.get("message") or {}).get("content")
        if isinstance(content, list):
            content = "\n".join(
                part["text"]
                for part in content
                if isinstance(part, dict) and isinstance(part.get("text"), str) and part["text"].strip()
            )
        if isinstance(content, str) and content.strip():
            return content

        raise RuntimeError(f"{self.provider_name}_content_missing")
