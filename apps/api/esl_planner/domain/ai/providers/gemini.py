import logging
from typing import Any
from urllib import parse

from esl_planner.core.http import post_json
from esl_planner.domain.ai.providers.common import parse_json_text


logger = logging.getLogger(__name__)

GEMINI_API_BASE = "https://generativelanguage.googleapis.com/v1beta/models"

_BLOCKED_FINISH_REASONS = {"SAFETY", "BLOCKLIST", "PROHIBITED_CONTENT"}


class GeminiProvider:
    provider_name = "gemini"

    def __init__(
        self,
        *,
        api_key: str,
        model: str,
        timeout_sec: int = 60,
        temperature: float = 0.5,
    ) -> None:
        if not api_key:
            raise ValueError("gemini_api_key_missing")
        self.api_key = api_key
        self.model = model
        self.timeout_sec = timeout_sec
        self.temperature = temperature

    @property
    def endpoint(self) -> str:
        return f"{GEMINI_API_BASE}/{parse.quote(self.model)}:generateContent?key={parse.quote(self.api_key)}"

    def build_payload(self, *, system_prompt: str, user_prompt: str) -> dict[str, Any]:
        # The system prompt goes in systemInstruction rather than being glued onto the user turn.
        return {
            "systemInstruction": {"parts": [{"text": system_prompt}]},
            "contents": [{"role": "user", "parts": [{"text": user_prompt}]}],
            "generationConfig": {
                "responseMimeType": "application/json",
                "temperature": self.temperature,
            },
        }

    def generate_json(
        self,
        *,
        system_prompt: str,
        user_prompt: str,
    ) -> dict[str, Any]:
        logger.info("Requesting lesson JSON from gemini model=%s", self.model)
        envelope = post_json(
            self.endpoint,
            self.build_payload(system_prompt=system_prompt, user_prompt=user_prompt),
            source=self.provider_name,
            timeout_sec=self.timeout_sec,
        )
        return parse_json_text(self._extract_text(envelope))

    @staticmethod
    def _extract_text(response_json: dict[str, Any]) -> str:
        candidates = response_json.get("candidates")
        if not isinstance(candidates, list) or not candidates:
            feedback = response_json.get("promptFeedback") or {}
            if feedback.get("blockReason"):
                raise RuntimeError(f"gemini_prompt_blocked:{feedback['blockReason']}")
            raise RuntimeError("gemini_candidates_missing")

        first = candidates[0]
        finish_reason = first.get("finishReason")
        if finish_reason in _BLOCKED_FINISH_REASONS:
            raise RuntimeError(f"gemini_content_blocked:{finish_reason}")

        parts = (first.get("content") or {}).get("parts")
        if not isinstance(parts, list):
            raise RuntimeError("gemini_parts_missing")

        texts = [part["text"] for part in parts if isinstance(part, dict) and isinstance(part.get("text"), str)]
        text = "".join(texts).strip()
        if not text:
            raise RuntimeError("gemini_text_missing")
        return text
