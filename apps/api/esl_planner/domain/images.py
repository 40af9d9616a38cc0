"""Section illustration generation through an OpenAI-style images endpoint.

Images decorate a lesson and never gate it: every failure is logged and
reported as ``None`` for that prompt.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any

from esl_planner.core.http import post_json


logger = logging.getLogger(__name__)

DEFAULT_NEGATIVE_PROMPT = "blurry, distorted, text, words, letters, low quality, noisy, artifacts, ugly, deformed"


class ImageGenerationService:
    def __init__(
        self,
        *,
        api_key: str,
        base_url: str,
        model: str,
        timeout_sec: int = 30,
        max_workers: int = 4,
        size: str = "1024x1024",
    ) -> None:
        if not api_key:
            logger.warning("Image API key not provided; image generation is disabled")
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.timeout_sec = timeout_sec
        self.max_workers = max(1, int(max_workers))
        self.size = size

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    def generate_image(
        self,
        prompt: str,
        *,
        negative_prompt: str = DEFAULT_NEGATIVE_PROMPT,
        request_id: str = "image",
    ) -> str | None:
        """Return base64 image data for ``prompt``, or ``None`` on any failure."""
        if not self.enabled:
            logger.info("Image API key not configured, skipping %s", request_id)
            return None
        if not prompt or not prompt.strip():
            logger.warning("Empty image prompt for %s, skipping", request_id)
            return None

        payload = {
            "model": self.model,
            "prompt": prompt.strip(),
            "negative_prompt": negative_prompt,
            "size": self.size,
            "n": 1,
            "response_format": "b64_json",
        }
        try:
            body = self._post_json(payload)
        except Exception as exc:
            logger.error("Image request %s failed: %s", request_id, exc)
            return None

        image = _extract_b64_image(body)
        if image is None:
            logger.warning("Image response for %s did not contain image data", request_id)
            return None
        logger.info("Image generated (%s)", request_id)
        return image

    def generate_images_batch(
        self,
        prompts: list[str],
        *,
        negative_prompt: str = DEFAULT_NEGATIVE_PROMPT,
        request_ids: list[str] | None = None,
    ) -> list[str | None]:
        """Generate one image per prompt concurrently; results keep the input order."""
        if not prompts:
            return []

        ids = [
            request_ids[idx] if request_ids and idx < len(request_ids) else f"batch-{idx}"
            for idx in range(len(prompts))
        ]
        workers = min(self.max_workers, len(prompts))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            results = list(
                executor.map(
                    lambda pair: self.generate_image(
                        pair[0],
                        negative_prompt=negative_prompt,
                        request_id=pair[1],
                    ),
                    zip(prompts, ids),
                )
            )

        successful = sum(1 for item in results if item is not None)
        logger.info("Batch image generation complete: %d/%d successful", successful, len(results))
        return results

    def _post_json(self, payload: dict[str, Any]) -> dict[str, Any]:
        return post_json(
            f"{self.base_url}/images/generations",
            payload,
            source="image_api",
            timeout_sec=self.timeout_sec,
            headers={"Authorization": f"Bearer {self.api_key}", "X-Title": "PlanwiseESL"},
        )


def _extract_b64_image(body: Any) -> str | None:
    if not isinstance(body, dict):
        return None
    data = body.get("data")
    if not isinstance(data, list) or not data:
        return None
    first = data[0]
    if not isinstance(first, dict):
        return None
    image = first.get("b64_json")
    if isinstance(image, str) and image:
        return image
    return None
