import logging
from contextlib import contextmanager
from threading import BoundedSemaphore
from typing import Any, Iterator

from esl_planner.domain.ai.providers.base import StructuredAIProvider


logger = logging.getLogger(__name__)


class AIService:
    """Bounds concurrent model calls across requests; each call is otherwise independent."""

    def __init__(
        self,
        *,
        primary: StructuredAIProvider,
        max_concurrency: int = 4,
        acquire_timeout_ms: int = 200,
    ) -> None:
        self.primary = primary
        self._semaphore = BoundedSemaphore(value=max(1, int(max_concurrency)))
        self._acquire_timeout_sec = max(0.01, int(acquire_timeout_ms) / 1000)

    @property
    def provider_name(self) -> str:
        return getattr(self.primary, "provider_name", "unknown")

    @contextmanager
    def _slot(self) -> Iterator[None]:
        if not self._semaphore.acquire(timeout=self._acquire_timeout_sec):
            logger.warning("AI backpressure: %s concurrency slots busy", self.provider_name)
            raise RuntimeError("ai_backpressure_busy")
        try:
            yield
        finally:
            self._semaphore.release()

    def generate_json(self, *, system_prompt: str, user_prompt: str) -> dict[str, Any]:
        """One provider call; every failure surfaces as ``RuntimeError("ai_primary_failed:<reason>")``."""
        with self._slot():
            try:
                return self.primary.generate_json(system_prompt=system_prompt, user_prompt=user_prompt)
            except Exception as exc:
                raise RuntimeError(f"ai_primary_failed:{exc}") from exc
