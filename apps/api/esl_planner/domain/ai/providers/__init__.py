"""Chat model providers."""

from esl_planner.domain.ai.providers.common import ModelOutputParseError
from esl_planner.domain.ai.providers.gemini import GeminiProvider
from esl_planner.domain.ai.providers.openai import OpenAIProvider

__all__ = ["GeminiProvider", "ModelOutputParseError", "OpenAIProvider"]
