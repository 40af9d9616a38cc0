"""Model providers, the backpressured AI service and their factories."""

from esl_planner.domain.ai.factory import build_ai_service, build_image_service
from esl_planner.domain.ai.service import AIService

__all__ = ["AIService", "build_ai_service", "build_image_service"]
