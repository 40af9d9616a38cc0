from esl_planner.core.config import Settings
from esl_planner.domain.ai.providers.gemini import GeminiProvider
from esl_planner.domain.ai.providers.openai import OpenAIProvider
from esl_planner.domain.ai.service import AIService
from esl_planner.domain.images import ImageGenerationService


def build_ai_service(settings: Settings) -> AIService:
    primary = _build_primary_provider(settings)
    return AIService(
        primary=primary,
        max_concurrency=settings.ai_max_concurrency,
        acquire_timeout_ms=settings.ai_backpressure_acquire_timeout_ms,
    )


def build_image_service(settings: Settings) -> ImageGenerationService:
    return ImageGenerationService(
        api_key=settings.image_api_key,
        base_url=settings.image_base_url,
        model=settings.image_model,
        timeout_sec=settings.image_timeout_sec,
        max_workers=settings.image_max_workers,
    )


def _build_primary_provider(settings: Settings) -> GeminiProvider | OpenAIProvider:
    if settings.ai_provider == "gemini":
        return GeminiProvider(
            api_key=settings.gemini_api_key,
            model=settings.gemini_model,
            timeout_sec=settings.ai_request_timeout_sec,
            temperature=settings.ai_temperature,
        )

    compatible = {
        "openai": (settings.openai_api_key, settings.openai_model, settings.openai_base_url),
        "qwen": (settings.qwen_api_key, settings.qwen_model, settings.qwen_base_url),
        "openrouter": (settings.openrouter_api_key, settings.openrouter_model, settings.openrouter_base_url),
        "fireworks": (settings.fireworks_api_key, settings.fireworks_model, settings.fireworks_base_url),
    }
    if settings.ai_provider in compatible:
        api_key, model, base_url = compatible[settings.ai_provider]
        extra_headers = {"X-Title": "PlanwiseESL"} if settings.ai_provider == "openrouter" else None
        return OpenAIProvider(
            api_key=api_key,
            model=model,
            base_url=base_url,
            timeout_sec=settings.ai_request_timeout_sec,
            temperature=settings.ai_temperature,
            provider_name=settings.ai_provider,
            extra_headers=extra_headers,
        )

    raise ValueError(f"unsupported_ai_provider:{settings.ai_provider}")
