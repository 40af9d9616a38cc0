from functools import lru_cache
from typing import Any

from fastapi import APIRouter

from esl_planner.core.config import get_settings
from esl_planner.domain.ai import build_image_service
from esl_planner.domain.images import DEFAULT_NEGATIVE_PROMPT, ImageGenerationService
from esl_planner.schemas.lesson import ImageBatchRequest


router = APIRouter(prefix="/api/images", tags=["images"])


@lru_cache(maxsize=1)
def _get_image_service() -> ImageGenerationService:
    return build_image_service(get_settings())


@router.post("/generate")
def generate_images(payload: ImageBatchRequest) -> dict[str, Any]:
    images = _get_image_service().generate_images_batch(
        payload.prompts,
        negative_prompt=payload.negativePrompt or DEFAULT_NEGATIVE_PROMPT,
    )
    return {
        "images": images,
        "successCount": sum(1 for image in images if image is not None),
    }
