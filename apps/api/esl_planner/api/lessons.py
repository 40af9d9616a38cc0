from typing import Any

from fastapi import APIRouter

from esl_planner.schemas.lesson import LessonParameters
from esl_planner.services.lessons.generation_service import generate_lesson_response


router = APIRouter(prefix="/api/lessons", tags=["lessons"])


@router.post("/generate")
def generate_lesson(payload: LessonParameters) -> dict[str, Any]:
    return generate_lesson_response(payload)
