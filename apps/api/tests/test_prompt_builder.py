import json
import unittest

from esl_planner.schemas.lesson import LessonParameters
from esl_planner.services.lessons.prompt_builder import (
    SYSTEM_PROMPT,
    build_lesson_prompts,
    level_description,
    question_count_for_level,
)


class PromptBuilderTests(unittest.TestCase):
    def test_question_count_scales_with_level(self) -> None:
        self.assertEqual(question_count_for_level("A1"), 3)
        self.assertEqual(question_count_for_level("B2"), 4)
        self.assertEqual(question_count_for_level("C2"), 5)
        self.assertEqual(level_description("C1"), "Advanced")

    def test_user_prompt_carries_lesson_parameters(self) -> None:
        params = LessonParameters(cefrLevel="A2", topic="Weekend plans", focus="speaking", lessonLength=45)

        system_prompt, user_prompt = build_lesson_prompts(params)

        self.assertEqual(system_prompt, SYSTEM_PROMPT)
        self.assertIn("LESSON SPECIFICATIONS", user_prompt)
        self.assertIn('Topic: "Weekend plans"', user_prompt)
        self.assertIn("Lesson Length: 45 minutes", user_prompt)
        self.assertIn("Additional notes: None", user_prompt)
        self.assertIn("Elementary (A2)", user_prompt)
        self.assertIn("exactly 3 comprehension questions", user_prompt)
        self.assertLess(user_prompt.index("FIRST"), user_prompt.index("SECOND"))
        self.assertLess(user_prompt.index("SECOND"), user_prompt.index("THIRD"))

    def test_embedded_structure_is_valid_json_with_all_sections(self) -> None:
        _, user_prompt = build_lesson_prompts(LessonParameters(cefrLevel="C1", topic="Space"))
        start = user_prompt.index("REQUIRED JSON STRUCTURE:\n") + len("REQUIRED JSON STRUCTURE:\n")
        end = user_prompt.index("\n\nReplace every placeholder")

        shape = json.loads(user_prompt[start:end])

        self.assertEqual(
            [section["type"] for section in shape["sections"]],
            ["warmup", "reading", "vocabulary", "comprehension", "sentenceFrames", "discussion", "quiz"],
        )
        self.assertEqual(len(shape["sections"][3]["questions"]), 5)
        self.assertEqual(shape["level"], "C1")


if __name__ == "__main__":
    unittest.main()
