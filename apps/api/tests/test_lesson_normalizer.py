import unittest
from typing import Any

from esl_planner.schemas.lesson import (
    ComprehensionSection,
    ReadingSection,
    VocabularySection,
    WarmupSection,
)
from esl_planner.services.lessons.coercion import is_error_marker
from esl_planner.services.lessons.preprocessor import preprocess_lesson_payload
from esl_planner.services.lessons.reading import count_sentences
from esl_planner.services.lessons.section_normalizer import (
    MISSING_OPTIONS,
    UNMATCHED_ANSWER,
    UNREADABLE_DISCUSSION_QUESTION,
    normalize_discussion,
    normalize_lesson,
    normalize_question_entry,
    normalize_section,
    normalize_sentence_frames,
    normalize_vocabulary,
    normalize_vocabulary_entry,
    resolve_correct_answer,
)

from lesson_fixtures import lesson_with_reading, passage, well_formed_lesson


def _normalize(raw: Any):
    return normalize_lesson(preprocess_lesson_payload(raw))


def _messy_lesson() -> dict[str, Any]:
    return {
        "title": "Plants",
        "level": "a2",
        "estimatedTime": "45",
        "sections": [
            {"type": "Warm Up", "questions": "Do you have plants?\nDo you water them?"},
            {"type": "reading", "text": passage(18, topic="plants")},
            {"type": "vocabulary", "words": 5},
            {
                "type": "comprehension",
                "questions": [
                    "What is photosynthesis?",
                    {"question": "What do plants need?", "options": "Light, Sand", "correctAnswer": "Water"},
                ],
            },
            {"type": "discussion", "questions": [{"text": "Why are plants green?"}, {"notes": None}]},
            {"type": "sentence_frames", "frames": 3},
        ],
    }


class VocabularyNormalizationTests(unittest.TestCase):
    def test_word_count_becomes_single_error_entry(self) -> None:
        section, warnings = normalize_vocabulary({"type": "vocabulary", "words": 5})

        self.assertIsInstance(section, VocabularySection)
        self.assertEqual(len(section.words), 1)
        entry = section.words[0]
        for value in (entry.term, entry.partOfSpeech, entry.definition, entry.example):
            self.assertTrue(is_error_marker(value))
        self.assertIn("(5)", entry.definition)
        self.assertEqual(warnings, ["vocabulary: word count returned instead of entries"])

    def test_bare_term_keeps_term_and_marks_the_rest(self) -> None:
        entry, repaired = normalize_vocabulary_entry("  habitat ")

        self.assertTrue(repaired)
        self.assertEqual(entry.term, "habitat")
        self.assertTrue(is_error_marker(entry.definition))
        self.assertIn('"habitat"', entry.example)

    def test_word_alias_and_stringified_collocations(self) -> None:
        entry, repaired = normalize_vocabulary_entry(
            {
                "word": "soil",
                "partOfSpeech": "noun",
                "definition": "The top layer of earth.",
                "example": "Plants grow in soil.",
                "collocations": "rich soil, dry soil",
                "level": "A2",
            }
        )

        self.assertFalse(repaired)
        self.assertEqual(entry.term, "soil")
        self.assertEqual(entry.collocations, ["rich soil", "dry soil"])
        self.assertEqual(entry.model_dump()["level"], "A2")
        self.assertNotIn("word", entry.model_dump())

    def test_missing_definition_is_marked_not_invented(self) -> None:
        entry, repaired = normalize_vocabulary_entry({"term": "leaf", "partOfSpeech": "noun", "example": "A leaf fell."})

        self.assertTrue(repaired)
        self.assertEqual(entry.definition, 'Error: No definition was provided for "leaf".')

    def test_entries_without_term_or_of_wrong_type_are_marked(self) -> None:
        section, warnings = normalize_vocabulary({"words": [{"definition": "orphan"}, 7, ""]})

        self.assertEqual(len(section.words), 3)
        self.assertTrue(all(is_error_marker(word.term) for word in section.words))
        self.assertEqual(warnings, ["vocabulary: 3 incomplete entries marked"])

    def test_missing_words_produce_one_error_entry(self) -> None:
        section, warnings = normalize_vocabulary({})

        self.assertEqual(len(section.words), 1)
        self.assertEqual(warnings, ["vocabulary: entries missing"])


class QuestionNormalizationTests(unittest.TestCase):
    def test_bare_string_question_gets_error_options(self) -> None:
        entry, repaired = normalize_question_entry("What is photosynthesis?")

        self.assertTrue(repaired)
        self.assertEqual(entry.question, "What is photosynthesis?")
        self.assertEqual(entry.options, [MISSING_OPTIONS])
        self.assertIn(entry.correctAnswer, entry.options)
        self.assertTrue(all(is_error_marker(option) for option in entry.options))

    def test_answer_forms_resolve_to_option_text(self) -> None:
        options = ["Sun", "Water", "Soil"]
        cases = [("Water", "Water"), ("water ", "Water"), (2, "Soil"), ("b", "Water"), ("C", "Soil"), ("0", "Sun")]
        for raw, expected in cases:
            with self.subTest(raw=raw):
                self.assertEqual(resolve_correct_answer(raw, options), expected)

    def test_unresolvable_answers_return_none(self) -> None:
        options = ["Sun", "Water"]
        for raw in (None, True, 5, "z", "Moon", "", 1.0):
            with self.subTest(raw=raw):
                self.assertIsNone(resolve_correct_answer(raw, options))

    def test_unmatched_answer_appends_marker_option(self) -> None:
        entry, repaired = normalize_question_entry(
            {"question": "What do plants need?", "options": ["Light", "Sand"], "correctAnswer": "Water"}
        )

        self.assertTrue(repaired)
        self.assertEqual(entry.options, ["Light", "Sand", UNMATCHED_ANSWER])
        self.assertEqual(entry.correctAnswer, UNMATCHED_ANSWER)

    def test_object_options_are_read_by_their_text(self) -> None:
        entry, repaired = normalize_question_entry(
            {
                "question": "What is the capital of France?",
                "options": [{"label": "A", "text": "Paris"}, {"label": "B", "text": "Rome"}, {"option": "Madrid"}],
                "correctAnswer": "B",
            }
        )

        self.assertFalse(repaired)
        self.assertEqual(entry.options, ["Paris", "Rome", "Madrid"])
        self.assertEqual(entry.correctAnswer, "Rome")

    def test_answer_key_aliases_and_extra_fields_are_kept(self) -> None:
        entry, repaired = normalize_question_entry(
            {"id": 3, "text": "Pick one", "options": ["A cat", "A dog"], "answer": "a"}
        )

        self.assertFalse(repaired)
        self.assertEqual(entry.question, "Pick one")
        self.assertEqual(entry.correctAnswer, "A cat")
        dumped = entry.model_dump()
        self.assertEqual(dumped["id"], 3)
        self.assertNotIn("answer", dumped)

    def test_comprehension_section_without_questions_is_marked(self) -> None:
        section, warnings = normalize_section({"type": "comprehension", "questions": None})

        self.assertIsInstance(section, ComprehensionSection)
        self.assertEqual(len(section.questions), 1)
        self.assertTrue(is_error_marker(section.questions[0].question))
        self.assertEqual(warnings, ["comprehension: questions missing"])


class OtherSectionTests(unittest.TestCase):
    def test_discussion_items_are_flattened_to_strings(self) -> None:
        section, warnings = normalize_discussion(
            {"questions": ["Why?", {"question": "How?"}, {"notes": None}, 9, "  "]}
        )

        self.assertEqual(section.questions, ["Why?", "How?", UNREADABLE_DISCUSSION_QUESTION, UNREADABLE_DISCUSSION_QUESTION])
        self.assertEqual(warnings, ["discussion: 2 unreadable question(s) replaced"])

    def test_sentence_frames_accept_strings_and_aliases(self) -> None:
        section, warnings = normalize_sentence_frames(
            {"frames": ["I think _____.", {"frame": "I prefer _____ because _____.", "examples": "I prefer tea because it is warm."}, 4]}
        )

        self.assertEqual([frame.pattern for frame in section.frames], ["I think _____.", "I prefer _____ because _____."])
        self.assertEqual(section.frames[1].examples, ["I prefer tea because it is warm."])
        self.assertEqual(warnings, [])

    def test_empty_sentence_frames_become_error_frame(self) -> None:
        section, warnings = normalize_sentence_frames({"frames": 3})

        self.assertEqual(len(section.frames), 1)
        self.assertTrue(is_error_marker(section.frames[0].pattern))
        self.assertEqual(warnings, ["sentenceFrames: frames missing"])

    def test_unknown_type_is_rejected(self) -> None:
        with self.assertRaises(ValueError):
            normalize_section({"type": "grammar"})

    def test_section_titles_default_when_missing(self) -> None:
        section, _ = normalize_section({"type": "discussion", "title": "  ", "questions": ["Why?"]})

        self.assertEqual(section.title, "Discussion Questions")


class LessonNormalizationTests(unittest.TestCase):
    def test_messy_payload_is_repaired_into_typed_sections(self) -> None:
        lesson = _normalize(_messy_lesson())

        self.assertEqual(lesson.level, "A2")
        self.assertEqual(lesson.estimatedTime, 45)
        self.assertEqual([s.type for s in lesson.sections], ["warmup", "reading", "vocabulary", "comprehension", "discussion", "sentenceFrames"])

        warmup = lesson.sections[0]
        self.assertIsInstance(warmup, WarmupSection)
        self.assertEqual(warmup.questions, ["Do you have plants?", "Do you water them?"])

        reading = lesson.sections[1]
        self.assertIsInstance(reading, ReadingSection)
        self.assertEqual([count_sentences(p) for p in reading.paragraphs], [4, 4, 4, 3, 3])
        self.assertNotIn("text", reading.model_dump())

        comprehension = lesson.sections[3]
        self.assertEqual(comprehension.questions[0].options, [MISSING_OPTIONS])
        self.assertEqual(comprehension.questions[1].correctAnswer, UNMATCHED_ANSWER)
        self.assertTrue(lesson.warnings)

    def test_short_reading_text_is_kept_whole_and_warned(self) -> None:
        lesson = _normalize(lesson_with_reading({"text": passage(6)}))

        reading = lesson.first_section("reading")
        self.assertEqual(sum(count_sentences(p) for p in reading.paragraphs), 6)
        self.assertIn("reading: reading passage has only 6 sentences (expected at least 15)", lesson.warnings)

    def test_missing_reading_becomes_error_placeholder(self) -> None:
        raw = well_formed_lesson()
        raw["sections"] = [s for s in raw["sections"] if s["type"] != "reading"]

        lesson = _normalize(raw)

        reading = lesson.first_section("reading")
        self.assertIsInstance(reading, ReadingSection)
        self.assertTrue(is_error_marker(reading.paragraphs[0]))
        self.assertTrue(is_error_marker(reading.content))

    def test_empty_warmup_vocabulary_is_linked_from_vocabulary_terms(self) -> None:
        raw = well_formed_lesson()
        raw["sections"][0]["targetVocabulary"] = []

        lesson = _normalize(raw)

        self.assertEqual(lesson.first_section("warmup").targetVocabulary, ["waste", "recycle"])
        self.assertIn("warmup: target vocabulary copied from the vocabulary section", lesson.warnings)

    def test_well_formed_lesson_is_a_fixed_point(self) -> None:
        raw = well_formed_lesson()

        first = _normalize(raw).model_dump(mode="json")

        self.assertEqual(first["warnings"], [])
        self.assertEqual(_normalize(first).model_dump(mode="json"), first)
        self._assert_contains(first, raw)

    def test_repaired_output_is_stable_on_a_second_pass(self) -> None:
        first = _normalize(_messy_lesson()).model_dump(mode="json")
        second = _normalize(first).model_dump(mode="json")

        first.pop("warnings")
        second.pop("warnings")
        self.assertEqual(second, first)

    def test_sections_with_no_recoverable_content_are_error_marked(self) -> None:
        lesson = _normalize({"sections": [{"type": "vocabulary", "words": "   "}, {"type": "quiz", "questions": 4}]})

        for section in lesson.sections:
            dumped = str(section.model_dump())
            self.assertIn("Error:", dumped, section.type)

    def _assert_contains(self, actual: Any, expected: Any) -> None:
        if isinstance(expected, dict):
            for key, value in expected.items():
                self.assertIn(key, actual)
                self._assert_contains(actual[key], value)
        elif isinstance(expected, list):
            self.assertEqual(len(actual), len(expected))
            for actual_item, expected_item in zip(actual, expected):
                self._assert_contains(actual_item, expected_item)
        else:
            self.assertEqual(actual, expected)


if __name__ == "__main__":
    unittest.main()
