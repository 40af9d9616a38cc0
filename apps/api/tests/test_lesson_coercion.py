import unittest

from esl_planner.services.lessons.coercion import (
    as_non_empty_str,
    coerce_list,
    error_marker,
    first_text_value,
    is_error_marker,
    string_items,
)


class CoerceListTests(unittest.TestCase):
    def test_lists_pass_through_unchanged(self) -> None:
        items = [1, "two", {"three": 3}]

        self.assertIs(coerce_list(items), items)

    def test_json_array_string_is_parsed(self) -> None:
        self.assertEqual(coerce_list('["Start", "Stop", "Wait"]'), ["Start", "Stop", "Wait"])

    def test_json_scalar_string_is_wrapped(self) -> None:
        self.assertEqual(coerce_list('{"term": "waste"}'), [{"term": "waste"}])

    def test_comma_split_is_tried_before_newlines(self) -> None:
        self.assertEqual(coerce_list("reuse, reduce,\nrecycle"), ["reuse", "reduce", "recycle"])

    def test_newline_split_drops_blank_lines(self) -> None:
        self.assertEqual(coerce_list("First question?\n\nSecond question?\n"), ["First question?", "Second question?"])

    def test_plain_string_becomes_single_item(self) -> None:
        self.assertEqual(coerce_list("Why recycle?"), ["Why recycle?"])

    def test_mapping_yields_values(self) -> None:
        self.assertEqual(coerce_list({"q1": "One?", "q2": "Two?"}), ["One?", "Two?"])

    def test_other_values_yield_empty_list(self) -> None:
        for value in (None, 5, 2.5, True):
            with self.subTest(value=value):
                self.assertEqual(coerce_list(value), [])


class TextHelperTests(unittest.TestCase):
    def test_as_non_empty_str_strips_and_falls_back(self) -> None:
        self.assertEqual(as_non_empty_str("  word  ", "x"), "word")
        self.assertEqual(as_non_empty_str("   ", "x"), "x")
        self.assertEqual(as_non_empty_str(None, "x"), "x")
        self.assertEqual(as_non_empty_str(True, "x"), "x")
        self.assertEqual(as_non_empty_str(42, "x"), "42")

    def test_string_items_skips_unreadable_entries(self) -> None:
        self.assertEqual(string_items(["a", "", None, {"x": 1}, 3]), ["a", "3"])

    def test_first_text_value_prefers_named_keys(self) -> None:
        item = {"id": 7, "prompt": "Fallback?", "question": "Preferred?"}

        self.assertEqual(first_text_value(item, "question", "text"), "Preferred?")
        self.assertEqual(first_text_value({"misc": "  ", "other": "Any?"}, "question"), "Any?")
        self.assertEqual(first_text_value({"misc": None}, "question"), "")

    def test_error_markers_are_recognizable(self) -> None:
        marker = error_marker("something broke")

        self.assertEqual(marker, "Error: something broke")
        self.assertTrue(is_error_marker(marker))
        self.assertFalse(is_error_marker("A normal sentence."))
        self.assertFalse(is_error_marker(None))


if __name__ == "__main__":
    unittest.main()
