"""Tests for JSON extraction and validation logic."""
import unittest

from foodmatch.llm.parser import extract_json, validate_urgency_json, validate_value_json


class TestExtractJSON(unittest.TestCase):

    def test_clean_json(self):
        result = extract_json('{"urgency": "high", "reason": "today"}')
        self.assertIsNotNone(result)
        self.assertEqual(result["urgency"], "high")

    def test_markdown_fenced(self):
        text = '```json\n{"estimated_value": 8.5, "reason": "a dozen eggs"}\n```'
        result = extract_json(text)
        self.assertIsNotNone(result)
        self.assertEqual(result["estimated_value"], 8.5)

    def test_extra_text_around(self):
        text = (
            'Here is my answer:\n'
            '{"urgency": "optional", "reason": "no rush"}\n'
            'Hope that helps!'
        )
        result = extract_json(text)
        self.assertIsNotNone(result)
        self.assertEqual(result["urgency"], "optional")

    def test_pure_garbage(self):
        self.assertIsNone(extract_json("This is not JSON at all"))

    def test_empty_string(self):
        self.assertIsNone(extract_json(""))
        self.assertIsNone(extract_json(None))

    def test_repair_single_quotes(self):
        result = extract_json("{'estimated_value': 42, 'reason': 'bulk rice'}")
        self.assertIsNotNone(result)
        self.assertEqual(result["estimated_value"], 42)

    def test_repair_trailing_comma(self):
        result = extract_json('{"urgency": "normal", "reason": "weekly shop",}')
        self.assertIsNotNone(result)
        self.assertEqual(result["urgency"], "normal")

    def test_repair_unquoted_keys(self):
        result = extract_json('{urgency: "critical", reason: "nothing to eat"}')
        self.assertIsNotNone(result)
        self.assertEqual(result["urgency"], "critical")

    def test_top_level_list_rejected(self):
        self.assertIsNone(extract_json('["high"]'))


class TestValidateUrgency(unittest.TestCase):

    def test_valid_label_is_normalised(self):
        obj = {"urgency": "  Critical "}
        valid, reason = validate_urgency_json(obj)
        self.assertTrue(valid, reason)
        self.assertEqual(obj["urgency"], "critical")

    def test_missing_field(self):
        valid, reason = validate_urgency_json({"reason": "unclear"})
        self.assertFalse(valid)
        self.assertIn("urgency", reason)

    def test_unknown_label(self):
        valid, _ = validate_urgency_json({"urgency": "extreme"})
        self.assertFalse(valid)


class TestValidateValue(unittest.TestCase):

    def test_number(self):
        obj = {"estimated_value": 7}
        self.assertEqual(validate_value_json(obj), (True, ""))
        self.assertEqual(obj["estimated_value"], 7.0)

    def test_dollar_string(self):
        obj = {"estimated_value": "$3.25"}
        valid, _ = validate_value_json(obj)
        self.assertTrue(valid)
        self.assertEqual(obj["estimated_value"], 3.25)

    def test_rejects_non_positive(self):
        self.assertFalse(validate_value_json({"estimated_value": 0})[0])
        self.assertFalse(validate_value_json({"estimated_value": -4})[0])

    def test_rejects_non_numeric(self):
        self.assertFalse(validate_value_json({"estimated_value": "cheap"})[0])
        self.assertFalse(validate_value_json({"estimated_value": True})[0])
        self.assertFalse(validate_value_json({"estimated_value": None})[0])

    def test_missing_field(self):
        self.assertFalse(validate_value_json({})[0])


if __name__ == "__main__":
    unittest.main()
