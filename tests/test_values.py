"""
Tests for the value model: normalization, number text and quoting.
"""

import datetime
import unittest
from decimal import Decimal

from roml.codec.values import (
    convert_value_text,
    escape,
    format_number,
    is_ambiguous_string,
    is_quoted_span,
    normalize_value,
    parse_number,
    quote,
    unescape,
)


class TestNormalizeValue(unittest.TestCase):

    def test_json_values_pass_through(self):
        data = {"a": [1, 2.5, "x", None, True]}
        self.assertEqual(normalize_value(data), data)

    def test_tuple_becomes_list(self):
        self.assertEqual(normalize_value((1, 2)), [1, 2])

    def test_non_finite_floats_become_null(self):
        self.assertIsNone(normalize_value(float("nan")))
        self.assertIsNone(normalize_value(float("inf")))

    def test_keys_become_strings(self):
        self.assertEqual(normalize_value({1: "a"}), {"1": "a"})

    def test_decimal_and_datetime(self):
        self.assertEqual(normalize_value(Decimal("1.5")), 1.5)
        self.assertEqual(normalize_value(datetime.date(2024, 1, 2)), "2024-01-02")

    def test_circular_reference(self):
        data = {"a": []}
        data["a"].append(data)
        with self.assertRaises(ValueError):
            normalize_value(data)

    def test_shared_reference_is_not_circular(self):
        shared = [1]
        self.assertEqual(normalize_value({"a": shared, "b": shared}), {"a": [1], "b": [1]})


class TestNumberText(unittest.TestCase):

    def test_format_number(self):
        self.assertEqual(format_number(42), "42")
        self.assertEqual(format_number(3.0), "3")
        self.assertEqual(format_number(0.1), "0.1")
        self.assertEqual(format_number(1e20), "1e+20")

    def test_parse_number_accepts_canonical_text(self):
        self.assertEqual(parse_number("42"), 42)
        self.assertEqual(parse_number("-7"), -7)
        self.assertEqual(parse_number("3.14"), 3.14)

    def test_parse_number_rejects_non_canonical_text(self):
        for text in ("1.50", "-0", "007", "1_000", " 7", "1e5", "nan", "inf", "abc", ""):
            self.assertIsNone(parse_number(text), text)


class TestQuoting(unittest.TestCase):

    def test_ambiguous_strings(self):
        for text in ("42", "3.14", "true", "false", "null", "yes", "no", "__NULL__", "__EMPTY__", "", "  ", "a\nb"):
            self.assertTrue(is_ambiguous_string(text), text)

    def test_plain_strings(self):
        for text in ("hello", "1.50", "Robert", "a b"):
            self.assertFalse(is_ambiguous_string(text), text)

    def test_escape_round_trip(self):
        text = 'a"b\\c\nd\te\r'
        self.assertEqual(unescape(escape(text)), text)
        self.assertEqual(quote('say "hi"'), '"say \\"hi\\""')

    def test_is_quoted_span(self):
        self.assertTrue(is_quoted_span('"abc"'))
        self.assertTrue(is_quoted_span('"a\\"b"'))
        self.assertFalse(is_quoted_span('"a"b"'))
        self.assertFalse(is_quoted_span('"abc'))


class TestConvertValueText(unittest.TestCase):

    def test_quoted_text_is_always_a_string(self):
        self.assertEqual(convert_value_text('"true"'), "true")
        self.assertEqual(convert_value_text('"42"'), "42")
        self.assertEqual(convert_value_text('""'), "")

    def test_unquoted_literals(self):
        self.assertIs(convert_value_text("true"), True)
        self.assertIs(convert_value_text("false"), False)
        self.assertIsNone(convert_value_text("__NULL__"))
        self.assertIsNone(convert_value_text("__UNDEFINED__"))
        self.assertEqual(convert_value_text("__EMPTY__"), "")
        self.assertEqual(convert_value_text("12"), 12)
        self.assertEqual(convert_value_text("hello"), "hello")

    def test_yes_no_only_when_enabled(self):
        self.assertEqual(convert_value_text("yes"), "yes")
        self.assertIs(convert_value_text("yes", yes_no=True), True)
        self.assertIs(convert_value_text("no", yes_no=True), False)


if __name__ == "__main__":
    unittest.main()
