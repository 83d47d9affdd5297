"""
Tests for the encoder: line counter, parity shift from the META tag,
prime prefixes and the document header.
"""

import unittest

from roml.codec import encode
from roml.codec.encoder import DOCUMENT_HEADER, PRIME_MARKER_LINE


def body(roml):
    """Lines after the header (and META tag, if any)."""
    return [line for line in roml.split("\n")[1:] if not line.startswith("#")]


class TestLineCounter(unittest.TestCase):

    def test_alternating_styles_without_primes(self):
        roml = encode({"a": 1, "b": 4, "c": 6})
        self.assertNotIn(PRIME_MARKER_LINE, roml)
        self.assertEqual(body(roml), ["&a&1", "b:4", "&c&6"])

    def test_meta_tag_shifts_parity(self):
        roml = encode({"a": 2, "b": 3, "c": 4})
        self.assertEqual(roml.split("\n"), [DOCUMENT_HEADER, PRIME_MARKER_LINE, "!a:2", "&!b&3", "c:4"])

    def test_nested_object_consumes_counter_slots(self):
        roml = encode({"obj": {"x": 10, "y": 20}, "next": 30})
        self.assertEqual(body(roml), ["obj{", "  x:10", "  &y&20", "}", "&next&30"])

    def test_booleans(self):
        roml = encode({"flag1": True, "flag2": False})
        self.assertEqual(body(roml), ["flag1<true>", "flag2=no"])

    def test_personal_category_on_odd_lines(self):
        self.assertEqual(body(encode({"name": "Alice"})), ['name="Alice"'])
        self.assertEqual(body(encode({"x": 1, "name": "Charlie"})), ["&x&1", "name=Charlie"])

    def test_robert_scenario(self):
        """The META tag takes slot 1, so name lands on an even line."""
        roml = encode({"name": "Robert", "age": 7})
        self.assertEqual(
            roml.split("\n"),
            [DOCUMENT_HEADER, PRIME_MARKER_LINE, "name=Robert", "&!age&7"],
        )


class TestPrimePrefix(unittest.TestCase):

    def test_nested_lists(self):
        roml = encode({"matrix": [[1, 2], [3, 4]]})
        self.assertEqual(roml.split("\n"), [
            DOCUMENT_HEADER,
            PRIME_MARKER_LINE,
            "!matrix[",
            '  !"[0]"[',
            '    "[0]":1',
            '    &!"[1]"&2',
            "  ]",
            '  !"[1]"[',
            '    !"[0]":3',
            '    &"[1]"&4',
            "  ]",
            "]",
        ])

    def test_objects_are_never_prefixed(self):
        roml = encode({"outer": {"p": 5}})
        self.assertIn("outer{", roml)
        self.assertIn("!p", roml)

    def test_one_line_array_prefix(self):
        self.assertEqual(body(encode({"c": [4, 7]})), ["!c:4:7:"])

    def test_strings_never_carry_primes(self):
        roml = encode({"s": "7"})
        self.assertNotIn(PRIME_MARKER_LINE, roml)
        self.assertNotIn("!", roml)


class TestDocumentShape(unittest.TestCase):

    def test_header_is_first_line(self):
        self.assertTrue(encode({"k": "v"}).startswith(DOCUMENT_HEADER + "\n"))

    def test_empty_map(self):
        self.assertEqual(encode({}), DOCUMENT_HEADER + "\n")

    def test_deterministic(self):
        data = {"users": [{"id": 1, "name": "A", "tags": ["x", "y"]}], "total": 13}
        self.assertEqual(encode(data), encode(data))

    def test_top_level_list_uses_wrapper_without_prefix(self):
        roml = encode([2, 3, 5])
        self.assertEqual(body(roml), ['"_items"||2||3||5||'])
        self.assertNotIn(PRIME_MARKER_LINE, roml)

    def test_top_level_scalar(self):
        self.assertEqual(body(encode(7)), ['&"_value"&7'])

    def test_circular_reference_raises(self):
        data = {}
        data["self"] = data
        with self.assertRaises(ValueError):
            encode(data)


if __name__ == "__main__":
    unittest.main()
