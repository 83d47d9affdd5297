"""
Tests for the ROML lexer: quote-aware scanning, token kinds, depth and
the line counter.
"""

import unittest

from roml.codec.lexer import (
    TokenKind,
    bracket_groups,
    parse_key_value_line,
    read_key,
    split_unquoted,
    tokenize,
)
from roml.codec.styles import ArrayStyle, Style


class TestScanning(unittest.TestCase):

    def test_split_unquoted(self):
        self.assertEqual(split_unquoted('a:"b:c":d', ":"), ["a", '"b:c"', "d"])
        self.assertEqual(split_unquoted("a||b", "||"), ["a", "b"])

    def test_bracket_groups(self):
        self.assertEqual(bracket_groups("<a><b>"), ["a", "b"])
        self.assertEqual(bracket_groups('<"x>y">'), ['"x>y"'])
        self.assertEqual(bracket_groups("<>"), [""])
        self.assertIsNone(bracket_groups("<a>x"))
        self.assertIsNone(bracket_groups("a"))

    def test_read_key(self):
        self.assertEqual(read_key("name=x"), ("name", False, 4))
        self.assertEqual(read_key("!age:7"), ("age", True, 4))
        self.assertEqual(read_key('"my key"~v'), ("my key", False, 8))
        self.assertIsNone(read_key("=x"))


class TestKeyValueMatchers(unittest.TestCase):

    def check(self, line, key, value, style, prime=False):
        matched = parse_key_value_line(line)
        self.assertIsNotNone(matched, line)
        self.assertEqual(matched.key, key)
        self.assertEqual(matched.value, value)
        self.assertIs(matched.style, style)
        self.assertEqual(matched.prime, prime)

    def test_odd_styles(self):
        self.check('name="Alice"', "name", "Alice", Style.QUOTED)
        self.check("&!b&3", "b", 3, Style.AMPERSAND, prime=True)
        self.check("flag1<true>", "flag1", True, Style.BRACKETS)
        self.check("||tags||x||", "tags", "x", Style.PIPES)
        self.check("::title::a long sentence::", "title", "a long sentence", Style.DOUBLE_COLON)
        self.check("//price//9.5", "price", 9.5, Style.FAKE_COMMENT)
        self.check("@date@2024-01-01@", "date", "2024-01-01", Style.AT_SANDWICH)
        self.check("_k_v_", "k", "v", Style.UNDERSCORE)

    def test_even_styles(self):
        self.check("flag2=no", "flag2", False, Style.EQUALS)
        self.check("b:4", "b", 4, Style.COLON)
        self.check("owner~x", "owner", "x", Style.TILDE)
        self.check("title#long text here", "title", "long text here", Style.HASH)
        self.check("k%1", "k", 1, Style.PERCENT)
        self.check("k$__NULL__", "k", None, Style.DOLLAR)
        self.check("k^v", "k", "v", Style.CARET)
        self.check("k+v", "k", "v", Style.PLUS)

    def test_yes_no_only_in_equals(self):
        self.check("k~yes", "k", "yes", Style.TILDE)
        self.check("k=yes", "k", True, Style.EQUALS)

    def test_quoted_values_stay_strings(self):
        self.check('k="123"', "k", "123", Style.QUOTED)
        self.check('k:"a:b"', "k", "a:b", Style.COLON)
        self.check('//k//""', "k", "", Style.FAKE_COMMENT)

    def test_arrays(self):
        self.check("t||1||b||", "t", [1, "b"], ArrayStyle.PIPES)
        self.check("t||||", "t", [], ArrayStyle.PIPES)
        self.check("t<1><2>", "t", [1, 2], ArrayStyle.BRACKETS)
        self.check("t<x><>", "t", ["x"], ArrayStyle.BRACKETS)
        self.check("t<>", "t", [], ArrayStyle.BRACKETS)
        self.check('t["a,b",1,null]', "t", ["a,b", 1, None], ArrayStyle.JSON_STYLE)
        self.check("t[]", "t", [], ArrayStyle.JSON_STYLE)
        self.check('t:1:"x:y":', "t", [1, "x:y"], ArrayStyle.COLON_DELIM)
        self.check("t:5:", "t", [5], ArrayStyle.COLON_DELIM)
        self.check("t::", "t", [], ArrayStyle.COLON_DELIM)

    def test_unparseable(self):
        self.assertIsNone(parse_key_value_line("???"))
        self.assertIsNone(parse_key_value_line("=x"))
        self.assertIsNone(parse_key_value_line('"open=x'))


class TestTokenize(unittest.TestCase):

    def test_header_token(self):
        tokens = tokenize("~ROML~\n# ~META~ SIEVE_OF_ERATOSTHENES_INVOKED\n!a:2")
        header = tokens[0]
        self.assertIs(header.kind, TokenKind.HEADER)
        self.assertTrue(header.document_marker)
        self.assertTrue(header.prime_marker)
        self.assertEqual(tokens[-1].kind, TokenKind.EOF)

    def test_meta_tag_takes_first_counter_slot(self):
        tokens = tokenize("~ROML~\n# ~META~ SIEVE_OF_ERATOSTHENES_INVOKED\n!a:2\n&!b&3")
        self.assertEqual([(t.key, t.counter, t.line_number) for t in tokens[1:-1]], [("a", 2, 3), ("b", 3, 4)])

    def test_comments_and_blank_lines_do_not_count(self):
        tokens = tokenize("~ROML~\n# a note\n\n&a&1\n# another\nb:4")
        self.assertEqual([t.counter for t in tokens[1:-1]], [1, 2])
        self.assertFalse(tokens[0].prime_marker)

    def test_structure_tokens(self):
        text = "~ROML~\nobj{\n  x:10\n}\nlist[\n  [0]{\n    &a&1\n  }\n]"
        kinds = [t.kind for t in tokenize(text)[1:-1]]
        self.assertEqual(kinds, [
            TokenKind.OBJECT_START,
            TokenKind.KEY_VALUE,
            TokenKind.OBJECT_END,
            TokenKind.ARRAY_START,
            TokenKind.ARRAY_ITEM,
            TokenKind.KEY_VALUE,
            TokenKind.OBJECT_END,
            TokenKind.ARRAY_END,
        ])

    def test_depth(self):
        tokens = tokenize("~ROML~\nobj{\n    x:1\n\ty:2\n}")
        self.assertEqual([t.depth for t in tokens[1:-1]], [0, 2, 1, 0])

    def test_crlf_line_endings(self):
        tokens = tokenize('~ROML~\r\nname="A"\r\n')
        self.assertEqual(tokens[1].value, "A")

    def test_unparseable_lines_are_skipped(self):
        tokens = tokenize("~ROML~\n???\n&a&1")
        self.assertEqual(len(tokens), 3)
        self.assertEqual(tokens[1].counter, 1)

    def test_missing_header(self):
        tokens = tokenize("x:1")
        self.assertFalse(tokens[0].document_marker)
        self.assertEqual(tokens[1].value, 1)


if __name__ == "__main__":
    unittest.main()
