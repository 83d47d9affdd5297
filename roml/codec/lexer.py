"""
ROML lexer: turns document text into a flat list of typed tokens.

Each content line becomes exactly one token. Key-value lines are matched
by shape against the same Style table the encoder renders from, using a
quote-aware scanner so that delimiters inside quoted keys and values are
never mistaken for structure.
"""

from __future__ import annotations
import json
import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Iterator

from roml.codec.encoder import COMMENT_MARKER, DOCUMENT_HEADER, PRIME_MARKER_PHRASE
from roml.codec.styles import (
    EVEN_SEPARATORS,
    PRIME_PREFIX,
    SANDWICH_STYLES,
    ArrayStyle,
    Style,
    is_bare_key_char,
)
from roml.codec.values import (
    JsonValue,
    convert_value_text,
    find_quote_end,
    is_quoted_span,
    unescape,
)

ARRAY_ITEM_PATTERN = re.compile(r'^\[([0-9]+)\]\{$')


class TokenKind(Enum):
    HEADER = "header"
    KEY_VALUE = "key_value"
    OBJECT_START = "object_start"
    OBJECT_END = "object_end"
    ARRAY_START = "array_start"
    ARRAY_END = "array_end"
    ARRAY_ITEM = "array_item"
    EOF = "eof"


@dataclass
class Token:
    kind: TokenKind
    text: str
    line_number: int
    depth: int = 0
    counter: int = 0
    key: str | None = None
    value: JsonValue = None
    style: Style | ArrayStyle | None = None
    prime_prefix: bool = False
    # Header token only
    document_marker: bool = False
    prime_marker: bool = False
    payload: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class _KeyValue:
    key: str
    value: JsonValue
    style: Style | ArrayStyle
    prime: bool


# ---------------------------------------------------------------------------
# Quote-aware scanning
# ---------------------------------------------------------------------------

def unquoted_positions(text: str, start: int = 0) -> Iterator[int]:
    """Yield the indexes of characters outside double-quoted spans (quotes excluded)."""
    in_quote = False
    escaped = False
    for i in range(start, len(text)):
        c = text[i]
        if in_quote:
            if escaped:
                escaped = False
            elif c == "\\":
                escaped = True
            elif c == '"':
                in_quote = False
            continue
        if c == '"':
            in_quote = True
            continue
        yield i


def find_unquoted(text: str, sep: str, start: int = 0) -> int:
    for i in unquoted_positions(text, start):
        if text.startswith(sep, i):
            return i
    return -1


def split_unquoted(text: str, sep: str) -> list[str]:
    """Split on every occurrence of sep that is not inside quotes."""
    parts: list[str] = []
    start = 0
    for i in unquoted_positions(text):
        if i < start:
            continue
        if text.startswith(sep, i):
            parts.append(text[start:i])
            start = i + len(sep)
    parts.append(text[start:])
    return parts


def bracket_groups(text: str) -> list[str] | None:
    """
    Split "<a><b>..." into ["a", "b", ...].

    A group ends at an unquoted ">" that is followed by "<" or by the end of
    the text. Returns None when the text is not a run of bracket groups.
    """
    if not text.startswith("<"):
        return None
    groups: list[str] = []
    start = 1
    for i in unquoted_positions(text, 1):
        if i < start:
            continue
        if text[i] == ">" and (i + 1 == len(text) or text[i + 1] == "<"):
            groups.append(text[start:i])
            start = i + 2
    if start != len(text) + 1:
        return None
    return groups


def read_key(line: str, pos: int = 0) -> tuple[str, bool, int] | None:
    """
    Read an optional prime prefix and a bare or quoted key at pos.

    Returns (key, prime_prefix, end_position) or None.
    """
    prime = False
    if line.startswith(PRIME_PREFIX, pos):
        prime = True
        pos += len(PRIME_PREFIX)
    if pos >= len(line):
        return None
    if line[pos] == '"':
        end = find_quote_end(line, pos)
        if end < 0:
            return None
        return unescape(line[pos + 1:end]), prime, end + 1
    start = pos
    while pos < len(line) and is_bare_key_char(line[pos]):
        pos += 1
    if pos == start:
        return None
    return line[start:pos], prime, pos


def _split_key(line: str) -> tuple[str, bool, str] | None:
    head = read_key(line)
    if head is None:
        return None
    key, prime, end = head
    return key, prime, line[end:]


# ---------------------------------------------------------------------------
# Key-value matchers, tried in order
# ---------------------------------------------------------------------------

def _match_quoted(line: str) -> _KeyValue | None:
    """key="value" """
    parts = _split_key(line)
    if parts is None:
        return None
    key, prime, rest = parts
    if rest.startswith('="') and is_quoted_span(rest[1:]):
        return _KeyValue(key, unescape(rest[2:-1]), Style.QUOTED, prime)
    return None


def _match_sandwich(line: str, style: Style) -> _KeyValue | None:
    """opener key separator value closer"""
    if not line.startswith(style.opener):
        return None
    head = read_key(line, len(style.opener))
    if head is None:
        return None
    key, prime, end = head
    if not line.startswith(style.separator, end):
        return None
    body = line[end + len(style.separator):]
    if style.closer:
        if len(body) < len(style.closer) or not body.endswith(style.closer):
            return None
        body = body[:len(body) - len(style.closer)]
    return _KeyValue(key, convert_value_text(body), style, prime)


def _match_ampersand(line: str) -> _KeyValue | None:
    return _match_sandwich(line, Style.AMPERSAND)


def _match_angle(line: str) -> _KeyValue | None:
    """key<value> with exactly one non-empty group"""
    parts = _split_key(line)
    if parts is None:
        return None
    key, prime, rest = parts
    groups = bracket_groups(rest)
    if groups is None or len(groups) != 1 or groups[0] == "":
        return None
    return _KeyValue(key, convert_value_text(groups[0]), Style.BRACKETS, prime)


def _match_separator(line: str) -> _KeyValue | None:
    """key=value, key:value, key~value, ... (first separator after the key)"""
    parts = _split_key(line)
    if parts is None:
        return None
    key, prime, rest = parts
    style = EVEN_SEPARATORS.get(rest[:1])
    if style is None:
        return None
    text = rest[1:]
    # key:a:b is a colon-delimited array, not a colon pair
    if style is Style.COLON and find_unquoted(text, ":") >= 0:
        return None
    return _KeyValue(key, convert_value_text(text, yes_no=style is Style.EQUALS), style, prime)


def _match_array(line: str) -> _KeyValue | None:
    parts = _split_key(line)
    if parts is None:
        return None
    key, prime, rest = parts

    if rest.startswith("||"):
        if len(rest) < 4 or not rest.endswith("||"):
            return None
        body = rest[2:-2]
        items = split_unquoted(body, "||") if body else []
        return _KeyValue(key, [convert_value_text(i) for i in items], ArrayStyle.PIPES, prime)

    if rest.startswith("<"):
        groups = bracket_groups(rest)
        if groups is None:
            return None
        if len(groups) == 1 and groups[0] != "":
            return None
        # Single-item arrays carry an empty trailing group
        if groups[-1] == "":
            groups.pop()
        return _KeyValue(key, [convert_value_text(g) for g in groups], ArrayStyle.BRACKETS, prime)

    if rest.startswith("["):
        if len(rest) < 2 or not rest.endswith("]"):
            return None
        body = rest[1:-1]
        try:
            items = [json.loads(i) for i in split_unquoted(body, ",")] if body else []
        except ValueError:
            return None
        return _KeyValue(key, items, ArrayStyle.JSON_STYLE, prime)

    if rest.startswith(":"):
        text = rest[1:]
        if find_unquoted(text, ":") < 0:
            return None
        body = text[:-1] if text.endswith(":") else text
        items = split_unquoted(body, ":") if body else []
        return _KeyValue(key, [convert_value_text(i) for i in items], ArrayStyle.COLON_DELIM, prime)

    return None


def _match_sandwiches(line: str) -> _KeyValue | None:
    for style in SANDWICH_STYLES:
        if style is Style.AMPERSAND:
            continue
        matched = _match_sandwich(line, style)
        if matched is not None:
            return matched
    return None


KEY_VALUE_MATCHERS: tuple[Callable[[str], _KeyValue | None], ...] = (
    _match_quoted,
    _match_ampersand,
    _match_angle,
    _match_separator,
    _match_array,
    _match_sandwiches,
)


def parse_key_value_line(line: str) -> _KeyValue | None:
    for matcher in KEY_VALUE_MATCHERS:
        matched = matcher(line)
        if matched is not None:
            return matched
    return None


# ---------------------------------------------------------------------------
# Lexer
# ---------------------------------------------------------------------------

class RomlLexer:
    """Line-by-line tokenizer for ROML documents."""

    def __init__(self, text: str):
        self.text = text
        self.lines = text.split("\n")
        self.tokens: list[Token] = []
        self._counter = 1

    def tokenize(self) -> list[Token]:
        self.tokens = []
        self._counter = 1

        header = Token(TokenKind.HEADER, "", line_number=0)
        self.tokens.append(header)

        for index, raw in enumerate(self.lines):
            line = raw[:-1] if raw.endswith("\r") else raw
            line_number = index + 1
            content = line.lstrip(" \t")

            if index == 0 and content.strip() == DOCUMENT_HEADER:
                header.document_marker = True
                header.text = content.strip()
                header.line_number = line_number
                continue

            if not content.strip():
                continue

            if content.startswith(COMMENT_MARKER):
                if PRIME_MARKER_PHRASE in content:
                    if not header.prime_marker:
                        # The marker occupies its own counter slot
                        self._counter += 1
                    header.prime_marker = True
                    header.payload.append(content.strip())
                continue

            token = self._classify(content, line_number, self._calculate_depth(line))
            if token is None:
                logging.debug(f"[RomlLexer] Skipping unparseable line {line_number}: {content!r}")
                continue
            token.counter = self._counter
            self._counter += 1
            self.tokens.append(token)

        self.tokens.append(Token(TokenKind.EOF, "", line_number=len(self.lines) + 1))
        logging.debug(f"[RomlLexer] Produced {len(self.tokens)} tokens from {len(self.lines)} lines")
        return self.tokens

    def _classify(self, content: str, line_number: int, depth: int) -> Token | None:
        stripped = content.rstrip()

        if stripped == "}":
            return Token(TokenKind.OBJECT_END, stripped, line_number, depth)
        if stripped == "]":
            return Token(TokenKind.ARRAY_END, stripped, line_number, depth)

        match = ARRAY_ITEM_PATTERN.match(stripped)
        if match:
            return Token(TokenKind.ARRAY_ITEM, stripped, line_number, depth, key=f"[{match.group(1)}]")

        parts = _split_key(content)
        if parts is not None:
            key, prime, rest = parts
            if rest.rstrip() == "{":
                return Token(TokenKind.OBJECT_START, stripped, line_number, depth, key=key, prime_prefix=prime)
            if rest.rstrip() == "[":
                return Token(TokenKind.ARRAY_START, stripped, line_number, depth, key=key, prime_prefix=prime)

        matched = parse_key_value_line(content)
        if matched is None:
            return None
        return Token(
            TokenKind.KEY_VALUE,
            content,
            line_number,
            depth,
            key=matched.key,
            value=matched.value,
            style=matched.style,
            prime_prefix=matched.prime,
        )

    @staticmethod
    def _calculate_depth(line: str) -> int:
        width = 0
        for char in line:
            if char == " ":
                width += 1
            elif char == "\t":
                width += 2
            else:
                break
        return width // 2


def tokenize(text: str) -> list[Token]:
    return RomlLexer(text).tokenize()
