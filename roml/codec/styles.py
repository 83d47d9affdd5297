"""
Style selection and line rendering for ROML.

Every key-value pair is written with one of sixteen styles. Eight belong to
odd counters and eight to even counters; which one a line gets is decided
by a priority-ordered rule table (STYLE_RULES), falling back to a hash of
the key. The same Style enumeration drives the lexer's matchers, so every
style that can be produced can also be read back.
"""

from __future__ import annotations
import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable

from roml.codec.values import (
    EMPTY_MARKER,
    NULL_MARKER,
    JsonValue,
    format_number,
    format_scalar,
    is_ambiguous_string,
    is_number,
    quote,
)

PRIME_PREFIX = "!"
INDENT = "  "
ITEMS_WRAPPER_KEY = "_items"
VALUE_WRAPPER_KEY = "_value"
WRAPPER_KEYS = frozenset({ITEMS_WRAPPER_KEY, VALUE_WRAPPER_KEY})

# Every character any style uses as structure; bare keys may contain none of them
STRUCTURAL_CHARS = frozenset('=:~#%$^+&<>|[]{}/@!_"\\,')

# Key names that collide with style grammars often enough to always quote
AMBIGUOUS_KEY_NAMES = frozenset({
    "special", "url", "E", "integer", "real", "true", "false", "null",
    "object", "array", "zero", "space", "quote", "backslash", "slash",
    "alpha", "ALPHA", "digit", "hex", "comment", "address", "compact",
})

SEMANTIC_CATEGORIES = {
    "PERSONAL": frozenset({"name", "first_name", "last_name", "email", "phone", "address", "username"}),
    "STATUS": frozenset({"active", "enabled", "valid", "working", "online", "disabled", "inactive"}),
    "COLLECTIONS": frozenset({"tags", "items", "list", "array", "elements", "values", "data"}),
    "TECHNICAL": frozenset({"id", "uuid", "hash", "checksum", "token", "key", "secret"}),
    "FINANCIAL": frozenset({"salary", "price", "cost", "amount", "total", "balance", "fee"}),
    "TEMPORAL": frozenset({"date", "time", "created", "updated", "timestamp", "expires"}),
}

LONG_STRING_LENGTH = 10


class Parity(Enum):
    ODD = 1
    EVEN = 0


class Style(Enum):
    """(opener, separator, closer, parity): line = opener + key + separator + value + closer"""

    QUOTED = ("", "=", "", Parity.ODD)
    AMPERSAND = ("&", "&", "", Parity.ODD)
    BRACKETS = ("", "<", ">", Parity.ODD)
    PIPES = ("||", "||", "||", Parity.ODD)
    DOUBLE_COLON = ("::", "::", "::", Parity.ODD)
    FAKE_COMMENT = ("//", "//", "", Parity.ODD)
    AT_SANDWICH = ("@", "@", "@", Parity.ODD)
    UNDERSCORE = ("_", "_", "_", Parity.ODD)

    EQUALS = ("", "=", "", Parity.EVEN)
    COLON = ("", ":", "", Parity.EVEN)
    TILDE = ("", "~", "", Parity.EVEN)
    HASH = ("", "#", "", Parity.EVEN)
    PERCENT = ("", "%", "", Parity.EVEN)
    DOLLAR = ("", "$", "", Parity.EVEN)
    CARET = ("", "^", "", Parity.EVEN)
    PLUS = ("", "+", "", Parity.EVEN)

    def __init__(self, opener: str, separator: str, closer: str, parity: Parity):
        self.opener = opener
        self.separator = separator
        self.closer = closer
        self.parity = parity


ODD_STYLES = tuple(s for s in Style if s.parity is Parity.ODD)
EVEN_STYLES = tuple(s for s in Style if s.parity is Parity.EVEN)

# Styles whose line starts with a marker instead of the key
SANDWICH_STYLES = tuple(s for s in Style if s.opener)
EVEN_SEPARATORS = {s.separator: s for s in EVEN_STYLES}

# Characters inside a value that would split it in a given style
STYLE_VALUE_DELIMITERS = {
    Style.COLON: ":",
    Style.BRACKETS: "<>",
}


class ArrayStyle(Enum):
    """One-line renderings for arrays of primitives."""

    PIPES = "pipes"
    BRACKETS = "brackets"
    JSON_STYLE = "json"
    COLON_DELIM = "colon"


ARRAY_STYLES = (ArrayStyle.PIPES, ArrayStyle.BRACKETS, ArrayStyle.JSON_STYLE, ArrayStyle.COLON_DELIM)

ARRAY_ITEM_DELIMITERS = {
    ArrayStyle.PIPES: "|",
    ArrayStyle.BRACKETS: "<>",
    ArrayStyle.COLON_DELIM: ":",
}


@dataclass(frozen=True)
class LineContext:
    counter: int
    depth: int = 0

    @property
    def parity(self) -> Parity:
        return Parity.EVEN if self.counter % 2 == 0 else Parity.ODD


@dataclass(frozen=True)
class StyleRule:
    """A row of the style table; even is None where the rule only exists on odd counters."""

    name: str
    applies: Callable[[str, Any], bool]
    odd: Style
    even: Style | None

    def style_for(self, parity: Parity) -> Style | None:
        return self.odd if parity is Parity.ODD else self.even


def _in_category(category: str) -> Callable[[str, Any], bool]:
    words = SEMANTIC_CATEGORIES[category]
    return lambda key, value: key.lower() in words


def _is_string(value: Any) -> bool:
    return isinstance(value, str)


STYLE_RULES: tuple[StyleRule, ...] = (
    StyleRule("personal", _in_category("PERSONAL"), Style.QUOTED, None),
    StyleRule("status", _in_category("STATUS"), Style.BRACKETS, None),
    StyleRule("collections", _in_category("COLLECTIONS"), Style.PIPES, None),
    StyleRule("technical", _in_category("TECHNICAL"), Style.AMPERSAND, None),
    StyleRule("financial", _in_category("FINANCIAL"), Style.FAKE_COMMENT, None),
    StyleRule("temporal", _in_category("TEMPORAL"), Style.AT_SANDWICH, None),
    StyleRule("boolean", lambda key, value: isinstance(value, bool), Style.BRACKETS, Style.EQUALS),
    StyleRule("number", lambda key, value: is_number(value), Style.AMPERSAND, Style.COLON),
    StyleRule(
        "vowel key",
        lambda key, value: _is_string(value) and key[:1] in "aeiouAEIOU" and key != "",
        Style.QUOTED,
        Style.TILDE,
    ),
    StyleRule(
        "long string",
        lambda key, value: _is_string(value) and len(value) > LONG_STRING_LENGTH,
        Style.DOUBLE_COLON,
        Style.HASH,
    ),
    StyleRule("short string", lambda key, value: _is_string(value), Style.FAKE_COMMENT, Style.EQUALS),
    StyleRule("special value", lambda key, value: value is None, Style.FAKE_COMMENT, Style.DOLLAR),
)


def string_hash(text: str) -> int:
    """32-bit polynomial string hash; stable across processes, unlike hash()."""
    h = 0
    for c in text:
        h = (h * 31 + ord(c)) & 0xFFFFFFFF
    return h


def select_style(key: str, value: Any, ctx: LineContext) -> Style:
    """Pick the style for one key-value line: first matching rule wins."""
    parity = ctx.parity
    for rule in STYLE_RULES:
        style = rule.style_for(parity)
        if style is not None and rule.applies(key, value):
            return style

    family = ODD_STYLES if parity is Parity.ODD else EVEN_STYLES
    selector = (string_hash(key) + ctx.depth + len(format_scalar(value))) % len(family)
    return family[selector]


def select_array_style(key: str, synthetic: bool = False) -> ArrayStyle:
    # The root wrapper always uses pipes
    if synthetic:
        return ArrayStyle.PIPES
    return ARRAY_STYLES[string_hash(key) % len(ARRAY_STYLES)]


def is_bare_key_char(c: str) -> bool:
    return c not in STRUCTURAL_CHARS and not c.isspace()


def needs_quoted_key(key: str) -> bool:
    """Check if a key must be quoted to avoid clashing with ROML syntax."""
    if key == "":
        return True
    if not all(is_bare_key_char(c) for c in key):
        return True
    if key.startswith("#") or key.startswith("//"):
        return True
    return key in AMBIGUOUS_KEY_NAMES


def format_key(key: str, prime: bool = False) -> str:
    formatted = quote(key) if needs_quoted_key(key) else key
    return f"{PRIME_PREFIX}{formatted}" if prime else formatted


def _string_needs_quotes(text: str, delimiters: str) -> bool:
    if is_ambiguous_string(text) or '"' in text:
        return True
    return any(c in text for c in delimiters)


def render_value(value: JsonValue, style: Style) -> str:
    if isinstance(value, str):
        if style is Style.QUOTED or _string_needs_quotes(value, STYLE_VALUE_DELIMITERS.get(style, "")):
            return quote(value)
        return value
    if isinstance(value, bool) and style is Style.EQUALS:
        return "yes" if value else "no"
    return format_scalar(value)


def render_line(key: str, value: JsonValue, style: Style, prime: bool = False) -> str:
    """Render a key-value pair with the given style (no indentation)."""
    return f"{style.opener}{format_key(key, prime)}{style.separator}{render_value(value, style)}{style.closer}"


def _render_array_item(item: JsonValue, delimiters: str) -> str:
    if item is None:
        return NULL_MARKER
    if item == "":
        return EMPTY_MARKER
    if isinstance(item, str):
        return quote(item) if _string_needs_quotes(item, delimiters) else item
    return format_scalar(item)


def _render_json_item(item: JsonValue) -> str:
    if is_number(item):
        return format_number(item)
    return json.dumps(item, ensure_ascii=False)


def render_array_line(key: str, items: list[JsonValue], style: ArrayStyle, prime: bool = False) -> str:
    """Render an array of primitives on one line."""
    head = format_key(key, prime)

    if style is ArrayStyle.JSON_STYLE:
        return f"{head}[{','.join(_render_json_item(i) for i in items)}]"

    rendered = [_render_array_item(i, ARRAY_ITEM_DELIMITERS[style]) for i in items]

    if style is ArrayStyle.PIPES:
        return f"{head}||{'||'.join(rendered)}||"

    if style is ArrayStyle.BRACKETS:
        body = "".join(f"<{r}>" for r in rendered)
        # One item gets an empty trailing bracket so it reads as an array
        if len(rendered) == 1:
            body += "<>"
        return f"{head}{body or '<>'}"

    return f"{head}:{':'.join(rendered)}:"
