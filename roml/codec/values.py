"""
Value model shared by the ROML encoder and decoder.

Values are plain JSON-compatible Python objects: None, bool, int, float,
str, list and dict (insertion order is the map order). This module holds
the normalization of foreign Python objects, the number text rules and the
quote/escape discipline.
"""

from __future__ import annotations
import math
import re
from typing import Any

# Type aliases
JsonValue = None | bool | int | float | str | list[Any] | dict[str, Any]

# Reserved content tokens
NULL_MARKER = "__NULL__"
EMPTY_MARKER = "__EMPTY__"
UNDEFINED_MARKER = "__UNDEFINED__"
RESERVED_MARKERS = frozenset({NULL_MARKER, EMPTY_MARKER, UNDEFINED_MARKER})

RESERVED_LITERALS = frozenset({"true", "false", "null", "yes", "no"})
INT_PATTERN = re.compile(r'^-?(?:0|[1-9][0-9]*)$')

ESCAPE_MAP = {
    "\\": "\\\\",
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
    '"': '\\"',
}
UNESCAPE_MAP = {
    "n": "\n",
    "r": "\r",
    "t": "\t",
    '"': '"',
    "\\": "\\",
}


def normalize_value(value: Any, _seen: set[int] | None = None) -> JsonValue:
    """
    Normalize a Python value to the JSON value set, recursively.

    Raises:
        ValueError: If the value contains circular references
    """
    if value is None or isinstance(value, (bool, str)):
        return value
    if isinstance(value, int):
        return int(value)
    if isinstance(value, float):
        return None if math.isnan(value) or math.isinf(value) else float(value)
    if isinstance(value, (dict, list, tuple)):
        seen = _seen if _seen is not None else set()
        if id(value) in seen:
            raise ValueError("Circular reference detected")
        seen.add(id(value))
        try:
            if isinstance(value, dict):
                return {str(k): normalize_value(v, seen) for k, v in value.items()}
            return [normalize_value(item, seen) for item in value]
        finally:
            seen.discard(id(value))
    if hasattr(value, "__float__"):  # Handles numpy numbers, Decimal, etc.
        try:
            f = float(value)
            return None if math.isnan(f) or math.isinf(f) else f
        except (TypeError, ValueError):
            return None
    if hasattr(value, "isoformat"):  # datetime-like
        return value.isoformat()
    # Try to convert to string as last resort
    return str(value)


def is_number(value: Any) -> bool:
    """bool is an int subclass but never a number here."""
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def is_primitive(value: Any) -> bool:
    return value is None or isinstance(value, (bool, int, float, str))


def format_number(n: int | float) -> str:
    """Format a number the way it must appear unquoted in ROML text."""
    if isinstance(n, float):
        if n.is_integer() and abs(n) < 1e16:
            return str(int(n))
        return repr(n)
    return str(n)


def parse_number(text: str) -> int | float | None:
    """
    Parse numeric text, accepting it only if it prints back identically.

    This is what keeps "1.50", "1_000", " 7" or "-0" strings: Python would
    happily parse them, but re-printing gives different text.
    """
    if INT_PATTERN.match(text):
        n = int(text)
        return n if str(n) == text else None
    try:
        f = float(text)
    except ValueError:
        return None
    if math.isnan(f) or math.isinf(f):
        return None
    return f if format_number(f) == text else None


def format_scalar(value: JsonValue, *, booleans: tuple[str, str] = ("true", "false")) -> str:
    """Unquoted text of a primitive (strings are returned verbatim)."""
    if value is None:
        return NULL_MARKER
    if isinstance(value, bool):
        return booleans[0] if value else booleans[1]
    if is_number(value):
        return format_number(value)
    return str(value)


def is_ambiguous_string(value: str) -> bool:
    """Check if a string would be read back as another type when unquoted."""
    if parse_number(value) is not None:
        return True
    if value in RESERVED_LITERALS or value in RESERVED_MARKERS:
        return True
    # Whitespace-only (including empty) could be confused with missing content
    if value.strip() == "":
        return True
    # Newlines would break the one-line-per-element layout
    if "\n" in value or "\r" in value:
        return True
    return False


def escape(text: str) -> str:
    return "".join(ESCAPE_MAP.get(c, c) for c in text)


def quote(text: str) -> str:
    return f'"{escape(text)}"'


def unescape(text: str) -> str:
    """Reverse escape(); unknown escapes keep both characters."""
    out: list[str] = []
    i = 0
    while i < len(text):
        c = text[i]
        if c == "\\" and i + 1 < len(text):
            nxt = text[i + 1]
            out.append(UNESCAPE_MAP.get(nxt, "\\" + nxt))
            i += 2
            continue
        out.append(c)
        i += 1
    return "".join(out)


def find_quote_end(text: str, start: int) -> int:
    """
    Index of the closing quote of the quoted span opening at `start`,
    or -1 if the span is unterminated.
    """
    i = start + 1
    while i < len(text):
        c = text[i]
        if c == "\\":
            i += 2
            continue
        if c == '"':
            return i
        i += 1
    return -1


def is_quoted_span(text: str) -> bool:
    """True when the whole text is exactly one double-quoted span."""
    return len(text) >= 2 and text[0] == '"' and find_quote_end(text, 0) == len(text) - 1


def convert_unquoted(text: str, *, yes_no: bool = False) -> JsonValue:
    """Convert unquoted value text into a value."""
    if text == "true" or (yes_no and text == "yes"):
        return True
    if text == "false" or (yes_no and text == "no"):
        return False
    if text == NULL_MARKER or text == UNDEFINED_MARKER:
        return None
    if text == EMPTY_MARKER:
        return ""
    number = parse_number(text)
    if number is not None:
        return number
    return text


def convert_value_text(text: str, *, yes_no: bool = False) -> JsonValue:
    """A quoted value is always a string; that rule overrides every other one."""
    if is_quoted_span(text):
        return unescape(text[1:-1])
    return convert_unquoted(text, yes_no=yes_no)
