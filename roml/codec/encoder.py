"""
JSON to ROML (Robert's Opaque Mangling Language) encoder.

Every emitted element (map open/close, list open/close, list item marker,
key-value line) takes one slot of a shared line counter; the counter's
parity decides which family of styles a line may use. A document whose
data contains prime numbers starts with a META comment, which takes slot 1
and shifts every following line into the other family.
"""

from __future__ import annotations
import logging
from typing import Any

from roml.codec.primes import contains_prime
from roml.codec.styles import (
    INDENT,
    ITEMS_WRAPPER_KEY,
    VALUE_WRAPPER_KEY,
    WRAPPER_KEYS,
    LineContext,
    format_key,
    render_array_line,
    render_line,
    select_array_style,
    select_style,
)
from roml.codec.values import JsonValue, is_primitive, normalize_value

DOCUMENT_HEADER = "~ROML~"
COMMENT_MARKER = "#"
SIEVE_OF_ERATOSTHENES_INVOKED = "SIEVE_OF_ERATOSTHENES_INVOKED"
PRIME_MARKER_PHRASE = f"~META~ {SIEVE_OF_ERATOSTHENES_INVOKED}"
PRIME_MARKER_LINE = f"{COMMENT_MARKER} {PRIME_MARKER_PHRASE}"


def json_to_roml(data: Any) -> str:
    """
    Convert JSON-compatible data to ROML text.

    Args:
        data: JSON-compatible Python value (dict, list, str, int, float, bool, None)

    Returns:
        ROML-formatted string; identical input always gives identical output

    Raises:
        ValueError: If data contains circular references

    Examples:
        >>> json_to_roml({"name": "Robert", "age": 30})
        '~ROML~\\nname="Robert"\\nage:30'

        >>> json_to_roml({"a": 2})
        '~ROML~\\n# ~META~ SIEVE_OF_ERATOSTHENES_INVOKED\\n!a:2'
    """
    data = normalize_value(data)
    root, synthetic_key = _wrap_root(data)

    header = [DOCUMENT_HEADER]
    if _document_has_primes(root, synthetic_key):
        header.append(PRIME_MARKER_LINE)

    # The header lines occupy the first counter slots
    ctx = _EncoderContext(counter=len(header), synthetic_key=synthetic_key)
    for key, value in root.items():
        _encode_entry(key, value, ctx, depth=0)

    logging.debug(f"[RomlEncoder] Encoded {len(root)} root entries into {len(ctx.lines)} lines (primes: {len(header) > 1})")
    return "\n".join(header) + "\n" + "\n".join(ctx.lines)


class _EncoderContext:
    """Internal context for encoding state."""
    __slots__ = ("counter", "synthetic_key", "lines")

    def __init__(self, counter: int, synthetic_key: str | None):
        self.counter = counter
        self.synthetic_key = synthetic_key
        self.lines: list[str] = []

    def line_context(self, depth: int) -> LineContext:
        return LineContext(counter=self.counter, depth=depth)

    def emit(self, depth: int, text: str) -> None:
        self.lines.append(f"{INDENT * depth}{text}")
        self.counter += 1


def _wrap_root(data: JsonValue) -> tuple[dict[str, Any], str | None]:
    """Wrap non-map roots so the grammar always starts from a map."""
    if isinstance(data, list):
        return {ITEMS_WRAPPER_KEY: data}, ITEMS_WRAPPER_KEY
    if not isinstance(data, dict):
        return {VALUE_WRAPPER_KEY: data}, VALUE_WRAPPER_KEY
    # A map that already looks like a wrapper is wrapped once more,
    # otherwise the decoder would unwrap it
    if len(data) == 1 and next(iter(data)) in WRAPPER_KEYS:
        return {VALUE_WRAPPER_KEY: data}, VALUE_WRAPPER_KEY
    return data, None


def _is_structured(arr: list[Any], depth: int) -> bool:
    return depth > 0 or not all(is_primitive(item) for item in arr)


def _document_has_primes(root: dict[str, Any], synthetic_key: str | None) -> bool:
    """
    True when at least one key in the output will carry the prime prefix.

    The wrapper key itself is never prefixed, so a wrapped primitive or a
    wrapped one-line array does not count.
    """
    for key, value in root.items():
        if key != synthetic_key:
            if contains_prime(value):
                return True
        elif isinstance(value, dict):
            if contains_prime(value):
                return True
        elif isinstance(value, list) and _is_structured(value, depth=0):
            if contains_prime(value):
                return True
    return False


def _encode_entry(key: str, value: JsonValue, ctx: _EncoderContext, depth: int) -> None:
    synthetic = depth == 0 and key == ctx.synthetic_key
    if isinstance(value, dict):
        _encode_object(key, value, ctx, depth)
    elif isinstance(value, list):
        _encode_array(key, value, ctx, depth, synthetic)
    else:
        _encode_scalar(key, value, ctx, depth, synthetic)


def _encode_scalar(key: str, value: JsonValue, ctx: _EncoderContext, depth: int, synthetic: bool = False) -> None:
    style = select_style(key, value, ctx.line_context(depth))
    prime = not synthetic and contains_prime(value)
    ctx.emit(depth, render_line(key, value, style, prime))


def _encode_object(key: str, obj: dict[str, Any], ctx: _EncoderContext, depth: int) -> None:
    # Map keys are never prefixed; the keys inside carry the prefix
    ctx.emit(depth, f"{format_key(key)}{{")
    for k, v in obj.items():
        _encode_entry(k, v, ctx, depth + 1)
    ctx.emit(depth, "}")


def _encode_array(key: str, arr: list[Any], ctx: _EncoderContext, depth: int, synthetic: bool = False) -> None:
    """Encode array on one line, or one element per item when it is nested or complex."""
    prime = not synthetic and contains_prime(arr)

    if not _is_structured(arr, depth):
        style = select_array_style(key, synthetic)
        ctx.emit(depth, render_array_line(key, arr, style, prime))
        return

    ctx.emit(depth, f"{format_key(key, prime)}[")
    for index, item in enumerate(arr):
        item_key = f"[{index}]"
        if isinstance(item, dict):
            ctx.emit(depth + 1, f"{item_key}{{")
            for k, v in item.items():
                _encode_entry(k, v, ctx, depth + 2)
            ctx.emit(depth + 1, "}")
        elif isinstance(item, list):
            _encode_array(item_key, item, ctx, depth + 1)
        else:
            _encode_scalar(item_key, item, ctx, depth + 1)
    ctx.emit(depth, "]")


# Convenience aliases
encode = json_to_roml
