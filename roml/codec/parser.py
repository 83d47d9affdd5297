"""
ROML parser: builds an AST from lexer tokens and converts it back to values.

The parser keeps an explicit stack of open maps, lists and list item maps.
Only closing lines end a frame; indentation is cosmetic. Besides
structure it checks the prime annotations: every "!"-prefixed scalar must
hold a prime, and prefixes and the document META tag must agree.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass, field
from typing import Any, Union

from roml.codec.lexer import Token, TokenKind, tokenize
from roml.codec.primes import is_prime
from roml.codec.styles import WRAPPER_KEYS, ArrayStyle, Style
from roml.codec.values import JsonValue, format_number, is_number, parse_number

MISSING_META_TAG_ERROR = (
    "Document contains prime-prefixed keys but is missing the required "
    "~META~ SIEVE_OF_ERATOSTHENES_INVOKED tag. Add the META tag at the beginning "
    "of the document or remove prime prefixes (!)."
)
UNUSED_META_TAG_ERROR = (
    "Document declares ~META~ SIEVE_OF_ERATOSTHENES_INVOKED but contains no "
    "prime-prefixed keys. Remove the META tag or add prime prefixes (!) to keys "
    "with prime values."
)


# ---------------------------------------------------------------------------
# AST
# ---------------------------------------------------------------------------

@dataclass
class KeyValueNode:
    key: str
    value: JsonValue
    style: Style | ArrayStyle | None
    line_number: int
    prime_prefix: bool = False


@dataclass
class ValueNode:
    value: JsonValue
    index: int
    line_number: int


@dataclass
class MapNode:
    key: str | None
    line_number: int
    entries: list[KeyValueNode] = field(default_factory=list)
    children: list[Union["MapNode", "ListNode"]] = field(default_factory=list)


@dataclass
class ListNode:
    key: str
    line_number: int
    items: list[Union[ValueNode, MapNode, "ListNode"]] = field(default_factory=list)
    prime_prefix: bool = False


@dataclass
class Document:
    header_marker: bool
    prime_marker: bool
    body: MapNode
    # Marker comment lines, in document order
    meta_comments: list[str] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class InvalidPrimeKey:
    key: str
    value: JsonValue
    line_number: int


@dataclass
class PrimeValidation:
    meta_tag_present: bool = False
    primes_detected: bool = False
    invalid_prime_keys: list[InvalidPrimeKey] = field(default_factory=list)


@dataclass
class RomlMetadata:
    size: int
    source: str = "json"


@dataclass
class ParseResult:
    value: JsonValue
    errors: list[str]
    prime_validation: PrimeValidation
    ast: Document | None = None
    metadata: RomlMetadata | None = None


@dataclass
class DecodeResult:
    value: JsonValue
    errors: list[str]


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------

class RomlParser:
    """Token stream to AST to value."""

    def __init__(self):
        self.errors: list[str] = []
        self.prime_validation = PrimeValidation()

    def parse(self, tokens: list[Token]) -> ParseResult:
        self.errors = []
        self.prime_validation = PrimeValidation()

        document = self._build(tokens)
        self.prime_validation.meta_tag_present = document.prime_marker
        self._check_consistency()

        value = self._unwrap(self._map_value(document.body))
        logging.debug(f"[RomlParser] Parsed {len(tokens)} tokens with {len(self.errors)} errors")
        return ParseResult(
            value=value,
            errors=self.errors,
            prime_validation=self.prime_validation,
            ast=document,
            metadata=RomlMetadata(size=len(tokens)),
        )

    # -- AST construction ---------------------------------------------------

    def _build(self, tokens: list[Token]) -> Document:
        root = MapNode(key=None, line_number=0)
        document = Document(header_marker=False, prime_marker=False, body=root)
        stack: list[MapNode | ListNode] = [root]

        for token in tokens:
            if token.kind is TokenKind.HEADER:
                document.header_marker = token.document_marker
                document.prime_marker = token.prime_marker
                document.meta_comments = list(token.payload)
                if len(document.meta_comments) > 1:
                    logging.debug(f"[RomlParser] Document repeats the META tag {len(document.meta_comments)} times")
            elif token.kind is TokenKind.EOF:
                break
            elif token.kind in (TokenKind.OBJECT_END, TokenKind.ARRAY_END):
                self._close(stack, token)
            else:
                self._add(stack, token)

        return document

    @staticmethod
    def _close(stack: list[MapNode | ListNode], token: Token) -> None:
        if len(stack) > 1:
            stack.pop()
        else:
            logging.debug(f"[RomlParser] Ignoring stray closer at line {token.line_number}")

    def _add(self, stack: list[MapNode | ListNode], token: Token) -> None:
        parent = stack[-1]

        if token.prime_prefix and token.kind is not TokenKind.KEY_VALUE:
            self.prime_validation.primes_detected = True

        if token.kind in (TokenKind.OBJECT_START, TokenKind.ARRAY_ITEM):
            node = MapNode(key=token.key, line_number=token.line_number)
            self._attach(parent, node)
            stack.append(node)

        elif token.kind is TokenKind.ARRAY_START:
            node = ListNode(key=token.key, line_number=token.line_number, prime_prefix=token.prime_prefix)
            self._attach(parent, node)
            stack.append(node)

        elif token.kind is TokenKind.KEY_VALUE:
            if token.prime_prefix:
                self._validate_prime(token)
            if isinstance(parent, ListNode):
                parent.items.append(ValueNode(token.value, len(parent.items), token.line_number))
            else:
                parent.entries.append(
                    KeyValueNode(token.key, token.value, token.style, token.line_number, token.prime_prefix)
                )

    @staticmethod
    def _attach(parent: MapNode | ListNode, node: MapNode | ListNode) -> None:
        if isinstance(parent, ListNode):
            parent.items.append(node)
        else:
            parent.children.append(node)

    # -- Prime validation ---------------------------------------------------

    def _validate_prime(self, token: Token) -> None:
        self.prime_validation.primes_detected = True

        value = token.value
        number: Any = None
        if is_number(value):
            number = value
        elif isinstance(value, str):
            number = parse_number(value)
        if number is None:
            return

        if not is_prime(number):
            self.errors.append(
                f"Prime validation error at line {token.line_number}: key '{token.key}' "
                f"is marked as prime but value {format_number(number)} is not a prime number"
            )
            self.prime_validation.invalid_prime_keys.append(
                InvalidPrimeKey(key=token.key, value=value, line_number=token.line_number)
            )

    def _check_consistency(self) -> None:
        validation = self.prime_validation
        if validation.primes_detected and not validation.meta_tag_present:
            self.errors.insert(0, MISSING_META_TAG_ERROR)
        elif validation.meta_tag_present and not validation.primes_detected:
            self.errors.insert(0, UNUSED_META_TAG_ERROR)

    # -- Value conversion ---------------------------------------------------

    def _map_value(self, node: MapNode) -> dict[str, Any]:
        members: list[tuple[int, str, Any]] = [
            (entry.line_number, entry.key, entry.value) for entry in node.entries
        ]
        for child in node.children:
            members.append((child.line_number, child.key, self._node_value(child)))
        members.sort(key=lambda m: m[0])
        return {key: value for _, key, value in members}

    def _list_value(self, node: ListNode) -> list[Any]:
        items: list[Any] = []
        for item in node.items:
            if isinstance(item, ValueNode):
                items.append(item.value)
            else:
                items.append(self._node_value(item))
        return items

    def _node_value(self, node: MapNode | ListNode) -> Any:
        if isinstance(node, ListNode):
            return self._list_value(node)
        return self._map_value(node)

    @staticmethod
    def _unwrap(value: dict[str, Any]) -> JsonValue:
        """Undo the encoder's root wrapping (exactly once)."""
        if len(value) == 1:
            key = next(iter(value))
            if key in WRAPPER_KEYS:
                return value[key]
        return value


def parse(tokens: list[Token]) -> ParseResult:
    return RomlParser().parse(tokens)


def roml_to_json(text: str) -> DecodeResult:
    """
    Decode ROML text into a JSON-compatible value.

    Never raises on malformed text: lines that cannot be read are skipped
    and prime annotation problems are reported in the result's errors.

    Examples:
        >>> roml_to_json('~ROML~\\nname="Robert"\\nage:30').value
        {'name': 'Robert', 'age': 30}
    """
    result = RomlParser().parse(tokenize(text))
    return DecodeResult(value=result.value, errors=result.errors)


# Convenience aliases
decode = roml_to_json
