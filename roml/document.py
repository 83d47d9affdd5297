"""
File-level wrapper around the ROML codec.

A RomlDocument holds ROML text (and, when built from data, the data it came
from) and offers parsing, validation, round-trip checking and persistence.
"""

from __future__ import annotations
import hashlib
import json
import logging
from pathlib import Path
from typing import Any

from roml.codec.encoder import json_to_roml
from roml.codec.lexer import RomlLexer
from roml.codec.parser import Document, MapNode, ParseResult, PrimeValidation, RomlMetadata, RomlParser
from roml.codec.values import JsonValue, is_number, normalize_value


class RomlDocument:

    def __init__(self, content: str):
        self.content = content
        self.source_data: Any = None
        self._metadata: RomlMetadata | None = None

    @classmethod
    def from_json(cls, data: Any) -> "RomlDocument":
        document = cls(json_to_roml(data))
        document.source_data = data
        return document

    @classmethod
    def from_file(cls, path) -> "RomlDocument":
        path = Path(path)
        if not path.is_file():
            raise FileNotFoundError(f"File not found: {path}")
        return cls(path.read_text(encoding="utf-8"))

    def parse(self) -> ParseResult:
        try:
            tokens = RomlLexer(self.content).tokenize()
            return RomlParser().parse(tokens)
        except Exception as e:
            logging.error(f"[RomlDocument] Parse failed: {e}")
            return ParseResult(
                value={},
                errors=[str(e) or e.__class__.__name__],
                prime_validation=PrimeValidation(),
                ast=Document(header_marker=False, prime_marker=False, body=MapNode(key=None, line_number=0)),
                metadata=RomlMetadata(size=0),
            )

    def to_json(self) -> JsonValue:
        return self.parse().value

    def to_roml(self) -> str:
        return self.content

    def __str__(self):
        return self.content

    @property
    def metadata(self) -> RomlMetadata | None:
        if self._metadata is None:
            self._metadata = self.parse().metadata
        return self._metadata

    def checksum(self) -> str:
        return hashlib.md5(self.content.encode("utf-8")).hexdigest()[:8]

    def validate(self) -> tuple[bool, list[str]]:
        result = self.parse()
        return len(result.errors) == 0, result.errors

    def round_trip(self) -> tuple[bool, list[str]]:
        """Decode, re-encode and decode again; both decodes must agree exactly."""
        errors: list[str] = []
        try:
            data = self.to_json()
            again = RomlDocument.from_json(data).to_json()
            if not _deep_equal(data, again):
                errors.append("Round-trip data mismatch")
            if self.source_data is not None and not _deep_equal(normalize_value(self.source_data), data):
                errors.append("Round-trip data mismatch with source data")
        except ValueError as e:
            logging.warning(f"[RomlDocument] Round-trip failed: {e}")
            errors.append(f"Round-trip error: {e}")
        return len(errors) == 0, errors

    def save(self, path) -> None:
        Path(path).write_text(self.content, encoding="utf-8")
        logging.info(f"[RomlDocument] Saved ROML to {path}")

    def save_json(self, path, indent=2) -> None:
        Path(path).write_text(json.dumps(self.to_json(), indent=indent, ensure_ascii=False), encoding="utf-8")
        logging.info(f"[RomlDocument] Saved JSON to {path}")

    @staticmethod
    def json_to_roml(data: Any) -> str:
        return json_to_roml(data)

    @staticmethod
    def roml_to_json(content: str) -> JsonValue:
        return RomlDocument(content).to_json()


def _deep_equal(a: Any, b: Any) -> bool:
    """Equality that keeps JSON types apart (True != 1, 1 != "1", map order ignored)."""
    if isinstance(a, bool) or isinstance(b, bool):
        return isinstance(a, bool) and isinstance(b, bool) and a == b
    if is_number(a) or is_number(b):
        return is_number(a) and is_number(b) and a == b
    if isinstance(a, list) and isinstance(b, list):
        return len(a) == len(b) and all(_deep_equal(x, y) for x, y in zip(a, b))
    if isinstance(a, dict) and isinstance(b, dict):
        return a.keys() == b.keys() and all(_deep_equal(a[k], b[k]) for k in a)
    return type(a) is type(b) and a == b
