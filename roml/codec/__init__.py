from roml.codec.encoder import encode, json_to_roml
from roml.codec.parser import DecodeResult, ParseResult, decode, roml_to_json

__all__ = ["encode", "decode", "json_to_roml", "roml_to_json", "DecodeResult", "ParseResult"]
