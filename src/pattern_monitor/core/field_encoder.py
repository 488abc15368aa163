"""
Field Encoder
=============
Turns one JSON object into per-field bound hypervectors.

For every (key, value) pair, in document order:
    semantic = encode(key) * encode(canonical_json(value))

Nested objects and arrays are stringified, not decomposed.
"""

import json
import math
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Union

from .config import EncodingConfig, get_config
from .exceptions import ParseError, ShapeError
from .retrieval import TernaryInvertedIndex
from .ternary_hdv import TernaryHDV, encode_data


@dataclass
class EncodedFields:
    """VSA-encoded fields produced from a single JSON message."""
    id_to_vec: Dict[int, TernaryHDV] = field(default_factory=dict)
    id_to_field: Dict[int, str] = field(default_factory=dict)
    index: TernaryInvertedIndex = field(default_factory=TernaryInvertedIndex)

    def __len__(self) -> int:
        return len(self.id_to_vec)

    @property
    def is_empty(self) -> bool:
        return not self.id_to_vec

    def field_name(self, field_id: int) -> str:
        return self.id_to_field.get(field_id, "unknown")


def _reject_constant(name: str):
    raise ValueError(f"invalid JSON literal {name}")


def _finite_float(text: str) -> float:
    value = float(text)
    if not math.isfinite(value):
        raise ValueError(f"number out of range: {text}")
    return value


def _json_type_name(value: Any) -> str:
    if isinstance(value, list):
        return "array"
    if isinstance(value, str):
        return "string"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if value is None:
        return "null"
    return type(value).__name__


def canonical_value_text(value: Any) -> str:
    """Compact JSON text of a field value. Object keys are sorted."""
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False, sort_keys=True)


def parse_json_object(body: Union[bytes, bytearray, str]) -> Dict[str, Any]:
    """
    Parse a message body that must be a JSON object.

    Bytes must be UTF-8 without a byte-order mark; no other encoding is
    guessed. Numbers that overflow a double are rejected.

    Raises:
        ParseError: body is not UTF-8 or not syntactically valid JSON.
        ShapeError: body parses, but the top-level value is not an object.
    """
    try:
        text = body.decode("utf-8") if isinstance(body, (bytes, bytearray)) else body
        parsed = json.loads(text, parse_constant=_reject_constant, parse_float=_finite_float)
    except (ValueError, RecursionError) as e:
        raise ParseError(str(e)) from e

    if not isinstance(parsed, dict):
        raise ShapeError(_json_type_name(parsed))
    return parsed


def _utf8(text: str) -> bytes:
    # JSON escapes can produce lone surrogates; keep encoding total
    return text.encode("utf-8", errors="surrogatepass")


def encode_json_fields(
    body: Union[bytes, bytearray, str],
    config: Optional[EncodingConfig] = None,
) -> EncodedFields:
    """
    Parse a JSON object and encode each key/value field as a bound
    hypervector. The returned index is already finalized.

    Field ids are zero-based positions in document order. A key repeated in
    the document keeps its first position and its last value.
    """
    config = config or get_config().encoding
    obj = parse_json_object(body)

    encoded = EncodedFields()
    for idx, (key, value) in enumerate(obj.items()):
        key_vec = encode_data(_utf8(key), config)
        val_vec = encode_data(_utf8(canonical_value_text(value)), config)
        bound = key_vec.bind(val_vec)
        encoded.index.add(idx, bound)
        encoded.id_to_field[idx] = key
        encoded.id_to_vec[idx] = bound

    encoded.index.finalize()
    return encoded
