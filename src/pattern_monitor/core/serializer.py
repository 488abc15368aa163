"""
Ternary HDV Binary Format
=========================

Deterministic byte encoding for persisted hypervectors.

Format:
- 4 bytes: Magic bytes "PMTV"
- 1 byte:  Format version
- 4 bytes: Dimension (uint32, big-endian)
- D/8 bytes: pos bitmap
- D/8 bytes: neg bitmap

The encoding is a pure function of the vector contents, so
serialize -> deserialize -> serialize reproduces the input bytes exactly.
"""

import struct

import numpy as np

from .exceptions import SerializeError
from .ternary_hdv import TernaryHDV

VECTOR_FORMAT_MAGIC = b"PMTV"  # Pattern Monitor Ternary Vector
VECTOR_FORMAT_VERSION = 1

_HEADER = struct.Struct(">4sBI")


def serialise_vector(vec: TernaryHDV) -> bytes:
    """Serialise a TernaryHDV to its persisted byte form."""
    try:
        if vec.dimension % 8 != 0:
            raise ValueError(f"dimension {vec.dimension} is not a multiple of 8")
        if np.any(vec.pos & vec.neg):
            raise ValueError("pos and neg bitmaps overlap")
        return b"".join([
            _HEADER.pack(VECTOR_FORMAT_MAGIC, VECTOR_FORMAT_VERSION, vec.dimension),
            vec.pos.tobytes(),
            vec.neg.tobytes(),
        ])
    except (ValueError, TypeError, AttributeError, struct.error) as e:
        raise SerializeError("encode", str(e)) from e


def deserialise_vector(raw: bytes) -> TernaryHDV:
    """
    Rebuild a TernaryHDV from bytes produced by serialise_vector().

    Raises:
        SerializeError: On a truncated buffer, unknown magic/version, or
            corrupt bitmaps.
    """
    if len(raw) < _HEADER.size:
        raise SerializeError("decode", f"buffer too short ({len(raw)} bytes)")

    magic, version, dimension = _HEADER.unpack_from(raw, 0)
    if magic != VECTOR_FORMAT_MAGIC:
        raise SerializeError("decode", f"invalid magic bytes {magic!r}")
    if version != VECTOR_FORMAT_VERSION:
        raise SerializeError("decode", f"unsupported format version {version}")
    if dimension == 0 or dimension % 8 != 0:
        raise SerializeError("decode", f"invalid dimension {dimension}")

    n_bytes = dimension // 8
    expected = _HEADER.size + 2 * n_bytes
    if len(raw) != expected:
        raise SerializeError(
            "decode",
            f"length mismatch: expected {expected} bytes, got {len(raw)}",
            {"dimension": dimension},
        )

    offset = _HEADER.size
    pos = np.frombuffer(raw, dtype=np.uint8, count=n_bytes, offset=offset).copy()
    neg = np.frombuffer(raw, dtype=np.uint8, count=n_bytes, offset=offset + n_bytes).copy()
    if np.any(pos & neg):
        raise SerializeError("decode", "pos and neg bitmaps overlap")
    return TernaryHDV(pos=pos, neg=neg, dimension=dimension)
