"""
Ternary Hyperdimensional Vector (Ternary HDV) Core
==================================================
Ternary VSA primitives used to encode message fields.

Every vector holds `dimension` trits in {-1, 0, +1}, stored as two packed
bitmaps: `pos` (bit set where the trit is +1) and `neg` (bit set where the
trit is -1). The two bitmaps never overlap.

Key design choices:
  - Storage: packed np.uint8 arrays (D/8 bytes per bitmap, 2*D/8 per vector)
  - Atoms: dense bipolar vectors expanded from SHAKE-256, so pos | neg = all ones
  - Binding: element-wise trit multiply (self-inverse for bipolar operands)
  - Bundling: sign of the element-wise sum; disagreement yields 0
  - Sequence: circular shift (permutation) of both bitmaps
  - Similarity: ternary dot product / cosine on the non-zero support

Bundling is commutative but not associative, so folds must use a fixed order.
"""

import hashlib
from typing import List, Optional

import numpy as np

from .config import EncodingConfig
from .exceptions import DimensionMismatchError, VectorOperationError

# Cached lookup table for popcount (bits set per byte value 0-255)
_POPCOUNT_TABLE: Optional[np.ndarray] = None


def _build_popcount_table() -> np.ndarray:
    """Build or return cached popcount lookup table for bytes (0-255)."""
    global _POPCOUNT_TABLE
    if _POPCOUNT_TABLE is None:
        _POPCOUNT_TABLE = np.array(
            [bin(i).count("1") for i in range(256)], dtype=np.int32
        )
    return _POPCOUNT_TABLE


def _popcount(packed: np.ndarray) -> int:
    return int(_build_popcount_table()[packed].sum())


class TernaryHDV:
    """
    A ternary hyperdimensional vector stored as two packed uint8 bitmaps.

    Bits are big-endian within each byte (MSB first), matching np.packbits.

    Attributes:
        pos: np.ndarray of dtype uint8, shape (dimension // 8,)
        neg: np.ndarray of dtype uint8, shape (dimension // 8,)
        dimension: int, number of logical trits
    """

    __slots__ = ("pos", "neg", "dimension")

    def __init__(self, pos: np.ndarray, neg: np.ndarray, dimension: int):
        assert pos.dtype == np.uint8 and neg.dtype == np.uint8, (
            f"Expected uint8 bitmaps, got {pos.dtype}/{neg.dtype}"
        )
        assert pos.shape == (dimension // 8,) and neg.shape == (dimension // 8,), (
            f"Shape mismatch: expected ({dimension // 8},), got {pos.shape}/{neg.shape}"
        )
        self.pos = pos
        self.neg = neg
        self.dimension = dimension

    # ------------------------------------------------------------------
    # Factory methods
    # ------------------------------------------------------------------

    @classmethod
    def zeros(cls, dimension: int = 8192) -> "TernaryHDV":
        """All-zero vector (empty support)."""
        assert dimension % 8 == 0, "Dimension must be multiple of 8"
        n_bytes = dimension // 8
        return cls(
            pos=np.zeros(n_bytes, dtype=np.uint8),
            neg=np.zeros(n_bytes, dtype=np.uint8),
            dimension=dimension,
        )

    @classmethod
    def from_seed(cls, seed: bytes, dimension: int = 8192) -> "TernaryHDV":
        """
        Deterministic dense bipolar vector from a byte seed.

        SHAKE-256 expands the seed to D bits; a set bit becomes +1 and a
        clear bit becomes -1.
        """
        assert dimension % 8 == 0, "Dimension must be multiple of 8"
        n_bytes = dimension // 8
        digest = hashlib.shake_256(seed).digest(n_bytes)
        pos = np.frombuffer(digest, dtype=np.uint8).copy()
        return cls(pos=pos, neg=np.bitwise_not(pos), dimension=dimension)

    @classmethod
    def from_dense(cls, values: np.ndarray) -> "TernaryHDV":
        """Build from a dense array; only the sign of each element is kept."""
        dimension = int(values.shape[0])
        assert dimension % 8 == 0, "Dimension must be multiple of 8"
        return cls(
            pos=np.packbits(values > 0),
            neg=np.packbits(values < 0),
            dimension=dimension,
        )

    def to_dense(self) -> np.ndarray:
        """Unpack to an int8 array of shape (dimension,) with values in {-1, 0, 1}."""
        return (
            np.unpackbits(self.pos).astype(np.int8)
            - np.unpackbits(self.neg).astype(np.int8)
        )

    # ------------------------------------------------------------------
    # Core VSA operations
    # ------------------------------------------------------------------

    def _check_dimension(self, other: "TernaryHDV", operation: str) -> None:
        if self.dimension != other.dimension:
            raise DimensionMismatchError(self.dimension, other.dimension, operation)

    def bind(self, other: "TernaryHDV") -> "TernaryHDV":
        """
        Binding via element-wise trit multiply:
        (+)(+) -> +, (-)(-) -> +, (+)(-) -> -, (0)(x) -> 0.

        Properties:
          - Commutative: a * b = b * a
          - Associative: (a * b) * c = a * (b * c)
          - Self-inverse for bipolar b: (a * b) * b = a
        """
        self._check_dimension(other, "bind")
        pos = (self.pos & other.pos) | (self.neg & other.neg)
        neg = (self.pos & other.neg) | (self.neg & other.pos)
        return TernaryHDV(pos=pos, neg=neg, dimension=self.dimension)

    def unbind(self, other: "TernaryHDV") -> "TernaryHDV":
        """Recover the other operand of a binding. Exact when `other` is bipolar."""
        return self.bind(other)

    def bundle(self, other: "TernaryHDV") -> "TernaryHDV":
        """
        Superposition: sign(self + other) per trit.

        Agreeing trits are kept, a zero yields to the other operand, and
        opposing trits cancel to 0. Commutative, not associative.
        """
        self._check_dimension(other, "bundle")
        pos = (self.pos & ~other.neg) | (other.pos & ~self.neg)
        neg = (self.neg & ~other.pos) | (other.neg & ~self.pos)
        return TernaryHDV(pos=pos, neg=neg, dimension=self.dimension)

    def permute(self, shift: int = 1) -> "TernaryHDV":
        """
        Circular shift of every trit by `shift` positions (with wrap-around).
        """
        if shift % self.dimension == 0:
            return TernaryHDV(pos=self.pos.copy(), neg=self.neg.copy(), dimension=self.dimension)
        shift = shift % self.dimension
        pos = np.packbits(np.roll(np.unpackbits(self.pos), shift))
        neg = np.packbits(np.roll(np.unpackbits(self.neg), shift))
        return TernaryHDV(pos=pos, neg=neg, dimension=self.dimension)

    def negate(self) -> "TernaryHDV":
        """Flip every non-zero trit."""
        return TernaryHDV(pos=self.neg.copy(), neg=self.pos.copy(), dimension=self.dimension)

    # ------------------------------------------------------------------
    # Similarity
    # ------------------------------------------------------------------

    @property
    def nnz(self) -> int:
        """Number of non-zero trits."""
        return _popcount(self.pos | self.neg)

    def dot(self, other: "TernaryHDV") -> int:
        """Ternary dot product: agreeing trits minus opposing trits."""
        self._check_dimension(other, "dot")
        agree = (self.pos & other.pos) | (self.neg & other.neg)
        disagree = (self.pos & other.neg) | (self.neg & other.pos)
        return _popcount(agree) - _popcount(disagree)

    def cosine_similarity(self, other: "TernaryHDV") -> float:
        """Cosine similarity in [-1.0, 1.0]; 0.0 if either vector is all zero."""
        denom = np.sqrt(float(self.nnz) * float(other.nnz))
        if denom == 0.0:
            return 0.0
        return self.dot(other) / denom

    def __repr__(self) -> str:
        return (
            f"TernaryHDV(dim={self.dimension}, "
            f"pos={_popcount(self.pos)}, neg={_popcount(self.neg)})"
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TernaryHDV):
            return NotImplemented
        return (
            self.dimension == other.dimension
            and np.array_equal(self.pos, other.pos)
            and np.array_equal(self.neg, other.neg)
        )


# ======================================================================
# Module-level VSA API
# ======================================================================


def bind(a: TernaryHDV, b: TernaryHDV) -> TernaryHDV:
    return a.bind(b)


def bundle(a: TernaryHDV, b: TernaryHDV) -> TernaryHDV:
    return a.bundle(b)


def majority_bundle(vectors: List[TernaryHDV], tie_breaker: TernaryHDV) -> TernaryHDV:
    """
    Bundle many vectors at once via element-wise majority (sign of the sum).

    Positions whose sum is exactly zero take the trit of `tie_breaker`, so a
    bipolar tie breaker keeps the result bipolar.
    """
    if not vectors:
        raise VectorOperationError("majority_bundle", "cannot bundle an empty list")
    dimension = vectors[0].dimension
    sums = np.zeros(dimension, dtype=np.int32)
    for v in vectors:
        if v.dimension != dimension:
            raise DimensionMismatchError(dimension, v.dimension, "majority_bundle")
        sums += v.to_dense()
    result = np.sign(sums).astype(np.int8)
    ties = sums == 0
    if ties.any():
        result[ties] = tie_breaker.to_dense()[ties]
    return TernaryHDV.from_dense(result)


def encode_data(
    data: bytes, config: EncodingConfig, path: Optional[str] = None
) -> TernaryHDV:
    """
    Encode an arbitrary byte string into a dense bipolar hypervector.

    The input is cut into `config.block_size` byte blocks. Each block maps
    to a seeded atom permuted by its block index, and the atoms are combined
    by majority vote. Seeds are namespaced by the encoding config tag and the
    optional `path`, so the same bytes under a different config or path give
    an unrelated vector.

    Pure function of (data, config, path): no randomness, no shared state.
    """
    dimension = config.dimension
    namespace = config.tag + b"|" + (path.encode("utf-8") if path else b"") + b"|"

    if not data:
        return TernaryHDV.from_seed(namespace + b"empty", dimension)

    block_size = config.block_size
    blocks = [data[i:i + block_size] for i in range(0, len(data), block_size)]
    atoms = [
        TernaryHDV.from_seed(namespace + b"blk|" + block, dimension).permute(i)
        for i, block in enumerate(blocks)
    ]
    if len(atoms) == 1:
        return atoms[0]

    tie_breaker = TernaryHDV.from_seed(namespace + b"tie", dimension)
    return majority_bundle(atoms, tie_breaker)
