"""Embedding vector codec and cosine similarity.

Vectors are stored as consecutive little-endian IEEE-754 single precision
floats, four bytes per element.
"""

import math
import struct
from typing import List, Sequence

FLOAT32_SIZE = 4


class VectorDimensionError(ValueError):
    """Raised when two vectors of different lengths are compared."""


def encode(vector: Sequence[float]) -> bytes:
    """Encode a vector as little-endian float32 bytes.

    Args:
        vector: Float values

    Returns:
        4 * len(vector) bytes

    Raises:
        ValueError: If an element is not a number representable as float32
    """
    try:
        return struct.pack(f"<{len(vector)}f", *vector)
    except struct.error as e:
        raise ValueError(f"Cannot encode vector: {e}") from e


def decode(data: bytes) -> List[float]:
    """Decode little-endian float32 bytes into a vector.

    A trailing partial group (fewer than four bytes) is ignored.

    Args:
        data: Raw vector bytes

    Returns:
        Decoded float values
    """
    size = len(data) // FLOAT32_SIZE
    return list(struct.unpack_from(f"<{size}f", data))


def as_float32(vector: Sequence[float]) -> List[float]:
    """Round a vector to single precision so it matches its stored form."""
    return decode(encode(vector))


def cosine_similarity(vec_a: Sequence[float], vec_b: Sequence[float]) -> float:
    """Compute cosine similarity between two vectors.

    Args:
        vec_a: First vector
        vec_b: Second vector

    Returns:
        dot(a, b) / (|a| * |b|), or 0.0 when either vector has zero norm

    Raises:
        VectorDimensionError: If the vectors have different lengths
    """
    if len(vec_a) != len(vec_b):
        raise VectorDimensionError(
            f"Vector dimensions must match: {len(vec_a)} != {len(vec_b)}"
        )

    dot_product = sum(a * b for a, b in zip(vec_a, vec_b))
    magnitude_a = math.sqrt(sum(a * a for a in vec_a))
    magnitude_b = math.sqrt(sum(b * b for b in vec_b))

    if magnitude_a == 0 or magnitude_b == 0:
        return 0.0

    return dot_product / (magnitude_a * magnitude_b)
