from __future__ import annotations

from typing import List, Sequence


def encode_vector(embedding: Sequence[float]) -> str:
    """Render ``embedding`` as a pgvector literal, e.g. ``[0.100000,-0.250000]``.

    No normalization or length check happens here.
    """
    return "[" + ",".join(f"{float(value):.6f}" for value in embedding) + "]"


def decode_vector(literal: str) -> List[float]:
    body = literal.strip()
    if not (body.startswith("[") and body.endswith("]")):
        raise ValueError(f"Not a vector literal: {literal!r}")
    body = body[1:-1].strip()
    if not body:
        return []
    return [float(part) for part in body.split(",")]
