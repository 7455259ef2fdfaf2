"""Vector helpers: L2 normalisation, cosine similarity, placeholder embeddings."""

from __future__ import annotations

import hashlib
from collections.abc import Sequence

import numpy as np

_UINT32_MAX = 0xFFFFFFFF


def l2_normalize(vector: Sequence[float]) -> list[float]:
    """Scale *vector* to unit Euclidean length.

    An all-zero vector has no direction and is returned unchanged.
    """
    arr = np.asarray(vector, dtype=np.float64)
    norm = float(np.linalg.norm(arr))
    if norm == 0.0:
        return [float(v) for v in vector]
    return (arr / norm).tolist()


def cosine_similarity(query: Sequence[float], matrix: Sequence[Sequence[float]]) -> np.ndarray:
    """Return the cosine similarity of *query* against every row of *matrix*.

    Rows (or a query) with zero norm score ``0.0``.
    """
    q = np.asarray(query, dtype=np.float64)
    m = np.asarray(matrix, dtype=np.float64)
    if m.size == 0:
        return np.zeros(0)
    if m.ndim == 1:
        m = m.reshape(1, -1)
    norms = np.linalg.norm(m, axis=1) * np.linalg.norm(q)
    dots = m @ q
    with np.errstate(divide="ignore", invalid="ignore"):
        scores = np.where(norms > 0, dots / norms, 0.0)
    return scores


def placeholder_vector(text: str, dimension: int) -> list[float]:
    """Deterministic, non-semantic vector for *text* with components in ``[-1, 1]``.

    Component ``i`` is derived from the MD5 digest of ``"{text}|{i}"``, so the
    same text always maps to the same vector. Used in test mode and when the
    embedding backend is unreachable; such chunks are stored non-searchable.
    """
    vector: list[float] = []
    for i in range(dimension):
        digest = hashlib.md5(f"{text}|{i}".encode("utf-8")).hexdigest()
        vector.append(int(digest[:8], 16) / _UINT32_MAX * 2 - 1)
    return vector
