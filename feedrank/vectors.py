"""Content vector math."""

from typing import List, Optional, Sequence

import numpy as np


def cosine_similarity(vec1: Sequence[float], vec2: Sequence[float]) -> float:
    """Compute cosine similarity, 0.0 for zero or mismatched vectors."""
    v1, v2 = np.asarray(vec1, dtype=float), np.asarray(vec2, dtype=float)
    if v1.shape != v2.shape:
        return 0.0
    norm1, norm2 = np.linalg.norm(v1), np.linalg.norm(v2)
    if norm1 == 0 or norm2 == 0:
        return 0.0
    return float(np.dot(v1, v2) / (norm1 * norm2))


def mean_vector(vectors: Sequence[Sequence[float]]) -> Optional[List[float]]:
    """Element-wise mean of same-length vectors, None when there are none."""
    if not vectors:
        return None
    dims = len(vectors[0])
    usable = [v for v in vectors if len(v) == dims]
    matrix = np.asarray(usable, dtype=float)
    return matrix.mean(axis=0).tolist()
