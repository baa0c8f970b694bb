"""
Planar and spatial geometry helpers for joint coordinates.

All points are plain (x, y) or (x, y, z) tuples in normalized image space.
"""

import logging
from typing import Sequence

import numpy as np

logger = logging.getLogger(__name__)

Point = Sequence[float]


def angle_at(p1: Point, vertex: Point, p3: Point) -> float:
    """
    Calculate the angle at `vertex` formed by p1-vertex-p3.

    Uses the normalized dot product of (p1 - vertex) and (p3 - vertex).
    The cosine is clipped to [-1, 1] before arccos to absorb floating-point
    drift.

    Returns:
        Angle in degrees within [0, 180]. A zero-length arm yields 0.0,
        which callers must not trust without a plausibility check.
    """
    a = np.asarray(p1[:2], dtype=float)
    b = np.asarray(vertex[:2], dtype=float)
    c = np.asarray(p3[:2], dtype=float)

    ba = a - b
    bc = c - b

    norm_ba = np.linalg.norm(ba)
    norm_bc = np.linalg.norm(bc)
    if norm_ba == 0 or norm_bc == 0:
        logger.debug(f"Degenerate angle: zero-length vector at vertex {tuple(b)}")
        return 0.0

    cosine = np.dot(ba, bc) / (norm_ba * norm_bc)
    angle = np.arccos(np.clip(cosine, -1.0, 1.0))

    return float(np.degrees(angle))


def distance(a: Point, b: Point) -> float:
    """Euclidean distance between two points of equal dimension (2-D or 3-D)."""
    if len(a) != len(b):
        raise ValueError(f"Point dimensions differ: {len(a)} vs {len(b)}")
    return float(np.linalg.norm(np.asarray(a, dtype=float) - np.asarray(b, dtype=float)))
