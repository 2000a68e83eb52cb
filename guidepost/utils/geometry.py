from __future__ import annotations

import math
from typing import Optional, Sequence

import numpy as np

from guidepost.utils.types import BoundingBox, Color, Point

_SQRT3 = math.sqrt(3.0)


def center_distance(a: Point, b: Point) -> float:
    return math.hypot(a[0] - b[0], a[1] - b[1])


def size_ratio(a: float, b: float) -> float:
    """Symmetric area ratio (>= 1). Neutral 1.0 when either area is zero."""
    if a <= 0.0 or b <= 0.0:
        return 1.0
    return max(a / b, b / a)


def iou(a: BoundingBox, b: BoundingBox) -> float:
    inter_w = max(0.0, min(a.max_x, b.max_x) - max(a.x, b.x))
    inter_h = max(0.0, min(a.y + a.h, b.y + b.h) - max(a.y, b.y))
    inter_area = inter_w * inter_h
    denom = a.area + b.area - inter_area
    if denom <= 0.0:
        return 0.0
    return float(inter_area / denom)


def color_distance(a: Color, b: Color) -> float:
    """Euclidean RGB distance scaled to [0, 1] by sqrt(3)."""
    diff = np.asarray(a, dtype=float) - np.asarray(b, dtype=float)
    return float(np.linalg.norm(diff) / _SQRT3)


def distance_3d(a: Sequence[float], b: Sequence[float]) -> float:
    return float(np.linalg.norm(np.asarray(a, dtype=float) - np.asarray(b, dtype=float)))


def _ground(v: Sequence[float]) -> Optional[np.ndarray]:
    g = np.array([v[0], v[2]], dtype=float)  # (x, z)
    n = np.linalg.norm(g)
    if n <= 1e-9:
        return None
    return g / n


def ground_bearing(forward: Sequence[float], to_target: Sequence[float]) -> tuple[float, float]:
    """
    Horizontal angle between camera forward and the direction to the target,
    both projected onto the ground (x, z) plane.

    Returns (angle_degrees, cross). cross > 0 means the target is to the right.
    A degenerate target vector (straight up/down) reads as dead ahead.
    """
    f = _ground(forward)
    t = _ground(to_target)
    if f is None:
        f = np.array([0.0, -1.0])
    if t is None:
        return 0.0, 0.0
    dot = float(np.clip(np.dot(f, t), -1.0, 1.0))
    cross = float(f[0] * t[1] - f[1] * t[0])
    return math.degrees(math.acos(dot)), cross
