"""Collinear-overlap predicates and angle helpers for schematic layout."""

from __future__ import annotations

import math
from typing import Tuple

Point = Tuple[float, float]

EPSILON = 1e-3
ANGLE_THRESHOLD_DEG = 30.0

HORIZONTAL = "horizontal"
VERTICAL = "vertical"

_AXIS_CENTERS = {
    HORIZONTAL: (0.0, math.pi),
    VERTICAL: (math.pi / 2.0, 3.0 * math.pi / 2.0),
}


def _cross(p: Point, a: Point, b: Point) -> float:
    return (p[1] - a[1]) * (b[0] - a[0]) - (p[0] - a[0]) * (b[1] - a[1])


def is_collinear(p: Point, a: Point, b: Point, eps: float = EPSILON) -> bool:
    """Return ``True`` when ``p`` lies on the infinite line through ``a`` and ``b``."""

    return abs(_cross(p, a, b)) < eps


def points_coincide(p: Point, q: Point, eps: float = EPSILON) -> bool:
    return abs(p[0] - q[0]) < eps and abs(p[1] - q[1]) < eps


def point_in_segment_interior(p: Point, a: Point, b: Point, eps: float = EPSILON) -> bool:
    """Return ``True`` when ``p`` is collinear with ``a-b`` and strictly between them.

    The comparison runs on y when the segment is (near) vertical and on x
    otherwise. Endpoints never count as interior.
    """

    if not is_collinear(p, a, b, eps):
        return False
    if abs(a[0] - b[0]) < eps:
        return min(a[1], b[1]) < p[1] < max(a[1], b[1])
    return min(a[0], b[0]) < p[0] < max(a[0], b[0])


def segments_overlap(a: Point, b: Point, c: Point, d: Point, eps: float = EPSILON) -> bool:
    """Return ``True`` when segment ``c-d`` lies on ``a-b``'s line and the two
    projected intervals share an open interval (touching at a point is fine)."""

    # a zero-length segment has no direction and no open interval
    if points_coincide(a, b, eps) or points_coincide(c, d, eps):
        return False
    if not (is_collinear(c, a, b, eps) and is_collinear(d, a, b, eps)):
        return False
    axis = 1 if abs(a[0] - b[0]) < eps else 0
    lo_ab, hi_ab = sorted((a[axis], b[axis]))
    lo_cd, hi_cd = sorted((c[axis], d[axis]))
    return not (lo_cd >= hi_ab or hi_cd <= lo_ab)


def edge_angle(source: Point, target: Point) -> float:
    """Angle in radians of the vector ``source -> target``, in ``[-pi, pi]``."""

    return math.atan2(target[1] - source[1], target[0] - source[0])


def normalize_angle(angle: float) -> float:
    """Map an ``atan2`` angle into ``[0, 2*pi)``."""

    angle = math.fmod(angle, 2.0 * math.pi)
    if angle < 0.0:
        angle += 2.0 * math.pi
    return angle


def angular_distance(a: float, b: float) -> float:
    diff = abs(normalize_angle(a) - normalize_angle(b))
    return min(diff, 2.0 * math.pi - diff)


def offset_to_axis(angle: float, axis: str) -> float:
    """Minimum angular distance from ``angle`` to either direction of ``axis``."""

    try:
        first, second = _AXIS_CENTERS[axis]
    except KeyError as exc:
        raise ValueError(f"unknown axis '{axis}'") from exc
    return min(angular_distance(angle, first), angular_distance(angle, second))


def _tan_threshold(threshold_deg: float) -> float:
    return math.tan(math.radians(threshold_deg))


def is_close_to_horizontal(
    source: Point, target: Point, threshold_deg: float = ANGLE_THRESHOLD_DEG
) -> bool:
    dx = abs(target[0] - source[0])
    dy = abs(target[1] - source[1])
    return dy <= _tan_threshold(threshold_deg) * dx


def is_close_to_vertical(
    source: Point, target: Point, threshold_deg: float = ANGLE_THRESHOLD_DEG
) -> bool:
    dx = abs(target[0] - source[0])
    dy = abs(target[1] - source[1])
    return dx <= _tan_threshold(threshold_deg) * dy


__all__ = [
    "ANGLE_THRESHOLD_DEG",
    "EPSILON",
    "HORIZONTAL",
    "Point",
    "VERTICAL",
    "angular_distance",
    "edge_angle",
    "is_close_to_horizontal",
    "is_close_to_vertical",
    "is_collinear",
    "normalize_angle",
    "offset_to_axis",
    "point_in_segment_interior",
    "points_coincide",
    "segments_overlap",
]
