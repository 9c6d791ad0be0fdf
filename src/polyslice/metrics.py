"""
Area and shape metrics for polygon rings.

Shoelace area, bounding extents, vertex density and centroid. Every
function accepts a PolygonRing or any sequence of (x, y) pairs. Shapely is
used only for validity diagnostics.
"""
from typing import List, Sequence, Tuple, Union

import numpy as np
from shapely.geometry import Polygon

from polyslice.contracts import PolygonRing, Vec2
from polyslice.errors import DegenerateRingError

RingLike = Union[PolygonRing, Sequence[Sequence[float]]]


def _coords(ring: RingLike) -> np.ndarray:
    if isinstance(ring, PolygonRing):
        return ring.as_array()
    if len(ring) == 0:
        return np.zeros((0, 2))
    return np.asarray(ring, dtype=float).reshape(-1, 2)


def signed_area(ring: RingLike) -> float:
    """Shoelace signed area; positive for counter-clockwise rings."""
    pts = _coords(ring)
    if len(pts) < 3:
        return 0.0
    x = pts[:, 0]
    y = pts[:, 1]
    x_next = np.roll(x, -1)
    y_next = np.roll(y, -1)
    total = float(np.sum(x * y_next - x_next * y) / 2.0)
    # collinear rings can leave rounding residue; snap it to exactly zero
    span = float(np.ptp(pts, axis=0).max())
    if abs(total) <= 1e-12 * max(span * span, 1.0):
        return 0.0
    return total


def area(ring: RingLike) -> float:
    """Unsigned Shoelace area. 0.0 for fewer than 3 vertices or collinear input."""
    return abs(signed_area(ring))


def winding(ring: RingLike) -> str:
    a = signed_area(ring)
    if a > 0.0:
        return "ccw"
    if a < 0.0:
        return "cw"
    return "degenerate"


def bounding_extents(ring: RingLike) -> Tuple[Vec2, Vec2]:
    """((min_x, min_y), (max_x, max_y))."""
    pts = _coords(ring)
    if len(pts) == 0:
        raise DegenerateRingError("Cannot compute extents of an empty ring")
    lo = pts.min(axis=0)
    hi = pts.max(axis=0)
    return (float(lo[0]), float(lo[1])), (float(hi[0]), float(hi[1]))


def vertex_density(ring: RingLike) -> float:
    """Vertices per unit area.

    Raises:
        DegenerateRingError: if the ring encloses no area.
    """
    a = area(ring)
    if a == 0.0:
        raise DegenerateRingError("Vertex density undefined for zero-area ring")
    return len(_coords(ring)) / a


def centroid(ring: RingLike) -> Vec2:
    """Area-weighted centroid, vertex mean for zero-area input."""
    pts = _coords(ring)
    if len(pts) == 0:
        raise DegenerateRingError("Cannot compute centroid of an empty ring")
    a = signed_area(pts)
    if abs(a) < 1e-12:
        mean = pts.mean(axis=0)
        return float(mean[0]), float(mean[1])
    x = pts[:, 0]
    y = pts[:, 1]
    x_next = np.roll(x, -1)
    y_next = np.roll(y, -1)
    cross = x * y_next - x_next * y
    cx = np.sum((x + x_next) * cross) / (6.0 * a)
    cy = np.sum((y + y_next) * cross) / (6.0 * a)
    return float(cx), float(cy)


def ring_to_polygon(ring: RingLike) -> Polygon:
    """Convert a ring to a Shapely Polygon (empty for < 3 vertices)."""
    pts = _coords(ring)
    if len(pts) < 3:
        return Polygon()
    return Polygon(pts.tolist())


def is_simple(ring: RingLike) -> bool:
    """True when the ring is a valid, non-self-intersecting polygon."""
    poly = ring_to_polygon(ring)
    return (not poly.is_empty) and poly.is_valid


def fan_triangles(ring: RingLike) -> List[Tuple[Vec2, Vec2, Vec2]]:
    """Fan triangulation from the first vertex, for wireframe display only."""
    pts = [tuple(map(float, p)) for p in _coords(ring)]
    if len(pts) < 3:
        return []
    v0 = pts[0]
    return [(v0, pts[i], pts[i + 1]) for i in range(1, len(pts) - 1)]
