"""
Vertex reduction for physics collision outlines.

The rendered ring is never touched; only the copy handed to the physics
back end is padded and decimated here.
"""
import logging
import math
from typing import Optional

from polyslice.contracts import PolygonRing, SliceConfig
from polyslice.errors import DegenerateRingError
from polyslice.metrics import bounding_extents

logger = logging.getLogger(__name__)

MIN_SIMPLIFY_VERTICES = 8
MIN_TARGET_VERTICES = 20


def simplify_ring(
    ring: PolygonRing,
    max_vertex_count: int = 200,
    min_spacing: float = 0.3,
) -> PolygonRing:
    """Uniformly decimate a ring down to a vertex budget.

    Rings with at most 8 vertices (primitive shapes) or already within the
    budget come back unchanged. If decimation would leave fewer than 3
    vertices the original ring is returned.
    """
    n = len(ring)
    if n <= MIN_SIMPLIFY_VERTICES or n <= max_vertex_count:
        return ring

    target = min(max_vertex_count, max(MIN_TARGET_VERTICES, n // 2))
    stride = n / target

    sampled = []
    i = 0.0
    while i < n:
        sampled.append(ring[int(math.floor(i))])
        i += stride

    kept = []
    for j, current in enumerate(sampled):
        nxt = sampled[(j + 1) % len(sampled)]
        if j == 0 or math.hypot(nxt[0] - current[0], nxt[1] - current[1]) > min_spacing:
            kept.append(current)

    if len(kept) < 3:
        return ring
    try:
        simplified = PolygonRing(tuple(kept), epsilon=ring.epsilon)
    except DegenerateRingError:
        return ring

    logger.debug("Simplified ring %d -> %d vertices", n, len(simplified))
    return simplified


def padding_factor(ring: PolygonRing) -> float:
    """Scale-up applied to small collision outlines so slivers do not tunnel."""
    (min_x, min_y), (max_x, max_y) = bounding_extents(ring)
    size = min(max_x - min_x, max_y - min_y)
    if size < 20.0:
        return 1.03
    if size < 50.0:
        return 1.02
    return 1.01


def pad_ring(ring: PolygonRing, factor: Optional[float] = None) -> PolygonRing:
    """Scale a ring about its bounding-box centre."""
    if factor is None:
        factor = padding_factor(ring)
    (min_x, min_y), (max_x, max_y) = bounding_extents(ring)
    cx = (min_x + max_x) / 2.0
    cy = (min_y + max_y) / 2.0
    return PolygonRing(
        tuple((cx + (x - cx) * factor, cy + (y - cy) * factor) for x, y in ring),
        epsilon=ring.epsilon,
    )


def physics_outline(ring: PolygonRing, config: Optional[SliceConfig] = None) -> PolygonRing:
    """Padded, decimated copy of ``ring`` for a collision shape."""
    if config is None:
        config = SliceConfig()
    return simplify_ring(
        pad_ring(ring),
        max_vertex_count=config.max_vertex_count,
        min_spacing=config.simplify_min_spacing,
    )
