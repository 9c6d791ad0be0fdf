"""
Preset shapes for demos, the CLI and tests.

All presets are counter-clockwise rings in a y-up frame, centred on
``center`` with a nominal radius of ``size``.
"""
import logging
import math
from typing import Callable, Dict, List, Tuple

from polyslice.contracts import PolygonRing, SolidColor, Vec2

logger = logging.getLogger(__name__)

DEFAULT_SIZE = 150.0
CIRCLE_SEGMENTS = 32

SHAPE_COLORS: Dict[str, str] = {
    "triangle": "#4ECDC4",
    "square": "#FF6B6B",
    "pentagon": "#95E1D3",
    "circle": "#F38181",
    "star": "#FFD93D",
}


def regular_polygon(
    n: int,
    radius: float = DEFAULT_SIZE,
    center: Vec2 = (0.0, 0.0),
    start_angle: float = math.pi / 2,
) -> PolygonRing:
    """Regular n-gon, first vertex at ``start_angle`` (straight up by default)."""
    if n < 3:
        raise ValueError(f"A polygon needs at least 3 sides, got {n}")
    cx, cy = center
    pts = [
        (cx + radius * math.cos(start_angle + 2.0 * math.pi * i / n),
         cy + radius * math.sin(start_angle + 2.0 * math.pi * i / n))
        for i in range(n)
    ]
    return PolygonRing(tuple(pts))


def triangle(size: float = DEFAULT_SIZE, center: Vec2 = (0.0, 0.0)) -> PolygonRing:
    return regular_polygon(3, size, center)


def square(size: float = DEFAULT_SIZE, center: Vec2 = (0.0, 0.0)) -> PolygonRing:
    # axis-aligned, side 2 * size
    cx, cy = center
    return PolygonRing((
        (cx - size, cy - size),
        (cx + size, cy - size),
        (cx + size, cy + size),
        (cx - size, cy + size),
    ))


def pentagon(size: float = DEFAULT_SIZE, center: Vec2 = (0.0, 0.0)) -> PolygonRing:
    return regular_polygon(5, size, center)


def circle(size: float = DEFAULT_SIZE, center: Vec2 = (0.0, 0.0)) -> PolygonRing:
    return regular_polygon(CIRCLE_SEGMENTS, size, center, start_angle=0.0)


def star(
    size: float = DEFAULT_SIZE,
    center: Vec2 = (0.0, 0.0),
    points: int = 5,
    inner_ratio: float = 0.45,
) -> PolygonRing:
    """Concave star alternating outer and inner radii."""
    cx, cy = center
    verts: List[Tuple[float, float]] = []
    for i in range(points * 2):
        r = size if i % 2 == 0 else size * inner_ratio
        a = math.pi / 2 + math.pi * i / points
        verts.append((cx + r * math.cos(a), cy + r * math.sin(a)))
    return PolygonRing(tuple(verts))


SHAPES: Dict[str, Callable[..., PolygonRing]] = {
    "triangle": triangle,
    "square": square,
    "pentagon": pentagon,
    "circle": circle,
    "star": star,
}


def available_shapes() -> List[str]:
    return sorted(SHAPES)


def make_shape(
    name: str,
    size: float = DEFAULT_SIZE,
    center: Vec2 = (0.0, 0.0),
) -> Tuple[PolygonRing, SolidColor]:
    """Build a preset ring and its default colour.

    Raises:
        ValueError: unknown preset name.
    """
    key = name.strip().lower()
    if key not in SHAPES:
        raise ValueError(
            f"Unknown shape {name!r}; choose from {', '.join(available_shapes())}"
        )
    ring = SHAPES[key](size=size, center=center)
    logger.debug("Built preset %s with %d vertices", key, len(ring))
    return ring, SolidColor.from_hex(SHAPE_COLORS[key])
