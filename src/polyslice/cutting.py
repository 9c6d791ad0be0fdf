"""
Polygon cutting along a finite line segment.

Vertices are classified by signed distance to the cut line, then the ring is
walked edge by edge. Each vertex goes to the positive or negative output in
walk order, and every crossing point is appended to both outputs at the
moment it is met. Appending in traversal order (rather than sorting the
crossings afterwards) is what keeps both output rings simple.
"""
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

import numpy as np

from polyslice.contracts import (
    CutLine,
    CutOutcome,
    NotIntersecting,
    PolygonRing,
    SliceConfig,
    Split,
    Vec2,
)
from polyslice.errors import DegenerateRingError, NoIntersectionError, SegmentOutOfRangeError
from polyslice.metrics import signed_area

logger = logging.getLogger(__name__)


def classify_vertices(ring: PolygonRing, line: CutLine) -> np.ndarray:
    """Signed distance of every vertex to ``line`` (positive on the normal side)."""
    pts = ring.as_array()
    nx, ny = line.normal
    return (pts[:, 0] - line.start[0]) * nx + (pts[:, 1] - line.start[1]) * ny


def _edge_crossing(a: Vec2, b: Vec2, da: float, db: float, line: CutLine) -> Vec2:
    """Crossing point of edge a->b, or SegmentOutOfRangeError past the segment ends."""
    t = abs(da) / (abs(da) + abs(db))
    point = (a[0] + (b[0] - a[0]) * t, a[1] + (b[1] - a[1]) * t)
    if not line.within_segment(point):
        raise SegmentOutOfRangeError(
            f"Crossing at ({point[0]:.3f}, {point[1]:.3f}) lies outside the cut segment"
        )
    return point


def _straddles(da: float, db: float) -> bool:
    return (da > 0 and db < 0) or (da < 0 and db > 0)


@dataclass(frozen=True)
class _OnLineRun:
    """Consecutive vertices lying exactly on the cut line."""

    indices: Tuple[int, ...]
    before: float  # signed distance of the vertex preceding the run
    after: float  # signed distance of the vertex following the run

    @property
    def passes(self) -> bool:
        return _straddles(self.before, self.after)


def _on_line_runs(d: np.ndarray) -> Dict[int, _OnLineRun]:
    """Map every zero-distance vertex to the run it belongs to.

    ``d`` must contain at least one non-zero entry.
    """
    n = len(d)
    anchor = int(np.flatnonzero(d != 0.0)[0])
    runs: Dict[int, _OnLineRun] = {}
    current: List[int] = []
    for k in range(1, n + 1):
        idx = (anchor + k) % n
        if d[idx] == 0.0:
            current.append(idx)
            continue
        if current:
            run = _OnLineRun(tuple(current), float(d[current[0] - 1]), float(d[idx]))
            for i in current:
                runs[i] = run
            current = []
    return runs


def _run_crosses(ring: PolygonRing, run: _OnLineRun, line: CutLine) -> bool:
    return run.passes and all(
        line.within_segment(ring[i]) for i in (run.indices[0], run.indices[-1])
    )


def _interior_side(ring: PolygonRing, run: _OnLineRun, line: CutLine, orientation: float) -> float:
    """Side (+1 / -1) whose region borders a collinear run; 0 for a single vertex."""
    if len(run.indices) < 2:
        return 0.0
    a, b = ring[run.indices[0]], ring[run.indices[1]]
    dx, dy = line.direction
    along = (b[0] - a[0]) * dx + (b[1] - a[1]) * dy
    # the interior lies left of a counter-clockwise edge
    return orientation * (1.0 if along > 0 else -1.0)


def crosses_segment(
    ring: PolygonRing,
    line: CutLine,
    config: Optional[SliceConfig] = None,
) -> bool:
    """True when vertices lie clearly on both sides and the boundary crosses the drawn segment."""
    if config is None:
        config = SliceConfig()
    d = classify_vertices(ring, line)
    if not (np.any(d > config.side_epsilon) and np.any(d < -config.side_epsilon)):
        return False

    n = len(ring)
    for i in range(n):
        j = (i + 1) % n
        if not _straddles(d[i], d[j]):
            continue
        try:
            _edge_crossing(ring[i], ring[j], d[i], d[j], line)
        except SegmentOutOfRangeError:
            continue
        return True
    runs = _on_line_runs(d)
    return any(_run_crosses(ring, run, line) for run in set(runs.values()))


def cut_ring(
    ring: PolygonRing,
    line: CutLine,
    config: Optional[SliceConfig] = None,
) -> CutOutcome:
    """Split ``ring`` along ``line``.

    Vertices exactly on the line are handled run by run. A run whose
    neighbours sit on opposite sides is a crossing: the side whose region
    borders the run keeps all of it, the other side keeps only the end
    next to its own vertices. A run touching the line from one side stays
    with that side.

    Returns:
        NotIntersecting when the ring lies on one side, when no edge crosses
        the drawn segment, or when fewer than two crossings survive the
        segment check. Otherwise a Split whose sides are rings in the
        original winding, or None for a side with fewer than 3 vertices.
    """
    if config is None:
        config = SliceConfig()

    d = classify_vertices(ring, line)
    if not (np.any(d > config.side_epsilon) and np.any(d < -config.side_epsilon)):
        return NotIntersecting("ring lies on one side of the cut line")

    runs = _on_line_runs(d)
    orientation = 1.0 if signed_area(ring) > 0 else -1.0

    pos: List[Vec2] = []
    neg: List[Vec2] = []
    crossings = 0
    skipped = 0

    n = len(ring)
    for i in range(n):
        j = (i + 1) % n
        v = ring[i]
        run = runs.get(i)
        if run is None:
            (pos if d[i] > 0 else neg).append(v)
        elif _run_crosses(ring, run, line):
            inner = _interior_side(ring, run, line, orientation)
            first = i == run.indices[0]
            last = i == run.indices[-1]
            if inner >= 0 or (first and run.before > 0) or (last and run.after > 0):
                pos.append(v)
            if inner <= 0 or (first and run.before < 0) or (last and run.after < 0):
                neg.append(v)
            if last:
                crossings += 1
        elif not run.passes:
            # touching run stays with its neighbours
            (pos if run.before > 0 else neg).append(v)
        else:
            if i == run.indices[-1]:
                skipped += 1
                logger.debug("Skipping on-line vertex run ending at %d: outside the segment", i)
            pos.append(v)

        if not _straddles(d[i], d[j]):
            continue
        try:
            point = _edge_crossing(v, ring[j], d[i], d[j], line)
        except SegmentOutOfRangeError as exc:
            skipped += 1
            logger.debug("Skipping edge %d: %s", i, exc)
            continue
        pos.append(point)
        neg.append(point)
        crossings += 1

    if crossings < 2:
        return NotIntersecting(
            f"{crossings} crossing(s) within the cut segment ({skipped} outside)"
        )

    pos_ring = _side_ring(pos, config)
    neg_ring = _side_ring(neg, config)
    logger.debug(
        "Cut %d vertices -> pos %s, neg %s (%d crossings)",
        n,
        len(pos_ring) if pos_ring else None,
        len(neg_ring) if neg_ring else None,
        crossings,
    )
    return Split(pos=pos_ring, neg=neg_ring, intersections=crossings)


def _side_ring(points: List[Vec2], config: SliceConfig) -> Optional[PolygonRing]:
    if len(points) < 3:
        return None
    try:
        return PolygonRing(tuple(points), epsilon=config.vertex_epsilon)
    except DegenerateRingError:
        return None


def require_split(outcome: CutOutcome) -> Tuple[PolygonRing, PolygonRing]:
    """Unpack a Split with two usable sides.

    Raises:
        NoIntersectionError: the outcome is NotIntersecting.
        DegenerateRingError: a side collapsed below 3 vertices.
    """
    if isinstance(outcome, NotIntersecting):
        raise NoIntersectionError(outcome.reason)
    if outcome.pos is None or outcome.neg is None:
        raise DegenerateRingError("Cut produced a side with fewer than 3 vertices")
    return outcome.pos, outcome.neg
