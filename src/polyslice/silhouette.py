"""
Boundary tracing for unordered 2D point clouds.

Recovers an ordered outline ring (concavities included) from points that
were projected off a 3D mesh. A convex hull would bridge notches, so the
outline is traced with a greedy walk:

1. De-duplicate on coordinates rounded to a fixed decimal precision
2. Measure the mean k-nearest-neighbour spacing (SciPy KDTree)
3. Start at the lowest point and repeatedly step to the unused neighbour
   within reach that turns least away from the travel direction
4. Stop on a dead end, on returning near the start, or after 2n steps
"""
import logging
import math
from typing import List, Sequence, Tuple

import numpy as np
from scipy.spatial import KDTree

from polyslice.contracts import PolygonRing, Vec2
from polyslice.errors import DegenerateRingError, InsufficientPointsError
from polyslice.metrics import area

logger = logging.getLogger(__name__)

DISTANCE_WEIGHT = 0.1
CLOSE_FACTOR = 2.0


def dedupe_points(points: Sequence[Sequence[float]], decimals: int = 6) -> np.ndarray:
    """Drop points whose coordinates match after rounding, keeping first-seen order."""
    seen = set()
    unique: List[Tuple[float, float]] = []
    for p in points:
        x, y = float(p[0]), float(p[1])
        key = (round(x, decimals), round(y, decimals))
        if key in seen:
            continue
        seen.add(key)
        unique.append((x, y))
    return np.asarray(unique, dtype=float).reshape(-1, 2)


def average_nearest_neighbor_distance(points: np.ndarray, k: int = 3) -> float:
    """Mean over all points of the mean distance to their k nearest neighbours."""
    pts = np.asarray(points, dtype=float).reshape(-1, 2)
    n = len(pts)
    if n < 2:
        return 0.0
    k_eff = max(1, min(k, n - 1))
    tree = KDTree(pts)
    # first column is the point itself
    distances, _ = tree.query(pts, k=k_eff + 1)
    distances = np.asarray(distances).reshape(n, k_eff + 1)
    return float(np.mean(distances[:, 1:].mean(axis=1)))


def _normalize_angle(angle: float) -> float:
    while angle > math.pi:
        angle -= 2.0 * math.pi
    while angle < -math.pi:
        angle += 2.0 * math.pi
    return angle


def extract_silhouette(
    points: Sequence[Sequence[float]],
    alpha: float = 0.05,
    k: int = 3,
    decimals: int = 6,
) -> PolygonRing:
    """Trace an ordered outline ring around an unordered 2D point cloud.

    Args:
        points: (x, y) pairs in any order.
        alpha: Reach control in (0, 1]. The walk only steps to points within
            ``avg_nn / alpha``; smaller values reach farther and smooth
            over narrow notches.
        k: Neighbour count for the spacing estimate.
        decimals: Rounding precision of the de-duplication key.

    Returns:
        PolygonRing in walk order.

    Raises:
        InsufficientPointsError: fewer than 3 unique points, or the walk
            produced fewer than 3 usable vertices.
    """
    if not 0.0 < alpha <= 1.0:
        raise ValueError(f"alpha must lie in (0, 1], got {alpha}")

    pts = dedupe_points(points, decimals)
    n = len(pts)
    if n < 3:
        raise InsufficientPointsError(f"Need at least 3 unique points, got {n}")

    avg_nn = average_nearest_neighbor_distance(pts, k)
    max_reach = avg_nn / alpha
    logger.debug("Silhouette spacing %.6f, reach %.6f over %d points", avg_nn, max_reach, n)

    start_idx = int(np.lexsort((pts[:, 0], pts[:, 1]))[0])
    start = pts[start_idx]

    used = np.zeros(n, dtype=bool)
    used[start_idx] = True
    order = [start_idx]
    current = start
    heading = 0.0

    iterations = 0
    max_iterations = 2 * n
    while iterations < max_iterations:
        iterations += 1

        candidates = np.flatnonzero(~used)
        if len(candidates) == 0:
            break
        offsets = pts[candidates] - current
        dists = np.hypot(offsets[:, 0], offsets[:, 1])
        in_reach = dists <= max_reach
        if not np.any(in_reach):
            logger.debug("Silhouette walk dead-ended after %d steps", iterations)
            break

        best_idx = -1
        best_score = math.inf
        for idx, off, dist in zip(candidates[in_reach], offsets[in_reach], dists[in_reach]):
            turn = _normalize_angle(math.atan2(off[1], off[0]) - heading)
            score = turn + DISTANCE_WEIGHT * (dist / max_reach)
            if score < best_score:
                best_score = score
                best_idx = int(idx)

        nxt = pts[best_idx]
        if len(order) > 3 and math.hypot(nxt[0] - start[0], nxt[1] - start[1]) < CLOSE_FACTOR * avg_nn:
            break

        order.append(best_idx)
        used[best_idx] = True
        heading = math.atan2(nxt[1] - current[1], nxt[0] - current[0])
        current = nxt

    outline: List[Vec2] = [(float(pts[i, 0]), float(pts[i, 1])) for i in order]
    try:
        ring = PolygonRing(tuple(outline), epsilon=10.0 ** (-decimals))
    except DegenerateRingError as exc:
        raise InsufficientPointsError(f"Traced outline is degenerate: {exc}") from exc
    if area(ring) == 0.0:
        raise InsufficientPointsError("Traced outline encloses no area")

    logger.info("Silhouette: %d points -> %d outline vertices", n, len(ring))
    return ring
