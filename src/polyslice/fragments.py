"""
Keep-or-dust decisions for cut outputs, plus the dust particle effect.

The dust threshold is always measured against the root ancestor's area, so a
chain of halving cuts survives several generations while subdivision stays
bounded at roughly ``dust_divisor`` pieces of the original.
"""
import logging
from dataclasses import dataclass, field
from typing import Optional, Sequence, Tuple

import numpy as np

from polyslice.contracts import (
    CutOutcome,
    Dust,
    FragmentDecision,
    Keep,
    PolygonRing,
    SolidColor,
    VisualPayload,
)
from polyslice.cutting import require_split
from polyslice.errors import DegenerateRingError
from polyslice.metrics import area

logger = logging.getLogger(__name__)

MIN_PARTICLES = 20
MAX_PARTICLES = 30
PARTICLE_SPEED = 30.0
PARTICLE_LIFT = 10.0
DUST_DURATION_S = 1.2


@dataclass
class FragmentPolicy:
    """Classify rings as live fragments or dust relative to the root area."""

    dust_divisor: float = 40.0

    def threshold(self, root_area: float) -> float:
        return root_area / self.dust_divisor

    def classify(self, ring: PolygonRing, root_area: float) -> FragmentDecision:
        a = area(ring)
        if a < self.threshold(root_area):
            return Dust(points=tuple(ring.points), area=a)
        return Keep(ring=ring, area=a)

    def resolve_split(
        self, split: CutOutcome, root_area: float,
    ) -> Tuple[FragmentDecision, FragmentDecision]:
        """Decisions for (pos, neg).

        Raises:
            NoIntersectionError: ``split`` is a NotIntersecting outcome.
            DegenerateRingError: a side is missing or encloses no area.
        """
        pos_ring, neg_ring = require_split(split)
        pos = self.classify(pos_ring, root_area)
        neg = self.classify(neg_ring, root_area)
        if pos.area == 0.0 or neg.area == 0.0:
            raise DegenerateRingError("Split produced a zero-area side")
        logger.debug(
            "Split areas pos=%.3f neg=%.3f (threshold %.3f)",
            pos.area, neg.area, self.threshold(root_area),
        )
        return pos, neg


@dataclass
class DustBurst:
    """Short-lived particle puff left behind by a dust-classified piece."""

    positions: np.ndarray  # (N, 2)
    velocities: np.ndarray  # (N, 2)
    payload: VisualPayload = field(default_factory=SolidColor)
    duration: float = DUST_DURATION_S
    gravity: float = -1.0
    elapsed: float = 0.0
    render_handle: object = None

    @property
    def progress(self) -> float:
        return min(1.0, self.elapsed / self.duration) if self.duration > 0 else 1.0

    @property
    def opacity(self) -> float:
        return 1.0 - self.progress

    @property
    def particle_size(self) -> float:
        return 6.0 * (1.0 - self.progress * 0.7)

    @property
    def expired(self) -> bool:
        return self.progress >= 1.0

    def advance(self, dt: float) -> bool:
        """Move particles forward by ``dt`` seconds. Returns False once expired."""
        self.elapsed += dt
        if self.expired:
            return False
        self.positions = self.positions + self.velocities * dt
        self.velocities[:, 1] += self.gravity * dt
        return True


def make_dust_burst(
    points: Sequence[Tuple[float, float]],
    payload: Optional[VisualPayload] = None,
    rng: Optional[np.random.Generator] = None,
) -> DustBurst:
    """Scatter particles from the vertices of a dust piece."""
    if rng is None:
        rng = np.random.default_rng()
    pts = np.asarray(points, dtype=float).reshape(-1, 2)
    if len(pts) == 0:
        raise DegenerateRingError("Dust burst needs at least one vertex")

    count = min(max(len(pts), MIN_PARTICLES), MAX_PARTICLES)
    if len(pts) >= count:
        origins = pts[:count]
    else:
        extra = pts[rng.integers(0, len(pts), size=count - len(pts))]
        origins = np.vstack([pts, extra])

    velocities = (rng.random((count, 2)) - 0.5) * PARTICLE_SPEED
    velocities[:, 1] += PARTICLE_LIFT

    return DustBurst(
        positions=origins.copy(),
        velocities=velocities,
        payload=payload if payload is not None else SolidColor(),
    )
