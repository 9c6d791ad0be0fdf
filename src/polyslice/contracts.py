"""Contracts for the polygon cutting and fragmentation engine."""

from __future__ import annotations

import json
import math
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np

from polyslice.errors import DegenerateRingError

Vec2 = Tuple[float, float]
RGB = Tuple[float, float, float]
UVRect = Tuple[float, float, float, float]

VERTEX_EPSILON = 1e-2


@dataclass(frozen=True)
class SliceConfig:
    """Tuning constants for cutting, dust classification and extraction."""

    vertex_epsilon: float = VERTEX_EPSILON
    side_epsilon: float = 0.1
    segment_margin: float = 2.0  # units past either end of the drawn segment
    dust_divisor: float = 40.0  # dust below root_area / dust_divisor
    silhouette_alpha: float = 0.05
    silhouette_k: int = 3
    dedupe_decimals: int = 6
    max_vertex_count: int = 200
    simplify_min_spacing: float = 0.3
    cut_force_scale: float = 1.0
    seed: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SliceConfig":
        """Build a config from a mapping, rejecting unknown keys."""
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"Unknown config keys: {', '.join(unknown)}")
        return cls(**dict(data))

    def to_dict(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


def load_config(path: Union[str, Path]) -> SliceConfig:
    """Read a SliceConfig from a JSON file."""
    with Path(path).open("r", encoding="utf-8") as f:
        payload = json.load(f)
    if not isinstance(payload, dict):
        raise ValueError(f"Config file {path} must contain a JSON object")
    return SliceConfig.from_dict(payload)


# ─── Geometry values ─────────────────────────────────────────────────────────

def _dedupe_consecutive(points: Iterable[Sequence[float]], epsilon: float) -> List[Vec2]:
    kept: List[Vec2] = []
    for p in points:
        x, y = float(p[0]), float(p[1])
        if kept and math.hypot(x - kept[-1][0], y - kept[-1][1]) < epsilon:
            continue
        kept.append((x, y))
    # closing edge
    while len(kept) > 1 and math.hypot(
        kept[-1][0] - kept[0][0], kept[-1][1] - kept[0][1]
    ) < epsilon:
        kept.pop()
    return kept


@dataclass(frozen=True)
class PolygonRing:
    """Closed, ordered vertex sequence with at least 3 distinct vertices.

    Consecutive vertices closer than ``epsilon`` (including the last/first
    pair) are collapsed on construction. Winding order is kept as given.
    """

    points: Tuple[Vec2, ...]
    epsilon: float = field(default=VERTEX_EPSILON, compare=False, repr=False)

    def __post_init__(self):
        cleaned = _dedupe_consecutive(self.points, self.epsilon)
        if len(cleaned) < 3:
            raise DegenerateRingError(
                f"Ring needs at least 3 distinct vertices, got {len(cleaned)}"
            )
        object.__setattr__(self, "points", tuple(cleaned))

    @classmethod
    def from_array(cls, array: np.ndarray, epsilon: float = VERTEX_EPSILON) -> "PolygonRing":
        arr = np.asarray(array, dtype=float).reshape(-1, 2)
        return cls(tuple(map(tuple, arr.tolist())), epsilon=epsilon)

    def __len__(self) -> int:
        return len(self.points)

    def __iter__(self) -> Iterator[Vec2]:
        return iter(self.points)

    def __getitem__(self, index: int) -> Vec2:
        return self.points[index]

    def as_array(self) -> np.ndarray:
        return np.asarray(self.points, dtype=float)

    def translated(self, dx: float, dy: float) -> "PolygonRing":
        return PolygonRing(
            tuple((x + dx, y + dy) for x, y in self.points), epsilon=self.epsilon,
        )

    def transformed(self, x: float, y: float, angle: float) -> "PolygonRing":
        """Rotate by ``angle`` about the origin, then translate by (x, y)."""
        c, s = math.cos(angle), math.sin(angle)
        return PolygonRing(
            tuple((c * px - s * py + x, s * px + c * py + y) for px, py in self.points),
            epsilon=self.epsilon,
        )

    def reversed(self) -> "PolygonRing":
        return PolygonRing(tuple(reversed(self.points)), epsilon=self.epsilon)


@dataclass(frozen=True)
class Pose:
    """Placement of a fragment's local frame in world space."""

    x: float = 0.0
    y: float = 0.0
    angle: float = 0.0


@dataclass(frozen=True)
class CutLine:
    """Oriented cut segment; the normal ``(-dy, dx)`` marks the positive side."""

    start: Vec2
    end: Vec2
    margin: float = 2.0

    @property
    def length(self) -> float:
        return max(1e-4, math.hypot(self.end[0] - self.start[0], self.end[1] - self.start[1]))

    @property
    def direction(self) -> Vec2:
        dx = self.end[0] - self.start[0]
        dy = self.end[1] - self.start[1]
        n = math.hypot(dx, dy)
        if n < 1e-12:
            return (1.0, 0.0)
        return (dx / n, dy / n)

    @property
    def normal(self) -> Vec2:
        dx, dy = self.direction
        return (-dy, dx)

    def signed_distance(self, point: Sequence[float]) -> float:
        nx, ny = self.normal
        return (point[0] - self.start[0]) * nx + (point[1] - self.start[1]) * ny

    def segment_parameter(self, point: Sequence[float]) -> float:
        dx, dy = self.direction
        proj = (point[0] - self.start[0]) * dx + (point[1] - self.start[1]) * dy
        return proj / self.length

    def within_segment(self, point: Sequence[float]) -> bool:
        u = self.segment_parameter(point)
        slack = self.margin / self.length
        return -slack <= u <= 1.0 + slack


# ─── Visual payload ──────────────────────────────────────────────────────────

@dataclass(frozen=True)
class SolidColor:
    """Flat fill colour, components in [0, 1]."""

    rgb: RGB = (0.5, 0.75, 0.12)

    @classmethod
    def from_hex(cls, value: str) -> "SolidColor":
        value = value.lstrip("#")
        if len(value) != 6:
            raise ValueError(f"Expected #rrggbb colour, got {value!r}")
        r, g, b = (int(value[i:i + 2], 16) / 255.0 for i in (0, 2, 4))
        return cls((r, g, b))

    @property
    def hex(self) -> str:
        r, g, b = (int(round(max(0.0, min(1.0, c)) * 255)) for c in self.rgb)
        return f"#{r:02x}{g:02x}{b:02x}"


@dataclass(frozen=True)
class Textured:
    """Texture reference plus the UV sub-rectangle the shape maps onto."""

    texture_ref: str
    uv_rect: UVRect = (0.0, 0.0, 1.0, 1.0)


VisualPayload = Union[SolidColor, Textured]


# ─── Fragments ───────────────────────────────────────────────────────────────

@dataclass
class Fragment:
    """A live polygon owned by the session store."""

    fragment_id: int
    ring: PolygonRing  # local frame
    pose: Pose
    root_area: float
    current_area: float
    payload: VisualPayload = field(default_factory=SolidColor)
    parent_id: Optional[int] = None
    generation: int = 0
    render_handle: Any = None
    body_handle: Any = None

    @property
    def is_root(self) -> bool:
        return self.parent_id is None

    def world_ring(self) -> PolygonRing:
        return self.ring.transformed(self.pose.x, self.pose.y, self.pose.angle)


# ─── Outcomes ────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class NotIntersecting:
    """The cut left the ring untouched."""

    reason: str = "ring lies on one side of the cut"


@dataclass(frozen=True)
class Split:
    """Two sides of a successful cut; a degenerate side is ``None``."""

    pos: Optional[PolygonRing]
    neg: Optional[PolygonRing]
    intersections: int = 2


CutOutcome = Union[NotIntersecting, Split]


@dataclass(frozen=True)
class Keep:
    ring: PolygonRing
    area: float


@dataclass(frozen=True)
class Dust:
    points: Tuple[Vec2, ...]
    area: float


FragmentDecision = Union[Keep, Dust]


@dataclass
class CutReport:
    """What a single ``Session.cut`` call did."""

    line: CutLine
    visited: List[int] = field(default_factory=list)
    cut: List[int] = field(default_factory=list)
    created: List[Fragment] = field(default_factory=list)
    dust: List[Any] = field(default_factory=list)  # DustBurst
    skipped: Dict[int, str] = field(default_factory=dict)

    @property
    def performed(self) -> bool:
        return bool(self.cut)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "line": {"start": list(self.line.start), "end": list(self.line.end)},
            "visited": list(self.visited),
            "cut": list(self.cut),
            "created": [
                {
                    "fragment_id": f.fragment_id,
                    "parent_id": f.parent_id,
                    "generation": f.generation,
                    "area": f.current_area,
                    "root_area": f.root_area,
                    "vertices": len(f.ring),
                }
                for f in self.created
            ],
            "dust": len(self.dust),
            "skipped": {str(k): v for k, v in self.skipped.items()},
        }
