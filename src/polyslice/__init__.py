"""Back-end-agnostic polygon cutting and fragmentation engine."""

from polyslice.contracts import (
    CutLine,
    CutReport,
    Dust,
    Fragment,
    Keep,
    NotIntersecting,
    PolygonRing,
    Pose,
    SliceConfig,
    SolidColor,
    Split,
    Textured,
    load_config,
)
from polyslice.cutting import crosses_segment, cut_ring
from polyslice.errors import (
    DegenerateRingError,
    InsufficientPointsError,
    NoIntersectionError,
    SegmentOutOfRangeError,
    SliceError,
)
from polyslice.fragments import DustBurst, FragmentPolicy, make_dust_burst
from polyslice.interfaces import PhysicalProps, PhysicsWorld, Renderer
from polyslice.metrics import area, bounding_extents, centroid, vertex_density
from polyslice.session import Session
from polyslice.silhouette import extract_silhouette
from polyslice.simplify import physics_outline, simplify_ring

__all__ = [
    "CutLine",
    "CutReport",
    "DegenerateRingError",
    "Dust",
    "DustBurst",
    "Fragment",
    "FragmentPolicy",
    "InsufficientPointsError",
    "Keep",
    "NoIntersectionError",
    "NotIntersecting",
    "PhysicalProps",
    "PhysicsWorld",
    "PolygonRing",
    "Pose",
    "Renderer",
    "SegmentOutOfRangeError",
    "Session",
    "SliceConfig",
    "SliceError",
    "SolidColor",
    "Split",
    "Textured",
    "area",
    "bounding_extents",
    "centroid",
    "crosses_segment",
    "cut_ring",
    "extract_silhouette",
    "load_config",
    "make_dust_burst",
    "physics_outline",
    "simplify_ring",
    "vertex_density",
]
