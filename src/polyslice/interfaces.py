"""
Back-end seams for the session.

The engine never talks to a drawing surface or a rigid-body solver directly;
it goes through these two protocols. Handles are opaque to the session.
"""
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

from polyslice.contracts import PolygonRing, Pose, Vec2, VisualPayload


@dataclass(frozen=True)
class PhysicalProps:
    """Material parameters handed to the physics back end for each body."""

    friction: float = 0.5
    restitution: float = 0.3
    density: float = 0.001
    air_friction: float = 0.01


@runtime_checkable
class Renderer(Protocol):
    def present(self, ring: PolygonRing, payload: VisualPayload, pose: Pose) -> Any:
        """Draw ``ring`` (local frame) at ``pose``; returns a handle."""
        ...

    def update(self, handle: Any, pose: Pose) -> None:
        ...

    def remove(self, handle: Any) -> None:
        ...

    def present_dust(self, burst: Any) -> Any:
        ...


@runtime_checkable
class PhysicsWorld(Protocol):
    def create_body(self, ring: PolygonRing, pose: Pose, props: PhysicalProps) -> Any:
        """Create a dynamic body for ``ring`` (local frame) placed at ``pose``."""
        ...

    def remove_body(self, handle: Any) -> None:
        ...

    def step_all(self, dt: float) -> None:
        ...

    def body_pose(self, handle: Any) -> Pose:
        ...

    def apply_separation_impulse(self, handle: Any, velocity: Vec2, spin: float) -> None:
        """Set a freshly cut body moving at ``velocity`` (units/s) and ``spin`` (rad/s)."""
        ...
