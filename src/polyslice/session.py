"""
Session store: owns the live fragments and drives cuts.

A Session is composed with one Renderer and one PhysicsWorld at
construction time. Each fragment keeps its ring in a local frame centred on
its centroid; cuts operate on the world-space ring and the children are
re-centred on their own centroids.

Cut pass:
1. Snapshot the live fragments (children born during this pass are not visited)
2. Cut each snapshotted fragment's world ring
3. Resolve both sides into Keep / Dust decisions before touching the store
4. Stage kept children and dust bursts on the back ends, then swap them in for
   the parent; a back-end failure rolls the staging back and keeps the parent
"""
import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np

from polyslice.contracts import (
    CutLine,
    CutReport,
    Dust,
    Fragment,
    FragmentDecision,
    NotIntersecting,
    PolygonRing,
    Pose,
    SliceConfig,
    SolidColor,
    Vec2,
    VisualPayload,
)
from polyslice.cutting import cut_ring
from polyslice.errors import SliceError
from polyslice.fragments import DustBurst, FragmentPolicy, make_dust_burst
from polyslice.interfaces import PhysicalProps, PhysicsWorld, Renderer
from polyslice.metrics import area, centroid
from polyslice.shapes import DEFAULT_SIZE, make_shape
from polyslice.silhouette import extract_silhouette
from polyslice.simplify import physics_outline

logger = logging.getLogger(__name__)

# Separation impulse, expressed per 60 Hz frame and converted to per-second.
FRAME_RATE = 60.0
SEPARATION_SPEED = (2.0, 4.0)
SEPARATION_LIFT = (3.0, 5.0)
SEPARATION_SPIN = 0.05
SPIN_SCALE_LIMITS = (0.5, 2.0)


class Session:
    """Live fragment store for one cutting scene."""

    def __init__(
        self,
        renderer: Renderer,
        physics: PhysicsWorld,
        config: Optional[SliceConfig] = None,
        policy: Optional[FragmentPolicy] = None,
        rng: Optional[np.random.Generator] = None,
        props: Optional[PhysicalProps] = None,
    ):
        self.renderer = renderer
        self.physics = physics
        self.config = config if config is not None else SliceConfig()
        self.policy = policy if policy is not None else FragmentPolicy(self.config.dust_divisor)
        self.rng = rng if rng is not None else np.random.default_rng(self.config.seed)
        self.props = props if props is not None else PhysicalProps()

        self._fragments: Dict[int, Fragment] = {}
        self._bursts: List[DustBurst] = []
        self._initial: List[Tuple[PolygonRing, VisualPayload]] = []
        self._next_id = 1

    # ─── Store views ─────────────────────────────────────────────────────────

    @property
    def fragments(self) -> Tuple[Fragment, ...]:
        return tuple(self._fragments.values())

    @property
    def bursts(self) -> Tuple[DustBurst, ...]:
        return tuple(self._bursts)

    def __len__(self) -> int:
        return len(self._fragments)

    def get(self, fragment_id: int) -> Optional[Fragment]:
        return self._fragments.get(fragment_id)

    def total_area(self) -> float:
        return float(sum(f.current_area for f in self._fragments.values()))

    def stats(self) -> Dict[str, Any]:
        return {
            "fragments": len(self._fragments),
            "vertices": sum(len(f.ring) for f in self._fragments.values()),
            "total_area": self.total_area(),
            "dust_bursts": len(self._bursts),
            "max_generation": max((f.generation for f in self._fragments.values()), default=0),
        }

    # ─── Loading ─────────────────────────────────────────────────────────────

    def add_root(self, ring: PolygonRing, payload: Optional[VisualPayload] = None) -> Fragment:
        """Add a world-space ring as a new root fragment."""
        if payload is None:
            payload = SolidColor()
        self._initial.append((ring, payload))
        a = area(ring)
        fragment = self._spawn(ring, payload, root_area=a, parent_id=None, generation=0)
        logger.info(
            "Added root fragment %d (%d vertices, area %.2f)",
            fragment.fragment_id, len(ring), a,
        )
        return fragment

    def load_shape(
        self,
        name: str,
        size: float = DEFAULT_SIZE,
        center: Vec2 = (0.0, 0.0),
    ) -> Fragment:
        """Replace the scene with a preset shape."""
        ring, color = make_shape(name, size=size, center=center)
        self._replace_scene()
        return self.add_root(ring, color)

    def load_points(
        self,
        points: Sequence[Sequence[float]],
        payload: Optional[VisualPayload] = None,
    ) -> Fragment:
        """Replace the scene with the traced outline of a point cloud.

        Raises:
            InsufficientPointsError: the cloud has fewer than 3 usable points.
        """
        ring = extract_silhouette(
            points,
            alpha=self.config.silhouette_alpha,
            k=self.config.silhouette_k,
            decimals=self.config.dedupe_decimals,
        )
        self._replace_scene()
        return self.add_root(ring, payload)

    def _replace_scene(self) -> None:
        self.remove_all()
        self._initial = []

    # ─── Cutting ─────────────────────────────────────────────────────────────

    def cut(self, start: Sequence[float], end: Sequence[float]) -> CutReport:
        """Cut every live fragment crossed by the segment start->end."""
        line = CutLine(
            (float(start[0]), float(start[1])),
            (float(end[0]), float(end[1])),
            margin=self.config.segment_margin,
        )
        report = CutReport(line=line)

        snapshot = list(self._fragments.values())
        for fragment in snapshot:
            if fragment.fragment_id not in self._fragments:
                continue
            report.visited.append(fragment.fragment_id)

            outcome = cut_ring(fragment.world_ring(), line, self.config)
            if isinstance(outcome, NotIntersecting):
                logger.debug("Fragment %d not cut: %s", fragment.fragment_id, outcome.reason)
                continue
            try:
                decisions = self.policy.resolve_split(outcome, fragment.root_area)
            except SliceError as exc:
                logger.warning("Fragment %d kept: %s", fragment.fragment_id, exc)
                report.skipped[fragment.fragment_id] = str(exc)
                continue

            self._apply_split(fragment, decisions, line, report)

        logger.info(
            "Cut (%.1f, %.1f)->(%.1f, %.1f): %d visited, %d split, %d created, %d dust",
            line.start[0], line.start[1], line.end[0], line.end[1],
            len(report.visited), len(report.cut), len(report.created), len(report.dust),
        )
        return report

    def _apply_split(
        self,
        parent: Fragment,
        decisions: Tuple[FragmentDecision, FragmentDecision],
        line: CutLine,
        report: CutReport,
    ) -> None:
        """Replace ``parent`` by its kept sides and dust bursts, or leave it untouched.

        Children and bursts are staged against the back ends first; the parent
        is only removed once every one of them exists. A back-end failure
        rolls back whatever was staged and records the parent as skipped.
        """
        children: List[Fragment] = []
        bursts: List[DustBurst] = []
        nx, ny = line.normal
        try:
            for decision, sign in zip(decisions, (1.0, -1.0)):
                if isinstance(decision, Dust):
                    burst = make_dust_burst(decision.points, parent.payload, self.rng)
                    burst.render_handle = self.renderer.present_dust(burst)
                    bursts.append(burst)
                else:
                    child = self._build(
                        decision.ring,
                        parent.payload,
                        root_area=parent.root_area,
                        parent_id=parent.fragment_id,
                        generation=parent.generation + 1,
                    )
                    children.append(child)
                    velocity, spin = self._separation_impulse((sign * nx, sign * ny))
                    self.physics.apply_separation_impulse(child.body_handle, velocity, spin)
        except Exception as exc:
            logger.warning("Fragment %d kept: back end failed during split (%s)", parent.fragment_id, exc)
            for child in children:
                self._release(child)
            for burst in bursts:
                self.renderer.remove(burst.render_handle)
            report.skipped[parent.fragment_id] = f"back end error: {exc}"
            return

        self._discard(parent)
        report.cut.append(parent.fragment_id)
        for child in children:
            self._fragments[child.fragment_id] = child
            report.created.append(child)
        self._bursts.extend(bursts)
        report.dust.extend(bursts)

    def _separation_impulse(self, direction: Vec2) -> Tuple[Vec2, float]:
        scale = self.config.cut_force_scale
        speed = self.rng.uniform(*SEPARATION_SPEED)
        lift = self.rng.uniform(*SEPARATION_LIFT)
        vx = direction[0] * speed * scale * FRAME_RATE
        vy = (direction[1] * speed + lift) * scale * FRAME_RATE
        spin_scale = min(max(scale, SPIN_SCALE_LIMITS[0]), SPIN_SCALE_LIMITS[1])
        spin = self.rng.uniform(-SEPARATION_SPIN, SEPARATION_SPIN) * spin_scale * FRAME_RATE
        return (float(vx), float(vy)), float(spin)

    # ─── Frame updates ───────────────────────────────────────────────────────

    def step(self, dt: float) -> None:
        """Advance physics and dust by ``dt`` seconds and sync the renderer."""
        self.physics.step_all(dt)
        for fragment in self._fragments.values():
            fragment.pose = self.physics.body_pose(fragment.body_handle)
            self.renderer.update(fragment.render_handle, fragment.pose)

        alive: List[DustBurst] = []
        for burst in self._bursts:
            if burst.advance(dt):
                alive.append(burst)
            else:
                self.renderer.remove(burst.render_handle)
        self._bursts = alive

    def reset(self) -> None:
        """Remove everything and reload the roots this scene started from."""
        initial = list(self._initial)
        self.remove_all()
        self._initial = []
        for ring, payload in initial:
            self.add_root(ring, payload)
        logger.info("Session reset to %d root fragment(s)", len(initial))

    def remove_all(self) -> None:
        for fragment in list(self._fragments.values()):
            self._discard(fragment)
        for burst in self._bursts:
            self.renderer.remove(burst.render_handle)
        self._bursts = []

    # ─── Handles ─────────────────────────────────────────────────────────────

    def _spawn(
        self,
        world_ring: PolygonRing,
        payload: VisualPayload,
        root_area: float,
        parent_id: Optional[int],
        generation: int,
    ) -> Fragment:
        fragment = self._build(world_ring, payload, root_area, parent_id, generation)
        self._fragments[fragment.fragment_id] = fragment
        return fragment

    def _build(
        self,
        world_ring: PolygonRing,
        payload: VisualPayload,
        root_area: float,
        parent_id: Optional[int],
        generation: int,
    ) -> Fragment:
        """Create a fragment with render and body handles, without storing it."""
        cx, cy = centroid(world_ring)
        local = world_ring.translated(-cx, -cy)
        pose = Pose(cx, cy, 0.0)

        fragment = Fragment(
            fragment_id=self._next_id,
            ring=local,
            pose=pose,
            root_area=root_area,
            current_area=area(local),
            payload=payload,
            parent_id=parent_id,
            generation=generation,
        )
        self._next_id += 1

        fragment.render_handle = self.renderer.present(local, payload, pose)
        try:
            fragment.body_handle = self.physics.create_body(
                physics_outline(local, self.config), pose, self.props,
            )
        except Exception:
            self.renderer.remove(fragment.render_handle)
            raise
        return fragment

    def _release(self, fragment: Fragment) -> None:
        self.renderer.remove(fragment.render_handle)
        self.physics.remove_body(fragment.body_handle)

    def _discard(self, fragment: Fragment) -> None:
        self._fragments.pop(fragment.fragment_id, None)
        self._release(fragment)
