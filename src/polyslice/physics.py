"""
Physics back ends for the session.

KinematicWorld is a small hand-rolled integrator (gravity, ground bounce,
damping) with no engine dependency; it is what tests and the CLI default to.
BulletWorld runs each fragment as a PyBullet rigid body. PyBullet is 3D, so
the 2D plane maps onto Bullet's x-z plane (z up) and every body is clamped
back into that plane after each step.
"""
import logging
import math
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

import numpy as np
import pybullet as p
import pybullet_data

from polyslice.contracts import PolygonRing, Pose, Vec2
from polyslice.interfaces import PhysicalProps
from polyslice.metrics import area, bounding_extents

logger = logging.getLogger(__name__)


# ─── Kinematic back end ──────────────────────────────────────────────────────

@dataclass
class KinematicConfig:
    """Tuning for the hand-rolled integrator."""
    gravity: float = -30.0
    ground_y: float = -300.0
    rest_speed: float = 0.5  # vertical speed below which a bounce stops
    ground_friction: float = 0.9  # horizontal speed kept per resting contact
    ground_spin_damping: float = 0.8
    walls: Optional[Tuple[float, float]] = None  # (left_x, right_x)


@dataclass
class _KinematicBody:
    points: np.ndarray  # local frame, (N, 2)
    props: PhysicalProps
    x: float
    y: float
    angle: float
    vx: float = 0.0
    vy: float = 0.0
    spin: float = 0.0

    def world_points(self) -> np.ndarray:
        c, s = math.cos(self.angle), math.sin(self.angle)
        rot = np.array([[c, -s], [s, c]])
        return self.points @ rot.T + np.array([self.x, self.y])


class KinematicWorld:
    """Point-mass bodies with ground contact; bodies do not collide with each other."""

    def __init__(self, config: Optional[KinematicConfig] = None):
        self.config = config or KinematicConfig()
        self._bodies: Dict[int, _KinematicBody] = {}
        self._next_handle = 1

    def __len__(self) -> int:
        return len(self._bodies)

    def create_body(self, ring: PolygonRing, pose: Pose, props: PhysicalProps) -> int:
        handle = self._next_handle
        self._next_handle += 1
        self._bodies[handle] = _KinematicBody(
            points=ring.as_array(), props=props, x=pose.x, y=pose.y, angle=pose.angle,
        )
        return handle

    def remove_body(self, handle: int) -> None:
        self._bodies.pop(handle, None)

    def body_pose(self, handle: int) -> Pose:
        body = self._bodies[handle]
        return Pose(body.x, body.y, body.angle)

    def body_velocity(self, handle: int) -> Tuple[float, float, float]:
        body = self._bodies[handle]
        return body.vx, body.vy, body.spin

    def apply_separation_impulse(self, handle: int, velocity: Vec2, spin: float) -> None:
        body = self._bodies[handle]
        body.vx, body.vy = float(velocity[0]), float(velocity[1])
        body.spin = float(spin)

    def step_all(self, dt: float) -> None:
        for body in self._bodies.values():
            self._integrate(body, dt)

    def _integrate(self, body: _KinematicBody, dt: float) -> None:
        cfg = self.config
        body.vy += cfg.gravity * dt
        body.x += body.vx * dt
        body.y += body.vy * dt
        body.angle += body.spin * dt

        keep = 1.0 - body.props.air_friction
        body.vx *= keep
        body.vy *= keep
        body.spin *= keep

        pts = body.world_points()
        min_y = float(pts[:, 1].min())
        if min_y < cfg.ground_y:
            body.y += cfg.ground_y - min_y
            if body.vy < 0.0:
                body.vy = -body.vy * body.props.restitution
                if abs(body.vy) < cfg.rest_speed:
                    body.vy = 0.0
                    body.vx *= cfg.ground_friction
            body.spin *= cfg.ground_spin_damping

        if cfg.walls is not None:
            left, right = cfg.walls
            min_x = float(pts[:, 0].min())
            max_x = float(pts[:, 0].max())
            if min_x < left:
                body.x += left - min_x
                body.vx = abs(body.vx) * body.props.restitution
            elif max_x > right:
                body.x -= max_x - right
                body.vx = -abs(body.vx) * body.props.restitution


# ─── PyBullet back end ───────────────────────────────────────────────────────

@dataclass
class BulletConfig:
    """PyBullet world settings. Lengths are in the session's units."""
    gravity: float = -9.81
    ground_z: float = -300.0
    thickness: float = 10.0  # extrusion depth along Bullet's y axis
    time_step: float = 1.0 / 240.0
    min_mass: float = 1e-3


def _angle_from_quaternion(orn) -> float:
    m = p.getMatrixFromQuaternion(orn)
    # local x axis expressed in world x-z
    return math.atan2(m[6], m[0])


def _quaternion_from_angle(angle: float):
    # 2D counter-clockwise in x-z is a negative rotation about Bullet's y
    return p.getQuaternionFromEuler([0.0, -angle, 0.0])


class BulletWorld:
    """
    PyBullet-backed physics world (DIRECT mode).

    Each fragment outline is extruded into a convex mesh collision shape.
    Concave outlines collide as their convex hull. When Bullet rejects the
    mesh the body falls back to a bounding box.
    """

    def __init__(self, config: Optional[BulletConfig] = None):
        self.config = config or BulletConfig()
        self.physics_client = p.connect(p.DIRECT)
        p.setGravity(0, 0, self.config.gravity, physicsClientId=self.physics_client)
        p.setTimeStep(self.config.time_step, physicsClientId=self.physics_client)
        p.setAdditionalSearchPath(pybullet_data.getDataPath())
        self.plane_id = p.loadURDF(
            "plane.urdf",
            basePosition=[0, 0, self.config.ground_z],
            physicsClientId=self.physics_client,
        )
        self._bodies: Dict[int, int] = {}
        self.fallback_count = 0

    def __enter__(self) -> "BulletWorld":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def __len__(self) -> int:
        return len(self._bodies)

    def close(self) -> None:
        if self.physics_client is not None:
            if p.getConnectionInfo(self.physics_client)["isConnected"]:
                p.disconnect(self.physics_client)
            self.physics_client = None

    def _collision_shape(self, ring: PolygonRing) -> int:
        half = self.config.thickness / 2.0
        vertices = []
        for x, z in ring:
            vertices.append([x, -half, z])
            vertices.append([x, half, z])
        try:
            shape = p.createCollisionShape(
                p.GEOM_MESH, vertices=vertices, physicsClientId=self.physics_client,
            )
        except p.error as exc:
            logger.warning("Mesh collision shape rejected (%s); using bounding box", exc)
            shape = -1
        if shape >= 0:
            return shape

        self.fallback_count += 1
        (min_x, min_z), (max_x, max_z) = bounding_extents(ring)
        return p.createCollisionShape(
            p.GEOM_BOX,
            halfExtents=[max((max_x - min_x) / 2.0, 1e-3), half, max((max_z - min_z) / 2.0, 1e-3)],
            collisionFramePosition=[(min_x + max_x) / 2.0, 0.0, (min_z + max_z) / 2.0],
            physicsClientId=self.physics_client,
        )

    def create_body(self, ring: PolygonRing, pose: Pose, props: PhysicalProps) -> int:
        shape = self._collision_shape(ring)
        mass = max(props.density * area(ring) * self.config.thickness, self.config.min_mass)
        body_id = p.createMultiBody(
            baseMass=mass,
            baseCollisionShapeIndex=shape,
            basePosition=[pose.x, 0.0, pose.y],
            baseOrientation=_quaternion_from_angle(pose.angle),
            physicsClientId=self.physics_client,
        )
        p.changeDynamics(
            body_id, -1,
            lateralFriction=props.friction,
            restitution=props.restitution,
            linearDamping=props.air_friction,
            angularDamping=props.air_friction,
            physicsClientId=self.physics_client,
        )
        self._bodies[body_id] = shape
        logger.debug("Created Bullet body %d (mass %.4f, %d vertices)", body_id, mass, len(ring))
        return body_id

    def remove_body(self, handle: int) -> None:
        if self._bodies.pop(handle, None) is None:
            return
        p.removeBody(handle, physicsClientId=self.physics_client)

    def body_pose(self, handle: int) -> Pose:
        pos, orn = p.getBasePositionAndOrientation(handle, physicsClientId=self.physics_client)
        return Pose(float(pos[0]), float(pos[2]), _angle_from_quaternion(orn))

    def apply_separation_impulse(self, handle: int, velocity: Vec2, spin: float) -> None:
        p.resetBaseVelocity(
            handle,
            linearVelocity=[velocity[0], 0.0, velocity[1]],
            angularVelocity=[0.0, -spin, 0.0],
            physicsClientId=self.physics_client,
        )

    def step_all(self, dt: float) -> None:
        steps = max(1, int(round(dt / self.config.time_step)))
        for _ in range(steps):
            p.stepSimulation(physicsClientId=self.physics_client)
        for handle in self._bodies:
            self._clamp_to_plane(handle)

    def _clamp_to_plane(self, handle: int) -> None:
        pose = self.body_pose(handle)
        lin, ang = p.getBaseVelocity(handle, physicsClientId=self.physics_client)
        p.resetBasePositionAndOrientation(
            handle,
            [pose.x, 0.0, pose.y],
            _quaternion_from_angle(pose.angle),
            physicsClientId=self.physics_client,
        )
        p.resetBaseVelocity(
            handle,
            linearVelocity=[lin[0], 0.0, lin[2]],
            angularVelocity=[0.0, ang[1], 0.0],
            physicsClientId=self.physics_client,
        )
