"""Tests for the kinematic and PyBullet physics back ends."""

import math

import pytest

from polyslice.contracts import PolygonRing, Pose
from polyslice.interfaces import PhysicalProps
from polyslice.physics import BulletConfig, BulletWorld, KinematicConfig, KinematicWorld


def _local_square(half=5.0):
    return PolygonRing(((-half, -half), (half, -half), (half, half), (-half, half)))


class TestKinematicWorld:
    def test_falls_under_gravity(self):
        world = KinematicWorld(KinematicConfig(gravity=-30.0, ground_y=-1000.0))
        h = world.create_body(_local_square(), Pose(0.0, 0.0), PhysicalProps(air_friction=0.0))
        world.step_all(0.5)
        pose = world.body_pose(h)
        # one explicit Euler step: v = -15, y = -7.5
        assert pose.y == pytest.approx(-7.5)
        assert world.body_velocity(h)[1] == pytest.approx(-15.0)

    def test_rests_on_ground(self):
        world = KinematicWorld(KinematicConfig(ground_y=0.0))
        h = world.create_body(_local_square(), Pose(0.0, 20.0), PhysicalProps())
        for _ in range(600):
            world.step_all(1 / 60)
        pose = world.body_pose(h)
        assert pose.y == pytest.approx(5.0, abs=0.1)
        assert abs(world.body_velocity(h)[1]) < 1.0

    def test_bounce_uses_restitution(self):
        world = KinematicWorld(KinematicConfig(gravity=0.0, ground_y=0.0))
        props = PhysicalProps(restitution=0.5, air_friction=0.0)
        h = world.create_body(_local_square(), Pose(0.0, 5.5), props)
        world.apply_separation_impulse(h, (0.0, -60.0), 0.0)
        world.step_all(1 / 60)
        assert world.body_velocity(h)[1] == pytest.approx(30.0)
        assert world.body_pose(h).y == pytest.approx(5.0)

    def test_rotated_body_touches_with_its_corner(self):
        world = KinematicWorld(KinematicConfig(gravity=0.0, ground_y=0.0))
        h = world.create_body(_local_square(), Pose(0.0, 1.0, math.pi / 4), PhysicalProps())
        world.step_all(1 / 60)
        assert world.body_pose(h).y == pytest.approx(5.0 * math.sqrt(2.0))

    def test_walls(self):
        world = KinematicWorld(KinematicConfig(gravity=0.0, ground_y=-100.0, walls=(-20.0, 20.0)))
        props = PhysicalProps(air_friction=0.0)
        h = world.create_body(_local_square(), Pose(14.0, 0.0), props)
        world.apply_separation_impulse(h, (120.0, 0.0), 0.0)
        world.step_all(1 / 60)
        pose = world.body_pose(h)
        assert pose.x == pytest.approx(15.0)
        assert world.body_velocity(h)[0] < 0

    def test_impulse_sets_velocity_and_spin(self):
        world = KinematicWorld()
        h = world.create_body(_local_square(), Pose(), PhysicalProps())
        world.apply_separation_impulse(h, (3.0, 4.0), 0.5)
        assert world.body_velocity(h) == (3.0, 4.0, 0.5)

    def test_remove_body(self):
        world = KinematicWorld()
        h = world.create_body(_local_square(), Pose(), PhysicalProps())
        world.remove_body(h)
        world.remove_body(h)
        assert len(world) == 0


class TestBulletWorld:
    """PyBullet back end in DIRECT mode."""

    def test_body_falls_and_stays_in_plane(self):
        with BulletWorld(BulletConfig(gravity=-9.81, ground_z=-100.0)) as world:
            h = world.create_body(_local_square(), Pose(1.0, 10.0, 0.3), PhysicalProps())
            start = world.body_pose(h)
            assert start.angle == pytest.approx(0.3, abs=1e-6)
            world.step_all(0.5)
            pose = world.body_pose(h)
            assert pose.y < start.y
            assert pose.x == pytest.approx(1.0, abs=1e-3)

    def test_impulse_moves_body_sideways(self):
        with BulletWorld(BulletConfig(gravity=0.0)) as world:
            h = world.create_body(_local_square(), Pose(0.0, 0.0), PhysicalProps(air_friction=0.0))
            world.apply_separation_impulse(h, (10.0, 0.0), 0.0)
            world.step_all(0.1)
            assert world.body_pose(h).x == pytest.approx(1.0, rel=0.05)

    def test_remove_body(self):
        with BulletWorld() as world:
            h = world.create_body(_local_square(), Pose(), PhysicalProps())
            assert len(world) == 1
            world.remove_body(h)
            assert len(world) == 0
