"""Tests for flattening meshes into point clouds."""

import numpy as np
import pytest
import trimesh

from polyslice.assets import load_asset, mesh_to_cloud, projection_axes, uv_bounds
from polyslice.contracts import SolidColor, Textured
from polyslice.errors import InsufficientPointsError
from polyslice.metrics import area
from polyslice.silhouette import extract_silhouette


class TestProjection:
    """Thinnest-axis selection."""

    def test_planar_mesh_uses_xy(self):
        assert projection_axes(np.array([5.0, 1.0, 0.0])) == (0, 1, 2)

    def test_thin_x(self):
        assert projection_axes(np.array([0.5, 4.0, 3.0])) == (1, 2, 0)

    def test_thin_y(self):
        assert projection_axes(np.array([4.0, 0.5, 3.0])) == (0, 2, 1)

    def test_thin_z(self):
        assert projection_axes(np.array([4.0, 3.0, 0.5])) == (0, 1, 2)


class TestMeshToCloud:
    def test_box_flattens_to_its_face(self, box_mesh):
        cloud = mesh_to_cloud(box_mesh)
        assert cloud.dropped_axis == "z"
        ring = extract_silhouette(cloud.points)
        assert area(ring) == pytest.approx(100.0 * 60.0)

    def test_upright_plate_drops_y(self):
        plate = trimesh.creation.box(extents=[40, 2, 30])
        cloud = mesh_to_cloud(plate, scale=2.0)
        assert cloud.dropped_axis == "y"
        extent = cloud.points.max(axis=0) - cloud.points.min(axis=0)
        np.testing.assert_allclose(extent, [80.0, 60.0])

    def test_centred_on_vertex_mean(self, box_mesh):
        box_mesh.apply_translation([500, 500, 0])
        cloud = mesh_to_cloud(box_mesh)
        np.testing.assert_allclose(cloud.points.mean(axis=0), [0.0, 0.0], atol=1e-9)

    def test_untextured_mesh_gets_solid_colour(self, box_mesh):
        assert uv_bounds(box_mesh) is None
        assert isinstance(mesh_to_cloud(box_mesh).payload, SolidColor)

    def test_uv_bounds_become_textured_payload(self, box_mesh):
        uv = np.column_stack([
            np.linspace(0.2, 0.4, len(box_mesh.vertices)),
            np.linspace(0.1, 0.9, len(box_mesh.vertices)),
        ])
        box_mesh.visual = trimesh.visual.TextureVisuals(uv=uv)
        payload = mesh_to_cloud(box_mesh, texture_ref="wood.png").payload
        assert isinstance(payload, Textured)
        assert payload.texture_ref == "wood.png"
        assert payload.uv_rect == pytest.approx((0.2, 0.1, 0.4, 0.9))


class TestLoadAsset:
    def test_load_stl(self, box_mesh_file):
        cloud = load_asset(box_mesh_file)
        assert cloud.source == box_mesh_file
        assert len(cloud.points) == 8

    def test_empty_mesh_rejected(self):
        with pytest.raises(InsufficientPointsError):
            mesh_to_cloud(trimesh.Trimesh())
