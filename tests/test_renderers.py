"""Tests for the SVG and extruded-mesh renderers."""

import math
import xml.etree.ElementTree as ET

import numpy as np
import pytest
import trimesh

from polyslice.contracts import PolygonRing, Pose, SolidColor, Textured
from polyslice.fragments import make_dust_burst
from polyslice.renderers import (
    TEXTURE_FALLBACK,
    MeshSceneRenderer,
    SvgRenderer,
    SvgStyle,
    payload_color,
)

SVG_NS = "{http://www.w3.org/2000/svg}"


def _local_square(half=5.0):
    return PolygonRing(((-half, -half), (half, -half), (half, half), (-half, half)))


def _elements(svg_text, tag):
    root = ET.fromstring(svg_text)
    return root.findall(f".//{SVG_NS}{tag}")


class TestSvgRenderer:
    def test_filled_polygon_in_canvas_coordinates(self):
        renderer = SvgRenderer(SvgStyle(origin=(100.0, 100.0), ground_y=None))
        renderer.present(_local_square(), SolidColor.from_hex("#4ECDC4"), Pose(10.0, 20.0))
        polygons = _elements(renderer.to_string(), "polygon")
        assert len(polygons) == 1
        assert polygons[0].get("fill").lower() == "#4ecdc4"
        first = polygons[0].get("points").split()[0]
        x, y = (float(v) for v in first.split(","))
        # world (5, 15) -> canvas (105, 85) with the y axis flipped
        assert (x, y) == pytest.approx((105.0, 85.0))

    def test_update_and_remove(self):
        renderer = SvgRenderer()
        h = renderer.present(_local_square(), SolidColor(), Pose())
        renderer.update(h, Pose(50.0, 0.0, math.pi / 2))
        assert renderer._items[h].pose.x == 50.0
        renderer.remove(h)
        assert len(renderer) == 0
        assert _elements(renderer.to_string(), "polygon") == []

    def test_wireframe_draws_triangles_and_vertices(self):
        renderer = SvgRenderer(SvgStyle(wireframe=True))
        renderer.present(_local_square(), SolidColor(), Pose())
        svg = renderer.to_string()
        # outline + 2 fan triangles
        assert len(_elements(svg, "polygon")) == 3
        assert len(_elements(svg, "circle")) == 4

    def test_ground_line(self):
        svg = SvgRenderer(SvgStyle(ground_y=-300.0)).to_string()
        assert len(_elements(svg, "line")) == 1

    def test_dust_fades(self):
        renderer = SvgRenderer()
        burst = make_dust_burst([(0, 0), (1, 0), (0, 1)], rng=np.random.default_rng(0))
        handle = renderer.present_dust(burst)
        circles = _elements(renderer.to_string(), "circle")
        assert len(circles) == 20
        assert float(circles[0].get("fill-opacity")) == pytest.approx(1.0)
        burst.advance(0.6)
        circles = _elements(renderer.to_string(), "circle")
        assert float(circles[0].get("fill-opacity")) == pytest.approx(0.5)
        renderer.remove(handle)
        assert renderer.dust_count == 0

    def test_textured_payload_fallback_colour(self):
        assert payload_color(Textured("bark.png")) == TEXTURE_FALLBACK

    def test_save(self, tmp_path):
        renderer = SvgRenderer()
        renderer.present(_local_square(), SolidColor(), Pose())
        path = renderer.save(str(tmp_path / "scene.svg"))
        text = (tmp_path / "scene.svg").read_text(encoding="utf-8")
        assert path.endswith("scene.svg")
        assert "<polygon" in text


class TestMeshSceneRenderer:
    def test_prism_volume_and_placement(self):
        renderer = MeshSceneRenderer()
        h = renderer.present(_local_square(), SolidColor(), Pose(100.0, 50.0, 0.0))
        mesh = renderer.fragment_mesh(renderer._items[h])
        assert mesh.is_watertight
        assert mesh.volume == pytest.approx(100.0 * renderer.config.thickness)
        np.testing.assert_allclose(mesh.bounds[:, :2], [[95.0, 45.0], [105.0, 55.0]], atol=1e-9)

    def test_layers_offset_in_z(self):
        renderer = MeshSceneRenderer()
        renderer.present(_local_square(), SolidColor(), Pose())
        renderer.present(_local_square(), SolidColor(), Pose())
        zs = sorted(float(m.bounds[0, 2]) for m in renderer.scene().geometry.values())
        assert zs[1] - zs[0] == pytest.approx(renderer.config.layer_step)

    def test_export_stl(self, tmp_path):
        renderer = MeshSceneRenderer()
        renderer.present(_local_square(), SolidColor(), Pose())
        path = renderer.export(str(tmp_path / "scene.stl"))
        loaded = trimesh.load(path, force="mesh")
        assert loaded.volume == pytest.approx(100.0 * renderer.config.thickness, rel=1e-6)
