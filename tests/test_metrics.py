"""Tests for ring construction and area metrics."""

import math

import numpy as np
import pytest

from polyslice.contracts import PolygonRing, SliceConfig, load_config
from polyslice.errors import DegenerateRingError
from polyslice.metrics import (
    area,
    bounding_extents,
    centroid,
    fan_triangles,
    is_simple,
    signed_area,
    vertex_density,
    winding,
)


class TestPolygonRing:
    """Construction-time cleanup of vertex sequences."""

    def test_consecutive_duplicates_collapse(self):
        ring = PolygonRing(((0, 0), (0.001, 0.0), (10, 0), (10, 10), (0, 10)))
        assert len(ring) == 4

    def test_closing_duplicate_collapses(self):
        ring = PolygonRing(((0, 0), (10, 0), (10, 10), (0, 10), (0.0, 0.005)))
        assert len(ring) == 4
        assert ring[0] == (0.0, 0.0)

    def test_fewer_than_three_distinct_raises(self):
        with pytest.raises(DegenerateRingError):
            PolygonRing(((0, 0), (0.001, 0.001), (5, 5)))

    def test_winding_is_preserved(self, square_ring):
        assert winding(square_ring) == "ccw"
        assert winding(square_ring.reversed()) == "cw"

    def test_transformed_rotates_then_translates(self):
        ring = PolygonRing(((1, 0), (0, 1), (-1, 0)))
        moved = ring.transformed(5.0, 0.0, math.pi / 2)
        np.testing.assert_allclose(moved.as_array()[0], [5.0, 1.0], atol=1e-9)


class TestArea:
    """Shoelace area and its degenerate cases."""

    def test_square(self, square_ring):
        assert area(square_ring) == pytest.approx(100.0)
        assert signed_area(square_ring) == pytest.approx(100.0)

    def test_concave(self, l_ring):
        assert area(l_ring) == pytest.approx(75.0)

    def test_short_input_is_zero(self):
        assert area([]) == 0.0
        assert area([(0, 0), (1, 1)]) == 0.0

    def test_collinear_is_exactly_zero(self):
        assert area([(0.0, 0.0), (0.1, 0.3), (0.2, 0.6)]) == 0.0
        assert winding([(0, 0), (1, 1), (2, 2)]) == "degenerate"

    def test_invariant_under_rotation_and_reversal(self, l_ring):
        rotated = l_ring.transformed(3.0, -7.0, 1.234)
        assert area(rotated) == pytest.approx(area(l_ring), rel=1e-9)
        assert area(l_ring.reversed()) == pytest.approx(area(l_ring), rel=1e-12)


class TestShapeMetrics:
    def test_bounding_extents(self, l_ring):
        assert bounding_extents(l_ring) == ((0.0, 0.0), (10.0, 10.0))

    def test_bounding_extents_empty_raises(self):
        with pytest.raises(DegenerateRingError):
            bounding_extents([])

    def test_vertex_density(self, square_ring):
        assert vertex_density(square_ring) == pytest.approx(4 / 100.0)

    def test_vertex_density_zero_area_raises(self):
        with pytest.raises(DegenerateRingError):
            vertex_density([(0, 0), (1, 1), (2, 2)])

    def test_centroid(self, square_ring, l_ring):
        assert centroid(square_ring) == pytest.approx((5.0, 5.0))
        # L: 10x5 strip at y in [0, 5] plus 5x5 block at y in [5, 10]
        cx = (50 * 5.0 + 25 * 2.5) / 75
        cy = (50 * 2.5 + 25 * 7.5) / 75
        assert centroid(l_ring) == pytest.approx((cx, cy))

    def test_is_simple(self, square_ring):
        assert is_simple(square_ring)
        assert not is_simple([(0, 0), (10, 10), (10, 0), (0, 10)])

    def test_fan_triangles(self, l_ring):
        tris = fan_triangles(l_ring)
        assert len(tris) == len(l_ring) - 2
        assert all(t[0] == l_ring[0] for t in tris)


class TestSliceConfig:
    def test_from_dict_rejects_unknown_keys(self):
        with pytest.raises(ValueError, match="bogus"):
            SliceConfig.from_dict({"bogus": 1})

    def test_round_trip_through_json_file(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text('{"dust_divisor": 20.0, "seed": 3}', encoding="utf-8")
        config = load_config(path)
        assert config.dust_divisor == 20.0
        assert config.seed == 3
        assert config.side_epsilon == SliceConfig().side_epsilon
