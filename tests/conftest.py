"""
Shared test fixtures for the cutting engine tests.
"""
import sys
from pathlib import Path

import pytest
import trimesh

# Add src/ to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from polyslice.contracts import PolygonRing, SliceConfig
from polyslice.physics import KinematicWorld
from polyslice.renderers import SvgRenderer
from polyslice.session import Session


@pytest.fixture
def square_ring():
    """10x10 counter-clockwise square with a corner at the origin."""
    return PolygonRing(((0.0, 0.0), (10.0, 0.0), (10.0, 10.0), (0.0, 10.0)))


@pytest.fixture
def l_ring():
    """Concave L shape, area 75."""
    return PolygonRing((
        (0.0, 0.0), (10.0, 0.0), (10.0, 5.0), (5.0, 5.0), (5.0, 10.0), (0.0, 10.0),
    ))


@pytest.fixture
def seeded_config():
    return SliceConfig(seed=7)


@pytest.fixture
def session(seeded_config):
    """Session wired to the SVG renderer and the kinematic world."""
    return Session(SvgRenderer(), KinematicWorld(), config=seeded_config)


@pytest.fixture
def box_mesh():
    """A flat 100x60x2 box mesh (thinnest along z)."""
    return trimesh.creation.box(extents=[100, 60, 2])


@pytest.fixture
def box_mesh_file(tmp_path: Path, box_mesh) -> str:
    path = tmp_path / "plate.stl"
    box_mesh.export(str(path))
    return str(path)
