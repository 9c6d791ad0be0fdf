"""
Mesh asset adapter.

Loads a mesh with trimesh and flattens it to a 2D point cloud that the
session can trace into a root fragment:

1. Measure the axis-aligned bounding box
2. If the z extent is below 0.001 the mesh is already planar: use (x, y)
3. Otherwise drop the thinnest axis and keep the other two in x, y, z order
4. Record the UV bounds (when the mesh carries UVs) as a Textured payload
"""
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple, Union

import numpy as np
import trimesh

from polyslice.contracts import SolidColor, Textured, UVRect, VisualPayload
from polyslice.errors import InsufficientPointsError

logger = logging.getLogger(__name__)

PLANAR_THRESHOLD = 1e-3
AXIS_NAMES = ("x", "y", "z")
UNTEXTURED_COLOR = "#FFA07A"


@dataclass
class AssetCloud:
    """2D points projected off a mesh, plus what to draw them with."""

    points: np.ndarray  # (N, 2)
    payload: VisualPayload
    dropped_axis: str
    source: str = ""


def projection_axes(extents: np.ndarray) -> Tuple[int, int, int]:
    """(kept_a, kept_b, dropped) axis indices for a bounding-box extent vector."""
    sx, sy, sz = (float(v) for v in extents)
    if sz < PLANAR_THRESHOLD:
        return 0, 1, 2
    if sx <= sy and sx <= sz:
        return 1, 2, 0
    if sy <= sx and sy <= sz:
        return 0, 2, 1
    return 0, 1, 2


def project_vertices(vertices: np.ndarray) -> Tuple[np.ndarray, str]:
    verts = np.asarray(vertices, dtype=float).reshape(-1, 3)
    if len(verts) == 0:
        raise InsufficientPointsError("Mesh has no vertices")
    extents = verts.max(axis=0) - verts.min(axis=0)
    a, b, dropped = projection_axes(extents)
    logger.debug(
        "Projecting %d vertices onto %s%s (extents %s)",
        len(verts), AXIS_NAMES[a], AXIS_NAMES[b], np.round(extents, 4).tolist(),
    )
    return verts[:, [a, b]], AXIS_NAMES[dropped]


def uv_bounds(mesh: trimesh.Trimesh) -> Optional[UVRect]:
    """(u_min, v_min, u_max, v_max) of the mesh UVs, or None without UVs."""
    uv = getattr(mesh.visual, "uv", None)
    if uv is None or len(uv) == 0:
        return None
    uv = np.asarray(uv, dtype=float)
    lo = uv.min(axis=0)
    hi = uv.max(axis=0)
    return float(lo[0]), float(lo[1]), float(hi[0]), float(hi[1])


def mesh_payload(mesh: trimesh.Trimesh, texture_ref: Optional[str] = None) -> VisualPayload:
    rect = uv_bounds(mesh)
    if rect is None:
        return SolidColor.from_hex(UNTEXTURED_COLOR)
    return Textured(texture_ref=texture_ref or "", uv_rect=rect)


def mesh_to_cloud(
    mesh: trimesh.Trimesh,
    scale: float = 1.0,
    center: bool = True,
    texture_ref: Optional[str] = None,
    source: str = "",
) -> AssetCloud:
    """Flatten ``mesh`` to a scaled 2D cloud, optionally centred on its vertex mean."""
    points, dropped = project_vertices(mesh.vertices)
    if center:
        points = points - points.mean(axis=0)
    points = points * scale
    return AssetCloud(
        points=points,
        payload=mesh_payload(mesh, texture_ref),
        dropped_axis=dropped,
        source=source,
    )


def load_asset(
    path: Union[str, Path],
    scale: float = 1.0,
    center: bool = True,
    texture_ref: Optional[str] = None,
) -> AssetCloud:
    """Load a mesh file (OBJ, STL, GLB, ...) and flatten it.

    Raises:
        InsufficientPointsError: the file holds no geometry.
    """
    path = Path(path)
    mesh = trimesh.load(str(path), force="mesh")
    if not isinstance(mesh, trimesh.Trimesh) or len(mesh.vertices) == 0:
        raise InsufficientPointsError(f"No mesh geometry in {path}")
    cloud = mesh_to_cloud(
        mesh,
        scale=scale,
        center=center,
        texture_ref=texture_ref or str(path),
        source=str(path),
    )
    logger.info(
        "Loaded %s: %d vertices, dropped %s axis", path.name, len(cloud.points), cloud.dropped_axis,
    )
    return cloud
