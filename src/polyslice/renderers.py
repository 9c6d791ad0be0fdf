"""
Headless renderers for the session.

SvgRenderer draws the current scene as a 2D SVG (svgwrite). MeshSceneRenderer
extrudes every fragment into a thin prism and builds a trimesh Scene that can
be exported to GLB, STL or any other trimesh format.

Both are retained-mode: ``present``/``update``/``remove`` only keep state,
and the drawing happens when the output is requested.
"""
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

import numpy as np
import svgwrite
import trimesh

from polyslice.contracts import PolygonRing, Pose, SolidColor, Vec2, VisualPayload
from polyslice.fragments import DustBurst
from polyslice.metrics import fan_triangles, ring_to_polygon

logger = logging.getLogger(__name__)

TEXTURE_FALLBACK = "#c8b08a"


@dataclass
class _Presented:
    ring: PolygonRing
    payload: VisualPayload
    pose: Pose
    layer: int = 0

    def world_points(self) -> List[Vec2]:
        return list(self.ring.transformed(self.pose.x, self.pose.y, self.pose.angle))


def payload_color(payload: VisualPayload) -> str:
    if isinstance(payload, SolidColor):
        return payload.hex
    return TEXTURE_FALLBACK


class _RetainedRenderer:
    """Handle bookkeeping shared by the concrete renderers."""

    def __init__(self):
        self._items: Dict[int, _Presented] = {}
        self._dust: Dict[int, DustBurst] = {}
        self._next_handle = 1

    def _new_handle(self) -> int:
        handle = self._next_handle
        self._next_handle += 1
        return handle

    def __len__(self) -> int:
        return len(self._items)

    def present(self, ring: PolygonRing, payload: VisualPayload, pose: Pose) -> int:
        handle = self._new_handle()
        self._items[handle] = _Presented(ring, payload, pose, layer=len(self._items))
        return handle

    def update(self, handle: int, pose: Pose) -> None:
        item = self._items.get(handle)
        if item is not None:
            item.pose = pose

    def remove(self, handle: Optional[int]) -> None:
        if handle is None:
            return
        self._items.pop(handle, None)
        self._dust.pop(handle, None)

    def present_dust(self, burst: DustBurst) -> int:
        handle = self._new_handle()
        self._dust[handle] = burst
        return handle

    @property
    def dust_count(self) -> int:
        return len(self._dust)


# ─── SVG ─────────────────────────────────────────────────────────────────────

@dataclass
class SvgStyle:
    """Canvas and stroke settings for SvgRenderer."""
    width: float = 800.0
    height: float = 600.0
    origin: Vec2 = (400.0, 150.0)  # canvas position of world (0, 0)
    scale: float = 1.0
    background: str = "#1a1a2e"
    stroke: str = "#ffffff"
    stroke_width: float = 1.0
    wireframe: bool = False
    ground_y: Optional[float] = -300.0
    ground_color: str = "#555577"
    vertex_radius: float = 2.0


class SvgRenderer(_RetainedRenderer):
    """Draw fragments and dust bursts to an SVG document."""

    def __init__(self, style: Optional[SvgStyle] = None):
        super().__init__()
        self.style = style or SvgStyle()

    def to_canvas(self, point: Vec2) -> Vec2:
        # world is y-up, SVG is y-down
        ox, oy = self.style.origin
        return (ox + point[0] * self.style.scale, oy - point[1] * self.style.scale)

    def drawing(self, filepath: str = "scene.svg") -> svgwrite.Drawing:
        s = self.style
        dwg = svgwrite.Drawing(
            filepath,
            size=(f"{s.width}px", f"{s.height}px"),
            viewBox=f"0 0 {s.width} {s.height}",
        )
        dwg.defs.add(dwg.style(f"""
        .fragment {{ stroke: {s.stroke}; stroke-width: {s.stroke_width}; }}
        .wire {{ stroke: {s.stroke}; stroke-width: {s.stroke_width * 0.5}; fill: none; }}
        .ground {{ stroke: {s.ground_color}; stroke-width: 2; }}
        """))
        dwg.add(dwg.rect(insert=(0, 0), size=(s.width, s.height), fill=s.background))

        if s.ground_y is not None:
            _, gy = self.to_canvas((0.0, s.ground_y))
            dwg.add(dwg.line(start=(0, gy), end=(s.width, gy), class_="ground"))

        for item in self._items.values():
            self._draw_fragment(dwg, item)
        for burst in self._dust.values():
            self._draw_dust(dwg, burst)
        return dwg

    def _draw_fragment(self, dwg: svgwrite.Drawing, item: _Presented) -> None:
        points = [self.to_canvas(pt) for pt in item.world_points()]
        color = payload_color(item.payload)
        if not self.style.wireframe:
            dwg.add(dwg.polygon(points, class_="fragment", fill=color))
            return

        world = item.ring.transformed(item.pose.x, item.pose.y, item.pose.angle)
        for tri in fan_triangles(world):
            dwg.add(dwg.polygon([self.to_canvas(v) for v in tri], class_="wire"))
        dwg.add(dwg.polygon(points, class_="wire"))
        for pt in points:
            dwg.add(dwg.circle(center=pt, r=self.style.vertex_radius, fill=color))

    def _draw_dust(self, dwg: svgwrite.Drawing, burst: DustBurst) -> None:
        if burst.expired:
            return
        color = payload_color(burst.payload)
        radius = burst.particle_size * 0.5 * self.style.scale
        for x, y in burst.positions:
            dwg.add(dwg.circle(
                center=self.to_canvas((float(x), float(y))),
                r=radius,
                fill=color,
                fill_opacity=round(burst.opacity, 3),
            ))

    def to_string(self) -> str:
        return self.drawing().tostring()

    def save(self, filepath: str) -> str:
        dwg = self.drawing(str(filepath))
        dwg.save()
        logger.debug("Wrote SVG with %d fragments to %s", len(self._items), filepath)
        return str(filepath)


# ─── Extruded meshes ─────────────────────────────────────────────────────────

@dataclass
class MeshSceneConfig:
    thickness: float = 10.0
    layer_step: float = 0.5  # z offset between fragments to avoid coplanar faces
    layers: int = 8
    texture_rgba: Tuple[int, int, int, int] = (200, 176, 138, 255)


def payload_rgba(payload: VisualPayload, fallback: Tuple[int, int, int, int]) -> np.ndarray:
    if isinstance(payload, SolidColor):
        r, g, b = (int(round(max(0.0, min(1.0, c)) * 255)) for c in payload.rgb)
        return np.array([r, g, b, 255], dtype=np.uint8)
    return np.array(fallback, dtype=np.uint8)


class MeshSceneRenderer(_RetainedRenderer):
    """Extrude fragments into prisms and assemble a trimesh Scene."""

    def __init__(self, config: Optional[MeshSceneConfig] = None):
        super().__init__()
        self.config = config or MeshSceneConfig()

    def fragment_mesh(self, item: _Presented) -> trimesh.Trimesh:
        polygon = ring_to_polygon(item.ring)
        if not polygon.is_valid:
            logger.warning("Self-intersecting outline repaired before extrusion")
            polygon = polygon.buffer(0)
            if polygon.geom_type == "MultiPolygon":
                polygon = max(polygon.geoms, key=lambda g: g.area)
        mesh = trimesh.creation.extrude_polygon(polygon, self.config.thickness)

        transform = trimesh.transformations.rotation_matrix(item.pose.angle, [0, 0, 1])
        z = (item.layer % self.config.layers) * self.config.layer_step
        transform[:3, 3] = [item.pose.x, item.pose.y, z]
        mesh.apply_transform(transform)

        mesh.visual.face_colors = payload_rgba(item.payload, self.config.texture_rgba)
        return mesh

    def scene(self) -> trimesh.Scene:
        scene = trimesh.Scene()
        for handle, item in self._items.items():
            scene.add_geometry(self.fragment_mesh(item), node_name=f"fragment_{handle}")
        return scene

    def combined(self) -> trimesh.Trimesh:
        meshes = [self.fragment_mesh(item) for item in self._items.values()]
        if not meshes:
            return trimesh.Trimesh()
        return trimesh.util.concatenate(meshes)

    def export(self, filepath: str) -> str:
        """Export the scene; single-mesh formats (e.g. .stl) get the concatenated mesh."""
        suffix = str(filepath).rsplit(".", 1)[-1].lower()
        if suffix in ("stl", "ply", "obj", "off"):
            self.combined().export(str(filepath))
        else:
            self.scene().export(str(filepath))
        logger.info("Exported %d fragment prism(s) to %s", len(self._items), filepath)
        return str(filepath)
