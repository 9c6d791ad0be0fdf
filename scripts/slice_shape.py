#!/usr/bin/env python3
"""Headless cutting run: load a shape, apply cuts, write SVG + JSON report."""

from __future__ import annotations

import argparse
import logging
import sys
import time
from pathlib import Path
from typing import Any, Dict, List, Tuple

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from polyslice import InsufficientPointsError, Session, SliceConfig, load_config
from polyslice.assets import load_asset
from polyslice.physics import BulletConfig, BulletWorld, KinematicConfig, KinematicWorld
from polyslice.renderers import MeshSceneRenderer, SvgRenderer, SvgStyle
from polyslice.run_protocol import (
    prepare_run_dir,
    update_latest_pointer,
    write_json,
    write_text,
)
from polyslice.shapes import available_shapes

logger = logging.getLogger("slice_shape")


def parse_cut(value: str) -> Tuple[Tuple[float, float], Tuple[float, float]]:
    parts = value.split(",")
    if len(parts) != 4:
        raise argparse.ArgumentTypeError(f"Expected x1,y1,x2,y2 but got {value!r}")
    try:
        x1, y1, x2, y2 = (float(v) for v in parts)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"Non-numeric cut {value!r}") from exc
    return (x1, y1), (x2, y2)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Cut a polygon along line segments and record the fragments"
    )
    source = parser.add_mutually_exclusive_group()
    source.add_argument(
        "--shape", default="square", choices=available_shapes(), help="Preset shape"
    )
    source.add_argument("--mesh", help="Mesh file to flatten (.obj/.stl/.glb/...)")
    parser.add_argument(
        "--mesh-scale", type=float, default=1.0, help="Scale applied to flattened mesh points"
    )
    parser.add_argument(
        "--cut",
        dest="cuts",
        action="append",
        type=parse_cut,
        default=[],
        metavar="X1,Y1,X2,Y2",
        help="Cut segment in world units (repeatable)",
    )
    parser.add_argument("--name", default=None, help="Run name (defaults to the shape)")
    parser.add_argument("--runs-dir", default="runs", help="Runs output root")
    parser.add_argument("--config", default=None, help="SliceConfig JSON file")
    parser.add_argument("--seed", type=int, default=None, help="Random seed")
    parser.add_argument(
        "--physics", choices=("kinematic", "bullet"), default="kinematic", help="Physics back end"
    )
    parser.add_argument(
        "--steps", type=int, default=30, help="Physics steps after each cut"
    )
    parser.add_argument("--dt", type=float, default=1.0 / 60.0, help="Physics step (s)")
    parser.add_argument("--wireframe", action="store_true", help="Draw vertices and triangles")
    parser.add_argument("--frames", action="store_true", help="Save an SVG after every cut")
    parser.add_argument(
        "--export-mesh", default=None, help="Also export extruded fragments (e.g. scene.glb)"
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable debug logs"
    )
    return parser


def _build_summary(
    *,
    run_id: str,
    source: str,
    elapsed_s: float,
    reports: List[Dict[str, Any]],
    stats: Dict[str, Any],
) -> str:
    lines = [
        f"# Run {run_id}",
        "",
        f"- Source: {source}",
        f"- Duration: {elapsed_s:.2f}s",
        f"- Cuts: {sum(1 for r in reports if r['cut'])}/{len(reports)} split something",
        f"- Fragments: {stats['fragments']} ({stats['vertices']} vertices)",
        f"- Total area: {stats['total_area']:.2f}",
        f"- Deepest generation: {stats['max_generation']}",
        "",
        "| # | visited | split | created | dust | skipped |",
        "|---|---------|-------|---------|------|---------|",
    ]
    for i, r in enumerate(reports, start=1):
        lines.append(
            f"| {i} | {len(r['visited'])} | {len(r['cut'])} | {len(r['created'])} "
            f"| {r['dust']} | {len(r['skipped'])} |"
        )
    lines.append("")
    return "\n".join(lines)


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    config = load_config(args.config) if args.config else SliceConfig()
    if args.seed is not None:
        config = SliceConfig.from_dict({**config.to_dict(), "seed": args.seed})

    source = Path(args.mesh).stem if args.mesh else args.shape
    name = args.name or source

    started = time.perf_counter()
    renderer = SvgRenderer(SvgStyle(wireframe=args.wireframe))
    if args.physics == "bullet":
        physics = BulletWorld(BulletConfig())
    else:
        physics = KinematicWorld(KinematicConfig())
    session = Session(renderer, physics, config=config)

    if args.mesh:
        try:
            cloud = load_asset(args.mesh, scale=args.mesh_scale)
            session.load_points(cloud.points, cloud.payload)
        except InsufficientPointsError as exc:
            logger.error("Could not build a shape from %s: %s", args.mesh, exc)
            return 1
    else:
        session.load_shape(args.shape)

    run_paths = prepare_run_dir(args.runs_dir, name)

    reports: List[Dict[str, Any]] = []
    for index, (start, end) in enumerate(args.cuts, start=1):
        report = session.cut(start, end)
        reports.append(report.to_dict())
        for _ in range(max(0, args.steps)):
            session.step(args.dt)
        if args.frames:
            renderer.save(str(run_paths.frame_path(index)))

    renderer.save(str(run_paths.scene_svg_path))
    stats = session.stats()
    elapsed = time.perf_counter() - started

    mesh_path = None
    if args.export_mesh:
        mesh_renderer = MeshSceneRenderer()
        for fragment in session.fragments:
            mesh_renderer.present(fragment.ring, fragment.payload, fragment.pose)
        mesh_path = run_paths.run_dir / Path(args.export_mesh).name
        mesh_renderer.export(str(mesh_path))

    write_json(run_paths.config_path, config.to_dict())
    write_json(
        run_paths.report_path,
        {
            "run_id": run_paths.run_id,
            "source": args.mesh or args.shape,
            "physics": args.physics,
            "elapsed_s": round(elapsed, 3),
            "cuts": reports,
            "stats": stats,
            "fragments": [
                {
                    "fragment_id": f.fragment_id,
                    "parent_id": f.parent_id,
                    "generation": f.generation,
                    "area": f.current_area,
                    "root_area": f.root_area,
                    "pose": [f.pose.x, f.pose.y, f.pose.angle],
                    "vertices": [list(v) for v in f.ring],
                }
                for f in session.fragments
            ],
        },
    )
    write_text(
        run_paths.summary_path,
        _build_summary(
            run_id=run_paths.run_id,
            source=args.mesh or args.shape,
            elapsed_s=elapsed,
            reports=reports,
            stats=stats,
        ),
    )
    update_latest_pointer(args.runs_dir, run_paths.run_dir)

    if isinstance(physics, BulletWorld):
        physics.close()

    print(f"Run ID: {run_paths.run_id}")
    print(f"Run dir: {run_paths.run_dir}")
    print(f"Fragments: {stats['fragments']}")
    print(f"Total area: {stats['total_area']:.2f}")
    print(f"SVG: {run_paths.scene_svg_path}")
    print(f"Report: {run_paths.report_path}")
    if mesh_path is not None:
        print(f"Mesh: {mesh_path}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
