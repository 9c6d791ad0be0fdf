"""Run folders for headless cutting sessions.

    runs/<stamp>_<name>/
        scene.svg      final scene
        frames/        one SVG per cut (optional)
        report.json    cut reports, stats, fragment dump
        config.json    SliceConfig used
        summary.md     human-readable table
    runs/latest -> <stamp>_<name>
"""

from __future__ import annotations

import json
import os
import re
import shutil
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Union

import numpy as np

PathLike = Union[str, Path]


@dataclass
class RunPaths:
    run_id: str
    run_dir: Path
    frames_dir: Path
    scene_svg_path: Path
    report_path: Path
    config_path: Path
    summary_path: Path

    def frame_path(self, index: int) -> Path:
        return self.frames_dir / f"frame_{index:04d}.svg"


def slugify(value: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", value.strip().lower()).strip("-")
    return slug or "run"


def create_run_id(shape_name: str, now: datetime | None = None) -> str:
    now = now or datetime.now(timezone.utc)
    return f"{now.strftime('%Y%m%d_%H%M%S')}_{slugify(shape_name)}"


def prepare_run_dir(runs_root: PathLike, shape_name: str) -> RunPaths:
    """Create a fresh run folder (and its frames/ subfolder) under ``runs_root``."""
    run_id = create_run_id(shape_name)
    run_dir = Path(runs_root) / run_id
    suffix = 1
    while run_dir.exists():
        suffix += 1
        run_dir = Path(runs_root) / f"{run_id}_{suffix}"
    frames_dir = run_dir / "frames"
    frames_dir.mkdir(parents=True)

    return RunPaths(
        run_id=run_dir.name,
        run_dir=run_dir,
        frames_dir=frames_dir,
        scene_svg_path=run_dir / "scene.svg",
        report_path=run_dir / "report.json",
        config_path=run_dir / "config.json",
        summary_path=run_dir / "summary.md",
    )


def _json_default(value: Any) -> Any:
    # numpy scalars and arrays leak in from metrics and physics poses
    if isinstance(value, np.generic):
        return value.item()
    if isinstance(value, np.ndarray):
        return value.tolist()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def write_json(path: Path, payload: Dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload, indent=2, default=_json_default), encoding="utf-8")


def write_text(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


def update_latest_pointer(runs_root: PathLike, run_dir: Path) -> Path:
    """Point ``runs_root/latest`` at ``run_dir``.

    Uses a relative symlink; where symlinks are unavailable, ``latest`` becomes
    a folder holding ``latest_run.txt`` with the run folder name.
    """
    latest = Path(runs_root) / "latest"
    if latest.is_symlink() or latest.is_file():
        latest.unlink()
    elif latest.is_dir():
        shutil.rmtree(latest)

    try:
        latest.symlink_to(os.path.relpath(run_dir, latest.parent))
    except OSError:
        latest.mkdir(parents=True)
        write_text(latest / "latest_run.txt", run_dir.name)
    return latest
