from __future__ import annotations

import json
import subprocess
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parent.parent
SCRIPT = REPO_ROOT / "scripts" / "slice_shape.py"


def _run_dir(runs_root: Path) -> Path:
    dirs = [p for p in runs_root.iterdir() if p.is_dir() and p.name != "latest"]
    assert len(dirs) == 1
    return dirs[0]


def test_cli_preset_with_cuts(tmp_path: Path):
    cmd = [
        sys.executable,
        str(SCRIPT),
        "--shape",
        "square",
        "--cut",
        "0,-200,0,200",
        "--cut",
        "-200,0,200,0",
        "--steps",
        "5",
        "--seed",
        "3",
        "--frames",
        "--runs-dir",
        str(tmp_path),
    ]
    proc = subprocess.run(cmd, capture_output=True, text=True)
    assert proc.returncode == 0, proc.stderr
    assert "Run ID:" in proc.stdout

    run_dir = _run_dir(tmp_path)
    report = json.loads((run_dir / "report.json").read_text(encoding="utf-8"))
    assert report["stats"]["fragments"] == 4
    assert len(report["cuts"]) == 2
    assert report["cuts"][0]["cut"]
    assert (run_dir / "scene.svg").exists()
    assert (run_dir / "frames" / "frame_0002.svg").exists()
    assert (run_dir / "summary.md").exists()
    assert json.loads((run_dir / "config.json").read_text(encoding="utf-8"))["seed"] == 3


def test_cli_mesh_input(box_mesh_file: str, tmp_path: Path):
    cmd = [
        sys.executable,
        str(SCRIPT),
        "--mesh",
        box_mesh_file,
        "--cut",
        "0,-100,0,100",
        "--steps",
        "0",
        "--export-mesh",
        "pieces.stl",
        "--runs-dir",
        str(tmp_path),
    ]
    proc = subprocess.run(cmd, capture_output=True, text=True)
    assert proc.returncode == 0, proc.stderr
    run_dir = _run_dir(tmp_path)
    report = json.loads((run_dir / "report.json").read_text(encoding="utf-8"))
    assert report["stats"]["fragments"] == 2
    assert (run_dir / "pieces.stl").exists()


def test_cli_rejects_malformed_cut(tmp_path: Path):
    cmd = [
        sys.executable,
        str(SCRIPT),
        "--cut",
        "1,2,3",
        "--runs-dir",
        str(tmp_path),
    ]
    proc = subprocess.run(cmd, capture_output=True, text=True)
    assert proc.returncode != 0
