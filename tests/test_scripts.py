from __future__ import annotations

import json
import subprocess
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parent.parent


def _run(script: str, *args: str) -> subprocess.CompletedProcess:
    cmd = [sys.executable, str(REPO_ROOT / "scripts" / script), *args]
    return subprocess.run(cmd, capture_output=True, text=True)


def test_compute_frame_dims_writes_json(half_cylinder_mesh_file: str, tmp_path: Path):
    points_path = tmp_path / "corners.json"
    points_path.write_text(json.dumps({"p1": [0.01, 0.0, 0.0], "p2": [0.5, 0.134, 0.5]}))
    out_path = tmp_path / "out" / "frame_dims.json"

    proc = _run(
        "compute_frame_dims.py",
        "--mesh", half_cylinder_mesh_file,
        "--points", str(points_path),
        "--output", str(out_path),
    )
    assert proc.returncode == 0, proc.stderr
    assert "Frame dims written to:" in proc.stdout

    data = json.loads(out_path.read_text())
    assert data["rm_kind"] == "mesh"
    assert set(data["per_edge"]["left"]["per_point"]) == {"p1", "p2"}
    assert abs(data["per_edge"]["near"]["per_point"]["p2"] - 1.5) < 1e-6
    assert data["meta"]["status"] == "ok"


def test_compute_frame_dims_list_points_to_stdout(half_cylinder_mesh_file: str, tmp_path: Path):
    points_path = tmp_path / "corners.json"
    points_path.write_text(json.dumps([[0.01, 0.0, 0.0], [0.01, 0.0, 0.5]]))

    proc = _run(
        "compute_frame_dims.py",
        "--mesh", half_cylinder_mesh_file,
        "--points", str(points_path),
        "--strategy", "radial_trace",
        "--obb-mode", "pca",
    )
    assert proc.returncode == 0, proc.stderr
    data = json.loads(proc.stdout)
    assert set(data["per_edge"]["far"]["per_point"]) == {"p1", "p2"}
    assert "radial surface trace" in data["meta"]["notes"]


def test_compute_frame_dims_missing_mesh(tmp_path: Path):
    points_path = tmp_path / "corners.json"
    points_path.write_text("{}")
    proc = _run(
        "compute_frame_dims.py",
        "--mesh", str(tmp_path / "nope.stl"),
        "--points", str(points_path),
    )
    assert proc.returncode == 2
    assert "Mesh file not found" in proc.stderr


def test_verify_half_cylinder_passes():
    proc = _run("verify_half_cylinder.py", "--mesh-segments", "128")
    assert proc.returncode == 0, proc.stdout + proc.stderr
    assert "Frame dims verification: PASS" in proc.stdout


def test_verify_half_cylinder_reports_failure():
    proc = _run("verify_half_cylinder.py", "--strategy", "radial_trace", "--tolerance", "0")
    assert proc.returncode == 2
    assert "FAIL" in proc.stdout


def test_compute_frame_dims_rejects_bad_points(half_cylinder_mesh_file: str, tmp_path: Path):
    for name, text in [
        ("scalar.json", "42"),
        ("short.json", json.dumps({"p1": [0.0, 1.0]})),
        ("words.json", json.dumps({"p1": ["a", "b", "c"]})),
        ("broken.json", "{not json"),
    ]:
        points_path = tmp_path / name
        points_path.write_text(text)
        proc = _run(
            "compute_frame_dims.py",
            "--mesh", half_cylinder_mesh_file,
            "--points", str(points_path),
        )
        assert proc.returncode == 2, name
        assert "Invalid points file" in proc.stderr, name
        assert "Traceback" not in proc.stderr, name
