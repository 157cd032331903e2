#!/usr/bin/env python3
"""
Compute frame dimensions for annotation corners on a mesh.

Loads a mesh file as the reference surface, reads the corner points from a
JSON file and prints (or writes) the frame dims key-value form.

Points file formats:
    {"p1": [x, y, z], "p2": [x, y, z], ...}
    [[x, y, z], [x, y, z], ...]            (ids become p1..pN)

Usage:
    python scripts/compute_frame_dims.py --mesh tunnel.glb --points corners.json
    python scripts/compute_frame_dims.py --mesh tunnel.glb --points corners.json \
        --strategy radial_trace --output frame_dims.json
"""
import argparse
import json
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from frame_dims.contracts import EdgeStrategy, FrameDimsConfig
from frame_dims.engine import FrameDimsEngine
from frame_dims.geometry import ObbMode
from frame_dims.serialization import result_to_dict
from frame_dims.surface import TrimeshSurfaceQuery


def load_points(path: str) -> dict:
    with open(path) as f:
        data = json.load(f)
    if isinstance(data, list):
        return {f"p{i + 1}": p for i, p in enumerate(data)}
    if isinstance(data, dict):
        return data
    raise ValueError(f"Points file must hold a list or an object, got {type(data).__name__}")


def main():
    parser = argparse.ArgumentParser(
        description="Compute frame dimensions of annotation corners on a mesh"
    )
    parser.add_argument(
        "--mesh", required=True, type=str, help="Mesh file (GLB/STL/OBJ/PLY)"
    )
    parser.add_argument(
        "--points", required=True, type=str, help="JSON file with corner points"
    )
    parser.add_argument(
        "--strategy", type=str, default=EdgeStrategy.CLOSED_FORM.value,
        choices=[s.value for s in EdgeStrategy],
        help="Left/right edge algorithm (default: closed_form)",
    )
    parser.add_argument(
        "--obb-mode", type=str, default=ObbMode.AXIS_ALIGNED.value,
        choices=[m.value for m in ObbMode],
        help="OBB orientation (default: axis_aligned)",
    )
    parser.add_argument(
        "--max-raycasts", type=int, default=50000,
        help="Raycast ceiling per computation (default: 50000)",
    )
    parser.add_argument(
        "--output", type=str, default=None,
        help="Write JSON here instead of stdout",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="DEBUG logging",
    )

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if not Path(args.mesh).is_file():
        parser.error(f"Mesh file not found: {args.mesh}")
    if not Path(args.points).is_file():
        parser.error(f"Points file not found: {args.points}")

    config = FrameDimsConfig(
        edge_strategy=EdgeStrategy(args.strategy),
        obb_mode=ObbMode(args.obb_mode),
        max_raycasts=args.max_raycasts,
    )
    query = TrimeshSurfaceQuery.from_file(args.mesh)

    # JSON decode errors and PointInputError are both ValueErrors
    try:
        points = load_points(args.points)
        result = FrameDimsEngine(config).compute(points, query)
    except ValueError as exc:
        parser.error(f"Invalid points file {args.points}: {exc}")

    payload = json.dumps(result_to_dict(result), indent=2)

    if args.output:
        out_path = Path(args.output)
        out_path.parent.mkdir(parents=True, exist_ok=True)
        out_path.write_text(payload + "\n")
        print(f"Frame dims written to: {out_path}")
    else:
        print(payload)

    return 0


if __name__ == "__main__":
    sys.exit(main())
