#!/usr/bin/env python3
"""
Verify frame dims against an analytic half-cylinder.

Runs the engine on a closed-form half-pipe, compares left/right/near/far
with hand-computed arc lengths and checks the result properties.  Pass
``--mesh-segments`` to run the same comparison through the trimesh
adapter on a triangulated copy of the shape.

Exit codes:
    0: all checks pass
    2: at least one check failed
"""
import argparse
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from frame_dims.analytic import HalfCylinder, half_cylinder_mesh
from frame_dims.contracts import EdgeStrategy, FrameDimsConfig
from frame_dims.engine import FrameDimsEngine
from frame_dims.harness import run_default_suite, verify_half_cylinder
from frame_dims.surface import TrimeshSurfaceQuery


def main():
    parser = argparse.ArgumentParser(
        description="Verify frame dims against an analytic half-cylinder"
    )
    parser.add_argument(
        "--strategy", type=str, default=EdgeStrategy.CLOSED_FORM.value,
        choices=[s.value for s in EdgeStrategy],
        help="Left/right edge algorithm (default: closed_form)",
    )
    parser.add_argument(
        "--radius", type=float, default=1.0,
        help="Half-cylinder radius in metres (default: 1.0)",
    )
    parser.add_argument(
        "--tolerance", type=float, default=0.03,
        help="Absolute tolerance in metres (default: 0.03)",
    )
    parser.add_argument(
        "--mesh-segments", type=int, default=0,
        help="Also verify through a triangulated mesh with this many segments",
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

    config = FrameDimsConfig(edge_strategy=EdgeStrategy(args.strategy))
    report = run_default_suite(config, radius=args.radius, tolerance=args.tolerance)

    if args.mesh_segments > 0:
        shape = HalfCylinder(radius=args.radius, z_min=-args.radius, z_max=args.radius)
        mesh_query = TrimeshSurfaceQuery(half_cylinder_mesh(shape, args.mesh_segments))
        report.extend(verify_half_cylinder(
            FrameDimsEngine(config), shape,
            tolerance=args.tolerance, query=mesh_query,
        ))

    print(report.to_markdown())

    if report.overall_status == "fail":
        return 2
    return 0


if __name__ == "__main__":
    sys.exit(main())
