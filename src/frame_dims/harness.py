"""
Verification harness for the frame dimension engine.

Runs the engine against closed-form geometry and checks the properties
every result must satisfy (non-negative distances, min aggregates, valid
boxes, deterministic output, graceful degradation).  Each check yields a
pass/fail ``PropertyCheck`` so a whole suite can be summarised as one
``VerificationReport``.
"""
import logging
import math
from dataclasses import dataclass, field
from typing import Iterable, List, Mapping, Optional, Sequence

from frame_dims.analytic import HalfCylinder, HalfCylinderSurfaceQuery
from frame_dims.contracts import EDGE_KEYS, FrameDimsConfig, FrameDimsResult
from frame_dims.engine import FrameDimsEngine
from frame_dims.geometry import Vec3, as_vec3
from frame_dims.serialization import result_to_dict
from frame_dims.surface import DEFAULT_MAX_DISTANCE, SurfaceQuery

logger = logging.getLogger(__name__)

DEFAULT_TOLERANCE = 0.03  # metres
DEFAULT_THETAS = (-math.pi / 3, -math.pi / 4, 0.0, math.pi / 4, math.pi / 3)


@dataclass
class PropertyCheck:
    """A single pass/fail verification check."""

    name: str
    status: str  # "pass" | "fail"
    metric_value: float
    threshold: float
    message: str

    @property
    def passed(self) -> bool:
        return self.status == "pass"


@dataclass
class VerificationReport:
    checks: List[PropertyCheck] = field(default_factory=list)

    @property
    def overall_status(self) -> str:
        return "pass" if all(c.passed for c in self.checks) else "fail"

    @property
    def failures(self) -> List[PropertyCheck]:
        return [c for c in self.checks if not c.passed]

    def extend(self, checks: Iterable[PropertyCheck]) -> None:
        self.checks.extend(checks)

    def to_markdown(self) -> str:
        lines = [f"## Frame dims verification: {self.overall_status.upper()}", ""]
        lines.append("| Check | Status | Value | Threshold | Message |")
        lines.append("|---|---|---|---|---|")
        for c in self.checks:
            lines.append(
                f"| {c.name} | {c.status} | {c.metric_value:.6g} | {c.threshold:.6g} | {c.message} |"
            )
        return "\n".join(lines)


class AlwaysMissQuery(SurfaceQuery):
    """Surface with bounds but no geometry: every raycast misses."""

    def __init__(self, bounds_min: Sequence[float], bounds_max: Sequence[float]):
        self._bounds_min = as_vec3(bounds_min)
        self._bounds_max = as_vec3(bounds_max)
        self.max_distance = DEFAULT_MAX_DISTANCE

    @property
    def bounds_min(self) -> Vec3:
        return self._bounds_min

    @property
    def bounds_max(self) -> Vec3:
        return self._bounds_max

    def raycast(self, origin, direction):
        return None


def _check(name: str, ok: bool, value: float, threshold: float, message: str) -> PropertyCheck:
    return PropertyCheck(
        name=name,
        status="pass" if ok else "fail",
        metric_value=float(value),
        threshold=float(threshold),
        message=message,
    )


# ─── Property checks ─────────────────────────────────────────────────────────


def check_non_negative(result: FrameDimsResult) -> PropertyCheck:
    values = [d for edge in result.per_edge.values() for d in edge.per_point.values()]
    lowest = min(values) if values else 0.0
    return _check(
        "non_negative", lowest >= 0.0, lowest, 0.0,
        f"Smallest of {len(values)} edge distances is {lowest:.4f}",
    )


def check_aggregate(result: FrameDimsResult) -> PropertyCheck:
    worst = 0.0
    for key in EDGE_KEYS:
        edge = result.per_edge.get(key)
        expected = min(edge.per_point.values()) if edge and edge.per_point else 0.0
        worst = max(worst, abs(getattr(result.aggregate, key) - expected))
    return _check(
        "aggregate_is_min", worst == 0.0, worst, 0.0,
        "Aggregate equals per-edge minimum" if worst == 0.0 else f"Aggregate off by {worst:.6g}",
    )


def check_aabb(result: FrameDimsResult, expect_empty: bool = False) -> PropertyCheck:
    aabb = result.sizes.aabb
    min_dim = min(aabb.dimensions)
    ok = min_dim >= 0.0
    if expect_empty:
        ok = ok and aabb.min == (0.0, 0.0, 0.0) and aabb.max == (0.0, 0.0, 0.0)
    return _check(
        "aabb_valid", ok, min_dim, 0.0,
        f"AABB min={list(aabb.min)} max={list(aabb.max)}",
    )


def check_near_far_linearity(
    result: FrameDimsResult,
    points: Mapping[str, Sequence[float]],
    query: SurfaceQuery,
) -> PropertyCheck:
    """near + far equals the depth of the bounds for points inside them."""
    z_min, z_max = query.bounds_min[2], query.bounds_max[2]
    depth = z_max - z_min
    worst = 0.0
    checked = 0
    for pid, p in points.items():
        if not (z_min <= p[2] <= z_max):
            continue
        near = result.distance("near", pid)
        far = result.distance("far", pid)
        if near is None or far is None:
            continue
        worst = max(worst, abs(near + far - depth))
        checked += 1
    return _check(
        "near_far_linearity", worst <= 1e-9, worst, 1e-9,
        f"{checked} points checked against depth {depth:.4f}",
    )


def check_determinism(
    engine: FrameDimsEngine,
    points: Mapping[str, Sequence[float]],
    query: SurfaceQuery,
) -> PropertyCheck:
    first = result_to_dict(engine.compute(points, query))
    second = result_to_dict(engine.compute(points, query))
    same = first == second
    return _check(
        "deterministic", same, 0.0 if same else 1.0, 0.0,
        "Repeated calls are identical" if same else "Repeated calls differ",
    )


def check_graceful_degradation(
    engine: FrameDimsEngine,
    points: Mapping[str, Sequence[float]],
    bounds_min: Sequence[float],
    bounds_max: Sequence[float],
) -> PropertyCheck:
    """An always-miss surface yields zero boxes and a note, without raising."""
    query = AlwaysMissQuery(bounds_min, bounds_max)
    try:
        result = engine.compute(points, query)
    except Exception as exc:
        return _check("graceful_degradation", False, 1.0, 0.0, f"compute raised {exc!r}")
    aabb_ok = check_aabb(result, expect_empty=True).passed
    ok = aabb_ok and bool(result.meta.notes)
    return _check(
        "graceful_degradation", ok, 0.0 if ok else 1.0, 0.0,
        f"status={result.meta.status.value}; notes={result.meta.notes!r}",
    )


# ─── Analytic agreement ──────────────────────────────────────────────────────


def verify_half_cylinder(
    engine: FrameDimsEngine,
    shape: Optional[HalfCylinder] = None,
    thetas: Sequence[float] = DEFAULT_THETAS,
    z: float = 0.0,
    tolerance: float = DEFAULT_TOLERANCE,
    query: Optional[SurfaceQuery] = None,
) -> List[PropertyCheck]:
    """Compare engine distances with closed-form arc lengths on *shape*.

    One check per angle and edge; a check passes when the absolute error
    is within *tolerance*.  *query* defaults to the exact analytic adapter
    but may be any surface of the same shape (e.g. a triangulated mesh).
    """
    shape = shape or HalfCylinder()
    query = query or HalfCylinderSurfaceQuery(shape)
    checks = []
    for theta in thetas:
        node = shape.point_at(theta, z)
        result = engine.compute({"p1": node}, query)
        expected_left, expected_right = shape.analytic_left_right(theta)
        expected_near, expected_far = shape.analytic_near_far(node)
        expected = {
            "left": expected_left,
            "right": expected_right,
            "near": expected_near,
            "far": expected_far,
        }
        for edge, want in expected.items():
            got = result.distance(edge, "p1")
            error = abs(got - want) if got is not None else math.inf
            checks.append(_check(
                f"half_cylinder_{edge}@{math.degrees(theta):.0f}deg",
                error <= tolerance, error, tolerance,
                f"computed={got!r} expected={want:.4f}",
            ))
    logger.info(
        "Half-cylinder R=%.3f: %d/%d checks within %.3f",
        shape.radius, sum(c.passed for c in checks), len(checks), tolerance,
    )
    return checks


def run_default_suite(
    config: Optional[FrameDimsConfig] = None,
    radius: float = 1.0,
    tolerance: float = DEFAULT_TOLERANCE,
) -> VerificationReport:
    """Analytic agreement plus all property checks on a half-cylinder."""
    engine = FrameDimsEngine(config)
    shape = HalfCylinder(radius=radius, z_min=-radius, z_max=radius)
    query = HalfCylinderSurfaceQuery(shape)

    points = {
        f"p{i + 1}": shape.point_at(theta, z)
        for i, (theta, z) in enumerate([
            (-math.pi / 6, -0.25 * radius),
            (math.pi / 6, -0.25 * radius),
            (math.pi / 6, 0.25 * radius),
            (-math.pi / 6, 0.25 * radius),
        ])
    }

    report = VerificationReport()
    report.extend(verify_half_cylinder(engine, shape, tolerance=tolerance, query=query))
    result = engine.compute(points, query)
    report.extend([
        check_non_negative(result),
        check_aggregate(result),
        check_aabb(result),
        check_near_far_linearity(result, points, query),
        check_determinism(engine, points, query),
        check_graceful_degradation(engine, points, query.bounds_min, query.bounds_max),
    ])
    return report
