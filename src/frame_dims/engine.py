"""
Mesh-relative frame dimension engine.

Given a map of labelled points (the corners of an annotation placed on a
surface) and a ``SurfaceQuery``, computes per-point distances to the
left/right/near/far boundaries of the surface plus the footprint of the
surface directly under the points.

Left/right distances are arc lengths across a roughly cylindrical cross
section and come from one of two strategies:

- closed form: arc length on the circle enclosing the surface bounds,
  O(1) per point, exact for cylinder-like sections
- radial trace: inward raycasts at small angular steps, summing the
  distance between consecutive hits, for irregular sections

Near/far distances are plain arithmetic on the surface bounds.  The
engine holds no state between calls.
"""
import logging
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

import numpy as np

from frame_dims.contracts import (
    EDGE_KEYS,
    EdgeDistances,
    EdgeStrategy,
    FrameDimsAggregate,
    FrameDimsConfig,
    FrameDimsMeta,
    FrameDimsResult,
    FrameDimsSizes,
    InvalidDirectionsError,
    PointInputError,
    ResultStatus,
    default_directions,
)
from frame_dims.geometry import AABB, OBB, Vec3, as_vec3, compute_aabb, compute_obb
from frame_dims.serialization import result_to_dict
from frame_dims.surface import SurfaceQuery

logger = logging.getLogger(__name__)

HALF_PI = 0.5 * math.pi


# ─── Input handling ──────────────────────────────────────────────────────────


def resolve_directions(
    directions: Optional[Mapping[str, Sequence[float]]] = None,
) -> Dict[str, np.ndarray]:
    """Merge *directions* over the defaults and normalise every vector.

    Raises:
        InvalidDirectionsError: unknown edge key, or a zero/non-finite vector.
    """
    merged = {key: np.asarray(vec, dtype=float) for key, vec in default_directions().items()}
    for key, vec in (directions or {}).items():
        if key not in EDGE_KEYS:
            raise InvalidDirectionsError(
                f"Unknown edge '{key}' in directions; expected one of {EDGE_KEYS}"
            )
        try:
            arr = np.asarray(as_vec3(vec), dtype=float)
        except (TypeError, ValueError, IndexError) as exc:
            raise InvalidDirectionsError(f"Direction for '{key}' is not a 3-vector: {vec!r}") from exc
        merged[key] = arr

    resolved = {}
    for key, arr in merged.items():
        norm = float(np.linalg.norm(arr))
        if not np.isfinite(norm) or norm < 1e-12:
            raise InvalidDirectionsError(f"Direction for '{key}' is zero or non-finite")
        resolved[key] = arr / norm
    return resolved


def validate_points(points: Mapping[str, Sequence[float]]) -> Dict[str, np.ndarray]:
    validated = {}
    for point_id, value in points.items():
        try:
            arr = np.asarray(value, dtype=float).reshape(-1)
        except (TypeError, ValueError) as exc:
            raise PointInputError(f"Point '{point_id}' is not numeric: {value!r}") from exc
        if arr.shape != (3,):
            raise PointInputError(f"Point '{point_id}' must have 3 components, got {arr.shape[0]}")
        if not np.all(np.isfinite(arr)):
            raise PointInputError(f"Point '{point_id}' has non-finite coordinates")
        validated[str(point_id)] = arr
    return validated


def step_for_length(length: float, config: Optional[FrameDimsConfig] = None) -> float:
    """Trace step for an extent: a fraction of it, clamped to [min, max]."""
    if config is None:
        config = FrameDimsConfig()
    return min(max(length * config.trace_step_fraction, config.trace_step_min), config.trace_step_max)


# ─── Per-call frame ──────────────────────────────────────────────────────────


class RaycastBudget:
    """Counts provider raycasts against a per-call ceiling."""

    def __init__(self, limit: int):
        self.limit = max(0, int(limit))
        self.used = 0
        self.exhausted = False

    def take(self) -> bool:
        if self.used >= self.limit:
            self.exhausted = True
            return False
        self.used += 1
        return True


@dataclass
class SurfaceFrame:
    """Cross-section geometry derived from the surface bounds and directions."""

    bounds_min: np.ndarray
    bounds_max: np.ndarray
    center: np.ndarray
    lateral: np.ndarray   # unit, from the left edge toward the right edge
    up: np.ndarray        # unit, orthogonal to lateral
    lateral_half: float
    up_half: float
    radius: float

    @classmethod
    def build(
        cls,
        bounds_min: np.ndarray,
        bounds_max: np.ndarray,
        directions: Mapping[str, np.ndarray],
    ) -> "SurfaceFrame":
        lateral = directions["right"] - directions["left"]
        lateral_norm = float(np.linalg.norm(lateral))
        if lateral_norm < 1e-12:
            raise InvalidDirectionsError("'left' and 'right' directions must not coincide")
        lateral = lateral / lateral_norm

        up = directions["top"] - directions["bottom"]
        up = up - float(np.dot(up, lateral)) * lateral
        up_norm = float(np.linalg.norm(up))
        if up_norm < 1e-12:
            raise InvalidDirectionsError("'top'/'bottom' axis must not be parallel to 'left'/'right'")
        up = up / up_norm

        half = (bounds_max - bounds_min) / 2.0
        lateral_half = float(np.abs(lateral) @ half)
        up_half = float(np.abs(up) @ half)
        return cls(
            bounds_min=bounds_min,
            bounds_max=bounds_max,
            center=(bounds_min + bounds_max) / 2.0,
            lateral=lateral,
            up=up,
            lateral_half=lateral_half,
            up_half=up_half,
            radius=max(lateral_half, up_half),
        )

    def support(self, direction: np.ndarray) -> float:
        """Furthest extent of the bounds box along *direction*."""
        return float(np.sum(np.maximum(direction * self.bounds_min, direction * self.bounds_max)))

    def theta_of(self, point: np.ndarray, epsilon: float) -> float:
        offset = float(np.dot(point - self.center, self.lateral))
        return math.asin(min(1.0, max(-1.0, offset / max(self.radius, epsilon))))

    def axis_through(self, point: np.ndarray) -> np.ndarray:
        """Point on the cylinder axis at the same depth as *point*."""
        axis = self.center + (self.radius - self.up_half) * self.up
        rel = point - axis
        rel = rel - float(np.dot(rel, self.lateral)) * self.lateral - float(np.dot(rel, self.up)) * self.up
        return axis + rel


# ─── Edge strategies ─────────────────────────────────────────────────────────


class EdgeDistanceStrategy(ABC):
    """Computes (left, right) arc distances for one point."""

    description: str = ""

    @abstractmethod
    def lateral_distances(
        self,
        point: np.ndarray,
        frame: SurfaceFrame,
        query: SurfaceQuery,
        budget: RaycastBudget,
        config: FrameDimsConfig,
    ) -> Tuple[float, float]:
        ...


class ClosedFormArcStrategy(EdgeDistanceStrategy):
    """Arc length on the circle enclosing the bounds; no raycasts."""

    description = "closed-form arc for left/right"

    def lateral_distances(self, point, frame, query, budget, config):
        radius = frame.radius
        if radius < config.epsilon:
            return 0.0, 0.0
        theta0 = frame.theta_of(point, config.epsilon)
        left = max(0.0, (HALF_PI - theta0) * radius)
        right = max(0.0, (HALF_PI + theta0) * radius)
        return left, right


class RadialTraceStrategy(EdgeDistanceStrategy):
    """Trace the true surface arc with inward radial raycasts."""

    description = "radial surface trace for left/right"

    def lateral_distances(self, point, frame, query, budget, config):
        if frame.radius < config.epsilon:
            return 0.0, 0.0
        theta0 = frame.theta_of(point, config.epsilon)
        axis = frame.axis_through(point)
        left = self.trace_arc(theta0, HALF_PI, axis, frame, query, budget, config)
        right = self.trace_arc(theta0, -HALF_PI, axis, frame, query, budget, config)
        return left, right

    def trace_arc(
        self,
        theta_start: float,
        theta_end: float,
        axis: np.ndarray,
        frame: SurfaceFrame,
        query: SurfaceQuery,
        budget: RaycastBudget,
        config: FrameDimsConfig,
    ) -> float:
        """Surface path length between two angles at a fixed depth.

        A step whose ray (or whose predecessor's ray) misses contributes
        the circular increment ``|d_theta| * R`` instead of a chord.
        """
        radius = frame.radius
        if radius < config.epsilon:
            return 0.0
        span = theta_end - theta_start
        if abs(span) < 1e-12:
            return 0.0

        step = step_for_length(2.0 * radius, config)
        d_theta = step / radius
        n_steps = max(1, int(math.ceil(abs(span) / d_theta)))
        margin = max(config.trace_margin_min, radius * config.trace_margin_fraction)

        reach = radius + margin

        def cast(theta: float) -> Optional[Vec3]:
            outward = math.sin(theta) * frame.lateral - math.cos(theta) * frame.up
            origin = axis + reach * outward
            hit = query.raycast(origin, -outward)
            # a hit past the axis belongs to the opposite wall
            if hit is not None and math.dist(origin, hit) > reach:
                return None
            return hit

        if not budget.take():
            return abs(span) * radius
        prev_hit = cast(theta_start)
        prev_theta = theta_start

        total = 0.0
        for i in range(1, n_steps + 1):
            theta = theta_start + span * (i / n_steps)
            if not budget.take():
                total += abs(theta_end - prev_theta) * radius
                break
            hit = cast(theta)
            if hit is not None and prev_hit is not None:
                total += math.dist(prev_hit, hit)
            else:
                total += abs(theta - prev_theta) * radius
            prev_hit = hit
            prev_theta = theta
        return total


STRATEGIES: Dict[EdgeStrategy, EdgeDistanceStrategy] = {
    EdgeStrategy.CLOSED_FORM: ClosedFormArcStrategy(),
    EdgeStrategy.RADIAL_TRACE: RadialTraceStrategy(),
}


# ─── Engine ──────────────────────────────────────────────────────────────────


class FrameDimsEngine:
    """Compute frame dimensions for a point map against a surface."""

    def __init__(self, config: Optional[FrameDimsConfig] = None):
        self.config = config or FrameDimsConfig()

    @property
    def strategy(self) -> EdgeDistanceStrategy:
        return STRATEGIES[self.config.edge_strategy]

    def compute(
        self,
        points: Mapping[str, Sequence[float]],
        query: SurfaceQuery,
        directions: Optional[Mapping[str, Sequence[float]]] = None,
        computed_at_iso: Optional[str] = None,
    ) -> FrameDimsResult:
        """Compute per-edge distances, aggregates and footprint sizes.

        Args:
            points: Point id -> (x, y, z) in the surface's frame.
            query: Surface to measure against.
            directions: Optional per-edge direction overrides.
            computed_at_iso: Optional timestamp recorded in ``meta``.

        Returns:
            A ``FrameDimsResult``.  Missing geometry never raises; it
            degrades to zero distances/boxes with a note in ``meta.notes``.

        Raises:
            PointInputError: a point is not a finite 3-vector.
            InvalidDirectionsError: a direction override is unusable.
        """
        config = self.config
        pts = validate_points(points)
        dirs = resolve_directions(directions)
        notes: List[str] = []
        degraded = False

        if not pts:
            logger.warning("No points supplied; returning empty frame dims")
            return self._build_result(
                per_edge={key: EdgeDistances({}) for key in EDGE_KEYS},
                sizes=FrameDimsSizes(aabb=AABB.zero(), obb=OBB.zero()),
                notes=["No points supplied; distances and sizes are zero"],
                status=ResultStatus.DEGRADED,
                computed_at_iso=computed_at_iso,
            )

        bounds_min = np.asarray(as_vec3(query.bounds_min), dtype=float)
        bounds_max = np.asarray(as_vec3(query.bounds_max), dtype=float)
        if np.any(bounds_max < bounds_min):
            logger.warning(
                "Surface bounds inverted (min=%s, max=%s); reordering",
                bounds_min.tolist(), bounds_max.tolist(),
            )
            bounds_min, bounds_max = np.minimum(bounds_min, bounds_max), np.maximum(bounds_min, bounds_max)
            notes.append("surface bounds were inverted and have been reordered")
            degraded = True

        frame = SurfaceFrame.build(bounds_min, bounds_max, dirs)
        budget = RaycastBudget(config.max_raycasts)

        # Size sampling runs first so a long trace cannot starve it
        hits, missed = self._sample_surface(pts, bounds_max, query, budget)
        if not hits:
            if config.require_surface_hits:
                logger.warning("Every surface projection missed; returning failure result")
                return failure_result(points, config, computed_at_iso=computed_at_iso)
            logger.warning("No surface hits under %d points; sizes default to a zero box", len(pts))
            notes.append("no surface hits under points; sizes default to a zero box at the origin")
            degraded = True
        elif missed:
            notes.append(f"{missed} of {len(pts)} points missed the surface and were excluded from sizes")

        if frame.radius < config.epsilon:
            logger.warning("Cross-section radius %.3g below epsilon; lateral distances are 0", frame.radius)
            notes.append("degenerate cross-section radius; left/right clamped to 0")
            degraded = True

        strategy = self.strategy
        left: Dict[str, float] = {}
        right: Dict[str, float] = {}
        near: Dict[str, float] = {}
        far: Dict[str, float] = {}
        near_support = frame.support(dirs["near"])
        far_support = frame.support(dirs["far"])

        for point_id, p in pts.items():
            l_dist, r_dist = strategy.lateral_distances(p, frame, query, budget, config)
            left[point_id] = float(l_dist)
            right[point_id] = float(r_dist)
            near[point_id] = max(0.0, near_support - float(np.dot(p, dirs["near"])))
            far[point_id] = max(0.0, far_support - float(np.dot(p, dirs["far"])))
            logger.debug(
                "%s: left=%.4f right=%.4f near=%.4f far=%.4f",
                point_id, left[point_id], right[point_id], near[point_id], far[point_id],
            )

        if budget.exhausted:
            logger.warning("Raycast budget of %d exhausted; remaining arcs approximated", budget.limit)
            notes.append(f"raycast budget of {budget.limit} exhausted; remaining arc approximated analytically")
            degraded = True

        per_edge = {
            "left": EdgeDistances(left),
            "right": EdgeDistances(right),
            "near": EdgeDistances(near),
            "far": EdgeDistances(far),
            "top": EdgeDistances({}),
            "bottom": EdgeDistances({}),
        }
        sizes = FrameDimsSizes(aabb=compute_aabb(hits), obb=compute_obb(hits, config.obb_mode))

        notes.insert(
            0,
            f"Mesh tracing via provider from {len(pts)} points "
            f"({strategy.description}; bounds for near/far)",
        )
        logger.info(
            "Frame dims for %d points: %d surface hits, %d raycasts",
            len(pts), len(hits), budget.used,
        )
        return self._build_result(
            per_edge=per_edge,
            sizes=sizes,
            notes=notes,
            status=ResultStatus.DEGRADED if degraded else ResultStatus.OK,
            computed_at_iso=computed_at_iso,
        )

    def _sample_surface(
        self,
        pts: Mapping[str, np.ndarray],
        bounds_max: np.ndarray,
        query: SurfaceQuery,
        budget: RaycastBudget,
    ) -> Tuple[List[Vec3], int]:
        """Cast down from above each point; return (hits, miss count)."""
        safe_y = float(bounds_max[1]) + self.config.sample_height_offset
        hits: List[Vec3] = []
        missed = 0
        for point_id, p in pts.items():
            if not budget.take():
                missed += 1
                continue
            hit = query.raycast_down((float(p[0]), safe_y, float(p[2])))
            if hit is None:
                logger.debug("%s: no surface below", point_id)
                missed += 1
                continue
            hits.append(as_vec3(hit))
        return hits, missed

    def _build_result(self, per_edge, sizes, notes, status, computed_at_iso) -> FrameDimsResult:
        return FrameDimsResult(
            per_edge=per_edge,
            aggregate=FrameDimsAggregate.from_per_edge(per_edge),
            sizes=sizes,
            meta=FrameDimsMeta(
                notes="; ".join(notes),
                epsilon=self.config.epsilon,
                status=status,
                computed_at_iso=computed_at_iso,
            ),
            rm_kind=self.config.rm_kind,
        )


def failure_result(
    points: Mapping[str, Sequence[float]],
    config: Optional[FrameDimsConfig] = None,
    notes: str = "Failed to project points onto surface",
    computed_at_iso: Optional[str] = None,
) -> FrameDimsResult:
    """Result used when no point could be projected onto the surface.

    Distances are the large ``config.failure_distance`` sentinel so the
    result cannot be mistaken for a measurement; sizes describe the raw
    input points.
    """
    if config is None:
        config = FrameDimsConfig()
    raw = list(validate_points(points).values())
    return FrameDimsResult(
        per_edge={},
        aggregate=FrameDimsAggregate.uniform(config.failure_distance),
        sizes=FrameDimsSizes(aabb=compute_aabb(raw), obb=compute_obb(raw, config.obb_mode)),
        meta=FrameDimsMeta(
            notes=notes,
            epsilon=config.epsilon,
            status=ResultStatus.FAILED,
            computed_at_iso=computed_at_iso,
        ),
        rm_kind=config.rm_kind,
    )


def frame_dims_for_persistence(
    nodes: Sequence[Sequence[float]],
    query: SurfaceQuery,
    engine: Optional[FrameDimsEngine] = None,
    directions: Optional[Mapping[str, Sequence[float]]] = None,
) -> dict:
    """Compute frame dims for ordered annotation corners, as a plain dict.

    Corners get the stable ids ``p1..pN`` in the order given.
    """
    if engine is None:
        engine = FrameDimsEngine()
    points = {f"p{index + 1}": node for index, node in enumerate(nodes)}
    return result_to_dict(engine.compute(points, query, directions=directions))
