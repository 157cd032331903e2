"""Contracts for frame dimension computation: config, errors and results."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Mapping, Optional, Tuple

from frame_dims.geometry import AABB, OBB, ObbMode, Vec3

EDGE_KEYS: Tuple[str, ...] = ("left", "right", "near", "far", "top", "bottom")

RESULT_VERSION = 1


def default_directions() -> Dict[str, Vec3]:
    """Default outward direction for each of the six edges."""
    return {
        "left": (-1.0, 0.0, 0.0),
        "right": (1.0, 0.0, 0.0),
        "near": (0.0, 0.0, -1.0),
        "far": (0.0, 0.0, 1.0),
        "top": (0.0, 1.0, 0.0),
        "bottom": (0.0, -1.0, 0.0),
    }


class FrameDimsError(Exception):
    """Base exception for frame dimension errors."""
    pass


class PointInputError(FrameDimsError, ValueError):
    """A caller-supplied point is not a finite 3-vector."""
    pass


class InvalidDirectionsError(FrameDimsError, ValueError):
    """A direction override names an unknown edge or a degenerate vector."""
    pass


class SerializationError(FrameDimsError, ValueError):
    """A key-value payload cannot be decoded into a result."""
    pass


class EdgeStrategy(Enum):
    """Algorithm used for the lateral (left/right) edge distances."""
    CLOSED_FORM = "closed_form"    # circular arc from bounds, O(1) per point
    RADIAL_TRACE = "radial_trace"  # inward radial raycasts along the arc


class ResultStatus(Enum):
    OK = "ok"
    DEGRADED = "degraded"  # well-formed but partly sentinel values
    FAILED = "failed"      # surface projection failed entirely


@dataclass(frozen=True)
class FrameDimsConfig:
    """Configuration for mesh-relative frame dimension computation."""

    edge_strategy: EdgeStrategy = EdgeStrategy.CLOSED_FORM
    obb_mode: ObbMode = ObbMode.AXIS_ALIGNED
    epsilon: float = 1e-5

    # Size sampling casts down from this far above the surface bounds
    sample_height_offset: float = 10.0

    # Radial trace step: fraction of cross-section extent, clamped (metres)
    trace_step_fraction: float = 0.01
    trace_step_min: float = 0.01
    trace_step_max: float = 0.05
    trace_margin_fraction: float = 0.1
    trace_margin_min: float = 0.1

    # Ceiling on provider raycasts per compute() call
    max_raycasts: int = 50000

    require_surface_hits: bool = False
    failure_distance: float = 999.0
    rm_kind: str = "mesh"


@dataclass(frozen=True)
class EdgeDistances:
    """Per-point distances to one edge, keyed by point id."""
    per_point: Dict[str, float] = field(default_factory=dict)

    def minimum(self) -> float:
        if not self.per_point:
            return 0.0
        return min(self.per_point.values())


@dataclass(frozen=True)
class FrameDimsAggregate:
    """Tightest distance per edge across all points."""
    left: float = 0.0
    right: float = 0.0
    near: float = 0.0
    far: float = 0.0
    top: float = 0.0
    bottom: float = 0.0

    @classmethod
    def from_per_edge(cls, per_edge: Mapping[str, EdgeDistances]) -> "FrameDimsAggregate":
        values = {}
        for key in EDGE_KEYS:
            edge = per_edge.get(key)
            values[key] = edge.minimum() if edge is not None else 0.0
        return cls(**values)

    @classmethod
    def uniform(cls, value: float) -> "FrameDimsAggregate":
        return cls(**{key: float(value) for key in EDGE_KEYS})

    def as_dict(self) -> Dict[str, float]:
        return {key: getattr(self, key) for key in EDGE_KEYS}


@dataclass(frozen=True)
class FrameDimsSizes:
    aabb: AABB
    obb: OBB


@dataclass(frozen=True)
class FrameDimsProjected:
    """Sizes of the points projected onto the surface, when available."""
    aabb: Optional[AABB] = None
    obb: Optional[OBB] = None


@dataclass(frozen=True)
class FrameDimsMeta:
    notes: str = ""
    epsilon: float = 1e-5
    status: ResultStatus = ResultStatus.OK
    computed_at_iso: Optional[str] = None


@dataclass(frozen=True)
class FrameAxes:
    """Human-readable meaning of each frame axis."""
    x: str = "left-right"
    y: str = "up-down"
    z: str = "near-far"


@dataclass(frozen=True)
class Plane:
    """Plane ``n . p + d = 0`` with unit normal ``n``."""
    n: Vec3
    d: float

    def distance(self, point: Vec3) -> float:
        """Unsigned distance from *point* to the plane."""
        return abs(
            self.n[0] * point[0] + self.n[1] * point[1] + self.n[2] * point[2] + self.d
        )


@dataclass(frozen=True)
class FrameDimsResult:
    """Complete frame dimensions for one annotation."""

    per_edge: Dict[str, EdgeDistances]
    aggregate: FrameDimsAggregate
    sizes: FrameDimsSizes
    meta: FrameDimsMeta = field(default_factory=FrameDimsMeta)
    version: int = RESULT_VERSION
    units: str = "m"
    fo_axes: FrameAxes = field(default_factory=FrameAxes)
    rm_kind: Optional[str] = "mesh"
    planes: Optional[Dict[str, Plane]] = None
    projected: Optional[FrameDimsProjected] = None

    @property
    def status(self) -> ResultStatus:
        return self.meta.status

    def distance(self, edge: str, point_id: str) -> Optional[float]:
        """Per-point distance for *edge*, or None when not computed."""
        edge_distances = self.per_edge.get(edge)
        if edge_distances is None:
            return None
        return edge_distances.per_point.get(point_id)
