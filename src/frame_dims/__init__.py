"""Public API for mesh-relative frame dimension computation."""

from frame_dims.analytic import HalfCylinder, HalfCylinderSurfaceQuery, half_cylinder_mesh
from frame_dims.contracts import (
    EDGE_KEYS,
    EdgeDistances,
    EdgeStrategy,
    FrameDimsAggregate,
    FrameDimsConfig,
    FrameDimsError,
    FrameDimsResult,
    InvalidDirectionsError,
    Plane,
    PointInputError,
    ResultStatus,
    SerializationError,
    default_directions,
)
from frame_dims.engine import FrameDimsEngine, failure_result, frame_dims_for_persistence
from frame_dims.geometry import AABB, OBB, ObbMode, compute_aabb, compute_obb
from frame_dims.planes import PlaneFrameDimsEngine, default_room_planes, room_planes_from_aabb
from frame_dims.serialization import (
    FRAME_DIMS_KEY,
    MESH_FRAME_DIMS_KEY,
    attach_frame_dims,
    frame_dims_from_props,
    result_from_dict,
    result_to_dict,
)
from frame_dims.surface import SurfaceQuery, TrimeshSurfaceQuery

__all__ = [
    "AABB",
    "EDGE_KEYS",
    "EdgeDistances",
    "EdgeStrategy",
    "FRAME_DIMS_KEY",
    "FrameDimsAggregate",
    "FrameDimsConfig",
    "FrameDimsEngine",
    "FrameDimsError",
    "FrameDimsResult",
    "HalfCylinder",
    "HalfCylinderSurfaceQuery",
    "InvalidDirectionsError",
    "MESH_FRAME_DIMS_KEY",
    "OBB",
    "ObbMode",
    "Plane",
    "PlaneFrameDimsEngine",
    "PointInputError",
    "ResultStatus",
    "SerializationError",
    "SurfaceQuery",
    "TrimeshSurfaceQuery",
    "attach_frame_dims",
    "compute_aabb",
    "compute_obb",
    "default_directions",
    "default_room_planes",
    "failure_result",
    "frame_dims_for_persistence",
    "frame_dims_from_props",
    "half_cylinder_mesh",
    "result_from_dict",
    "result_to_dict",
    "room_planes_from_aabb",
]
