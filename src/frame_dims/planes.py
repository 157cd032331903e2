"""
Plane-based frame dimensions.

For rooms and other box-like reference models each edge is a plane, and
a point's edge distance is simply its distance to that plane.  Sizes are
taken from the raw points with a PCA-oriented box, and optionally from
the points projected onto the surface by a vertical raycast.
"""
import logging
from typing import Callable, Dict, Mapping, Optional, Sequence

import numpy as np

from frame_dims.contracts import (
    EDGE_KEYS,
    EdgeDistances,
    FrameDimsAggregate,
    FrameDimsMeta,
    FrameDimsProjected,
    FrameDimsResult,
    FrameDimsSizes,
    Plane,
    ResultStatus,
)
from frame_dims.engine import validate_points, resolve_directions
from frame_dims.geometry import AABB, ObbMode, Vec3, as_vec3, compute_aabb, compute_obb

logger = logging.getLogger(__name__)

VerticalRaycast = Callable[[Vec3], Optional[Vec3]]


def room_planes_from_aabb(
    aabb: AABB,
    directions: Optional[Mapping[str, Sequence[float]]] = None,
) -> Dict[str, Plane]:
    """Inward-facing boundary plane of *aabb* for every edge.

    Each plane passes through the box's furthest extent along the edge
    direction; its normal points back into the box.
    """
    dirs = resolve_directions(directions)
    lo = np.asarray(aabb.min, dtype=float)
    hi = np.asarray(aabb.max, dtype=float)
    planes = {}
    for key in EDGE_KEYS:
        u = dirs[key]
        support = float(np.sum(np.maximum(u * lo, u * hi)))
        planes[key] = Plane(n=as_vec3(-u), d=support)
    return planes


def default_room_planes() -> Dict[str, Plane]:
    """Planes of a 3 m wide, 2.5 m tall, 4 m deep room centred at the origin."""
    return room_planes_from_aabb(AABB(min=(-1.5, -1.25, -2.0), max=(1.5, 1.25, 2.0)))


class PlaneFrameDimsEngine:
    """Frame dimensions as point-to-plane distances."""

    def __init__(self, obb_mode: ObbMode = ObbMode.PCA, epsilon: float = 1e-5):
        self.obb_mode = obb_mode
        self.epsilon = epsilon

    def compute(
        self,
        points: Mapping[str, Sequence[float]],
        planes: Mapping[str, Plane],
        vertical_raycast: Optional[VerticalRaycast] = None,
        computed_at_iso: Optional[str] = None,
    ) -> FrameDimsResult:
        """Distances from every point to every supplied edge plane.

        Edges without a plane get an empty distance map (aggregate 0.0).
        When *vertical_raycast* is given, the points it projects onto the
        surface are boxed into ``projected``.
        """
        pts = {pid: as_vec3(p) for pid, p in validate_points(points).items()}

        per_edge = {}
        for key in EDGE_KEYS:
            plane = planes.get(key)
            if plane is None:
                per_edge[key] = EdgeDistances({})
                continue
            per_edge[key] = EdgeDistances({pid: plane.distance(p) for pid, p in pts.items()})

        raw = list(pts.values())
        sizes = FrameDimsSizes(aabb=compute_aabb(raw), obb=compute_obb(raw, self.obb_mode))

        projected = None
        status = ResultStatus.OK if pts else ResultStatus.DEGRADED
        if vertical_raycast is not None:
            hits = [as_vec3(h) for h in (vertical_raycast(p) for p in raw) if h is not None]
            if hits:
                projected = FrameDimsProjected(
                    aabb=compute_aabb(hits),
                    obb=compute_obb(hits, self.obb_mode),
                )
            else:
                logger.warning("Vertical raycast projected none of %d points", len(raw))
                projected = FrameDimsProjected(aabb=None, obb=None)

        return FrameDimsResult(
            per_edge=per_edge,
            aggregate=FrameDimsAggregate.from_per_edge(per_edge),
            sizes=sizes,
            meta=FrameDimsMeta(
                notes=f"Computed from {len(pts)} points in FrameOrigin coordinates",
                epsilon=self.epsilon,
                status=status,
                computed_at_iso=computed_at_iso,
            ),
            rm_kind="room",
            planes=dict(planes),
            projected=projected,
        )
