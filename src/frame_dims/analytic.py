"""
Closed-form reference surfaces for verifying the frame dimension engine.

``HalfCylinder`` is a trough open upward (a half-pipe) extruded along Z.
It answers raycasts exactly, so engine output can be compared with arc
lengths computed by hand, and it can also be triangulated into a trimesh
for testing the mesh-backed adapter against the same ground truth.
"""
import math
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

import numpy as np
import trimesh

from frame_dims.geometry import Vec3, as_vec3
from frame_dims.surface import DEFAULT_MAX_DISTANCE, SurfaceQuery, normalize_direction

_TOL = 1e-6


@dataclass(frozen=True)
class HalfCylinder:
    """Half-pipe of radius ``radius``, axis along Z.

    The curved surface is ``x = cx + R sin(theta)``,
    ``y = y_min + R - R cos(theta)`` for ``theta`` in [-pi/2, pi/2], so the
    lowest point sits at ``y_min`` and the rims at ``y_min + R``.
    """
    radius: float = 1.0
    z_min: float = -1.0
    z_max: float = 1.0
    y_min: float = 0.0
    center_x: float = 0.0

    @property
    def axis_y(self) -> float:
        return self.y_min + self.radius

    @property
    def bounds(self) -> Tuple[Vec3, Vec3]:
        r = self.radius
        return (
            (self.center_x - r, self.y_min, self.z_min),
            (self.center_x + r, self.y_min + r, self.z_max),
        )

    def surface_y(self, x: float) -> Optional[float]:
        """Surface height at *x*, or None outside the trough."""
        dx = x - self.center_x
        r2 = self.radius * self.radius
        if dx * dx > r2:
            return None
        return self.axis_y - math.sqrt(max(0.0, r2 - dx * dx))

    def point_at(self, theta: float, z: float = 0.0) -> Vec3:
        r = self.radius
        return (
            self.center_x + r * math.sin(theta),
            self.y_min + r - r * math.cos(theta),
            float(z),
        )

    def analytic_left_right(self, theta: float) -> Tuple[float, float]:
        """Arc lengths from angle *theta* to the two rims."""
        left = (0.5 * math.pi - theta) * self.radius
        right = (0.5 * math.pi + theta) * self.radius
        return left, right

    def analytic_near_far(self, point: Sequence[float]) -> Tuple[float, float]:
        z = float(point[2])
        return z - self.z_min, self.z_max - z


class HalfCylinderSurfaceQuery(SurfaceQuery):
    """Exact raycasts against a ``HalfCylinder``."""

    def __init__(self, shape: HalfCylinder, max_distance: float = DEFAULT_MAX_DISTANCE):
        self.shape = shape
        self.max_distance = float(max_distance)

    @property
    def bounds_min(self) -> Vec3:
        return self.shape.bounds[0]

    @property
    def bounds_max(self) -> Vec3:
        return self.shape.bounds[1]

    def raycast(self, origin: Sequence[float], direction: Sequence[float]) -> Optional[Vec3]:
        unit = normalize_direction(direction)
        if unit is None:
            return None
        shape = self.shape
        o = np.asarray(as_vec3(origin), dtype=float)

        # Solve |(o + t*d) - axis|^2 = R^2 in the XY cross-section
        ox = o[0] - shape.center_x
        oy = o[1] - shape.axis_y
        dx, dy = unit[0], unit[1]
        a = dx * dx + dy * dy
        if a < 1e-12:
            return None  # parallel to the cylinder axis
        b = 2.0 * (ox * dx + oy * dy)
        c = ox * ox + oy * oy - shape.radius * shape.radius
        disc = b * b - 4.0 * a * c
        if disc < 0.0:
            return None

        sqrt_disc = math.sqrt(disc)
        for t in sorted(((-b - sqrt_disc) / (2.0 * a), (-b + sqrt_disc) / (2.0 * a))):
            if t < -_TOL or t > self.max_distance:
                continue
            hit = o + t * unit
            # only the lower half of the circle exists
            if hit[1] > shape.axis_y + _TOL:
                continue
            if hit[2] < shape.z_min - _TOL or hit[2] > shape.z_max + _TOL:
                continue
            return as_vec3(hit)
        return None


def half_cylinder_mesh(shape: HalfCylinder, segments: int = 128) -> trimesh.Trimesh:
    """Triangulate *shape* into an open trimesh surface."""
    segments = max(2, int(segments))
    thetas = np.linspace(-0.5 * math.pi, 0.5 * math.pi, segments + 1)

    vertices = []
    for theta in thetas:
        x, y, _ = shape.point_at(float(theta))
        vertices.append([x, y, shape.z_min])
        vertices.append([x, y, shape.z_max])

    faces = []
    for i in range(segments):
        a, b = 2 * i, 2 * i + 1
        c, d = 2 * i + 2, 2 * i + 3
        faces.append([a, b, c])
        faces.append([b, d, c])

    return trimesh.Trimesh(
        vertices=np.asarray(vertices, dtype=float),
        faces=np.asarray(faces, dtype=np.int64),
        process=False,
    )
