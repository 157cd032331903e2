"""
Surface query interface used by the frame dimension engine.

The engine only sees surface bounds and two raycasts, so any backend that
can answer those (a captured scan, a reference model, a closed-form shape)
can be plugged in.  ``TrimeshSurfaceQuery`` is the production adapter over
a triangle mesh.
"""
import logging
from abc import ABC, abstractmethod
from typing import Optional, Sequence

import numpy as np
import trimesh
from trimesh.ray.ray_triangle import RayMeshIntersector

from frame_dims.geometry import Vec3, as_vec3

logger = logging.getLogger(__name__)

DOWN: Vec3 = (0.0, -1.0, 0.0)
DEFAULT_MAX_DISTANCE = 1000.0

_DIRECTION_EPS = 1e-12


def normalize_direction(direction: Sequence[float]) -> Optional[np.ndarray]:
    """Unit vector along *direction*, or None for a zero/non-finite vector."""
    vec = np.asarray(as_vec3(direction), dtype=float)
    norm = float(np.linalg.norm(vec))
    if not np.isfinite(norm) or norm < _DIRECTION_EPS:
        return None
    return vec / norm


class SurfaceQuery(ABC):
    """Abstract queryable surface.

    Implementations must:
    - report bounds with ``bounds_max >= bounds_min`` componentwise,
      in the same frame as the points handed to the engine
    - return the nearest hit (or None) for a ray, never raising on a miss
    - normalise ray directions internally
    """

    max_distance: float = DEFAULT_MAX_DISTANCE

    @property
    @abstractmethod
    def bounds_min(self) -> Vec3:
        """Minimum corner of the surface's axis-aligned bounds."""
        ...

    @property
    @abstractmethod
    def bounds_max(self) -> Vec3:
        """Maximum corner of the surface's axis-aligned bounds."""
        ...

    @abstractmethod
    def raycast(self, origin: Sequence[float], direction: Sequence[float]) -> Optional[Vec3]:
        """Nearest surface hit along *direction* from *origin*.

        Args:
            origin: Ray start point.
            direction: Ray direction; need not be normalised.

        Returns:
            Hit point within ``max_distance``, or None on a miss.
        """
        ...

    def raycast_down(self, origin: Sequence[float]) -> Optional[Vec3]:
        """Nearest hit straight down (-Y) from *origin*."""
        return self.raycast(origin, DOWN)


class TrimeshSurfaceQuery(SurfaceQuery):
    """Surface query backed by a ``trimesh.Trimesh``.

    The mesh is a caller-owned handle and is never modified.  Raycasts use
    trimesh's pure-numpy triangle intersector (rtree accelerated) so
    results do not depend on whether embree is installed.

    Thread confinement: the intersector builds its spatial index lazily on
    first use.  Issue one raycast before sharing an instance across worker
    threads, or give each worker its own adapter.
    """

    def __init__(self, mesh: trimesh.Trimesh, max_distance: float = DEFAULT_MAX_DISTANCE):
        if len(mesh.faces) == 0:
            logger.warning("TrimeshSurfaceQuery created over a mesh with no faces")
        self.mesh = mesh
        self.max_distance = float(max_distance)
        self._intersector = RayMeshIntersector(mesh)

        bounds = np.asarray(mesh.bounds, dtype=float) if len(mesh.vertices) else np.zeros((2, 3))
        self._bounds_min = as_vec3(bounds[0])
        self._bounds_max = as_vec3(bounds[1])

    @classmethod
    def from_file(cls, filepath: str, max_distance: float = DEFAULT_MAX_DISTANCE) -> "TrimeshSurfaceQuery":
        """Load a mesh file (STL, OBJ, GLB, PLY) as a surface query.

        Scenes are flattened with their transforms applied so the geometry
        matches what a viewer shows.
        """
        scene_or_mesh = trimesh.load(filepath)
        if isinstance(scene_or_mesh, trimesh.Scene):
            mesh = scene_or_mesh.to_mesh()
        else:
            mesh = scene_or_mesh
        logger.info(
            "Loaded surface %s: %d faces, bounds %s",
            filepath, len(mesh.faces), np.round(mesh.bounds, 4).tolist(),
        )
        return cls(mesh, max_distance=max_distance)

    @property
    def bounds_min(self) -> Vec3:
        return self._bounds_min

    @property
    def bounds_max(self) -> Vec3:
        return self._bounds_max

    def raycast(self, origin: Sequence[float], direction: Sequence[float]) -> Optional[Vec3]:
        unit = normalize_direction(direction)
        if unit is None:
            return None
        start = np.asarray(as_vec3(origin), dtype=float)

        try:
            locations, _ray_idx, _tri_idx = self._intersector.intersects_location(
                ray_origins=start.reshape(1, 3),
                ray_directions=unit.reshape(1, 3),
                multiple_hits=True,
            )
        except Exception as exc:
            logger.warning("Raycast from %s failed: %s", start.tolist(), exc)
            return None

        if len(locations) == 0:
            return None

        # distance along the ray; drop anything behind the origin or too far
        t = (np.asarray(locations, dtype=float) - start) @ unit
        valid = (t >= -1e-9) & (t <= self.max_distance)
        if not np.any(valid):
            return None
        idx = np.flatnonzero(valid)[int(np.argmin(t[valid]))]
        return as_vec3(locations[idx])
