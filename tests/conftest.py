"""
Shared test fixtures for frame dimension tests.
"""
import sys
from pathlib import Path

import pytest
import trimesh

# Add src/ to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from frame_dims.analytic import HalfCylinder, HalfCylinderSurfaceQuery, half_cylinder_mesh
from frame_dims.harness import AlwaysMissQuery
from frame_dims.surface import TrimeshSurfaceQuery


class BoxBoundsQuery(AlwaysMissQuery):
    """Fixed bounds; raycasts hit a horizontal floor at ``floor_y``."""

    def __init__(self, bounds_min, bounds_max, floor_y=0.0):
        super().__init__(bounds_min, bounds_max)
        self.floor_y = floor_y
        self.calls = 0

    def raycast(self, origin, direction):
        self.calls += 1
        if direction[1] >= 0 or origin[1] < self.floor_y:
            return None
        lo, hi = self.bounds_min, self.bounds_max
        if not (lo[0] <= origin[0] <= hi[0] and lo[2] <= origin[2] <= hi[2]):
            return None
        return (float(origin[0]), float(self.floor_y), float(origin[2]))


@pytest.fixture
def half_cylinder():
    """Unit half-pipe: R=1, z in [-1, 1], lowest point at y=0."""
    return HalfCylinder(radius=1.0, z_min=-1.0, z_max=1.0, y_min=0.0)


@pytest.fixture
def half_cylinder_query(half_cylinder):
    return HalfCylinderSurfaceQuery(half_cylinder)


@pytest.fixture
def half_cylinder_trimesh(half_cylinder):
    """Triangulated copy of the unit half-pipe (256 segments)."""
    return half_cylinder_mesh(half_cylinder, segments=256)


@pytest.fixture
def half_cylinder_mesh_query(half_cylinder_trimesh):
    return TrimeshSurfaceQuery(half_cylinder_trimesh)


@pytest.fixture
def half_cylinder_mesh_file(half_cylinder_trimesh, tmp_path):
    path = tmp_path / "half_cylinder.stl"
    half_cylinder_trimesh.export(str(path))
    return str(path)


@pytest.fixture
def box_query():
    """Bounds (-5,-1,-5)..(5,1,5) with a floor at y=0."""
    return BoxBoundsQuery((-5.0, -1.0, -5.0), (5.0, 1.0, 5.0), floor_y=0.0)


@pytest.fixture
def always_miss_query():
    return AlwaysMissQuery((-5.0, -1.0, -5.0), (5.0, 1.0, 5.0))


@pytest.fixture
def unit_square_points():
    """Four corners of a unit square on the floor."""
    return {
        "p1": (-0.5, 0.0, 0.0),
        "p2": (0.5, 0.0, 0.0),
        "p3": (0.5, 0.0, 1.0),
        "p4": (-0.5, 0.0, 1.0),
    }


@pytest.fixture
def floor_plate_mesh():
    """A 2x2 m floor plate at y=0 (thin box, top face at y=0)."""
    mesh = trimesh.creation.box(extents=[2.0, 0.02, 2.0])
    mesh.apply_translation([0.0, -0.01, 0.0])
    return mesh
