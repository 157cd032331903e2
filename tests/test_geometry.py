"""Tests for bounding-volume primitives."""
import numpy as np
import pytest

from frame_dims.geometry import (
    AABB,
    OBB,
    ObbMode,
    compute_aabb,
    compute_obb,
    identity_axes,
)


class TestComputeAABB:
    """Componentwise extremes of a point sample."""

    def test_extremes(self):
        aabb = compute_aabb([(1, 2, 3), (-1, 5, 0), (0, -2, 7)])
        assert aabb.min == (-1.0, -2.0, 0.0)
        assert aabb.max == (1.0, 5.0, 7.0)
        assert aabb.dimensions == (2.0, 7.0, 7.0)

    def test_empty_is_zero_box(self):
        aabb = compute_aabb([])
        assert aabb == AABB.zero()
        assert aabb.min == (0.0, 0.0, 0.0)
        assert aabb.max == (0.0, 0.0, 0.0)

    def test_single_point(self):
        aabb = compute_aabb([np.array([0.5, 0.25, -1.0])])
        assert aabb.min == aabb.max == (0.5, 0.25, -1.0)

    def test_values_are_plain_floats(self):
        aabb = compute_aabb(np.array([[1, 2, 3], [4, 5, 6]]))
        assert all(type(v) is float for v in aabb.min + aabb.max)


class TestComputeOBB:
    """Oriented bounding boxes in both axis modes."""

    def test_fewer_than_three_points_uses_aabb(self):
        obb = compute_obb([(0, 0, 0), (2, 4, 6)])
        assert obb.center == (1.0, 2.0, 3.0)
        assert obb.extents == (1.0, 2.0, 3.0)
        assert obb.axes == identity_axes()

    def test_empty_is_zero(self):
        obb = compute_obb([])
        assert obb == OBB.zero()

    def test_axis_aligned_mode_keeps_identity_axes(self):
        points = [(0, 0, 0), (2, 0, 0), (2, 0, 1), (0, 0, 1)]
        obb = compute_obb(points, ObbMode.AXIS_ALIGNED)
        assert obb.axes == identity_axes()
        assert obb.center == pytest.approx((1.0, 0.0, 0.5))
        assert obb.extents == pytest.approx((1.0, 0.0, 0.5))

    def test_axis_aligned_center_is_centroid(self):
        # Centroid differs from the AABB midpoint for uneven samples
        points = [(0, 0, 0), (0, 0, 0), (3, 0, 0)]
        obb = compute_obb(points)
        assert obb.center == pytest.approx((1.0, 0.0, 0.0))
        assert obb.extents == pytest.approx((1.5, 0.0, 0.0))

    def test_pca_aligns_with_diagonal_strip(self):
        # Points along the XZ diagonal: principal axis is (1, 0, 1)/sqrt(2)
        t = np.linspace(-1.0, 1.0, 11)
        points = [(x, 0.0, x) for x in t] + [(0.05, 0.0, -0.05), (-0.05, 0.0, 0.05)]
        obb = compute_obb(points, ObbMode.PCA)
        major = np.asarray(obb.axes[0])
        assert abs(float(np.dot(major, [1.0, 0.0, 1.0]))) / np.sqrt(2.0) == pytest.approx(1.0, abs=1e-6)
        assert obb.extents[0] == pytest.approx(np.sqrt(2.0), abs=1e-6)

    def test_pca_axes_are_orthonormal(self):
        rng = np.random.default_rng(7)
        points = rng.normal(size=(50, 3)) * [3.0, 1.0, 0.2]
        obb = compute_obb(points, ObbMode.PCA)
        axes = np.asarray(obb.axes).T
        assert axes.T @ axes == pytest.approx(np.eye(3), abs=1e-9)

    def test_pca_extents_sorted_by_variance(self):
        rng = np.random.default_rng(3)
        points = rng.uniform(-1, 1, size=(200, 3)) * [0.1, 5.0, 1.0]
        obb = compute_obb(points, ObbMode.PCA)
        assert obb.extents[0] > obb.extents[1] > obb.extents[2]

    def test_skewed_sample_not_enclosed(self):
        # centroid center with half-range extents leaves the far point outside
        obb = compute_obb([(0, 0, 0), (0, 0, 0), (1, 0, 0)])
        lo = obb.center[0] - obb.extents[0]
        hi = obb.center[0] + obb.extents[0]
        assert lo == pytest.approx(-1.0 / 6.0)
        assert hi == pytest.approx(5.0 / 6.0)
        assert hi < 1.0
