"""
Bounding-volume primitives for frame dimension results.

Provides AABB and OBB value types plus the routines that fit them to a
point sample. Results hold plain float tuples so they compare and
serialize cleanly; the fitting itself is done with numpy.
"""
from dataclasses import dataclass
from enum import Enum
import logging
from typing import Iterable, Sequence, Tuple

import numpy as np

logger = logging.getLogger(__name__)

Vec3 = Tuple[float, float, float]
Mat3 = Tuple[Vec3, Vec3, Vec3]

ZERO3: Vec3 = (0.0, 0.0, 0.0)


class ObbMode(Enum):
    """How OBB orientation axes are chosen."""
    AXIS_ALIGNED = "axis_aligned"  # identity axes, covariance ignored
    PCA = "pca"                    # eigenvectors of the covariance matrix


def as_vec3(values) -> Vec3:
    """Convert any 3-sequence (tuple, list, ndarray) to a float tuple."""
    return (float(values[0]), float(values[1]), float(values[2]))


def identity_axes() -> Mat3:
    return ((1.0, 0.0, 0.0), (0.0, 1.0, 0.0), (0.0, 0.0, 1.0))


@dataclass(frozen=True)
class AABB:
    """Axis-aligned bounding box."""
    min: Vec3
    max: Vec3

    @property
    def dimensions(self) -> Vec3:
        return (
            self.max[0] - self.min[0],
            self.max[1] - self.min[1],
            self.max[2] - self.min[2],
        )

    @classmethod
    def zero(cls) -> "AABB":
        return cls(min=ZERO3, max=ZERO3)


@dataclass(frozen=True)
class OBB:
    """Oriented bounding box.

    ``axes`` holds three column vectors (principal directions) and
    ``extents`` the half-widths along each of them.  ``center`` is the
    sample centroid when fitted from 3+ points, so the box need not
    contain every point of a skewed sample.
    """
    center: Vec3
    axes: Mat3
    extents: Vec3

    @classmethod
    def zero(cls) -> "OBB":
        return cls(center=ZERO3, axes=identity_axes(), extents=ZERO3)


def _stack(points: Iterable[Sequence[float]]) -> np.ndarray:
    arr = np.asarray([as_vec3(p) for p in points], dtype=float)
    return arr.reshape(-1, 3)


def compute_aabb(points: Iterable[Sequence[float]]) -> AABB:
    """Componentwise min/max of *points*.

    An empty sample gives a zero-sized box at the origin.
    """
    arr = _stack(points)
    if len(arr) == 0:
        return AABB.zero()
    return AABB(min=as_vec3(arr.min(axis=0)), max=as_vec3(arr.max(axis=0)))


def compute_obb(
    points: Iterable[Sequence[float]],
    mode: ObbMode = ObbMode.AXIS_ALIGNED,
) -> OBB:
    """Fit an oriented bounding box to *points*.

    With fewer than 3 points the box is the AABB expressed as
    center/half-extents with identity axes.  Otherwise the centroid and
    covariance of the sample are computed; ``ObbMode.AXIS_ALIGNED`` keeps
    identity axes (an axis-aligned approximation centred on the centroid)
    while ``ObbMode.PCA`` orients the box along the covariance
    eigenvectors, largest variance first.

    For 3+ points the center is the centroid and the extents are half the
    range along each axis, so a skewed sample is not necessarily enclosed:
    x in {0, 0, 1} gives center 1/3, extent 1/2, i.e. [-1/6, 5/6].
    """
    arr = _stack(points)
    if len(arr) < 3:
        aabb = compute_aabb(arr)
        lo = np.asarray(aabb.min)
        hi = np.asarray(aabb.max)
        return OBB(
            center=as_vec3((lo + hi) / 2.0),
            axes=identity_axes(),
            extents=as_vec3((hi - lo) / 2.0),
        )

    centroid = arr.mean(axis=0)
    centred = arr - centroid
    cov = centred.T @ centred / float(len(arr))

    if mode == ObbMode.PCA:
        axes = _principal_axes(cov)
    else:
        axes = np.eye(3)

    # columns of `axes` are the box directions
    proj = centred @ axes
    extents = (proj.max(axis=0) - proj.min(axis=0)) / 2.0

    return OBB(
        center=as_vec3(centroid),
        axes=(as_vec3(axes[:, 0]), as_vec3(axes[:, 1]), as_vec3(axes[:, 2])),
        extents=as_vec3(extents),
    )


def _principal_axes(cov: np.ndarray) -> np.ndarray:
    """Eigenvectors of a symmetric 3x3 matrix as columns, descending."""
    try:
        eigvals, eigvecs = np.linalg.eigh(cov)
    except np.linalg.LinAlgError as exc:
        logger.warning("Eigen decomposition failed (%s); using identity axes", exc)
        return np.eye(3)

    if not (np.all(np.isfinite(eigvals)) and np.all(np.isfinite(eigvecs))):
        logger.warning("Non-finite covariance eigensystem; using identity axes")
        return np.eye(3)

    order = np.argsort(eigvals)[::-1]
    return eigvecs[:, order]
