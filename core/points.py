"""
Point, axes and closed-form shape primitives.

Convention:
- Points/vectors are float64 arrays in (x, y, z) order
- Axes are (3, 3) arrays whose rows are the X, Y, Z unit vectors
- Shape predicates operate in the shape's own frame and accept stacked
  points of shape (..., 3)
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Sequence

import numpy as np

logger = logging.getLogger(__name__)

AXIS_X, AXIS_Y, AXIS_Z = 0, 1, 2
AXIS_NAMES = ("x", "y", "z")

BASE_AXES = np.eye(3, dtype=np.float64)
ZERO_POINT = np.zeros(3, dtype=np.float64)
ONE_POINT = np.ones(3, dtype=np.float64)

for _constant in (BASE_AXES, ZERO_POINT, ONE_POINT):
    _constant.flags.writeable = False
del _constant


class View(Enum):
    TRANSVERSE = "transverse"
    CORONAL = "coronal"
    SAGITTAL = "sagittal"


class Layout(Enum):
    LINEAR = "linear"
    ORTHOGONAL = "orthogonal"


def as_point(p: Sequence[float]) -> np.ndarray:
    """Coerce a 3-sequence into a fresh float64 point."""
    arr = np.array(p, dtype=np.float64)
    if arr.shape != (3,):
        raise ValueError(f"Expected a 3-component point, got shape={arr.shape}")
    return arr


def as_points(p) -> np.ndarray:
    """Coerce stacked points (..., 3) into float64 without copying when possible."""
    arr = np.asarray(p, dtype=np.float64)
    if arr.shape[-1:] != (3,):
        raise ValueError(f"Expected points with trailing dimension 3, got shape={arr.shape}")
    return arr


def as_axes(axes) -> np.ndarray:
    arr = np.array(axes, dtype=np.float64)
    if arr.shape != (3, 3):
        raise ValueError(f"Expected (3, 3) axes, got shape={arr.shape}")
    return arr


def is_finite(values: np.ndarray) -> bool:
    return bool(np.all(np.isfinite(values)))


def points_equal(p1, p2) -> bool:
    return bool(np.array_equal(np.asarray(p1, dtype=np.float64), np.asarray(p2, dtype=np.float64)))


def points_close(p1, p2, tol: float) -> bool:
    return bool(np.allclose(p1, p2, rtol=0.0, atol=tol))


# ---------------------------------------------------------------------------
# Axes algebra
# ---------------------------------------------------------------------------

def axes_mult(axes1: np.ndarray, axes2: np.ndarray) -> np.ndarray:
    """
    Compose two axis sets: the result is axes1 x axes2 in column-vector form.

    With rows as basis vectors this is ``axes2 @ axes1``.
    """
    return np.asarray(axes2, dtype=np.float64) @ np.asarray(axes1, dtype=np.float64)


def make_orthonormal(axes: np.ndarray) -> np.ndarray:
    """
    Gram-Schmidt the axes (X kept, Y then Z corrected) and normalize.

    Returns the identity if the result is not finite.
    """
    x = np.array(axes[AXIS_X], dtype=np.float64)
    y = np.array(axes[AXIS_Y], dtype=np.float64)
    z = np.array(axes[AXIS_Z], dtype=np.float64)

    with np.errstate(divide="ignore", invalid="ignore"):
        y = y - (np.dot(x, y) / np.dot(x, x)) * x
        z = z - (np.dot(x, z) / np.dot(x, x)) * x
        z = z - (np.dot(y, z) / np.dot(y, y)) * y

        result = np.vstack((
            x / np.linalg.norm(x),
            y / np.linalg.norm(y),
            z / np.linalg.norm(z),
        ))

    if not is_finite(result):
        logger.warning("Inappropriate axes (division by zero?), resetting to identity")
        return BASE_AXES.copy()
    return result


def rotation_matrix(vector: Sequence[float], theta: float) -> np.ndarray:
    """Rotation by ``theta`` radians about the (unit) ``vector``."""
    vx, vy, vz = (float(vector[0]), float(vector[1]), float(vector[2]))
    c = np.cos(theta)
    s = np.sin(theta)
    t = 1.0 - c
    return np.array([
        [vx * vx + c * (1.0 - vx * vx), vx * vy * t - vz * s, vz * vx * t + vy * s],
        [vx * vy * t + vz * s, vy * vy + c * (1.0 - vy * vy), vy * vz * t - vx * s],
        [vz * vx * t - vy * s, vy * vz * t + vx * s, vz * vz + c * (1.0 - vz * vz)],
    ], dtype=np.float64)


def rotate_on_vector(points, vector: Sequence[float], theta: float) -> np.ndarray:
    """Rotate one point or stacked points (rows) about ``vector``."""
    return as_points(points) @ rotation_matrix(vector, theta).T


def axes_rotate_on_vector(axes: np.ndarray, vector: Sequence[float], theta: float) -> np.ndarray:
    return rotate_on_vector(axes, vector, theta)


def orthogonal_axis(axes: np.ndarray, view: View, layout: Layout, which_axis: int) -> np.ndarray:
    """
    Axis vector of ``axes`` that plays the role of ``which_axis`` in a display view.
    """
    if view == View.CORONAL:
        if which_axis == AXIS_X:
            return axes[AXIS_X].copy()
        if which_axis == AXIS_Y:
            return -axes[AXIS_Z]
        return axes[AXIS_Y].copy()
    if view == View.SAGITTAL:
        if which_axis == AXIS_X:
            return axes[AXIS_Z].copy() if layout == Layout.ORTHOGONAL else axes[AXIS_Y].copy()
        if which_axis == AXIS_Y:
            return axes[AXIS_Y].copy() if layout == Layout.ORTHOGONAL else -axes[AXIS_Z]
        return axes[AXIS_X].copy()
    return axes[which_axis].copy()


def view_axes(view: View, layout: Layout = Layout.LINEAR) -> np.ndarray:
    axes = np.vstack([orthogonal_axis(BASE_AXES, view, layout, i) for i in range(3)])
    return make_orthonormal(axes)


# ---------------------------------------------------------------------------
# Closed-form shape predicates (shape frame, near corner at origin)
# ---------------------------------------------------------------------------

def point_in_box(points, box_corner: Sequence[float]) -> np.ndarray:
    p = as_points(points)
    corner = np.asarray(box_corner, dtype=np.float64)
    return np.all((p >= 0.0) & (p <= corner), axis=-1)


def point_in_elliptic_cylinder(points, center, height: float, radius) -> np.ndarray:
    """
    Cylinder aligned with the frame's z axis; radius[2] is unused.
    """
    p = as_points(points)
    dx = p[..., 0] - center[0]
    dy = p[..., 1] - center[1]
    with np.errstate(divide="ignore", invalid="ignore"):
        radial = (dx * dx) / (radius[0] * radius[0]) + (dy * dy) / (radius[1] * radius[1])
    half = height / 2.0
    return (radial <= 1.0) & (p[..., 2] >= center[2] - half) & (p[..., 2] <= center[2] + half)


def point_in_ellipsoid(points, center, radius) -> np.ndarray:
    p = as_points(points)
    diff = p - np.asarray(center, dtype=np.float64)
    r = np.asarray(radius, dtype=np.float64)
    with np.errstate(divide="ignore", invalid="ignore"):
        total = np.sum((diff * diff) / (r * r), axis=-1)
    return total <= 1.0


__all__ = [
    "AXIS_X", "AXIS_Y", "AXIS_Z", "AXIS_NAMES",
    "BASE_AXES", "ZERO_POINT", "ONE_POINT",
    "View", "Layout",
    "as_point", "as_points", "as_axes", "is_finite", "points_equal", "points_close",
    "axes_mult", "make_orthonormal", "rotation_matrix", "rotate_on_vector",
    "axes_rotate_on_vector", "orthogonal_axis", "view_axes",
    "point_in_box", "point_in_elliptic_cylinder", "point_in_ellipsoid",
]
