"""
Affine coordinate frames relative to the fixed base frame.

A ``CoordinateSpace`` is an offset plus three orthonormal axis vectors, all
expressed in the base frame.  Axes only ever encode rotation (and axis
inversion); sizes live on ``Volume.corner``, so scaling never deforms a frame.
"""

from __future__ import annotations

import logging
from typing import Sequence, Tuple

import numpy as np

from config import AXES_CLOSE_TOLERANCE
from core.points import (
    BASE_AXES,
    ZERO_POINT,
    Layout,
    View,
    as_axes,
    as_point,
    as_points,
    axes_mult,
    axes_rotate_on_vector,
    is_finite,
    make_orthonormal,
    points_close,
    points_equal,
    view_axes,
)

logger = logging.getLogger(__name__)


class CoordinateSpace:
    """
    Offset + orthonormal axes.

    Every mutator returns True if the frame changed, so owning objects can
    forward change notifications without an observer framework.
    """

    __slots__ = ("_offset", "_axes")

    def __init__(self, offset: Sequence[float] = ZERO_POINT, axes=BASE_AXES) -> None:
        self._offset = as_point(offset)
        self._axes = make_orthonormal(as_axes(axes))

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def offset(self) -> np.ndarray:
        return self._offset.copy()

    @property
    def axes(self) -> np.ndarray:
        return self._axes.copy()

    def get_axis(self, which_axis: int) -> np.ndarray:
        return self._axes[which_axis].copy()

    def __repr__(self) -> str:
        o = self._offset
        return (
            f"CoordinateSpace(offset=({o[0]:.5g}, {o[1]:.5g}, {o[2]:.5g}), "
            f"axes={self._axes.tolist()})"
        )

    # ------------------------------------------------------------------
    # Guards
    # ------------------------------------------------------------------

    def _guard_offset(self) -> None:
        if not is_finite(self._offset):
            logger.warning("Inappropriate offset (possibly malformed import data), resetting to zero")
            self._offset = ZERO_POINT.copy()

    def _guard_axes(self) -> None:
        if not is_finite(self._axes):
            logger.warning("Inappropriate axes after composition, resetting to identity")
            self._axes = BASE_AXES.copy()

    def _hold_fixed(self, center: np.ndarray, local_center: np.ndarray) -> None:
        """Shift the offset so ``local_center`` maps back onto ``center``."""
        self._offset = self._offset + (center - self.s2b(local_center))
        self._guard_offset()

    # ------------------------------------------------------------------
    # Mutators
    # ------------------------------------------------------------------

    def shift(self, shift: Sequence[float]) -> bool:
        delta = as_point(shift)
        if points_equal(delta, ZERO_POINT):
            return False
        self._offset = self._offset + delta
        self._guard_offset()
        return True

    def set_offset(self, new_offset: Sequence[float]) -> bool:
        return self.shift(as_point(new_offset) - self._offset)

    def invert_axis(self, which_axis: int, center_of_inversion: Sequence[float]) -> bool:
        """Negate one axis, keeping ``center_of_inversion`` (base frame) in place."""
        center = as_point(center_of_inversion)
        local_center = self.b2s(center)
        axes = self._axes.copy()
        axes[which_axis] = -axes[which_axis]
        self._axes = axes
        self._guard_axes()
        self._hold_fixed(center, local_center)
        return True

    def rotate_on_vector(self, vector: Sequence[float], theta: float, center_of_rotation: Sequence[float]) -> bool:
        """Rotate all axes by ``theta`` radians about a free ``vector``, holding the center fixed."""
        axis = as_point(vector)
        norm = float(np.linalg.norm(axis))
        if theta == 0.0 or norm == 0.0:
            return False
        center = as_point(center_of_rotation)
        local_center = self.b2s(center)
        self._axes = make_orthonormal(axes_rotate_on_vector(self._axes, axis / norm, theta))
        self._guard_axes()
        self._hold_fixed(center, local_center)
        return True

    def transform(self, transform_space: "CoordinateSpace") -> bool:
        """Compose with another frame: offset += other.offset, axes = other.axes x axes."""
        self._offset = self._offset + transform_space._offset
        self._guard_offset()
        self._axes = make_orthonormal(axes_mult(transform_space._axes, self._axes))
        self._guard_axes()
        return True

    def transform_axes(self, transform_axes, center_of_rotation: Sequence[float]) -> bool:
        center = as_point(center_of_rotation)
        local_center = self.b2s(center)
        self._axes = make_orthonormal(axes_mult(as_axes(transform_axes), self._axes))
        self._guard_axes()
        self._hold_fixed(center, local_center)
        return True

    def set_axes(self, new_axes, center_of_rotation: Sequence[float]) -> bool:
        """Replace the axes by composing with the rotation old -> new."""
        target = as_axes(new_axes)
        if points_equal(target, self._axes):
            return False
        # transpose == inverse for orthonormal axes
        transform_axes = axes_mult(target, self._axes.T)
        return self.transform_axes(transform_axes, center_of_rotation)

    def scale(self, ref_point: Sequence[float], scaling: Sequence[float]) -> bool:
        """
        Move the offset proportionally to its displacement from ``ref_point``.

        The axes are left untouched; objects that carry a size (``Volume``)
        scale it themselves.
        """
        ref = as_point(ref_point)
        factors = as_point(scaling)
        new_offset = ref + factors * (self._offset - ref)
        if points_equal(new_offset, self._offset):
            return False
        self._offset = new_offset
        self._guard_offset()
        return True

    def copy_in_place(self, src_space: "CoordinateSpace") -> bool:
        """Make this frame equal to ``src_space``."""
        if self.equal(src_space):
            return False
        self._offset = src_space._offset.copy()
        self._axes = src_space._axes.copy()
        return True

    def set_view_space(self, view: View, layout: Layout = Layout.LINEAR) -> bool:
        return self.copy_in_place(CoordinateSpace.view_space(view, layout))

    def copy(self) -> "CoordinateSpace":
        new_space = CoordinateSpace.__new__(CoordinateSpace)
        new_space._offset = self._offset.copy()
        new_space._axes = self._axes.copy()
        return new_space

    # ------------------------------------------------------------------
    # Point conversion
    # ------------------------------------------------------------------

    def b2s(self, points) -> np.ndarray:
        """Base frame -> this frame, for one point or stacked points (..., 3)."""
        p = as_points(points)
        # transpose(A) == inv(A) as A is orthogonal
        return (p - self._offset) @ self._axes.T

    def s2b(self, points) -> np.ndarray:
        """This frame -> base frame, for one point or stacked points (..., 3)."""
        p = as_points(points)
        return p @ self._axes + self._offset

    def s2s(self, out_space: "CoordinateSpace", points) -> np.ndarray:
        """This frame -> ``out_space``, folded into one affine map."""
        p = as_points(points)
        rotation = self._axes @ out_space._axes.T
        translation = (self._offset - out_space._offset) @ out_space._axes.T
        return p @ rotation + translation

    def s2b_dim(self, dim: Sequence[float]) -> np.ndarray:
        """Convert a non-negative size from this frame to the base frame."""
        d = np.abs(as_point(dim))
        # each positive unit displacement transforms independently, signs dropped
        return np.sum(np.abs(np.diag(d) @ self._axes), axis=0)

    def b2s_dim(self, dim: Sequence[float]) -> np.ndarray:
        """Convert a non-negative size from the base frame to this frame."""
        d = np.abs(as_point(dim))
        return np.sum(np.abs(np.diag(d) @ self._axes.T), axis=0)

    # ------------------------------------------------------------------
    # Comparison
    # ------------------------------------------------------------------

    def axes_equal(self, other: "CoordinateSpace") -> bool:
        return points_equal(self._axes, other._axes)

    def axes_close(self, other: "CoordinateSpace", tol: float = AXES_CLOSE_TOLERANCE) -> bool:
        return points_close(self._axes, other._axes, tol)

    def equal(self, other: "CoordinateSpace") -> bool:
        if not points_equal(self._offset, other._offset):
            return False
        return self.axes_equal(other)

    def close(self, other: "CoordinateSpace", tol: float = AXES_CLOSE_TOLERANCE) -> bool:
        return points_close(self._offset, other._offset, tol) and self.axes_close(other, tol)

    def __eq__(self, other) -> bool:
        if not isinstance(other, CoordinateSpace):
            return NotImplemented
        return self.equal(other)

    __hash__ = None  # mutable

    # ------------------------------------------------------------------
    # Derived geometry
    # ------------------------------------------------------------------

    def get_enclosing_corners(
        self,
        in_corners: Tuple[np.ndarray, np.ndarray],
        out_space: "CoordinateSpace",
    ) -> Tuple[np.ndarray, np.ndarray]:
        """
        Axis-aligned box in ``out_space`` enclosing the box ``in_corners`` of this frame.

        ``in_corners`` must be ordered (corner[0] <= corner[1] componentwise).
        """
        c0 = as_point(in_corners[0])
        c1 = as_point(in_corners[1])
        selector = np.array([[(i >> axis) & 1 for axis in range(3)] for i in range(8)], dtype=bool)
        box = np.where(selector, c1, c0)
        transformed = self.s2s(out_space, box)
        return transformed.min(axis=0), transformed.max(axis=0)

    @staticmethod
    def view_space(view: View, layout: Layout = Layout.LINEAR) -> "CoordinateSpace":
        """Frame used to display a transverse/coronal/sagittal slice."""
        return CoordinateSpace(axes=view_axes(view, layout))

    @staticmethod
    def calculate_transform(dest_space: "CoordinateSpace", src_space: "CoordinateSpace") -> "CoordinateSpace":
        """
        Frame ``T`` such that ``src_space.copy().transform(T)`` equals ``dest_space``.
        """
        transform_space = CoordinateSpace.__new__(CoordinateSpace)
        transform_space._offset = dest_space._offset - src_space._offset
        # axes = dest x inv(src); inv == transpose for orthonormal axes
        transform_space._axes = axes_mult(dest_space._axes, src_space._axes.T)
        return transform_space


__all__ = ["CoordinateSpace"]
