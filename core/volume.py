"""
Axis-aligned boxes carried by a coordinate frame.

A ``Volume`` owns a ``CoordinateSpace`` and a far corner; the near corner is
always the frame origin.  ``valid`` tells whether the corner describes a real
box yet.
"""

from __future__ import annotations

import math
from typing import Iterable, Optional, Sequence, Tuple

import numpy as np

from config import REAL_EQUAL_TOLERANCE
from core.points import ZERO_POINT, as_point, points_equal
from core.space import CoordinateSpace

Corners = Tuple[np.ndarray, np.ndarray]


class Volume:
    """Coordinate frame + non-negative far corner."""

    def __init__(
        self,
        space: Optional[CoordinateSpace] = None,
        corner: Optional[Sequence[float]] = None,
    ) -> None:
        self.space = space if space is not None else CoordinateSpace()
        self._corner = ZERO_POINT.copy()
        self._valid = False
        if corner is not None:
            self.set_corner(corner)

    @property
    def corner(self) -> np.ndarray:
        return self._corner.copy()

    @property
    def valid(self) -> bool:
        return self._valid

    def __repr__(self) -> str:
        c = self._corner
        return f"Volume(corner=({c[0]:.5g}, {c[1]:.5g}, {c[2]:.5g}), valid={self._valid}, space={self.space!r})"

    # ------------------------------------------------------------------
    # Mutators
    # ------------------------------------------------------------------

    def set_corner(self, corner: Sequence[float]) -> bool:
        new_corner = as_point(corner)
        if np.any(new_corner < 0.0):
            raise ValueError(f"Volume corner components must be non-negative, got {new_corner.tolist()}")
        if self._valid and points_equal(new_corner, self._corner):
            return False
        self._corner = new_corner
        self._valid = True
        return True

    def set_z_corner(self, z: float) -> bool:
        if not self._valid:
            return False
        corner = self._corner.copy()
        corner[2] = float(z)
        return self.set_corner(corner)

    def invalidate(self) -> bool:
        if not self._valid:
            return False
        self._valid = False
        return True

    def set_center(self, new_center: Sequence[float]) -> bool:
        """Move the volume so its center lands on ``new_center`` (base frame)."""
        center = self.get_center()
        if center is None:
            return False
        return self.space.shift(as_point(new_center) - center)

    def scale(self, ref_point: Sequence[float], scaling: Sequence[float]) -> bool:
        """
        Scale around ``ref_point`` (base frame): the offset moves and the corner
        stretches by ``scaling`` relative to the reference point.
        """
        factors = as_point(scaling)
        if np.any(factors < 0.0):
            raise ValueError(f"Scaling factors must be non-negative, got {factors.tolist()}")
        ref = as_point(ref_point)

        far_corner = None
        if self._valid:
            far_corner = ref + factors * (self.space.s2b(self._corner) - ref)

        changed = self.space.scale(ref, factors)
        if far_corner is not None:
            new_corner = np.maximum(self.space.b2s(far_corner), 0.0)
            changed = self.set_corner(new_corner) or changed
        return changed

    def copy(self) -> "Volume":
        new_volume = Volume(self.space.copy())
        new_volume._corner = self._corner.copy()
        new_volume._valid = self._valid
        return new_volume

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_corners(self) -> Corners:
        """Near and far corner in the volume's own frame."""
        return ZERO_POINT.copy(), self._corner.copy()

    def get_center(self) -> Optional[np.ndarray]:
        """Box midpoint in the base frame, or None if the volume is not valid."""
        if not self._valid:
            return None
        return self.space.s2b(0.5 * self._corner)

    def get_enclosing_corners(self, space: CoordinateSpace) -> Optional[Corners]:
        """
        Corners, in ``space``, of the axis-aligned box enclosing this volume.
        """
        if not self._valid:
            return None
        return self.space.get_enclosing_corners(self.get_corners(), space)


def _real_equal(a: float, b: float) -> bool:
    return math.isclose(a, b, rel_tol=REAL_EQUAL_TOLERANCE, abs_tol=REAL_EQUAL_TOLERANCE)


def volume_intersection_corners(volume1: Volume, volume2: Volume) -> Optional[Corners]:
    """
    Box (in volume1's frame) enclosing the intersection of the two volumes.

    Returns None if either volume is invalid or the intersection is degenerate.
    """
    if not (volume1.valid and volume2.valid):
        return None

    enclosing = volume2.get_enclosing_corners(volume1.space)
    corner = volume1.corner
    c0 = np.clip(enclosing[0], 0.0, corner)
    c1 = np.clip(enclosing[1], 0.0, corner)

    for axis in range(3):
        if _real_equal(float(c0[axis]), float(c1[axis])):
            return None
    return c0, c1


def volumes_get_enclosing_corners(volumes: Iterable[Volume], space: CoordinateSpace) -> Optional[Corners]:
    """Box in ``space`` enclosing every valid volume, or None when there are none."""
    lo = hi = None
    for volume in volumes:
        corners = volume.get_enclosing_corners(space)
        if corners is None:
            continue
        if lo is None:
            lo, hi = corners
        else:
            lo = np.minimum(lo, corners[0])
            hi = np.maximum(hi, corners[1])
    if lo is None:
        return None
    return lo, hi


def volumes_get_max_size(volumes: Iterable[Volume]) -> float:
    """Largest corner component over the valid volumes, -1.0 if none."""
    max_size = -1.0
    for volume in volumes:
        if volume.valid:
            max_size = max(max_size, float(np.max(volume.corner)))
    return max_size


__all__ = [
    "Corners",
    "Volume",
    "volume_intersection_corners",
    "volumes_get_enclosing_corners",
    "volumes_get_max_size",
]
