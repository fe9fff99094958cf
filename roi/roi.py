"""
Region-of-interest data model.

An ``Roi`` is a ``Volume`` (frame + far corner) plus a shape variant.
Closed-form shapes (ellipsoid, cylinder, box) are fully described by the
corner.  Mask shapes (isocontour / freehand, 2D / 3D) carry a tri-state
(z, y, x) mask and the size of one mask cell; their corner is always
``voxel_size * mask dimensions`` and is never set directly.
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional, Sequence

import numpy as np

from config import BOUNDARY_FRACTION, MASK_BOUNDARY, MASK_INTERIOR
from core.coordinates import dim_zyx_to_corner_xyz, voxel_zyx_to_center_xyz
from core.points import ZERO_POINT, as_point, points_equal
from core.space import CoordinateSpace
from core.volume import Volume
from roi.mask import MaskHandle
from roi.types import IsocontourRange, RoiType

logger = logging.getLogger(__name__)


class Roi:
    """Region of interest: a volume specialised by a shape variant."""

    def __init__(self, roi_type: RoiType, name: str = "") -> None:
        if not isinstance(roi_type, RoiType):
            raise TypeError(f"roi_type must be a RoiType, got {type(roi_type).__name__}")
        self.name = name
        self.volume = Volume()
        self._type = roi_type
        self._voxel_size = ZERO_POINT.copy()
        self._mask: Optional[MaskHandle] = None
        self._center_of_mass: Optional[np.ndarray] = None
        self._center_of_mass_calculated = False

        # provenance of a thresholded mask, not used for classification
        self.isocontour_min_value = 0.0
        self.isocontour_max_value = 0.0
        self.isocontour_range = IsocontourRange.ABOVE_MIN

    def __repr__(self) -> str:
        state = "undrawn" if self.undrawn else "drawn"
        return f"Roi(name={self.name!r}, type={self._type.value}, {state})"

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def type(self) -> RoiType:
        return self._type

    @property
    def space(self) -> CoordinateSpace:
        return self.volume.space

    @property
    def corner(self) -> np.ndarray:
        return self.volume.corner

    @property
    def undrawn(self) -> bool:
        return not self.volume.valid

    @property
    def voxel_size(self) -> np.ndarray:
        return self._voxel_size.copy()

    @property
    def mask(self) -> Optional[np.ndarray]:
        """Read-only (z, y, x) view of the mask, or None."""
        return None if self._mask is None else self._mask.array

    @property
    def mask_shared(self) -> bool:
        return self._mask is not None and self._mask.shared

    @property
    def center_of_mass_calculated(self) -> bool:
        return self._center_of_mass_calculated

    # ------------------------------------------------------------------
    # Mutators
    # ------------------------------------------------------------------

    def set_type(self, new_type: RoiType) -> bool:
        """Retype within the closed-form family or within the mask family."""
        if new_type == self._type:
            return False
        if new_type.is_mask != self._type.is_mask:
            raise ValueError(
                f"Cannot retype a {self._type.value} ROI to {new_type.value}: "
                "mask and closed-form shapes are not interchangeable"
            )
        self._type = new_type
        self._invalidate_center_of_mass()
        return True

    def set_corner(self, corner: Sequence[float]) -> bool:
        """Size a closed-form ROI; a zero corner leaves it undrawn."""
        if self._type.is_mask:
            raise ValueError("The corner of a mask ROI is derived from its mask and voxel size")
        new_corner = as_point(corner)
        if not np.any(new_corner > 0.0):
            return self.volume.invalidate()
        return self.volume.set_corner(new_corner)

    def set_voxel_size(self, voxel_size: Sequence[float]) -> bool:
        new_size = as_point(voxel_size)
        if np.any(new_size < 0.0):
            raise ValueError(f"Voxel size must be non-negative, got {new_size.tolist()}")
        if points_equal(new_size, self._voxel_size):
            return False
        self._voxel_size = new_size
        self._invalidate_center_of_mass()
        self._update_corner()
        return True

    def set_mask(self, mask: np.ndarray, voxel_size: Optional[Sequence[float]] = None) -> bool:
        """Install a new tri-state mask (2D arrays are taken as one z plane)."""
        self._require_mask_type()
        handle = MaskHandle(mask)
        if self._type.is_2d and handle.shape[0] != 1:
            raise ValueError(f"A {self._type.value} mask must have a single z plane, got shape={handle.shape}")
        if self._mask is not None:
            self._mask.release()
        self._mask = handle
        if voxel_size is not None:
            self._voxel_size = as_point(voxel_size)
        self._invalidate_center_of_mass()
        self._update_corner()
        return True

    def delete_mask(self) -> bool:
        """Drop the mask; the ROI returns to undrawn."""
        self._require_mask_type()
        if self._mask is None:
            return False
        self._mask.release()
        self._mask = None
        self._invalidate_center_of_mass()
        self._update_corner()
        return True

    def set_cells(self, index, values) -> bool:
        """
        Assign ``values`` to ``mask[index]`` without changing the mask shape.

        The buffer is cloned first if it is shared with a copy of this ROI.
        Returns False, touching nothing, when the cells already hold ``values``.
        """
        self._require_mask_type()
        if self._mask is None:
            raise ValueError("ROI has no mask to edit")
        values = np.asarray(values)
        if values.size and (values.min() < 0 or values.max() > MASK_INTERIOR):
            raise ValueError("Mask values must be 0 (outside), 1 (boundary) or 2 (interior)")
        if np.array_equal(np.broadcast_to(values, self._mask.array[index].shape), self._mask.array[index]):
            return False
        self._mask.writable()[index] = values
        self._invalidate_center_of_mass()
        return True

    def copy(self) -> "Roi":
        """Duplicate this ROI; the mask buffer is shared until either side edits it."""
        new_roi = Roi(self._type, self.name)
        new_roi.volume = self.volume.copy()
        new_roi._voxel_size = self._voxel_size.copy()
        if self._mask is not None:
            new_roi._mask = self._mask.share()
        new_roi._center_of_mass = None if self._center_of_mass is None else self._center_of_mass.copy()
        new_roi._center_of_mass_calculated = self._center_of_mass_calculated
        new_roi.isocontour_min_value = self.isocontour_min_value
        new_roi.isocontour_max_value = self.isocontour_max_value
        new_roi.isocontour_range = self.isocontour_range
        return new_roi

    # ------------------------------------------------------------------
    # Geometry
    # ------------------------------------------------------------------

    def get_center(self) -> Optional[np.ndarray]:
        """
        Center in the base frame: the box midpoint for closed-form shapes, the
        weighted center of mass of the mask cells otherwise.
        """
        if self.undrawn:
            return None
        if self._type.is_closed_form:
            return self.volume.get_center()
        if self._type.is_mask:
            if not self._center_of_mass_calculated:
                self._calculate_center_of_mass()
            return self.space.s2b(self._center_of_mass)
        raise ValueError(f"Unknown ROI type: {self._type}")

    def _calculate_center_of_mass(self) -> None:
        mask = self._mask.array
        weights = np.zeros(mask.shape, dtype=np.float64)
        weights[mask == MASK_INTERIOR] = 1.0
        weights[mask == MASK_BOUNDARY] = BOUNDARY_FRACTION
        total = float(weights.sum())

        if total <= 0.0:
            center = 0.5 * self.volume.corner
        else:
            z, y, x = np.nonzero(weights)
            w = weights[z, y, x]
            centers = voxel_zyx_to_center_xyz(z, y, x, self._voxel_size)
            center = (centers * w[:, np.newaxis]).sum(axis=0) / total

        self._center_of_mass = center
        self._center_of_mass_calculated = True
        logger.debug("Recomputed center of mass for ROI %r", self.name)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _require_mask_type(self) -> None:
        if not self._type.is_mask:
            raise ValueError(f"{self._type.value} ROIs have no mask")

    def _invalidate_center_of_mass(self) -> None:
        self._center_of_mass_calculated = False

    def _update_corner(self) -> None:
        if not self._type.is_mask:
            return
        if self._mask is None or not np.all(self._voxel_size > 0.0):
            self.volume.invalidate()
            return
        self.volume.set_corner(dim_zyx_to_corner_xyz(self._mask.shape, self._voxel_size))


def rois_get_max_min_voxel_size(rois: Iterable[Roi]) -> float:
    """
    Over the mask ROIs, the largest of each ROI's smallest voxel dimension.

    Returns -1.0 when no mask ROI is present.
    """
    result = -1.0
    for roi in rois:
        if roi.type.is_mask:
            result = max(result, float(np.min(roi.voxel_size)))
    return result


__all__ = ["Roi", "rois_get_max_min_voxel_size"]
