"""ROI shape variants and isocontour threshold modes."""

from __future__ import annotations

from enum import Enum


class RoiType(Enum):
    ELLIPSOID = "ellipsoid"
    CYLINDER = "cylinder"
    BOX = "box"
    ISOCONTOUR_2D = "isocontour_2d"
    ISOCONTOUR_3D = "isocontour_3d"
    FREEHAND_2D = "freehand_2d"
    FREEHAND_3D = "freehand_3d"

    @property
    def is_mask(self) -> bool:
        return self in _MASK_TYPES

    @property
    def is_closed_form(self) -> bool:
        return self in _CLOSED_FORM_TYPES

    @property
    def is_isocontour(self) -> bool:
        return self in (RoiType.ISOCONTOUR_2D, RoiType.ISOCONTOUR_3D)

    @property
    def is_2d(self) -> bool:
        return self in (RoiType.ISOCONTOUR_2D, RoiType.FREEHAND_2D)

    @staticmethod
    def from_name(name: str) -> "RoiType":
        key = str(name).strip().lower().replace("-", "_").replace(" ", "_")
        for roi_type in RoiType:
            if roi_type.value == key:
                return roi_type
        raise ValueError(f"Unknown ROI type: {name}")


_CLOSED_FORM_TYPES = frozenset((RoiType.ELLIPSOID, RoiType.CYLINDER, RoiType.BOX))
_MASK_TYPES = frozenset((
    RoiType.ISOCONTOUR_2D, RoiType.ISOCONTOUR_3D,
    RoiType.FREEHAND_2D, RoiType.FREEHAND_3D,
))


class IsocontourRange(Enum):
    ABOVE_MIN = "above_min"
    BELOW_MAX = "below_max"
    BETWEEN_MIN_MAX = "between_min_max"

    def select(self, values, min_value: float, max_value: float):
        """Boolean selection of ``values`` for this threshold mode."""
        if self == IsocontourRange.ABOVE_MIN:
            return values >= min_value
        if self == IsocontourRange.BELOW_MAX:
            return values <= max_value
        return (values >= min_value) & (values <= max_value)


__all__ = ["RoiType", "IsocontourRange"]
