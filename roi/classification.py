"""
ROI voxel classification.

For every voxel of a data set, decide what fraction of it lies inside an ROI:

* fast     - one sample at the voxel center; closed-form shapes give {0, 1},
             mask shapes give {0, 0.5, 1} for mask values {0, 1, 2}
* accurate - G x G x G sub-samples per voxel, fraction = share inside

The work is vectorised one z slab at a time; the per-voxel callback only
runs over voxels whose fraction is non-zero.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional, Tuple

import numpy as np

from config import (
    BOUNDARY_FRACTION,
    CLASSIFY_MAX_SAMPLES,
    MASK_BOUNDARY,
    MASK_INTERIOR,
    MASK_OUTSIDE,
    ROI_GRANULARITY,
)
from core.coordinates import corners_to_voxel_range_zyx, point_xyz_to_voxel_zyx, voxel_in_bounds_zyx
from core.data_set import DataSet, Voxel
from core.points import point_in_box, point_in_ellipsoid, point_in_elliptic_cylinder
from core.volume import volume_intersection_corners
from roi.roi import Roi
from roi.types import RoiType

logger = logging.getLogger(__name__)

Calculation = Callable[[Voxel, float, float], None]
Fractions = Tuple[Tuple[int, int, int], np.ndarray]


# ==========================================
# Per-sample predicates (points in the ROI frame)
# ==========================================

def _closed_form_inside(roi: Roi, points: np.ndarray) -> np.ndarray:
    corner = roi.corner
    roi_type = roi.type
    if roi_type == RoiType.BOX:
        return point_in_box(points, corner)
    radius = 0.5 * corner
    if roi_type == RoiType.ELLIPSOID:
        return point_in_ellipsoid(points, radius, radius)
    if roi_type == RoiType.CYLINDER:
        return point_in_elliptic_cylinder(points, radius, float(corner[2]), radius)
    raise ValueError(f"Unknown closed-form ROI type: {roi_type}")


def _mask_values(roi: Roi, points: np.ndarray) -> np.ndarray:
    """Nearest mask cell value for each point, 0 outside the mask."""
    mask = roi.mask
    idx = point_xyz_to_voxel_zyx(points, roi.voxel_size)
    inside = voxel_in_bounds_zyx(idx, mask.shape)
    values = np.full(inside.shape, MASK_OUTSIDE, dtype=np.uint8)
    hit = idx[inside]
    values[inside] = mask[hit[:, 0], hit[:, 1], hit[:, 2]]
    return values


def sample_roi(roi: Roi, points: np.ndarray, accurate: bool) -> np.ndarray:
    """
    Weight in [0, 1] of each point (..., 3) given in the ROI's frame.

    In accurate mode every sub-sample is binary, so a boundary mask cell
    counts as fully inside; in fast mode it contributes BOUNDARY_FRACTION.
    """
    roi_type = roi.type
    if roi_type.is_closed_form:
        return _closed_form_inside(roi, points).astype(np.float64)
    if roi_type.is_mask:
        values = _mask_values(roi, points)
        if accurate:
            return (values != MASK_OUTSIDE).astype(np.float64)
        weights = np.zeros(values.shape, dtype=np.float64)
        weights[values == MASK_INTERIOR] = 1.0
        weights[values == MASK_BOUNDARY] = BOUNDARY_FRACTION
        return weights
    raise ValueError(f"Unknown ROI type: {roi_type}")


# ==========================================
# Slab evaluation
# ==========================================

def _fast_slab(roi: Roi, ds: DataSet, z: int, ys: np.ndarray, xs: np.ndarray) -> np.ndarray:
    vx, vy, vz = ds.voxel_size
    yy, xx = np.meshgrid((ys + 0.5) * vy, (xs + 0.5) * vx, indexing="ij")
    zz = np.full(yy.shape, (z + 0.5) * vz)
    points = np.stack((xx, yy, zz), axis=-1)
    return sample_roi(roi, ds.space.s2s(roi.space, points), accurate=False)


def _accurate_slab(roi: Roi, ds: DataSet, z: int, ys: np.ndarray, xs: np.ndarray, granularity: int) -> np.ndarray:
    vx, vy, vz = ds.voxel_size
    sub = (np.arange(granularity, dtype=np.float64) + 0.5) / granularity
    g3 = granularity ** 3
    rows_per_chunk = max(1, CLASSIFY_MAX_SAMPLES // max(1, xs.size * g3))

    px = (xs[:, np.newaxis] + sub[np.newaxis, :]) * vx
    pz = (z + sub) * vz
    out = np.empty((ys.size, xs.size), dtype=np.float64)

    for row0 in range(0, ys.size, rows_per_chunk):
        rows = ys[row0:row0 + rows_per_chunk]
        py = (rows[:, np.newaxis] + sub[np.newaxis, :]) * vy
        # (y, x, sub_z, sub_y, sub_x)
        X, Y, Z = np.broadcast_arrays(
            px[np.newaxis, :, np.newaxis, np.newaxis, :],
            py[:, np.newaxis, np.newaxis, :, np.newaxis],
            pz[np.newaxis, np.newaxis, :, np.newaxis, np.newaxis],
        )
        points = np.stack((X, Y, Z), axis=-1)
        inside = sample_roi(roi, ds.space.s2s(roi.space, points), accurate=True)
        out[row0:row0 + rows.size] = inside.reshape(rows.size, xs.size, g3).mean(axis=-1)
    return out


# ==========================================
# Public API
# ==========================================

def calculate_fractions(
    roi: Roi,
    ds: DataSet,
    inverse: bool = False,
    accurate: bool = False,
    granularity: int = ROI_GRANULARITY,
) -> Optional[Fractions]:
    """
    Fraction of each data-set voxel inside ``roi`` (outside it when ``inverse``).

    Returns ``(start_zyx, fractions)`` where ``fractions[k, j, i]`` belongs to
    voxel ``start_zyx + (k, j, i)``, or None when nothing can be inside (ROI
    undrawn, or no overlap in non-inverse mode).  Inverse mode always covers
    the whole data set.
    """
    if granularity < 1:
        raise ValueError(f"granularity must be >= 1, got {granularity}")
    if not (roi.type.is_closed_form or roi.type.is_mask):
        raise ValueError(f"Unknown ROI type: {roi.type}")
    if roi.undrawn:
        return None

    dim_zyx = ds.dim_zyx
    if inverse:
        start, stop = (0, 0, 0), dim_zyx
    else:
        corners = volume_intersection_corners(ds.volume, roi.volume)
        if corners is None:
            return None
        voxel_range = corners_to_voxel_range_zyx(corners, dim_zyx, ds.voxel_size)
        if voxel_range is None:
            return None
        start, stop = voxel_range

    ys = np.arange(start[1], stop[1], dtype=np.float64)
    xs = np.arange(start[2], stop[2], dtype=np.float64)
    fractions = np.empty((stop[0] - start[0], ys.size, xs.size), dtype=np.float64)
    for k, z in enumerate(range(start[0], stop[0])):
        if accurate:
            fractions[k] = _accurate_slab(roi, ds, z, ys, xs, granularity)
        else:
            fractions[k] = _fast_slab(roi, ds, z, ys, xs)

    if inverse:
        fractions = 1.0 - fractions
    return tuple(int(v) for v in start), fractions


def calculate_on_data_set(
    roi: Roi,
    ds: DataSet,
    frame: int,
    gate: int,
    inverse: bool,
    accurate: bool,
    calculation: Calculation,
    granularity: int = ROI_GRANULARITY,
) -> int:
    """
    Call ``calculation(voxel, value, fraction)`` for every voxel of
    ``ds[frame, gate]`` with a non-zero fraction.

    ``voxel`` is (frame, gate, z, y, x).  Voxels are visited in z, y, x order.
    Neither the ROI nor the data set is modified.  Returns the number of calls.
    """
    if not 0 <= frame < ds.num_frames:
        raise ValueError(f"frame {frame} out of range [0, {ds.num_frames})")
    if not 0 <= gate < ds.num_gates:
        raise ValueError(f"gate {gate} out of range [0, {ds.num_gates})")

    result = calculate_fractions(roi, ds, inverse=inverse, accurate=accurate, granularity=granularity)
    if result is None:
        return 0

    (z0, y0, x0), fractions = result
    plane = ds.plane(frame, gate)
    kz, ky, kx = np.nonzero(fractions > 0.0)
    for k, j, i in zip(kz.tolist(), ky.tolist(), kx.tolist()):
        z, y, x = z0 + k, y0 + j, x0 + i
        calculation((frame, gate, z, y, x), float(plane[z, y, x]), float(fractions[k, j, i]))

    logger.debug(
        "Classified %d voxels of %s against ROI %r (accurate=%s, inverse=%s)",
        kz.size, ds.dim_zyx, roi.name, accurate, inverse,
    )
    return int(kz.size)


def erase_volume(
    roi: Roi,
    ds: DataSet,
    inverse: bool,
    accurate: bool,
    fill_value: float,
    granularity: int = ROI_GRANULARITY,
) -> bool:
    """
    Blend every frame and gate of ``ds`` toward ``fill_value`` inside the ROI
    (outside it when ``inverse``): ``value * (1 - f) + fill_value * f``.
    """
    result = calculate_fractions(roi, ds, inverse=inverse, accurate=accurate, granularity=granularity)
    if result is None:
        return False

    (z0, y0, x0), fractions = result
    nz, ny, nx = fractions.shape
    if not np.any(fractions > 0.0):
        return False

    region = (slice(None), slice(None), slice(z0, z0 + nz), slice(y0, y0 + ny), slice(x0, x0 + nx))
    current = ds.raw_data[region].astype(np.float64)
    blended = current * (1.0 - fractions) + float(fill_value) * fractions

    if np.issubdtype(ds.raw_data.dtype, np.integer):
        info = np.iinfo(ds.raw_data.dtype)
        blended = np.clip(np.rint(blended), info.min, info.max)
    ds.raw_data[region] = blended.astype(ds.raw_data.dtype)
    return True


__all__ = ["Calculation", "sample_roi", "calculate_fractions", "calculate_on_data_set", "erase_volume"]
