"""
Mask construction and editing for isocontour / freehand ROIs.

* ``set_isocontour``  - threshold a data set and keep the component connected
  to a seed voxel (8-connected in-plane for 2D types, 26-connected for 3D)
* ``manipulate_area`` - paint or erase a square / cube brush of mask cells
* ``mark_edges``      - turn a binary selection into the tri-state mask
"""

from __future__ import annotations

import logging
from typing import Sequence, Tuple

import numpy as np
from scipy import ndimage

from config import DEFAULT_PAINT_AREA, EPSILON, MASK_BOUNDARY, MASK_INTERIOR, MASK_OUTSIDE
from core.data_set import DataSet, Voxel
from roi.roi import Roi
from roi.types import IsocontourRange

logger = logging.getLogger(__name__)

_STRUCTURE_8 = np.ones((3, 3), dtype=bool)
_STRUCTURE_26 = np.ones((3, 3, 3), dtype=bool)


# ==========================================
# Edge marking
# ==========================================

def mark_edges(selection: np.ndarray, is_2d: bool) -> np.ndarray:
    """
    Tri-state mask from a (z, y, x) selection.

    A selected cell is interior (2) when every neighbour is selected, boundary
    (1) otherwise.  2D masks only look at the 8 in-plane neighbours; cells off
    the array edge count as unselected.
    """
    selected = np.asarray(selection) != 0
    if selected.ndim != 3:
        raise ValueError(f"Expected a (z, y, x) selection, got shape={selected.shape}")

    kernel = np.ones((1, 3, 3) if is_2d else (3, 3, 3), dtype=np.int32)
    counts = ndimage.convolve(selected.astype(np.int32), kernel, mode="constant", cval=0)

    out = np.full(selected.shape, MASK_OUTSIDE, dtype=np.uint8)
    out[selected] = MASK_BOUNDARY
    out[selected & (counts == kernel.size)] = MASK_INTERIOR
    return out


def _threshold_bounds(min_value: float, max_value: float) -> Tuple[float, float]:
    # round-off on the threshold itself must not drop the boundary value
    return min_value - EPSILON * abs(min_value), max_value + EPSILON * abs(max_value)


# ==========================================
# Isocontour
# ==========================================

def set_isocontour(
    roi: Roi,
    ds: DataSet,
    seed_voxel: Voxel,
    min_value: float,
    max_value: float,
    iso_range: IsocontourRange = IsocontourRange.ABOVE_MIN,
) -> bool:
    """
    Rebuild an isocontour ROI's mask from ``ds``.

    ``seed_voxel`` is (frame, gate, z, y, x) in ``ds``.  The ROI adopts the
    data set's frame and voxel size, and its mask is cropped to the selected
    component.  Returns False (ROI untouched) when the seed value itself falls
    outside the threshold.
    """
    if not roi.type.is_isocontour:
        raise ValueError(f"set_isocontour needs an isocontour ROI, got {roi.type.value}")

    voxel = tuple(int(v) for v in seed_voxel)
    if len(voxel) != 5:
        raise ValueError(f"Seed voxel must be (frame, gate, z, y, x), got {seed_voxel}")
    if any(v < 0 or v >= n for v, n in zip(voxel, ds.raw_data.shape)):
        raise ValueError(f"Seed voxel {voxel} lies outside data of shape {ds.raw_data.shape}")

    frame, gate, seed_z, seed_y, seed_x = voxel
    lo, hi = _threshold_bounds(float(min_value), float(max_value))
    plane = ds.plane(frame, gate)

    if roi.type.is_2d:
        selected = iso_range.select(plane[seed_z], lo, hi)
        labels, _ = ndimage.label(selected, structure=_STRUCTURE_8)
        labels = labels[np.newaxis, ...]
        seed = (0, seed_y, seed_x)
        z_start = seed_z
    else:
        selected = iso_range.select(plane, lo, hi)
        labels, _ = ndimage.label(selected, structure=_STRUCTURE_26)
        seed = (seed_z, seed_y, seed_x)
        z_start = 0

    seed_label = labels[seed]
    if seed_label == 0:
        logger.info("Seed voxel %s value is outside the isocontour range, mask unchanged", voxel)
        return False

    component = labels == seed_label
    bounds = ndimage.find_objects(component.astype(np.int32))[0]
    cropped = component[bounds]
    start_zyx = np.array([z_start + bounds[0].start, bounds[1].start, bounds[2].start], dtype=np.float64)

    space = ds.space.copy()
    space.set_offset(ds.space.s2b(start_zyx[::-1] * ds.voxel_size))
    roi.volume.space = space
    roi.set_mask(mark_edges(cropped, roi.type.is_2d), voxel_size=ds.voxel_size)

    roi.isocontour_min_value = float(min_value)
    roi.isocontour_max_value = float(max_value)
    roi.isocontour_range = iso_range
    logger.debug("Isocontour %r: %d cells in a %s mask", roi.name, int(cropped.sum()), cropped.shape)
    return True


# ==========================================
# Paint / erase
# ==========================================

def manipulate_area(
    roi: Roi,
    erase: bool,
    voxel_zyx: Sequence[int],
    area_size: int = DEFAULT_PAINT_AREA,
) -> bool:
    """
    Paint or erase the cells within ``area_size`` of ``voxel_zyx``.

    ``voxel_zyx`` indexes the ROI's mask and may lie outside it when painting:
    the mask grows to fit, shifting the ROI origin so existing cells keep their
    position in space.  2D ROIs only paint within their single plane.
    """
    if not roi.type.is_mask:
        raise ValueError(f"{roi.type.value} ROIs have no mask to edit")
    if area_size < 0:
        raise ValueError(f"area_size must be >= 0, got {area_size}")
    if not np.all(roi.voxel_size > 0.0):
        raise ValueError("Set a positive voxel size before editing the mask")

    center = np.asarray(voxel_zyx, dtype=np.int64)
    radius = np.array([0 if roi.type.is_2d else area_size, area_size, area_size], dtype=np.int64)
    if roi.type.is_2d and center[0] != 0:
        raise ValueError(f"2D ROI masks have a single plane, got z={int(center[0])}")
    lo = center - radius
    hi = center + radius + 1

    mask = roi.mask
    if mask is None:
        if erase:
            return False
        _shift_origin(roi, lo)
        cells = np.zeros(tuple(hi - lo), dtype=np.uint8)
        lo, hi = lo - lo, hi - lo
    else:
        dims = np.asarray(mask.shape, dtype=np.int64)
        if erase:
            lo = np.clip(lo, 0, dims)
            hi = np.clip(hi, 0, dims)
            if np.any(hi <= lo):
                return False
            cells = None
        else:
            pad_before = np.maximum(0, -lo)
            pad_after = np.maximum(0, hi - dims)
            if np.any(pad_before) or np.any(pad_after):
                _shift_origin(roi, -pad_before)
                cells = np.pad(mask, list(zip(pad_before, pad_after)), mode="constant", constant_values=MASK_OUTSIDE)
                lo, hi = lo + pad_before, hi + pad_before
            else:
                cells = None

    brush_value = MASK_OUTSIDE if erase else MASK_INTERIOR
    is_2d = roi.type.is_2d

    if cells is not None:
        cells[_slices(lo, hi)] = brush_value
        _remark_region(cells, lo, hi, is_2d)
        roi.set_mask(cells)
        return True

    # edit a private patch of the brush plus both edge-marking rings, then
    # write it back through the ROI so shared buffers are cloned first
    margin = _edge_margin(is_2d)
    patch_lo = np.clip(lo - 2 * margin, 0, dims)
    patch_hi = np.clip(hi + 2 * margin, 0, dims)
    region = _slices(patch_lo, patch_hi)
    patch = mask[region].copy()
    local_lo, local_hi = lo - patch_lo, hi - patch_lo
    patch[_slices(local_lo, local_hi)] = brush_value
    _remark_region(patch, local_lo, local_hi, is_2d)
    return roi.set_cells(region, patch)


def _slices(lo: np.ndarray, hi: np.ndarray) -> Tuple[slice, ...]:
    return tuple(slice(int(a), int(b)) for a, b in zip(lo, hi))


def _edge_margin(is_2d: bool) -> np.ndarray:
    return np.array([0 if is_2d else 1, 1, 1], dtype=np.int64)


def _shift_origin(roi: Roi, delta_zyx: np.ndarray) -> None:
    """Move the ROI origin by ``delta_zyx`` mask cells."""
    delta_xyz = np.asarray(delta_zyx, dtype=np.float64)[::-1] * roi.voxel_size
    roi.space.set_offset(roi.space.s2b(delta_xyz))


def _remark_region(cells: np.ndarray, lo: np.ndarray, hi: np.ndarray, is_2d: bool) -> None:
    """Recompute edge values in place for the brush plus a one-cell border."""
    dims = np.asarray(cells.shape, dtype=np.int64)
    margin = _edge_margin(is_2d)
    write_lo = np.clip(lo - margin, 0, dims)
    write_hi = np.clip(hi + margin, 0, dims)
    # one more ring of context so the written cells see all their neighbours
    read_lo = np.clip(write_lo - margin, 0, dims)
    read_hi = np.clip(write_hi + margin, 0, dims)

    marked = mark_edges(cells[_slices(read_lo, read_hi)], is_2d)
    cells[_slices(write_lo, write_hi)] = marked[_slices(write_lo - read_lo, write_hi - read_lo)]


__all__ = ["mark_edges", "set_isocontour", "manipulate_area"]
