"""
Where an ROI crosses a display slice.

The canvas is a ``Volume`` whose frame is the display plane and whose corner
z is the slice thickness.  Both routines sample on a pixel grid laid over the
part of the canvas the ROI overlaps, at the slice's mid depth.
"""

from __future__ import annotations

import math
from typing import List, Optional, Tuple

import numpy as np

from config import MASK_BOUNDARY, MASK_OUTSIDE
from core.data_set import DataSet
from core.volume import Volume, volume_intersection_corners
from roi.classification import sample_roi
from roi.isocontour import mark_edges
from roi.roi import Roi


def _pixel_grid(
    corners: Tuple[np.ndarray, np.ndarray],
    canvas: Volume,
    pixel_dim: float,
    snap: bool,
) -> Tuple[np.ndarray, np.ndarray, float, np.ndarray]:
    """Pixel center coordinates (xs, ys), mid depth z and grid start (canvas frame)."""
    c0, c1 = corners
    if snap:
        start = np.floor(c0[:2] / pixel_dim) * pixel_dim
        end = np.ceil(c1[:2] / pixel_dim) * pixel_dim
    else:
        start = c0[:2].copy()
        end = c1[:2]
    nx = max(1, int(math.ceil(round((end[0] - start[0]) / pixel_dim, 9))))
    ny = max(1, int(math.ceil(round((end[1] - start[1]) / pixel_dim, 9))))
    xs = start[0] + (np.arange(nx) + 0.5) * pixel_dim
    ys = start[1] + (np.arange(ny) + 0.5) * pixel_dim
    z_mid = 0.5 * float(canvas.corner[2])
    return xs, ys, z_mid, start


def _sample_plane(roi: Roi, canvas: Volume, xs: np.ndarray, ys: np.ndarray, z_mid: float, accurate: bool) -> np.ndarray:
    yy, xx = np.meshgrid(ys, xs, indexing="ij")
    points = np.stack((xx, yy, np.full(xx.shape, z_mid)), axis=-1)
    return sample_roi(roi, canvas.space.s2s(roi.space, points), accurate=accurate) > 0.0


def get_intersection_line(roi: Roi, canvas: Volume, pixel_dim: float) -> List[np.ndarray]:
    """
    Outline of a closed-form ROI on the canvas plane.

    Rows of the pixel grid are scanned in order; each entry point is put at
    the front of the list and each exit point at the back, so the result
    walks down one side and back up the other.  The first point is repeated
    at the end to close the polyline.  Points are in the canvas frame.
    """
    if not roi.type.is_closed_form:
        raise ValueError(f"Intersection lines are for closed-form ROIs, got {roi.type.value}")
    if pixel_dim <= 0.0:
        raise ValueError(f"pixel_dim must be positive, got {pixel_dim}")
    if roi.undrawn:
        return []

    corners = volume_intersection_corners(canvas, roi.volume)
    if corners is None:
        return []

    xs, ys, z_mid, _ = _pixel_grid(corners, canvas, pixel_dim, snap=False)
    inside = _sample_plane(roi, canvas, xs, ys, z_mid, accurate=False)

    line: List[np.ndarray] = []
    for j, y in enumerate(ys):
        row = inside[j]
        prev_in = False
        for i in range(xs.size):
            if row[i] != prev_in:
                if row[i]:
                    line.insert(0, np.array((xs[i], y, z_mid)))
                else:
                    line.append(np.array((xs[i - 1], y, z_mid)))
                prev_in = bool(row[i])
        if prev_in:
            line.append(np.array((xs[-1], y, z_mid)))

    if line:
        line.append(line[0].copy())
    return line


def get_intersection_slice(
    roi: Roi,
    canvas: Volume,
    pixel_dim: float,
    fill_roi: bool = True,
) -> Optional[DataSet]:
    """
    Mask ROI resampled onto the canvas plane as a one-plane uint8 data set
    (2 interior, 1 edge, 0 outside).  With ``fill_roi`` False only the edge
    pixels are kept.

    The returned data set's frame is the canvas frame moved to the start of
    the overlap, and its voxel size is (pixel_dim, pixel_dim, slice thickness).
    Returns None when the ROI is undrawn or misses the canvas.
    """
    if not roi.type.is_mask:
        raise ValueError(f"Intersection slices are for mask ROIs, got {roi.type.value}")
    if pixel_dim <= 0.0:
        raise ValueError(f"pixel_dim must be positive, got {pixel_dim}")
    if roi.undrawn:
        return None

    corners = volume_intersection_corners(canvas, roi.volume)
    if corners is None:
        return None

    xs, ys, z_mid, start = _pixel_grid(corners, canvas, pixel_dim, snap=True)
    inside = _sample_plane(roi, canvas, xs, ys, z_mid, accurate=True)

    cells = mark_edges(inside[np.newaxis, ...], is_2d=True)
    if not fill_roi:
        cells[cells != MASK_BOUNDARY] = MASK_OUTSIDE

    voxel_size = (pixel_dim, pixel_dim, float(canvas.corner[2]))
    origin = canvas.space.s2b(np.array((start[0], start[1], 0.0)))
    return DataSet.from_array(
        cells,
        voxel_size=voxel_size,
        origin=origin,
        space=canvas.space,
        metadata={"Type": "ROI slice", "roi": roi.name},
    )


__all__ = ["get_intersection_line", "get_intersection_slice"]
