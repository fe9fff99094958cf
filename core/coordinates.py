"""
Coordinate conversion helpers for the project-wide voxel convention.

Convention:
- Raw voxel arrays use index order (frame, gate, z, y, x); masks use (z, y, x)
- Frame-local geometry uses axis order (x, y, z)
- Voxel sizes are stored as (x, y, z)
- Voxel (i) covers [i * size, (i + 1) * size) along each axis, the near
  corner of voxel 0 sits on the frame origin
"""

from __future__ import annotations

from typing import Optional, Sequence, Tuple
import numpy as np


def promote_to_tgzyx(raw_data: np.ndarray) -> np.ndarray:
    """
    Promote a 3D (z, y, x) or 4D (t, z, y, x) array to 5D (t, g, z, y, x).
    """
    arr = np.asarray(raw_data)
    if arr.ndim == 3:
        return arr[np.newaxis, np.newaxis, ...]
    if arr.ndim == 4:
        return arr[:, np.newaxis, ...]
    if arr.ndim == 5:
        return arr
    raise ValueError(f"Expected 3D, 4D or 5D data, got shape={arr.shape}")


def _check_size(voxel_size_xyz: Sequence[float]) -> np.ndarray:
    size = np.asarray(voxel_size_xyz, dtype=np.float64)
    if size.shape != (3,) or np.any(np.abs(size) < 1e-12):
        raise ValueError("Voxel size components must be non-zero.")
    return size


def point_xyz_to_voxel_zyx(points_xyz, voxel_size_xyz: Sequence[float]) -> np.ndarray:
    """
    Convert frame-local points (..., 3) in (x, y, z) to integer voxel indices (..., 3) in (z, y, x).
    """
    size = _check_size(voxel_size_xyz)
    pts = np.asarray(points_xyz, dtype=np.float64)
    idx_xyz = np.floor(pts / size).astype(np.int64)
    return idx_xyz[..., ::-1]


def voxel_zyx_to_center_xyz(
    z_idx,
    y_idx,
    x_idx,
    voxel_size_xyz: Sequence[float],
) -> np.ndarray:
    """
    Centers of voxels (broadcast over index arrays) as points (..., 3) in (x, y, z).
    """
    sx, sy, sz = (float(v) for v in voxel_size_xyz)
    z, y, x = np.broadcast_arrays(
        np.asarray(z_idx, dtype=np.float64),
        np.asarray(y_idx, dtype=np.float64),
        np.asarray(x_idx, dtype=np.float64),
    )
    return np.stack(((x + 0.5) * sx, (y + 0.5) * sy, (z + 0.5) * sz), axis=-1)


def dim_zyx_to_corner_xyz(dim_zyx: Sequence[int], voxel_size_xyz: Sequence[float]) -> np.ndarray:
    """Far corner of a grid of ``dim_zyx`` voxels, in (x, y, z)."""
    dz, dy, dx = (int(v) for v in dim_zyx)
    size = np.asarray(voxel_size_xyz, dtype=np.float64)
    return np.array((dx, dy, dz), dtype=np.float64) * size


def corners_to_voxel_range_zyx(
    corners_xyz: Tuple[np.ndarray, np.ndarray],
    dim_zyx: Sequence[int],
    voxel_size_xyz: Sequence[float],
) -> Optional[Tuple[Tuple[int, int, int], Tuple[int, int, int]]]:
    """
    Convert frame-local corners into a clamped voxel range (start_zyx, stop_zyx).

    ``stop`` is exclusive.  Returns None when the clamped range is empty.
    """
    c0, c1 = corners_xyz
    lo = np.minimum(c0, c1)
    hi = np.maximum(c0, c1)
    start = point_xyz_to_voxel_zyx(lo, voxel_size_xyz)
    stop = point_xyz_to_voxel_zyx(hi, voxel_size_xyz) + 1

    dims = np.asarray(dim_zyx, dtype=np.int64)
    start = np.clip(start, 0, dims)
    stop = np.clip(stop, 0, dims)
    if np.any(stop <= start):
        return None
    return (
        (int(start[0]), int(start[1]), int(start[2])),
        (int(stop[0]), int(stop[1]), int(stop[2])),
    )


def voxel_in_bounds_zyx(idx_zyx: np.ndarray, dim_zyx: Sequence[int]) -> np.ndarray:
    """Boolean mask over (..., 3) index triples that fall inside a grid."""
    idx = np.asarray(idx_zyx)
    dims = np.asarray(dim_zyx, dtype=np.int64)
    return np.all((idx >= 0) & (idx < dims), axis=-1)


__all__ = [
    "promote_to_tgzyx",
    "point_xyz_to_voxel_zyx",
    "voxel_zyx_to_center_xyz",
    "dim_zyx_to_corner_xyz",
    "corners_to_voxel_range_zyx",
    "voxel_in_bounds_zyx",
]
