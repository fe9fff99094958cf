"""
Voxel data sets: the targets ROI classification walks over.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Sequence, Tuple

import numpy as np

from core.coordinates import dim_zyx_to_corner_xyz, promote_to_tgzyx, voxel_zyx_to_center_xyz
from core.points import as_point
from core.space import CoordinateSpace
from core.volume import Volume

Voxel = Tuple[int, int, int, int, int]


@dataclass(eq=False)
class DataSet:
    """
    Voxel array placed in space.

    Attributes:
        raw_data (np.ndarray): 5D array (frame, gate, z, y, x); 3D/4D inputs are promoted.
        voxel_size (np.ndarray): Size of one voxel (x, y, z) in the data set's frame.
        volume (Volume): Frame + far corner; the corner always equals dim * voxel_size.
        metadata (Dict[str, Any]): Arbitrary metadata (modality, units, ...).
    """
    raw_data: np.ndarray
    voxel_size: np.ndarray = field(default_factory=lambda: np.ones(3, dtype=np.float64))
    volume: Volume = field(default_factory=Volume)
    metadata: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.raw_data = promote_to_tgzyx(self.raw_data)
        self.voxel_size = as_point(self.voxel_size)
        if np.any(self.voxel_size <= 0.0):
            raise ValueError(f"Voxel size must be positive, got {self.voxel_size.tolist()}")
        self.volume.set_corner(dim_zyx_to_corner_xyz(self.dim_zyx, self.voxel_size))

    @staticmethod
    def from_array(
        raw_data: np.ndarray,
        voxel_size: Sequence[float] = (1.0, 1.0, 1.0),
        origin: Sequence[float] = (0.0, 0.0, 0.0),
        space: Optional[CoordinateSpace] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> "DataSet":
        """Build a data set whose near corner sits at ``origin`` (base frame)."""
        frame = space.copy() if space is not None else CoordinateSpace()
        frame.set_offset(origin)
        return DataSet(
            raw_data=raw_data,
            voxel_size=np.asarray(voxel_size, dtype=np.float64),
            volume=Volume(frame),
            metadata=dict(metadata or {}),
        )

    @property
    def space(self) -> CoordinateSpace:
        return self.volume.space

    @property
    def dim_zyx(self) -> Tuple[int, int, int]:
        return tuple(int(v) for v in self.raw_data.shape[2:])  # type: ignore[return-value]

    @property
    def num_frames(self) -> int:
        return int(self.raw_data.shape[0])

    @property
    def num_gates(self) -> int:
        return int(self.raw_data.shape[1])

    def get_value(self, voxel: Voxel) -> float:
        return float(self.raw_data[tuple(voxel)])

    def set_value(self, voxel: Voxel, value: float) -> None:
        self.raw_data[tuple(voxel)] = value

    def plane(self, frame: int, gate: int) -> np.ndarray:
        """The (z, y, x) volume for one frame/gate, as a view."""
        return self.raw_data[frame, gate]

    def voxel_center(self, z: int, y: int, x: int) -> np.ndarray:
        """Center of one voxel in the base frame."""
        return self.space.s2b(voxel_zyx_to_center_xyz(z, y, x, self.voxel_size))


__all__ = ["Voxel", "DataSet"]
