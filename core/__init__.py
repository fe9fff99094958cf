"""
Core module containing the coordinate-frame algebra and data structures.
"""

from core.points import (
    AXIS_X, AXIS_Y, AXIS_Z,
    BASE_AXES, ZERO_POINT,
    View, Layout,
    point_in_box, point_in_elliptic_cylinder, point_in_ellipsoid,
)
from core.space import CoordinateSpace
from core.volume import (
    Volume,
    volume_intersection_corners,
    volumes_get_enclosing_corners,
    volumes_get_max_size,
)
from core.data_set import DataSet, Voxel
from core.dto import AnalysisParamsDTO
from core.progress import (
    ProgressEvent,
    ProgressObserver,
    ProgressBus,
    CancelFlagObserver,
    TerminalProgressObserver,
    null_update,
)
from core.coordinates import (
    promote_to_tgzyx,
    point_xyz_to_voxel_zyx,
    voxel_zyx_to_center_xyz,
    dim_zyx_to_corner_xyz,
    corners_to_voxel_range_zyx,
    voxel_in_bounds_zyx,
)

__all__ = [
    'AXIS_X', 'AXIS_Y', 'AXIS_Z', 'BASE_AXES', 'ZERO_POINT', 'View', 'Layout',
    'point_in_box', 'point_in_elliptic_cylinder', 'point_in_ellipsoid',
    'CoordinateSpace',
    'Volume', 'volume_intersection_corners', 'volumes_get_enclosing_corners', 'volumes_get_max_size',
    'DataSet', 'Voxel',
    'AnalysisParamsDTO',
    'ProgressEvent', 'ProgressObserver', 'ProgressBus',
    'CancelFlagObserver', 'TerminalProgressObserver', 'null_update',
    'promote_to_tgzyx', 'point_xyz_to_voxel_zyx', 'voxel_zyx_to_center_xyz',
    'dim_zyx_to_corner_xyz', 'corners_to_voxel_range_zyx', 'voxel_in_bounds_zyx',
]
