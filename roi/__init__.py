"""
Region-of-interest model, mask editing, voxel classification and display
intersections.
"""

from roi.types import RoiType, IsocontourRange
from roi.mask import MaskHandle
from roi.roi import Roi, rois_get_max_min_voxel_size
from roi.isocontour import mark_edges, set_isocontour, manipulate_area
from roi.classification import sample_roi, calculate_fractions, calculate_on_data_set, erase_volume
from roi.intersection import get_intersection_line, get_intersection_slice

__all__ = [
    'RoiType', 'IsocontourRange',
    'MaskHandle',
    'Roi', 'rois_get_max_min_voxel_size',
    'mark_edges', 'set_isocontour', 'manipulate_area',
    'sample_roi', 'calculate_fractions', 'calculate_on_data_set', 'erase_volume',
    'get_intersection_line', 'get_intersection_slice',
]
