import unittest
from unittest import mock

import numpy as np
import pytest

from core.space import CoordinateSpace
from roi import Roi, RoiType, IsocontourRange, manipulate_area, mark_edges, rois_get_max_min_voxel_size


def _mask_roi(shape=(3, 3, 3), value=2, roi_type=RoiType.FREEHAND_3D):
    roi = Roi(roi_type, name="mask")
    roi.set_mask(np.full(shape, value, dtype=np.uint8), voxel_size=(1.0, 1.0, 1.0))
    return roi


class TestRoiTypes(unittest.TestCase):
    def test_type_families(self):
        self.assertTrue(RoiType.BOX.is_closed_form)
        self.assertFalse(RoiType.BOX.is_mask)
        self.assertTrue(RoiType.FREEHAND_2D.is_mask and RoiType.FREEHAND_2D.is_2d)
        self.assertTrue(RoiType.ISOCONTOUR_3D.is_isocontour)
        self.assertEqual(RoiType.from_name("Isocontour-2D"), RoiType.ISOCONTOUR_2D)
        with self.assertRaises(ValueError):
            RoiType.from_name("sphere")

    def test_isocontour_range_select(self):
        values = np.array([1.0, 5.0, 9.0])
        np.testing.assert_array_equal(IsocontourRange.ABOVE_MIN.select(values, 5.0, 8.0), [False, True, True])
        np.testing.assert_array_equal(IsocontourRange.BELOW_MAX.select(values, 5.0, 8.0), [True, True, False])
        np.testing.assert_array_equal(IsocontourRange.BETWEEN_MIN_MAX.select(values, 5.0, 8.0), [False, True, False])


class TestClosedFormRoi(unittest.TestCase):
    def test_lifecycle(self):
        roi = Roi(RoiType.ELLIPSOID)
        self.assertTrue(roi.undrawn)
        self.assertIsNone(roi.get_center())
        self.assertFalse(roi.set_corner((0.0, 0.0, 0.0)))
        self.assertTrue(roi.undrawn)
        self.assertTrue(roi.set_corner((4.0, 6.0, 8.0)))
        self.assertFalse(roi.undrawn)
        np.testing.assert_allclose(roi.get_center(), [2.0, 3.0, 4.0])

    def test_retype_within_family(self):
        roi = Roi(RoiType.BOX)
        self.assertTrue(roi.set_type(RoiType.CYLINDER))
        self.assertFalse(roi.set_type(RoiType.CYLINDER))
        with self.assertRaises(ValueError):
            roi.set_type(RoiType.FREEHAND_3D)

    def test_closed_form_has_no_mask(self):
        roi = Roi(RoiType.BOX)
        self.assertIsNone(roi.mask)
        with self.assertRaises(ValueError):
            roi.set_mask(np.ones((2, 2, 2)))

    def test_type_must_be_enum(self):
        with self.assertRaises(TypeError):
            Roi("box")


class TestMaskRoi(unittest.TestCase):
    def test_corner_follows_mask_and_voxel_size(self):
        roi = Roi(RoiType.FREEHAND_3D)
        self.assertTrue(roi.undrawn)
        roi.set_mask(np.ones((2, 3, 4), dtype=np.uint8), voxel_size=(0.5, 1.0, 2.0))
        self.assertFalse(roi.undrawn)
        np.testing.assert_allclose(roi.corner, [2.0, 3.0, 4.0])

        self.assertTrue(roi.set_voxel_size((1.0, 1.0, 1.0)))
        np.testing.assert_allclose(roi.corner, [4.0, 3.0, 2.0])
        self.assertFalse(roi.set_voxel_size((1.0, 1.0, 1.0)))

    def test_corner_cannot_be_set_directly(self):
        with self.assertRaises(ValueError):
            _mask_roi().set_corner((1.0, 1.0, 1.0))

    def test_retype_to_closed_form_rejected(self):
        roi = _mask_roi()
        self.assertTrue(roi.set_type(RoiType.ISOCONTOUR_3D))
        with self.assertRaises(ValueError):
            roi.set_type(RoiType.ELLIPSOID)

    def test_delete_mask_returns_to_undrawn(self):
        roi = _mask_roi()
        self.assertTrue(roi.delete_mask())
        self.assertTrue(roi.undrawn)
        self.assertIsNone(roi.mask)
        self.assertIsNone(roi.get_center())
        self.assertFalse(roi.delete_mask())

    def test_2d_mask_needs_single_plane(self):
        roi = Roi(RoiType.FREEHAND_2D)
        roi.set_mask(np.ones((3, 3)), voxel_size=(1.0, 1.0, 1.0))
        self.assertEqual(roi.mask.shape, (1, 3, 3))
        with self.assertRaises(ValueError):
            roi.set_mask(np.ones((2, 3, 3)))

    def test_center_of_mass(self):
        roi = _mask_roi()
        roi.space.set_offset((10.0, 0.0, 0.0))
        np.testing.assert_allclose(roi.get_center(), [11.5, 1.5, 1.5])

    def test_boundary_cells_weigh_half(self):
        roi = Roi(RoiType.FREEHAND_3D)
        mask = np.zeros((1, 1, 2), dtype=np.uint8)
        mask[0, 0, 0] = 2
        mask[0, 0, 1] = 1
        roi.set_mask(mask, voxel_size=(1.0, 1.0, 1.0))
        # x: (0.5 * 1 + 1.5 * 0.5) / 1.5
        assert roi.get_center()[0] == pytest.approx(1.25 / 1.5)

    def test_center_of_mass_recomputed_once_per_invalidation(self):
        roi = _mask_roi(shape=(4, 4, 4), value=0)
        roi.set_mask(mark_edges(np.ones((4, 4, 4)), is_2d=False))

        with mock.patch.object(
            Roi, "_calculate_center_of_mass", autospec=True, side_effect=Roi._calculate_center_of_mass
        ) as spy:
            roi.get_center()
            roi.get_center()
            self.assertEqual(spy.call_count, 1)
            self.assertTrue(roi.center_of_mass_calculated)

            manipulate_area(roi, erase=True, voxel_zyx=(0, 0, 0))
            self.assertFalse(roi.center_of_mass_calculated)
            roi.get_center()
            roi.get_center()
            self.assertEqual(spy.call_count, 2)

    def test_copy_shares_mask_until_edit(self):
        roi = _mask_roi()
        clone = roi.copy()
        self.assertTrue(roi.mask_shared)
        self.assertTrue(clone.space.equal(roi.space))

        manipulate_area(clone, erase=True, voxel_zyx=(1, 1, 1))
        self.assertEqual(clone.mask[1, 1, 1], 0)
        self.assertEqual(roi.mask[1, 1, 1], 2)
        self.assertFalse(roi.mask_shared)

    def test_copy_has_independent_frame(self):
        roi = _mask_roi()
        clone = roi.copy()
        clone.space.shift((1.0, 0.0, 0.0))
        np.testing.assert_array_equal(roi.space.offset, [0.0, 0.0, 0.0])

    def test_mask_held_before_copy_cannot_leak_into_copy(self):
        roi = _mask_roi()
        held = roi.mask
        clone = roi.copy()
        with self.assertRaises(ValueError):
            held[0, 0, 0] = 0

        self.assertTrue(roi.set_cells((0, 0, 0), 0))
        self.assertEqual(roi.mask[0, 0, 0], 0)
        self.assertEqual(clone.mask[0, 0, 0], 2)
        self.assertFalse(clone.mask_shared)

    def test_every_cell_edit_invalidates_center_of_mass(self):
        roi = _mask_roi(shape=(4, 4, 4))
        np.testing.assert_allclose(roi.get_center(), [2.0, 2.0, 2.0])

        roi.set_cells((slice(None), slice(None), slice(2, None)), 0)
        self.assertFalse(roi.center_of_mass_calculated)
        np.testing.assert_allclose(roi.get_center(), [1.0, 2.0, 2.0])

        roi.set_cells((slice(None), slice(None), 1), 0)
        self.assertFalse(roi.center_of_mass_calculated)
        np.testing.assert_allclose(roi.get_center(), [0.5, 2.0, 2.0])

    def test_set_cells_without_change_keeps_sharing(self):
        roi = _mask_roi()
        roi.get_center()
        clone = roi.copy()
        self.assertFalse(roi.set_cells((slice(None), 1, 1), 2))
        self.assertTrue(roi.mask_shared and clone.mask_shared)
        self.assertTrue(roi.center_of_mass_calculated)

    def test_set_cells_checks_values_and_type(self):
        with self.assertRaises(ValueError):
            _mask_roi().set_cells((0, 0, 0), 3)
        with self.assertRaises(ValueError):
            Roi(RoiType.FREEHAND_3D).set_cells((0, 0, 0), 1)
        with self.assertRaises(ValueError):
            Roi(RoiType.BOX).set_cells((0, 0, 0), 1)


def test_rois_get_max_min_voxel_size():
    assert rois_get_max_min_voxel_size([]) == -1.0
    assert rois_get_max_min_voxel_size([Roi(RoiType.BOX)]) == -1.0

    a = Roi(RoiType.FREEHAND_3D)
    a.set_voxel_size((0.5, 2.0, 2.0))
    b = Roi(RoiType.ISOCONTOUR_2D)
    b.set_voxel_size((1.5, 1.0, 3.0))
    assert rois_get_max_min_voxel_size([a, b]) == pytest.approx(1.0)


def test_isocontour_provenance_defaults():
    roi = Roi(RoiType.ISOCONTOUR_3D)
    assert roi.isocontour_range == IsocontourRange.ABOVE_MIN
    assert roi.isocontour_min_value == 0.0
    assert roi.space.equal(CoordinateSpace())
