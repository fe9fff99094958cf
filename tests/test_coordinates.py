import unittest
import numpy as np

from core import DataSet
from core.coordinates import (
    promote_to_tgzyx,
    point_xyz_to_voxel_zyx,
    voxel_zyx_to_center_xyz,
    dim_zyx_to_corner_xyz,
    corners_to_voxel_range_zyx,
    voxel_in_bounds_zyx,
)


class TestCoordinateConversions(unittest.TestCase):
    def test_promote_to_tgzyx(self):
        self.assertEqual(promote_to_tgzyx(np.zeros((2, 3, 4))).shape, (1, 1, 2, 3, 4))
        self.assertEqual(promote_to_tgzyx(np.zeros((5, 2, 3, 4))).shape, (5, 1, 2, 3, 4))
        with self.assertRaises(ValueError):
            promote_to_tgzyx(np.zeros((3, 4)))

    def test_point_to_voxel_reverses_axis_order(self):
        idx = point_xyz_to_voxel_zyx([[4.5, 3.2, 9.9]], (2.0, 3.0, 4.0))
        np.testing.assert_array_equal(idx, [[2, 1, 2]])

    def test_negative_points_floor(self):
        idx = point_xyz_to_voxel_zyx((-0.5, 0.5, 0.0), (1.0, 1.0, 1.0))
        np.testing.assert_array_equal(idx, [0, 0, -1])

    def test_voxel_centers(self):
        centers = voxel_zyx_to_center_xyz(np.array([0, 1]), 2, 3, (2.0, 3.0, 4.0))
        np.testing.assert_allclose(centers, [[7.0, 7.5, 2.0], [7.0, 7.5, 6.0]])

    def test_dim_to_corner(self):
        np.testing.assert_allclose(dim_zyx_to_corner_xyz((5, 6, 7), (2.0, 3.0, 4.0)), [14.0, 18.0, 20.0])

    def test_corners_to_voxel_range(self):
        rng = corners_to_voxel_range_zyx(
            (np.array([1.5, 0.0, 2.0]), np.array([4.0, 3.5, 100.0])),
            (5, 6, 7),
            (1.0, 1.0, 1.0),
        )
        self.assertEqual(rng, ((2, 0, 1), (5, 4, 5)))

    def test_corners_outside_grid(self):
        rng = corners_to_voxel_range_zyx(
            (np.array([50.0, 50.0, 50.0]), np.array([60.0, 60.0, 60.0])),
            (5, 6, 7),
            (1.0, 1.0, 1.0),
        )
        self.assertIsNone(rng)

    def test_voxel_in_bounds(self):
        inside = voxel_in_bounds_zyx(np.array([[0, 0, 0], [4, 5, 6], [5, 0, 0], [-1, 0, 0]]), (5, 6, 7))
        np.testing.assert_array_equal(inside, [True, True, False, False])


class TestDataSet(unittest.TestCase):
    def test_from_array_places_corner_and_origin(self):
        ds = DataSet.from_array(np.zeros((4, 5, 6)), voxel_size=(2.0, 1.0, 0.5), origin=(10.0, 0.0, 0.0))
        self.assertEqual(ds.dim_zyx, (4, 5, 6))
        self.assertEqual((ds.num_frames, ds.num_gates), (1, 1))
        np.testing.assert_allclose(ds.volume.corner, [12.0, 5.0, 2.0])
        np.testing.assert_allclose(ds.space.offset, [10.0, 0.0, 0.0])
        np.testing.assert_allclose(ds.voxel_center(0, 0, 0), [11.0, 0.5, 0.25])

    def test_values(self):
        ds = DataSet.from_array(np.zeros((2, 3, 3, 3), dtype=np.float32))
        ds.set_value((1, 0, 2, 1, 0), 4.0)
        self.assertEqual(ds.get_value((1, 0, 2, 1, 0)), 4.0)
        self.assertEqual(ds.plane(1, 0)[2, 1, 0], 4.0)

    def test_voxel_size_must_be_positive(self):
        with self.assertRaises(ValueError):
            DataSet.from_array(np.zeros((2, 2, 2)), voxel_size=(1.0, 0.0, 1.0))

    def test_equality_is_identity(self):
        ds = DataSet.from_array(np.zeros((2, 2, 2)))
        other = DataSet.from_array(np.zeros((2, 2, 2)))
        self.assertTrue(ds == ds)
        self.assertFalse(ds == other)
        self.assertNotEqual(ds, other)
