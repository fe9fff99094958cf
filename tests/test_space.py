import logging
import math
import unittest

import numpy as np
import pytest

from core.points import BASE_AXES, ONE_POINT, ZERO_POINT, View, Layout, make_orthonormal, rotation_matrix
from core.space import CoordinateSpace


def _frame(offset=(3.0, -2.0, 7.5), vector=(1.0, 2.0, 0.5), theta=0.7):
    space = CoordinateSpace(offset=offset)
    space.rotate_on_vector(vector, theta, (0.0, 0.0, 0.0))
    return space


def _assert_orthonormal(axes):
    np.testing.assert_allclose(axes @ axes.T, np.eye(3), atol=1e-9)


class TestPointConversion(unittest.TestCase):
    def setUp(self):
        self.space = _frame()
        rng = np.random.default_rng(7)
        self.points = rng.uniform(-100.0, 100.0, size=(50, 3))

    def test_round_trip_base_to_space(self):
        back = self.space.s2b(self.space.b2s(self.points))
        np.testing.assert_allclose(back, self.points, atol=1e-9)

    def test_round_trip_space_to_base(self):
        back = self.space.b2s(self.space.s2b(self.points))
        np.testing.assert_allclose(back, self.points, atol=1e-9)

    def test_single_point_shape(self):
        p = self.space.s2b((1.0, 2.0, 3.0))
        self.assertEqual(p.shape, (3,))

    def test_s2s_matches_two_step_conversion(self):
        other = _frame(offset=(-4.0, 0.0, 1.0), vector=(0.0, 1.0, 1.0), theta=-1.2)
        direct = self.space.s2s(other, self.points)
        two_step = other.b2s(self.space.s2b(self.points))
        np.testing.assert_allclose(direct, two_step, atol=1e-9)

    def test_identity_frame_is_transparent(self):
        space = CoordinateSpace()
        np.testing.assert_array_equal(space.b2s(self.points), self.points)


class TestMutators(unittest.TestCase):
    def test_shift_and_set_offset(self):
        space = CoordinateSpace()
        self.assertTrue(space.shift((1.0, 2.0, 3.0)))
        self.assertFalse(space.shift((0.0, 0.0, 0.0)))
        np.testing.assert_array_equal(space.offset, [1.0, 2.0, 3.0])
        self.assertTrue(space.set_offset((5.0, 5.0, 5.0)))
        self.assertFalse(space.set_offset((5.0, 5.0, 5.0)))
        np.testing.assert_allclose(space.offset, [5.0, 5.0, 5.0])

    def test_axes_stay_orthonormal_after_operation_sequence(self):
        space = CoordinateSpace(offset=(1.0, 1.0, 1.0))
        center = np.array([4.0, -3.0, 2.0])
        for i in range(25):
            space.rotate_on_vector((1.0, 0.3 * i, -0.5), 0.37 + 0.1 * i, center)
            space.shift((0.1, -0.2, 0.3))
            if i % 3 == 0:
                space.invert_axis(i % 3, center)
            space.transform(_frame(offset=(0.5, 0.0, -0.5), theta=0.05 * i))
            _assert_orthonormal(space.axes)

    def test_invert_axis_keeps_center_fixed(self):
        space = _frame()
        center = np.array([10.0, -4.0, 6.0])
        before = space.b2s(center)
        space.invert_axis(1, center)
        np.testing.assert_allclose(space.b2s(center), before, atol=1e-9)
        np.testing.assert_allclose(space.s2b(space.b2s(center)), center, atol=1e-9)

    def test_rotate_keeps_center_fixed(self):
        space = _frame()
        center = np.array([-2.0, 8.0, 1.0])
        before = space.b2s(center)
        self.assertTrue(space.rotate_on_vector((0.0, 0.0, 1.0), math.pi / 3, center))
        np.testing.assert_allclose(space.b2s(center), before, atol=1e-9)

    def test_rotate_zero_angle_or_vector_is_noop(self):
        space = _frame()
        reference = space.copy()
        self.assertFalse(space.rotate_on_vector((0.0, 0.0, 1.0), 0.0, (0.0, 0.0, 0.0)))
        self.assertFalse(space.rotate_on_vector((0.0, 0.0, 0.0), 1.0, (0.0, 0.0, 0.0)))
        self.assertTrue(space.equal(reference))

    def test_rotation_direction_is_right_handed(self):
        space = CoordinateSpace()
        space.rotate_on_vector((0.0, 0.0, 1.0), math.pi / 2, (0.0, 0.0, 0.0))
        np.testing.assert_allclose(space.get_axis(0), [0.0, 1.0, 0.0], atol=1e-12)

    def test_transform_axes_holds_center(self):
        space = _frame()
        center = np.array([1.0, 2.0, 3.0])
        before = space.b2s(center)
        space.transform_axes(rotation_matrix((0.0, 1.0, 0.0), 0.4), center)
        np.testing.assert_allclose(space.b2s(center), before, atol=1e-9)
        _assert_orthonormal(space.axes)

    def test_set_axes(self):
        space = _frame()
        target = make_orthonormal(rotation_matrix((1.0, 0.0, 0.0), 0.25))
        self.assertTrue(space.set_axes(target, (0.0, 0.0, 0.0)))
        np.testing.assert_allclose(space.axes, target, atol=1e-9)

    def test_scale_moves_offset_only(self):
        space = CoordinateSpace(offset=(2.0, 4.0, 6.0))
        axes = space.axes
        self.assertTrue(space.scale((0.0, 0.0, 0.0), (2.0, 0.5, 1.0)))
        np.testing.assert_allclose(space.offset, [4.0, 2.0, 6.0])
        np.testing.assert_array_equal(space.axes, axes)
        self.assertFalse(space.scale((0.0, 0.0, 0.0), (1.0, 1.0, 1.0)))


class TestComposition(unittest.TestCase):
    def test_calculate_transform_maps_src_onto_dest(self):
        src = _frame(offset=(1.0, 2.0, 3.0), vector=(0.0, 0.0, 1.0), theta=0.3)
        dest = _frame(offset=(-5.0, 4.0, 0.5), vector=(1.0, 1.0, 0.0), theta=1.1)
        transform = CoordinateSpace.calculate_transform(dest, src)

        moved = src.copy()
        moved.transform(transform)
        self.assertTrue(moved.close(dest, tol=1e-9))

    def test_transform_adds_offset(self):
        space = CoordinateSpace(offset=(1.0, 1.0, 1.0))
        space.transform(CoordinateSpace(offset=(2.0, 3.0, 4.0)))
        np.testing.assert_allclose(space.offset, [3.0, 4.0, 5.0])
        np.testing.assert_allclose(space.axes, BASE_AXES)

    def test_view_spaces_are_orthonormal(self):
        for view in View:
            for layout in Layout:
                _assert_orthonormal(CoordinateSpace.view_space(view, layout).axes)

    def test_coronal_view_axes(self):
        axes = CoordinateSpace.view_space(View.CORONAL).axes
        np.testing.assert_allclose(axes, [[1, 0, 0], [0, 0, -1], [0, 1, 0]], atol=1e-12)


class TestGuardsAndComparison(unittest.TestCase):
    def test_nan_offset_resets_to_zero(self):
        space = CoordinateSpace(offset=(1.0, 2.0, 3.0))
        with self.assertLogs("core.space", level=logging.WARNING):
            space.shift((float("nan"), 0.0, 0.0))
        np.testing.assert_array_equal(space.offset, [0.0, 0.0, 0.0])

    def test_degenerate_axes_reset_to_identity(self):
        with self.assertLogs("core.points", level=logging.WARNING):
            space = CoordinateSpace(axes=np.zeros((3, 3)))
        np.testing.assert_array_equal(space.axes, BASE_AXES)

    def test_equal_and_close(self):
        a = _frame()
        b = a.copy()
        self.assertTrue(a.equal(b))
        self.assertEqual(a, b)
        b.shift((1e-7, 0.0, 0.0))
        self.assertFalse(a.equal(b))
        self.assertTrue(a.close(b))
        self.assertTrue(a.axes_equal(b))

    def test_copy_in_place(self):
        a = _frame()
        b = CoordinateSpace()
        self.assertTrue(b.copy_in_place(a))
        self.assertFalse(b.copy_in_place(a))
        self.assertTrue(b.equal(a))

    def test_accessors_return_copies(self):
        space = CoordinateSpace()
        offset = space.offset
        offset[0] = 99.0
        self.assertEqual(space.offset[0], 0.0)


def test_dim_conversion_of_rotated_frame():
    space = CoordinateSpace()
    space.rotate_on_vector((0.0, 0.0, 1.0), math.pi / 4, (0.0, 0.0, 0.0))
    dim = space.s2b_dim((1.0, 1.0, 1.0))
    assert dim == pytest.approx([math.sqrt(2.0), math.sqrt(2.0), 1.0])
    assert np.all(space.b2s_dim((2.0, 0.0, 3.0)) >= 0.0)


def test_enclosing_corners_identity():
    space = CoordinateSpace(offset=(1.0, 2.0, 3.0))
    lo, hi = space.get_enclosing_corners(((0.0, 0.0, 0.0), (4.0, 5.0, 6.0)), CoordinateSpace())
    assert lo == pytest.approx([1.0, 2.0, 3.0])
    assert hi == pytest.approx([5.0, 7.0, 9.0])


def test_shared_point_constants_are_read_only():
    for constant in (BASE_AXES, ZERO_POINT, ONE_POINT):
        with pytest.raises(ValueError):
            constant[0] = 5.0
    space = CoordinateSpace()
    space.shift((1.0, 0.0, 0.0))
    space.invert_axis(0, (0.0, 0.0, 0.0))
    np.testing.assert_array_equal(ZERO_POINT, [0.0, 0.0, 0.0])
    np.testing.assert_array_equal(BASE_AXES, np.eye(3))
    np.testing.assert_array_equal(CoordinateSpace().offset, [0.0, 0.0, 0.0])
