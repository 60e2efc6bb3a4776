"""Tests for Euler angle conversion and unwrapping."""
import numpy as np
import pytest

from motion_edit_core.utils.euler_utils import (
    ROTATION_ORDERS,
    as_euler,
    check_rotation_order,
    euler_matrix,
    euler_to_dict,
    euler_to_quat,
    normalize_rotation_order,
    quat_to_euler,
    relative_euler,
    rotate_vec_by_euler,
    unwrap_euler_sequence,
)
from motion_edit_core.utils.fk_utils import local_rotation_quat
from motion_edit_core.utils.quat_utils import quat_mul

from conftest import assert_quat_close

# Middle-axis angles stay inside (-90, 90) so the decomposition is unique
SAMPLE_EULERS = [
    [30.0, -20.0, 45.0],
    [-60.0, 70.0, -80.0],
    [10.0, -35.0, 60.0],
    [0.0, 0.0, 0.0],
]


@pytest.mark.parametrize("order", ROTATION_ORDERS)
@pytest.mark.parametrize("euler", SAMPLE_EULERS)
def test_round_trip_all_orders(order, euler):
    q = euler_to_quat(euler, order)
    np.testing.assert_allclose(quat_to_euler(q, order), euler, atol=1e-9)


@pytest.mark.parametrize("order", ROTATION_ORDERS)
def test_order_is_intrinsic_composition(order):
    e = [25.0, -40.0, 65.0]
    assert_quat_close(euler_to_quat(e, order), local_rotation_quat(np.array(e), order))


def test_single_axis_quaternion():
    s = np.sqrt(0.5)
    np.testing.assert_allclose(euler_to_quat([90.0, 0.0, 0.0], "XYZ"), [s, 0.0, 0.0, s], atol=1e-12)
    np.testing.assert_allclose(euler_to_quat([0.0, 0.0, 90.0], "ZYX"), [0.0, 0.0, s, s], atol=1e-12)


def test_lowercase_order_accepted():
    np.testing.assert_allclose(euler_to_quat([10, 20, 30], "zxy"), euler_to_quat([10, 20, 30], "ZXY"))


def test_unknown_order_raises():
    with pytest.raises(ValueError):
        euler_to_quat([0, 0, 0], "XXY")
    with pytest.raises(ValueError):
        check_rotation_order("ABC")


def test_normalize_rotation_order_falls_back(caplog):
    assert normalize_rotation_order("yzx") == "YZX"
    assert normalize_rotation_order(None) == "XYZ"
    with caplog.at_level("WARNING"):
        assert normalize_rotation_order("QQQ") == "XYZ"
    assert "QQQ" in caplog.text


def test_rotate_vec_by_euler_about_z():
    np.testing.assert_allclose(rotate_vec_by_euler([1.0, 0.0, 0.0], [0.0, 0.0, 90.0]), [0.0, 1.0, 0.0], atol=1e-12)


def test_rotate_vec_by_euler_applies_x_first():
    # Rz @ Rx: (0,1,0) -> (0,0,1) -> (0,0,1); Rx @ Rz would give (-1,0,0)
    np.testing.assert_allclose(rotate_vec_by_euler([0.0, 1.0, 0.0], [90.0, 0.0, 90.0]), [0.0, 0.0, 1.0], atol=1e-12)


def test_euler_matrix_is_orthonormal():
    m = euler_matrix([12.0, -70.0, 133.0])
    np.testing.assert_allclose(m @ m.T, np.eye(3), atol=1e-12)
    assert np.linalg.det(m) == pytest.approx(1.0)


def test_as_euler_adapters():
    np.testing.assert_array_equal(as_euler({"x": 1, "y": 2, "z": 3}), [1, 2, 3])
    np.testing.assert_array_equal(as_euler({"x": "a", "z": float("nan")}), [0, 0, 0])
    assert euler_to_dict([1, 2, 3]) == {"x": 1.0, "y": 2.0, "z": 3.0}
    with pytest.raises(ValueError):
        as_euler([1, 2])


class TestRelativeEuler:

    def test_same_axis(self):
        np.testing.assert_allclose(relative_euler([0, 0, 75], [0, 0, 30]), [0, 0, 45], atol=1e-9)

    def test_composes_back_to_target(self):
        base = [20.0, -10.0, 35.0]
        target = [-15.0, 40.0, 5.0]
        delta = relative_euler(target, base, order="YZX")
        recomposed = quat_mul(euler_to_quat(base), euler_to_quat(delta, "YZX"))
        assert_quat_close(recomposed, euler_to_quat(target))

    def test_identity_when_equal(self):
        np.testing.assert_allclose(relative_euler([10, 20, 30], [10, 20, 30]), [0, 0, 0], atol=1e-9)


class TestUnwrap:

    def test_removes_wrap_jump(self):
        seq = [[0.0, 0.0, 170.0], [0.0, 0.0, -175.0], [0.0, 0.0, -160.0]]
        np.testing.assert_allclose(
            unwrap_euler_sequence(seq, "XYZ"),
            [[0.0, 0.0, 170.0], [0.0, 0.0, 185.0], [0.0, 0.0, 200.0]],
            atol=1e-6,
        )

    def test_other_order(self):
        seq = [[0.0, 0.0, 170.0], [0.0, 0.0, -175.0]]
        np.testing.assert_allclose(
            unwrap_euler_sequence(seq, "ZXY"),
            [[0.0, 0.0, 170.0], [0.0, 0.0, 185.0]],
            atol=1e-6,
        )

    def test_preserves_rotations(self):
        seq = np.array([
            [10.0, 20.0, 170.0],
            [15.0, 25.0, -178.0],
            [-170.0, 30.0, 175.0],
            [178.0, -10.0, -100.0],
        ])
        out = unwrap_euler_sequence(seq, "XYZ")
        for before, after in zip(seq, out):
            # XYZ order here matches the Rz @ Ry @ Rx matrix
            np.testing.assert_allclose(euler_matrix(after), euler_matrix(before), atol=1e-9)

    def test_consecutive_frames_stay_close(self):
        seq = np.array([[0.0, 0.0, a] for a in (150.0, 179.0, -179.0, -150.0, -120.0)])
        out = unwrap_euler_sequence(seq, "XYZ")
        assert np.all(np.abs(np.diff(out, axis=0)) < 90.0)

    def test_radians(self):
        seq = np.radians([[0.0, 0.0, 170.0], [0.0, 0.0, -175.0]])
        out = unwrap_euler_sequence(seq, "XYZ", degrees=False)
        np.testing.assert_allclose(out[1, 2], np.radians(185.0), atol=1e-9)

    def test_empty(self):
        assert unwrap_euler_sequence([], "XYZ").shape == (0, 3)
