"""Tests for trajectory twisting."""
import numpy as np
import pytest

from motion_edit_core.editing.twist import (
    rotate_trajectory,
    rotate_trajectory_euler,
    smoothstep,
)
from motion_edit_core.utils.euler_utils import euler_matrix, euler_to_quat
from motion_edit_core.utils.quat_utils import quat_identity, quat_mul, rotate_vec_by_quat

from conftest import assert_quat_close

S45 = np.sqrt(0.5)
QZ90 = np.array([0.0, 0.0, S45, S45])
START = 2


def test_smoothstep():
    assert smoothstep(0.0) == 0.0
    assert smoothstep(1.0) == 1.0
    assert smoothstep(0.5) == pytest.approx(0.5)
    assert smoothstep(0.01) < 0.001
    assert smoothstep(-1.0) == 0.0
    assert smoothstep(2.0) == 1.0


class TestRotateTrajectory:

    @pytest.mark.parametrize("decay", [0, 1, 3, 20])
    def test_pinned_frame_position_unchanged(self, line_trajectory, decay):
        out = rotate_trajectory(line_trajectory, START, quat_identity(), QZ90, decay)
        np.testing.assert_allclose(out[0:3, START], line_trajectory[0:3, START])
        assert_quat_close(out[3:7, START], QZ90)

    def test_zero_decay_is_rigid(self, line_trajectory):
        out = rotate_trajectory(line_trajectory, START, quat_identity(), QZ90, 0)
        for i in range(START + 1, 10):
            np.testing.assert_allclose(out[0:3, i], [2.0, i - START, 0.0], atol=1e-12)
            assert_quat_close(out[3:7, i], QZ90)

    def test_frames_before_start_untouched(self, line_trajectory):
        out = rotate_trajectory(line_trajectory, START, quat_identity(), QZ90, 3)
        np.testing.assert_array_equal(out[:, :START], line_trajectory[:, :START])

    def test_decay_window(self, line_trajectory):
        out = rotate_trajectory(line_trajectory, START, quat_identity(), QZ90, 4)
        # Half way through the window smoothstep(0.5) = 0.5 -> 45 degrees
        r = np.sqrt(2.0)
        np.testing.assert_allclose(out[0:3, 4], [2.0 + r, r, 0.0], atol=1e-9)
        # Window edge gets the full rotation
        np.testing.assert_allclose(out[0:3, 6], [2.0, 4.0, 0.0], atol=1e-9)
        np.testing.assert_allclose(out[0:3, 9], [2.0, 7.0, 0.0], atol=1e-9)

    @pytest.mark.parametrize("decay", [0, 2, 5])
    def test_rigid_tail_is_continuous(self, decay):
        rng = np.random.default_rng(3)
        buf = np.zeros((7, 15))
        buf[0:3] = np.cumsum(rng.normal(size=(3, 15)), axis=1)
        buf[6] = 1.0
        current = euler_to_quat([10.0, -20.0, 35.0])
        out = rotate_trajectory(buf, 4, quat_identity(), current, decay)
        edge = 4 + decay
        for i in range(edge, 14):
            np.testing.assert_allclose(
                out[0:3, i + 1] - out[0:3, i],
                rotate_vec_by_quat(buf[0:3, i + 1] - buf[0:3, i], current),
                atol=1e-9,
            )

    def test_delta_measured_from_start_orientation(self, line_trajectory):
        q_start = euler_to_quat([30.0, 0.0, 0.0])
        current = quat_mul(QZ90, q_start)
        buf = line_trajectory.copy()
        buf[3:7] = q_start[:, np.newaxis]
        out = rotate_trajectory(buf, START, q_start, current, 0)
        for i in range(START, 10):
            assert_quat_close(out[3:7, i], current)

    def test_propagate_backward(self, line_trajectory):
        forward = rotate_trajectory(line_trajectory, START, quat_identity(), QZ90, 0)
        both = rotate_trajectory(line_trajectory, START, quat_identity(), QZ90, 0, propagate_backward=True)
        np.testing.assert_allclose(both[:, START:], forward[:, START:])
        np.testing.assert_allclose(both[0:3, 0], [2.0, -2.0, 0.0], atol=1e-12)
        np.testing.assert_allclose(both[0:3, 1], [2.0, -1.0, 0.0], atol=1e-12)

    def test_identity_twist_changes_nothing(self, line_trajectory):
        out = rotate_trajectory(line_trajectory, START, QZ90, QZ90, 3)
        np.testing.assert_allclose(out, line_trajectory, atol=1e-12)

    def test_accepts_lists_and_does_not_modify_input(self, line_trajectory):
        as_lists = line_trajectory.tolist()
        out = rotate_trajectory(as_lists, START, {"w": 1.0}, QZ90, 2)
        assert out.shape == (7, 10)
        np.testing.assert_array_equal(np.array(as_lists), line_trajectory)

    def test_start_index_out_of_bounds(self, line_trajectory):
        with pytest.raises(IndexError):
            rotate_trajectory(line_trajectory, 10, quat_identity(), QZ90, 0)
        with pytest.raises(IndexError):
            rotate_trajectory(line_trajectory, -1, quat_identity(), QZ90, 0)

    def test_wrong_array_count(self, line_trajectory):
        with pytest.raises(ValueError):
            rotate_trajectory(line_trajectory[:6], START, quat_identity(), QZ90, 0)

    def test_ragged_arrays(self):
        ragged = [[0.0, 1.0]] * 6 + [[1.0]]
        with pytest.raises(ValueError):
            rotate_trajectory(ragged, 0, quat_identity(), QZ90, 0)

    def test_degenerate_quaternion_warns(self, line_trajectory, caplog):
        with caplog.at_level("WARNING"):
            out = rotate_trajectory(line_trajectory, START, [0, 0, 0, 0], quat_identity(), 0)
        assert "Degenerate start_quat" in caplog.text
        np.testing.assert_allclose(out, line_trajectory, atol=1e-12)

    def test_negative_decay(self, line_trajectory):
        with pytest.raises(ValueError):
            rotate_trajectory(line_trajectory, START, quat_identity(), QZ90, -1)

    @pytest.mark.parametrize("decay", [-0.5, -1e-9, float("nan"), float("inf")])
    def test_invalid_decay_rejected(self, line_trajectory, decay):
        with pytest.raises(ValueError):
            rotate_trajectory(line_trajectory, START, quat_identity(), QZ90, decay)

    def test_fractional_decay_is_kept(self, line_trajectory):
        whole = rotate_trajectory(line_trajectory, START, quat_identity(), QZ90, 2)
        fractional = rotate_trajectory(line_trajectory, START, quat_identity(), QZ90, 2.9)
        assert not np.allclose(whole, fractional)
        # Frame 3 sits at 1 / 2.9 of the window
        angle = np.pi / 2 * smoothstep(1 / 2.9)
        np.testing.assert_allclose(fractional[0:3, 3], [2.0 + np.cos(angle), np.sin(angle), 0.0], atol=1e-9)


class TestRotateTrajectoryEuler:

    @pytest.fixture
    def euler_line(self):
        buf = np.zeros((6, 10))
        buf[0] = np.arange(10, dtype=np.float64)
        return buf

    def test_zero_decay(self, euler_line):
        out = rotate_trajectory_euler(euler_line, START, [0, 0, 0], [0, 0, 90], 0)
        np.testing.assert_allclose(out[0:3, START], euler_line[0:3, START])
        np.testing.assert_allclose(out[3:6, START], [0, 0, 90])
        np.testing.assert_allclose(out[0:3, 3], [2.0, 1.0, 0.0], atol=1e-12)
        np.testing.assert_allclose(out[3:6, 9], [0, 0, 90])
        np.testing.assert_array_equal(out[:, :START], euler_line[:, :START])

    def test_decay_window(self, euler_line):
        out = rotate_trajectory_euler(euler_line, START, [0, 0, 0], [0, 0, 90], 4)
        r = np.sqrt(2.0)
        np.testing.assert_allclose(out[0:3, 4], [2.0 + r, r, 0.0], atol=1e-9)
        np.testing.assert_allclose(out[3:6, 4], [0, 0, 45], atol=1e-9)
        np.testing.assert_allclose(out[0:3, 9], [2.0, 7.0, 0.0], atol=1e-9)

    def test_angles_are_not_wrapped(self, euler_line):
        euler_line[5] = 170.0
        out = rotate_trajectory_euler(euler_line, START, [0, 0, 170], [0, 0, 260], 0)
        np.testing.assert_allclose(out[5, START:], 260.0)

    def test_wrong_array_count(self):
        with pytest.raises(ValueError):
            rotate_trajectory_euler(np.zeros((7, 4)), 0, [0, 0, 0], [0, 0, 0], 0)

    def test_propagate_backward(self, euler_line):
        forward = rotate_trajectory_euler(euler_line, START, [0, 0, 0], [0, 0, 90], 0)
        both = rotate_trajectory_euler(euler_line, START, [0, 0, 0], [0, 0, 90], 0, propagate_backward=True)
        np.testing.assert_allclose(both[:, START:], forward[:, START:])
        np.testing.assert_allclose(both[0:3, 0], [2.0, -2.0, 0.0], atol=1e-12)
        np.testing.assert_allclose(both[0:3, 1], [2.0, -1.0, 0.0], atol=1e-12)
        np.testing.assert_allclose(both[5, :START], 90.0)

    def test_propagate_backward_window(self, euler_line):
        out = rotate_trajectory_euler(euler_line, 6, [0, 0, 0], [0, 0, 90], 4, propagate_backward=True)
        # Frame 4 is half way through the backward window -> 45 degrees about frame 6
        r = np.sqrt(2.0)
        np.testing.assert_allclose(out[0:3, 4], [6.0 - r, -r, 0.0], atol=1e-9)
        np.testing.assert_allclose(out[5, 4], 45.0, atol=1e-9)

    @pytest.mark.parametrize("decay", [0, 2, 5])
    def test_rigid_tail_is_continuous(self, decay):
        rng = np.random.default_rng(4)
        buf = np.zeros((6, 15))
        buf[0:3] = np.cumsum(rng.normal(size=(3, 15)), axis=1)
        delta = np.array([10.0, -20.0, 35.0])
        out = rotate_trajectory_euler(buf, 4, [0, 0, 0], delta, decay)
        rot = euler_matrix(delta)
        for i in range(4 + decay, 14):
            np.testing.assert_allclose(out[0:3, i + 1] - out[0:3, i], rot @ (buf[0:3, i + 1] - buf[0:3, i]), atol=1e-9)
            np.testing.assert_allclose(out[3:6, i + 1], delta)

    def test_start_index_out_of_bounds(self, euler_line):
        with pytest.raises(IndexError):
            rotate_trajectory_euler(euler_line, 10, [0, 0, 0], [0, 0, 90], 0)
        with pytest.raises(IndexError):
            rotate_trajectory_euler(euler_line, -1, [0, 0, 0], [0, 0, 90], 0)

    @pytest.mark.parametrize("decay", [-1, -0.5, float("nan")])
    def test_negative_decay(self, euler_line, decay):
        with pytest.raises(ValueError):
            rotate_trajectory_euler(euler_line, START, [0, 0, 0], [0, 0, 90], decay)

    def test_fractional_decay_is_kept(self, euler_line):
        out = rotate_trajectory_euler(euler_line, START, [0, 0, 0], [0, 0, 90], 2.5)
        np.testing.assert_allclose(out[5, 3], 90.0 * smoothstep(1 / 2.5), atol=1e-9)
        np.testing.assert_allclose(out[5, 4], 90.0 * smoothstep(2 / 2.5), atol=1e-9)
        np.testing.assert_allclose(out[5, 5], 90.0)
