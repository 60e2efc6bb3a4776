"""Tests for forward kinematics and its inverse."""
import numpy as np
import pytest

from motion_edit_core.utils.euler_utils import euler_to_quat, quat_to_euler
from motion_edit_core.utils.fk_utils import (
    compute_global_quaternion,
    compute_global_rotation,
    compute_joint_positions,
    compute_local_rotation,
    joint_local_euler,
    local_rotation_quat,
    local_rotation_to_fields,
)
from motion_edit_core.utils.quat_utils import quat_mul

from conftest import assert_quat_close


def test_root_global_is_its_local(skeleton, bvh_frame):
    expected = quat_to_euler(euler_to_quat([10.0, 20.0, -15.0], "ZXY"), "XYZ")
    np.testing.assert_allclose(compute_global_rotation("Hips", bvh_frame, skeleton), expected, atol=1e-9)


def test_global_accumulates_down_the_chain(skeleton, bvh_frame):
    q_hips = euler_to_quat([10.0, 20.0, -15.0], "ZXY")
    q_spine = euler_to_quat([5.0, -12.0, 30.0], "XYZ")
    q_head = euler_to_quat([-20.0, 15.0, 8.0], "YZX")
    expected = quat_mul(quat_mul(q_hips, q_spine), q_head)
    assert_quat_close(compute_global_quaternion("Head", bvh_frame, skeleton), expected)


@pytest.mark.parametrize("joint", ["Hips", "Spine", "Head"])
def test_local_inverts_global(skeleton, bvh_frame, joint):
    global_euler = compute_global_rotation(joint, bvh_frame, skeleton)
    local = compute_local_rotation(joint, global_euler, bvh_frame, skeleton)
    np.testing.assert_allclose(local, joint_local_euler(joint, bvh_frame), atol=1e-6)


def test_setting_local_reproduces_requested_global(skeleton, bvh_frame):
    target = np.array([40.0, -25.0, 60.0])
    local = compute_local_rotation("Head", target, bvh_frame, skeleton)
    frame = dict(bvh_frame, **local_rotation_to_fields("Head", local))
    np.testing.assert_allclose(compute_global_rotation("Head", frame, skeleton), target, atol=1e-6)


def test_normalized_joint_name(skeleton, bvh_frame):
    np.testing.assert_allclose(
        compute_global_rotation("SPINE", bvh_frame, skeleton),
        compute_global_rotation("Spine", bvh_frame, skeleton),
    )


def test_unknown_joint_or_missing_metadata(skeleton, bvh_frame):
    assert compute_global_rotation("Tail", bvh_frame, skeleton) is None
    assert compute_global_rotation("Head", bvh_frame, None) is None
    assert compute_local_rotation("Tail", [0, 0, 0], bvh_frame, skeleton) is None
    assert compute_local_rotation("Head", [0, 0, 0], bvh_frame, None) is None


def test_missing_channels_count_as_zero(skeleton):
    np.testing.assert_allclose(compute_global_rotation("Head", {}, skeleton), [0.0, 0.0, 0.0], atol=1e-12)
    np.testing.assert_array_equal(joint_local_euler("Head", {"Head_x": "bad", "Head_y": 3}), [0.0, 3.0, 0.0])


def test_local_rotation_quat_order():
    # ZXY -> qz * qx * qy
    e = np.array([30.0, 45.0, 60.0])
    expected = quat_mul(quat_mul(euler_to_quat([0, 0, 60]), euler_to_quat([30, 0, 0])), euler_to_quat([0, 45, 0]))
    assert_quat_close(local_rotation_quat(e, "ZXY"), expected)


def test_local_rotation_to_fields():
    assert local_rotation_to_fields("Head", [1, 2, 3]) == {"Head_x": 1.0, "Head_y": 2.0, "Head_z": 3.0}


class TestJointPositions:

    def test_rest_pose(self, skeleton):
        frame = {"global_x": 1.0, "global_y": 2.0, "global_z": 3.0}
        positions, rotations = compute_joint_positions(frame, skeleton)
        np.testing.assert_allclose(positions, [[1, 2, 3], [1, 12, 3], [1, 22, 3]], atol=1e-12)
        np.testing.assert_allclose(rotations, np.tile([0, 0, 0, 1], (3, 1)), atol=1e-12)

    def test_root_rotation_moves_children(self, skeleton):
        frame = {"global_x": 1.0, "global_y": 2.0, "global_z": 3.0, "Hips_z": 90.0}
        positions, _ = compute_joint_positions(frame, skeleton)
        np.testing.assert_allclose(positions, [[1, 2, 3], [-9, 2, 3], [-19, 2, 3]], atol=1e-9)

    def test_root_without_position_uses_offset(self):
        from motion_edit_core.skeleton import SkeletonMetadata
        skel = SkeletonMetadata(["Root", "Child"], [-1, 0], [[0, 5, 0], [1, 0, 0]], ["XYZ", "XYZ"])
        positions, _ = compute_joint_positions({}, skel)
        np.testing.assert_allclose(positions, [[0, 5, 0], [1, 5, 0]])

    def test_rotations_match_global_quaternion(self, skeleton, bvh_frame):
        _, rotations = compute_joint_positions(bvh_frame, skeleton)
        for i, name in enumerate(skeleton.joint_names):
            assert_quat_close(rotations[i], compute_global_quaternion(name, bvh_frame, skeleton))
