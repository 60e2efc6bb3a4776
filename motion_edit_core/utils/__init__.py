"""
Math and kinematics utilities.

This module provides:
    - quat_utils: Quaternion math, (x, y, z, w) order
    - euler_utils: Euler angle conversion for all six rotation orders, Euler unwrapping
    - fk_utils: Forward kinematics and its inverse over a joint tree
    - bvh_loader: BVH file reading into skeleton metadata and frames
      (import from motion_edit_core.utils.bvh_loader; it builds MotionDocument)
"""

from .quat_utils import (
    quat_mul,
    quat_conj,
    quat_inverse,
    quat_normalize,
    quat_slerp,
    rotate_vec_by_quat,
)
from .euler_utils import (
    euler_to_quat,
    quat_to_euler,
    rotate_vec_by_euler,
    relative_euler,
    unwrap_euler_sequence,
)
from .fk_utils import (
    compute_global_rotation,
    compute_global_quaternion,
    compute_local_rotation,
    compute_joint_positions,
)

__all__ = [
    "quat_mul",
    "quat_conj",
    "quat_inverse",
    "quat_normalize",
    "quat_slerp",
    "rotate_vec_by_quat",
    "euler_to_quat",
    "quat_to_euler",
    "rotate_vec_by_euler",
    "relative_euler",
    "unwrap_euler_sequence",
    "compute_global_rotation",
    "compute_global_quaternion",
    "compute_local_rotation",
    "compute_joint_positions",
]
