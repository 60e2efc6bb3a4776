"""
Forward kinematics utilities for BVH-style joint hierarchies.

This module resolves per-joint global rotations from one frame of local
Euler channels (``<joint>_x/_y/_z`` fields, degrees) and inverts that
relation to recover a local rotation from a requested global one.
"""

import logging

import numpy as np

from .euler_utils import axis_angle_quat, euler_to_quat, quat_to_euler
from .quat_utils import (
    quat_identity,
    quat_inverse,
    quat_mul,
    quat_normalize,
    rotate_vec_by_quat,
)

logger = logging.getLogger(__name__)

GLOBAL_EULER_ORDER = "XYZ"


def _channel_value(frame, key):
    v = frame.get(key) if frame is not None else None
    if isinstance(v, bool) or not isinstance(v, (int, float, np.floating, np.integer)):
        return 0.0
    v = float(v)
    return v if np.isfinite(v) else 0.0


def joint_local_euler(joint_name, frame):
    """
    Read a joint's local Euler channels from a frame.

    Missing or non-numeric fields count as 0.

    Returns:
        Euler angles [x, y, z] in degrees
    """
    return np.array([
        _channel_value(frame, f"{joint_name}_x"),
        _channel_value(frame, f"{joint_name}_y"),
        _channel_value(frame, f"{joint_name}_z"),
    ])


def local_rotation_quat(euler, order):
    """
    Build a joint's local rotation axis by axis in its rotation order.

    Each axis angle becomes a quaternion and they are multiplied in sequence,
    so order "ZXY" gives ``qz * qx * qy``.

    Args:
        euler: Euler angles [x, y, z] in degrees
        order: Rotation order of the joint

    Returns:
        Normalized quaternion (x, y, z, w)
    """
    q = quat_identity()
    for axis in order:
        angle = euler["XYZ".index(axis)]
        q = quat_mul(q, axis_angle_quat(axis, angle))
    return quat_normalize(q)


def _accumulate(chain, frame, metadata):
    acc = quat_identity()
    for idx in chain:
        name = metadata.joint_names[idx]
        local = local_rotation_quat(joint_local_euler(name, frame), metadata.rotation_orders[idx])
        acc = quat_normalize(quat_mul(acc, local))
    return acc


def compute_global_quaternion(joint_name, frame, metadata):
    """
    Compute a joint's accumulated global rotation as a quaternion.

    Args:
        joint_name: Joint name (exact or normalized match)
        frame: Frame dict holding ``<joint>_x/_y/_z`` local channels
        metadata: SkeletonMetadata

    Returns:
        Quaternion (x, y, z, w), or None if metadata or the joint is missing
    """
    if metadata is None:
        return None
    idx = metadata.index_of(joint_name)
    if idx is None:
        logger.debug("Joint %r not found in skeleton", joint_name)
        return None
    return _accumulate(metadata.chain_to(idx), frame, metadata)


def compute_global_rotation(joint_name, frame, metadata):
    """
    Compute a joint's global rotation as XYZ Euler angles.

    Walks the parent chain from the root down to the joint and composes
    ``accumulated = accumulated * local`` for every joint on the path.

    Args:
        joint_name: Joint name (exact or normalized match)
        frame: Frame dict holding ``<joint>_x/_y/_z`` local channels
        metadata: SkeletonMetadata

    Returns:
        Euler angles [x, y, z] in degrees (XYZ order), or None
    """
    q = compute_global_quaternion(joint_name, frame, metadata)
    if q is None:
        return None
    return quat_to_euler(q, GLOBAL_EULER_ORDER)


def compute_local_rotation(joint_name, global_euler, frame, metadata, global_order=GLOBAL_EULER_ORDER):
    """
    Recover a joint's local rotation from a requested global rotation.

    ``local = inverse(parent_accumulated) * global``, where the parent
    accumulation covers every ancestor but not the joint itself. For the root
    the ancestor chain is empty, so local equals global.

    Args:
        joint_name: Joint name (exact or normalized match)
        global_euler: Global Euler angles [x, y, z] in degrees
        frame: Frame dict holding the ancestors' local channels
        metadata: SkeletonMetadata
        global_order: Rotation order of ``global_euler``

    Returns:
        Local Euler angles [x, y, z] in degrees, in the joint's own rotation
        order, or None if metadata or the joint is missing
    """
    if metadata is None:
        return None
    idx = metadata.index_of(joint_name)
    if idx is None:
        logger.debug("Joint %r not found in skeleton", joint_name)
        return None

    parent_acc = _accumulate(metadata.chain_to(idx)[:-1], frame, metadata)
    q_global = euler_to_quat(global_euler, global_order)
    q_local = quat_mul(quat_inverse(parent_acc), q_global)
    return quat_to_euler(q_local, metadata.rotation_orders[idx])


def local_rotation_to_fields(joint_name, euler):
    """Field dict ``{<joint>_x, <joint>_y, <joint>_z}`` for a local Euler rotation."""
    return {
        f"{joint_name}_x": float(euler[0]),
        f"{joint_name}_y": float(euler[1]),
        f"{joint_name}_z": float(euler[2]),
    }


def compute_joint_positions(frame, metadata):
    """
    Compute global joint positions for one frame.

    The root sits at ``global_x/y/z`` (or its offset when the frame has no
    root position); every other joint is placed at
    ``parent_pos + parent_global_rot * offset``.

    Args:
        frame: Frame dict
        metadata: SkeletonMetadata

    Returns:
        Tuple (positions (J, 3), global rotations (J, 4))
    """
    count = metadata.num_joints
    positions = np.zeros((count, 3))
    rotations = np.zeros((count, 4))
    done = [False] * count

    def resolve(i):
        if done[i]:
            return
        name = metadata.joint_names[i]
        local_rot = local_rotation_quat(joint_local_euler(name, frame), metadata.rotation_orders[i])
        parent = metadata.parent_indices[i]
        if parent < 0:
            if all(frame.get(k) is not None for k in ("global_x", "global_y", "global_z")):
                positions[i] = [
                    _channel_value(frame, "global_x"),
                    _channel_value(frame, "global_y"),
                    _channel_value(frame, "global_z"),
                ]
            else:
                positions[i] = metadata.offsets[i]
            rotations[i] = local_rot
        else:
            resolve(parent)
            # Global position = parent_global_pos + parent_global_rot * offset
            positions[i] = positions[parent] + rotate_vec_by_quat(metadata.offsets[i], rotations[parent])
            rotations[i] = quat_normalize(quat_mul(rotations[parent], local_rot))
        done[i] = True

    # Parents may come after their children in the joint list
    for i in range(count):
        resolve(i)

    return positions, rotations
