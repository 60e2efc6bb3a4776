"""
Rigid reorientation of a whole root path.
"""

from typing import NamedTuple

import numpy as np

from ..utils.quat_utils import (
    as_quat,
    quat_inverse,
    quat_mul,
    quat_mul_batch,
    quat_mul_vec_batch,
    quat_normalize,
    quat_normalize_batch,
)


class PathFrame(NamedTuple):
    """Root position (3,) and orientation quaternion (x, y, z, w) of one frame."""
    position: np.ndarray
    quaternion: np.ndarray


def transform_path(frames, q_start, q_now):
    """
    Rotate a path about its first frame by the change from q_start to q_now.

    ``q_diff = q_now * inverse(q_start)``; every position is re-centered on
    frame 0, rotated by ``q_diff`` and moved back, and every orientation is
    left-multiplied by ``q_diff``.

    Args:
        frames: Sequence of (position, quaternion) pairs
        q_start: Orientation at gesture start (x, y, z, w)
        q_now: Current orientation (x, y, z, w)

    Returns:
        New list of PathFrame; ``frames`` is not modified
    """
    if len(frames) == 0:
        return []

    q_diff = quat_normalize(quat_mul(as_quat(q_now), quat_inverse(as_quat(q_start))))[np.newaxis, :]
    positions = np.array([np.asarray(p, dtype=np.float64).reshape(3) for p, _ in frames])
    quaternions = np.array([as_quat(q) for _, q in frames])

    origin = positions[0]
    new_positions = origin + quat_mul_vec_batch(q_diff, positions - origin)
    new_quaternions = quat_normalize_batch(quat_mul_batch(q_diff, quaternions))
    return [PathFrame(p, q) for p, q in zip(new_positions, new_quaternions)]
