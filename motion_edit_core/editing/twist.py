"""
Trajectory rotation ("twist the wire").

One frame of a root trajectory is pinned in place and re-oriented. The
rotation spreads to the following frames with a smoothstep falloff over
``decay_distance`` frames, rotating their positions about the pinned point.
Past the falloff window the rest of the path follows as one rigid body,
with its translation solved so the path stays continuous at the window edge.
"""

import logging

import numpy as np

from ..utils.euler_utils import as_euler, euler_matrix
from ..utils.quat_utils import (
    QUAT_NORM_SQ_EPS,
    as_quat,
    quat_identity,
    quat_inverse,
    quat_mul,
    quat_mul_batch,
    quat_mul_vec_batch,
    quat_normalize,
    quat_normalize_batch,
    quat_slerp,
    rotate_vec_by_quat,
)

logger = logging.getLogger(__name__)

QUAT_TRAJECTORY_ROWS = 7
EULER_TRAJECTORY_ROWS = 6


def smoothstep(s):
    """``s^2 * (3 - 2s)`` with s clamped to [0, 1]; flat at both ends."""
    s = min(max(float(s), 0.0), 1.0)
    return s * s * (3.0 - 2.0 * s)


def _check_decay(decay_distance):
    """Decay distance as a float; fractional distances are kept."""
    decay = float(decay_distance)
    if not np.isfinite(decay) or decay < 0:
        raise ValueError(f"decay_distance must be a finite value >= 0, got {decay_distance}")
    return decay


def _check_buffer(trajectory, rows, start_frame_index):
    try:
        buf = np.array(trajectory, dtype=np.float64)
    except ValueError as e:
        raise ValueError(f"Trajectory arrays must all have the same length: {e}") from e
    if buf.ndim != 2:
        raise ValueError(f"Trajectory must be {rows} parallel arrays, got shape {buf.shape}")
    if buf.shape[0] != rows:
        raise ValueError(f"Expected {rows} trajectory arrays, got {buf.shape[0]}")
    n = buf.shape[1]
    if not 0 <= int(start_frame_index) < n:
        raise IndexError(f"start_frame_index {start_frame_index} out of bounds for {n} frames")
    return buf


def _unit_quat(q, name):
    q = as_quat(q)
    norm_sq = float(np.dot(q, q))
    if not np.isfinite(norm_sq) or norm_sq <= QUAT_NORM_SQ_EPS:
        logger.warning("Degenerate %s %s, using identity", name, q.tolist())
    return quat_normalize(q)


def _sides(n, start, propagate_backward):
    """Frame index arrays walking away from ``start``."""
    sides = [np.arange(start + 1, n)]
    if propagate_backward:
        sides.append(np.arange(start - 1, -1, -1))
    return sides


def rotate_trajectory(trajectory, start_frame_index, start_quat, current_quat,
                      decay_distance, propagate_backward=False):
    """
    Twist a quaternion trajectory about a pinned frame.

    Args:
        trajectory: 7 parallel arrays ``[x, y, z, qx, qy, qz, qw]``
        start_frame_index: Pinned frame
        start_quat: Pinned frame's orientation at gesture start (x, y, z, w)
        current_quat: Orientation requested now (x, y, z, w)
        decay_distance: Frames over which the rotation fades in; 0 means the
            full rigid transform starts at the next frame
        propagate_backward: Also twist the frames before the pinned one

    Returns:
        New (7, N) numpy array
    """
    decay_distance = _check_decay(decay_distance)
    buf = _check_buffer(trajectory, QUAT_TRAJECTORY_ROWS, start_frame_index)
    out = buf.copy()
    n = buf.shape[1]
    start = int(start_frame_index)

    q_start = _unit_quat(start_quat, "start_quat")
    q_current = _unit_quat(current_quat, "current_quat")
    # Delta in the start pose's frame, then re-expressed in world frame
    delta_local = quat_mul(quat_inverse(q_start), q_current)
    delta_world = quat_normalize(quat_mul(quat_mul(q_start, delta_local), quat_inverse(q_start)))

    pivot = buf[0:3, start].copy()
    out[3:7, start] = quat_normalize(quat_mul(delta_world, buf[3:7, start]))

    for side in _sides(n, start, propagate_backward):
        dist = np.abs(side - start)
        window = side[dist <= decay_distance]
        tail = side[dist > decay_distance]

        end_orig = pivot
        end_new = pivot
        for i in window:
            factor = smoothstep(abs(i - start) / decay_distance)
            q_decay = quat_slerp(quat_identity(), delta_world, factor)
            out[0:3, i] = pivot + rotate_vec_by_quat(buf[0:3, i] - pivot, q_decay)
            out[3:7, i] = quat_normalize(quat_mul(q_decay, buf[3:7, i]))
            end_orig = buf[0:3, i]
            end_new = out[0:3, i]

        if tail.size == 0:
            continue
        # Rigid continuation: p' = R p + t, continuous with the window edge
        translation = end_new - rotate_vec_by_quat(end_orig, delta_world)
        q = delta_world[np.newaxis, :]
        out[0:3, tail] = (quat_mul_vec_batch(q, buf[0:3, tail].T) + translation).T
        out[3:7, tail] = quat_normalize_batch(quat_mul_batch(q, buf[3:7, tail].T)).T

    logger.debug("Twisted %d frames around frame %d (decay %g)", n, start, decay_distance)
    return out


def rotate_trajectory_euler(trajectory, start_frame_index, start_euler, current_euler,
                            decay_distance, propagate_backward=False):
    """
    Twist an Euler trajectory about a pinned frame.

    The delta is the per-axis difference ``current_euler - start_euler``
    (degrees). Positions are rotated with the ``Rz @ Ry @ Rx`` matrix of the
    scaled delta; orientations get the scaled delta added.

    Args:
        trajectory: 6 parallel arrays ``[x, y, z, rx, ry, rz]`` (degrees)
        start_frame_index: Pinned frame
        start_euler: Pinned frame's Euler angles at gesture start
        current_euler: Euler angles requested now
        decay_distance: Frames over which the rotation fades in
        propagate_backward: Also twist the frames before the pinned one

    Returns:
        New (6, N) numpy array
    """
    decay_distance = _check_decay(decay_distance)
    buf = _check_buffer(trajectory, EULER_TRAJECTORY_ROWS, start_frame_index)
    out = buf.copy()
    n = buf.shape[1]
    start = int(start_frame_index)

    delta = as_euler(current_euler) - as_euler(start_euler)
    full_rot = euler_matrix(delta)

    pivot = buf[0:3, start].copy()
    out[3:6, start] = buf[3:6, start] + delta

    for side in _sides(n, start, propagate_backward):
        dist = np.abs(side - start)
        window = side[dist <= decay_distance]
        tail = side[dist > decay_distance]

        end_orig = pivot
        end_new = pivot
        for i in window:
            factor = smoothstep(abs(i - start) / decay_distance)
            out[0:3, i] = pivot + euler_matrix(delta * factor) @ (buf[0:3, i] - pivot)
            out[3:6, i] = buf[3:6, i] + delta * factor
            end_orig = buf[0:3, i]
            end_new = out[0:3, i]

        if tail.size == 0:
            continue
        translation = end_new - full_rot @ end_orig
        out[0:3, tail] = full_rot @ buf[0:3, tail] + translation[:, np.newaxis]
        out[3:6, tail] = buf[3:6, tail] + delta[:, np.newaxis]

    logger.debug("Twisted %d Euler frames around frame %d (decay %g)", n, start, decay_distance)
    return out
