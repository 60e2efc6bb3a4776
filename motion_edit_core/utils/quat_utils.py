"""
Quaternion utility functions for trajectory editing.

All quaternions are numpy arrays in (x, y, z, w) format (scalar last), the
same order as the ``quater_x/y/z/w`` frame fields and scipy's ``Rotation``.
"""

from collections.abc import Mapping

import numpy as np

# Below this squared norm a quaternion is treated as degenerate
QUAT_NORM_SQ_EPS = 1e-20

# Above this dot product slerp falls back to normalized lerp
SLERP_LERP_THRESHOLD = 0.9995


def quat_identity():
    """Identity quaternion (0, 0, 0, 1)."""
    return np.array([0.0, 0.0, 0.0, 1.0])


def as_quat(q):
    """
    Convert a quaternion-like value to a float array (x, y, z, w).

    Accepts a mapping with ``x``, ``y``, ``z``, ``w`` keys or any length-4
    sequence. Missing mapping keys count as 0 (``w`` defaults to 1).

    Args:
        q: Quaternion-like value

    Returns:
        numpy array of shape (4,)
    """
    if isinstance(q, Mapping):
        w = q.get("w")
        return np.array([
            float(q.get("x") or 0.0),
            float(q.get("y") or 0.0),
            float(q.get("z") or 0.0),
            1.0 if w is None else float(w),
        ])
    arr = np.asarray(q, dtype=np.float64).reshape(-1)
    if arr.shape[0] != 4:
        raise ValueError(f"Quaternion must have 4 components, got {arr.shape[0]}")
    return arr.copy()


def quat_to_dict(q):
    """Express quaternion (x, y, z, w) as a ``{"x", "y", "z", "w"}`` dict."""
    return {"x": float(q[0]), "y": float(q[1]), "z": float(q[2]), "w": float(q[3])}


def quat_mul(q1, q2):
    """
    Multiply two quaternions (Hamilton product, x, y, z, w format).

    The product applies q2 first, then q1.

    Args:
        q1: First quaternion (x, y, z, w)
        q2: Second quaternion (x, y, z, w)

    Returns:
        Product quaternion (x, y, z, w)
    """
    x1, y1, z1, w1 = q1[0], q1[1], q1[2], q1[3]
    x2, y2, z2, w2 = q2[0], q2[1], q2[2], q2[3]
    return np.array([
        w1*x2 + x1*w2 + y1*z2 - z1*y2,
        w1*y2 - x1*z2 + y1*w2 + z1*x2,
        w1*z2 + x1*y2 - y1*x2 + z1*w2,
        w1*w2 - x1*x2 - y1*y2 - z1*z2,
    ])


def quat_conj(q):
    """
    Quaternion conjugate (x, y, z, w format).

    Args:
        q: Quaternion (x, y, z, w)

    Returns:
        Conjugate quaternion (-x, -y, -z, w)
    """
    return np.array([-q[0], -q[1], -q[2], q[3]])


def quat_normalize(q):
    """
    Normalize quaternion (x, y, z, w format).

    Degenerate input (squared norm at or below 1e-20, or non-finite values)
    yields the identity quaternion.

    Args:
        q: Quaternion (x, y, z, w)

    Returns:
        Normalized quaternion
    """
    q = np.asarray(q, dtype=np.float64)
    norm_sq = q[0]*q[0] + q[1]*q[1] + q[2]*q[2] + q[3]*q[3]
    if not np.isfinite(norm_sq) or norm_sq <= QUAT_NORM_SQ_EPS:
        return quat_identity()
    return q / np.sqrt(norm_sq)


def quat_inverse(q):
    """
    Quaternion inverse: conjugate divided by squared norm.

    Equals the conjugate for unit quaternions. Degenerate input yields the
    identity quaternion.
    """
    q = np.asarray(q, dtype=np.float64)
    norm_sq = float(np.dot(q, q))
    if not np.isfinite(norm_sq) or norm_sq <= QUAT_NORM_SQ_EPS:
        return quat_identity()
    return quat_conj(q) / norm_sq


def quat_slerp(q1, q2, t):
    """
    Shortest-path spherical linear interpolation.

    Args:
        q1: Start quaternion (x, y, z, w)
        q2: End quaternion (x, y, z, w)
        t: Interpolation factor, clamped to [0, 1]

    Returns:
        Normalized interpolated quaternion
    """
    t = min(max(float(t), 0.0), 1.0)
    a = quat_normalize(q1)
    b = quat_normalize(q2)

    dot = float(np.dot(a, b))
    # Take the short way around the hypersphere
    if dot < 0.0:
        b = -b
        dot = -dot

    if dot > SLERP_LERP_THRESHOLD:
        return quat_normalize(a + t * (b - a))

    theta_0 = np.arccos(dot)
    theta = theta_0 * t
    sin_theta_0 = np.sin(theta_0)
    s0 = np.cos(theta) - dot * np.sin(theta) / sin_theta_0
    s1 = np.sin(theta) / sin_theta_0
    return quat_normalize(s0 * a + s1 * b)


def rotate_vec_by_quat(v, q):
    """
    Rotate vector v by quaternion q (x, y, z, w format).
    Uses optimized Rodrigues' rotation formula, equivalent to q * (v, 0) * q*.

    Args:
        v: 3D vector
        q: Quaternion (x, y, z, w)

    Returns:
        Rotated 3D vector
    """
    x, y, z, w = q[0], q[1], q[2], q[3]
    # t = 2 * cross(q_xyz, v)
    tx = 2.0 * (y * v[2] - z * v[1])
    ty = 2.0 * (z * v[0] - x * v[2])
    tz = 2.0 * (x * v[1] - y * v[0])
    # result = v + w * t + cross(q_xyz, t)
    return np.array([
        v[0] + w * tx + (y * tz - z * ty),
        v[1] + w * ty + (z * tx - x * tz),
        v[2] + w * tz + (x * ty - y * tx)
    ])


# Batch quaternion operations for whole trajectories

def quat_mul_batch(x, y):
    """
    Performs quaternion multiplication on arrays of quaternions.

    Args:
        x: array of quaternions of shape (..., 4) in (x, y, z, w) format
        y: array of quaternions of shape (..., 4) in (x, y, z, w) format

    Returns:
        The resulting quaternions, x applied after y
    """
    x0, x1, x2, x3 = x[..., 0:1], x[..., 1:2], x[..., 2:3], x[..., 3:4]
    y0, y1, y2, y3 = y[..., 0:1], y[..., 1:2], y[..., 2:3], y[..., 3:4]

    res = np.concatenate([
        x3 * y0 + x0 * y3 + x1 * y2 - x2 * y1,
        x3 * y1 - x0 * y2 + x1 * y3 + x2 * y0,
        x3 * y2 + x0 * y1 - x1 * y0 + x2 * y3,
        x3 * y3 - x0 * y0 - x1 * y1 - x2 * y2], axis=-1)

    return res


def quat_mul_vec_batch(q, x):
    """
    Rotates an array of 3D vectors by an array of quaternions.

    Args:
        q: array of quaternions of shape (..., 4) in (x, y, z, w) format
        x: array of vectors of shape (..., 3)

    Returns:
        The resulting array of rotated vectors
    """
    t = 2.0 * np.cross(q[..., :3], x)
    res = x + q[..., 3][..., np.newaxis] * t + np.cross(q[..., :3], t)
    return res


def quat_normalize_batch(q):
    """Normalize an array of quaternions (..., 4), degenerate rows become identity."""
    q = np.asarray(q, dtype=np.float64)
    norm_sq = np.sum(q * q, axis=-1, keepdims=True)
    bad = ~np.isfinite(norm_sq) | (norm_sq <= QUAT_NORM_SQ_EPS)
    safe = np.where(bad, 1.0, norm_sq)
    out = q / np.sqrt(safe)
    return np.where(bad, quat_identity(), out)
