"""
Euler angle utilities.

Euler angles are numpy arrays ``[x, y, z]`` in degrees, always keyed by axis
rather than by application order. Rotation orders are intrinsic and
upper-case: ``"XYZ"`` means ``R = Rx @ Ry @ Rz``.
"""

import logging
from collections.abc import Mapping

import numpy as np
from scipy.spatial.transform import Rotation as R

from .quat_utils import quat_inverse, quat_mul, quat_normalize

logger = logging.getLogger(__name__)

ROTATION_ORDERS = ("XYZ", "XZY", "YXZ", "YZX", "ZXY", "ZYX")

_AXIS_INDEX = {"X": 0, "Y": 1, "Z": 2}

# Threshold used by Blender's mat3_normalized_to_eulo2
EULER_HYPOT_EPSILON = 0.0000375

# (axis permutation, parity) per order, as in Blender's RotOrders table
_ORDER_INFO = {
    "XYZ": ((0, 1, 2), 0),
    "XZY": ((0, 2, 1), 1),
    "YXZ": ((1, 0, 2), 1),
    "YZX": ((1, 2, 0), 0),
    "ZXY": ((2, 0, 1), 0),
    "ZYX": ((2, 1, 0), 1),
}


def normalize_rotation_order(order=None):
    """Upper-case a rotation order, falling back to XYZ for unknown values."""
    o = (order or "XYZ").upper()
    if o not in ROTATION_ORDERS:
        logger.warning("Unknown rotation order %r, using XYZ", order)
        return "XYZ"
    return o


def check_rotation_order(order):
    """Return the upper-cased order or raise ValueError."""
    o = str(order).upper()
    if o not in ROTATION_ORDERS:
        raise ValueError(f"Unknown rotation order: {order}. Supported: {list(ROTATION_ORDERS)}")
    return o


def as_euler(e):
    """
    Convert an Euler-like value to a float array [x, y, z] (degrees).

    Accepts a mapping with ``x``, ``y``, ``z`` keys (missing or non-numeric
    values count as 0) or any length-3 sequence.
    """
    if isinstance(e, Mapping):
        return np.array([_num_or_zero(e.get(axis)) for axis in ("x", "y", "z")])
    arr = np.asarray(e, dtype=np.float64).reshape(-1)
    if arr.shape[0] != 3:
        raise ValueError(f"Euler angle must have 3 components, got {arr.shape[0]}")
    return arr.copy()


def euler_to_dict(e):
    """Express Euler angles [x, y, z] as a ``{"x", "y", "z"}`` dict."""
    return {"x": float(e[0]), "y": float(e[1]), "z": float(e[2])}


def _num_or_zero(v):
    if isinstance(v, bool) or not isinstance(v, (int, float, np.floating, np.integer)):
        return 0.0
    v = float(v)
    return v if np.isfinite(v) else 0.0


def euler_to_quat(e, order="XYZ"):
    """
    Convert Euler angles (degrees) to a quaternion.

    Args:
        e: Euler angles [x, y, z] in degrees, keyed by axis
        order: Intrinsic rotation order, one of ROTATION_ORDERS

    Returns:
        Normalized quaternion (x, y, z, w)
    """
    order = check_rotation_order(order)
    e = as_euler(e)
    angles = [e[_AXIS_INDEX[axis]] for axis in order]
    return quat_normalize(R.from_euler(order, angles, degrees=True).as_quat())


def quat_to_euler(q, order="XYZ"):
    """
    Convert a quaternion to Euler angles (degrees) in the given order.

    Args:
        q: Quaternion (x, y, z, w), normalized here first
        order: Intrinsic rotation order, one of ROTATION_ORDERS

    Returns:
        Euler angles [x, y, z] in degrees, keyed by axis
    """
    order = check_rotation_order(order)
    angles = R.from_quat(quat_normalize(q)).as_euler(order, degrees=True)
    e = np.zeros(3)
    for i, axis in enumerate(order):
        e[_AXIS_INDEX[axis]] = angles[i]
    return e


def axis_angle_quat(axis, angle_deg):
    """Quaternion for a rotation of ``angle_deg`` about a principal axis 'X', 'Y' or 'Z'."""
    half = np.radians(angle_deg) / 2.0
    q = np.zeros(4)
    q[_AXIS_INDEX[axis]] = np.sin(half)
    q[3] = np.cos(half)
    return q


def rotate_vec_by_euler(v, e):
    """
    Rotate vector v by the XYZ Euler rotation matrix ``Rz @ Ry @ Rx``.

    Args:
        v: 3D vector
        e: Euler angles [x, y, z] in degrees

    Returns:
        Rotated 3D vector
    """
    return euler_matrix(e) @ np.asarray(v, dtype=np.float64)


def euler_matrix(e):
    """Rotation matrix ``Rz @ Ry @ Rx`` for Euler angles [x, y, z] in degrees."""
    # Lower-case axes are extrinsic in scipy: x first, then y, then z
    return R.from_euler("xyz", as_euler(e), degrees=True).as_matrix()


def relative_euler(target, base, order="XYZ", target_order="XYZ", base_order="XYZ"):
    """
    Euler angles of the rotation taking ``base`` to ``target``.

    Computes ``q_delta = inverse(q_base) * q_target`` so that
    ``q_base * q_delta == q_target``, expressed in ``order``.

    Args:
        target: Target Euler angles (degrees)
        base: Base Euler angles (degrees), the local frame
        order: Rotation order of the result
        target_order: Rotation order of ``target``
        base_order: Rotation order of ``base``

    Returns:
        Euler angles [x, y, z] in degrees
    """
    q_target = euler_to_quat(target, normalize_rotation_order(target_order))
    q_base = euler_to_quat(base, normalize_rotation_order(base_order))
    q_delta = quat_mul(quat_inverse(q_base), q_target)
    return quat_to_euler(q_delta, normalize_rotation_order(order))


# Euler unwinding, after Blender's math_rotation_c.cc

def _euler_order_to_mat3(eul, order):
    (i, j, k), parity = _ORDER_INFO[order]
    if parity:
        ti, tj, th = -eul[i], -eul[j], -eul[k]
    else:
        ti, tj, th = eul[i], eul[j], eul[k]

    ci, cj, ch = np.cos(ti), np.cos(tj), np.cos(th)
    si, sj, sh = np.sin(ti), np.sin(tj), np.sin(th)
    cc, cs = ci * ch, ci * sh
    sc, ss = si * ch, si * sh

    m = np.zeros((3, 3))
    m[i][i] = cj * ch
    m[j][i] = sj * sc - cs
    m[k][i] = sj * cc + ss
    m[i][j] = cj * sh
    m[j][j] = sj * ss + cc
    m[k][j] = sj * cs - sc
    m[i][k] = -sj
    m[j][k] = cj * si
    m[k][k] = cj * ci
    return m


def _mat3_to_euler_pair(m, order):
    (i, j, k), parity = _ORDER_INFO[order]
    eul1 = np.zeros(3)
    eul2 = np.zeros(3)

    cy = np.hypot(m[i][i], m[i][j])
    if cy > EULER_HYPOT_EPSILON:
        eul1[i] = np.arctan2(m[j][k], m[k][k])
        eul1[j] = np.arctan2(-m[i][k], cy)
        eul1[k] = np.arctan2(m[i][j], m[i][i])

        eul2[i] = np.arctan2(-m[j][k], -m[k][k])
        eul2[j] = np.arctan2(-m[i][k], -cy)
        eul2[k] = np.arctan2(-m[i][j], -m[i][i])
    else:
        eul1[i] = np.arctan2(-m[k][j], m[j][j])
        eul1[j] = np.arctan2(-m[i][k], cy)
        eul1[k] = 0.0
        eul2[:] = eul1

    if parity:
        eul1 = -eul1
        eul2 = -eul2
    return eul1, eul2


def _compatible_euler(eul, oldrot):
    eul = eul.copy()
    pi_x2 = 2.0 * np.pi
    deul = np.zeros(3)

    # Correct differences around 360 degrees first
    for i in range(3):
        deul[i] = eul[i] - oldrot[i]
        if deul[i] > np.pi:
            eul[i] -= np.floor(deul[i] / pi_x2 + 0.5) * pi_x2
            deul[i] = eul[i] - oldrot[i]
        elif deul[i] < -np.pi:
            eul[i] += np.floor(-deul[i] / pi_x2 + 0.5) * pi_x2
            deul[i] = eul[i] - oldrot[i]

    # One axis past 180 degrees while the other two stay under 90
    for i, j, k in ((0, 1, 2), (1, 2, 0), (2, 0, 1)):
        if abs(deul[i]) > np.pi and abs(deul[j]) < np.pi / 2 and abs(deul[k]) < np.pi / 2:
            if deul[i] > 0.0:
                eul[i] -= pi_x2
            else:
                eul[i] += pi_x2
    return eul


def _mat3_to_compatible_euler(m, oldrot, order):
    eul1, eul2 = _mat3_to_euler_pair(m, order)
    e1 = _compatible_euler(eul1, oldrot)
    e2 = _compatible_euler(eul2, oldrot)
    d1 = np.sum(np.abs(e1 - oldrot))
    d2 = np.sum(np.abs(e2 - oldrot))
    return e2 if d1 > d2 else e1


def unwrap_euler_sequence(eulers, order="XYZ", degrees=True):
    """
    Make a per-frame Euler angle sequence continuous.

    Every frame is re-derived from its rotation matrix, choosing among the
    equivalent Euler solutions (shifted by whole turns) the one closest to the
    previous frame. Frame 0 is compared against zero rotation. The rotations
    themselves are unchanged; only their Euler representation moves.

    Args:
        eulers: Array-like of shape (N, 3), [x, y, z] per frame
        order: Rotation order shared by all frames
        degrees: Whether ``eulers`` (and the result) are in degrees

    Returns:
        numpy array of shape (N, 3)
    """
    eulers = np.asarray(eulers, dtype=np.float64).reshape(-1, 3)
    if eulers.shape[0] == 0:
        return np.zeros((0, 3))
    order = normalize_rotation_order(order)

    rad = np.radians(eulers) if degrees else eulers
    out = np.zeros_like(rad)
    prev = np.zeros(3)
    for n in range(rad.shape[0]):
        m = _euler_order_to_mat3(rad[n], order)
        prev = _mat3_to_compatible_euler(m, prev, order)
        out[n] = prev
    return np.degrees(out) if degrees else out
