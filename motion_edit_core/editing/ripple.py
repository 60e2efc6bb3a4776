"""
Ripple adjustment: spread a single-frame edit over neighboring frames.

Influence on each side is controlled by a count:
    -1  full delta all the way to the array edge
     0  no spread
    >0  Hann-window decay over that many frames
"""

import logging

import numpy as np

from ..utils.euler_utils import as_euler

logger = logging.getLogger(__name__)

FULL_SPREAD = -1

# Spread modes as offered by the drag settings panel
MODE_FULL = 0
MODE_DECAY = 1
MODE_NONE = 2
SPREAD_MODES = (MODE_FULL, MODE_DECAY, MODE_NONE)


def hann_weight(distance, count):
    """
    Hann-window weight of an edit at ``distance`` frames away.

    1 at distance <= 0, 0 at distance >= count, and
    ``0.5 * (1 + cos(pi * distance / count))`` in between.
    """
    if distance <= 0:
        return 1.0
    if count <= 0 or distance >= count:
        return 0.0
    return 0.5 * (1.0 + np.cos(np.pi * distance / count))


def _check_count(count, side):
    count = int(count)
    if count < FULL_SPREAD:
        raise ValueError(f"Invalid {side} spread count: {count} (expected -1, 0 or a positive count)")
    return count


def _side_weights(count, avail):
    """Weights for distances 1..avail on one side."""
    if avail <= 0 or count == 0:
        return np.zeros(max(avail, 0))
    if count == FULL_SPREAD:
        return np.ones(avail)
    weights = np.zeros(avail)
    for d in range(1, min(count, avail) + 1):
        weights[d - 1] = hann_weight(d, count)
    return weights


def ripple_weights(n, index, prev_count, next_count):
    """
    Per-frame influence weights of an edit at ``index``.

    Args:
        n: Number of frames
        index: Edited frame, clamped to [0, n - 1]
        prev_count: Spread count toward frame 0
        next_count: Spread count toward the last frame

    Returns:
        Tuple (clamped index, weights of shape (n,))
    """
    prev_count = _check_count(prev_count, "previous")
    next_count = _check_count(next_count, "next")
    weights = np.zeros(n)
    if n == 0:
        return 0, weights
    idx = min(max(int(index), 0), n - 1)
    weights[idx] = 1.0

    left = _side_weights(prev_count, idx)
    # left[d - 1] belongs to idx - d
    weights[:idx] = left[::-1]
    right_avail = n - 1 - idx
    weights[idx + 1:] = _side_weights(next_count, right_avail)
    return idx, weights


def ripple_adjust(values, index, delta, prev_count, next_count):
    """
    Apply ``delta`` at ``index`` and spread it to neighboring frames.

    Args:
        values: Per-frame scalar values
        index: Edited frame, clamped into range
        delta: Change applied in full at ``index``
        prev_count: -1 (full), 0 (none) or Hann window length toward frame 0
        next_count: -1 (full), 0 (none) or Hann window length toward the end

    Returns:
        New numpy array; ``values`` is not modified
    """
    out = np.array(values, dtype=np.float64).reshape(-1)
    if out.shape[0] == 0:
        return out
    _, weights = ripple_weights(out.shape[0], index, prev_count, next_count)
    out += float(delta) * weights
    return out


def _euler_rows(values):
    if isinstance(values, np.ndarray):
        return np.array(values, dtype=np.float64).reshape(-1, 3)
    rows = []
    for i, v in enumerate(values):
        if v is None:
            raise ValueError(f"Missing Euler angles at frame {i}")
        rows.append(as_euler(v))
    return np.array(rows, dtype=np.float64).reshape(-1, 3)


def _mode_count(mode, count, side):
    if mode == MODE_FULL:
        return FULL_SPREAD
    if mode == MODE_DECAY:
        return _check_count(count, side)
    if mode == MODE_NONE:
        return 0
    raise ValueError(f"Unknown {side} spread mode: {mode}. Supported: {list(SPREAD_MODES)}")


def ripple_adjust_euler_object(values, index, current_euler, prev_count, next_count,
                               prev_mode=MODE_DECAY, next_mode=MODE_DECAY):
    """
    Ripple an Euler-angle edit across frames, axis by axis.

    The delta is ``current_euler - values[index]``. Angles are not wrapped,
    so results may leave the [-180, 180] range.

    Args:
        values: (N, 3) array or sequence of ``{"x", "y", "z"}`` mappings, degrees
        index: Edited frame, clamped into range
        current_euler: New Euler angles at ``index``
        prev_count: Hann window length toward frame 0 (used in decay mode)
        next_count: Hann window length toward the end (used in decay mode)
        prev_mode: 0 full delta to the edge, 1 Hann decay, 2 no effect
        next_mode: 0 full delta to the edge, 1 Hann decay, 2 no effect

    Returns:
        New (N, 3) numpy array
    """
    out = _euler_rows(values)
    n = out.shape[0]
    if n == 0:
        return out
    prev = _mode_count(prev_mode, prev_count, "previous")
    nxt = _mode_count(next_mode, next_count, "next")
    idx, weights = ripple_weights(n, index, prev, nxt)
    delta = as_euler(current_euler) - out[idx]
    out += weights[:, np.newaxis] * delta[np.newaxis, :]
    return out


def spread_count(mode, radius):
    """
    Convert a spread mode and radius into a ripple count.

    Mode 0 spreads fully (-1), mode 1 decays over ``radius`` frames and
    mode 2 does not spread (0).
    """
    return _mode_count(mode, radius, "spread")


def ripple_window(n, index, prev_count, next_count):
    """
    Inclusive frame range an edit at ``index`` can touch.

    Returns:
        Tuple (start, end)
    """
    prev_count = _check_count(prev_count, "previous")
    next_count = _check_count(next_count, "next")
    if n <= 0:
        return 0, -1
    idx = min(max(int(index), 0), n - 1)
    start = max(0, idx - (idx if prev_count == FULL_SPREAD else prev_count))
    end = min(n - 1, idx + (n - 1 - idx if next_count == FULL_SPREAD else next_count))
    return start, end


def clamp_to_limits(values, limits):
    """Clip values into ``(lower, upper)``; either bound may be None."""
    values = np.asarray(values, dtype=np.float64)
    if limits is None:
        return values
    lower, upper = limits
    return np.clip(
        values,
        -np.inf if lower is None else lower,
        np.inf if upper is None else upper,
    )


def ripple_adjust_range(values, index, delta, prev_count, next_count, limits=None):
    """
    Ripple only the frames an edit can reach, then clamp to joint limits.

    Args:
        values: Full per-frame series
        index: Edited frame
        delta: Change at ``index``
        prev_count: Spread count toward frame 0
        next_count: Spread count toward the end
        limits: Optional ``(lower, upper)`` joint limits

    Returns:
        Tuple (start, end, adjusted values for frames start..end)
    """
    values = np.asarray(values, dtype=np.float64).reshape(-1)
    start, end = ripple_window(values.shape[0], index, prev_count, next_count)
    if end < start:
        return start, end, np.zeros(0)
    idx = min(max(int(index), 0), values.shape[0] - 1)
    adjusted = ripple_adjust(values[start:end + 1], idx - start, delta, prev_count, next_count)
    logger.debug("Ripple window [%d, %d] around frame %d", start, end, idx)
    return start, end, clamp_to_limits(adjusted, limits)
