"""
Keyframe curves for one scalar field.

Every frame starts out as a keyframe. Removing a keyframe re-fills the frames
between its neighbouring keyframes with a cubic Hermite segment whose end
slopes come from the keyframes' Bezier handles. Handles are points in
(frame, value) space:

    auto          Slope estimated from the adjacent frames; never stored
    auto_clamped  Auto handle with its value clamped between the keyframe
                  and the neighbouring keyframe, so the curve never overshoots
    free          Both handles placed independently
    aligned       Moving one handle mirrors the other through the keyframe
    vector        Handles point at the neighbouring keyframes
"""

import logging
from dataclasses import dataclass, replace
from typing import NamedTuple

import numpy as np

logger = logging.getLogger(__name__)

# Smallest handle reach along the frame axis
HANDLE_MIN_DELTA = 1e-3
HANDLE_DEFAULT_SPAN = 1.0 / 3.0

HANDLE_AUTO = "auto"
HANDLE_AUTO_CLAMPED = "auto_clamped"
HANDLE_FREE = "free"
HANDLE_ALIGNED = "aligned"
HANDLE_VECTOR = "vector"
HANDLE_TYPES = (HANDLE_AUTO, HANDLE_AUTO_CLAMPED, HANDLE_FREE, HANDLE_ALIGNED, HANDLE_VECTOR)

DIRECTIONS = ("in", "out")


class HandlePoint(NamedTuple):
    x: float
    y: float


@dataclass
class KeyframeHandle:
    """In/out Bezier handles of one keyframe."""
    in_point: HandlePoint
    out_point: HandlePoint
    type: str = HANDLE_AUTO

    def point(self, direction):
        return self.in_point if direction == "in" else self.out_point

    def with_point(self, direction, point):
        if direction == "in":
            return replace(self, in_point=point)
        return replace(self, out_point=point)


def _check_direction(direction):
    if direction not in DIRECTIONS:
        raise ValueError(f"Handle direction must be 'in' or 'out', got {direction!r}")


def _check_type(handle_type):
    if handle_type not in HANDLE_TYPES:
        raise ValueError(f"Unknown handle type {handle_type!r} (expected one of {HANDLE_TYPES})")


def clamp_handle_point(point, frame_index, direction, frame_count):
    """
    Keep a handle inside the clip and on its own side of the keyframe.

    x is clamped to [0, frame_count - 1]; an ``in`` handle then sits at least
    HANDLE_MIN_DELTA before the keyframe and an ``out`` handle at least
    HANDLE_MIN_DELTA after it.
    """
    _check_direction(direction)
    x = min(max(float(point[0]), 0.0), float(max(frame_count - 1, 0)))
    if direction == "in" and x > frame_index - HANDLE_MIN_DELTA:
        x = frame_index - HANDLE_MIN_DELTA
    if direction == "out" and x < frame_index + HANDLE_MIN_DELTA:
        x = frame_index + HANDLE_MIN_DELTA
    return HandlePoint(x, float(point[1]))


def estimate_slope(values, index):
    """Central difference over the adjacent frames, or None for a single frame."""
    n = len(values)
    prev_idx = max(0, index - 1)
    next_idx = min(n - 1, index + 1)
    if prev_idx >= next_idx:
        return None
    return (values[next_idx] - values[prev_idx]) / (next_idx - prev_idx)


def slope_from_handle(frame_index, value, point, direction):
    """Curve slope at a keyframe implied by one of its handles."""
    _check_direction(direction)
    if direction == "out":
        dx = max(HANDLE_MIN_DELTA, point[0] - frame_index)
        dy = point[1] - value
    else:
        dx = max(HANDLE_MIN_DELTA, frame_index - point[0])
        dy = value - point[1]
    return dy / dx


def hermite_fill(values, start, end, start_slope, end_slope):
    """
    Overwrite ``values[start + 1:end]`` with a cubic Hermite segment.

    The segment runs from ``values[start]`` to ``values[end]`` with the given
    end slopes (value per frame). Segments spanning fewer than two frames
    are left alone.

    Args:
        values: Float numpy array, modified in place
        start: First keyframe index
        end: Second keyframe index

    Returns:
        ``values``
    """
    span = end - start
    if span <= 1:
        return values
    t = (np.arange(start + 1, end) - start) / span
    t2 = t * t
    t3 = t2 * t
    h00 = 2 * t3 - 3 * t2 + 1
    h10 = t3 - 2 * t2 + t
    h01 = -2 * t3 + 3 * t2
    h11 = t3 - t2
    p0 = values[start]
    p1 = values[end]
    values[start + 1:end] = h00 * p0 + h10 * start_slope * span + h01 * p1 + h11 * end_slope * span
    return values


class KeyframeTrack:
    """
    Keyframe flags and handles of one field, indexed by frame.

    Values are not stored here; every operation takes the field's values,
    works on a float copy and returns it.
    """

    def __init__(self, frame_count):
        self.frame_count = int(frame_count)
        # Frames that are not keyframes
        self.ignored = set()
        # Stored handles; auto handles are computed on demand
        self.handles = {}

    def _values(self, values):
        values = np.array(values, dtype=np.float64)
        if values.shape != (self.frame_count,):
            raise ValueError(f"Expected {self.frame_count} values, got shape {values.shape}")
        return values

    def _check_frame(self, index):
        if not 0 <= index < self.frame_count:
            raise IndexError(f"Frame {index} out of range for {self.frame_count} frames")

    def _check_keyframe(self, index):
        self._check_frame(index)
        if index in self.ignored:
            raise ValueError(f"Frame {index} is not a keyframe")

    def keyframe_indices(self):
        return [i for i in range(self.frame_count) if i not in self.ignored]

    def is_keyframe(self, index):
        return 0 <= index < self.frame_count and index not in self.ignored

    def neighbors(self, index):
        """Nearest keyframes strictly before and after ``index`` (None where absent)."""
        prev_idx = next((i for i in range(index - 1, -1, -1) if i not in self.ignored), None)
        next_idx = next((i for i in range(index + 1, self.frame_count) if i not in self.ignored), None)
        return prev_idx, next_idx

    # Handles

    def _clamp(self, point, index, direction):
        return clamp_handle_point(point, index, direction, self.frame_count)

    def _auto_handle(self, values, index):
        value = values[index]
        prev_idx, next_idx = self.neighbors(index)
        slope = estimate_slope(values, index)
        if slope is None:
            slope = 0.0

        if next_idx is not None:
            span = max(HANDLE_MIN_DELTA, (next_idx - index) / 3.0)
            out_point = HandlePoint(index + span, value + slope * span)
        else:
            out_point = HandlePoint(index + HANDLE_DEFAULT_SPAN, value)
        if prev_idx is not None:
            span = max(HANDLE_MIN_DELTA, (index - prev_idx) / 3.0)
            in_point = HandlePoint(index - span, value - slope * span)
        else:
            in_point = HandlePoint(index - HANDLE_DEFAULT_SPAN, value)

        return KeyframeHandle(
            self._clamp(in_point, index, "in"),
            self._clamp(out_point, index, "out"),
            HANDLE_AUTO,
        )

    def _auto_clamped_handle(self, values, index):
        handle = self._auto_handle(values, index)
        value = values[index]
        for direction, neighbor in zip(DIRECTIONS, self.neighbors(index)):
            if neighbor is None:
                continue
            low, high = sorted((values[neighbor], value))
            point = handle.point(direction)
            clamped = HandlePoint(point.x, min(max(point.y, low), high))
            handle = handle.with_point(direction, self._clamp(clamped, index, direction))
        handle.type = HANDLE_AUTO_CLAMPED
        return handle

    def handle(self, values, index):
        """
        Handle of a keyframe: the stored one, else a freshly computed auto handle.

        Returns:
            KeyframeHandle, or None if ``index`` is not a keyframe
        """
        if not self.is_keyframe(index):
            return None
        stored = self.handles.get(index)
        if stored is not None:
            return replace(stored)
        return self._auto_handle(self._values(values), index)

    # Segments

    def _apply_segment(self, values, start, end):
        if start is None or end is None or end - start <= 1:
            return
        span = end - start
        linear = (values[end] - values[start]) / span
        start_handle = self.handle(values, start)
        end_handle = self.handle(values, end)
        start_slope = (
            slope_from_handle(start, values[start], start_handle.out_point, "out")
            if start_handle is not None else linear
        )
        end_slope = (
            slope_from_handle(end, values[end], end_handle.in_point, "in")
            if end_handle is not None else linear
        )
        hermite_fill(values, start, end, start_slope, end_slope)

    def _apply_around(self, values, index):
        prev_idx, next_idx = self.neighbors(index)
        self._apply_segment(values, prev_idx, index)
        self._apply_segment(values, index, next_idx)

    def refresh(self, values):
        """Re-fill every segment between consecutive keyframes."""
        values = self._values(values)
        keyframes = self.keyframe_indices()
        for start, end in zip(keyframes, keyframes[1:]):
            self._apply_segment(values, start, end)
        return values

    # Keyframe edits

    def add_keyframe(self, values, index):
        """Make ``index`` a keyframe and re-fill the segments on both sides."""
        self._check_frame(index)
        values = self._values(values)
        if index not in self.ignored:
            return values
        self.ignored.discard(index)
        self._apply_around(values, index)
        logger.debug("Added keyframe %d", index)
        return values

    def remove_keyframe(self, values, index):
        """Drop the keyframe at ``index`` and bridge its neighbours with one segment."""
        self._check_frame(index)
        values = self._values(values)
        if index in self.ignored:
            return values
        prev_idx, next_idx = self.neighbors(index)
        self.ignored.add(index)
        self.handles.pop(index, None)
        self._apply_segment(values, prev_idx, next_idx)
        logger.debug("Removed keyframe %d (segment %s..%s)", index, prev_idx, next_idx)
        return values

    def smooth_delete(self, values, start, end=None):
        """
        Remove every keyframe in ``[start, end]`` and smooth over the gap.

        Args:
            values: Field values, one per frame
            start: First frame of the range
            end: Last frame of the range (default: ``start``); the bounds may
                come in either order and are clamped to the clip

        Returns:
            Tuple (range_start, range_end, new_values) where the range spans
            the surviving keyframes around the deleted ones
        """
        if self.frame_count <= 0:
            raise ValueError("Cannot delete keyframes from an empty track")
        end = start if end is None else end
        safe_start = max(0, min(start, end))
        safe_end = min(self.frame_count - 1, max(start, end))
        keyframes = self.keyframe_indices()
        prev_idx = next((k for k in reversed(keyframes) if k < safe_start), None)
        next_idx = next((k for k in keyframes if k > safe_end), None)

        values = self._values(values)
        for i in range(safe_start, safe_end + 1):
            if self.is_keyframe(i):
                values = self.remove_keyframe(values, i)

        range_start = safe_start if prev_idx is None else prev_idx
        range_end = safe_end if next_idx is None else next_idx
        logger.debug("Smooth-deleted keyframes %d..%d", safe_start, safe_end)
        return range_start, range_end, values

    def set_handle(self, values, index, handle):
        """Store ``handle`` (clamped) for a keyframe and re-fill both segments."""
        self._check_keyframe(index)
        _check_type(handle.type)
        values = self._values(values)
        self.handles[index] = KeyframeHandle(
            self._clamp(handle.in_point, index, "in"),
            self._clamp(handle.out_point, index, "out"),
            handle.type,
        )
        self._apply_around(values, index)
        return values

    def move_handle(self, values, index, direction, point, handle_type=None):
        """
        Drag one handle of a keyframe to ``point``.

        Auto handles become free once dragged. An aligned handle mirrors the
        opposite one through the keyframe; a vector handle snaps both handles
        toward the neighbouring keyframes.

        Args:
            values: Field values, one per frame
            index: Keyframe index
            direction: "in" or "out"
            point: New (frame, value) position of the handle
            handle_type: Type to switch to (default: keep, auto types become free)

        Returns:
            New values
        """
        self._check_keyframe(index)
        _check_direction(direction)
        values = self._values(values)
        handle = self.handle(values, index)
        if handle_type is None:
            handle_type = HANDLE_FREE if handle.type in (HANDLE_AUTO, HANDLE_AUTO_CLAMPED) else handle.type
        _check_type(handle_type)

        value = values[index]
        opposite = "out" if direction == "in" else "in"
        moved = self._clamp(point, index, direction)
        handle = handle.with_point(direction, moved)

        if handle_type == HANDLE_ALIGNED:
            mirror = HandlePoint(2 * index - moved.x, 2 * value - moved.y)
            handle = handle.with_point(opposite, self._clamp(mirror, index, opposite))
        elif handle_type == HANDLE_VECTOR:
            prev_idx, next_idx = self.neighbors(index)
            if direction == "out":
                target = next_idx if next_idx is not None else index + 1
            else:
                target = prev_idx if prev_idx is not None else index - 1
            if 0 <= target < self.frame_count:
                dx = max(HANDLE_MIN_DELTA, abs(target - index))
                dy = values[target] - value
                sign = 1 if direction == "out" else -1
                handle = handle.with_point(
                    direction, self._clamp((index + sign * dx, value + dy), index, direction)
                )
                handle = handle.with_point(
                    opposite, self._clamp((index - sign * dx, value - dy), index, opposite)
                )

        handle.type = handle_type
        self.handles[index] = handle
        prev_idx, next_idx = self.neighbors(index)
        if handle_type in (HANDLE_ALIGNED, HANDLE_VECTOR) or direction == "in":
            self._apply_segment(values, prev_idx, index)
        if handle_type in (HANDLE_ALIGNED, HANDLE_VECTOR) or direction == "out":
            self._apply_segment(values, index, next_idx)
        return values

    def set_handle_type(self, values, index, handle_type):
        """Switch a keyframe's handle type, recomputing auto handles."""
        self._check_keyframe(index)
        _check_type(handle_type)
        values = self._values(values)
        if handle_type == HANDLE_AUTO:
            self.handles.pop(index, None)
        elif handle_type == HANDLE_AUTO_CLAMPED:
            self.handles[index] = self._auto_clamped_handle(values, index)
        else:
            handle = self.handle(values, index)
            handle.type = handle_type
            return self.set_handle(values, index, handle)
        self._apply_around(values, index)
        return values

    # Frame structure

    def _shift_handle(self, handle, new_index, offset):
        return KeyframeHandle(
            self._clamp((handle.in_point.x + offset, handle.in_point.y), new_index, "in"),
            self._clamp((handle.out_point.x + offset, handle.out_point.y), new_index, "out"),
            handle.type,
        )

    def insert_frame(self, index):
        """Open a keyframe slot at ``index``, shifting later frames up by one."""
        if not 0 <= index <= self.frame_count:
            raise IndexError(f"Insert position {index} out of range for {self.frame_count} frames")
        self.frame_count += 1
        self.ignored = {i + 1 if i >= index else i for i in self.ignored}
        self.handles = {
            (i + 1 if i >= index else i): (self._shift_handle(h, i + 1, 1) if i >= index else h)
            for i, h in self.handles.items()
        }

    def delete_frame(self, index):
        """Drop frame ``index``, shifting later frames down by one."""
        self._check_frame(index)
        self.frame_count -= 1
        self.ignored = {i - 1 if i > index else i for i in self.ignored if i != index}
        self.handles = {
            (i - 1 if i > index else i): (self._shift_handle(h, i - 1, -1) if i > index else h)
            for i, h in self.handles.items() if i != index
        }
