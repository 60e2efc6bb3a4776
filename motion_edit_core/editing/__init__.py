"""
Frame-sequence edits: ripple adjustment, trajectory twist, path reorientation
and keyframe curves.
"""

from .keyframes import (
    HANDLE_TYPES,
    HandlePoint,
    KeyframeHandle,
    KeyframeTrack,
    hermite_fill,
)
from .path_transform import PathFrame, transform_path
from .ripple import (
    hann_weight,
    ripple_adjust,
    ripple_adjust_euler_object,
    ripple_adjust_range,
    ripple_window,
    spread_count,
)
from .twist import rotate_trajectory, rotate_trajectory_euler, smoothstep

__all__ = [
    "HANDLE_TYPES",
    "HandlePoint",
    "KeyframeHandle",
    "KeyframeTrack",
    "hermite_fill",
    "PathFrame",
    "transform_path",
    "hann_weight",
    "ripple_adjust",
    "ripple_adjust_euler_object",
    "ripple_adjust_range",
    "ripple_window",
    "spread_count",
    "rotate_trajectory",
    "rotate_trajectory_euler",
    "smoothstep",
]
