"""
motion_edit_core - Kinematic trajectory editing for motion-capture and robot motions.

This package provides the numerical core of a motion editor: forward
kinematics over BVH-style joint trees, local/global rotation conversion and
smooth, decaying edits over sequences of frames.

Main pieces:
    - MotionEditor: Applies drag/twist gestures to a motion document
    - parse_motion_json / unparse_motion_json: Motion matrix <-> keyed frames
    - rotate_trajectory / rotate_trajectory_euler: Twist a root path about a pinned frame
    - ripple_adjust / ripple_adjust_euler_object: Spread a single-frame edit
    - compute_global_rotation / compute_local_rotation: FK and its inverse
    - KeyframeTrack: Keyframe flags, Bezier handles and smooth keyframe deletion

Example usage:
    import json
    from motion_edit_core import MotionEditor, parse_motion_json

    with open("motion.json") as f:
        document = parse_motion_json(json.load(f))

    editor = MotionEditor(document)
    editor.begin_root_twist(frame_index=120)
    editor.update_root_twist([0.0, 0.0, 0.3826834, 0.9238795])   # (x, y, z, w)
    editor.end_gesture()

    with open("motion_edited.json", "w") as f:
        json.dump(editor.export(), f)
"""

from .config import EditConfig, SpreadSetting, load_edit_config
from .editing import (
    KeyframeTrack,
    PathFrame,
    ripple_adjust,
    ripple_adjust_euler_object,
    rotate_trajectory,
    rotate_trajectory_euler,
    smoothstep,
    transform_path,
)
from .editor import MotionEditor
from .motion import MotionDocument, parse_motion_json, unparse_motion_json
from .skeleton import SkeletonMetadata
from .utils import (
    compute_global_rotation,
    compute_local_rotation,
    euler_to_quat,
    quat_to_euler,
)
from .utils.bvh_loader import read_bvh

__version__ = "0.1.0"
__all__ = [
    "EditConfig",
    "SpreadSetting",
    "load_edit_config",
    "KeyframeTrack",
    "PathFrame",
    "ripple_adjust",
    "ripple_adjust_euler_object",
    "rotate_trajectory",
    "rotate_trajectory_euler",
    "smoothstep",
    "transform_path",
    "MotionEditor",
    "MotionDocument",
    "parse_motion_json",
    "unparse_motion_json",
    "SkeletonMetadata",
    "compute_global_rotation",
    "compute_local_rotation",
    "euler_to_quat",
    "quat_to_euler",
    "read_bvh",
]
