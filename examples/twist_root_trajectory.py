#!/usr/bin/env python3
"""
Example: Twist the root trajectory of a motion JSON file.

This script pins one frame of the floating base path, rotates its
orientation about the vertical axis and lets the following frames follow
with a smooth falloff.

Usage:
    python twist_root_trajectory.py --motion_file motion.json --frame 120 --yaw 30

Output:
    - Prints the root position before and after at a few frames
    - Optionally saves the edited motion JSON
"""

import argparse
import json
import logging

import numpy as np
from scipy.spatial.transform import Rotation as R

from motion_edit_core import MotionEditor, load_edit_config, parse_motion_json


def main():
    parser = argparse.ArgumentParser(description="Twist a root trajectory about a pinned frame")

    parser.add_argument(
        "--motion_file",
        type=str,
        required=True,
        help="Path to motion JSON file (dof_names + data)",
    )

    parser.add_argument(
        "--frame",
        type=int,
        default=0,
        help="Pinned frame index (default: 0)",
    )

    parser.add_argument(
        "--yaw",
        type=float,
        default=30.0,
        help="Rotation about the world Z axis in degrees (default: 30)",
    )

    parser.add_argument(
        "--decay",
        type=int,
        default=None,
        help="Decay distance in frames (default: from config)",
    )

    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Edit config JSON (default: packaged default_edit.json)",
    )

    parser.add_argument(
        "--save_path",
        type=str,
        default=None,
        help="Path to save the edited motion JSON",
    )

    parser.add_argument(
        "--verbose",
        action="store_true",
        default=False,
        help="Print verbose output",
    )

    args = parser.parse_args()
    logging.basicConfig(level=logging.INFO if args.verbose else logging.WARNING)

    print(f"Loading motion file: {args.motion_file}")
    with open(args.motion_file) as f:
        document = parse_motion_json(json.load(f))
    print(f"Loaded {document.frame_count} frames")

    editor = MotionEditor(document, config=load_edit_config(args.config), verbose=args.verbose)
    before = document.trajectory_buffer()

    editor.begin_root_twist(args.frame)
    start_quat = before[3:7, args.frame]
    # World-frame yaw applied on top of the pinned frame's orientation
    yaw = R.from_euler("z", args.yaw, degrees=True)
    current_quat = (yaw * R.from_quat(start_quat)).as_quat()
    after = editor.update_root_twist(current_quat, decay_distance=args.decay)
    editor.end_gesture()

    print("\nRoot position (before -> after):")
    for i in sorted({0, args.frame, (args.frame + document.frame_count - 1) // 2, document.frame_count - 1}):
        print(f"  Frame {i}: {np.round(before[0:3, i], 4)} -> {np.round(after[0:3, i], 4)}")

    if args.save_path:
        with open(args.save_path, "w") as f:
            json.dump(editor.export(), f)
        print(f"\nSaved to {args.save_path}")


if __name__ == "__main__":
    main()
