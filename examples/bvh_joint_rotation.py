#!/usr/bin/env python3
"""
Example: Inspect and pose BVH joints with forward kinematics.

Usage:
    python bvh_joint_rotation.py --bvh_file path/to/motion.bvh --joint LeftArm --frame 10

Output:
    - Prints the joint's local and global rotation and its global position
    - With --global_euler, poses the joint to that global rotation and
      prints the resulting local channels
"""

import argparse
import logging

from motion_edit_core import MotionEditor, read_bvh


def main():
    parser = argparse.ArgumentParser(description="BVH joint rotation inspector")

    parser.add_argument(
        "--bvh_file",
        type=str,
        required=True,
        help="Path to BVH motion file",
    )

    parser.add_argument(
        "--joint",
        type=str,
        required=True,
        help="Joint name (case-insensitive match allowed)",
    )

    parser.add_argument(
        "--frame",
        type=int,
        default=0,
        help="Frame index (default: 0)",
    )

    parser.add_argument(
        "--global_euler",
        type=float,
        nargs=3,
        default=None,
        metavar=("X", "Y", "Z"),
        help="Target global rotation in degrees (XYZ order)",
    )

    parser.add_argument(
        "--unwrap",
        action="store_true",
        default=False,
        help="Unwrap the joint's Euler channels over all frames first",
    )

    args = parser.parse_args()
    logging.basicConfig(level=logging.WARNING)

    print(f"Loading BVH file: {args.bvh_file}")
    skeleton, document = read_bvh(args.bvh_file)
    print(f"Loaded {skeleton.num_joints} joints, {document.frame_count} frames")

    idx = skeleton.index_of(args.joint)
    if idx is None:
        print(f"Unknown joint: {args.joint}")
        print(f"Available: {', '.join(skeleton.joint_names)}")
        return

    name = skeleton.joint_names[idx]
    editor = MotionEditor(document, skeleton=skeleton)

    if args.unwrap:
        editor.unwrap_joint_euler(name)

    frame = document.get_frame(args.frame)
    print(f"\n{name} (order {skeleton.rotation_orders[idx]}) at frame {args.frame}:")
    print(f"  Local rotation:  {[frame.get(f'{name}_{a}') for a in 'xyz']}")
    print(f"  Global rotation: {editor.joint_global_rotation(name, args.frame)}")
    print(f"  Global position: {editor.joint_positions(args.frame)[idx]}")

    if args.global_euler is not None:
        local = editor.set_joint_global_rotation(name, args.frame, args.global_euler)
        print(f"\nPosed to global {args.global_euler}:")
        print(f"  Local rotation:  {local}")
        print(f"  Global rotation: {editor.joint_global_rotation(name, args.frame)}")


if __name__ == "__main__":
    main()
