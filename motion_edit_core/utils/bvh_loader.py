"""
BVH file loader.

Reads the joint hierarchy into SkeletonMetadata and the motion block into
keyed frames (``global_x/y/z`` root position, ``<joint>_x/_y/_z`` local
rotations in degrees).
"""

import logging
import re

import numpy as np

from ..motion.document import MotionDocument
from ..skeleton import SkeletonMetadata

logger = logging.getLogger(__name__)

CHANNEL_MAP = {
    'Xrotation': 'X',
    'Yrotation': 'Y',
    'Zrotation': 'Z',
}

POSITION_CHANNELS = {
    'Xposition': 'global_x',
    'Yposition': 'global_y',
    'Zposition': 'global_z',
}


def parse_bvh(text):
    """
    Parse BVH text into skeleton metadata and a motion document.

    Args:
        text: Full BVH file content

    Returns:
        Tuple (SkeletonMetadata, MotionDocument)
    """
    names = []
    offsets = []
    parents = []
    orders = []
    # (joint index, channel name) per data column
    columns = []

    active = -1
    end_site = False
    in_motion = False
    frame_count = None
    frametime = None
    rows = []

    # Parse the file, line by line
    for line in text.splitlines():
        stripped = line.strip()
        if not stripped or "HIERARCHY" in line:
            continue

        if in_motion:
            fmatch = re.match(r"\s*Frames:\s+(\d+)", line)
            if fmatch:
                frame_count = int(fmatch.group(1))
                continue
            fmatch = re.match(r"\s*Frame Time:\s+([\d\.eE\-]+)", line)
            if fmatch:
                frametime = float(fmatch.group(1))
                continue
            rows.append([float(v) for v in stripped.split()])
            continue

        if "MOTION" in line:
            in_motion = True
            continue

        jmatch = re.match(r"\s*(ROOT|JOINT)\s+(\S+)", line)
        if jmatch:
            names.append(jmatch.group(2))
            offsets.append([0.0, 0.0, 0.0])
            orders.append("XYZ")
            parents.append(active)
            active = len(parents) - 1
            continue

        if "End Site" in line:
            end_site = True
            continue

        if "{" in line:
            continue

        if "}" in line:
            if end_site:
                end_site = False
            else:
                active = parents[active]
            continue

        offmatch = re.match(r"\s*OFFSET\s+([\-\d\.eE]+)\s+([\-\d\.eE]+)\s+([\-\d\.eE]+)", line)
        if offmatch:
            if not end_site:
                offsets[active] = list(map(float, offmatch.groups()))
            continue

        chanmatch = re.match(r"\s*CHANNELS\s+(\d+)", line)
        if chanmatch:
            channels = int(chanmatch.group(1))
            parts = line.split()[2:]
            if len(parts) != channels:
                raise ValueError(
                    f"Joint {names[active]!r} declares {channels} channels but lists {len(parts)}"
                )
            rot_axes = "".join(CHANNEL_MAP[p] for p in parts if p in CHANNEL_MAP)
            if len(rot_axes) == 3:
                orders[active] = rot_axes
            elif rot_axes:
                raise ValueError(f"Joint {names[active]!r} has incomplete rotation channels: {parts}")
            for p in parts:
                columns.append((active, p))
            continue

    skeleton = SkeletonMetadata(
        joint_names=names,
        parent_indices=parents,
        offsets=np.array(offsets, dtype=np.float64).reshape(-1, 3),
        rotation_orders=orders,
    )

    root = skeleton.root_index
    dof_names = []
    for joint_idx, channel in columns:
        key = _field_name(names, root, joint_idx, channel)
        if key is not None and key not in dof_names:
            dof_names.append(key)

    frames = []
    for i, row in enumerate(rows):
        if len(row) != len(columns):
            raise ValueError(f"Frame {i} has {len(row)} values, expected {len(columns)}")
        frame = {}
        for (joint_idx, channel), value in zip(columns, row):
            key = _field_name(names, root, joint_idx, channel)
            if key is not None:
                frame[key] = value
        frames.append(frame)

    if frame_count is not None and frame_count != len(frames):
        logger.warning("BVH header declares %d frames, found %d", frame_count, len(frames))

    extras = {"bvhAdapt": {"orientationFieldName": names[root]}}
    if frametime:
        extras["fps"] = 1.0 / frametime

    return skeleton, MotionDocument(dof_names=dof_names, frames=frames, extras=extras)


def _field_name(names, root, joint_idx, channel):
    if channel in CHANNEL_MAP:
        return f"{names[joint_idx]}_{CHANNEL_MAP[channel].lower()}"
    if channel in POSITION_CHANNELS and joint_idx == root:
        return POSITION_CHANNELS[channel]
    # Non-root translation channels carry no editable DOF here
    return None


def read_bvh(filename):
    """
    Read a BVH file.

    Args:
        filename: BVH filename

    Returns:
        Tuple (SkeletonMetadata, MotionDocument)
    """
    with open(filename, "r") as f:
        text = f.read()
    skeleton, document = parse_bvh(text)
    logger.debug("Loaded %s: %d joints, %d frames", filename, skeleton.num_joints, document.frame_count)
    return skeleton, document
