"""
Motion document: keyed per-frame records plus the DOF layout needed to
convert them to and from the compact motion matrix.

Motion JSON shape:
    {
        "dof_names": ["floating_base_joint", "left_hip", ...],
        "data": [
            [x, y, z, qx, qy, qz, qw, left_hip, ...],   # one row per frame
            ...
        ],
        ...                                              # other keys kept as-is
    }
"""

import copy
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import numpy as np

from ..editing.path_transform import PathFrame
from ..utils.euler_utils import euler_to_quat, normalize_rotation_order
from ..utils.quat_utils import quat_normalize

logger = logging.getLogger(__name__)

FLOATING_BASE_JOINT = "floating_base_joint"
FLOATING_BASE_FIELDS = (
    "global_x", "global_y", "global_z",
    "quater_x", "quater_y", "quater_z", "quater_w",
)
POSITION_FIELDS = FLOATING_BASE_FIELDS[:3]
QUATERNION_FIELDS = FLOATING_BASE_FIELDS[3:]


@dataclass
class MotionDocument:
    """
    Ordered frames plus the DOF names describing their matrix layout.

    Attributes:
        dof_names: DOF names in matrix column order
        frames: One dict per frame, field name -> value
        extras: Every other key of the source JSON, kept verbatim
    """
    dof_names: List[str] = field(default_factory=list)
    frames: List[Dict[str, Any]] = field(default_factory=list)
    extras: Dict[str, Any] = field(default_factory=dict)

    @property
    def frame_count(self) -> int:
        return len(self.frames)

    def copy(self) -> "MotionDocument":
        return copy.deepcopy(self)

    def get_frame(self, index: int) -> Optional[Dict[str, Any]]:
        if 0 <= index < len(self.frames):
            return self.frames[index]
        return None

    # Frame structure

    def _check_index(self, index: int) -> None:
        if not 0 <= index < len(self.frames):
            raise IndexError(f"Frame {index} out of range for {len(self.frames)} frames")

    def insert_frame(self, index: int, frame: Dict[str, Any]) -> None:
        """Insert a copy of ``frame`` so it becomes frame ``index``."""
        if not 0 <= index <= len(self.frames):
            raise IndexError(f"Insert position {index} out of range for {len(self.frames)} frames")
        self.frames.insert(index, copy.deepcopy(dict(frame)))

    def duplicate_frame(self, index: int) -> int:
        """Insert a copy of frame ``index`` right after it. Returns the copy's index."""
        self._check_index(index)
        self.insert_frame(index + 1, self.frames[index])
        return index + 1

    def delete_frame(self, index: int) -> Dict[str, Any]:
        """Remove and return frame ``index``; the last remaining frame cannot be deleted."""
        self._check_index(index)
        if len(self.frames) == 1:
            raise ValueError("Cannot delete the only frame of a motion")
        return self.frames.pop(index)

    def move_frame(self, from_index: int, to_index: int) -> int:
        """
        Move frame ``from_index`` in front of the frame now at ``to_index``.

        ``to_index`` is clamped to the last frame. Moving forward lands the
        frame one slot before the target, since the frame leaves its old slot
        first.

        Returns:
            The frame's new index
        """
        self._check_index(from_index)
        if to_index < 0:
            raise IndexError(f"Frame {to_index} out of range for {len(self.frames)} frames")
        target = min(to_index, len(self.frames) - 1)
        if target == from_index:
            return from_index
        frame = self.frames.pop(from_index)
        final = target - 1 if target > from_index else target
        self.frames.insert(final, frame)
        return final

    # Field access

    def field_series(self, name: str) -> List[Any]:
        """Values of one field across every frame (None where missing)."""
        return [frame.get(name) for frame in self.frames]

    def field_slice(self, name: str, start: int = 0, size: Optional[int] = None) -> List[Any]:
        """Values of one field for frames ``start .. start + size - 1``."""
        end = len(self.frames) if size is None else min(len(self.frames), start + size)
        return [self.frames[i].get(name) for i in range(max(start, 0), end)]

    def set_field_values(self, name: str, start: int, values) -> None:
        """Write consecutive values of one field starting at frame ``start``."""
        for offset, value in enumerate(values):
            self.frames[start + offset][name] = float(value)

    def euler_series(self, joint_name: str) -> Optional[np.ndarray]:
        """
        ``<joint>_x/_y/_z`` across all frames.

        Returns:
            Array of shape (N, 3), or None if any frame lacks the fields
        """
        keys = (f"{joint_name}_x", f"{joint_name}_y", f"{joint_name}_z")
        rows = []
        for frame in self.frames:
            values = [frame.get(k) for k in keys]
            if any(v is None for v in values):
                return None
            rows.append(values)
        return np.array(rows, dtype=np.float64).reshape(-1, 3)

    def set_euler_series(self, joint_name: str, start: int, eulers) -> None:
        eulers = np.asarray(eulers, dtype=np.float64).reshape(-1, 3)
        for offset, (x, y, z) in enumerate(eulers):
            frame = self.frames[start + offset]
            frame[f"{joint_name}_x"] = float(x)
            frame[f"{joint_name}_y"] = float(y)
            frame[f"{joint_name}_z"] = float(z)

    # Skeleton-related lookups

    @property
    def orientation_field_name(self) -> Optional[str]:
        """Root joint whose ``_x/_y/_z`` fields hold the BVH root orientation."""
        adapt = self.extras.get("bvhAdapt")
        if isinstance(adapt, dict):
            return adapt.get("orientationFieldName") or None
        return None

    def rotation_order_for(self, joint_name: str) -> str:
        """
        Rotation order of a joint from the ``joints`` channel table.

        The table maps joint name to channel positions, e.g.
        ``{"Xrotation": 2, "Yrotation": 0, "Zrotation": 1}`` -> "YZX".
        """
        joints = self.extras.get("joints")
        info = joints.get(joint_name) if isinstance(joints, dict) else None
        if not info:
            return "XYZ"
        ranked = sorted(
            (info.get(f"{axis}rotation", 0), axis) for axis in ("X", "Y", "Z")
        )
        return normalize_rotation_order("".join(axis for _, axis in ranked))

    def joint_names(self, is_bvh: bool = False) -> List[str]:
        """
        Editable field names of the document.

        Joint fields come first, followed by the root position fields and
        then the root orientation fields (``quater_*`` for URDF motions,
        ``<root>_x/_y/_z`` for BVH motions).
        """
        if not self.frames:
            return []
        keys = list(self.frames[0].keys())
        orientation = self.orientation_field_name or ""
        base = [
            k for k in keys
            if not k.startswith("quater_")
            and not k.startswith("global_")
            and not (orientation and k.startswith(f"{orientation}_"))
        ]
        extras = [k for k in POSITION_FIELDS if k in keys]
        if not is_bvh:
            extras += [k for k in QUATERNION_FIELDS if k in keys]
        elif orientation:
            extras += [k for k in (f"{orientation}_x", f"{orientation}_y", f"{orientation}_z") if k in keys]
        return list(dict.fromkeys(base + extras))

    # Root trajectory buffers

    def trajectory_buffer(self, is_bvh: bool = False) -> np.ndarray:
        """
        Root trajectory as parallel arrays.

        Returns:
            (7, N) ``[x, y, z, qx, qy, qz, qw]`` for URDF motions, or
            (6, N) ``[x, y, z, rx, ry, rz]`` (degrees) for BVH motions
        """
        n = len(self.frames)
        if is_bvh:
            orientation = self.orientation_field_name
            buf = np.zeros((6, n))
            for i, frame in enumerate(self.frames):
                buf[0:3, i] = [frame.get(k) or 0.0 for k in POSITION_FIELDS]
                if orientation:
                    buf[3:6, i] = [frame.get(f"{orientation}_{a}") or 0.0 for a in "xyz"]
            return buf

        buf = np.zeros((7, n))
        for i, frame in enumerate(self.frames):
            buf[:, i] = [frame.get(k) or 0.0 for k in FLOATING_BASE_FIELDS]
        return buf

    def write_trajectory(self, buffer, is_bvh: bool = False, rotation_order: str = "XYZ",
                         skip_orientation_at: Optional[int] = None) -> None:
        """
        Write a root trajectory buffer back into the frames.

        For BVH motions the root Euler fields are written and, where a frame
        also carries ``quater_*`` fields, those are synced from the Euler
        angles using ``rotation_order``.

        Args:
            buffer: (7, N) or (6, N) array as returned by trajectory_buffer
            is_bvh: Whether the buffer is the Euler variant
            rotation_order: Rotation order of the root Euler fields
            skip_orientation_at: Frame whose orientation is left untouched
        """
        buffer = np.asarray(buffer, dtype=np.float64)
        expected = 6 if is_bvh else 7
        if buffer.ndim != 2 or buffer.shape[0] != expected:
            raise ValueError(f"Expected {expected} trajectory arrays, got shape {buffer.shape}")
        if buffer.shape[1] != len(self.frames):
            raise ValueError(f"Buffer covers {buffer.shape[1]} frames, document has {len(self.frames)}")

        orientation = self.orientation_field_name
        for i, frame in enumerate(self.frames):
            for k, value in zip(POSITION_FIELDS, buffer[0:3, i]):
                frame[k] = float(value)
            if i == skip_orientation_at:
                continue
            if not is_bvh:
                for k, value in zip(QUATERNION_FIELDS, buffer[3:7, i]):
                    frame[k] = float(value)
                continue
            if orientation:
                for axis, value in zip("xyz", buffer[3:6, i]):
                    frame[f"{orientation}_{axis}"] = float(value)
            if all(k in frame for k in QUATERNION_FIELDS):
                q = euler_to_quat(buffer[3:6, i], rotation_order)
                for k, value in zip(QUATERNION_FIELDS, q):
                    frame[k] = float(value)

    # Path frames

    def path_frames(self, start: int = 0):
        """Root (position, quaternion) pairs from frame ``start`` to the end."""
        out = []
        for frame in self.frames[max(start, 0):]:
            position = np.array([frame.get(k) or 0.0 for k in POSITION_FIELDS], dtype=np.float64)
            quaternion = np.array([frame.get(k) or 0.0 for k in QUATERNION_FIELDS], dtype=np.float64)
            out.append(PathFrame(position, quat_normalize(quaternion)))
        return out

    def write_path_frames(self, start: int, path) -> None:
        for offset, (position, quaternion) in enumerate(path):
            frame = self.frames[start + offset]
            for k, value in zip(POSITION_FIELDS, position):
                frame[k] = float(value)
            for k, value in zip(QUATERNION_FIELDS, quaternion):
                frame[k] = float(value)


def parse_motion_json(doc) -> MotionDocument:
    """
    Expand the compact motion matrix into keyed frames.

    ``floating_base_joint`` consumes seven values (``global_x/y/z`` and a
    re-normalized ``quater_x/y/z/w``); every other DOF name consumes one value
    stored under the same name. Missing columns come out as None.

    Args:
        doc: Motion JSON dict with ``dof_names`` and ``data``

    Returns:
        MotionDocument
    """
    dof_names = list(doc.get("dof_names", []))
    frames = []
    for row in doc.get("data", []):
        frame = {}
        cursor = 0
        for name in dof_names:
            if name == FLOATING_BASE_JOINT:
                values = [row[cursor + j] if cursor + j < len(row) else None for j in range(7)]
                cursor += 7
                quat = values[3:7]
                if all(v is not None for v in quat):
                    quat = [float(v) for v in quat_normalize(np.array(quat, dtype=np.float64))]
                for k, v in zip(FLOATING_BASE_FIELDS, values[:3] + list(quat)):
                    frame[k] = v
            else:
                frame[name] = row[cursor] if cursor < len(row) else None
                cursor += 1
        frames.append(frame)

    extras = {k: copy.deepcopy(v) for k, v in doc.items() if k not in ("dof_names", "data")}
    logger.debug("Parsed motion: %d frames, %d DOF names", len(frames), len(dof_names))
    return MotionDocument(dof_names=dof_names, frames=frames, extras=extras)


def unparse_motion_json(document: MotionDocument) -> Dict[str, Any]:
    """
    Collapse keyed frames back into the compact motion matrix.

    Rows follow ``dof_names`` order, with seven values for the floating
    base. A missing field is emitted as None.

    Returns:
        Motion JSON dict
    """
    data = []
    for frame in document.frames:
        row = []
        for name in document.dof_names:
            if name == FLOATING_BASE_JOINT:
                row.extend(frame.get(k) for k in FLOATING_BASE_FIELDS)
            else:
                row.append(frame.get(name))
        data.append(row)

    out = copy.deepcopy(document.extras)
    out["dof_names"] = list(document.dof_names)
    out["data"] = data
    return out
