"""
MotionEditor: applies editing gestures to a motion document.
"""

import logging

import numpy as np

from ..config import EditConfig, load_edit_config
from ..editing.keyframes import HANDLE_FREE, HandlePoint, KeyframeHandle, KeyframeTrack
from ..editing.path_transform import transform_path
from ..editing.ripple import ripple_adjust_euler_object, ripple_adjust_range
from ..editing.twist import rotate_trajectory, rotate_trajectory_euler
from ..motion.document import MotionDocument, unparse_motion_json
from ..utils.euler_utils import as_euler, unwrap_euler_sequence
from ..utils.fk_utils import (
    compute_global_rotation,
    compute_joint_positions,
    compute_local_rotation,
    local_rotation_to_fields,
)
from ..utils.quat_utils import as_quat

logger = logging.getLogger(__name__)


class MotionEditor:
    """
    Gesture-level editing of a motion document.

    Every gesture snapshots the data it touches when it begins; each update
    recomputes from that snapshot and writes the result back, so repeated
    updates during one drag never compound.

    Supports:
    - URDF motions: floating base stored as ``global_*`` + ``quater_*``
    - BVH motions: pass a SkeletonMetadata; the root orientation lives in
      ``<root>_x/_y/_z`` and twists use the Euler variant

    Keyframe curves are tracked per field on first use; frame insert,
    delete and move keep them in step with the document.

    Example usage:
        document = parse_motion_json(json.load(f))
        editor = MotionEditor(document)

        # Drag one joint angle at frame 120
        editor.begin_joint_drag("left_knee", 120)
        editor.update_joint_drag(0.8)
        editor.end_gesture()

        # Twist the root path around frame 120
        editor.begin_root_twist(120)
        editor.update_root_twist(new_quat)
        editor.end_gesture()

        json.dump(editor.export(), out)
    """

    def __init__(self, document, skeleton=None, config=None, verbose=False):
        """
        Initialize the editor.

        Args:
            document: MotionDocument to edit in place
            skeleton: SkeletonMetadata for BVH motions (None for URDF motions)
            config: EditConfig (default: the packaged default_edit.json)
            verbose: Log gesture progress at INFO level
        """
        if not isinstance(document, MotionDocument):
            raise ValueError(f"Expected a MotionDocument, got {type(document).__name__}")
        if config is not None and not isinstance(config, EditConfig):
            raise ValueError(f"Expected an EditConfig, got {type(config).__name__}")

        self.document = document
        self.skeleton = skeleton
        self.config = config if config is not None else load_edit_config()
        self.verbose = verbose
        self._gesture = None
        # Field name -> KeyframeTrack
        self._tracks = {}

    @property
    def is_bvh(self):
        return self.skeleton is not None

    @property
    def gesture(self):
        """Name of the active gesture, or None."""
        return self._gesture["name"] if self._gesture else None

    def _log(self, msg, *args):
        logger.log(logging.INFO if self.verbose else logging.DEBUG, msg, *args)

    def _begin(self, name, **state):
        if self._gesture is not None:
            self._log("Replacing unfinished gesture %s", self._gesture["name"])
        self._check_frame(state["frame_index"])
        self._gesture = dict(name=name, **state)
        self._log("Begin %s at frame %d", name, state["frame_index"])

    def _active(self, name):
        if self._gesture is None or self._gesture["name"] != name:
            raise RuntimeError(f"No active {name} gesture (active: {self.gesture})")
        return self._gesture

    def _check_frame(self, frame_index):
        if not 0 <= frame_index < self.document.frame_count:
            raise IndexError(f"Frame {frame_index} out of range for {self.document.frame_count} frames")

    def end_gesture(self):
        """Finish the active gesture. Returns its name (None if idle)."""
        name = self.gesture
        self._gesture = None
        if name:
            self._log("End %s", name)
        return name

    # Scalar joint drag

    def begin_joint_drag(self, field_name, frame_index):
        series = self.document.field_series(field_name)
        if any(v is None for v in series):
            raise ValueError(f"Field {field_name!r} is missing in some frames")
        self._begin(
            "joint_drag",
            field_name=field_name,
            frame_index=frame_index,
            snapshot=np.array(series, dtype=np.float64),
        )

    def update_joint_drag(self, value):
        """
        Move the dragged field to ``value`` and ripple the change.

        Returns:
            Inclusive (start, end) range of frames written
        """
        g = self._active("joint_drag")
        snapshot = g["snapshot"]
        idx = g["frame_index"]
        start, end, adjusted = ripple_adjust_range(
            snapshot,
            idx,
            float(value) - snapshot[idx],
            self.config.spread_before.count,
            self.config.spread_after.count,
            limits=self.config.limits_for(g["field_name"]),
        )
        self.document.set_field_values(g["field_name"], start, adjusted)
        return start, end

    # Three-axis joint rotation

    def begin_joint_rotate(self, joint_name, frame_index):
        series = self.document.euler_series(joint_name)
        if series is None:
            raise ValueError(f"Joint {joint_name!r} has no Euler fields in some frames")
        self._begin("joint_rotate", joint_name=joint_name, frame_index=frame_index, snapshot=series)

    def update_joint_rotate(self, euler):
        """Set the joint's local Euler angles at the gesture frame and ripple them."""
        g = self._active("joint_rotate")
        before, after = self.config.spread_before, self.config.spread_after
        adjusted = ripple_adjust_euler_object(
            g["snapshot"],
            g["frame_index"],
            as_euler(euler),
            before.radius,
            after.radius,
            before.mode,
            after.mode,
        )
        self.document.set_euler_series(g["joint_name"], 0, adjusted)
        return adjusted

    # Root twist

    def _root_rotation_order(self):
        return self.skeleton.rotation_orders[self.skeleton.root_index]

    def begin_root_twist(self, frame_index, start_orientation=None):
        """
        Snapshot the root trajectory before twisting it around ``frame_index``.

        Args:
            frame_index: Pinned frame
            start_orientation: Orientation at gesture start; defaults to the
                frame's stored quaternion (URDF) or root Euler angles (BVH)
        """
        self._check_frame(frame_index)
        snapshot = self.document.trajectory_buffer(is_bvh=self.is_bvh)
        if start_orientation is None:
            rows = slice(3, 6) if self.is_bvh else slice(3, 7)
            start_orientation = snapshot[rows, frame_index].copy()
        elif self.is_bvh:
            start_orientation = as_euler(start_orientation)
        else:
            start_orientation = as_quat(start_orientation)
        self._begin("root_twist", frame_index=frame_index, snapshot=snapshot, start=start_orientation)

    def update_root_twist(self, current_orientation, decay_distance=None):
        """
        Twist the root trajectory toward ``current_orientation``.

        Args:
            current_orientation: Quaternion (URDF) or Euler angles (BVH)
            decay_distance: Override the configured decay distance

        Returns:
            The new trajectory buffer
        """
        g = self._active("root_twist")
        decay = self.config.decay_distance if decay_distance is None else float(decay_distance)
        if self.is_bvh:
            buf = rotate_trajectory_euler(
                g["snapshot"], g["frame_index"], g["start"], as_euler(current_orientation),
                decay, propagate_backward=self.config.propagate_backward,
            )
            self.document.write_trajectory(buf, is_bvh=True, rotation_order=self._root_rotation_order())
        else:
            buf = rotate_trajectory(
                g["snapshot"], g["frame_index"], g["start"], as_quat(current_orientation),
                decay, propagate_backward=self.config.propagate_backward,
            )
            self.document.write_trajectory(buf)
        self._log("Root twist at frame %d, decay %g", g["frame_index"], decay)
        return buf

    # Path reorientation

    def reorient_path(self, frame_index, q_start, q_now):
        """Rigidly rotate the root path from ``frame_index`` to the end about that frame."""
        self._check_frame(frame_index)
        path = transform_path(self.document.path_frames(frame_index), q_start, q_now)
        self.document.write_path_frames(frame_index, path)
        self._log("Reoriented %d frames from frame %d", len(path), frame_index)
        return path

    # Keyframes

    def keyframe_track(self, field_name):
        """Keyframe flags and handles of one field, created on first use."""
        self._field_values(field_name)
        track = self._tracks.get(field_name)
        if track is None:
            track = self._tracks[field_name] = KeyframeTrack(self.document.frame_count)
        return track

    def _field_values(self, field_name):
        series = self.document.field_series(field_name)
        if not series or any(v is None for v in series):
            raise ValueError(f"Field {field_name!r} is missing in some frames")
        return np.array(series, dtype=np.float64)

    def _write_field(self, field_name, values):
        self.document.set_field_values(field_name, 0, values)
        return values

    def is_keyframe(self, field_name, frame_index):
        return self.keyframe_track(field_name).is_keyframe(frame_index)

    def add_keyframe(self, field_name, frame_index):
        """Mark a frame as a keyframe and re-fill the curve around it."""
        track = self.keyframe_track(field_name)
        values = track.add_keyframe(self._field_values(field_name), frame_index)
        return self._write_field(field_name, values)

    def remove_keyframe(self, field_name, frame_index):
        """Unmark a keyframe and smooth over it from its neighbouring keyframes."""
        track = self.keyframe_track(field_name)
        values = track.remove_keyframe(self._field_values(field_name), frame_index)
        return self._write_field(field_name, values)

    def smooth_delete_keyframes(self, field_name, start_index, end_index=None):
        """
        Remove the keyframes in a frame range and smooth the field over the gap.

        Returns:
            Inclusive (start, end) range of frames that may have changed
        """
        track = self.keyframe_track(field_name)
        start, end, values = track.smooth_delete(self._field_values(field_name), start_index, end_index)
        self._write_field(field_name, values)
        self._log("Smooth-deleted %s keyframes, frames %d..%d affected", field_name, start, end)
        return start, end

    def keyframe_handle(self, field_name, frame_index):
        """KeyframeHandle of a keyframe, or None if the frame is not a keyframe."""
        return self.keyframe_track(field_name).handle(self._field_values(field_name), frame_index)

    def set_keyframe_handle(self, field_name, frame_index, in_point, out_point, handle_type=HANDLE_FREE):
        handle = KeyframeHandle(HandlePoint(*in_point), HandlePoint(*out_point), handle_type)
        track = self.keyframe_track(field_name)
        values = track.set_handle(self._field_values(field_name), frame_index, handle)
        return self._write_field(field_name, values)

    def move_keyframe_handle(self, field_name, frame_index, direction, point, handle_type=None):
        track = self.keyframe_track(field_name)
        values = track.move_handle(self._field_values(field_name), frame_index, direction, point, handle_type)
        return self._write_field(field_name, values)

    def set_keyframe_handle_type(self, field_name, frame_index, handle_type):
        track = self.keyframe_track(field_name)
        values = track.set_handle_type(self._field_values(field_name), frame_index, handle_type)
        return self._write_field(field_name, values)

    # Frame structure

    def _check_idle(self, action):
        if self._gesture is not None:
            raise RuntimeError(f"Cannot {action} during an active {self.gesture} gesture")

    def _refresh_tracks(self):
        for field_name, track in self._tracks.items():
            self._write_field(field_name, track.refresh(self._field_values(field_name)))

    def duplicate_frame(self, frame_index):
        """Insert a copy of a frame after it. Returns the copy's index."""
        self._check_idle("duplicate a frame")
        new_index = self.document.duplicate_frame(frame_index)
        for track in self._tracks.values():
            track.insert_frame(new_index)
        self._refresh_tracks()
        self._log("Duplicated frame %d", frame_index)
        return new_index

    def delete_frame(self, frame_index):
        """Delete a frame; the only remaining frame cannot be deleted."""
        self._check_idle("delete a frame")
        self.document.delete_frame(frame_index)
        for track in self._tracks.values():
            track.delete_frame(frame_index)
        self._refresh_tracks()
        self._log("Deleted frame %d", frame_index)

    def move_frame(self, from_index, to_index):
        """Move a frame; it comes back as a keyframe with auto handles. Returns its new index."""
        self._check_idle("move a frame")
        final = self.document.move_frame(from_index, to_index)
        if final != from_index:
            for track in self._tracks.values():
                track.delete_frame(from_index)
                track.insert_frame(final)
            self._refresh_tracks()
        self._log("Moved frame %d to %d", from_index, final)
        return final

    # Skeleton queries

    def joint_global_rotation(self, joint_name, frame_index):
        """Global XYZ Euler angles of a joint, or None without a skeleton."""
        frame = self.document.get_frame(frame_index)
        if frame is None:
            return None
        return compute_global_rotation(joint_name, frame, self.skeleton)

    def set_joint_global_rotation(self, joint_name, frame_index, global_euler):
        """
        Pose a joint so its global rotation matches ``global_euler``.

        Returns:
            The local Euler angles written, or None if the joint is unknown
        """
        frame = self.document.get_frame(frame_index)
        if frame is None or self.skeleton is None:
            return None
        local = compute_local_rotation(joint_name, as_euler(global_euler), frame, self.skeleton)
        if local is None:
            return None
        name = self.skeleton.joint_names[self.skeleton.index_of(joint_name)]
        frame.update(local_rotation_to_fields(name, local))
        return local

    def joint_positions(self, frame_index):
        """Global joint positions (J, 3) at a frame, or None without a skeleton."""
        frame = self.document.get_frame(frame_index)
        if frame is None or self.skeleton is None:
            return None
        positions, _ = compute_joint_positions(frame, self.skeleton)
        return positions

    def unwrap_joint_euler(self, joint_name):
        """Remove 360-degree jumps from a joint's Euler channels across all frames."""
        series = self.document.euler_series(joint_name)
        if series is None:
            raise ValueError(f"Joint {joint_name!r} has no Euler fields in some frames")
        if self.skeleton is not None and self.skeleton.index_of(joint_name) is not None:
            order = self.skeleton.rotation_orders[self.skeleton.index_of(joint_name)]
        else:
            order = self.document.rotation_order_for(joint_name)
        unwrapped = unwrap_euler_sequence(series, order)
        self.document.set_euler_series(joint_name, 0, unwrapped)
        return unwrapped

    def export(self):
        """Motion JSON of the edited document."""
        return unparse_motion_json(self.document)
