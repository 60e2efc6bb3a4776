"""
Editor module for motion_edit_core.

Provides MotionEditor for gesture-level edits of a motion document.
"""

from .motion_editor import MotionEditor

__all__ = ["MotionEditor"]
