"""
Edit configuration.

Defaults ship as ``configs/default_edit.json`` inside the package.
"""

import json
import logging
import math
import pathlib
from dataclasses import dataclass, field, fields
from typing import Dict, Optional, Tuple

from .editing.ripple import MODE_DECAY, spread_count

logger = logging.getLogger(__name__)

# Package paths
HERE = pathlib.Path(__file__).parent
CONFIG_ROOT = HERE / "configs"
DEFAULT_CONFIG_PATH = CONFIG_ROOT / "default_edit.json"


@dataclass
class SpreadSetting:
    """How far a joint edit reaches on one side of the edited frame."""
    mode: int = MODE_DECAY
    radius: int = 20

    @property
    def count(self) -> int:
        """Ripple count for this setting (-1 full, 0 none, >0 Hann window)."""
        return spread_count(self.mode, self.radius)


@dataclass
class EditConfig:
    """Configuration for MotionEditor gestures."""
    # Frames over which a root twist fades in
    decay_distance: float = 30
    # Also twist the frames before the pinned one
    propagate_backward: bool = False
    spread_before: SpreadSetting = field(default_factory=SpreadSetting)
    spread_after: SpreadSetting = field(default_factory=SpreadSetting)
    clamp_joint_limits: bool = True
    # Field name -> (lower, upper)
    joint_limits: Dict[str, Tuple[Optional[float], Optional[float]]] = field(default_factory=dict)

    def limits_for(self, field_name: str):
        if not self.clamp_joint_limits:
            return None
        return self.joint_limits.get(field_name)

    @classmethod
    def from_dict(cls, data) -> "EditConfig":
        known = {f.name for f in fields(cls)}
        for key in data:
            if key not in known:
                logger.warning("Ignoring unknown edit config key: %s", key)

        config = cls(
            decay_distance=float(data["decay_distance"]),
            propagate_backward=bool(data.get("propagate_backward", False)),
            spread_before=SpreadSetting(**data["spread_before"]),
            spread_after=SpreadSetting(**data["spread_after"]),
            clamp_joint_limits=bool(data.get("clamp_joint_limits", True)),
            joint_limits={
                name: (limit[0], limit[1]) for name, limit in data.get("joint_limits", {}).items()
            },
        )
        if not math.isfinite(config.decay_distance) or config.decay_distance < 0:
            raise ValueError(f"decay_distance must be >= 0, got {config.decay_distance}")
        for setting in (config.spread_before, config.spread_after):
            # Raises ValueError on unknown modes
            spread_count(setting.mode, setting.radius)
        return config


def load_edit_config(path=None) -> EditConfig:
    """
    Load an edit configuration from JSON.

    Args:
        path: JSON file path (default: the packaged default_edit.json)

    Returns:
        EditConfig
    """
    config_path = pathlib.Path(path) if path is not None else DEFAULT_CONFIG_PATH
    logger.debug("Loading edit config: %s", config_path)
    with open(config_path) as f:
        return EditConfig.from_dict(json.load(f))
