import sys
from pathlib import Path

import numpy as np
import pytest

# Ensure repo root on sys.path so tests run without an install.
ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from motion_edit_core.skeleton import SkeletonMetadata  # noqa: E402


SAMPLE_BVH = """\
HIERARCHY
ROOT Hips
{
  OFFSET 0.0 0.0 0.0
  CHANNELS 6 Xposition Yposition Zposition Zrotation Xrotation Yrotation
  JOINT Spine
  {
    OFFSET 0.0 10.0 0.0
    CHANNELS 3 Zrotation Yrotation Xrotation
    JOINT Head
    {
      OFFSET 0.0 10.0 0.0
      CHANNELS 3 Yrotation Xrotation Zrotation
      End Site
      {
        OFFSET 0.0 5.0 0.0
      }
    }
  }
}
MOTION
Frames: 2
Frame Time: 0.04
1.0 2.0 3.0 10.0 20.0 30.0 0.0 0.0 45.0 0.0 0.0 0.0
1.5 2.0 3.0 0.0 0.0 0.0 5.0 6.0 7.0 8.0 9.0 10.0
"""


def assert_quat_close(a, b, atol=1e-9):
    """Quaternions q and -q are the same rotation."""
    a = np.asarray(a, dtype=np.float64)
    b = np.asarray(b, dtype=np.float64)
    if np.dot(a, b) < 0:
        b = -b
    np.testing.assert_allclose(a, b, atol=atol)


@pytest.fixture
def skeleton():
    """Hips -> Spine -> Head, each with its own rotation order."""
    return SkeletonMetadata(
        joint_names=["Hips", "Spine", "Head"],
        parent_indices=[-1, 0, 1],
        offsets=np.array([[0.0, 0.0, 0.0], [0.0, 10.0, 0.0], [0.0, 10.0, 0.0]]),
        rotation_orders=["ZXY", "XYZ", "YZX"],
    )


@pytest.fixture
def bvh_frame():
    return {
        "global_x": 1.0, "global_y": 2.0, "global_z": 3.0,
        "Hips_x": 10.0, "Hips_y": 20.0, "Hips_z": -15.0,
        "Spine_x": 5.0, "Spine_y": -12.0, "Spine_z": 30.0,
        "Head_x": -20.0, "Head_y": 15.0, "Head_z": 8.0,
    }


@pytest.fixture
def line_trajectory():
    """Ten frames along +X with identity orientation, (7, 10)."""
    n = 10
    buf = np.zeros((7, n))
    buf[0] = np.arange(n, dtype=np.float64)
    buf[6] = 1.0
    return buf


@pytest.fixture
def motion_json():
    return {
        "fps": 30,
        "dof_names": ["floating_base_joint", "left_knee", "right_knee"],
        "data": [
            [0.0, 0.0, 0.8, 0.0, 0.0, 0.0, 1.0, 0.1, 0.2],
            [0.1, 0.0, 0.8, 1.0, 0.0, 0.0, 0.0, 0.3, 0.4],
            [0.2, 0.0, 0.8, 0.0, 1.0, 0.0, 0.0, 0.5, 0.6],
        ],
    }
