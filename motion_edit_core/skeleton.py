"""
Skeleton metadata describing a loaded joint hierarchy.
"""

import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

import numpy as np

from .utils.euler_utils import check_rotation_order

_NAME_NOISE = re.compile(r"[\s_\-:]+")


def normalize_joint_name(name: str) -> str:
    """Case-insensitive joint name key, ignoring separators."""
    return _NAME_NOISE.sub("", str(name)).lower()


@dataclass(frozen=True, eq=False)
class SkeletonMetadata:
    """
    Immutable description of a joint tree.

    Attributes:
        joint_names: Ordered joint names
        parent_indices: Parent index per joint, -1 for the single root
        offsets: Local offset per joint, shape (J, 3)
        rotation_orders: Rotation order per joint (permutation of "XYZ")
    """
    joint_names: Sequence[str]
    parent_indices: Sequence[int]
    offsets: np.ndarray
    rotation_orders: Sequence[str]
    _index: Dict[str, int] = field(init=False, repr=False, compare=False)
    _normalized_index: Dict[str, int] = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        names = tuple(str(n) for n in self.joint_names)
        parents = tuple(int(p) for p in self.parent_indices)
        orders = tuple(check_rotation_order(o) for o in self.rotation_orders)
        count = len(names)

        if self.offsets is None:
            offsets = np.zeros((count, 3))
        else:
            offsets = np.asarray(self.offsets, dtype=np.float64).reshape(-1, 3)

        if not (len(parents) == len(orders) == offsets.shape[0] == count):
            raise ValueError(
                f"Skeleton arrays disagree: {count} names, {len(parents)} parents, "
                f"{offsets.shape[0]} offsets, {len(orders)} rotation orders"
            )
        for i, p in enumerate(parents):
            if p != -1 and not 0 <= p < count:
                raise ValueError(f"Joint {names[i]!r} has invalid parent index {p}")
            if p == i:
                raise ValueError(f"Joint {names[i]!r} is its own parent")

        _check_acyclic(names, parents)

        offsets.setflags(write=False)
        object.__setattr__(self, "joint_names", names)
        object.__setattr__(self, "parent_indices", parents)
        object.__setattr__(self, "offsets", offsets)
        object.__setattr__(self, "rotation_orders", orders)

        index = {}
        normalized = {}
        for i, name in enumerate(names):
            index.setdefault(name, i)
            normalized.setdefault(normalize_joint_name(name), i)
        object.__setattr__(self, "_index", index)
        object.__setattr__(self, "_normalized_index", normalized)

    @property
    def num_joints(self) -> int:
        return len(self.joint_names)

    @property
    def root_index(self) -> int:
        """Index of the joint without a parent."""
        return self.parent_indices.index(-1)

    def index_of(self, name: str) -> Optional[int]:
        """
        Look up a joint index by exact name, then by normalized name.

        Returns:
            The joint index, or None if no joint matches
        """
        if name is None:
            return None
        if name in self._index:
            return self._index[name]
        return self._normalized_index.get(normalize_joint_name(name))

    def chain_to(self, index: int) -> List[int]:
        """Joint indices from the root down to ``index`` (inclusive)."""
        chain = []
        current = index
        while current != -1:
            chain.insert(0, current)
            current = self.parent_indices[current]
        return chain

    def rotation_order_of(self, index: int) -> str:
        return self.rotation_orders[index]

    def children_of(self, index: int) -> List[int]:
        return [i for i, p in enumerate(self.parent_indices) if p == index]


def _check_acyclic(names, parents):
    if parents and -1 not in parents:
        raise ValueError("Skeleton has no root joint (parent index -1)")
    roots = [names[i] for i, p in enumerate(parents) if p == -1]
    if len(roots) > 1:
        raise ValueError(f"Skeleton must be a single tree, found roots {roots}")
    # 0 = unvisited, 1 = on current walk, 2 = reaches a root
    state = [0] * len(parents)
    for start in range(len(parents)):
        walk = []
        current = start
        while current != -1 and state[current] == 0:
            state[current] = 1
            walk.append(current)
            current = parents[current]
        if current != -1 and state[current] == 1:
            raise ValueError(f"Joint hierarchy has a cycle through {names[current]!r}")
        for i in walk:
            state[i] = 2
