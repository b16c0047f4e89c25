"""Module defining the BranchArena class for storing a plant's branches.

Branches live in one flat list and refer to each other by index, so a
segment's child is an integer rather than a nested object. The arena also
keeps a KD-tree over segment endpoints for nearest-branch queries.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Iterator, List, Optional, Sequence, Tuple, Union

import numpy as np
from numpy.typing import NDArray
from scipy.spatial import cKDTree

if TYPE_CHECKING:
    from .branch import Branch

_LOGGER = logging.getLogger(__name__)


class BranchArena:
    """Own every branch of one root system and answer spatial queries.

    Attributes:
        branches (List[Branch]): All branches; index 0 is the root.
        tree (Optional[cKDTree]): KD-tree over segment endpoints, rebuilt lazily.
        owners (List[Tuple[int, int]]): ``(branch, segment)`` for each KD-tree point.
    """

    branches: List["Branch"]
    tree: Optional[cKDTree]
    owners: List[Tuple[int, int]]

    def __init__(self) -> None:
        self.branches = []
        self.tree = None
        self.owners = []
        self._dirty = True

    def add(self, branch: "Branch") -> int:
        """Register a branch and return its stable index."""
        self.branches.append(branch)
        self._dirty = True
        index = len(self.branches) - 1
        _LOGGER.debug("Arena: added branch #%d (total=%d)", index, len(self.branches))
        return index

    def invalidate(self) -> None:
        """Mark the KD-tree stale after geometry changed."""
        self._dirty = True

    def __getitem__(self, index: int) -> "Branch":
        return self.branches[index]

    def __len__(self) -> int:
        return len(self.branches)

    def __iter__(self) -> Iterator["Branch"]:
        return iter(self.branches)

    @property
    def root(self) -> "Branch":
        if not self.branches:
            raise RuntimeError("Arena has no root branch")
        return self.branches[0]

    def total_weight(self) -> float:
        """Own biomass summed over every branch."""
        return float(sum(b.weight for b in self.branches))

    def rebuild_tree(self) -> None:
        """Rebuild the endpoint KD-tree from the current geometry."""
        points: List[NDArray[Any]] = []
        owners: List[Tuple[int, int]] = []
        for b_idx, branch in enumerate(self.branches):
            for s_idx, segment in enumerate(branch.segments):
                if s_idx == 0:
                    points.append(segment.start)
                    owners.append((b_idx, 0))
                points.append(segment.end)
                owners.append((b_idx, s_idx))

        self.tree = cKDTree(np.asarray(points, dtype=float)) if points else None
        self.owners = owners
        self._dirty = False
        _LOGGER.debug("Arena: rebuilt KD-tree over %d points", len(points))

    def nearest(
        self, point: Union[NDArray[Any], Sequence[float]]
    ) -> Tuple[int, int, float]:
        """Find the segment endpoint closest to `point`.

        Args:
            point: Query coordinates ``(x, y)``.

        Returns:
            Tuple[int, int, float]: ``(branch_index, segment_index, distance)``,
            or ``(-1, -1, inf)`` when the arena holds no geometry.
        """
        if self._dirty:
            self.rebuild_tree()
        if self.tree is None:
            return -1, -1, float("inf")

        arr = np.asarray(point, dtype=float).reshape(-1)
        d, idx = self.tree.query(arr)
        b_idx, s_idx = self.owners[int(idx)]
        _LOGGER.debug(
            "nearest(%s) -> branch=%d segment=%d dist=%g",
            arr.tolist(),
            b_idx,
            s_idx,
            float(d),
        )
        return b_idx, s_idx, float(d)
