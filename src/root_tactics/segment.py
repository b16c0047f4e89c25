"""Module defining the Segment class, one straight piece of a root branch.

This module provides the Segment class, representing an edge between two
consecutive points of a branch, including its direction and the optional
child branch anchored at its endpoint.
"""
from __future__ import annotations

import logging
import math
from typing import Any, Optional, Sequence, Union

import numpy as np
from numpy.typing import NDArray

_LOGGER = logging.getLogger(__name__)

_EPS = 1e-12


def as_point(p: Union[NDArray[Any], Sequence[float]]) -> NDArray[np.float64]:
    """Return `p` as a float ``(2,)`` array."""
    arr = np.asarray(p, dtype=float).reshape(-1)
    if arr.size != 2:
        raise ValueError(f"expected a 2D point, got shape {arr.shape}")
    return arr


def signed_angle(a: NDArray[Any], b: NDArray[Any]) -> Optional[float]:
    """Signed angle (radians, -pi..pi) rotating `a` onto `b`.

    Returns:
        Optional[float]: None if either vector has ~0 magnitude.
    """
    if np.linalg.norm(a) < _EPS or np.linalg.norm(b) < _EPS:
        return None
    cross = float(a[0] * b[1] - a[1] * b[0])
    dot = float(a[0] * b[0] + a[1] * b[1])
    return math.atan2(cross, dot)


class Segment:
    """Represents one edge of a branch.

    `start` duplicates the previous segment's `end`. A child branch, if
    any, is attached at `end` and referenced by its arena index.

    Attributes:
        start (NDArray[np.float64]): First point.
        end (NDArray[np.float64]): Second point.
        child (Optional[int]): Arena index of the branch anchored at `end`.
    """

    __slots__ = ("start", "end", "child")

    def __init__(
        self,
        start: Union[NDArray[Any], Sequence[float]],
        end: Union[NDArray[Any], Sequence[float]],
        child: Optional[int] = None,
    ) -> None:
        self.start = as_point(start)
        self.end = as_point(end)
        self.child = child

    @property
    def vec(self) -> NDArray[np.float64]:
        """Vector from `start` to `end`."""
        return self.end - self.start

    @property
    def angle(self) -> float:
        """Direction angle in radians, ranging -pi..pi."""
        delta = self.vec
        return math.atan2(float(delta[1]), float(delta[0]))

    @property
    def dir(self) -> Optional[NDArray[np.float64]]:
        """Unit direction, or None for a zero-length segment."""
        delta = self.vec
        mag = float(np.linalg.norm(delta))
        if mag < _EPS:
            _LOGGER.debug("Zero-length segment at %s", self.start.tolist())
            return None
        return delta / mag

    @property
    def has_child(self) -> bool:
        return self.child is not None

    def __repr__(self) -> str:
        """Return a string representation of the segment."""
        return (
            f"Segment(start={self.start.tolist()}, end={self.end.tolist()}, "
            f"child={self.child})"
        )
