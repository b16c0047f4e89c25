"""Growth actions a branch can spend new biomass on.

A growth decision is a list of ``(GrowthDecision, share)`` pairs whose
shares sum to 1.0. Each decision is a tagged variant: the `action` field
selects which of the payload fields are meaningful.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

import numpy as np
from numpy.typing import NDArray

_LOGGER = logging.getLogger(__name__)


class GrowthAction(Enum):
    """What a share of new biomass is spent on."""

    ELONGATE = "elongate"
    NEW_BRANCH = "new_branch"
    FEED_CHILD = "feed_child"
    THICKEN = "thicken"


@dataclass(frozen=True, eq=False)
class GrowthDecision:
    """One allocation target.

    Attributes:
        action (GrowthAction): Kind of growth.
        target (Optional[NDArray]): Endpoint of the segment to create
            (ELONGATE, NEW_BRANCH).
        segment_index (Optional[int]): Segment that anchors the new or fed
            child (NEW_BRANCH, FEED_CHILD).
    """

    action: GrowthAction
    target: Optional[NDArray[np.float64]] = None
    segment_index: Optional[int] = None

    @classmethod
    def elongate(cls, target: NDArray[Any]) -> GrowthDecision:
        return cls(GrowthAction.ELONGATE, target=np.asarray(target, dtype=float))

    @classmethod
    def new_branch(cls, target: NDArray[Any], segment_index: int) -> GrowthDecision:
        return cls(
            GrowthAction.NEW_BRANCH,
            target=np.asarray(target, dtype=float),
            segment_index=segment_index,
        )

    @classmethod
    def feed_child(cls, segment_index: int) -> GrowthDecision:
        return cls(GrowthAction.FEED_CHILD, segment_index=segment_index)

    @classmethod
    def thicken(cls) -> GrowthDecision:
        return cls(GrowthAction.THICKEN)

    def _key(self) -> Tuple[GrowthAction, Optional[Tuple[float, ...]], Optional[int]]:
        target = None if self.target is None else tuple(self.target.tolist())
        return self.action, target, self.segment_index

    def __eq__(self, other: object) -> bool:
        """Compare action, target coordinates and segment index."""
        if not isinstance(other, GrowthDecision):
            return NotImplemented
        return self._key() == other._key()

    def __hash__(self) -> int:
        return hash(self._key())

    def __repr__(self) -> str:
        """Return a string representation of the decision."""
        target = None if self.target is None else self.target.tolist()
        return (
            f"GrowthDecision({self.action.value}, target={target}, "
            f"segment={self.segment_index})"
        )


def decision_shares(
    decisions: List[Tuple[GrowthDecision, float]],
) -> Dict[GrowthAction, float]:
    """Sum decision shares per action, for debug views of a decision.

    Every action appears in the result, with 0.0 when unused.
    """
    shares = {action: 0.0 for action in GrowthAction}
    for decision, weight in decisions:
        shares[decision.action] += weight

    total = sum(shares.values())
    if total < 0.99:
        _LOGGER.warning("Decision shares sum to %.4f; not enough weight", total)
    return shares
