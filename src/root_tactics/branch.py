"""Module defining the Branch class for root growth in a soil grid.

A branch is a "multiline": an unbranched run of root made of straight
segments of ``SEGMENT_LENGTH``. Each segment can anchor one child branch at
its endpoint. Every tick a branch first samples the soil under its subtree
(`suck`), then spends new biomass according to its growth decision (`grow`).
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Iterator, List, Optional, Sequence, Tuple, Union

import numpy as np
from numpy.typing import NDArray

from .arena import BranchArena
from .decision import GrowthAction, GrowthDecision
from .growth_policy import GrowthPolicy
from .segment import Segment, signed_angle
from .soil import Resource, SoilGrid

_LOGGER = logging.getLogger(__name__)

# Distance between points in a multiline.
SEGMENT_LENGTH = 1.0
# A branch stops spawning new children once its last branch-off point is
# past this fraction of its length.
BRANCH_ZONE = 0.3
MIN_CHILD_MASS = 1.0


@dataclass(frozen=True)
class BranchId:
    """Stable address of a branch.

    Attributes:
        plant (int): Index of the owning plant.
        branch_path (Tuple[int, ...]): Segment indices at which each ancestor
            branched off, starting from the root.
    """

    plant: int
    branch_path: Tuple[int, ...] = field(default_factory=tuple)

    def append(self, segment: int) -> BranchId:
        return BranchId(self.plant, self.branch_path + (segment,))

    def __str__(self) -> str:
        return f"[{self.plant}]:" + "".join(f"-{i}" for i in self.branch_path)


class Branch:
    """Represents one multiline of a root system.

    Attributes:
        arena (BranchArena): Arena holding this branch and its relatives.
        index (int): This branch's index in `arena`.
        id (BranchId): Path-based address of this branch.
        segments (List[Segment]): Ordered segments, tip last.
        parent_segment_index (int): Segment of the parent this branch grows
            from. Meaningless for a root.
        subtree_weight (float): Biomass of this branch and all descendants.
        best_nitro (float): Highest single nitrogen sample in the subtree
            during the latest `suck`.
        best_water (float): Highest single water sample in the subtree during
            the latest `suck`.
    """

    def __init__(
        self,
        arena: BranchArena,
        branch_id: BranchId,
        start: Union[NDArray[Any], Sequence[float]],
        end: Union[NDArray[Any], Sequence[float]],
        weight: float,
        parent_segment_index: int = 0,
    ) -> None:
        """Initialize a single-segment Branch and register it in `arena`.

        Args:
            arena (BranchArena): Arena that owns the branch.
            branch_id (BranchId): Address of the new branch.
            start: First point of the first segment.
            end: Second point of the first segment.
            weight (float): Initial own biomass.
            parent_segment_index (int): Parent segment the branch grows from.
        """
        self.arena = arena
        self.id = branch_id
        self.segments: List[Segment] = [Segment(start, end)]
        self.parent_segment_index = parent_segment_index
        self._weight = float(weight)
        self.subtree_weight = float(weight)
        self.best_nitro = 0.0
        self.best_water = 0.0
        self.index = arena.add(self)

        _LOGGER.debug(
            "Branch %s created: %s -> %s weight=%.4f",
            self.id,
            self.segments[0].start.tolist(),
            self.segments[0].end.tolist(),
            self._weight,
        )

    @classmethod
    def new_root(
        cls, arena: BranchArena, plant: int, x: float, weight: float
    ) -> Branch:
        """Create a vertical root starting at the soil surface at `x`."""
        return cls(
            arena,
            BranchId(plant),
            (x, 0.0),
            (x, SEGMENT_LENGTH),
            weight,
        )

    # ------------------------------------------------------------------
    # Metrics
    # ------------------------------------------------------------------
    def _require_segments(self) -> None:
        if not self.segments:
            _LOGGER.error("Branch %s has no segments", self.id)
            raise RuntimeError(f"Branch {self.id} has no segments")

    @property
    def length(self) -> float:
        """Segment count (segments are of unit length)."""
        return float(len(self.segments))

    @property
    def radius(self) -> float:
        """Average radius, treating the branch as a cylinder."""
        self._require_segments()
        return math.sqrt(self._weight / (self.length * math.pi))

    @property
    def surface(self) -> float:
        self._require_segments()
        return self._weight / self.length

    @property
    def slenderness(self) -> float:
        """Length:radius ratio; infinite for a massless branch."""
        radius = self.radius
        if radius <= 0.0:
            return math.inf
        return self.length / radius

    @property
    def weight(self) -> float:
        """Own biomass."""
        return self._weight

    @property
    def tip(self) -> Segment:
        self._require_segments()
        return self.segments[-1]

    def children(self) -> Iterator[Tuple[int, Branch]]:
        """Yield ``(segment_index, child)`` for every anchored child."""
        for i, segment in enumerate(self.segments):
            if segment.child is not None:
                yield i, self.arena[segment.child]

    @property
    def branch_count(self) -> int:
        """Number of direct children."""
        return sum(1 for s in self.segments if s.child is not None)

    def get_branch(self, branch_path: Sequence[int]) -> Optional[Branch]:
        """Follow `branch_path` from this branch.

        Returns:
            Optional[Branch]: The reached branch, or None if an index is out
            of range or names a segment without a child.
        """
        branch = self
        for segment_index in branch_path:
            if not 0 <= segment_index < len(branch.segments):
                return None
            child = branch.segments[segment_index].child
            if child is None:
                return None
            branch = branch.arena[child]
        return branch

    def last_branch_index(self) -> Optional[int]:
        """Index of the furthest segment that anchors a child."""
        last = None
        for i, segment in enumerate(self.segments):
            if segment.child is not None:
                last = i
        return last

    def child_angle(self, index: int) -> Optional[float]:
        """Signed angle from segment `index` to its child's first segment."""
        segment = self.segments[index]
        if segment.child is None:
            _LOGGER.error("Branch %s: segment %d has no child", self.id, index)
            raise RuntimeError(f"Branch {self.id}: segment {index} has no child")
        child = self.arena[segment.child]
        return signed_angle(segment.vec, child.segments[0].vec)

    # ------------------------------------------------------------------
    # Growth decision
    # ------------------------------------------------------------------
    def new_branch_candidate(self) -> Optional[GrowthDecision]:
        """Propose where and in which direction to grow a new child.

        The candidate sits halfway between the last branch-off point and the
        tip. The first child leans a quarter turn to one side depending on the
        segment parity; later children mirror the previous sibling.

        Returns:
            Optional[GrowthDecision]: A NEW_BRANCH decision, or None when the
            candidate falls on the last two segments, on an occupied segment,
            or the mirrored angle is undefined.
        """
        self._require_segments()
        n = len(self.segments)
        last = self.last_branch_index()

        if last is None:
            candidate = n // 2
        else:
            candidate = last + (n - last) // 2

        if candidate + 2 >= n:
            return None
        if self.segments[candidate].child is not None:
            return None

        segment = self.segments[candidate]
        if last is None:
            sign = (candidate & 1) * 2 - 1
            offset = sign * math.pi / 4.0
        else:
            mirrored = self.child_angle(last)
            if mirrored is None:
                _LOGGER.debug(
                    "Branch %s: degenerate sibling angle at %d; skipping", self.id, last
                )
                return None
            offset = -mirrored

        angle = offset + segment.angle
        target = segment.end + SEGMENT_LENGTH * np.array(
            [math.cos(angle), math.sin(angle)]
        )
        return GrowthDecision.new_branch(target, candidate)

    def growth_decision(
        self,
        grid: SoilGrid,
        available_biomass: float,
        policy: GrowthPolicy,
    ) -> List[Tuple[GrowthDecision, float]]:
        """Distribute new biomass between elongation, branching and thickness.

        Children's shares are taken from their ``best_nitro + best_water``
        scores, so `suck` must run first within a tick.

        Args:
            grid (SoilGrid): Soil snapshot (not consulted yet).
            available_biomass (float): Mass about to be spent (not consulted yet).
            policy (GrowthPolicy): Shape ratios.

        Returns:
            List[Tuple[GrowthDecision, float]]: Decisions and shares summing to 1.0.
        """
        self._require_segments()
        children_share = policy.children_share
        last = self.last_branch_index()

        child_decisions: List[Tuple[GrowthDecision, float]] = []
        if self._weight > policy.min_mass_for_children(MIN_CHILD_MASS):
            if last is None or last / len(self.segments) < BRANCH_ZONE:
                candidate = self.new_branch_candidate()
                if candidate is not None:
                    child_decisions = [(candidate, children_share)]

        if not child_decisions:
            scores = [
                (i, child.best_nitro + child.best_water)
                for i, child in self.children()
            ]
            total = sum(score for _, score in scores)
            if total > np.finfo(np.float32).eps:
                child_decisions = [
                    (GrowthDecision.feed_child(i), children_share * score / total)
                    for i, score in scores
                    if score > 0.0
                ]

        result = child_decisions
        my_share = 1.0 - children_share if result else 1.0

        if self.slenderness < policy.conic_ratio:
            tip = self.tip
            result.append((GrowthDecision.elongate(tip.end + tip.vec), my_share))
        else:
            result.append((GrowthDecision.thicken(), my_share))

        _LOGGER.debug("Branch %s decision: %s", self.id, result)
        return result

    # ------------------------------------------------------------------
    # Applying a decision
    # ------------------------------------------------------------------
    def _append_segment(self, target: NDArray[Any]) -> None:
        self.segments.append(Segment(self.tip.end, target))
        self.arena.invalidate()

    def _attach_child(self, segment_index: int, target: NDArray[Any], weight: float) -> Branch:
        segment = self.segments[segment_index]
        if segment.child is not None:
            _LOGGER.error(
                "Branch %s: segment %d already has a branch", self.id, segment_index
            )
            raise RuntimeError(
                f"Branch {self.id}: segment {segment_index} already has a branch"
            )
        child = Branch(
            self.arena,
            self.id.append(segment_index),
            segment.end,
            target,
            weight,
            parent_segment_index=segment_index,
        )
        segment.child = child.index
        self.subtree_weight += child.subtree_weight
        return child

    def _feed_child(
        self, segment_index: int, material: float, grid: SoilGrid, policy: GrowthPolicy
    ) -> None:
        if not 0 <= segment_index < len(self.segments) or (
            self.segments[segment_index].child is None
        ):
            _LOGGER.error(
                "Branch %s: no child at segment %d to feed", self.id, segment_index
            )
            raise RuntimeError(f"Branch {self.id}: no child at segment {segment_index}")
        child = self.arena[self.segments[segment_index].child]  # type: ignore[index]
        child.grow(material, grid, policy)

    def grow(self, new_material: float, grid: SoilGrid, policy: GrowthPolicy) -> None:
        """Spend `new_material` on this branch and its children.

        Each decision receives ``new_material * share``. Segments and children
        whose endpoint would rise above the soil surface (negative ``y``) are
        not created; their portion thickens this branch instead.

        Raises:
            RuntimeError: If a decision targets an occupied segment for a new
                branch or a missing child.
        """
        decisions = self.growth_decision(grid, new_material, policy)

        for decision, share in decisions:
            portion = new_material * share
            action = decision.action

            if action is GrowthAction.NEW_BRANCH and decision.target[1] >= 0.0:  # type: ignore[index]
                # _attach_child books the seed weight into subtree_weight.
                self._attach_child(decision.segment_index, decision.target, portion)  # type: ignore[arg-type]
                continue

            if action is GrowthAction.ELONGATE and decision.target[1] >= 0.0:  # type: ignore[index]
                self._append_segment(decision.target)  # type: ignore[arg-type]
                self._weight += portion
            elif action is GrowthAction.FEED_CHILD:
                self._feed_child(decision.segment_index, portion, grid, policy)  # type: ignore[arg-type]
            else:
                self._weight += portion

            self.subtree_weight += portion

    # ------------------------------------------------------------------
    # Resource uptake
    # ------------------------------------------------------------------
    def suck(self, grid: SoilGrid) -> Tuple[float, float]:
        """Sample both resources at every segment endpoint of the subtree.

        Children are sampled before their parent's maxima are settled, and
        `best_nitro` / `best_water` are overwritten with the subtree maxima of
        this pass.

        Returns:
            Tuple[float, float]: ``(total_nitro, total_water)`` over the subtree.
        """
        best_nitro = 0.0
        best_water = 0.0
        total_nitro = 0.0
        total_water = 0.0

        for segment in self.segments:
            nitro = grid.consume_resource(segment.end, Resource.NITRO, 1.0)
            water = grid.consume_resource(segment.end, Resource.WATER, 1.0)
            total_nitro += nitro
            total_water += water
            best_nitro = max(best_nitro, nitro)
            best_water = max(best_water, water)

            if segment.child is not None:
                child = self.arena[segment.child]
                child_nitro, child_water = child.suck(grid)
                total_nitro += child_nitro
                total_water += child_water
                best_nitro = max(best_nitro, child.best_nitro)
                best_water = max(best_water, child.best_water)

        self.best_nitro = best_nitro
        self.best_water = best_water

        _LOGGER.debug(
            "Branch %s suck: nitro=%.4f water=%.4f best=(%.4f, %.4f)",
            self.id,
            total_nitro,
            total_water,
            best_nitro,
            best_water,
        )
        return total_nitro, total_water

    def __repr__(self) -> str:
        """Return a string representation of the branch."""
        return (
            f"Branch(id={self.id}, segments={len(self.segments)}, "
            f"weight={self._weight:.4f}, children={self.branch_count})"
        )
