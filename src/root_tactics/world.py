"""Module defining the World class: one soil field and the plants rooted in it.

The world is the only entry point a host loop needs. `tick` advances the
simulation; everything else is a read-only query for presentation.

Plants extract resources one after another in list order within a tick, so
an earlier plant sees a shared cell first. Extraction is non-destructive, so
the order does not change the readings.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence, Union

import numpy as np
from numpy.typing import NDArray

from .branch import Branch, BranchId
from .config import rng
from .decision import GrowthAction, decision_shares
from .growth_policy import GrowthPolicy
from .plant import Plant
from .soil import Resource, SoilGrid

_LOGGER = logging.getLogger(__name__)

DEFAULT_PLANT_X = 120.0
HOVER_TOLERANCE = 5.0


class World:
    """A soil field with an ordered list of plants.

    Attributes:
        soil (SoilGrid): Shared resource field.
        plants (List[Plant]): Plants in tick order; position equals plant index.
        ticks (int): Number of completed ticks.
    """

    def __init__(self, soil: SoilGrid) -> None:
        self.soil = soil
        self.plants: List[Plant] = []
        self.ticks = 0
        _LOGGER.info("World initialized with %r", soil)

    @classmethod
    def random(
        cls,
        width: int,
        height: int,
        nitros: int,
        policy: Optional[GrowthPolicy] = None,
    ) -> World:
        """Build a field with random nitrogen deposits and one plant.

        Deposit radii are drawn from 10..79, amounts from 2..11, and centres
        are kept one radius away from the edges where the field allows. Draws
        come from the configured generator (see `root_tactics.config`).

        Args:
            width (int): Field width.
            height (int): Field depth.
            nitros (int): Number of deposits.
            policy (Optional[GrowthPolicy]): Policy for the initial plant.

        Returns:
            World: The populated world.
        """
        soil = SoilGrid(width, height)
        for _ in range(nitros):
            r = int(rng.integers(0, 70)) + 10
            x = int(rng.integers(0, max(width - 2 * r, 1))) + r
            y = int(rng.integers(0, max(height - 2 * r, 1))) + r
            amount = float(int(rng.integers(0, 10)) + 2)
            soil.add_nitro((float(x), float(y)), float(r), amount)

        world = cls(soil)
        world.add_plant(min(DEFAULT_PLANT_X, width / 2.0), policy)
        _LOGGER.info(
            "Random world: %dx%d, %d deposits, nitro total=%.4f",
            width,
            height,
            nitros,
            soil.total(Resource.NITRO),
        )
        return world

    def add_plant(self, x: float, policy: Optional[GrowthPolicy] = None) -> Plant:
        """Root a new plant at the surface; it gets the next plant index."""
        plant = Plant(len(self.plants), x, policy)
        self.plants.append(plant)
        _LOGGER.info("Added plant %d at x=%.2f", plant.index, x)
        return plant

    def tick(self) -> None:
        """Grow every plant once, in list order."""
        for plant in self.plants:
            plant.grow(self.soil)
        self.ticks += 1
        _LOGGER.debug("Tick %d done", self.ticks)

    # ------------------------------------------------------------------
    # Read-only queries
    # ------------------------------------------------------------------
    def get_branch(self, branch_id: BranchId) -> Optional[Branch]:
        """Resolve a `BranchId`, or None if it names nothing."""
        if not 0 <= branch_id.plant < len(self.plants):
            return None
        return self.plants[branch_id.plant].root.get_branch(branch_id.branch_path)

    def branch_at(
        self,
        point: Union[NDArray[Any], Sequence[float]],
        tolerance: float = HOVER_TOLERANCE,
    ) -> Optional[BranchId]:
        """Address of the branch with a segment endpoint nearest `point`.

        Returns:
            Optional[BranchId]: None if no endpoint lies within `tolerance`.
        """
        best: Optional[BranchId] = None
        best_dist = float(tolerance)
        for plant in self.plants:
            b_idx, _, dist = plant.arena.nearest(point)
            if b_idx >= 0 and dist <= best_dist:
                best = plant.arena[b_idx].id
                best_dist = dist
        return best

    def decision_breakdown(self, plant_index: int) -> Dict[GrowthAction, float]:
        """Share of each action in the root's current growth decision."""
        plant = self.plants[plant_index]
        decisions = plant.root.growth_decision(self.soil, 1.0, plant.policy)
        return decision_shares(decisions)

    def total_biomass(self) -> float:
        return float(np.sum([p.total_biomass for p in self.plants]))
