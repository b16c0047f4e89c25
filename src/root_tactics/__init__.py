"""The root_tactics package simulates root systems competing for soil resources.

This package offers:
  - A quantized water/nitrogen soil field.
  - Branching root systems that take up resources and decide how to grow.
  - A world object that ticks plants and answers read-only queries.

Submodules:
  - arena: Flat storage of a plant's branches and spatial queries.
  - branch: Branch metrics, growth decision, growth and resource uptake.
  - decision: Tagged growth actions.
  - growth_policy: Per-plant growth ratios.
  - plant: Plant tick and line-mesh export.
  - segment: Segment abstraction for branch geometry.
  - soil: SoilGrid resource field.
  - world: World orchestration.

Classes:
  Branch, BranchArena, BranchId, GrowthAction, GrowthDecision, GrowthPolicy,
  Plant, Resource, Segment, SoilGrid, World
"""

from .config import (
    config,
    configure,
    use,
    seed,
    rng,
    set_log_level,
)

from root_tactics.arena import BranchArena
from root_tactics.branch import Branch, BranchId
from root_tactics.decision import GrowthAction, GrowthDecision, decision_shares
from root_tactics.growth_policy import GrowthPolicy
from root_tactics.plant import Plant
from root_tactics.segment import Segment
from root_tactics.soil import Resource, SoilGrid
from root_tactics.world import World

__all__ = [
    # Core classes
    "Branch",
    "BranchArena",
    "BranchId",
    "GrowthAction",
    "GrowthDecision",
    "GrowthPolicy",
    "Plant",
    "Resource",
    "Segment",
    "SoilGrid",
    "World",
    "decision_shares",
    # Configuration
    "config",
    "configure",
    "use",
    "seed",
    "rng",
    "set_log_level",
]
