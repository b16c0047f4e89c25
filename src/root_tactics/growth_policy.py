"""Module defining the GrowthPolicy class for configuring root growth.

This module provides the GrowthPolicy class, which holds the ratios that
shape a plant's root system and how often it branches.
"""

import math
from dataclasses import dataclass


@dataclass(frozen=True)
class GrowthPolicy:
    """Holds the per-plant ratios controlling root shape and branching.

    Attributes:
        conic_ratio (float): Target length:radius ratio. Below it a branch
            elongates, above it the branch thickens instead.
        children_weight_rate (float): Desired ratio of all children's biomass
            to the branch's own biomass.
        child_weight_rate (float): Inverse of the own-mass threshold a branch
            must exceed before it tries to branch.
        default_side_angle (float): Angle (in radians) a new branch tends to
            grow at. Stored but not consulted by the branching rule.

    Notes:
        - Both weight rates must be positive; the children share and the
          branching threshold divide by them.
    """

    conic_ratio: float = 80.0
    children_weight_rate: float = 0.8
    child_weight_rate: float = 0.03
    default_side_angle: float = math.pi / 4.0

    def __post_init__(self) -> None:
        if not self.conic_ratio > 0.0:
            raise ValueError(f"conic_ratio must be positive, got {self.conic_ratio}")
        if not self.children_weight_rate > 0.0:
            raise ValueError(
                f"children_weight_rate must be positive, got {self.children_weight_rate}"
            )
        if not self.child_weight_rate > 0.0:
            raise ValueError(
                f"child_weight_rate must be positive, got {self.child_weight_rate}"
            )

    @property
    def children_share(self) -> float:
        """Fraction of new biomass that goes to children.

        Solves ``c / m == children_weight_rate`` with ``c + m == 1``.
        """
        return self.children_weight_rate / (self.children_weight_rate + 1.0)

    def min_mass_for_children(self, min_child_mass: float = 1.0) -> float:
        """Own biomass a branch must exceed before it tries to branch."""
        return min_child_mass / self.child_weight_rate
