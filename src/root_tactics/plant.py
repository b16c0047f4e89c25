"""Module defining the Plant class, the unit a host loop ticks.

A plant couples one root branch (and the arena holding its descendants) with
one growth policy. A tick is uptake over the whole root system followed by
growth of the root with the biomass that uptake produced.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterator, List, Optional, Tuple

import meshio
import numpy as np
from numpy.typing import NDArray

from .arena import BranchArena
from .branch import Branch
from .growth_policy import GrowthPolicy
from .soil import SoilGrid

logger = logging.getLogger(__name__)

# Empirical conversion from uptake to new biomass; tunable, not physical.
UPTAKE_OFFSET = 0.2
BIOMASS_SCALE = 10.0
SEED_WEIGHT = 10.0


def new_material_from_uptake(nitro: float, water: float) -> float:
    """Biomass produced from one tick's uptake totals.

    The scarcer resource limits growth.
    """
    return min(nitro + UPTAKE_OFFSET, water + UPTAKE_OFFSET) * BIOMASS_SCALE


class Plant:
    """One root system growing under a single policy.

    Attributes:
        index (int): Plant index, first element of every `BranchId` it owns.
        arena (BranchArena): All branches of this plant.
        root (Branch): The root branch.
        policy (GrowthPolicy): Shape ratios.
        nitro_access (float): Nitrogen total from the latest uptake.
        water_access (float): Water total from the latest uptake.
        last_material (float): Biomass produced by the latest tick.
    """

    def __init__(
        self,
        index: int,
        x: float,
        policy: Optional[GrowthPolicy] = None,
        seed_weight: float = SEED_WEIGHT,
    ) -> None:
        """Plant a vertical root at the soil surface.

        Args:
            index (int): Plant index.
            x (float): Horizontal position of the root.
            policy (Optional[GrowthPolicy]): Growth policy; defaults apply if None.
            seed_weight (float): Initial biomass of the root.
        """
        self.index = index
        self.policy = policy if policy is not None else GrowthPolicy()
        self.arena = BranchArena()
        self.root = Branch.new_root(self.arena, index, x, seed_weight)
        self.nitro_access = 0.0
        self.water_access = 0.0
        self.last_material = 0.0
        logger.debug("Plant %d planted at x=%.2f with %s", index, x, self.policy)

    def grow(self, grid: SoilGrid) -> float:
        """Run one tick: uptake, then growth.

        Returns:
            float: The biomass produced and spent this tick.
        """
        self.nitro_access, self.water_access = self.root.suck(grid)
        material = new_material_from_uptake(self.nitro_access, self.water_access)
        self.root.grow(material, grid, self.policy)
        self.last_material = material

        logger.debug(
            "Plant %d tick: nitro=%.4f water=%.4f material=%.4f branches=%d",
            self.index,
            self.nitro_access,
            self.water_access,
            material,
            len(self.arena),
        )
        return material

    @property
    def total_biomass(self) -> float:
        """Own biomass summed over every branch."""
        return self.arena.total_weight()

    @property
    def branch_count(self) -> int:
        """Number of branches including the root."""
        return len(self.arena)

    def branches(self) -> Iterator[Branch]:
        return iter(self.arena)

    def extract_lines(self) -> Tuple[NDArray[Any], NDArray[Any], NDArray[Any]]:
        """Flatten the root system into a line mesh.

        Returns:
            (points, edges, branch_of_edge)
            - points: ``(n_points, 3)`` coordinates in the plane z = 0.
            - edges: ``(n_edges, 2)`` point index pairs, one per segment.
            - branch_of_edge: arena index of the branch owning each edge.
        """
        points: List[List[float]] = []
        edges: List[List[int]] = []
        owners: List[int] = []
        for branch in self.arena:
            for segment in branch.segments:
                points.append([float(segment.start[0]), float(segment.start[1]), 0.0])
                points.append([float(segment.end[0]), float(segment.end[1]), 0.0])
                edges.append([len(points) - 2, len(points) - 1])
                owners.append(branch.index)

        return (
            np.asarray(points, dtype=float).reshape(-1, 3),
            np.asarray(edges, dtype=int).reshape(-1, 2),
            np.asarray(owners, dtype=int),
        )

    def save_meshio(
        self,
        fname: str,
        point_data: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Export the root system as a meshio Mesh with line cells.

        Cell data carries each segment's branch ``radius`` and arena ``branch``
        index.

        Args:
            fname (str): Path to the output file (format inferred by extension).
            point_data (Optional[Dict[str, Any]]): Optional per-point data arrays.
        """
        logger.info(f"Saving plant {self.index} to meshio format at {fname}")

        xyz, edges, owners = self.extract_lines()
        radii = np.array([self.arena[i].radius for i in owners], dtype=float)
        mesh = meshio.Mesh(
            points=xyz,
            cells={"line": edges},
            point_data=point_data or {},
            cell_data={"radius": [radii], "branch": [owners]},
        )
        mesh.write(fname)

    def __repr__(self) -> str:
        """Return a string representation of the plant."""
        return (
            f"Plant(index={self.index}, branches={len(self.arena)}, "
            f"biomass={self.total_biomass:.4f})"
        )
