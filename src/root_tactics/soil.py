"""Module defining the SoilGrid class, the resource field roots grow in.

The field is a bounded 2D area quantized into square cells of ``GRID_STEP``
units. Every cell carries two independent concentrations, water and nitrogen.
The growth axis is ``y``: ``y == 0`` is the soil surface and depth increases
with ``y``.
"""

from __future__ import annotations

import logging
import math
from enum import Enum
from typing import Any, Optional, Sequence, Tuple, Union

import numpy as np
from numpy.typing import NDArray

_LOGGER = logging.getLogger(__name__)

GRID_STEP = 10
PH = 5.5
# 0 to 10 by Mohs' scale.
HARDNESS = 1.0

Point = Union[NDArray[Any], Sequence[float]]


class Resource(Enum):
    """Soil resource channels."""

    WATER = "water"
    NITRO = "nitro"


class SoilGrid:
    """Discretized water/nitrogen field.

    Positions resolve to exactly one cell by floor quantization. Anything
    outside ``[0, width) x [0, height)`` reads as zero and absorbs nothing.

    Attributes:
        width (int): Field width in world units.
        height (int): Field depth in world units.
        step (int): Cell edge length in world units.
        water (NDArray[np.float64]): Water concentration per cell, indexed ``[row, col]``.
        nitro (NDArray[np.float64]): Nitrogen concentration per cell, indexed ``[row, col]``.
    """

    def __init__(self, width: int, height: int, step: int = GRID_STEP) -> None:
        """Create a zero-filled field.

        Args:
            width (int): Field width in world units.
            height (int): Field depth in world units.
            step (int): Quantization step (cell size).

        A non-positive width or height yields an empty field with no cells,
        where every read is zero and every deposit is dropped.

        Raises:
            ValueError: If the step is not positive.
        """
        if step <= 0:
            raise ValueError(f"SoilGrid step must be positive, got {step}")

        self.width = max(int(width), 0)
        self.height = max(int(height), 0)
        self.step = int(step)

        shape = (
            -(-self.height // self.step),
            -(-self.width // self.step),
        )
        self.water: NDArray[np.float64] = np.zeros(shape, dtype=float)
        self.nitro: NDArray[np.float64] = np.zeros(shape, dtype=float)

        _LOGGER.debug(
            "SoilGrid initialized: size=%dx%d step=%d cells=%s",
            self.width,
            self.height,
            self.step,
            shape,
        )

    @property
    def shape(self) -> Tuple[int, int]:
        """Return the ``(rows, cols)`` cell shape of each channel."""
        return self.water.shape  # type: ignore[return-value]

    def _channel(self, kind: Resource) -> NDArray[np.float64]:
        if kind is Resource.WATER:
            return self.water
        if kind is Resource.NITRO:
            return self.nitro
        raise ValueError(f"Unknown resource kind: {kind!r}")

    def _cell(self, pos: Point) -> Optional[Tuple[int, int]]:
        """Quantize a position to ``(row, col)``, or None when outside the field."""
        x = float(pos[0])
        y = float(pos[1])
        if not (math.isfinite(x) and math.isfinite(y)):
            return None
        if x < 0.0 or y < 0.0 or x >= self.width or y >= self.height:
            return None
        return math.floor(y) // self.step, math.floor(x) // self.step

    def _add_at(self, pos: Point, kind: Resource, amount: float) -> float:
        """Add `amount` to the cell under `pos`.

        Returns:
            float: The change actually applied. Zero outside the field; a
            negative amount never drives a cell below zero.
        """
        cell = self._cell(pos)
        if cell is None:
            return 0.0

        arr = self._channel(kind)
        was = float(arr[cell])
        arr[cell] = was + amount
        if arr[cell] < 0.0:
            arr[cell] = 0.0
            return -was
        return amount

    def _disc_points(
        self, pos: Point, radius: float
    ) -> Sequence[Tuple[float, float]]:
        """Lattice points (one per cell step) inside the disc around `pos`."""
        cx, cy = float(pos[0]), float(pos[1])
        r2 = radius * radius
        points = []
        for x in range(math.floor(cx - radius), math.floor(cx + radius), self.step):
            for y in range(math.floor(cy - radius), math.floor(cy + radius), self.step):
                if (x - cx) ** 2 + (y - cy) ** 2 <= r2:
                    points.append((float(x), float(y)))
        return points

    def add_resource(
        self, pos: Point, radius: float, amount: float, kind: Resource
    ) -> float:
        """Spread `amount` of a resource over a disc.

        The number of covered cells is estimated as the disc area over the
        cell area; each covered lattice point receives an even share, capped by
        what is left, and the remainder lands on the centre cell.

        Args:
            pos (Point): Disc centre.
            radius (float): Disc radius in world units.
            amount (float): Total mass to deposit.
            kind (Resource): Channel to deposit into.

        Returns:
            float: The mass actually deposited. Equal to `amount` whenever the
            centre lies inside the field.
        """
        radius = float(radius)
        amount = float(amount)
        if not math.isfinite(amount) or amount <= 0.0:
            _LOGGER.debug("add_resource: nothing to deposit (amount=%r)", amount)
            return 0.0

        if not (math.isfinite(radius) and radius > 0.0):
            _LOGGER.debug(
                "add_resource: degenerate radius %r; depositing at centre", radius
            )
            return self._add_at(pos, kind, amount)

        estimated_cells = math.pi * radius**2 / float(self.step**2)
        share = amount / estimated_cells
        left = amount

        for point in self._disc_points(pos, radius):
            portion = min(share, left)
            if portion <= 0.0:
                break
            left -= self._add_at(point, kind, portion)

        if left > 0.0:
            left -= self._add_at(pos, kind, left)

        deposited = amount - left
        _LOGGER.debug(
            "add_resource(%s, pos=%s, r=%.2f): deposited %.6g of %.6g",
            kind.value,
            (float(pos[0]), float(pos[1])),
            radius,
            deposited,
            amount,
        )
        return deposited

    def add_nitro(self, pos: Point, radius: float, amount: float) -> float:
        """Spread nitrogen over a disc. See `add_resource`."""
        return self.add_resource(pos, radius, amount, Resource.NITRO)

    def add_water(self, pos: Point, radius: float, amount: float) -> float:
        """Spread water over a disc. See `add_resource`."""
        return self.add_resource(pos, radius, amount, Resource.WATER)

    def get_resource(self, pos: Point, kind: Resource) -> float:
        """Return the concentration of the cell under `pos` (0.0 outside the field)."""
        cell = self._cell(pos)
        if cell is None:
            return 0.0
        return float(self._channel(kind)[cell])

    def consume_resource(self, pos: Point, kind: Resource, power: float = 1.0) -> float:
        """Extract a resource at `pos`.

        Extraction is non-destructive: the available concentration is
        returned and the cell keeps it. `power` is accepted for the request
        protocol but does not limit the result.
        """
        return self.get_resource(pos, kind)

    def total(self, kind: Resource) -> float:
        """Total mass stored in one channel."""
        return float(self._channel(kind).sum())

    def sample(self, kind: Resource) -> NDArray[np.float64]:
        """Read-only copy of one channel, indexed ``[row, col]``."""
        out = self._channel(kind).copy()
        out.flags.writeable = False
        return out

    def get_ph(self, pos: Point) -> float:
        return PH

    def get_hardness(self, pos: Point) -> float:
        return HARDNESS

    def emit_acid(self, pos: Point) -> float:
        return 0.0

    def emit_base(self, pos: Point) -> float:
        return 0.0

    def __repr__(self) -> str:
        """Return a string representation of the grid."""
        return f"SoilGrid(width={self.width}, height={self.height}, step={self.step})"
