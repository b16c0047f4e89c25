from __future__ import annotations
import pytest

import numpy as np
from root_tactics.arena import BranchArena
from root_tactics.branch import Branch
from root_tactics.growth_policy import GrowthPolicy
from root_tactics.segment import Segment
from root_tactics.soil import SoilGrid


@pytest.fixture()
def rt_seeded():
    import root_tactics as rt

    with rt.use(seed=0):
        yield rt


@pytest.fixture
def policy():
    """Default policy: conic 80, children rate 0.8, child rate 0.03."""
    return GrowthPolicy()


@pytest.fixture
def empty_grid():
    """A 200 x 200 field with both channels at zero."""
    return SoilGrid(200, 200)


@pytest.fixture
def make_branch():
    """
    Build a vertical root at ``x`` made of ``n`` unit segments.

    Segment ``i`` runs from ``(x, i)`` to ``(x, i + 1)``.
    """

    def _make(n: int, weight: float, x: float = 50.0) -> Branch:
        arena = BranchArena()
        branch = Branch.new_root(arena, 0, x, weight)
        for _ in range(n - 1):
            tip = branch.segments[-1]
            branch.segments.append(Segment(tip.end, tip.end + np.array([0.0, 1.0])))
        arena.invalidate()
        return branch

    return _make
