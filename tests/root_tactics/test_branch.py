"""Unit tests for the Branch class.

This test suite verifies branch metrics, path lookup, the growth decision
(new-branch candidacy, child distribution, elongate vs. thicken), applying a
decision to the tree, and resource uptake over a subtree.
"""
import math
from unittest.mock import Mock, patch

import numpy as np
import pytest

from root_tactics.arena import BranchArena
from root_tactics.branch import Branch, BranchId
from root_tactics.decision import GrowthAction, GrowthDecision, decision_shares
from root_tactics.growth_policy import GrowthPolicy
from root_tactics.segment import Segment
from root_tactics.soil import Resource, SoilGrid

CHILDREN_SHARE = 0.8 / 1.8


def _check_subtree(branch: Branch) -> float:
    """Assert subtree_weight == own + children's subtree weights, recursively."""
    total = branch.weight + sum(_check_subtree(c) for _, c in branch.children())
    assert branch.subtree_weight == pytest.approx(total, rel=1e-9)
    return total


# ----------------------------------------------------------------------------
# Metrics and lookup
# ----------------------------------------------------------------------------
def test_branch_metrics(make_branch):
    """Cylinder approximation: weight 4*pi over 4 unit segments gives radius 1."""
    branch = make_branch(4, 4.0 * math.pi)

    assert branch.length == 4.0
    assert branch.radius == pytest.approx(1.0)
    assert branch.surface == pytest.approx(math.pi)
    assert branch.weight == pytest.approx(4.0 * math.pi)
    assert branch.slenderness == pytest.approx(4.0)


def test_new_root_is_vertical_at_surface():
    arena = BranchArena()
    root = Branch.new_root(arena, 3, 120.0, 10.0)

    np.testing.assert_allclose(root.segments[0].start, [120.0, 0.0])
    np.testing.assert_allclose(root.segments[0].end, [120.0, 1.0])
    assert root.id == BranchId(3)
    assert root.subtree_weight == 10.0
    assert root.best_nitro == root.best_water == 0.0


def test_empty_branch_is_a_fault(make_branch):
    branch = make_branch(2, 1.0)
    branch.segments.clear()

    with pytest.raises(RuntimeError):
        branch.radius
    with pytest.raises(RuntimeError):
        branch.growth_decision(SoilGrid(10, 10), 1.0, GrowthPolicy())


def test_massless_branch_thickens(make_branch, empty_grid, policy):
    branch = make_branch(3, 0.0)

    assert branch.slenderness == math.inf
    decisions = branch.growth_decision(empty_grid, 1.0, policy)
    assert [d.action for d, _ in decisions] == [GrowthAction.THICKEN]


def test_get_branch_follows_path(make_branch):
    root = make_branch(10, 10.0)
    child = root._attach_child(4, np.array([51.0, 5.0]), 1.0)
    grandchild = child._attach_child(0, np.array([52.0, 6.0]), 0.5)

    assert root.get_branch([]) is root
    assert root.get_branch([4]) is child
    assert root.get_branch([4, 0]) is grandchild
    assert root.get_branch((4, 0)) is grandchild

    assert child.id == BranchId(0, (4,))
    assert grandchild.id == BranchId(0, (4, 0))
    assert str(grandchild.id) == "[0]:-4-0"
    assert str(root.id) == "[0]:"
    assert root.branch_count == 1


@pytest.mark.parametrize("path", [[3], [99], [-1], [4, 1], [4, 0, 0]])
def test_get_branch_missing(make_branch, path):
    root = make_branch(10, 10.0)
    child = root._attach_child(4, np.array([51.0, 5.0]), 1.0)
    child._attach_child(0, np.array([52.0, 6.0]), 0.5)

    assert root.get_branch(path) is None


def test_attach_child_twice_is_a_fault(make_branch):
    root = make_branch(10, 10.0)
    root._attach_child(4, np.array([51.0, 5.0]), 1.0)

    with pytest.raises(RuntimeError, match="already has a branch"):
        root._attach_child(4, np.array([49.0, 5.0]), 1.0)


# ----------------------------------------------------------------------------
# Growth decision
# ----------------------------------------------------------------------------
def test_fresh_root_only_elongates(make_branch, empty_grid, policy):
    root = make_branch(1, 10.0)

    decisions = root.growth_decision(empty_grid, 2.0, policy)

    assert len(decisions) == 1
    decision, share = decisions[0]
    assert decision.action is GrowthAction.ELONGATE
    assert share == 1.0
    np.testing.assert_allclose(decision.target, [50.0, 2.0])


def test_first_branch_candidate_even_segment(make_branch, empty_grid, policy):
    """
    A 13-segment root heavier than 1 / 0.03 branches at segment 13 // 2 = 6.

    Even segment index -> lean -pi/4 from the segment's pi/2 heading.
    """
    root = make_branch(13, 34.0)

    decisions = root.growth_decision(empty_grid, 2.0, policy)

    assert [d.action for d, _ in decisions] == [
        GrowthAction.NEW_BRANCH,
        GrowthAction.ELONGATE,
    ]
    new_branch, share = decisions[0]
    assert new_branch.segment_index == 6
    assert share == pytest.approx(CHILDREN_SHARE)
    s = math.sqrt(0.5)
    np.testing.assert_allclose(new_branch.target, [50.0 + s, 7.0 + s])
    assert decisions[1][1] == pytest.approx(1.0 - CHILDREN_SHARE)


def test_first_branch_candidate_odd_segment(make_branch, empty_grid, policy):
    root = make_branch(15, 40.0)

    decision = root.new_branch_candidate()

    assert decision.segment_index == 7
    s = math.sqrt(0.5)
    np.testing.assert_allclose(decision.target, [50.0 - s, 8.0 + s])


def test_light_branch_does_not_branch(make_branch, empty_grid, policy):
    root = make_branch(13, 33.0)

    decisions = root.growth_decision(empty_grid, 2.0, policy)

    assert [d.action for d, _ in decisions] == [GrowthAction.ELONGATE]


@pytest.mark.parametrize("n", [1, 2, 3, 4])
def test_candidate_rejected_near_tip(make_branch, n):
    """The middle of a short branch lies on one of its last two segments."""
    root = make_branch(n, 100.0)

    assert root.new_branch_candidate() is None


def test_next_branch_mirrors_sibling(make_branch, empty_grid, policy):
    """
    With the last child at segment 6 of 21 (6 / 21 < 0.3) the next candidate is
    6 + 15 // 2 = 13, mirrored to the other side of the parent.
    """
    root = make_branch(21, 100.0)
    s = math.sqrt(0.5)
    root._attach_child(6, np.array([50.0 + s, 7.0 + s]), 1.0)

    decisions = root.growth_decision(empty_grid, 2.0, policy)
    new_branch = decisions[0][0]

    assert new_branch.action is GrowthAction.NEW_BRANCH
    assert new_branch.segment_index == 13
    np.testing.assert_allclose(new_branch.target, [50.0 - s, 14.0 + s])


def test_no_new_branch_past_branch_zone(make_branch, empty_grid, policy):
    """Last child at 6 of 13 segments (>= 30%): no new branch is attempted."""
    root = make_branch(13, 100.0)
    child = root._attach_child(6, np.array([51.0, 7.0]), 1.0)
    child.best_nitro = 0.0

    decisions = root.growth_decision(empty_grid, 2.0, policy)

    assert GrowthAction.NEW_BRANCH not in {d.action for d, _ in decisions}


def test_children_share_split_by_resource_score(make_branch, empty_grid, policy):
    root = make_branch(10, 10.0)
    a = root._attach_child(2, np.array([51.0, 3.0]), 1.0)
    b = root._attach_child(5, np.array([49.0, 6.0]), 1.0)
    c = root._attach_child(7, np.array([51.0, 8.0]), 1.0)
    a.best_nitro, a.best_water = 1.0, 0.0
    b.best_nitro, b.best_water = 0.25, 0.75
    c.best_nitro, c.best_water = 0.0, 0.0

    decisions = root.growth_decision(empty_grid, 2.0, policy)

    feeds = {d.segment_index: w for d, w in decisions if d.action is GrowthAction.FEED_CHILD}
    assert set(feeds) == {2, 5}
    assert feeds[2] == pytest.approx(CHILDREN_SHARE / 2.0)
    assert feeds[5] == pytest.approx(CHILDREN_SHARE / 2.0)
    assert decisions[-1][0].action is GrowthAction.ELONGATE
    assert decisions[-1][1] == pytest.approx(1.0 - CHILDREN_SHARE)


def test_children_without_score_get_nothing(make_branch, empty_grid, policy):
    root = make_branch(10, 10.0)
    root._attach_child(2, np.array([51.0, 3.0]), 1.0)

    decisions = root.growth_decision(empty_grid, 2.0, policy)

    assert [(d.action, w) for d, w in decisions] == [(GrowthAction.ELONGATE, 1.0)]


def test_slender_branch_thickens(make_branch, empty_grid, policy):
    """Length 10 with radius ~0.018 is far beyond the 80 conic ratio."""
    root = make_branch(10, 0.01)

    decisions = root.growth_decision(empty_grid, 2.0, policy)

    assert len(decisions) == 1
    assert decisions[0][0].action is GrowthAction.THICKEN
    assert decisions[0][1] == 1.0


@pytest.mark.parametrize(
    "n,weight,scores",
    [
        (1, 10.0, {}),
        (13, 34.0, {}),
        (10, 10.0, {2: 0.3, 5: 1.7}),
        (10, 10.0, {2: 0.0, 5: 0.0}),
        (30, 500.0, {3: 0.5}),
        (10, 0.01, {4: 2.0}),
    ],
)
@pytest.mark.parametrize(
    "policy_kwargs",
    [{}, {"children_weight_rate": 3.0, "child_weight_rate": 0.5}, {"conic_ratio": 2.0}],
)
def test_decision_shares_sum_to_one(make_branch, empty_grid, n, weight, scores, policy_kwargs):
    root = make_branch(n, weight)
    for idx, score in scores.items():
        child = root._attach_child(idx, np.array([51.0, idx + 1.0]), 1.0)
        child.best_nitro = score

    decisions = root.growth_decision(empty_grid, 1.0, GrowthPolicy(**policy_kwargs))

    assert abs(sum(w for _, w in decisions) - 1.0) < 1e-4
    assert sum(decision_shares(decisions).values()) == pytest.approx(1.0)


# ----------------------------------------------------------------------------
# Applying a decision
# ----------------------------------------------------------------------------
def test_grow_elongates(make_branch, empty_grid, policy):
    root = make_branch(1, 10.0)

    root.grow(2.0, empty_grid, policy)

    assert len(root.segments) == 2
    np.testing.assert_allclose(root.segments[1].start, [50.0, 1.0])
    np.testing.assert_allclose(root.segments[1].end, [50.0, 2.0])
    assert root.weight == pytest.approx(12.0)
    assert root.subtree_weight == pytest.approx(12.0)


def test_grow_never_rises_above_surface(empty_grid, policy):
    """Elongating upward past y = 0 is dropped; the biomass thickens instead."""
    arena = BranchArena()
    root = Branch(arena, BranchId(0), (50.0, 1.0), (50.0, 0.25), 10.0)

    root.grow(2.0, empty_grid, policy)

    assert len(root.segments) == 1
    assert root.weight == pytest.approx(12.0)
    assert root.subtree_weight == pytest.approx(12.0)


def test_new_branch_above_surface_is_dropped(empty_grid, policy):
    """
    A horizontal 13-segment branch on the surface would branch at segment 6
    at -pi/4, i.e. upward: the child is not created.
    """
    arena = BranchArena()
    root = Branch(arena, BranchId(0), (0.0, 0.0), (1.0, 0.0), 40.0)
    for i in range(1, 13):
        root.segments.append(Segment((float(i), 0.0), (float(i + 1), 0.0)))

    root.grow(9.0, empty_grid, policy)

    assert len(arena) == 1
    assert root.branch_count == 0
    assert len(root.segments) == 14
    assert root.weight == pytest.approx(49.0)
    assert root.subtree_weight == pytest.approx(49.0)


def test_grow_creates_child(make_branch, empty_grid, policy):
    root = make_branch(13, 34.0)

    root.grow(1.8, empty_grid, policy)

    child = root.get_branch([6])
    assert child is not None
    assert child.id == BranchId(0, (6,))
    assert child.parent_segment_index == 6
    assert child.weight == pytest.approx(0.8)
    np.testing.assert_allclose(child.segments[0].start, [50.0, 7.0])
    assert root.weight == pytest.approx(35.0)
    assert len(root.segments) == 14
    assert root.subtree_weight == pytest.approx(35.8)
    _check_subtree(root)


def test_grow_feeds_child(make_branch, empty_grid, policy):
    root = make_branch(10, 10.0)
    child = root._attach_child(4, np.array([50.0, 6.0]), 1.0)
    child.best_nitro = 1.0

    root.grow(1.8, empty_grid, policy)

    assert child.weight == pytest.approx(1.8)
    assert len(child.segments) == 2
    np.testing.assert_allclose(child.segments[1].end, [50.0, 7.0])
    assert root.weight == pytest.approx(11.0)
    assert len(root.segments) == 11
    assert root.subtree_weight == pytest.approx(12.8)
    _check_subtree(root)


def test_attach_child_books_seed_weight(make_branch):
    """A seeded child counts towards its parent's subtree biomass at once."""
    root = make_branch(10, 10.0)

    child = root._attach_child(4, np.array([51.0, 5.0]), 1.5)

    assert child.subtree_weight == pytest.approx(1.5)
    assert root.subtree_weight == pytest.approx(11.5)
    assert root.weight == pytest.approx(10.0)
    _check_subtree(root)


def test_feeding_missing_child_is_a_fault(make_branch, empty_grid, policy):
    root = make_branch(10, 10.0)

    with patch.object(
        Branch,
        "growth_decision",
        return_value=[(GrowthDecision.feed_child(3), 1.0)],
    ):
        with pytest.raises(RuntimeError, match="no child"):
            root.grow(1.0, empty_grid, policy)


def test_new_branch_on_occupied_segment_is_a_fault(make_branch, empty_grid, policy):
    root = make_branch(10, 10.0)
    root._attach_child(4, np.array([51.0, 5.0]), 1.0)

    with patch.object(
        Branch,
        "growth_decision",
        return_value=[(GrowthDecision.new_branch(np.array([49.0, 5.0]), 4), 1.0)],
    ):
        with pytest.raises(RuntimeError, match="already has a branch"):
            root.grow(1.0, empty_grid, policy)


def test_repeated_growth_keeps_branching_invariants(make_branch, empty_grid):
    """
    Heavy, repeated growth with fed children never places a child on the last
    two segments of its parent, never puts two children on one segment, and
    keeps every point at or below the surface.
    """
    policy = GrowthPolicy(children_weight_rate=1.5, child_weight_rate=0.2)
    root = make_branch(3, 20.0)

    for _ in range(40):
        for branch in root.arena:
            branch.best_nitro = 1.0
        root.grow(6.0, empty_grid, policy)

        for branch in root.arena:
            children = [s.child for s in branch.segments if s.child is not None]
            assert len(children) == len(set(children))
            for _, child in branch.children():
                assert child.parent_segment_index + 2 < len(branch.segments)
            for segment in branch.segments:
                assert segment.start[1] >= 0.0
                assert segment.end[1] >= 0.0

    assert len(root.arena) > 1
    _check_subtree(root)


# ----------------------------------------------------------------------------
# Resource uptake
# ----------------------------------------------------------------------------
def test_suck_without_children_tracks_own_maxima():
    """
    Endpoints y = 1..9 sit in the row-0 cell (2.0 nitro each), y = 10..12 in
    the row-1 cell (3.0 nitro each).
    """
    grid = SoilGrid(100, 100)
    grid.add_nitro((55.0, 5.0), 0.0, 2.0)
    grid.add_nitro((55.0, 15.0), 0.0, 3.0)
    arena = BranchArena()
    root = Branch.new_root(arena, 0, 55.0, 10.0)
    for i in range(1, 12):
        root.segments.append(Segment((55.0, float(i)), (55.0, float(i + 1))))

    nitro, water = root.suck(grid)

    assert nitro == pytest.approx(9 * 2.0 + 3 * 3.0)
    assert water == 0.0
    assert root.best_nitro == 3.0
    assert root.best_water == 0.0


def test_suck_adds_child_totals(make_branch):
    """Own segments sum to 1.0 nitro, the child reports 0.5: the parent reports 1.5."""
    root = make_branch(2, 10.0, x=5.0)
    child = root._attach_child(1, np.array([6.0, 3.0]), 1.0)

    grid = Mock()
    grid.consume_resource.side_effect = lambda pos, kind, power: (
        0.5 if kind is Resource.NITRO else 0.25
    )

    nitro, water = root.suck(grid)

    assert nitro == pytest.approx(1.5)
    assert water == pytest.approx(0.75)
    assert child.best_nitro == 0.5
    assert grid.consume_resource.call_count == 6


def test_suck_best_covers_subtree():
    grid = SoilGrid(100, 100)
    grid.add_nitro((5.0, 5.0), 0.0, 1.0)
    grid.add_nitro((15.0, 5.0), 0.0, 4.0)
    grid.add_water((5.0, 5.0), 0.0, 0.5)
    arena = BranchArena()
    root = Branch.new_root(arena, 0, 5.0, 10.0)
    root.segments.append(Segment((5.0, 1.0), (5.0, 2.0)))
    root.segments.append(Segment((5.0, 2.0), (5.0, 3.0)))
    child = root._attach_child(2, np.array([15.0, 3.0]), 1.0)

    nitro, water = root.suck(grid)

    assert nitro == pytest.approx(3 * 1.0 + 4.0)
    assert water == pytest.approx(3 * 0.5)
    assert child.best_nitro == 4.0
    assert root.best_nitro == 4.0
    assert root.best_water == 0.5


def test_suck_overwrites_previous_maxima(make_branch):
    root = make_branch(3, 10.0)
    root.best_nitro = 9.0
    root.best_water = 9.0

    root.suck(SoilGrid(100, 100))

    assert root.best_nitro == 0.0
    assert root.best_water == 0.0
