"""Tests for construction, refinement and the optimize_seating entry point."""

from collections import Counter

import pytest
from conftest import make_constraint, make_guest, make_table

from seatplan.grouping import GuestGroup
from seatplan.models import OptimizationOptions
from seatplan.optimizer import (
    greedy_assignment,
    has_avoid_conflict,
    local_search_improve,
    optimize_seating,
    pin_current_assignments,
    refine,
)
from seatplan.scoring import calculate_total_score, index_guests


def _occupancy_ok(assignment, tables):
    counts = Counter(assignment.values())
    return all(counts[t.id] <= t.capacity for t in tables)


def _wedding():
    guests = [
        make_guest("ann", ("ben", "partner"), group="Bride", interests=["jazz"]),
        make_guest("ben", ("ann", "partner"), group="Bride"),
        make_guest("cat", ("dan", "friend"), group="Groom", interests=["jazz"]),
        make_guest("dan", ("cat", "friend"), ("eve", "avoid"), group="Groom"),
        make_guest("eve", group="Groom", interests=["chess"]),
        make_guest("fay", ("eve", "family"), interests=["chess"]),
        make_guest("gus", ("hal", "colleague")),
        make_guest("hal", ("gus", "colleague"), ("ann", "acquaintance")),
        make_guest("ivy", rsvp_status="declined"),
    ]
    tables = [make_table("t1", 3), make_table("t2", 4), make_table("t3", 3)]
    constraints = [
        make_constraint("c1", "must_sit_together", ["cat", "dan"]),
        make_constraint("c2", "different_table", ["gus", "ann"], priority="preferred"),
    ]
    return guests, tables, constraints


def test_partner_pair_is_seated_together(weights):
    guests = [make_guest("a", ("b", "partner")), make_guest("b", ("a", "partner"))]
    tables = [make_table("t1", 2)]

    result = optimize_seating(guests, tables, [], weights)

    assert result.proposed_assignments == {"a": "t1", "b": "t1"}
    assert result.total_score == 200
    assert sorted(result.moved_guests) == ["a", "b"]


def test_avoid_pair_is_never_seated_together(weights):
    guests = [make_guest("a", ("b", "avoid")), make_guest("b")]
    tables = [make_table("t1", 2), make_table("t2", 2)]

    result = optimize_seating(guests, tables, [], weights)

    assert set(result.proposed_assignments) == {"a", "b"}
    assert result.proposed_assignments["a"] != result.proposed_assignments["b"]
    assert result.violations == []


def test_unsatisfiable_required_constraint_is_reported_once(weights):
    guests = [make_guest("a"), make_guest("b"), make_guest("c")]
    tables = [make_table("t1", 2), make_table("t2", 2)]
    constraints = [make_constraint("c1", "must_sit_together", ["a", "b", "c"])]

    result = optimize_seating(guests, tables, constraints, weights)

    assert len(result.proposed_assignments) == 3
    assert len(result.violations) == 1
    violation = result.violations[0]
    assert violation.severity == "critical"
    assert violation.guest_ids == ["a", "b", "c"]
    assert violation.constraint_id == "c1"


def test_empty_input_gives_empty_result(weights):
    result = optimize_seating([], [], [], weights)

    assert result.proposed_assignments == {}
    assert result.total_score == 0
    assert result.previous_score == 0
    assert result.violations == []
    assert result.moved_guests == []
    assert result.table_scores == {}


def test_guests_without_tables_stay_unassigned(weights):
    guests = [make_guest("a"), make_guest("b")]

    result = optimize_seating(guests, [], [], weights)

    assert result.proposed_assignments == {}
    assert result.assignment_scores == []


def test_group_cohesion_shows_in_breakdown(weights):
    guests = [make_guest(gid, group="Family") for gid in ("a", "b", "c")]
    tables = [make_table("t1", 3)]

    result = optimize_seating(guests, tables, [], weights)

    assert result.total_score == 3 * 2 * 40
    for score in result.assignment_scores:
        assert score.breakdown.group_cohesion_score == 80
        assert score.breakdown.reasons[0].description == '2 member(s) of "Family" at same table'


def test_declined_guests_are_not_seated(weights):
    guests, tables, constraints = _wedding()

    result = optimize_seating(guests, tables, constraints, weights)

    assert "ivy" not in result.proposed_assignments
    assert len(result.proposed_assignments) == 8
    assert _occupancy_ok(result.proposed_assignments, tables)


def test_full_run_respects_capacity_and_avoid(weights):
    guests, tables, constraints = _wedding()

    result = optimize_seating(guests, tables, constraints, weights)
    seats = result.proposed_assignments

    assert _occupancy_ok(seats, tables)
    assert seats["ann"] == seats["ben"]
    assert seats["cat"] == seats["dan"]
    assert seats["dan"] != seats["eve"]
    assert not [v for v in result.violations if v.severity == "critical"]


def test_optimization_is_deterministic(weights):
    guests, tables, constraints = _wedding()

    first = optimize_seating(guests, tables, constraints, weights)
    second = optimize_seating(guests, tables, constraints, weights)

    assert first == second
    assert list(first.proposed_assignments.items()) == list(second.proposed_assignments.items())


def test_selection_restricts_guests_and_tables(weights):
    guests, tables, constraints = _wedding()
    options = OptimizationOptions(
        selected_guest_ids=["ann", "ben", "ivy"], selected_table_ids=["t3"]
    )

    result = optimize_seating(guests, tables, constraints, weights, options)

    # selecting a guest overrides the declined filter
    assert result.proposed_assignments == {"ann": "t3", "ben": "t3", "ivy": "t3"}
    assert list(result.table_scores) == ["t3"]


def test_previous_score_uses_input_seating(weights):
    guests = [
        make_guest("a", ("b", "friend"), table_id="t1"),
        make_guest("b", table_id="t2"),
    ]
    tables = [make_table("t1", 2), make_table("t2", 2)]

    result = optimize_seating(guests, tables, [], weights)

    assert result.previous_score == 0
    assert result.total_score == 30
    assert result.score_improvement == 30
    assert result.current_assignments == {"a": "t1", "b": "t2"}
    assert result.proposed_assignments == {"a": "t1", "b": "t1"}
    assert result.moved_guests == ["b"]


def test_preserve_keeps_seated_guests_in_place(weights):
    guests = [
        make_guest("a", ("b", "friend"), table_id="t2"),
        make_guest("b", ("a", "friend")),
    ]
    tables = [make_table("t1", 4), make_table("t2", 4)]

    fresh = optimize_seating(guests, tables, [], weights)
    kept = optimize_seating(
        guests, tables, [], weights, OptimizationOptions(preserve_current_assignments=True)
    )

    assert fresh.proposed_assignments == {"a": "t1", "b": "t1"}
    assert fresh.moved_guests == ["a", "b"]
    assert kept.proposed_assignments == {"a": "t2", "b": "t2"}
    assert kept.moved_guests == ["b"]


def test_pinning_never_overfills_a_table():
    guests = [make_guest(gid, table_id="t1") for gid in ("a", "b", "c")]
    tables = [make_table("t1", 2)]

    assert pin_current_assignments(guests, tables) == {"a": "t1", "b": "t1"}


def test_zero_iterations_skips_refinement(weights):
    guests, tables, constraints = _wedding()

    result = optimize_seating(
        guests, tables, constraints, weights, OptimizationOptions(max_iterations=0)
    )

    assert result.iterations == 0


def test_expired_time_limit_stops_refinement(weights):
    guests, tables, constraints = _wedding()

    result = optimize_seating(
        guests, tables, constraints, weights, OptimizationOptions(time_limit=0)
    )

    assert result.iterations == 0
    assert _occupancy_ok(result.proposed_assignments, tables)


def test_avoid_conflict_checks_both_directions():
    guests = index_guests([make_guest("a", ("b", "avoid")), make_guest("b"), make_guest("c")])

    assert has_avoid_conflict(["b"], "t1", {"a": "t1"}, guests)
    assert has_avoid_conflict(["a"], "t1", {"b": "t1"}, guests)
    assert not has_avoid_conflict(["c"], "t1", {"a": "t1"}, guests)
    # the moving guest's own entry is not an occupant
    assert not has_avoid_conflict(["a"], "t1", {"a": "t1", "c": "t1"}, guests)


def test_greedy_prefers_larger_table_on_ties(weights):
    guests = [make_guest("a")]
    tables = [make_table("small", 2), make_table("big", 4), make_table("big2", 4)]

    assignment = greedy_assignment([GuestGroup(["a"], 10)], tables, guests, [], weights)

    assert assignment == {"a": "big"}


def test_greedy_leaves_guest_without_feasible_table_unassigned(weights):
    guests = [make_guest("a"), make_guest("b"), make_guest("c")]
    groups = [GuestGroup([gid], 10) for gid in ("a", "b", "c")]

    assignment = greedy_assignment(groups, [make_table("t1", 2)], guests, [], weights)

    assert assignment == {"a": "t1", "b": "t1"}


def test_greedy_splits_group_that_fits_nowhere(weights):
    guests = [make_guest("a"), make_guest("b"), make_guest("c")]
    tables = [make_table("t1", 2), make_table("t2", 1)]

    assignment = greedy_assignment(
        [GuestGroup(["a", "b", "c"], 80)], tables, guests, [], weights
    )

    assert assignment == {"a": "t1", "b": "t1", "c": "t2"}


def test_avoid_beats_required_together_constraint(weights):
    guests = [make_guest("a", ("b", "avoid")), make_guest("b")]
    tables = [make_table("t1", 4), make_table("t2", 4)]
    constraints = [make_constraint("c1", "must_sit_together", ["a", "b"])]

    result = optimize_seating(guests, tables, constraints, weights)

    assert result.proposed_assignments["a"] != result.proposed_assignments["b"]
    assert [(v.severity, v.constraint_id) for v in result.violations] == [("critical", "c1")]


def test_local_search_returns_first_improving_swap(weights):
    guests = [
        make_guest("a", ("c", "friend")),
        make_guest("b", ("d", "friend")),
        make_guest("c"),
        make_guest("d"),
    ]
    tables = [make_table("t1", 2), make_table("t2", 2)]
    assignment = {"a": "t1", "b": "t1", "c": "t2", "d": "t2"}

    improved = local_search_improve(assignment, guests, tables, [], weights)

    assert improved == {"a": "t2", "b": "t1", "c": "t2", "d": "t1"}
    assert calculate_total_score(improved, guests, [], weights) == 60
    assert assignment == {"a": "t1", "b": "t1", "c": "t2", "d": "t2"}


def test_local_search_returns_none_at_local_optimum(weights):
    guests = [make_guest("a", ("b", "friend")), make_guest("b"), make_guest("c")]
    tables = [make_table("t1", 2), make_table("t2", 2)]

    assignment = {"a": "t1", "b": "t1", "c": "t2"}

    assert local_search_improve(assignment, guests, tables, [], weights) is None


def test_local_search_rejects_swaps_into_avoid_conflicts(weights):
    guests = [
        make_guest("a", ("c", "friend")),
        make_guest("b"),
        make_guest("c"),
        make_guest("d", ("b", "avoid")),
    ]
    tables = [make_table("t1", 2), make_table("t2", 2)]
    # Both swaps that seat a with c (+30) also seat d with b
    assignment = {"a": "t1", "b": "t1", "c": "t2", "d": "t2"}

    improved = local_search_improve(assignment, guests, tables, [], weights)

    assert improved is None


def test_local_search_never_moves_locked_guests(weights):
    guests = [make_guest("a", ("c", "friend")), make_guest("b"), make_guest("c")]
    tables = [make_table("t1", 2), make_table("t2", 2)]
    assignment = {"a": "t1", "b": "t1", "c": "t2"}

    assert local_search_improve(assignment, guests, tables, [], weights) == {
        "a": "t1",
        "b": "t2",
        "c": "t1",
    }
    assert local_search_improve(assignment, guests, tables, [], weights, locked={"c"}) is None


@pytest.mark.parametrize("max_iterations", [1, 2, 10])
def test_refinement_never_lowers_the_score(weights, max_iterations):
    guests = [
        make_guest("a", ("e", "friend")),
        make_guest("b", ("f", "family")),
        make_guest("c", ("a", "friend")),
        make_guest("d", ("b", "colleague")),
        make_guest("e", ("c", "friend")),
        make_guest("f", ("d", "family")),
    ]
    tables = [make_table("t1", 2), make_table("t2", 2), make_table("t3", 2)]
    start = {"a": "t1", "b": "t1", "c": "t2", "d": "t2", "e": "t3", "f": "t3"}
    before = calculate_total_score(start, guests, [], weights)

    refined, passes = refine(start, guests, tables, [], weights, max_iterations=max_iterations)

    assert 0 < passes <= max_iterations
    assert calculate_total_score(refined, guests, [], weights) > before
    assert _occupancy_ok(refined, tables)
