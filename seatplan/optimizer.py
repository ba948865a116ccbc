"""Greedy construction plus local-search refinement of seating assignments."""

import logging
import time
from collections.abc import Collection, Mapping

from seatplan.grouping import GuestGroup, extract_partner_pairs, group_guests_by_priority
from seatplan.models import (
    Assignment,
    Constraint,
    Guest,
    OptimizationOptions,
    OptimizationResult,
    OptimizationWeights,
    Table,
)
from seatplan.results import aggregate_table_scores, find_moved_guests
from seatplan.scoring import (
    calculate_total_score,
    index_guests,
    score_assignment,
    score_guest_at_table,
)
from seatplan.violations import detect_violations
from seatplan.weights import DEFAULT_WEIGHTS

logger = logging.getLogger(__name__)

DEFAULT_MAX_ITERATIONS = 10


def has_avoid_conflict(
    guest_ids: Collection[str],
    table_id: str,
    assignment: Mapping[str, str],
    guests_by_id: Mapping[str, Guest],
) -> bool:
    """
    Check whether seating ``guest_ids`` at ``table_id`` puts an avoid pair together.

    Only the table's other occupants in ``assignment`` are considered, and an
    avoid entry in either direction counts.
    """
    moving = set(guest_ids)
    occupants = {gid for gid, tid in assignment.items() if tid == table_id and gid not in moving}
    if not occupants:
        return False

    for gid in moving:
        guest = guests_by_id.get(gid)
        if guest and any(
            r.type == "avoid" and r.guest_id in occupants for r in guest.relationships
        ):
            return True
    for gid in occupants:
        occupant = guests_by_id.get(gid)
        if occupant and any(
            r.type == "avoid" and r.guest_id in moving for r in occupant.relationships
        ):
            return True
    return False


def score_group_at_table(
    guest_ids: list[str],
    table_id: str,
    assignment: Mapping[str, str],
    guests: list[Guest],
    constraints: list[Constraint],
    weights: OptimizationWeights,
    guests_by_id: Mapping[str, Guest] | None = None,
) -> float:
    """Marginal score of the group's members if the whole group sat at ``table_id``."""
    if guests_by_id is None:
        guests_by_id = index_guests(guests)
    trial = dict(assignment)
    for gid in guest_ids:
        trial[gid] = table_id
    return sum(
        score_guest_at_table(gid, table_id, trial, guests, constraints, weights, guests_by_id)
        .total_score
        for gid in guest_ids
    )


def _best_table(
    guest_ids: list[str],
    ordered_tables: list[Table],
    occupancy: Mapping[str, int],
    assignment: Mapping[str, str],
    guests: list[Guest],
    guests_by_id: Mapping[str, Guest],
    constraints: list[Constraint],
    weights: OptimizationWeights,
) -> str | None:
    best_table_id: str | None = None
    best_score = float("-inf")

    for table in ordered_tables:
        if table.capacity - occupancy[table.id] < len(guest_ids):
            continue
        if has_avoid_conflict(guest_ids, table.id, assignment, guests_by_id):
            continue
        score = score_group_at_table(
            guest_ids, table.id, assignment, guests, constraints, weights, guests_by_id
        )
        # Strictly greater, so ties go to the earlier (larger) table
        if score > best_score:
            best_score = score
            best_table_id = table.id

    return best_table_id


def greedy_assignment(
    groups: list[GuestGroup],
    tables: list[Table],
    guests: list[Guest],
    constraints: list[Constraint],
    weights: OptimizationWeights,
    initial: Mapping[str, str] | None = None,
) -> Assignment:
    """
    Seat groups one at a time at the table where they add the most score.

    ``initial`` holds guests already pinned to a table; they count toward
    occupancy and are never moved. A group that fits no table as a whole is
    split and its members are seated one by one. A guest with no feasible
    table is left out of the result.
    """
    guests_by_id = index_guests(guests)
    assignment: Assignment = dict(initial or {})
    occupancy = {table.id: 0 for table in tables}
    for table_id in assignment.values():
        if table_id in occupancy:
            occupancy[table_id] += 1

    # sorted() is stable: equal capacities keep their input order
    ordered_tables = sorted(tables, key=lambda t: -t.capacity)

    def seat(guest_ids: list[str], table_id: str) -> None:
        for gid in guest_ids:
            assignment[gid] = table_id
        occupancy[table_id] += len(guest_ids)

    for group in groups:
        guest_ids = [gid for gid in group.guest_ids if gid not in assignment]
        if not guest_ids:
            continue

        table_id = _best_table(
            guest_ids, ordered_tables, occupancy, assignment,
            guests, guests_by_id, constraints, weights,
        )
        if table_id is not None:
            seat(guest_ids, table_id)
            continue

        if len(guest_ids) > 1:
            logger.debug("No table fits group %s whole; seating members separately", guest_ids)
        for gid in guest_ids:
            table_id = _best_table(
                [gid], ordered_tables, occupancy, assignment,
                guests, guests_by_id, constraints, weights,
            )
            if table_id is None:
                logger.debug("No feasible table for guest %s", gid)
            else:
                seat([gid], table_id)

    return assignment


def local_search_improve(
    assignment: Mapping[str, str],
    guests: list[Guest],
    tables: list[Table],
    constraints: list[Constraint],
    weights: OptimizationWeights,
    locked: Collection[str] = frozenset(),
) -> Assignment | None:
    """
    Try pairwise swaps between tables and return the first one that improves.

    Swaps never change table occupancy, so ``tables`` needs no capacity
    re-check. Guests in ``locked`` are never swapped. Returns None when no
    swap strictly increases the total score.
    """
    guests_by_id = index_guests(guests)
    current_score = calculate_total_score(assignment, guests, constraints, weights)
    guest_ids = [gid for gid in assignment if gid not in locked]

    for i, first in enumerate(guest_ids):
        for second in guest_ids[i + 1 :]:
            first_table = assignment[first]
            second_table = assignment[second]
            if first_table == second_table:
                continue

            trial = dict(assignment)
            trial[first] = second_table
            trial[second] = first_table

            if has_avoid_conflict([first], second_table, trial, guests_by_id) or has_avoid_conflict(
                [second], first_table, trial, guests_by_id
            ):
                continue

            if calculate_total_score(trial, guests, constraints, weights) > current_score:
                return trial

    return None


def refine(
    assignment: Assignment,
    guests: list[Guest],
    tables: list[Table],
    constraints: list[Constraint],
    weights: OptimizationWeights,
    max_iterations: int = DEFAULT_MAX_ITERATIONS,
    locked: Collection[str] = frozenset(),
    deadline: float | None = None,
) -> tuple[Assignment, int]:
    """
    Run local-search passes until one fails to improve or a limit is hit.

    ``deadline`` is a ``time.monotonic()`` value checked between passes.
    Returns the refined assignment and the number of improving passes.
    """
    passes = 0
    for _ in range(max_iterations):
        if deadline is not None and time.monotonic() >= deadline:
            logger.info("Time limit reached after %d refinement pass(es)", passes)
            break
        improved = local_search_improve(assignment, guests, tables, constraints, weights, locked)
        if improved is None:
            break
        assignment = improved
        passes += 1
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(
                "Refinement pass %d: score %.2f",
                passes,
                calculate_total_score(assignment, guests, constraints, weights),
            )
    return assignment, passes


def pin_current_assignments(guests: list[Guest], tables: list[Table]) -> Assignment:
    """Keep guests at their current table, in input order, while the table has room."""
    capacity = {table.id: table.capacity for table in tables}
    seated = {table.id: 0 for table in tables}
    pinned: Assignment = {}
    for guest in guests:
        table_id = guest.table_id
        if table_id is None or table_id not in capacity or guest.id in pinned:
            continue
        if seated[table_id] < capacity[table_id]:
            pinned[guest.id] = table_id
            seated[table_id] += 1
    return pinned


def optimize_seating(
    guests: list[Guest],
    tables: list[Table],
    constraints: list[Constraint],
    weights: OptimizationWeights = DEFAULT_WEIGHTS,
    options: OptimizationOptions | None = None,
) -> OptimizationResult:
    """
    Propose a seating for the event.

    Returns an OptimizationResult with the proposed assignment, scores,
    violations and the guests whose table would change. Nothing passed in is
    modified; the caller decides whether to apply the result.
    """
    options = options or OptimizationOptions()
    started = time.monotonic()
    deadline = started + options.time_limit if options.time_limit is not None else None

    if options.selected_guest_ids is not None:
        selected_guests = set(options.selected_guest_ids)
        eligible_guests = [g for g in guests if g.id in selected_guests]
    else:
        eligible_guests = [g for g in guests if g.rsvp_status != "declined"]

    if options.selected_table_ids is not None:
        selected_tables = set(options.selected_table_ids)
        eligible_tables = [t for t in tables if t.id in selected_tables]
    else:
        eligible_tables = list(tables)

    logger.debug(
        "Optimizing %d guest(s) across %d table(s) with %d constraint(s)",
        len(eligible_guests),
        len(eligible_tables),
        len(constraints),
    )

    current_assignments = {g.id: g.table_id for g in guests}
    previous_assignment = {g.id: g.table_id for g in eligible_guests if g.table_id is not None}
    previous_score = calculate_total_score(
        previous_assignment, eligible_guests, constraints, weights
    )

    pinned: Assignment = {}
    if options.preserve_current_assignments:
        pinned = pin_current_assignments(eligible_guests, eligible_tables)
        logger.debug("Keeping %d guest(s) at their current table", len(pinned))
    free_guests = [g for g in eligible_guests if g.id not in pinned]

    partner_pairs = extract_partner_pairs(free_guests)
    groups = group_guests_by_priority(free_guests, partner_pairs, constraints)
    assignment = greedy_assignment(
        groups, eligible_tables, eligible_guests, constraints, weights, initial=pinned
    )

    max_iterations = (
        DEFAULT_MAX_ITERATIONS
        if options.max_iterations is None
        else max(0, options.max_iterations)
    )
    assignment, passes = refine(
        assignment,
        eligible_guests,
        eligible_tables,
        constraints,
        weights,
        max_iterations=max_iterations,
        locked=pinned.keys(),
        deadline=deadline,
    )

    total_score, assignment_scores = score_assignment(
        assignment, eligible_guests, constraints, weights
    )
    violations = detect_violations(assignment, constraints, eligible_guests)
    table_scores = aggregate_table_scores(assignment_scores, eligible_tables)
    moved_guests = find_moved_guests(
        assignment, current_assignments, [g.id for g in eligible_guests]
    )

    unplaced = len(eligible_guests) - len(assignment)
    logger.info(
        "Seated %d of %d guest(s) in %.2fs: score %.2f (was %.2f), %d violation(s), %d moved",
        len(assignment),
        len(eligible_guests),
        time.monotonic() - started,
        total_score,
        previous_score,
        len(violations),
        len(moved_guests),
    )
    if unplaced:
        logger.info("%d guest(s) could not be seated", unplaced)

    return OptimizationResult(
        proposed_assignments=assignment,
        current_assignments=current_assignments,
        total_score=total_score,
        previous_score=previous_score,
        score_improvement=total_score - previous_score,
        assignment_scores=assignment_scores,
        table_scores=table_scores,
        violations=violations,
        moved_guests=moved_guests,
        iterations=passes,
    )
