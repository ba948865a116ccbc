"""Roll per-guest scores into table summaries and apply results to guests."""

from collections.abc import Mapping
from dataclasses import replace

from seatplan.models import (
    AssignmentScore,
    Guest,
    OptimizationResult,
    Table,
    TableOptimizationScore,
)


def compatibility_score(average: float) -> float:
    """Map an average guest score onto 0-100; an empty or neutral table gives 50."""
    return max(0.0, min(100.0, 50 + average / 2))


def aggregate_table_scores(
    assignment_scores: list[AssignmentScore],
    tables: list[Table],
) -> dict[str, TableOptimizationScore]:
    """Summarize each table: occupancy, compatibility and the problems seen there."""
    table_scores: dict[str, TableOptimizationScore] = {}

    for table in tables:
        guest_scores = [s for s in assignment_scores if s.table_id == table.id]
        total = sum(s.total_score for s in guest_scores)
        average = total / len(guest_scores) if guest_scores else 0.0

        issues: list[str] = []
        if len(guest_scores) > table.capacity:
            issues.append("Over capacity")
        for score in guest_scores:
            for reason in score.breakdown.reasons:
                if reason.points < 0 and reason.type in ("penalty", "constraint"):
                    issues.append(reason.description)

        table_scores[table.id] = TableOptimizationScore(
            table_id=table.id,
            table_name=table.name,
            compatibility_score=compatibility_score(average),
            guest_count=len(guest_scores),
            capacity=table.capacity,
            issues=list(dict.fromkeys(issues)),
            guest_scores=guest_scores,
        )

    return table_scores


def find_moved_guests(
    proposed: Mapping[str, str],
    current: Mapping[str, str | None],
    eligible_guest_ids: list[str],
) -> list[str]:
    """
    List guests whose table changes.

    Gaining or losing a seat counts as a move. Proposed guests come first, in
    assignment order, then eligible guests who lose their seat.
    """
    moved = [gid for gid, table_id in proposed.items() if current.get(gid) != table_id]
    for gid in eligible_guest_ids:
        if gid not in proposed and current.get(gid) is not None and gid not in moved:
            moved.append(gid)
    return moved


def apply_result(guests: list[Guest], result: OptimizationResult) -> list[Guest]:
    """
    Return copies of ``guests`` seated as ``result`` proposes.

    Guests that took part in the run but got no table end up unassigned;
    guests outside the run keep their seat. ``guests`` is not modified.
    """
    in_run = set(result.proposed_assignments) | set(result.moved_guests)
    updated: list[Guest] = []
    for guest in guests:
        if guest.id in in_run:
            updated.append(replace(guest, table_id=result.proposed_assignments.get(guest.id)))
        else:
            updated.append(guest)
    return updated
