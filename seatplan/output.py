"""Output formatting for seatplan."""

import csv
import io

from seatplan.models import Guest, OptimizationResult, Table

SEVERITY_ORDER = {"critical": 0, "warning": 1, "info": 2}


def _points(value: float) -> str:
    return f"{value:+.0f}" if float(value).is_integer() else f"{value:+.1f}"


def format_results(
    result: OptimizationResult,
    guests: list[Guest],
    tables: list[Table],
) -> str:
    """Format an optimization result for display."""
    names = {g.id: g.name for g in guests}
    table_names = {t.id: t.name for t in tables}
    lines: list[str] = []

    lines.append("=== Seating Plan ===")
    lines.append(
        f"Total score: {result.total_score:.1f} "
        f"(was {result.previous_score:.1f}, change {result.score_improvement:+.1f})"
    )
    lines.append(f"Guests seated: {len(result.proposed_assignments)}")
    lines.append("")

    if not result.table_scores:
        lines.append("No tables available.")
        lines.append("")

    for table_score in result.table_scores.values():
        lines.append(
            f"--- {table_score.table_name} "
            f"({table_score.guest_count}/{table_score.capacity} seated, "
            f"compatibility {table_score.compatibility_score:.0f}/100) ---"
        )
        seated = sorted(
            table_score.guest_scores, key=lambda s: names.get(s.guest_id, s.guest_id)
        )
        for score in seated:
            name = names.get(score.guest_id, score.guest_id)
            lines.append(f"  - {name} ({_points(score.total_score)})")
        for issue in table_score.issues:
            lines.append(f"  ! {issue}")
        lines.append("")

    unseated = [
        gid
        for gid in result.current_assignments
        if gid not in result.proposed_assignments and gid in result.moved_guests
    ]
    if unseated:
        lines.append("=== Lost Their Seat ===")
        for gid in unseated:
            lines.append(f"  - {names.get(gid, gid)}")
        lines.append("")

    if result.violations:
        lines.append("=== Violations ===")
        for violation in sorted(result.violations, key=lambda v: SEVERITY_ORDER[v.severity]):
            lines.append(f"  [{violation.severity}] {violation.message}")
        lines.append("")
    else:
        lines.append("No violations.")
        lines.append("")

    if result.moved_guests:
        lines.append(f"=== Moved Guests ({len(result.moved_guests)}) ===")
        for gid in result.moved_guests:
            before = result.current_assignments.get(gid)
            after = result.proposed_assignments.get(gid)
            before_name = table_names.get(before, before) if before else "unassigned"
            after_name = table_names.get(after, after) if after else "unassigned"
            lines.append(f"  - {names.get(gid, gid)}: {before_name} -> {after_name}")
    else:
        lines.append("No guests moved.")

    return "\n".join(lines)


def format_guest_breakdown(result: OptimizationResult, guests: list[Guest]) -> str:
    """Format every seated guest's score with the reasons behind it."""
    names = {g.id: g.name for g in guests}
    lines = ["=== Score Breakdown ==="]

    for score in result.assignment_scores:
        breakdown = score.breakdown
        lines.append(f"{names.get(score.guest_id, score.guest_id)}: {_points(score.total_score)}")
        lines.append(
            f"  relationships {_points(breakdown.relationship_score)}, "
            f"constraints {_points(breakdown.constraint_score)}, "
            f"group {_points(breakdown.group_cohesion_score)}, "
            f"interests {_points(breakdown.interest_score)}"
        )
        for reason in breakdown.reasons:
            lines.append(f"    {_points(reason.points):>6}  {reason.description}")

    return "\n".join(lines)


def format_assignments_csv(
    result: OptimizationResult,
    guests: list[Guest],
    tables: list[Table],
) -> str:
    """Format the proposed seating as CSV for export."""
    names = {g.id: g.name for g in guests}
    table_names = {t.id: t.name for t in tables}
    scores = {s.guest_id: s.total_score for s in result.assignment_scores}

    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(["guest_id", "guest", "table_id", "table", "score", "moved"])

    # Sort by table name, then guest name
    rows = sorted(
        result.proposed_assignments.items(),
        key=lambda item: (table_names.get(item[1], item[1]), names.get(item[0], item[0])),
    )
    moved = set(result.moved_guests)
    for guest_id, table_id in rows:
        writer.writerow(
            [
                guest_id,
                names.get(guest_id, guest_id),
                table_id,
                table_names.get(table_id, table_id),
                f"{scores.get(guest_id, 0.0):.1f}",
                "yes" if guest_id in moved else "no",
            ]
        )

    return buffer.getvalue().rstrip("\n")
