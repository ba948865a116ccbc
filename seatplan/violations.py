"""Constraint and avoid-relationship checks on finished seatings."""

from collections.abc import Mapping

from seatplan.models import (
    APART_TYPES,
    TOGETHER_TYPES,
    Constraint,
    ConstraintViolation,
    Guest,
    OptimizationViolation,
    Severity,
)
from seatplan.scoring import guest_name, index_guests

SEVERITY_BY_PRIORITY: dict[str, Severity] = {
    "required": "critical",
    "preferred": "warning",
    "optional": "info",
}


def detect_violations(
    assignment: Mapping[str, str],
    constraints: list[Constraint],
    guests: list[Guest],
) -> list[OptimizationViolation]:
    """
    Find constraint breaches and co-seated avoid pairs in ``assignment``.

    Independent of the scoring weights. Unassigned and unknown guests never
    count as sitting anywhere.
    """
    guests_by_id = index_guests(guests)
    violations: list[OptimizationViolation] = []

    for constraint in constraints:
        table_ids = [assignment.get(gid) for gid in constraint.guest_ids]
        distinct = {tid for tid in table_ids if tid is not None}
        names = ", ".join(guest_name(gid, guests_by_id) for gid in constraint.guest_ids)

        message = None
        if constraint.type in TOGETHER_TYPES and len(distinct) > 1:
            message = f"Guests should sit together but are at different tables: {names}"
        elif (
            constraint.type in APART_TYPES
            and len(distinct) == 1
            and all(tid is not None for tid in table_ids)
        ):
            message = f"Guests should not sit together but are at the same table: {names}"

        if message is not None:
            violations.append(
                OptimizationViolation(
                    severity=SEVERITY_BY_PRIORITY.get(constraint.priority, "info"),
                    message=message,
                    guest_ids=list(constraint.guest_ids),
                    constraint_id=constraint.id,
                )
            )

    # Always checked, with or without a constraint covering the pair
    for guest in guests:
        table_id = assignment.get(guest.id)
        if table_id is None:
            continue
        for rel in guest.relationships:
            if rel.type == "avoid" and assignment.get(rel.guest_id) == table_id:
                violations.append(
                    OptimizationViolation(
                        severity="warning",
                        message=(
                            f'"{guest.name}" and "{guest_name(rel.guest_id, guests_by_id)}" '
                            "should avoid each other but are at the same table"
                        ),
                        guest_ids=[guest.id, rel.guest_id],
                    )
                )

    return violations


def check_seating(guests: list[Guest], constraints: list[Constraint]) -> list[ConstraintViolation]:
    """
    Check the seating recorded on ``guests`` (their ``table_id``) against constraints.

    Used to flag problems in a plan as edited by hand, outside an optimization
    run. Constraints naming fewer than two known guests are skipped.
    """
    guests_by_id = index_guests(guests)
    violations: list[ConstraintViolation] = []

    for constraint in constraints:
        members = [guests_by_id[gid] for gid in constraint.guest_ids if gid in guests_by_id]
        if len(members) < 2:
            continue
        seated = [g for g in members if g.table_id]
        if len(seated) < 2:
            continue
        table_ids = list(dict.fromkeys(g.table_id for g in seated))

        if constraint.type in TOGETHER_TYPES and len(table_ids) > 1:
            violations.append(
                ConstraintViolation(
                    constraint_id=constraint.id,
                    constraint_type=constraint.type,
                    priority=constraint.priority,
                    description=constraint.description
                    or f"{', '.join(g.name for g in members)} should be seated together",
                    guest_ids=list(constraint.guest_ids),
                    table_ids=table_ids,
                )
            )
        elif constraint.type in APART_TYPES:
            by_table: dict[str, list[Guest]] = {}
            for guest in seated:
                by_table.setdefault(guest.table_id, []).append(guest)
            for table_id, at_table in by_table.items():
                if len(at_table) < 2:
                    continue
                together = " and ".join(g.name for g in at_table)
                violations.append(
                    ConstraintViolation(
                        constraint_id=constraint.id,
                        constraint_type=constraint.type,
                        priority=constraint.priority,
                        description=constraint.description
                        or f"{together} should not be seated together",
                        guest_ids=[g.id for g in at_table],
                        table_ids=[table_id],
                    )
                )

    return violations


def violations_for_table(
    violations: list[ConstraintViolation],
    table_id: str,
) -> list[ConstraintViolation]:
    return [v for v in violations if table_id in v.table_ids]
