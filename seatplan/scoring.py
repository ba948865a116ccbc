"""Weighted scoring of guests at tables."""

from collections.abc import Mapping

from seatplan.models import (
    APART_TYPES,
    TOGETHER_TYPES,
    AssignmentScore,
    Constraint,
    Guest,
    OptimizationWeights,
    ScoreBreakdown,
    ScoreReason,
)


def index_guests(guests: list[Guest]) -> dict[str, Guest]:
    """Map guest id -> guest; the first guest wins on duplicate ids."""
    by_id: dict[str, Guest] = {}
    for guest in guests:
        by_id.setdefault(guest.id, guest)
    return by_id


def guest_name(guest_id: str, guests_by_id: Mapping[str, Guest]) -> str:
    guest = guests_by_id.get(guest_id)
    return guest.name if guest else "Unknown"


def score_guest_at_table(
    guest_id: str,
    table_id: str,
    assignment: Mapping[str, str],
    guests: list[Guest],
    constraints: list[Constraint],
    weights: OptimizationWeights,
    guests_by_id: Mapping[str, Guest] | None = None,
) -> AssignmentScore:
    """
    Score one guest seated at ``table_id`` given everybody else's seats.

    Pure: the same arguments always give the same score and the same reasons
    in the same order. An unknown ``guest_id`` scores 0 with no reasons.
    ``guests_by_id`` may be passed by callers that score many guests against
    the same guest list.
    """
    if guests_by_id is None:
        guests_by_id = index_guests(guests)
    guest = guests_by_id.get(guest_id)
    if guest is None:
        return AssignmentScore(guest_id=guest_id, table_id=table_id, total_score=0.0)

    breakdown = ScoreBreakdown()
    reasons = breakdown.reasons

    # Tablemates in guest-list order so reasons come out in a stable order
    tablemates = [g for g in guests if g.id != guest_id and assignment.get(g.id) == table_id]

    # Relationships toward tablemates (stored direction only)
    for mate in tablemates:
        relationship = next((r for r in guest.relationships if r.guest_id == mate.id), None)
        if relationship is None:
            continue
        points = weights.relationships.get(relationship.type, 0)
        breakdown.relationship_score += points
        label = "Avoid" if relationship.type == "avoid" else relationship.type.capitalize()
        reasons.append(
            ScoreReason(
                type="relationship",
                description=f'{label} "{mate.name}" at same table',
                points=points,
                guest_ids=[mate.id],
            )
        )

    # Partner seated elsewhere
    partner = next((r for r in guest.relationships if r.type == "partner"), None)
    if partner is not None:
        partner_table_id = assignment.get(partner.guest_id)
        if partner_table_id is not None and partner_table_id != table_id:
            penalty = -abs(weights.relationships.get("partner", 0)) / 2
            breakdown.relationship_score += penalty
            reasons.append(
                ScoreReason(
                    type="penalty",
                    description=(
                        f'Partner "{guest_name(partner.guest_id, guests_by_id)}" '
                        "at different table"
                    ),
                    points=penalty,
                    guest_ids=[partner.guest_id],
                )
            )

    if guest.group:
        same_group = sum(1 for mate in tablemates if mate.group == guest.group)
        if same_group > 0:
            breakdown.group_cohesion_score = same_group * weights.group_cohesion
            reasons.append(
                ScoreReason(
                    type="group",
                    description=f'{same_group} member(s) of "{guest.group}" at same table',
                    points=breakdown.group_cohesion_score,
                )
            )

    if guest.interests:
        shared = 0
        for mate in tablemates:
            if mate.interests:
                shared += sum(1 for interest in guest.interests if interest in mate.interests)
        if shared > 0:
            breakdown.interest_score = shared * weights.interest_match
            reasons.append(
                ScoreReason(
                    type="interest",
                    description=f"{shared} shared interest(s) with tablemates",
                    points=breakdown.interest_score,
                )
            )

    for constraint in constraints:
        if guest_id not in constraint.guest_ids:
            continue

        other_ids = [gid for gid in constraint.guest_ids if gid != guest_id]
        others_here = sum(1 for gid in other_ids if assignment.get(gid) == table_id)
        weight = weights.constraints.get(constraint.priority, 0)

        points = 0
        met = False
        if constraint.type in TOGETHER_TYPES:
            # No partial credit
            if others_here == len(other_ids):
                points = weight
                met = True
        elif constraint.type in APART_TYPES:
            if others_here == 0:
                points = weight
                met = True
            else:
                points = -weight
        # near_front and accessibility need table positions; not scored

        if points != 0:
            breakdown.constraint_score += points
            names = ", ".join(guest_name(gid, guests_by_id) for gid in other_ids)
            marker = "✓" if met else "✗"
            reasons.append(
                ScoreReason(
                    type="constraint",
                    description=f"{marker} {constraint.type.replace('_', ' ')}: {names}",
                    points=points,
                    guest_ids=other_ids,
                )
            )

    total = (
        breakdown.relationship_score
        + breakdown.constraint_score
        + breakdown.group_cohesion_score
        + breakdown.interest_score
    )
    return AssignmentScore(
        guest_id=guest_id,
        table_id=table_id,
        total_score=total,
        breakdown=breakdown,
    )


def score_assignment(
    assignment: Mapping[str, str],
    guests: list[Guest],
    constraints: list[Constraint],
    weights: OptimizationWeights,
) -> tuple[float, list[AssignmentScore]]:
    """Score every seated guest; returns (total, per-guest scores in assignment order)."""
    guests_by_id = index_guests(guests)
    scores = [
        score_guest_at_table(
            guest_id, table_id, assignment, guests, constraints, weights, guests_by_id
        )
        for guest_id, table_id in assignment.items()
    ]
    return sum(s.total_score for s in scores), scores


def calculate_total_score(
    assignment: Mapping[str, str],
    guests: list[Guest],
    constraints: list[Constraint],
    weights: OptimizationWeights,
) -> float:
    """The objective the optimizer maximizes."""
    total, _ = score_assignment(assignment, guests, constraints, weights)
    return total
