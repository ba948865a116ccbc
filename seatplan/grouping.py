"""Split guests into units that are placed together, in placement order."""

from dataclasses import dataclass
from enum import IntEnum

from seatplan.models import TOGETHER_TYPES, Constraint, Guest
from seatplan.scoring import index_guests


class GroupPriority(IntEnum):
    """Base placement priority per kind of group; higher is placed first."""

    SINGLETON = 10  # plus the guest's relationship count
    REQUIRED_CONSTRAINT = 80
    PARTNER_PAIR = 100


@dataclass
class GuestGroup:
    """Guests that move as one unit during construction."""

    guest_ids: list[str]
    priority: int


def linked_by_avoid(a: Guest, b: Guest) -> bool:
    """True if either guest has an avoid relationship toward the other."""
    return any(r.type == "avoid" and r.guest_id == b.id for r in a.relationships) or any(
        r.type == "avoid" and r.guest_id == a.id for r in b.relationships
    )


def extract_partner_pairs(guests: list[Guest]) -> dict[str, str]:
    """
    Find partner pairs among ``guests``.

    Each pair is keyed by whichever member comes first in the list. Partners
    outside ``guests``, self-references and partners who also avoid each other
    are not paired.
    """
    by_id = index_guests(guests)
    pairs: dict[str, str] = {}

    for guest in guests:
        partner_rel = next((r for r in guest.relationships if r.type == "partner"), None)
        if partner_rel is None or partner_rel.guest_id == guest.id:
            continue
        partner = by_id.get(partner_rel.guest_id)
        if partner is None or linked_by_avoid(guest, partner):
            continue
        if partner.id not in pairs:
            pairs[guest.id] = partner.id

    return pairs


def group_guests_by_priority(
    guests: list[Guest],
    partner_pairs: dict[str, str],
    constraints: list[Constraint],
) -> list[GuestGroup]:
    """
    Group ``guests`` into placement units, highest priority first.

    Every guest appears in exactly one group. Ids that are not in ``guests``
    (declined, unselected or dangling) never appear.
    """
    by_id = index_guests(guests)
    claimed: set[str] = set()
    groups: list[GuestGroup] = []

    for first_id, second_id in partner_pairs.items():
        if first_id not in by_id or second_id not in by_id:
            continue
        if first_id in claimed or second_id in claimed:
            continue
        groups.append(GuestGroup([first_id, second_id], GroupPriority.PARTNER_PAIR))
        claimed.update((first_id, second_id))

    for constraint in constraints:
        if constraint.priority != "required" or constraint.type not in TOGETHER_TYPES:
            continue
        members: list[str] = []
        for guest_id in constraint.guest_ids:
            if guest_id not in by_id or guest_id in claimed or guest_id in members:
                continue
            # Avoid wins over the constraint; the member is seated on its own
            if any(linked_by_avoid(by_id[guest_id], by_id[m]) for m in members):
                continue
            members.append(guest_id)
        if members:
            groups.append(GuestGroup(members, GroupPriority.REQUIRED_CONSTRAINT))
            claimed.update(members)

    remaining = [g for g in by_id.values() if g.id not in claimed]
    remaining.sort(key=lambda g: -len(g.relationships))
    for guest in remaining:
        groups.append(GuestGroup([guest.id], GroupPriority.SINGLETON + len(guest.relationships)))

    groups.sort(key=lambda g: -g.priority)
    return groups
