"""YAML parsing for seatplan event and weight files."""

from dataclasses import replace
from pathlib import Path
from typing import Any

import yaml

from seatplan.models import (
    CONSTRAINT_TYPES,
    PRIORITIES,
    RELATIONSHIP_TYPES,
    RSVP_STATUSES,
    Constraint,
    Event,
    Guest,
    OptimizationWeights,
    Relationship,
    Table,
)
from seatplan.weights import DEFAULT_WEIGHTS, get_preset, merge_weights


def _load_yaml(path: Path) -> Any:
    with path.open(encoding="utf-8") as f:
        return yaml.safe_load(f)


def _require(entry: dict[str, Any], key: str, where: str) -> Any:
    value = entry.get(key)
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValueError(f"{where}: missing {key!r}")
    return value


def _list_of(entry: dict[str, Any], key: str, where: str) -> list[Any]:
    value = entry.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValueError(f"{where}: {key!r} must be a list")
    return value


def _choice(value: str, allowed: tuple[str, ...], what: str, where: str) -> str:
    if value not in allowed:
        raise ValueError(
            f"{where}: unknown {what} {value!r} (expected one of: {', '.join(allowed)})"
        )
    return value


def _parse_relationship(entry: Any, where: str) -> Relationship:
    if not isinstance(entry, dict):
        raise ValueError(f"{where}: relationship must be a mapping")
    strength = entry.get("strength", 3)
    if isinstance(strength, bool) or not isinstance(strength, int):
        raise ValueError(f"{where}: relationship strength must be an integer")
    return Relationship(
        guest_id=str(_require(entry, "guest", where)),
        type=_choice(
            str(_require(entry, "type", where)), RELATIONSHIP_TYPES, "relationship type", where
        ),
        strength=strength,
    )


def _parse_guest(entry: Any, index: int) -> Guest:
    where = f"guest #{index + 1}"
    if not isinstance(entry, dict):
        raise ValueError(f"{where}: must be a mapping")
    guest_id = str(_require(entry, "id", where))
    where = f"guest {guest_id!r}"

    interests = entry.get("interests")
    if isinstance(interests, str):
        interests = [interests]
    else:
        interests = _list_of(entry, "interests", where)
    table_id = entry.get("table")

    return Guest(
        id=guest_id,
        name=str(entry.get("name") or guest_id),
        relationships=[
            _parse_relationship(rel, where) for rel in _list_of(entry, "relationships", where)
        ],
        group=str(entry["group"]) if entry.get("group") else None,
        interests=[str(i) for i in interests],
        rsvp_status=_choice(
            str(entry.get("rsvp", "pending")).lower(), RSVP_STATUSES, "RSVP status", where
        ),
        table_id=str(table_id) if table_id is not None else None,
    )


def _parse_table(entry: Any, index: int) -> Table:
    where = f"table #{index + 1}"
    if not isinstance(entry, dict):
        raise ValueError(f"{where}: must be a mapping")
    table_id = str(_require(entry, "id", where))
    where = f"table {table_id!r}"

    capacity = _require(entry, "capacity", where)
    if isinstance(capacity, bool) or not isinstance(capacity, int) or capacity < 0:
        raise ValueError(f"{where}: capacity must be a non-negative integer")

    return Table(
        id=table_id,
        name=str(entry.get("name") or table_id),
        capacity=capacity,
        shape=str(entry.get("shape", "round")),
    )


def _parse_constraint(entry: Any, index: int) -> Constraint:
    where = f"constraint #{index + 1}"
    if not isinstance(entry, dict):
        raise ValueError(f"{where}: must be a mapping")
    constraint_id = str(entry.get("id") or f"c{index + 1}")
    where = f"constraint {constraint_id!r}"

    guest_ids = _require(entry, "guests", where)
    if not isinstance(guest_ids, list):
        raise ValueError(f"{where}: 'guests' must be a list of guest ids")

    return Constraint(
        id=constraint_id,
        type=_choice(
            str(_require(entry, "type", where)), CONSTRAINT_TYPES, "constraint type", where
        ),
        guest_ids=[str(gid) for gid in guest_ids],
        priority=_choice(str(entry.get("priority", "required")), PRIORITIES, "priority", where),
        description=entry.get("description"),
    )


def _check_unique(ids: list[str], what: str) -> None:
    seen: set[str] = set()
    for item_id in ids:
        if item_id in seen:
            raise ValueError(f"Duplicate {what} id {item_id!r}")
        seen.add(item_id)


def parse_event_yaml(yaml_path: Path) -> Event:
    """
    Parse an event file into guests, tables and constraints.

    References between entries (relationship targets, constraint members,
    current tables) are not checked here; the optimizer ignores dangling ids.
    """
    data = _load_yaml(yaml_path)
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValueError("Event file must contain a mapping at the top level")

    where = "Event file"
    guests = [_parse_guest(entry, i) for i, entry in enumerate(_list_of(data, "guests", where))]
    tables = [_parse_table(entry, i) for i, entry in enumerate(_list_of(data, "tables", where))]
    constraints = [
        _parse_constraint(entry, i)
        for i, entry in enumerate(_list_of(data, "constraints", where))
    ]
    _check_unique([g.id for g in guests], "guest")
    _check_unique([t.id for t in tables], "table")
    _check_unique([c.id for c in constraints], "constraint")

    return Event(
        name=str(data.get("event") or yaml_path.stem),
        guests=guests,
        tables=tables,
        constraints=constraints,
    )


def parse_weights_yaml(
    yaml_path: Path, base: OptimizationWeights | None = None
) -> OptimizationWeights:
    """
    Parse a weights file.

    The starting weights are ``base`` if given, else the preset named by an
    optional ``preset`` key, else the defaults. Every other key overrides part
    of them. Naming a preset in the file while also passing ``base`` is an
    error.
    """
    data = _load_yaml(yaml_path)
    if data is None:
        return base if base is not None else DEFAULT_WEIGHTS
    if not isinstance(data, dict):
        raise ValueError("Weights file must contain a mapping at the top level")

    overrides = dict(data)
    preset = overrides.pop("preset", None)
    if preset and base is not None:
        raise ValueError(f"Weights file sets preset {preset!r} but base weights were also given")
    if base is None:
        base = get_preset(str(preset)) if preset else DEFAULT_WEIGHTS
    return merge_weights(base, overrides)


def mirror_relationships(guests: list[Guest]) -> list[Guest]:
    """
    Return copies of ``guests`` where every relationship also exists in reverse.

    A reverse entry is only added when the target has no relationship of its
    own toward the source. Targets that are not in ``guests`` are left alone.
    """
    reverse: dict[str, list[Relationship]] = {g.id: [] for g in guests}
    for guest in guests:
        for rel in guest.relationships:
            if rel.guest_id in reverse and rel.guest_id != guest.id:
                reverse[rel.guest_id].append(
                    Relationship(guest_id=guest.id, type=rel.type, strength=rel.strength)
                )

    mirrored: list[Guest] = []
    for guest in guests:
        relationships = list(guest.relationships)
        known = {r.guest_id for r in relationships}
        for rel in reverse.get(guest.id, []):
            if rel.guest_id not in known:
                relationships.append(rel)
                known.add(rel.guest_id)
        mirrored.append(replace(guest, relationships=relationships))
    return mirrored


def create_event_template(output_path: Path) -> None:
    """Create an example event file to start from."""
    template = {
        "event": "My Event",
        "tables": [
            {"id": "t1", "name": "Table 1", "capacity": 8, "shape": "round"},
            {"id": "t2", "name": "Table 2", "capacity": 8, "shape": "round"},
        ],
        "guests": [
            {
                "id": "alice",
                "name": "Alice Smith",
                "group": "Bride's family",
                "interests": ["hiking", "jazz"],
                "rsvp": "confirmed",
                "relationships": [{"guest": "bob", "type": "partner", "strength": 5}],
            },
            {
                "id": "bob",
                "name": "Bob Smith",
                "group": "Bride's family",
                "rsvp": "confirmed",
                "relationships": [{"guest": "alice", "type": "partner", "strength": 5}],
            },
            {
                "id": "carol",
                "name": "Carol Jones",
                "interests": ["jazz"],
                "rsvp": "pending",
                "relationships": [{"guest": "bob", "type": "avoid", "strength": 4}],
            },
        ],
        "constraints": [
            {
                "id": "c1",
                "type": "must_sit_together",
                "guests": ["alice", "bob"],
                "priority": "required",
                "description": "Newlyweds sit together",
            }
        ],
    }

    header = f"""\
# Event file for seatplan
#
# Relationship types: {", ".join(RELATIONSHIP_TYPES)}
# Constraint types: {", ".join(CONSTRAINT_TYPES)}
#   (near_front and accessibility are accepted but not scored yet)
# Priorities: {", ".join(PRIORITIES)}
# RSVP: {", ".join(RSVP_STATUSES)} (declined guests are not seated)
#
# Relationships are one-directional: "carol avoids bob" says nothing about
# how bob feels. Use --mirror-relationships to copy them both ways.

"""

    with output_path.open("w", encoding="utf-8") as f:
        f.write(header)
        yaml.dump(template, f, default_flow_style=False, sort_keys=False, allow_unicode=True)
