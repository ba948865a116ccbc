"""Default weights, presets and weight merging for seatplan."""

from collections.abc import Mapping
from types import MappingProxyType
from typing import Any

from seatplan.models import PRIORITIES, RELATIONSHIP_TYPES, OptimizationWeights


def _read_only(
    relationships: dict[str, float],
    constraints: dict[str, float],
    group_cohesion: float,
    interest_match: float,
) -> OptimizationWeights:
    # Shared module-level weights; callers get mutable copies from get_preset
    return OptimizationWeights(
        relationships=MappingProxyType(relationships),
        constraints=MappingProxyType(constraints),
        group_cohesion=group_cohesion,
        interest_match=interest_match,
    )


DEFAULT_WEIGHTS = _read_only(
    relationships={
        "partner": 100,
        "family": 50,
        "friend": 30,
        "colleague": 15,
        "acquaintance": 5,
        "avoid": -200,
    },
    constraints={
        "required": 500,
        "preferred": 100,
        "optional": 25,
    },
    group_cohesion=40,
    interest_match=5,
)

PRESETS: dict[str, OptimizationWeights] = {
    # Couples and families first, strangers kept apart from people they avoid
    "wedding": _read_only(
        relationships={
            "partner": 150,
            "family": 80,
            "friend": 40,
            "colleague": 10,
            "acquaintance": 5,
            "avoid": -300,
        },
        constraints={"required": 500, "preferred": 100, "optional": 25},
        group_cohesion=50,
        interest_match=2,
    ),
    "corporate": _read_only(
        relationships={
            "partner": 100,
            "family": 20,
            "friend": 30,
            "colleague": 40,
            "acquaintance": 10,
            "avoid": -200,
        },
        constraints={"required": 500, "preferred": 100, "optional": 25},
        group_cohesion=60,
        interest_match=10,
    ),
    # Mix people up: weak ties and shared interests matter more than groups
    "networking": _read_only(
        relationships={
            "partner": 50,
            "family": 10,
            "friend": 10,
            "colleague": 5,
            "acquaintance": 20,
            "avoid": -150,
        },
        constraints={"required": 500, "preferred": 100, "optional": 25},
        group_cohesion=5,
        interest_match=20,
    ),
}

_TOP_LEVEL_KEYS = {"relationships", "constraints", "group_cohesion", "interest_match"}


def get_preset(name: str) -> OptimizationWeights:
    """Return a copy of a named preset (case-insensitive)."""
    try:
        preset = PRESETS[name.lower()]
    except KeyError:
        raise ValueError(
            f"Unknown weight preset {name!r} (choose from: {', '.join(sorted(PRESETS))})"
        ) from None
    return merge_weights(preset, {})


def _merge_section(
    section: str,
    base: Mapping[str, float],
    overrides: Any,
    allowed: tuple[str, ...],
) -> dict[str, float]:
    if not isinstance(overrides, Mapping):
        raise ValueError(f"Weights section {section!r} must be a mapping")
    merged = dict(base)
    for key, value in overrides.items():
        if key not in allowed:
            raise ValueError(f"Unknown key {key!r} in weights section {section!r}")
        merged[key] = _as_number(f"{section}.{key}", value)
    return merged


def _as_number(name: str, value: Any) -> float:
    # bool is an int subclass, but True as a weight is almost certainly a typo
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"Weight {name!r} must be a number, got {value!r}")
    return value


def merge_weights(
    base: OptimizationWeights,
    overrides: Mapping[str, Any],
) -> OptimizationWeights:
    """
    Return a copy of ``base`` with ``overrides`` applied.

    ``relationships`` and ``constraints`` are merged key by key, so an override
    file only needs to name the weights it changes.
    """
    unknown = set(overrides) - _TOP_LEVEL_KEYS
    if unknown:
        raise ValueError(f"Unknown weight setting(s): {', '.join(sorted(unknown))}")

    relationships = dict(base.relationships)
    constraints = dict(base.constraints)
    if "relationships" in overrides:
        relationships = _merge_section(
            "relationships", relationships, overrides["relationships"], RELATIONSHIP_TYPES
        )
    if "constraints" in overrides:
        constraints = _merge_section(
            "constraints", constraints, overrides["constraints"], PRIORITIES
        )

    group_cohesion = base.group_cohesion
    if "group_cohesion" in overrides:
        group_cohesion = _as_number("group_cohesion", overrides["group_cohesion"])
    interest_match = base.interest_match
    if "interest_match" in overrides:
        interest_match = _as_number("interest_match", overrides["interest_match"])

    return OptimizationWeights(
        relationships=relationships,
        constraints=constraints,
        group_cohesion=group_cohesion,
        interest_match=interest_match,
    )
