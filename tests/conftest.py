"""Shared builders for seatplan tests."""

import pytest

from seatplan.models import Constraint, Guest, OptimizationWeights, Relationship, Table


def make_guest(guest_id, *relationships, **kwargs):
    """Build a guest; relationships are (target_id, type) tuples."""
    name = kwargs.pop("name", guest_id.title())
    return Guest(
        id=guest_id,
        name=name,
        relationships=[Relationship(guest_id=target, type=kind) for target, kind in relationships],
        **kwargs,
    )


def make_table(table_id, capacity, **kwargs):
    name = kwargs.pop("name", f"Table {table_id}")
    return Table(id=table_id, name=name, capacity=capacity, **kwargs)


def make_constraint(constraint_id, kind, guest_ids, priority="required"):
    return Constraint(id=constraint_id, type=kind, guest_ids=list(guest_ids), priority=priority)


@pytest.fixture
def weights():
    return OptimizationWeights(
        relationships={
            "partner": 100,
            "family": 50,
            "friend": 30,
            "colleague": 15,
            "acquaintance": 5,
            "avoid": -200,
        },
        constraints={"required": 500, "preferred": 100, "optional": 25},
        group_cohesion=40,
        interest_match=5,
    )
