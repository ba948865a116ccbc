"""Data models for seatplan."""

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Literal

RelationshipType = Literal["family", "friend", "colleague", "acquaintance", "partner", "avoid"]
ConstraintType = Literal[
    "must_sit_together",
    "must_not_sit_together",
    "same_table",
    "different_table",
    "near_front",
    "accessibility",
]
Priority = Literal["required", "preferred", "optional"]
RsvpStatus = Literal["pending", "confirmed", "declined"]
Severity = Literal["critical", "warning", "info"]
ReasonType = Literal["relationship", "penalty", "group", "interest", "constraint"]

RELATIONSHIP_TYPES: tuple[str, ...] = (
    "family",
    "friend",
    "colleague",
    "acquaintance",
    "partner",
    "avoid",
)
CONSTRAINT_TYPES: tuple[str, ...] = (
    "must_sit_together",
    "must_not_sit_together",
    "same_table",
    "different_table",
    "near_front",
    "accessibility",
)
PRIORITIES: tuple[str, ...] = ("required", "preferred", "optional")
RSVP_STATUSES: tuple[str, ...] = ("pending", "confirmed", "declined")

TOGETHER_TYPES = frozenset({"must_sit_together", "same_table"})
APART_TYPES = frozenset({"must_not_sit_together", "different_table"})

# guest id -> table id; unplaced guests are absent
Assignment = dict[str, str]


@dataclass
class Relationship:
    """A directed relationship from one guest toward another."""

    guest_id: str
    type: RelationshipType
    strength: int = 3  # 1-5, informational only


@dataclass
class Guest:
    """A person to be seated."""

    id: str
    name: str
    relationships: list[Relationship] = field(default_factory=list)
    group: str | None = None
    interests: list[str] = field(default_factory=list)
    rsvp_status: RsvpStatus = "pending"
    table_id: str | None = None


@dataclass
class Table:
    """A capacity-bounded seating unit."""

    id: str
    name: str
    capacity: int
    shape: str = "round"


@dataclass
class Constraint:
    """An explicit rule tying guests together or keeping them apart."""

    id: str
    type: ConstraintType
    guest_ids: list[str]
    priority: Priority = "required"
    description: str | None = None


@dataclass
class Event:
    """Everything the engine needs about one event."""

    name: str
    guests: list[Guest] = field(default_factory=list)
    tables: list[Table] = field(default_factory=list)
    constraints: list[Constraint] = field(default_factory=list)


@dataclass(frozen=True)
class OptimizationWeights:
    """Coefficients turning seating facts into a single score."""

    relationships: Mapping[str, float]
    constraints: Mapping[str, float]
    group_cohesion: float
    interest_match: float


@dataclass
class OptimizationOptions:
    """Per-run knobs for optimize_seating."""

    selected_guest_ids: list[str] | None = None
    selected_table_ids: list[str] | None = None
    max_iterations: int | None = None  # None means the default of 10
    preserve_current_assignments: bool = False
    time_limit: float | None = None  # seconds, checked between refinement passes


@dataclass
class ScoreReason:
    """One labeled contribution to a guest's score."""

    type: ReasonType
    description: str
    points: float
    guest_ids: list[str] = field(default_factory=list)


@dataclass
class ScoreBreakdown:
    relationship_score: float = 0.0
    constraint_score: float = 0.0
    group_cohesion_score: float = 0.0
    interest_score: float = 0.0
    reasons: list[ScoreReason] = field(default_factory=list)


@dataclass
class AssignmentScore:
    """Score of one guest seated at one table."""

    guest_id: str
    table_id: str
    total_score: float
    breakdown: ScoreBreakdown = field(default_factory=ScoreBreakdown)


@dataclass
class TableOptimizationScore:
    """Summary of how well a table's occupants fit together."""

    table_id: str
    table_name: str
    compatibility_score: float  # 0-100, 50 is neutral
    guest_count: int
    capacity: int
    issues: list[str] = field(default_factory=list)
    guest_scores: list[AssignmentScore] = field(default_factory=list)


@dataclass
class OptimizationViolation:
    """A constraint or avoid breach found in a finished assignment."""

    severity: Severity
    message: str
    guest_ids: list[str]
    constraint_id: str | None = None


@dataclass
class ConstraintViolation:
    """A constraint breach found in the currently persisted seating."""

    constraint_id: str
    constraint_type: ConstraintType
    priority: Priority
    description: str
    guest_ids: list[str]
    table_ids: list[str]


@dataclass
class OptimizationResult:
    """Result of the optimization."""

    proposed_assignments: Assignment
    current_assignments: dict[str, str | None]
    total_score: float
    previous_score: float
    score_improvement: float
    assignment_scores: list[AssignmentScore]
    table_scores: dict[str, TableOptimizationScore]
    violations: list[OptimizationViolation]
    moved_guests: list[str]
    iterations: int = 0  # local-search passes that improved the score
