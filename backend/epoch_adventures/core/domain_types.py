"""Domain Types — rich types that replace bare primitives across the codebase.

Invariants:
    - AdventureId, NodeId, ChoiceId, JourneyId wrap UUIDs
    - SymbolicId is a generation-time string, valid only within one build
    - All valid states encoded as Enums — no raw string matching

Design Decisions:
    - NewType over dataclass wrappers: zero runtime cost, full type-checker support
    - str Enums: serialize to JSON and to String DB columns without custom encoders
"""

from enum import Enum
from typing import NewType
from uuid import UUID


# ─── Identity Types ──────────────────────────────────────────────

AdventureId = NewType("AdventureId", UUID)
NodeId = NewType("NodeId", UUID)
ChoiceId = NewType("ChoiceId", UUID)
JourneyId = NewType("JourneyId", UUID)
UserId = NewType("UserId", str)
SymbolicId = NewType("SymbolicId", str)


# ─── Enums ───────────────────────────────────────────────────────

class NodeType(str, Enum):
    """Node role in the graph — governs allowed outgoing-choice cardinality."""
    START = "START"
    DECISION = "DECISION"
    STORY = "STORY"
    ENDING = "ENDING"

    @property
    def is_terminal(self) -> bool:
        return self is NodeType.ENDING


class EndingType(str, Enum):
    """Flavour of an ENDING node."""
    VICTORY = "victory"
    DEFEAT = "defeat"
    NEUTRAL = "neutral"
    BITTERSWEET = "bittersweet"


class JourneyStatus(str, Enum):
    """Journey lifecycle. COMPLETED is terminal."""
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


BRANCHING_NODE_TYPES = frozenset({
    NodeType.START, NodeType.DECISION, NodeType.STORY,
})
