"""Journey Transitions — pure state-machine rules for per-user traversal.

Invariants:
    - Functions are PURE: no IO, no clock reads (now is passed in), no mutation
    - Guard order is fixed: ownership -> terminal -> source-node match
    - A planned transition carries the expected (node, version) pair; the shell
      must apply it with a compare-and-set so a raced journey is never advanced twice
    - Entering an ENDING node completes the journey in the same transition

Design Decisions:
    - Guards raise typed EpochErrors (not error dicts): the HTTP layer maps
      them 1:1 to 403/409/400 without translation tables
    - StartDecision enum instead of booleans: the three start outcomes are explicit
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from uuid import UUID

from epoch_adventures.core.domain_types import JourneyStatus, NodeType
from epoch_adventures.core.errors import (
    AuthorizationError, ChoiceMismatchError, ConflictError, ErrorContext,
)
from epoch_adventures.core.path_ledger import (
    DEFAULT_MAX_PATH_LENGTH, PathEntry, append_entry,
)
from epoch_adventures.core.repository_protocols import ChoiceLike, JourneyLike


class StartDecision(str, Enum):
    """What start() must do given the user's latest journey."""
    CREATE = "create"
    RESUME = "resume"
    CONFLICT = "conflict"


@dataclass(frozen=True)
class Transition:
    """Planned journey update, applied by the shell as one conditional write."""
    expected_node_id: UUID
    expected_version: int
    new_node_id: UUID
    new_path: list[dict]
    is_completed: bool
    completed_at: datetime | None

    @property
    def new_version(self) -> int:
        return self.expected_version + 1


def journey_status(journey: JourneyLike | None) -> JourneyStatus:
    if journey is None:
        return JourneyStatus.NOT_STARTED
    if journey.is_completed:
        return JourneyStatus.COMPLETED
    return JourneyStatus.IN_PROGRESS


def decide_start(journey: JourneyLike | None) -> StartDecision:
    """Idempotent resume for active journeys; never silently duplicate a completed one."""
    status = journey_status(journey)
    if status is JourneyStatus.NOT_STARTED:
        return StartDecision.CREATE
    if status is JourneyStatus.IN_PROGRESS:
        return StartDecision.RESUME
    return StartDecision.CONFLICT


def ensure_can_advance(journey: JourneyLike, requesting_user_id: str) -> None:
    """Ownership and terminal guards, checked before the choice is looked up."""
    ctx = ErrorContext(journey_id=str(journey.id), user_id=requesting_user_id)
    if journey.user_id != requesting_user_id:
        raise AuthorizationError("Journey", str(journey.id), ctx)
    if journey.is_completed:
        raise ConflictError(
            "Journey already completed", str(journey.id), ctx,
        )


def plan_transition(
    journey: JourneyLike,
    choice: ChoiceLike,
    target_node_type: NodeType,
    now: datetime,
    max_path_length: int = DEFAULT_MAX_PATH_LENGTH,
) -> Transition:
    """Validate the choice against the current node and compute the next state."""
    if str(choice.source_node_id) != str(journey.current_node_id):
        raise ChoiceMismatchError(
            str(choice.id),
            ErrorContext(journey_id=str(journey.id), user_id=journey.user_id),
        )
    entry = PathEntry(
        node_id=str(journey.current_node_id),
        choice_id=str(choice.id),
        choice_text=choice.label,
        timestamp=now,
    )
    new_path = append_entry(journey.path, entry, max_path_length)
    completed = target_node_type is NodeType.ENDING
    return Transition(
        expected_node_id=journey.current_node_id,
        expected_version=journey.version,
        new_node_id=choice.target_node_id,
        new_path=new_path,
        is_completed=completed,
        completed_at=now if completed else None,
    )
