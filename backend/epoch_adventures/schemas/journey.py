"""Journey Schemas — traversal responses and the choose request.

Invariants:
    - choices is empty when current_node is an ENDING
    - path mirrors the stored ledger, oldest entry first
    - came_from is the last ledger entry (None at the start node)
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel

from epoch_adventures.core.domain_types import EndingType, NodeType


class ChooseRequest(BaseModel):
    choice_id: UUID


class ChoiceView(BaseModel):
    id: UUID
    label: str
    description: str = ""


class NodeView(BaseModel):
    """Current node with its narrative."""
    id: UUID
    title: str
    node_type: NodeType
    ending_type: EndingType | None = None
    narrative: str


class PathEntryView(BaseModel):
    """One ledger step: the node left and the choice taken."""
    node_id: str
    choice_id: str
    choice_text: str
    timestamp: datetime


class JourneyResponse(BaseModel):
    """Journey state returned by start, restart and choose."""
    journey_id: UUID
    adventure_id: UUID
    current_node: NodeView
    choices: list[ChoiceView]
    path: list[PathEntryView]
    came_from: PathEntryView | None = None
    is_completed: bool
    completed_at: datetime | None = None
