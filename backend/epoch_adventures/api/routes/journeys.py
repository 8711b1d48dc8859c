"""Journey Routes — advance a journey by one choice.

Invariants:
    - Only the journey owner (X-User-Id) may choose
    - Error order: 404 journey, 403 owner, 409 completed, 404 choice,
      400 choice not leaving the current node, 409 concurrent advance

Design Decisions:
    - to_journey_response exported for adventure routes (start/restart share the shape)
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from epoch_adventures.api.dependencies import get_current_user_id
from epoch_adventures.config import get_settings
from epoch_adventures.core.path_ledger import PathEntry, last_entry, parse_entries
from epoch_adventures.infrastructure.database import get_db
from epoch_adventures.schemas.journey import (
    ChoiceView, ChooseRequest, JourneyResponse, NodeView, PathEntryView,
)
from epoch_adventures.services.journey_engine import JourneyEngine, JourneyState

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/journeys", tags=["journeys"])


def _entry_view(entry: PathEntry) -> PathEntryView:
    return PathEntryView(
        node_id=entry.node_id, choice_id=entry.choice_id,
        choice_text=entry.choice_text, timestamp=entry.timestamp,
    )


def to_journey_response(state: JourneyState) -> JourneyResponse:
    journey, node = state.journey, state.node
    previous = last_entry(journey.path)
    return JourneyResponse(
        journey_id=journey.id,
        adventure_id=journey.adventure_id,
        current_node=NodeView(
            id=node.id,
            title=node.title,
            node_type=node.kind,
            ending_type=node.ending_type,
            narrative=state.content.narrative,
        ),
        choices=[
            ChoiceView(id=c.id, label=c.label, description=c.description)
            for c in state.choices
        ],
        path=[_entry_view(e) for e in parse_entries(journey.path)],
        came_from=_entry_view(previous) if previous else None,
        is_completed=journey.is_completed,
        completed_at=journey.completed_at,
    )


@router.post("/{journey_id}/choose", response_model=JourneyResponse)
async def choose(
    journey_id: UUID,
    body: ChooseRequest,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Apply one choice to the journey and return the new node."""
    engine = JourneyEngine(db, max_path_length=get_settings().max_path_length)
    state = await engine.apply_choice(journey_id, body.choice_id, user_id)
    return to_journey_response(state)
