"""Adventure Routes — publish outlines and start/restart journeys.

Invariants:
    - A rejected outline is 422 with the full violation list; nothing is persisted
    - Unpublished or unknown adventures are 404 to readers
    - start on a completed journey is 409; restart is the explicit way back in

Design Decisions:
    - Generator injected via get_content_generator (overridden in tests)
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from epoch_adventures.api.dependencies import (
    get_content_generator, get_current_user_id,
)
from epoch_adventures.api.routes.journeys import to_journey_response
from epoch_adventures.config import get_settings
from epoch_adventures.core.repository_protocols import ContentGenerator
from epoch_adventures.infrastructure.database import get_db
from epoch_adventures.schemas.adventure import (
    AdventureCreated, GenerateAdventureRequest,
)
from epoch_adventures.schemas.journey import JourneyResponse
from epoch_adventures.schemas.outline import OutlineSchema
from epoch_adventures.services.adventure_publisher import AdventurePublisher
from epoch_adventures.services.journey_engine import JourneyEngine

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/adventures", tags=["adventures"])


def _publisher(db: AsyncSession, generator: ContentGenerator) -> AdventurePublisher:
    settings = get_settings()
    return AdventurePublisher(
        db, generator,
        limits=settings.graph_limits(),
        build_max_attempts=settings.build_max_attempts,
        outline_max_attempts=settings.outline_max_attempts,
    )


@router.post(
    "", response_model=AdventureCreated,
    status_code=status.HTTP_201_CREATED,
)
async def create_adventure(
    body: OutlineSchema,
    db: AsyncSession = Depends(get_db),
    generator: ContentGenerator = Depends(get_content_generator),
):
    """Validate an outline, generate node content, build and publish."""
    result = await _publisher(db, generator).publish(body.to_domain())
    return AdventureCreated(
        adventure_id=result.adventure_id,
        title=result.title,
        node_count=result.node_count,
    )


@router.post(
    "/generate", response_model=AdventureCreated,
    status_code=status.HTTP_201_CREATED,
)
async def generate_adventure(
    body: GenerateAdventureRequest,
    db: AsyncSession = Depends(get_db),
    generator: ContentGenerator = Depends(get_content_generator),
):
    """Generate an outline from a concept, then build and publish it."""
    result = await _publisher(db, generator).generate_and_publish(body.concept)
    return AdventureCreated(
        adventure_id=result.adventure_id,
        title=result.title,
        node_count=result.node_count,
    )


@router.post("/{adventure_id}/start", response_model=JourneyResponse)
async def start_journey(
    adventure_id: UUID,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Create the user's journey, or resume the one in progress."""
    engine = JourneyEngine(db, max_path_length=get_settings().max_path_length)
    return to_journey_response(await engine.start(user_id, adventure_id))


@router.post("/{adventure_id}/restart", response_model=JourneyResponse)
async def restart_journey(
    adventure_id: UUID,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Begin a fresh journey after completing the adventure."""
    engine = JourneyEngine(db, max_path_length=get_settings().max_path_length)
    return to_journey_response(await engine.restart(user_id, adventure_id))
