"""Journey Engine — per-user traversal over published adventures (impure shell).

Invariants:
    - start is idempotent for an in-progress journey and never resurrects a
      completed one (Conflict; restart must be explicit)
    - At most one in-progress journey per (user, adventure): concurrent first
      starts race on a partial unique index and the loser returns the winner
    - apply_choice guard order: journey 404 -> owner 403 -> completed 409 ->
      choice 404 -> wrong source node 400; no write happens before all pass
    - apply_choice commits through ONE conditional UPDATE keyed on
      (id, current_node_id, version, not completed); zero rows -> Conflict

Design Decisions:
    - Rules live in core/journey_transitions.py; this module only does IO
    - Clock injected (now) so completion timestamps are testable
    - Ids captured before any rollback: rollback expires ORM attributes and an
      expired attribute would trigger a lazy load outside the greenlet
"""

import logging
from collections import Counter
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from epoch_adventures.core.domain_types import NodeType
from epoch_adventures.core.errors import (
    ConflictError, ErrorContext, ResourceNotFoundError,
)
from epoch_adventures.core.journey_transitions import (
    StartDecision, decide_start, ensure_can_advance, plan_transition,
)
from epoch_adventures.core.path_ledger import (
    DEFAULT_MAX_PATH_LENGTH, choice_popularity,
)
from epoch_adventures.models.adventure import Adventure
from epoch_adventures.models.adventure_node import AdventureNode
from epoch_adventures.models.choice import Choice
from epoch_adventures.models.journey import Journey
from epoch_adventures.models.narrative_content import NarrativeContent
from epoch_adventures.services.graph_queries import (
    get_node, get_node_content, get_outgoing_choices, get_published_adventure,
)

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class JourneyState:
    """Journey plus everything a reader needs to render its current node."""
    journey: Journey
    node: AdventureNode
    content: NarrativeContent
    choices: list[Choice]


class JourneyEngine:
    """Start, restart and advance journeys for one request/session."""

    def __init__(
        self,
        db: AsyncSession,
        max_path_length: int = DEFAULT_MAX_PATH_LENGTH,
        now: Callable[[], datetime] = _utcnow,
    ):
        self.db = db
        self.max_path_length = max_path_length
        self.now = now

    # ─── Start / Restart ────────────────────────────────────────

    async def start(self, user_id: str, adventure_id: UUID) -> JourneyState:
        adventure = await get_published_adventure(self.db, adventure_id)
        latest = await self._latest_journey(user_id, adventure_id)
        decision = decide_start(latest)

        if decision is StartDecision.RESUME:
            return await self._state(latest)
        if decision is StartDecision.CONFLICT:
            raise ConflictError(
                "Journey already completed; restart it explicitly",
                str(latest.id),
                ErrorContext(adventure_id=str(adventure_id), user_id=user_id),
            )
        journey = await self._create(user_id, adventure)
        return await self._state(journey)

    async def restart(self, user_id: str, adventure_id: UUID) -> JourneyState:
        """New journey at the start node; completed journeys are left untouched."""
        adventure = await get_published_adventure(self.db, adventure_id)
        active = await self._active_journey(user_id, adventure_id)
        if active is not None:
            raise ConflictError(
                "A journey for this adventure is already in progress",
                str(active.id),
                ErrorContext(adventure_id=str(adventure_id), user_id=user_id),
            )
        journey = await self._create(user_id, adventure)
        return await self._state(journey)

    # ─── Advance ────────────────────────────────────────────────

    async def apply_choice(
        self, journey_id: UUID, choice_id: UUID, requesting_user_id: str,
    ) -> JourneyState:
        journey = await self.db.get(Journey, journey_id)
        if journey is None:
            raise ResourceNotFoundError(
                "Journey", str(journey_id),
                ErrorContext(journey_id=str(journey_id), user_id=requesting_user_id),
            )
        ensure_can_advance(journey, requesting_user_id)

        choice = await self.db.get(Choice, choice_id)
        if choice is None:
            raise ResourceNotFoundError(
                "Choice", str(choice_id),
                ErrorContext(journey_id=str(journey_id), user_id=requesting_user_id),
            )
        target = await get_node(self.db, choice.target_node_id)
        transition = plan_transition(
            journey, choice, target.kind, self.now(), self.max_path_length,
        )

        result = await self.db.execute(
            update(Journey)
            .where(
                Journey.id == journey_id,
                Journey.current_node_id == transition.expected_node_id,
                Journey.version == transition.expected_version,
                Journey.is_completed.is_(False),
            )
            .values(
                current_node_id=transition.new_node_id,
                path=transition.new_path,
                version=transition.new_version,
                is_completed=transition.is_completed,
                completed_at=transition.completed_at,
                updated_at=self.now(),
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            await self.db.rollback()
            logger.warning(
                "Journey advanced concurrently, choice rejected",
                extra={
                    "journey_id": str(journey_id),
                    "choice_id": str(choice_id),
                    "user_id": requesting_user_id,
                },
            )
            raise ConflictError(
                "Journey state changed; fetch it again before choosing",
                str(journey_id),
                ErrorContext(journey_id=str(journey_id), user_id=requesting_user_id),
            )
        await self.db.commit()
        await self.db.refresh(journey)

        if transition.is_completed:
            logger.info(
                "Journey completed",
                extra={"journey_id": str(journey_id), "user_id": requesting_user_id},
            )
        return await self._state(journey)

    # ─── Analytics ──────────────────────────────────────────────

    async def choice_popularity(self, adventure_id: UUID) -> Counter:
        """Read-only count of how often each choice was taken."""
        result = await self.db.execute(
            select(Journey.path).where(Journey.adventure_id == adventure_id)
        )
        return choice_popularity(result.scalars().all())

    # ─── Helpers ────────────────────────────────────────────────

    async def _latest_journey(
        self, user_id: str, adventure_id: UUID,
    ) -> Journey | None:
        """In-progress journey if any, else the most recently created one."""
        result = await self.db.execute(
            select(Journey)
            .where(
                Journey.user_id == user_id,
                Journey.adventure_id == adventure_id,
            )
            .order_by(Journey.is_completed, Journey.created_at.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def _active_journey(
        self, user_id: str, adventure_id: UUID,
    ) -> Journey | None:
        result = await self.db.execute(
            select(Journey).where(
                Journey.user_id == user_id,
                Journey.adventure_id == adventure_id,
                Journey.is_completed.is_(False),
            )
        )
        return result.scalar_one_or_none()

    async def _create(self, user_id: str, adventure: Adventure) -> Journey:
        adventure_id = adventure.id
        now = self.now()
        journey = Journey(
            user_id=user_id,
            adventure_id=adventure_id,
            current_node_id=adventure.start_node_id,
            path=[],
            is_completed=False,
            version=0,
            created_at=now,
            updated_at=now,
        )
        self.db.add(journey)
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            winner = await self._active_journey(user_id, adventure_id)
            if winner is None:
                raise
            logger.info(
                "Concurrent start resolved to existing journey",
                extra={"journey_id": str(winner.id), "user_id": user_id},
            )
            return winner

        logger.info(
            "Journey started",
            extra={
                "journey_id": str(journey.id),
                "adventure_id": str(adventure_id),
                "user_id": user_id,
            },
        )
        return journey

    async def _state(self, journey: Journey) -> JourneyState:
        node = await get_node(self.db, journey.current_node_id)
        content = await get_node_content(self.db, node)
        choices = (
            [] if node.kind is NodeType.ENDING
            else await get_outgoing_choices(self.db, node.id)
        )
        return JourneyState(
            journey=journey, node=node, content=content, choices=choices,
        )
