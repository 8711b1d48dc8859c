"""Graph Builder — materializes a validated outline into linked records.

Invariants:
    - Step 0 (content generation) finishes for EVERY node before the first write;
      a generator failure leaves the database untouched
    - Steps 1-4 run in ONE transaction, in order: nodes, adventure, choices,
      publish. Any failure rolls back the whole build
    - Choice endpoints are resolved through the symbolic->real id map only; a
      miss raises UnresolvedReferenceError (fatal, never retried)
    - is_published flips only after the persisted graph re-validates

Design Decisions:
    - Adventure id allocated up front: nodes (step 1) reference it before its row
      exists, relying on the DEFERRABLE INITIALLY DEFERRED foreign key
    - Explicit flush between steps: no relationships, so the unit of work cannot
      order the inserts for us
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession

from epoch_adventures.core.domain_types import NodeType, SymbolicId
from epoch_adventures.core.errors import (
    ErrorContext, OutlineValidationError, UnresolvedReferenceError,
)
from epoch_adventures.core.graph_validator import validate_outline
from epoch_adventures.core.outline import (
    EndingNode, GraphLimits, NodeContent, Outline,
)
from epoch_adventures.core.repository_protocols import ContentGenerator
from epoch_adventures.models.adventure import Adventure
from epoch_adventures.models.adventure_node import AdventureNode
from epoch_adventures.models.choice import Choice
from epoch_adventures.models.narrative_content import NarrativeContent
from epoch_adventures.services.graph_queries import load_outline

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BuildResult:
    """Outcome of a committed build."""
    adventure_id: uuid.UUID
    title: str
    start_node_id: uuid.UUID
    node_count: int
    choice_count: int
    id_map: dict[SymbolicId, uuid.UUID]


class GraphBuilder:
    """Runs one build attempt against one session."""

    def __init__(
        self,
        db: AsyncSession,
        generator: ContentGenerator,
        limits: GraphLimits | None = None,
    ):
        self.db = db
        self.generator = generator
        self.limits = limits or GraphLimits()

    async def build(self, outline: Outline) -> BuildResult:
        contents = await self._generate_contents(outline)

        adventure_id = uuid.uuid4()
        ctx = ErrorContext(adventure_id=str(adventure_id))
        try:
            id_map = await self._persist_nodes(outline, contents, adventure_id)
            adventure = await self._persist_adventure(outline, adventure_id)
            choice_count = await self._persist_choices(
                outline, id_map, adventure_id, ctx,
            )
            start_node_id = await self._publish(adventure, outline, id_map, ctx)
            await self.db.commit()
        except UnresolvedReferenceError as e:
            await self.db.rollback()
            logger.critical(
                f"Build aborted: {e.message}",
                extra={
                    "adventure_id": str(adventure_id),
                    "symbolic_id": e.symbolic_id,
                    "error_code": e.code,
                    "node_count": len(outline.nodes),
                },
            )
            raise
        except Exception:
            await self.db.rollback()
            raise

        logger.info(
            "Adventure published",
            extra={
                "adventure_id": str(adventure_id),
                "node_count": len(id_map),
                "choice_count": choice_count,
            },
        )
        return BuildResult(
            adventure_id=adventure_id,
            title=outline.title,
            start_node_id=start_node_id,
            node_count=len(id_map),
            choice_count=choice_count,
            id_map=id_map,
        )

    # ─── Step 0: content ────────────────────────────────────────

    async def _generate_contents(
        self, outline: Outline,
    ) -> dict[SymbolicId, NodeContent]:
        contents: dict[SymbolicId, NodeContent] = {}
        for node in outline.nodes:
            contents[node.id] = await self.generator.generate_content(node, outline)
        return contents

    # ─── Step 1: nodes ──────────────────────────────────────────

    async def _persist_nodes(
        self,
        outline: Outline,
        contents: dict[SymbolicId, NodeContent],
        adventure_id: uuid.UUID,
    ) -> dict[SymbolicId, uuid.UUID]:
        id_map: dict[SymbolicId, uuid.UUID] = {}
        rows = []
        for node in outline.nodes:
            content = contents[node.id]
            content_row = NarrativeContent(
                id=uuid.uuid4(),
                title=node.title,
                narrative=content.narrative,
                word_count=content.word_count,
            )
            node_row = AdventureNode(
                id=uuid.uuid4(),
                adventure_id=adventure_id,
                content_id=content_row.id,
                title=node.title,
                node_type=node.node_type.value,
                ending_type=(
                    node.ending_type.value if isinstance(node, EndingNode) else None
                ),
            )
            id_map[node.id] = node_row.id
            rows.append((content_row, node_row))

        self.db.add_all([content_row for content_row, _ in rows])
        await self.db.flush()
        self.db.add_all([node_row for _, node_row in rows])
        await self.db.flush()
        return id_map

    # ─── Step 2: adventure ──────────────────────────────────────

    async def _persist_adventure(
        self, outline: Outline, adventure_id: uuid.UUID,
    ) -> Adventure:
        adventure = Adventure(
            id=adventure_id,
            title=outline.title,
            description=outline.description,
            setting=outline.setting,
            start_node_id=None,
            is_published=False,
        )
        self.db.add(adventure)
        await self.db.flush()
        return adventure

    # ─── Step 3: choices ────────────────────────────────────────

    async def _persist_choices(
        self,
        outline: Outline,
        id_map: dict[SymbolicId, uuid.UUID],
        adventure_id: uuid.UUID,
        ctx: ErrorContext,
    ) -> int:
        rows = []
        for node in outline.nodes:
            source_id = _resolve(id_map, node.id, ctx)
            for position, choice in enumerate(node.choices):
                rows.append(Choice(
                    adventure_id=adventure_id,
                    source_node_id=source_id,
                    target_node_id=_resolve(id_map, choice.target_id, ctx),
                    label=choice.label,
                    description=choice.description,
                    consequence=choice.consequence,
                    position=position,
                ))
        self.db.add_all(rows)
        await self.db.flush()
        return len(rows)

    # ─── Step 4: publish ────────────────────────────────────────

    async def _publish(
        self,
        adventure: Adventure,
        outline: Outline,
        id_map: dict[SymbolicId, uuid.UUID],
        ctx: ErrorContext,
    ) -> uuid.UUID:
        start = next(
            (n for n in outline.nodes if n.node_type is NodeType.START), None,
        )
        if start is None:
            raise UnresolvedReferenceError("<start>", ctx)
        start_node_id = _resolve(id_map, start.id, ctx)
        adventure.start_node_id = start_node_id
        await self.db.flush()

        persisted = await load_outline(self.db, adventure.id)
        report = validate_outline(persisted, self.limits)
        if not report.valid:
            raise OutlineValidationError(report.to_list(), ctx)

        adventure.is_published = True
        adventure.published_at = datetime.now(timezone.utc)
        await self.db.flush()
        return start_node_id


def _resolve(
    id_map: dict[SymbolicId, uuid.UUID], symbolic_id: str, ctx: ErrorContext,
) -> uuid.UUID:
    try:
        return id_map[SymbolicId(symbolic_id)]
    except KeyError:
        raise UnresolvedReferenceError(symbolic_id, ctx) from None
