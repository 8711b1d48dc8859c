"""Graph Queries — read helpers over persisted adventure graphs.

Invariants:
    - Readers never see unpublished adventures (treated as not found)
    - Outgoing choices always returned in display order (position, then id)
    - load_outline keys nodes by str(real id), so the graph validator can
      re-check a persisted graph with the same rules it applied pre-build

Design Decisions:
    - Explicit queries instead of ORM relationships: no lazy loads in async code
"""

from collections import defaultdict
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from epoch_adventures.core.domain_types import EndingType, NodeType
from epoch_adventures.core.errors import ErrorContext, ResourceNotFoundError
from epoch_adventures.core.outline import Outline, OutlineChoice, make_node
from epoch_adventures.models.adventure import Adventure
from epoch_adventures.models.adventure_node import AdventureNode
from epoch_adventures.models.choice import Choice
from epoch_adventures.models.narrative_content import NarrativeContent


async def get_published_adventure(
    db: AsyncSession, adventure_id: UUID,
) -> Adventure:
    adventure = await db.get(Adventure, adventure_id)
    if adventure is None or not adventure.is_published:
        raise ResourceNotFoundError(
            "Adventure", str(adventure_id),
            ErrorContext(adventure_id=str(adventure_id)),
        )
    return adventure


async def get_node(db: AsyncSession, node_id: UUID) -> AdventureNode:
    node = await db.get(AdventureNode, node_id)
    if node is None:
        raise ResourceNotFoundError("Node", str(node_id))
    return node


async def get_node_content(
    db: AsyncSession, node: AdventureNode,
) -> NarrativeContent:
    content = await db.get(NarrativeContent, node.content_id)
    if content is None:
        raise ResourceNotFoundError("NarrativeContent", str(node.content_id))
    return content


async def get_outgoing_choices(
    db: AsyncSession, node_id: UUID,
) -> list[Choice]:
    result = await db.execute(
        select(Choice)
        .where(Choice.source_node_id == node_id)
        .order_by(Choice.position, Choice.id)
    )
    return list(result.scalars().all())


async def load_outline(db: AsyncSession, adventure_id: UUID) -> Outline:
    """Rebuild the symbolic view of a persisted graph for re-validation."""
    adventure = await db.get(Adventure, adventure_id)
    if adventure is None:
        raise ResourceNotFoundError("Adventure", str(adventure_id))

    node_rows = (await db.execute(
        select(AdventureNode)
        .where(AdventureNode.adventure_id == adventure_id)
        .order_by(AdventureNode.created_at, AdventureNode.id)
    )).scalars().all()
    choice_rows = (await db.execute(
        select(Choice)
        .where(Choice.adventure_id == adventure_id)
        .order_by(Choice.position, Choice.id)
    )).scalars().all()

    outgoing: dict[UUID, list[OutlineChoice]] = defaultdict(list)
    for choice in choice_rows:
        outgoing[choice.source_node_id].append(OutlineChoice(
            label=choice.label,
            target_id=str(choice.target_node_id),
            consequence=choice.consequence,
            description=choice.description,
        ))

    nodes = []
    for row in node_rows:
        node_type = NodeType(row.node_type)
        if node_type is NodeType.ENDING:
            nodes.append(make_node(
                node_type, str(row.id), row.title,
                ending_type=EndingType(row.ending_type or EndingType.NEUTRAL.value),
            ))
        else:
            nodes.append(make_node(
                node_type, str(row.id), row.title,
                choices=outgoing.get(row.id, []),
            ))

    return Outline(
        title=adventure.title,
        description=adventure.description,
        setting=adventure.setting,
        nodes=tuple(nodes),
    )
