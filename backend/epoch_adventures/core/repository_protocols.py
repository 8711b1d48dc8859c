"""Boundary Protocols — contracts between core and shell.

Invariants:
    - Core NEVER imports from shell — dependency arrows point inward only
    - Content generation accessed through the ContentGenerator Protocol
    - Implementations provided by shell via dependency injection

Design Decisions:
    - Protocol over ABC: structural subtyping, ORM rows satisfy *Like protocols
      without inheriting anything
    - Async in ContentGenerator: implementations do IO; core functions that use
      JourneyLike/ChoiceLike stay synchronous
"""

from datetime import datetime
from typing import Protocol
from uuid import UUID

from epoch_adventures.core.outline import NodeContent, Outline, OutlineNode


class JourneyLike(Protocol):
    """Structural contract for journey rows passed to pure transition logic."""
    id: UUID
    user_id: str
    adventure_id: UUID
    current_node_id: UUID
    path: list
    is_completed: bool
    completed_at: datetime | None
    version: int


class ChoiceLike(Protocol):
    """Structural contract for a persisted choice edge."""
    id: UUID
    source_node_id: UUID
    target_node_id: UUID
    label: str


class ContentGenerator(Protocol):
    """Contract for the external content generator — implemented by shell.

    generate_outline may raise OutlineValidationError for output it cannot
    shape into an Outline; callers treat that like a rejected outline.
    """
    async def generate_outline(self, concept: str) -> Outline: ...
    async def generate_content(
        self, node: OutlineNode, outline: Outline,
    ) -> NodeContent: ...
