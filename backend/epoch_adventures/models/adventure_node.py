"""AdventureNode ORM — one episode/vertex of an adventure graph.

Invariants:
    - node_type is one of START, DECISION, STORY, ENDING
    - ending_type is set only on ENDING nodes (CHECK constraint)
    - At most one START node per adventure (partial unique index)
    - adventure_id FK is DEFERRABLE INITIALLY DEFERRED: build step 1 writes
      nodes before the adventure row exists, within the same transaction

Design Decisions:
    - content_id references NarrativeContent instead of inlining text: content
      is produced by an external generator and may be reused by renderers
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    String, DateTime, ForeignKey, CheckConstraint, Index,
)
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from epoch_adventures.core.domain_types import NodeType
from epoch_adventures.db.base import Base


class AdventureNode(Base):
    """Graph vertex with its narrative content reference."""
    __tablename__ = "adventure_nodes"
    __table_args__ = (
        CheckConstraint(
            "node_type = 'ENDING' OR ending_type IS NULL",
            name="ck_adventure_nodes_ending_type",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    adventure_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey(
            "adventures.id", ondelete="CASCADE",
            deferrable=True, initially="DEFERRED",
        ),
        nullable=False,
    )
    content_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("narrative_contents.id"),
        nullable=False,
    )
    title: Mapped[str] = mapped_column(String(300), nullable=False)
    node_type: Mapped[str] = mapped_column(String(20), nullable=False)
    ending_type: Mapped[str | None] = mapped_column(String(20), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    @property
    def kind(self) -> NodeType:
        return NodeType(self.node_type)


Index(
    "uq_adventure_nodes_single_start",
    AdventureNode.adventure_id,
    unique=True,
    postgresql_where=AdventureNode.node_type == NodeType.START.value,
    sqlite_where=AdventureNode.node_type == NodeType.START.value,
)
