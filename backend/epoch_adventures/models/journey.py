"""Journey ORM — one user's traversal state over a published adventure.

Invariants:
    - At most one non-completed journey per (user_id, adventure_id)
      (partial unique index; the losing concurrent start gets IntegrityError)
    - path is the append-only ledger (JSON list), bounded by max_path_length
    - version increments on every advance; advances are compare-and-set on
      (current_node_id, version), so concurrent submissions cannot both commit
    - Completed journeys are never updated again

Design Decisions:
    - Ledger embedded as JSON: one row per read-modify-write stream
    - user_id is an opaque string from the upstream auth layer (no users table)
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    String, Integer, Boolean, DateTime, JSON, ForeignKey, Index,
)
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from epoch_adventures.db.base import Base


class Journey(Base):
    """Per-user traversal state with embedded path ledger."""
    __tablename__ = "journeys"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    user_id: Mapped[str] = mapped_column(String(255), nullable=False)
    adventure_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("adventures.id", ondelete="CASCADE"),
        nullable=False,
    )
    current_node_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("adventure_nodes.id"),
        nullable=False,
    )
    path: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    is_completed: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False,
    )
    completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )


Index(
    "uq_journeys_active_per_user",
    Journey.user_id,
    Journey.adventure_id,
    unique=True,
    postgresql_where=Journey.is_completed.is_(False),
    sqlite_where=Journey.is_completed.is_(False),
)
Index("ix_journeys_adventure_id", Journey.adventure_id)
