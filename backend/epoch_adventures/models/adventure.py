"""Adventure ORM — the published branching graph (aggregate root).

Invariants:
    - start_node_id is None until build step 4 patches it (explicit optional,
      never a sentinel string)
    - is_published flips to True as the last write of a successful build;
      a published adventure's start_node_id resolves to its unique START node
    - Structure is immutable once published

Design Decisions:
    - start_node_id FK uses use_alter: adventures and adventure_nodes reference
      each other, so one side must be created after both tables exist
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, Text, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from epoch_adventures.db.base import Base


class Adventure(Base):
    """Branching-narrative graph header."""
    __tablename__ = "adventures"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    title: Mapped[str] = mapped_column(String(300), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    setting: Mapped[str] = mapped_column(Text, nullable=False, default="")
    start_node_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey(
            "adventure_nodes.id",
            use_alter=True, name="fk_adventures_start_node_id",
        ),
        nullable=True,
    )
    is_published: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    published_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
