"""NarrativeContent ORM — generated narrative referenced by a graph node.

Invariants:
    - Written in build step 1, immediately before the node that references it
    - Immutable after the build commits
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, Text, Integer, DateTime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from epoch_adventures.db.base import Base


class NarrativeContent(Base):
    """Narrative text produced by the content generator for one node."""
    __tablename__ = "narrative_contents"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    title: Mapped[str] = mapped_column(String(300), nullable=False)
    narrative: Mapped[str] = mapped_column(Text, nullable=False)
    word_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
