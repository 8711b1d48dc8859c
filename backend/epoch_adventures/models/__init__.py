"""ORM Models — SQLAlchemy declarative models for all domain entities.

Invariants:
    - All models inherit from Base (db/base.py)
    - Adventure is the aggregate root of the graph; Journey is the aggregate
      root of one user's traversal

Design Decisions:
    - One file per entity for locality
    - All models imported here so metadata is complete before create_all or
      alembic autogenerate runs
    - No ORM relationships between graph tables: the adventure <-> node foreign
      keys are circular, and every read is an explicit query (no async lazy loads)
"""

from epoch_adventures.models.narrative_content import NarrativeContent  # noqa: F401
from epoch_adventures.models.adventure import Adventure  # noqa: F401
from epoch_adventures.models.adventure_node import AdventureNode  # noqa: F401
from epoch_adventures.models.choice import Choice  # noqa: F401
from epoch_adventures.models.journey import Journey  # noqa: F401
