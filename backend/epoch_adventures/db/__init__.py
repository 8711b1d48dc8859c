"""Database Layer — SQLAlchemy declarative base shared by all ORM models.

Invariants:
    - All models inherit from Base
    - Base is the single source of truth for table metadata (alembic autogenerate)
"""
