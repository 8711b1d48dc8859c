"""Pydantic Schemas — request/response validation for API endpoints.

Invariants:
    - Schemas validate shape at the system boundary (user input, generator output)
    - Graph-level rules (reachability, termination) stay in core/graph_validator.py

Design Decisions:
    - Separate from models: schemas are API contracts, models are persistence
"""
