"""Adventure Schemas — publish/generate request and response contracts."""

from uuid import UUID

from pydantic import BaseModel, Field


class GenerateAdventureRequest(BaseModel):
    """Concept handed to the content generator to produce an outline."""
    concept: str = Field(min_length=3, max_length=2000)


class AdventureCreated(BaseModel):
    """Response after a successful build and publish."""
    adventure_id: UUID
    title: str
    node_count: int
