"""API Dependencies — request identity and collaborator wiring.

Invariants:
    - The requesting user comes from the X-User-Id header set by the upstream
      auth layer; a missing or blank header is 401
    - get_content_generator is the single override point for tests
"""

from functools import lru_cache

from fastapi import Header

from epoch_adventures.config import get_settings
from epoch_adventures.core.errors import AuthenticationRequiredError
from epoch_adventures.core.repository_protocols import ContentGenerator
from epoch_adventures.infrastructure.anthropic_client import (
    ResilientAnthropicClient,
)
from epoch_adventures.services.content_generator import (
    AnthropicContentGenerator,
)


async def get_current_user_id(
    x_user_id: str | None = Header(default=None),
) -> str:
    if x_user_id is None or not x_user_id.strip():
        raise AuthenticationRequiredError()
    return x_user_id.strip()


@lru_cache
def _anthropic_client() -> ResilientAnthropicClient:
    settings = get_settings()
    return ResilientAnthropicClient(
        api_key=settings.anthropic_api_key,
        max_retries=settings.anthropic_max_retries,
        base_delay_ms=settings.anthropic_base_delay_ms,
        max_delay_ms=settings.anthropic_max_delay_ms,
        timeout_seconds=settings.anthropic_timeout_seconds,
    )


def get_content_generator() -> ContentGenerator:
    settings = get_settings()
    return AnthropicContentGenerator(
        _anthropic_client(),
        model=settings.generation_model,
        max_tokens=settings.generation_max_tokens,
        limits=settings.graph_limits(),
    )
