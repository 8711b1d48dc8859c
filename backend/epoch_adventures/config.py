"""Application Configuration — environment-driven settings via pydantic-settings.

Invariants:
    - All secrets come from environment variables (never hardcoded)
    - get_settings() is cached (lru_cache) — single instance per process
    - Graph limits handed to core as a GraphLimits value, never as Settings

Design Decisions:
    - pydantic-settings over raw os.environ: validation, type coercion, .env file support
    - Defaults provided for all non-secret settings: works out-of-the-box with docker-compose
    - Graph defaults mirror the product constants (5-20 nodes, 1-4 choices, path history 50)
"""

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache

from epoch_adventures.core.outline import GraphLimits


class Settings(BaseSettings):
    """Application settings from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Database
    database_url: str = (
        "postgresql+asyncpg://epoch:epoch@db:5432/epoch"
    )

    @field_validator("database_url", mode="before")
    @classmethod
    def convert_postgres_url(cls, v: str) -> str:
        """Hosted Postgres provides postgresql:// but asyncpg needs postgresql+asyncpg://."""
        if isinstance(v, str) and v.startswith("postgresql://"):
            return v.replace("postgresql://", "postgresql+asyncpg://", 1)
        return v

    database_pool_size: int = 20
    database_max_overflow: int = 10

    # Anthropic (content generator)
    anthropic_api_key: str = "sk-ant-placeholder"
    anthropic_max_retries: int = 3
    anthropic_timeout_seconds: int = 300
    anthropic_base_delay_ms: int = 1000
    anthropic_max_delay_ms: int = 60_000
    generation_model: str = "claude-sonnet-4-5"
    generation_max_tokens: int = 8192

    # Graph structure
    graph_min_nodes: int = 5
    graph_max_nodes: int = 20
    graph_min_choices_per_node: int = 1
    graph_max_choices_per_node: int = 4
    graph_max_path_depth: int = 20

    # Journeys
    max_path_length: int = 50

    # Pipeline
    build_max_attempts: int = 2
    outline_max_attempts: int = 2

    # API
    cors_origins: list[str] = ["http://localhost:3000"]

    # Observability
    log_level: str = "INFO"
    log_format: str = "json"

    def graph_limits(self) -> GraphLimits:
        return GraphLimits(
            min_nodes=self.graph_min_nodes,
            max_nodes=self.graph_max_nodes,
            min_choices_per_node=self.graph_min_choices_per_node,
            max_choices_per_node=self.graph_max_choices_per_node,
            max_path_depth=self.graph_max_path_depth,
        )


@lru_cache
def get_settings() -> Settings:
    return Settings()
