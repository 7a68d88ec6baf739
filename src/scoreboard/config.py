"""Application settings for the scoreboard data layer.

Values are read from ``SCOREBOARD_*`` environment variables (or a local
``.env`` file). Defaults target a file-backed SQLite database under
``./data`` so a fresh checkout works without any configuration.
"""

from __future__ import annotations

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .repositories.query import PaginationLimits


class Settings(BaseSettings):
    """Pydantic settings container for adapters, repositories and logging."""

    model_config = SettingsConfigDict(
        env_prefix="SCOREBOARD_",
        env_file=".env",
        extra="ignore",
    )

    database_url: str = Field(
        default="sqlite:///./data/scoreboard.db",
        min_length=1,
        description="SQLAlchemy URL of the backing store.",
    )
    database_echo: bool = Field(
        default=False,
        description="Echo every emitted statement through SQLAlchemy's logger.",
    )
    games_default_limit: int = Field(
        default=50,
        ge=1,
        description="Page size used when a caller does not request one.",
    )
    games_max_limit: int = Field(
        default=100,
        ge=1,
        description="Upper bound applied to any requested page size.",
    )
    games_max_offset: int = Field(
        default=10_000,
        ge=0,
        description="Upper bound applied to any requested offset.",
    )
    log_level: str = Field(default="INFO")
    log_json: bool = Field(default=True)

    @model_validator(mode="after")
    def _check_limits(self) -> "Settings":
        if self.games_default_limit > self.games_max_limit:
            raise ValueError("games_default_limit cannot exceed games_max_limit")
        return self

    def pagination_limits(self) -> PaginationLimits:
        return PaginationLimits(
            default_limit=self.games_default_limit,
            max_limit=self.games_max_limit,
            max_offset=self.games_max_offset,
        )


def load_settings(**overrides: object) -> Settings:
    """Build settings from the environment, applying explicit ``overrides``."""

    return Settings(**overrides)


__all__ = ["Settings", "load_settings"]
