from __future__ import annotations

import pytest
from pydantic import ValidationError

from scoreboard.config import Settings, load_settings
from scoreboard.repositories.query import PaginationLimits


def test_defaults() -> None:
    settings = Settings(_env_file=None)

    assert settings.database_url == "sqlite:///./data/scoreboard.db"
    assert settings.pagination_limits() == PaginationLimits(default_limit=50, max_limit=100, max_offset=10_000)


def test_environment_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SCOREBOARD_DATABASE_URL", "sqlite:///:memory:")
    monkeypatch.setenv("SCOREBOARD_GAMES_MAX_LIMIT", "25")
    monkeypatch.setenv("SCOREBOARD_GAMES_DEFAULT_LIMIT", "10")

    settings = load_settings()

    assert settings.database_url == "sqlite:///:memory:"
    assert settings.pagination_limits().max_limit == 25
    assert settings.pagination_limits().default_limit == 10


def test_default_limit_cannot_exceed_max_limit() -> None:
    with pytest.raises(ValidationError):
        Settings(games_default_limit=200, games_max_limit=100)


def test_limits_must_be_positive() -> None:
    with pytest.raises(ValidationError):
        Settings(games_max_limit=0)
