from __future__ import annotations

from itertools import count
from typing import Any, Callable, Iterator

import pytest
from structlog.testing import CapturingLogger

from scoreboard.db.adapters import SqlAlchemyAdapter
from scoreboard.repositories import ConferencesRepository, GamesRepository, TeamsRepository
from scoreboard.transactions import TransactionManager
from tests.mocks.driver import RecordingAdapter


@pytest.fixture
def capturing_logger() -> CapturingLogger:
    return CapturingLogger()


@pytest.fixture
def recording_adapter() -> RecordingAdapter:
    adapter = RecordingAdapter()
    adapter.connect()
    return adapter


@pytest.fixture
def sqlite_adapter(tmp_path) -> Iterator[SqlAlchemyAdapter]:
    adapter = SqlAlchemyAdapter(f"sqlite:///{tmp_path / 'scoreboard.db'}")
    adapter.connect()
    try:
        yield adapter
    finally:
        adapter.disconnect()


@pytest.fixture
def transaction_manager(sqlite_adapter: SqlAlchemyAdapter, capturing_logger: CapturingLogger) -> TransactionManager:
    return TransactionManager(sqlite_adapter, logger=capturing_logger)


@pytest.fixture
def games_repository(sqlite_adapter: SqlAlchemyAdapter) -> GamesRepository:
    return GamesRepository(sqlite_adapter)


@pytest.fixture
def teams_repository(sqlite_adapter: SqlAlchemyAdapter) -> TeamsRepository:
    return TeamsRepository(sqlite_adapter)


@pytest.fixture
def conferences_repository(sqlite_adapter: SqlAlchemyAdapter) -> ConferencesRepository:
    return ConferencesRepository(sqlite_adapter)


@pytest.fixture
def make_game() -> Callable[..., dict[str, Any]]:
    sequence = count(1)

    def _make_game(**overrides: Any) -> dict[str, Any]:
        number = next(sequence)
        game = {
            "game_id": f"game-{number:03d}",
            "data_source": "ncaa",
            "date": "2024-03-01",
            "home_team": "Duke",
            "away_team": "North Carolina",
            "sport": "basketball",
            "status": "scheduled",
        }
        game.update(overrides)
        return game

    return _make_game
