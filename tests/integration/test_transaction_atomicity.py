from __future__ import annotations

import pytest

from scoreboard.config import Settings
from scoreboard.container import build_container
from scoreboard.db.adapters.base import TransactionHandle
from scoreboard.repositories import GamesRepository
from scoreboard.transactions import TransactionManager


class AbortImport(RuntimeError):
    pass


def test_writes_are_discarded_when_the_unit_of_work_raises(
    transaction_manager: TransactionManager, games_repository: GamesRepository, make_game
) -> None:
    def unit_of_work(transaction: TransactionHandle, transaction_id: int) -> None:
        games_repository.create(make_game(game_id="X"), transaction)
        games_repository.create(make_game(game_id="Y"), transaction)
        raise AbortImport("stop")

    with pytest.raises(AbortImport):
        transaction_manager.execute_in_transaction(unit_of_work)

    assert games_repository.find_by_id("X") is None
    assert games_repository.find_by_id("Y") is None
    assert transaction_manager.has_active_transactions() is False


@pytest.mark.parametrize("writes", [1, 3, 10])
def test_no_partial_batch_is_ever_visible(
    transaction_manager: TransactionManager, games_repository: GamesRepository, make_game, writes: int
) -> None:
    def unit_of_work(transaction: TransactionHandle, transaction_id: int) -> None:
        for _ in range(writes):
            games_repository.create(make_game(), transaction)
        raise AbortImport("stop")

    with pytest.raises(AbortImport):
        transaction_manager.execute_in_transaction(unit_of_work)

    assert games_repository.count() == 0


def test_committed_unit_of_work_is_visible(
    transaction_manager: TransactionManager, games_repository: GamesRepository, make_game
) -> None:
    created = transaction_manager.execute_in_transaction(
        lambda transaction, transaction_id: games_repository.create(make_game(game_id="Z"), transaction)
    )

    assert created.game_id == "Z"
    assert games_repository.find_by_id("Z") == created


def test_context_commit_and_shutdown_rollback(tmp_path, make_game) -> None:
    container = build_container(Settings(database_url=f"sqlite:///{tmp_path / 'wired.db'}", _env_file=None))
    manager = container.transaction_manager
    games = container.games

    committed = manager.create_transaction_context()
    games.create(make_game(game_id="kept"), committed.transaction)
    committed.commit()

    abandoned = manager.create_transaction_context()
    games.create(make_game(game_id="lost"), abandoned.transaction)
    assert container.health_status()["active_transactions"] == 1

    container.shutdown()

    assert manager.active_transaction_count == 0
    assert abandoned.transaction.rolled_back is True

    reopened = build_container(container.settings)
    try:
        assert reopened.games.find_by_id("kept") is not None
        assert reopened.games.find_by_id("lost") is None
    finally:
        reopened.shutdown()


def test_container_ingests_feed_games(tmp_path) -> None:
    container = build_container(Settings(database_url=f"sqlite:///{tmp_path / 'feed.db'}", _env_file=None))
    feed = {
        "source_game_id": "501",
        "date": "2024-10-05",
        "home_team": "Stanford",
        "away_team": "Cal",
        "sport": "soccer",
        "division": "d1",
        "gender": "women",
        "status": "completed",
        "home_conference": "ACC",
    }
    try:
        summary = container.ingestion_service.ingest_games([feed, feed])

        assert (summary.created, summary.skipped, summary.failed) == (1, 1, 0)
        assert container.games.find_by_id("ncaa-501").home_team == "Stanford"
        assert container.teams.count({"conference": "ACC"}) == 1
        assert container.conferences.count() == 1
    finally:
        container.shutdown()
