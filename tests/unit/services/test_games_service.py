from __future__ import annotations

import pytest

from scoreboard.exceptions import CompositeFailure, IntegrityConstraintViolation, NotFoundError, ValidationFailure
from scoreboard.repositories import GamesRepository, TeamsRepository
from scoreboard.repositories.query import PaginationLimits, SortDirection
from scoreboard.services import GamesService
from scoreboard.transactions import TransactionManager


@pytest.fixture
def service(
    games_repository: GamesRepository,
    teams_repository: TeamsRepository,
    transaction_manager: TransactionManager,
) -> GamesService:
    return GamesService(
        games_repository,
        teams_repository,
        transaction_manager,
        limits=PaginationLimits(default_limit=2, max_limit=3),
    )


def test_sanitize_filters_trims_lowercases_and_drops_unknown(service: GamesService) -> None:
    raw = {
        "sport": "  Basketball ",
        "data_source": "NCAA",
        "home_team": " Duke ",
        "status": "in_progress",
        "conference": "",
        "date": 20240101,
        "favourite": "yes",
    }

    assert service.sanitize_filters(raw) == {
        "sport": "basketball",
        "data_source": "ncaa",
        "home_team": "Duke",
        "status": "in_progress",
    }
    assert service.sanitize_filters({"status": "exploded"}) == {}
    assert service.sanitize_filters(None) == {}


def test_sanitize_options_applies_configured_limits(service: GamesService) -> None:
    pagination = service.sanitize_options({"limit": 50, "sort_by": "bogus", "sort_order": "asc"})

    assert pagination.limit == 3
    assert pagination.sort_field == "date"
    assert pagination.sort_direction is SortDirection.ASC
    assert service.sanitize_options({}).limit == 2


def test_get_games_attaches_pagination(service: GamesService, games_repository: GamesRepository, make_game) -> None:
    for day in range(1, 6):
        games_repository.create(make_game(date=f"2024-01-0{day}"))

    page = service.get_games({"sport": "BASKETBALL"}, {"limit": 2, "offset": 2})

    assert [game.date for game in page.items] == ["2024-01-03", "2024-01-02"]
    assert page.pagination.total == 5
    assert page.pagination.has_more is True


def test_get_game_not_found(service: GamesService) -> None:
    with pytest.raises(NotFoundError) as excinfo:
        service.get_game("missing")
    assert excinfo.value.identifier == "missing"

    with pytest.raises(ValidationFailure):
        service.get_game("")


def test_create_game_rejects_duplicates(service: GamesService, transaction_manager: TransactionManager, make_game) -> None:
    created = service.create_game(make_game(game_id="g1"))
    assert created.game_id == "g1"

    with pytest.raises(ValidationFailure, match="already exists"):
        service.create_game(make_game(game_id="g1"))
    assert transaction_manager.active_transaction_count == 0


def test_update_and_delete_game(service: GamesService, make_game) -> None:
    service.create_game(make_game(game_id="g1"))

    assert service.update_game("g1", {"status": "final", "home_score": 3}).status == "final"
    with pytest.raises(NotFoundError):
        service.update_game("missing", {"status": "final"})

    assert service.delete_game("g1") is True
    with pytest.raises(NotFoundError):
        service.delete_game("g1")


def test_date_range_validation(service: GamesService) -> None:
    with pytest.raises(ValidationFailure):
        service.get_games_by_date_range("2024-02-01", "2024-01-01")
    with pytest.raises(ValidationFailure):
        service.get_games_by_date_range("", "2024-01-01")


def test_team_lookups_and_statistics(service: GamesService, make_game) -> None:
    service.create_game(make_game(game_id="g1", status="in_progress"))
    service.create_game(make_game(game_id="g2", home_team="Kentucky", away_team="Florida"))

    assert [game.game_id for game in service.get_games_by_team(" Duke ")] == ["g1"]
    assert [game.game_id for game in service.get_live_games()] == ["g1"]
    assert service.get_statistics({"sport": "Basketball"}).total_games == 2
    with pytest.raises(ValidationFailure):
        service.get_games_by_team("   ")


def test_create_games_is_all_or_nothing(service: GamesService, games_repository: GamesRepository, make_game) -> None:
    batch = [make_game(game_id="a"), make_game(game_id="b"), make_game(game_id="a")]

    with pytest.raises(IntegrityConstraintViolation):
        service.create_games(batch)

    assert games_repository.count() == 0

    created = service.create_games([make_game(game_id="a"), make_game(game_id="b")])
    assert [game.game_id for game in created] == ["a", "b"]


def test_record_game_with_teams_creates_missing_teams(
    service: GamesService, teams_repository: TeamsRepository, make_game
) -> None:
    teams_repository.create({"name": "Duke", "sport": "basketball", "division": "d1", "gender": "men"})
    teams = [
        {"name": "Duke", "sport": "basketball", "division": "d1", "gender": "men"},
        {"name": "North Carolina", "sport": "basketball", "division": "d1", "gender": "men"},
    ]

    recorded_teams, game = service.record_game_with_teams(make_game(game_id="g1"), teams)

    assert [team.name for team in recorded_teams] == ["Duke", "North Carolina"]
    assert game.game_id == "g1"
    assert teams_repository.count() == 2


def test_record_game_with_teams_leaves_nothing_behind_on_failure(
    service: GamesService,
    teams_repository: TeamsRepository,
    games_repository: GamesRepository,
    transaction_manager: TransactionManager,
    make_game,
) -> None:
    teams = [{"name": "Gonzaga", "sport": "basketball", "division": "d1", "gender": "men"}]
    invalid_game = make_game(game_id="g1", status="")

    with pytest.raises(ValidationFailure):
        service.record_game_with_teams(invalid_game, teams)

    assert teams_repository.count() == 0
    assert games_repository.count() == 0
    assert transaction_manager.active_transaction_count == 0


def test_import_games_reports_every_failure(
    service: GamesService, games_repository: GamesRepository, make_game
) -> None:
    games = [
        make_game(game_id="ok-1"),
        make_game(game_id="bad", sport=""),
        make_game(game_id="ok-2"),
        make_game(game_id="ok-1"),
    ]

    with pytest.raises(CompositeFailure) as excinfo:
        service.import_games(games)

    failed_ids = [item for item, _error in excinfo.value.failures]
    assert failed_ids == ["bad", "ok-1"]
    assert "2 item(s) failed" in str(excinfo.value)
    assert games_repository.count() == 2


def test_import_games_returns_records_when_all_succeed(service: GamesService, make_game) -> None:
    imported = service.import_games([make_game(game_id="x"), make_game(game_id="y")])
    assert [game.game_id for game in imported] == ["x", "y"]
