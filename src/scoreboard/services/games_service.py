"""Business-facing operations over games and their teams."""

from __future__ import annotations

from typing import Any, Iterable, Mapping, Sequence

import structlog

from ..db.adapters.base import TransactionHandle
from ..exceptions import AppError, CompositeFailure, NotFoundError, ValidationFailure, ensure_found
from ..repositories.games import DEFAULT_GAME_SORT, GAME_SORT_FIELDS, GamesRepository
from ..repositories.query import PaginationLimits, PaginationSpec, SortDirection
from ..repositories.teams import TeamsRepository
from ..schemas import GameRecord, GameStatistics, Page, Pagination, TeamRecord
from ..transactions import RollbackOperation, TransactionManager, with_transaction
from .steps import CatalogStep

VALID_STATUSES = ("scheduled", "in_progress", "completed", "final", "postponed", "cancelled")

_TRIMMED_FILTERS = ("date", "conference", "home_team", "away_team", "season")
_LOWERCASED_FILTERS = ("sport", "data_source")


class GamesService:
    """Sanitize caller input and drive the repositories, transactionally where needed."""

    def __init__(
        self,
        games: GamesRepository,
        teams: TeamsRepository,
        transaction_manager: TransactionManager,
        *,
        limits: PaginationLimits | None = None,
        logger: Any | None = None,
    ) -> None:
        self.games = games
        self.teams = teams
        self.transaction_manager = transaction_manager
        self._limits = limits or PaginationLimits()
        self._logger = logger or structlog.get_logger(__name__)

    # Input handling ----------------------------------------------------

    @staticmethod
    def sanitize_filters(raw: Mapping[str, Any] | None) -> dict[str, str]:
        """Keep known string filters, trimmed; unknown keys and bad statuses are dropped."""

        sanitized: dict[str, str] = {}
        for key, value in (raw or {}).items():
            if not isinstance(value, str) or not value.strip():
                continue
            value = value.strip()
            if key in _LOWERCASED_FILTERS:
                sanitized[key] = value.lower()
            elif key in _TRIMMED_FILTERS:
                sanitized[key] = value
            elif key == "status" and value in VALID_STATUSES:
                sanitized[key] = value
        return sanitized

    def sanitize_options(self, raw: Mapping[str, Any] | None) -> PaginationSpec:
        return PaginationSpec.from_options(
            raw,
            sort_fields=GAME_SORT_FIELDS,
            default_sort_field=DEFAULT_GAME_SORT,
            default_direction=SortDirection.DESC,
            limits=self._limits,
        )

    # Reads -------------------------------------------------------------

    def get_games(
        self,
        filters: Mapping[str, Any] | None = None,
        options: Mapping[str, Any] | None = None,
    ) -> Page[GameRecord]:
        clean = self.sanitize_filters(filters)
        pagination = self.sanitize_options(options)
        items = self.games.find_all(clean, pagination)
        total = self.games.count(clean)
        return Page(
            items=items,
            pagination=Pagination.for_window(
                total=total, limit=pagination.limit, offset=pagination.offset, returned=len(items)
            ),
        )

    def get_game(self, game_id: str) -> GameRecord:
        if not game_id:
            raise ValidationFailure("Game ID is required", field="game_id")
        game = self.games.find_by_id(game_id)
        ensure_found(game, entity="game", identifier=game_id)
        return game

    def get_live_games(self, filters: Mapping[str, Any] | None = None) -> list[GameRecord]:
        return self.games.find_live_games(self.sanitize_filters(filters))

    def get_games_by_date_range(
        self, start_date: str, end_date: str, filters: Mapping[str, Any] | None = None
    ) -> list[GameRecord]:
        if not start_date or not end_date:
            raise ValidationFailure("Both start and end dates are required", field="date")
        if start_date > end_date:
            raise ValidationFailure("Start date must not be after end date", field="date", value=start_date)
        return self.games.find_by_date_range(start_date, end_date, self.sanitize_filters(filters))

    def get_games_by_team(self, team_name: str, filters: Mapping[str, Any] | None = None) -> list[GameRecord]:
        if not team_name or not team_name.strip():
            raise ValidationFailure("Team name is required", field="team_name")
        return self.games.find_by_team(team_name.strip(), self.sanitize_filters(filters))

    def get_statistics(self, filters: Mapping[str, Any] | None = None) -> GameStatistics:
        return self.games.get_statistics(self.sanitize_filters(filters))

    # Writes ------------------------------------------------------------

    @with_transaction({"operation": "create_game"})
    def create_game(
        self,
        data: Mapping[str, Any],
        *,
        transaction: TransactionHandle,
        transaction_id: int,
    ) -> GameRecord | None:
        if self.games.find_by_id(data.get("game_id"), transaction) is not None:
            raise ValidationFailure(
                "Game with this ID already exists", field="game_id", value=data.get("game_id")
            )
        game = self.games.create(data, transaction)
        self._logger.info("games.created", game_id=data.get("game_id"), transaction_id=transaction_id)
        return game

    def update_game(self, game_id: str, data: Mapping[str, Any]) -> GameRecord:
        if not game_id:
            raise ValidationFailure("Game ID is required", field="game_id")
        game = self.games.update(game_id, data)
        if game is None:
            raise NotFoundError("game", game_id)
        return game

    def delete_game(self, game_id: str) -> bool:
        self.get_game(game_id)
        return self.games.delete(game_id)

    def create_games(self, games: Sequence[Mapping[str, Any]]) -> list[GameRecord | None]:
        """Insert every game or none of them."""

        def insert(data: Mapping[str, Any]):
            def run(transaction: TransactionHandle, _transaction_id: int) -> GameRecord | None:
                return self.games.create(data, transaction)

            run.__name__ = f"create_game[{data.get('game_id')}]"
            return run

        return self.transaction_manager.execute_multiple_in_transaction(
            [insert(data) for data in games], {"operation": "create_games", "count": len(games)}
        )

    def record_game_with_teams(
        self,
        game: Mapping[str, Any],
        teams: Iterable[Mapping[str, Any]],
    ) -> tuple[list[TeamRecord | None], GameRecord | None]:
        """Make sure both teams exist, then store the game.

        Teams created here are deleted again if a later step fails.
        """

        operations = [CatalogStep(self.teams, team).operation() for team in teams]
        operations.append(
            RollbackOperation(
                execute=lambda transaction, _id: self.games.create(game, transaction),
                rollback=lambda transaction, _id: self.games.delete(game["game_id"], transaction),
                name=f"create_game[{game.get('game_id')}]",
            )
        )
        results = self.transaction_manager.execute_with_rollback_on_failure(
            operations, {"operation": "record_game_with_teams"}
        )
        return results[:-1], results[-1]

    def import_games(self, games: Iterable[Mapping[str, Any]]) -> list[GameRecord | None]:
        """Insert each game in its own transaction.

        Every item is attempted. If any failed, a :class:`CompositeFailure`
        listing them is raised after the batch; the successful ones stay.
        """

        imported: list[GameRecord | None] = []
        failures: list[tuple[str, Exception]] = []
        for data in games:
            try:
                imported.append(
                    self.transaction_manager.execute_in_transaction(
                        lambda transaction, _id: self.games.create(data, transaction),
                        {"operation": "import_game"},
                    )
                )
            except AppError as error:
                failures.append((str(data.get("game_id") or "<unknown>"), error))
                self._logger.warning("games.import_failed", game_id=data.get("game_id"), error=str(error))

        self._logger.info("games.imported", imported=len(imported), failed=len(failures))
        if failures:
            raise CompositeFailure(failures)
        return imported


__all__ = ["GamesService", "VALID_STATUSES"]
