"""Idempotent ingestion of scoreboard feed games together with their catalog rows."""

from __future__ import annotations

from typing import Any, Iterable, Mapping

import structlog

from ..exceptions import AppError, ValidationFailure
from ..repositories.catalog import slugify
from ..repositories.conferences import ConferencesRepository
from ..repositories.games import GamesRepository
from ..repositories.query import is_present
from ..repositories.teams import TeamsRepository
from ..schemas import IngestionResult, IngestionSummary
from ..transactions import RollbackOperation, TransactionManager
from .steps import CatalogStep

DEFAULT_DATA_SOURCE = "ncaa_official"
DEFAULT_GENDER = "mixed"

_ID_FIELDS = ("sport", "division", "date", "home_team", "away_team")


def generate_game_id(data: Mapping[str, Any]) -> str:
    """Return the stable id a feed game is stored under.

    An explicit ``game_id`` wins, then the feed's own ``source_game_id``.
    Otherwise the id is derived from sport, division, date and both teams.
    """

    if is_present(data.get("game_id")):
        return str(data["game_id"])
    if is_present(data.get("source_game_id")):
        return f"ncaa-{data['source_game_id']}"
    for name in _ID_FIELDS:
        if not is_present(data.get(name)):
            raise ValidationFailure(f"Missing required field: {name}", field=name)
    date = str(data["date"]).replace("-", "")
    return (
        f"ncaa-{data['sport']}-{data['division']}-{date}"
        f"-{slugify(str(data['home_team']))}-vs-{slugify(str(data['away_team']))}"
    )


class IngestionService:
    """Store feed games, creating missing teams and conferences on the way.

    Each game runs in its own transaction. Catalog rows created for a game
    are removed again when a later step for that game fails.
    """

    def __init__(
        self,
        games: GamesRepository,
        teams: TeamsRepository,
        conferences: ConferencesRepository,
        transaction_manager: TransactionManager,
        *,
        logger: Any | None = None,
    ) -> None:
        self.games = games
        self.teams = teams
        self.conferences = conferences
        self.transaction_manager = transaction_manager
        self._logger = logger or structlog.get_logger(__name__)

    def ingest_game(self, data: Mapping[str, Any]) -> IngestionResult:
        game_id: str | None = None
        try:
            game_id = generate_game_id(data)
            if self.games.find_by_id(game_id) is not None:
                self._logger.info("ingestion.skipped", game_id=game_id)
                return IngestionResult("skipped", game_id)

            conference_steps = [
                CatalogStep(self.conferences, self._catalog_data(data, name))
                for name in self._conference_names(data)
            ]
            team_steps = [
                CatalogStep(self.teams, self._team_data(data, side)) for side in ("home", "away")
            ]
            game = {
                **data,
                "game_id": game_id,
                "data_source": data.get("data_source") or DEFAULT_DATA_SOURCE,
            }
            operations = [step.operation() for step in (*conference_steps, *team_steps)]
            operations.append(
                RollbackOperation(
                    execute=lambda transaction, _id: self.games.create(game, transaction),
                    rollback=lambda transaction, _id: self.games.delete(game_id, transaction),
                    name=f"create_game[{game_id}]",
                )
            )
            self.transaction_manager.execute_with_rollback_on_failure(
                operations, {"operation": "ingest_game", "game_id": game_id}
            )
        except AppError as error:
            self._logger.warning("ingestion.failed", game_id=game_id, error=str(error))
            return IngestionResult("failed", game_id, error=str(error))

        result = IngestionResult(
            "created",
            game_id,
            teams_created=sum(len(step.created) for step in team_steps),
            conferences_created=sum(len(step.created) for step in conference_steps),
        )
        self._logger.info(
            "ingestion.created",
            game_id=game_id,
            teams_created=result.teams_created,
            conferences_created=result.conferences_created,
        )
        return result

    def ingest_games(self, games: Iterable[Mapping[str, Any]]) -> IngestionSummary:
        summary = IngestionSummary()
        for data in games:
            summary.add(self.ingest_game(data))
        self._logger.info(
            "ingestion.completed",
            total=summary.total,
            created=summary.created,
            skipped=summary.skipped,
            failed=summary.failed,
        )
        return summary

    @staticmethod
    def _conference_names(data: Mapping[str, Any]) -> list[str]:
        names: list[str] = []
        for key in ("home_conference", "away_conference"):
            name = data.get(key)
            if is_present(name) and name not in names:
                names.append(name)
        return names

    @staticmethod
    def _catalog_data(data: Mapping[str, Any], name: Any) -> dict[str, Any]:
        return {
            "name": name,
            "sport": data.get("sport"),
            "division": data.get("division"),
            "gender": data.get("gender") or DEFAULT_GENDER,
        }

    @classmethod
    def _team_data(cls, data: Mapping[str, Any], side: str) -> dict[str, Any]:
        team = cls._catalog_data(data, data.get(f"{side}_team"))
        team["conference"] = data.get(f"{side}_conference")
        return team


__all__ = ["IngestionService", "generate_game_id"]
