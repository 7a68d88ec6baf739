"""Games repository built on composed raw statements."""

from __future__ import annotations

import json
from typing import Any, Mapping

from ..db.adapters.base import DatabaseAdapter, TransactionHandle, placeholder
from ..exceptions import ValidationFailure
from ..schemas import GameRecord, GameStatistics
from .base import SqlRepository
from .query import (
    FilterField,
    PaginationLimits,
    PaginationSpec,
    SortDirection,
    Statement,
    compose_filters,
    is_present,
    order_and_page,
    select_allowed,
)

LIVE_STATUS = "in_progress"

CONFERENCE_FILTER = FilterField(
    "conference",
    "(home_team IN (SELECT name FROM teams WHERE conference = {})"
    " OR away_team IN (SELECT name FROM teams WHERE conference = {}))",
    arity=2,
)

# Order matters: placeholders are numbered in this sequence.
GAME_FILTERS: tuple[FilterField, ...] = (
    FilterField.equals("date"),
    FilterField.equals("sport"),
    FilterField.equals("status"),
    CONFERENCE_FILTER,
    FilterField.equals("data_source"),
    FilterField.equals("home_team"),
    FilterField.equals("away_team"),
)

GAME_SORT_FIELDS = ("date", "home_team", "away_team", "sport", "status", "created_at")
DEFAULT_GAME_SORT = "date"

REQUIRED_GAME_FIELDS = ("game_id", "date", "home_team", "away_team", "sport", "status", "data_source")

GAME_COLUMNS = (
    "game_id",
    "data_source",
    "league_name",
    "date",
    "home_team",
    "away_team",
    "sport",
    "home_score",
    "away_score",
    "status",
    "current_period",
    "period_scores",
    "venue",
    "city",
    "state",
    "country",
    "timezone",
    "broadcast_info",
    "notes",
)

UPDATABLE_GAME_COLUMNS = tuple(column for column in GAME_COLUMNS if column != "game_id")

EXISTS_FILTERS: tuple[FilterField, ...] = tuple(FilterField.equals(column) for column in GAME_COLUMNS)

_TEAM_FILTER = FilterField("team", "(home_team = {} OR away_team = {})", arity=2)
_SEASON_FILTER = FilterField("season", "date LIKE {}", transform=lambda season: f"{season}%")

STATISTICS_PROJECTION = (
    "SELECT COUNT(*) AS total_games,"
    " COUNT(CASE WHEN status = 'completed' THEN 1 END) AS completed_games,"
    f" COUNT(CASE WHEN status = '{LIVE_STATUS}' THEN 1 END) AS live_games,"
    " COUNT(CASE WHEN status = 'scheduled' THEN 1 END) AS scheduled_games,"
    " COUNT(CASE WHEN status = 'postponed' THEN 1 END) AS postponed_games,"
    " COUNT(CASE WHEN status = 'cancelled' THEN 1 END) AS cancelled_games,"
    " COUNT(DISTINCT sport) AS unique_sports,"
    " COUNT(DISTINCT data_source) AS unique_sources"
    " FROM games WHERE 1=1"
)


def _encode_period_scores(value: Any) -> Any:
    if value is None or isinstance(value, str):
        return value
    return json.dumps(value)


class GamesRepository(SqlRepository):
    """Read and write ``games`` rows."""

    table = "games"

    def __init__(
        self,
        adapter: DatabaseAdapter,
        *,
        limits: PaginationLimits | None = None,
        logger: Any | None = None,
    ) -> None:
        super().__init__(adapter, logger=logger)
        self._limits = limits or PaginationLimits()

    # Statement builders ------------------------------------------------

    def pagination_from(self, options: PaginationSpec | Mapping[str, Any] | None) -> PaginationSpec:
        if isinstance(options, PaginationSpec):
            return options.clamped(self._limits)
        return PaginationSpec.from_options(
            options,
            sort_fields=GAME_SORT_FIELDS,
            default_sort_field=DEFAULT_GAME_SORT,
            default_direction=SortDirection.DESC,
            limits=self._limits,
        )

    def build_find_all_query(
        self,
        filters: Mapping[str, Any] | None,
        pagination: PaginationSpec,
    ) -> Statement:
        where = compose_filters(GAME_FILTERS, filters)
        page = order_and_page(pagination, where.next_index, sort_fields=GAME_SORT_FIELDS)
        return Statement.compose("SELECT * FROM games WHERE 1=1", where, page)

    def build_count_query(self, filters: Mapping[str, Any] | None) -> Statement:
        return Statement.compose(
            "SELECT COUNT(*) AS count FROM games WHERE 1=1", compose_filters(GAME_FILTERS, filters)
        )

    def build_statistics_query(self, filters: Mapping[str, Any] | None) -> Statement:
        return Statement.compose(STATISTICS_PROJECTION, compose_filters(GAME_FILTERS, filters))

    # Reads -------------------------------------------------------------

    def find_all(
        self,
        filters: Mapping[str, Any] | None = None,
        options: PaginationSpec | Mapping[str, Any] | None = None,
        transaction: TransactionHandle | None = None,
    ) -> list[GameRecord]:
        statement = self.build_find_all_query(filters, self.pagination_from(options))
        return [GameRecord.from_row(row) for row in self.fetch(statement, transaction)]

    def find_by_id(self, game_id: str, transaction: TransactionHandle | None = None) -> GameRecord | None:
        row = self.execute_query_single(
            f"SELECT * FROM games WHERE game_id = {placeholder(1)}", (game_id,), transaction
        )
        return GameRecord.from_row(row) if row else None

    def find_by_date_range(
        self,
        start_date: str,
        end_date: str,
        filters: Mapping[str, Any] | None = None,
        transaction: TransactionHandle | None = None,
    ) -> list[GameRecord]:
        head = f"SELECT * FROM games WHERE date BETWEEN {placeholder(1)} AND {placeholder(2)}"
        where = compose_filters(GAME_FILTERS[1:3], filters, start_index=3)
        statement = Statement(
            f"{head}{where.text} ORDER BY date ASC, home_team ASC",
            (start_date, end_date, *where.params),
        )
        return [GameRecord.from_row(row) for row in self.fetch(statement, transaction)]

    def find_live_games(
        self,
        filters: Mapping[str, Any] | None = None,
        transaction: TransactionHandle | None = None,
    ) -> list[GameRecord]:
        where = compose_filters((GAME_FILTERS[1], CONFERENCE_FILTER), filters, start_index=2)
        statement = Statement(
            f"SELECT * FROM games WHERE status = {placeholder(1)}{where.text}"
            " ORDER BY date ASC, home_team ASC",
            (LIVE_STATUS, *where.params),
        )
        return [GameRecord.from_row(row) for row in self.fetch(statement, transaction)]

    def find_by_team(
        self,
        team_name: str,
        filters: Mapping[str, Any] | None = None,
        transaction: TransactionHandle | None = None,
    ) -> list[GameRecord]:
        team = _TEAM_FILTER.fragment(team_name, 1)
        where = compose_filters((_SEASON_FILTER, *GAME_FILTERS[1:3]), filters, start_index=team.next_index)
        statement = Statement(
            f"SELECT * FROM games WHERE {team.text}{where.text} ORDER BY date DESC",
            (*team.params, *where.params),
        )
        return [GameRecord.from_row(row) for row in self.fetch(statement, transaction)]

    def count(
        self,
        filters: Mapping[str, Any] | None = None,
        transaction: TransactionHandle | None = None,
    ) -> int:
        return self.fetch_count(self.build_count_query(filters), transaction)

    def exists(self, criteria: Mapping[str, Any], transaction: TransactionHandle | None = None) -> bool:
        if is_present(criteria.get("game_id")):
            return self.find_by_id(criteria["game_id"], transaction) is not None
        where = compose_filters(EXISTS_FILTERS, criteria)
        if not where.params:
            raise ValidationFailure("exists requires at least one known criterion", value=dict(criteria))
        statement = Statement.compose("SELECT COUNT(*) AS count FROM games WHERE 1=1", where)
        return self.fetch_count(statement, transaction) > 0

    def get_statistics(
        self,
        filters: Mapping[str, Any] | None = None,
        transaction: TransactionHandle | None = None,
    ) -> GameStatistics:
        return GameStatistics.from_row(self.fetch_one(self.build_statistics_query(filters), transaction))

    # Writes ------------------------------------------------------------

    def create(self, data: Mapping[str, Any], transaction: TransactionHandle | None = None) -> GameRecord | None:
        for field in REQUIRED_GAME_FIELDS:
            if not is_present(data.get(field)):
                raise ValidationFailure(f"Missing required field: {field}", field=field)

        values = [data.get(column) for column in GAME_COLUMNS]
        values[GAME_COLUMNS.index("period_scores")] = _encode_period_scores(data.get("period_scores"))
        markers = ", ".join(placeholder(index) for index in range(1, len(GAME_COLUMNS) + 1))
        statement = Statement(
            f"INSERT INTO games ({', '.join(GAME_COLUMNS)}) VALUES ({markers})", tuple(values)
        )
        self.execute_run(statement.text, statement.params, transaction)
        self._logger.debug("games.created", game_id=data["game_id"])
        return self.find_by_id(data["game_id"], transaction)

    def update(
        self,
        game_id: str,
        data: Mapping[str, Any],
        transaction: TransactionHandle | None = None,
    ) -> GameRecord | None:
        existing = self.find_by_id(game_id, transaction)
        if existing is None:
            return None

        changes = select_allowed(data, UPDATABLE_GAME_COLUMNS)
        if not changes:
            return existing
        if "period_scores" in changes:
            changes["period_scores"] = _encode_period_scores(changes["period_scores"])

        assignments = [f"{column} = {placeholder(index)}" for index, column in enumerate(changes, start=1)]
        assignments.append("updated_at = CURRENT_TIMESTAMP")
        statement = Statement(
            f"UPDATE games SET {', '.join(assignments)} WHERE game_id = {placeholder(len(changes) + 1)}",
            (*changes.values(), game_id),
        )
        self.execute_run(statement.text, statement.params, transaction)
        self._logger.debug("games.updated", game_id=game_id, fields=sorted(changes))
        return self.find_by_id(game_id, transaction)

    def delete(self, game_id: str, transaction: TransactionHandle | None = None) -> bool:
        result = self.execute_run(f"DELETE FROM games WHERE game_id = {placeholder(1)}", (game_id,), transaction)
        return result.affected_rows > 0


__all__ = [
    "CONFERENCE_FILTER",
    "GAME_FILTERS",
    "GAME_SORT_FIELDS",
    "GamesRepository",
    "LIVE_STATUS",
]
