"""Teams repository."""

from __future__ import annotations

from typing import Any

from ..db.adapters.base import TransactionHandle, placeholder
from ..schemas import TeamRecord
from .catalog import CatalogRepository
from .query import FilterField, Statement, compose_filters

TEAM_FILTERS: tuple[FilterField, ...] = (
    FilterField.equals("sport"),
    FilterField.equals("division"),
    FilterField.equals("gender"),
    FilterField.equals("conference"),
)

TEAM_COLUMNS = (
    "team_id",
    "name",
    "short_name",
    "mascot",
    "city",
    "state",
    "country",
    "conference",
    "division",
    "sport",
    "gender",
    "level",
    "website",
    "logo_url",
    "colors",
)


class TeamsRepository(CatalogRepository[TeamRecord]):
    entity = "team"
    table = "teams"
    key_column = "team_id"
    columns = TEAM_COLUMNS
    filters = TEAM_FILTERS
    record_type = TeamRecord

    def find_by_conference(
        self,
        conference: str,
        sport: str | None = None,
        division: str | None = None,
        transaction: TransactionHandle | None = None,
    ) -> list[TeamRecord]:
        where = compose_filters(TEAM_FILTERS[:2], {"sport": sport, "division": division}, start_index=2)
        statement = Statement(
            f"SELECT * FROM teams WHERE conference = {placeholder(1)}{where.text} ORDER BY name ASC",
            (conference, *where.params),
        )
        return [TeamRecord.from_row(row) for row in self.fetch(statement, transaction)]


__all__ = ["TEAM_FILTERS", "TeamsRepository"]
