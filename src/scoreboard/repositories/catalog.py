"""Shared implementation for the reference-data tables (teams, conferences)."""

from __future__ import annotations

import re
from typing import Any, ClassVar, Generic, Mapping, TypeVar

from ..db.adapters.base import DatabaseAdapter, Row, TransactionHandle, placeholder
from ..exceptions import ValidationFailure
from ..schemas import Page, Pagination
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

RecordT = TypeVar("RecordT")

CATALOG_SORT_FIELDS = ("name", "sport", "division", "gender", "created_at")
REQUIRED_CATALOG_FIELDS = ("name", "sport", "division", "gender")
DEFAULT_LEVEL = "college"

_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def slugify(name: str) -> str:
    return _NON_ALNUM.sub("-", name.lower()).strip("-")


def natural_key(data: Mapping[str, Any]) -> str:
    """Build ``<sport>-<division>-<gender>-<slug>`` for a catalog entry."""

    return f"{data['sport']}-{data['division']}-{data['gender']}-{slugify(str(data['name']))}"


class CatalogRepository(SqlRepository, Generic[RecordT]):
    """CRUD and listing for tables keyed by a generated natural key.

    Subclasses declare the table, its key column, insertable columns and
    filter allow-list; everything else is shared.
    """

    entity: ClassVar[str] = ""
    key_column: ClassVar[str] = ""
    columns: ClassVar[tuple[str, ...]] = ()
    filters: ClassVar[tuple[FilterField, ...]] = ()
    record_type: ClassVar[Any]

    def __init__(
        self,
        adapter: DatabaseAdapter,
        *,
        limits: PaginationLimits | None = None,
        logger: Any | None = None,
    ) -> None:
        super().__init__(adapter, logger=logger)
        self._limits = limits or PaginationLimits()

    @property
    def updatable_columns(self) -> tuple[str, ...]:
        return tuple(column for column in self.columns if column != self.key_column)

    def _record(self, row: Row | None) -> RecordT | None:
        return self.record_type.from_row(row) if row else None

    def pagination_from(self, options: PaginationSpec | Mapping[str, Any] | None) -> PaginationSpec:
        if isinstance(options, PaginationSpec):
            return options.clamped(self._limits)
        return PaginationSpec.from_options(
            options,
            sort_fields=CATALOG_SORT_FIELDS,
            default_sort_field="name",
            default_direction=SortDirection.ASC,
            limits=self._limits,
        )

    # Reads -------------------------------------------------------------

    def find_by_id(self, identifier: str, transaction: TransactionHandle | None = None) -> RecordT | None:
        row = self.execute_query_single(
            f"SELECT * FROM {self.table} WHERE {self.key_column} = {placeholder(1)}",
            (identifier,),
            transaction,
        )
        return self._record(row)

    def find_by_name(
        self,
        name: str,
        sport: str,
        division: str,
        gender: str,
        transaction: TransactionHandle | None = None,
    ) -> RecordT | None:
        markers = [placeholder(index) for index in range(1, 5)]
        row = self.execute_query_single(
            f"SELECT * FROM {self.table} WHERE name = {markers[0]} AND sport = {markers[1]}"
            f" AND division = {markers[2]} AND gender = {markers[3]} LIMIT 1",
            (name, sport, division, gender),
            transaction,
        )
        return self._record(row)

    def find_all(
        self,
        filters: Mapping[str, Any] | None = None,
        options: PaginationSpec | Mapping[str, Any] | None = None,
        transaction: TransactionHandle | None = None,
    ) -> Page[RecordT]:
        pagination = self.pagination_from(options)
        where = compose_filters(self.filters, filters)
        page = order_and_page(pagination, where.next_index, sort_fields=CATALOG_SORT_FIELDS)
        rows = self.fetch(Statement.compose(f"SELECT * FROM {self.table} WHERE 1=1", where, page), transaction)
        total = self.count(filters, transaction)
        return Page(
            items=[self._record(row) for row in rows],
            pagination=Pagination.for_window(
                total=total,
                limit=pagination.limit,
                offset=pagination.offset,
                returned=len(rows),
            ),
        )

    def count(
        self,
        filters: Mapping[str, Any] | None = None,
        transaction: TransactionHandle | None = None,
    ) -> int:
        statement = Statement.compose(
            f"SELECT COUNT(*) AS count FROM {self.table} WHERE 1=1", compose_filters(self.filters, filters)
        )
        return self.fetch_count(statement, transaction)

    def exists(self, criteria: Mapping[str, Any], transaction: TransactionHandle | None = None) -> bool:
        if is_present(criteria.get(self.key_column)):
            return self.find_by_id(criteria[self.key_column], transaction) is not None
        where = compose_filters([FilterField.equals(column) for column in self.columns], criteria)
        if not where.params:
            raise ValidationFailure("exists requires at least one known criterion", value=dict(criteria))
        statement = Statement.compose(f"SELECT COUNT(*) AS count FROM {self.table} WHERE 1=1", where)
        return self.fetch_count(statement, transaction) > 0

    # Writes ------------------------------------------------------------

    def _defaults(self) -> dict[str, Any]:
        return {"level": DEFAULT_LEVEL} if "level" in self.columns else {}

    def create(self, data: Mapping[str, Any], transaction: TransactionHandle | None = None) -> RecordT | None:
        for field in REQUIRED_CATALOG_FIELDS:
            if not is_present(data.get(field)):
                raise ValidationFailure(f"Missing required field: {field}", field=field)

        values = {**self._defaults(), **{key: value for key, value in data.items() if value is not None}}
        if not is_present(values.get(self.key_column)):
            values[self.key_column] = natural_key(values)

        markers = ", ".join(placeholder(index) for index in range(1, len(self.columns) + 1))
        statement = Statement(
            f"INSERT INTO {self.table} ({', '.join(self.columns)}) VALUES ({markers})",
            tuple(values.get(column) for column in self.columns),
        )
        self.execute_run(statement.text, statement.params, transaction)
        self._logger.debug("catalog.created", entity=self.entity, key=values[self.key_column])
        return self.find_by_id(values[self.key_column], transaction)

    def find_or_create(self, data: Mapping[str, Any], transaction: TransactionHandle | None = None) -> RecordT | None:
        existing = self.find_by_name(
            data.get("name"), data.get("sport"), data.get("division"), data.get("gender"), transaction
        )
        if existing is not None:
            return existing
        return self.create(data, transaction)

    def update(
        self,
        identifier: str,
        data: Mapping[str, Any],
        transaction: TransactionHandle | None = None,
    ) -> RecordT | None:
        changes = select_allowed(
            {key: value for key, value in data.items() if value is not None}, self.updatable_columns
        )
        if not changes:
            raise ValidationFailure("No valid fields to update", value=sorted(data))

        assignments = [f"{column} = {placeholder(index)}" for index, column in enumerate(changes, start=1)]
        assignments.append("updated_at = CURRENT_TIMESTAMP")
        statement = Statement(
            f"UPDATE {self.table} SET {', '.join(assignments)}"
            f" WHERE {self.key_column} = {placeholder(len(changes) + 1)}",
            (*changes.values(), identifier),
        )
        result = self.execute_run(statement.text, statement.params, transaction)
        if result.affected_rows == 0:
            return None
        return self.find_by_id(identifier, transaction)

    def delete(self, identifier: str, transaction: TransactionHandle | None = None) -> bool:
        result = self.execute_run(
            f"DELETE FROM {self.table} WHERE {self.key_column} = {placeholder(1)}", (identifier,), transaction
        )
        return result.affected_rows > 0


__all__ = ["CATALOG_SORT_FIELDS", "CatalogRepository", "natural_key", "slugify"]
