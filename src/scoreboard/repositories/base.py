"""Shared plumbing for the SQL repositories."""

from __future__ import annotations

from typing import Any, Sequence

import structlog

from ..db.adapters.base import DatabaseAdapter, ExecResult, Row, TransactionHandle
from .query import Statement


class SqlRepository:
    """Route statements to the adapter's default session or a supplied handle."""

    table: str = ""

    def __init__(self, adapter: DatabaseAdapter, *, logger: Any | None = None) -> None:
        self._adapter = adapter
        self._logger = logger or structlog.get_logger(type(self).__module__)

    def execute_query(
        self,
        text: str,
        params: Sequence[Any] = (),
        transaction: TransactionHandle | None = None,
    ) -> list[Row]:
        return self._adapter.raw_query(text, tuple(params), transaction)

    def execute_query_single(
        self,
        text: str,
        params: Sequence[Any] = (),
        transaction: TransactionHandle | None = None,
    ) -> Row | None:
        return self._adapter.raw_query_one(text, tuple(params), transaction)

    def execute_run(
        self,
        text: str,
        params: Sequence[Any] = (),
        transaction: TransactionHandle | None = None,
    ) -> ExecResult:
        return self._adapter.raw_exec(text, tuple(params), transaction)

    def fetch(self, statement: Statement, transaction: TransactionHandle | None = None) -> list[Row]:
        return self.execute_query(statement.text, statement.params, transaction)

    def fetch_one(self, statement: Statement, transaction: TransactionHandle | None = None) -> Row | None:
        return self.execute_query_single(statement.text, statement.params, transaction)

    def fetch_count(self, statement: Statement, transaction: TransactionHandle | None = None) -> int:
        row = self.fetch_one(statement, transaction)
        return int(row["count"]) if row else 0


__all__ = ["SqlRepository"]
