"""Test doubles for the database adapter contract."""

from __future__ import annotations

import itertools
import threading
from typing import Any, Sequence

from scoreboard.db.adapters.base import ExecResult, Row, TransactionHandle
from scoreboard.exceptions import DriverError


class RecordingAdapter:
    """In-memory adapter that records every call and can be told to fail.

    ``fail_begin``/``fail_commit`` hold an exception to raise on the next
    begin/commit; ``failing_rollbacks`` lists session names whose rollback
    raises :class:`DriverError`.
    """

    def __init__(self) -> None:
        self.calls: list[tuple[Any, ...]] = []
        self.handles: list[TransactionHandle] = []
        self.rows: list[Row] = []
        self.fail_begin: Exception | None = None
        self.fail_commit: Exception | None = None
        self.failing_rollbacks: set[str] = set()
        self.connected = False
        self._sessions = itertools.count(1)
        self._lock = threading.Lock()

    def _record(self, *call: Any) -> None:
        with self._lock:
            self.calls.append(call)

    def calls_named(self, name: str) -> list[tuple[Any, ...]]:
        return [call for call in self.calls if call[0] == name]

    # Lifecycle ---------------------------------------------------------

    def connect(self) -> None:
        self.connected = True

    def disconnect(self) -> None:
        self._record("disconnect")
        self.connected = False

    def is_connected(self) -> bool:
        return self.connected

    def health_status(self) -> dict[str, Any]:
        return {"status": "healthy" if self.connected else "unhealthy", "connected": self.connected}

    # Statements --------------------------------------------------------

    def raw_query(
        self,
        text: str,
        params: Sequence[Any] = (),
        transaction: TransactionHandle | None = None,
    ) -> list[Row]:
        self._record("query", text, tuple(params), transaction)
        return list(self.rows)

    def raw_query_one(
        self,
        text: str,
        params: Sequence[Any] = (),
        transaction: TransactionHandle | None = None,
    ) -> Row | None:
        rows = self.raw_query(text, params, transaction)
        return rows[0] if rows else None

    def raw_exec(
        self,
        text: str,
        params: Sequence[Any] = (),
        transaction: TransactionHandle | None = None,
    ) -> ExecResult:
        self._record("exec", text, tuple(params), transaction)
        return ExecResult(affected_rows=1)

    # Transactions ------------------------------------------------------

    def begin_raw_transaction(self) -> TransactionHandle:
        if self.fail_begin is not None:
            error, self.fail_begin = self.fail_begin, None
            self._record("begin_failed")
            raise error
        handle = TransactionHandle(session=f"session-{next(self._sessions)}")
        with self._lock:
            self.handles.append(handle)
        self._record("begin", handle.session)
        return handle

    def commit_raw(self, transaction: TransactionHandle) -> None:
        self._record("commit", transaction.session)
        if self.fail_commit is not None:
            error, self.fail_commit = self.fail_commit, None
            raise error
        transaction.committed = True

    def rollback_raw(self, transaction: TransactionHandle) -> None:
        self._record("rollback", transaction.session)
        if transaction.session in self.failing_rollbacks:
            raise DriverError(f"rollback refused for {transaction.session}", operation="rollback")
        transaction.rolled_back = True
