"""Driver adapter contract shared by the transaction manager and repositories."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Protocol, Sequence

Row = dict[str, Any]

# Every statement uses SQLAlchemy named binds numbered from 1: ``:p1 … :pN``.
PLACEHOLDER_PREFIX = "p"


def placeholder(index: int) -> str:
    """Return the bind marker for the ``index``-th parameter (1-based)."""
    if index < 1:
        raise ValueError("placeholder indexes start at 1")
    return f":{PLACEHOLDER_PREFIX}{index}"


def bind_params(params: Sequence[Any]) -> dict[str, Any]:
    """Map ordered ``params`` onto the names emitted by :func:`placeholder`."""
    return {f"{PLACEHOLDER_PREFIX}{index}": value for index, value in enumerate(params, start=1)}


@dataclass(slots=True, eq=False)
class TransactionHandle:
    """Opaque reference to one open backing-store session bound to a transaction.

    ``session`` is whatever the adapter needs to route statements to the
    right connection. Once ``committed`` or ``rolled_back`` is set the handle
    is inert and must not be reused.
    """

    session: Any
    committed: bool = False
    rolled_back: bool = False

    @property
    def is_finalized(self) -> bool:
        return self.committed or self.rolled_back


@dataclass(frozen=True, slots=True)
class ExecResult:
    """Outcome of a statement that does not return rows."""

    affected_rows: int
    insert_id: int | None = None


class DatabaseAdapter(Protocol):
    """Narrow driver interface consumed by the data-access layer."""

    def connect(self) -> None:
        """Open the connection pool and ensure the schema exists."""

    def disconnect(self) -> None:
        """Release every pooled connection."""

    def is_connected(self) -> bool:
        """Return ``True`` when the store answers a trivial probe."""

    def health_status(self) -> Mapping[str, Any]:
        """Return a status mapping suitable for health endpoints."""

    def raw_query(
        self,
        text: str,
        params: Sequence[Any] = (),
        transaction: TransactionHandle | None = None,
    ) -> list[Row]:
        """Run ``text`` and return every row as a mapping."""

    def raw_query_one(
        self,
        text: str,
        params: Sequence[Any] = (),
        transaction: TransactionHandle | None = None,
    ) -> Row | None:
        """Run ``text`` and return the first row or ``None``."""

    def raw_exec(
        self,
        text: str,
        params: Sequence[Any] = (),
        transaction: TransactionHandle | None = None,
    ) -> ExecResult:
        """Run a statement that does not return rows."""

    def begin_raw_transaction(self) -> TransactionHandle:
        """Open a dedicated session and begin a transaction on it."""

    def commit_raw(self, transaction: TransactionHandle) -> None:
        """Commit ``transaction`` and release its session."""

    def rollback_raw(self, transaction: TransactionHandle) -> None:
        """Roll back ``transaction`` and release its session."""


__all__ = [
    "DatabaseAdapter",
    "ExecResult",
    "PLACEHOLDER_PREFIX",
    "Row",
    "TransactionHandle",
    "bind_params",
    "placeholder",
]
